"""Command-line interface for granted-relay."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

from . import constants
from .app import RelayApp
from .config import load_config
from .logging import configure_logging
from .monitor import StatusMonitor

LOGGER = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="granted-relay", description="MQTT to WebSocket door/robot relay"
    )
    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=constants.DEFAULT_CONFIG_PATH,
        help=f"Path to configuration file (default: {constants.DEFAULT_CONFIG_PATH})",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("start", help="Start the relay service")

    subparsers.add_parser(
        "show-config", help="Print the resolved configuration and exit"
    )

    monitor_parser = subparsers.add_parser(
        "monitor", help="Poll a running relay and log debounced status changes"
    )
    monitor_parser.add_argument(
        "--url", help="Relay base URL (overrides [monitor] base_url)"
    )
    monitor_parser.add_argument(
        "--reset-after",
        type=float,
        help="Seconds after an authorization before resetting the door status",
    )

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    config = load_config(args.config)

    if args.command == "start":
        RelayApp.start(config)
        return 0

    if args.command == "show-config":
        print(f"Configuration loaded from {config.path!s}\n")
        for section in config.raw.sections():
            print(f"[{section}]")
            for key, value in config.raw[section].items():
                print(f"{key} = {value}")
            print()
        return 0

    if args.command == "monitor":
        if args.url:
            config.monitor.base_url = args.url.rstrip("/")
        if args.reset_after is not None:
            config.monitor.reset_door_after_seconds = max(0.0, args.reset_after)
        configure_logging(
            config.logging.level,
            log_path=config.logging.path,
            max_bytes=config.logging.max_bytes,
            backup_count=config.logging.backup_count,
        )
        monitor = StatusMonitor(
            config.monitor,
            dwell=config.timing.stability_dwell_seconds,
            cycle_seconds=config.timing.robot_processing_seconds,
        )
        try:
            asyncio.run(monitor.run())
        except KeyboardInterrupt:
            LOGGER.info("Monitor stopped")
        return 0

    LOGGER.error("Unknown command: %s", args.command)
    return 1


if __name__ == "__main__":
    sys.exit(main())
