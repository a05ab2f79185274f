"""Constants used across the granted-relay package."""

from __future__ import annotations

from pathlib import Path

APP_NAME = "granted-relay"
DEFAULT_CONFIG_FILENAME = f"{APP_NAME}.cfg"
DEFAULT_CONFIG_PATH = Path.home() / ".granted-relay" / DEFAULT_CONFIG_FILENAME

DEFAULT_BROKER_HOST = "192.168.0.5"
DEFAULT_BROKER_PORT = 1883
DEFAULT_COMMAND_TOPIC = "granted/command"
DEFAULT_FEEDBACK_TOPIC = "granted/feedback"

DEFAULT_HTTP_HOST = "0.0.0.0"
DEFAULT_HTTP_PORT = 5000
DEFAULT_MONITOR_URL = f"http://localhost:{DEFAULT_HTTP_PORT}"

DUPLICATE_WINDOW_SECONDS = 2.0
COMMAND_TIMEOUT_SECONDS = 15.0
ROBOT_PROCESSING_SECONDS = 15.0
DOOR_PROCESSING_SECONDS = 10.0
STABILITY_DWELL_SECONDS = 0.2
