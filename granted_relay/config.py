"""Configuration loader for granted-relay."""

from __future__ import annotations

from configparser import ConfigParser
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from . import constants


@dataclass(slots=True)
class BrokerConfig:
    host: str = constants.DEFAULT_BROKER_HOST
    port: int = constants.DEFAULT_BROKER_PORT
    username: Optional[str] = None
    password: Optional[str] = None
    command_topic: str = constants.DEFAULT_COMMAND_TOPIC
    feedback_topic: str = constants.DEFAULT_FEEDBACK_TOPIC
    keepalive: int = 60
    client_id: Optional[str] = None


@dataclass(slots=True)
class ServerConfig:
    host: str = constants.DEFAULT_HTTP_HOST
    port: int = constants.DEFAULT_HTTP_PORT
    index_path: Optional[Path] = None  # HTML page served at "/" when set
    cors_origin: str = "*"


@dataclass(slots=True)
class TimingConfig:
    duplicate_window_seconds: float = constants.DUPLICATE_WINDOW_SECONDS
    command_timeout_seconds: float = constants.COMMAND_TIMEOUT_SECONDS
    robot_processing_seconds: float = constants.ROBOT_PROCESSING_SECONDS
    door_processing_seconds: float = constants.DOOR_PROCESSING_SECONDS
    stability_dwell_seconds: float = constants.STABILITY_DWELL_SECONDS

    @property
    def robot_processing_ms(self) -> int:
        return int(round(self.robot_processing_seconds * 1000))


@dataclass(slots=True)
class LoggingConfig:
    level: str = "INFO"
    path: Optional[Path] = None
    log_network: bool = False
    max_bytes: int = 5 * 1024 * 1024
    backup_count: int = 3


@dataclass(slots=True)
class ResilienceConfig:
    reconnect_initial_seconds: float = 1.0
    reconnect_max_seconds: float = 30.0
    connect_timeout_seconds: float = 30.0


@dataclass(slots=True)
class MonitorConfig:
    base_url: str = constants.DEFAULT_MONITOR_URL
    poll_interval_seconds: float = 1.0
    reset_door_after_seconds: float = 0.0  # 0 disables the automatic reset


@dataclass(slots=True)
class RelayConfig:
    broker: BrokerConfig
    server: ServerConfig
    timing: TimingConfig
    logging: LoggingConfig
    resilience: ResilienceConfig
    monitor: MonitorConfig
    raw: ConfigParser
    path: Path


def _optional(parser: ConfigParser, section: str, option: str) -> Optional[str]:
    value = parser.get(section, option, fallback="").strip()
    return value or None


def _int(parser: ConfigParser, section: str, option: str, default: int) -> int:
    try:
        return parser.getint(section, option, fallback=default)
    except ValueError:
        return default


def _float(parser: ConfigParser, section: str, option: str, default: float) -> float:
    try:
        return parser.getfloat(section, option, fallback=default)
    except ValueError:
        return default


def _bool(parser: ConfigParser, section: str, option: str, default: bool) -> bool:
    try:
        return parser.getboolean(section, option, fallback=default)
    except ValueError:
        return default


def _seconds(parser: ConfigParser, section: str, option: str, default: float) -> float:
    return max(0.0, _float(parser, section, option, default))


def load_config(path: Optional[Path] = None) -> RelayConfig:
    """Load configuration from disk, applying defaults where necessary."""

    config_path = path or constants.DEFAULT_CONFIG_PATH
    parser = ConfigParser()
    parser.read_dict(
        {
            "broker": {
                "host": constants.DEFAULT_BROKER_HOST,
                "port": str(constants.DEFAULT_BROKER_PORT),
                "command_topic": constants.DEFAULT_COMMAND_TOPIC,
                "feedback_topic": constants.DEFAULT_FEEDBACK_TOPIC,
                "keepalive": "60",
            },
            "server": {
                "host": constants.DEFAULT_HTTP_HOST,
                "port": str(constants.DEFAULT_HTTP_PORT),
                "cors_origin": "*",
            },
            "timing": {
                "duplicate_window_seconds": str(constants.DUPLICATE_WINDOW_SECONDS),
                "command_timeout_seconds": str(constants.COMMAND_TIMEOUT_SECONDS),
                "robot_processing_seconds": str(constants.ROBOT_PROCESSING_SECONDS),
                "door_processing_seconds": str(constants.DOOR_PROCESSING_SECONDS),
                "stability_dwell_seconds": str(constants.STABILITY_DWELL_SECONDS),
            },
            "logging": {
                "level": "INFO",
                "log_network": "false",
                "max_bytes": str(5 * 1024 * 1024),
                "backup_count": "3",
            },
            "resilience": {
                "reconnect_initial_seconds": "1.0",
                "reconnect_max_seconds": "30.0",
                "connect_timeout_seconds": "30.0",
            },
            "monitor": {
                "base_url": constants.DEFAULT_MONITOR_URL,
                "poll_interval_seconds": "1.0",
                "reset_door_after_seconds": "0",
            },
        }
    )

    if config_path.exists():
        parser.read(config_path)

    host_value = parser.get("broker", "host")
    port_value = _int(parser, "broker", "port", constants.DEFAULT_BROKER_PORT)

    if ":" in host_value:
        host_part, port_part = host_value.rsplit(":", 1)
        try:
            parsed_port = int(port_part)
        except ValueError:
            pass
        else:
            host_value = host_part
            port_value = parsed_port
            parser.set("broker", "host", host_part)
            parser.set("broker", "port", str(parsed_port))

    broker = BrokerConfig(
        host=host_value,
        port=port_value,
        username=_optional(parser, "broker", "username"),
        password=_optional(parser, "broker", "password"),
        command_topic=parser.get("broker", "command_topic"),
        feedback_topic=parser.get("broker", "feedback_topic"),
        keepalive=max(1, _int(parser, "broker", "keepalive", 60)),
        client_id=_optional(parser, "broker", "client_id"),
    )

    index_value = _optional(parser, "server", "index_path")
    server = ServerConfig(
        host=parser.get("server", "host"),
        port=_int(parser, "server", "port", constants.DEFAULT_HTTP_PORT),
        index_path=Path(index_value).expanduser() if index_value else None,
        cors_origin=parser.get("server", "cors_origin", fallback="*"),
    )

    defaults = TimingConfig()
    timing = TimingConfig(
        duplicate_window_seconds=_seconds(
            parser,
            "timing",
            "duplicate_window_seconds",
            defaults.duplicate_window_seconds,
        ),
        command_timeout_seconds=_seconds(
            parser,
            "timing",
            "command_timeout_seconds",
            defaults.command_timeout_seconds,
        ),
        robot_processing_seconds=_seconds(
            parser,
            "timing",
            "robot_processing_seconds",
            defaults.robot_processing_seconds,
        ),
        door_processing_seconds=_seconds(
            parser,
            "timing",
            "door_processing_seconds",
            defaults.door_processing_seconds,
        ),
        stability_dwell_seconds=_seconds(
            parser,
            "timing",
            "stability_dwell_seconds",
            defaults.stability_dwell_seconds,
        ),
    )

    log_path_value = _optional(parser, "logging", "path")
    logging_config = LoggingConfig(
        level=parser.get("logging", "level", fallback="INFO"),
        path=Path(log_path_value).expanduser() if log_path_value else None,
        log_network=_bool(parser, "logging", "log_network", False),
        max_bytes=max(0, _int(parser, "logging", "max_bytes", 5 * 1024 * 1024)),
        backup_count=max(0, _int(parser, "logging", "backup_count", 3)),
    )

    resilience = ResilienceConfig(
        reconnect_initial_seconds=max(
            0.1,
            _float(parser, "resilience", "reconnect_initial_seconds", 1.0),
        ),
        reconnect_max_seconds=max(
            1.0,
            _float(parser, "resilience", "reconnect_max_seconds", 30.0),
        ),
        connect_timeout_seconds=max(
            1.0,
            _float(parser, "resilience", "connect_timeout_seconds", 30.0),
        ),
    )

    monitor = MonitorConfig(
        base_url=parser.get("monitor", "base_url").rstrip("/"),
        poll_interval_seconds=max(
            0.05,
            _float(parser, "monitor", "poll_interval_seconds", 1.0),
        ),
        reset_door_after_seconds=_seconds(
            parser, "monitor", "reset_door_after_seconds", 0.0
        ),
    )

    return RelayConfig(
        broker=broker,
        server=server,
        timing=timing,
        logging=logging_config,
        resilience=resilience,
        monitor=monitor,
        raw=parser,
        path=config_path,
    )
