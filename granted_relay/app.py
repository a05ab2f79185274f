"""Main application entry-point for granted-relay."""

from __future__ import annotations

import asyncio
import logging
import os
from enum import Enum
from typing import Optional

from . import constants
from .adapters import MQTTClient, MQTTConnectionError
from .config import RelayConfig, load_config
from .feedback import MQTTFeedbackPublisher
from .health import HealthReporter
from .logging import configure_logging
from .notifications import ClientNotifier
from .relay import CommandRelay
from .server import StatusServer

LOGGER = logging.getLogger(__name__)


class AppState(str, Enum):
    COLD_START = "cold_start"
    AWAITING_MQTT = "awaiting_mqtt"
    ACTIVE = "active"
    DEGRADED = "degraded"
    STOPPING = "stopping"


class RelayApp:
    """Coordinates relay startup and shutdown.

    Wires the MQTT adapter, the command relay, the WebSocket notifier and
    the status server together. A broker that is unreachable at startup
    leaves the app ``degraded`` with the HTTP surface still serving while
    paho keeps retrying in the background.
    """

    def __init__(self, config: Optional[RelayConfig] = None) -> None:
        self._config = config or load_config()
        self._health = HealthReporter()
        self._notifier = ClientNotifier()
        self._mqtt_client: Optional[MQTTClient] = None
        self._relay: Optional[CommandRelay] = None
        self._server: Optional[StatusServer] = None
        self._shutdown_event: Optional[asyncio.Event] = None
        self._state = AppState.COLD_START
        self._stopping = False
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def state(self) -> AppState:
        return self._state

    @property
    def relay(self) -> Optional[CommandRelay]:
        return self._relay

    @classmethod
    def start(cls, config: Optional[RelayConfig] = None) -> None:
        instance = cls(config=config)
        configure_logging(
            instance._config.logging.level,
            log_path=instance._config.logging.path,
            log_network=instance._config.logging.log_network,
            max_bytes=instance._config.logging.max_bytes,
            backup_count=instance._config.logging.backup_count,
        )
        try:
            asyncio.run(instance.run())
        except KeyboardInterrupt:
            LOGGER.info("granted-relay received shutdown signal")

    async def run(self) -> None:
        self._shutdown_event = asyncio.Event()

        LOGGER.info("granted-relay starting with config: %s", self._config.path)
        await self._start_services()

        try:
            await self._shutdown_event.wait()
        except asyncio.CancelledError:
            LOGGER.info("granted-relay received shutdown signal")
            raise
        finally:
            await self._stop_services()

    def request_shutdown(self) -> None:
        if self._shutdown_event is not None:
            self._shutdown_event.set()

    async def _transition_state(
        self, state: AppState, *, detail: Optional[str] = None
    ) -> None:
        previous = self._state
        self._state = state
        LOGGER.info(
            "App state transition %s -> %s (%s)",
            previous.value,
            state.value,
            detail or state.value,
        )
        await self._health.set_app_state(
            state.value, healthy=state == AppState.ACTIVE, detail=detail
        )

    async def _start_services(self) -> bool:
        await self._transition_state(AppState.COLD_START, detail="initialising")
        self._stopping = False
        broker = self._config.broker

        self._mqtt_client = MQTTClient(
            broker,
            client_id=_build_client_id(broker.client_id),
            resilience=self._config.resilience,
        )
        self._mqtt_client.register_connect_handler(self._on_mqtt_connect)
        self._mqtt_client.register_disconnect_handler(self._on_mqtt_disconnect)

        feedback = MQTTFeedbackPublisher(self._mqtt_client, broker.feedback_topic)
        self._relay = CommandRelay(
            feedback, self._notifier, timing=self._config.timing
        )
        self._mqtt_client.set_message_handler(self._relay.handle_message)
        self._mqtt_client.subscribe(broker.command_topic)

        await self._health.update("mqtt", False, "initialising")

        self._server = StatusServer(
            self._relay, self._notifier, self._config.server, health=self._health
        )
        try:
            await self._server.start()
        except OSError as exc:
            LOGGER.error("Failed to start web server: %s", exc)
            await self._health.update("http", False, str(exc))
            self._server = None
        else:
            await self._health.update("http", True, None)

        await self._transition_state(
            AppState.AWAITING_MQTT, detail="connecting to mqtt broker"
        )

        try:
            await self._mqtt_client.connect()
        except MQTTConnectionError as exc:
            LOGGER.error("MQTT connection failed: %s", exc)
            await self._health.update("mqtt", False, str(exc))
            await self._transition_state(AppState.DEGRADED, detail="mqtt unavailable")
            return False

        await self._health.update("mqtt", True, None)
        if self._server is None:
            await self._transition_state(
                AppState.DEGRADED, detail="web server unavailable"
            )
            return False

        await self._transition_state(AppState.ACTIVE, detail="relay ready")
        return True

    async def _stop_services(self) -> None:
        await self._transition_state(AppState.STOPPING, detail="shutdown requested")
        self._stopping = True

        if self._relay is not None:
            self._relay.shutdown()

        if self._server is not None:
            await self._server.stop()
            self._server = None
            await self._health.update("http", False, "shutdown")

        if self._mqtt_client is not None:
            await self._mqtt_client.disconnect()
            self._mqtt_client = None
            await self._health.update("mqtt", False, "shutdown")

    # -------------------------------------------------------------------------
    # MQTT client callbacks (already marshalled onto the event loop)
    # -------------------------------------------------------------------------
    def _on_mqtt_connect(self, rc: int) -> None:
        if self._stopping:
            return
        self._spawn(self._handle_mqtt_connected())

    def _on_mqtt_disconnect(self, rc: int) -> None:
        if self._stopping:
            return
        self._spawn(self._handle_mqtt_disconnected(rc))

    def _spawn(self, coro) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _handle_mqtt_connected(self) -> None:
        await self._health.update("mqtt", True, None)
        if self._state == AppState.DEGRADED and self._server is not None:
            await self._transition_state(AppState.ACTIVE, detail="mqtt recovered")

    async def _handle_mqtt_disconnected(self, rc: int) -> None:
        await self._health.update("mqtt", False, f"disconnected (rc={rc})")
        if self._state == AppState.ACTIVE:
            await self._transition_state(
                AppState.DEGRADED, detail=f"mqtt disconnected (rc={rc})"
            )


def _build_client_id(configured: Optional[str]) -> str:
    if configured:
        return configured
    return f"{constants.APP_NAME}-{os.getpid()}"
