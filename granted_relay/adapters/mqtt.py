"""MQTT adapter encapsulating paho-mqtt client usage."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, List, Optional

import paho.mqtt.client as mqtt

from ..config import BrokerConfig, ResilienceConfig

LOGGER = logging.getLogger(__name__)
PAHO_LOGGER = LOGGER.getChild("paho")

# (topic, payload text, retained)
MessageHandler = Callable[[str, str, bool], None]


class MQTTConnectionError(RuntimeError):
    """Raised when the MQTT client fails to connect, publish or subscribe."""


class MQTTClient:
    """Async-friendly wrapper over the threaded paho-mqtt client.

    Paho callbacks run on its network thread; everything handed to
    registered handlers is re-dispatched onto the asyncio loop that called
    :meth:`connect`, so handlers never run concurrently with each other.
    """

    def __init__(
        self,
        config: BrokerConfig,
        *,
        client_id: str,
        resilience: Optional[ResilienceConfig] = None,
    ) -> None:
        self.config = config
        self.client_id = client_id
        self.resilience = resilience or ResilienceConfig()

        self._client: Optional[mqtt.Client] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._connected_event: Optional[asyncio.Event] = None
        self._disconnect_event: Optional[asyncio.Event] = None
        self._message_handler: Optional[MessageHandler] = None
        self._last_connect_rc: Optional[int] = None
        self._connected: bool = False
        self._subscriptions: List[str] = []
        self._disconnect_handlers: List[Callable[[int], None]] = []
        self._connect_handlers: List[Callable[[int], None]] = []

    async def connect(self, timeout: Optional[float] = None) -> None:
        """Connect to the MQTT broker and wait for acknowledgement.

        On timeout or refusal the paho network loop keeps running so the
        client continues reconnecting in the background.
        """

        self._loop = asyncio.get_running_loop()
        self._connected_event = asyncio.Event()
        self._disconnect_event = asyncio.Event()
        self._last_connect_rc = None

        client = mqtt.Client(mqtt.CallbackAPIVersion.VERSION2, client_id=self.client_id)
        client.enable_logger(PAHO_LOGGER)
        client.reconnect_delay_set(
            min_delay=max(1, int(self.resilience.reconnect_initial_seconds)),
            max_delay=max(1, int(self.resilience.reconnect_max_seconds)),
        )

        if self.config.username:
            client.username_pw_set(self.config.username, self.config.password)

        client.on_connect = self._on_connect
        client.on_disconnect = self._on_disconnect
        client.on_message = self._on_message

        self._client = client

        LOGGER.info(
            "Connecting to MQTT broker %s:%s", self.config.host, self.config.port
        )

        client.connect_async(self.config.host, self.config.port, self.config.keepalive)
        client.loop_start()

        wait_for = timeout if timeout is not None else self.resilience.connect_timeout_seconds
        try:
            await asyncio.wait_for(self._connected_event.wait(), timeout=wait_for)
        except asyncio.TimeoutError as exc:
            raise MQTTConnectionError("Timed out connecting to MQTT broker") from exc

        if self._last_connect_rc is None or self._last_connect_rc != 0:
            raise MQTTConnectionError(
                f"MQTT broker rejected connection (rc={self._last_connect_rc})"
            )

    async def disconnect(self, timeout: float = 5.0) -> None:
        """Gracefully disconnect from the broker."""

        if not self._client:
            return

        assert self._disconnect_event is not None

        self._client.disconnect()

        try:
            if self._connected:
                await asyncio.wait_for(self._disconnect_event.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            LOGGER.warning("Timed out waiting for MQTT disconnect acknowledgement")
        finally:
            self._client.loop_stop()
            self._client = None
        self._connected = False

    def publish(
        self, topic: str, payload: bytes, qos: int = 0, retain: bool = False
    ) -> None:
        if not self._client:
            raise MQTTConnectionError("MQTT client not connected")

        info = self._client.publish(topic, payload, qos=qos, retain=retain)
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            raise MQTTConnectionError(f"Publish failed with rc={info.rc}")

    def subscribe(self, topic: str, qos: int = 0) -> None:
        """Subscribe now if connected, and again after every (re)connect."""

        if topic not in self._subscriptions:
            self._subscriptions.append(topic)
        if not self._client or not self._connected:
            LOGGER.info("Subscription to %s deferred until connected", topic)
            return
        result, _ = self._client.subscribe(topic, qos=qos)
        if result != mqtt.MQTT_ERR_SUCCESS:
            raise MQTTConnectionError(f"Subscribe failed with rc={result}")
        LOGGER.info("Subscribed to %s", topic)

    def set_message_handler(self, handler: Optional[MessageHandler]) -> None:
        self._message_handler = handler

    def register_disconnect_handler(self, handler: Callable[[int], None]) -> None:
        self._disconnect_handlers.append(handler)

    def register_connect_handler(self, handler: Callable[[int], None]) -> None:
        self._connect_handlers.append(handler)

    def is_connected(self) -> bool:
        return self._connected

    # ------------------------------------------------------------------
    # Internal callbacks bridging the threaded paho callbacks into asyncio
    # ------------------------------------------------------------------
    def _on_connect(self, client, userdata, flags, reason_code, properties=None) -> None:
        rc = int(getattr(reason_code, "value", reason_code))
        self._last_connect_rc = rc
        loop = self._loop
        if rc == 0:
            LOGGER.info("Connected to MQTT broker")
            self._connected = True
            for topic in self._subscriptions:
                client.subscribe(topic)
            if loop:
                for handler in self._connect_handlers:
                    loop.call_soon_threadsafe(handler, rc)
        else:
            LOGGER.error("MQTT connection failed with rc=%s", reason_code)
            self._connected = False

        if loop and self._connected_event:
            loop.call_soon_threadsafe(self._connected_event.set)

    def _on_disconnect(
        self, client, userdata, flags, reason_code, properties=None
    ) -> None:
        rc = int(getattr(reason_code, "value", reason_code))
        LOGGER.info("Disconnected from MQTT broker (rc=%s)", reason_code)
        self._connected = False
        loop = self._loop
        if not loop:
            return
        if self._disconnect_event:
            loop.call_soon_threadsafe(self._disconnect_event.set)
        for handler in self._disconnect_handlers:
            loop.call_soon_threadsafe(handler, rc)

    def _on_message(self, client, userdata, message: mqtt.MQTTMessage) -> None:
        handler = self._message_handler
        loop = self._loop
        if not handler or not loop:
            return

        payload = bytes(message.payload).decode("utf-8", errors="replace")
        retained = bool(getattr(message, "retain", False))
        loop.call_soon_threadsafe(self._dispatch, handler, message.topic, payload, retained)

    @staticmethod
    def _dispatch(handler: MessageHandler, topic: str, payload: str, retained: bool) -> None:
        try:
            handler(topic, payload, retained)
        except Exception:  # pragma: no cover
            LOGGER.exception("MQTT message handler raised an exception")
