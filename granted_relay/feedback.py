"""Best-effort publisher for relay feedback tokens."""

from __future__ import annotations

import logging

from .adapters import MQTTClient, MQTTConnectionError

LOGGER = logging.getLogger(__name__)


class MQTTFeedbackPublisher:
    """Publishes feedback tokens on a single topic, QoS 0, never retained.

    Failures are logged and dropped; nothing is retried.
    """

    def __init__(self, client: MQTTClient, topic: str) -> None:
        self._client = client
        self._topic = topic

    @property
    def topic(self) -> str:
        return self._topic

    def publish_feedback(self, token: str) -> None:
        try:
            self._client.publish(self._topic, token.encode("utf-8"), qos=0, retain=False)
        except MQTTConnectionError as exc:
            LOGGER.error("Error publishing feedback %s: %s", token, exc)
            return
        LOGGER.info("Feedback published -> %s: %s", self._topic, token)
