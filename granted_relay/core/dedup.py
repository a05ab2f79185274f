"""Per-topic suppression of repeated identical payloads."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Optional

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class TopicMessageRecord:
    """Last payload seen on a topic and when it arrived (loop clock seconds)."""

    topic: str
    last_payload: str
    last_timestamp: float


class DuplicateFilter:
    """Debounces identical payloads per topic within ``window`` seconds.

    Topics never suppress each other. The stored record is refreshed on every
    message, suppressed or not, so a burst of identical payloads spaced closer
    than the window is treated as one message.

    Usage:
        dedup = DuplicateFilter(window=2.0)
        if dedup.is_duplicate(topic, payload, loop.time()):
            return
    """

    def __init__(self, window: float = 2.0) -> None:
        self._window = window
        self._records: Dict[str, TopicMessageRecord] = {}

    @property
    def window(self) -> float:
        return self._window

    def is_duplicate(self, topic: str, payload: str, now: float) -> bool:
        record = self._records.get(topic)
        if record is None:
            self._records[topic] = TopicMessageRecord(
                topic=topic, last_payload=payload, last_timestamp=now
            )
            return False

        duplicate = (
            record.last_payload == payload
            and (now - record.last_timestamp) < self._window
        )
        record.last_payload = payload
        record.last_timestamp = now
        if duplicate:
            LOGGER.debug("Suppressed duplicate payload on %s: %s", topic, payload)
        return duplicate

    def get_record(self, topic: str) -> Optional[TopicMessageRecord]:
        return self._records.get(topic)

    @property
    def topic_count(self) -> int:
        return len(self._records)
