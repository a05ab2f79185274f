from __future__ import annotations

from typing import Any, Callable, List, Mapping, Tuple

import pytest

from granted_relay.config import TimingConfig
from granted_relay.relay import CommandRelay


class _ManualHandle:
    def __init__(self, when: float, callback: Callable[[], None]) -> None:
        self.when = when
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualClock:
    """Deterministic stand-in for the event loop's ``time``/``call_later``."""

    def __init__(self) -> None:
        self.now = 0.0
        self._handles: List[_ManualHandle] = []

    def time(self) -> float:
        return self.now

    def call_later(self, delay: float, callback: Callable[[], None]) -> _ManualHandle:
        handle = _ManualHandle(self.now + delay, callback)
        self._handles.append(handle)
        return handle

    @property
    def pending(self) -> int:
        return sum(1 for h in self._handles if not h.cancelled and not h.fired)

    def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while True:
            due = [
                h
                for h in self._handles
                if not h.cancelled and not h.fired and h.when <= target
            ]
            if not due:
                break
            handle = min(due, key=lambda h: h.when)
            self.now = handle.when
            handle.fired = True
            handle.callback()
        self.now = target


class RecordingFeedback:
    def __init__(self) -> None:
        self.tokens: List[str] = []

    def publish_feedback(self, token: str) -> None:
        self.tokens.append(token)


class RecordingEvents:
    def __init__(self) -> None:
        self.events: List[Tuple[str, dict[str, Any]]] = []

    def emit(self, event: str, data: Mapping[str, Any]) -> None:
        self.events.append((event, dict(data)))

    def named(self, event: str) -> List[dict[str, Any]]:
        return [data for name, data in self.events if name == event]


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def feedback() -> RecordingFeedback:
    return RecordingFeedback()


@pytest.fixture
def events() -> RecordingEvents:
    return RecordingEvents()


@pytest.fixture
def relay(clock, feedback, events) -> CommandRelay:
    return CommandRelay(feedback, events, timing=TimingConfig(), scheduler=clock)
