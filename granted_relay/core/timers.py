"""Single-occupancy timer slots built on the asyncio loop clock."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional, Protocol

LOGGER = logging.getLogger(__name__)


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """The subset of ``asyncio.AbstractEventLoop`` the relay depends on."""

    def time(self) -> float: ...

    def call_later(
        self, delay: float, callback: Callable[[], None]
    ) -> TimerHandle: ...


class TimerSlot:
    """Holds at most one pending ``call_later`` handle.

    ``arm`` always cancels the previous handle first. The handle is released
    before the callback runs, so ``active`` is already false inside it.
    """

    def __init__(self, name: str, scheduler: Optional[Scheduler] = None) -> None:
        self.name = name
        self._scheduler = scheduler
        self._handle: Optional[TimerHandle] = None

    @property
    def active(self) -> bool:
        return self._handle is not None

    def arm(self, delay: float, callback: Callable[[], None]) -> None:
        self.cancel()
        scheduler = self._scheduler or asyncio.get_running_loop()

        def _fire() -> None:
            self._handle = None
            LOGGER.debug("Timer %s fired", self.name)
            callback()

        self._handle = scheduler.call_later(max(0.0, delay), _fire)

    def cancel(self) -> bool:
        handle = self._handle
        if handle is None:
            return False
        self._handle = None
        handle.cancel()
        LOGGER.debug("Timer %s cancelled", self.name)
        return True
