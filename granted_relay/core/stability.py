"""Consumer-side debounce for polled status codes."""

from __future__ import annotations

import logging
from typing import Callable, Optional

from .timers import Scheduler, TimerSlot

LOGGER = logging.getLogger(__name__)


class CommandStabilityWindow:
    """Promotes a polled command once it has stayed unchanged for ``dwell`` seconds.

    A changed value restarts the window and re-arms the promotion timer. A
    repeated value that has already outlived the dwell is promoted at once,
    which covers polls that race the timer. Each candidate is promoted at
    most once.
    """

    def __init__(
        self,
        dwell: float,
        on_stable: Callable[[str], None],
        *,
        scheduler: Optional[Scheduler] = None,
    ) -> None:
        self._dwell = dwell
        self._on_stable = on_stable
        self._scheduler = scheduler
        self._timer = TimerSlot("command-stability", scheduler)
        self._candidate: Optional[str] = None
        self._first_seen: float = 0.0
        self._pending: Optional[str] = None
        self._accepted: Optional[str] = None

    @property
    def candidate(self) -> Optional[str]:
        return self._candidate

    @property
    def pending(self) -> Optional[str]:
        return self._pending

    @property
    def accepted(self) -> Optional[str]:
        return self._accepted

    def observe(self, command: str, now: float) -> None:
        if command != self._candidate:
            LOGGER.debug("Command changed from %s to %s", self._candidate, command)
            self._candidate = command
            self._first_seen = now
            self._pending = command
            self._timer.arm(self._dwell, self._promote)
            return

        if self._pending is not None and now - self._first_seen >= self._dwell:
            self._timer.cancel()
            self._promote()

    def reset(self) -> None:
        self._timer.cancel()
        self._candidate = None
        self._pending = None
        self._accepted = None

    def _promote(self) -> None:
        command = self._pending
        if command is None:
            return
        self._pending = None
        self._accepted = command
        LOGGER.info("Processing stable command: %s", command)
        self._on_stable(command)
