"""Headless presentation client that polls the relay's status endpoints."""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional

import aiohttp

from . import constants
from .config import MonitorConfig
from .core import (
    CommandStabilityWindow,
    DoorState,
    RobotState,
    Scheduler,
    TimerSlot,
)

LOGGER = logging.getLogger(__name__)

ROBOT_START_CODE = RobotState.START.status_code
ROBOT_IDLE_CODE = RobotState.IDLE.status_code
DOOR_AUTHORIZED_CODE = DoorState.AUTHORIZED.status_code


class StatusMonitor:
    """Polls door/robot status and reacts to debounced robot commands.

    Robot codes pass through a :class:`CommandStabilityWindow` before they are
    acted on. A stable ``ROBOT_START`` starts one automation cycle lasting
    ``cycle_seconds``; further starts are refused until that cycle ends. A
    stable ``ROBOT_IDLE`` only flags the running cycle to stop once it
    completes. When ``reset_door_after_seconds`` is positive, an observed
    authorization is acknowledged with ``POST /reset-door-status`` once that
    delay has passed.
    """

    def __init__(
        self,
        config: MonitorConfig,
        *,
        dwell: float = constants.STABILITY_DWELL_SECONDS,
        cycle_seconds: float = constants.ROBOT_PROCESSING_SECONDS,
        request_timeout: float = 5.0,
        scheduler: Optional[Scheduler] = None,
    ) -> None:
        self._config = config
        self._timeout = aiohttp.ClientTimeout(total=request_timeout)
        self._window = CommandStabilityWindow(
            dwell, self._on_stable_command, scheduler=scheduler
        )
        self._scheduler = scheduler
        self._cycle_seconds = cycle_seconds
        self._cycle_timer = TimerSlot("automation-cycle", scheduler)
        self._session: Optional[aiohttp.ClientSession] = None
        self._authorized_at: Optional[float] = None
        self.automation_running = False
        self.stop_after_cycle = False
        self.accepted_commands: List[str] = []
        self.completed_cycles = 0

    @property
    def window(self) -> CommandStabilityWindow:
        return self._window

    async def __aenter__(self) -> "StatusMonitor":
        self._session = aiohttp.ClientSession(timeout=self._timeout)
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        self._window.reset()
        self._cycle_timer.cancel()
        if self._session is not None:
            await self._session.close()
            self._session = None

    async def run(self) -> None:
        LOGGER.info("Polling relay status at %s", self._config.base_url)
        async with self:
            while True:
                await self.poll_once()
                await asyncio.sleep(self._config.poll_interval_seconds)

    async def poll_once(self) -> None:
        now = self._now()

        door = await self._fetch_code("/door-status")
        if door == DOOR_AUTHORIZED_CODE:
            if self._authorized_at is None:
                LOGGER.info("Door authorization received")
                self._authorized_at = now
        elif door is not None:
            self._authorized_at = None

        reset_after = self._config.reset_door_after_seconds
        if (
            reset_after > 0
            and self._authorized_at is not None
            and now - self._authorized_at >= reset_after
        ):
            if await self.reset_door():
                self._authorized_at = None

        robot = await self._fetch_code("/robot-status")
        if robot is not None:
            self._window.observe(robot, now)

    async def reset_door(self) -> bool:
        session = self._require_session()
        url = f"{self._config.base_url}/reset-door-status"
        try:
            async with session.post(url, json={}) as response:
                if response.status != 200:
                    LOGGER.error("Failed to reset door status: HTTP %s", response.status)
                    return False
                payload = await response.json()
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as exc:
            LOGGER.error("Error resetting door status: %s", exc)
            return False

        LOGGER.info("Door status reset successful: %s", payload.get("message"))
        return bool(payload.get("success"))

    async def _fetch_code(self, path: str) -> Optional[str]:
        session = self._require_session()
        url = f"{self._config.base_url}{path}"
        try:
            async with session.get(url) as response:
                if response.status != 200:
                    LOGGER.error("Failed to fetch %s: HTTP %s", path, response.status)
                    return None
                payload = await response.json()
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as exc:
            LOGGER.error("Error fetching %s: %s", path, exc)
            return None

        code = payload.get("stringMessage") if isinstance(payload, dict) else None
        return code if isinstance(code, str) else None

    def _require_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            raise RuntimeError("StatusMonitor used outside its async context")
        return self._session

    def _now(self) -> float:
        scheduler = self._scheduler or asyncio.get_running_loop()
        return scheduler.time()

    def _on_stable_command(self, command: str) -> None:
        if command == ROBOT_START_CODE:
            if self.automation_running:
                LOGGER.warning("Automation already running - ignoring %s", command)
                return
            self.automation_running = True
            self.stop_after_cycle = False
            self.accepted_commands.append(command)
            self._cycle_timer.arm(self._cycle_seconds, self._on_cycle_complete)
            LOGGER.info("Robot automation started")
        elif command == ROBOT_IDLE_CODE:
            self.accepted_commands.append(command)
            if self.automation_running:
                LOGGER.info("Robot automation stopping after current cycle")
                self.stop_after_cycle = True
        else:
            LOGGER.info("Unhandled stable command: %s", command)

    def _on_cycle_complete(self) -> None:
        self.completed_cycles += 1
        self.automation_running = False
        if self.stop_after_cycle:
            LOGGER.info("Robot automation stopped after completing its cycle")
        else:
            LOGGER.info("Robot automation cycle completed")
        self.stop_after_cycle = False
