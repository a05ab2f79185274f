"""Door/robot command relay driven by inbound broker payloads.

Every handler runs to completion on the asyncio loop, so state is never
observed half-updated. Each processing flag is paired with a :class:`TimerSlot`
and both are always changed in the same code path.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Optional

from .config import TimingConfig
from .core import (
    DoorState,
    DuplicateFilter,
    EventSink,
    Feedback,
    FeedbackSink,
    RelayState,
    RobotState,
    Scheduler,
    TimerSlot,
)

LOGGER = logging.getLogger(__name__)

MQTT_MESSAGE_EVENT = "mqtt_message"
ROBOT_ANIMATION_EVENT = "robot_animation"

ROBOT_BLOCK_COMMAND = "BLOCKED"
FOG_BLOCK_PREFIX = "FOG_BLOCK"


class CommandKind(str, Enum):
    AUTHORIZE = "authorize"
    ROBOT_BLOCK = "robot_block"
    DENY = "deny"
    STOP = "stop"
    UNKNOWN = "unknown"


_EXACT_COMMANDS = {
    "Authorized": CommandKind.AUTHORIZE,
    ROBOT_BLOCK_COMMAND: CommandKind.ROBOT_BLOCK,
    "DENIED": CommandKind.DENY,
    "UNAUTHORIZED": CommandKind.DENY,
    "ENV_OK": CommandKind.STOP,
    "STOP": CommandKind.STOP,
    "IDLE": CommandKind.STOP,
}


def classify_payload(payload: str) -> CommandKind:
    """Map an inbound payload to the branch that handles it (case-sensitive)."""

    kind = _EXACT_COMMANDS.get(payload)
    if kind is not None:
        return kind
    if payload.startswith(FOG_BLOCK_PREFIX):
        return CommandKind.ROBOT_BLOCK
    return CommandKind.UNKNOWN


class CommandRelay:
    """Owns door/robot state and reacts to inbound command payloads."""

    def __init__(
        self,
        feedback: FeedbackSink,
        events: EventSink,
        *,
        timing: Optional[TimingConfig] = None,
        scheduler: Optional[Scheduler] = None,
    ) -> None:
        self._feedback = feedback
        self._events = events
        self._timing = timing or TimingConfig()
        self._scheduler = scheduler
        self._state = RelayState()
        self._dedup = DuplicateFilter(self._timing.duplicate_window_seconds)
        self._door_timer = TimerSlot("door-processing", scheduler)
        self._processing_timer = TimerSlot("robot-processing", scheduler)
        self._command_timer = TimerSlot("command-timeout", scheduler)

    @property
    def state(self) -> RelayState:
        return self._state

    @property
    def door_status(self) -> str:
        return self._state.door.status_code

    @property
    def robot_status(self) -> str:
        return self._state.robot.status_code

    def _now(self) -> float:
        scheduler = self._scheduler or asyncio.get_running_loop()
        return scheduler.time()

    # ------------------------------------------------------------------
    # Ingress
    # ------------------------------------------------------------------
    def handle_message(self, topic: str, payload: str, retained: bool = False) -> bool:
        """Process one broker message. Returns False when it was suppressed."""

        if self._dedup.is_duplicate(topic, payload, self._now()):
            return False

        LOGGER.info("%s -> %s%s", topic, payload, " (retained)" if retained else "")

        kind = classify_payload(payload)
        if kind is CommandKind.AUTHORIZE:
            self._handle_door_authorized()
        elif kind is CommandKind.ROBOT_BLOCK:
            if self._state.door_processing:
                LOGGER.info(
                    "Robot command %s received during door processing - ignored",
                    payload,
                )
            else:
                self.handle_robot_command(ROBOT_BLOCK_COMMAND)
        elif kind is CommandKind.STOP:
            LOGGER.info("Stop command received: %s", payload)
            self.stop()
        elif kind is CommandKind.DENY:
            self._state.door = DoorState.BLOCKED
            LOGGER.info("Door access denied - door status set to BLOCKED")
        else:
            LOGGER.info("Unknown command received: %s - ignoring", payload)

        self._events.emit(MQTT_MESSAGE_EVENT, {"topic": topic, "message": payload})
        return True

    # ------------------------------------------------------------------
    # Door
    # ------------------------------------------------------------------
    def _handle_door_authorized(self) -> None:
        if self._state.robot_processing:
            LOGGER.info("Door authorization received during robot processing - ignored")
            self._send_feedback(Feedback.DOOR_AUTH_IGNORED)
            return

        self._state.door = DoorState.AUTHORIZED
        self._state.door_processing = True
        LOGGER.info("Door authorization received - door status set to AUTHORIZED")
        self._door_timer.arm(
            self._timing.door_processing_seconds, self._on_door_processing_done
        )

    def _on_door_processing_done(self) -> None:
        if not self._state.door_processing:
            return
        self._state.door_processing = False
        LOGGER.info("Door processing completed")
        self._send_feedback(Feedback.DOOR_PROCESSING_COMPLETED)

    def reset_door_status(self) -> None:
        """Acknowledge a consumed authorization by returning the door to BLOCKED."""

        LOGGER.info("Door status reset requested")
        self._state.door = DoorState.BLOCKED

    # ------------------------------------------------------------------
    # Robot
    # ------------------------------------------------------------------
    def handle_robot_command(self, command: str) -> None:
        LOGGER.info("Received robot command: %s", command)

        if self._state.robot_processing:
            LOGGER.info("Robot is already processing, ignoring %s until done", command)
            return

        self._state.last_command_at = self._now()
        self._begin_processing(command)

    def _begin_processing(self, command: str) -> None:
        LOGGER.info("Starting robot processing for command: %s", command)
        self._state.robot = RobotState.START
        self._state.robot_processing = True
        self._command_timer.cancel()
        self._processing_timer.arm(
            self._timing.robot_processing_seconds, self._on_robot_processing_done
        )

        duration_ms = self._timing.robot_processing_ms
        self._events.emit(ROBOT_ANIMATION_EVENT, {"duration": duration_ms})
        LOGGER.info("Robot animation triggered for %d ms", duration_ms)

    def _on_robot_processing_done(self) -> None:
        if not self._state.robot_processing:
            return
        self._state.robot_processing = False
        self._state.robot = RobotState.IDLE
        LOGGER.info("Robot processing completed; ready for next command")
        self._send_feedback(Feedback.ROBOT_COMPLETED)

    def reset_command_timeout(self) -> None:
        """Re-arm the watchdog that forces IDLE if processing never starts."""

        self._command_timer.cancel()
        if self._state.robot_processing:
            return
        self._command_timer.arm(
            self._timing.command_timeout_seconds, self._on_command_timeout
        )

    def _on_command_timeout(self) -> None:
        LOGGER.warning("Command timeout - setting robot to IDLE")
        self._state.robot = RobotState.IDLE
        self._state.robot_processing = False
        self._processing_timer.cancel()
        self._send_feedback(Feedback.ROBOT_TIMEOUT)

    # ------------------------------------------------------------------
    # Stop / shutdown
    # ------------------------------------------------------------------
    def stop(self) -> None:
        """Force both actors idle and cancel every pending timer."""

        self._cancel_timers()
        self._state.robot = RobotState.IDLE
        self._state.robot_processing = False
        self._state.door_processing = False
        self._send_feedback(Feedback.ROBOT_STOPPED)

    def shutdown(self) -> None:
        """Cancel pending timers without emitting feedback."""

        self._cancel_timers()
        self._state.robot_processing = False
        self._state.door_processing = False

    def _cancel_timers(self) -> None:
        self._command_timer.cancel()
        self._processing_timer.cancel()
        self._door_timer.cancel()

    def _send_feedback(self, token: Feedback) -> None:
        self._feedback.publish_feedback(token.value)
