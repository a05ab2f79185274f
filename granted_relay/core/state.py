"""Door and robot state shared by the relay state machines."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class DoorState(str, Enum):
    BLOCKED = "BLOCKED"
    AUTHORIZED = "AUTHORIZED"

    @property
    def status_code(self) -> str:
        return "DOOR_AUTHORIZED" if self is DoorState.AUTHORIZED else "DOOR_BLOCKED"


class RobotState(str, Enum):
    IDLE = "IDLE"
    START = "START"

    @property
    def status_code(self) -> str:
        return "ROBOT_START" if self is RobotState.START else "ROBOT_IDLE"


class Feedback(str, Enum):
    """Tokens published on the feedback topic."""

    DOOR_AUTH_IGNORED = "DOOR_AUTH_IGNORED"
    DOOR_PROCESSING_COMPLETED = "DOOR_PROCESSING_COMPLETED"
    ROBOT_COMPLETED = "ROBOT_COMPLETED"
    ROBOT_TIMEOUT = "ROBOT_TIMEOUT"
    ROBOT_STOPPED = "ROBOT_STOPPED"


@dataclass(slots=True)
class RelayState:
    door: DoorState = DoorState.BLOCKED
    robot: RobotState = RobotState.IDLE
    door_processing: bool = False
    robot_processing: bool = False
    last_command_at: Optional[float] = None

    def snapshot(self) -> dict[str, object]:
        return {
            "door": self.door.value,
            "robot": self.robot.value,
            "doorProcessing": self.door_processing,
            "robotProcessing": self.robot_processing,
        }
