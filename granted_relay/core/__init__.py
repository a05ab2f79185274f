"""Core primitives for granted-relay."""

from .dedup import DuplicateFilter, TopicMessageRecord
from .protocols import EventSink, FeedbackSink
from .stability import CommandStabilityWindow
from .state import DoorState, Feedback, RelayState, RobotState
from .timers import Scheduler, TimerSlot

__all__ = [
    "CommandStabilityWindow",
    "DoorState",
    "DuplicateFilter",
    "EventSink",
    "Feedback",
    "FeedbackSink",
    "RelayState",
    "RobotState",
    "Scheduler",
    "TimerSlot",
    "TopicMessageRecord",
]
