"""Protocol definitions for the relay's outbound collaborators."""

from __future__ import annotations

from typing import Any, Mapping, Protocol


class FeedbackSink(Protocol):
    """Receives status tokens destined for the feedback topic."""

    def publish_feedback(self, token: str) -> None:
        """Deliver ``token`` best-effort; must not raise on transport failure."""
        ...


class EventSink(Protocol):
    """Fans named events out to presentation clients."""

    def emit(self, event: str, data: Mapping[str, Any]) -> None:
        """Queue ``data`` for every connected client without blocking."""
        ...
