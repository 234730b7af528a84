"""
Module: engine.events

Purpose:
    Typed events and an explicit observer list. Events raised while a
    frame is being processed are buffered and delivered by ``flush`` once
    the frame's mutations are applied, so listeners never see half-updated
    state.

Key Classes:
    - EngineEvent: Base class of all events
    - ScoreUpdated, TimeUpdated, StateChanged, FragmentJudged,
      CheckpointCreated, RolledBack, SessionCompleted: Event types
    - EventChannel: Buffered publish/subscribe list

Dependencies:
    - dataclasses (std)

Used By:
    - engine.scheduler: Judgment, checkpoint and rollback events
    - engine.session: Lifecycle, score and time events
    - engine.qt: Qt signal bridge
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Tuple, Type

from streaming_toolkit.core.models import ScoreState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EngineEvent:
    """Base class of engine events."""


@dataclass(frozen=True)
class ScoreUpdated(EngineEvent):
    score: ScoreState


@dataclass(frozen=True)
class TimeUpdated(EngineEvent):
    remaining_seconds: float
    total_seconds: float


@dataclass(frozen=True)
class StateChanged(EngineEvent):
    """A lifecycle ("session") or stream ("stream") state transition."""

    scope: str
    old: str
    new: str


@dataclass(frozen=True)
class FragmentJudged(EngineEvent):
    outcome: Any  # engine.judgment.Outcome


@dataclass(frozen=True)
class CheckpointCreated(EngineEvent):
    fragment_index: int
    content_cursor: int


@dataclass(frozen=True)
class RolledBack(EngineEvent):
    fragment_index: int
    content_cursor: int
    score: ScoreState


@dataclass(frozen=True)
class SessionCompleted(EngineEvent):
    results: Any  # engine.session.SessionResults


Listener = Callable[[EngineEvent], None]


class EventChannel:
    """
    Buffered observer list.

    Example:
        >>> channel = EventChannel()
        >>> seen = []
        >>> unsubscribe = channel.subscribe(seen.append, ScoreUpdated)
        >>> channel.publish(ScoreUpdated(ScoreState(correct=1)))
        >>> seen
        []
        >>> channel.flush()
        1
        >>> seen[0].score.correct
        1
    """

    def __init__(self) -> None:
        self._listeners: List[Tuple[Optional[Type[EngineEvent]], Listener]] = []
        self._pending: List[EngineEvent] = []

    def subscribe(
        self,
        listener: Listener,
        event_type: Optional[Type[EngineEvent]] = None,
    ) -> Callable[[], None]:
        """
        Register a listener, optionally for a single event type.

        Returns:
            Callable removing the listener
        """
        entry = (event_type, listener)
        self._listeners.append(entry)

        def unsubscribe() -> None:
            if entry in self._listeners:
                self._listeners.remove(entry)

        return unsubscribe

    def publish(self, event: EngineEvent) -> None:
        """Queue an event for the next flush."""
        self._pending.append(event)

    @property
    def pending(self) -> int:
        return len(self._pending)

    def flush(self) -> int:
        """
        Deliver queued events in publication order.

        A failing listener is logged and does not stop delivery.

        Returns:
            Number of events delivered
        """
        delivered = 0
        while self._pending:
            event = self._pending.pop(0)
            delivered += 1
            for event_type, listener in list(self._listeners):
                if event_type is not None and not isinstance(event, event_type):
                    continue
                try:
                    listener(event)
                except Exception:
                    logger.exception(f"Listener failed for {type(event).__name__}")
        return delivered

    def clear(self) -> None:
        """Drop queued events and listeners."""
        self._pending.clear()
        self._listeners.clear()
