"""
Module: exercises.base

Purpose:
    Capability set shared by every streaming exercise. Exercises do not
    inherit engine behavior; each composes a StreamingSession and exposes
    the same lifecycle, input and event surface.

Key Classes:
    - Exercise: Protocol implemented by each exercise

Key Functions:
    - toggle_pause(): Pause an active session or resume a paused one
    - ensure_records(): Accept parsed records or raw narrative data

Used By:
    - exercises.fluent_reading
    - exercises.speed_reading
    - exercises.bubble_pop
    - simulation: Scripted learner
"""

from __future__ import annotations

from typing import Any, Callable, List, Optional, Protocol, Sequence, Type

from streaming_toolkit.engine import (
    EngineEvent,
    RawRecord,
    SessionResults,
    SessionState,
    StreamingSession,
    parse_narrative,
)


class Exercise(Protocol):
    session: StreamingSession

    def start(self) -> None:
        ...

    def pause(self) -> None:
        ...

    def resume(self) -> None:
        ...

    def end(self) -> Optional[SessionResults]:
        ...

    def handle_key(self, key: str) -> bool:
        ...

    def subscribe(
        self,
        listener: Callable[[EngineEvent], None],
        event_type: Optional[Type[EngineEvent]] = None,
    ) -> Callable[[], None]:
        ...


def toggle_pause(session: StreamingSession) -> bool:
    """Pause or resume; returns False when the session is neither active nor paused."""
    if session.state is SessionState.ACTIVE:
        session.pause()
        return True
    if session.state is SessionState.PAUSED:
        session.resume()
        return True
    return False


def ensure_records(narrative: Any) -> List[RawRecord]:
    """Return parsed records for raw narrative data or an existing record list."""
    if isinstance(narrative, Sequence) and all(isinstance(r, RawRecord) for r in narrative):
        return list(narrative)
    return parse_narrative(narrative)
