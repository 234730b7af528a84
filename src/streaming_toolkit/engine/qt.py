"""
Module: engine.qt

Purpose:
    Qt integration for the streaming engine. QtFrameClock drives the
    simulation from the Qt event loop; SessionSignals re-emits engine events
    as Qt signals so widgets can connect to them.

Key Classes:
    - QtFrameClock: FrameClock backed by QTimer / QElapsedTimer
    - SessionSignals: Qt signal bridge for an EventChannel

Dependencies:
    - PySide6.QtCore: QObject, QTimer, QElapsedTimer, Signal

Used By:
    - Rendering layers embedding a StreamingSession in a Qt window
"""

from __future__ import annotations

import logging
from typing import Callable, List, Optional

from PySide6.QtCore import QElapsedTimer, QObject, Qt, QTimer, Signal

from .events import (
    EngineEvent,
    EventChannel,
    ScoreUpdated,
    SessionCompleted,
    StateChanged,
    TimeUpdated,
)

logger = logging.getLogger(__name__)

FRAME_INTERVAL_MS = 16


class _QtHandle:
    def __init__(self, timer: QTimer):
        self._timer: Optional[QTimer] = timer

    def cancel(self) -> None:
        if self._timer is not None:
            self._timer.stop()
            self._timer.deleteLater()
            self._timer = None

    @property
    def active(self) -> bool:
        return self._timer is not None and self._timer.isActive()


class QtFrameClock(QObject):
    """
    FrameClock running on the Qt event loop.

    Frames fire roughly every 16 ms with a monotonic timestamp in seconds
    measured from clock construction.
    """

    def __init__(self, parent: Optional[QObject] = None, frame_interval_ms: int = FRAME_INTERVAL_MS):
        super().__init__(parent)
        self._elapsed = QElapsedTimer()
        self._elapsed.start()
        self._frame_interval_ms = frame_interval_ms

    def now(self) -> float:
        return self._elapsed.nsecsElapsed() / 1e9

    def _start_timer(self, interval_ms: int, slot: Callable[[], None]) -> _QtHandle:
        timer = QTimer(self)
        timer.setTimerType(Qt.TimerType.PreciseTimer)
        timer.setInterval(interval_ms)
        timer.timeout.connect(slot)
        timer.start()
        return _QtHandle(timer)

    def request_frames(self, callback: Callable[[float], None]) -> _QtHandle:
        return self._start_timer(self._frame_interval_ms, lambda: callback(self.now()))

    def call_every(self, seconds: float, callback: Callable[[], None]) -> _QtHandle:
        if seconds <= 0:
            raise ValueError(f"interval must be positive: {seconds}")
        return self._start_timer(max(1, int(round(seconds * 1000))), callback)


class SessionSignals(QObject):
    """
    Re-emit engine events as Qt signals.

    Signals:
        scoreChanged(object): ScoreState after a change
        timeChanged(float, float): Remaining and total seconds
        stateChanged(str, str, str): Scope, old and new state
        completed(object): SessionResults
    """

    scoreChanged = Signal(object)
    timeChanged = Signal(float, float)
    stateChanged = Signal(str, str, str)
    completed = Signal(object)

    def __init__(self, channel: EventChannel, parent: Optional[QObject] = None):
        super().__init__(parent)
        self._unsubscribe: List[Callable[[], None]] = [channel.subscribe(self._dispatch)]

    def _dispatch(self, event: EngineEvent) -> None:
        if isinstance(event, ScoreUpdated):
            self.scoreChanged.emit(event.score)
        elif isinstance(event, TimeUpdated):
            self.timeChanged.emit(event.remaining_seconds, event.total_seconds)
        elif isinstance(event, StateChanged):
            self.stateChanged.emit(event.scope, event.old, event.new)
        elif isinstance(event, SessionCompleted):
            self.completed.emit(event.results)

    def disconnect_channel(self) -> None:
        """Stop receiving engine events."""
        for unsubscribe in self._unsubscribe:
            unsubscribe()
        self._unsubscribe.clear()
