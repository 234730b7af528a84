"""
Module: engine.clock

Purpose:
    Clock primitives driving the simulation. The engine only sees the
    FrameClock protocol: a frame callback receiving a timestamp in seconds,
    and periodic interval callbacks. Both run on the same executor.

Key Classes:
    - FrameClock: Protocol implemented by every clock
    - TimerHandle: Cancellable registration
    - ManualClock: Deterministic clock advanced explicitly

Dependencies:
    - heapq (std)

Used By:
    - engine.session: Frame loop and interval timers
    - simulation: Headless runs
    - engine.qt: Qt implementation of the same protocol
"""

from __future__ import annotations

import heapq
import itertools
import logging
from typing import Callable, Dict, List, Protocol, Tuple

logger = logging.getLogger(__name__)

FrameCallback = Callable[[float], None]
IntervalCallback = Callable[[], None]


class TimerHandle(Protocol):
    def cancel(self) -> None:
        ...


class FrameClock(Protocol):
    def now(self) -> float:
        ...

    def request_frames(self, callback: FrameCallback) -> TimerHandle:
        ...

    def call_every(self, seconds: float, callback: IntervalCallback) -> TimerHandle:
        ...


class _ManualHandle:
    def __init__(self, clock: "ManualClock", key: int):
        self._clock = clock
        self._key = key

    def cancel(self) -> None:
        self._clock._cancel(self._key)


class ManualClock:
    """
    Deterministic clock for tests and headless simulation.

    ``advance`` steps time in frame-sized increments; frame callbacks fire
    at each frame boundary and interval callbacks fire in timestamp order
    between frames.

    Example:
        >>> clock = ManualClock()
        >>> stamps = []
        >>> handle = clock.request_frames(stamps.append)
        >>> clock.advance(0.05, frame_interval=0.025)
        >>> stamps
        [0.025, 0.05]
    """

    def __init__(self, start: float = 0.0):
        self._now = float(start)
        self._ids = itertools.count()
        self._frames: Dict[int, FrameCallback] = {}
        self._intervals: Dict[int, Tuple[float, IntervalCallback]] = {}
        self._due: List[Tuple[float, int]] = []

    def now(self) -> float:
        return self._now

    def request_frames(self, callback: FrameCallback) -> TimerHandle:
        key = next(self._ids)
        self._frames[key] = callback
        return _ManualHandle(self, key)

    def call_every(self, seconds: float, callback: IntervalCallback) -> TimerHandle:
        if seconds <= 0:
            raise ValueError(f"interval must be positive: {seconds}")
        key = next(self._ids)
        self._intervals[key] = (seconds, callback)
        heapq.heappush(self._due, (self._now + seconds, key))
        return _ManualHandle(self, key)

    def _cancel(self, key: int) -> None:
        self._frames.pop(key, None)
        self._intervals.pop(key, None)

    @property
    def active_timers(self) -> int:
        """Number of live registrations."""
        return len(self._frames) + len(self._intervals)

    def advance(self, seconds: float, frame_interval: float = 1.0 / 60.0) -> None:
        """
        Move time forward, firing due callbacks.

        Args:
            seconds: Total time to advance
            frame_interval: Spacing of frame callbacks
        """
        if seconds < 0:
            raise ValueError(f"cannot advance by a negative amount: {seconds}")
        if frame_interval <= 0:
            raise ValueError(f"frame_interval must be positive: {frame_interval}")
        end = self._now + seconds
        while self._now < end - 1e-12:
            frame_at = min(self._now + frame_interval, end)
            self._fire_intervals(frame_at)
            self._now = frame_at
            for key, callback in list(self._frames.items()):
                if key in self._frames:
                    callback(self._now)

    def _fire_intervals(self, until: float) -> None:
        while self._due and self._due[0][0] <= until + 1e-12:
            due_at, key = heapq.heappop(self._due)
            entry = self._intervals.get(key)
            if entry is None:
                continue
            period, callback = entry
            self._now = max(self._now, due_at)
            heapq.heappush(self._due, (due_at + period, key))
            callback()
