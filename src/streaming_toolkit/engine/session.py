"""
Module: engine.session

Purpose:
    Session lifecycle around the stream scheduler: initialization from a
    SessionConfig, the frame loop on a FrameClock, periodic time broadcasts
    and ramping, queued learner input, pause/resume and teardown.

Key Classes:
    - SessionState: idle / ready / active / paused / completed
    - EndReason: Why a session ended
    - SessionStats: Lifetime counters that survive rollback
    - SessionResults: Final results with the tiered message
    - SessionError: Lifecycle misuse
    - StreamingSession: The engine facade used by exercises

Key Functions:
    - result_message(): Encouragement message for a percentage

Dependencies:
    - random (std)

Used By:
    - exercises: Each exercise composes one session
    - simulation: Headless runs
"""

from __future__ import annotations

import logging
import random
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Deque, Dict, List, Optional, Tuple, Type

from streaming_toolkit.core.models import DeliveredWord, Fragment, ScoreState, Verdict
from .checkpoints import CheckpointManager
from .clock import FrameClock, TimerHandle
from .config import SessionConfig
from .events import (
    EngineEvent,
    EventChannel,
    FragmentJudged,
    RolledBack,
    ScoreUpdated,
    SessionCompleted,
    StateChanged,
    TimeUpdated,
)
from .judgment import JudgmentEngine
from .loading.loader import count_words, load_fragments
from .measure import PillowTextMeasurer, TextMeasurer
from .ramping import RampingController
from .scheduler import (
    ElementSnapshot,
    Interaction,
    InvalidInteraction,
    SchedulerState,
    StreamScheduler,
)
from .timing import TimingPlan, compute_timing

logger = logging.getLogger(__name__)


class SessionError(Exception):
    """Lifecycle method called in the wrong state."""
    pass


class SessionState(str, Enum):
    IDLE = "idle"
    READY = "ready"
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"

    def __str__(self) -> str:
        return self.value


class EndReason(str, Enum):
    CONTENT_COMPLETE = "content_complete"
    TIME_EXPIRED = "time_expired"
    CANCELLED = "cancelled"


RESULT_MESSAGES: Tuple[Tuple[int, str], ...] = (
    (90, "Excellent work! You're a master!"),
    (80, "Great job! Keep up the good work!"),
    (70, "Good effort! You're getting there!"),
    (60, "Not bad! Keep practicing!"),
    (0, "Keep trying! Practice makes perfect!"),
)


def result_message(percentage: float) -> str:
    """
    Return the encouragement message for a percentage.

    Example:
        >>> result_message(85)
        'Great job! Keep up the good work!'
    """
    for threshold, message in RESULT_MESSAGES:
        if percentage >= threshold:
            return message
    return RESULT_MESSAGES[-1][1]


@dataclass
class SessionStats:
    """Lifetime counters; unlike ScoreState these are never rolled back."""

    judgments: int = 0
    rollbacks: int = 0
    total_correct: int = 0
    total_wrong: int = 0
    total_missed: int = 0

    def record(self, verdict: Verdict) -> None:
        self.judgments += 1
        if verdict is Verdict.CORRECT:
            self.total_correct += 1
        elif verdict is Verdict.WRONG:
            self.total_wrong += 1
        else:
            self.total_missed += 1


@dataclass(frozen=True)
class SessionResults:
    """
    Final results of a session.

    Attributes:
        score: Final ScoreState
        stats: Lifetime counters
        words_delivered: Words in the book log
        total_words: Canonical words in the content
        completion_rate: Delivered words as a percentage of total words
        average_wpm: Delivered words per elapsed minute
        elapsed_seconds: Active time
        reason: Why the session ended
        percentage: Correct judgments as a percentage of all judgments
        message: Encouragement message for the percentage
    """

    score: ScoreState
    stats: SessionStats
    words_delivered: int
    total_words: int
    completion_rate: int
    average_wpm: int
    elapsed_seconds: float
    reason: EndReason
    percentage: int
    message: str
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "score": self.score.to_dict(),
            "stats": {
                "judgments": self.stats.judgments,
                "rollbacks": self.stats.rollbacks,
                "total_correct": self.stats.total_correct,
                "total_wrong": self.stats.total_wrong,
                "total_missed": self.stats.total_missed,
            },
            "words_delivered": self.words_delivered,
            "total_words": self.total_words,
            "completion_rate": self.completion_rate,
            "average_wpm": self.average_wpm,
            "elapsed_seconds": round(self.elapsed_seconds, 3),
            "reason": self.reason.value,
            "percentage": self.percentage,
            "message": self.message,
            **self.extra,
        }


class StreamingSession:
    """
    Frame-driven streaming session.

    Typical flow:
        >>> session = StreamingSession(ManualClock())    # doctest: +SKIP
        >>> session.initialize(config)                   # doctest: +SKIP
        >>> session.start()                              # doctest: +SKIP

    Learner input is queued by ``handle_variant_interaction`` and judged at
    the start of the next frame. Events for a frame are flushed once the
    frame's mutations are applied.
    """

    def __init__(
        self,
        clock: FrameClock,
        *,
        measurer: Optional[TextMeasurer] = None,
        events: Optional[EventChannel] = None,
    ):
        self.clock = clock
        self.measurer = measurer or PillowTextMeasurer()
        self.events = events or EventChannel()

        self._state = SessionState.IDLE
        self._config: Optional[SessionConfig] = None
        self._scheduler: Optional[StreamScheduler] = None
        self._judge: Optional[JudgmentEngine] = None
        self._ramp: Optional[RampingController] = None
        self._plan: Optional[TimingPlan] = None
        self._stats = SessionStats()
        self._inputs: Deque[Interaction] = deque()
        self._timers: List[TimerHandle] = []
        self._generation = 0
        self._last_timestamp: Optional[float] = None
        self._elapsed = 0.0
        self._last_score = ScoreState()
        self._results: Optional[SessionResults] = None
        self._result_extras: List[Callable[[], Dict[str, Any]]] = []
        self.events.subscribe(self._on_judged, FragmentJudged)
        self.events.subscribe(self._on_rolled_back, RolledBack)

    # ─────────────────────────────────────────────────────────────────────────
    # Read-only State
    # ─────────────────────────────────────────────────────────────────────────

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def stream_state(self) -> SchedulerState:
        if self._scheduler is None:
            return SchedulerState.IDLE
        return self._scheduler.state

    @property
    def score(self) -> ScoreState:
        return self._judge.score if self._judge is not None else ScoreState()

    @property
    def stats(self) -> SessionStats:
        return self._stats

    @property
    def plan(self) -> Optional[TimingPlan]:
        return self._plan

    @property
    def elapsed_seconds(self) -> float:
        return self._elapsed

    @property
    def time_remaining(self) -> float:
        if self._plan is None:
            return 0.0
        return max(0.0, self._plan.total_duration_seconds - self._elapsed)

    @property
    def fragments(self) -> Tuple[Fragment, ...]:
        return tuple(self._scheduler.fragments) if self._scheduler else ()

    @property
    def scheduler(self) -> Optional[StreamScheduler]:
        return self._scheduler

    @property
    def ramp_multiplier(self) -> float:
        return self._ramp.multiplier if self._ramp is not None else 1.0

    @property
    def results(self) -> Optional[SessionResults]:
        return self._results

    def elements(self) -> Tuple[ElementSnapshot, ...]:
        return self._scheduler.elements() if self._scheduler else ()

    def delivered(self) -> Tuple[DeliveredWord, ...]:
        return self._scheduler.delivered() if self._scheduler else ()

    def subscribe(
        self,
        listener: Callable[[EngineEvent], None],
        event_type: Optional[Type[EngineEvent]] = None,
    ) -> Callable[[], None]:
        return self.events.subscribe(listener, event_type)

    def add_result_extra(self, provider: Callable[[], Dict[str, Any]]) -> None:
        """Register a provider of exercise-specific result fields."""
        self._result_extras.append(provider)

    # ─────────────────────────────────────────────────────────────────────────
    # Lifecycle
    # ─────────────────────────────────────────────────────────────────────────

    def initialize(self, config: SessionConfig) -> None:
        """
        Load content and prepare the engine.

        Raises:
            SessionError: If the session is active or paused
            ContentUnavailable: If the content has no usable fragments
        """
        if self._state in (SessionState.ACTIVE, SessionState.PAUSED):
            raise SessionError(f"Cannot initialize while {self._state}")

        engine = config.engine
        rng = random.Random(engine.seed)
        fragments = load_fragments(config.records, config.difficulty, rng)
        total_words = count_words(fragments)
        plan = compute_timing(
            config.rate,
            config.difficulty,
            total_words,
            average_word_width=engine.average_word_width,
            base_spawn_interval=engine.spawn_interval_seconds,
            duration_override=config.duration_seconds,
            lead_in_units=engine.horizon_width + engine.entry_margin,
        )

        self._config = config
        self._plan = plan
        self._judge = JudgmentEngine(config.difficulty)
        self._ramp = RampingController(engine.max_ramp_fraction, plan.total_duration_seconds)
        self._scheduler = StreamScheduler(
            fragments,
            engine,
            self._judge,
            CheckpointManager(engine.checkpoint_depth),
            self.measurer,
            rng,
            self.events,
            recovery=config.difficulty.recovery,
        )
        self._apply_rates()
        self._stats = SessionStats()
        self._inputs.clear()
        self._elapsed = 0.0
        self._last_score = self._judge.score
        self._results = None
        self._set_state(SessionState.READY)
        self.events.flush()
        logger.info(
            f"Session ready: {len(fragments)} fragments, {total_words} words, "
            f"{plan.total_duration_seconds:.0f}s budget"
        )

    def start(self) -> None:
        """Begin streaming. Requires READY."""
        if self._state is not SessionState.READY:
            raise SessionError(f"Cannot start from {self._state}")
        self._set_state(SessionState.ACTIVE)
        self._scheduler.begin()
        self._register_timers()
        self.events.publish(TimeUpdated(self.time_remaining, self._plan.total_duration_seconds))
        self.events.flush()

    def pause(self) -> None:
        """Suspend all timers. Requires ACTIVE."""
        if self._state is not SessionState.ACTIVE:
            raise SessionError(f"Cannot pause from {self._state}")
        self._cancel_timers()
        self._set_state(SessionState.PAUSED)
        self.events.flush()

    def resume(self) -> None:
        """Re-register timers; the next frame uses the nominal delta. Requires PAUSED."""
        if self._state is not SessionState.PAUSED:
            raise SessionError(f"Cannot resume from {self._state}")
        self._set_state(SessionState.ACTIVE)
        self._register_timers()
        self.events.flush()

    def end(self, reason: EndReason = EndReason.CANCELLED) -> Optional[SessionResults]:
        """
        Stop timers, finalize results and publish SessionCompleted.

        No-op when IDLE or already COMPLETED.
        """
        if self._state in (SessionState.IDLE, SessionState.COMPLETED):
            return self._results
        self._cancel_timers()
        self._inputs.clear()
        self._results = self._build_results(reason)
        self._set_state(SessionState.COMPLETED)
        self.events.publish(SessionCompleted(self._results))
        self.events.flush()
        logger.info(f"Session ended ({reason.value}): {self._results.score.to_dict()}")
        return self._results

    # ─────────────────────────────────────────────────────────────────────────
    # Input
    # ─────────────────────────────────────────────────────────────────────────

    def handle_variant_interaction(self, interaction: Interaction) -> None:
        """Queue a learner selection for the next frame."""
        if self._state is not SessionState.ACTIVE:
            logger.debug(f"Ignoring interaction while {self._state}")
            return
        self._inputs.append(interaction)

    # ─────────────────────────────────────────────────────────────────────────
    # Timers
    # ─────────────────────────────────────────────────────────────────────────

    def _register_timers(self) -> None:
        self._generation += 1
        generation = self._generation
        engine = self._config.engine
        self._last_timestamp = None

        def guarded(callback: Callable[..., None]) -> Callable[..., None]:
            def run(*args: Any) -> None:
                if generation == self._generation and self._state is SessionState.ACTIVE:
                    callback(*args)
            return run

        self._timers = [
            self.clock.request_frames(guarded(self._on_frame)),
            self.clock.call_every(engine.time_update_period_seconds, guarded(self._on_time_tick)),
            self.clock.call_every(engine.ramp_period_seconds, guarded(self._on_ramp_tick)),
        ]

    def _cancel_timers(self) -> None:
        self._generation += 1
        for handle in self._timers:
            handle.cancel()
        self._timers = []
        self._last_timestamp = None

    def _frame_delta(self, timestamp: float) -> float:
        engine = self._config.engine
        last, self._last_timestamp = self._last_timestamp, timestamp
        if last is None:
            return engine.nominal_frame_delta
        dt = timestamp - last
        if dt <= 0:
            return engine.nominal_frame_delta
        return min(dt, engine.max_frame_delta)

    def _on_frame(self, timestamp: float) -> None:
        dt = self._frame_delta(timestamp)
        self._elapsed += dt

        while self._inputs:
            interaction = self._inputs.popleft()
            try:
                self._scheduler.apply_interaction(interaction)
            except InvalidInteraction as e:
                logger.debug(f"Ignored interaction {interaction}: {e}")

        self._scheduler.step(dt)
        self._publish_score()
        self.events.flush()

        if self._scheduler.state is SchedulerState.COMPLETE:
            self.end(EndReason.CONTENT_COMPLETE)

    def _on_time_tick(self) -> None:
        remaining = self.time_remaining
        self.events.publish(TimeUpdated(remaining, self._plan.total_duration_seconds))
        self.events.flush()
        if remaining <= 0:
            self.end(EndReason.TIME_EXPIRED)

    def _on_ramp_tick(self) -> None:
        self._ramp.update(self._elapsed)
        self._apply_rates()

    def _apply_rates(self) -> None:
        self._scheduler.velocity = self._ramp.velocity(self._plan.units_per_second)
        self._scheduler.spawn_interval = self._ramp.spawn_interval(self._plan.spawn_interval_seconds)

    # ─────────────────────────────────────────────────────────────────────────
    # Event Bookkeeping
    # ─────────────────────────────────────────────────────────────────────────

    def _on_judged(self, event: FragmentJudged) -> None:
        self._stats.record(event.outcome.verdict)

    def _on_rolled_back(self, event: RolledBack) -> None:
        self._stats.rollbacks += 1

    def _publish_score(self) -> None:
        score = self._judge.score
        if score != self._last_score:
            self._last_score = score
            self.events.publish(ScoreUpdated(score))

    def _set_state(self, new_state: SessionState) -> None:
        old = self._state
        if old is new_state:
            return
        self._state = new_state
        logger.debug(f"Session state {old} -> {new_state}")
        self.events.publish(StateChanged("session", old.value, new_state.value))

    def _build_results(self, reason: EndReason) -> SessionResults:
        score = self._judge.score
        delivered = len(self._scheduler.delivered())
        total_words = count_words(self._scheduler.fragments)
        minutes = self._elapsed / 60.0
        extra: Dict[str, Any] = {}
        for provider in self._result_extras:
            extra.update(provider())
        percentage = round(score.accuracy * 100)
        return SessionResults(
            score=score,
            stats=self._stats,
            words_delivered=delivered,
            total_words=total_words,
            completion_rate=round(delivered / total_words * 100) if total_words else 0,
            average_wpm=round(delivered / minutes) if minutes > 0 else 0,
            elapsed_seconds=self._elapsed,
            reason=reason,
            percentage=percentage,
            message=result_message(percentage),
            extra=extra,
        )
