"""
Module: exercises.bubble_pop

Purpose:
    Bubble pop: vocabulary words float across the horizon, some of them
    misspelled. The learner marks each bubble as correctly spelled (Q) or
    misspelled (R). Mistakes are scored but never roll back, and several
    bubbles may await judgment at once.

Key Classes:
    - BubbleSettings: Duration, speed dial, error rate and vocabulary
    - BubblePopExercise: The exercise

Key Functions:
    - level_for_speed(): Dial value -> difficulty level
    - build_records(): Sample vocabulary into narrative records

Key Constants:
    - BUBBLE_DIFFICULTIES: Immutable difficulty table
    - ERROR_RATE_SCALE: Per-level scaling of the spelling error rate

Used By:
    - cli: bubble command
"""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Type

from streaming_toolkit.core.models import (
    DifficultyConfig,
    DifficultyLevel,
    Exposure,
    JudgingRule,
    RecoveryPolicy,
    VariantKind,
    make_table,
)
from streaming_toolkit.engine import (
    EngineConfig,
    EngineEvent,
    FrameClock,
    Interaction,
    NominalRate,
    RateUnit,
    RawRecord,
    SessionConfig,
    SessionResults,
    StreamingSession,
    TextMeasurer,
)
from .base import toggle_pause
from .spelling import corrupt_spelling

logger = logging.getLogger(__name__)

BASE_SPAWN_SECONDS = 2.5
SPAWN_JITTER_SECONDS = 0.25

_BUBBLE_COMMON: Dict[str, Any] = {
    "timer_multiplier": 1.0,
    "active_kinds": frozenset({VariantKind.SPELLING}),
    "rule": JudgingRule.MATCHING,
    "exposure": Exposure.SINGLE,
    "recovery": RecoveryPolicy.CONTINUE,
}

BUBBLE_DIFFICULTIES = make_table({
    DifficultyLevel.EASY: DifficultyConfig(
        level=DifficultyLevel.EASY,
        speed_multiplier=1.0,
        spawn_multiplier=1.0,
        ignore_kinds=frozenset({VariantKind.CANONICAL}),
        description="Correct bubbles may float past",
        **_BUBBLE_COMMON,
    ),
    DifficultyLevel.MODERATE: DifficultyConfig(
        level=DifficultyLevel.MODERATE,
        speed_multiplier=1.15,
        spawn_multiplier=0.9,
        description="Every bubble must be marked",
        **_BUBBLE_COMMON,
    ),
    DifficultyLevel.HARD: DifficultyConfig(
        level=DifficultyLevel.HARD,
        speed_multiplier=1.3,
        spawn_multiplier=0.8,
        description="Fast bubbles, every bubble must be marked",
        **_BUBBLE_COMMON,
    ),
})

ERROR_RATE_SCALE = MappingProxyType({
    DifficultyLevel.EASY: 0.5,
    DifficultyLevel.MODERATE: 1.5,
    DifficultyLevel.HARD: 1.0,
})

DEFAULT_VOCABULARY: Tuple[str, ...] = (
    "because", "friend", "believe", "separate", "necessary", "receive",
    "library", "calendar", "government", "question", "beautiful", "journey",
)


def level_for_speed(speed: float) -> DifficultyLevel:
    """
    Map the 0-100 speed dial to a difficulty level.

    Example:
        >>> level_for_speed(20), level_for_speed(50), level_for_speed(90)
        (<DifficultyLevel.EASY: 'easy'>, <DifficultyLevel.MODERATE: 'moderate'>, <DifficultyLevel.HARD: 'hard'>)
    """
    if speed <= 33:
        return DifficultyLevel.EASY
    if speed <= 66:
        return DifficultyLevel.MODERATE
    return DifficultyLevel.HARD


@dataclass(frozen=True)
class BubbleSettings:
    """
    Bubble pop settings.

    Attributes:
        duration_seconds: Fixed session length
        speed: 0-100 dial, also selects the difficulty level
        spelling_error_rate: Percentage of bubbles that are misspelled (before scaling)
        vocabulary: Words to sample from
        engine: Engine configuration
    """

    duration_seconds: float = 60.0
    speed: float = 50.0
    spelling_error_rate: float = 30.0
    vocabulary: Tuple[str, ...] = DEFAULT_VOCABULARY
    engine: EngineConfig = field(default_factory=lambda: EngineConfig(
        release_resolved=True,
        max_pending_judgments=8,
        feedback_seconds=0.0,
        spawn_interval_seconds=BASE_SPAWN_SECONDS,
        spawn_jitter_seconds=SPAWN_JITTER_SECONDS,
    ))

    def __post_init__(self) -> None:
        if self.duration_seconds <= 0:
            raise ValueError(f"duration_seconds must be positive: {self.duration_seconds}")
        if not 0 <= self.speed <= 100:
            raise ValueError(f"speed must be within [0, 100]: {self.speed}")
        if not 0 <= self.spelling_error_rate <= 100:
            raise ValueError(
                f"spelling_error_rate must be within [0, 100]: {self.spelling_error_rate}"
            )
        object.__setattr__(self, "vocabulary", tuple(w for w in self.vocabulary if w.strip()))
        if not self.vocabulary:
            raise ValueError("vocabulary cannot be empty")


def build_records(
    vocabulary: Sequence[str],
    count: int,
    rng: random.Random,
) -> List[RawRecord]:
    """Sample ``count`` vocabulary words, each with a misspelled alternative."""
    records: List[RawRecord] = []
    for index in range(count):
        word = rng.choice(list(vocabulary)).strip()
        misspelled = corrupt_spelling(word, rng)
        variants = {VariantKind.SPELLING: misspelled} if misspelled != word else {}
        records.append(RawRecord(index=index, text=word, full_variants=variants))
    return records


class BubblePopExercise:
    """Bubble pop exercise composed over a StreamingSession."""

    KEY_KINDS: Dict[str, VariantKind] = {"q": VariantKind.CANONICAL, "r": VariantKind.SPELLING}

    def __init__(
        self,
        clock: FrameClock,
        settings: Optional[BubbleSettings] = None,
        *,
        measurer: Optional[TextMeasurer] = None,
    ):
        self.settings = settings or BubbleSettings()
        self.level = level_for_speed(self.settings.speed)
        base = BUBBLE_DIFFICULTIES[self.level]
        rate = min(1.0, self.settings.spelling_error_rate / 100.0 * ERROR_RATE_SCALE[self.level])
        self.difficulty: DifficultyConfig = replace(base, variant_rate=rate)
        self.session = StreamingSession(clock, measurer=measurer)
        self.session.add_result_extra(self._extra_results)
        self._hovered: Optional[int] = None

    def _record_count(self) -> int:
        engine = self.settings.engine
        interval = engine.spawn_interval_seconds * self.difficulty.spawn_multiplier
        # Ramping shortens the interval by at most 1 + max_ramp_fraction
        shortest = max(0.1, (interval - engine.spawn_jitter_seconds) / (1.0 + engine.max_ramp_fraction))
        # The session may run until the first time broadcast past its budget
        horizon = self.settings.duration_seconds + engine.time_update_period_seconds
        return int(math.ceil(horizon / shortest)) + 1

    def initialize(self) -> None:
        """Sample vocabulary and prepare the session."""
        rng = random.Random(self.settings.engine.seed)
        records = build_records(self.settings.vocabulary, self._record_count(), rng)
        self.session.initialize(SessionConfig(
            records=records,
            difficulty=self.difficulty,
            rate=NominalRate(self.settings.speed, RateUnit.DIAL),
            engine=self.settings.engine,
            duration_seconds=self.settings.duration_seconds,
        ))

    def start(self) -> None:
        self.session.start()

    def pause(self) -> None:
        self.session.pause()

    def resume(self) -> None:
        self.session.resume()

    def end(self) -> Optional[SessionResults]:
        return self.session.end()

    def subscribe(
        self,
        listener: Callable[[EngineEvent], None],
        event_type: Optional[Type[EngineEvent]] = None,
    ) -> Callable[[], None]:
        return self.session.subscribe(listener, event_type)

    def hover(self, element_id: Optional[int]) -> None:
        """Set the bubble under the pointer (None clears it)."""
        self._hovered = element_id

    def mark(self, kind: VariantKind, element_id: Optional[int] = None) -> bool:
        """
        Mark a bubble as correctly spelled or misspelled.

        Without an id the hovered bubble is marked; with nothing hovered the
        key is ignored. The hover is cleared once a mark is queued.

        Returns:
            True if a mark was queued
        """
        target = element_id if element_id is not None else self._hovered
        if target is None:
            logger.debug(f"Ignoring {kind} mark with no bubble hovered")
            return False
        self._hovered = None
        self.session.handle_variant_interaction(Interaction(kind=kind, element_id=target))
        return True

    def handle_key(self, key: str) -> bool:
        key = key.lower()
        if key == "escape":
            return toggle_pause(self.session)
        if key in self.KEY_KINDS:
            return self.mark(self.KEY_KINDS[key])
        return False

    def _extra_results(self) -> Dict[str, Any]:
        score = self.session.score
        return {
            "exercise": "bubble_pop",
            "difficulty": self.level.value,
            "right": score.correct,
            "wrong": score.wrong,
            "missed": score.missed,
        }
