"""
Module: exercises.speed_reading

Purpose:
    Speed reading: judged fragments show the canonical text and one
    variant in top/bottom slots. A checkpoint is taken before every judged
    fragment, so a mistake only replays the current stretch.

Key Classes:
    - SpeedSettings: Rate, difficulty and engine settings
    - SpeedReadingExercise: The exercise

Key Constants:
    - SPEED_DIFFICULTIES: Immutable difficulty table

Used By:
    - cli: simulate --exercise speed
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Type

from streaming_toolkit.core.models import (
    DifficultyConfig,
    DifficultyLevel,
    Exposure,
    VariantKind,
    lookup,
    make_table,
)
from streaming_toolkit.engine import (
    EngineConfig,
    EngineEvent,
    FrameClock,
    Interaction,
    NominalRate,
    SessionConfig,
    SessionResults,
    StreamingSession,
    TextMeasurer,
)
from .base import ensure_records, toggle_pause

logger = logging.getLogger(__name__)

SPEED_DIFFICULTIES = make_table({
    DifficultyLevel.EASY: DifficultyConfig(
        level=DifficultyLevel.EASY,
        speed_multiplier=1.0,
        active_kinds=frozenset({VariantKind.VOCAB}),
        exposure=Exposure.PAIR,
        description="Vocabulary choices",
    ),
    DifficultyLevel.MODERATE: DifficultyConfig(
        level=DifficultyLevel.MODERATE,
        speed_multiplier=1.2,
        active_kinds=frozenset({VariantKind.SPELLING}),
        exposure=Exposure.PAIR,
        description="Spelling choices, faster",
    ),
    DifficultyLevel.HARD: DifficultyConfig(
        level=DifficultyLevel.HARD,
        speed_multiplier=1.44,
        active_kinds=frozenset({VariantKind.VOCAB, VariantKind.SPELLING}),
        exposure=Exposure.PAIR,
        description="Mixed choices, fastest",
    ),
})


def default_speed_engine() -> EngineConfig:
    return EngineConfig(checkpoint_before_judged=True, feedback_seconds=0.5)


@dataclass(frozen=True)
class SpeedSettings:
    words_per_minute: float = 100.0
    difficulty: DifficultyLevel = DifficultyLevel.EASY
    engine: EngineConfig = field(default_factory=default_speed_engine)


class SpeedReadingExercise:
    """Speed reading exercise composed over a StreamingSession."""

    KEY_SLOTS: Dict[str, int] = {"arrowup": 0, "arrowdown": 1}

    def __init__(
        self,
        clock: FrameClock,
        settings: Optional[SpeedSettings] = None,
        *,
        measurer: Optional[TextMeasurer] = None,
    ):
        self.settings = settings or SpeedSettings()
        self.difficulty: DifficultyConfig = lookup(SPEED_DIFFICULTIES, self.settings.difficulty)
        self.session = StreamingSession(clock, measurer=measurer)
        self.session.add_result_extra(self._extra_results)

    def initialize(self, narrative: Any) -> None:
        self.session.initialize(SessionConfig(
            records=ensure_records(narrative),
            difficulty=self.difficulty,
            rate=NominalRate(self.settings.words_per_minute),
            engine=self.settings.engine,
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

    def choose(self, slot: int) -> None:
        """Choose the top (0) or bottom (1) option."""
        self.session.handle_variant_interaction(Interaction(slot=slot))

    def handle_key(self, key: str) -> bool:
        key = key.lower()
        if key == "escape":
            return toggle_pause(self.session)
        if key in self.KEY_SLOTS:
            self.choose(self.KEY_SLOTS[key])
            return True
        return False

    def _extra_results(self) -> Dict[str, Any]:
        plan = self.session.plan
        return {
            "exercise": "speed_reading",
            "difficulty": self.difficulty.level.value,
            "optimal_seconds": plan.optimal_seconds if plan else 0.0,
        }
