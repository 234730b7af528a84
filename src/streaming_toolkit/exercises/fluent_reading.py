"""
Module: exercises.fluent_reading

Purpose:
    Fluent reading: a narrative streams word by word; fragments with
    variants show every option stacked in three slots and the learner picks
    the canonical one. Mistakes roll back to the last authored checkpoint.

Key Classes:
    - FluentSettings: Rate, difficulty and engine settings
    - FluentReadingExercise: The exercise

Key Constants:
    - FLUENT_DIFFICULTIES: Immutable difficulty table

Used By:
    - cli: simulate --exercise fluent
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

FLUENT_DIFFICULTIES = make_table({
    DifficultyLevel.EASY: DifficultyConfig(
        level=DifficultyLevel.EASY,
        speed_multiplier=0.67,
        timer_multiplier=2.0,
        active_kinds=frozenset({VariantKind.VOCAB}),
        exposure=Exposure.ALL,
        description="Slower pace, vocabulary errors only",
    ),
    DifficultyLevel.MODERATE: DifficultyConfig(
        level=DifficultyLevel.MODERATE,
        speed_multiplier=0.85,
        timer_multiplier=1.5,
        active_kinds=frozenset({VariantKind.SPELLING}),
        exposure=Exposure.ALL,
        description="Medium pace, spelling errors only",
    ),
    DifficultyLevel.HARD: DifficultyConfig(
        level=DifficultyLevel.HARD,
        speed_multiplier=1.0,
        timer_multiplier=1.3,
        active_kinds=frozenset({VariantKind.VOCAB, VariantKind.SPELLING}),
        exposure=Exposure.ALL,
        description="Full pace, all error types",
    ),
})


@dataclass(frozen=True)
class FluentSettings:
    """
    Fluent reading settings.

    Attributes:
        words_per_minute: Nominal reading rate
        difficulty: Difficulty level
        engine: Engine configuration
    """

    words_per_minute: float = 150.0
    difficulty: DifficultyLevel = DifficultyLevel.MODERATE
    engine: EngineConfig = field(default_factory=EngineConfig)


class FluentReadingExercise:
    """Fluent reading exercise composed over a StreamingSession."""

    KEY_SLOTS: Dict[str, int] = {"1": 0, "2": 1, "3": 2}

    def __init__(
        self,
        clock: FrameClock,
        settings: Optional[FluentSettings] = None,
        *,
        measurer: Optional[TextMeasurer] = None,
    ):
        self.settings = settings or FluentSettings()
        self.difficulty: DifficultyConfig = lookup(FLUENT_DIFFICULTIES, self.settings.difficulty)
        self.session = StreamingSession(clock, measurer=measurer)
        self.session.add_result_extra(self._extra_results)

    def initialize(self, narrative: Any) -> None:
        """Load a narrative (raw data or parsed records)."""
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

    def select_slot(self, slot: int, element_id: Optional[int] = None) -> None:
        """Select the option shown in a slot (0 = top)."""
        self.session.handle_variant_interaction(Interaction(slot=slot, element_id=element_id))

    def handle_key(self, key: str) -> bool:
        """Map ``1``-``3`` to slots and ``escape`` to pause; returns True if handled."""
        key = key.lower()
        if key == "escape":
            return toggle_pause(self.session)
        if key in self.KEY_SLOTS:
            self.select_slot(self.KEY_SLOTS[key])
            return True
        return False

    def _extra_results(self) -> Dict[str, Any]:
        return {
            "exercise": "fluent_reading",
            "difficulty": self.difficulty.level.value,
        }
