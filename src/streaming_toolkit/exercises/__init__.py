"""
Streaming exercises built on the shared engine.

Exercises:
    - FluentReadingExercise: Pick the canonical option among stacked variants
    - SpeedReadingExercise: Choose between canonical and one variant
    - BubblePopExercise: Mark floating words as correctly or incorrectly spelled
"""

from .base import Exercise, ensure_records, toggle_pause
from .bubble_pop import (
    BUBBLE_DIFFICULTIES,
    BubblePopExercise,
    BubbleSettings,
    build_records,
    level_for_speed,
)
from .fluent_reading import FLUENT_DIFFICULTIES, FluentReadingExercise, FluentSettings
from .speed_reading import SPEED_DIFFICULTIES, SpeedReadingExercise, SpeedSettings
from .spelling import corrupt_spelling

__all__ = [
    "BUBBLE_DIFFICULTIES",
    "BubblePopExercise",
    "BubbleSettings",
    "Exercise",
    "FLUENT_DIFFICULTIES",
    "FluentReadingExercise",
    "FluentSettings",
    "SPEED_DIFFICULTIES",
    "SpeedReadingExercise",
    "SpeedSettings",
    "build_records",
    "corrupt_spelling",
    "ensure_records",
    "level_for_speed",
    "toggle_pause",
]
