"""
Unit tests for the fluent reading exercise.

Verified: 2026-10-19
"""

import pytest

from streaming_toolkit.core.models import DifficultyLevel, VariantKind
from streaming_toolkit.engine import EndReason, ManualClock, SessionState
from streaming_toolkit.exercises import FLUENT_DIFFICULTIES, FluentReadingExercise, FluentSettings
from streaming_toolkit.simulation import run_simulation


def make_exercise(measurer, engine, wpm=300.0, level=DifficultyLevel.MODERATE):
    clock = ManualClock()
    settings = FluentSettings(words_per_minute=wpm, difficulty=level, engine=engine)
    return FluentReadingExercise(clock, settings, measurer=measurer), clock


class TestFluentDifficulties:
    """Tests for the fluent difficulty table."""

    def test_table_when_levels_then_speed_increases(self):
        speeds = [FLUENT_DIFFICULTIES[level].speed_multiplier for level in DifficultyLevel]
        assert speeds == sorted(speeds)

    def test_table_when_easy_then_vocab_only(self):
        assert FLUENT_DIFFICULTIES[DifficultyLevel.EASY].active_kinds == frozenset({VariantKind.VOCAB})


class TestFluentReadingExercise:
    """Tests for FluentReadingExercise."""

    def test_initialize_when_narrative_then_ready(self, measurer, small_engine, fluent_narrative):
        exercise, _ = make_exercise(measurer, small_engine)
        exercise.initialize(fluent_narrative)
        assert exercise.session.state is SessionState.READY
        assert len(exercise.session.fragments) == 4

    def test_handle_key_when_canonical_slot_then_correct(self, measurer, small_engine, fluent_narrative):
        """Number keys select the option in the matching slot."""
        # Arrange
        exercise, clock = make_exercise(measurer, small_engine)
        exercise.initialize(fluent_narrative)
        exercise.start()
        options = exercise.session.elements()[0].options
        slot = next(s for s, kind, _ in options if kind is VariantKind.CANONICAL)

        # Act
        handled = exercise.handle_key(str(slot + 1))
        clock.advance(1.0 / 60.0)

        # Assert
        assert handled
        assert exercise.session.score.correct == 1

    def test_handle_key_when_escape_then_toggles_pause(self, measurer, small_engine, fluent_narrative):
        exercise, _ = make_exercise(measurer, small_engine)
        exercise.initialize(fluent_narrative)
        exercise.start()

        assert exercise.handle_key("Escape")
        assert exercise.session.state is SessionState.PAUSED
        assert exercise.handle_key("Escape")
        assert exercise.session.state is SessionState.ACTIVE

    def test_handle_key_when_unmapped_then_not_handled(self, measurer, small_engine, fluent_narrative):
        exercise, _ = make_exercise(measurer, small_engine)
        exercise.initialize(fluent_narrative)
        assert not exercise.handle_key("x")

    def test_run_when_all_correct_then_complete_with_full_score(
        self, measurer, small_engine, fluent_narrative,
    ):
        # Arrange
        exercise, clock = make_exercise(measurer, small_engine)
        exercise.initialize(fluent_narrative)

        # Act
        results = run_simulation(exercise, clock, accuracy=1.0, seed=1)

        # Assert
        assert results.reason is EndReason.CONTENT_COMPLETE
        assert results.percentage == 100
        assert results.words_delivered == 19
        assert results.to_dict()["exercise"] == "fluent_reading"
        assert results.to_dict()["difficulty"] == "moderate"

    def test_initialize_when_unknown_difficulty_then_raises_error(self, measurer, small_engine):
        with pytest.raises(ValueError, match="Unknown difficulty"):
            FluentReadingExercise(
                ManualClock(), FluentSettings(difficulty="extreme", engine=small_engine),
                measurer=measurer,
            )
