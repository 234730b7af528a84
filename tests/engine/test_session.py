"""
Unit tests for StreamingSession.

Sessions run on a ManualClock with a 10-units-per-character measurer.
At 600 wpm the stream moves 600 units per second.

Verified: 2026-10-19
"""

import pytest

from streaming_toolkit.core.models import DifficultyConfig, ScoreState, VariantKind
from streaming_toolkit.engine import (
    ContentUnavailable,
    EndReason,
    Interaction,
    ManualClock,
    NominalRate,
    RawRecord,
    SchedulerState,
    ScoreUpdated,
    SessionCompleted,
    SessionConfig,
    SessionError,
    SessionState,
    StateChanged,
    StreamingSession,
    result_message,
)

PLAIN = [RawRecord(0, "aa bb"), RawRecord(1, "cc dd")]
JUDGED = [RawRecord(0, "the {cat}", substitutes={VariantKind.SPELLING: "kat"})]


def make_session(measurer, engine, records=PLAIN, wpm=600, duration=None):
    session = StreamingSession(ManualClock(), measurer=measurer)
    session.initialize(SessionConfig(
        records, DifficultyConfig(), NominalRate(wpm), engine, duration,
    ))
    return session


class TestLifecycle:
    """Tests for lifecycle transitions and misuse."""

    def test_start_when_not_initialized_then_raises_error(self, measurer):
        session = StreamingSession(ManualClock(), measurer=measurer)
        with pytest.raises(SessionError, match="Cannot start from idle"):
            session.start()

    def test_pause_when_ready_then_raises_error(self, measurer, small_engine):
        session = make_session(measurer, small_engine)
        with pytest.raises(SessionError, match="Cannot pause"):
            session.pause()

    def test_resume_when_active_then_raises_error(self, measurer, small_engine):
        session = make_session(measurer, small_engine)
        session.start()
        with pytest.raises(SessionError, match="Cannot resume"):
            session.resume()

    def test_initialize_when_active_then_raises_error(self, measurer, small_engine):
        session = make_session(measurer, small_engine)
        session.start()
        with pytest.raises(SessionError, match="Cannot initialize"):
            session.initialize(SessionConfig(PLAIN, DifficultyConfig(), NominalRate(600), small_engine))

    def test_initialize_when_no_content_then_stays_idle(self, measurer, small_engine):
        """Content errors leave the session untouched."""
        # Arrange
        session = StreamingSession(ManualClock(), measurer=measurer)

        # Act
        with pytest.raises(ContentUnavailable):
            session.initialize(SessionConfig([], DifficultyConfig(), NominalRate(600), small_engine))

        # Assert
        assert session.state is SessionState.IDLE

    def test_lifecycle_when_run_then_session_states_in_order(self, measurer, small_engine):
        # Arrange
        session = StreamingSession(ManualClock(), measurer=measurer)
        seen = []
        session.subscribe(
            lambda e: seen.append((e.old, e.new)) if e.scope == "session" else None,
            StateChanged,
        )

        # Act
        session.initialize(SessionConfig(PLAIN, DifficultyConfig(), NominalRate(600), small_engine))
        session.start()
        session.end()

        # Assert
        assert seen == [("idle", "ready"), ("ready", "active"), ("active", "completed")]

    def test_end_when_idle_then_no_op(self, measurer):
        session = StreamingSession(ManualClock(), measurer=measurer)
        assert session.end() is None
        assert session.state is SessionState.IDLE

    def test_end_when_called_twice_then_completed_once(self, measurer, small_engine):
        # Arrange
        session = make_session(measurer, small_engine)
        completed = []
        session.subscribe(completed.append, SessionCompleted)
        session.start()

        # Act
        first = session.end()
        second = session.end()

        # Assert
        assert first is second
        assert first.reason is EndReason.CANCELLED
        assert len(completed) == 1
        assert session.clock.active_timers == 0


class TestFrameLoop:
    """Tests for the frame loop, timers and completion."""

    def test_run_when_content_streams_out_then_content_complete(self, measurer, small_engine):
        # Arrange
        session = make_session(measurer, small_engine)
        session.start()

        # Act
        session.clock.advance(3.0)

        # Assert
        results = session.results
        assert session.state is SessionState.COMPLETED
        assert results.reason is EndReason.CONTENT_COMPLETE
        assert results.words_delivered == 4
        assert results.completion_rate == 100
        assert [w.text for w in session.delivered()] == ["aa", "bb", "cc", "dd"]

    def test_run_when_budget_exhausted_then_time_expired(self, measurer, small_engine):
        """The session ends on the first time broadcast after the budget."""
        # Arrange
        session = make_session(measurer, small_engine, wpm=6, duration=1.0)
        session.start()

        # Act
        session.clock.advance(2.5)

        # Assert
        assert session.results.reason is EndReason.TIME_EXPIRED
        assert session.time_remaining == 0.0

    def test_frame_when_gap_too_large_then_delta_clamped(self, measurer, small_engine):
        """First frame uses the nominal delta, later gaps are clamped."""
        # Arrange
        session = make_session(measurer, small_engine, wpm=6)
        session.start()

        # Act
        session.clock.advance(1.0, frame_interval=0.5)

        # Assert
        assert session.elapsed_seconds == pytest.approx(1.0 / 60.0 + 0.1)

    def test_pause_when_paused_then_no_motion_and_no_timers(self, measurer, small_engine):
        """Pausing stops every timer; resuming does not jump."""
        # Arrange
        session = make_session(measurer, small_engine, wpm=60)
        session.start()
        session.clock.advance(0.5)
        x_before = session.elements()[0].x
        elapsed_before = session.elapsed_seconds

        # Act
        session.pause()
        timers_while_paused = session.clock.active_timers
        session.clock.advance(10.0)
        x_paused = session.elements()[0].x
        session.resume()
        session.clock.advance(1.0 / 60.0)

        # Assert
        assert timers_while_paused == 0
        assert x_paused == x_before
        assert session.elapsed_seconds == pytest.approx(elapsed_before + 1.0 / 60.0)
        assert session.elements()[0].x == pytest.approx(x_before - 1.0)

    def test_ramp_when_tick_then_velocity_scaled(self, measurer, small_engine):
        # Arrange
        session = make_session(measurer, small_engine, wpm=6, duration=100.0)
        session.start()

        # Act
        session.clock.advance(5.5)

        # Assert
        assert session.ramp_multiplier > 1.0
        assert session.scheduler.velocity == pytest.approx(
            session.plan.units_per_second * session.ramp_multiplier
        )


class TestInteractions:
    """Tests for queued learner input."""

    def test_interaction_when_invalid_then_ignored(self, measurer, small_engine):
        # Arrange
        session = make_session(measurer, small_engine)
        session.start()

        # Act
        session.handle_variant_interaction(Interaction(slot=0))
        session.clock.advance(1.0 / 60.0)

        # Assert
        assert session.score == ScoreState()
        assert session.state is SessionState.ACTIVE

    def test_interaction_when_not_active_then_dropped(self, measurer, small_engine):
        session = make_session(measurer, small_engine, records=JUDGED)
        session.handle_variant_interaction(Interaction(kind=VariantKind.CANONICAL))
        session.start()
        session.clock.advance(1.0 / 60.0)
        assert session.score == ScoreState()

    def test_interaction_when_correct_then_score_published(self, measurer, small_engine):
        # Arrange
        session = make_session(measurer, small_engine, records=JUDGED)
        scores = []
        session.subscribe(scores.append, ScoreUpdated)
        session.start()
        assert session.stream_state is SchedulerState.JUDGING

        # Act
        session.handle_variant_interaction(Interaction(kind=VariantKind.CANONICAL))
        session.clock.advance(3.0)

        # Assert
        results = session.results
        assert scores[0].score == ScoreState(correct=1)
        assert results.reason is EndReason.CONTENT_COMPLETE
        assert results.percentage == 100
        assert results.message == result_message(100)
        assert results.stats.judgments == 1

    def test_interaction_when_wrong_then_score_rolled_back_but_stats_kept(self, measurer, small_engine):
        """Rollback restores the score; lifetime stats keep the mistake."""
        # Arrange
        session = make_session(measurer, small_engine, records=JUDGED, wpm=60)
        session.start()

        # Act
        session.handle_variant_interaction(Interaction(kind=VariantKind.SPELLING))
        session.clock.advance(0.5)

        # Assert
        assert session.score == ScoreState()
        assert session.stats.total_wrong == 1
        assert session.stats.rollbacks == 1


class TestResultMessage:
    """Tests for result_message()."""

    @pytest.mark.parametrize("percentage, expected", [
        (95, "Excellent work! You're a master!"),
        (80, "Great job! Keep up the good work!"),
        (70, "Good effort! You're getting there!"),
        (65, "Not bad! Keep practicing!"),
        (10, "Keep trying! Practice makes perfect!"),
    ])
    def test_message_when_percentage_then_tier(self, percentage, expected):
        assert result_message(percentage) == expected
