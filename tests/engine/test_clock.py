"""
Unit tests for ManualClock.

Verified: 2026-10-19
"""

import pytest

from streaming_toolkit.engine import ManualClock


class TestManualClock:
    """Tests for ManualClock."""

    def test_advance_when_frames_requested_then_timestamps_delivered(self):
        # Arrange
        clock = ManualClock()
        stamps = []
        clock.request_frames(stamps.append)

        # Act
        clock.advance(0.1, frame_interval=0.05)

        # Assert
        assert stamps == pytest.approx([0.05, 0.1])

    def test_advance_when_interval_then_fires_each_period(self):
        # Arrange
        clock = ManualClock()
        ticks = []
        clock.call_every(1.0, lambda: ticks.append(clock.now()))

        # Act
        clock.advance(3.5, frame_interval=0.5)

        # Assert
        assert ticks == pytest.approx([1.0, 2.0, 3.0])

    def test_advance_when_interval_and_frame_coincide_then_interval_first(self):
        """Interval callbacks due at a frame boundary run before the frame."""
        # Arrange
        clock = ManualClock()
        order = []
        clock.request_frames(lambda now: order.append("frame"))
        clock.call_every(0.5, lambda: order.append("tick"))

        # Act
        clock.advance(0.5, frame_interval=0.5)

        # Assert
        assert order == ["tick", "frame"]

    def test_cancel_when_called_then_no_more_callbacks(self):
        # Arrange
        clock = ManualClock()
        stamps = []
        handle = clock.request_frames(stamps.append)

        # Act
        clock.advance(0.1, frame_interval=0.05)
        handle.cancel()
        clock.advance(0.1, frame_interval=0.05)

        # Assert
        assert len(stamps) == 2
        assert clock.active_timers == 0

    def test_cancel_when_inside_callback_then_other_callbacks_still_run(self):
        """A callback cancelling a registration mid-frame is safe."""
        # Arrange
        clock = ManualClock()
        seen = []
        handles = {}
        handles["a"] = clock.request_frames(lambda now: handles["b"].cancel())
        handles["b"] = clock.request_frames(lambda now: seen.append(now))

        # Act
        clock.advance(0.1, frame_interval=0.05)

        # Assert
        assert seen == []

    def test_advance_when_negative_then_raises_error(self):
        with pytest.raises(ValueError, match="negative"):
            ManualClock().advance(-1)

    def test_call_every_when_zero_period_then_raises_error(self):
        with pytest.raises(ValueError, match="interval must be positive"):
            ManualClock().call_every(0, lambda: None)
