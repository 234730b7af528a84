"""
Unit tests for RampingController.

Verified: 2026-10-19
"""

import pytest

from streaming_toolkit.engine import RampingController


class TestRampingController:
    """Tests for ramp bounds and monotonicity."""

    def test_update_when_time_passes_then_never_decreases(self):
        # Arrange
        ramp = RampingController(max_ramp_fraction=0.2, total_seconds=10)

        # Act
        values = [ramp.update(t) for t in (0, 2, 5, 3, 1, 8)]

        # Assert
        assert values == sorted(values)

    def test_update_when_past_total_then_capped(self):
        ramp = RampingController(max_ramp_fraction=0.15, total_seconds=10)
        assert ramp.update(1000) == pytest.approx(1.15)
        assert ramp.multiplier <= ramp.ceiling

    def test_velocity_and_spawn_when_ramped_then_scaled(self):
        """Velocity is multiplied and the spawn interval divided."""
        # Arrange
        ramp = RampingController(max_ramp_fraction=0.25, total_seconds=4)

        # Act
        ramp.update(4)

        # Assert
        assert ramp.velocity(100) == pytest.approx(125)
        assert ramp.spawn_interval(2.5) == pytest.approx(2.0)

    def test_reset_when_called_then_multiplier_one(self):
        ramp = RampingController(total_seconds=1)
        ramp.update(1)
        ramp.reset()
        assert ramp.multiplier == 1.0

    def test_init_when_negative_fraction_then_raises_error(self):
        with pytest.raises(ValueError, match="max_ramp_fraction"):
            RampingController(max_ramp_fraction=-0.1)
