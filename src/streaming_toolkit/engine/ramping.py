"""
Module: engine.ramping

Purpose:
    Bounded, monotonic acceleration of the stream over elapsed session time.

Key Classes:
    - RampingController: Computes and holds the current multiplier

Used By:
    - engine.session: Periodic ramp updates
"""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


class RampingController:
    """
    Compute the pace multiplier ``1 + clamp(elapsed / total, 0, 1) * max``.

    The held multiplier never decreases and never exceeds
    ``1 + max_ramp_fraction``. Velocity is multiplied by it and the spawn
    interval divided by it.

    Example:
        >>> ramp = RampingController(max_ramp_fraction=0.15, total_seconds=100)
        >>> ramp.update(50)
        1.075
        >>> ramp.update(10)
        1.075
    """

    def __init__(self, max_ramp_fraction: float = 0.15, total_seconds: float = 60.0):
        if max_ramp_fraction < 0:
            raise ValueError(f"max_ramp_fraction must be non-negative: {max_ramp_fraction}")
        if total_seconds <= 0:
            raise ValueError(f"total_seconds must be positive: {total_seconds}")
        self.max_ramp_fraction = max_ramp_fraction
        self.total_seconds = total_seconds
        self._multiplier = 1.0

    @property
    def multiplier(self) -> float:
        return self._multiplier

    @property
    def ceiling(self) -> float:
        return 1.0 + self.max_ramp_fraction

    def multiplier_at(self, elapsed_seconds: float) -> float:
        progress = min(max(elapsed_seconds / self.total_seconds, 0.0), 1.0)
        return 1.0 + progress * self.max_ramp_fraction

    def update(self, elapsed_seconds: float) -> float:
        """Advance the held multiplier for the elapsed time and return it."""
        value = self.multiplier_at(elapsed_seconds)
        if value > self._multiplier:
            self._multiplier = value
            logger.debug(f"Ramp multiplier {value:.3f} at {elapsed_seconds:.1f}s")
        return self._multiplier

    def velocity(self, base_velocity: float) -> float:
        return base_velocity * self._multiplier

    def spawn_interval(self, base_interval: float) -> float:
        return base_interval / self._multiplier

    def reset(self) -> None:
        self._multiplier = 1.0
