"""
Module: engine.timing

Purpose:
    Convert a configured reading rate and difficulty into stream velocity,
    session time budget and spawn interval.

Key Classes:
    - RateUnit: Words-per-minute or a 0-100 dial
    - NominalRate: Configured rate before difficulty
    - TimingPlan: Derived velocity and budget

Key Functions:
    - dial_to_wpm(): Monotonic dial mapping
    - compute_timing(): Build a TimingPlan

Dependencies:
    - math (std)

Used By:
    - engine.session: Session initialization
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from streaming_toolkit.core.models import DifficultyConfig

logger = logging.getLogger(__name__)

DIAL_MIN_WPM = 60.0
DIAL_MAX_WPM = 300.0
DEFAULT_WORD_WIDTH = 60.0


class RateUnit(str, Enum):
    WPM = "wpm"
    DIAL = "dial"


def dial_to_wpm(dial: float) -> float:
    """
    Map a 0-100 dial to words per minute.

    Example:
        >>> dial_to_wpm(0), dial_to_wpm(50), dial_to_wpm(100)
        (60.0, 180.0, 300.0)
    """
    if not 0 <= dial <= 100:
        raise ValueError(f"dial must be within [0, 100]: {dial}")
    return DIAL_MIN_WPM + (DIAL_MAX_WPM - DIAL_MIN_WPM) * dial / 100.0


@dataclass(frozen=True)
class NominalRate:
    """
    Configured rate (immutable).

    Attributes:
        value: Rate in the given unit
        unit: WPM or DIAL
    """

    value: float
    unit: RateUnit = RateUnit.WPM

    def __post_init__(self) -> None:
        if self.unit is RateUnit.DIAL:
            dial_to_wpm(self.value)
        elif self.value <= 0:
            raise ValueError(f"wpm must be positive: {self.value}")

    @property
    def words_per_minute(self) -> float:
        if self.unit is RateUnit.DIAL:
            return dial_to_wpm(self.value)
        return float(self.value)


@dataclass(frozen=True)
class TimingPlan:
    """
    Derived timing for a session.

    Attributes:
        words_per_minute: Effective rate after difficulty
        units_per_second: Stream velocity in horizon units
        optimal_seconds: Time to read all content at the nominal rate
        total_duration_seconds: Session budget
        spawn_interval_seconds: Minimum spacing between fragment spawns
    """

    words_per_minute: float
    units_per_second: float
    optimal_seconds: float
    total_duration_seconds: float
    spawn_interval_seconds: float = 0.0


def compute_timing(
    rate: NominalRate,
    difficulty: DifficultyConfig,
    total_words: int,
    *,
    average_word_width: float = DEFAULT_WORD_WIDTH,
    base_spawn_interval: float = 0.0,
    duration_override: Optional[float] = None,
    lead_in_units: float = 0.0,
) -> TimingPlan:
    """
    Compute velocity and time budget.

    Difficulty multiplies the nominal rate; the budget is the difficulty's
    timer multiple of the optimal reading time, unless a fixed duration is
    given.

    Args:
        rate: Configured nominal rate
        difficulty: Session difficulty
        total_words: Canonical word count of the content
        average_word_width: Horizon units per average word
        base_spawn_interval: Spawn interval before difficulty
        duration_override: Fixed session duration in seconds
        lead_in_units: Distance content travels before reaching the field

    Returns:
        TimingPlan for the session
    """
    if total_words < 0:
        raise ValueError(f"total_words must be non-negative: {total_words}")
    if duration_override is not None and duration_override <= 0:
        raise ValueError(f"duration_override must be positive: {duration_override}")
    if lead_in_units < 0:
        raise ValueError(f"lead_in_units must be non-negative: {lead_in_units}")

    nominal_wpm = rate.words_per_minute
    effective_wpm = nominal_wpm * difficulty.speed_multiplier
    units_per_second = effective_wpm / 60.0 * average_word_width
    nominal_units_per_second = nominal_wpm / 60.0 * average_word_width
    optimal = float(math.ceil(
        total_words / (nominal_wpm / 60.0) + lead_in_units / nominal_units_per_second
    ))

    if duration_override is not None:
        total = float(duration_override)
    else:
        total = optimal * difficulty.timer_multiplier

    plan = TimingPlan(
        words_per_minute=effective_wpm,
        units_per_second=units_per_second,
        optimal_seconds=optimal,
        total_duration_seconds=total,
        spawn_interval_seconds=base_spawn_interval * difficulty.spawn_multiplier,
    )
    logger.debug(
        f"Timing: {effective_wpm:.0f} wpm, {units_per_second:.1f} u/s, "
        f"budget {total:.0f}s (optimal {optimal:.0f}s)"
    )
    return plan
