"""
Module: engine.config

Purpose:
    Configuration dataclasses for the streaming engine.
    Immutable configuration with validation on construction.

Key Classes:
    - FontSpec: Font used for text measurement
    - EngineConfig: Horizon geometry, clocks, checkpoints and ramping
    - SessionConfig: Everything needed to initialize a session

Key Functions:
    - load_engine_config(): Read an EngineConfig from JSON

Dependencies:
    - dataclasses (std)
    - json (std)

Used By:
    - engine.session: Session construction
    - engine.scheduler: Geometry and gating
    - exercises: Per-exercise engine settings
    - cli: --config option
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Union

from streaming_toolkit.core.models import DifficultyConfig
from .loading.parser import RawRecord
from .timing import NominalRate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FontSpec:
    """
    Font used to measure word widths.

    Attributes:
        family: TrueType file name or path
        size: Point size
    """

    family: str = "DejaVuSans.ttf"
    size: int = 24

    def __post_init__(self) -> None:
        if self.size <= 0:
            raise ValueError(f"font size must be positive: {self.size}")


@dataclass(frozen=True)
class EngineConfig:
    """
    Streaming engine configuration (immutable).

    Attributes:
        horizon_width: Width of the visible field in horizon units
        lookahead: Admission window past the right edge
        entry_margin: Entry offset when the horizon is empty
        element_gap: Spacing between fragments
        paragraph_gap: Extra spacing after a paragraph break
        font: Font used for measurement
        fallback_char_width: Estimated width per character when measuring fails
        average_word_width: Units per average word, used for velocity
        max_frame_delta: Largest frame delta accepted before clamping
        nominal_frame_delta: Delta used for the first frame after (re)start
        checkpoint_depth: Checkpoints kept in history
        checkpoint_before_judged: Checkpoint before every judged fragment
        max_pending_judgments: Unresolved judged fragments allowed on the horizon
        release_resolved: Remove resolved fragments instead of streaming their words
        feedback_seconds: Failure feedback hold before rollback
        spawn_interval_seconds: Base spacing between fragment spawns
        spawn_jitter_seconds: Random +/- jitter on the spawn interval
        max_ramp_fraction: Upper bound of ramp acceleration
        ramp_period_seconds: Ramping update period
        time_update_period_seconds: Remaining-time broadcast period
        seed: Random seed for reproducible sessions (None = random)

    Invariants:
        - horizon_width > 0
        - checkpoint_depth >= 1
        - max_pending_judgments >= 1
        - 0 < nominal_frame_delta <= max_frame_delta

    Example:
        >>> config = EngineConfig(horizon_width=600, seed=7)
        >>> config.checkpoint_depth
        3
    """

    # Horizon geometry
    horizon_width: float = 900.0
    lookahead: float = 100.0
    entry_margin: float = 50.0
    element_gap: float = 20.0
    paragraph_gap: float = 40.0

    # Measurement
    font: FontSpec = field(default_factory=FontSpec)
    fallback_char_width: float = 12.0
    average_word_width: float = 60.0

    # Frame clock
    max_frame_delta: float = 0.1
    nominal_frame_delta: float = 1.0 / 60.0

    # Judging and recovery
    checkpoint_depth: int = 3
    checkpoint_before_judged: bool = False
    max_pending_judgments: int = 1
    release_resolved: bool = False
    feedback_seconds: float = 0.25

    # Spawning
    spawn_interval_seconds: float = 0.0
    spawn_jitter_seconds: float = 0.0

    # Ramping and broadcasts
    max_ramp_fraction: float = 0.15
    ramp_period_seconds: float = 5.0
    time_update_period_seconds: float = 1.0

    seed: Optional[int] = None

    def __post_init__(self) -> None:
        """Validate configuration on construction."""
        if self.horizon_width <= 0:
            raise ValueError(f"horizon_width must be positive: {self.horizon_width}")
        for name in ("lookahead", "entry_margin", "element_gap", "paragraph_gap",
                     "feedback_seconds", "spawn_interval_seconds",
                     "spawn_jitter_seconds", "max_ramp_fraction"):
            value = getattr(self, name)
            if value < 0:
                raise ValueError(f"{name} must be non-negative: {value}")
        if self.fallback_char_width <= 0:
            raise ValueError(f"fallback_char_width must be positive: {self.fallback_char_width}")
        if self.average_word_width <= 0:
            raise ValueError(f"average_word_width must be positive: {self.average_word_width}")
        if not 0 < self.nominal_frame_delta <= self.max_frame_delta:
            raise ValueError(
                f"nominal_frame_delta ({self.nominal_frame_delta}) must be within "
                f"(0, max_frame_delta={self.max_frame_delta}]"
            )
        if self.checkpoint_depth < 1:
            raise ValueError(f"checkpoint_depth must be at least 1: {self.checkpoint_depth}")
        if self.max_pending_judgments < 1:
            raise ValueError(
                f"max_pending_judgments must be at least 1: {self.max_pending_judgments}"
            )
        if self.ramp_period_seconds <= 0:
            raise ValueError(f"ramp_period_seconds must be positive: {self.ramp_period_seconds}")
        if self.time_update_period_seconds <= 0:
            raise ValueError(
                f"time_update_period_seconds must be positive: {self.time_update_period_seconds}"
            )

    # ─────────────────────────────────────────────────────────────────────────
    # Serialization
    # ─────────────────────────────────────────────────────────────────────────

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EngineConfig":
        """
        Create config from a dict, ignoring unknown keys.

        Args:
            data: Mapping of field names to values; ``font`` may be a dict
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            logger.warning(f"Ignoring unknown engine config keys: {unknown}")
        values = {key: value for key, value in data.items() if key in known}
        if isinstance(values.get("font"), dict):
            values["font"] = FontSpec(**values["font"])
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def load_engine_config(path: Union[str, Path]) -> EngineConfig:
    """
    Load an EngineConfig from a JSON file.

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the file is not a JSON object or has invalid values
    """
    path = Path(path)
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"Engine config must be a JSON object: {path}")
    return EngineConfig.from_dict(data)


@dataclass(frozen=True)
class SessionConfig:
    """
    Inputs for StreamingSession.initialize (immutable).

    Attributes:
        records: Parsed narrative records
        difficulty: Difficulty selected for the session
        rate: Nominal reading rate
        engine: Engine configuration
        duration_seconds: Fixed session length (None = derive from content)
    """

    records: Sequence[RawRecord]
    difficulty: DifficultyConfig
    rate: NominalRate
    engine: EngineConfig = field(default_factory=EngineConfig)
    duration_seconds: Optional[float] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "records", tuple(self.records))
        if self.duration_seconds is not None and self.duration_seconds <= 0:
            raise ValueError(f"duration_seconds must be positive: {self.duration_seconds}")
