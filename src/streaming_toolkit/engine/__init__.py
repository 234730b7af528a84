"""
Streaming Engine

Frame-synchronous simulation shared by every streaming exercise.

Architecture:
    loading -> timing -> scheduler (judgment, checkpoints) -> session
    ramping adjusts scheduler rates on a slower clock.

Usage:
    >>> from streaming_toolkit.engine import StreamingSession, ManualClock  # doctest: +SKIP
    >>> session = StreamingSession(ManualClock())                          # doctest: +SKIP

The Qt clock and signal bridge live in ``streaming_toolkit.engine.qt`` so
headless use never imports PySide6.
"""

from .checkpoints import Checkpoint, CheckpointManager, RollbackInconsistency
from .clock import FrameClock, ManualClock, TimerHandle
from .config import EngineConfig, FontSpec, SessionConfig, load_engine_config
from .events import (
    CheckpointCreated,
    EngineEvent,
    EventChannel,
    FragmentJudged,
    RolledBack,
    ScoreUpdated,
    SessionCompleted,
    StateChanged,
    TimeUpdated,
)
from .judgment import JudgmentEngine, Outcome
from .loading import ContentUnavailable, ParseError, RawRecord, load_narrative_file, parse_narrative
from .measure import FixedWidthMeasurer, MeasurementFailure, PillowTextMeasurer, TextMeasurer
from .ramping import RampingController
from .scheduler import (
    ElementKind,
    ElementSnapshot,
    Interaction,
    InvalidInteraction,
    SchedulerState,
    StreamScheduler,
)
from .session import (
    EndReason,
    SessionError,
    SessionResults,
    SessionState,
    SessionStats,
    StreamingSession,
    result_message,
)
from .timing import NominalRate, RateUnit, TimingPlan, compute_timing, dial_to_wpm

__all__ = [
    "Checkpoint",
    "CheckpointCreated",
    "CheckpointManager",
    "ContentUnavailable",
    "ElementKind",
    "ElementSnapshot",
    "EndReason",
    "EngineConfig",
    "EngineEvent",
    "EventChannel",
    "FixedWidthMeasurer",
    "FontSpec",
    "FragmentJudged",
    "FrameClock",
    "Interaction",
    "InvalidInteraction",
    "JudgmentEngine",
    "ManualClock",
    "MeasurementFailure",
    "NominalRate",
    "Outcome",
    "ParseError",
    "PillowTextMeasurer",
    "RampingController",
    "RateUnit",
    "RawRecord",
    "RollbackInconsistency",
    "RolledBack",
    "SchedulerState",
    "ScoreUpdated",
    "SessionCompleted",
    "SessionConfig",
    "SessionError",
    "SessionResults",
    "SessionState",
    "SessionStats",
    "StateChanged",
    "StreamScheduler",
    "StreamingSession",
    "TextMeasurer",
    "TimeUpdated",
    "TimerHandle",
    "TimingPlan",
    "compute_timing",
    "dial_to_wpm",
    "load_engine_config",
    "load_narrative_file",
    "parse_narrative",
    "result_message",
]
