"""
Core data models for the streaming engine.

This package contains the immutable and mutable data structures shared by
the engine and the exercises.

Models:
    - VariantKind: Kinds of rendering a fragment can offer
    - Fragment: Content unit with canonical text and variants
    - WordToken / PlacedWord / DeliveredWord: Word-level values
    - ScoreState / Verdict: Session score
    - DifficultyConfig and its enums: Per-session difficulty
"""

from .difficulty import (
    DifficultyConfig,
    DifficultyLevel,
    Exposure,
    JudgingRule,
    RecoveryPolicy,
    lookup,
    make_table,
)
from .fragments import (
    DeliveredWord,
    Fragment,
    PlacedWord,
    VariantKind,
    WordToken,
    tokenize,
)
from .score import ScoreState, Verdict

__all__ = [
    "DeliveredWord",
    "DifficultyConfig",
    "DifficultyLevel",
    "Exposure",
    "Fragment",
    "JudgingRule",
    "PlacedWord",
    "RecoveryPolicy",
    "ScoreState",
    "VariantKind",
    "Verdict",
    "WordToken",
    "lookup",
    "make_table",
    "tokenize",
]
