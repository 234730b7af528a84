"""
Module: core.models.score

Purpose:
    Immutable score value for a streaming session. Scores only grow by
    recording a verdict, and are restored wholesale on rollback.

Key Classes:
    - Verdict: Outcome category of a single judgment
    - ScoreState: Correct / wrong / missed counters

Dependencies:
    - dataclasses (std)

Used By:
    - engine.judgment: Records verdicts
    - engine.checkpoints: Snapshots the score
    - engine.session: Publishes score updates
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict


class Verdict(str, Enum):
    """Outcome category of a judgment."""

    CORRECT = "correct"
    WRONG = "wrong"
    MISSED = "missed"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class ScoreState:
    """
    Score counters (immutable).

    Attributes:
        correct: Correct selections (and successful ignores)
        wrong: Incorrect selections
        missed: Judged items that exited without a selection

    Invariants:
        - All counters are non-negative

    Example:
        >>> score = ScoreState().record(Verdict.CORRECT)
        >>> score.correct, score.total
        (1, 1)
    """

    correct: int = 0
    wrong: int = 0
    missed: int = 0

    def __post_init__(self) -> None:
        for name in ("correct", "wrong", "missed"):
            value = getattr(self, name)
            if value < 0:
                raise ValueError(f"{name} must be non-negative: {value}")

    def record(self, verdict: Verdict) -> ScoreState:
        """Return a new score with exactly one counter incremented."""
        if verdict is Verdict.CORRECT:
            return replace(self, correct=self.correct + 1)
        if verdict is Verdict.WRONG:
            return replace(self, wrong=self.wrong + 1)
        return replace(self, missed=self.missed + 1)

    @property
    def total(self) -> int:
        """Number of judgments recorded."""
        return self.correct + self.wrong + self.missed

    @property
    def accuracy(self) -> float:
        """Fraction of judgments that were correct (0.0 when empty)."""
        if self.total == 0:
            return 0.0
        return self.correct / self.total

    def to_dict(self) -> Dict[str, int]:
        return {"correct": self.correct, "wrong": self.wrong, "missed": self.missed}
