"""
Module: core.models.difficulty

Purpose:
    Per-session difficulty configuration. Each exercise owns an immutable
    table keyed by DifficultyLevel; the selected DifficultyConfig is
    passed to the engine at construction and never changes mid-session.

Key Classes:
    - DifficultyLevel: easy / moderate / hard
    - JudgingRule: How a chosen kind is compared with the fragment
    - Exposure: How many items a judged fragment shows
    - RecoveryPolicy: What happens after a failed judgment
    - DifficultyConfig: Frozen difficulty parameters

Key Functions:
    - make_table(): Freeze a level -> config mapping
    - lookup(): Fetch a config from a table with a clear error

Dependencies:
    - dataclasses (std)
    - types.MappingProxyType (std)

Used By:
    - engine.loading.loader: Active kinds and exposure
    - engine.timing: Speed, spawn and timer multipliers
    - engine.judgment: Judging rule and ignore policy
    - exercises: Difficulty tables
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import FrozenSet, Iterable, Mapping, Union

from .fragments import VariantKind


class DifficultyLevel(str, Enum):
    """Enumerated difficulty of a session."""

    EASY = "easy"
    MODERATE = "moderate"
    HARD = "hard"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, value: Union[str, "DifficultyLevel"]) -> "DifficultyLevel":
        """Parse a level name, accepting 'medium' as an alias of moderate."""
        if isinstance(value, DifficultyLevel):
            return value
        name = str(value).strip().lower()
        if name == "medium":
            return cls.MODERATE
        try:
            return cls(name)
        except ValueError:
            raise ValueError(f"Unknown difficulty: {value!r}") from None


class JudgingRule(str, Enum):
    """
    Rule deciding whether a chosen kind is correct.

    CANONICAL: the chosen kind must be one of the config's correct kinds.
    MATCHING: the chosen action kind must equal the kind being shown.
    """

    CANONICAL = "canonical"
    MATCHING = "matching"


class Exposure(str, Enum):
    """
    Items a judged fragment presents.

    ALL: canonical plus every active variant, one per slot.
    PAIR: canonical plus one randomly chosen active variant.
    SINGLE: exactly one item, a variant with probability ``variant_rate``.
    """

    ALL = "all"
    PAIR = "pair"
    SINGLE = "single"

    @property
    def slot_count(self) -> int:
        return {Exposure.ALL: 3, Exposure.PAIR: 2, Exposure.SINGLE: 1}[self]


class RecoveryPolicy(str, Enum):
    """ROLLBACK restores the latest checkpoint after a failure; CONTINUE does not."""

    ROLLBACK = "rollback"
    CONTINUE = "continue"


_DEFAULT_ACTIVE = frozenset({VariantKind.VOCAB, VariantKind.SPELLING})


@dataclass(frozen=True)
class DifficultyConfig:
    """
    Difficulty parameters for one session (immutable).

    Attributes:
        level: Enumerated level this config was selected for
        speed_multiplier: Scales the nominal rate
        spawn_multiplier: Scales the base spawn interval (< 1 spawns faster)
        timer_multiplier: Session budget as a multiple of the optimal time
        active_kinds: Variant kinds offered to the learner
        rule: Judging rule
        correct_kinds: Kinds accepted under the CANONICAL rule
        ignore_kinds: Shown kinds whose timeout counts as correct
        exposure: How many items a judged fragment shows
        variant_rate: Probability of showing a variant under SINGLE exposure
        recovery: Failure recovery policy
        description: Human-readable summary

    Invariants:
        - speed_multiplier, spawn_multiplier and timer_multiplier > 0
        - CANONICAL is never an active variant kind
        - 0 <= variant_rate <= 1

    Example:
        >>> config = DifficultyConfig(DifficultyLevel.EASY, speed_multiplier=0.67)
        >>> config.is_active(VariantKind.VOCAB)
        True
    """

    level: DifficultyLevel = DifficultyLevel.MODERATE
    speed_multiplier: float = 1.0
    spawn_multiplier: float = 1.0
    timer_multiplier: float = 2.0
    active_kinds: FrozenSet[VariantKind] = _DEFAULT_ACTIVE
    rule: JudgingRule = JudgingRule.CANONICAL
    correct_kinds: FrozenSet[VariantKind] = frozenset({VariantKind.CANONICAL})
    ignore_kinds: FrozenSet[VariantKind] = frozenset()
    exposure: Exposure = Exposure.ALL
    variant_rate: float = 1.0
    recovery: RecoveryPolicy = RecoveryPolicy.ROLLBACK
    description: str = ""

    def __post_init__(self) -> None:
        """Validate configuration on construction."""
        if self.speed_multiplier <= 0:
            raise ValueError(f"speed_multiplier must be positive: {self.speed_multiplier}")
        if self.spawn_multiplier <= 0:
            raise ValueError(f"spawn_multiplier must be positive: {self.spawn_multiplier}")
        if self.timer_multiplier <= 0:
            raise ValueError(f"timer_multiplier must be positive: {self.timer_multiplier}")
        if VariantKind.CANONICAL in self.active_kinds:
            raise ValueError("active_kinds cannot contain canonical")
        if not 0.0 <= self.variant_rate <= 1.0:
            raise ValueError(f"variant_rate must be within [0, 1]: {self.variant_rate}")
        # Accept any iterable for the kind sets
        object.__setattr__(self, "active_kinds", frozenset(self.active_kinds))
        object.__setattr__(self, "correct_kinds", frozenset(self.correct_kinds))
        object.__setattr__(self, "ignore_kinds", frozenset(self.ignore_kinds))

    def is_active(self, kind: VariantKind) -> bool:
        """True if the kind is offered at this difficulty."""
        return kind in self.active_kinds

    def ignores(self, shown: Iterable[VariantKind]) -> bool:
        """True if letting the shown kinds time out counts as correct."""
        shown = list(shown)
        return bool(shown) and all(kind in self.ignore_kinds for kind in shown)


def make_table(
    configs: Mapping[DifficultyLevel, DifficultyConfig],
) -> Mapping[DifficultyLevel, DifficultyConfig]:
    """Return a read-only difficulty table covering every level."""
    missing = [level for level in DifficultyLevel if level not in configs]
    if missing:
        raise ValueError(f"Difficulty table missing levels: {missing}")
    return MappingProxyType(dict(configs))


def lookup(
    table: Mapping[DifficultyLevel, DifficultyConfig],
    level: Union[str, DifficultyLevel],
) -> DifficultyConfig:
    """Fetch the config for a level name or enum member."""
    return table[DifficultyLevel.parse(level)]
