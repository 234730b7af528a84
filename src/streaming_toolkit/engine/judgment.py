"""
Module: engine.judgment

Purpose:
    Decide correctness of a learner selection (or of a timeout) and
    record it in the score. The engine never performs recovery itself;
    the scheduler reacts to the returned Outcome.

Key Classes:
    - Outcome: Result of a single judgment
    - JudgmentEngine: Applies the difficulty's judging rule

Dependencies:
    - streaming_toolkit.core.models: Fragment, ScoreState, DifficultyConfig

Used By:
    - engine.scheduler: Selection and exit handling
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from streaming_toolkit.core.models import (
    DifficultyConfig,
    Fragment,
    JudgingRule,
    ScoreState,
    VariantKind,
    Verdict,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Outcome:
    """
    Result of judging a fragment.

    Attributes:
        fragment_index: Judged fragment
        verdict: CORRECT, WRONG or MISSED
        chosen: Kind the learner chose (None on timeout)
        timed_out: True if the fragment exited unresolved
    """

    fragment_index: int
    verdict: Verdict
    chosen: Optional[VariantKind] = None
    timed_out: bool = False

    @property
    def correct(self) -> bool:
        return self.verdict is Verdict.CORRECT


class JudgmentEngine:
    """
    Judge selections against a DifficultyConfig.

    Every call increments exactly one score counter.
    """

    def __init__(self, difficulty: DifficultyConfig, score: Optional[ScoreState] = None):
        self.difficulty = difficulty
        self._score = score or ScoreState()

    @property
    def score(self) -> ScoreState:
        return self._score

    def restore(self, score: ScoreState) -> None:
        """Replace the score wholesale (rollback)."""
        self._score = score

    def is_correct(self, fragment: Fragment, chosen: VariantKind) -> bool:
        if self.difficulty.rule is JudgingRule.MATCHING:
            return chosen is fragment.target_kind
        return chosen in self.difficulty.correct_kinds

    def judge(self, fragment: Fragment, chosen: VariantKind) -> Outcome:
        """
        Judge a learner selection.

        A correct choice records the selection; a wrong one marks the
        fragment as showing an error.
        """
        if self.is_correct(fragment, chosen):
            verdict = Verdict.CORRECT
            fragment.selected_variant = chosen
            fragment.is_error = False
        else:
            verdict = Verdict.WRONG
            fragment.selected_variant = chosen
            fragment.is_error = True
        return self._record(Outcome(fragment.index, verdict, chosen=chosen))

    def timeout(self, fragment: Fragment) -> Outcome:
        """
        Judge a fragment that exited without a selection.

        Counts as correct when every shown kind is ignorable at this
        difficulty, otherwise as missed.
        """
        shown = [k for k in fragment.exposed_kinds if k is not VariantKind.CANONICAL]
        if not shown:
            shown = [VariantKind.CANONICAL]
        if self.difficulty.ignores(shown):
            fragment.selected_variant = VariantKind.CANONICAL
            fragment.is_error = False
            verdict = Verdict.CORRECT
        else:
            fragment.is_error = True
            verdict = Verdict.MISSED
        return self._record(Outcome(fragment.index, verdict, timed_out=True))

    def _record(self, outcome: Outcome) -> Outcome:
        self._score = self._score.record(outcome.verdict)
        logger.debug(
            f"Fragment {outcome.fragment_index}: {outcome.verdict}"
            f"{' (timeout)' if outcome.timed_out else ''}"
        )
        return outcome
