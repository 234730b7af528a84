"""
Module: simulation

Purpose:
    Headless runs of an exercise on a ManualClock with a scripted learner.
    Used by the CLI and by determinism tests: the same content, seed and
    learner script always produce the same results.

Key Classes:
    - ScriptedLearner: Answers visible fragments with a given accuracy

Key Functions:
    - run_simulation(): Drive an exercise to completion

Used By:
    - cli: simulate and bubble commands
"""

from __future__ import annotations

import logging
import random
from typing import Optional, Set

from streaming_toolkit.core.models import JudgingRule, VariantKind
from streaming_toolkit.engine import (
    ElementKind,
    ElementSnapshot,
    Interaction,
    ManualClock,
    SessionResults,
    SessionState,
    StreamingSession,
)
from streaming_toolkit.exercises.base import Exercise

logger = logging.getLogger(__name__)


class ScriptedLearner:
    """
    Deterministic stand-in for a learner.

    Each judged fragment is answered once, as soon as it is fully inside
    the horizon (or spans all of it); the answer is correct with
    probability ``accuracy``.
    Fragments are re-answered after a rollback since they come back with
    new element ids.
    """

    def __init__(self, session: StreamingSession, accuracy: float = 1.0, seed: Optional[int] = None):
        if not 0.0 <= accuracy <= 1.0:
            raise ValueError(f"accuracy must be within [0, 1]: {accuracy}")
        self.session = session
        self.accuracy = accuracy
        self.rng = random.Random(seed)
        self._answered: Set[int] = set()

    def _choice(self, element: ElementSnapshot, correct: bool) -> Interaction:
        difficulty = self.session.scheduler.judge.difficulty
        shown = [kind for _, kind, _ in sorted(element.options, key=lambda o: o[0])]
        if difficulty.rule is JudgingRule.MATCHING:
            target = shown[0]
            if correct:
                kind = target
            elif target is VariantKind.CANONICAL:
                kind = sorted(difficulty.active_kinds, key=lambda k: k.value)[0]
            else:
                kind = VariantKind.CANONICAL
            return Interaction(kind=kind, element_id=element.element_id)

        right = [k for k in shown if k in difficulty.correct_kinds]
        wrong = [k for k in shown if k not in difficulty.correct_kinds]
        pool = right if correct or not wrong else wrong
        return Interaction(kind=self.rng.choice(pool), element_id=element.element_id)

    def act(self) -> int:
        """Queue answers for newly visible fragments; returns how many."""
        horizon = self.session.scheduler.config.horizon_width
        queued = 0
        for element in self.session.elements():
            if element.kind is not ElementKind.FRAGMENT or element.is_error:
                continue
            if element.element_id in self._answered:
                continue
            if element.x + min(element.width, horizon) > horizon:
                continue
            self._answered.add(element.element_id)
            correct = self.rng.random() < self.accuracy
            self.session.handle_variant_interaction(self._choice(element, correct))
            queued += 1
        return queued


def run_simulation(
    exercise: Exercise,
    clock: ManualClock,
    *,
    accuracy: float = 1.0,
    seed: Optional[int] = None,
    frame_interval: float = 1.0 / 60.0,
    max_seconds: float = 3600.0,
) -> SessionResults:
    """
    Start an initialized exercise and run it to completion.

    Args:
        exercise: Initialized exercise
        clock: The ManualClock the exercise was built with
        accuracy: Probability of a correct answer
        seed: Learner random seed
        frame_interval: Simulated frame spacing
        max_seconds: Safety limit on simulated time

    Returns:
        Final SessionResults
    """
    learner = ScriptedLearner(exercise.session, accuracy, seed)
    exercise.start()
    deadline = clock.now() + max_seconds
    while exercise.session.state is SessionState.ACTIVE and clock.now() < deadline:
        learner.act()
        clock.advance(frame_interval, frame_interval)

    results = exercise.session.results
    if results is None:
        logger.warning(f"Simulation stopped after {max_seconds:.0f}s without completing")
        results = exercise.end()
    return results
