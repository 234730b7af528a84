"""
Module: engine.checkpoints

Purpose:
    Bounded checkpoint history and rollback orchestration. A checkpoint is
    an immutable snapshot of the content cursor, the book log, the score and
    the correct selections already decided after the cursor.

Key Classes:
    - Checkpoint: Immutable restore point
    - Restorable: Protocol of whatever owns the stream state (the scheduler)
    - RollbackInconsistency: Rollback with nothing to undo
    - CheckpointManager: History and rollback

Dependencies:
    - collections.deque (std)

Used By:
    - engine.scheduler: Checkpoint creation and recovery
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from typing import Deque, Dict, Optional, Protocol, Tuple

from streaming_toolkit.core.models import DeliveredWord, ScoreState, VariantKind

logger = logging.getLogger(__name__)


class RollbackInconsistency(Exception):
    """Rollback requested while the stream already matches the restore point."""
    pass


@dataclass(frozen=True)
class Checkpoint:
    """
    Restore point (immutable).

    Attributes:
        content_cursor: Position of the earliest fragment to stream again
        delivered: Book log up to (not including) the cursor fragment
        score: Score at creation time
        fragment_index: Fragment whose exposure triggered the checkpoint
        resolved: (position, kind) pairs of correct selections to remember
    """

    content_cursor: int
    delivered: Tuple[DeliveredWord, ...] = ()
    score: ScoreState = ScoreState()
    fragment_index: int = -1
    resolved: Tuple[Tuple[int, VariantKind], ...] = ()

    @property
    def resolved_map(self) -> Dict[int, VariantKind]:
        return dict(self.resolved)

    @classmethod
    def origin(cls, score: Optional[ScoreState] = None) -> "Checkpoint":
        """Restore point at the very beginning of the content."""
        return cls(content_cursor=0, score=score or ScoreState())


class Restorable(Protocol):
    def restore(self, checkpoint: Checkpoint) -> None:
        ...


class CheckpointManager:
    """
    Keep the most recent checkpoints and apply rollbacks.

    Example:
        >>> manager = CheckpointManager(depth=2)
        >>> manager.latest.content_cursor
        0
        >>> _ = manager.add(Checkpoint(content_cursor=4))
        >>> manager.latest.content_cursor
        4
    """

    def __init__(self, depth: int = 3, origin: Optional[Checkpoint] = None):
        if depth < 1:
            raise ValueError(f"depth must be at least 1: {depth}")
        self.depth = depth
        self.origin = origin or Checkpoint.origin()
        self._history: Deque[Checkpoint] = deque(maxlen=depth)
        self.rollbacks = 0

    @property
    def history(self) -> Tuple[Checkpoint, ...]:
        return tuple(self._history)

    @property
    def latest(self) -> Checkpoint:
        """Most recent checkpoint, or the origin when none exists."""
        if self._history:
            return self._history[-1]
        return self.origin

    def add(self, checkpoint: Checkpoint) -> Checkpoint:
        """Append a checkpoint, dropping the oldest past the depth."""
        if self._history and self._history[-1] == checkpoint:
            return checkpoint
        self._history.append(checkpoint)
        logger.debug(
            f"Checkpoint at fragment {checkpoint.fragment_index} "
            f"(cursor {checkpoint.content_cursor}, {len(checkpoint.delivered)} words)"
        )
        return checkpoint

    def rollback(self, target: Restorable) -> Optional[Checkpoint]:
        """
        Restore the latest checkpoint into the target.

        Returns:
            The checkpoint restored, or None if there was nothing to undo
        """
        checkpoint = self.latest
        try:
            target.restore(checkpoint)
        except RollbackInconsistency as e:
            logger.debug(f"Rollback skipped: {e}")
            return None
        self.rollbacks += 1
        logger.info(
            f"Rolled back to fragment {checkpoint.fragment_index} "
            f"(cursor {checkpoint.content_cursor})"
        )
        return checkpoint

    def clear(self) -> None:
        self._history.clear()
