"""
Unit tests for CheckpointManager.

Verified: 2026-10-19
"""

import pytest

from streaming_toolkit.core.models import ScoreState
from streaming_toolkit.engine import Checkpoint, CheckpointManager, RollbackInconsistency


class RecordingTarget:
    """Restorable that records restores and can refuse them."""

    def __init__(self, refuse=False):
        self.refuse = refuse
        self.restored = []

    def restore(self, checkpoint):
        if self.refuse:
            raise RollbackInconsistency("nothing to undo")
        self.restored.append(checkpoint)


class TestCheckpointManager:
    """Tests for history and rollback."""

    def test_latest_when_empty_then_origin(self):
        manager = CheckpointManager()
        assert manager.latest == Checkpoint.origin()

    def test_add_when_past_depth_then_oldest_dropped(self):
        # Arrange
        manager = CheckpointManager(depth=2)

        # Act
        for cursor in (1, 2, 3):
            manager.add(Checkpoint(content_cursor=cursor))

        # Assert
        assert [c.content_cursor for c in manager.history] == [2, 3]

    def test_add_when_duplicate_then_not_repeated(self):
        manager = CheckpointManager()
        manager.add(Checkpoint(content_cursor=1))
        manager.add(Checkpoint(content_cursor=1))
        assert len(manager.history) == 1

    def test_rollback_when_target_accepts_then_latest_restored(self):
        # Arrange
        manager = CheckpointManager()
        checkpoint = manager.add(Checkpoint(content_cursor=2, score=ScoreState(correct=1)))
        target = RecordingTarget()

        # Act
        restored = manager.rollback(target)

        # Assert
        assert restored is checkpoint
        assert target.restored == [checkpoint]
        assert manager.rollbacks == 1

    def test_rollback_when_target_inconsistent_then_no_op(self):
        """A rollback with nothing to undo returns None and is not counted."""
        # Arrange
        manager = CheckpointManager()
        target = RecordingTarget(refuse=True)

        # Act
        restored = manager.rollback(target)

        # Assert
        assert restored is None
        assert manager.rollbacks == 0

    def test_init_when_zero_depth_then_raises_error(self):
        with pytest.raises(ValueError, match="depth must be at least 1"):
            CheckpointManager(depth=0)

    def test_clear_when_called_then_back_to_origin(self):
        manager = CheckpointManager()
        manager.add(Checkpoint(content_cursor=4))
        manager.clear()
        assert manager.latest.content_cursor == 0
