"""
Unit tests for logging utilities.

Verified: 2026-10-19
"""

import logging
from queue import Queue

import pytest

from streaming_toolkit.utils import (
    attach_queue_handler,
    configure_logging,
    detach_queue_handler,
)


class TestQueueHandler:
    """Tests for attach_queue_handler() and detach_queue_handler()."""

    def test_attach_when_debug_logged_then_queued_as_info(self):
        # Arrange
        log_queue = Queue()
        logger = logging.getLogger("streaming_toolkit.tests.queue")
        logger.setLevel(logging.DEBUG)
        handler = attach_queue_handler(log_queue, logger.name, logging.DEBUG)

        # Act
        try:
            logger.debug("frame processed")
        finally:
            detach_queue_handler(handler, logger.name)

        # Assert
        assert log_queue.get_nowait() == ("frame processed", "INFO")

    def test_detach_when_removed_then_nothing_queued(self):
        # Arrange
        log_queue = Queue()
        logger = logging.getLogger("streaming_toolkit.tests.detached")
        handler = attach_queue_handler(log_queue, logger.name)

        # Act
        detach_queue_handler(handler, logger.name)
        logger.warning("dropped")

        # Assert
        assert log_queue.empty()


class TestConfigureLogging:
    """Tests for configure_logging()."""

    def test_configure_when_unknown_level_then_raises_error(self):
        with pytest.raises(ValueError, match="Unknown log level"):
            configure_logging("chatty")

    def test_configure_when_level_name_then_root_level_set(self):
        # Arrange
        root = logging.getLogger()
        handlers, level = root.handlers[:], root.level

        # Act
        try:
            configure_logging("debug")
            configured = root.level
        finally:
            root.handlers[:] = handlers
            root.setLevel(level)

        # Assert
        assert configured == logging.DEBUG
