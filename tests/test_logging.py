"""
Tests for logging setup.
"""

import logging
import os

import pytest

from main import log_detections
from models.detection import Detection, Rect
from ops.logging import setup_logging


def _is_ours(handler):
    return isinstance(handler, logging.FileHandler) or type(handler) is logging.StreamHandler


@pytest.fixture
def root_logger():
    """Root logger; handlers installed by setup_logging are closed afterwards."""
    root = logging.getLogger()
    level = root.level
    yield root
    for handler in [h for h in root.handlers if _is_ours(h)]:
        root.removeHandler(handler)
        handler.close()
    root.setLevel(level)


def test_file_and_stream_handlers(tmp_path, root_logger):
    log_path = tmp_path / "logs" / "nested" / "detector.log"

    setup_logging(str(log_path), "DEBUG")

    handlers = root_logger.handlers
    assert root_logger.level == logging.DEBUG
    assert os.path.isdir(log_path.parent)
    file_handlers = [h for h in handlers if isinstance(h, logging.FileHandler)]
    assert [h.baseFilename for h in file_handlers] == [str(log_path)]
    assert any(type(h) is logging.StreamHandler for h in handlers)


def test_messages_reach_log_file(tmp_path, root_logger):
    log_path = tmp_path / "detector.log"

    setup_logging(str(log_path), "INFO")
    logging.info("detector started")
    logging.debug("hidden")
    for handler in root_logger.handlers:
        handler.flush()

    text = log_path.read_text()
    assert "root - INFO - detector started" in text
    assert "hidden" not in text


def test_empty_path_logs_to_stream_only(tmp_path, monkeypatch, root_logger):
    monkeypatch.chdir(tmp_path)

    setup_logging("", "WARNING")

    handlers = root_logger.handlers
    assert len(handlers) == 1
    assert type(handlers[0]) is logging.StreamHandler
    assert root_logger.level == logging.WARNING
    assert list(tmp_path.iterdir()) == []


def test_detections_logged_as_records(tmp_path, root_logger):
    log_path = tmp_path / "detector.log"
    setup_logging(str(log_path), "INFO")

    log_detections([Detection(2, "car", 0.91234, Rect(0.1, 0.2, 0.3, 0.4))])
    for handler in root_logger.handlers:
        handler.flush()

    text = log_path.read_text()
    assert "1 detection(s)" in text
    assert "'label': 'car', 'score': 0.9123, 'bbox': [0.1, 0.2, 0.3, 0.4]" in text
