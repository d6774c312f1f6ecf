"""Tests for signalgraph.logging."""

from __future__ import annotations

import logging
from pathlib import Path

from signalgraph.logging import configure_logging, get_logger, scan_event_logger
from signalgraph.models import ScanEvent


def test_get_logger_is_namespaced() -> None:
    assert get_logger("pipeline").name == "signalgraph.pipeline"
    assert get_logger().name == "signalgraph"


def test_configure_logging_replaces_handlers(tmp_path: Path) -> None:
    configure_logging()
    logger = configure_logging(verbose=True, log_file=tmp_path / "run.log")

    assert logger.level == logging.DEBUG
    assert len(logger.handlers) == 2
    assert logger.propagate is False

    configure_logging()
    assert len(logger.handlers) == 1


def test_scan_event_logger_reports_failures(caplog) -> None:
    callback = scan_event_logger(logging.getLogger("tests.progress"))

    with caplog.at_level(logging.DEBUG, logger="tests.progress"):
        callback(ScanEvent(kind="scan_progress", root="/game", mode="full", files_processed=2, total_files=4))
        callback(ScanEvent(kind="scan_failed", root="/game", mode="full", error="boom"))

    assert "Parsed 2/4 files" in caplog.text
    assert any(record.levelno == logging.ERROR and "boom" in record.getMessage() for record in caplog.records)
