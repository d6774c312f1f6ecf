"""Logging helpers shared by signalgraph modules and the CLI."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Callable

if TYPE_CHECKING:  # pragma: no cover
    from .models import ScanEvent

_ROOT = "signalgraph"
_CONSOLE_FORMAT = "[signalgraph] %(levelname)s %(message)s"
_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def get_logger(name: str | None = None) -> logging.Logger:
    """Return ``signalgraph.<name>``, or the package logger when ``name`` is empty."""
    return logging.getLogger(f"{_ROOT}.{name}" if name else _ROOT)


def configure_logging(
    *, verbose: bool = False, log_file: Path | None = None
) -> logging.Logger:
    """Send signalgraph records to stderr and, optionally, to ``log_file``."""
    level = logging.DEBUG if verbose else logging.INFO
    logger = logging.getLogger(_ROOT)
    logger.setLevel(level)
    logger.propagate = False

    # Handlers are replaced wholesale; main() may run several times per process.
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    sinks: list[logging.Handler] = [logging.StreamHandler()]
    formats = [_CONSOLE_FORMAT]
    if log_file is not None:
        sinks.append(logging.FileHandler(log_file, encoding="utf-8"))
        formats.append(_FILE_FORMAT)
    for handler, fmt in zip(sinks, formats):
        handler.setLevel(level)
        handler.setFormatter(logging.Formatter(fmt))
        logger.addHandler(handler)

    return logger


def scan_event_logger(logger: logging.Logger | None = None) -> Callable[["ScanEvent"], None]:
    """Build a scanner progress callback that writes each lifecycle event to ``logger``."""
    target = logger or get_logger("progress")

    def _log(event: "ScanEvent") -> None:
        if event.kind == "scan_failed":
            target.error("Scan of %s failed: %s", event.root, event.error)
        elif event.kind == "scan_progress":
            target.debug("Parsed %d/%d files", event.files_processed, event.total_files)
        else:
            target.debug("%s (%s) %s", event.kind, event.mode, event.root)

    return _log


__all__ = ["configure_logging", "get_logger", "scan_event_logger"]
