"""Logging setup shared by the featuremap CLI, service and pipeline."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

_ROOT = "featuremap"
_CONSOLE_FORMAT = "[featuremap] %(levelname)s %(message)s"
_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a logger below the ``featuremap`` namespace."""
    return logging.getLogger(f"{_ROOT}.{name}" if name else _ROOT)


def configure_logging(
    *, verbose: bool = False, log_file: Path | None = None
) -> logging.Logger:
    """Install console (and optional file) handlers on the featuremap logger."""
    level = logging.DEBUG if verbose else logging.INFO
    logger = logging.getLogger(_ROOT)
    logger.setLevel(level)
    logger.propagate = False

    # Repeated CLI invocations in one process must not stack handlers.
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    console = logging.StreamHandler()
    console.setLevel(level)
    console.setFormatter(logging.Formatter(_CONSOLE_FORMAT))
    logger.addHandler(console)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        sink = logging.FileHandler(log_file, encoding="utf-8")
        sink.setLevel(level)
        sink.setFormatter(logging.Formatter(_FILE_FORMAT))
        logger.addHandler(sink)

    return logger


def log_warnings(logger: logging.Logger, warnings: Iterable[str], *, context: str) -> int:
    """Emit each collected summary warning and return how many were logged."""
    count = 0
    for message in warnings:
        logger.warning("%s: %s", context, message)
        count += 1
    return count


__all__ = ["configure_logging", "get_logger", "log_warnings"]
