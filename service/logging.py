"""Structured logging for the inference service.

Every line is rendered as ``key=value`` pairs. While a clip is being
processed, ``clip_context`` tags each line with the clip name and the
hydrophone it came from, and logs how long the clip took once the block
exits.

Example:
    >>> from service.logging import setup_logging, clip_context
    >>> setup_logging("INFO")
    >>> with clip_context("rpi_orcasound_lab_2024_07_01_12_00_00_-07:00", "rpi_orcasound_lab"):
    ...     logger.info("scoring")
"""

import logging
import sys
import time
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator


clip_id_var: ContextVar[str] = ContextVar("clip_id", default="")
source_id_var: ContextVar[str] = ContextVar("source_id", default="")

logger = logging.getLogger(__name__)

# Loggers that are chatty at INFO and only useful when something breaks.
NOISY_LOGGERS = ("httpx", "httpcore")


def _quote(text: str) -> str:
    return '"' + text.replace("\n", " | ").replace('"', '\\"') + '"'


class StructuredFormatter(logging.Formatter):
    """Structured log formatter producing key=value output.

    Formats log messages as:
        timestamp=ISO8601 level=LEVEL logger=NAME source_id=ID clip_id=ID message="MSG"

    Records carrying an ``elapsed_ms`` extra get an ``elapsed_ms=`` field.
    """

    def format(self, record: logging.LogRecord) -> str:
        parts = [
            f"timestamp={self.formatTime(record, self.datefmt)}",
            f"level={record.levelname}",
            f"logger={record.name}",
            f"source_id={source_id_var.get() or '-'}",
            f"clip_id={clip_id_var.get() or '-'}",
            f"message={_quote(record.getMessage())}",
        ]

        elapsed = getattr(record, "elapsed_ms", None)
        if elapsed is not None:
            parts.append(f"elapsed_ms={elapsed:.1f}")

        if record.exc_info:
            parts.append(f"exception={_quote(self.formatException(record.exc_info))}")

        return " ".join(parts)


def setup_logging(log_level: str = "INFO") -> None:
    """Send all logging to stdout through ``StructuredFormatter``.

    Existing root handlers are replaced, so calling this twice is harmless.

    Args:
        log_level: Log level (DEBUG, INFO, WARNING, ERROR).
    """
    level = log_level.upper()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(StructuredFormatter(datefmt="%Y-%m-%dT%H:%M:%S%z"))
    handler.setLevel(level)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for existing in root_logger.handlers[:]:
        root_logger.removeHandler(existing)
    root_logger.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


@contextmanager
def clip_context(clip_id: str, source_id: str = "") -> Iterator[None]:
    """Tag log lines emitted inside the block and time the block."""
    clip_token = clip_id_var.set(clip_id)
    source_token = source_id_var.set(source_id)
    started = time.perf_counter()
    try:
        yield
    finally:
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info("Clip finished", extra={"elapsed_ms": elapsed_ms})
        source_id_var.reset(source_token)
        clip_id_var.reset(clip_token)
