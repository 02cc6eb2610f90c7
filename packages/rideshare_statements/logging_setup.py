"""Logging for statement parsing, matching and storage.

``configure_logging`` is called by the CLI (or a host application) when the
process starts. It gives the ``rideshare_statements`` logger one stream
handler and quiets ``pdfminer``, which pdfplumber drives and which logs a
line for every malformed font or object in a statement PDF.

Modules only ask for a logger:

    _logger = get_logger("rideshare_statements.store")

Until logging is configured, records go to a ``NullHandler``, so importing
the package as a library prints nothing.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO

_PKG_LOGGER_NAME = "rideshare_statements"
_LEVEL_ENV_VAR = "RIDESHARE_LOG_LEVEL"
_DEFAULT_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"
# Third-party loggers that flood stderr while extracting statement text.
_NOISY_LOGGERS = ("pdfminer",)
_CONFIGURED = False


def _parse_level(level: int | str | None) -> int:
    if level is None:
        level = os.getenv(_LEVEL_ENV_VAR)
    if isinstance(level, int):
        return level
    if not level:
        return logging.INFO
    level = level.strip().upper()
    if level.isdigit():
        return int(level)
    numeric = logging.getLevelName(level)
    return numeric if isinstance(numeric, int) else logging.INFO


def configure_logging(
    level: int | str | None = None,
    *,
    fmt: str | None = None,
    stream: IO[str] = sys.stderr,
) -> None:
    """Attach the package's stream handler; later calls are no-ops.

    Parameters
    ----------
    level:
        Level as ``int`` or name. ``None`` reads ``RIDESHARE_LOG_LEVEL`` and
        falls back to ``INFO``. Unknown names also fall back to ``INFO``.
    fmt:
        Format string for the handler.
    stream:
        Destination of log records; the CLI passes ``sys.stderr`` so that
        JSON and CSV output on stdout stay clean.
    """

    global _CONFIGURED
    if _CONFIGURED:
        return

    numeric = _parse_level(level)
    logger = logging.getLogger(_PKG_LOGGER_NAME)
    for h in list(logger.handlers):
        if isinstance(h, logging.NullHandler):
            logger.removeHandler(h)

    handler = logging.StreamHandler(stream)
    handler.setFormatter(logging.Formatter(fmt or _DEFAULT_FORMAT))
    logger.addHandler(handler)
    logger.setLevel(numeric)
    logger.propagate = False

    # Keep PDF extraction chatter out unless the driver asked for debugging.
    if numeric > logging.DEBUG:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.ERROR)

    _CONFIGURED = True


def get_logger(name: str) -> logging.Logger:
    """Logger for a ``rideshare_statements.<module>`` name."""

    pkg_logger = logging.getLogger(_PKG_LOGGER_NAME)
    if not _CONFIGURED and not pkg_logger.handlers:
        pkg_logger.addHandler(logging.NullHandler())
    return logging.getLogger(name)


__all__ = ["configure_logging", "get_logger"]
