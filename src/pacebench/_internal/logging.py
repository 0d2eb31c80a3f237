"""Logging setup for the sender and receiver processes.

Both processes log to stderr under the ``pacebench`` namespace. Every record
is stamped with the process role (``sender``, ``kafka-sender`` or
``receiver``), so the interleaved output of a sender and a receiver sharing
a terminal or a log collector can be told apart.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime

_TEXT_FORMAT = "%(asctime)s [%(levelname)-8s] %(role)s %(name)s: %(message)s"


class _RoleFilter(logging.Filter):
    """Attaches the process role to every record passing the handler."""

    def __init__(self, role: str) -> None:
        super().__init__()
        self.role = role

    def filter(self, record: logging.LogRecord) -> bool:
        record.role = self.role
        return True


class _JsonFormatter(logging.Formatter):
    """One JSON object per line: timestamp, level, role, logger, message."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "role": getattr(record, "role", ""),
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info and record.exc_info[1] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry)


def setup_logging(
    level: int = logging.INFO,
    *,
    json_format: bool = False,
    role: str = "pacebench",
) -> logging.Logger:
    """Configure and return the ``pacebench`` logger.

    The first call installs one stderr handler. Later calls reuse it and
    only update the level, the role and the format, so the CLI and tests can
    call the sender and receiver entry points repeatedly in one process.

    Args:
        level: Logging level. ``--verbose`` on the CLI maps to DEBUG.
        json_format: Emit one JSON object per line instead of plain text.
        role: Process role stamped on every record.

    Returns:
        The configured ``pacebench`` logger.
    """
    logger = logging.getLogger("pacebench")
    logger.setLevel(level)
    # Records go to our handler only, never to the root logger's
    logger.propagate = False

    if logger.handlers:
        handler = logger.handlers[0]
        if isinstance(handler, logging.StreamHandler):
            handler.setStream(sys.stderr)
    else:
        handler = logging.StreamHandler(sys.stderr)
        logger.addHandler(handler)

    handler.setLevel(level)
    for old in list(handler.filters):
        handler.removeFilter(old)
    handler.addFilter(_RoleFilter(role))

    if json_format:
        handler.setFormatter(_JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(_TEXT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    return logger


def get_logger(name: str) -> logging.Logger:
    """Return ``pacebench.<name>``, e.g. ``get_logger("engine.pacer")``."""
    return logging.getLogger(f"pacebench.{name}")
