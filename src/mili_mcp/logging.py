"""JSON-lines logging for the mili MCP server.

Every record under the ``mili_mcp`` logger goes to ``<log_dir>/mili.log`` as
one JSON object per line. The file rotates at 5MB and keeps 3 backups. Tool
dispatch adds ``tool``, ``args``, ``duration_ms`` and ``error`` through
:func:`tool_extra`.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from datetime import UTC, datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

LOGGER_NAME = "mili_mcp"
_LOG_FILENAME = "mili.log"
_MAX_BYTES = 5 * 1024 * 1024
_BACKUP_COUNT = 3
# String arguments longer than this are shortened before logging.
_MAX_ARG_CHARS = 200

_setup_lock = threading.Lock()

# LogRecord attribute -> key in the JSON line.
_EXTRA_FIELDS = {
    "tool": "tool",
    "args_data": "args",
    "duration_ms": "duration_ms",
    "error": "error",
}


class _JsonLineFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        stamp = datetime.fromtimestamp(record.created, UTC).isoformat(timespec="milliseconds")
        line: dict[str, Any] = {
            "ts": stamp.replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        for attr, key in _EXTRA_FIELDS.items():
            if hasattr(record, attr):
                line[key] = getattr(record, attr)
        if record.exc_info and record.exc_info[1]:
            line["exception"] = str(record.exc_info[1])
        return json.dumps(line, default=str)


def shorten_args(arguments: dict[str, Any]) -> dict[str, Any]:
    """Copy of tool *arguments* with long strings cut down (HTML bodies, plans)."""
    out: dict[str, Any] = {}
    for key, value in arguments.items():
        if isinstance(value, str) and len(value) > _MAX_ARG_CHARS:
            out[key] = value[:_MAX_ARG_CHARS] + f"... ({len(value)} chars)"
        else:
            out[key] = value
    return out


def tool_extra(
    tool: str,
    arguments: dict[str, Any],
    *,
    duration_ms: float | None = None,
    error: str | None = None,
) -> dict[str, Any]:
    """Build the ``extra=`` mapping for a tool dispatch record."""
    extra: dict[str, Any] = {"tool": tool, "args_data": shorten_args(arguments)}
    if duration_ms is not None:
        extra["duration_ms"] = duration_ms
    if error is not None:
        extra["error"] = error
    return extra


def setup_logging(log_dir: Path) -> logging.Logger:
    """Attach the rotating ``mili.log`` handler and return the package logger.

    Creates *log_dir* if needed. Calling again with the same directory is a
    no-op; a different directory replaces the previous file handler.
    """
    logger = logging.getLogger(LOGGER_NAME)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / _LOG_FILENAME
    target = os.path.abspath(log_path)

    with _setup_lock:
        for existing in [h for h in logger.handlers if isinstance(h, RotatingFileHandler)]:
            if existing.baseFilename == target:
                return logger
            logger.removeHandler(existing)
            existing.close()

        handler = RotatingFileHandler(log_path, maxBytes=_MAX_BYTES, backupCount=_BACKUP_COUNT, encoding="utf-8")
        handler.setFormatter(_JsonLineFormatter())
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
    return logger
