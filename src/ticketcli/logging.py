"""Structured JSON logging for ticketcli.

Writes JSONL to <config dir>/ticketcli.log with rotation (5MB, 3 backups).
``--verbose`` adds a plain-text stderr handler at DEBUG.
"""

from __future__ import annotations

import json
import logging
import os
import sys
import threading
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

_LOG_FILENAME = "ticketcli.log"
_setup_lock = threading.Lock()
_MAX_BYTES = 5 * 1024 * 1024  # 5MB
_BACKUP_COUNT = 3
_EXTRA_KEYS = ("method", "url", "status", "duration_ms", "error")


class _JsonFormatter(logging.Formatter):
    """Format log records as single-line JSON."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": self.formatTime(record, datefmt="%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        for key in _EXTRA_KEYS:
            if hasattr(record, key):
                entry[key] = getattr(record, key)
        if record.exc_info and record.exc_info[1]:
            entry["exception"] = str(record.exc_info[1])
        return json.dumps(entry, default=str)


def _is_console_handler(handler: logging.Handler) -> bool:
    return type(handler) is logging.StreamHandler and getattr(handler, "stream", None) is sys.stderr


def setup_logging(log_dir: Path | None = None, *, verbose: bool = False) -> logging.Logger:
    """Set up logging for the ``ticketcli`` logger hierarchy.

    With ``log_dir`` set, records go to a rotating JSONL file there. Repeated
    calls for the same file are no-ops; a different file replaces the old
    handler.
    """
    logger = logging.getLogger("ticketcli")

    with _setup_lock:
        if log_dir is not None:
            log_path = log_dir / _LOG_FILENAME
            target_filename = os.path.abspath(str(log_path))
            existing = False
            for h in logger.handlers[:]:
                if not isinstance(h, RotatingFileHandler):
                    continue
                if h.baseFilename == target_filename:
                    existing = True
                    continue
                logger.removeHandler(h)
                h.close()
            if not existing:
                log_dir.mkdir(parents=True, exist_ok=True)
                handler = RotatingFileHandler(
                    str(log_path),
                    maxBytes=_MAX_BYTES,
                    backupCount=_BACKUP_COUNT,
                )
                handler.setFormatter(_JsonFormatter())
                logger.addHandler(handler)

        if verbose and not any(_is_console_handler(h) for h in logger.handlers):
            console = logging.StreamHandler(sys.stderr)
            console.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
            console.setLevel(logging.DEBUG)
            logger.addHandler(console)

        logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    return logger
