"""Logging setup for the client: JSON lines to a rotating file, plain text to stderr."""

from __future__ import annotations

import json
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

__all__ = ["setup_logging", "JsonFormatter"]

_MARKER = "_audioctl_handler"


def _json_payload(record: logging.LogRecord) -> str:
    base = {
        "level": record.levelname,
        "logger": record.name,
        "msg": record.getMessage(),
    }
    timestamp = getattr(record, "asctime", None)
    if timestamp:
        base["time"] = timestamp
    extra = getattr(record, "extra", None)
    if isinstance(extra, dict):
        base.update(extra)
    if record.exc_info:
        base["exc"] = logging.Formatter().formatException(record.exc_info)
    return json.dumps(base, ensure_ascii=False)


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        record.asctime = self.formatTime(record)
        return _json_payload(record)


def setup_logging(
    level: str = "INFO",
    *,
    logfile: Optional[Path] = None,
    max_bytes: int = 5_000_000,
    backup_count: int = 3,
    console_level: str = "WARNING",
) -> logging.Logger:
    """Configure the ``audioctl`` logger tree; safe to call more than once."""

    logger = logging.getLogger("audioctl")
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    logger.setLevel(numeric_level)
    for handler in list(logger.handlers):
        if getattr(handler, _MARKER, False):
            logger.removeHandler(handler)
            handler.close()
    logger.propagate = False

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(getattr(logging, console_level.upper(), logging.WARNING))
    console.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    setattr(console, _MARKER, True)
    logger.addHandler(console)

    if logfile is not None:
        logfile.parent.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(logfile, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8")
        handler.setLevel(numeric_level)
        handler.setFormatter(JsonFormatter())
        setattr(handler, _MARKER, True)
        logger.addHandler(handler)

    return logger
