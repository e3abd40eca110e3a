"""Lightweight logging helper for console-tagged messages.

Every module logs through `log_event` with a short component tag
(Clock, Phase, Cadence, Audio, Session, Config, ...). Records carry the
milliseconds since startup so tick and beat timing can be read off the log.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

LOG_FORMAT = "%(relativeCreated)9.0fms [%(levelname)s][%(tag)s] %(message)s"

_logger = logging.getLogger("runwalk")
if not _logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    _logger.addHandler(handler)
    _logger.setLevel(logging.INFO)
    _logger.propagate = False


class _TagAdapter(logging.LoggerAdapter):
    def process(self, msg: Any, kwargs: dict[str, Any]):
        tag = kwargs.pop("tag", "App")
        kwargs.setdefault("extra", {})["tag"] = tag
        return msg, kwargs


_logger_adapter = _TagAdapter(_logger, {})


def _level_value(level: str | None) -> int:
    level_name = (level or "INFO").upper()
    value = getattr(logging, level_name, logging.INFO)
    return value if isinstance(value, int) else logging.INFO


def log_event(level: str, tag: str, message: str, **fields: Any) -> None:
    """Log a message with level+tag, appending key=value fields when provided."""
    if fields:
        extras = " ".join(f"{k}={v}" for k, v in fields.items())
        message = f"{message} | {extras}"
    _logger_adapter.log(_level_value(level), message, tag=tag)


def set_log_level(level: str) -> None:
    """Set global log level (DEBUG/INFO/WARNING/ERROR)."""
    _logger.setLevel(_level_value(level))


def get_log_level() -> str:
    """Return current global log level name."""
    return logging.getLevelName(_logger.level)


def add_log_file(path: str | Path) -> Path:
    """Also write every record to `path` (appending). Returns the resolved path."""
    log_path = Path(path).expanduser().resolve()
    for existing in _logger.handlers:
        if isinstance(existing, logging.FileHandler) and Path(existing.baseFilename) == log_path:
            return log_path
    log_path.parent.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(log_path, encoding="utf-8")
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    _logger.addHandler(file_handler)
    return log_path
