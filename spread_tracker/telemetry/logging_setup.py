"""Logging setup: JSON lines to a daily-rotated file and to stderr."""
from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from logging import Logger
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Iterable

LOG_FILE_NAME = "tracker_current.jsonl"

# Standard LogRecord attributes that only add noise to a JSON line.
_SKIPPED_ATTRS = frozenset({"args", "msg", "levelno", "msecs", "relativeCreated", "exc_text", "stack_info"})

# httpx logs every request URL at INFO; Telegram URLs embed the bot token.
_QUIET_LOGGERS: tuple[str, ...] = ("httpx", "httpcore", "telegram", "ccxt")


class JsonFormatter(logging.Formatter):
    """One JSON object per record; ``extra=`` fields become top-level keys."""

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        payload: Dict[str, Any] = {
            "timestamp": created.isoformat(),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        for key, value in vars(record).items():
            if key.startswith("_") or key in payload or key in _SKIPPED_ATTRS:
                continue
            try:
                json.dumps(value)
            except (TypeError, ValueError):
                continue
            payload[key] = value
        return json.dumps(payload, ensure_ascii=False)


def _with_json(handler: logging.Handler) -> logging.Handler:
    handler.setFormatter(JsonFormatter())
    return handler


def quiet_third_party(names: Iterable[str] = _QUIET_LOGGERS, level: int = logging.WARNING) -> None:
    for name in names:
        logging.getLogger(name).setLevel(level)


def configure_logging(
    *,
    log_dir: Path,
    level: str = "INFO",
    logger_name: str = "spread_tracker",
    backup_days: int = 14,
) -> Logger:
    """Route the ``spread_tracker`` logger tree to JSON handlers.

    The file rotates at midnight and keeps ``backup_days`` old files. The
    logger does not propagate, so records are not duplicated by the root
    logger.
    """

    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / LOG_FILE_NAME

    logger = logging.getLogger(logger_name)
    logger.setLevel(level.upper())
    logger.handlers.clear()
    logger.addHandler(
        _with_json(TimedRotatingFileHandler(log_file, when="midnight", backupCount=backup_days, encoding="utf-8"))
    )
    logger.addHandler(_with_json(logging.StreamHandler()))
    logger.propagate = False
    quiet_third_party()

    logger.debug("JSON logging configured", extra={"log_file": str(log_file), "backup_days": backup_days})
    return logger


__all__ = ["JsonFormatter", "LOG_FILE_NAME", "configure_logging", "quiet_third_party"]
