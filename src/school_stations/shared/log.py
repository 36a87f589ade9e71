"""
School Stations - Logging Setup

Configures the root logger from config.logging: a stream handler, an
optional file handler, and either the plain text format or one JSON
object per line.
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from pathlib import Path

from school_stations.shared.config import Settings, get_config

TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# LogRecord attributes that are not user-supplied `extra` fields
_RESERVED = set(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


class JsonFormatter(logging.Formatter):
    """Render a record and its `extra` fields as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in record.__dict__.items():
            if key not in _RESERVED and not key.startswith("_"):
                payload[key] = value
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def configure_logging(config: Settings | None = None, level: str | None = None) -> None:
    """
    Configure root logging for a pipeline run.

    Args:
        config: Configuration object (uses default if not provided)
        level: Override for config.logging.level
    """
    config = config or get_config()
    log_config = config.logging

    formatter: logging.Formatter
    if log_config.format == "json":
        formatter = JsonFormatter()
    else:
        formatter = logging.Formatter(TEXT_FORMAT)

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_config.file:
        Path(log_config.file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_config.file))
    for handler in handlers:
        handler.setFormatter(formatter)

    logging.basicConfig(
        level=(level or log_config.level).upper(),
        handlers=handlers,
        force=True,
    )
