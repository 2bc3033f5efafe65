"""Logging setup: stdlib handlers for module loggers, structlog for session events."""

from __future__ import annotations

import logging
import logging.config
from pathlib import Path
from typing import Any, Dict, List

import structlog

from .config import LoggingSettings

_NOISY_LOGGERS = ("urllib3", "requests")
_SECRET_FIELDS = frozenset({"api_key", "x-goog-api-key", "key"})
LOG_FILE_NAME = "lens_lyric.log"


def redact_secrets(_logger: Any, _method: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """structlog processor masking credential fields bound to an event."""
    for name in list(event_dict):
        if name.lower() in _SECRET_FIELDS and event_dict[name]:
            event_dict[name] = "***"
    return event_dict


def _handlers(settings: LoggingSettings, level: str) -> Dict[str, Any]:
    handlers: Dict[str, Any] = {
        "console": {"class": "logging.StreamHandler", "formatter": "plain", "level": level},
    }
    if not settings.to_file:
        return handlers
    log_dir = Path(settings.log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    handlers["file"] = {
        "class": "logging.handlers.RotatingFileHandler",
        "filename": str(log_dir / LOG_FILE_NAME),
        "formatter": "plain",
        "maxBytes": settings.max_log_file_size_mb * 1024 * 1024,
        "backupCount": settings.backup_count,
        "encoding": "utf-8",
        "level": level,
    }
    return handlers


def event_processors(json_logs: bool = False) -> List[Any]:
    renderer = structlog.processors.JSONRenderer(ensure_ascii=False) if json_logs else structlog.dev.ConsoleRenderer()
    return [
        structlog.contextvars.merge_contextvars,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.add_log_level,
        redact_secrets,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        renderer,
    ]


def configure_logging(settings: LoggingSettings) -> None:
    level = settings.level.upper()
    handlers = _handlers(settings, level)

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"plain": {"format": "%(asctime)s %(levelname)s %(name)s %(message)s"}},
            "handlers": handlers,
            "loggers": {name: {"level": "WARNING"} for name in _NOISY_LOGGERS},
            "root": {"handlers": list(handlers), "level": level},
        }
    )

    structlog.configure(
        processors=event_processors(settings.json_logs),
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, level, logging.INFO)),
        cache_logger_on_first_use=True,
    )
