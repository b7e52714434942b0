"""Logging configuration using structlog."""

import logging
import sys
from collections.abc import MutableMapping
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

import structlog

from solarsync.config.settings import Settings

# Event keys whose values are vendor credentials or session material
SENSITIVE_KEYS = frozenset(
    {
        "password",
        "app_secret",
        "appsecret",
        "access_token",
        "refresh_token",
        "token",
        "cron_secret",
        "authorization",
        "credentials",
    }
)

MASK = "***"

# Chatty third-party loggers and the lowest level we let through
_NOISY_LOGGERS = {
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
    "uvicorn.access": logging.WARNING,
}


def mask_secrets(
    logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """Replace credential values in an event with a mask."""
    for key in event_dict:
        if key.lower() in SENSITIVE_KEYS and event_dict[key] is not None:
            event_dict[key] = MASK
    return event_dict


def _build_renderer(settings: Settings) -> list[structlog.types.Processor]:
    log_format = settings.log_format
    if log_format == "auto":
        log_format = "console" if sys.stdout.isatty() else "json"

    if log_format == "console":
        return [structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())]
    return [structlog.processors.dict_tracebacks, structlog.processors.JSONRenderer()]


def configure_logging(settings: Settings) -> None:
    """Configure structlog and standard logging.

    Structlog events are rendered to a string and handed to the standard
    ``logging`` module, so sync events and library logs share the console
    handler and, when ``log_file`` is set, the rotating file handler.

    Args:
        settings: Application settings containing logging configuration.
    """
    log_level = getattr(logging, settings.log_level)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]

    if settings.log_file:
        log_path = Path(settings.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            RotatingFileHandler(
                filename=log_path,
                maxBytes=settings.log_max_bytes,
                backupCount=settings.log_backup_count,
            )
        )

    for handler in handlers:
        handler.setLevel(log_level)

    logging.basicConfig(
        level=log_level,
        handlers=handlers,
        format="%(message)s",
        force=True,
    )

    for name, level in _NOISY_LOGGERS.items():
        logging.getLogger(name).setLevel(max(log_level, level))

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_logger_name,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            mask_secrets,
            *_build_renderer(settings),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> Any:
    """Get a structured logger instance.

    Args:
        name: Optional logger name (typically __name__).

    Returns:
        A bound structlog logger.
    """
    return structlog.get_logger(name)
