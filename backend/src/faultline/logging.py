"""Structured logging for the error pipeline.

structlog with stdlib integration. Every event emitted while a failure is
being translated carries the request-scoped context bound by
RequestIDMiddleware (request_id) through structlog.contextvars.
"""

import logging
import logging.config
import sys
from typing import Any

import structlog
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from structlog.stdlib import BoundLogger


class LoggingSettings(BaseSettings):
    """Logging settings from environment variables."""

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    # Human-readable console output instead of JSON lines, for local runs
    log_console: bool = Field(default=False, alias="LOG_CONSOLE")

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )


def _drop_color_message(
    _logger: object,
    _method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """uvicorn duplicates every access message under ``color_message``."""
    event_dict.pop("color_message", None)
    return event_dict


def configure_logging(settings: LoggingSettings) -> None:
    """Route structlog and stdlib logging through one renderer on stdout.

    Called once at import time; tests may call it again with other settings.
    """
    shared: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        _drop_color_message,
    ]

    renderer: Any
    if settings.log_console:
        renderer = structlog.dev.ConsoleRenderer()
    else:
        shared.append(structlog.processors.format_exc_info)
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *shared,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "structured": {
                    "()": structlog.stdlib.ProcessorFormatter,
                    "processor": renderer,
                    "foreign_pre_chain": shared,
                },
            },
            "handlers": {
                "default": {
                    "class": "logging.StreamHandler",
                    "formatter": "structured",
                    "stream": sys.stdout,
                },
            },
            "loggers": {
                "": {
                    "handlers": ["default"],
                    "level": settings.log_level,
                    "propagate": True,
                },
            },
        }
    )


configure_logging(LoggingSettings())


def get_logger(name: str) -> BoundLogger:
    """Get a structured logger, typically ``get_logger(__name__)``.

    Example:
        logger = get_logger(__name__)
        logger.warning("service_exception", status=400, kind="ArgumentError")
    """
    return structlog.get_logger(name)  # type: ignore[no-any-return]
