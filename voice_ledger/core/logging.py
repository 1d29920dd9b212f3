"""Logging setup driven by the ``logging`` settings section."""

from __future__ import annotations

import logging.config

from voice_ledger.core.config import LoggingSettings


def configure_logging(settings: LoggingSettings) -> None:
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {"format": settings.format},
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                },
            },
            "loggers": {
                "voice_ledger": {"level": settings.level.upper()},
                "uvicorn": {"handlers": ["console"], "level": "INFO", "propagate": False},
            },
            "root": {"handlers": ["console"], "level": "WARNING"},
        }
    )


__all__ = ["configure_logging"]
