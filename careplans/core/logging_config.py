"""Logging configuration shared by the web app and command-line helpers."""

from __future__ import annotations

import logging
import logging.config

from careplans.core.config import settings


def _logging_dict(level: str) -> dict:
    return {
        "version": 1,
        "disable_existing_loggers": False,  # keep uvicorn/fastapi loggers
        "formatters": {
            "default": {
                "format": "%(asctime)s %(levelname)s %(name)s: %(message)s",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": level,
                "formatter": "default",
            },
        },
        "root": {"level": level, "handlers": ["console"]},
        "loggers": {
            "careplans": {
                "level": level,
                "handlers": ["console"],
                "propagate": False,
            },
        },
    }


def setup_logging(level: str | None = None) -> None:
    """Install the console handler for the ``careplans`` logger tree."""

    resolved = (level or settings.log_level or "INFO").upper()
    if not isinstance(logging.getLevelName(resolved), int):
        resolved = "INFO"
    logging.config.dictConfig(_logging_dict(resolved))
