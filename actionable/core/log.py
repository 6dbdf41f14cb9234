"""
Logging setup. Modules log through `logging.getLogger(__name__)`; the CLI calls
configure_logging() once so records render through Rich.
"""
# @file purpose: Configure stdlib logging with a Rich handler.

from __future__ import annotations

import logging
from logging.config import dictConfig
from typing import Any

from .settings import settings


def _logging_dict(level: str) -> dict[str, Any]:
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "rich": {"format": "%(name)s - %(message)s", "datefmt": "[%X]"},
        },
        "handlers": {
            "console": {
                "class": "rich.logging.RichHandler",
                "level": "DEBUG",
                "formatter": "rich",
                "rich_tracebacks": True,
                "show_path": False,
            }
        },
        "loggers": {
            "actionable": {"level": level, "handlers": ["console"], "propagate": False},
        },
    }


def configure_logging(level_name: str | int | None = None) -> None:
    """
    Configure the `actionable` logger tree.

    `level_name` falls back to settings.log_level. Handlers accept DEBUG so the
    logger level alone decides what is shown.
    """
    if level_name is None:
        level_name = settings.log_level
    if isinstance(level_name, int):
        level_name = logging.getLevelName(level_name)
    level = str(level_name).upper()
    if not isinstance(logging.getLevelName(level), int):
        level = "INFO"
    dictConfig(_logging_dict(level))
