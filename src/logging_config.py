"""Central logging configuration for the command-line tool."""

from __future__ import annotations

import logging
import logging.config
import os
from typing import Optional

from compress.context import CONSOLE_LOGGER

_CONFIGURED = False


def configure_logging(default_level: Optional[str] = None) -> None:
    """Send all log output to stderr; stdout carries compressed data.

    The console logger prints bare ``path: message`` lines for users. Every
    other logger is internal tracing, silent unless ``LOG_LEVEL`` asks for it.
    """

    global _CONFIGURED
    if _CONFIGURED:
        return

    level_name = (default_level or os.getenv("LOG_LEVEL", "WARNING")).upper()
    formatter = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "standard": {
                    "format": formatter,
                    "datefmt": "%Y-%m-%d %H:%M:%S",
                },
                "console": {
                    "format": "%(message)s",
                },
            },
            "handlers": {
                "stderr": {
                    "class": "logging.StreamHandler",
                    "formatter": "standard",
                    "stream": "ext://sys.stderr",
                },
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "console",
                    "stream": "ext://sys.stderr",
                },
            },
            "root": {
                "level": level_name,
                "handlers": ["stderr"],
            },
            "loggers": {
                CONSOLE_LOGGER: {
                    "level": "INFO",
                    "handlers": ["console"],
                    "propagate": False,
                },
            },
        }
    )

    _CONFIGURED = True
