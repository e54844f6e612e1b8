"""Central logging configuration for the application.

Applies a root stdout handler so all module loggers emit without per-module
setup. The ``audit`` logger gets its own handler and does not propagate, so
audit lines can be routed separately. Keeps uvicorn loggers visible and avoids
duplicate handlers on reloads.
"""
from __future__ import annotations
import logging
import os
from logging.config import dictConfig


def _dict_config(level: str) -> dict:
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": "%(asctime)s %(levelname)s:%(name)s:%(message)s",
            },
            "audit": {
                "format": "%(asctime)s AUDIT %(message)s",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": level,
                "formatter": "default",
                "stream": "ext://sys.stdout",
            },
            "audit": {
                "class": "logging.StreamHandler",
                "level": "INFO",
                "formatter": "audit",
                "stream": "ext://sys.stdout",
            },
        },
        "root": {"level": level, "handlers": ["console"]},
        "loggers": {
            "audit": {"level": "INFO", "handlers": ["audit"], "propagate": False},
            "uvicorn": {"level": "INFO", "handlers": ["console"], "propagate": False},
            "uvicorn.error": {"level": "INFO", "handlers": ["console"], "propagate": False},
            "uvicorn.access": {"level": "INFO", "handlers": ["console"], "propagate": False},
        },
    }


def configure_logging() -> None:
    """Configure application-wide logging once.

    If the root logger already has handlers, return to prevent duplicate output
    (important under reloaders/watchers and pytest's log capture).
    """
    root = logging.getLogger()
    if root.handlers:
        return
    level = (os.getenv("LOG_LEVEL") or "INFO").strip().upper()
    if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
        level = "INFO"
    dictConfig(_dict_config(level))
