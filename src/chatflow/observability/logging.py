"""Logging setup for chatflow processes.

Everything under the ``chatflow`` logger goes to the console in a
human-readable line format and, optionally, to a rotating file as one JSON
object per record. Interpreter step events live on ``chatflow.trace`` and
stay quiet unless tracing is switched on.
"""

import logging
import logging.config
from typing import Any

PACKAGE_LOGGER = "chatflow"
TRACE_LOGGER = "chatflow.trace"

CONSOLE_FORMAT = "%(asctime)s %(levelname)-7s [%(name)s] %(message)s"
JSON_FIELDS = "%(asctime)s %(name)s %(levelname)s %(message)s"
ROTATE_BYTES = 10 * 1024 * 1024
ROTATE_KEEP = 5


def _file_handler(path: str, level: str) -> dict[str, Any]:
    return {
        "class": "logging.handlers.RotatingFileHandler",
        "filename": path,
        "maxBytes": ROTATE_BYTES,
        "backupCount": ROTATE_KEEP,
        "encoding": "utf-8",
        "formatter": "jsonl",
        "level": level,
    }


def build_logging_config(level: str, json_file: str | None, trace: bool) -> dict[str, Any]:
    """Return the ``dictConfig`` mapping for the given options."""
    # Step events are emitted at DEBUG; handlers have to admit them
    floor = "DEBUG" if trace else level

    handlers: dict[str, Any] = {
        "stderr": {"class": "logging.StreamHandler", "formatter": "plain", "level": floor},
    }
    if json_file:
        handlers["jsonfile"] = _file_handler(json_file, floor)

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "plain": {"format": CONSOLE_FORMAT, "datefmt": "%H:%M:%S"},
            "jsonl": {"()": "pythonjsonlogger.json.JsonFormatter", "format": JSON_FIELDS},
        },
        "handlers": handlers,
        "loggers": {
            PACKAGE_LOGGER: {"handlers": list(handlers), "level": level, "propagate": False},
            TRACE_LOGGER: {"level": "DEBUG" if trace else "WARNING"},
        },
        "root": {"handlers": ["stderr"], "level": "WARNING"},
    }


def setup_logging(level: str = "INFO", json_file: str | None = None, trace: bool = False) -> None:
    """Install handlers for the ``chatflow`` logger tree.

    Args:
        level: Threshold for chatflow's own loggers.
        json_file: When set, also write JSON lines to this rotating file.
        trace: Show interpreter step events regardless of ``level``.
    """
    logging.config.dictConfig(build_logging_config(level, json_file, trace))


class ContextLogger:
    """Named logger that hands out adapters carrying fixed ``extra`` fields."""

    def __init__(self, name: str):
        self.logger = logging.getLogger(name)

    def with_context(self, **context: Any) -> logging.LoggerAdapter:
        return logging.LoggerAdapter(self.logger, context)
