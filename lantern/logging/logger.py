# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Structured JSON logger for lantern.

Every record is written as one JSON line carrying a UTC timestamp, the level,
the logger name and the message. Anything passed through `extra=` is merged
into the same object, which is how the training loop reports epoch numbers,
loss values and checkpoint counts:

  {"ts": "2026-...", "level": "INFO", "module": "lantern.training.engine.core",
   "msg": "Epoch finished", "epoch": 3, "loss": 0.41237}

`get_logger` is the only way loggers are created inside the package.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

# Attributes every LogRecord carries; anything else on a record came from `extra`.
_RESERVED_ATTRS: frozenset[str] = frozenset(
    logging.LogRecord("", logging.INFO, "", 0, "", None, None).__dict__
) | {"message", "asctime", "taskName"}

_VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# Level for loggers created without an explicit one; set_package_log_level moves it.
_package_level: str = "INFO"


class JsonFormatter(logging.Formatter):
    """Render a log record as a single-line JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, object] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "module": record.name,
            "msg": record.getMessage(),
        }
        for key, value in record.__dict__.items():
            if key in _RESERVED_ATTRS or key.startswith("_"):
                continue
            entry[key] = value

        if record.exc_info:
            entry["exc"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


def resolve_log_level(level_name: str) -> int:
    """Turn a level name into the matching logging constant."""
    upper = level_name.upper()
    if upper not in _VALID_LOG_LEVELS:
        raise ValueError(
            f"Invalid log level '{level_name}'. Must be one of: {', '.join(_VALID_LOG_LEVELS)}"
        )
    return getattr(logging, upper)


def get_logger(
    name: str,
    log_level: Optional[str] = None,
    log_file: Optional[Path] = None,
) -> logging.Logger:
    """
    Create (or fetch) a structured JSON logger.

    Calling this again for a name that already has handlers only updates the
    level, so module-level loggers can be re-leveled by the CLI at startup.

    Args:
        name: Logger name, normally the calling module's __name__.
        log_level: One of DEBUG, INFO, WARNING, ERROR, CRITICAL. None uses the
            current package level (INFO unless set_package_log_level changed it).
        log_file: Optional file that receives the same JSON lines as stdout.

    Returns:
        A logging.Logger emitting JSON lines.
    """
    logger = logging.getLogger(name)
    level = resolve_log_level(log_level if log_level is not None else _package_level)
    logger.setLevel(level)

    if logger.handlers:
        for handler in logger.handlers:
            handler.setLevel(level)
        return logger

    formatter = JsonFormatter()

    stdout_handler = logging.StreamHandler(stream=sys.stdout)
    stdout_handler.setLevel(level)
    stdout_handler.setFormatter(formatter)
    logger.addHandler(stdout_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(str(log_file), encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.propagate = False
    return logger


def set_package_log_level(log_level: str) -> None:
    """Re-level every lantern logger created so far, and any created later."""
    global _package_level
    level = resolve_log_level(log_level)
    _package_level = log_level.upper()
    for name in list(logging.Logger.manager.loggerDict):
        if name == "lantern" or name.startswith("lantern."):
            logger = logging.getLogger(name)
            logger.setLevel(level)
            for handler in logger.handlers:
                handler.setLevel(level)
