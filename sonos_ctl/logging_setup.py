"""Logging for one ``sonos`` invocation.

Records go to a rotating file next to the stored credentials; stderr only
receives them when console logging is switched on, because stdout carries
command output. Every record has a short ``tag`` naming the subsystem that
wrote it (AUTH, HTTP, STORE, CLI, or GEN for anything else).
"""

from __future__ import annotations

import logging
import sys
import time
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from sonos_ctl.config import settings

LOGGER_NAME = "sonos_ctl"
DEFAULT_MAX_BYTES = 1024 * 1024
DEFAULT_BACKUP_COUNT = 2
DEFAULT_TAG = "GEN"

LINE_FORMAT = "%(asctime)s %(levelname)-7s %(tag)-5s %(message)s"

# Matched against the dotted module path, innermost segment first.
SUBSYSTEM_TAGS = {
    "oauth_flow": "AUTH",
    "sonos_client": "AUTH",
    "dispatcher": "HTTP",
    "endpoints": "HTTP",
    "token_storage": "STORE",
    "cli": "CLI",
    "targets": "CLI",
}


class _DefaultTag(logging.Filter):
    """Records logged without ``extra={"tag": ...}`` still format cleanly."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "tag"):
            record.tag = DEFAULT_TAG
        return True


def tag_for_module(module_name: str) -> str:
    for part in reversed(module_name.lower().split(".")):
        if part in SUBSYSTEM_TAGS:
            return SUBSYSTEM_TAGS[part]
    return DEFAULT_TAG


def _level_from_settings() -> int:
    level = logging.getLevelName(str(settings.SONOS_LOG_LEVEL).upper())
    return level if isinstance(level, int) else logging.INFO


def _attach(logger: logging.Logger, handler: logging.Handler) -> None:
    formatter = logging.Formatter(LINE_FORMAT, datefmt="%Y-%m-%dT%H:%M:%SZ")
    formatter.converter = time.gmtime
    handler.setFormatter(formatter)
    handler.addFilter(_DefaultTag())
    logger.addHandler(handler)


def configure_logging(
    *,
    verbose: bool = False,
    log_path: Optional[Path] = None,
    console: Optional[bool] = None,
    max_bytes: int = DEFAULT_MAX_BYTES,
    backup_count: int = DEFAULT_BACKUP_COUNT,
    force: bool = False,
) -> logging.Logger:
    """Attach handlers to the ``sonos_ctl`` logger once per process.

    ``verbose`` lowers the level to DEBUG even on an already configured
    logger; ``force`` rebuilds the handlers (tests point ``log_path`` at a
    temporary directory this way).
    """
    logger = logging.getLogger(LOGGER_NAME)
    if logger.handlers and not force:
        if verbose:
            logger.setLevel(logging.DEBUG)
        return logger

    reset_logging()
    logger.setLevel(logging.DEBUG if verbose else _level_from_settings())
    logger.propagate = False

    path = Path(log_path) if log_path is not None else settings.log_path
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        _attach(logger, RotatingFileHandler(path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"))
    except OSError as exc:
        print(f"sonos: logging to {path} disabled: {exc}", file=sys.stderr)

    if settings.SONOS_LOG_TO_CONSOLE if console is None else console:
        _attach(logger, logging.StreamHandler(sys.stderr))

    if not logger.handlers:
        logger.addHandler(logging.NullHandler())
    return logger


def reset_logging() -> None:
    """Close and detach every handler of the ``sonos_ctl`` logger."""
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
