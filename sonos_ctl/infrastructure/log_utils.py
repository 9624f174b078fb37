"""Call-site logging helpers.

``log_message`` tags each record with the subsystem of the calling module, so
callers only pass the text and a level name.
"""

from __future__ import annotations

import inspect
import logging

from sonos_ctl.logging_setup import configure_logging, tag_for_module


def _caller_module() -> str:
    frame = inspect.currentframe()
    # Skip this helper and log_message itself.
    for _ in range(2):
        if frame is None:
            break
        frame = frame.f_back
    if frame is None:
        return ""
    return frame.f_globals.get("__name__", "")


def log_message(msg: str, level: str = "INFO", tag: str | None = None, **kwargs) -> None:
    """Write ``msg`` at ``level`` ("DEBUG", "INFO", "WARN", "ERROR"...).

    Extra keyword arguments (``exc_info=True`` for instance) go to
    :meth:`logging.Logger.log` unchanged.
    """
    numeric = logging.getLevelName(str(level).upper())
    if not isinstance(numeric, int):
        numeric = logging.INFO
    extra = dict(kwargs.pop("extra", None) or {})
    extra["tag"] = tag or tag_for_module(_caller_module())
    configure_logging().log(numeric, msg, extra=extra, **kwargs)


def mask_secret(value: str | None, visible: int = 6) -> str:
    """Render a token as its first few characters for log lines."""

    if not value:
        return "<none>"
    if len(value) <= visible:
        return "***"
    return f"{value[:visible]}..."
