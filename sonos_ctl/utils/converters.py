"""Type conversion helpers used by the command line."""

from __future__ import annotations

import re

_DURATION_UNITS = {
    "ms": 1,
    "msec": 1,
    "s": 1000,
    "sec": 1000,
    "m": 60 * 1000,
    "min": 60 * 1000,
    "h": 60 * 60 * 1000,
    "hr": 60 * 60 * 1000,
}

_DURATION_PART = re.compile(r"(\d+)\s*([a-z]+)")


def parse_duration_millis(text: str) -> int:
    """Parse a compact duration such as ``2m3s``, ``90s`` or ``1h 5min`` into milliseconds.

    A bare number is read as seconds.
    """

    cleaned = (text or "").strip().lower()
    if not cleaned:
        raise ValueError("empty time specification")
    if cleaned.isdigit():
        return int(cleaned) * 1000

    total = 0
    position = 0
    for match in _DURATION_PART.finditer(cleaned):
        if cleaned[position:match.start()].strip():
            raise ValueError(f"invalid time specification: {text!r}")
        amount, unit = match.groups()
        if unit not in _DURATION_UNITS:
            raise ValueError(f"unknown time unit {unit!r} in {text!r}")
        total += int(amount) * _DURATION_UNITS[unit]
        position = match.end()

    if position == 0 or cleaned[position:].strip():
        raise ValueError(f"invalid time specification: {text!r}")
    return total
