"""
Duration utilities for parsing interval strings.
"""

import re
from datetime import timedelta

_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1,
    "m": 60,
    "h": 3600,
}

_COMPONENT = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")


def parse_duration(value: str) -> timedelta:
    """
    Parse a duration string into a timedelta.

    Accepts the same format as Go's time.ParseDuration, e.g. "1h",
    "30m", "1h30m", "1.5h" or "500ms". A bare "0" is also accepted.

    Returns:
        Parsed duration

    Raises:
        ValueError: If the string is not a valid duration
    """
    text = value.strip()
    if not text:
        raise ValueError("Empty duration")

    sign = 1
    if text[0] in "+-":
        sign = -1 if text[0] == "-" else 1
        text = text[1:]

    if text == "0":
        return timedelta(0)

    seconds = 0.0
    pos = 0
    while pos < len(text):
        match = _COMPONENT.match(text, pos)
        if not match:
            raise ValueError(f"Invalid duration: {value!r}")
        number, unit = match.groups()
        seconds += float(number) * _UNITS[unit]
        pos = match.end()

    if pos == 0:
        raise ValueError(f"Invalid duration: {value!r}")

    return timedelta(seconds=sign * seconds)


def format_duration(delta: timedelta) -> str:
    """
    Format a timedelta in the same style parse_duration accepts.

    Examples: "1h0m0s", "30m0s", "2.5s".
    """
    total = delta.total_seconds()
    if total == 0:
        return "0s"

    sign = "-" if total < 0 else ""
    total = abs(total)

    if total < 1:
        return f"{sign}{total * 1000:g}ms"

    hours, rest = divmod(total, 3600)
    minutes, seconds = divmod(rest, 60)
    if hours:
        return f"{sign}{int(hours)}h{int(minutes)}m{seconds:g}s"
    if minutes:
        return f"{sign}{int(minutes)}m{seconds:g}s"
    return f"{sign}{seconds:g}s"
