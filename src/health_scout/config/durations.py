"""
Parsing of duration strings such as "30s", "1m30s" or "250ms".
"""

import logging
import math
import re

# Module logger
logger = logging.getLogger(__name__)

_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}

_COMPONENT = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")


def parse_duration(text: object, default: float) -> float:
    """
    Converts a duration string into seconds.

    Accepts a sequence of number-unit pairs ("1h30m", "1.5s", "500ms") and
    bare numbers, which are read as seconds. Anything unparsable, negative or
    zero yields the default instead of failing.

    Args:
        text: The value to parse.
        default: Seconds to return when the value cannot be used.

    Returns:
        float: The duration in seconds.
    """
    if isinstance(text, bool) or text is None:
        return default
    if isinstance(text, (int, float)):
        return float(text) if text > 0 else default

    value = str(text).strip()
    if not value:
        return default

    try:
        seconds = float(value)
    except ValueError:
        seconds = _parse_components(value)

    if seconds is None or not math.isfinite(seconds) or seconds <= 0:
        logger.warning(f"Invalid duration {value!r}, using default of {default}s")
        return default
    return seconds


def _parse_components(value: str):
    position = 0
    total = 0.0
    for match in _COMPONENT.finditer(value):
        if match.start() != position:
            return None
        total += float(match.group(1)) * _UNITS[match.group(2)]
        position = match.end()
    if position != len(value) or position == 0:
        return None
    return total
