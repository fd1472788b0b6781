"""Generic helpers with zero dependencies.

- Durations (parse_duration) for cooldown specs and $wait
- Uptime formatting (format_uptime)
- Text rendering of script values (render_value)
- JSON literal parsing with a clear error (safe_json_loads)
"""

import json
import re
from datetime import UTC, datetime
from typing import Any

_DURATION_PATTERN = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(ms|s|m|h|d)?\s*$", re.IGNORECASE)

_UNIT_SECONDS: dict[str, float] = {
    "ms": 0.001,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
    "d": 86400.0,
}


def parse_duration(value: Any, default: float | None = None) -> float:
    """Parse a duration into seconds.

    Accepts numbers (seconds) and strings like ``10ms``, ``3s``, ``2m``, ``1h``,
    ``1d`` or a bare number of seconds.

    Args:
        value: Duration spec.
        default: Returned for unparsable specs. When None, raises ValueError.

    Examples:
        >>> parse_duration("2m")
        120.0
        >>> parse_duration("later", default=3)
        3
    """
    if isinstance(value, bool):
        value = None
    elif isinstance(value, (int, float)):
        if value >= 0:
            return float(value)
        value = None

    match = _DURATION_PATTERN.match(value) if isinstance(value, str) else None
    if match is None:
        if default is not None:
            return default
        raise ValueError(f"Invalid duration: {value!r}")

    amount, unit = match.groups()
    return float(amount) * _UNIT_SECONDS[(unit or "s").lower()]


def format_uptime(seconds: float) -> str:
    """Format elapsed seconds like ``1d 2h 3m 4s``.

    Leading zero units are omitted; seconds are always present.

    Examples:
        >>> format_uptime(93784)
        '1d 2h 3m 4s'
        >>> format_uptime(59.9)
        '59s'
    """
    total = max(0, int(seconds))
    days, rest = divmod(total, 86400)
    hours, rest = divmod(rest, 3600)
    minutes, secs = divmod(rest, 60)

    parts = []
    if days:
        parts.append(f"{days}d")
    if days or hours:
        parts.append(f"{hours}h")
    if days or hours or minutes:
        parts.append(f"{minutes}m")
    parts.append(f"{secs}s")
    return " ".join(parts)


def utc_timestamp(dt: datetime | None = None) -> str:
    """ISO-8601 UTC timestamp."""
    return (dt or datetime.now(UTC)).isoformat()


def render_value(value: Any) -> str:
    """Render a script value as chat text.

    Booleans become ``true``/``false``, None becomes empty, numbers drop a
    trailing ``.0``, mappings and sequences are JSON.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, default=str, ensure_ascii=False)
    return str(value)


def safe_json_loads(data: str) -> Any:
    """Parse JSON with clear error messages.

    Raises:
        ValueError: If JSON is invalid (with clear message)
    """
    try:
        return json.loads(data)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON: {e.msg} at line {e.lineno}, column {e.colno}") from e
    except RecursionError as e:
        raise ValueError("Invalid JSON: nested too deeply") from e
