"""Various (server-only) tools and helpers."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any
from urllib.parse import parse_qs


def try_parse_int(possible_int: Any, default: int | None = 0) -> int | None:
    """Try to parse an int."""
    try:
        return int(possible_int)
    except (TypeError, ValueError):
        try:
            return int(float(possible_int))
        except (TypeError, ValueError):
            return default


def try_parse_float(possible_float: Any, default: float | None = 0.0) -> float | None:
    """Try to parse a float."""
    try:
        return float(possible_float)
    except (TypeError, ValueError):
        return default


def try_parse_bool(possible_bool: Any) -> bool:
    """Try to parse a bool."""
    if isinstance(possible_bool, bool):
        return possible_bool
    return possible_bool in ["true", "True", "1", "on", "ON", 1]


def seconds_to_ms(possible_seconds: Any) -> int:
    """Convert a (string) time in seconds as used on the wire to milliseconds."""
    seconds = try_parse_float(possible_seconds, 0.0) or 0.0
    return max(0, round(seconds * 1000))


def split_csv(value: str | list[str] | None) -> list[str]:
    """Split a comma separated value into its (non-empty) parts."""
    if value is None:
        return []
    if isinstance(value, list | tuple):
        return [str(x) for x in value if x]
    if not isinstance(value, str):
        msg = f"Expected a comma separated string, got {type(value).__name__}"
        raise TypeError(msg)
    return [x.strip() for x in value.split(",") if x.strip()]


def get_query_value(query: Mapping[str, Any], key: str) -> str | None:
    """Return a scalar value from a parsed query, taking the first element of a list."""
    value = query.get(key)
    if isinstance(value, list | tuple):
        value = value[0] if value else None
    if value is None or value == "":
        return None
    return str(value)


def parse_launch_data(launch_data: str | None) -> dict[str, list[str]]:
    """Parse query-string encoded launch data."""
    if not launch_data:
        return {}
    return parse_qs(launch_data.lstrip("?"), keep_blank_values=False)
