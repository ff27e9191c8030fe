"""
Lenient field readers for API payloads.

The bookstore API is not consistent about types: amounts arrive as numbers
or strings, ids as ints or strings, and many fields exist under two names
(camelCase and snake_case). These helpers never raise; unreadable values
become the default.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional


def first_of(data: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    """Value of the first key present with a non-None value."""
    for key in keys:
        value = data.get(key)
        if value is not None:
            return value
    return default


def parse_float(value: Any, default: Optional[float] = 0.0) -> Optional[float]:
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def parse_int(value: Any, default: Optional[int] = None) -> Optional[int]:
    if value is None or value == "" or isinstance(value, bool):
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        try:
            return int(float(value))
        except (TypeError, ValueError):
            return default


def parse_datetime(value: Any) -> Optional[datetime]:
    """ISO-8601 string (with or without trailing Z) to datetime."""
    if isinstance(value, datetime):
        return value
    if not value or not isinstance(value, str):
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def format_datetime(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None
