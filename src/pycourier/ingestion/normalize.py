"""Normalization helpers.

Centralizes defensive parsing of loosely-typed backend payloads.
"""

from __future__ import annotations

import math
from datetime import UTC, datetime
from typing import Any

# Epoch values above this are milliseconds.
_MS_THRESHOLD = 1e11


def safe_float(value: Any) -> float | None:
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(result):
        return None
    return result


def safe_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text if text else None


def nested_get(data: Any, *path: str) -> Any:
    """Walk *path* through nested dicts, returning ``None`` on any miss."""
    current = data
    for key in path:
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current


def first_meaningful(*values: Any) -> Any:
    """Return the first value that is not ``None``/empty/zero-like.

    Mirrors a JavaScript ``a || b || c`` fallback chain: ``0`` and ``""``
    fall through to the next candidate.
    """
    for value in values:
        if value is None or value == "" or value == 0:
            continue
        return value
    return None


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO-8601 string or epoch number (seconds or ms) to a UTC datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo is not None else value.replace(tzinfo=UTC)
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            numeric = safe_float(text)
            if numeric is None:
                return None
            return parse_timestamp(numeric)
        return parsed if parsed.tzinfo is not None else parsed.replace(tzinfo=UTC)
    ts = safe_float(value)
    if ts is None or ts <= 0:
        return None
    if ts > _MS_THRESHOLD:
        ts /= 1000.0
    try:
        return datetime.fromtimestamp(ts, tz=UTC)
    except (OverflowError, OSError, ValueError):
        return None
