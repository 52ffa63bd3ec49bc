from __future__ import annotations

from typing import Any


def is_blank(value: Any) -> bool:
    return value is None or not str(value).strip()


def require_text(data: dict, key: str) -> str:
    """Return a non-empty string field of a decoded JSON object or raise ValueError."""
    value = data.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{key} must be a non-empty string")
    return value.strip()


def require_number(data: dict, key: str) -> float:
    value = data.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{key} must be a number")
    return float(value)
