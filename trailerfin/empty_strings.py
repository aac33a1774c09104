"""Treat empty strings as missing values when decoding optional fields."""

from __future__ import annotations

import json
from typing import Any, Callable, Optional, TypeVar

T = TypeVar("T")


def empty_as_none(value: Optional[str], convert: Callable[[str], T] = str) -> Optional[T]:
    """Return None for None or an empty string, otherwise ``convert(value)``."""
    if value is None:
        return None
    if not isinstance(value, str):
        raise TypeError(f"expected a string or None, got {type(value).__name__}")
    if value == "":
        return None
    return convert(value)


def serialize_optional(value: Any) -> str:
    """Encode an optional value as compact JSON, None becoming ``null``."""
    return json.dumps(value, separators=(",", ":"))