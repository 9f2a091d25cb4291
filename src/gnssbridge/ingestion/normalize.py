"""Normalization helpers.

Centralizes defensive parsing of NMEA fields: anything empty or
unparseable becomes ``None`` so the field is simply left out.
"""

from __future__ import annotations

import math
from typing import Any


def safe_float(value: Any) -> float | None:
    if value is None or value == "":
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(result) or math.isinf(result):
        return None
    return result


def safe_int(value: Any) -> int | None:
    parsed = safe_float(value)
    if parsed is None:
        return None
    return int(parsed)


def int_or_zero(value: Any) -> int:
    parsed = safe_int(value)
    return 0 if parsed is None else parsed


def safe_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text if text else None


def field(parts: list[str], index: int) -> str:
    """Return ``parts[index]`` or ``""`` when the sentence is shorter."""
    if index < len(parts):
        return parts[index].strip()
    return ""
