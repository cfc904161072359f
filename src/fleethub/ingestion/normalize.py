"""Normalization helpers.

Centralizes defensive parsing of user input and stored values.
"""

from __future__ import annotations

import math
from datetime import date
from typing import Any


def safe_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip().replace(",", "")
        if not value:
            return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(result) or math.isinf(result):
        return None
    return result


def non_negative_or_zero(value: Any) -> int | float:
    """Coerce to a non-negative number; unparsable or negative input yields ``0``.

    Integral values come back as ``int`` so stored counters stay integers.
    """
    parsed = safe_float(value)
    if parsed is None or parsed < 0:
        return 0
    if parsed.is_integer():
        return int(parsed)
    return parsed


def coerce_amount(value: Any) -> float:
    """Monetary amount from free-form input, ``0`` when unparsable."""
    return float(non_negative_or_zero(value))


def coerce_mileage(value: Any) -> int:
    """Whole odometer reading from free-form input, ``0`` when unparsable."""
    return int(non_negative_or_zero(value))


def parse_iso_date(value: Any) -> date | None:
    """Parse ``YYYY-MM-DD``; anything else returns ``None``."""
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None
    text = value.strip()
    if len(text) != 10:
        return None
    try:
        return date.fromisoformat(text)
    except ValueError:
        return None


def safe_str(value: Any) -> str:
    if value is None:
        return ""
    return str(value)
