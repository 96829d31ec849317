# envoy_dashboard/util/coerce.py

from __future__ import annotations

import math
from typing import Any, Optional


def coerce_number(value: Any, fallback: Optional[float]) -> Optional[float]:
    """
    Return ``value`` as a finite number, or ``fallback``.

    Accepts ints, floats and numeric-looking strings. NaN, infinities,
    booleans and anything unparsable fall back.
    """
    if isinstance(value, bool):
        return fallback
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            return fallback
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except (ValueError, OverflowError):
            return fallback
    else:
        return fallback
    if not math.isfinite(number):
        return fallback
    if isinstance(value, int):
        return value
    return number


def coerce_string(value: Any, fallback: Optional[str]) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value
    return fallback
