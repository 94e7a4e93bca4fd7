"""Small numeric coercions used across scoring code."""

import math
from decimal import Decimal
from typing import Any


def round_half_up(value: float) -> int:
    """Round .5 away from zero on the positive side (2.5 -> 3), unlike round()."""
    return int(math.floor(value + 0.5))


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def to_number(value: Any) -> float | None:
    """Coerce ints, floats, Decimals and numeric strings; anything else is None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None
