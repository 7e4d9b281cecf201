from __future__ import annotations

import math


def safe_ratio(numerator: float, denominator: float) -> float:
    if not denominator:
        return 0.0
    value = numerator / denominator
    return value if math.isfinite(value) else 0.0


def safe_percent(numerator: float, denominator: float) -> float:
    return safe_ratio(numerator, denominator) * 100


def percent_change(current: float, previous: float) -> float:
    """Relative change in percent; 0 when there is no previous value to compare with."""
    if not previous:
        return 0.0
    return safe_percent(current - previous, previous)
