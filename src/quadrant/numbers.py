"""Rounding helpers for reported metrics."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal


def round_half_up(value: float, places: int = 1) -> float:
    """Round half away from zero (``round`` in Python rounds half to even)."""
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def percent(part: float, total: float, places: int = 1) -> float:
    """``part / total`` as a rounded percentage, 0 when total is 0."""
    if not total:
        return 0.0
    return round_half_up(part / total * 100, places)
