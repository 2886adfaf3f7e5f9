"""Age axis mapping -- pure functions, no state.

Every age derivation site (milestone seeding, manual placement, random event
placement) goes through ``age_at`` so the same formula governs all of them.
"""
from __future__ import annotations

import math

from lifepath.models.life_graph import MAX_AGE, MIN_AGE, TimelineAxis


def age_at(
    x_pos: float,
    start_x: float,
    end_x: float,
    start_age: float,
    end_age: float,
) -> int:
    """Linear interpolation of an x coordinate onto the age range.

    No clamping: positions left of ``start_x`` or right of ``end_x``
    extrapolate. Halves round up (``floor(v + 0.5)``), matching the
    render surface's rounding rather than Python's banker's rounding.
    """
    x_range = end_x - start_x
    if x_range == 0:
        return int(round_half_up(start_age))
    age = start_age + (x_pos - start_x) * (end_age - start_age) / x_range
    return round_half_up(age)


def age_on_axis(x_pos: float, axis: TimelineAxis) -> int:
    """``age_at`` with bounds taken from a TimelineAxis."""
    return age_at(x_pos, axis.start_x, axis.end_x, axis.start_age, axis.end_age)


def clamp_age(age: float) -> int:
    """Clamp into [0, 99]; used by retime only.

    Bounds apply before rounding so arbitrarily large ints never reach float
    conversion.
    """
    return round_half_up(max(MIN_AGE, min(MAX_AGE, age)))


def is_finite(value: float) -> bool:
    """False for NaN and infinities. Ints of any size count as finite."""
    if isinstance(value, int):
        return True
    return math.isfinite(value)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))
