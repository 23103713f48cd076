"""
Rental period and cost arithmetic.

A rental of N days starts and ends on inclusive calendar days, so a one
day rental ends on its start date. Durations reaching this module are
always >= 1; callers turn a zero or negative duration into "remove the
line" before getting here.
"""

from datetime import date, timedelta
from typing import NamedTuple, Optional

from errors import ValidationFailure

RENTAL_DURATION_PRESETS = (1, 3, 5, 7)


class ClampedDuration(NamedTuple):
    days: int
    clamped: bool


def compute_end_date(start_date: date, duration_days: int) -> date:
    if duration_days < 1:
        raise ValueError("duration_days must be >= 1")
    return start_date + timedelta(days=duration_days - 1)


def clamp_duration(requested_days: int, max_days: Optional[int]) -> ClampedDuration:
    if requested_days < 1:
        raise ValueError("requested_days must be >= 1")
    if max_days and requested_days > max_days:
        return ClampedDuration(max_days, True)
    return ClampedDuration(requested_days, False)


def rental_charge(daily_rate: float, duration_days: int) -> float:
    """Non-refundable part of a rental."""
    return round(daily_rate * duration_days, 2)


def compute_rental_cost(daily_rate: float, duration_days: int, deposit: float) -> float:
    return round(daily_rate * duration_days + deposit, 2)


def validate_start_date(start_date: date, today: Optional[date] = None) -> None:
    today = today or date.today()
    if start_date < today:
        raise ValidationFailure("Cannot select dates in the past")
