# backend/glamup/services/pricing.py
"""
Pricing and duration helpers shared by booking, update and reschedule.

Everything here is pure: same inputs, same outputs, no I/O.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, Mapping, Optional, Union

from ..core.exceptions import ValidationException
from ..core.time_of_day import TimeLike, TimeOfDay

Number = Union[int, float, Decimal, str]

_CENT = Decimal("0.01")


def to_money(value: Optional[Number]) -> Decimal:
    if value is None:
        return Decimal("0.00")
    return Decimal(str(value)).quantize(_CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class PriceBreakdown:
    total_price: Decimal
    discount: Decimal
    final_price: Decimal


def compute_end_time(start: TimeLike, duration_minutes: int) -> TimeOfDay:
    """
    Start plus duration, wrapped into the day.

    The returned value has ``rolled_over`` set when the window ran past midnight.
    """
    if duration_minutes <= 0:
        raise ValidationException("Duration must be a positive number of minutes")
    return TimeOfDay.parse(start).plus(duration_minutes)


def resolve_end_time(
    start: TimeLike, total_duration: int, explicit_end: Optional[TimeLike] = None
) -> TimeOfDay:
    """
    Use the caller's end time when given, otherwise derive it from the duration.

    An explicit end at or before the start is only accepted as an overnight
    window when the duration itself runs past midnight.
    """
    derived = compute_end_time(start, total_duration)
    if explicit_end is None:
        return derived
    start_value = TimeOfDay.parse(start)
    end = TimeOfDay.parse(explicit_end)
    if end == start_value:
        raise ValidationException("End time must differ from start time")
    if end < start_value and not derived.rolled_over:
        raise ValidationException(
            "End time must be after start time",
            details={"start_time": str(start_value), "end_time": str(end)},
        )
    return end


def total_for(items: Iterable[Mapping[str, Any]]) -> tuple[int, Decimal]:
    """Sum duration and price over service snapshots."""
    duration = 0
    price = Decimal("0.00")
    for item in items:
        duration += int(item["duration"])
        price += to_money(item["price"])
    return duration, price


def apply_discount(total_price: Number, discount: Optional[Number] = None) -> PriceBreakdown:
    """Final price is the total less the discount, never below zero."""
    total = to_money(total_price)
    off = to_money(discount)
    if off < 0:
        raise ValidationException("Discount cannot be negative")
    return PriceBreakdown(
        total_price=total,
        discount=off,
        final_price=max(total - off, Decimal("0.00")),
    )
