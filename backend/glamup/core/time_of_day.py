# backend/glamup/core/time_of_day.py
"""
Minute-of-day values used by the scheduling core.

Appointment windows live in one implicit business time zone and are
compared as integer minutes counted from midnight of a reference day. A
window whose end is at or before its start has crossed midnight and keeps
its minutes on the following day.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import time
from typing import Tuple, Union

from .constants import MINUTES_PER_DAY

TimeLike = Union["TimeOfDay", time, str]


@dataclass(frozen=True, order=True)
class TimeOfDay:
    """A minute offset into the day, 0 <= minutes < 1440."""

    minutes: int
    # True when this value was produced by arithmetic that passed midnight
    rolled_over: bool = field(default=False, compare=False)

    def __post_init__(self) -> None:
        if not 0 <= self.minutes < MINUTES_PER_DAY:
            raise ValueError(f"minute of day out of range: {self.minutes}")

    @classmethod
    def from_minutes(cls, total_minutes: int) -> "TimeOfDay":
        if total_minutes < 0:
            raise ValueError("total_minutes must be non-negative")
        return cls(total_minutes % MINUTES_PER_DAY, rolled_over=total_minutes >= MINUTES_PER_DAY)

    @classmethod
    def from_time(cls, value: time) -> "TimeOfDay":
        return cls(value.hour * 60 + value.minute)

    @classmethod
    def parse(cls, value: TimeLike) -> "TimeOfDay":
        """Accept a TimeOfDay, a datetime.time or an "HH:MM[:SS]" string."""
        if isinstance(value, TimeOfDay):
            return value
        if isinstance(value, time):
            return cls.from_time(value)
        if isinstance(value, str):
            try:
                return cls.from_time(time.fromisoformat(value.strip()))
            except ValueError as exc:
                raise ValueError(f"Invalid time format '{value}', expected HH:MM") from exc
        raise TypeError(f"Unsupported time value: {value!r}")

    def plus(self, duration_minutes: int) -> "TimeOfDay":
        return TimeOfDay.from_minutes(self.minutes + duration_minutes)

    def to_time(self) -> time:
        return time(self.minutes // 60, self.minutes % 60)

    def __str__(self) -> str:
        return f"{self.minutes // 60:02d}:{self.minutes % 60:02d}"


def window_minutes(start: TimeLike, end: TimeLike, day_offset: int = 0) -> Tuple[int, int]:
    """
    Convert a window to absolute (start, end) minutes.

    ``day_offset`` is the number of days between the window's date and the
    reference day. An end at or before the start, or one produced by
    arithmetic that passed midnight, lands on the following day.
    """
    end_value = TimeOfDay.parse(end)
    start_minutes = TimeOfDay.parse(start).minutes + day_offset * MINUTES_PER_DAY
    end_minutes = end_value.minutes + day_offset * MINUTES_PER_DAY
    if end_minutes <= start_minutes or end_value.rolled_over:
        end_minutes += MINUTES_PER_DAY
    return start_minutes, end_minutes


def windows_overlap(a: Tuple[int, int], b: Tuple[int, int]) -> bool:
    """Half-open overlap test on absolute windows; touching boundaries do not overlap."""
    return a[0] < b[1] and a[1] > b[0]
