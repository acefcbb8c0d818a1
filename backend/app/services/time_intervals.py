from __future__ import annotations

import re

from app.core.exceptions import ValidationError

TIME_PATTERN = re.compile(r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$")

# 0 = Sunday, matching the stored day_of_week values.
DAY_NAMES = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")


def to_minutes(value: str) -> int:
    if not isinstance(value, str) or not TIME_PATTERN.match(value):
        raise ValidationError(
            f"Invalid time '{value}': expected HH:MM 24-hour format",
            details={"code": "INVALID_TIME_FORMAT", "value": value},
        )
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def overlaps(a_start: int, a_end: int, b_start: int, b_end: int) -> bool:
    """Half-open interval intersection; intervals that only touch do not overlap."""
    return a_start < b_end and a_end > b_start


def interval_overlaps(start: str, end: str, other_start: str, other_end: str) -> bool:
    return overlaps(to_minutes(start), to_minutes(end), to_minutes(other_start), to_minutes(other_end))


def duration_minutes(start: str, end: str) -> int:
    return to_minutes(end) - to_minutes(start)


def ensure_time_range(start: str, end: str) -> None:
    if to_minutes(end) <= to_minutes(start):
        raise ValidationError(
            "End time must be after start time",
            details={"code": "INVALID_TIME_RANGE", "start_time": start, "end_time": end},
        )


def day_name(day_of_week: int) -> str:
    if not 0 <= day_of_week <= 6:
        raise ValidationError(
            f"Invalid day of week {day_of_week}: expected 0 (Sunday) to 6 (Saturday)",
            details={"code": "INVALID_DAY"},
        )
    return DAY_NAMES[day_of_week]
