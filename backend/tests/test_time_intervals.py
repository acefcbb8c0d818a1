import pytest

from app.core.exceptions import ValidationError
from app.services.time_intervals import (
    day_name,
    duration_minutes,
    ensure_time_range,
    interval_overlaps,
    overlaps,
    to_minutes,
)


@pytest.mark.parametrize(
    ("value", "expected"),
    [("00:00", 0), ("9:05", 545), ("09:05", 545), ("12:30", 750), ("23:59", 1439)],
)
def test_to_minutes_accepts_24_hour_times(value, expected):
    assert to_minutes(value) == expected


@pytest.mark.parametrize("value", ["24:00", "12:60", "9", "09:5", "ab:cd", "", "09:00:00"])
def test_to_minutes_rejects_malformed_times(value):
    with pytest.raises(ValidationError) as excinfo:
        to_minutes(value)
    assert excinfo.value.details["code"] == "INVALID_TIME_FORMAT"
    assert excinfo.value.status_code == 400


def test_overlap_is_symmetric():
    intervals = [(540, 600), (570, 630), (600, 660), (480, 720), (700, 710)]
    for a in intervals:
        for b in intervals:
            assert overlaps(*a, *b) == overlaps(*b, *a)


def test_interval_overlaps_itself():
    assert overlaps(540, 600, 540, 600)
    assert interval_overlaps("09:00", "10:00", "09:00", "10:00")


def test_touching_intervals_do_not_overlap():
    assert not overlaps(540, 600, 600, 660)
    assert not interval_overlaps("10:00", "11:00", "09:00", "10:00")


def test_contained_interval_overlaps():
    assert interval_overlaps("08:00", "12:00", "09:00", "09:30")


def test_duration_and_range_checks():
    assert duration_minutes("09:15", "10:45") == 90
    ensure_time_range("09:00", "09:01")
    with pytest.raises(ValidationError) as excinfo:
        ensure_time_range("10:00", "10:00")
    assert excinfo.value.details["code"] == "INVALID_TIME_RANGE"


def test_day_names_start_on_sunday():
    assert day_name(0) == "Sunday"
    assert day_name(6) == "Saturday"
    with pytest.raises(ValidationError):
        day_name(7)
