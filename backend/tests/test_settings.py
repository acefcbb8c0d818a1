from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from app.core.clock import FixedClock, as_utc
from app.core.config import Settings
from app.core.exceptions import NotFoundError


def test_cors_origins_accept_csv_and_json():
    assert Settings(cors_origins="http://a.test, http://b.test").cors_origins == ["http://a.test", "http://b.test"]
    assert Settings(cors_origins='["http://c.test"]').cors_origins == ["http://c.test"]


def test_log_level_is_normalized():
    assert Settings(log_level=" debug ").log_level == "DEBUG"
    with pytest.raises(ValidationError):
        Settings(log_level="chatty")


def test_fixed_clock_assumes_utc_for_naive_instants():
    clock = FixedClock(datetime(2025, 1, 10, 9, 0))
    assert clock.now().tzinfo == timezone.utc


def test_as_utc_converts_offsets():
    local = datetime(2025, 1, 10, 11, 0, tzinfo=timezone(timedelta(hours=2)))
    assert as_utc(local) == datetime(2025, 1, 10, 9, 0, tzinfo=timezone.utc)


def test_not_found_message():
    assert NotFoundError("Unit", "u1").message == "Unit with id u1 not found"
    assert NotFoundError("Semester").status_code == 404
