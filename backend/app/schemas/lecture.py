from __future__ import annotations

import re
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from app.models.lecture import LectureFrequency, LectureType
from app.services.time_intervals import TIME_PATTERN, to_minutes

COLOR_PATTERN = re.compile(r"^#[0-9A-Fa-f]{6}$")


class VenueRef(BaseModel):
    building: str = Field(min_length=1, max_length=200)
    room: str = Field(min_length=1, max_length=100)
    capacity: int | None = Field(default=None, ge=0)


class LectureBase(BaseModel):
    timetable_id: str = Field(min_length=1, max_length=36)
    unit_id: str = Field(min_length=1, max_length=36)
    teacher_id: str = Field(min_length=1, max_length=36)
    day_of_week: int = Field(ge=0, le=6)
    start_time: str
    end_time: str
    venue: VenueRef | None = None
    lecture_type: LectureType = LectureType.lecture
    is_recurring: bool = True
    frequency: LectureFrequency = LectureFrequency.weekly
    color: str = "#3B82F6"
    is_online: bool = False
    online_link: str | None = Field(default=None, max_length=500)
    credits: int = Field(default=1, ge=0, le=40)

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_time_format(cls, value: str) -> str:
        if not TIME_PATTERN.match(value):
            raise ValueError("Time must be in HH:MM 24-hour format")
        return value

    @field_validator("color")
    @classmethod
    def validate_color(cls, value: str) -> str:
        if not COLOR_PATTERN.match(value):
            raise ValueError("Color must be a hex value like #3B82F6")
        return value

    @model_validator(mode="after")
    def validate_slot(self) -> "LectureBase":
        if to_minutes(self.end_time) <= to_minutes(self.start_time):
            raise ValueError("End time must be after start time")
        if not self.is_online and self.venue is None:
            raise ValueError("Venue is required for non-online lectures")
        return self


class LectureCreate(LectureBase):
    pass


class LectureUpdate(BaseModel):
    unit_id: str | None = Field(default=None, min_length=1, max_length=36)
    teacher_id: str | None = Field(default=None, min_length=1, max_length=36)
    day_of_week: int | None = Field(default=None, ge=0, le=6)
    start_time: str | None = None
    end_time: str | None = None
    venue: VenueRef | None = None
    lecture_type: LectureType | None = None
    is_recurring: bool | None = None
    frequency: LectureFrequency | None = None
    color: str | None = None
    is_online: bool | None = None
    online_link: str | None = Field(default=None, max_length=500)
    credits: int | None = Field(default=None, ge=0, le=40)


class LectureOut(BaseModel):
    id: str
    timetable_id: str
    unit_id: str
    unit_code: str | None = None
    unit_name: str | None = None
    teacher_id: str
    teacher_name: str | None = None
    day_of_week: int
    day_name: str
    start_time: str
    end_time: str
    duration_minutes: int
    venue: VenueRef | None = None
    lecture_type: LectureType
    is_recurring: bool
    frequency: LectureFrequency
    color: str
    is_online: bool
    online_link: str | None = None
    credits: int


class LectureConflictCheck(BaseModel):
    """Placement to test; every field is optional so missing ones surface as a validation error."""

    id: str | None = None
    exclude_lecture_id: str | None = None
    timetable_id: str | None = None
    unit_id: str | None = None
    teacher_id: str | None = None
    day_of_week: int | None = None
    start_time: str | None = None
    end_time: str | None = None
    venue: VenueRef | None = None
    is_online: bool = False


class BulkLectureCreate(BaseModel):
    lectures: list[dict[str, Any]] = Field(min_length=1, max_length=500)


class BulkLectureError(BaseModel):
    index: int
    error: str
    lecture: dict[str, Any]


class BulkLectureResult(BaseModel):
    success: int
    failed: int
    created_lectures: list[LectureOut]
    errors: list[BulkLectureError]
