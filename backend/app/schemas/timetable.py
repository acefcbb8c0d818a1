from datetime import datetime

from pydantic import BaseModel, Field, field_validator, model_validator

from app.core.clock import as_utc
from app.models.timetable import TimetableStatus


class TimetableCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    semester_id: str = Field(min_length=1, max_length=36)
    course_id: str = Field(min_length=1, max_length=36)
    effective_from: datetime
    effective_to: datetime
    total_weeks: int = Field(default=14, ge=1, le=52)

    @field_validator("effective_from", "effective_to")
    @classmethod
    def normalize_timezone(cls, value: datetime) -> datetime:
        return as_utc(value)

    @model_validator(mode="after")
    def validate_effective_range(self) -> "TimetableCreate":
        if self.effective_to <= self.effective_from:
            raise ValueError("Effective end date must be after start date")
        return self


class TimetableOut(BaseModel):
    id: str
    name: str
    semester_id: str
    course_id: str
    effective_from: datetime
    effective_to: datetime
    status: TimetableStatus
    published_at: datetime | None = None
    created_by_id: str | None = None
    total_weeks: int
    lecture_count: int = 0
    is_active: bool = False


class TimetablePublishOut(BaseModel):
    message: str
    timetable: TimetableOut
    archived_ids: list[str] = Field(default_factory=list)
