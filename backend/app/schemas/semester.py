from datetime import datetime

from pydantic import BaseModel, Field, field_validator, model_validator

from app.core.clock import as_utc


class SemesterCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    start_date: datetime
    end_date: datetime
    registration_start_date: datetime
    registration_end_date: datetime
    max_units_per_student: int | None = Field(default=None, ge=1, le=50)
    course_ids: list[str] = Field(default_factory=list)
    unit_ids: list[str] = Field(default_factory=list)

    @field_validator("start_date", "end_date", "registration_start_date", "registration_end_date")
    @classmethod
    def normalize_timezone(cls, value: datetime) -> datetime:
        return as_utc(value)

    @model_validator(mode="after")
    def validate_dates(self) -> "SemesterCreate":
        if self.end_date <= self.start_date:
            raise ValueError("End date must be after start date")
        if self.registration_end_date <= self.registration_start_date:
            raise ValueError("Registration end date must be after registration start date")
        if self.registration_start_date < self.start_date:
            raise ValueError("Registration cannot start before semester starts")
        if self.registration_end_date > self.end_date:
            raise ValueError("Registration cannot end after semester ends")
        return self


class SemesterOut(BaseModel):
    id: str
    name: str
    start_date: datetime
    end_date: datetime
    registration_start_date: datetime
    registration_end_date: datetime
    max_units_per_student: int
    course_ids: list[str] = Field(default_factory=list)
    unit_ids: list[str] = Field(default_factory=list)
    is_registration_open: bool
    registration_days_remaining: int
    is_active: bool


class CurrentSemesterOut(BaseModel):
    current: SemesterOut | None = None
    upcoming: SemesterOut | None = None
    days_remaining: int | None = None
    message: str | None = None
