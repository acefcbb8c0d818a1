from datetime import datetime

from pydantic import BaseModel, Field, field_validator, model_validator

from app.core.clock import as_utc
from app.models.venue import VenueType

FACILITY_VALUES = {
    "projector",
    "whiteboard",
    "computers",
    "air_conditioning",
    "sound_system",
    "video_conferencing",
    "smart_board",
}


class MaintenanceWindow(BaseModel):
    start_date: datetime
    end_date: datetime
    reason: str = Field(min_length=1, max_length=500)

    @field_validator("start_date", "end_date")
    @classmethod
    def normalize_timezone(cls, value: datetime) -> datetime:
        return as_utc(value)

    @model_validator(mode="after")
    def validate_order(self) -> "MaintenanceWindow":
        if self.end_date <= self.start_date:
            raise ValueError("End date must be after start date")
        return self


class VenueCreate(BaseModel):
    building: str = Field(min_length=1, max_length=200)
    room: str = Field(min_length=1, max_length=100)
    capacity: int = Field(ge=0, le=5000)
    type: VenueType = VenueType.lecture_hall
    facilities: list[str] = Field(default_factory=list, max_length=20)
    is_active: bool = True

    @field_validator("facilities")
    @classmethod
    def validate_facilities(cls, value: list[str]) -> list[str]:
        invalid = [item for item in value if item not in FACILITY_VALUES]
        if invalid:
            raise ValueError(f"Invalid facility value(s): {', '.join(invalid)}")
        return value


class VenueOut(VenueCreate):
    id: str
    code: str
    maintenance_windows: list[MaintenanceWindow] = Field(default_factory=list)


class VenueConflictOut(BaseModel):
    lecture_id: str | None = None
    unit_id: str | None = None
    unit_code: str | None = None
    unit_name: str | None = None
    teacher_id: str
    teacher_name: str | None = None
    start_time: str
    end_time: str


class VenueAvailabilityEntry(VenueOut):
    status: str
    conflict: VenueConflictOut | None = None


class VenueAvailabilitySummary(BaseModel):
    total_venues: int
    available_count: int
    occupied_count: int


class VenueAvailabilityOut(BaseModel):
    available: list[VenueAvailabilityEntry]
    occupied: list[VenueAvailabilityEntry]
    summary: VenueAvailabilitySummary
