from pydantic import BaseModel, Field

from app.schemas.attendance import LectureInstanceOut
from app.schemas.lecture import LectureOut


class ScheduleConflictEntry(BaseModel):
    lecture_id: str | None
    unit: str | None
    time: str


class ScheduleConflict(BaseModel):
    day: int
    lecture1: ScheduleConflictEntry
    lecture2: ScheduleConflictEntry


class ScheduleSummary(BaseModel):
    total_lectures: int
    total_instances: int
    registered_units: int | None = None
    units: int | None = None
    courses: int | None = None
    has_conflicts: bool = False


class ScheduleOut(BaseModel):
    lectures: list[LectureOut]
    weekly_schedule: dict[int, list[LectureOut]]
    instances: list[LectureInstanceOut] = Field(default_factory=list)
    conflicts: list[ScheduleConflict] = Field(default_factory=list)
    summary: ScheduleSummary
