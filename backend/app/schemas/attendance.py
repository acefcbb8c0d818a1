import datetime as dt

from pydantic import BaseModel, Field

from app.models.lecture_instance import AttendanceStatus, InstanceStatus


class LectureInstanceCreate(BaseModel):
    lecture_id: str = Field(min_length=1, max_length=36)
    date: dt.date


class AttendanceRecordIn(BaseModel):
    student_id: str = Field(min_length=1, max_length=36)
    status: AttendanceStatus


class AttendanceUpdate(BaseModel):
    attendances: list[AttendanceRecordIn] = Field(min_length=1, max_length=1000)


class AttendanceRecordOut(BaseModel):
    student_id: str
    status: AttendanceStatus
    checked_in_at: dt.datetime | None = None

    model_config = {"from_attributes": True}


class AttendanceStats(BaseModel):
    total: int
    present: int
    absent: int
    late: int
    excused: int
    attendance_rate: float


class LectureInstanceOut(BaseModel):
    id: str
    lecture_id: str
    date: dt.date
    status: InstanceStatus
    teacher_id: str
    venue_building: str | None = None
    venue_room: str | None = None
    notes: str = ""
    cancellation_reason: str | None = None
    attendance: list[AttendanceRecordOut] = Field(default_factory=list)
    stats: AttendanceStats | None = None
    my_attendance: AttendanceStatus | None = None


class CancelInstanceRequest(BaseModel):
    reason: str = Field(min_length=1, max_length=1000)


class PostponeInstanceRequest(BaseModel):
    new_date: dt.date
    reason: str | None = Field(default=None, max_length=1000)


class UnitAttendanceSummary(BaseModel):
    unit_id: str
    unit_code: str | None = None
    unit_name: str | None = None
    present: int
    total: int
    percentage: float


class AttendanceSummaryOut(BaseModel):
    overall_percentage: float
    total_instances: int
    total_present: int
    by_unit: list[UnitAttendanceSummary]


class StudentAttendanceRow(BaseModel):
    student_id: str
    student_name: str | None = None
    present: int
    total: int
    percentage: float


class AttendanceReportOut(BaseModel):
    lecture_id: str
    total_instances: int
    students: list[StudentAttendanceRow]
