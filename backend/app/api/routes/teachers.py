import datetime as dt

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import get_clock, get_db, require_roles
from app.core.clock import Clock
from app.models.user import User, UserRole
from app.schemas.attendance import AttendanceReportOut
from app.schemas.schedule import ScheduleOut
from app.services.schedule_service import teacher_attendance_report, teacher_schedule

router = APIRouter()


@router.get("/teachers/schedule", response_model=ScheduleOut)
def my_schedule(
    semester_id: str | None = Query(default=None, max_length=36),
    start: dt.date | None = Query(default=None),
    end: dt.date | None = Query(default=None),
    current_user: User = Depends(require_roles(UserRole.teacher)),
    db: Session = Depends(get_db),
) -> ScheduleOut:
    return teacher_schedule(db, current_user, semester_id, start, end)


@router.get("/teachers/attendance-report", response_model=AttendanceReportOut)
def attendance_report(
    lecture_id: str = Query(min_length=1, max_length=36),
    current_user: User = Depends(require_roles(UserRole.teacher)),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> AttendanceReportOut:
    return teacher_attendance_report(db, current_user, lecture_id, clock.now())
