import datetime as dt

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import get_clock, get_db, require_roles
from app.core.clock import Clock
from app.models.user import User, UserRole
from app.schemas.attendance import AttendanceSummaryOut
from app.schemas.schedule import ScheduleOut
from app.services.schedule_service import student_attendance_summary, student_schedule

router = APIRouter()


@router.get("/students/schedule", response_model=ScheduleOut)
def my_schedule(
    semester_id: str | None = Query(default=None, max_length=36),
    start: dt.date | None = Query(default=None),
    end: dt.date | None = Query(default=None),
    current_user: User = Depends(require_roles(UserRole.student)),
    db: Session = Depends(get_db),
) -> ScheduleOut:
    return student_schedule(db, current_user, semester_id, start, end)


@router.get("/students/attendance-summary", response_model=AttendanceSummaryOut)
def my_attendance_summary(
    semester_id: str | None = Query(default=None, max_length=36),
    current_user: User = Depends(require_roles(UserRole.student)),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> AttendanceSummaryOut:
    return student_attendance_summary(db, current_user, clock.now(), semester_id)
