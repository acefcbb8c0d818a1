from __future__ import annotations

import math
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.clock import as_utc
from app.core.config import get_settings
from app.core.exceptions import NotFoundError
from app.models.course import Course
from app.models.semester import Semester
from app.models.unit import Unit
from app.schemas.semester import CurrentSemesterOut, SemesterCreate, SemesterOut

SECONDS_PER_DAY = 24 * 60 * 60


def registration_days_remaining(semester: Semester, now: datetime) -> int:
    """-1 before the window opens, 0 once it has closed, else whole days left (rounded up)."""
    current = as_utc(now)
    start = as_utc(semester.registration_start_date)
    end = as_utc(semester.registration_end_date)
    if current < start:
        return -1
    if current > end:
        return 0
    return math.ceil((end - current).total_seconds() / SECONDS_PER_DAY)


def is_registration_open(semester: Semester, now: datetime) -> bool:
    current = as_utc(now)
    return as_utc(semester.registration_start_date) <= current <= as_utc(semester.registration_end_date)


def is_semester_active(semester: Semester, now: datetime) -> bool:
    current = as_utc(now)
    return as_utc(semester.start_date) <= current <= as_utc(semester.end_date)


def semester_to_out(semester: Semester, now: datetime) -> SemesterOut:
    return SemesterOut(
        id=semester.id,
        name=semester.name,
        start_date=semester.start_date,
        end_date=semester.end_date,
        registration_start_date=semester.registration_start_date,
        registration_end_date=semester.registration_end_date,
        max_units_per_student=semester.max_units_per_student,
        course_ids=[course.id for course in semester.courses],
        unit_ids=[unit.id for unit in semester.units],
        is_registration_open=is_registration_open(semester, now),
        registration_days_remaining=registration_days_remaining(semester, now),
        is_active=is_semester_active(semester, now),
    )


def create_semester(db: Session, payload: SemesterCreate) -> Semester:
    max_units = payload.max_units_per_student or get_settings().default_max_units_per_student
    semester = Semester(
        name=payload.name,
        start_date=payload.start_date,
        end_date=payload.end_date,
        registration_start_date=payload.registration_start_date,
        registration_end_date=payload.registration_end_date,
        max_units_per_student=max_units,
    )
    for course_id in payload.course_ids:
        course = db.get(Course, course_id)
        if course is None:
            raise NotFoundError("Course", course_id)
        semester.courses.append(course)
    for unit_id in payload.unit_ids:
        unit = db.get(Unit, unit_id)
        if unit is None:
            raise NotFoundError("Unit", unit_id)
        semester.units.append(unit)
    db.add(semester)
    db.commit()
    db.refresh(semester)
    return semester


def current_semester(db: Session, now: datetime) -> CurrentSemesterOut:
    semesters = list(db.execute(select(Semester)).scalars())
    current = next((item for item in semesters if is_semester_active(item, now)), None)
    if current is None:
        upcoming = sorted(
            (item for item in semesters if as_utc(item.start_date) > as_utc(now)),
            key=lambda item: as_utc(item.start_date),
        )
        return CurrentSemesterOut(
            upcoming=semester_to_out(upcoming[0], now) if upcoming else None,
            message="No active semester found",
        )
    remaining = math.ceil((as_utc(current.end_date) - as_utc(now)).total_seconds() / SECONDS_PER_DAY)
    return CurrentSemesterOut(current=semester_to_out(current, now), days_remaining=remaining)
