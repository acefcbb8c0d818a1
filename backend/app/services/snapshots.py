"""Loads read-only views of stored entities for the scheduling and validation rules.

The rules never follow ORM relationships themselves; everything they need is
fetched here in a handful of queries and handed over as plain data keyed by id.
"""
from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.core.clock import as_utc
from app.models.lecture import Lecture
from app.models.lecture_instance import LectureInstance
from app.models.semester import Semester
from app.models.timetable import Timetable
from app.models.unit import Unit
from app.models.unit_registration import RegistrationStatus, UnitRegistration
from app.models.user import User
from app.models.venue import Venue
from app.services.attendance import InstanceView
from app.services.availability import LectureSlot, VenueInfo
from app.services.registration_validation import (
    RegistrationInfo,
    RegistrationSnapshot,
    SemesterInfo,
    StudentInfo,
    UnitInfo,
)
from app.services.time_intervals import to_minutes


def slot_from_lecture(lecture: Lecture) -> LectureSlot:
    return LectureSlot(
        id=lecture.id,
        timetable_id=lecture.timetable_id,
        unit_id=lecture.unit_id,
        teacher_id=lecture.teacher_id,
        day_of_week=lecture.day_of_week,
        start_time=lecture.start_time,
        end_time=lecture.end_time,
        building=lecture.venue_building,
        room=lecture.venue_room,
        is_online=lecture.is_online,
    )


def lock_timetable(db: Session, timetable_id: str) -> Optional[Timetable]:
    # Serializes placements per timetable on backends that support row locks.
    return db.execute(
        select(Timetable).where(Timetable.id == timetable_id).with_for_update()
    ).scalar_one_or_none()


def load_timetable_slots(db: Session, timetable_id: str, day_of_week: Optional[int] = None) -> List[LectureSlot]:
    query = select(Lecture).where(Lecture.timetable_id == timetable_id)
    if day_of_week is not None:
        query = query.where(Lecture.day_of_week == day_of_week)
    slots = [slot_from_lecture(lecture) for lecture in db.execute(query).scalars()]
    # Earliest lecture first, so "first conflict" is stable across backends.
    slots.sort(key=lambda slot: (to_minutes(slot.start_time), to_minutes(slot.end_time), slot.id or ""))
    return slots


def load_unit_map(db: Session, unit_ids: Iterable[Optional[str]]) -> Dict[str, dict]:
    ids = {unit_id for unit_id in unit_ids if unit_id}
    if not ids:
        return {}
    units = db.execute(select(Unit).where(Unit.id.in_(ids))).scalars()
    return {unit.id: {"id": unit.id, "code": unit.code, "name": unit.name} for unit in units}


def load_user_map(db: Session, user_ids: Iterable[Optional[str]]) -> Dict[str, dict]:
    ids = {user_id for user_id in user_ids if user_id}
    if not ids:
        return {}
    users = db.execute(select(User).where(User.id.in_(ids))).scalars()
    return {user.id: {"id": user.id, "name": user.name, "email": user.email} for user in users}


def venue_info_from_model(venue: Venue) -> VenueInfo:
    return VenueInfo(
        id=venue.id,
        building=venue.building,
        room=venue.room,
        capacity=venue.capacity,
        type=venue.type.value,
        is_active=venue.is_active,
        maintenance=tuple(
            (as_utc(window.start_date), as_utc(window.end_date)) for window in venue.maintenance_windows
        ),
    )


def semester_info_from_model(semester: Semester) -> SemesterInfo:
    return SemesterInfo(
        id=semester.id,
        name=semester.name,
        registration_start_date=as_utc(semester.registration_start_date),
        registration_end_date=as_utc(semester.registration_end_date),
        max_units_per_student=semester.max_units_per_student,
    )


def unit_info_from_model(unit: Unit) -> UnitInfo:
    return UnitInfo(
        id=unit.id,
        code=unit.code,
        course_id=unit.course_id,
        capacity=unit.capacity,
        prerequisite_ids=tuple(prereq.id for prereq in unit.prerequisites),
    )


def count_active_registrations(db: Session, unit_id: str, semester_id: str) -> int:
    return db.execute(
        select(func.count())
        .select_from(UnitRegistration)
        .where(
            UnitRegistration.unit_id == unit_id,
            UnitRegistration.semester_id == semester_id,
            UnitRegistration.status == RegistrationStatus.active,
        )
    ).scalar_one()


def load_registration_snapshot(
    db: Session,
    student_id: str,
    unit_id: str,
    semester_id: str,
    *,
    lock: bool = False,
) -> RegistrationSnapshot:
    semester = db.get(Semester, semester_id)
    student = db.get(User, student_id)
    if lock:
        unit = db.execute(select(Unit).where(Unit.id == unit_id).with_for_update()).scalar_one_or_none()
    else:
        unit = db.get(Unit, unit_id)

    registrations = db.execute(
        select(UnitRegistration).where(UnitRegistration.student_id == student_id)
    ).scalars()

    return RegistrationSnapshot(
        student_id=student_id,
        unit_id=unit_id,
        semester_id=semester_id,
        semester=semester_info_from_model(semester) if semester is not None else None,
        student=StudentInfo(id=student.id, course_id=student.course_id) if student is not None else None,
        unit=unit_info_from_model(unit) if unit is not None else None,
        prerequisites={prereq.id: unit_info_from_model(prereq) for prereq in unit.prerequisites} if unit else {},
        student_registrations=tuple(
            RegistrationInfo(
                unit_id=registration.unit_id,
                semester_id=registration.semester_id,
                status=registration.status.value,
                grade=registration.grade,
            )
            for registration in registrations
        ),
        unit_active_count=count_active_registrations(db, unit_id, semester_id) if unit is not None else 0,
    )


def load_instance_views(db: Session, lectures: Iterable[Lecture]) -> List[InstanceView]:
    unit_by_lecture = {lecture.id: lecture.unit_id for lecture in lectures}
    if not unit_by_lecture:
        return []
    instances = db.execute(
        select(LectureInstance).where(LectureInstance.lecture_id.in_(unit_by_lecture.keys()))
    ).scalars()
    return [
        InstanceView(
            id=instance.id,
            lecture_id=instance.lecture_id,
            unit_id=unit_by_lecture[instance.lecture_id],
            date=instance.date,
            status=instance.status.value,
            attendance={record.student_id: record.status.value for record in instance.attendance},
        )
        for instance in instances
    ]
