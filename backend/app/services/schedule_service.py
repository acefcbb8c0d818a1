"""Student and teacher schedule views and attendance figures over registered units."""
from __future__ import annotations

import datetime as dt

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.clock import as_utc
from app.core.exceptions import NotFoundError
from app.models.lecture import Lecture
from app.models.timetable import Timetable, TimetableStatus
from app.models.unit import Unit
from app.models.unit_registration import RegistrationStatus, UnitRegistration
from app.models.user import User
from app.schemas.attendance import AttendanceReportOut, AttendanceSummaryOut, StudentAttendanceRow
from app.schemas.lecture import LectureOut
from app.schemas.schedule import ScheduleConflict, ScheduleConflictEntry, ScheduleOut, ScheduleSummary
from app.services.attendance import UnitRef, attendance_percentage, student_attendance_rows, summarize_attendance
from app.services.instance_service import instance_to_out, list_instances
from app.services.lecture_service import lectures_to_out, sort_lectures
from app.services.schedule import find_schedule_conflicts, weekly_schedule
from app.services.snapshots import load_instance_views, load_user_map


def _active_registrations(db: Session, student_id: str, semester_id: str | None) -> list[UnitRegistration]:
    query = select(UnitRegistration).where(
        UnitRegistration.student_id == student_id,
        UnitRegistration.status == RegistrationStatus.active,
    )
    if semester_id:
        query = query.where(UnitRegistration.semester_id == semester_id)
    return list(db.execute(query).scalars())


def _timetable_lectures(db: Session, *filters) -> list[Lecture]:
    query = select(Lecture).join(Timetable, Timetable.id == Lecture.timetable_id).where(*filters)
    return sort_lectures(db.execute(query).scalars())


def _published_lectures(db: Session, *filters) -> list[Lecture]:
    return _timetable_lectures(db, Timetable.status == TimetableStatus.published, *filters)


def _registered_unit_filters(registrations: list[UnitRegistration]) -> tuple:
    return (
        Timetable.semester_id.in_({registration.semester_id for registration in registrations}),
        Lecture.unit_id.in_({registration.unit_id for registration in registrations}),
    )


def student_lectures(db: Session, student_id: str, semester_id: str | None = None) -> list[Lecture]:
    registrations = _active_registrations(db, student_id, semester_id)
    if not registrations:
        return []
    return _published_lectures(db, *_registered_unit_filters(registrations))


def _conflict_entry(lecture: LectureOut) -> ScheduleConflictEntry:
    return ScheduleConflictEntry(
        lecture_id=lecture.id,
        unit=lecture.unit_code,
        time=f"{lecture.start_time}-{lecture.end_time}",
    )


def _schedule_conflicts(lectures: list[LectureOut]) -> list[ScheduleConflict]:
    return [
        ScheduleConflict(day=day, lecture1=_conflict_entry(first), lecture2=_conflict_entry(second))
        for day, first, second in find_schedule_conflicts(lectures)
    ]


def student_schedule(
    db: Session,
    student: User,
    semester_id: str | None = None,
    start: dt.date | None = None,
    end: dt.date | None = None,
) -> ScheduleOut:
    lectures = student_lectures(db, student.id, semester_id)
    outs = lectures_to_out(db, lectures)
    instances = []
    if start is not None and end is not None:
        instances = [
            instance_to_out(instance, student_id=student.id)
            for instance in list_instances(db, [lecture.id for lecture in lectures], start, end)
        ]
    conflicts = _schedule_conflicts(outs)
    return ScheduleOut(
        lectures=outs,
        weekly_schedule=weekly_schedule(outs),
        instances=instances,
        conflicts=conflicts,
        summary=ScheduleSummary(
            total_lectures=len(outs),
            total_instances=len(instances),
            registered_units=len(_active_registrations(db, student.id, semester_id)),
            has_conflicts=bool(conflicts),
        ),
    )


def teacher_schedule(
    db: Session,
    teacher: User,
    semester_id: str | None = None,
    start: dt.date | None = None,
    end: dt.date | None = None,
) -> ScheduleOut:
    filters = [Lecture.teacher_id == teacher.id]
    if semester_id:
        filters.append(Timetable.semester_id == semester_id)
    lectures = _published_lectures(db, *filters)
    outs = lectures_to_out(db, lectures)
    instances = []
    if start is not None and end is not None:
        instances = [
            instance_to_out(instance)
            for instance in list_instances(db, [lecture.id for lecture in lectures], start, end)
        ]
    timetable_ids = {lecture.timetable_id for lecture in lectures}
    courses = set()
    if timetable_ids:
        courses = set(
            db.execute(select(Timetable.course_id).where(Timetable.id.in_(timetable_ids))).scalars()
        )
    conflicts = _schedule_conflicts(outs)
    return ScheduleOut(
        lectures=outs,
        weekly_schedule=weekly_schedule(outs),
        instances=instances,
        conflicts=conflicts,
        summary=ScheduleSummary(
            total_lectures=len(outs),
            total_instances=len(instances),
            units=len({lecture.unit_id for lecture in lectures}),
            courses=len(courses),
            has_conflicts=bool(conflicts),
        ),
    )


def student_attendance_summary(
    db: Session,
    student: User,
    now: dt.datetime,
    semester_id: str | None = None,
) -> AttendanceSummaryOut:
    registrations = _active_registrations(db, student.id, semester_id)
    unit_ids = {registration.unit_id for registration in registrations}
    units = []
    if unit_ids:
        units = [
            UnitRef(id=unit.id, code=unit.code, name=unit.name)
            for unit in db.execute(select(Unit).where(Unit.id.in_(unit_ids)).order_by(Unit.code)).scalars()
        ]
    # Held classes keep counting after their timetable is archived.
    lectures = _timetable_lectures(db, *_registered_unit_filters(registrations)) if registrations else []
    return summarize_attendance(student.id, units, load_instance_views(db, lectures), as_utc(now).date())


def teacher_attendance_report(db: Session, teacher: User, lecture_id: str, now: dt.datetime) -> AttendanceReportOut:
    lecture = db.get(Lecture, lecture_id)
    if lecture is None or lecture.teacher_id != teacher.id:
        raise NotFoundError("Lecture", lecture_id)
    timetable = db.get(Timetable, lecture.timetable_id)

    student_ids = sorted(
        db.execute(
            select(UnitRegistration.student_id).where(
                UnitRegistration.unit_id == lecture.unit_id,
                UnitRegistration.semester_id == timetable.semester_id,
                UnitRegistration.status == RegistrationStatus.active,
            )
        ).scalars()
    )
    total, rows = student_attendance_rows(student_ids, load_instance_views(db, [lecture]), as_utc(now).date())
    names = load_user_map(db, student_ids)
    return AttendanceReportOut(
        lecture_id=lecture.id,
        total_instances=total,
        students=[
            StudentAttendanceRow(
                student_id=student_id,
                student_name=names.get(student_id, {}).get("name"),
                present=rows[student_id][0],
                total=rows[student_id][1],
                percentage=attendance_percentage(*rows[student_id]),
            )
            for student_id in student_ids
        ],
    )
