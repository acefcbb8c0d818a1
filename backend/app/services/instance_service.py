from __future__ import annotations

import datetime as dt
import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.clock import as_utc
from app.core.exceptions import ConflictError, NotFoundError, StateError
from app.models.lecture import Lecture
from app.models.lecture_instance import AttendanceRecord, InstanceStatus, LectureInstance
from app.schemas.attendance import AttendanceRecordIn, AttendanceRecordOut, LectureInstanceOut
from app.services.attendance import ATTENDED_STATUSES, ensure_transition, instance_attendance_stats

logger = logging.getLogger(__name__)


def instance_to_out(instance: LectureInstance, student_id: str | None = None) -> LectureInstanceOut:
    records = sorted(instance.attendance, key=lambda record: record.student_id)
    my_attendance = None
    if student_id is not None:
        my_attendance = next((record.status for record in records if record.student_id == student_id), None)
    return LectureInstanceOut(
        id=instance.id,
        lecture_id=instance.lecture_id,
        date=instance.date,
        status=instance.status,
        teacher_id=instance.teacher_id,
        venue_building=instance.venue_building,
        venue_room=instance.venue_room,
        notes=instance.notes or "",
        cancellation_reason=instance.cancellation_reason,
        # Students only see their own record.
        attendance=[] if student_id is not None else [AttendanceRecordOut.model_validate(record) for record in records],
        stats=instance_attendance_stats((record.student_id, record.status.value) for record in records),
        my_attendance=my_attendance,
    )


def get_instance(db: Session, instance_id: str) -> LectureInstance:
    instance = db.get(LectureInstance, instance_id)
    if instance is None:
        raise NotFoundError("Lecture instance", instance_id)
    return instance


def list_instances(
    db: Session,
    lecture_ids: list[str],
    start: dt.date | None = None,
    end: dt.date | None = None,
) -> list[LectureInstance]:
    if not lecture_ids:
        return []
    query = select(LectureInstance).where(LectureInstance.lecture_id.in_(lecture_ids))
    if start is not None:
        query = query.where(LectureInstance.date >= start)
    if end is not None:
        query = query.where(LectureInstance.date <= end)
    return list(db.execute(query.order_by(LectureInstance.date.asc())).scalars())


def _new_instance(db: Session, lecture: Lecture, on_date: dt.date) -> LectureInstance:
    duplicate = db.execute(
        select(LectureInstance.id).where(LectureInstance.lecture_id == lecture.id, LectureInstance.date == on_date)
    ).scalar_one_or_none()
    if duplicate is not None:
        raise ConflictError(
            f"Lecture already has an instance on {on_date.isoformat()}",
            details={"instance_id": duplicate},
        )
    instance = LectureInstance(
        lecture_id=lecture.id,
        date=on_date,
        status=InstanceStatus.scheduled,
        teacher_id=lecture.teacher_id,
        venue_building=lecture.venue_building,
        venue_room=lecture.venue_room,
        notes="",
    )
    db.add(instance)
    return instance


def create_instance(db: Session, lecture_id: str, on_date: dt.date) -> LectureInstance:
    lecture = db.get(Lecture, lecture_id)
    if lecture is None:
        raise NotFoundError("Lecture", lecture_id)
    instance = _new_instance(db, lecture, on_date)
    db.commit()
    db.refresh(instance)
    return instance


def mark_attendance(
    db: Session,
    instance: LectureInstance,
    entries: list[AttendanceRecordIn],
    now: dt.datetime,
) -> LectureInstance:
    if instance.status in (InstanceStatus.cancelled, InstanceStatus.postponed):
        raise StateError(
            f"Cannot mark attendance for a {instance.status.value} lecture",
            details={"status": instance.status.value},
        )

    records = {record.student_id: record for record in instance.attendance}
    for entry in entries:
        checked_in_at = as_utc(now) if entry.status.value in ATTENDED_STATUSES else None
        record = records.get(entry.student_id)
        if record is None:
            record = AttendanceRecord(student_id=entry.student_id, status=entry.status, checked_in_at=checked_in_at)
            instance.attendance.append(record)
            records[entry.student_id] = record
        else:
            record.status = entry.status
            record.checked_in_at = checked_in_at

    if instance.status == InstanceStatus.scheduled:
        ensure_transition(instance.status.value, InstanceStatus.completed.value)
        instance.status = InstanceStatus.completed
    db.commit()
    db.refresh(instance)
    logger.info("Attendance recorded for %d student(s) on instance %s", len(entries), instance.id)
    return instance


def cancel_instance(db: Session, instance: LectureInstance, reason: str) -> LectureInstance:
    ensure_transition(instance.status.value, InstanceStatus.cancelled.value)
    instance.status = InstanceStatus.cancelled
    instance.cancellation_reason = reason
    db.commit()
    db.refresh(instance)
    logger.info("Lecture instance %s cancelled", instance.id)
    return instance


def postpone_instance(
    db: Session,
    instance: LectureInstance,
    new_date: dt.date,
    reason: str | None = None,
) -> LectureInstance:
    """Mark the instance postponed and schedule its replacement on ``new_date``."""
    ensure_transition(instance.status.value, InstanceStatus.postponed.value)
    lecture = db.get(Lecture, instance.lecture_id)
    if lecture is None:
        raise NotFoundError("Lecture", instance.lecture_id)
    _new_instance(db, lecture, new_date)
    instance.status = InstanceStatus.postponed
    instance.notes = reason or f"Postponed to {new_date.isoformat()}"
    db.commit()
    db.refresh(instance)
    logger.info("Lecture instance %s postponed to %s", instance.id, new_date.isoformat())
    return instance
