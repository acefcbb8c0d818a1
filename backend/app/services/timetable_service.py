from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.core.clock import as_utc
from app.core.exceptions import NotFoundError, StateError
from app.models.lecture import Lecture
from app.models.timetable import Timetable, TimetableStatus
from app.schemas.timetable import TimetableOut, TimetablePublishOut

logger = logging.getLogger(__name__)


def count_lectures(db: Session, timetable_id: str) -> int:
    return db.execute(
        select(func.count()).select_from(Lecture).where(Lecture.timetable_id == timetable_id)
    ).scalar_one()


def is_timetable_active(timetable: Timetable, now: datetime) -> bool:
    if timetable.status != TimetableStatus.published:
        return False
    current = as_utc(now)
    return as_utc(timetable.effective_from) <= current <= as_utc(timetable.effective_to)


def timetable_to_out(db: Session, timetable: Timetable, now: datetime) -> TimetableOut:
    return TimetableOut(
        id=timetable.id,
        name=timetable.name,
        semester_id=timetable.semester_id,
        course_id=timetable.course_id,
        effective_from=timetable.effective_from,
        effective_to=timetable.effective_to,
        status=timetable.status,
        published_at=timetable.published_at,
        created_by_id=timetable.created_by_id,
        total_weeks=timetable.total_weeks,
        lecture_count=count_lectures(db, timetable.id),
        is_active=is_timetable_active(timetable, now),
    )


def publish_timetable(db: Session, timetable_id: str, now: datetime) -> TimetablePublishOut:
    """Publish a timetable and archive whichever one was live for the same semester and course."""
    timetable = db.execute(
        select(Timetable).where(Timetable.id == timetable_id).with_for_update()
    ).scalar_one_or_none()
    if timetable is None:
        raise NotFoundError("Timetable", timetable_id)
    if timetable.status == TimetableStatus.published:
        raise StateError("Timetable is already published", details={"status": timetable.status.value})
    if timetable.status == TimetableStatus.archived:
        raise StateError("Cannot publish an archived timetable", details={"status": timetable.status.value})
    if count_lectures(db, timetable.id) == 0:
        raise StateError("Cannot publish timetable without lectures", details={"lecture_count": 0})

    previous = db.execute(
        select(Timetable).where(
            Timetable.semester_id == timetable.semester_id,
            Timetable.course_id == timetable.course_id,
            Timetable.status == TimetableStatus.published,
            Timetable.id != timetable.id,
        )
    ).scalars().all()
    for other in previous:
        other.status = TimetableStatus.archived

    timetable.status = TimetableStatus.published
    timetable.published_at = as_utc(now)
    db.commit()
    db.refresh(timetable)

    archived_ids = [other.id for other in previous]
    logger.info(
        "Timetable %s published for semester %s course %s; archived %s",
        timetable.id,
        timetable.semester_id,
        timetable.course_id,
        ", ".join(archived_ids) or "none",
    )
    return TimetablePublishOut(
        message="Timetable published successfully",
        timetable=timetable_to_out(db, timetable, now),
        archived_ids=archived_ids,
    )


def archive_timetable(db: Session, timetable_id: str, now: datetime) -> TimetableOut:
    timetable = db.get(Timetable, timetable_id)
    if timetable is None:
        raise NotFoundError("Timetable", timetable_id)
    if timetable.status == TimetableStatus.archived:
        raise StateError("Timetable is already archived", details={"status": timetable.status.value})
    timetable.status = TimetableStatus.archived
    db.commit()
    db.refresh(timetable)
    logger.info("Timetable %s archived", timetable.id)
    return timetable_to_out(db, timetable, now)
