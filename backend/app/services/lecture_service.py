from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Iterable, Mapping

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.clock import as_utc
from app.core.exceptions import AppError, ConflictError, NotFoundError, ValidationError
from app.models.lecture import Lecture
from app.models.timetable import Timetable, TimetableStatus
from app.models.unit import Unit
from app.models.user import User, UserRole
from app.models.venue import Venue
from app.schemas.conflict import ConflictReport
from app.schemas.lecture import (
    BulkLectureError,
    BulkLectureResult,
    LectureCreate,
    LectureOut,
    LectureUpdate,
    VenueRef,
)
from app.schemas.venue import (
    MaintenanceWindow,
    VenueAvailabilityEntry,
    VenueAvailabilityOut,
    VenueAvailabilitySummary,
    VenueConflictOut,
    VenueOut,
)
from app.services.availability import LectureSlot, VenueInfo, partition_venues
from app.services.conflict_service import (
    ConflictService,
    check_batch,
    check_lecture_conflict,
    placement_from_payload,
)
from app.services.snapshots import (
    load_timetable_slots,
    load_unit_map,
    load_user_map,
    lock_timetable,
    venue_info_from_model,
)
from app.services.time_intervals import day_name, duration_minutes, ensure_time_range, to_minutes

logger = logging.getLogger(__name__)


def lecture_to_out(lecture: Lecture, unit_map: Mapping[str, dict], teacher_map: Mapping[str, dict]) -> LectureOut:
    unit = unit_map.get(lecture.unit_id, {})
    teacher = teacher_map.get(lecture.teacher_id, {})
    venue = None
    if lecture.venue_building and lecture.venue_room:
        venue = VenueRef(
            building=lecture.venue_building,
            room=lecture.venue_room,
            capacity=lecture.venue_capacity,
        )
    return LectureOut(
        id=lecture.id,
        timetable_id=lecture.timetable_id,
        unit_id=lecture.unit_id,
        unit_code=unit.get("code"),
        unit_name=unit.get("name"),
        teacher_id=lecture.teacher_id,
        teacher_name=teacher.get("name"),
        day_of_week=lecture.day_of_week,
        day_name=day_name(lecture.day_of_week),
        start_time=lecture.start_time,
        end_time=lecture.end_time,
        duration_minutes=duration_minutes(lecture.start_time, lecture.end_time),
        venue=venue,
        lecture_type=lecture.lecture_type,
        is_recurring=lecture.is_recurring,
        frequency=lecture.frequency,
        color=lecture.color,
        is_online=lecture.is_online,
        online_link=lecture.online_link,
        credits=lecture.credits,
    )


def lectures_to_out(db: Session, lectures: Iterable[Lecture]) -> list[LectureOut]:
    lectures = list(lectures)
    unit_map = load_unit_map(db, (lecture.unit_id for lecture in lectures))
    teacher_map = load_user_map(db, (lecture.teacher_id for lecture in lectures))
    return [lecture_to_out(lecture, unit_map, teacher_map) for lecture in lectures]


def sort_lectures(lectures: Iterable[Lecture]) -> list[Lecture]:
    return sorted(lectures, key=lambda item: (item.day_of_week, to_minutes(item.start_time), to_minutes(item.end_time)))


def list_lectures(
    db: Session,
    *,
    timetable_id: str | None = None,
    teacher_id: str | None = None,
    unit_id: str | None = None,
    day_of_week: int | None = None,
    published_only: bool = False,
) -> list[LectureOut]:
    query = select(Lecture)
    if timetable_id:
        query = query.where(Lecture.timetable_id == timetable_id)
    if teacher_id:
        query = query.where(Lecture.teacher_id == teacher_id)
    if unit_id:
        query = query.where(Lecture.unit_id == unit_id)
    if day_of_week is not None:
        query = query.where(Lecture.day_of_week == day_of_week)
    if published_only:
        query = query.join(Timetable, Timetable.id == Lecture.timetable_id).where(
            Timetable.status == TimetableStatus.published
        )
    return lectures_to_out(db, sort_lectures(db.execute(query).scalars()))


def _slot_from_create(payload: LectureCreate, lecture_id: str | None = None) -> LectureSlot:
    return LectureSlot(
        id=lecture_id,
        timetable_id=payload.timetable_id,
        unit_id=payload.unit_id,
        teacher_id=payload.teacher_id,
        day_of_week=payload.day_of_week,
        start_time=payload.start_time,
        end_time=payload.end_time,
        building=payload.venue.building if payload.venue else None,
        room=payload.venue.room if payload.venue else None,
        is_online=payload.is_online,
    )


def _conflict_service(db: Session, timetable_id: str, day_of_week: int | None = None) -> ConflictService:
    existing = load_timetable_slots(db, timetable_id, day_of_week)
    return ConflictService(
        existing,
        load_unit_map(db, (slot.unit_id for slot in existing)),
        load_user_map(db, (slot.teacher_id for slot in existing)),
    )


def _ensure_references(db: Session, payload: LectureCreate) -> None:
    if db.get(Unit, payload.unit_id) is None:
        raise NotFoundError("Unit", payload.unit_id)
    teacher = db.get(User, payload.teacher_id)
    if teacher is None or teacher.role != UserRole.teacher:
        raise ValidationError("Invalid teacher", details={"teacher_id": payload.teacher_id})


def _describe_validation_error(exc: PydanticValidationError) -> str:
    parts = []
    for error in exc.errors():
        message = error["msg"].removeprefix("Value error, ")
        location = ".".join(str(part) for part in error.get("loc", ()))
        parts.append(f"{location}: {message}" if location else message)
    return "; ".join(parts)


def _apply_payload(lecture: Lecture, payload: LectureCreate) -> None:
    lecture.timetable_id = payload.timetable_id
    lecture.unit_id = payload.unit_id
    lecture.teacher_id = payload.teacher_id
    lecture.day_of_week = payload.day_of_week
    lecture.start_time = payload.start_time
    lecture.end_time = payload.end_time
    lecture.venue_building = payload.venue.building if payload.venue else None
    lecture.venue_room = payload.venue.room if payload.venue else None
    lecture.venue_capacity = payload.venue.capacity if payload.venue else None
    lecture.lecture_type = payload.lecture_type
    lecture.is_recurring = payload.is_recurring
    lecture.frequency = payload.frequency
    lecture.color = payload.color
    lecture.is_online = payload.is_online
    lecture.online_link = payload.online_link
    lecture.credits = payload.credits


def find_lecture_conflicts(db: Session, data: Mapping[str, Any]) -> ConflictReport:
    """Check a proposed placement against the lectures stored in its timetable."""
    proposal, exclude_id = placement_from_payload(data)
    existing = load_timetable_slots(db, proposal.timetable_id, proposal.day_of_week)
    return check_lecture_conflict(
        proposal,
        existing,
        load_unit_map(db, (slot.unit_id for slot in existing)),
        load_user_map(db, (slot.teacher_id for slot in existing)),
        exclude_id,
    )


def _raise_on_conflict(report: ConflictReport) -> None:
    if report.has_conflicts:
        raise ConflictError(
            "Time conflict detected",
            details=report.model_dump(),
        )


def create_lecture(db: Session, payload: LectureCreate) -> LectureOut:
    if lock_timetable(db, payload.timetable_id) is None:
        raise NotFoundError("Timetable", payload.timetable_id)
    _ensure_references(db, payload)

    report = _conflict_service(db, payload.timetable_id, payload.day_of_week).check_placement(
        _slot_from_create(payload)
    )
    _raise_on_conflict(report)

    lecture = Lecture()
    _apply_payload(lecture, payload)
    db.add(lecture)
    db.commit()
    db.refresh(lecture)
    logger.info(
        "Lecture %s placed in timetable %s on %s %s-%s",
        lecture.id,
        lecture.timetable_id,
        day_name(lecture.day_of_week),
        lecture.start_time,
        lecture.end_time,
    )
    return lectures_to_out(db, [lecture])[0]


def _current_values(lecture: Lecture) -> dict:
    venue = None
    if lecture.venue_building and lecture.venue_room:
        venue = {
            "building": lecture.venue_building,
            "room": lecture.venue_room,
            "capacity": lecture.venue_capacity,
        }
    return {
        "timetable_id": lecture.timetable_id,
        "unit_id": lecture.unit_id,
        "teacher_id": lecture.teacher_id,
        "day_of_week": lecture.day_of_week,
        "start_time": lecture.start_time,
        "end_time": lecture.end_time,
        "venue": venue,
        "lecture_type": lecture.lecture_type,
        "is_recurring": lecture.is_recurring,
        "frequency": lecture.frequency,
        "color": lecture.color,
        "is_online": lecture.is_online,
        "online_link": lecture.online_link,
        "credits": lecture.credits,
    }


def update_lecture(db: Session, lecture_id: str, payload: LectureUpdate) -> LectureOut:
    lecture = db.get(Lecture, lecture_id)
    if lecture is None:
        raise NotFoundError("Lecture", lecture_id)

    merged = _current_values(lecture)
    merged.update(payload.model_dump(exclude_unset=True))
    try:
        candidate = LectureCreate.model_validate(merged)
    except PydanticValidationError as exc:
        raise ValidationError(_describe_validation_error(exc)) from exc

    lock_timetable(db, lecture.timetable_id)
    _ensure_references(db, candidate)
    report = _conflict_service(db, candidate.timetable_id, candidate.day_of_week).check_placement(
        _slot_from_create(candidate, lecture.id),
        exclude_id=lecture.id,
    )
    _raise_on_conflict(report)

    _apply_payload(lecture, candidate)
    db.commit()
    db.refresh(lecture)
    logger.info("Lecture %s updated", lecture.id)
    return lectures_to_out(db, [lecture])[0]


def delete_lecture(db: Session, lecture_id: str) -> None:
    lecture = db.get(Lecture, lecture_id)
    if lecture is None:
        raise NotFoundError("Lecture", lecture_id)
    db.delete(lecture)
    db.commit()
    logger.info("Lecture %s deleted", lecture_id)


def bulk_create_lectures(db: Session, items: list[dict[str, Any]]) -> BulkLectureResult:
    """Place lectures one by one; a rejected item never undoes the ones before it."""
    timetable_ids = {item.get("timetable_id") for item in items}
    if len(timetable_ids) != 1:
        raise ValidationError("All lectures must belong to the same timetable")
    timetable_id = timetable_ids.pop()
    if not timetable_id or lock_timetable(db, timetable_id) is None:
        raise NotFoundError("Timetable", timetable_id)

    service = _conflict_service(db, timetable_id)
    parsed: list[tuple[int, LectureCreate]] = []
    created: list[Lecture] = []
    errors: list[BulkLectureError] = []

    for index, raw in enumerate(items):
        try:
            parsed.append((index, LectureCreate.model_validate(raw)))
        except PydanticValidationError as exc:
            errors.append(BulkLectureError(index=index, error=_describe_validation_error(exc), lecture=raw))

    def place(position: int, slot: LectureSlot) -> str | None:
        payload = parsed[position][1]
        try:
            report = service.check_placement(slot)
            if report.has_conflicts:
                raise ConflictError(" ".join(detail.message for detail in report.details))
            _ensure_references(db, payload)
        except AppError as exc:
            return exc.message
        lecture = Lecture()
        _apply_payload(lecture, payload)
        db.add(lecture)
        db.flush()
        created.append(lecture)
        return None

    outcomes = check_batch([_slot_from_create(payload) for _, payload in parsed], admit=place)
    for (index, _), reason in zip(parsed, outcomes):
        if reason is not None:
            errors.append(BulkLectureError(index=index, error=reason, lecture=items[index]))
    errors.sort(key=lambda error: error.index)

    db.commit()
    logger.info(
        "Bulk placement into timetable %s: %d created, %d rejected",
        timetable_id,
        len(created),
        len(errors),
    )
    if errors:
        logger.warning("Rejected bulk items: %s", ", ".join(str(error.index) for error in errors))
    return BulkLectureResult(
        success=len(created),
        failed=len(errors),
        created_lectures=lectures_to_out(db, created),
        errors=errors,
    )


def venue_to_out(venue: Venue) -> VenueOut:
    return VenueOut(
        id=venue.id,
        code=f"{venue.building}-{venue.room}",
        building=venue.building,
        room=venue.room,
        capacity=venue.capacity,
        type=venue.type,
        facilities=list(venue.facilities or []),
        is_active=venue.is_active,
        maintenance_windows=[
            MaintenanceWindow(start_date=window.start_date, end_date=window.end_date, reason=window.reason)
            for window in venue.maintenance_windows
        ],
    )


def get_venue_availability(
    db: Session,
    *,
    day_of_week: int,
    start_time: str,
    end_time: str,
    timetable_id: str,
    capacity: int | None = None,
    venue_type: str | None = None,
    on_date: datetime | None = None,
) -> VenueAvailabilityOut:
    day_name(day_of_week)
    ensure_time_range(start_time, end_time)

    venues = list(db.execute(select(Venue)).scalars())
    by_id = {venue.id: venue for venue in venues}
    slots = load_timetable_slots(db, timetable_id, day_of_week)
    available, occupied = partition_venues(
        [venue_info_from_model(venue) for venue in venues],
        slots,
        day_of_week,
        start_time,
        end_time,
        min_capacity=capacity,
        venue_type=venue_type,
        on_date=as_utc(on_date) if on_date is not None else None,
    )

    conflicts = [entry.conflict for entry in occupied]
    unit_map = load_unit_map(db, (slot.unit_id for slot in conflicts))
    teacher_map = load_user_map(db, (slot.teacher_id for slot in conflicts))

    def entry(info: VenueInfo, status: str, conflict: LectureSlot | None = None) -> VenueAvailabilityEntry:
        base = venue_to_out(by_id[info.id]).model_dump()
        detail = None
        if conflict is not None:
            unit = unit_map.get(conflict.unit_id or "", {})
            detail = VenueConflictOut(
                lecture_id=conflict.id,
                unit_id=conflict.unit_id,
                unit_code=unit.get("code"),
                unit_name=unit.get("name"),
                teacher_id=conflict.teacher_id,
                teacher_name=teacher_map.get(conflict.teacher_id, {}).get("name"),
                start_time=conflict.start_time,
                end_time=conflict.end_time,
            )
        return VenueAvailabilityEntry(**base, status=status, conflict=detail)

    available_entries = [entry(info, "available") for info in available]
    occupied_entries = [entry(item.venue, "occupied", item.conflict) for item in occupied]
    return VenueAvailabilityOut(
        available=available_entries,
        occupied=occupied_entries,
        summary=VenueAvailabilitySummary(
            total_venues=len(available_entries) + len(occupied_entries),
            available_count=len(available_entries),
            occupied_count=len(occupied_entries),
        ),
    )
