from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from app.core.exceptions import ValidationError
from app.schemas.conflict import ConflictDetail, ConflictReport
from app.services.availability import LectureSlot, first_overlap, teacher_bookings, venue_bookings
from app.services.time_intervals import day_name, ensure_time_range

logger = logging.getLogger(__name__)

REQUIRED_PLACEMENT_FIELDS = ("timetable_id", "teacher_id", "day_of_week", "start_time", "end_time")

TEACHER_BATCH_CONFLICT = "Teacher time conflict within batch"
VENUE_BATCH_CONFLICT = "Venue time conflict within batch"


def placement_from_payload(data: Mapping[str, Any]) -> Tuple[LectureSlot, Optional[str]]:
    """Turn a loosely-typed placement request into a slot plus the lecture id to exclude."""
    missing = [name for name in REQUIRED_PLACEMENT_FIELDS if data.get(name) in (None, "")]
    if missing:
        raise ValidationError(
            "Missing required fields for conflict check",
            details={"code": "MISSING_FIELDS", "fields": missing},
        )

    day_of_week = data["day_of_week"]
    if isinstance(day_of_week, bool) or not isinstance(day_of_week, int):
        raise ValidationError("day_of_week must be an integer", details={"code": "INVALID_DAY"})
    day_name(day_of_week)
    ensure_time_range(data["start_time"], data["end_time"])

    venue = data.get("venue") or {}
    is_online = bool(data.get("is_online", False))
    slot = LectureSlot(
        id=data.get("id"),
        timetable_id=data["timetable_id"],
        unit_id=data.get("unit_id"),
        teacher_id=data["teacher_id"],
        day_of_week=day_of_week,
        start_time=data["start_time"],
        end_time=data["end_time"],
        building=venue.get("building"),
        room=venue.get("room"),
        is_online=is_online,
    )
    return slot, data.get("exclude_lecture_id") or data.get("id")


class ConflictService:
    def __init__(
        self,
        existing: List[LectureSlot],
        unit_map: Dict[str, dict],
        teacher_map: Dict[str, dict],
    ):
        self.existing = existing
        self.unit_map = unit_map
        self.teacher_map = teacher_map

    def _unit_code(self, unit_id: Optional[str]) -> str:
        return self.unit_map.get(unit_id or "", {}).get("code") or "Unknown Unit"

    def _teacher_name(self, teacher_id: str) -> str:
        return self.teacher_map.get(teacher_id, {}).get("name") or "Unknown"

    def check_placement(self, proposal: LectureSlot, exclude_id: Optional[str] = None) -> ConflictReport:
        conflicts: List[str] = []
        details: List[ConflictDetail] = []

        # Only the first colliding lecture per kind is reported.
        clash = first_overlap(
            teacher_bookings(
                self.existing, proposal.timetable_id, proposal.teacher_id, proposal.day_of_week, exclude_id
            ),
            proposal.start_time,
            proposal.end_time,
        )
        if clash is not None:
            conflicts.append("teacher")
            details.append(ConflictDetail(
                type="teacher",
                message=(
                    f"Teacher {self._teacher_name(clash.teacher_id)} is already scheduled for "
                    f"{self._unit_code(clash.unit_id)} from {clash.start_time} to {clash.end_time} "
                    f"on {day_name(clash.day_of_week)}."
                ),
                lecture_id=clash.id,
            ))

        if proposal.has_physical_venue:
            clash = first_overlap(
                venue_bookings(
                    self.existing,
                    proposal.timetable_id,
                    proposal.building,
                    proposal.room,
                    proposal.day_of_week,
                    exclude_id,
                ),
                proposal.start_time,
                proposal.end_time,
            )
            if clash is not None:
                conflicts.append("venue")
                details.append(ConflictDetail(
                    type="venue",
                    message=(
                        f"Venue {clash.building} {clash.room} is already booked for "
                        f"{self._unit_code(clash.unit_id)} from {clash.start_time} to {clash.end_time} "
                        f"on {day_name(clash.day_of_week)}."
                    ),
                    lecture_id=clash.id,
                ))

        if conflicts:
            logger.info(
                "Placement in timetable %s on %s %s-%s conflicts: %s",
                proposal.timetable_id,
                day_name(proposal.day_of_week),
                proposal.start_time,
                proposal.end_time,
                ", ".join(conflicts),
            )
        return ConflictReport(
            has_conflicts=bool(conflicts),
            conflicts=conflicts,
            details=details,
            message=None if conflicts else "No conflicts detected",
        )


def batch_conflict(candidate: LectureSlot, accepted: List[LectureSlot]) -> Optional[str]:
    """Compare a batch item with the items accepted before it, in presentation order."""
    for previous in accepted:
        if previous.day_of_week != candidate.day_of_week:
            continue
        same_teacher = previous.teacher_id == candidate.teacher_id
        if not (same_teacher or previous.same_venue(candidate)):
            continue
        if candidate.overlaps_window(previous.start_time, previous.end_time):
            return TEACHER_BATCH_CONFLICT if same_teacher else VENUE_BATCH_CONFLICT
    return None


def check_batch(
    proposals: List[LectureSlot],
    admit: Optional[Callable[[int, LectureSlot], Optional[str]]] = None,
) -> List[Optional[str]]:
    """Return one entry per proposal: None when accepted, else the rejection reason.

    ``admit`` runs the checks that lie outside the batch for an item that
    clears its predecessors. An item it rejects is not accepted and so never
    blocks later items.
    """
    accepted: List[LectureSlot] = []
    outcomes: List[Optional[str]] = []
    for position, proposal in enumerate(proposals):
        reason = batch_conflict(proposal, accepted)
        if reason is None and admit is not None:
            reason = admit(position, proposal)
        if reason is None:
            accepted.append(proposal)
        outcomes.append(reason)
    return outcomes


def check_lecture_conflict(
    proposal: LectureSlot,
    existing: List[LectureSlot],
    unit_map: Dict[str, dict],
    teacher_map: Dict[str, dict],
    exclude_id: Optional[str] = None,
) -> ConflictReport:
    return ConflictService(existing, unit_map, teacher_map).check_placement(proposal, exclude_id)
