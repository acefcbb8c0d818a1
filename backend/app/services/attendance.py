"""Read-side attendance figures derived from lecture instances."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from app.core.exceptions import StateError
from app.schemas.attendance import AttendanceStats, AttendanceSummaryOut, UnitAttendanceSummary

ATTENDED_STATUSES = frozenset({"present", "late"})
# A postponed instance is replaced by a new one on the new date.
NOT_HELD_STATUSES = frozenset({"cancelled", "postponed"})

# Instances only ever leave "scheduled"; nothing returns to it.
ALLOWED_TRANSITIONS: Dict[str, frozenset] = {
    "scheduled": frozenset({"completed", "cancelled", "postponed"}),
    "completed": frozenset(),
    "cancelled": frozenset(),
    "postponed": frozenset(),
}


@dataclass(frozen=True)
class InstanceView:
    id: str
    lecture_id: str
    unit_id: str
    date: date
    status: str
    attendance: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class UnitRef:
    id: str
    code: Optional[str] = None
    name: Optional[str] = None


def attendance_percentage(attended: int, total: int) -> float:
    # No history yet means no penalty.
    if total == 0:
        return 100.0
    return attended / total * 100


def ensure_transition(current: str, target: str) -> None:
    if target not in ALLOWED_TRANSITIONS.get(current, frozenset()):
        raise StateError(
            f"Cannot move lecture instance from {current} to {target}",
            details={"from": current, "to": target},
        )


def instance_attendance_stats(records: Iterable[Tuple[str, str]]) -> Optional[AttendanceStats]:
    """records are (student_id, status) pairs; None when nobody has been marked."""
    counts = {"present": 0, "absent": 0, "late": 0, "excused": 0}
    total = 0
    for _, status in records:
        counts[status] += 1
        total += 1
    if total == 0:
        return None
    rate = round((counts["present"] + counts["late"]) / total * 100, 2)
    return AttendanceStats(total=total, attendance_rate=rate, **counts)


def summarize_attendance(
    student_id: str,
    units: Iterable[UnitRef],
    instances: Iterable[InstanceView],
    today: date,
) -> AttendanceSummaryOut:
    by_unit: Dict[str, List[int]] = {}
    unit_refs: Dict[str, UnitRef] = {}
    for unit in units:
        by_unit[unit.id] = [0, 0]
        unit_refs[unit.id] = unit

    total_present = 0
    total_instances = 0
    for instance in instances:
        if instance.date > today or instance.status in NOT_HELD_STATUSES:
            continue
        counters = by_unit.get(instance.unit_id)
        if counters is None:
            continue
        counters[1] += 1
        total_instances += 1
        if instance.attendance.get(student_id) in ATTENDED_STATUSES:
            counters[0] += 1
            total_present += 1

    return AttendanceSummaryOut(
        overall_percentage=attendance_percentage(total_present, total_instances),
        total_instances=total_instances,
        total_present=total_present,
        by_unit=[
            UnitAttendanceSummary(
                unit_id=unit_id,
                unit_code=unit_refs[unit_id].code,
                unit_name=unit_refs[unit_id].name,
                present=present,
                total=total,
                percentage=attendance_percentage(present, total),
            )
            for unit_id, (present, total) in by_unit.items()
        ],
    )


def student_attendance_rows(
    student_ids: Iterable[str],
    instances: Iterable[InstanceView],
    today: date,
) -> Tuple[int, Dict[str, Tuple[int, int]]]:
    """Per-student (attended, total) over the held, past instances of one lecture."""
    past = [item for item in instances if item.date <= today and item.status not in NOT_HELD_STATUSES]
    rows: Dict[str, Tuple[int, int]] = {}
    for student_id in student_ids:
        attended = sum(1 for item in past if item.attendance.get(student_id) in ATTENDED_STATUSES)
        rows[student_id] = (attended, len(past))
    return len(past), rows
