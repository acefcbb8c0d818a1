from __future__ import annotations

from typing import Dict, Iterable, List, Protocol, Tuple, TypeVar

from app.services.time_intervals import to_minutes, overlaps


class WeeklySlot(Protocol):
    day_of_week: int
    start_time: str
    end_time: str


SlotT = TypeVar("SlotT", bound=WeeklySlot)


def weekly_schedule(slots: Iterable[SlotT]) -> Dict[int, List[SlotT]]:
    """Bucket slots into days 0 (Sunday) .. 6 (Saturday), each sorted by start time."""
    buckets: Dict[int, List[SlotT]] = {day: [] for day in range(7)}
    for slot in slots:
        buckets[slot.day_of_week].append(slot)
    for day_slots in buckets.values():
        day_slots.sort(key=lambda slot: (to_minutes(slot.start_time), to_minutes(slot.end_time)))
    return buckets


def find_schedule_conflicts(slots: Iterable[SlotT]) -> List[Tuple[int, SlotT, SlotT]]:
    """Every overlapping pair within a day, regardless of which timetable each slot belongs to."""
    conflicts: List[Tuple[int, SlotT, SlotT]] = []
    for day, day_slots in weekly_schedule(slots).items():
        for i, first in enumerate(day_slots):
            first_start, first_end = to_minutes(first.start_time), to_minutes(first.end_time)
            for second in day_slots[i + 1:]:
                if overlaps(first_start, first_end, to_minutes(second.start_time), to_minutes(second.end_time)):
                    conflicts.append((day, first, second))
    return conflicts
