"""Lookup helpers over already-loaded lecture and venue data.

Everything here works on plain dataclasses so the scheduler can be exercised
without a database; ``app.services.snapshots`` builds these from ORM rows.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable

from app.services.time_intervals import to_minutes, overlaps


@dataclass(frozen=True)
class LectureSlot:
    id: str | None
    timetable_id: str
    unit_id: str | None
    teacher_id: str
    day_of_week: int
    start_time: str
    end_time: str
    building: str | None = None
    room: str | None = None
    is_online: bool = False

    @property
    def has_physical_venue(self) -> bool:
        return not self.is_online and bool(self.building) and bool(self.room)

    def same_venue(self, other: "LectureSlot") -> bool:
        return (
            self.has_physical_venue
            and other.has_physical_venue
            and self.building == other.building
            and self.room == other.room
        )

    def overlaps_window(self, start_time: str, end_time: str) -> bool:
        return overlaps(
            to_minutes(self.start_time),
            to_minutes(self.end_time),
            to_minutes(start_time),
            to_minutes(end_time),
        )


@dataclass(frozen=True)
class VenueInfo:
    id: str
    building: str
    room: str
    capacity: int
    type: str
    is_active: bool = True
    maintenance: tuple[tuple[datetime, datetime], ...] = field(default_factory=tuple)

    def is_available_on(self, on_date: datetime | None) -> bool:
        if not self.is_active:
            return False
        if on_date is None:
            return True
        return not any(start <= on_date <= end for start, end in self.maintenance)


@dataclass(frozen=True)
class OccupiedVenue:
    venue: VenueInfo
    conflict: LectureSlot


def teacher_bookings(
    slots: Iterable[LectureSlot],
    timetable_id: str,
    teacher_id: str,
    day_of_week: int,
    exclude_id: str | None = None,
) -> list[LectureSlot]:
    return [
        slot
        for slot in slots
        if slot.timetable_id == timetable_id
        and slot.teacher_id == teacher_id
        and slot.day_of_week == day_of_week
        and (exclude_id is None or slot.id != exclude_id)
    ]


def venue_bookings(
    slots: Iterable[LectureSlot],
    timetable_id: str,
    building: str,
    room: str,
    day_of_week: int,
    exclude_id: str | None = None,
) -> list[LectureSlot]:
    return [
        slot
        for slot in slots
        if slot.timetable_id == timetable_id
        and slot.has_physical_venue
        and slot.building == building
        and slot.room == room
        and slot.day_of_week == day_of_week
        and (exclude_id is None or slot.id != exclude_id)
    ]


def first_overlap(bookings: Iterable[LectureSlot], start_time: str, end_time: str) -> LectureSlot | None:
    """Return the first booking overlapping the window, in the order given."""
    for booking in bookings:
        if booking.overlaps_window(start_time, end_time):
            return booking
    return None


def partition_venues(
    venues: Iterable[VenueInfo],
    slots: Iterable[LectureSlot],
    day_of_week: int,
    start_time: str,
    end_time: str,
    min_capacity: int | None = None,
    venue_type: str | None = None,
    on_date: datetime | None = None,
) -> tuple[list[VenueInfo], list[OccupiedVenue]]:
    day_slots = [slot for slot in slots if slot.day_of_week == day_of_week and slot.has_physical_venue]
    candidates = sorted(
        (
            venue
            for venue in venues
            if venue.is_available_on(on_date)
            and (min_capacity is None or venue.capacity >= min_capacity)
            and (venue_type is None or venue.type == venue_type)
        ),
        key=lambda venue: (venue.building, venue.room),
    )

    available: list[VenueInfo] = []
    occupied: list[OccupiedVenue] = []
    for venue in candidates:
        same_room = [slot for slot in day_slots if slot.building == venue.building and slot.room == venue.room]
        conflict = first_overlap(same_room, start_time, end_time)
        if conflict is None:
            available.append(venue)
        else:
            occupied.append(OccupiedVenue(venue=venue, conflict=conflict))
    return available, occupied
