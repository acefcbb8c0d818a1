"""Seed a demo semester with a published timetable.

Run:
  PYTHONPATH=backend python scripts/seed_demo_semester.py
"""

from __future__ import annotations

import os
from datetime import datetime, timedelta, timezone

from sqlalchemy import func, select

from app.core.clock import SystemClock
from app.core.security import create_access_token
from app.db.bootstrap import ensure_schema
from app.db.session import SessionLocal
from app.models.course import Course
from app.models.lecture import Lecture
from app.models.semester import Semester
from app.models.timetable import Timetable, TimetableStatus
from app.models.unit import Unit
from app.models.user import User, UserRole
from app.models.venue import Venue, VenueType
from app.services.lecture_service import bulk_create_lectures
from app.services.timetable_service import publish_timetable

EMAIL_DOMAIN = os.getenv("SEED_EMAIL_DOMAIN", "university.edu").strip().lower() or "university.edu"
SEMESTER_NAME = os.getenv("SEED_SEMESTER_NAME", "Demo Semester").strip() or "Demo Semester"

COURSE = {"code": "BSC-CS", "name": "BSc Computer Science"}

# (code, name, capacity, prerequisite codes)
UNITS = [
    ("CS101", "Introduction to Programming", 120, ()),
    ("CS102", "Discrete Mathematics", 120, ()),
    ("CS201", "Data Structures", 80, ("CS101",)),
    ("CS202", "Databases", 60, ("CS101", "CS102")),
]

VENUES = [
    ("Main", "101", 120, VenueType.lecture_hall, ["projector", "whiteboard"]),
    ("Main", "102", 80, VenueType.lecture_hall, ["projector"]),
    ("Science", "L1", 40, VenueType.lab, ["computers", "projector"]),
]

TEACHERS = [
    ("Ada Lovelace", "ada.lovelace"),
    ("Edsger Dijkstra", "edsger.dijkstra"),
]

STUDENTS = [
    ("Sam Student", "sam.student"),
    ("Riley Learner", "riley.learner"),
]

# (unit code, teacher index, day, start, end, building, room)
LECTURES = [
    ("CS101", 0, 1, "09:00", "10:00", "Main", "101"),
    ("CS101", 0, 3, "14:00", "16:00", "Science", "L1"),
    ("CS102", 1, 1, "10:00", "11:00", "Main", "101"),
    ("CS102", 1, 4, "09:00", "10:30", "Main", "102"),
]


def email_for(local_part: str) -> str:
    return f"{local_part}@{EMAIL_DOMAIN}"


def upsert_user(session, *, name: str, email: str, role: UserRole, course_id: str | None = None) -> User:
    existing = session.execute(select(User).where(func.lower(User.email) == email.lower())).scalar_one_or_none()
    if existing is None:
        existing = User(name=name, email=email.lower(), role=role, course_id=course_id, is_active=True)
        session.add(existing)
    else:
        existing.name = name
        existing.role = role
        existing.course_id = course_id
        existing.is_active = True
    session.flush()
    return existing


def upsert_course(session) -> Course:
    course = session.execute(select(Course).where(Course.code == COURSE["code"])).scalar_one_or_none()
    if course is None:
        course = Course(**COURSE)
        session.add(course)
        session.flush()
    return course


def upsert_units(session, course: Course) -> dict[str, Unit]:
    units: dict[str, Unit] = {}
    for code, name, capacity, _ in UNITS:
        unit = session.execute(
            select(Unit).where(Unit.code == code, Unit.course_id == course.id)
        ).scalar_one_or_none()
        if unit is None:
            unit = Unit(code=code, name=name, course_id=course.id)
            session.add(unit)
        unit.name = name
        unit.capacity = capacity
        units[code] = unit
    session.flush()

    for code, _, _, prerequisites in UNITS:
        units[code].prerequisites = [units[item] for item in prerequisites]
    session.flush()
    return units


def upsert_venues(session) -> None:
    for building, room, capacity, venue_type, facilities in VENUES:
        venue = session.execute(
            select(Venue).where(Venue.building == building, Venue.room == room)
        ).scalar_one_or_none()
        if venue is None:
            venue = Venue(building=building, room=room)
            session.add(venue)
        venue.capacity = capacity
        venue.type = venue_type
        venue.facilities = facilities
        venue.is_active = True
    session.flush()


def upsert_semester(session, course: Course, units: dict[str, Unit], now: datetime) -> Semester:
    semester = session.execute(select(Semester).where(Semester.name == SEMESTER_NAME)).scalar_one_or_none()
    if semester is None:
        semester = Semester(name=SEMESTER_NAME)
        session.add(semester)
    # Registration opens today for two weeks; teaching runs for sixteen.
    semester.start_date = now - timedelta(days=7)
    semester.end_date = now + timedelta(weeks=16)
    semester.registration_start_date = now - timedelta(days=1)
    semester.registration_end_date = now + timedelta(days=14)
    semester.max_units_per_student = 4
    semester.courses = [course]
    semester.units = list(units.values())
    session.flush()
    return semester


def seed_timetable(session, semester: Semester, course: Course, units: dict[str, Unit], teachers: list[User]):
    timetable = session.execute(
        select(Timetable).where(
            Timetable.semester_id == semester.id,
            Timetable.course_id == course.id,
            Timetable.status == TimetableStatus.draft,
        )
    ).scalar_one_or_none()
    if timetable is None:
        timetable = Timetable(
            name=f"{course.code} {semester.name}",
            semester_id=semester.id,
            course_id=course.id,
            effective_from=semester.start_date,
            effective_to=semester.end_date,
        )
        session.add(timetable)
    session.commit()

    existing = session.execute(
        select(func.count()).select_from(Lecture).where(Lecture.timetable_id == timetable.id)
    ).scalar_one()
    if existing == 0:
        result = bulk_create_lectures(
            session,
            [
                {
                    "timetable_id": timetable.id,
                    "unit_id": units[code].id,
                    "teacher_id": teachers[teacher_index].id,
                    "day_of_week": day,
                    "start_time": start,
                    "end_time": end,
                    "venue": {"building": building, "room": room},
                }
                for code, teacher_index, day, start, end, building, room in LECTURES
            ],
        )
        for error in result.errors:
            print(f"  Skipped lecture #{error.index}: {error.error}")
    return timetable


def main() -> None:
    ensure_schema()
    now = SystemClock().now().replace(hour=0, minute=0, second=0, microsecond=0, tzinfo=timezone.utc)
    with SessionLocal() as session:
        course = upsert_course(session)
        units = upsert_units(session, course)
        upsert_venues(session)
        semester = upsert_semester(session, course, units, now)

        admin = upsert_user(session, name="Registry Admin", email=email_for("registry"), role=UserRole.admin)
        teachers = [
            upsert_user(session, name=name, email=email_for(local), role=UserRole.teacher)
            for name, local in TEACHERS
        ]
        students = [
            upsert_user(session, name=name, email=email_for(local), role=UserRole.student, course_id=course.id)
            for name, local in STUDENTS
        ]
        session.commit()

        timetable = seed_timetable(session, semester, course, units, teachers)
        published = publish_timetable(session, timetable.id, now)

        lecture_count = published.timetable.lecture_count
        tokens = {user.email: create_access_token(user.id, user.role.value) for user in [admin, *teachers, *students]}

    print("Demo semester seeded successfully.")
    print("")
    print(f"Semester: {SEMESTER_NAME}")
    print(f"Course: {COURSE['name']} ({COURSE['code']})")
    print(f"Units: {', '.join(code for code, *_ in UNITS)}")
    print(f"Published timetable lectures: {lecture_count}")
    print("")
    print("Bearer tokens for seeded users:")
    for email, token in tokens.items():
        print(f"  {email}: {token}")


if __name__ == "__main__":
    main()
