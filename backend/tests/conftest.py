import os

# The app module builds its engine at import time; point it at SQLite before that happens.
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite://")
os.environ.setdefault("AUTO_CREATE_SCHEMA", "true")

from datetime import datetime, timezone  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.api.deps import get_clock, get_db  # noqa: E402
from app.core.clock import FixedClock  # noqa: E402
from app.core.security import create_access_token  # noqa: E402
from app.db.base import Base  # noqa: E402
from app.main import app  # noqa: E402
from app.models.course import Course  # noqa: E402
from app.models.lecture import Lecture  # noqa: E402
from app.models.semester import Semester  # noqa: E402
from app.models.timetable import Timetable  # noqa: E402
from app.models.unit import Unit  # noqa: E402
from app.models.user import User, UserRole  # noqa: E402
from app.models.venue import Venue  # noqa: E402

NOW = datetime(2025, 1, 10, 9, 0, tzinfo=timezone.utc)


@pytest.fixture()
def clock():
    return FixedClock(NOW)


@pytest.fixture()
def db_session():
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture()
def client(db_session, clock):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user.id, user.role.value)}"}


class Factory:
    """Inserts rows straight through the session so tests can focus on one endpoint."""

    def __init__(self, db):
        self.db = db
        self._counter = 0

    def _next(self) -> int:
        self._counter += 1
        return self._counter

    def _save(self, obj):
        self.db.add(obj)
        self.db.commit()
        self.db.refresh(obj)
        return obj

    def user(self, role: UserRole = UserRole.student, **fields) -> User:
        number = self._next()
        fields.setdefault("name", f"{role.value.title()} {number}")
        fields.setdefault("email", f"{role.value}{number}@example.edu")
        return self._save(User(role=role, **fields))

    def course(self, code: str = "BSC-CS", name: str = "Computer Science") -> Course:
        return self._save(Course(code=code, name=name))

    def unit(self, course: Course, code: str, capacity: int | None = None, prerequisites=()) -> Unit:
        unit = Unit(code=code, name=f"Unit {code}", course_id=course.id, capacity=capacity)
        unit.prerequisites.extend(prerequisites)
        return self._save(unit)

    def semester(
        self,
        registration_start: datetime = datetime(2025, 1, 1, tzinfo=timezone.utc),
        registration_end: datetime = datetime(2025, 1, 15, tzinfo=timezone.utc),
        max_units: int = 8,
        courses=(),
        units=(),
        start_date: datetime = datetime(2025, 1, 1, tzinfo=timezone.utc),
        end_date: datetime = datetime(2025, 5, 31, tzinfo=timezone.utc),
    ) -> Semester:
        semester = Semester(
            name=f"Semester {self._next()}",
            start_date=start_date,
            end_date=end_date,
            registration_start_date=registration_start,
            registration_end_date=registration_end,
            max_units_per_student=max_units,
        )
        semester.courses.extend(courses)
        semester.units.extend(units)
        return self._save(semester)

    def timetable(self, semester: Semester, course: Course, **fields) -> Timetable:
        fields.setdefault("name", f"Timetable {self._next()}")
        fields.setdefault("effective_from", datetime(2025, 1, 6, tzinfo=timezone.utc))
        fields.setdefault("effective_to", datetime(2025, 5, 30, tzinfo=timezone.utc))
        return self._save(Timetable(semester_id=semester.id, course_id=course.id, **fields))

    def lecture(
        self,
        timetable: Timetable,
        unit: Unit,
        teacher: User,
        day_of_week: int = 1,
        start_time: str = "09:00",
        end_time: str = "10:00",
        building: str | None = "Main",
        room: str | None = "101",
        is_online: bool = False,
    ) -> Lecture:
        return self._save(Lecture(
            timetable_id=timetable.id,
            unit_id=unit.id,
            teacher_id=teacher.id,
            day_of_week=day_of_week,
            start_time=start_time,
            end_time=end_time,
            venue_building=building,
            venue_room=room,
            is_online=is_online,
        ))

    def venue(self, building: str = "Main", room: str = "101", capacity: int = 60, **fields) -> Venue:
        return self._save(Venue(building=building, room=room, capacity=capacity, **fields))


@pytest.fixture()
def factory(db_session):
    return Factory(db_session)


@pytest.fixture()
def auth():
    return auth_headers
