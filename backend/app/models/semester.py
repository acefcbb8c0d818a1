import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Table
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from app.db.base import Base
from app.models.course import Course
from app.models.unit import Unit

semester_courses = Table(
    "semester_courses",
    Base.metadata,
    Column("semester_id", String(36), ForeignKey("semesters.id", ondelete="CASCADE"), primary_key=True),
    Column("course_id", String(36), ForeignKey("courses.id", ondelete="CASCADE"), primary_key=True),
)

semester_units = Table(
    "semester_units",
    Base.metadata,
    Column("semester_id", String(36), ForeignKey("semesters.id", ondelete="CASCADE"), primary_key=True),
    Column("unit_id", String(36), ForeignKey("units.id", ondelete="CASCADE"), primary_key=True),
)


class Semester(Base):
    __tablename__ = "semesters"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    registration_start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    registration_end_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    max_units_per_student: Mapped[int] = mapped_column(Integer, nullable=False, default=8)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), onupdate=func.now())

    courses: Mapped[list[Course]] = relationship(Course, secondary=semester_courses, lazy="selectin")
    units: Mapped[list[Unit]] = relationship(Unit, secondary=semester_units, lazy="selectin")
