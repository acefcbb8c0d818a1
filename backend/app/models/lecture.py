import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import Boolean, DateTime, Enum as SAEnum, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.db.base import Base


class LectureType(str, Enum):
    lecture = "lecture"
    tutorial = "tutorial"
    lab = "lab"
    seminar = "seminar"


class LectureFrequency(str, Enum):
    weekly = "weekly"
    biweekly = "biweekly"
    monthly = "monthly"


class Lecture(Base):
    __tablename__ = "lectures"
    __table_args__ = (
        Index("ix_lectures_timetable_day", "timetable_id", "day_of_week"),
        Index("ix_lectures_venue", "venue_building", "venue_room"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    timetable_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("timetables.id", ondelete="CASCADE"), nullable=False
    )
    unit_id: Mapped[str] = mapped_column(String(36), ForeignKey("units.id"), nullable=False, index=True)
    teacher_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    # 0 = Sunday .. 6 = Saturday
    day_of_week: Mapped[int] = mapped_column(Integer, nullable=False)
    start_time: Mapped[str] = mapped_column(String(5), nullable=False)
    end_time: Mapped[str] = mapped_column(String(5), nullable=False)
    venue_building: Mapped[str | None] = mapped_column(String(200), nullable=True)
    venue_room: Mapped[str | None] = mapped_column(String(100), nullable=True)
    venue_capacity: Mapped[int | None] = mapped_column(Integer, nullable=True)
    lecture_type: Mapped[LectureType] = mapped_column(
        SAEnum(LectureType, name="lecture_type"), nullable=False, default=LectureType.lecture
    )
    is_recurring: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    frequency: Mapped[LectureFrequency] = mapped_column(
        SAEnum(LectureFrequency, name="lecture_frequency"), nullable=False, default=LectureFrequency.weekly
    )
    color: Mapped[str] = mapped_column(String(7), nullable=False, default="#3B82F6")
    is_online: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    online_link: Mapped[str | None] = mapped_column(String(500), nullable=True)
    credits: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), onupdate=func.now())
