import uuid
import datetime as dt
from enum import Enum

from sqlalchemy import Date, DateTime, Enum as SAEnum, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from app.db.base import Base


class InstanceStatus(str, Enum):
    scheduled = "scheduled"
    completed = "completed"
    cancelled = "cancelled"
    postponed = "postponed"


class AttendanceStatus(str, Enum):
    present = "present"
    absent = "absent"
    late = "late"
    excused = "excused"


class LectureInstance(Base):
    __tablename__ = "lecture_instances"
    __table_args__ = (
        UniqueConstraint("lecture_id", "date", name="uq_lecture_instances_lecture_date"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    lecture_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False, index=True)
    status: Mapped[InstanceStatus] = mapped_column(
        SAEnum(InstanceStatus, name="instance_status"),
        nullable=False,
        default=InstanceStatus.scheduled,
        index=True,
    )
    # May differ from the lecture's teacher for substitutions.
    teacher_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    venue_building: Mapped[str | None] = mapped_column(String(200), nullable=True)
    venue_room: Mapped[str | None] = mapped_column(String(100), nullable=True)
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")
    cancellation_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True), onupdate=func.now())

    attendance: Mapped[list["AttendanceRecord"]] = relationship(
        back_populates="instance",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class AttendanceRecord(Base):
    __tablename__ = "attendance_records"
    __table_args__ = (
        UniqueConstraint("instance_id", "student_id", name="uq_attendance_records_instance_student"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    instance_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("lecture_instances.id", ondelete="CASCADE"), nullable=False
    )
    student_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    status: Mapped[AttendanceStatus] = mapped_column(
        SAEnum(AttendanceStatus, name="attendance_status"), nullable=False
    )
    checked_in_at: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    instance: Mapped[LectureInstance] = relationship(back_populates="attendance")
