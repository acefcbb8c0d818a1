import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import Boolean, DateTime, Enum as SAEnum, ForeignKey, Integer, JSON, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from app.db.base import Base


class VenueType(str, Enum):
    lecture_hall = "lecture_hall"
    lab = "lab"
    tutorial_room = "tutorial_room"
    auditorium = "auditorium"
    seminar_room = "seminar_room"


class Venue(Base):
    __tablename__ = "venues"
    __table_args__ = (
        UniqueConstraint("building", "room", name="uq_venues_building_room"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    building: Mapped[str] = mapped_column(String(200), nullable=False)
    room: Mapped[str] = mapped_column(String(100), nullable=False)
    capacity: Mapped[int] = mapped_column(Integer, nullable=False)
    type: Mapped[VenueType] = mapped_column(
        SAEnum(VenueType, name="venue_type"), nullable=False, default=VenueType.lecture_hall
    )
    facilities: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), onupdate=func.now())

    maintenance_windows: Mapped[list["VenueMaintenance"]] = relationship(
        back_populates="venue",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="VenueMaintenance.start_date",
    )


class VenueMaintenance(Base):
    __tablename__ = "venue_maintenance"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    venue_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("venues.id", ondelete="CASCADE"), nullable=False, index=True
    )
    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    reason: Mapped[str] = mapped_column(String(500), nullable=False)

    venue: Mapped[Venue] = relationship(back_populates="maintenance_windows")
