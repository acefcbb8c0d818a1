from datetime import datetime

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.api.deps import get_current_user, get_db, require_roles
from app.core.exceptions import ConflictError, NotFoundError
from app.models.user import User, UserRole
from app.models.venue import Venue, VenueMaintenance, VenueType
from app.schemas.venue import MaintenanceWindow, VenueAvailabilityOut, VenueCreate, VenueOut
from app.services.lecture_service import get_venue_availability, venue_to_out

router = APIRouter()


@router.get("/", response_model=list[VenueOut])
def list_venues(
    venue_type: VenueType | None = Query(default=None, alias="type"),
    min_capacity: int | None = Query(default=None, ge=0, alias="capacity"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[VenueOut]:
    query = select(Venue).where(Venue.is_active.is_(True))
    if venue_type is not None:
        query = query.where(Venue.type == venue_type)
    if min_capacity is not None:
        query = query.where(Venue.capacity >= min_capacity)
    venues = db.execute(query.order_by(Venue.building, Venue.room)).scalars()
    return [venue_to_out(venue) for venue in venues]


@router.post("/", response_model=VenueOut, status_code=status.HTTP_201_CREATED)
def create_venue(
    payload: VenueCreate,
    current_user: User = Depends(require_roles(UserRole.admin)),
    db: Session = Depends(get_db),
) -> VenueOut:
    existing = db.execute(
        select(Venue).where(Venue.building == payload.building, Venue.room == payload.room)
    ).scalar_one_or_none()
    if existing:
        raise ConflictError("Venue already exists", details={"building": payload.building, "room": payload.room})
    venue = Venue(**payload.model_dump())
    db.add(venue)
    db.commit()
    db.refresh(venue)
    return venue_to_out(venue)


@router.get("/availability", response_model=VenueAvailabilityOut)
def venue_availability(
    day_of_week: int = Query(ge=0, le=6),
    start_time: str = Query(min_length=3, max_length=5),
    end_time: str = Query(min_length=3, max_length=5),
    timetable_id: str = Query(min_length=1, max_length=36),
    capacity: int | None = Query(default=None, ge=0),
    venue_type: VenueType | None = Query(default=None, alias="type"),
    on_date: datetime | None = Query(default=None, alias="date"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> VenueAvailabilityOut:
    return get_venue_availability(
        db,
        day_of_week=day_of_week,
        start_time=start_time,
        end_time=end_time,
        timetable_id=timetable_id,
        capacity=capacity,
        venue_type=venue_type.value if venue_type is not None else None,
        on_date=on_date,
    )


@router.post("/{venue_id}/maintenance", response_model=VenueOut, status_code=status.HTTP_201_CREATED)
def add_maintenance(
    venue_id: str,
    payload: MaintenanceWindow,
    current_user: User = Depends(require_roles(UserRole.admin)),
    db: Session = Depends(get_db),
) -> VenueOut:
    venue = db.get(Venue, venue_id)
    if venue is None:
        raise NotFoundError("Venue", venue_id)
    for window in venue_to_out(venue).maintenance_windows:
        if payload.start_date < window.end_date and payload.end_date > window.start_date:
            raise ConflictError(
                "Maintenance window overlaps an existing one",
                details={"start_date": window.start_date.isoformat(), "end_date": window.end_date.isoformat()},
            )
    venue.maintenance_windows.append(VenueMaintenance(**payload.model_dump()))
    db.commit()
    db.refresh(venue)
    return venue_to_out(venue)
