import logging

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.api.deps import get_clock, get_current_user, get_db, require_roles
from app.core.clock import Clock
from app.core.exceptions import NotFoundError
from app.models.course import Course
from app.models.semester import Semester
from app.models.timetable import Timetable, TimetableStatus
from app.models.user import User, UserRole
from app.schemas.timetable import TimetableCreate, TimetableOut, TimetablePublishOut
from app.services.timetable_service import archive_timetable, publish_timetable, timetable_to_out

router = APIRouter()

logger = logging.getLogger(__name__)


@router.get("/", response_model=list[TimetableOut])
def list_timetables(
    semester_id: str | None = Query(default=None, max_length=36),
    course_id: str | None = Query(default=None, max_length=36),
    status_filter: TimetableStatus | None = Query(default=None, alias="status"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> list[TimetableOut]:
    query = select(Timetable)
    if semester_id:
        query = query.where(Timetable.semester_id == semester_id)
    if course_id:
        query = query.where(Timetable.course_id == course_id)
    if current_user.role == UserRole.student:
        query = query.where(Timetable.status == TimetableStatus.published)
    elif status_filter is not None:
        query = query.where(Timetable.status == status_filter)
    now = clock.now()
    timetables = db.execute(query.order_by(Timetable.effective_from.desc())).scalars()
    return [timetable_to_out(db, timetable, now) for timetable in timetables]


@router.get("/{timetable_id}", response_model=TimetableOut)
def get_timetable(
    timetable_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> TimetableOut:
    timetable = db.get(Timetable, timetable_id)
    if timetable is None:
        raise NotFoundError("Timetable", timetable_id)
    return timetable_to_out(db, timetable, clock.now())


@router.post("/", response_model=TimetableOut, status_code=status.HTTP_201_CREATED)
def create_timetable(
    payload: TimetableCreate,
    current_user: User = Depends(require_roles(UserRole.admin)),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> TimetableOut:
    if db.get(Semester, payload.semester_id) is None:
        raise NotFoundError("Semester", payload.semester_id)
    if db.get(Course, payload.course_id) is None:
        raise NotFoundError("Course", payload.course_id)
    timetable = Timetable(**payload.model_dump(), created_by_id=current_user.id)
    db.add(timetable)
    db.commit()
    db.refresh(timetable)
    logger.info("Timetable %s created for semester %s course %s", timetable.id, timetable.semester_id, timetable.course_id)
    return timetable_to_out(db, timetable, clock.now())


@router.post("/{timetable_id}/publish", response_model=TimetablePublishOut)
def publish(
    timetable_id: str,
    current_user: User = Depends(require_roles(UserRole.admin)),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> TimetablePublishOut:
    return publish_timetable(db, timetable_id, clock.now())


@router.post("/{timetable_id}/archive", response_model=TimetableOut)
def archive(
    timetable_id: str,
    current_user: User = Depends(require_roles(UserRole.admin)),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> TimetableOut:
    return archive_timetable(db, timetable_id, clock.now())
