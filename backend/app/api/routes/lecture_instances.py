import datetime as dt

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.api.deps import get_clock, get_current_user, get_db, require_roles
from app.core.clock import Clock
from app.models.user import User, UserRole
from app.schemas.attendance import (
    AttendanceUpdate,
    CancelInstanceRequest,
    LectureInstanceCreate,
    LectureInstanceOut,
    PostponeInstanceRequest,
)
from app.services.instance_service import (
    cancel_instance,
    create_instance,
    get_instance,
    instance_to_out,
    list_instances,
    mark_attendance,
    postpone_instance,
)

router = APIRouter()

staff_only = require_roles(UserRole.admin, UserRole.teacher)


def _viewer_id(user: User) -> str | None:
    return user.id if user.role == UserRole.student else None


@router.get("/", response_model=list[LectureInstanceOut])
def get_instances(
    lecture_id: str = Query(min_length=1, max_length=36),
    start: dt.date | None = Query(default=None),
    end: dt.date | None = Query(default=None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[LectureInstanceOut]:
    viewer = _viewer_id(current_user)
    return [instance_to_out(instance, viewer) for instance in list_instances(db, [lecture_id], start, end)]


@router.post("/", response_model=LectureInstanceOut, status_code=status.HTTP_201_CREATED)
def post_instance(
    payload: LectureInstanceCreate,
    current_user: User = Depends(staff_only),
    db: Session = Depends(get_db),
) -> LectureInstanceOut:
    return instance_to_out(create_instance(db, payload.lecture_id, payload.date))


@router.get("/{instance_id}", response_model=LectureInstanceOut)
def get_one(
    instance_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> LectureInstanceOut:
    return instance_to_out(get_instance(db, instance_id), _viewer_id(current_user))


@router.post("/{instance_id}/attendance", response_model=LectureInstanceOut)
def post_attendance(
    instance_id: str,
    payload: AttendanceUpdate,
    current_user: User = Depends(staff_only),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> LectureInstanceOut:
    instance = get_instance(db, instance_id)
    if current_user.role == UserRole.teacher and instance.teacher_id != current_user.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not your lecture")
    return instance_to_out(mark_attendance(db, instance, payload.attendances, clock.now()))


@router.post("/{instance_id}/cancel", response_model=LectureInstanceOut)
def cancel(
    instance_id: str,
    payload: CancelInstanceRequest,
    current_user: User = Depends(staff_only),
    db: Session = Depends(get_db),
) -> LectureInstanceOut:
    return instance_to_out(cancel_instance(db, get_instance(db, instance_id), payload.reason))


@router.post("/{instance_id}/postpone", response_model=LectureInstanceOut)
def postpone(
    instance_id: str,
    payload: PostponeInstanceRequest,
    current_user: User = Depends(staff_only),
    db: Session = Depends(get_db),
) -> LectureInstanceOut:
    return instance_to_out(postpone_instance(db, get_instance(db, instance_id), payload.new_date, payload.reason))
