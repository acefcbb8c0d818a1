from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from app.api.deps import get_current_user, get_db, require_roles
from app.models.user import User, UserRole
from app.schemas.conflict import ConflictReport
from app.schemas.lecture import (
    BulkLectureCreate,
    BulkLectureResult,
    LectureConflictCheck,
    LectureCreate,
    LectureOut,
    LectureUpdate,
)
from app.services.lecture_service import (
    bulk_create_lectures,
    create_lecture,
    delete_lecture,
    find_lecture_conflicts,
    list_lectures,
    update_lecture,
)

router = APIRouter()


@router.get("/", response_model=list[LectureOut])
def get_lectures(
    timetable_id: str | None = Query(default=None, max_length=36),
    teacher_id: str | None = Query(default=None, max_length=36),
    unit_id: str | None = Query(default=None, max_length=36),
    day_of_week: int | None = Query(default=None, ge=0, le=6),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[LectureOut]:
    return list_lectures(
        db,
        timetable_id=timetable_id,
        teacher_id=teacher_id,
        unit_id=unit_id,
        day_of_week=day_of_week,
        # Students only browse what has been published.
        published_only=current_user.role == UserRole.student and timetable_id is None,
    )


@router.post("/", response_model=LectureOut, status_code=status.HTTP_201_CREATED)
def post_lecture(
    payload: LectureCreate,
    current_user: User = Depends(require_roles(UserRole.admin)),
    db: Session = Depends(get_db),
) -> LectureOut:
    return create_lecture(db, payload)


@router.post("/check-conflicts", response_model=ConflictReport)
def check_conflicts(
    payload: LectureConflictCheck,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ConflictReport:
    return find_lecture_conflicts(db, payload.model_dump())


@router.post("/bulk", response_model=BulkLectureResult, status_code=status.HTTP_201_CREATED)
def post_lectures_bulk(
    payload: BulkLectureCreate,
    response: Response,
    current_user: User = Depends(require_roles(UserRole.admin)),
    db: Session = Depends(get_db),
) -> BulkLectureResult:
    result = bulk_create_lectures(db, payload.lectures)
    if result.failed:
        response.status_code = status.HTTP_207_MULTI_STATUS
    return result


@router.put("/{lecture_id}", response_model=LectureOut)
def put_lecture(
    lecture_id: str,
    payload: LectureUpdate,
    current_user: User = Depends(require_roles(UserRole.admin)),
    db: Session = Depends(get_db),
) -> LectureOut:
    return update_lecture(db, lecture_id, payload)


@router.delete("/{lecture_id}")
def remove_lecture(
    lecture_id: str,
    current_user: User = Depends(require_roles(UserRole.admin)),
    db: Session = Depends(get_db),
) -> dict:
    delete_lecture(db, lecture_id)
    return {"success": True}
