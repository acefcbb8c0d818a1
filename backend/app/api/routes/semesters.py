from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.api.deps import get_clock, get_current_user, get_db, require_roles
from app.core.clock import Clock
from app.core.exceptions import NotFoundError
from app.models.semester import Semester
from app.models.user import User, UserRole
from app.schemas.semester import CurrentSemesterOut, SemesterCreate, SemesterOut
from app.services.semester_service import create_semester, current_semester, semester_to_out

router = APIRouter()


@router.get("/", response_model=list[SemesterOut])
def list_semesters(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> list[SemesterOut]:
    now = clock.now()
    semesters = db.execute(select(Semester).order_by(Semester.start_date.desc())).scalars()
    return [semester_to_out(semester, now) for semester in semesters]


@router.get("/current", response_model=CurrentSemesterOut)
def get_current_semester(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> CurrentSemesterOut:
    return current_semester(db, clock.now())


@router.get("/{semester_id}", response_model=SemesterOut)
def get_semester(
    semester_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> SemesterOut:
    semester = db.get(Semester, semester_id)
    if semester is None:
        raise NotFoundError("Semester", semester_id)
    return semester_to_out(semester, clock.now())


@router.post("/", response_model=SemesterOut, status_code=status.HTTP_201_CREATED)
def post_semester(
    payload: SemesterCreate,
    current_user: User = Depends(require_roles(UserRole.admin)),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> SemesterOut:
    return semester_to_out(create_semester(db, payload), clock.now())
