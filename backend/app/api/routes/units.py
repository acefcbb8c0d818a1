from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.api.deps import get_current_user, get_db, require_roles
from app.core.exceptions import ConflictError, NotFoundError
from app.models.course import Course
from app.models.unit import Unit
from app.models.user import User, UserRole
from app.schemas.unit import UnitCreate, UnitOut

router = APIRouter()


def _unit_out(unit: Unit) -> UnitOut:
    return UnitOut(
        id=unit.id,
        code=unit.code,
        name=unit.name,
        course_id=unit.course_id,
        capacity=unit.capacity,
        description=unit.description,
        prerequisite_ids=[prereq.id for prereq in unit.prerequisites],
        prerequisite_codes=[prereq.code for prereq in unit.prerequisites],
    )


@router.get("/", response_model=list[UnitOut])
def list_units(
    course_id: str | None = Query(default=None, max_length=36),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[UnitOut]:
    query = select(Unit)
    if course_id:
        query = query.where(Unit.course_id == course_id)
    return [_unit_out(unit) for unit in db.execute(query.order_by(Unit.code)).scalars()]


@router.get("/{unit_id}", response_model=UnitOut)
def get_unit(
    unit_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> UnitOut:
    unit = db.get(Unit, unit_id)
    if unit is None:
        raise NotFoundError("Unit", unit_id)
    return _unit_out(unit)


@router.post("/", response_model=UnitOut, status_code=status.HTTP_201_CREATED)
def create_unit(
    payload: UnitCreate,
    current_user: User = Depends(require_roles(UserRole.admin)),
    db: Session = Depends(get_db),
) -> UnitOut:
    if db.get(Course, payload.course_id) is None:
        raise NotFoundError("Course", payload.course_id)
    existing = db.execute(
        select(Unit).where(Unit.code == payload.code, Unit.course_id == payload.course_id)
    ).scalar_one_or_none()
    if existing:
        raise ConflictError("Unit code already exists in this course", details={"code": payload.code})

    unit = Unit(**payload.model_dump(exclude={"prerequisite_ids"}), created_by_id=current_user.id)
    for prerequisite_id in payload.prerequisite_ids:
        prerequisite = db.get(Unit, prerequisite_id)
        if prerequisite is None:
            raise NotFoundError("Unit", prerequisite_id)
        unit.prerequisites.append(prerequisite)
    db.add(unit)
    db.commit()
    db.refresh(unit)
    return _unit_out(unit)
