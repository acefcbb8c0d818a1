from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.api.deps import get_clock, get_db, require_roles
from app.core.clock import Clock
from app.models.user import User, UserRole
from app.schemas.registration import (
    AvailableUnitsOut,
    ErrorExplanationOut,
    GradeUpdate,
    RegistrationRequest,
    RegistrationValidationOut,
    UnitRegistrationOut,
)
from app.services.registration_service import (
    drop_registration,
    get_registration,
    list_available_units,
    list_registrations,
    record_grade,
    register_for_unit,
    validate_student_registration,
)
from app.services.registration_validation import get_error_message

router = APIRouter()


@router.get("/", response_model=list[UnitRegistrationOut])
def my_registrations(
    semester_id: str | None = Query(default=None, max_length=36),
    current_user: User = Depends(require_roles(UserRole.student)),
    db: Session = Depends(get_db),
) -> list[UnitRegistrationOut]:
    return list_registrations(db, current_user.id, semester_id)


@router.post("/", response_model=UnitRegistrationOut, status_code=status.HTTP_201_CREATED)
def register(
    payload: RegistrationRequest,
    current_user: User = Depends(require_roles(UserRole.student)),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> UnitRegistrationOut:
    return register_for_unit(db, current_user, payload.unit_id, payload.semester_id, clock.now())


@router.post("/validate", response_model=RegistrationValidationOut)
def validate(
    payload: RegistrationRequest,
    current_user: User = Depends(require_roles(UserRole.student)),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> RegistrationValidationOut:
    return validate_student_registration(db, current_user.id, payload.unit_id, payload.semester_id, clock.now())


@router.get("/available", response_model=AvailableUnitsOut)
def available_units(
    semester_id: str = Query(min_length=1, max_length=36),
    current_user: User = Depends(require_roles(UserRole.student)),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> AvailableUnitsOut:
    return list_available_units(db, current_user, semester_id, clock.now())


@router.get("/errors/{code}", response_model=ErrorExplanationOut)
def explain_error(code: str) -> ErrorExplanationOut:
    return ErrorExplanationOut(code=code, explanation=get_error_message(code))


@router.delete("/{registration_id}", response_model=UnitRegistrationOut)
def drop(
    registration_id: str,
    current_user: User = Depends(require_roles(UserRole.student)),
    db: Session = Depends(get_db),
) -> UnitRegistrationOut:
    registration = get_registration(db, registration_id)
    if registration.student_id != current_user.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not your registration")
    return drop_registration(db, registration)


@router.patch("/{registration_id}/grade", response_model=UnitRegistrationOut)
def grade(
    registration_id: str,
    payload: GradeUpdate,
    current_user: User = Depends(require_roles(UserRole.admin, UserRole.teacher)),
    db: Session = Depends(get_db),
) -> UnitRegistrationOut:
    return record_grade(db, get_registration(db, registration_id), payload)
