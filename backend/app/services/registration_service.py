from __future__ import annotations

import logging
from datetime import datetime
from typing import NoReturn

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.clock import as_utc
from app.core.config import get_settings
from app.core.exceptions import ConflictError, NotFoundError, StateError, ValidationError
from app.models.semester import Semester
from app.models.unit_registration import RegistrationStatus, UnitRegistration
from app.models.user import User
from app.schemas.registration import (
    AvailableUnitOut,
    AvailableUnitsOut,
    GradeUpdate,
    RegistrationValidationOut,
    RegistrationWindowOut,
    ValidationIssue,
)
from app.services.registration_validation import (
    RegistrationErrorCode,
    RegistrationInfo,
    RegistrationSnapshot,
    StudentInfo,
    validate_registration,
)
from app.services.semester_service import registration_days_remaining
from app.services.snapshots import load_registration_snapshot, semester_info_from_model, unit_info_from_model

logger = logging.getLogger(__name__)


def validate_student_registration(
    db: Session,
    student_id: str,
    unit_id: str,
    semester_id: str,
    now: datetime,
) -> RegistrationValidationOut:
    snapshot = load_registration_snapshot(db, student_id, unit_id, semester_id)
    return validate_registration(snapshot, now, get_settings().passing_grade)


def _reject(issues: list[ValidationIssue], cause: Exception | None = None) -> NoReturn:
    raise ConflictError(
        "Registration validation failed",
        details={"validation_errors": [issue.model_dump() for issue in issues]},
    ) from cause


def register_for_unit(db: Session, student: User, unit_id: str, semester_id: str, now: datetime) -> UnitRegistration:
    snapshot = load_registration_snapshot(db, student.id, unit_id, semester_id, lock=True)
    result = validate_registration(snapshot, now, get_settings().passing_grade)
    if not result.is_valid:
        codes = [issue.code for issue in result.errors]
        logger.warning(
            "Registration of student %s for unit %s in semester %s rejected: %s",
            student.id,
            unit_id,
            semester_id,
            ", ".join(codes),
        )
        _reject(result.errors)

    registration = db.execute(
        select(UnitRegistration).where(
            UnitRegistration.student_id == student.id,
            UnitRegistration.unit_id == unit_id,
            UnitRegistration.semester_id == semester_id,
        )
    ).scalar_one_or_none()
    if registration is None:
        registration = UnitRegistration(student_id=student.id, unit_id=unit_id, semester_id=semester_id)
        db.add(registration)
    else:
        # Only a dropped row can get here; the duplicate rule rejects the rest.
        registration.grade = None
    registration.status = RegistrationStatus.active
    registration.registration_date = as_utc(now)
    try:
        db.commit()
    except IntegrityError as exc:
        # A concurrent request inserted the same (student, unit, semester) row first.
        db.rollback()
        logger.warning(
            "Registration of student %s for unit %s in semester %s lost a concurrent insert",
            student.id,
            unit_id,
            semester_id,
        )
        _reject(
            [ValidationIssue(code=RegistrationErrorCode.ALREADY_REGISTERED.value, message="Already registered for this unit")],
            cause=exc,
        )
    db.refresh(registration)
    logger.info("Student %s registered for unit %s in semester %s", student.id, unit_id, semester_id)
    return registration


def list_registrations(db: Session, student_id: str, semester_id: str | None = None) -> list[UnitRegistration]:
    query = select(UnitRegistration).where(UnitRegistration.student_id == student_id)
    if semester_id:
        query = query.where(UnitRegistration.semester_id == semester_id)
    return list(db.execute(query.order_by(UnitRegistration.registration_date.asc())).scalars())


def get_registration(db: Session, registration_id: str) -> UnitRegistration:
    registration = db.get(UnitRegistration, registration_id)
    if registration is None:
        raise NotFoundError("Registration", registration_id)
    return registration


def drop_registration(db: Session, registration: UnitRegistration) -> UnitRegistration:
    if registration.status != RegistrationStatus.active:
        raise StateError(
            f"Cannot drop a {registration.status.value} registration",
            details={"status": registration.status.value},
        )
    registration.status = RegistrationStatus.dropped
    db.commit()
    db.refresh(registration)
    logger.info("Registration %s dropped", registration.id)
    return registration


def record_grade(db: Session, registration: UnitRegistration, payload: GradeUpdate) -> UnitRegistration:
    registration.status = payload.status
    registration.grade = payload.grade
    db.commit()
    db.refresh(registration)
    return registration


def list_available_units(db: Session, student: User, semester_id: str, now: datetime) -> AvailableUnitsOut:
    semester = db.get(Semester, semester_id)
    if semester is None:
        raise NotFoundError("Semester", semester_id)
    if not student.course_id:
        raise ValidationError("Student is not enrolled in any course")

    units = [unit for unit in semester.units if unit.course_id == student.course_id]
    registrations = tuple(
        RegistrationInfo(
            unit_id=registration.unit_id,
            semester_id=registration.semester_id,
            status=registration.status.value,
            grade=registration.grade,
        )
        for registration in list_registrations(db, student.id)
    )
    enrolled = dict(
        db.execute(
            select(UnitRegistration.unit_id, func.count())
            .where(
                UnitRegistration.semester_id == semester_id,
                UnitRegistration.status == RegistrationStatus.active,
            )
            .group_by(UnitRegistration.unit_id)
        ).all()
    )

    semester_info = semester_info_from_model(semester)
    student_info = StudentInfo(id=student.id, course_id=student.course_id)
    passing_grade = get_settings().passing_grade
    items: list[AvailableUnitOut] = []
    for unit in sorted(units, key=lambda item: item.code):
        enrolled_count = enrolled.get(unit.id, 0)
        result = validate_registration(
            RegistrationSnapshot(
                student_id=student.id,
                unit_id=unit.id,
                semester_id=semester_id,
                semester=semester_info,
                student=student_info,
                unit=unit_info_from_model(unit),
                prerequisites={prereq.id: unit_info_from_model(prereq) for prereq in unit.prerequisites},
                student_registrations=registrations,
                unit_active_count=enrolled_count,
            ),
            now,
            passing_grade,
        )
        items.append(AvailableUnitOut(
            id=unit.id,
            code=unit.code,
            name=unit.name,
            course_id=unit.course_id,
            capacity=unit.capacity,
            enrolled_count=enrolled_count,
            available_slots=max(0, unit.capacity - enrolled_count) if unit.capacity else None,
            prerequisite_codes=[prereq.code for prereq in unit.prerequisites],
            is_registered=any(
                item.unit_id == unit.id and item.semester_id == semester_id and item.status != "dropped"
                for item in registrations
            ),
            can_register=result.is_valid,
            errors=result.errors,
        ))

    active_count = sum(1 for item in registrations if item.semester_id == semester_id and item.status == "active")
    return AvailableUnitsOut(
        semester_id=semester_id,
        units=items,
        registration_info=RegistrationWindowOut(
            current_count=active_count,
            max_allowed=semester.max_units_per_student,
            can_register_more=active_count < semester.max_units_per_student,
            registration_open=semester_info.is_registration_open(now),
            registration_start_date=semester.registration_start_date,
            registration_end_date=semester.registration_end_date,
            days_remaining=registration_days_remaining(semester, now),
        ),
    )
