"""Rule chain deciding whether a student may register for a unit.

Every applicable rule runs and every violation is reported; the chain only
stops early when a referenced entity is missing and later rules would have
nothing to look at. The rules read a ``RegistrationSnapshot`` that the caller
loads up front, so the engine itself never touches the database.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Tuple

from app.core.clock import as_utc
from app.schemas.registration import RegistrationValidationOut, ValidationIssue


class RegistrationErrorCode(str, Enum):
    SEMESTER_NOT_FOUND = "SEMESTER_NOT_FOUND"
    USER_NOT_FOUND = "USER_NOT_FOUND"
    REGISTRATION_CLOSED = "REGISTRATION_CLOSED"
    MAX_UNITS_EXCEEDED = "MAX_UNITS_EXCEEDED"
    UNIT_NOT_FOUND = "UNIT_NOT_FOUND"
    UNIT_FULL = "UNIT_FULL"
    MISSING_PREREQUISITES = "MISSING_PREREQUISITES"
    ALREADY_REGISTERED = "ALREADY_REGISTERED"
    NOT_ENROLLED_IN_COURSE = "NOT_ENROLLED_IN_COURSE"


ERROR_MESSAGES: Dict[str, str] = {
    RegistrationErrorCode.REGISTRATION_CLOSED.value: "The registration period has ended. Please contact your academic advisor.",
    RegistrationErrorCode.MAX_UNITS_EXCEEDED.value: "You have reached the maximum number of units allowed for this semester.",
    RegistrationErrorCode.UNIT_FULL.value: "This unit is full. Please select another unit or contact your department.",
    RegistrationErrorCode.MISSING_PREREQUISITES.value: "You must complete the prerequisite units before registering for this unit.",
    RegistrationErrorCode.ALREADY_REGISTERED.value: "You are already registered for this unit.",
    RegistrationErrorCode.NOT_ENROLLED_IN_COURSE.value: "This unit is not available for your course.",
    RegistrationErrorCode.SEMESTER_NOT_FOUND.value: "The selected semester was not found.",
    RegistrationErrorCode.UNIT_NOT_FOUND.value: "The selected unit was not found.",
    RegistrationErrorCode.USER_NOT_FOUND.value: "User information not found.",
}

UNKNOWN_ERROR_MESSAGE = "An unknown error occurred."


def get_error_message(code: str) -> str:
    return ERROR_MESSAGES.get(code, UNKNOWN_ERROR_MESSAGE)


@dataclass(frozen=True)
class SemesterInfo:
    id: str
    name: str
    registration_start_date: datetime
    registration_end_date: datetime
    max_units_per_student: int

    def is_registration_open(self, now: datetime) -> bool:
        current = as_utc(now)
        return as_utc(self.registration_start_date) <= current <= as_utc(self.registration_end_date)


@dataclass(frozen=True)
class UnitInfo:
    id: str
    code: str
    course_id: str
    capacity: Optional[int] = None
    prerequisite_ids: Tuple[str, ...] = ()


@dataclass(frozen=True)
class StudentInfo:
    id: str
    course_id: Optional[str]


@dataclass(frozen=True)
class RegistrationInfo:
    unit_id: str
    semester_id: str
    status: str
    grade: Optional[int] = None


@dataclass(frozen=True)
class RegistrationSnapshot:
    student_id: str
    unit_id: str
    semester_id: str
    semester: Optional[SemesterInfo]
    student: Optional[StudentInfo]
    unit: Optional[UnitInfo]
    prerequisites: Dict[str, UnitInfo] = field(default_factory=dict)
    # Every registration the student holds, in any semester.
    student_registrations: Tuple[RegistrationInfo, ...] = ()
    unit_active_count: int = 0


def _issue(code: RegistrationErrorCode, message: str) -> ValidationIssue:
    return ValidationIssue(code=code.value, message=message)


def _result(errors: List[ValidationIssue]) -> RegistrationValidationOut:
    return RegistrationValidationOut(is_valid=not errors, errors=errors)


def validate_registration(
    snapshot: RegistrationSnapshot,
    now: datetime,
    passing_grade: int = 50,
) -> RegistrationValidationOut:
    errors: List[ValidationIssue] = []

    semester = snapshot.semester
    if semester is None:
        errors.append(_issue(RegistrationErrorCode.SEMESTER_NOT_FOUND, "Semester not found"))
        return _result(errors)

    # Checked before anything reads the student's fields.
    student = snapshot.student
    if student is None:
        errors.append(_issue(RegistrationErrorCode.USER_NOT_FOUND, "User not found"))
        return _result(errors)

    if not semester.is_registration_open(now):
        errors.append(_issue(
            RegistrationErrorCode.REGISTRATION_CLOSED,
            "Registration period is closed. Registration was open from "
            f"{semester.registration_start_date.date().isoformat()} to "
            f"{semester.registration_end_date.date().isoformat()}",
        ))

    active_in_semester = sum(
        1
        for registration in snapshot.student_registrations
        if registration.semester_id == snapshot.semester_id and registration.status == "active"
    )
    if active_in_semester >= semester.max_units_per_student:
        errors.append(_issue(
            RegistrationErrorCode.MAX_UNITS_EXCEEDED,
            f"Maximum unit limit ({semester.max_units_per_student}) reached",
        ))

    unit = snapshot.unit
    if unit is None:
        errors.append(_issue(RegistrationErrorCode.UNIT_NOT_FOUND, "Unit not found"))
        return _result(errors)

    if unit.capacity and snapshot.unit_active_count >= unit.capacity:
        errors.append(_issue(
            RegistrationErrorCode.UNIT_FULL,
            f"Unit is full ({snapshot.unit_active_count}/{unit.capacity} enrolled)",
        ))

    if unit.prerequisite_ids:
        passed = {
            registration.unit_id
            for registration in snapshot.student_registrations
            if registration.status == "completed"
            and registration.grade is not None
            and registration.grade >= passing_grade
        }
        missing = [prereq_id for prereq_id in unit.prerequisite_ids if prereq_id not in passed]
        if missing:
            codes = ", ".join(
                snapshot.prerequisites[prereq_id].code if prereq_id in snapshot.prerequisites else prereq_id
                for prereq_id in missing
            )
            errors.append(_issue(RegistrationErrorCode.MISSING_PREREQUISITES, f"Missing prerequisites: {codes}"))

    already_registered = any(
        registration.unit_id == snapshot.unit_id
        and registration.semester_id == snapshot.semester_id
        and registration.status != "dropped"
        for registration in snapshot.student_registrations
    )
    if already_registered:
        errors.append(_issue(RegistrationErrorCode.ALREADY_REGISTERED, "Already registered for this unit"))

    if not student.course_id or student.course_id != unit.course_id:
        errors.append(_issue(
            RegistrationErrorCode.NOT_ENROLLED_IN_COURSE,
            "You must be enrolled in the course to register for this unit",
        ))

    return _result(errors)
