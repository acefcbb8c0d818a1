from datetime import datetime

from pydantic import BaseModel, Field

from app.models.unit_registration import RegistrationStatus


class ValidationIssue(BaseModel):
    code: str
    message: str


class RegistrationValidationOut(BaseModel):
    is_valid: bool
    errors: list[ValidationIssue] = Field(default_factory=list)


class RegistrationRequest(BaseModel):
    unit_id: str = Field(min_length=1, max_length=36)
    semester_id: str = Field(min_length=1, max_length=36)


class UnitRegistrationOut(BaseModel):
    id: str
    student_id: str
    unit_id: str
    semester_id: str
    registration_date: datetime | None = None
    status: RegistrationStatus
    grade: int | None = None

    model_config = {"from_attributes": True}


class GradeUpdate(BaseModel):
    status: RegistrationStatus = RegistrationStatus.completed
    grade: int | None = Field(default=None, ge=0, le=100)


class ErrorExplanationOut(BaseModel):
    code: str
    explanation: str


class AvailableUnitOut(BaseModel):
    id: str
    code: str
    name: str
    course_id: str
    capacity: int | None
    enrolled_count: int
    available_slots: int | None
    prerequisite_codes: list[str] = Field(default_factory=list)
    is_registered: bool = False
    can_register: bool = False
    errors: list[ValidationIssue] = Field(default_factory=list)


class RegistrationWindowOut(BaseModel):
    current_count: int
    max_allowed: int
    can_register_more: bool
    registration_open: bool
    registration_start_date: datetime
    registration_end_date: datetime
    days_remaining: int


class AvailableUnitsOut(BaseModel):
    semester_id: str
    units: list[AvailableUnitOut]
    registration_info: RegistrationWindowOut
