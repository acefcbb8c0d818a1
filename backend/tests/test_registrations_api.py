import uuid
from datetime import datetime, timezone

import pytest
from sqlalchemy import insert

from app.models.unit_registration import RegistrationStatus, UnitRegistration
from app.models.user import UserRole
from app.services.snapshots import count_active_registrations


@pytest.fixture()
def campus(factory):
    course = factory.course()
    intro = factory.unit(course, "CS101", capacity=2)
    advanced = factory.unit(course, "CS201", prerequisites=[intro])
    past = factory.semester(
        registration_start=datetime(2024, 8, 1, tzinfo=timezone.utc),
        registration_end=datetime(2024, 8, 15, tzinfo=timezone.utc),
        start_date=datetime(2024, 9, 1, tzinfo=timezone.utc),
        end_date=datetime(2024, 12, 20, tzinfo=timezone.utc),
        courses=[course],
        units=[intro],
    )
    semester = factory.semester(max_units=2, courses=[course], units=[intro, advanced])
    return {
        "course": course,
        "intro": intro,
        "advanced": advanced,
        "past": past,
        "semester": semester,
        "student": factory.user(UserRole.student, course_id=course.id),
        "admin": factory.user(UserRole.admin),
    }


def add_registration(db, student, unit, semester, status=RegistrationStatus.active, grade=None):
    registration = UnitRegistration(
        student_id=student.id, unit_id=unit.id, semester_id=semester.id, status=status, grade=grade
    )
    db.add(registration)
    db.commit()
    return registration


def register(client, headers, unit, semester):
    return client.post(
        "/api/unit-registrations/",
        json={"unit_id": unit.id, "semester_id": semester.id},
        headers=headers,
    )


def test_register_for_unit(client, campus, auth):
    response = register(client, auth(campus["student"]), campus["intro"], campus["semester"])

    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "active"
    assert body["student_id"] == campus["student"].id
    assert body["registration_date"].startswith("2025-01-10")


def test_failed_registration_lists_every_reason(client, campus, auth):
    response = register(client, auth(campus["student"]), campus["advanced"], campus["semester"])

    assert response.status_code == 409
    body = response.json()
    assert body["message"] == "Registration validation failed"
    assert body["details"]["validation_errors"] == [
        {"code": "MISSING_PREREQUISITES", "message": "Missing prerequisites: CS101"},
    ]


def test_completed_prerequisite_unlocks_unit(client, campus, db_session, auth):
    add_registration(
        db_session, campus["student"], campus["intro"], campus["past"], RegistrationStatus.completed, grade=64
    )
    response = register(client, auth(campus["student"]), campus["advanced"], campus["semester"])
    assert response.status_code == 201


def test_closed_window_is_rejected(client, campus, auth, clock):
    clock.set(datetime(2025, 1, 20, tzinfo=timezone.utc))
    response = register(client, auth(campus["student"]), campus["intro"], campus["semester"])
    codes = [error["code"] for error in response.json()["details"]["validation_errors"]]
    assert codes == ["REGISTRATION_CLOSED"]


def test_full_unit_is_rejected(client, campus, factory, db_session, auth):
    for _ in range(2):
        classmate = factory.user(UserRole.student, course_id=campus["course"].id)
        add_registration(db_session, classmate, campus["intro"], campus["semester"])

    response = register(client, auth(campus["student"]), campus["intro"], campus["semester"])

    error = response.json()["details"]["validation_errors"][0]
    assert error["code"] == "UNIT_FULL"
    assert "2/2" in error["message"]


def test_student_from_another_course_is_rejected(client, campus, factory, auth):
    outsider = factory.user(UserRole.student, course_id=factory.course(code="BA-HIST", name="History").id)
    response = register(client, auth(outsider), campus["intro"], campus["semester"])
    codes = [error["code"] for error in response.json()["details"]["validation_errors"]]
    assert codes == ["NOT_ENROLLED_IN_COURSE"]


def test_duplicate_registration_is_rejected(client, campus, auth):
    headers = auth(campus["student"])
    register(client, headers, campus["intro"], campus["semester"])
    response = register(client, headers, campus["intro"], campus["semester"])
    codes = [error["code"] for error in response.json()["details"]["validation_errors"]]
    assert codes == ["ALREADY_REGISTERED"]


def test_registration_losing_a_concurrent_insert_reports_duplicate(client, campus, db_session, auth, monkeypatch):
    student, unit, semester = campus["student"], campus["intro"], campus["semester"]
    real_commit = db_session.commit

    def commit_after_competing_insert():
        # Another request for the same student wins between validation and commit.
        monkeypatch.setattr(db_session, "commit", real_commit)
        db_session.execute(
            insert(UnitRegistration).values(
                id=str(uuid.uuid4()),
                student_id=student.id,
                unit_id=unit.id,
                semester_id=semester.id,
                status=RegistrationStatus.active,
            )
        )
        real_commit()

    monkeypatch.setattr(db_session, "commit", commit_after_competing_insert)
    response = register(client, auth(student), unit, semester)

    assert response.status_code == 409
    body = response.json()
    assert body["message"] == "Registration validation failed"
    assert body["details"]["validation_errors"] == [
        {"code": "ALREADY_REGISTERED", "message": "Already registered for this unit"},
    ]


def test_drop_then_register_again_reuses_row(client, campus, auth):
    headers = auth(campus["student"])
    first = register(client, headers, campus["intro"], campus["semester"]).json()

    dropped = client.delete(f"/api/unit-registrations/{first['id']}", headers=headers)
    assert dropped.json()["status"] == "dropped"
    assert client.delete(f"/api/unit-registrations/{first['id']}", headers=headers).status_code == 409

    again = register(client, headers, campus["intro"], campus["semester"])
    assert again.status_code == 201
    assert again.json()["id"] == first["id"]
    assert again.json()["status"] == "active"


def test_cannot_drop_someone_elses_registration(client, campus, factory, db_session, auth):
    registration = add_registration(db_session, campus["student"], campus["intro"], campus["semester"])
    other = factory.user(UserRole.student, course_id=campus["course"].id)
    response = client.delete(f"/api/unit-registrations/{registration.id}", headers=auth(other))
    assert response.status_code == 403


def test_validate_does_not_register(client, campus, auth):
    headers = auth(campus["student"])
    response = client.post(
        "/api/unit-registrations/validate",
        json={"unit_id": campus["intro"].id, "semester_id": campus["semester"].id},
        headers=headers,
    )
    assert response.json() == {"is_valid": True, "errors": []}
    assert client.get("/api/unit-registrations/", headers=headers).json() == []


def test_validate_unknown_semester(client, campus, auth):
    response = client.post(
        "/api/unit-registrations/validate",
        json={"unit_id": campus["intro"].id, "semester_id": "missing"},
        headers=auth(campus["student"]),
    )
    assert [error["code"] for error in response.json()["errors"]] == ["SEMESTER_NOT_FOUND"]


def test_available_units_annotate_eligibility(client, campus, db_session, auth):
    add_registration(db_session, campus["student"], campus["intro"], campus["semester"])

    response = client.get(
        "/api/unit-registrations/available",
        params={"semester_id": campus["semester"].id},
        headers=auth(campus["student"]),
    )

    assert response.status_code == 200
    body = response.json()
    by_code = {unit["code"]: unit for unit in body["units"]}
    assert by_code["CS101"]["is_registered"] is True
    assert by_code["CS101"]["enrolled_count"] == 1
    assert by_code["CS101"]["available_slots"] == 1
    assert by_code["CS201"]["can_register"] is False
    assert by_code["CS201"]["prerequisite_codes"] == ["CS101"]
    assert body["registration_info"]["current_count"] == 1
    assert body["registration_info"]["max_allowed"] == 2
    assert body["registration_info"]["can_register_more"] is True
    assert body["registration_info"]["registration_open"] is True
    assert body["registration_info"]["days_remaining"] == 5


def test_grade_is_recorded_by_staff(client, campus, db_session, auth):
    registration = add_registration(db_session, campus["student"], campus["intro"], campus["semester"])
    response = client.patch(
        f"/api/unit-registrations/{registration.id}/grade",
        json={"grade": 81},
        headers=auth(campus["admin"]),
    )
    assert response.json()["status"] == "completed"
    assert response.json()["grade"] == 81

    forbidden = client.patch(
        f"/api/unit-registrations/{registration.id}/grade",
        json={"grade": 100},
        headers=auth(campus["student"]),
    )
    assert forbidden.status_code == 403


def test_error_code_explanation(client):
    response = client.get("/api/unit-registrations/errors/MAX_UNITS_EXCEEDED")
    assert response.json()["code"] == "MAX_UNITS_EXCEEDED"
    assert response.json()["explanation"]


def test_current_semester(client, campus, auth):
    response = client.get("/api/semesters/current", headers=auth(campus["student"]))
    body = response.json()
    assert body["current"]["id"] == campus["semester"].id
    assert body["current"]["is_registration_open"] is True
    assert body["days_remaining"] == 141


def test_active_registration_count_ignores_dropped_rows(campus, factory, db_session):
    for status in (RegistrationStatus.active, RegistrationStatus.active, RegistrationStatus.dropped):
        classmate = factory.user(UserRole.student, course_id=campus["course"].id)
        add_registration(db_session, classmate, campus["intro"], campus["semester"], status)

    assert count_active_registrations(db_session, campus["intro"].id, campus["semester"].id) == 2
    assert count_active_registrations(db_session, campus["intro"].id, campus["past"].id) == 0
