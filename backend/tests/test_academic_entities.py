from datetime import datetime, timezone

from app.models.user import UserRole


def test_admin_builds_course_units_and_semester(client, factory, auth):
    headers = auth(factory.user(UserRole.admin))

    course = client.post("/api/courses/", json={"code": " bsc-cs ", "name": "Computer Science"}, headers=headers)
    assert course.status_code == 201
    assert course.json()["code"] == "BSC-CS"
    course_id = course.json()["id"]

    intro = client.post(
        "/api/units/",
        json={"code": "cs101", "name": "Programming", "course_id": course_id, "capacity": 30},
        headers=headers,
    ).json()
    advanced = client.post(
        "/api/units/",
        json={"code": "CS201", "name": "Data Structures", "course_id": course_id, "prerequisite_ids": [intro["id"]]},
        headers=headers,
    )
    assert advanced.status_code == 201
    assert advanced.json()["prerequisite_codes"] == ["CS101"]

    semester = client.post(
        "/api/semesters/",
        json={
            "name": "Spring 2025",
            "start_date": "2025-01-01T00:00:00Z",
            "end_date": "2025-05-31T00:00:00Z",
            "registration_start_date": "2025-01-01T00:00:00Z",
            "registration_end_date": "2025-01-15T00:00:00Z",
            "course_ids": [course_id],
            "unit_ids": [intro["id"], advanced.json()["id"]],
        },
        headers=headers,
    )
    assert semester.status_code == 201
    body = semester.json()
    assert body["max_units_per_student"] == 8
    assert body["is_registration_open"] is True
    assert body["registration_days_remaining"] == 5
    assert len(body["unit_ids"]) == 2


def test_duplicate_course_code(client, factory, auth):
    factory.course()
    response = client.post(
        "/api/courses/", json={"code": "BSC-CS", "name": "Again"}, headers=auth(factory.user(UserRole.admin))
    )
    assert response.status_code == 409


def test_unit_needs_existing_prerequisites(client, factory, auth):
    course = factory.course()
    response = client.post(
        "/api/units/",
        json={"code": "CS201", "name": "Data Structures", "course_id": course.id, "prerequisite_ids": ["missing"]},
        headers=auth(factory.user(UserRole.admin)),
    )
    assert response.status_code == 404


def test_registration_window_must_sit_inside_semester(client, factory, auth):
    response = client.post(
        "/api/semesters/",
        json={
            "name": "Bad",
            "start_date": "2025-01-10T00:00:00Z",
            "end_date": "2025-05-31T00:00:00Z",
            "registration_start_date": "2025-01-01T00:00:00Z",
            "registration_end_date": "2025-01-15T00:00:00Z",
        },
        headers=auth(factory.user(UserRole.admin)),
    )
    assert response.status_code == 422


def test_registration_countdown_before_and_after_window(client, factory, auth, clock):
    semester = factory.semester()
    headers = auth(factory.user(UserRole.student))

    clock.set(datetime(2024, 12, 20, tzinfo=timezone.utc))
    assert client.get(f"/api/semesters/{semester.id}", headers=headers).json()["registration_days_remaining"] == -1

    clock.set(datetime(2025, 2, 1, tzinfo=timezone.utc))
    body = client.get(f"/api/semesters/{semester.id}", headers=headers).json()
    assert body["registration_days_remaining"] == 0
    assert body["is_registration_open"] is False


def test_current_semester_falls_back_to_upcoming(client, factory, auth, clock):
    upcoming = factory.semester()
    clock.set(datetime(2024, 11, 1, tzinfo=timezone.utc))

    body = client.get("/api/semesters/current", headers=auth(factory.user(UserRole.student))).json()

    assert body["current"] is None
    assert body["upcoming"]["id"] == upcoming.id
    assert body["message"] == "No active semester found"


def test_users_me_and_admin_listing(client, factory, auth):
    admin = factory.user(UserRole.admin)
    teacher = factory.user(UserRole.teacher)

    assert client.get("/api/users/me", headers=auth(teacher)).json()["role"] == "teacher"
    listed = client.get("/api/users/", params={"role": "teacher"}, headers=auth(admin)).json()
    assert [user["id"] for user in listed] == [teacher.id]
    assert client.get("/api/users/", headers=auth(teacher)).status_code == 403


def test_missing_token_is_rejected(client):
    assert client.get("/api/users/me").status_code in {401, 403}
