import pytest

from app.models.user import UserRole


@pytest.fixture()
def lesson(factory):
    course = factory.course()
    semester = factory.semester(courses=[course])
    timetable = factory.timetable(semester, course)
    teacher = factory.user(UserRole.teacher)
    unit = factory.unit(course, "CS101")
    return {
        "teacher": teacher,
        "other_teacher": factory.user(UserRole.teacher),
        "admin": factory.user(UserRole.admin),
        "student": factory.user(UserRole.student, course_id=course.id),
        "classmate": factory.user(UserRole.student, course_id=course.id),
        "lecture": factory.lecture(timetable, unit, teacher),
    }


def create_instance(client, headers, lecture, on="2025-01-06"):
    return client.post("/api/lecture-instances/", json={"lecture_id": lecture.id, "date": on}, headers=headers)


def test_instance_copies_lecture_details(client, lesson, auth):
    response = create_instance(client, auth(lesson["teacher"]), lesson["lecture"])

    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "scheduled"
    assert body["teacher_id"] == lesson["teacher"].id
    assert body["venue_room"] == "101"
    assert body["stats"] is None


def test_one_instance_per_lecture_and_date(client, lesson, auth):
    headers = auth(lesson["admin"])
    create_instance(client, headers, lesson["lecture"])
    assert create_instance(client, headers, lesson["lecture"]).status_code == 409


def test_marking_attendance_completes_instance(client, lesson, auth):
    headers = auth(lesson["teacher"])
    instance = create_instance(client, headers, lesson["lecture"]).json()

    response = client.post(
        f"/api/lecture-instances/{instance['id']}/attendance",
        json={
            "attendances": [
                {"student_id": lesson["student"].id, "status": "present"},
                {"student_id": lesson["classmate"].id, "status": "absent"},
            ]
        },
        headers=headers,
    )

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "completed"
    assert body["stats"]["total"] == 2
    assert body["stats"]["attendance_rate"] == 50.0
    checked_in = {record["student_id"]: record["checked_in_at"] for record in body["attendance"]}
    assert checked_in[lesson["student"].id] is not None
    assert checked_in[lesson["classmate"].id] is None


def test_marking_again_updates_existing_records(client, lesson, auth):
    headers = auth(lesson["teacher"])
    instance = create_instance(client, headers, lesson["lecture"]).json()
    url = f"/api/lecture-instances/{instance['id']}/attendance"
    client.post(url, json={"attendances": [{"student_id": lesson["student"].id, "status": "absent"}]}, headers=headers)

    response = client.post(
        url, json={"attendances": [{"student_id": lesson["student"].id, "status": "late"}]}, headers=headers
    )

    body = response.json()
    assert len(body["attendance"]) == 1
    assert body["attendance"][0]["status"] == "late"
    assert body["stats"]["attendance_rate"] == 100.0


def test_students_see_only_their_own_record(client, lesson, auth):
    headers = auth(lesson["teacher"])
    instance = create_instance(client, headers, lesson["lecture"]).json()
    client.post(
        f"/api/lecture-instances/{instance['id']}/attendance",
        json={
            "attendances": [
                {"student_id": lesson["student"].id, "status": "late"},
                {"student_id": lesson["classmate"].id, "status": "present"},
            ]
        },
        headers=headers,
    )

    body = client.get(f"/api/lecture-instances/{instance['id']}", headers=auth(lesson["student"])).json()

    assert body["attendance"] == []
    assert body["my_attendance"] == "late"


def test_other_teachers_cannot_mark(client, lesson, auth):
    instance = create_instance(client, auth(lesson["admin"]), lesson["lecture"]).json()
    response = client.post(
        f"/api/lecture-instances/{instance['id']}/attendance",
        json={"attendances": [{"student_id": lesson["student"].id, "status": "present"}]},
        headers=auth(lesson["other_teacher"]),
    )
    assert response.status_code == 403


def test_cancelled_instance_is_final(client, lesson, auth):
    headers = auth(lesson["teacher"])
    instance = create_instance(client, headers, lesson["lecture"]).json()

    cancelled = client.post(
        f"/api/lecture-instances/{instance['id']}/cancel", json={"reason": "Strike"}, headers=headers
    )
    assert cancelled.json()["status"] == "cancelled"
    assert cancelled.json()["cancellation_reason"] == "Strike"

    marking = client.post(
        f"/api/lecture-instances/{instance['id']}/attendance",
        json={"attendances": [{"student_id": lesson["student"].id, "status": "present"}]},
        headers=headers,
    )
    assert marking.status_code == 409
    again = client.post(f"/api/lecture-instances/{instance['id']}/cancel", json={"reason": "Twice"}, headers=headers)
    assert again.status_code == 409


def test_postpone_schedules_replacement(client, lesson, auth):
    headers = auth(lesson["teacher"])
    instance = create_instance(client, headers, lesson["lecture"]).json()

    response = client.post(
        f"/api/lecture-instances/{instance['id']}/postpone", json={"new_date": "2025-01-09"}, headers=headers
    )

    assert response.json()["status"] == "postponed"
    assert response.json()["notes"] == "Postponed to 2025-01-09"

    listed = client.get(
        "/api/lecture-instances/", params={"lecture_id": lesson["lecture"].id}, headers=headers
    ).json()
    assert [(item["date"], item["status"]) for item in listed] == [
        ("2025-01-06", "postponed"),
        ("2025-01-09", "scheduled"),
    ]


def test_completed_instance_cannot_be_postponed(client, lesson, auth):
    headers = auth(lesson["teacher"])
    instance = create_instance(client, headers, lesson["lecture"]).json()
    client.post(
        f"/api/lecture-instances/{instance['id']}/attendance",
        json={"attendances": [{"student_id": lesson["student"].id, "status": "present"}]},
        headers=headers,
    )
    response = client.post(
        f"/api/lecture-instances/{instance['id']}/postpone", json={"new_date": "2025-01-09"}, headers=headers
    )
    assert response.status_code == 409


def test_list_filters_by_date_range(client, lesson, auth):
    headers = auth(lesson["teacher"])
    for on in ("2025-01-06", "2025-01-13", "2025-01-20"):
        create_instance(client, headers, lesson["lecture"], on)
    listed = client.get(
        "/api/lecture-instances/",
        params={"lecture_id": lesson["lecture"].id, "start": "2025-01-10", "end": "2025-01-31"},
        headers=headers,
    ).json()
    assert [item["date"] for item in listed] == ["2025-01-13", "2025-01-20"]


def test_students_cannot_create_instances(client, lesson, auth):
    assert create_instance(client, auth(lesson["student"]), lesson["lecture"]).status_code == 403
