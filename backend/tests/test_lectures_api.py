import pytest

from app.models.timetable import TimetableStatus
from app.models.user import UserRole


@pytest.fixture()
def world(factory):
    course = factory.course()
    unit = factory.unit(course, "CS101")
    other_unit = factory.unit(course, "CS102")
    semester = factory.semester(courses=[course], units=[unit, other_unit])
    return {
        "admin": factory.user(UserRole.admin),
        "teacher": factory.user(UserRole.teacher, name="Ada Lovelace"),
        "other_teacher": factory.user(UserRole.teacher, name="Alan Turing"),
        "student": factory.user(UserRole.student, course_id=course.id),
        "course": course,
        "unit": unit,
        "other_unit": other_unit,
        "semester": semester,
        "timetable": factory.timetable(semester, course),
    }


def lecture_payload(world, **overrides):
    payload = {
        "timetable_id": world["timetable"].id,
        "unit_id": world["unit"].id,
        "teacher_id": world["teacher"].id,
        "day_of_week": 1,
        "start_time": "09:00",
        "end_time": "10:00",
        "venue": {"building": "Main", "room": "101"},
    }
    payload.update(overrides)
    return payload


def test_create_lecture(client, world, auth):
    response = client.post("/api/lectures/", json=lecture_payload(world), headers=auth(world["admin"]))

    assert response.status_code == 201
    body = response.json()
    assert body["unit_code"] == "CS101"
    assert body["teacher_name"] == "Ada Lovelace"
    assert body["day_name"] == "Monday"
    assert body["duration_minutes"] == 60
    assert body["venue"]["room"] == "101"


def test_only_admins_place_lectures(client, world, auth):
    response = client.post("/api/lectures/", json=lecture_payload(world), headers=auth(world["teacher"]))
    assert response.status_code == 403


def test_rejects_inverted_times(client, world, auth):
    response = client.post(
        "/api/lectures/",
        json=lecture_payload(world, start_time="10:00", end_time="09:00"),
        headers=auth(world["admin"]),
    )
    assert response.status_code == 422


def test_venue_required_unless_online(client, world, auth):
    headers = auth(world["admin"])
    assert client.post("/api/lectures/", json=lecture_payload(world, venue=None), headers=headers).status_code == 422
    response = client.post(
        "/api/lectures/",
        json=lecture_payload(world, venue=None, is_online=True, online_link="https://meet.example.edu/cs101"),
        headers=headers,
    )
    assert response.status_code == 201
    assert response.json()["venue"] is None


def test_teacher_must_hold_teacher_role(client, world, auth):
    response = client.post(
        "/api/lectures/",
        json=lecture_payload(world, teacher_id=world["student"].id),
        headers=auth(world["admin"]),
    )
    assert response.status_code == 400
    assert response.json()["message"] == "Invalid teacher"


def test_unknown_timetable_is_not_found(client, world, auth):
    response = client.post(
        "/api/lectures/",
        json=lecture_payload(world, timetable_id="missing"),
        headers=auth(world["admin"]),
    )
    assert response.status_code == 404


def test_teacher_double_booking_is_rejected(client, world, factory, auth):
    factory.lecture(world["timetable"], world["unit"], world["teacher"])

    response = client.post(
        "/api/lectures/",
        json=lecture_payload(
            world,
            unit_id=world["other_unit"].id,
            start_time="09:30",
            end_time="10:30",
            venue={"building": "Main", "room": "202"},
        ),
        headers=auth(world["admin"]),
    )

    assert response.status_code == 409
    body = response.json()
    assert body["message"] == "Time conflict detected"
    assert body["details"]["conflicts"] == ["teacher"]
    assert body["details"]["details"][0]["message"] == (
        "Teacher Ada Lovelace is already scheduled for CS101 from 09:00 to 10:00 on Monday."
    )


def test_back_to_back_lectures_are_allowed(client, world, factory, auth):
    factory.lecture(world["timetable"], world["unit"], world["teacher"])
    response = client.post(
        "/api/lectures/",
        json=lecture_payload(world, start_time="10:00", end_time="11:00"),
        headers=auth(world["admin"]),
    )
    assert response.status_code == 201


def test_check_conflicts_reports_both_kinds(client, world, factory, auth):
    factory.lecture(world["timetable"], world["unit"], world["teacher"])

    response = client.post(
        "/api/lectures/check-conflicts",
        json=lecture_payload(world, start_time="09:15", end_time="09:45"),
        headers=auth(world["teacher"]),
    )

    assert response.status_code == 200
    body = response.json()
    assert body["has_conflicts"] is True
    assert body["conflicts"] == ["teacher", "venue"]
    assert body["details"][1]["message"].startswith("Venue Main 101 is already booked for CS101")


def test_check_conflicts_requires_core_fields(client, world, auth):
    response = client.post(
        "/api/lectures/check-conflicts",
        json={"timetable_id": world["timetable"].id, "start_time": "09:00"},
        headers=auth(world["admin"]),
    )
    assert response.status_code == 400
    assert response.json()["details"]["code"] == "MISSING_FIELDS"


def test_check_conflicts_excludes_the_lecture_being_edited(client, world, factory, auth):
    lecture = factory.lecture(world["timetable"], world["unit"], world["teacher"])
    response = client.post(
        "/api/lectures/check-conflicts",
        json=lecture_payload(world, exclude_lecture_id=lecture.id, start_time="09:30", end_time="10:30"),
        headers=auth(world["admin"]),
    )
    assert response.json() == {
        "has_conflicts": False,
        "conflicts": [],
        "details": [],
        "message": "No conflicts detected",
    }


def test_other_timetables_do_not_conflict(client, world, factory, auth):
    elsewhere = factory.timetable(world["semester"], world["course"])
    factory.lecture(elsewhere, world["unit"], world["teacher"])
    response = client.post("/api/lectures/", json=lecture_payload(world), headers=auth(world["admin"]))
    assert response.status_code == 201


def test_bulk_placement_reports_partial_success(client, world, auth):
    items = [
        lecture_payload(world),
        lecture_payload(world, start_time="09:30", end_time="10:30", venue={"building": "Main", "room": "202"}),
        lecture_payload(world, teacher_id=world["other_teacher"].id, start_time="11:00", end_time="12:00"),
    ]

    response = client.post("/api/lectures/bulk", json={"lectures": items}, headers=auth(world["admin"]))

    assert response.status_code == 207
    body = response.json()
    assert body["success"] == 2
    assert body["failed"] == 1
    assert body["errors"] == [
        {"index": 1, "error": "Teacher time conflict within batch", "lecture": items[1]},
    ]
    assert [lecture["start_time"] for lecture in body["created_lectures"]] == ["09:00", "11:00"]


def test_bulk_placement_checks_stored_lectures(client, world, factory, auth):
    factory.lecture(world["timetable"], world["unit"], world["other_teacher"], room="303")
    items = [lecture_payload(world, venue={"building": "Main", "room": "303"})]

    response = client.post("/api/lectures/bulk", json={"lectures": items}, headers=auth(world["admin"]))

    assert response.status_code == 207
    assert response.json()["errors"][0]["error"].startswith("Venue Main 303 is already booked")


def test_bulk_item_rejected_by_stored_lectures_does_not_block_later_items(client, world, factory, auth):
    factory.lecture(world["timetable"], world["unit"], world["other_teacher"], room="303")
    items = [
        lecture_payload(world, venue={"building": "Main", "room": "303"}),
        lecture_payload(world, start_time="09:30", end_time="10:30", venue={"building": "Main", "room": "202"}),
    ]

    response = client.post("/api/lectures/bulk", json={"lectures": items}, headers=auth(world["admin"]))

    body = response.json()
    assert body["success"] == 1
    assert [error["index"] for error in body["errors"]] == [0]
    assert body["created_lectures"][0]["start_time"] == "09:30"


def test_bulk_placement_records_invalid_items(client, world, auth):
    items = [lecture_payload(world, end_time="25:00"), lecture_payload(world)]

    response = client.post("/api/lectures/bulk", json={"lectures": items}, headers=auth(world["admin"]))

    body = response.json()
    assert body["success"] == 1
    assert body["errors"][0]["index"] == 0
    assert "HH:MM" in body["errors"][0]["error"]


def test_bulk_placement_fully_accepted(client, world, auth):
    items = [lecture_payload(world), lecture_payload(world, day_of_week=2)]
    response = client.post("/api/lectures/bulk", json={"lectures": items}, headers=auth(world["admin"]))
    assert response.status_code == 201
    assert response.json()["failed"] == 0


def test_bulk_placement_needs_single_timetable(client, world, factory, auth):
    elsewhere = factory.timetable(world["semester"], world["course"])
    items = [lecture_payload(world), lecture_payload(world, timetable_id=elsewhere.id)]
    response = client.post("/api/lectures/bulk", json={"lectures": items}, headers=auth(world["admin"]))
    assert response.status_code == 400
    assert response.json()["message"] == "All lectures must belong to the same timetable"


def test_update_ignores_its_own_slot(client, world, factory, auth):
    lecture = factory.lecture(world["timetable"], world["unit"], world["teacher"])
    response = client.put(
        f"/api/lectures/{lecture.id}",
        json={"start_time": "09:30", "end_time": "10:30"},
        headers=auth(world["admin"]),
    )
    assert response.status_code == 200
    assert response.json()["start_time"] == "09:30"


def test_update_detects_new_collisions(client, world, factory, auth):
    factory.lecture(world["timetable"], world["unit"], world["teacher"])
    movable = factory.lecture(world["timetable"], world["other_unit"], world["teacher"], start_time="11:00", end_time="12:00")
    response = client.put(
        f"/api/lectures/{movable.id}",
        json={"start_time": "09:30", "end_time": "10:30"},
        headers=auth(world["admin"]),
    )
    assert response.status_code == 409


def test_update_rejects_inverted_range(client, world, factory, auth):
    lecture = factory.lecture(world["timetable"], world["unit"], world["teacher"])
    response = client.put(f"/api/lectures/{lecture.id}", json={"end_time": "08:00"}, headers=auth(world["admin"]))
    assert response.status_code == 400
    assert "End time must be after start time" in response.json()["message"]


def test_delete_lecture(client, world, factory, auth):
    lecture = factory.lecture(world["timetable"], world["unit"], world["teacher"])
    headers = auth(world["admin"])
    assert client.delete(f"/api/lectures/{lecture.id}", headers=headers).json() == {"success": True}
    assert client.delete(f"/api/lectures/{lecture.id}", headers=headers).status_code == 404


def test_students_only_list_published_lectures(client, world, factory, db_session, auth):
    factory.lecture(world["timetable"], world["unit"], world["teacher"])
    published = factory.timetable(world["semester"], world["course"], status=TimetableStatus.published)
    factory.lecture(published, world["unit"], world["teacher"], day_of_week=3)

    student_view = client.get("/api/lectures/", headers=auth(world["student"])).json()
    admin_view = client.get("/api/lectures/", headers=auth(world["admin"])).json()

    assert [lecture["day_of_week"] for lecture in student_view] == [3]
    assert len(admin_view) == 2
