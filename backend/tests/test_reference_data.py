from api_helpers import create_template, register_and_login


def test_rooms_crud(client):
    admin = register_and_login(client, name="Admin", email="admin@example.com", role="admin")
    student = register_and_login(client, name="Student", email="student@example.com", role="student")

    created = client.post("/api/rooms/", json={"name": " 201 ", "building": "North"}, headers=admin.headers)
    assert created.status_code == 201
    room = created.json()
    assert room["name"] == "201"
    assert room["capacity"] == 30

    duplicate = client.post("/api/rooms/", json={"name": "201"}, headers=admin.headers)
    assert duplicate.status_code == 409

    forbidden = client.post("/api/rooms/", json={"name": "202"}, headers=student.headers)
    assert forbidden.status_code == 403

    listed = client.get("/api/rooms/", headers=student.headers)
    assert [item["name"] for item in listed.json()] == ["201"]

    updated = client.put(f"/api/rooms/{room['id']}", json={"capacity": 80}, headers=admin.headers)
    assert updated.status_code == 200
    assert updated.json()["capacity"] == 80

    deleted = client.delete(f"/api/rooms/{room['id']}", headers=admin.headers)
    assert deleted.json() == {"success": True}
    assert client.delete(f"/api/rooms/{room['id']}", headers=admin.headers).status_code == 404


def test_rooms_in_use_cannot_be_renamed_or_deleted(client, campus):
    create_template(client, campus)
    rooms = {item["name"]: item["id"] for item in client.get("/api/rooms/", headers=campus.admin.headers).json()}

    rename = client.put(f"/api/rooms/{rooms['101']}", json={"name": "101A"}, headers=campus.admin.headers)
    assert rename.status_code == 409
    delete = client.delete(f"/api/rooms/{rooms['101']}", headers=campus.admin.headers)
    assert delete.status_code == 409

    assert client.delete(f"/api/rooms/{rooms['102']}", headers=campus.admin.headers).status_code == 200


def test_courses_and_groups(client, campus):
    duplicate = client.post("/api/courses/", json={"code": "PHYS101", "name": "Again"}, headers=campus.admin.headers)
    assert duplicate.status_code == 409

    bad_teacher = client.post(
        "/api/courses/",
        json={"code": "CHEM101", "name": "Chemistry", "teacher_id": campus.manager.id},
        headers=campus.admin.headers,
    )
    assert bad_teacher.status_code == 400

    coordinator_create = client.post(
        "/api/courses/",
        json={"code": "CHEM101", "name": "Chemistry"},
        headers=campus.coordinator.headers,
    )
    assert coordinator_create.status_code == 403

    groups = client.get(f"/api/courses/{campus.course_id}/groups", headers=campus.teacher.headers)
    assert [item["id"] for item in groups.json()] == [campus.group_id]
    assert client.get("/api/courses/missing/groups", headers=campus.teacher.headers).status_code == 404


def test_course_teacher_assignment_is_enforced_for_templates(client, campus):
    course = client.post(
        "/api/courses/",
        json={"code": "BIO101", "name": "Biology", "teacher_id": campus.other_teacher.id},
        headers=campus.admin.headers,
    ).json()
    group = client.post(f"/api/courses/{course['id']}/groups", json={"title": "Lab 1"}, headers=campus.admin.headers).json()

    response = client.post(
        "/api/schedules/",
        json={
            "course_id": course["id"],
            "teacher_id": campus.teacher.id,
            "session_group_id": group["id"],
            "day_of_week": "friday",
            "start_time": "09:00",
            "end_time": "10:00",
        },
        headers=campus.coordinator.headers,
    )
    assert response.status_code == 400
    assert response.json()["message"] == "Teacher is not assigned to this course"


def test_rooms_can_be_filtered_by_building(client, campus):
    client.post("/api/rooms/", json={"name": "B1", "building": "Annex"}, headers=campus.admin.headers)

    listed = client.get("/api/rooms/", params={"building": "Annex"}, headers=campus.admin.headers)

    assert [item["name"] for item in listed.json()] == ["B1"]
