# tests/test_students_api.py

from bson import ObjectId

from result_portal.core.database import RESULTS, STUDENTS

EEE = "Electrical Engineering"


def _student_payload(**overrides):
    payload = {
        "name": "nusrat akter",
        "roll": "1101",
        "registration_no": "REG1101",
        "department": "Computer Science",
        "semester": "2nd",
        "session": "2024-2025",
        "email": "nusrat@university.edu",
    }
    payload.update(overrides)
    return payload


def test_add_student(client, mongo_db, teacher_headers):
    resp = client.post("/api/students", json=_student_payload(), headers=teacher_headers)

    assert resp.status_code == 201
    student = resp.json()["student"]
    assert student["name"] == "Nusrat Akter"
    assert ObjectId.is_valid(student["id"])
    assert mongo_db[STUDENTS].count_documents({"roll": "1101"}) == 1


def test_add_student_requires_login(client):
    assert client.post("/api/students", json=_student_payload()).status_code == 401


def test_add_student_validation_errors(client, admin_headers):
    resp = client.post(
        "/api/students",
        json=_student_payload(semester="first", phone="12"),
        headers=admin_headers,
    )
    assert resp.status_code == 400
    errors = resp.json()["errors"]
    assert any(e.startswith("semester") for e in errors)
    assert any(e.startswith("phone") for e in errors)


def test_teacher_cannot_add_to_other_department(client, teacher_headers):
    resp = client.post("/api/students", json=_student_payload(department=EEE), headers=teacher_headers)
    assert resp.status_code == 403


def test_duplicate_roll_or_registration(client, admin_headers, make_student):
    make_student(roll="1101")
    resp = client.post("/api/students", json=_student_payload(), headers=admin_headers)
    assert resp.status_code == 400

    resp = client.post(
        "/api/students",
        json=_student_payload(roll="1102", registration_no="REG1101"),
        headers=admin_headers,
    )
    assert resp.status_code == 400


def test_list_students_is_public_and_filtered(client, make_student):
    make_student(roll="1001", name="Rafiq Hossain")
    make_student(roll="1002", name="Sadia Islam", semester="5th")
    make_student(roll="2001", name="Kamal Uddin", department=EEE)

    body = client.get("/api/students").json()
    assert body["pagination"]["total"] == 3

    body = client.get("/api/students", params={"department": EEE}).json()
    assert [s["roll"] for s in body["students"]] == ["2001"]

    body = client.get("/api/students", params={"search": "sadia"}).json()
    assert [s["roll"] for s in body["students"]] == ["1002"]

    body = client.get("/api/students", params={"sort_by": "roll", "sort_order": "asc", "limit": 2}).json()
    assert [s["roll"] for s in body["students"]] == ["1001", "1002"]
    assert body["pagination"]["has_next"] is True


def test_search_text_is_treated_literally(client, make_student):
    make_student(roll="1001")
    body = client.get("/api/students", params={"search": ".*"}).json()
    assert body["students"] == []


def test_teacher_listing_is_pinned_to_department(client, teacher_headers, make_student):
    make_student(roll="1001")
    make_student(roll="2001", department=EEE)

    body = client.get("/api/students", params={"department": EEE}, headers=teacher_headers).json()
    assert [s["roll"] for s in body["students"]] == ["1001"]


def test_get_student(client, make_student):
    student = make_student()
    resp = client.get(f"/api/students/{student['_id']}")
    assert resp.status_code == 200
    assert resp.json()["roll"] == "1001"

    assert client.get(f"/api/students/{ObjectId()}").status_code == 404
    assert client.get("/api/students/123").json()["detail"] == "Invalid student ID"


def test_update_student(client, mongo_db, admin_headers, make_student):
    student = make_student(roll="1101", registration_no="REG1101")
    resp = client.put(
        f"/api/students/{student['_id']}",
        json=_student_payload(name="nusrat jahan", semester="3rd"),
        headers=admin_headers,
    )

    assert resp.status_code == 200
    assert resp.json()["student"]["name"] == "Nusrat Jahan"
    assert mongo_db[STUDENTS].find_one({"_id": student["_id"]})["semester"] == "3rd"


def test_update_student_duplicate_excludes_self(client, admin_headers, make_student):
    student = make_student(roll="1101", registration_no="REG1101")
    make_student(roll="1102")

    resp = client.put(
        f"/api/students/{student['_id']}",
        json=_student_payload(roll="1102"),
        headers=admin_headers,
    )
    assert resp.status_code == 400


def test_teacher_cannot_update_other_department(client, other_teacher_headers, make_student):
    student = make_student()
    resp = client.put(
        f"/api/students/{student['_id']}",
        json=_student_payload(department=EEE),
        headers=other_teacher_headers,
    )
    assert resp.status_code == 403


def test_delete_student_cascades_results(client, mongo_db, admin_headers, make_student):
    student = make_student()
    mongo_db[RESULTS].insert_one({"student_id": student["_id"], "semester": "1st", "cgpa": 3.5})

    resp = client.delete(f"/api/students/{student['_id']}", headers=admin_headers)
    assert resp.status_code == 200
    assert mongo_db[STUDENTS].count_documents({}) == 0
    assert mongo_db[RESULTS].count_documents({}) == 0


def test_cleanup_orphans_is_admin_only(client, mongo_db, admin_headers, teacher_headers, make_student):
    student = make_student()
    mongo_db[RESULTS].insert_one({"student_id": student["_id"], "semester": "1st", "cgpa": 3.5})
    mongo_db[RESULTS].insert_one({"student_id": ObjectId(), "semester": "1st", "cgpa": 2.5})

    assert client.post("/api/students/cleanup", headers=teacher_headers).status_code == 403

    resp = client.post("/api/students/cleanup", headers=admin_headers)
    assert resp.json()["deleted"] == 1
    assert mongo_db[RESULTS].count_documents({}) == 1
