import pytest
from music_tutoring.database.database import ContactMode

def _enquiry_payload(tutor_id, **overrides):
    payload = {
        "tutorId": tutor_id,
        "message": "Hi, I would like weekly piano lessons please.",
        "studentLevel": "beginner",
        "preferredDays": ["mon", "wed"],
        "preferredTime": "evening",
    }
    payload.update(overrides)
    return payload

@pytest.fixture
def contact_tutor(make_tutor):
    return make_tutor(
        name="Anita",
        city="Pune",
        state="Maharashtra",
        preferred_contact_mode=ContactMode.EMAIL,
        preferred_contact_value="anita@example.com",
    )

def _send(client, auth_headers, student, tutor, **overrides):
    return client.post("/api/enquiries", json=_enquiry_payload(tutor.id, **overrides), headers=auth_headers(student))

def test_create_enquiry(client, make_student, contact_tutor, auth_headers):
    student = make_student()

    response = _send(client, auth_headers, student, contact_tutor)

    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "pending"
    assert body["tutorId"] == contact_tutor.id
    assert body["tutorName"] == "Anita"
    assert body["preferredDays"] == ["mon", "wed"]
    assert body.get("tutorContact") is None

def test_duplicate_pending_enquiry_conflicts(client, make_student, contact_tutor, auth_headers):
    student = make_student()
    _send(client, auth_headers, student, contact_tutor)

    response = _send(client, auth_headers, student, contact_tutor)

    assert response.status_code == 409
    assert response.json()["code"] == 'DUPLICATE_ENQUIRY'

def test_new_enquiry_allowed_after_response(client, make_student, contact_tutor, auth_headers):
    student = make_student()
    enquiry_id = _send(client, auth_headers, student, contact_tutor).json()["id"]
    client.patch(f"/api/enquiries/{enquiry_id}", json={"status": "declined"}, headers=auth_headers(contact_tutor))

    response = _send(client, auth_headers, student, contact_tutor)

    assert response.status_code == 201

def test_enquiry_to_unknown_tutor(client, make_student, auth_headers):
    student = make_student()

    response = client.post(
        "/api/enquiries",
        json=_enquiry_payload("00000000-0000-4000-8000-000000000000"),
        headers=auth_headers(student)
    )

    assert response.status_code == 404
    assert response.json()["code"] == 'TUTOR_NOT_FOUND'

@pytest.mark.parametrize("override", [
    {"message": "too short"},
    {"message": "x" * 1001},
    {"preferredDays": []},
    {"preferredDays": ["funday"]},
    {"preferredTime": "midnight"},
    {"studentLevel": "pro"},
])
def test_enquiry_validation(client, make_student, contact_tutor, auth_headers, override):
    student = make_student()

    response = _send(client, auth_headers, student, contact_tutor, **override)

    assert response.status_code == 400
    assert response.json()["code"] == 'VALIDATION_ERROR'

def test_only_students_send_enquiries(client, make_tutor, contact_tutor, auth_headers):
    other_tutor = make_tutor()

    response = _send(client, auth_headers, other_tutor, contact_tutor)

    assert response.status_code == 403

def test_accept_reveals_contact_to_student(client, make_student, contact_tutor, auth_headers):
    student = make_student()
    enquiry_id = _send(client, auth_headers, student, contact_tutor).json()["id"]

    response = client.patch(f"/api/enquiries/{enquiry_id}", json={"status": "accepted"}, headers=auth_headers(contact_tutor))

    assert response.status_code == 200
    assert response.json()["status"] == "accepted"
    assert response.json()["respondedAt"] is not None
    assert response.json()["message"] == "Enquiry accepted successfully"

    enquiry = client.get(f"/api/enquiries/{enquiry_id}", headers=auth_headers(student)).json()
    assert enquiry["tutorContact"] == {"mode": "email", "value": "anita@example.com"}

    listed = client.get("/api/enquiries", headers=auth_headers(student)).json()["enquiries"]
    assert listed[0]["tutorContact"] == {"mode": "email", "value": "anita@example.com"}
    assert listed[0]["tutorLocation"] == {"city": "Pune", "state": "Maharashtra"}

def test_declined_enquiry_hides_contact(client, make_student, contact_tutor, auth_headers):
    student = make_student()
    enquiry_id = _send(client, auth_headers, student, contact_tutor).json()["id"]
    client.patch(f"/api/enquiries/{enquiry_id}", json={"status": "declined"}, headers=auth_headers(contact_tutor))

    enquiry = client.get(f"/api/enquiries/{enquiry_id}", headers=auth_headers(student)).json()

    assert enquiry["status"] == "declined"
    assert enquiry.get("tutorContact") is None

def test_enquiry_can_only_be_answered_once(client, make_student, contact_tutor, auth_headers):
    student = make_student()
    enquiry_id = _send(client, auth_headers, student, contact_tutor).json()["id"]
    client.patch(f"/api/enquiries/{enquiry_id}", json={"status": "accepted"}, headers=auth_headers(contact_tutor))

    response = client.patch(f"/api/enquiries/{enquiry_id}", json={"status": "declined"}, headers=auth_headers(contact_tutor))

    assert response.status_code == 400
    assert response.json()["code"] == 'ALREADY_RESPONDED'

def test_other_tutor_cannot_answer(client, make_student, make_tutor, contact_tutor, auth_headers):
    student = make_student()
    enquiry_id = _send(client, auth_headers, student, contact_tutor).json()["id"]

    response = client.patch(f"/api/enquiries/{enquiry_id}", json={"status": "accepted"}, headers=auth_headers(make_tutor()))

    assert response.status_code == 403

def test_enquiry_visible_to_owners_only(client, make_student, contact_tutor, auth_headers):
    student = make_student()
    stranger = make_student()
    enquiry_id = _send(client, auth_headers, student, contact_tutor).json()["id"]

    as_tutor = client.get(f"/api/enquiries/{enquiry_id}", headers=auth_headers(contact_tutor))
    as_stranger = client.get(f"/api/enquiries/{enquiry_id}", headers=auth_headers(stranger))

    assert as_tutor.status_code == 200
    assert as_tutor.json()["studentId"] == student.id
    assert as_tutor.json()["studentEmail"] == student.email
    assert as_stranger.status_code == 403

def test_unknown_enquiry(client, make_student, auth_headers):
    response = client.get("/api/enquiries/00000000-0000-4000-8000-000000000000", headers=auth_headers(make_student()))

    assert response.status_code == 404
    assert response.json()["code"] == 'ENQUIRY_NOT_FOUND'

def test_lists_depend_on_role(client, make_student, make_tutor, contact_tutor, auth_headers):
    student = make_student(name="Kiran")
    other_tutor = make_tutor()
    _send(client, auth_headers, student, contact_tutor)
    _send(client, auth_headers, student, other_tutor)

    sent = client.get("/api/enquiries", headers=auth_headers(student)).json()
    received = client.get("/api/enquiries", headers=auth_headers(contact_tutor)).json()

    assert sent["pagination"]["total"] == 2
    assert received["pagination"]["total"] == 1
    assert received["enquiries"][0]["studentName"] == "Kiran"
    assert received["enquiries"][0]["studentProfileLevel"] == "beginner"

def test_list_filter_by_status(client, make_student, contact_tutor, auth_headers):
    students = [make_student() for _ in range(3)]
    ids = [_send(client, auth_headers, s, contact_tutor).json()["id"] for s in students]
    client.patch(f"/api/enquiries/{ids[0]}", json={"status": "accepted"}, headers=auth_headers(contact_tutor))

    pending = client.get("/api/enquiries", params={"status": "pending"}, headers=auth_headers(contact_tutor)).json()

    assert pending["pagination"]["total"] == 2
    assert all(e["status"] == "pending" for e in pending["enquiries"])

def test_enquiry_stats(client, make_student, contact_tutor, auth_headers):
    students = [make_student() for _ in range(4)]
    ids = [_send(client, auth_headers, s, contact_tutor).json()["id"] for s in students]
    client.patch(f"/api/enquiries/{ids[0]}", json={"status": "accepted"}, headers=auth_headers(contact_tutor))
    client.patch(f"/api/enquiries/{ids[1]}", json={"status": "declined"}, headers=auth_headers(contact_tutor))

    response = client.get("/api/enquiries/stats", headers=auth_headers(contact_tutor))

    assert response.status_code == 200
    assert response.json() == {"pending": 2, "accepted": 1, "declined": 1, "total": 4}

def test_enquiry_stats_tutor_only(client, make_student, auth_headers):
    response = client.get("/api/enquiries/stats", headers=auth_headers(make_student()))

    assert response.status_code == 403

def test_enquiry_message_keeps_ampersands(client, make_student, contact_tutor, auth_headers):
    student = make_student()

    response = _send(client, auth_headers, student, contact_tutor, message="Theory & practice, twice a week if possible")

    assert response.status_code == 201
    assert response.json()["message"] == "Theory & practice, twice a week if possible"
