import json
import threading
import time

import httpx
from sqlalchemy import event

from conftest import auth_headers, make_enrollment, make_instance, make_profile, make_slot
from tuition_portal.database import SessionLocal
from tuition_portal.domain.tutors.identity import IdentityAdminClient, get_identity_client
from tuition_portal.main import app
from tuition_portal.models import Profile, SessionNote, TutorDirectoryEntry


class IdentityStub:
    """Records identity admin API requests and answers with canned responses"""

    def __init__(self, user_id="new-tutor-id", invite_status=200):
        self.user_id = user_id
        self.invite_status = invite_status
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.method == "POST":
            if self.invite_status != 200:
                return httpx.Response(self.invite_status, json={"msg": "A user with this email already exists"})
            return httpx.Response(200, json={"id": self.user_id, "email": json.loads(request.content)["email"]})
        return httpx.Response(204)

    def client(self) -> IdentityAdminClient:
        return IdentityAdminClient(
            base_url="https://identity.test",
            service_role_key="service-role-key",
            transport=httpx.MockTransport(self),
        )


# ============================================================================
# NOTES AND ATTENDANCE
# ============================================================================


def test_tutor_writes_notes_for_assigned_sessions(client, db):
    tutor = make_profile(db, "TUTOR")
    other = make_profile(db, "TUTOR", name="Other")
    mine = make_instance(db, None, assigned_tutor_id=tutor.id)
    theirs = make_instance(db, None, assigned_tutor_id=other.id)
    body = {"sessionTitle": "Algebra", "sessionSummary": "Factorising quadratics", "homework": "Ex 4B"}

    created = client.post("/notes", json={**body, "instanceId": mine.id}, headers=auth_headers(tutor.id))
    assert created.status_code == 200
    assert created.json()["tutorId"] == tutor.id

    refused = client.post("/notes", json={**body, "instanceId": theirs.id}, headers=auth_headers(tutor.id))
    assert refused.status_code == 403

    notes = client.get("/notes", params={"instance_ids": [mine.id, theirs.id]}, headers=auth_headers(tutor.id))
    assert [n["sessionTitle"] for n in notes.json()] == ["Algebra"]


def test_students_cannot_write_notes(client, db):
    student = make_profile(db)
    instance = make_instance(db, None)
    body = {"instanceId": instance.id, "sessionTitle": "x", "sessionSummary": "y"}
    assert client.post("/notes", json=body, headers=auth_headers(student.id)).status_code == 403


def test_slow_note_write_times_out_but_still_lands(client, db, monkeypatch):
    admin = make_profile(db, "ADMIN")
    instance = make_instance(db, None)
    committed = threading.Event()

    def slow_flush(session, _flush_context, _instances):
        if any(isinstance(obj, SessionNote) for obj in session.new):
            session.info["slow_note"] = True
            time.sleep(0.3)

    def note_committed(session):
        if session.info.pop("slow_note", False):
            committed.set()

    monkeypatch.setattr("tuition_portal.domain.notes.router.REMOTE_CALL_TIMEOUT_SECONDS", 0.05)
    event.listen(SessionLocal, "before_flush", slow_flush)
    event.listen(SessionLocal, "after_commit", note_committed)
    try:
        response = client.post(
            "/notes",
            json={"instanceId": instance.id, "sessionTitle": "Late", "sessionSummary": "Slow write"},
            headers=auth_headers(admin.id),
        )
        assert response.status_code == 504
        assert response.json()["detail"] == (
            "The operation is taking longer than expected. Please check your connection."
        )
        assert committed.wait(timeout=5)
    finally:
        event.remove(SessionLocal, "before_flush", slow_flush)
        event.remove(SessionLocal, "after_commit", note_committed)

    db.expire_all()
    [note] = db.query(SessionNote).all()
    assert note.session_title == "Late"
    assert note.tutor_id == admin.id


def test_attendance_register(client, db):
    tutor = make_profile(db, "TUTOR")
    ann = make_profile(db, name="Ann")
    ben = make_profile(db, name="Ben")
    instance = make_instance(db, None, assigned_tutor_id=tutor.id)
    make_enrollment(db, instance, ann)
    make_enrollment(db, instance, ben)
    headers = auth_headers(tutor.id)
    url = f"/instances/{instance.id}/attendance"

    register = client.get(url, headers=headers).json()
    assert [(r["studentName"], r["status"], r["marked"]) for r in register] == [
        ("Ann", "Present", False),
        ("Ben", "Present", False),
    ]

    saved = client.put(url, json={"records": [{"studentId": ann.id, "status": "Late", "note": "Bus"}]}, headers=headers)
    assert saved.json() == {"saved": 2, "message": "Attendance saved."}

    register = {r["studentName"]: r for r in client.get(url, headers=headers).json()}
    assert register["Ann"]["status"] == "Late"
    assert register["Ann"]["note"] == "Bus"
    assert register["Ben"]["status"] == "Present"
    assert register["Ben"]["marked"] is True

    # Saving again updates in place
    client.put(url, json={"records": [{"studentId": ann.id, "status": "Present"}]}, headers=headers)
    assert {r["studentName"]: r["status"] for r in client.get(url, headers=headers).json()}["Ann"] == "Present"

    stranger = make_profile(db, name="Stranger")
    bad = client.put(url, json={"records": [{"studentId": stranger.id}]}, headers=headers)
    assert bad.status_code == 400


def test_attendance_with_empty_roster(client, db):
    admin = make_profile(db, "ADMIN")
    instance = make_instance(db, None)
    response = client.put(f"/instances/{instance.id}/attendance", json={"records": []}, headers=auth_headers(admin.id))
    assert response.json() == {"saved": 0, "message": "No students enrolled; nothing to save."}


# ============================================================================
# TUTORS
# ============================================================================


def test_create_tutor(client, db):
    admin = make_profile(db, "ADMIN")
    identity = IdentityStub()
    app.dependency_overrides[get_identity_client] = identity.client

    response = client.post(
        "/admin/tutors",
        json={"full_name": "Grace Hopper", "email": " Grace@Example.com ", "subjects": ["GCSE Maths"]},
        headers=auth_headers(admin.id),
    )

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "id": "new-tutor-id",
        "email": "grace@example.com",
        "name": "Grace Hopper",
        "directoryEntryCreated": True,
    }
    invite = json.loads(identity.requests[0].content)
    assert invite == {"email": "grace@example.com", "data": {"full_name": "Grace Hopper", "role": "TUTOR"}}
    assert identity.requests[0].headers["apikey"] == "service-role-key"

    db.expire_all()
    assert db.get(Profile, "new-tutor-id").role == "TUTOR"
    entry = db.query(TutorDirectoryEntry).one()
    assert (entry.first_name, entry.last_name) == ("Grace", "Hopper")


def test_create_tutor_requires_name_and_email(client, db):
    admin = make_profile(db, "ADMIN")
    identity = IdentityStub()
    app.dependency_overrides[get_identity_client] = identity.client

    response = client.post("/admin/tutors", json={"full_name": "  ", "email": "a@b.com"}, headers=auth_headers(admin.id))
    assert response.status_code == 400
    assert response.json()["detail"] == "Full name and email are required"
    assert identity.requests == []


def test_rejected_invite(client, db):
    admin = make_profile(db, "ADMIN")
    app.dependency_overrides[get_identity_client] = IdentityStub(invite_status=422).client

    response = client.post("/admin/tutors", json={"full_name": "Ada", "email": "ada@example.com"},
                           headers=auth_headers(admin.id))
    assert response.status_code == 400
    assert response.json()["detail"] == "A user with this email already exists"


def test_failed_profile_insert_removes_the_invited_user(client, db):
    admin = make_profile(db, "ADMIN")
    existing = make_profile(db, "STUDENT")
    # The provider hands back an id that already has a profile
    identity = IdentityStub(user_id=existing.id)
    app.dependency_overrides[get_identity_client] = identity.client

    response = client.post("/admin/tutors", json={"full_name": "Ada", "email": "ada@example.com"},
                           headers=auth_headers(admin.id))

    assert response.status_code == 400
    assert response.json()["detail"] == "Could not create tutor profile"
    assert [r.method for r in identity.requests] == ["POST", "DELETE"]
    assert identity.requests[1].url.path == f"/auth/v1/admin/users/{existing.id}"


def test_tutor_applications(client, db):
    admin = make_profile(db, "ADMIN")
    body = {"full_name": "Alan Turing", "email": "alan@example.com", "subjects": ["GCSE Maths"]}

    submitted = client.post("/tutor-applications", json=body)
    assert submitted.status_code == 200
    assert submitted.json()["status"] == "New"
    assert submitted.json()["source"] == "platform"

    listed = client.get("/admin/tutor-applications", headers=auth_headers(admin.id)).json()
    assert [a["email"] for a in listed] == ["alan@example.com"]

    updated = client.patch(
        f"/admin/tutor-applications/{listed[0]['id']}",
        json={"status": "Approved"},
        headers=auth_headers(admin.id),
    )
    assert updated.json()["status"] == "Approved"


def test_tutor_directory(client, db):
    admin = make_profile(db, "ADMIN")
    headers = auth_headers(admin.id)
    body = {"first_name": "Mary", "last_name": "Somerville", "email": "mary@example.com"}

    entry = client.post("/admin/tutors-directory", json=body, headers=headers).json()
    assert entry["email"] == "mary@example.com"

    updated = client.put(f"/admin/tutors-directory/{entry['id']}", json={**body, "location": "Leeds"}, headers=headers)
    assert updated.json()["location"] == "Leeds"

    assert client.delete(f"/admin/tutors-directory/{entry['id']}", headers=headers).status_code == 400
    deleted = client.delete(f"/admin/tutors-directory/{entry['id']}", params={"confirm": True}, headers=headers)
    assert deleted.status_code == 200
    assert client.get("/admin/tutors-directory", headers=headers).json() == []


# ============================================================================
# BESPOKE
# ============================================================================


def test_bespoke_offer_link_lifecycle(client, db):
    admin = make_profile(db, "ADMIN")
    headers = auth_headers(admin.id)
    slot = make_slot(db)

    offer = client.post(
        "/bespoke/offers",
        json={
            "offer_title": "Intensive Maths",
            "offer_description": "Two extra sessions a week",
            "slot_id": slot.id,
            "block_start_date": "2026-02-23",
            "custom_price_gbp": 180,
        },
        headers=headers,
    ).json()
    assert offer["payment_status"] == "Draft"
    assert offer["public_url"].endswith(f"/?bespoke={offer['public_token']}")

    public = client.get(f"/bespoke/public/{offer['public_token']}")
    assert public.status_code == 200
    assert public.json()["offer_title"] == "Intensive Maths"
    assert "public_token" not in public.json()

    client.patch(f"/bespoke/offers/{offer['id']}", json={"payment_status": "Cancelled"}, headers=headers)
    cancelled = client.get(f"/bespoke/public/{offer['public_token']}")
    assert cancelled.status_code == 404
    assert cancelled.json()["detail"] == "Link Invalid"

    assert client.get("/bespoke/public/not-a-token").json()["detail"] == "Link Invalid"


def test_bespoke_offer_validation(client, db):
    admin = make_profile(db, "ADMIN")
    headers = auth_headers(admin.id)
    body = {"offer_title": "T", "offer_description": "D", "slot_id": "missing", "block_start_date": "2026-02-23",
            "custom_price_gbp": 100}

    assert client.post("/bespoke/offers", json=body, headers=headers).status_code == 404
    assert client.post("/bespoke/offers", json={**body, "custom_price_gbp": 0}, headers=headers).status_code == 422
    assert client.post("/bespoke/offers", json={**body, "block_start_date": ""}, headers=headers).status_code == 422


def test_enquiries_are_rate_limited(client, db):
    body = {"full_name": "Parent", "email": "parent@example.com", "message": "Do you cover Chemistry?"}
    for _ in range(5):
        assert client.post("/bespoke/enquiries", json=body).status_code == 200

    limited = client.post("/bespoke/enquiries", json=body)
    assert limited.status_code == 429
    assert int(limited.headers["Retry-After"]) > 0


def test_admin_manages_enquiries(client, db):
    admin = make_profile(db, "ADMIN")
    body = {"full_name": "Parent", "email": "parent@example.com", "message": "Hello"}
    enquiry = client.post("/bespoke/enquiries", json=body).json()
    assert enquiry["status"] == "New"

    updated = client.patch(f"/bespoke/enquiries/{enquiry['id']}", json={"status": "Contacted"},
                           headers=auth_headers(admin.id))
    assert updated.json()["status"] == "Contacted"
    assert client.get("/bespoke/enquiries", headers=auth_headers(admin.id)).json()[0]["status"] == "Contacted"


# ============================================================================
# PLATFORM
# ============================================================================


def test_link_parent_to_student(client, db):
    admin = make_profile(db, "ADMIN")
    parent = make_profile(db, "PARENT")
    student = make_profile(db)
    tutor = make_profile(db, "TUTOR")
    headers = auth_headers(admin.id)

    linked = client.patch(f"/admin/profiles/{parent.id}", json={"linkedUserId": student.id}, headers=headers)
    assert linked.json()["linkedUserId"] == student.id

    assert client.patch(f"/admin/profiles/{parent.id}", json={"linkedUserId": tutor.id},
                        headers=headers).status_code == 400
    assert client.patch(f"/admin/profiles/{parent.id}", json={"linkedUserId": parent.id},
                        headers=headers).status_code == 400

    parents = client.get("/admin/profiles", params={"role": "PARENT"}, headers=headers).json()
    assert [p["id"] for p in parents] == [parent.id]


def test_announcements(client, db):
    admin = make_profile(db, "ADMIN", name="Head Office")
    student = make_profile(db)

    created = client.post("/admin/announcements", json={"title": "Half term", "content": "No sessions"},
                          headers=auth_headers(admin.id)).json()
    assert created["author"] == "Head Office"

    listed = client.get("/announcements", headers=auth_headers(student.id)).json()
    assert [a["title"] for a in listed] == ["Half term"]

    assert client.delete(f"/admin/announcements/{created['id']}", headers=auth_headers(admin.id)).status_code == 200
    assert client.get("/announcements", headers=auth_headers(student.id)).json() == []


def test_settings(client, db):
    admin = make_profile(db, "ADMIN")
    assert client.get("/settings").json() == {"supportEmail": None, "logoUrl": None, "companyName": None}

    updated = client.put("/admin/settings", json={"supportEmail": "Help@Example.com", "companyName": "Tutors"},
                         headers=auth_headers(admin.id))
    assert updated.json()["supportEmail"] == "help@example.com"
    assert client.get("/settings").json()["companyName"] == "Tutors"

    bad = client.put("/admin/settings", json={"supportEmail": "nope"}, headers=auth_headers(admin.id))
    assert bad.status_code == 422


def test_student_onboarding_profile(client, db):
    student = make_profile(db)
    parent = make_profile(db, "PARENT", linked_user_id=student.id)
    tutor = make_profile(db, "TUTOR")

    assert client.get("/student-profile", headers=auth_headers(student.id)).status_code == 404

    saved = client.put(
        "/student-profile",
        json={"school": "Park High", "year_group": "Year 10", "target_grades": {"GCSE Maths": "7"}},
        headers=auth_headers(parent.id),
    ).json()
    assert saved["student_id"] == student.id

    fetched = client.get("/student-profile", headers=auth_headers(student.id)).json()
    assert fetched["school"] == "Park High"
    assert fetched["target_grades"] == {"GCSE Maths": "7"}

    assert client.get("/student-profile", headers=auth_headers(tutor.id)).status_code == 403
