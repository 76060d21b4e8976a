from datetime import date, datetime

from conftest import auth_headers, make_enrollment, make_instance, make_profile, make_slot
from tuition_portal.domain.blocks.procedures import BackendErrorCode
from tuition_portal.domain.blocks.service import RENEWAL_MESSAGE

URL = "https://meet.example.com/abc-defg-hij"


def _linked_session(db, **overrides):
    values = {"classroom_url": URL, "classroom_provider": "Google Meet"}
    values.update(overrides)
    return make_instance(db, make_slot(db), **values)


def test_student_sees_enrolled_sessions_with_live_state(client, db, clock):
    student = make_profile(db)
    instance = _linked_session(db)
    make_instance(db, None)  # not enrolled, not visible
    enrollment = make_enrollment(db, instance, student, payment_status="Paid")

    before = client.get("/portal/sessions", headers=auth_headers(student.id)).json()
    assert before["refreshSeconds"] == 30
    [session] = before["sessions"]
    assert session["instance"]["id"] == instance.id
    assert session["state"] == "COUNTDOWN"
    assert session["accessLabel"] == "Opens in 8h 50m"
    assert session["canJoin"] is False
    assert session["joinReason"] == "NOT_OPEN_YET"
    assert session["classroomBadge"] == "Google Meet"
    assert session["paymentStatus"] == "Paid"
    assert session["enrollmentId"] == enrollment.id

    clock.instant = datetime(2026, 2, 16, 19, 5)
    [live] = client.get("/portal/sessions", headers=auth_headers(student.id)).json()["sessions"]
    assert live["state"] == "JOIN"
    assert live["canJoin"] is True


def test_pending_payment_blocks_joining(client, db, clock):
    student = make_profile(db)
    instance = _linked_session(db)
    make_enrollment(db, instance, student, payment_status="Pending")
    clock.instant = datetime(2026, 2, 16, 19, 5)

    [session] = client.get("/portal/sessions", headers=auth_headers(student.id)).json()["sessions"]
    assert session["canJoin"] is False
    assert session["joinReason"] == "PAYMENT_PENDING"

    response = client.post(f"/portal/sessions/{instance.id}/join", headers=auth_headers(student.id))
    assert response.status_code == 403
    assert response.json()["detail"]["reason"] == "PAYMENT_PENDING"


def test_join_returns_the_link(client, db, clock):
    student = make_profile(db)
    instance = _linked_session(db, classroom_url=f"  {URL} ")
    make_enrollment(db, instance, student)
    clock.instant = datetime(2026, 2, 16, 18, 50)

    response = client.post(f"/portal/sessions/{instance.id}/join", headers=auth_headers(student.id))
    assert response.status_code == 200
    assert response.json() == {"classroomUrl": URL, "classroomProvider": "Google Meet", "label": "Join Live Classroom"}


def test_join_refusals(client, db, clock):
    student = make_profile(db)
    outsider = make_profile(db, name="Outsider")
    instance = _linked_session(db)
    unlinked = make_instance(db, None)
    make_enrollment(db, instance, student)
    make_enrollment(db, unlinked, student)

    too_early = client.post(f"/portal/sessions/{instance.id}/join", headers=auth_headers(student.id))
    assert too_early.status_code == 409
    assert too_early.json()["detail"] == {"reason": "NOT_OPEN_YET", "message": "Opens in 8h 50m"}

    clock.instant = datetime(2026, 2, 16, 19, 5)
    no_link = client.post(f"/portal/sessions/{unlinked.id}/join", headers=auth_headers(student.id))
    assert no_link.status_code == 409
    assert no_link.json()["detail"]["reason"] == "NO_LIVE_LINK"

    not_enrolled = client.post(f"/portal/sessions/{instance.id}/join", headers=auth_headers(outsider.id))
    assert not_enrolled.status_code == 403
    assert not_enrolled.json()["detail"]["reason"] == "NOT_ENROLLED"

    clock.instant = datetime(2026, 2, 16, 21, 0)
    finished = client.post(f"/portal/sessions/{instance.id}/join", headers=auth_headers(student.id))
    assert finished.json()["detail"]["reason"] == "SESSION_COMPLETE"

    assert client.post("/portal/sessions/missing/join", headers=auth_headers(student.id)).status_code == 404


def test_parent_acts_for_linked_student(client, db, clock):
    student = make_profile(db)
    parent = make_profile(db, "PARENT", linked_user_id=student.id)
    instance = _linked_session(db)
    make_enrollment(db, instance, student)
    clock.instant = datetime(2026, 2, 16, 19, 5)

    [session] = client.get("/portal/sessions", headers=auth_headers(parent.id)).json()["sessions"]
    assert session["canJoin"] is True
    assert client.post(f"/portal/sessions/{instance.id}/join", headers=auth_headers(parent.id)).status_code == 200


def test_parent_without_a_linked_student(client, db):
    parent = make_profile(db, "PARENT")
    response = client.get("/portal/sessions", headers=auth_headers(parent.id))
    assert response.status_code == 400
    assert response.json()["detail"] == "Student identification failed."


def test_tutor_sees_and_joins_assigned_sessions_only(client, db, clock):
    tutor = make_profile(db, "TUTOR")
    other_tutor = make_profile(db, "TUTOR", name="Other")
    mine = _linked_session(db, assigned_tutor_id=tutor.id)
    theirs = _linked_session(db, assigned_tutor_id=other_tutor.id)
    clock.instant = datetime(2026, 2, 16, 19, 5)

    sessions = client.get("/portal/sessions", headers=auth_headers(tutor.id)).json()["sessions"]
    assert [s["instance"]["id"] for s in sessions] == [mine.id]
    assert sessions[0]["canJoin"] is True
    assert sessions[0]["paymentStatus"] is None

    assert client.post(f"/portal/sessions/{mine.id}/join", headers=auth_headers(tutor.id)).status_code == 200
    assert client.post(f"/portal/sessions/{theirs.id}/join", headers=auth_headers(tutor.id)).status_code == 403


def test_admin_sees_everything(client, db):
    admin = make_profile(db, "ADMIN")
    _linked_session(db)
    make_instance(db, None, session_date=None)

    sessions = client.get("/portal/sessions", headers=auth_headers(admin.id)).json()["sessions"]
    assert len(sessions) == 2
    pending = [s for s in sessions if s["instance"]["sessionDate"] is None][0]
    assert pending["accessLabel"] == "TBC"
    assert pending["classroomBadge"] == "Registry Pending"


def test_book_block_defaults_to_next_occurrence(client, db, gateway):
    student = make_profile(db)
    slot = make_slot(db)

    response = client.post("/blocks/book", json={"slotId": slot.id}, headers=auth_headers(student.id))
    assert response.status_code == 200
    assert response.json()["startDate"] == "2026-02-23"
    assert gateway.calls == [
        (
            "book_4week_block",
            {"slot_uuid": slot.id, "desired_start_date": date(2026, 2, 23), "package_id": "p-maths-std"},
        )
    ]


def test_book_block_errors(client, db, gateway):
    student = make_profile(db)
    closed = make_slot(db, is_booking_enabled=False)
    slot = make_slot(db, label="Maths B")
    headers = auth_headers(student.id)

    assert client.post("/blocks/book", json={"slotId": closed.id}, headers=headers).status_code == 409
    assert client.post("/blocks/book", json={"slotId": "missing"}, headers=headers).status_code == 404

    gateway.fail_with["book_4week_block"] = BackendErrorCode.CAPACITY_FULL
    full = client.post("/blocks/book", json={"slotId": slot.id, "startDate": "2026-03-02"}, headers=headers)
    assert full.status_code == 409
    assert full.json()["detail"]["code"] == "CAPACITY_FULL"


def test_book_bundle(client, db, gateway):
    student = make_profile(db)
    maths = make_slot(db)
    english = make_slot(db, label="English", package_id="p-eng-lang-std", day_of_week="Wednesday")
    headers = auth_headers(student.id)

    too_few = client.post(
        "/blocks/bundle",
        json={"bundlePackageId": "p-ms-2-std", "subjectSlotMap": {"GCSE Maths": maths.id}},
        headers=headers,
    )
    assert too_few.status_code == 400

    not_a_bundle = client.post(
        "/blocks/bundle",
        json={"bundlePackageId": "p-maths-std", "subjectSlotMap": {"GCSE Maths": maths.id}},
        headers=headers,
    )
    assert not_a_bundle.status_code == 422

    subject_map = {"GCSE Maths": maths.id, "GCSE English Language": english.id}
    booked = client.post(
        "/blocks/bundle",
        json={"bundlePackageId": "p-ms-2-std", "subjectSlotMap": subject_map},
        headers=headers,
    )
    assert booked.status_code == 200
    assert booked.json()["startDate"] == "2026-02-23"
    procedure, params = gateway.calls[-1]
    assert procedure == "book_multi_subject_block"
    assert params["p_subject_slot_map"] == subject_map


def test_renewal_without_an_existing_block(client, db, gateway):
    student = make_profile(db)
    slot = make_slot(db)
    gateway.fail_with["renew_4week_block"] = BackendErrorCode.NO_EXISTING_BLOCK

    response = client.post("/portal/renewals", json={"slotId": slot.id}, headers=auth_headers(student.id))
    assert response.status_code == 404
    assert response.json()["detail"] == {
        "code": "NO_EXISTING_BLOCK",
        "message": "No existing block found to renew.",
    }


def test_renewal_reuses_the_latest_package(client, db, gateway):
    student = make_profile(db)
    parent = make_profile(db, "PARENT", linked_user_id=student.id)
    slot = make_slot(db)
    make_enrollment(db, make_instance(db, slot), student, package_id="p-maths-enh")

    response = client.post("/portal/renewals", json={"slotId": slot.id}, headers=auth_headers(parent.id))
    assert response.status_code == 200
    assert response.json() == {"success": True, "message": RENEWAL_MESSAGE}
    assert gateway.calls == [
        ("renew_4week_block", {"p_student_id": student.id, "p_slot_id": slot.id, "p_package_id": "p-maths-enh"})
    ]


def test_admin_block_link_endpoints(client, db, gateway):
    admin = make_profile(db, "ADMIN")
    headers = auth_headers(admin.id)
    slot = make_slot(db)
    make_instance(db, slot)
    body = {"slotId": slot.id, "startDate": "2026-02-16", "classroomUrl": URL}

    run = client.post("/blocks/admin/generate", json=body, headers=headers).json()
    assert run["status"] == "completed"
    assert run["updatedCount"] == 1
    assert run["message"] == "Block created (1 sessions)."

    assert client.post("/blocks/admin/verify", json=body, headers=headers).status_code == 400
    assert client.post("/blocks/admin/generate", json={**body, "classroomUrl": ""}, headers=headers).status_code == 422

    runs = client.get("/blocks/admin/runs", params={"slot_id": slot.id}, headers=headers).json()
    assert [r["id"] for r in runs] == [run["id"]]
    assert client.get(f"/blocks/admin/runs/{run['id']}", headers=headers).json()["status"] == "completed"

    links = client.post(
        "/blocks/admin/links",
        json={"slotId": slot.id, "startDate": "2026-02-16", "classroomUrl": "https://zoom.us/j/1", "overwrite": True},
        headers=headers,
    ).json()
    assert links["status"] == "UPDATED"
    assert links["count"] == 1

    assert client.get("/blocks/admin/payments", headers=headers).json() == []
    assert client.get("/blocks/admin/renewals", headers=headers).json() == {}
