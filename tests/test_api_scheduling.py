from datetime import date, datetime, timedelta

from conftest import auth_headers, make_instance, make_profile, make_slot
from tuition_portal.models import BespokeOffer, GroupInstance, RecurringSlot


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}
    redis_health = client.get("/health/redis").json()
    assert redis_health["redis"]["mode"] == "memory-only"


def test_security_headers_are_set(client, db):
    student = make_profile(db)
    response = client.get("/me", headers=auth_headers(student.id))
    assert response.headers["X-Content-Type-Options"] == "nosniff"


def test_missing_token_is_401(client):
    response = client.get("/me")
    assert response.status_code == 401
    assert "Bearer token" in response.json()["detail"]


def test_token_checks(client, db):
    student = make_profile(db)

    ok = client.get("/me", headers=auth_headers(student.id))
    assert ok.status_code == 200
    assert ok.json()["role"] == "STUDENT"

    expired = client.get("/me", headers=auth_headers(student.id, expires_in=timedelta(minutes=-5)))
    assert expired.status_code == 401
    assert expired.headers["X-Token-Expired"] == "true"

    malformed = client.get("/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert malformed.status_code == 401

    unknown = client.get("/me", headers=auth_headers("no-such-profile"))
    assert unknown.status_code == 403


def test_admin_routes_reject_students(client, db):
    student = make_profile(db)
    body = {"packageId": "p-maths-std", "label": "X", "dayOfWeek": "Monday", "startTime": "19:00"}
    response = client.post("/slots", json=body, headers=auth_headers(student.id))
    assert response.status_code == 403
    assert client.get("/instances", headers=auth_headers(student.id)).status_code == 403


def test_catalog(client, db):
    make_slot(db)
    make_slot(db, label="Closed", is_booking_enabled=False)
    make_slot(db, label="English", package_id="p-eng-lang-std", day_of_week="Thursday")

    packages = client.get("/catalog/packages").json()
    assert any(p["id"] == "p-ms-3-enh" and p["subjectsAllowed"] == 3 for p in packages)

    slots = client.get("/catalog/slots").json()
    assert sorted(s["label"] for s in slots) == ["English", "Maths A"]

    maths = client.get("/catalog/slots", params={"package_id": "p-maths-std"}).json()
    assert [s["nextStartDate"] for s in maths] == ["2026-02-23"]


def test_create_slot_normalizes_input(client, db):
    admin = make_profile(db, "ADMIN")
    response = client.post(
        "/slots",
        json={
            "packageId": "p-maths-enh",
            "label": "Maths E",
            "dayOfWeek": "wednesday",
            "startTime": "5:00pm",
            "groupType": "Enhanced",
        },
        headers=auth_headers(admin.id),
    )
    assert response.status_code == 200
    body = response.json()
    assert body["dayOfWeek"] == "Wednesday"
    assert body["startTime"] == "17:00"
    assert body["maxCapacity"] == 8
    assert body["nextStartDate"] == "2026-02-18"


def test_create_slot_validation(client, db):
    admin = make_profile(db, "ADMIN")
    headers = auth_headers(admin.id)
    base = {"packageId": "p-maths-std", "label": "X", "dayOfWeek": "Monday", "startTime": "19:00"}

    assert client.post("/slots", json={**base, "packageId": "p-unknown"}, headers=headers).status_code == 422
    assert client.post("/slots", json={**base, "dayOfWeek": "Mon"}, headers=headers).status_code == 422
    assert client.post("/slots", json={**base, "classroomUrl": "meet"}, headers=headers).status_code == 422

    student = make_profile(db)
    response = client.post("/slots", json={**base, "assignedTutorId": student.id}, headers=headers)
    assert response.status_code == 400


def test_update_and_toggle_slot(client, db):
    admin = make_profile(db, "ADMIN")
    headers = auth_headers(admin.id)
    slot = make_slot(db)

    updated = client.patch(f"/slots/{slot.id}", json={"groupType": "Enhanced"}, headers=headers).json()
    assert updated["maxCapacity"] == 8
    assert updated["label"] == "Maths A"

    cleared = client.patch(f"/slots/{slot.id}", json={"label": None}, headers=headers)
    assert cleared.status_code == 400

    toggled = client.post(f"/slots/{slot.id}/toggle-booking", headers=headers).json()
    assert toggled["isBookingEnabled"] is False


def test_delete_slot_detaches_instances(client, db):
    admin = make_profile(db, "ADMIN")
    headers = auth_headers(admin.id)
    slot = make_slot(db)
    instance = make_instance(db, slot)
    slot_id, instance_id = slot.id, instance.id

    assert client.delete(f"/slots/{slot_id}", headers=headers).status_code == 400

    response = client.delete(f"/slots/{slot_id}", params={"confirm": "true"}, headers=headers)
    assert response.status_code == 200
    assert response.json() == {"message": "Slot deleted", "detachedInstances": 1}

    db.expire_all()
    assert db.get(RecurringSlot, slot_id) is None
    assert db.get(GroupInstance, instance_id).slot_id is None


def test_delete_slot_referenced_by_an_offer(client, db):
    admin = make_profile(db, "ADMIN")
    slot = make_slot(db)
    db.add(
        BespokeOffer(
            created_by_admin_id=admin.id,
            offer_title="Plan",
            offer_description="Custom",
            package_id="p-custom-bespoke",
            slot_id=slot.id,
            block_start_date=date(2026, 2, 23),
            custom_price_gbp=200,
        )
    )
    db.commit()

    response = client.delete(f"/slots/{slot.id}", params={"confirm": "true"}, headers=auth_headers(admin.id))
    assert response.status_code == 409


def test_instances_crud(client, db):
    admin = make_profile(db, "ADMIN")
    tutor = make_profile(db, "TUTOR", name="Tina Tutor")
    headers = auth_headers(admin.id)
    slot = make_slot(db)

    created = client.post(
        "/instances",
        json={
            "slotId": slot.id,
            "packageId": "p-maths-std",
            "label": "Maths A",
            "startTime": "19:00",
            "sessionDate": "2026-02-16",
            "assignedTutorId": tutor.id,
        },
        headers=headers,
    )
    assert created.status_code == 200
    body = created.json()
    assert body["schedule"] == "Mon 16 Feb 2026 • 19:00"
    assert body["tutorName"] == "Tina Tutor"

    pending = client.post(
        "/instances",
        json={"packageId": "p-maths-std", "label": "Maths A", "startTime": "19:00"},
        headers=headers,
    ).json()
    assert pending["schedule"] == "Schedule Pending • 19:00"

    bad_date = client.post(
        "/instances",
        json={"packageId": "p-maths-std", "label": "Maths A", "startTime": "19:00", "sessionDate": "16/02/2026"},
        headers=headers,
    )
    assert bad_date.status_code == 422

    patched = client.patch(
        f"/instances/{body['id']}",
        json={"classroomUrl": "https://meet.example.com/x", "recordingUrl": None},
        headers=headers,
    ).json()
    assert patched["classroomUrl"] == "https://meet.example.com/x"

    listed = client.get("/instances", params={"slot_id": slot.id}, headers=headers).json()
    assert [i["id"] for i in listed] == [body["id"]]

    assert client.delete(f"/instances/{body['id']}", headers=headers).status_code == 400
    assert client.delete(f"/instances/{body['id']}", params={"confirm": True}, headers=headers).status_code == 200
    assert client.delete(f"/instances/{body['id']}", params={"confirm": True}, headers=headers).status_code == 404


def test_access_endpoint_follows_the_clock(client, db, clock):
    student = make_profile(db)
    headers = auth_headers(student.id)
    instance = make_instance(db, make_slot(db))

    countdown = client.get(f"/instances/{instance.id}/access", headers=headers).json()
    assert countdown["state"] == "COUNTDOWN"
    assert countdown["label"] == "Opens in 8h 50m"
    assert countdown["enabled"] is False
    assert countdown["refreshSeconds"] == 30

    clock.instant = datetime(2026, 2, 16, 18, 50)
    assert client.get(f"/instances/{instance.id}/access", headers=headers).json()["state"] == "JOIN"

    clock.instant = datetime(2026, 2, 16, 20, 15, 1)
    past = client.get(f"/instances/{instance.id}/access", headers=headers).json()
    assert past["state"] == "PAST"
    assert past["label"] == "Session Complete"

    assert client.get("/instances/missing/access", headers=headers).status_code == 404
