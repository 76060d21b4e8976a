"""Pytest configuration for tuition_portal tests."""

import os

# Settings are read at import time, so point them at test values first.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SUPABASE_JWT_SECRET"] = "test-secret"
os.environ["SUPABASE_URL"] = "https://identity.test"
os.environ["SUPABASE_SERVICE_ROLE_KEY"] = "service-role-key"
os.environ["SECURITY_HEADERS_ENABLED"] = "true"
os.environ.pop("REDIS_URL", None)

from datetime import date, datetime, timedelta  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from jose import jwt as jose_jwt  # noqa: E402

from tuition_portal.database import Base, SessionLocal, engine  # noqa: E402
from tuition_portal.domain.blocks.procedures import ProcedureError  # noqa: E402
from tuition_portal.domain.blocks.router import get_procedure_gateway  # noqa: E402
from tuition_portal.domain.scheduling.clock import FixedClock, get_clock  # noqa: E402
from tuition_portal.main import app  # noqa: E402
from tuition_portal.models import Enrollment, GroupInstance, Profile, RecurringSlot  # noqa: E402
from tuition_portal.rate_limiter import reset_rate_limits  # noqa: E402

# Monday
TODAY = date(2026, 2, 16)


class FakeGateway:
    """Stands in for the stored-procedure gateway; records every call"""

    def __init__(self):
        self.calls = []
        self.fail_with = {}
        self.rows = [{"ok": True}]

    def _call(self, procedure, **params):
        self.calls.append((procedure, params))
        if procedure in self.fail_with:
            raise ProcedureError(procedure, self.fail_with[procedure], "raised by test")
        return list(self.rows)

    def book_4week_block(self, slot_id, desired_start_date, package_id):
        return self._call("book_4week_block", slot_uuid=slot_id, desired_start_date=desired_start_date,
                          package_id=package_id)

    def renew_4week_block(self, student_id, slot_id, package_id):
        return self._call("renew_4week_block", p_student_id=student_id, p_slot_id=slot_id, p_package_id=package_id)

    def ensure_4week_block(self, slot_id, start_date):
        return self._call("ensure_4week_block", slot_uuid=slot_id, start_date=start_date)

    def verify_4week_block_payment(self, student_id, slot_id, block_start_date):
        return self._call("verify_4week_block_payment", p_student_id=student_id, p_slot_id=slot_id,
                          p_block_start_date=block_start_date)

    def book_multi_subject_block(self, bundle_package_id, start_date, subject_slot_map, payment_mode):
        return self._call("book_multi_subject_block", p_bundle_package_id=bundle_package_id,
                          p_start_date=start_date, p_subject_slot_map=subject_slot_map,
                          p_payment_mode=payment_mode)

    def enroll_block(self, start_instance_id, package_id, notes=""):
        return self._call("enroll_block", start_instance_id=start_instance_id, package_id=package_id, notes=notes)


@pytest.fixture(autouse=True)
def _clean_rate_limits():
    reset_rate_limits()
    yield
    reset_rate_limits()


@pytest.fixture
def db():
    """A session on a freshly created schema.

    SQLite runs on one shared connection, so test data must be committed
    before a request is made (each request session rolls back on close).
    """
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def clock():
    return FixedClock(datetime(2026, 2, 16, 10, 0))


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def client(db, clock, gateway):
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_procedure_gateway] = lambda: gateway
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def auth_headers(profile_id: str, expires_in: timedelta = timedelta(hours=1)) -> dict:
    claims = {
        "sub": profile_id,
        "aud": "authenticated",
        "role": "authenticated",
        "exp": datetime.utcnow() + expires_in,
    }
    token = jose_jwt.encode(claims, "test-secret", algorithm="HS256")
    return {"Authorization": f"Bearer {token}"}


def make_profile(db, role="STUDENT", name=None, linked_user_id=None) -> Profile:
    profile = Profile(role=role, name=name or f"{role.title()} User", linked_user_id=linked_user_id)
    db.add(profile)
    db.commit()
    db.refresh(profile)
    return profile


def make_slot(db, **overrides) -> RecurringSlot:
    values = {
        "package_id": "p-maths-std",
        "label": "Maths A",
        "day_of_week": "Monday",
        "start_time": "19:00",
        "duration_minutes": 60,
    }
    values.update(overrides)
    slot = RecurringSlot(**values)
    db.add(slot)
    db.commit()
    db.refresh(slot)
    return slot


def make_instance(db, slot=None, session_date=TODAY, **overrides) -> GroupInstance:
    values = {
        "slot_id": slot.id if slot else None,
        "package_id": slot.package_id if slot else "p-maths-std",
        "label": slot.label if slot else "Maths A",
        "day_of_week": "Monday",
        "start_time": "19:00",
        "duration_minutes": 60,
        "session_date": session_date,
    }
    values.update(overrides)
    instance = GroupInstance(**values)
    db.add(instance)
    db.commit()
    db.refresh(instance)
    return instance


def make_enrollment(db, instance, student, payment_status="Paid", package_id="p-maths-std") -> Enrollment:
    enrollment = Enrollment(
        instance_id=instance.id,
        student_id=student.id,
        student_name=student.name,
        package_id=package_id,
        payment_status=payment_status,
    )
    db.add(enrollment)
    db.commit()
    db.refresh(enrollment)
    return enrollment
