import secrets
import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


def generate_id():
    """Generate a UUID primary key (the backend keys every table by uuid)"""
    return str(uuid.uuid4())


def generate_public_token():
    """Generate an unguessable token for public bespoke offer links"""
    return secrets.token_urlsafe(24)


class Profile(Base):
    """Application profile keyed by the identity provider's user id"""

    __tablename__ = "profiles"

    id = Column(String(36), primary_key=True, default=generate_id)
    name = Column(String(255), nullable=True)
    role = Column(String(20), nullable=False, default="STUDENT", index=True)
    linked_user_id = Column(String(36), ForeignKey("profiles.id"), nullable=True)  # Parent -> student
    tenant_id = Column(String(36), nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    linked_user = relationship("Profile", remote_side=[id])


class RecurringSlot(Base):
    """Weekly class template"""

    __tablename__ = "recurring_slots"

    id = Column(String(36), primary_key=True, default=generate_id)
    package_id = Column(String(100), nullable=False, index=True)
    label = Column(String(50), nullable=False)
    day_of_week = Column(String(10), nullable=False)  # Monday..Sunday
    start_time = Column(String(10), nullable=False)  # HH:MM venue-local
    duration_minutes = Column(Integer, nullable=False, default=60)
    key_stage = Column(String(10), nullable=False, default="KS4")
    group_type = Column(String(20), nullable=False, default="Standard")
    max_capacity = Column(Integer, nullable=False, default=14)
    assigned_tutor_id = Column(String(36), ForeignKey("profiles.id"), nullable=True)
    is_booking_enabled = Column(Boolean, default=True, nullable=False)
    classroom_provider = Column(String(50), nullable=True)
    classroom_url = Column(Text, nullable=True)
    classroom_notes = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    instances = relationship("GroupInstance", back_populates="slot")


class GroupInstance(Base):
    """One dated occurrence of a slot"""

    __tablename__ = "group_instances"

    id = Column(String(36), primary_key=True, default=generate_id)
    slot_id = Column(String(36), ForeignKey("recurring_slots.id"), nullable=True, index=True)
    package_id = Column(String(100), nullable=False, index=True)
    label = Column(String(50), nullable=False)
    day_of_week = Column(String(10), nullable=True)
    start_time = Column(String(10), nullable=True)
    duration_minutes = Column(Integer, nullable=True, default=60)
    key_stage = Column(String(10), nullable=True, default="KS4")
    group_type = Column(String(20), nullable=True, default="Standard")
    max_capacity = Column(Integer, nullable=True, default=14)
    assigned_tutor_id = Column(String(36), ForeignKey("profiles.id"), nullable=True)
    is_booking_enabled = Column(Boolean, default=True, nullable=False)
    session_date = Column(Date, nullable=True, index=True)  # NULL = schedule pending
    classroom_url = Column(Text, nullable=True)
    classroom_provider = Column(String(50), nullable=True)
    classroom_notes = Column(Text, nullable=True)
    recording_url = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    slot = relationship("RecurringSlot", back_populates="instances")
    tutor = relationship("Profile", foreign_keys=[assigned_tutor_id])
    enrollments = relationship("Enrollment", back_populates="instance", cascade="all, delete-orphan")

    @property
    def tutor_name(self):
        if self.tutor and self.tutor.name:
            return self.tutor.name
        return self.assigned_tutor_id


class Enrollment(Base):
    """A student's seat in one instance"""

    __tablename__ = "enrollments"

    id = Column(String(36), primary_key=True, default=generate_id)
    package_id = Column(String(100), nullable=False)
    instance_id = Column(String(36), ForeignKey("group_instances.id"), nullable=False, index=True)
    student_id = Column(String(36), ForeignKey("profiles.id"), nullable=False, index=True)
    student_name = Column(String(255), nullable=True)
    notes = Column(Text, nullable=True)
    payment_status = Column(String(20), nullable=True, default="Pending")  # Paid, Pending
    enrolled_at = Column(DateTime, server_default=func.now())

    instance = relationship("GroupInstance", back_populates="enrollments")


class SessionNote(Base):
    __tablename__ = "session_notes"

    id = Column(String(36), primary_key=True, default=generate_id)
    instance_id = Column(String(36), ForeignKey("group_instances.id"), nullable=False, index=True)
    tutor_id = Column(String(36), ForeignKey("profiles.id"), nullable=False)
    session_title = Column(String(255), nullable=False)
    session_summary = Column(Text, nullable=False)
    homework = Column(Text, nullable=True)
    student_focus = Column(JSON, nullable=True)
    created_at = Column(DateTime, server_default=func.now())


class Attendance(Base):
    __tablename__ = "attendance"
    __table_args__ = (UniqueConstraint("instance_id", "student_id", name="uq_attendance_instance_student"),)

    id = Column(String(36), primary_key=True, default=generate_id)
    instance_id = Column(String(36), ForeignKey("group_instances.id"), nullable=False, index=True)
    student_id = Column(String(36), ForeignKey("profiles.id"), nullable=False)
    status = Column(String(20), nullable=False, default="Present")  # Present, Late, Absent, Excused
    note = Column(Text, nullable=True)
    marked_by = Column(String(36), ForeignKey("profiles.id"), nullable=True)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class Announcement(Base):
    __tablename__ = "announcements"

    id = Column(String(36), primary_key=True, default=generate_id)
    title = Column(String(255), nullable=False)
    content = Column(Text, nullable=False)
    date = Column(DateTime, server_default=func.now())
    author = Column(String(255), nullable=True)


class PlatformSettings(Base):
    """Single-row table (id = 1)"""

    __tablename__ = "platform_settings"

    id = Column(Integer, primary_key=True, default=1)
    support_email = Column(String(255), nullable=True)
    logo_url = Column(Text, nullable=True)
    company_name = Column(String(255), nullable=True)


class TutorApplication(Base):
    __tablename__ = "tutor_applications"

    id = Column(String(36), primary_key=True, default=generate_id)
    full_name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, index=True)
    phone = Column(String(50), nullable=True)
    subjects = Column(JSON, default=list, nullable=True)
    key_stages = Column(JSON, default=list, nullable=True)
    dbs_status = Column(String(100), nullable=True)
    experience_notes = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default="New")
    source = Column(String(20), nullable=False, default="platform")
    created_at = Column(DateTime, server_default=func.now())


class TutorDirectoryEntry(Base):
    __tablename__ = "tutors_directory"

    id = Column(String(36), primary_key=True, default=generate_id)
    timestamp_submitted = Column(DateTime, nullable=True)
    first_name = Column(String(255), nullable=False)
    last_name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    phone = Column(String(50), nullable=True)
    address = Column(Text, nullable=True)
    location = Column(String(255), nullable=True)
    subjects = Column(JSON, default=list, nullable=True)
    years_gcse_experience = Column(String(50), nullable=True)
    hourly_rate_group_gcse = Column(String(50), nullable=True)
    weekly_availability = Column(Text, nullable=True)
    dbs_certificate = Column(String(100), nullable=True)
    dbs_notes = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())


class BespokeOffer(Base):
    __tablename__ = "bespoke_offers"

    id = Column(String(36), primary_key=True, default=generate_id)
    created_by_admin_id = Column(String(36), ForeignKey("profiles.id"), nullable=False)
    student_id = Column(String(36), ForeignKey("profiles.id"), nullable=True)
    offer_title = Column(String(255), nullable=False)
    offer_description = Column(Text, nullable=False)
    package_id = Column(String(100), nullable=False)
    slot_id = Column(String(36), ForeignKey("recurring_slots.id"), nullable=False)
    block_start_date = Column(Date, nullable=False)
    custom_price_gbp = Column(Float, nullable=False)
    payment_status = Column(String(20), nullable=False, default="Draft")  # Draft, Sent, Paid, Cancelled
    payment_reference = Column(String(255), nullable=True)
    public_token = Column(String(64), unique=True, index=True, nullable=False, default=generate_public_token)
    created_at = Column(DateTime, server_default=func.now())


class BespokeEnquiry(Base):
    __tablename__ = "bespoke_enquiries"

    id = Column(String(36), primary_key=True, default=generate_id)
    full_name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    phone = Column(String(50), nullable=True)
    message = Column(Text, nullable=False)
    status = Column(String(20), nullable=False, default="New")
    created_at = Column(DateTime, server_default=func.now())


class StudentProfile(Base):
    """Onboarding details, one row per student"""

    __tablename__ = "student_profiles"

    id = Column(String(36), primary_key=True, default=generate_id)
    student_id = Column(String(36), ForeignKey("profiles.id"), unique=True, nullable=False)
    school = Column(String(255), nullable=True)
    year_group = Column(String(50), nullable=True)
    exam_board = Column(String(100), nullable=True)
    strengths = Column(Text, nullable=True)
    weaknesses = Column(Text, nullable=True)
    target_grades = Column(JSON, default=dict, nullable=True)
    created_at = Column(DateTime, server_default=func.now())


class BlockLinkRun(Base):
    """Recorded progress of an admin generate/verify block run.

    The run spans two backend steps that are not atomic together, so its
    intermediate status is persisted rather than kept in a transient message.
    """

    __tablename__ = "block_link_runs"

    id = Column(String(36), primary_key=True, default=generate_id)
    kind = Column(String(20), nullable=False)  # generate, verify
    status = Column(String(30), nullable=False, default="started", index=True)
    slot_id = Column(String(36), nullable=False, index=True)  # kept after the slot is deleted
    student_id = Column(String(36), nullable=True)  # verify runs only
    start_date = Column(Date, nullable=False)
    classroom_url = Column(Text, nullable=False)
    classroom_provider = Column(String(50), nullable=True)
    updated_count = Column(Integer, nullable=True)
    error_code = Column(String(50), nullable=True)
    error_message = Column(Text, nullable=True)
    created_by = Column(String(36), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
