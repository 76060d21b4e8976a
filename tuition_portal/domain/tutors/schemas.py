"""Tutor onboarding schemas - admin creation, applications and the directory"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...enums import ApplicationSource, ApplicationStatus
from ...shared.validators import validate_email


class TutorCreate(BaseModel):
    """Admin: invite a tutor. Name and email are checked in the service so a blank one is a 400."""

    full_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    subjects: list[str] = []


class TutorCreateResponse(BaseModel):
    success: bool
    id: str
    email: str
    name: str
    directoryEntryCreated: bool


class TutorSummary(BaseModel):
    id: str
    name: Optional[str] = None
    role: str


class ApplicationCreate(BaseModel):
    full_name: str = Field(min_length=1, max_length=255)
    email: str
    phone: Optional[str] = None
    subjects: list[str] = []
    key_stages: list[str] = []
    dbs_status: Optional[str] = None
    experience_notes: Optional[str] = Field(default=None, max_length=5000)

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)


class ApplicationStatusUpdate(BaseModel):
    status: ApplicationStatus


class ApplicationResponse(BaseModel):
    id: str
    full_name: str
    email: str
    phone: Optional[str] = None
    subjects: list[str] = []
    key_stages: list[str] = []
    dbs_status: Optional[str] = None
    experience_notes: Optional[str] = None
    status: str
    source: str = ApplicationSource.PLATFORM.value
    created_at: Optional[datetime] = None


class DirectoryEntryBase(BaseModel):
    first_name: str = Field(min_length=1, max_length=255)
    last_name: str = Field(min_length=1, max_length=255)
    email: str
    phone: Optional[str] = None
    address: Optional[str] = None
    location: Optional[str] = None
    subjects: list[str] = []
    years_gcse_experience: Optional[str] = None
    hourly_rate_group_gcse: Optional[str] = None
    weekly_availability: Optional[str] = None
    dbs_certificate: Optional[str] = None
    dbs_notes: Optional[str] = None

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)


class DirectoryEntryResponse(DirectoryEntryBase):
    id: str
    timestamp_submitted: Optional[datetime] = None
    created_at: Optional[datetime] = None
