"""Platform schemas - profiles, announcements, settings and onboarding"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...shared.validators import validate_email


class ProfileResponse(BaseModel):
    id: str
    name: Optional[str] = None
    role: str
    linkedUserId: Optional[str] = None
    createdAt: Optional[datetime] = None


class ProfileUpdate(BaseModel):
    """Admins may only rename a profile or change its linked student"""

    name: Optional[str] = Field(default=None, max_length=255)
    linkedUserId: Optional[str] = None


class AnnouncementCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    content: str = Field(min_length=1)


class AnnouncementResponse(BaseModel):
    id: str
    title: str
    content: str
    date: Optional[datetime] = None
    author: Optional[str] = None


class SettingsResponse(BaseModel):
    supportEmail: Optional[str] = None
    logoUrl: Optional[str] = None
    companyName: Optional[str] = None


class SettingsUpdate(BaseModel):
    supportEmail: Optional[str] = None
    logoUrl: Optional[str] = None
    companyName: Optional[str] = Field(default=None, max_length=255)

    @field_validator("supportEmail")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)


class StudentProfileUpsert(BaseModel):
    school: Optional[str] = None
    year_group: Optional[str] = None
    exam_board: Optional[str] = None
    strengths: Optional[str] = None
    weaknesses: Optional[str] = None
    target_grades: dict[str, str] = {}


class StudentProfileResponse(StudentProfileUpsert):
    id: str
    student_id: str
    created_at: Optional[datetime] = None
