"""Scheduling domain schemas - slots, instances and access evaluation"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...catalog import get_package
from ...enums import GroupFormat
from ...shared.validators import (
    validate_classroom_url,
    validate_day_of_week,
    validate_session_date,
    validate_start_time,
)


def _known_package(v):
    if v is not None and get_package(v) is None:
        raise ValueError(f"Unknown package: {v}")
    return v


class SlotCreate(BaseModel):
    """Schema for creating a recurring slot (capacity follows the group format)"""

    packageId: str
    label: str = Field(min_length=1, max_length=50)
    dayOfWeek: str
    startTime: str
    durationMinutes: int = Field(default=60, gt=0)
    keyStage: str = "KS4"
    groupType: GroupFormat = GroupFormat.STANDARD
    assignedTutorId: Optional[str] = None
    isBookingEnabled: bool = True
    classroomProvider: Optional[str] = None
    classroomUrl: Optional[str] = None
    classroomNotes: Optional[str] = None

    @field_validator("packageId")
    @classmethod
    def validate_package(cls, v):
        return _known_package(v)

    @field_validator("dayOfWeek")
    @classmethod
    def validate_day(cls, v):
        return validate_day_of_week(v)

    @field_validator("startTime")
    @classmethod
    def validate_time(cls, v):
        return validate_start_time(v)

    @field_validator("classroomUrl")
    @classmethod
    def validate_url(cls, v):
        return validate_classroom_url(v)


class SlotUpdate(BaseModel):
    """Schema for editing a slot; only fields sent are applied"""

    packageId: Optional[str] = None
    label: Optional[str] = Field(default=None, min_length=1, max_length=50)
    dayOfWeek: Optional[str] = None
    startTime: Optional[str] = None
    durationMinutes: Optional[int] = Field(default=None, gt=0)
    keyStage: Optional[str] = None
    groupType: Optional[GroupFormat] = None
    assignedTutorId: Optional[str] = None
    isBookingEnabled: Optional[bool] = None
    classroomProvider: Optional[str] = None
    classroomUrl: Optional[str] = None
    classroomNotes: Optional[str] = None

    @field_validator("packageId")
    @classmethod
    def validate_package(cls, v):
        return _known_package(v)

    @field_validator("dayOfWeek")
    @classmethod
    def validate_day(cls, v):
        return validate_day_of_week(v) if v is not None else v

    @field_validator("startTime")
    @classmethod
    def validate_time(cls, v):
        return validate_start_time(v) if v is not None else v

    @field_validator("classroomUrl")
    @classmethod
    def validate_url(cls, v):
        return validate_classroom_url(v)


class SlotResponse(BaseModel):
    id: str
    packageId: str
    label: str
    dayOfWeek: str
    startTime: str
    durationMinutes: int
    keyStage: str
    groupType: str
    maxCapacity: int
    assignedTutorId: Optional[str] = None
    isBookingEnabled: bool
    classroomProvider: Optional[str] = None
    classroomUrl: Optional[str] = None
    classroomNotes: Optional[str] = None
    createdAt: Optional[datetime] = None
    nextStartDate: Optional[date] = None


class InstanceCreate(BaseModel):
    """Schema for an instance created directly by an admin"""

    slotId: Optional[str] = None
    packageId: str
    label: str = Field(min_length=1, max_length=50)
    dayOfWeek: Optional[str] = None
    startTime: str
    durationMinutes: int = Field(default=60, gt=0)
    keyStage: str = "KS4"
    groupType: GroupFormat = GroupFormat.STANDARD
    assignedTutorId: Optional[str] = None
    isBookingEnabled: bool = True
    sessionDate: Optional[str] = None
    classroomUrl: Optional[str] = None
    classroomProvider: Optional[str] = None
    classroomNotes: Optional[str] = None

    @field_validator("packageId")
    @classmethod
    def validate_package(cls, v):
        return _known_package(v)

    @field_validator("dayOfWeek")
    @classmethod
    def validate_day(cls, v):
        return validate_day_of_week(v) if v is not None else v

    @field_validator("startTime")
    @classmethod
    def validate_time(cls, v):
        return validate_start_time(v)

    @field_validator("sessionDate")
    @classmethod
    def validate_date(cls, v):
        return validate_session_date(v)

    @field_validator("classroomUrl")
    @classmethod
    def validate_url(cls, v):
        return validate_classroom_url(v)


class InstanceUpdate(BaseModel):
    """Admin edits: classroom link, tutor reassignment, recording, reschedule"""

    assignedTutorId: Optional[str] = None
    sessionDate: Optional[str] = None
    startTime: Optional[str] = None
    durationMinutes: Optional[int] = Field(default=None, gt=0)
    isBookingEnabled: Optional[bool] = None
    classroomUrl: Optional[str] = None
    classroomProvider: Optional[str] = None
    classroomNotes: Optional[str] = None
    recordingUrl: Optional[str] = None

    @field_validator("sessionDate")
    @classmethod
    def validate_date(cls, v):
        return validate_session_date(v)

    @field_validator("startTime")
    @classmethod
    def validate_time(cls, v):
        return validate_start_time(v) if v is not None else v

    @field_validator("classroomUrl", "recordingUrl")
    @classmethod
    def validate_url(cls, v):
        return validate_classroom_url(v)


class InstanceResponse(BaseModel):
    id: str
    slotId: Optional[str] = None
    packageId: str
    label: str
    dayOfWeek: Optional[str] = None
    startTime: Optional[str] = None
    durationMinutes: Optional[int] = None
    keyStage: Optional[str] = None
    groupType: Optional[str] = None
    maxCapacity: Optional[int] = None
    assignedTutorId: Optional[str] = None
    tutorName: Optional[str] = None
    isBookingEnabled: bool
    sessionDate: Optional[date] = None
    classroomUrl: Optional[str] = None
    classroomProvider: Optional[str] = None
    classroomNotes: Optional[str] = None
    recordingUrl: Optional[str] = None
    schedule: str
    createdAt: Optional[datetime] = None


class AccessResponse(BaseModel):
    """Access-window evaluation of one instance"""

    state: str
    label: str
    enabled: bool
    evaluatedAt: datetime
    refreshSeconds: int
