"""Session notes and attendance schemas"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from ...enums import AttendanceStatus


class SessionNoteCreate(BaseModel):
    instanceId: str
    sessionTitle: str = Field(min_length=1, max_length=255)
    sessionSummary: str = Field(min_length=1)
    homework: Optional[str] = None
    studentFocus: Optional[Any] = None


class SessionNoteResponse(BaseModel):
    id: str
    instanceId: str
    tutorId: str
    sessionTitle: str
    sessionSummary: str
    homework: Optional[str] = None
    studentFocus: Optional[Any] = None
    createdAt: Optional[datetime] = None


class AttendanceMark(BaseModel):
    studentId: str
    status: AttendanceStatus = AttendanceStatus.PRESENT
    note: Optional[str] = None


class AttendanceSave(BaseModel):
    """Marks for some or all of the roster; unmarked students are saved as Present"""

    records: list[AttendanceMark] = []


class AttendanceRecord(BaseModel):
    studentId: str
    studentName: Optional[str] = None
    status: str
    note: Optional[str] = None
    marked: bool


class AttendanceSaveResponse(BaseModel):
    saved: int
    message: str
