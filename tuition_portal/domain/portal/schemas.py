"""Learning portal schemas"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from ..scheduling.schemas import InstanceResponse


class PortalSession(BaseModel):
    """One instance as the caller sees it right now"""

    instance: InstanceResponse
    state: str
    accessLabel: str
    canJoin: bool
    joinReason: str
    joinLabel: str
    classroomBadge: str
    paymentStatus: Optional[str] = None
    enrollmentId: Optional[str] = None


class PortalSessionsResponse(BaseModel):
    sessions: list[PortalSession]
    evaluatedAt: datetime
    refreshSeconds: int


class JoinResponse(BaseModel):
    classroomUrl: str
    classroomProvider: Optional[str] = None
    label: str


class RenewalResponse(BaseModel):
    success: bool
    message: str
