"""Portal router - the caller's sessions, joining and renewals"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import get_current_user, role_of
from ...config import ACCESS_REFRESH_SECONDS
from ...database import get_db
from ...models import Profile
from ..blocks.router import get_block_service
from ..blocks.schemas import RenewalRequest
from ..blocks.service import RENEWAL_MESSAGE, BlockService
from ..scheduling.clock import Clock, get_clock
from ..scheduling.router import instance_response
from .schemas import JoinResponse, PortalSession, PortalSessionsResponse, RenewalResponse
from .service import PortalService

router = APIRouter(prefix="/portal", tags=["Portal"])


def get_portal_service(db: Session = Depends(get_db)) -> PortalService:
    """Dependency injection for PortalService"""
    return PortalService(db)


@router.get("/sessions", response_model=PortalSessionsResponse)
async def get_sessions(
    current_user: Profile = Depends(get_current_user),
    service: PortalService = Depends(get_portal_service),
    clock: Clock = Depends(get_clock),
):
    """Sessions visible to the caller with their live classroom state.

    Clients re-poll every ``refreshSeconds`` so countdowns advance and the
    join action appears without a reload.
    """
    now = clock.now()
    role = role_of(current_user)
    sessions = []
    for instance, enrollment in service.visible_sessions(current_user):
        described = service.describe(instance, enrollment, role, now)
        access, decision = described["access"], described["decision"]
        sessions.append(
            PortalSession(
                instance=instance_response(instance),
                state=access.state.value,
                accessLabel=access.label,
                canJoin=decision.allowed,
                joinReason=decision.reason.value,
                joinLabel=decision.label,
                classroomBadge=described["badge"],
                paymentStatus=described["paymentStatus"],
                enrollmentId=enrollment.id if enrollment is not None else None,
            )
        )
    return PortalSessionsResponse(sessions=sessions, evaluatedAt=now, refreshSeconds=ACCESS_REFRESH_SECONDS)


@router.post("/sessions/{instance_id}/join", response_model=JoinResponse)
async def join_session(
    instance_id: str,
    current_user: Profile = Depends(get_current_user),
    service: PortalService = Depends(get_portal_service),
    clock: Clock = Depends(get_clock),
):
    instance, decision = service.join(instance_id, current_user, clock.now())
    return JoinResponse(
        classroomUrl=instance.classroom_url.strip(),
        classroomProvider=instance.classroom_provider,
        label=decision.label,
    )


@router.post("/renewals", response_model=RenewalResponse)
async def renew_block(
    data: RenewalRequest,
    current_user: Profile = Depends(get_current_user),
    service: BlockService = Depends(get_block_service),
):
    """Renew the next four weeks on a slot; the new block awaits payment verification"""
    service.renew_block(data, current_user)
    return RenewalResponse(success=True, message=RENEWAL_MESSAGE)
