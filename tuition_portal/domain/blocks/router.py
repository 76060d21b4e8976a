"""Block router - booking and admin block-link endpoints"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_admin
from ...database import get_db
from ...enums import BlockLinkRunKind
from ...models import BlockLinkRun, Profile
from ..scheduling.clock import Clock, get_clock
from .procedures import ProcedureGateway
from .schemas import (
    AssignLinksRequest,
    AssignLinksResponse,
    BlockLinkRequest,
    BlockLinkRunResponse,
    BookBlockRequest,
    BookBundleRequest,
    BookingResponse,
    EnrollBlockRequest,
    PaymentBlockResponse,
    PendingRenewalResponse,
)
from .service import BlockService, run_message

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/blocks", tags=["Blocks"])


def get_procedure_gateway(db: Session = Depends(get_db)) -> ProcedureGateway:
    return ProcedureGateway(db)


def get_block_service(
    db: Session = Depends(get_db),
    gateway: ProcedureGateway = Depends(get_procedure_gateway),
) -> BlockService:
    """Dependency injection for BlockService"""
    return BlockService(db, gateway)


def run_response(run: BlockLinkRun) -> BlockLinkRunResponse:
    return BlockLinkRunResponse(
        id=run.id,
        kind=run.kind,
        status=run.status,
        slotId=run.slot_id,
        studentId=run.student_id,
        startDate=run.start_date,
        classroomUrl=run.classroom_url,
        classroomProvider=run.classroom_provider,
        updatedCount=run.updated_count,
        errorCode=run.error_code,
        message=run_message(run),
        createdAt=run.created_at,
        updatedAt=run.updated_at,
    )


# ============================================================================
# BOOKING
# ============================================================================


@router.post("/book", response_model=BookingResponse)
async def book_block(
    data: BookBlockRequest,
    current_user: Profile = Depends(get_current_user),
    service: BlockService = Depends(get_block_service),
    clock: Clock = Depends(get_clock),
):
    """Book four weekly sessions on a slot"""
    start, rows = service.book_block(data, current_user, clock.now().date())
    return BookingResponse(success=True, message="Block booked. Awaiting payment verification.", startDate=start, rows=rows)


@router.post("/bundle", response_model=BookingResponse)
async def book_bundle(
    data: BookBundleRequest,
    current_user: Profile = Depends(get_current_user),
    service: BlockService = Depends(get_block_service),
    clock: Clock = Depends(get_clock),
):
    start, rows = service.book_bundle(data, current_user, clock.now().date())
    return BookingResponse(success=True, message="Bundle booked.", startDate=start, rows=rows)


@router.post("/enroll", response_model=BookingResponse)
async def enroll_block(
    data: EnrollBlockRequest,
    current_user: Profile = Depends(get_current_user),
    service: BlockService = Depends(get_block_service),
):
    rows = service.enroll_block(data, current_user)
    return BookingResponse(success=True, message="Enrollment confirmed.", rows=rows)


# ============================================================================
# ADMIN
# ============================================================================


@router.post("/admin/generate", response_model=BlockLinkRunResponse)
async def generate_block(
    data: BlockLinkRequest,
    admin: Profile = Depends(require_admin),
    service: BlockService = Depends(get_block_service),
):
    """Materialize a block and apply its classroom link; the run status says how far it got"""
    return run_response(service.run_block_link(BlockLinkRunKind.GENERATE, data, admin))


@router.post("/admin/verify", response_model=BlockLinkRunResponse)
async def verify_block(
    data: BlockLinkRequest,
    admin: Profile = Depends(require_admin),
    service: BlockService = Depends(get_block_service),
):
    """Mark a student's block paid and apply its classroom link"""
    return run_response(service.run_block_link(BlockLinkRunKind.VERIFY, data, admin))


@router.get("/admin/runs", response_model=list[BlockLinkRunResponse])
async def get_runs(
    slot_id: Optional[str] = Query(None),
    admin: Profile = Depends(require_admin),
    service: BlockService = Depends(get_block_service),
):
    return [run_response(r) for r in service.get_runs(slot_id)]


@router.get("/admin/runs/{run_id}", response_model=BlockLinkRunResponse)
async def get_run(
    run_id: str,
    admin: Profile = Depends(require_admin),
    service: BlockService = Depends(get_block_service),
):
    return run_response(service.get_run(run_id))


@router.post("/admin/links", response_model=AssignLinksResponse)
async def assign_block_links(
    data: AssignLinksRequest,
    admin: Profile = Depends(require_admin),
    service: BlockService = Depends(get_block_service),
):
    """Manually set the classroom link on a block's four sessions"""
    return service.assign_block_links(data)


@router.get("/admin/payments", response_model=list[PaymentBlockResponse])
async def get_payment_blocks(
    admin: Profile = Depends(require_admin),
    service: BlockService = Depends(get_block_service),
):
    return service.payment_blocks()


@router.get("/admin/renewals", response_model=dict[str, list[PendingRenewalResponse]])
async def get_pending_renewals(
    admin: Profile = Depends(require_admin),
    service: BlockService = Depends(get_block_service),
):
    return service.pending_renewals()
