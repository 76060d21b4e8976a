"""Bespoke router - admin offers and enquiries, public link lookup and enquiry form"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import require_admin
from ...database import get_db
from ...models import BespokeEnquiry, BespokeOffer, Profile
from ...rate_limiter import create_rate_limiter
from .schemas import (
    EnquiryCreate,
    EnquiryResponse,
    EnquiryStatusUpdate,
    OfferCreate,
    OfferResponse,
    OfferStatusUpdate,
    PublicOfferResponse,
)
from .service import BespokeService, offer_public_url

router = APIRouter(prefix="/bespoke", tags=["Bespoke"])

limit_enquiries = create_rate_limiter(limit=5, window_seconds=3600, key_prefix="bespoke_enquiry")
limit_offer_lookups = create_rate_limiter(limit=60, window_seconds=60, key_prefix="bespoke_lookup")


def get_bespoke_service(db: Session = Depends(get_db)) -> BespokeService:
    """Dependency injection for BespokeService"""
    return BespokeService(db)


def offer_response(o: BespokeOffer) -> OfferResponse:
    return OfferResponse(
        id=o.id,
        offer_title=o.offer_title,
        offer_description=o.offer_description,
        package_id=o.package_id,
        slot_id=o.slot_id,
        student_id=o.student_id,
        block_start_date=o.block_start_date,
        custom_price_gbp=o.custom_price_gbp,
        payment_status=o.payment_status,
        payment_reference=o.payment_reference,
        public_token=o.public_token,
        public_url=offer_public_url(o),
        created_by_admin_id=o.created_by_admin_id,
        created_at=o.created_at,
    )


def enquiry_response(e: BespokeEnquiry) -> EnquiryResponse:
    return EnquiryResponse(
        id=e.id,
        full_name=e.full_name,
        email=e.email,
        phone=e.phone,
        message=e.message,
        status=e.status,
        created_at=e.created_at,
    )


# ============================================================================
# PUBLIC
# ============================================================================


@router.get("/public/{token}", response_model=PublicOfferResponse, dependencies=[Depends(limit_offer_lookups)])
async def get_public_offer(token: str, service: BespokeService = Depends(get_bespoke_service)):
    """Resolve a ``?bespoke=<token>`` link"""
    offer = service.get_public_offer(token)
    return PublicOfferResponse(
        offer_title=offer.offer_title,
        offer_description=offer.offer_description,
        package_id=offer.package_id,
        block_start_date=offer.block_start_date,
        custom_price_gbp=offer.custom_price_gbp,
        payment_status=offer.payment_status,
    )


@router.post("/enquiries", response_model=EnquiryResponse, dependencies=[Depends(limit_enquiries)])
async def submit_enquiry(data: EnquiryCreate, service: BespokeService = Depends(get_bespoke_service)):
    return enquiry_response(service.create_enquiry(data))


# ============================================================================
# ADMIN
# ============================================================================


@router.post("/offers", response_model=OfferResponse)
async def create_offer(
    data: OfferCreate,
    admin: Profile = Depends(require_admin),
    service: BespokeService = Depends(get_bespoke_service),
):
    """Create an offer as Draft with a fresh public token"""
    return offer_response(service.create_offer(data, admin))


@router.get("/offers", response_model=list[OfferResponse])
async def get_offers(
    admin: Profile = Depends(require_admin),
    service: BespokeService = Depends(get_bespoke_service),
):
    return [offer_response(o) for o in service.get_offers()]


@router.patch("/offers/{offer_id}", response_model=OfferResponse)
async def update_offer_status(
    offer_id: str,
    data: OfferStatusUpdate,
    admin: Profile = Depends(require_admin),
    service: BespokeService = Depends(get_bespoke_service),
):
    return offer_response(service.update_offer_status(offer_id, data))


@router.get("/enquiries", response_model=list[EnquiryResponse])
async def get_enquiries(
    admin: Profile = Depends(require_admin),
    service: BespokeService = Depends(get_bespoke_service),
):
    return [enquiry_response(e) for e in service.get_enquiries()]


@router.patch("/enquiries/{enquiry_id}", response_model=EnquiryResponse)
async def update_enquiry_status(
    enquiry_id: str,
    data: EnquiryStatusUpdate,
    admin: Profile = Depends(require_admin),
    service: BespokeService = Depends(get_bespoke_service),
):
    return enquiry_response(service.update_enquiry_status(enquiry_id, data.status))
