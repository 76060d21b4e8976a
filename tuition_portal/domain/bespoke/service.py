"""Bespoke service - private offers shared by link, and public enquiries"""

import logging

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...config import FRONTEND_URL
from ...enums import BespokeOfferStatus, EnquiryStatus
from ...models import BespokeEnquiry, BespokeOffer, Profile, RecurringSlot
from .schemas import EnquiryCreate, OfferCreate, OfferStatusUpdate

logger = logging.getLogger(__name__)

LINK_INVALID = "Link Invalid"


def offer_public_url(offer: BespokeOffer) -> str:
    """The deep link a family opens: ``<frontend>/?bespoke=<token>``"""
    return f"{FRONTEND_URL.rstrip('/')}/?bespoke={offer.public_token}"


class BespokeService:
    """Service layer for bespoke offers and enquiries"""

    def __init__(self, db: Session):
        self.db = db

    # Offers

    def create_offer(self, data: OfferCreate, admin: Profile) -> BespokeOffer:
        if not self.db.query(RecurringSlot).filter(RecurringSlot.id == data.slot_id).first():
            raise HTTPException(status_code=404, detail="Slot not found")
        if data.student_id and not self.db.query(Profile).filter(Profile.id == data.student_id).first():
            raise HTTPException(status_code=404, detail="Student not found")

        offer = BespokeOffer(
            created_by_admin_id=admin.id,
            student_id=data.student_id,
            offer_title=data.offer_title,
            offer_description=data.offer_description,
            package_id=data.package_id,
            slot_id=data.slot_id,
            block_start_date=data.block_start_date,
            custom_price_gbp=data.custom_price_gbp,
            payment_status=BespokeOfferStatus.DRAFT.value,
        )
        self.db.add(offer)
        self.db.commit()
        self.db.refresh(offer)
        logger.info(f"✅ Bespoke offer {offer.id} created by {admin.id}")
        return offer

    def get_offers(self) -> list[BespokeOffer]:
        return self.db.query(BespokeOffer).order_by(BespokeOffer.created_at.desc()).all()

    def update_offer_status(self, offer_id: str, data: OfferStatusUpdate) -> BespokeOffer:
        offer = self.db.query(BespokeOffer).filter(BespokeOffer.id == offer_id).first()
        if not offer:
            raise HTTPException(status_code=404, detail="Offer not found")
        offer.payment_status = data.payment_status.value
        if data.payment_reference is not None:
            offer.payment_reference = data.payment_reference or None
        self.db.commit()
        self.db.refresh(offer)
        logger.info(f"📝 Offer {offer_id} -> {offer.payment_status}")
        return offer

    def get_public_offer(self, token: str) -> BespokeOffer:
        """Offer behind a shared link; cancelled offers read as missing"""
        offer = self.db.query(BespokeOffer).filter(BespokeOffer.public_token == token).first()
        if not offer or offer.payment_status == BespokeOfferStatus.CANCELLED.value:
            raise HTTPException(status_code=404, detail=LINK_INVALID)
        return offer

    # Enquiries

    def create_enquiry(self, data: EnquiryCreate) -> BespokeEnquiry:
        enquiry = BespokeEnquiry(
            full_name=data.full_name.strip(),
            email=data.email,
            phone=data.phone,
            message=data.message,
            status=EnquiryStatus.NEW.value,
        )
        self.db.add(enquiry)
        self.db.commit()
        self.db.refresh(enquiry)
        logger.info(f"📨 Bespoke enquiry received: {enquiry.id}")
        return enquiry

    def get_enquiries(self) -> list[BespokeEnquiry]:
        return self.db.query(BespokeEnquiry).order_by(BespokeEnquiry.created_at.desc()).all()

    def update_enquiry_status(self, enquiry_id: str, status: EnquiryStatus) -> BespokeEnquiry:
        enquiry = self.db.query(BespokeEnquiry).filter(BespokeEnquiry.id == enquiry_id).first()
        if not enquiry:
            raise HTTPException(status_code=404, detail="Enquiry not found")
        enquiry.status = status.value
        self.db.commit()
        self.db.refresh(enquiry)
        return enquiry
