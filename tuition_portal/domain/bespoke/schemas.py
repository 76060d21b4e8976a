"""Bespoke offer and enquiry schemas"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...catalog import get_package
from ...enums import BespokeOfferStatus, EnquiryStatus
from ...shared.validators import validate_email, validate_session_date


class OfferCreate(BaseModel):
    offer_title: str = Field(min_length=1, max_length=255)
    offer_description: str = Field(min_length=1)
    package_id: str = "p-custom-bespoke"
    slot_id: str
    student_id: Optional[str] = None
    block_start_date: str
    custom_price_gbp: float = Field(gt=0)

    @field_validator("package_id")
    @classmethod
    def validate_package(cls, v):
        if get_package(v) is None:
            raise ValueError(f"Unknown package: {v}")
        return v

    @field_validator("block_start_date")
    @classmethod
    def validate_start(cls, v):
        parsed = validate_session_date(v)
        if parsed is None:
            raise ValueError("Block start date is required")
        return parsed


class OfferStatusUpdate(BaseModel):
    payment_status: BespokeOfferStatus
    payment_reference: Optional[str] = None


class OfferResponse(BaseModel):
    """Admin view, including the shareable link"""

    id: str
    offer_title: str
    offer_description: str
    package_id: str
    slot_id: str
    student_id: Optional[str] = None
    block_start_date: date
    custom_price_gbp: float
    payment_status: str
    payment_reference: Optional[str] = None
    public_token: str
    public_url: str
    created_by_admin_id: str
    created_at: Optional[datetime] = None


class PublicOfferResponse(BaseModel):
    """What the holder of the link sees"""

    offer_title: str
    offer_description: str
    package_id: str
    block_start_date: date
    custom_price_gbp: float
    payment_status: str


class EnquiryCreate(BaseModel):
    full_name: str = Field(min_length=1, max_length=255)
    email: str
    phone: Optional[str] = None
    message: str = Field(min_length=1, max_length=5000)

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)


class EnquiryStatusUpdate(BaseModel):
    status: EnquiryStatus


class EnquiryResponse(BaseModel):
    id: str
    full_name: str
    email: str
    phone: Optional[str] = None
    message: str
    status: str
    created_at: Optional[datetime] = None
