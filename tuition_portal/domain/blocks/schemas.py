"""Block booking, renewal and block-link schemas"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from ...catalog import get_package, is_bundle
from ...config import DEFAULT_CLASSROOM_PROVIDER
from ...shared.validators import validate_classroom_url, validate_session_date


class BookBlockRequest(BaseModel):
    """Book four weeks on one slot; start defaults to the slot's next occurrence"""

    slotId: str
    startDate: Optional[str] = None
    packageId: Optional[str] = None

    @field_validator("startDate")
    @classmethod
    def validate_start(cls, v):
        return validate_session_date(v)

    @field_validator("packageId")
    @classmethod
    def validate_package(cls, v):
        if v is not None and get_package(v) is None:
            raise ValueError(f"Unknown package: {v}")
        return v


class BookBundleRequest(BaseModel):
    """Book several subjects together; start defaults to the next Monday"""

    bundlePackageId: str
    subjectSlotMap: dict[str, str]
    startDate: Optional[str] = None
    paymentMode: str = "Paid"

    @field_validator("bundlePackageId")
    @classmethod
    def validate_bundle(cls, v):
        if not is_bundle(v):
            raise ValueError(f"Not a multi-subject package: {v}")
        return v

    @field_validator("subjectSlotMap")
    @classmethod
    def validate_map(cls, v):
        if not v:
            raise ValueError("Choose a slot for each subject")
        return v

    @field_validator("startDate")
    @classmethod
    def validate_start(cls, v):
        return validate_session_date(v)


class EnrollBlockRequest(BaseModel):
    startInstanceId: str
    packageId: str
    notes: str = ""


class RenewalRequest(BaseModel):
    slotId: str
    packageId: Optional[str] = None


class BookingResponse(BaseModel):
    success: bool
    message: str
    startDate: Optional[date] = None
    rows: list[dict] = []


class BlockLinkRequest(BaseModel):
    """Admin: materialize (or verify) a block, then apply one classroom link to it"""

    slotId: str
    startDate: str
    classroomUrl: str
    classroomProvider: str = DEFAULT_CLASSROOM_PROVIDER
    studentId: Optional[str] = None  # required for verify

    @field_validator("startDate")
    @classmethod
    def validate_start(cls, v):
        parsed = validate_session_date(v)
        if parsed is None:
            raise ValueError("Block start date is required")
        return parsed

    @field_validator("classroomUrl")
    @classmethod
    def validate_url(cls, v):
        url = validate_classroom_url(v)
        if url is None:
            raise ValueError("Classroom URL is required")
        return url


class BlockLinkRunResponse(BaseModel):
    id: str
    kind: str
    status: str
    slotId: str
    studentId: Optional[str] = None
    startDate: date
    classroomUrl: str
    classroomProvider: Optional[str] = None
    updatedCount: Optional[int] = None
    errorCode: Optional[str] = None
    message: Optional[str] = None
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None


class AssignLinksRequest(BaseModel):
    """Admin: put one link on the four weekly sessions of a block"""

    slotId: str
    startDate: str
    classroomUrl: Optional[str] = None
    classroomProvider: str = DEFAULT_CLASSROOM_PROVIDER
    overwrite: bool = False

    @field_validator("startDate")
    @classmethod
    def validate_start(cls, v):
        parsed = validate_session_date(v)
        if parsed is None:
            raise ValueError("Block start date is required")
        return parsed

    @field_validator("classroomUrl")
    @classmethod
    def validate_url(cls, v):
        return validate_classroom_url(v)


class AssignLinksResponse(BaseModel):
    status: str
    message: str
    count: int = 0
    updatedIds: list[str] = []
    url: Optional[str] = None


class PaymentBlockResponse(BaseModel):
    studentId: str
    studentName: Optional[str] = None
    slotId: str
    packageId: str
    packageName: str
    blockStartDate: Optional[date] = None
    totalCount: int
    paidCount: int
    pendingCount: int


class PendingRenewalResponse(BaseModel):
    slotId: str
    studentId: str
    studentName: Optional[str] = None
    packageId: str
    blockStartDate: Optional[date] = None
    pendingCount: int
