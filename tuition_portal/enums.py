"""Enumerations shared across domains."""

from enum import Enum


class UserRole(str, Enum):
    """Profile roles."""

    STUDENT = "STUDENT"
    PARENT = "PARENT"
    TUTOR = "TUTOR"
    ADMIN = "ADMIN"


class GroupFormat(str, Enum):
    """Group size tier of a slot."""

    STANDARD = "Standard"
    ENHANCED = "Enhanced"

    @property
    def capacity(self) -> int:
        return GROUP_CAPACITY[self]


GROUP_CAPACITY = {
    GroupFormat.STANDARD: 14,
    GroupFormat.ENHANCED: 8,
}


class PaymentStatus(str, Enum):
    """Enrollment payment status."""

    PAID = "Paid"
    PENDING = "Pending"


class AttendanceStatus(str, Enum):
    PRESENT = "Present"
    LATE = "Late"
    ABSENT = "Absent"
    EXCUSED = "Excused"


class ApplicationStatus(str, Enum):
    NEW = "New"
    REVIEWED = "Reviewed"
    APPROVED = "Approved"
    ACTIVATED = "Activated"
    REJECTED = "Rejected"


class ApplicationSource(str, Enum):
    IMPORT = "import"
    GOOGLE_FORM = "google_form"
    PLATFORM = "platform"


class BespokeOfferStatus(str, Enum):
    DRAFT = "Draft"
    SENT = "Sent"
    PAID = "Paid"
    CANCELLED = "Cancelled"


class EnquiryStatus(str, Enum):
    NEW = "New"
    CONTACTED = "Contacted"
    CLOSED = "Closed"


class BlockLinkRunKind(str, Enum):
    """First step of an admin block-link run."""

    GENERATE = "generate"  # ensure_4week_block
    VERIFY = "verify"  # verify_4week_block_payment


class BlockLinkRunStatus(str, Enum):
    """Recorded progress of a block-link run.

    STARTED -> STEP_ONE_DONE -> COMPLETED | NO_SESSIONS_UPDATED
    STARTED -> FAILED (first step failed, nothing applied)
    STEP_ONE_DONE -> PARTIAL (block exists or was verified, links not applied)
    """

    STARTED = "started"
    STEP_ONE_DONE = "step_one_done"
    COMPLETED = "completed"
    NO_SESSIONS_UPDATED = "no_sessions_updated"
    FAILED = "failed"
    PARTIAL = "partial"


TERMINAL_RUN_STATUSES = {
    BlockLinkRunStatus.COMPLETED,
    BlockLinkRunStatus.NO_SESSIONS_UPDATED,
    BlockLinkRunStatus.FAILED,
    BlockLinkRunStatus.PARTIAL,
}
