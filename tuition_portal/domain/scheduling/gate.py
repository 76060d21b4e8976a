"""
Join gating on top of the access window.

The access window only knows about time. Whether a caller may actually join
also depends on the instance having a live link and, for students and
parents, on the enrollment being paid. Staff (admins and tutors) skip the
payment check but stay bound by the window.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ...enums import PaymentStatus, UserRole
from .access import SessionAccess, SessionState

NO_LIVE_LINK_LABEL = "No Live Link Set Yet"
REGISTRY_PENDING_LABEL = "Registry Pending"

STAFF_ROLES = {UserRole.ADMIN, UserRole.TUTOR}


class JoinReason(str, Enum):
    JOINABLE = "JOINABLE"
    NOT_OPEN_YET = "NOT_OPEN_YET"
    SESSION_COMPLETE = "SESSION_COMPLETE"
    NO_LIVE_LINK = "NO_LIVE_LINK"
    PAYMENT_PENDING = "PAYMENT_PENDING"
    NOT_ENROLLED = "NOT_ENROLLED"


@dataclass(frozen=True)
class JoinDecision:
    reason: JoinReason
    label: str

    @property
    def allowed(self) -> bool:
        return self.reason == JoinReason.JOINABLE


def has_live_link(instance) -> bool:
    url = getattr(instance, "classroom_url", None)
    return bool(url and url.strip())


def payment_status_of(enrollment) -> PaymentStatus:
    """A missing status reads as Pending"""
    raw = getattr(enrollment, "payment_status", None)
    try:
        return PaymentStatus(raw)
    except ValueError:
        return PaymentStatus.PENDING


def join_decision(
    instance,
    enrollment,
    access: SessionAccess,
    role: UserRole = UserRole.STUDENT,
) -> JoinDecision:
    """Decide whether ``role`` may join now, with the reason when it may not"""
    if access.state == SessionState.PAST:
        return JoinDecision(JoinReason.SESSION_COMPLETE, access.label)

    if access.state != SessionState.JOIN or not access.enabled:
        return JoinDecision(JoinReason.NOT_OPEN_YET, access.label)

    if not has_live_link(instance):
        return JoinDecision(JoinReason.NO_LIVE_LINK, NO_LIVE_LINK_LABEL)

    if role in STAFF_ROLES:
        return JoinDecision(JoinReason.JOINABLE, access.label)

    if enrollment is None:
        return JoinDecision(JoinReason.NOT_ENROLLED, "Not Enrolled")

    if payment_status_of(enrollment) != PaymentStatus.PAID:
        return JoinDecision(JoinReason.PAYMENT_PENDING, "Awaiting Payment Verification")

    return JoinDecision(JoinReason.JOINABLE, access.label)


def can_join(
    instance,
    enrollment,
    access: SessionAccess,
    role: UserRole = UserRole.STUDENT,
) -> bool:
    return join_decision(instance, enrollment, access, role).allowed


def classroom_badge(instance) -> str:
    """Provider name when a link is set; otherwise why there is no link yet"""
    provider: Optional[str] = getattr(instance, "classroom_provider", None)
    if has_live_link(instance):
        return provider or "Live Now"
    if provider:
        return NO_LIVE_LINK_LABEL
    return REGISTRY_PENDING_LABEL
