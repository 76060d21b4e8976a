"""Portal service - what each role sees of the timetable, and joining"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...auth import acting_student_id, role_of
from ...enums import UserRole
from ...models import Enrollment, GroupInstance, Profile
from ..scheduling.access import evaluate
from ..scheduling.gate import JoinDecision, JoinReason, classroom_badge, join_decision, payment_status_of
from ..scheduling.repository import EnrollmentRepository, InstanceRepository

logger = logging.getLogger(__name__)

# Reasons the caller could fix by paying or enrolling -> 403; timing or setup -> 409
_FORBIDDEN_REASONS = {JoinReason.PAYMENT_PENDING, JoinReason.NOT_ENROLLED}


class PortalService:
    """Service layer for the learning portal"""

    def __init__(self, db: Session):
        self.db = db
        self.instances = InstanceRepository()
        self.enrollments = EnrollmentRepository()

    def visible_sessions(self, user: Profile) -> list[tuple[GroupInstance, Optional[Enrollment]]]:
        """
        Instances visible to the caller, each paired with the caller's enrollment.

        Students and parents see the instances they (or their linked student)
        are enrolled in; tutors see their assigned instances; admins see all.
        """
        role = role_of(user)
        if role == UserRole.ADMIN:
            return [(i, None) for i in self.instances.get_instances(self.db)]
        if role == UserRole.TUTOR:
            return [(i, None) for i in self.instances.get_instances_for_tutor(self.db, user.id)]

        student_id = acting_student_id(user)
        rows = self.enrollments.get_enrollments_for_student(self.db, student_id)
        by_instance = {e.instance_id: e for e in rows}
        instances = self.instances.get_instances_by_ids(self.db, list(by_instance))
        return [(i, by_instance[i.id]) for i in instances]

    def describe(self, instance: GroupInstance, enrollment: Optional[Enrollment], role: UserRole, now: datetime) -> dict:
        access = evaluate(instance, now)
        decision = join_decision(instance, enrollment, access, role)
        return {
            "access": access,
            "decision": decision,
            "badge": classroom_badge(instance),
            "paymentStatus": payment_status_of(enrollment).value if enrollment is not None else None,
        }

    def join(self, instance_id: str, user: Profile, now: datetime) -> tuple[GroupInstance, JoinDecision]:
        """Return the instance when the caller may join it now; raise with the reason otherwise"""
        instance = self.instances.get_instance_by_id(self.db, instance_id)
        if not instance:
            raise HTTPException(status_code=404, detail="Session not found")

        role = role_of(user)
        enrollment = None
        if role == UserRole.TUTOR and instance.assigned_tutor_id != user.id:
            raise HTTPException(status_code=403, detail="This session is assigned to another tutor")
        if role in (UserRole.STUDENT, UserRole.PARENT):
            enrollment = self.enrollments.get_enrollment(self.db, instance.id, acting_student_id(user))

        decision = join_decision(instance, enrollment, evaluate(instance, now), role)
        if not decision.allowed:
            status = 403 if decision.reason in _FORBIDDEN_REASONS else 409
            logger.info(f"🚫 Join refused for {user.id} on {instance.id}: {decision.reason.value}")
            raise HTTPException(
                status_code=status,
                detail={"reason": decision.reason.value, "message": decision.label},
            )

        logger.info(f"🎓 {user.id} joining {instance.id}")
        return instance, decision
