"""Scheduling repository - Database operations for slots and instances"""

from datetime import date
from typing import Optional

from sqlalchemy.orm import Session, joinedload

from ...models import BespokeOffer, Enrollment, GroupInstance, RecurringSlot


class SlotRepository:
    """Repository for recurring slot database operations"""

    @staticmethod
    def get_slots(db: Session, bookable_only: bool = False) -> list[RecurringSlot]:
        query = db.query(RecurringSlot)
        if bookable_only:
            query = query.filter(RecurringSlot.is_booking_enabled.is_(True))
        return query.order_by(RecurringSlot.package_id, RecurringSlot.label).all()

    @staticmethod
    def get_slot_by_id(db: Session, slot_id: str) -> Optional[RecurringSlot]:
        return db.query(RecurringSlot).filter(RecurringSlot.id == slot_id).first()

    @staticmethod
    def create_slot(db: Session, **slot_data) -> RecurringSlot:
        slot = RecurringSlot(**slot_data)
        db.add(slot)
        db.commit()
        db.refresh(slot)
        return slot

    @staticmethod
    def update_slot(db: Session, slot: RecurringSlot, **updates) -> RecurringSlot:
        for key, value in updates.items():
            if hasattr(slot, key):
                setattr(slot, key, value)
        db.commit()
        db.refresh(slot)
        return slot

    @staticmethod
    def count_offers_for_slot(db: Session, slot_id: str) -> int:
        return db.query(BespokeOffer).filter(BespokeOffer.slot_id == slot_id).count()

    @staticmethod
    def delete_slot(db: Session, slot: RecurringSlot) -> int:
        """Delete a slot, detaching its dated instances. Returns how many were detached."""
        detached = (
            db.query(GroupInstance)
            .filter(GroupInstance.slot_id == slot.id)
            .update({GroupInstance.slot_id: None}, synchronize_session=False)
        )
        db.delete(slot)
        db.commit()
        return detached


class InstanceRepository:
    """Repository for dated instance database operations"""

    @staticmethod
    def _base_query(db: Session):
        return db.query(GroupInstance).options(joinedload(GroupInstance.tutor))

    @staticmethod
    def get_instances(db: Session, slot_id: Optional[str] = None) -> list[GroupInstance]:
        query = InstanceRepository._base_query(db)
        if slot_id:
            query = query.filter(GroupInstance.slot_id == slot_id)
        return query.order_by(GroupInstance.session_date, GroupInstance.start_time).all()

    @staticmethod
    def get_instance_by_id(db: Session, instance_id: str) -> Optional[GroupInstance]:
        return InstanceRepository._base_query(db).filter(GroupInstance.id == instance_id).first()

    @staticmethod
    def get_instances_by_ids(db: Session, instance_ids: list[str]) -> list[GroupInstance]:
        if not instance_ids:
            return []
        return (
            InstanceRepository._base_query(db)
            .filter(GroupInstance.id.in_(instance_ids))
            .order_by(GroupInstance.session_date, GroupInstance.start_time)
            .all()
        )

    @staticmethod
    def get_instances_for_tutor(db: Session, tutor_id: str) -> list[GroupInstance]:
        return (
            InstanceRepository._base_query(db)
            .filter(GroupInstance.assigned_tutor_id == tutor_id)
            .order_by(GroupInstance.session_date, GroupInstance.start_time)
            .all()
        )

    @staticmethod
    def get_instances_in_window(db: Session, slot_id: str, start: date, end: date) -> list[GroupInstance]:
        """Instances of a slot with start <= session_date < end"""
        return (
            db.query(GroupInstance)
            .filter(
                GroupInstance.slot_id == slot_id,
                GroupInstance.session_date >= start,
                GroupInstance.session_date < end,
            )
            .order_by(GroupInstance.session_date)
            .all()
        )

    @staticmethod
    def get_instances_on_dates(db: Session, slot_id: str, dates: list[date]) -> list[GroupInstance]:
        return (
            db.query(GroupInstance)
            .filter(GroupInstance.slot_id == slot_id, GroupInstance.session_date.in_(dates))
            .order_by(GroupInstance.session_date)
            .all()
        )

    @staticmethod
    def update_links_in_window(
        db: Session,
        slot_id: str,
        start: date,
        end: date,
        classroom_url: str,
        classroom_provider: str,
        classroom_notes: str,
    ) -> int:
        """Bulk-apply a classroom link to a slot's instances in [start, end). Returns affected rows."""
        count = (
            db.query(GroupInstance)
            .filter(
                GroupInstance.slot_id == slot_id,
                GroupInstance.session_date >= start,
                GroupInstance.session_date < end,
            )
            .update(
                {
                    GroupInstance.classroom_url: classroom_url,
                    GroupInstance.classroom_provider: classroom_provider,
                    GroupInstance.classroom_notes: classroom_notes,
                },
                synchronize_session=False,
            )
        )
        db.commit()
        return count

    @staticmethod
    def create_instance(db: Session, **instance_data) -> GroupInstance:
        instance = GroupInstance(**instance_data)
        db.add(instance)
        db.commit()
        db.refresh(instance)
        return instance

    @staticmethod
    def update_instance(db: Session, instance: GroupInstance, **updates) -> GroupInstance:
        for key, value in updates.items():
            if hasattr(instance, key):
                setattr(instance, key, value)
        db.commit()
        db.refresh(instance)
        return instance

    @staticmethod
    def delete_instance(db: Session, instance: GroupInstance) -> None:
        db.delete(instance)
        db.commit()


class EnrollmentRepository:
    """Repository for enrollment reads (writes go through backend procedures)"""

    @staticmethod
    def get_enrollments_for_student(db: Session, student_id: str) -> list[Enrollment]:
        return (
            db.query(Enrollment)
            .filter(Enrollment.student_id == student_id)
            .order_by(Enrollment.enrolled_at.desc())
            .all()
        )

    @staticmethod
    def get_enrollment(db: Session, instance_id: str, student_id: str) -> Optional[Enrollment]:
        return (
            db.query(Enrollment)
            .filter(Enrollment.instance_id == instance_id, Enrollment.student_id == student_id)
            .first()
        )

    @staticmethod
    def get_roster(db: Session, instance_id: str) -> list[Enrollment]:
        return (
            db.query(Enrollment)
            .filter(Enrollment.instance_id == instance_id)
            .order_by(Enrollment.student_name)
            .all()
        )

    @staticmethod
    def get_all_with_instances(db: Session) -> list[tuple[Enrollment, GroupInstance]]:
        return (
            db.query(Enrollment, GroupInstance)
            .join(GroupInstance, Enrollment.instance_id == GroupInstance.id)
            .all()
        )

    @staticmethod
    def get_for_student_with_instances(db: Session, student_id: str) -> list[tuple[Enrollment, GroupInstance]]:
        return (
            db.query(Enrollment, GroupInstance)
            .join(GroupInstance, Enrollment.instance_id == GroupInstance.id)
            .filter(Enrollment.student_id == student_id)
            .order_by(GroupInstance.session_date.desc())
            .all()
        )
