"""Scheduling service - Business logic for slots, instances and access evaluation"""

import logging
from datetime import date, datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...enums import GROUP_CAPACITY, GroupFormat, UserRole
from ...models import GroupInstance, Profile, RecurringSlot
from .access import SessionAccess, evaluate
from .block_calendar import next_occurrence
from .repository import InstanceRepository, SlotRepository
from .schemas import InstanceCreate, InstanceUpdate, SlotCreate, SlotUpdate

logger = logging.getLogger(__name__)

# API field -> column, shared by slot and instance writes
_FIELD_COLUMNS = {
    "slotId": "slot_id",
    "packageId": "package_id",
    "label": "label",
    "dayOfWeek": "day_of_week",
    "startTime": "start_time",
    "durationMinutes": "duration_minutes",
    "keyStage": "key_stage",
    "groupType": "group_type",
    "assignedTutorId": "assigned_tutor_id",
    "isBookingEnabled": "is_booking_enabled",
    "sessionDate": "session_date",
    "classroomUrl": "classroom_url",
    "classroomProvider": "classroom_provider",
    "classroomNotes": "classroom_notes",
    "recordingUrl": "recording_url",
}


def _to_columns(data: dict) -> dict:
    columns = {}
    for key, value in data.items():
        if isinstance(value, GroupFormat):
            value = value.value
        columns[_FIELD_COLUMNS[key]] = value
    if "group_type" in columns and columns["group_type"] is not None:
        columns["max_capacity"] = GROUP_CAPACITY[GroupFormat(columns["group_type"])]
    return columns


class SchedulingService:
    """Service layer for the weekly timetable"""

    def __init__(self, db: Session):
        self.db = db
        self.slots = SlotRepository()
        self.instances = InstanceRepository()

    # Slots

    def get_slots(self, bookable_only: bool = False) -> list[RecurringSlot]:
        return self.slots.get_slots(self.db, bookable_only)

    def get_slot(self, slot_id: str) -> RecurringSlot:
        slot = self.slots.get_slot_by_id(self.db, slot_id)
        if not slot:
            raise HTTPException(status_code=404, detail="Slot not found")
        return slot

    @staticmethod
    def suggested_start(slot: RecurringSlot, today: Optional[date] = None) -> date:
        """First date a new block on this slot would start"""
        return next_occurrence(slot.day_of_week, today)

    def _check_tutor(self, tutor_id: Optional[str]) -> None:
        if not tutor_id:
            return
        tutor = self.db.query(Profile).filter(Profile.id == tutor_id).first()
        if not tutor or tutor.role not in (UserRole.TUTOR.value, UserRole.ADMIN.value):
            raise HTTPException(status_code=400, detail="Assigned tutor must be a tutor profile")

    def create_slot(self, data: SlotCreate, admin: Profile) -> RecurringSlot:
        logger.info(f"📥 Admin {admin.id} creating slot {data.label} ({data.dayOfWeek} {data.startTime})")
        self._check_tutor(data.assignedTutorId)
        slot = self.slots.create_slot(self.db, **_to_columns(data.model_dump()))
        logger.info(f"✅ Slot created: {slot.id}")
        return slot

    def update_slot(self, slot_id: str, data: SlotUpdate) -> RecurringSlot:
        slot = self.get_slot(slot_id)
        updates = _to_columns(data.model_dump(exclude_unset=True))
        if "assigned_tutor_id" in updates:
            self._check_tutor(updates["assigned_tutor_id"])
        for required in ("package_id", "label", "day_of_week", "start_time", "group_type"):
            if required in updates and updates[required] is None:
                raise HTTPException(status_code=400, detail=f"{required} cannot be cleared")
        logger.info(f"📝 Updating slot {slot_id}: {sorted(updates)}")
        return self.slots.update_slot(self.db, slot, **updates)

    def toggle_booking(self, slot_id: str) -> RecurringSlot:
        slot = self.get_slot(slot_id)
        enabled = not slot.is_booking_enabled
        logger.info(f"🔁 Slot {slot_id} booking {'enabled' if enabled else 'disabled'}")
        return self.slots.update_slot(self.db, slot, is_booking_enabled=enabled)

    def delete_slot(self, slot_id: str, confirm: bool) -> dict:
        if not confirm:
            raise HTTPException(status_code=400, detail="Deleting a slot requires confirm=true")
        slot = self.get_slot(slot_id)

        offers = self.slots.count_offers_for_slot(self.db, slot_id)
        if offers:
            raise HTTPException(
                status_code=409,
                detail=f"Slot is referenced by {offers} bespoke offer(s). Cancel or move them first.",
            )

        detached = self.slots.delete_slot(self.db, slot)
        logger.info(f"🗑️ Slot {slot_id} deleted, {detached} instance(s) detached")
        return {"message": "Slot deleted", "detachedInstances": detached}

    # Instances

    def get_instances(self, slot_id: Optional[str] = None) -> list[GroupInstance]:
        return self.instances.get_instances(self.db, slot_id)

    def get_instance(self, instance_id: str) -> GroupInstance:
        instance = self.instances.get_instance_by_id(self.db, instance_id)
        if not instance:
            raise HTTPException(status_code=404, detail="Session not found")
        return instance

    def create_instance(self, data: InstanceCreate) -> GroupInstance:
        if data.slotId:
            self.get_slot(data.slotId)
        self._check_tutor(data.assignedTutorId)
        instance = self.instances.create_instance(self.db, **_to_columns(data.model_dump()))
        logger.info(f"✅ Instance created: {instance.id} on {instance.session_date or 'TBC'}")
        return instance

    def update_instance(self, instance_id: str, data: InstanceUpdate) -> GroupInstance:
        instance = self.get_instance(instance_id)
        updates = _to_columns(data.model_dump(exclude_unset=True))
        if "assigned_tutor_id" in updates:
            self._check_tutor(updates["assigned_tutor_id"])
        logger.info(f"📝 Updating instance {instance_id}: {sorted(updates)}")
        return self.instances.update_instance(self.db, instance, **updates)

    def delete_instance(self, instance_id: str, confirm: bool) -> dict:
        if not confirm:
            raise HTTPException(status_code=400, detail="Deleting a session requires confirm=true")
        instance = self.get_instance(instance_id)
        self.instances.delete_instance(self.db, instance)
        logger.info(f"🗑️ Instance {instance_id} deleted")
        return {"message": "Session deleted"}

    def evaluate_access(self, instance_id: str, now: datetime) -> SessionAccess:
        return evaluate(self.get_instance(instance_id), now)
