"""Scheduling router - FastAPI endpoints for slots, instances and the catalog"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_admin
from ...catalog import TUITION_PACKAGES
from ...config import ACCESS_REFRESH_SECONDS
from ...database import get_db
from ...models import GroupInstance, Profile, RecurringSlot
from .clock import Clock, get_clock
from .schemas import (
    AccessResponse,
    InstanceCreate,
    InstanceResponse,
    InstanceUpdate,
    SlotCreate,
    SlotResponse,
    SlotUpdate,
)
from .service import SchedulingService
from .time_utils import format_instance_schedule

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Scheduling"])


def get_scheduling_service(db: Session = Depends(get_db)) -> SchedulingService:
    """Dependency injection for SchedulingService"""
    return SchedulingService(db)


def slot_response(slot: RecurringSlot, today: Optional[date] = None) -> SlotResponse:
    return SlotResponse(
        id=slot.id,
        packageId=slot.package_id,
        label=slot.label,
        dayOfWeek=slot.day_of_week,
        startTime=slot.start_time,
        durationMinutes=slot.duration_minutes,
        keyStage=slot.key_stage,
        groupType=slot.group_type,
        maxCapacity=slot.max_capacity,
        assignedTutorId=slot.assigned_tutor_id,
        isBookingEnabled=slot.is_booking_enabled,
        classroomProvider=slot.classroom_provider,
        classroomUrl=slot.classroom_url,
        classroomNotes=slot.classroom_notes,
        createdAt=slot.created_at,
        nextStartDate=SchedulingService.suggested_start(slot, today),
    )


def instance_response(instance: GroupInstance) -> InstanceResponse:
    return InstanceResponse(
        id=instance.id,
        slotId=instance.slot_id,
        packageId=instance.package_id,
        label=instance.label,
        dayOfWeek=instance.day_of_week,
        startTime=instance.start_time,
        durationMinutes=instance.duration_minutes,
        keyStage=instance.key_stage,
        groupType=instance.group_type,
        maxCapacity=instance.max_capacity,
        assignedTutorId=instance.assigned_tutor_id,
        tutorName=instance.tutor_name,
        isBookingEnabled=instance.is_booking_enabled,
        sessionDate=instance.session_date,
        classroomUrl=instance.classroom_url,
        classroomProvider=instance.classroom_provider,
        classroomNotes=instance.classroom_notes,
        recordingUrl=instance.recording_url,
        schedule=format_instance_schedule(instance),
        createdAt=instance.created_at,
    )


# ============================================================================
# CATALOG
# ============================================================================


@router.get("/catalog/packages")
async def get_packages():
    """Static tuition package catalog"""
    return [
        {
            "id": p.id,
            "name": p.name,
            "category": p.category,
            "tier": p.tier,
            "subject": p.subject,
            "subjectsAllowed": p.subjects_allowed,
            "price": p.price,
            "sessions": p.sessions,
            "groupSize": p.group_size,
            "description": p.description,
            "features": list(p.features),
        }
        for p in TUITION_PACKAGES
    ]


@router.get("/catalog/slots", response_model=list[SlotResponse])
async def get_bookable_slots(
    package_id: Optional[str] = Query(None),
    service: SchedulingService = Depends(get_scheduling_service),
    clock: Clock = Depends(get_clock),
):
    """Slots open for booking, each with the date a new block would start"""
    today = clock.now().date()
    slots = service.get_slots(bookable_only=True)
    if package_id:
        slots = [s for s in slots if s.package_id == package_id]
    return [slot_response(s, today) for s in slots]


# ============================================================================
# SLOTS
# ============================================================================


@router.get("/slots", response_model=list[SlotResponse])
async def get_slots(
    current_user: Profile = Depends(get_current_user),
    service: SchedulingService = Depends(get_scheduling_service),
    clock: Clock = Depends(get_clock),
):
    today = clock.now().date()
    return [slot_response(s, today) for s in service.get_slots()]


@router.post("/slots", response_model=SlotResponse)
async def create_slot(
    data: SlotCreate,
    admin: Profile = Depends(require_admin),
    service: SchedulingService = Depends(get_scheduling_service),
    clock: Clock = Depends(get_clock),
):
    slot = service.create_slot(data, admin)
    return slot_response(slot, clock.now().date())


@router.patch("/slots/{slot_id}", response_model=SlotResponse)
async def update_slot(
    slot_id: str,
    data: SlotUpdate,
    admin: Profile = Depends(require_admin),
    service: SchedulingService = Depends(get_scheduling_service),
    clock: Clock = Depends(get_clock),
):
    slot = service.update_slot(slot_id, data)
    return slot_response(slot, clock.now().date())


@router.post("/slots/{slot_id}/toggle-booking", response_model=SlotResponse)
async def toggle_slot_booking(
    slot_id: str,
    admin: Profile = Depends(require_admin),
    service: SchedulingService = Depends(get_scheduling_service),
    clock: Clock = Depends(get_clock),
):
    slot = service.toggle_booking(slot_id)
    return slot_response(slot, clock.now().date())


@router.delete("/slots/{slot_id}")
async def delete_slot(
    slot_id: str,
    confirm: bool = Query(False),
    admin: Profile = Depends(require_admin),
    service: SchedulingService = Depends(get_scheduling_service),
):
    """Delete a slot; its dated instances are kept but detached"""
    return service.delete_slot(slot_id, confirm)


# ============================================================================
# INSTANCES
# ============================================================================


@router.get("/instances", response_model=list[InstanceResponse])
async def get_instances(
    slot_id: Optional[str] = Query(None),
    admin: Profile = Depends(require_admin),
    service: SchedulingService = Depends(get_scheduling_service),
):
    return [instance_response(i) for i in service.get_instances(slot_id)]


@router.post("/instances", response_model=InstanceResponse)
async def create_instance(
    data: InstanceCreate,
    admin: Profile = Depends(require_admin),
    service: SchedulingService = Depends(get_scheduling_service),
):
    return instance_response(service.create_instance(data))


@router.patch("/instances/{instance_id}", response_model=InstanceResponse)
async def update_instance(
    instance_id: str,
    data: InstanceUpdate,
    admin: Profile = Depends(require_admin),
    service: SchedulingService = Depends(get_scheduling_service),
):
    """Edit a dated instance; fields sent as null are cleared"""
    return instance_response(service.update_instance(instance_id, data))


@router.delete("/instances/{instance_id}")
async def delete_instance(
    instance_id: str,
    confirm: bool = Query(False),
    admin: Profile = Depends(require_admin),
    service: SchedulingService = Depends(get_scheduling_service),
):
    return service.delete_instance(instance_id, confirm)


@router.get("/instances/{instance_id}/access", response_model=AccessResponse)
async def get_instance_access(
    instance_id: str,
    current_user: Profile = Depends(get_current_user),
    service: SchedulingService = Depends(get_scheduling_service),
    clock: Clock = Depends(get_clock),
):
    """Evaluate the live classroom window for one instance at the current time"""
    now = clock.now()
    access = service.evaluate_access(instance_id, now)
    return AccessResponse(
        state=access.state.value,
        label=access.label,
        enabled=access.enabled,
        evaluatedAt=now,
        refreshSeconds=ACCESS_REFRESH_SECONDS,
    )
