"""Block service - booking, renewal, block-link runs and payment blocks"""

import logging
from collections import defaultdict
from datetime import date
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...auth import acting_student_id
from ...catalog import get_package, package_name
from ...enums import BlockLinkRunKind, BlockLinkRunStatus, PaymentStatus
from ...models import BlockLinkRun, Profile, RecurringSlot
from ...security_middleware import clear_rls_context
from ..scheduling.block_calendar import BLOCK_WEEKS, block_session_dates, block_window, next_occurrence
from ..scheduling.gate import has_live_link, payment_status_of
from ..scheduling.repository import EnrollmentRepository, InstanceRepository, SlotRepository
from .errors import procedure_http_error
from .procedures import ProcedureError, ProcedureGateway
from .repository import BlockLinkRunRepository
from .schemas import (
    AssignLinksRequest,
    BlockLinkRequest,
    BookBlockRequest,
    BookBundleRequest,
    EnrollBlockRequest,
    RenewalRequest,
)

logger = logging.getLogger(__name__)

BLOCK_LINK_NOTES = "Academic block link applied by admin."
MANUAL_LINK_NOTES = "Manual link applied to 4-week block."
RENEWAL_MESSAGE = "Renewal created — awaiting payment verification."
NO_SESSIONS_UPDATED_MESSAGE = "No sessions were updated. Check slot/date range."

# Result statuses of a manual link assignment
NO_SESSIONS_FOUND = "NO_SESSIONS_FOUND"
NOTHING_TO_UPDATE = "NOTHING_TO_UPDATE"
UPDATED = "UPDATED"


def run_message(run: BlockLinkRun) -> Optional[str]:
    """Human summary of a block-link run's current status"""
    status = BlockLinkRunStatus(run.status)
    if status == BlockLinkRunStatus.COMPLETED:
        if run.kind == BlockLinkRunKind.VERIFY.value:
            return f"Payment verified and link applied ({run.updated_count} sessions)."
        return f"Block created ({run.updated_count} sessions)."
    if status == BlockLinkRunStatus.NO_SESSIONS_UPDATED:
        return NO_SESSIONS_UPDATED_MESSAGE
    if status in (BlockLinkRunStatus.FAILED, BlockLinkRunStatus.PARTIAL):
        return run.error_message
    if status == BlockLinkRunStatus.STEP_ONE_DONE:
        return "Block ready, applying classroom link."
    return "Run started."


class BlockService:
    """Service layer for four-week blocks"""

    def __init__(self, db: Session, gateway: ProcedureGateway):
        self.db = db
        self.gateway = gateway
        self.slots = SlotRepository()
        self.instances = InstanceRepository()
        self.enrollments = EnrollmentRepository()
        self.runs = BlockLinkRunRepository()

    def _get_slot(self, slot_id: str) -> RecurringSlot:
        slot = self.slots.get_slot_by_id(self.db, slot_id)
        if not slot:
            raise HTTPException(status_code=404, detail="Slot not found")
        return slot

    # ------------------------------------------------------------------
    # Booking
    # ------------------------------------------------------------------

    def book_block(self, data: BookBlockRequest, user: Profile, today: date) -> tuple[date, list[dict]]:
        """Book a four-week block on one slot for the caller (or their linked student)"""
        acting_student_id(user)
        slot = self._get_slot(data.slotId)
        if not slot.is_booking_enabled:
            raise HTTPException(status_code=409, detail="Booking is closed for this group")

        start = data.startDate or next_occurrence(slot.day_of_week, today)
        package_id = data.packageId or slot.package_id
        logger.info(f"📥 Booking block on slot {slot.id} from {start} ({package_id}) for {user.id}")

        try:
            rows = self.gateway.book_4week_block(slot.id, start, package_id)
        except ProcedureError as e:
            raise procedure_http_error(e) from e

        logger.info(f"✅ Block booked on slot {slot.id} from {start}")
        return start, rows

    def book_bundle(self, data: BookBundleRequest, user: Profile, today: date) -> tuple[date, list[dict]]:
        """Book a multi-subject bundle; every subject starts the same Monday"""
        acting_student_id(user)
        package = get_package(data.bundlePackageId)
        if package.subjects_allowed and len(data.subjectSlotMap) != package.subjects_allowed:
            raise HTTPException(
                status_code=400,
                detail=f"{package.name} needs exactly {package.subjects_allowed} subjects",
            )
        for slot_id in data.subjectSlotMap.values():
            self._get_slot(slot_id)

        start = data.startDate or next_occurrence("Monday", today)
        logger.info(f"📥 Booking bundle {package.id} from {start}: {data.subjectSlotMap}")

        try:
            rows = self.gateway.book_multi_subject_block(
                package.id, start, data.subjectSlotMap, data.paymentMode
            )
        except ProcedureError as e:
            raise procedure_http_error(e) from e

        return start, rows

    def enroll_block(self, data: EnrollBlockRequest, user: Profile) -> list[dict]:
        """Enroll from a specific start instance (used when the instance is already known)"""
        acting_student_id(user)
        instance = self.instances.get_instance_by_id(self.db, data.startInstanceId)
        if not instance:
            raise HTTPException(status_code=404, detail="Session not found")
        try:
            return self.gateway.enroll_block(instance.id, data.packageId, data.notes)
        except ProcedureError as e:
            raise procedure_http_error(e) from e

    def renew_block(self, data: RenewalRequest, user: Profile) -> list[dict]:
        """Renew the acting student's latest block on a slot"""
        student_id = acting_student_id(user)
        slot = self._get_slot(data.slotId)

        package_id = data.packageId
        if not package_id:
            latest = [
                e for e, i in self.enrollments.get_for_student_with_instances(self.db, student_id)
                if i.slot_id == slot.id
            ]
            package_id = latest[0].package_id if latest else slot.package_id

        logger.info(f"🔁 Renewing slot {slot.id} for student {student_id} ({package_id})")
        try:
            return self.gateway.renew_4week_block(student_id, slot.id, package_id)
        except ProcedureError as e:
            raise procedure_http_error(e) from e

    # ------------------------------------------------------------------
    # Block-link runs (admin)
    # ------------------------------------------------------------------

    def run_block_link(self, kind: BlockLinkRunKind, data: BlockLinkRequest, admin: Profile) -> BlockLinkRun:
        """
        Ensure (generate) or verify a block, then apply a classroom link to it.

        The two steps are not atomic together. The run row records how far it
        got: FAILED means nothing was applied, PARTIAL means the block exists
        (or was verified) but its sessions carry no link yet.
        """
        slot = self._get_slot(data.slotId)
        if kind == BlockLinkRunKind.VERIFY and not data.studentId:
            raise HTTPException(status_code=400, detail="studentId is required to verify a block")

        run = self.runs.create_run(
            self.db,
            kind=kind.value,
            slot_id=slot.id,
            student_id=data.studentId,
            start_date=data.startDate,
            classroom_url=data.classroomUrl,
            classroom_provider=data.classroomProvider,
            created_by=admin.id,
        )
        logger.info(f"🚀 Block-link run {run.id} ({kind.value}) for slot {slot.id} from {data.startDate}")

        try:
            if kind == BlockLinkRunKind.GENERATE:
                self.gateway.ensure_4week_block(slot.id, data.startDate)
            else:
                self.gateway.verify_4week_block_payment(data.studentId, slot.id, data.startDate)
        except ProcedureError as e:
            logger.error(f"❌ Run {run.id} failed at {e.procedure}: {e.code.value}")
            return self.runs.set_status(
                self.db, run, BlockLinkRunStatus.FAILED, error_code=e.code.value, error_message=e.message
            )

        run = self.runs.set_status(self.db, run, BlockLinkRunStatus.STEP_ONE_DONE)

        start, end = block_window(data.startDate)
        try:
            count = self.instances.update_links_in_window(
                self.db,
                slot.id,
                start,
                end,
                data.classroomUrl,
                data.classroomProvider,
                BLOCK_LINK_NOTES,
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Run {run.id} applied its block but not the link: {e}")
            return self.runs.set_status(
                self.db,
                run,
                BlockLinkRunStatus.PARTIAL,
                error_code="LINK_UPDATE_FAILED",
                error_message="Block is ready but the classroom link could not be applied. Retry the link.",
            )

        if count == 0:
            logger.warning(f"⚠️ Run {run.id} updated no sessions in [{start}, {end})")
            return self.runs.set_status(self.db, run, BlockLinkRunStatus.NO_SESSIONS_UPDATED, updated_count=0)

        logger.info(f"✅ Run {run.id} applied the link to {count} session(s)")
        return self.runs.set_status(self.db, run, BlockLinkRunStatus.COMPLETED, updated_count=count)

    def get_runs(self, slot_id: Optional[str] = None) -> list[BlockLinkRun]:
        return self.runs.get_runs(self.db, slot_id)

    def get_run(self, run_id: str) -> BlockLinkRun:
        run = self.runs.get_run(self.db, run_id)
        if not run:
            raise HTTPException(status_code=404, detail="Run not found")
        return run

    # ------------------------------------------------------------------
    # Manual link assignment (admin)
    # ------------------------------------------------------------------

    def assign_block_links(self, data: AssignLinksRequest) -> dict:
        """Put one link on the four weekly sessions of a block"""
        if not data.classroomUrl:
            raise HTTPException(status_code=400, detail="Classroom URL is required for manual assignment.")

        # Bulk link writes run without the caller's RLS claims
        clear_rls_context(self.db)
        dates = block_session_dates(data.startDate)
        instances = self.instances.get_instances_on_dates(self.db, data.slotId, dates)
        if not instances:
            return {"status": NO_SESSIONS_FOUND, "message": "No sessions found to update."}

        targets = [i for i in instances if data.overwrite or not has_live_link(i)]
        if not targets:
            return {"status": NOTHING_TO_UPDATE, "message": "No sessions required updating."}

        for instance in targets:
            instance.classroom_url = data.classroomUrl
            instance.classroom_provider = data.classroomProvider
            instance.classroom_notes = MANUAL_LINK_NOTES
        self.db.commit()

        logger.info(f"🔗 Link applied to {len(targets)} session(s) of slot {data.slotId} from {data.startDate}")
        return {
            "status": UPDATED,
            "message": f"Link applied to {len(targets)} session(s).",
            "count": len(targets),
            "updatedIds": [i.id for i in targets],
            "url": data.classroomUrl,
        }

    # ------------------------------------------------------------------
    # Payment blocks (admin)
    # ------------------------------------------------------------------

    def payment_blocks(self) -> list[dict]:
        """
        Enrollments grouped per (student, slot) and cut into blocks of four by
        session date, newest block first.
        """
        groups = defaultdict(list)
        for enrollment, instance in self.enrollments.get_all_with_instances(self.db):
            if not instance.slot_id:
                continue
            groups[(enrollment.student_id, instance.slot_id)].append((enrollment, instance))

        blocks = []
        for (student_id, slot_id), rows in groups.items():
            rows.sort(key=lambda r: r[1].session_date or date.min)
            for i in range(0, len(rows), BLOCK_WEEKS):
                chunk = rows[i:i + BLOCK_WEEKS]
                first_enrollment, first_instance = chunk[0]
                statuses = [payment_status_of(e) for e, _ in chunk]
                blocks.append(
                    {
                        "studentId": student_id,
                        "studentName": first_enrollment.student_name,
                        "slotId": slot_id,
                        "packageId": first_enrollment.package_id,
                        "packageName": package_name(first_enrollment.package_id),
                        "blockStartDate": first_instance.session_date,
                        "totalCount": len(chunk),
                        "paidCount": statuses.count(PaymentStatus.PAID),
                        "pendingCount": statuses.count(PaymentStatus.PENDING),
                    }
                )

        blocks.sort(key=lambda b: b["blockStartDate"] or date.min, reverse=True)
        return blocks

    def pending_renewals(self) -> dict[str, list[dict]]:
        """Blocks still awaiting payment, keyed by slot"""
        by_slot = defaultdict(list)
        for block in self.payment_blocks():
            if block["pendingCount"] > 0:
                by_slot[block["slotId"]].append(
                    {
                        "slotId": block["slotId"],
                        "studentId": block["studentId"],
                        "studentName": block["studentName"],
                        "packageId": block["packageId"],
                        "blockStartDate": block["blockStartDate"],
                        "pendingCount": block["pendingCount"],
                    }
                )
        return dict(by_slot)
