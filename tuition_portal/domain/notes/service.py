"""Notes service - session notes and attendance registers"""

import logging

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...auth import role_of
from ...enums import AttendanceStatus, UserRole
from ...models import Attendance, GroupInstance, Profile, SessionNote
from ..scheduling.repository import EnrollmentRepository, InstanceRepository
from .schemas import AttendanceSave, SessionNoteCreate

logger = logging.getLogger(__name__)


class NoteService:
    """Service layer for notes and attendance"""

    def __init__(self, db: Session):
        self.db = db
        self.instances = InstanceRepository()
        self.enrollments = EnrollmentRepository()

    def _staff_instance(self, instance_id: str, user: Profile) -> GroupInstance:
        """The instance, provided the caller is an admin or its assigned tutor"""
        instance = self.instances.get_instance_by_id(self.db, instance_id)
        if not instance:
            raise HTTPException(status_code=404, detail="Session not found")
        if role_of(user) == UserRole.TUTOR and instance.assigned_tutor_id != user.id:
            raise HTTPException(status_code=403, detail="This session is assigned to another tutor")
        return instance

    # Notes

    def create_note(self, data: SessionNoteCreate, user: Profile) -> SessionNote:
        instance = self._staff_instance(data.instanceId, user)
        note = SessionNote(
            instance_id=instance.id,
            tutor_id=user.id,
            session_title=data.sessionTitle,
            session_summary=data.sessionSummary,
            homework=data.homework or None,
            student_focus=data.studentFocus,
        )
        self.db.add(note)
        self.db.commit()
        self.db.refresh(note)
        logger.info(f"📝 Note {note.id} saved for instance {instance.id}")
        return note

    def notes_for_instances(self, instance_ids: list[str]) -> list[SessionNote]:
        if not instance_ids:
            return []
        return (
            self.db.query(SessionNote)
            .filter(SessionNote.instance_id.in_(instance_ids))
            .order_by(SessionNote.created_at.desc())
            .all()
        )

    def all_notes(self) -> list[SessionNote]:
        return self.db.query(SessionNote).order_by(SessionNote.created_at.desc()).all()

    # Attendance

    def get_attendance(self, instance_id: str, user: Profile) -> list[dict]:
        """The roster with each student's mark; unmarked students read as Present"""
        instance = self._staff_instance(instance_id, user)
        marks = {
            a.student_id: a
            for a in self.db.query(Attendance).filter(Attendance.instance_id == instance.id).all()
        }
        register = []
        for enrollment in self.enrollments.get_roster(self.db, instance.id):
            mark = marks.get(enrollment.student_id)
            register.append(
                {
                    "studentId": enrollment.student_id,
                    "studentName": enrollment.student_name,
                    "status": mark.status if mark else AttendanceStatus.PRESENT.value,
                    "note": mark.note if mark else None,
                    "marked": mark is not None,
                }
            )
        return register

    def save_attendance(self, instance_id: str, data: AttendanceSave, user: Profile) -> int:
        """Upsert one row per rostered student on (instance, student). Returns rows saved."""
        instance = self._staff_instance(instance_id, user)
        roster = self.enrollments.get_roster(self.db, instance.id)
        if not roster:
            return 0

        given = {r.studentId: r for r in data.records}
        unknown = set(given) - {e.student_id for e in roster}
        if unknown:
            raise HTTPException(status_code=400, detail="Attendance includes students not enrolled in this session")

        existing = {
            a.student_id: a
            for a in self.db.query(Attendance).filter(Attendance.instance_id == instance.id).all()
        }
        for enrollment in roster:
            mark = given.get(enrollment.student_id)
            status = mark.status.value if mark else AttendanceStatus.PRESENT.value
            note = (mark.note or None) if mark else None

            row = existing.get(enrollment.student_id)
            if row is None:
                row = Attendance(instance_id=instance.id, student_id=enrollment.student_id)
                self.db.add(row)
            row.status = status
            row.note = note
            row.marked_by = user.id

        self.db.commit()
        logger.info(f"✅ Attendance saved for {len(roster)} student(s) on {instance.id}")
        return len(roster)
