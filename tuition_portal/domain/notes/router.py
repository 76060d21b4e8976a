"""Notes router - session notes and attendance endpoints"""

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_admin, require_staff
from ...config import REMOTE_CALL_TIMEOUT_SECONDS
from ...database import RLS_CLAIMS_KEY, SessionLocal, get_db
from ...models import Profile, SessionNote
from ..blocks.errors import TIMEOUT_MESSAGE
from .schemas import (
    AttendanceRecord,
    AttendanceSave,
    AttendanceSaveResponse,
    SessionNoteCreate,
    SessionNoteResponse,
)
from .service import NoteService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Notes"])


def get_note_service(db: Session = Depends(get_db)) -> NoteService:
    """Dependency injection for NoteService"""
    return NoteService(db)


def note_response(note: SessionNote) -> SessionNoteResponse:
    return SessionNoteResponse(
        id=note.id,
        instanceId=note.instance_id,
        tutorId=note.tutor_id,
        sessionTitle=note.session_title,
        sessionSummary=note.session_summary,
        homework=note.homework,
        studentFocus=note.student_focus,
        createdAt=note.created_at,
    )


def write_note(claims: Optional[dict], user_id: str, data: SessionNoteCreate) -> SessionNoteResponse:
    """Write a note on a session of its own.

    Runs on a worker thread. The request may time out and close its session
    while this is still committing, so nothing here touches the request's.
    """
    db = SessionLocal()
    if claims:
        db.info[RLS_CLAIMS_KEY] = claims
    try:
        user = db.get(Profile, user_id)
        if user is None:
            raise HTTPException(status_code=403, detail="User profile not found")
        return note_response(NoteService(db).create_note(data, user))
    finally:
        db.close()


@router.post("/notes", response_model=SessionNoteResponse)
async def create_note(
    data: SessionNoteCreate,
    current_user: Profile = Depends(require_staff),
    db: Session = Depends(get_db),
):
    """Save a session note; gives up waiting after REMOTE_CALL_TIMEOUT_SECONDS (the write itself carries on)"""
    claims = db.info.get(RLS_CLAIMS_KEY)
    try:
        return await asyncio.wait_for(
            asyncio.to_thread(write_note, dict(claims) if claims else None, current_user.id, data),
            timeout=REMOTE_CALL_TIMEOUT_SECONDS,
        )
    except asyncio.TimeoutError:
        logger.warning(f"⏰ Note write for instance {data.instanceId} exceeded {REMOTE_CALL_TIMEOUT_SECONDS}s")
        raise HTTPException(status_code=504, detail=TIMEOUT_MESSAGE)


@router.get("/notes", response_model=list[SessionNoteResponse])
async def get_notes(
    instance_ids: list[str] = Query(default=[]),
    current_user: Profile = Depends(get_current_user),
    service: NoteService = Depends(get_note_service),
):
    """Notes for the given instances, newest first"""
    return [note_response(n) for n in service.notes_for_instances(instance_ids)]


@router.get("/admin/notes", response_model=list[SessionNoteResponse])
async def get_all_notes(
    admin: Profile = Depends(require_admin),
    service: NoteService = Depends(get_note_service),
):
    return [note_response(n) for n in service.all_notes()]


@router.get("/instances/{instance_id}/attendance", response_model=list[AttendanceRecord])
async def get_attendance(
    instance_id: str,
    current_user: Profile = Depends(require_staff),
    service: NoteService = Depends(get_note_service),
):
    return service.get_attendance(instance_id, current_user)


@router.put("/instances/{instance_id}/attendance", response_model=AttendanceSaveResponse)
async def save_attendance(
    instance_id: str,
    data: AttendanceSave,
    current_user: Profile = Depends(require_staff),
    service: NoteService = Depends(get_note_service),
):
    saved = service.save_attendance(instance_id, data, current_user)
    if saved == 0:
        return AttendanceSaveResponse(saved=0, message="No students enrolled; nothing to save.")
    return AttendanceSaveResponse(saved=saved, message="Attendance saved.")
