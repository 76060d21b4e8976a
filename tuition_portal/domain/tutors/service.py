"""Tutor service - admin tutor creation, applications and the directory"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...enums import ApplicationSource, ApplicationStatus, UserRole
from ...models import Profile, TutorApplication, TutorDirectoryEntry
from ...security_middleware import clear_rls_context
from ...shared.validators import validate_email
from .identity import IdentityAdminClient, IdentityError
from .schemas import ApplicationCreate, DirectoryEntryBase, TutorCreate

logger = logging.getLogger(__name__)


def split_full_name(full_name: str) -> tuple[str, str]:
    """First word is the first name; the rest (or "Tutor") is the last name"""
    parts = full_name.strip().split()
    first = parts[0]
    last = " ".join(parts[1:]) if len(parts) > 1 else "Tutor"
    return first, last


class TutorService:
    """Service layer for tutors"""

    def __init__(self, db: Session, identity: Optional[IdentityAdminClient] = None):
        self.db = db
        self.identity = identity

    def get_tutors(self) -> list[Profile]:
        return (
            self.db.query(Profile)
            .filter(Profile.role == UserRole.TUTOR.value)
            .order_by(Profile.name)
            .all()
        )

    async def create_tutor(self, data: TutorCreate, admin: Profile) -> tuple[Profile, bool]:
        """
        Invite a tutor, create their profile and list them in the directory.

        If the profile insert fails the invited auth user is deleted again. A
        directory failure is only logged. Returns (profile, directory_created).
        """
        full_name = (data.full_name or "").strip()
        if not full_name or not (data.email or "").strip():
            raise HTTPException(status_code=400, detail="Full name and email are required")
        try:
            email = validate_email(data.email)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e

        logger.info(f"📥 Admin {admin.id} inviting tutor {email}")
        try:
            invited = await self.identity.invite_user(email, {"full_name": full_name, "role": UserRole.TUTOR.value})
        except IdentityError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e

        user_id = invited["id"]
        clear_rls_context(self.db)
        try:
            profile = Profile(id=user_id, name=full_name, role=UserRole.TUTOR.value, tenant_id=admin.tenant_id)
            self.db.add(profile)
            self.db.commit()
            self.db.refresh(profile)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Profile insert failed for {user_id}, removing invited user: {e}")
            try:
                await self.identity.delete_user(user_id)
            except IdentityError as cleanup_error:
                logger.error(f"❌ Could not remove invited user {user_id}: {cleanup_error}")
            raise HTTPException(status_code=400, detail="Could not create tutor profile") from e

        first_name, last_name = split_full_name(full_name)
        directory_created = True
        try:
            self.db.add(
                TutorDirectoryEntry(
                    first_name=first_name,
                    last_name=last_name,
                    email=email,
                    phone=data.phone or None,
                    subjects=data.subjects or [],
                    timestamp_submitted=datetime.utcnow(),
                )
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            directory_created = False
            logger.error(f"❌ Directory insertion failed for tutor {user_id}: {e}")

        logger.info(f"✅ Tutor {user_id} created")
        return profile, directory_created

    # Applications

    def submit_application(self, data: ApplicationCreate) -> TutorApplication:
        application = TutorApplication(
            full_name=data.full_name.strip(),
            email=data.email,
            phone=data.phone,
            subjects=data.subjects,
            key_stages=data.key_stages,
            dbs_status=data.dbs_status,
            experience_notes=data.experience_notes,
            status=ApplicationStatus.NEW.value,
            source=ApplicationSource.PLATFORM.value,
        )
        self.db.add(application)
        self.db.commit()
        self.db.refresh(application)
        logger.info(f"📨 Tutor application received: {application.id}")
        return application

    def get_applications(self) -> list[TutorApplication]:
        return self.db.query(TutorApplication).order_by(TutorApplication.created_at.desc()).all()

    def update_application_status(self, application_id: str, status: ApplicationStatus) -> TutorApplication:
        application = self.db.query(TutorApplication).filter(TutorApplication.id == application_id).first()
        if not application:
            raise HTTPException(status_code=404, detail="Application not found")
        application.status = status.value
        self.db.commit()
        self.db.refresh(application)
        logger.info(f"📝 Application {application_id} -> {status.value}")
        return application

    # Directory

    def get_directory(self) -> list[TutorDirectoryEntry]:
        return self.db.query(TutorDirectoryEntry).order_by(TutorDirectoryEntry.last_name).all()

    def _get_entry(self, entry_id: str) -> TutorDirectoryEntry:
        entry = self.db.query(TutorDirectoryEntry).filter(TutorDirectoryEntry.id == entry_id).first()
        if not entry:
            raise HTTPException(status_code=404, detail="Directory entry not found")
        return entry

    def create_entry(self, data: DirectoryEntryBase) -> TutorDirectoryEntry:
        entry = TutorDirectoryEntry(timestamp_submitted=datetime.utcnow(), **data.model_dump())
        self.db.add(entry)
        self.db.commit()
        self.db.refresh(entry)
        return entry

    def update_entry(self, entry_id: str, data: DirectoryEntryBase) -> TutorDirectoryEntry:
        entry = self._get_entry(entry_id)
        for key, value in data.model_dump().items():
            setattr(entry, key, value)
        self.db.commit()
        self.db.refresh(entry)
        return entry

    def delete_entry(self, entry_id: str, confirm: bool) -> None:
        if not confirm:
            raise HTTPException(status_code=400, detail="Deleting a directory entry requires confirm=true")
        entry = self._get_entry(entry_id)
        self.db.delete(entry)
        self.db.commit()
