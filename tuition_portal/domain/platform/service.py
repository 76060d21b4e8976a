"""Platform service - profiles, announcements, settings and onboarding profiles"""

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...auth import acting_student_id, role_of
from ...enums import UserRole
from ...models import Announcement, PlatformSettings, Profile, StudentProfile
from .schemas import AnnouncementCreate, ProfileUpdate, SettingsUpdate, StudentProfileUpsert

logger = logging.getLogger(__name__)

SETTINGS_ID = 1


class PlatformService:
    """Service layer for platform-wide records"""

    def __init__(self, db: Session):
        self.db = db

    # Profiles

    def get_profiles(self, role: Optional[UserRole] = None) -> list[Profile]:
        query = self.db.query(Profile)
        if role:
            query = query.filter(Profile.role == role.value)
        return query.order_by(Profile.name).all()

    def update_profile(self, profile_id: str, data: ProfileUpdate) -> Profile:
        """Name and linked student only; roles are never changed here"""
        profile = self.db.query(Profile).filter(Profile.id == profile_id).first()
        if not profile:
            raise HTTPException(status_code=404, detail="Profile not found")

        updates = data.model_dump(exclude_unset=True)
        if "name" in updates:
            profile.name = (updates["name"] or "").strip() or None
        if "linkedUserId" in updates:
            linked_id = updates["linkedUserId"] or None
            if linked_id:
                if linked_id == profile.id:
                    raise HTTPException(status_code=400, detail="A profile cannot be linked to itself")
                linked = self.db.query(Profile).filter(Profile.id == linked_id).first()
                if not linked or linked.role != UserRole.STUDENT.value:
                    raise HTTPException(status_code=400, detail="Linked user must be a student profile")
            profile.linked_user_id = linked_id

        self.db.commit()
        self.db.refresh(profile)
        logger.info(f"📝 Profile {profile_id} updated: {sorted(updates)}")
        return profile

    # Announcements

    def get_announcements(self) -> list[Announcement]:
        return self.db.query(Announcement).order_by(Announcement.date.desc()).all()

    def create_announcement(self, data: AnnouncementCreate, admin: Profile) -> Announcement:
        announcement = Announcement(title=data.title, content=data.content, author=admin.name or "Admin")
        self.db.add(announcement)
        self.db.commit()
        self.db.refresh(announcement)
        return announcement

    def delete_announcement(self, announcement_id: str) -> None:
        announcement = self.db.query(Announcement).filter(Announcement.id == announcement_id).first()
        if not announcement:
            raise HTTPException(status_code=404, detail="Announcement not found")
        self.db.delete(announcement)
        self.db.commit()

    # Settings

    def get_settings(self) -> Optional[PlatformSettings]:
        return self.db.query(PlatformSettings).filter(PlatformSettings.id == SETTINGS_ID).first()

    def update_settings(self, data: SettingsUpdate) -> PlatformSettings:
        settings = self.get_settings()
        if settings is None:
            settings = PlatformSettings(id=SETTINGS_ID)
            self.db.add(settings)

        updates = data.model_dump(exclude_unset=True)
        if "supportEmail" in updates:
            settings.support_email = updates["supportEmail"]
        if "logoUrl" in updates:
            settings.logo_url = updates["logoUrl"]
        if "companyName" in updates:
            settings.company_name = updates["companyName"]

        self.db.commit()
        self.db.refresh(settings)
        logger.info("⚙️ Platform settings updated")
        return settings

    # Student onboarding profile

    def _student_id(self, user: Profile) -> str:
        if role_of(user) not in (UserRole.STUDENT, UserRole.PARENT):
            raise HTTPException(status_code=403, detail="Only students and parents have an onboarding profile")
        return acting_student_id(user)

    def get_student_profile(self, user: Profile) -> Optional[StudentProfile]:
        student_id = self._student_id(user)
        return self.db.query(StudentProfile).filter(StudentProfile.student_id == student_id).first()

    def upsert_student_profile(self, user: Profile, data: StudentProfileUpsert) -> StudentProfile:
        student_id = self._student_id(user)
        record = self.db.query(StudentProfile).filter(StudentProfile.student_id == student_id).first()
        if record is None:
            record = StudentProfile(student_id=student_id)
            self.db.add(record)
        for key, value in data.model_dump().items():
            setattr(record, key, value)
        self.db.commit()
        self.db.refresh(record)
        logger.info(f"✅ Onboarding profile saved for student {student_id}")
        return record
