"""Platform router - the caller's profile, admin profiles, announcements, settings, onboarding"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_admin
from ...database import get_db
from ...enums import UserRole
from ...models import Announcement, Profile, StudentProfile
from .schemas import (
    AnnouncementCreate,
    AnnouncementResponse,
    ProfileResponse,
    ProfileUpdate,
    SettingsResponse,
    SettingsUpdate,
    StudentProfileResponse,
    StudentProfileUpsert,
)
from .service import PlatformService

router = APIRouter(tags=["Platform"])


def get_platform_service(db: Session = Depends(get_db)) -> PlatformService:
    """Dependency injection for PlatformService"""
    return PlatformService(db)


def profile_response(p: Profile) -> ProfileResponse:
    return ProfileResponse(id=p.id, name=p.name, role=p.role, linkedUserId=p.linked_user_id, createdAt=p.created_at)


def announcement_response(a: Announcement) -> AnnouncementResponse:
    return AnnouncementResponse(id=a.id, title=a.title, content=a.content, date=a.date, author=a.author)


def student_profile_response(s: StudentProfile) -> StudentProfileResponse:
    return StudentProfileResponse(
        id=s.id,
        student_id=s.student_id,
        school=s.school,
        year_group=s.year_group,
        exam_board=s.exam_board,
        strengths=s.strengths,
        weaknesses=s.weaknesses,
        target_grades=s.target_grades or {},
        created_at=s.created_at,
    )


@router.get("/me", response_model=ProfileResponse)
async def get_me(current_user: Profile = Depends(get_current_user)):
    return profile_response(current_user)


# ============================================================================
# PROFILES (admin)
# ============================================================================


@router.get("/admin/profiles", response_model=list[ProfileResponse])
async def get_profiles(
    role: Optional[UserRole] = Query(None),
    admin: Profile = Depends(require_admin),
    service: PlatformService = Depends(get_platform_service),
):
    return [profile_response(p) for p in service.get_profiles(role)]


@router.patch("/admin/profiles/{profile_id}", response_model=ProfileResponse)
async def update_profile(
    profile_id: str,
    data: ProfileUpdate,
    admin: Profile = Depends(require_admin),
    service: PlatformService = Depends(get_platform_service),
):
    return profile_response(service.update_profile(profile_id, data))


# ============================================================================
# ANNOUNCEMENTS
# ============================================================================


@router.get("/announcements", response_model=list[AnnouncementResponse])
async def get_announcements(
    current_user: Profile = Depends(get_current_user),
    service: PlatformService = Depends(get_platform_service),
):
    return [announcement_response(a) for a in service.get_announcements()]


@router.post("/admin/announcements", response_model=AnnouncementResponse)
async def create_announcement(
    data: AnnouncementCreate,
    admin: Profile = Depends(require_admin),
    service: PlatformService = Depends(get_platform_service),
):
    return announcement_response(service.create_announcement(data, admin))


@router.delete("/admin/announcements/{announcement_id}")
async def delete_announcement(
    announcement_id: str,
    admin: Profile = Depends(require_admin),
    service: PlatformService = Depends(get_platform_service),
):
    service.delete_announcement(announcement_id)
    return {"message": "Announcement deleted"}


# ============================================================================
# SETTINGS
# ============================================================================


@router.get("/settings", response_model=SettingsResponse)
async def get_settings(service: PlatformService = Depends(get_platform_service)):
    """Public branding settings"""
    settings = service.get_settings()
    if settings is None:
        return SettingsResponse()
    return SettingsResponse(
        supportEmail=settings.support_email,
        logoUrl=settings.logo_url,
        companyName=settings.company_name,
    )


@router.put("/admin/settings", response_model=SettingsResponse)
async def update_settings(
    data: SettingsUpdate,
    admin: Profile = Depends(require_admin),
    service: PlatformService = Depends(get_platform_service),
):
    settings = service.update_settings(data)
    return SettingsResponse(
        supportEmail=settings.support_email,
        logoUrl=settings.logo_url,
        companyName=settings.company_name,
    )


# ============================================================================
# ONBOARDING
# ============================================================================


@router.get("/student-profile", response_model=StudentProfileResponse)
async def get_student_profile(
    current_user: Profile = Depends(get_current_user),
    service: PlatformService = Depends(get_platform_service),
):
    record = service.get_student_profile(current_user)
    if record is None:
        raise HTTPException(status_code=404, detail="Onboarding not completed")
    return student_profile_response(record)


@router.put("/student-profile", response_model=StudentProfileResponse)
async def upsert_student_profile(
    data: StudentProfileUpsert,
    current_user: Profile = Depends(get_current_user),
    service: PlatformService = Depends(get_platform_service),
):
    return student_profile_response(service.upsert_student_profile(current_user, data))
