"""Tutor router - admin tutor creation, applications and the directory"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import require_admin
from ...database import get_db
from ...models import Profile, TutorApplication, TutorDirectoryEntry
from ...rate_limiter import create_rate_limiter
from .identity import IdentityAdminClient, get_identity_client
from .schemas import (
    ApplicationCreate,
    ApplicationResponse,
    ApplicationStatusUpdate,
    DirectoryEntryBase,
    DirectoryEntryResponse,
    TutorCreate,
    TutorCreateResponse,
    TutorSummary,
)
from .service import TutorService

router = APIRouter(tags=["Tutors"])

limit_applications = create_rate_limiter(limit=5, window_seconds=3600, key_prefix="tutor_application")


def get_tutor_service(
    db: Session = Depends(get_db),
    identity: IdentityAdminClient = Depends(get_identity_client),
) -> TutorService:
    """Dependency injection for TutorService"""
    return TutorService(db, identity)


def application_response(a: TutorApplication) -> ApplicationResponse:
    return ApplicationResponse(
        id=a.id,
        full_name=a.full_name,
        email=a.email,
        phone=a.phone,
        subjects=a.subjects or [],
        key_stages=a.key_stages or [],
        dbs_status=a.dbs_status,
        experience_notes=a.experience_notes,
        status=a.status,
        source=a.source,
        created_at=a.created_at,
    )


def entry_response(e: TutorDirectoryEntry) -> DirectoryEntryResponse:
    return DirectoryEntryResponse(
        id=e.id,
        first_name=e.first_name,
        last_name=e.last_name,
        email=e.email,
        phone=e.phone,
        address=e.address,
        location=e.location,
        subjects=e.subjects or [],
        years_gcse_experience=e.years_gcse_experience,
        hourly_rate_group_gcse=e.hourly_rate_group_gcse,
        weekly_availability=e.weekly_availability,
        dbs_certificate=e.dbs_certificate,
        dbs_notes=e.dbs_notes,
        timestamp_submitted=e.timestamp_submitted,
        created_at=e.created_at,
    )


@router.post("/admin/tutors", response_model=TutorCreateResponse)
async def create_tutor(
    data: TutorCreate,
    admin: Profile = Depends(require_admin),
    service: TutorService = Depends(get_tutor_service),
):
    """Invite a tutor by email and register their profile and directory entry"""
    profile, directory_created = await service.create_tutor(data, admin)
    return TutorCreateResponse(
        success=True,
        id=profile.id,
        email=data.email.strip().lower(),
        name=profile.name,
        directoryEntryCreated=directory_created,
    )


@router.get("/admin/tutors", response_model=list[TutorSummary])
async def get_tutors(
    admin: Profile = Depends(require_admin),
    service: TutorService = Depends(get_tutor_service),
):
    return [TutorSummary(id=t.id, name=t.name, role=t.role) for t in service.get_tutors()]


# ============================================================================
# APPLICATIONS
# ============================================================================


@router.post("/tutor-applications", response_model=ApplicationResponse, dependencies=[Depends(limit_applications)])
async def submit_application(data: ApplicationCreate, service: TutorService = Depends(get_tutor_service)):
    """Public tutor application form"""
    return application_response(service.submit_application(data))


@router.get("/admin/tutor-applications", response_model=list[ApplicationResponse])
async def get_applications(
    admin: Profile = Depends(require_admin),
    service: TutorService = Depends(get_tutor_service),
):
    return [application_response(a) for a in service.get_applications()]


@router.patch("/admin/tutor-applications/{application_id}", response_model=ApplicationResponse)
async def update_application_status(
    application_id: str,
    data: ApplicationStatusUpdate,
    admin: Profile = Depends(require_admin),
    service: TutorService = Depends(get_tutor_service),
):
    return application_response(service.update_application_status(application_id, data.status))


# ============================================================================
# DIRECTORY
# ============================================================================


@router.get("/admin/tutors-directory", response_model=list[DirectoryEntryResponse])
async def get_directory(
    admin: Profile = Depends(require_admin),
    service: TutorService = Depends(get_tutor_service),
):
    return [entry_response(e) for e in service.get_directory()]


@router.post("/admin/tutors-directory", response_model=DirectoryEntryResponse)
async def create_directory_entry(
    data: DirectoryEntryBase,
    admin: Profile = Depends(require_admin),
    service: TutorService = Depends(get_tutor_service),
):
    return entry_response(service.create_entry(data))


@router.put("/admin/tutors-directory/{entry_id}", response_model=DirectoryEntryResponse)
async def update_directory_entry(
    entry_id: str,
    data: DirectoryEntryBase,
    admin: Profile = Depends(require_admin),
    service: TutorService = Depends(get_tutor_service),
):
    return entry_response(service.update_entry(entry_id, data))


@router.delete("/admin/tutors-directory/{entry_id}")
async def delete_directory_entry(
    entry_id: str,
    confirm: bool = Query(False),
    admin: Profile = Depends(require_admin),
    service: TutorService = Depends(get_tutor_service),
):
    service.delete_entry(entry_id, confirm)
    return {"message": "Directory entry deleted"}
