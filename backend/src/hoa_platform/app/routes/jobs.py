"""Job routes: creation, leader review, edits and the job boards."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from hoa_platform.app.routes.auth import get_current_principal_dep, require_role
from hoa_platform.app.routes.params import get_lang, localized
from hoa_platform.domain.enums import Role
from hoa_platform.domain.principal import Principal
from hoa_platform.domain.schemas import (
    JobCreate,
    JobRejectRequest,
    JobStatusUpdate,
    JobUpdate,
)
from hoa_platform.infra.database import get_db
from hoa_platform.infra.translation_client import TranslationClient, get_translation_client
from hoa_platform.services.job_service import JobService

router = APIRouter(prefix="/api/jobs", tags=["jobs"])


def get_job_service(
    db: AsyncSession = Depends(get_db),
    translator: TranslationClient = Depends(get_translation_client),
) -> JobService:
    return JobService(db, translator)


@router.post("", status_code=201)
async def create_job(
    data: JobCreate,
    lang: str = Depends(get_lang),
    principal: Principal = Depends(require_role(Role.HOME_OWNER, Role.LEADER)),
    service: JobService = Depends(get_job_service),
):
    return localized(await service.create(data, principal), lang)


@router.get("")
async def list_jobs(
    lang: str = Depends(get_lang),
    principal: Principal = Depends(get_current_principal_dep),
    service: JobService = Depends(get_job_service),
):
    return localized(await service.find_all(), lang)


@router.get("/my-jobs")
async def my_jobs(
    lang: str = Depends(get_lang),
    principal: Principal = Depends(require_role(Role.HOME_OWNER, Role.LEADER)),
    service: JobService = Depends(get_job_service),
):
    return localized(await service.find_by_creator(principal), lang)


@router.get("/pending-community-jobs")
async def pending_community_jobs(
    lang: str = Depends(get_lang),
    principal: Principal = Depends(require_role(Role.LEADER)),
    service: JobService = Depends(get_job_service),
):
    return localized(await service.find_pending_community_jobs(principal), lang)


@router.get("/leader-jobs")
async def leader_jobs(
    lang: str = Depends(get_lang),
    principal: Principal = Depends(require_role(Role.LEADER)),
    service: JobService = Depends(get_job_service),
):
    return localized(await service.find_by_leader(principal), lang)


@router.get("/apartment/{apartment_id}")
async def jobs_by_apartment(
    apartment_id: str,
    lang: str = Depends(get_lang),
    principal: Principal = Depends(get_current_principal_dep),
    service: JobService = Depends(get_job_service),
):
    return localized(await service.find_by_apartment(apartment_id), lang)


@router.get("/{job_id}")
async def get_job(
    job_id: str,
    lang: str = Depends(get_lang),
    principal: Principal = Depends(get_current_principal_dep),
    service: JobService = Depends(get_job_service),
):
    return localized(await service.find_one(job_id), lang)


@router.patch("/{job_id}/approve")
async def approve_job(
    job_id: str,
    lang: str = Depends(get_lang),
    principal: Principal = Depends(require_role(Role.LEADER)),
    service: JobService = Depends(get_job_service),
):
    return localized(await service.approve_community_job(job_id, principal), lang)


@router.patch("/{job_id}/reject")
async def reject_job(
    job_id: str,
    data: JobRejectRequest | None = None,
    lang: str = Depends(get_lang),
    principal: Principal = Depends(require_role(Role.LEADER)),
    service: JobService = Depends(get_job_service),
):
    reason = data.reason if data is not None else None
    return localized(await service.reject_community_job(job_id, principal, reason), lang)


@router.patch("/{job_id}/status")
async def update_job_status(
    job_id: str,
    data: JobStatusUpdate,
    lang: str = Depends(get_lang),
    principal: Principal = Depends(require_role(Role.LEADER)),
    service: JobService = Depends(get_job_service),
):
    return localized(await service.update_status(job_id, data.status, principal), lang)


@router.patch("/{job_id}")
async def update_job(
    job_id: str,
    data: JobUpdate,
    lang: str = Depends(get_lang),
    principal: Principal = Depends(require_role(Role.LEADER)),
    service: JobService = Depends(get_job_service),
):
    return localized(await service.update(job_id, data, principal), lang)


@router.delete("/{job_id}")
async def remove_job(
    job_id: str,
    principal: Principal = Depends(require_role(Role.LEADER)),
    service: JobService = Depends(get_job_service),
):
    return await service.remove(job_id, principal)
