"""Bid routes: submission (multipart), leader decisions, listings."""

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from hoa_platform.app.config import Settings, get_settings
from hoa_platform.app.routes.auth import get_current_principal_dep, require_role
from hoa_platform.app.routes.params import get_lang, localized, read_optional_upload
from hoa_platform.domain.enums import Role
from hoa_platform.domain.principal import Principal
from hoa_platform.domain.schemas import BidCreate, BidStatusUpdate
from hoa_platform.infra.database import get_db
from hoa_platform.infra.object_store import ObjectStore, get_object_store
from hoa_platform.infra.translation_client import TranslationClient, get_translation_client
from hoa_platform.services.bid_service import BidService

router = APIRouter(prefix="/api/bids", tags=["bids"])


def get_bid_service(
    db: AsyncSession = Depends(get_db),
    translator: TranslationClient = Depends(get_translation_client),
    object_store: ObjectStore = Depends(get_object_store),
    settings: Settings = Depends(get_settings),
) -> BidService:
    return BidService(db, translator, object_store, settings)


@router.post("", status_code=201)
async def create_bid(
    job_id: str = Form(...),
    total_price: str = Form(...),
    cover_letter: str = Form(""),
    document: UploadFile | None = File(None),
    lang: str = Depends(get_lang),
    principal: Principal = Depends(require_role(Role.SERVICE_PROVIDER)),
    service: BidService = Depends(get_bid_service),
    settings: Settings = Depends(get_settings),
):
    """Submit a bid (multipart: fields plus an optional supporting document)."""
    content = await read_optional_upload(document, settings)
    data = BidCreate(job_id=job_id, total_price=total_price, cover_letter=cover_letter)
    result = await service.create(
        data,
        principal,
        content,
        document.filename if content is not None else None,
        document.content_type if content is not None else None,
    )
    return localized(result, lang)


@router.get("")
async def list_bids(
    lang: str = Depends(get_lang),
    principal: Principal = Depends(get_current_principal_dep),
    service: BidService = Depends(get_bid_service),
):
    return localized(await service.find_all(), lang)


@router.get("/my-bids")
async def my_bids(
    lang: str = Depends(get_lang),
    principal: Principal = Depends(require_role(Role.SERVICE_PROVIDER)),
    service: BidService = Depends(get_bid_service),
):
    return localized(await service.find_by_service_provider(principal), lang)


@router.get("/job/{job_id}")
async def bids_for_job(
    job_id: str,
    lang: str = Depends(get_lang),
    principal: Principal = Depends(get_current_principal_dep),
    service: BidService = Depends(get_bid_service),
):
    return localized(await service.find_by_job(job_id), lang)


@router.get("/{bid_id}")
async def get_bid(
    bid_id: str,
    lang: str = Depends(get_lang),
    principal: Principal = Depends(get_current_principal_dep),
    service: BidService = Depends(get_bid_service),
):
    return localized(await service.find_one(bid_id), lang)


@router.patch("/{bid_id}/status")
async def update_bid_status(
    bid_id: str,
    data: BidStatusUpdate,
    lang: str = Depends(get_lang),
    principal: Principal = Depends(require_role(Role.LEADER)),
    service: BidService = Depends(get_bid_service),
):
    return localized(await service.update_status(bid_id, data.status, principal), lang)


@router.delete("/{bid_id}")
async def remove_bid(
    bid_id: str,
    principal: Principal = Depends(require_role(Role.SERVICE_PROVIDER)),
    service: BidService = Depends(get_bid_service),
):
    return await service.remove(bid_id, principal)
