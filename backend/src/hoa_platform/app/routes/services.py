"""Service catalog routes."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from hoa_platform.app.routes.auth import get_current_principal_dep
from hoa_platform.app.routes.params import get_lang, localized
from hoa_platform.domain.principal import Principal
from hoa_platform.domain.schemas import ServiceCreate, ServiceUpdate
from hoa_platform.infra.database import get_db
from hoa_platform.infra.translation_client import TranslationClient, get_translation_client
from hoa_platform.services.catalog_service import CatalogService
from hoa_platform.services.serializers import serialize_service

router = APIRouter(prefix="/api/services", tags=["services"])


def get_catalog_service(
    db: AsyncSession = Depends(get_db),
    translator: TranslationClient = Depends(get_translation_client),
) -> CatalogService:
    return CatalogService(db, translator)


@router.post("/seed")
async def seed_services(service: CatalogService = Depends(get_catalog_service)):
    return await service.seed_services()


@router.get("")
async def list_services(
    lang: str = Depends(get_lang),
    service: CatalogService = Depends(get_catalog_service),
):
    services = await service.list_services()
    return localized([serialize_service(s) for s in services], lang)


@router.post("", status_code=201)
async def create_service(
    data: ServiceCreate,
    lang: str = Depends(get_lang),
    principal: Principal = Depends(get_current_principal_dep),
    service: CatalogService = Depends(get_catalog_service),
):
    return localized(serialize_service(await service.create(data)), lang)


@router.get("/{service_id}")
async def get_service(
    service_id: str,
    lang: str = Depends(get_lang),
    principal: Principal = Depends(get_current_principal_dep),
    service: CatalogService = Depends(get_catalog_service),
):
    return localized(serialize_service(await service.get(service_id)), lang)


@router.patch("/{service_id}")
async def update_service(
    service_id: str,
    data: ServiceUpdate,
    lang: str = Depends(get_lang),
    principal: Principal = Depends(get_current_principal_dep),
    service: CatalogService = Depends(get_catalog_service),
):
    return localized(serialize_service(await service.update(service_id, data)), lang)


@router.delete("/{service_id}")
async def remove_service(
    service_id: str,
    principal: Principal = Depends(get_current_principal_dep),
    service: CatalogService = Depends(get_catalog_service),
):
    await service.remove(service_id)
    return {"message": "Service deleted successfully"}
