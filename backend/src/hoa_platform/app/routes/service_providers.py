"""Service provider onboarding routes (public steps, authenticated profile)."""

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from hoa_platform.app.config import Settings, get_settings
from hoa_platform.app.routes.auth import require_role
from hoa_platform.app.routes.params import (
    get_lang,
    localized,
    read_optional_upload,
    read_upload,
)
from hoa_platform.domain.enums import Role
from hoa_platform.domain.principal import Principal
from hoa_platform.domain.schemas import (
    ProviderBankDetails,
    ProviderLocationsRequest,
    ProviderLoginRequest,
    ProviderRatesRequest,
    ProviderServicesRequest,
    ProviderSignupRequest,
)
from hoa_platform.infra.database import get_db
from hoa_platform.infra.object_store import ObjectStore, get_object_store
from hoa_platform.infra.translation_client import TranslationClient, get_translation_client
from hoa_platform.services.service_provider_service import ProviderOnboardingService

router = APIRouter(prefix="/api/service-providers", tags=["service-providers"])


def get_provider_service(
    db: AsyncSession = Depends(get_db),
    translator: TranslationClient = Depends(get_translation_client),
    object_store: ObjectStore = Depends(get_object_store),
    settings: Settings = Depends(get_settings),
) -> ProviderOnboardingService:
    return ProviderOnboardingService(db, translator, object_store, settings)


@router.post("/signup")
async def signup(
    data: ProviderSignupRequest,
    lang: str = Depends(get_lang),
    service: ProviderOnboardingService = Depends(get_provider_service),
):
    return localized(await service.signup(data), lang)


@router.post("/{provider_id}/step1")
async def upload_government_document(
    provider_id: str,
    document: UploadFile = File(...),
    service: ProviderOnboardingService = Depends(get_provider_service),
    settings: Settings = Depends(get_settings),
):
    content = await read_upload(document, settings)
    return await service.step1_document(
        provider_id, content, document.filename, document.content_type
    )


@router.post("/{provider_id}/step2")
async def select_services(
    provider_id: str,
    data: ProviderServicesRequest,
    service: ProviderOnboardingService = Depends(get_provider_service),
):
    return await service.step2_services(provider_id, data)


@router.post("/{provider_id}/step3")
async def set_service_rates(
    provider_id: str,
    data: ProviderRatesRequest,
    service: ProviderOnboardingService = Depends(get_provider_service),
):
    return await service.step3_rates(provider_id, data)


@router.post("/{provider_id}/step4")
async def add_locations(
    provider_id: str,
    data: ProviderLocationsRequest,
    service: ProviderOnboardingService = Depends(get_provider_service),
):
    return await service.step4_locations(provider_id, data)


@router.post("/{provider_id}/step5")
async def add_bio(
    provider_id: str,
    bio: str = Form(..., min_length=1),
    profile_picture: UploadFile | None = File(None),
    service: ProviderOnboardingService = Depends(get_provider_service),
    settings: Settings = Depends(get_settings),
):
    content = await read_optional_upload(profile_picture, settings)
    return await service.step5_profile(
        provider_id,
        bio,
        content,
        profile_picture.filename if content is not None else None,
        profile_picture.content_type if content is not None else None,
    )


@router.post("/{provider_id}/step6")
async def add_bank_details(
    provider_id: str,
    first_name: str = Form(..., min_length=1),
    last_name: str = Form(..., min_length=1),
    bank_account_number: str = Form(..., min_length=1),
    bank_document: UploadFile | None = File(None),
    service: ProviderOnboardingService = Depends(get_provider_service),
    settings: Settings = Depends(get_settings),
):
    content = await read_optional_upload(bank_document, settings)
    details = ProviderBankDetails(
        first_name=first_name, last_name=last_name, bank_account_number=bank_account_number
    )
    return await service.step6_bank(
        provider_id,
        details,
        content,
        bank_document.filename if content is not None else None,
        bank_document.content_type if content is not None else None,
    )


@router.post("/login")
async def login(
    data: ProviderLoginRequest,
    lang: str = Depends(get_lang),
    service: ProviderOnboardingService = Depends(get_provider_service),
):
    return localized(await service.login(data), lang)


@router.get("/profile")
async def profile(
    lang: str = Depends(get_lang),
    principal: Principal = Depends(require_role(Role.SERVICE_PROVIDER)),
    service: ProviderOnboardingService = Depends(get_provider_service),
):
    return localized(await service.get_profile(principal.id), lang)


@router.get("/{provider_id}/step-status")
async def step_status(
    provider_id: str,
    service: ProviderOnboardingService = Depends(get_provider_service),
):
    return await service.get_step_status(provider_id)
