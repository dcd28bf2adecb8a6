"""Service provider onboarding: signup, six profile steps, login.

A provider becomes bid-eligible (is_active) only when step 6 completes.
The signup step counter never moves backwards, so steps can be redone.
"""

import asyncio
import logging
from datetime import datetime, timezone

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from hoa_platform.app.config import Settings, get_settings
from hoa_platform.domain.enums import PrincipalType, Role
from hoa_platform.domain.models import (
    ServiceProvider,
    ServiceProviderLocation,
    ServiceProviderService,
    ServiceRate,
)
from hoa_platform.domain.schemas import (
    ProviderBankDetails,
    ProviderLocationsRequest,
    ProviderLoginRequest,
    ProviderRatesRequest,
    ProviderServicesRequest,
    ProviderSignupRequest,
)
from hoa_platform.infra.database import atomic
from hoa_platform.infra.object_store import ObjectStore, generate_key
from hoa_platform.infra.translation_client import TranslationClient
from hoa_platform.services.auth_service import (
    create_access_token,
    hash_password,
    verify_password,
)
from hoa_platform.services.catalog_service import CatalogService
from hoa_platform.services.errors import (
    ConflictError,
    InvalidInputError,
    NotFoundError,
    UnauthorizedError,
)
from hoa_platform.services.serializers import serialize_service_provider

logger = logging.getLogger(__name__)

FINAL_STEP = 7

STEP_NAMES = {
    1: "Government Document",
    2: "Services Selection",
    3: "Service Rates",
    4: "Locations",
    5: "Bio & Profile Picture",
    6: "Bank Details",
}


class ProviderOnboardingService:
    """Onboarding flow and profile reads for service providers."""

    def __init__(
        self,
        db: AsyncSession,
        translator: TranslationClient | None = None,
        object_store: ObjectStore | None = None,
        settings: Settings | None = None,
    ):
        self.db = db
        self.translator = translator
        self.object_store = object_store
        self.settings = settings or get_settings()

    async def signup(self, data: ProviderSignupRequest) -> dict:
        existing = await self.db.execute(
            select(ServiceProvider.id).where(ServiceProvider.email == data.email)
        )
        if existing.scalar_one_or_none() is not None:
            raise ConflictError("Service provider with this email already exists")

        name = await self.translator.to_multi_language(data.name)
        provider = ServiceProvider(
            name=name,
            email=data.email,
            phone_number=data.phone_number,
            password_hash=hash_password(data.password),
            signup_step=1,
        )
        try:
            async with atomic(self.db):
                self.db.add(provider)
        except IntegrityError as exc:
            raise ConflictError("Service provider with this email already exists") from exc

        logger.info("Service provider %s registered (%s)", provider.id, data.email)
        return {
            "message": "Service provider registered successfully. "
            "Please proceed to step 1 to upload government document.",
            "service_provider": serialize_service_provider(provider),
            "next_step": "step1",
        }

    async def step1_document(
        self,
        provider_id: str,
        document: bytes,
        filename: str | None = None,
        content_type: str | None = None,
    ) -> dict:
        provider = await self._get(provider_id)
        url = await self.object_store.put(
            document,
            generate_key("service-provider-documents", provider.id, filename),
            content_type,
        )
        async with atomic(self.db):
            provider.government_document_url = url
            self._advance(provider, 2)
        return {
            "message": "Government document uploaded successfully. "
            "Please proceed to step 2 to select services.",
            "next_step": "step2",
        }

    async def step2_services(self, provider_id: str, data: ProviderServicesRequest) -> dict:
        provider = await self._get(provider_id)
        service_ids = list(dict.fromkeys(data.service_ids))
        if not await CatalogService(self.db).services_exist(service_ids):
            raise InvalidInputError("Some services do not exist")

        async with atomic(self.db):
            await self.db.execute(
                delete(ServiceProviderService).where(
                    ServiceProviderService.service_provider_id == provider.id
                )
            )
            self.db.add_all(
                ServiceProviderService(service_provider_id=provider.id, service_id=service_id)
                for service_id in service_ids
            )
            self._advance(provider, 3)
        return {
            "message": "Services selected successfully. "
            "Please proceed to step 3 to set service rates.",
            "next_step": "step3",
        }

    async def step3_rates(self, provider_id: str, data: ProviderRatesRequest) -> dict:
        provider = await self._get(provider_id, selectinload(ServiceProvider.services))
        selected = {link.service_id for link in provider.services}
        rates = {rate.service_id: rate for rate in data.service_rates}
        if selected - set(rates):
            raise InvalidInputError("Rates are required for all selected services")

        async with atomic(self.db):
            await self.db.execute(
                delete(ServiceRate).where(ServiceRate.service_provider_id == provider.id)
            )
            self.db.add_all(
                ServiceRate(
                    service_provider_id=provider.id,
                    service_id=rate.service_id,
                    rate=rate.rate,
                    description=rate.description,
                )
                for rate in rates.values()
            )
            self._advance(provider, 4)
        return {
            "message": "Service rates set successfully. "
            "Please proceed to step 4 to add locations.",
            "next_step": "step4",
        }

    async def step4_locations(self, provider_id: str, data: ProviderLocationsRequest) -> dict:
        provider = await self._get(provider_id)
        async with atomic(self.db):
            await self.db.execute(
                delete(ServiceProviderLocation).where(
                    ServiceProviderLocation.service_provider_id == provider.id
                )
            )
            self.db.add_all(
                ServiceProviderLocation(
                    service_provider_id=provider.id,
                    city=location.city,
                    state=location.state,
                    country=location.country or self.settings.default_country,
                )
                for location in data.locations
            )
            self._advance(provider, 5)
        return {
            "message": "Locations added successfully. "
            "Please proceed to step 5 to add bio and profile picture.",
            "next_step": "step5",
        }

    async def step5_profile(
        self,
        provider_id: str,
        bio: str,
        picture: bytes | None = None,
        filename: str | None = None,
        content_type: str | None = None,
    ) -> dict:
        provider = await self._get(provider_id)
        picture_url = provider.profile_picture_url
        if picture is not None:
            picture_url = await self.object_store.put(
                picture,
                generate_key("service-provider-profile-pictures", provider.id, filename),
                content_type,
            )
        bio_record = await self.translator.to_multi_language(bio)

        async with atomic(self.db):
            provider.bio = bio_record
            provider.profile_picture_url = picture_url
            self._advance(provider, 6)
        return {
            "message": "Bio and profile picture added successfully. "
            "Please proceed to step 6 to add bank details.",
            "next_step": "step6",
        }

    async def step6_bank(
        self,
        provider_id: str,
        data: ProviderBankDetails,
        bank_document: bytes | None = None,
        filename: str | None = None,
        content_type: str | None = None,
    ) -> dict:
        provider = await self._get(provider_id)
        document_url = provider.bank_document_url
        if bank_document is not None:
            document_url = await self.object_store.put(
                bank_document,
                generate_key("service-provider-bank-documents", provider.id, filename),
                content_type,
            )
        first_name, last_name = await asyncio.gather(
            self.translator.to_multi_language(data.first_name),
            self.translator.to_multi_language(data.last_name),
        )

        async with atomic(self.db):
            provider.first_name = first_name
            provider.last_name = last_name
            provider.bank_account_number = data.bank_account_number
            provider.bank_document_url = document_url
            self._advance(provider, FINAL_STEP)
            provider.is_active = True
        logger.info("Service provider %s completed onboarding and is active", provider.id)
        return {
            "message": "Bank details added successfully. Your account is now active!",
            "signup_complete": True,
        }

    async def login(self, data: ProviderLoginRequest) -> dict:
        result = await self.db.execute(
            select(ServiceProvider).where(ServiceProvider.email == data.email)
        )
        provider = result.scalar_one_or_none()
        if provider is None or not verify_password(data.password, provider.password_hash):
            raise UnauthorizedError("Invalid credentials")
        if not provider.is_active:
            raise UnauthorizedError("Account is not active. Please complete your registration.")

        token = create_access_token(
            provider.id, Role.SERVICE_PROVIDER.value, PrincipalType.SERVICE_PROVIDER.value
        )
        return {
            "access_token": token,
            "token_type": "bearer",
            "service_provider": serialize_service_provider(provider),
        }

    async def get_profile(self, provider_id: str) -> dict:
        provider = await self._get(provider_id, *_profile_options())
        return serialize_service_provider(provider)

    async def get_step_status(self, provider_id: str) -> dict:
        provider = await self._get(provider_id, *_profile_options())
        completed = {
            1: bool(provider.government_document_url),
            2: bool(provider.services),
            3: bool(provider.service_rates),
            4: bool(provider.locations),
            5: bool(provider.bio),
            6: bool(provider.bank_account_number),
        }
        steps = [
            {"step": step, "name": name, "completed": completed[step]}
            for step, name in STEP_NAMES.items()
        ]
        completed_steps = sum(1 for done in completed.values() if done)
        next_step = next((s["step"] for s in steps if not s["completed"]), None)
        return {
            "current_step": provider.signup_step,
            "next_step": next_step,
            "progress": round(completed_steps / len(steps) * 100),
            "completed_steps": completed_steps,
            "total_steps": len(steps),
            "steps": steps,
            "is_active": provider.is_active,
            "is_verified": provider.is_verified,
        }

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _get(self, provider_id: str, *options) -> ServiceProvider:
        query = select(ServiceProvider).where(ServiceProvider.id == provider_id)
        if options:
            query = query.options(*options).execution_options(populate_existing=True)
        result = await self.db.execute(query)
        provider = result.scalar_one_or_none()
        if provider is None:
            raise NotFoundError("Service provider not found")
        return provider

    def _advance(self, provider: ServiceProvider, step: int) -> None:
        previous = provider.signup_step or 1
        provider.signup_step = max(previous, step)
        provider.updated_at = datetime.now(timezone.utc)
        if provider.signup_step != previous:
            logger.info(
                "Service provider %s onboarding step %d -> %d",
                provider.id,
                previous,
                provider.signup_step,
            )


def _profile_options():
    return (
        selectinload(ServiceProvider.services).selectinload(ServiceProviderService.service),
        selectinload(ServiceProvider.service_rates),
        selectinload(ServiceProvider.locations),
    )
