"""Service catalog: the reference list of service categories."""

import asyncio
import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from hoa_platform.domain.models import Service, ServiceProviderService
from hoa_platform.domain.schemas import ServiceCreate, ServiceUpdate
from hoa_platform.infra.database import atomic
from hoa_platform.infra.translation_client import TranslationClient
from hoa_platform.services.errors import NotFoundError

logger = logging.getLogger(__name__)

DEFAULT_SERVICES: list[dict] = [
    {
        "name": "AC Services",
        "description": "Air conditioning installation, repair, and maintenance services",
    },
    {
        "name": "Cleaning Services",
        "description": "House cleaning, office cleaning, and specialized cleaning services",
    },
    {
        "name": "Electrician",
        "description": "Electrical installation, repair, and maintenance services",
    },
    {
        "name": "Plumber",
        "description": "Plumbing installation, repair, and maintenance services",
    },
    {
        "name": "Painter",
        "description": "Interior and exterior painting services",
    },
    {
        "name": "Pest Control",
        "description": "Pest elimination and prevention services",
    },
]


class CatalogService:
    """Service categories plus the existence checks jobs and bids rely on."""

    def __init__(self, db: AsyncSession, translator: TranslationClient | None = None):
        self.db = db
        self.translator = translator

    # ------------------------------------------------------------------
    # Engine queries
    # ------------------------------------------------------------------

    async def services_exist(self, service_ids: list[str]) -> bool:
        """True when every id in *service_ids* names a catalog entry."""
        unique_ids = set(service_ids)
        if not unique_ids:
            return False
        result = await self.db.execute(
            select(func.count(Service.id)).where(Service.id.in_(unique_ids))
        )
        return result.scalar_one() == len(unique_ids)

    async def provider_offers(self, provider_id: str, service_ids: list[str]) -> bool:
        """True when the provider offers at least one of *service_ids*."""
        if not service_ids:
            return False
        result = await self.db.execute(
            select(func.count(ServiceProviderService.id)).where(
                ServiceProviderService.service_provider_id == provider_id,
                ServiceProviderService.service_id.in_(service_ids),
            )
        )
        return result.scalar_one() > 0

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    async def seed_services(self) -> dict:
        """Insert the default categories that are not present yet (by English name)."""
        existing = await self.db.execute(select(Service))
        existing_names = {
            (s.name or {}).get("en") for s in existing.scalars().all()
        }
        missing = [s for s in DEFAULT_SERVICES if s["name"] not in existing_names]

        records = await asyncio.gather(
            *(self._translate_pair(s["name"], s["description"]) for s in missing)
        )
        async with atomic(self.db):
            for name, description in records:
                self.db.add(Service(name=name, description=description))

        logger.info("Seeded %d services (%d already present)", len(missing), len(existing_names))
        return {"message": "Services seeded successfully!", "created": len(missing)}

    async def create(self, data: ServiceCreate) -> Service:
        name, description = await self._translate_pair(data.name, data.description)
        service = Service(name=name, description=description, image=data.image)
        async with atomic(self.db):
            self.db.add(service)
        return service

    async def list_services(self) -> list[Service]:
        result = await self.db.execute(select(Service))
        services = result.scalars().all()
        # JSON columns can't be ordered portably; sort on the English name
        return sorted(services, key=lambda s: ((s.name or {}).get("en") or "").lower())

    async def get(self, service_id: str) -> Service:
        service = await self.db.get(Service, service_id)
        if service is None:
            raise NotFoundError("Service not found")
        return service

    async def update(self, service_id: str, data: ServiceUpdate) -> Service:
        service = await self.get(service_id)
        name, description = await self._translate_pair(data.name, data.description)
        async with atomic(self.db):
            if data.name is not None:
                service.name = name
            if data.description is not None:
                service.description = description
            if data.image is not None:
                service.image = data.image
        return service

    async def remove(self, service_id: str) -> None:
        service = await self.get(service_id)
        async with atomic(self.db):
            await self.db.delete(service)
        logger.info("Service %s deleted", service_id)

    async def _translate_pair(self, name: str | None, description: str | None):
        name_record, description_record = await asyncio.gather(
            self.translator.to_multi_language(name) if name is not None else _none(),
            self.translator.to_multi_language(description) if description is not None else _none(),
        )
        return name_record, description_record


async def _none():
    return None
