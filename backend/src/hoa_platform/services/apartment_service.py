"""Apartment (HOA community) directory: apartments, leaders, houses, members.

Supplies the membership/leadership facts the job engine authorizes against.
"""

import asyncio
import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from hoa_platform.app.config import Settings, get_settings
from hoa_platform.domain.enums import Role
from hoa_platform.domain.models import Apartment, House, Job, JobServiceLink, User
from hoa_platform.domain.principal import LeaderPrincipal, Principal
from hoa_platform.domain.schemas import ApartmentCreate, ApartmentUpdate, HouseCreate
from hoa_platform.infra.database import atomic
from hoa_platform.infra.translation_client import TranslationClient
from hoa_platform.services.errors import (
    ConflictError,
    ForbiddenError,
    InvalidInputError,
    NotFoundError,
)

logger = logging.getLogger(__name__)


def _detail_options():
    return (
        selectinload(Apartment.leader),
        selectinload(Apartment.houses).selectinload(House.owner),
        selectinload(Apartment.jobs).selectinload(Job.services).selectinload(JobServiceLink.service),
        selectinload(Apartment.jobs).selectinload(Job.bids),
    )


class ApartmentService:
    """Apartment CRUD plus the directory queries used by the job engine."""

    def __init__(
        self,
        db: AsyncSession,
        translator: TranslationClient | None = None,
        settings: Settings | None = None,
    ):
        self.db = db
        self.translator = translator
        self.settings = settings or get_settings()

    # ------------------------------------------------------------------
    # Directory queries
    # ------------------------------------------------------------------

    async def get_apartment(self, apartment_id: str) -> Apartment | None:
        return await self.db.get(Apartment, apartment_id)

    async def apartment_has_leader(self, apartment_id: str) -> bool:
        apartment = await self.get_apartment(apartment_id)
        return apartment is not None and apartment.leader_id is not None

    async def is_leader_of(self, user_id: str, apartment_id: str) -> bool:
        result = await self.db.execute(
            select(Apartment.id).where(
                Apartment.id == apartment_id, Apartment.leader_id == user_id
            )
        )
        return result.scalar_one_or_none() is not None

    async def is_member_of(self, user_id: str, apartment_id: str) -> bool:
        user = await self.db.get(User, user_id)
        return user is not None and user.apartment_id == apartment_id

    # ------------------------------------------------------------------
    # Apartments
    # ------------------------------------------------------------------

    async def create(self, data: ApartmentCreate, principal: Principal) -> tuple[str, Apartment]:
        """Create an apartment led by *principal*, or claim a leader-less HOA number."""
        if not isinstance(principal, LeaderPrincipal):
            raise ForbiddenError("Only leaders can create apartments")

        records = await self._translate_details(
            data.name,
            data.address,
            data.city,
            data.state,
            data.country or self.settings.default_country,
        )

        existing = await self._find_by_hoa_number(data.hoa_number)
        if existing is not None:
            if existing.leader_id:
                raise ConflictError("HOA number already exists and has a leader")
            async with atomic(self.db):
                self._apply_details(existing, records)
                existing.leader_id = principal.id
            logger.info("Leader %s claimed apartment %s", principal.id, existing.id)
            return "Apartment updated and leader assigned successfully", await self.find_one(existing.id)

        apartment = Apartment(hoa_number=data.hoa_number, leader_id=principal.id)
        self._apply_details(apartment, records)
        async with atomic(self.db):
            self.db.add(apartment)
        logger.info("Apartment %s (%s) created by leader %s", apartment.id, data.hoa_number, principal.id)
        return "Apartment created successfully", await self.find_one(apartment.id)

    async def create_without_leader(self, hoa_number: str) -> Apartment:
        """Placeholder apartment for home owners who sign up before their leader.

        Flushes only; the caller owns the transaction.
        """
        name, address, city, country = await asyncio.gather(
            self.translator.to_multi_language(f"HOA {hoa_number}"),
            self.translator.to_multi_language("Address to be updated by leader"),
            self.translator.to_multi_language("City to be updated by leader"),
            self.translator.to_multi_language(self.settings.default_country),
        )
        apartment = Apartment(
            hoa_number=hoa_number, name=name, address=address, city=city, country=country
        )
        self.db.add(apartment)
        await self.db.flush()
        return apartment

    async def assign_leader(self, hoa_number: str, principal: Principal) -> Apartment:
        if not isinstance(principal, LeaderPrincipal):
            raise ForbiddenError("Only leaders can be assigned to apartments")
        apartment = await self._find_by_hoa_number(hoa_number)
        if apartment is None:
            raise NotFoundError("Apartment not found")
        if apartment.leader_id:
            raise ConflictError("Apartment already has a leader")
        async with atomic(self.db):
            apartment.leader_id = principal.id
        logger.info("Leader %s assigned to apartment %s", principal.id, apartment.id)
        return apartment

    async def find_all(self) -> list[Apartment]:
        result = await self.db.execute(
            select(Apartment)
            .options(
                selectinload(Apartment.leader),
                selectinload(Apartment.houses).selectinload(House.owner),
                selectinload(Apartment.jobs),
            )
            .order_by(Apartment.created_at.desc())
        )
        return list(result.scalars().all())

    async def find_one(self, apartment_id: str) -> Apartment:
        result = await self.db.execute(
            select(Apartment)
            .where(Apartment.id == apartment_id)
            .options(*_detail_options())
            .execution_options(populate_existing=True)
        )
        apartment = result.scalar_one_or_none()
        if apartment is None:
            raise NotFoundError("Apartment not found")
        return apartment

    async def find_by_leader(self, principal: Principal) -> list[Apartment]:
        if not isinstance(principal, LeaderPrincipal):
            raise ForbiddenError("Only leaders can view their apartments")
        result = await self.db.execute(
            select(Apartment)
            .where(Apartment.leader_id == principal.id)
            .options(*_detail_options())
            .order_by(Apartment.created_at.desc())
        )
        return list(result.scalars().all())

    async def update(self, apartment_id: str, data: ApartmentUpdate, principal: Principal) -> Apartment:
        apartment = await self._find_led(apartment_id, principal.id, "update it")
        records = await self._translate_details(
            data.name, data.address, data.city, data.state, data.country
        )
        async with atomic(self.db):
            self._apply_details(apartment, records)
        logger.info("Apartment %s updated by leader %s", apartment_id, principal.id)
        return await self.find_one(apartment_id)

    async def remove(self, apartment_id: str, principal: Principal) -> None:
        """Delete an apartment. Blocked, not cascaded, while houses or jobs exist."""
        apartment = await self._find_led(apartment_id, principal.id, "delete it")

        house_count = await self._count(House, House.apartment_id == apartment_id)
        if house_count > 0:
            raise InvalidInputError(
                "Cannot delete apartment that has houses. Please remove all houses first."
            )
        job_count = await self._count(Job, Job.apartment_id == apartment_id)
        if job_count > 0:
            raise InvalidInputError(
                "Cannot delete apartment that has jobs. Please remove all jobs first."
            )

        async with atomic(self.db):
            await self.db.delete(apartment)
        logger.info("Apartment %s deleted by leader %s", apartment_id, principal.id)

    # ------------------------------------------------------------------
    # Houses
    # ------------------------------------------------------------------

    async def add_house(self, apartment_id: str, data: HouseCreate, principal: Principal) -> House:
        await self._find_led(apartment_id, principal.id, "add houses to it")

        owner = await self.db.get(User, data.owner_id)
        if owner is None or owner.role != Role.HOME_OWNER.value:
            raise InvalidInputError("House owner must be a HOME_OWNER")

        house = House(house_number=data.house_number, apartment_id=apartment_id, owner_id=owner.id)
        async with atomic(self.db):
            self.db.add(house)
        logger.info("House %s added to apartment %s", house.id, apartment_id)

        result = await self.db.execute(
            select(House)
            .where(House.id == house.id)
            .options(selectinload(House.owner), selectinload(House.apartment))
        )
        return result.scalar_one()

    async def remove_house(self, house_id: str, principal: Principal) -> None:
        result = await self.db.execute(
            select(House)
            .join(Apartment, House.apartment_id == Apartment.id)
            .where(House.id == house_id, Apartment.leader_id == principal.id)
        )
        house = result.scalar_one_or_none()
        if house is None:
            raise NotFoundError("House not found or you are not authorized to remove it")
        async with atomic(self.db):
            await self.db.delete(house)
        logger.info("House %s removed by leader %s", house_id, principal.id)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _find_by_hoa_number(self, hoa_number: str) -> Apartment | None:
        result = await self.db.execute(select(Apartment).where(Apartment.hoa_number == hoa_number))
        return result.scalar_one_or_none()

    async def _find_led(self, apartment_id: str, leader_id: str, action: str) -> Apartment:
        result = await self.db.execute(
            select(Apartment).where(Apartment.id == apartment_id, Apartment.leader_id == leader_id)
        )
        apartment = result.scalar_one_or_none()
        if apartment is None:
            raise NotFoundError(f"Apartment not found or you are not authorized to {action}")
        return apartment

    async def _count(self, model, *criteria) -> int:
        result = await self.db.execute(select(func.count(model.id)).where(*criteria))
        return result.scalar_one()

    async def _translate_details(self, name, address, city, state, country) -> dict:
        """Translate whichever apartment details were supplied, in parallel."""
        fields = {
            "name": name,
            "address": address,
            "city": city,
            "state": state,
            "country": country,
        }
        supplied = {key: value for key, value in fields.items() if value is not None}
        translated = await asyncio.gather(
            *(self.translator.to_multi_language(value) for value in supplied.values())
        )
        return dict(zip(supplied, translated))

    def _apply_details(self, apartment: Apartment, records: dict) -> None:
        for key, record in records.items():
            setattr(apartment, key, record)
