"""Bid lifecycle engine: submission, leader decisions, withdrawal, listings.

Accepting a bid moves its job to IN_PROGRESS in the same transaction.
A provider holds at most one bid per job; the (job_id, service_provider_id)
unique constraint backs the pre-insert check when two submissions race.
"""

import logging
from decimal import Decimal, InvalidOperation

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from hoa_platform.app.config import Settings, get_settings
from hoa_platform.domain.enums import BidStatus, JobStatus, Role
from hoa_platform.domain.models import Bid, Job, JobServiceLink, ServiceProvider
from hoa_platform.domain.principal import Principal, ServiceProviderPrincipal
from hoa_platform.domain.schemas import BidCreate
from hoa_platform.infra.database import atomic
from hoa_platform.infra.object_store import ObjectStore, generate_key
from hoa_platform.infra.translation_client import TranslationClient
from hoa_platform.services.catalog_service import CatalogService
from hoa_platform.services.errors import (
    ConflictError,
    ForbiddenError,
    InvalidInputError,
    NotFoundError,
)
from hoa_platform.services.job_state_machine import (
    EDITABLE_STATES,
    JobStateMachine,
)
from hoa_platform.services.serializers import serialize_bid

logger = logging.getLogger(__name__)

# Numeric(12, 2)
MAX_TOTAL_PRICE = Decimal("9999999999.99")
_CENTS = Decimal("0.01")


def parse_total_price(raw: str | None) -> Decimal:
    """Parse caller-supplied price text into a finite, strictly positive amount."""
    try:
        price = Decimal((raw or "").strip())
    except InvalidOperation:
        raise InvalidInputError("Total price must be a valid positive number") from None
    if not price.is_finite() or price <= 0 or price > MAX_TOTAL_PRICE:
        raise InvalidInputError("Total price must be a valid positive number")
    price = price.quantize(_CENTS)
    if price <= 0:
        raise InvalidInputError("Total price must be a valid positive number")
    return price


def _bid_options():
    return (
        selectinload(Bid.job).selectinload(Job.services).selectinload(JobServiceLink.service),
        selectinload(Bid.job).selectinload(Job.apartment),
        selectinload(Bid.service_provider),
    )


class BidService:
    """Creates bids and resolves them against their jobs."""

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
        self.catalog = CatalogService(db, translator)
        self.state_machine = JobStateMachine()

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    async def create(
        self,
        data: BidCreate,
        principal: Principal,
        document: bytes | None = None,
        filename: str | None = None,
        content_type: str | None = None,
    ) -> dict:
        """Submit a PENDING bid on an OPEN job.

        Checks run in a fixed order: price, provider active, job open, no
        earlier bid, job has services, provider offers one of them. The
        document upload and cover letter translation finish before the
        insert; the job row is re-read under lock right before it.
        """
        if not isinstance(principal, ServiceProviderPrincipal):
            raise ForbiddenError("Only service providers can submit bids")

        total_price = parse_total_price(data.total_price)
        if not data.cover_letter or not data.cover_letter.strip():
            raise InvalidInputError("Cover letter is required")

        provider = await self.db.get(ServiceProvider, principal.id)
        if provider is None:
            raise NotFoundError("Service provider not found")
        if not provider.is_active:
            raise ForbiddenError("Service provider account is not active")

        result = await self.db.execute(
            select(Job).where(Job.id == data.job_id).options(selectinload(Job.services))
        )
        job = result.scalar_one_or_none()
        if job is None:
            raise NotFoundError("Job not found")
        if JobStatus(job.status) not in EDITABLE_STATES:
            raise InvalidInputError("Cannot bid on job that is not open")

        job_id, provider_id = job.id, provider.id
        if await self._find_existing_bid(job_id, provider_id) is not None:
            raise ConflictError("You have already bid on this job")

        required = [link.service_id for link in job.services]
        if not required:
            raise InvalidInputError("Job has no services defined")
        if not await self.catalog.provider_offers(provider_id, required):
            raise ForbiddenError("You do not offer any of the services required for this job")

        document_url = None
        if document is not None:
            document_url = await self.object_store.put(
                document, generate_key("bid-documents", provider_id, filename), content_type
            )
        cover_letter = await self.translator.to_multi_language(data.cover_letter)

        bid = Bid(
            job_id=job_id,
            service_provider_id=provider_id,
            total_price=total_price,
            cover_letter=cover_letter,
            document_url=document_url,
            status=BidStatus.PENDING.value,
        )
        try:
            async with atomic(self.db):
                locked = await self._lock_job(job_id)
                if JobStatus(locked.status) not in EDITABLE_STATES:
                    raise InvalidInputError("Cannot bid on job that is not open")
                self.db.add(bid)
        except IntegrityError as exc:
            logger.info("Duplicate bid rejected for job %s provider %s", job_id, provider_id)
            raise ConflictError("You have already bid on this job") from exc

        bid_id = bid.id
        logger.info(
            "Bid %s created on job %s by provider %s (total %s)",
            bid_id,
            job_id,
            provider_id,
            total_price,
        )
        return {"message": "Bid submitted successfully", "bid": serialize_bid(await self._load(bid_id))}

    # ------------------------------------------------------------------
    # Leader decision
    # ------------------------------------------------------------------

    async def update_status(self, bid_id: str, status: BidStatus, principal: Principal) -> dict:
        """Set a bid's status. ACCEPTED also moves the job to IN_PROGRESS.

        Both writes commit together. With ``enforce_single_winning_bid``
        only PENDING bids can change and a job keeps a single ACCEPTED bid.
        """
        bid = await self.db.get(Bid, bid_id)
        if bid is None:
            raise NotFoundError("Bid not found")

        async with atomic(self.db):
            job = await self._lock_job(bid.job_id)
            if job.leader_id is None or job.leader_id != principal.id:
                raise ForbiddenError("Only the job poster can update bid status")

            if self.settings.enforce_single_winning_bid:
                await self._check_single_winner(bid, status)

            previous_job_status = JobStatus(job.status)
            move_job = status == BidStatus.ACCEPTED and previous_job_status != JobStatus.IN_PROGRESS
            if move_job:
                self.state_machine.validate_transition(
                    previous_job_status, JobStatus.IN_PROGRESS, Role.LEADER
                )

            previous_bid_status = bid.status
            bid.status = status.value
            if move_job:
                job.status = JobStatus.IN_PROGRESS.value

        logger.info(
            "Bid %s status %s -> %s by leader %s", bid_id, previous_bid_status, status.value, principal.id
        )
        if move_job:
            logger.info(
                "Job %s %s -> %s (bid %s accepted)",
                job.id,
                previous_job_status.value,
                JobStatus.IN_PROGRESS.value,
                bid_id,
            )
        return {
            "message": "Bid status updated successfully",
            "bid": serialize_bid(await self._load(bid_id)),
        }

    async def _check_single_winner(self, bid: Bid, status: BidStatus) -> None:
        if bid.status != BidStatus.PENDING.value:
            raise InvalidInputError("Only pending bids can change status")
        if status != BidStatus.ACCEPTED:
            return
        result = await self.db.execute(
            select(func.count(Bid.id)).where(
                Bid.job_id == bid.job_id,
                Bid.status == BidStatus.ACCEPTED.value,
                Bid.id != bid.id,
            )
        )
        if result.scalar_one() > 0:
            raise ConflictError("This job already has an accepted bid")

    # ------------------------------------------------------------------
    # Withdraw
    # ------------------------------------------------------------------

    async def remove(self, bid_id: str, principal: Principal) -> dict:
        result = await self.db.execute(
            select(Bid).where(Bid.id == bid_id, Bid.service_provider_id == principal.id)
        )
        bid = result.scalar_one_or_none()
        if bid is None:
            raise NotFoundError("Bid not found or you are not authorized to delete it")
        if bid.status != BidStatus.PENDING.value:
            raise InvalidInputError("Cannot delete bid that is not in PENDING status")

        async with atomic(self.db):
            await self.db.delete(bid)
        logger.info("Bid %s deleted by provider %s", bid_id, principal.id)
        return {"message": "Bid deleted successfully"}

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def find_all(self) -> list[dict]:
        result = await self.db.execute(
            select(Bid).options(*_bid_options()).order_by(Bid.created_at.desc())
        )
        return [serialize_bid(bid) for bid in result.scalars().all()]

    async def find_by_job(self, job_id: str) -> list[dict]:
        """Bids on a job, cheapest first."""
        result = await self.db.execute(
            select(Bid)
            .where(Bid.job_id == job_id)
            .options(selectinload(Bid.service_provider))
            .order_by(Bid.total_price.asc(), Bid.created_at.asc())
        )
        return [serialize_bid(bid, include_job=False) for bid in result.scalars().all()]

    async def find_by_service_provider(self, principal: Principal) -> list[dict]:
        result = await self.db.execute(
            select(Bid)
            .where(Bid.service_provider_id == principal.id)
            .options(
                selectinload(Bid.job).selectinload(Job.services).selectinload(JobServiceLink.service),
                selectinload(Bid.job).selectinload(Job.apartment),
            )
            .order_by(Bid.created_at.desc())
        )
        return [serialize_bid(bid) for bid in result.scalars().all()]

    async def find_one(self, bid_id: str) -> dict:
        return serialize_bid(await self._load(bid_id))

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _find_existing_bid(self, job_id: str, provider_id: str) -> Bid | None:
        result = await self.db.execute(
            select(Bid).where(Bid.job_id == job_id, Bid.service_provider_id == provider_id)
        )
        return result.scalar_one_or_none()

    async def _lock_job(self, job_id: str) -> Job:
        result = await self.db.execute(
            select(Job)
            .where(Job.id == job_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        job = result.scalar_one_or_none()
        if job is None:
            raise NotFoundError("Job not found")
        return job

    async def _load(self, bid_id: str) -> Bid:
        result = await self.db.execute(
            select(Bid)
            .where(Bid.id == bid_id)
            .options(*_bid_options())
            .execution_options(populate_existing=True)
        )
        bid = result.scalar_one_or_none()
        if bid is None:
            raise NotFoundError("Bid not found")
        return bid
