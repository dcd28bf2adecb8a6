"""Job lifecycle engine: creation routing, leader review, edits, listings.

Who may create which kind of job:

    job type           creator     apartment                         leader            status
    HOME_SERVICE       HOME_OWNER  own linked apartment              none              OPEN
    HOME_SERVICE       LEADER      an apartment they lead            creator           OPEN
    COMMUNITY_SERVICE  HOME_OWNER  own apartment, must have leader   apartment leader  SENT_TO_LEADER
    COMMUNITY_SERVICE  LEADER      an apartment they lead            creator           OPEN
"""

import asyncio
import logging
from datetime import timezone

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from hoa_platform.domain.enums import JobStatus, JobType
from hoa_platform.domain.models import Apartment, Bid, Job, JobServiceLink, User
from hoa_platform.domain.principal import HomeOwnerPrincipal, LeaderPrincipal, Principal
from hoa_platform.domain.schemas import JobCreate, JobUpdate
from hoa_platform.infra.database import atomic
from hoa_platform.infra.translation_client import TranslationClient
from hoa_platform.services.apartment_service import ApartmentService
from hoa_platform.services.catalog_service import CatalogService
from hoa_platform.services.errors import (
    ForbiddenError,
    InvalidInputError,
    NotFoundError,
)
from hoa_platform.services.job_state_machine import (
    EDITABLE_STATES,
    LISTED_STATES,
    REVIEW_JOB_TYPES,
    InvalidTransitionError,
    JobStateMachine,
    initial_status,
)
from hoa_platform.services.serializers import serialize_job

logger = logging.getLogger(__name__)

# Localized text columns, translated on create and update
TEXT_FIELDS = (
    "title",
    "description",
    "charges",
    "work_duration",
    "time_slot",
    "location",
    "experience_level",
)

CREATED_MESSAGES = {
    JobStatus.OPEN: {
        JobType.HOME_SERVICE: "Home service job created successfully and is now visible to service providers",
        JobType.COMMUNITY_SERVICE: "Community service job created successfully and is now visible to service providers",
    },
    JobStatus.SENT_TO_LEADER: {
        JobType.COMMUNITY_SERVICE: "Community service job request sent to leader for approval",
    },
}


def _job_options(with_bids: bool = True):
    options = [
        selectinload(Job.services).selectinload(JobServiceLink.service),
        selectinload(Job.apartment),
        selectinload(Job.leader),
        selectinload(Job.creator),
    ]
    if with_bids:
        options.append(selectinload(Job.bids).selectinload(Bid.service_provider))
    return options


class JobService:
    """Creates jobs and moves them through their lifecycle."""

    def __init__(self, db: AsyncSession, translator: TranslationClient | None = None):
        self.db = db
        self.translator = translator
        self.directory = ApartmentService(db, translator)
        self.catalog = CatalogService(db, translator)
        self.state_machine = JobStateMachine()

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    async def create(self, data: JobCreate, principal: Principal) -> dict:
        user = await self.db.get(User, principal.id)
        if user is None:
            raise NotFoundError("User not found")

        service_ids = list(dict.fromkeys(data.service_ids))
        if not await self.catalog.services_exist(service_ids):
            raise InvalidInputError("One or more services not found")

        apartment_id, leader_id = await self._route(data, principal, user)
        status = initial_status(data.job_type, principal.role)

        # Every translation resolves before the first write
        records = await self._translate_fields(data, TEXT_FIELDS)

        job = Job(
            start_date=data.start_date,
            end_date=data.end_date,
            job_type=data.job_type.value,
            status=status.value,
            apartment_id=apartment_id,
            leader_id=leader_id,
            created_by=principal.id,
            **records,
        )
        async with atomic(self.db):
            self.db.add(job)
            await self.db.flush()
            self.db.add_all(
                JobServiceLink(job_id=job.id, service_id=service_id) for service_id in service_ids
            )

        logger.info(
            "Job %s created: type=%s status=%s apartment=%s by %s",
            job.id,
            data.job_type.value,
            status.value,
            apartment_id,
            principal.id,
        )
        return {
            "message": CREATED_MESSAGES[status][data.job_type],
            "job": serialize_job(await self._load(job.id, with_bids=False)),
        }

    async def _route(self, data: JobCreate, principal: Principal, user: User) -> tuple[str, str | None]:
        """Resolve (apartment_id, leader_id) for a new job, or raise."""
        if data.job_type == JobType.HOME_SERVICE:
            if isinstance(principal, HomeOwnerPrincipal):
                if not user.apartment_id:
                    raise InvalidInputError("Your account is not linked to any apartment")
                if data.apartment_id and data.apartment_id != user.apartment_id:
                    raise ForbiddenError(
                        "You can only create home service jobs for your own apartment"
                    )
                return user.apartment_id, None
            if isinstance(principal, LeaderPrincipal):
                if not data.apartment_id:
                    raise InvalidInputError(
                        "Apartment ID is required for leader-created home service jobs"
                    )
                if not await self.directory.is_leader_of(principal.id, data.apartment_id):
                    raise ForbiddenError("You are not authorized to post jobs for this apartment")
                return data.apartment_id, principal.id
            raise ForbiddenError("Invalid role for creating home service job")

        if data.job_type == JobType.COMMUNITY_SERVICE:
            if not isinstance(principal, (HomeOwnerPrincipal, LeaderPrincipal)):
                raise ForbiddenError("Invalid role for creating community service job")
            if not data.apartment_id:
                raise InvalidInputError("Apartment ID is required for community service jobs")
            apartment = await self.directory.get_apartment(data.apartment_id)
            if apartment is None:
                raise NotFoundError("Apartment not found")
            if not apartment.leader_id:
                raise InvalidInputError("This apartment does not have a leader assigned")

            if isinstance(principal, HomeOwnerPrincipal):
                if not await self.directory.is_member_of(principal.id, apartment.id):
                    raise ForbiddenError(
                        "You can only create community service jobs for your own apartment"
                    )
                return apartment.id, apartment.leader_id
            if apartment.leader_id != principal.id:
                raise ForbiddenError("You are not authorized to post jobs for this apartment")
            return apartment.id, principal.id

        raise InvalidInputError("Invalid job type")

    # ------------------------------------------------------------------
    # Leader review of community requests
    # ------------------------------------------------------------------

    async def approve_community_job(self, job_id: str, principal: Principal) -> dict:
        job = await self._review(job_id, principal, JobStatus.POSTED_BY_LEADER, "approve")
        async with atomic(self.db):
            job.status = JobStatus.POSTED_BY_LEADER.value
            job.leader_id = principal.id
        logger.info(
            "Job %s %s -> %s by leader %s",
            job_id,
            JobStatus.SENT_TO_LEADER.value,
            JobStatus.POSTED_BY_LEADER.value,
            principal.id,
        )
        return {
            "message": "Community service job approved and posted successfully",
            "job": serialize_job(await self._load(job_id, with_bids=False)),
        }

    async def reject_community_job(
        self, job_id: str, principal: Principal, reason: str | None = None
    ) -> dict:
        job = await self._review(job_id, principal, JobStatus.CANCELLED, "reject")
        async with atomic(self.db):
            job.status = JobStatus.CANCELLED.value
        logger.info(
            "Job %s %s -> %s by leader %s (reason: %s)",
            job_id,
            JobStatus.SENT_TO_LEADER.value,
            JobStatus.CANCELLED.value,
            principal.id,
            reason or "none given",
        )
        return {
            "message": "Community service job rejected successfully",
            "job": serialize_job(await self._load(job_id, with_bids=False)),
        }

    async def _review(self, job_id: str, principal: Principal, target: JobStatus, verb: str) -> Job:
        if not isinstance(principal, LeaderPrincipal):
            raise ForbiddenError(f"Only leaders can {verb} community service jobs")

        result = await self.db.execute(
            select(Job).where(Job.id == job_id).options(selectinload(Job.apartment))
        )
        job = result.scalar_one_or_none()
        if job is None:
            raise NotFoundError("Job not found")

        current = JobStatus(job.status)
        if JobType(job.job_type) not in REVIEW_JOB_TYPES:
            raise InvalidTransitionError(
                current, target, f"Only community service jobs can be {verb.rstrip('e')}ed"
            )
        if current != JobStatus.SENT_TO_LEADER:
            raise InvalidTransitionError(current, target, "Job is not in SENT_TO_LEADER status")
        if job.apartment.leader_id != principal.id:
            raise ForbiddenError(f"You are not authorized to {verb} jobs for this apartment")

        self.state_machine.validate_transition(current, target, principal.role, JobType(job.job_type))
        return job

    # ------------------------------------------------------------------
    # Leader edits
    # ------------------------------------------------------------------

    async def update(self, job_id: str, data: JobUpdate, principal: Principal) -> dict:
        job = await self._find_owned(job_id, principal, "update it")
        if JobStatus(job.status) not in EDITABLE_STATES:
            raise InvalidInputError("Cannot update job that is not in OPEN status")

        service_ids = None
        if data.service_ids is not None:
            service_ids = list(dict.fromkeys(data.service_ids))
            if not await self.catalog.services_exist(service_ids):
                raise InvalidInputError("One or more services not found")

        supplied = [field for field in TEXT_FIELDS if getattr(data, field) is not None]
        records = await self._translate_fields(data, supplied)

        start = data.start_date or job.start_date
        end = data.end_date or job.end_date
        if _naive(start) > _naive(end):
            raise InvalidInputError("start_date must not be after end_date")

        async with atomic(self.db):
            for field, record in records.items():
                setattr(job, field, record)
            if data.start_date is not None:
                job.start_date = data.start_date
            if data.end_date is not None:
                job.end_date = data.end_date
            if service_ids is not None:
                await self.db.execute(delete(JobServiceLink).where(JobServiceLink.job_id == job_id))
                self.db.add_all(
                    JobServiceLink(job_id=job_id, service_id=service_id)
                    for service_id in service_ids
                )

        logger.info("Job %s updated by leader %s", job_id, principal.id)
        return {
            "message": "Job updated successfully",
            "job": serialize_job(await self._load(job_id, with_bids=False)),
        }

    async def update_status(self, job_id: str, status: JobStatus, principal: Principal) -> dict:
        """Leader's free-form status overwrite. Only ownership is checked."""
        job = await self._find_owned(job_id, principal, "update it")
        previous = job.status
        async with atomic(self.db):
            job.status = status.value
        logger.info(
            "Job %s status %s -> %s set by leader %s", job_id, previous, status.value, principal.id
        )
        return {
            "message": "Job status updated successfully",
            "job": serialize_job(await self._load(job_id, with_bids=False)),
        }

    async def remove(self, job_id: str, principal: Principal) -> dict:
        job = await self._find_owned(job_id, principal, "delete it")
        if JobStatus(job.status) not in EDITABLE_STATES:
            raise InvalidInputError("Cannot delete job that is not in OPEN status")

        async with atomic(self.db):
            await self.db.execute(delete(JobServiceLink).where(JobServiceLink.job_id == job_id))
            await self.db.execute(delete(Bid).where(Bid.job_id == job_id))
            await self.db.execute(delete(Job).where(Job.id == job_id))

        logger.info("Job %s deleted by leader %s", job_id, principal.id)
        return {"message": "Job deleted successfully"}

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def find_all(self) -> list[dict]:
        """Public board: jobs open for bidding or posted by a leader."""
        return await self._list(Job.status.in_([s.value for s in LISTED_STATES]))

    async def find_one(self, job_id: str) -> dict:
        return serialize_job(await self._load(job_id))

    async def find_by_apartment(self, apartment_id: str) -> list[dict]:
        return await self._list(Job.apartment_id == apartment_id)

    async def find_by_creator(self, principal: Principal) -> list[dict]:
        return await self._list(Job.created_by == principal.id)

    async def find_by_leader(self, principal: Principal) -> list[dict]:
        if not isinstance(principal, LeaderPrincipal):
            raise ForbiddenError("Only leaders can view their posted jobs")
        return await self._list(Job.leader_id == principal.id)

    async def find_pending_community_jobs(self, principal: Principal) -> list[dict]:
        if not isinstance(principal, LeaderPrincipal):
            raise ForbiddenError("Only leaders can view pending community service jobs")
        led = select(Apartment.id).where(Apartment.leader_id == principal.id)
        return await self._list(
            Job.job_type == JobType.COMMUNITY_SERVICE.value,
            Job.status == JobStatus.SENT_TO_LEADER.value,
            Job.apartment_id.in_(led),
            with_bids=False,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _list(self, *criteria, with_bids: bool = True) -> list[dict]:
        result = await self.db.execute(
            select(Job)
            .where(*criteria)
            .options(*_job_options(with_bids))
            .order_by(Job.created_at.desc())
        )
        return [serialize_job(job) for job in result.scalars().all()]

    async def _load(self, job_id: str, with_bids: bool = True) -> Job:
        result = await self.db.execute(
            select(Job)
            .where(Job.id == job_id)
            .options(*_job_options(with_bids))
            .execution_options(populate_existing=True)
        )
        job = result.scalar_one_or_none()
        if job is None:
            raise NotFoundError("Job not found")
        return job

    async def _find_owned(self, job_id: str, principal: Principal, action: str) -> Job:
        result = await self.db.execute(
            select(Job).where(Job.id == job_id, Job.leader_id == principal.id)
        )
        job = result.scalar_one_or_none()
        if job is None:
            raise NotFoundError(f"Job not found or you are not authorized to {action}")
        return job

    async def _translate_fields(self, data, fields) -> dict:
        """Translate the given text fields of *data* in parallel."""
        fields = [field for field in fields if getattr(data, field) is not None]
        records = await asyncio.gather(
            *(self.translator.to_multi_language(getattr(data, field)) for field in fields)
        )
        return dict(zip(fields, records))


def _naive(value):
    """Naive UTC, matching how request schemas normalize job dates."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)
