"""BidService tests: submission checks, duplicate protection, leader decisions."""

from decimal import Decimal

import pytest
from sqlalchemy import func, select, update

from hoa_platform.app.config import Settings
from hoa_platform.domain.enums import BidStatus, JobStatus
from hoa_platform.domain.models import Apartment, Bid, Job
from hoa_platform.domain.principal import LeaderPrincipal, ServiceProviderPrincipal
from hoa_platform.domain.schemas import BidCreate
from hoa_platform.infra.object_store import ObjectStoreError
from hoa_platform.services.bid_service import BidService, parse_total_price
from hoa_platform.services.errors import (
    ConflictError,
    ForbiddenError,
    InvalidInputError,
    NotFoundError,
)


async def _bid_count(db, job_id):
    result = await db.execute(select(func.count(Bid.id)).where(Bid.job_id == job_id))
    return result.scalar_one()


async def _fresh(db, model, row_id):
    result = await db.execute(
        select(model).where(model.id == row_id).execution_options(populate_existing=True)
    )
    return result.scalar_one()


@pytest.fixture
def service(db_session, translator, object_store, settings):
    return BidService(db_session, translator, object_store, settings)


@pytest.fixture
async def market(make_leader, make_apartment, make_home_owner, make_service, make_provider, make_job):
    """An OPEN job posted by leader L requiring svc1, and provider P offering svc1."""
    leader = await make_leader()
    apartment = await make_apartment(leader=leader)
    owner = await make_home_owner(apartment=apartment)
    svc1 = await make_service("AC Repair")
    provider = await make_provider([svc1])
    job = await make_job(apartment, owner, [svc1], leader=leader)
    return leader, provider, job, svc1


def _bid(job_id, total_price="150.00", cover_letter="I can fix it today"):
    return BidCreate(job_id=job_id, total_price=total_price, cover_letter=cover_letter)


class TestParseTotalPrice:
    @pytest.mark.parametrize("raw", ["abc", "", "  ", "0", "-5", "NaN", "Infinity", "1e20", "0.001"])
    def test_rejects(self, raw):
        with pytest.raises(InvalidInputError, match="valid positive number"):
            parse_total_price(raw)

    def test_rounds_to_cents(self):
        assert parse_total_price(" 99.999 ") == Decimal("100.00")
        assert parse_total_price("150") == Decimal("150.00")


class TestCreate:
    async def test_pending_bid_created(self, service, market):
        _, provider, job, _ = market

        result = await service.create(_bid(job.id), ServiceProviderPrincipal(id=provider.id))

        bid = result["bid"]
        assert bid["status"] == BidStatus.PENDING.value
        assert bid["total_price"] == 150.0
        assert bid["cover_letter"] == {"en": "I can fix it today", "ar": "ar:I can fix it today"}
        assert bid["job"]["id"] == job.id

    async def test_document_uploaded(self, service, market, object_store):
        _, provider, job, _ = market

        result = await service.create(
            _bid(job.id), ServiceProviderPrincipal(id=provider.id),
            b"%PDF-1.4", "quote.pdf", "application/pdf",
        )

        (key,) = object_store.objects
        assert key.startswith(f"bid-documents/{provider.id}/")
        assert result["bid"]["document_url"] == f"memory://{key}"

    async def test_upload_failure_writes_nothing(
        self, db_session, translator, settings, failing_object_store, market
    ):
        _, provider, job, _ = market
        failing = BidService(db_session, translator, failing_object_store, settings)

        with pytest.raises(ObjectStoreError):
            await failing.create(
                _bid(job.id), ServiceProviderPrincipal(id=provider.id), b"data", "a.pdf", None
            )
        assert await _bid_count(db_session, job.id) == 0

    async def test_duplicate_bid_conflicts(self, service, market, db_session):
        _, provider, job, _ = market
        await service.create(_bid(job.id), ServiceProviderPrincipal(id=provider.id))

        with pytest.raises(ConflictError, match="already bid"):
            await service.create(_bid(job.id, "120"), ServiceProviderPrincipal(id=provider.id))
        assert await _bid_count(db_session, job.id) == 1

    async def test_racing_duplicate_hits_unique_constraint(
        self, service, market, db_session, monkeypatch
    ):
        _, provider, job, _ = market
        job_id, provider_id = job.id, provider.id
        await service.create(_bid(job_id), ServiceProviderPrincipal(id=provider_id))

        # Second submission passed its pre-check before the first one committed
        async def _nothing_yet(*args):
            return None

        monkeypatch.setattr(service, "_find_existing_bid", _nothing_yet)
        with pytest.raises(ConflictError, match="already bid"):
            await service.create(_bid(job_id, "99"), ServiceProviderPrincipal(id=provider_id))
        assert await _bid_count(db_session, job_id) == 1

    async def test_job_closed_after_precheck_is_rejected_under_lock(
        self, service, market, db_session, monkeypatch
    ):
        _, provider, job, _ = market
        job_id, provider_id = job.id, provider.id

        # The leader cancels the job while the submission is in flight
        async def _cancel_job(*args):
            await db_session.execute(
                update(Job).where(Job.id == job_id).values(status=JobStatus.CANCELLED.value)
            )
            await db_session.commit()
            return None

        monkeypatch.setattr(service, "_find_existing_bid", _cancel_job)
        with pytest.raises(InvalidInputError, match="not open"):
            await service.create(_bid(job_id), ServiceProviderPrincipal(id=provider_id))

        assert await _bid_count(db_session, job_id) == 0
        assert (await _fresh(db_session, Job, job_id)).status == JobStatus.CANCELLED.value

    @pytest.mark.parametrize("price", ["abc", "0", "-10"])
    async def test_bad_price(self, service, market, db_session, price):
        _, provider, job, _ = market

        with pytest.raises(InvalidInputError):
            await service.create(_bid(job.id, price), ServiceProviderPrincipal(id=provider.id))
        assert await _bid_count(db_session, job.id) == 0

    async def test_cover_letter_required(self, service, market):
        _, provider, job, _ = market

        with pytest.raises(InvalidInputError, match="Cover letter"):
            await service.create(
                _bid(job.id, cover_letter="   "), ServiceProviderPrincipal(id=provider.id)
            )

    async def test_inactive_provider(self, service, market, make_provider):
        _, _, job, svc1 = market
        pending = await make_provider([svc1], is_active=False)

        with pytest.raises(ForbiddenError, match="not active"):
            await service.create(_bid(job.id), ServiceProviderPrincipal(id=pending.id))

    async def test_unknown_job(self, service, market):
        provider = market[1]

        with pytest.raises(NotFoundError):
            await service.create(_bid("missing"), ServiceProviderPrincipal(id=provider.id))

    @pytest.mark.parametrize(
        "status", [JobStatus.SENT_TO_LEADER, JobStatus.IN_PROGRESS, JobStatus.CANCELLED]
    )
    async def test_job_must_be_open(self, service, market, make_job, db_session, status):
        leader, provider, job, svc1 = market
        apartment_id = job.apartment_id
        closed = await make_job(
            await db_session.get(Apartment, apartment_id),
            leader, [svc1], leader=leader, status=status,
        )

        with pytest.raises(InvalidInputError, match="not open"):
            await service.create(_bid(closed.id), ServiceProviderPrincipal(id=provider.id))

    async def test_provider_must_offer_a_required_service(
        self, service, market, make_provider, make_service
    ):
        _, _, job, _ = market
        painting = await make_service("Painter")
        painter = await make_provider([painting])

        with pytest.raises(ForbiddenError, match="do not offer"):
            await service.create(_bid(job.id), ServiceProviderPrincipal(id=painter.id))

    async def test_one_matching_service_is_enough(
        self, service, market, make_provider, make_service, make_job, db_session
    ):
        leader, _, job, svc1 = market
        painting = await make_service("Painter")
        apartment = await db_session.get(Apartment, job.apartment_id)
        mixed_job = await make_job(apartment, leader, [svc1, painting], leader=leader)
        painter = await make_provider([painting])

        result = await service.create(_bid(mixed_job.id), ServiceProviderPrincipal(id=painter.id))

        assert result["bid"]["status"] == BidStatus.PENDING.value

    async def test_leader_cannot_bid(self, service, market):
        leader, _, job, _ = market

        with pytest.raises(ForbiddenError):
            await service.create(_bid(job.id), LeaderPrincipal(id=leader.id))


class TestUpdateStatus:
    @pytest.fixture
    async def pending_bid(self, service, market):
        _, provider, job, _ = market
        result = await service.create(_bid(job.id), ServiceProviderPrincipal(id=provider.id))
        return result["bid"]["id"]

    async def test_accept_moves_job_in_progress(self, service, market, pending_bid, db_session):
        leader, _, job, _ = market
        job_id = job.id

        result = await service.update_status(
            pending_bid, BidStatus.ACCEPTED, LeaderPrincipal(id=leader.id)
        )

        assert result["bid"]["status"] == BidStatus.ACCEPTED.value
        assert (await _fresh(db_session, Job, job_id)).status == JobStatus.IN_PROGRESS.value

    async def test_reject_leaves_job_open(self, service, market, pending_bid, db_session):
        leader, _, job, _ = market
        job_id = job.id

        result = await service.update_status(
            pending_bid, BidStatus.REJECTED, LeaderPrincipal(id=leader.id)
        )

        assert result["bid"]["status"] == BidStatus.REJECTED.value
        assert (await _fresh(db_session, Job, job_id)).status == JobStatus.OPEN.value

    async def test_other_leader_forbidden(
        self, service, market, pending_bid, make_leader, db_session
    ):
        _, _, job, _ = market
        job_id = job.id
        stranger = await make_leader()
        stranger_id = stranger.id

        with pytest.raises(ForbiddenError, match="job poster"):
            await service.update_status(
                pending_bid, BidStatus.ACCEPTED, LeaderPrincipal(id=stranger_id)
            )
        assert (await _fresh(db_session, Bid, pending_bid)).status == BidStatus.PENDING.value
        assert (await _fresh(db_session, Job, job_id)).status == JobStatus.OPEN.value

    async def test_unknown_bid(self, service, market):
        with pytest.raises(NotFoundError):
            await service.update_status("missing", BidStatus.ACCEPTED, LeaderPrincipal(id=market[0].id))

    async def test_accept_on_cancelled_job_fails(self, service, market, pending_bid, db_session):
        leader, _, job, _ = market
        job_id = job.id
        job.status = JobStatus.CANCELLED.value
        await db_session.commit()

        with pytest.raises(InvalidInputError):
            await service.update_status(
                pending_bid, BidStatus.ACCEPTED, LeaderPrincipal(id=leader.id)
            )
        assert (await _fresh(db_session, Bid, pending_bid)).status == BidStatus.PENDING.value
        assert (await _fresh(db_session, Job, job_id)).status == JobStatus.CANCELLED.value

    async def test_second_accept_allowed_by_default(
        self, service, market, pending_bid, make_provider, db_session
    ):
        leader, _, job, svc1 = market
        job_id = job.id
        second = await make_provider([svc1])
        db_session.add(Bid(job_id=job_id, service_provider_id=second.id, total_price=80,
                           cover_letter={"en": "x", "ar": "x"}))
        await db_session.commit()
        other_bid = (await db_session.execute(
            select(Bid.id).where(Bid.service_provider_id == second.id)
        )).scalar_one()

        await service.update_status(pending_bid, BidStatus.ACCEPTED, LeaderPrincipal(id=leader.id))
        result = await service.update_status(
            other_bid, BidStatus.ACCEPTED, LeaderPrincipal(id=leader.id)
        )

        assert result["bid"]["status"] == BidStatus.ACCEPTED.value

    async def test_single_winner_enforced(
        self, db_session, translator, object_store, market, pending_bid, make_provider
    ):
        leader, _, job, svc1 = market
        leader = LeaderPrincipal(id=leader.id)
        job_id = job.id
        second = await make_provider([svc1])
        db_session.add(Bid(job_id=job_id, service_provider_id=second.id, total_price=80,
                           cover_letter={"en": "x", "ar": "x"}))
        await db_session.commit()
        other_bid = (await db_session.execute(
            select(Bid.id).where(Bid.service_provider_id == second.id)
        )).scalar_one()
        strict = BidService(
            db_session, translator, object_store,
            Settings(_env_file=None, enforce_single_winning_bid=True),
        )

        await strict.update_status(pending_bid, BidStatus.ACCEPTED, leader)
        with pytest.raises(ConflictError, match="already has an accepted bid"):
            await strict.update_status(other_bid, BidStatus.ACCEPTED, leader)
        with pytest.raises(InvalidInputError, match="Only pending bids"):
            await strict.update_status(pending_bid, BidStatus.REJECTED, leader)

        assert (await _fresh(db_session, Bid, other_bid)).status == BidStatus.PENDING.value
        assert (await _fresh(db_session, Bid, pending_bid)).status == BidStatus.ACCEPTED.value


class TestRemove:
    @pytest.fixture
    async def pending_bid(self, service, market):
        _, provider, job, _ = market
        result = await service.create(_bid(job.id), ServiceProviderPrincipal(id=provider.id))
        return result["bid"]["id"]

    async def test_provider_withdraws_pending_bid(self, service, market, pending_bid, db_session):
        provider, job = market[1], market[2]

        result = await service.remove(pending_bid, ServiceProviderPrincipal(id=provider.id))

        assert result == {"message": "Bid deleted successfully"}
        assert await _bid_count(db_session, job.id) == 0

    async def test_other_provider_not_found(self, service, market, pending_bid, make_provider):
        other = await make_provider([market[3]])

        with pytest.raises(NotFoundError, match="not authorized"):
            await service.remove(pending_bid, ServiceProviderPrincipal(id=other.id))

    async def test_accepted_bid_cannot_be_withdrawn(self, service, market, pending_bid):
        leader, provider = market[0], market[1]
        provider_id = provider.id
        await service.update_status(pending_bid, BidStatus.ACCEPTED, LeaderPrincipal(id=leader.id))

        with pytest.raises(InvalidInputError, match="PENDING"):
            await service.remove(pending_bid, ServiceProviderPrincipal(id=provider_id))


class TestReads:
    async def test_find_by_job_cheapest_first(self, service, market, make_provider):
        _, provider, job, svc1 = market
        other = await make_provider([svc1])
        await service.create(_bid(job.id, "300"), ServiceProviderPrincipal(id=provider.id))
        await service.create(_bid(job.id, "120.50"), ServiceProviderPrincipal(id=other.id))

        bids = await service.find_by_job(job.id)

        assert [b["total_price"] for b in bids] == [120.5, 300.0]
        assert "job" not in bids[0]

    async def test_find_by_service_provider(self, service, market):
        _, provider, job, _ = market
        await service.create(_bid(job.id), ServiceProviderPrincipal(id=provider.id))

        bids = await service.find_by_service_provider(ServiceProviderPrincipal(id=provider.id))

        assert [b["job"]["id"] for b in bids] == [job.id]

    async def test_find_one_unknown(self, service):
        with pytest.raises(NotFoundError):
            await service.find_one("missing")

