"""Shared test infrastructure for the HOA platform test suite.

Provides:
- db_session: async SQLite in-memory session with all tables created
- translator: TranslationClient that "translates" without the network
- object_store: in-memory ObjectStore capturing uploads
- make_service / make_leader / make_apartment / make_home_owner /
  make_provider / make_job: row factories (committed, so a service-level
  rollback never takes fixture data with it)
- build_client: httpx AsyncClient wired to a test app with overrides
"""

import uuid
from datetime import datetime, timedelta, timezone

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

# Import Base first, then models to register all tables
from hoa_platform.infra.database import Base

import hoa_platform.domain.models  # noqa: F401

from hoa_platform.app.config import Settings
from hoa_platform.domain.enums import JobStatus, JobType, Role
from hoa_platform.domain.models import (
    Apartment,
    Job,
    JobServiceLink,
    Service,
    ServiceProvider,
    ServiceProviderService,
    User,
)
from hoa_platform.infra.object_store import ObjectStore, ObjectStoreError
from hoa_platform.infra.translation_client import TranslationClient
from hoa_platform.services.auth_service import create_access_token, hash_password

TEST_PASSWORD = "Secret#123"
TEST_PASSWORD_HASH = hash_password(TEST_PASSWORD)


def _record(text: str) -> dict:
    return {"en": text, "ar": f"ar:{text}"}


# ---------------------------------------------------------------------------
# Collaborator fakes
# ---------------------------------------------------------------------------


class FakeTranslator(TranslationClient):
    """Marks Arabic output with an ``ar:`` prefix instead of calling Google."""

    def __init__(self):
        super().__init__(api_key="", languages=["en", "ar"], default_language="en")
        self.calls: list[str] = []

    async def detect_language(self, text: str) -> str:
        return "en"

    async def translate_text(self, text: str, target: str, source: str | None = None) -> str:
        self.calls.append(text)
        return text if target == "en" else f"ar:{text}"


class MemoryObjectStore(ObjectStore):
    """Keeps uploads in a dict. ``fail=True`` simulates an outage."""

    def __init__(self, fail: bool = False):
        self.objects: dict[str, bytes] = {}
        self.fail = fail

    async def put(self, data: bytes, key: str, content_type: str | None = None) -> str:
        if self.fail:
            raise ObjectStoreError(f"Failed to store {key}")
        self.objects[key] = data
        return f"memory://{key}"


@pytest.fixture
def translator():
    return FakeTranslator()


@pytest.fixture
def object_store():
    return MemoryObjectStore()


@pytest.fixture
def failing_object_store():
    return MemoryObjectStore(fail=True)


@pytest.fixture
def settings():
    return Settings(_env_file=None)


# ---------------------------------------------------------------------------
# Database session fixture
# ---------------------------------------------------------------------------


@pytest.fixture
async def db_session():
    """Async SQLite in-memory session with all tables created.

    Creates a fresh engine + tables for each test, yields a session,
    then rolls back and tears down.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False,
    )

    async with session_factory() as session:
        yield session
        await session.rollback()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


# ---------------------------------------------------------------------------
# Row factories
# ---------------------------------------------------------------------------


@pytest.fixture
def make_service(db_session):
    """Factory that creates a catalog Service.

    Usage:
        plumber = await make_service("Plumber")
    """
    async def _factory(name: str = "Plumber") -> Service:
        service = Service(id=str(uuid.uuid4()), name=_record(name), description=_record(name))
        db_session.add(service)
        await db_session.commit()
        return service

    return _factory


def _make_user(db_session, role: Role):
    async def _factory(national_id: str | None = None, apartment: Apartment | None = None) -> User:
        user = User(
            id=str(uuid.uuid4()),
            national_id=national_id or uuid.uuid4().hex[:10],
            password_hash=TEST_PASSWORD_HASH,
            role=role.value,
            apartment_id=apartment.id if apartment is not None else None,
        )
        db_session.add(user)
        await db_session.commit()
        return user

    return _factory


@pytest.fixture
def make_leader(db_session):
    return _make_user(db_session, Role.LEADER)


@pytest.fixture
def make_home_owner(db_session):
    """Factory that creates a HOME_OWNER, optionally linked to an apartment."""
    return _make_user(db_session, Role.HOME_OWNER)


@pytest.fixture
def make_apartment(db_session):
    """Factory that creates an Apartment, optionally led by *leader*."""
    async def _factory(hoa_number: str | None = None, leader: User | None = None) -> Apartment:
        number = hoa_number or f"HOA-{uuid.uuid4().hex[:6]}"
        apartment = Apartment(
            id=str(uuid.uuid4()),
            hoa_number=number,
            name=_record(f"HOA {number}"),
            address=_record("1 Palm Street"),
            city=_record("Riyadh"),
            country=_record("Saudi Arabia"),
            leader_id=leader.id if leader is not None else None,
        )
        db_session.add(apartment)
        await db_session.commit()
        return apartment

    return _factory


@pytest.fixture
def make_provider(db_session):
    """Factory that creates a ServiceProvider offering *services*."""
    async def _factory(
        services: list[Service] = (),
        is_active: bool = True,
        email: str | None = None,
    ) -> ServiceProvider:
        provider = ServiceProvider(
            id=str(uuid.uuid4()),
            email=email or f"{uuid.uuid4().hex[:8]}@providers.test",
            phone_number="+966500000000",
            password_hash=TEST_PASSWORD_HASH,
            name=_record("Fix It Co"),
            signup_step=7 if is_active else 1,
            is_active=is_active,
        )
        db_session.add(provider)
        for service in services:
            db_session.add(
                ServiceProviderService(service_provider_id=provider.id, service_id=service.id)
            )
        await db_session.commit()
        return provider

    return _factory


@pytest.fixture
def make_job(db_session):
    """Factory that creates a Job directly (bypassing the routing rules)."""
    async def _factory(
        apartment: Apartment,
        creator: User,
        services: list[Service] = (),
        leader: User | None = None,
        status: JobStatus = JobStatus.OPEN,
        job_type: JobType = JobType.HOME_SERVICE,
    ) -> Job:
        start = datetime.now(timezone.utc) + timedelta(days=1)
        job = Job(
            id=str(uuid.uuid4()),
            title=_record("Fix the sink"),
            description=_record("Kitchen sink leaks"),
            charges=_record("Negotiable"),
            work_duration=_record("2 hours"),
            time_slot=_record("Morning"),
            location=_record("Building A"),
            start_date=start,
            end_date=start + timedelta(hours=2),
            job_type=job_type.value,
            status=status.value,
            apartment_id=apartment.id,
            leader_id=leader.id if leader is not None else None,
            created_by=creator.id,
        )
        db_session.add(job)
        for service in services:
            db_session.add(JobServiceLink(job_id=job.id, service_id=service.id))
        await db_session.commit()
        return job

    return _factory


# ---------------------------------------------------------------------------
# HTTP client
# ---------------------------------------------------------------------------


@pytest.fixture
def auth_header():
    """Factory: Authorization header for a user or provider id."""
    def _header(subject_id: str, role: Role) -> dict:
        principal_type = "service_provider" if role == Role.SERVICE_PROVIDER else "user"
        token = create_access_token(subject_id, role.value, principal_type)
        return {"Authorization": f"Bearer {token}"}

    return _header


@pytest.fixture
def build_client(db_session, translator, object_store, settings):
    """Build an HTTPX AsyncClient wired to a test FastAPI app.

    Usage:
        async with build_client(jobs_router) as client:
            resp = await client.get("/api/jobs")
    """
    from fastapi import FastAPI

    from hoa_platform.app.config import get_settings
    from hoa_platform.app.error_handlers import install_error_handlers
    from hoa_platform.infra.database import get_db
    from hoa_platform.infra.object_store import get_object_store
    from hoa_platform.infra.translation_client import get_translation_client

    def _build(*routers):
        test_app = FastAPI()
        install_error_handlers(test_app)
        for router in routers:
            test_app.include_router(router)

        async def _override_get_db():
            yield db_session

        test_app.dependency_overrides[get_db] = _override_get_db
        test_app.dependency_overrides[get_translation_client] = lambda: translator
        test_app.dependency_overrides[get_object_store] = lambda: object_store
        test_app.dependency_overrides[get_settings] = lambda: settings

        return AsyncClient(
            transport=ASGITransport(app=test_app),
            base_url="http://testserver",
        )

    return _build
