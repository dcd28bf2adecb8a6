"""SQLAlchemy ORM models for the HOA services marketplace.

All models use SQLite-compatible types:
- String(36) for UUID primary keys
- JSON for localized text ({"en": ..., "ar": ...}) and lists
- Numeric for money
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    JSON,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from hoa_platform.domain.enums import BidStatus, JobStatus, Role
from hoa_platform.infra.database import Base


def _uuid() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Users / Community directory
# ---------------------------------------------------------------------------


class User(Base):
    """Leader, home owner or admin account. Role never changes after signup."""

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_uuid)
    national_id = Column(String(50), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, default=Role.HOME_OWNER.value)
    # Home owners only: the community they live in
    apartment_id = Column(String(36), ForeignKey("apartments.id"), nullable=True, index=True)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)
    last_login_at = Column(DateTime, nullable=True)

    # Relationships
    apartment = relationship(
        "Apartment", back_populates="members", foreign_keys=[apartment_id]
    )
    managed_apartments = relationship(
        "Apartment", back_populates="leader", foreign_keys="Apartment.leader_id"
    )
    owned_houses = relationship("House", back_populates="owner")
    documents = relationship("UserDocument", back_populates="user")


class UserDocument(Base):
    """Identity documents uploaded at signup."""

    __tablename__ = "user_documents"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    image_urls = Column(JSON, default=list)
    created_at = Column(DateTime, default=_utcnow)

    user = relationship("User", back_populates="documents")


class Apartment(Base):
    """HOA community. May exist without a leader until one signs up."""

    __tablename__ = "apartments"

    id = Column(String(36), primary_key=True, default=_uuid)
    hoa_number = Column(String(50), unique=True, nullable=False, index=True)
    name = Column(JSON, nullable=False)
    address = Column(JSON, nullable=False)
    city = Column(JSON, nullable=False)
    state = Column(JSON, nullable=True)
    country = Column(JSON, nullable=False)
    leader_id = Column(String(36), ForeignKey("users.id"), nullable=True, index=True)
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)

    # Relationships
    leader = relationship(
        "User", back_populates="managed_apartments", foreign_keys=[leader_id]
    )
    members = relationship(
        "User", back_populates="apartment", foreign_keys=[User.apartment_id]
    )
    houses = relationship("House", back_populates="apartment")
    jobs = relationship("Job", back_populates="apartment")


class House(Base):
    """A home inside an apartment, owned by a HOME_OWNER user."""

    __tablename__ = "houses"

    id = Column(String(36), primary_key=True, default=_uuid)
    house_number = Column(String(50), nullable=False)
    apartment_id = Column(String(36), ForeignKey("apartments.id"), nullable=False, index=True)
    owner_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column(DateTime, default=_utcnow)

    apartment = relationship("Apartment", back_populates="houses")
    owner = relationship("User", back_populates="owned_houses")


# ---------------------------------------------------------------------------
# Service catalog
# ---------------------------------------------------------------------------


class Service(Base):
    """Service category (AC, plumbing, cleaning, ...)."""

    __tablename__ = "services"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(JSON, nullable=False)
    description = Column(JSON, nullable=True)
    image = Column(String(500), nullable=True)
    created_at = Column(DateTime, default=_utcnow)


# ---------------------------------------------------------------------------
# Service providers
# ---------------------------------------------------------------------------


class ServiceProvider(Base):
    """Independently onboarded provider. Bid-eligible once is_active is set."""

    __tablename__ = "service_providers"

    id = Column(String(36), primary_key=True, default=_uuid)
    email = Column(String(255), unique=True, nullable=False, index=True)
    phone_number = Column(String(50), nullable=False)
    password_hash = Column(String(255), nullable=False)
    name = Column(JSON, nullable=False)
    signup_step = Column(Integer, nullable=False, default=1)
    is_active = Column(Boolean, default=False)
    is_verified = Column(Boolean, default=False)
    government_document_url = Column(String(500), nullable=True)
    profile_picture_url = Column(String(500), nullable=True)
    bio = Column(JSON, nullable=True)
    first_name = Column(JSON, nullable=True)
    last_name = Column(JSON, nullable=True)
    bank_account_number = Column(String(64), nullable=True)
    bank_document_url = Column(String(500), nullable=True)
    rating = Column(Float, default=0.0)
    total_jobs = Column(Integer, default=0)
    total_earnings = Column(Numeric(12, 2), default=0)
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)

    # Relationships
    services = relationship(
        "ServiceProviderService", back_populates="service_provider", cascade="all, delete-orphan"
    )
    service_rates = relationship(
        "ServiceRate", back_populates="service_provider", cascade="all, delete-orphan"
    )
    locations = relationship(
        "ServiceProviderLocation", back_populates="service_provider", cascade="all, delete-orphan"
    )
    bids = relationship("Bid", back_populates="service_provider")


class ServiceProviderService(Base):
    """Link row: a service category a provider offers."""

    __tablename__ = "service_provider_services"
    __table_args__ = (UniqueConstraint("service_provider_id", "service_id"),)

    id = Column(String(36), primary_key=True, default=_uuid)
    service_provider_id = Column(
        String(36), ForeignKey("service_providers.id"), nullable=False, index=True
    )
    service_id = Column(String(36), ForeignKey("services.id"), nullable=False)

    service_provider = relationship("ServiceProvider", back_populates="services")
    service = relationship("Service")


class ServiceRate(Base):
    """Provider's rate for one offered service."""

    __tablename__ = "service_rates"
    __table_args__ = (UniqueConstraint("service_provider_id", "service_id"),)

    id = Column(String(36), primary_key=True, default=_uuid)
    service_provider_id = Column(
        String(36), ForeignKey("service_providers.id"), nullable=False, index=True
    )
    service_id = Column(String(36), ForeignKey("services.id"), nullable=False)
    rate = Column(String(50), nullable=False)
    description = Column(String(500), nullable=True)

    service_provider = relationship("ServiceProvider", back_populates="service_rates")
    service = relationship("Service")


class ServiceProviderLocation(Base):
    """City a provider works in."""

    __tablename__ = "service_provider_locations"

    id = Column(String(36), primary_key=True, default=_uuid)
    service_provider_id = Column(
        String(36), ForeignKey("service_providers.id"), nullable=False, index=True
    )
    city = Column(String(100), nullable=False)
    state = Column(String(100), nullable=True)
    country = Column(String(100), nullable=False)

    service_provider = relationship("ServiceProvider", back_populates="locations")


# ---------------------------------------------------------------------------
# Jobs / Bids
# ---------------------------------------------------------------------------


class Job(Base):
    """Work request posted against an apartment."""

    __tablename__ = "jobs"

    id = Column(String(36), primary_key=True, default=_uuid)
    title = Column(JSON, nullable=False)
    description = Column(JSON, nullable=False)
    charges = Column(JSON, nullable=False)
    work_duration = Column(JSON, nullable=False)
    time_slot = Column(JSON, nullable=False)
    location = Column(JSON, nullable=False)
    experience_level = Column(JSON, nullable=True)
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=False)
    job_type = Column(String(30), nullable=False)
    status = Column(String(30), nullable=False, default=JobStatus.OPEN.value, index=True)
    apartment_id = Column(String(36), ForeignKey("apartments.id"), nullable=False, index=True)
    leader_id = Column(String(36), ForeignKey("users.id"), nullable=True, index=True)
    created_by = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)

    # Relationships
    apartment = relationship("Apartment", back_populates="jobs")
    leader = relationship("User", foreign_keys=[leader_id])
    creator = relationship("User", foreign_keys=[created_by])
    services = relationship(
        "JobServiceLink", back_populates="job", cascade="all, delete-orphan"
    )
    bids = relationship("Bid", back_populates="job", cascade="all, delete-orphan")


class JobServiceLink(Base):
    """Link row: a service category a job requires."""

    __tablename__ = "job_services"
    __table_args__ = (UniqueConstraint("job_id", "service_id"),)

    id = Column(String(36), primary_key=True, default=_uuid)
    job_id = Column(String(36), ForeignKey("jobs.id"), nullable=False, index=True)
    service_id = Column(String(36), ForeignKey("services.id"), nullable=False)

    job = relationship("Job", back_populates="services")
    service = relationship("Service")


class Bid(Base):
    """A provider's priced offer on a job. One per (job, provider)."""

    __tablename__ = "bids"
    __table_args__ = (
        UniqueConstraint("job_id", "service_provider_id", name="uq_bids_job_provider"),
    )

    id = Column(String(36), primary_key=True, default=_uuid)
    job_id = Column(String(36), ForeignKey("jobs.id"), nullable=False, index=True)
    service_provider_id = Column(
        String(36), ForeignKey("service_providers.id"), nullable=False, index=True
    )
    total_price = Column(Numeric(12, 2), nullable=False)
    cover_letter = Column(JSON, nullable=False)
    document_url = Column(String(500), nullable=True)
    status = Column(String(20), nullable=False, default=BidStatus.PENDING.value)
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)

    job = relationship("Job", back_populates="bids")
    service_provider = relationship("ServiceProvider", back_populates="bids")
