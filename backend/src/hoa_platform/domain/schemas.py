"""Pydantic v2 schemas for API request/response validation."""

import re
from datetime import datetime, timezone

from pydantic import BaseModel, Field, field_validator, model_validator

from hoa_platform.domain.enums import BidStatus, JobStatus, JobType, Role

_PASSWORD_RULE = re.compile(r"^(?=.*[A-Z])(?=.*\d)(?=.*[^A-Za-z0-9]).{6,}$")


def _utc_naive(value: datetime | None) -> datetime | None:
    """Job dates are stored as naive UTC."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _check_password(value: str) -> str:
    if not _PASSWORD_RULE.match(value):
        raise ValueError(
            "Password must be at least 6 characters long and contain at least one "
            "capital letter, one number, and one special character"
        )
    return value


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


class SignupRequest(BaseModel):
    """Leader / home owner signup. The identity document arrives as a file."""

    national_id: str = Field(min_length=1)
    hoa_number: str = Field(min_length=1)
    role: Role
    password: str
    apartment_name: str | None = None
    apartment_address: str | None = None
    apartment_city: str | None = None
    apartment_state: str | None = None
    apartment_country: str | None = None

    @field_validator("password")
    @classmethod
    def _strong_password(cls, value: str) -> str:
        return _check_password(value)

    @field_validator("role")
    @classmethod
    def _user_roles_only(cls, value: Role) -> Role:
        if value not in (Role.LEADER, Role.HOME_OWNER):
            raise ValueError("Role must be HOME_OWNER or LEADER")
        return value


class LoginRequest(BaseModel):
    national_id: str
    password: str


class ChangePasswordRequest(BaseModel):
    old_password: str
    new_password: str

    @field_validator("new_password")
    @classmethod
    def _strong_password(cls, value: str) -> str:
        return _check_password(value)


class TokenResponse(BaseModel):
    """Schema for JWT token responses."""

    access_token: str
    token_type: str = "bearer"
    user: dict


# ---------------------------------------------------------------------------
# Apartments
# ---------------------------------------------------------------------------


class ApartmentCreate(BaseModel):
    hoa_number: str = Field(min_length=1)
    name: str = Field(min_length=1)
    address: str = Field(min_length=1)
    city: str = Field(min_length=1)
    state: str | None = None
    country: str | None = None


class ApartmentUpdate(BaseModel):
    name: str | None = None
    address: str | None = None
    city: str | None = None
    state: str | None = None
    country: str | None = None


class HouseCreate(BaseModel):
    house_number: str = Field(min_length=1)
    owner_id: str


# ---------------------------------------------------------------------------
# Service catalog
# ---------------------------------------------------------------------------


class ServiceCreate(BaseModel):
    name: str = Field(min_length=1)
    description: str | None = None
    image: str | None = None


class ServiceUpdate(BaseModel):
    name: str | None = None
    description: str | None = None
    image: str | None = None


# ---------------------------------------------------------------------------
# Service providers
# ---------------------------------------------------------------------------


class ProviderSignupRequest(BaseModel):
    name: str = Field(min_length=1)
    email: str = Field(pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    phone_number: str = Field(min_length=1)
    password: str

    @field_validator("password")
    @classmethod
    def _strong_password(cls, value: str) -> str:
        return _check_password(value)


class ProviderLoginRequest(BaseModel):
    email: str
    password: str


class ProviderServicesRequest(BaseModel):
    service_ids: list[str] = Field(min_length=1)


class ServiceRateIn(BaseModel):
    service_id: str
    rate: str = Field(min_length=1)
    description: str | None = None


class ProviderRatesRequest(BaseModel):
    service_rates: list[ServiceRateIn] = Field(min_length=1)


class LocationIn(BaseModel):
    city: str = Field(min_length=1)
    state: str | None = None
    country: str | None = None


class ProviderLocationsRequest(BaseModel):
    locations: list[LocationIn] = Field(min_length=1)


class ProviderBankDetails(BaseModel):
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    bank_account_number: str = Field(min_length=1)


# ---------------------------------------------------------------------------
# Jobs
# ---------------------------------------------------------------------------


class JobCreate(BaseModel):
    title: str = Field(min_length=1)
    description: str = Field(min_length=1)
    charges: str = Field(min_length=1)
    service_ids: list[str] = Field(min_length=1)
    work_duration: str = Field(min_length=1)
    start_date: datetime
    end_date: datetime
    time_slot: str = Field(min_length=1)
    location: str = Field(min_length=1)
    experience_level: str | None = None
    job_type: JobType
    apartment_id: str | None = None

    @field_validator("start_date", "end_date")
    @classmethod
    def _normalize_dates(cls, value: datetime | None) -> datetime | None:
        return _utc_naive(value)

    @model_validator(mode="after")
    def _dates_in_order(self):
        if self.start_date > self.end_date:
            raise ValueError("start_date must not be after end_date")
        return self


class JobUpdate(BaseModel):
    title: str | None = None
    description: str | None = None
    charges: str | None = None
    service_ids: list[str] | None = Field(default=None, min_length=1)
    work_duration: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    time_slot: str | None = None
    location: str | None = None
    experience_level: str | None = None

    @field_validator("start_date", "end_date")
    @classmethod
    def _normalize_dates(cls, value: datetime | None) -> datetime | None:
        return _utc_naive(value)

    @model_validator(mode="after")
    def _dates_in_order(self):
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError("start_date must not be after end_date")
        return self


class JobStatusUpdate(BaseModel):
    status: JobStatus


class JobRejectRequest(BaseModel):
    reason: str | None = None


# ---------------------------------------------------------------------------
# Bids
# ---------------------------------------------------------------------------


class BidCreate(BaseModel):
    """Bid fields. total_price stays text; the bid engine parses it."""

    job_id: str
    total_price: str
    cover_letter: str


class BidStatusUpdate(BaseModel):
    status: BidStatus


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    service: str
