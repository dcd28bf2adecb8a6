"""Service provider onboarding tests: the six steps, activation, login."""

import pytest
from sqlalchemy import select

from hoa_platform.domain.models import ServiceProviderService
from hoa_platform.domain.schemas import (
    LocationIn,
    ProviderBankDetails,
    ProviderLocationsRequest,
    ProviderLoginRequest,
    ProviderRatesRequest,
    ProviderServicesRequest,
    ProviderSignupRequest,
    ServiceRateIn,
)
from hoa_platform.infra.object_store import ObjectStoreError
from hoa_platform.services.auth_service import decode_token
from hoa_platform.services.errors import (
    ConflictError,
    InvalidInputError,
    NotFoundError,
    UnauthorizedError,
)
from hoa_platform.services.service_provider_service import ProviderOnboardingService

PASSWORD = "Secret#123"


@pytest.fixture
def onboarding(db_session, translator, object_store, settings):
    return ProviderOnboardingService(db_session, translator, object_store, settings)


async def _signup(onboarding, email="fixit@example.com"):
    result = await onboarding.signup(
        ProviderSignupRequest(
            name="Fix It Co", email=email, phone_number="+966500000001", password=PASSWORD
        )
    )
    return result["service_provider"]["id"]


async def _complete(onboarding, provider_id, service_ids):
    await onboarding.step1_document(provider_id, b"%PDF", "id.pdf", "application/pdf")
    await onboarding.step2_services(provider_id, ProviderServicesRequest(service_ids=service_ids))
    await onboarding.step3_rates(
        provider_id,
        ProviderRatesRequest(
            service_rates=[ServiceRateIn(service_id=s, rate="100 SAR/hour") for s in service_ids]
        ),
    )
    await onboarding.step4_locations(
        provider_id, ProviderLocationsRequest(locations=[LocationIn(city="Riyadh")])
    )
    await onboarding.step5_profile(provider_id, "Ten years of HVAC work")
    return await onboarding.step6_bank(
        provider_id,
        ProviderBankDetails(first_name="Omar", last_name="Saleh", bank_account_number="SA0380000000608010167519"),
    )


class TestSignup:
    async def test_signup_starts_inactive_at_step_one(self, onboarding):
        result = await onboarding.signup(
            ProviderSignupRequest(
                name="Fix It Co", email="a@example.com", phone_number="1", password=PASSWORD
            )
        )

        provider = result["service_provider"]
        assert provider["signup_step"] == 1
        assert provider["is_active"] is False
        assert provider["name"] == {"en": "Fix It Co", "ar": "ar:Fix It Co"}
        assert result["next_step"] == "step1"
        assert "password_hash" not in provider

    async def test_duplicate_email(self, onboarding):
        await _signup(onboarding)

        with pytest.raises(ConflictError):
            await _signup(onboarding)


class TestSteps:
    async def test_full_onboarding_activates(self, onboarding, make_service, object_store):
        svc = await make_service("AC Services")
        provider_id = await _signup(onboarding)

        result = await _complete(onboarding, provider_id, [svc.id])

        assert result["signup_complete"] is True
        status = await onboarding.get_step_status(provider_id)
        assert status["is_active"] is True
        assert status["current_step"] == 7
        assert status["completed_steps"] == 6
        assert status["progress"] == 100
        assert status["next_step"] is None
        assert any(k.startswith(f"service-provider-documents/{provider_id}/") for k in object_store.objects)

    async def test_step_status_tracks_progress(self, onboarding, make_service):
        svc = await make_service()
        provider_id = await _signup(onboarding)
        await onboarding.step1_document(provider_id, b"%PDF", "id.pdf", None)
        await onboarding.step2_services(provider_id, ProviderServicesRequest(service_ids=[svc.id]))

        status = await onboarding.get_step_status(provider_id)

        assert status["current_step"] == 3
        assert status["next_step"] == 3
        assert status["completed_steps"] == 2
        assert status["progress"] == 33
        assert status["is_active"] is False

    async def test_unknown_services_rejected(self, onboarding, make_service):
        svc = await make_service()
        provider_id = await _signup(onboarding)

        with pytest.raises(InvalidInputError, match="do not exist"):
            await onboarding.step2_services(
                provider_id, ProviderServicesRequest(service_ids=[svc.id, "nope"])
            )

    async def test_rates_required_for_every_selected_service(self, onboarding, make_service):
        a = await make_service("A")
        b = await make_service("B")
        provider_id = await _signup(onboarding)
        await onboarding.step2_services(provider_id, ProviderServicesRequest(service_ids=[a.id, b.id]))

        with pytest.raises(InvalidInputError, match="Rates are required"):
            await onboarding.step3_rates(
                provider_id,
                ProviderRatesRequest(service_rates=[ServiceRateIn(service_id=a.id, rate="50")]),
            )

    async def test_reselecting_services_replaces_links(self, onboarding, make_service):
        a = await make_service("A")
        b = await make_service("B")
        provider_id = await _signup(onboarding)
        await onboarding.step2_services(provider_id, ProviderServicesRequest(service_ids=[a.id]))
        await onboarding.step2_services(provider_id, ProviderServicesRequest(service_ids=[b.id, b.id]))

        profile = await onboarding.get_profile(provider_id)

        assert [s["id"] for s in profile["services"]] == [b.id]

    async def test_step2_writes_link_rows(self, onboarding, make_service, db_session):
        a = await make_service("A")
        b = await make_service("B")
        provider_id = await _signup(onboarding)

        result = await onboarding.step2_services(
            provider_id, ProviderServicesRequest(service_ids=[a.id, b.id])
        )

        rows = await db_session.execute(
            select(ServiceProviderService.service_id).where(
                ServiceProviderService.service_provider_id == provider_id
            )
        )
        assert result["next_step"] == "step3"
        assert set(rows.scalars().all()) == {a.id, b.id}

    async def test_redoing_a_step_never_moves_back(self, onboarding, make_service):
        svc = await make_service()
        provider_id = await _signup(onboarding)
        await _complete(onboarding, provider_id, [svc.id])

        await onboarding.step1_document(provider_id, b"%PDF", "new.pdf", None)

        status = await onboarding.get_step_status(provider_id)
        assert status["current_step"] == 7
        assert status["is_active"] is True

    async def test_location_country_defaults(self, onboarding):
        provider_id = await _signup(onboarding)
        await onboarding.step4_locations(
            provider_id, ProviderLocationsRequest(locations=[LocationIn(city="Dammam")])
        )

        profile = await onboarding.get_profile(provider_id)

        assert profile["locations"] == [{"city": "Dammam", "state": None, "country": "Saudi Arabia"}]

    async def test_upload_failure_leaves_step_unchanged(
        self, db_session, translator, failing_object_store, settings
    ):
        onboarding = ProviderOnboardingService(db_session, translator, failing_object_store, settings)
        provider_id = await _signup(onboarding)

        with pytest.raises(ObjectStoreError):
            await onboarding.step1_document(provider_id, b"%PDF", "id.pdf", None)

        status = await onboarding.get_step_status(provider_id)
        assert status["current_step"] == 1

    async def test_unknown_provider(self, onboarding):
        with pytest.raises(NotFoundError):
            await onboarding.step5_profile("missing", "bio")


class TestLogin:
    async def test_inactive_provider_cannot_log_in(self, onboarding):
        await _signup(onboarding)

        with pytest.raises(UnauthorizedError, match="not active"):
            await onboarding.login(ProviderLoginRequest(email="fixit@example.com", password=PASSWORD))

    async def test_active_provider_token(self, onboarding, make_service):
        svc = await make_service()
        provider_id = await _signup(onboarding)
        await _complete(onboarding, provider_id, [svc.id])

        result = await onboarding.login(
            ProviderLoginRequest(email="fixit@example.com", password=PASSWORD)
        )

        claims = decode_token(result["access_token"])
        assert claims["sub"] == provider_id
        assert claims["type"] == "service_provider"
        assert claims["role"] == "SERVICE_PROVIDER"

    async def test_wrong_password(self, onboarding):
        await _signup(onboarding)

        with pytest.raises(UnauthorizedError, match="Invalid credentials"):
            await onboarding.login(ProviderLoginRequest(email="fixit@example.com", password="nope"))
