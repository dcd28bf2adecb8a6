"""Apartment (HOA community) routes."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from hoa_platform.app.config import Settings, get_settings
from hoa_platform.app.routes.auth import get_current_principal_dep, require_role
from hoa_platform.app.routes.params import get_lang, localized
from hoa_platform.domain.enums import Role
from hoa_platform.domain.principal import Principal
from hoa_platform.domain.schemas import ApartmentCreate, ApartmentUpdate, HouseCreate
from hoa_platform.infra.database import get_db
from hoa_platform.infra.translation_client import TranslationClient, get_translation_client
from hoa_platform.services.apartment_service import ApartmentService
from hoa_platform.services.serializers import serialize_apartment, serialize_house

router = APIRouter(prefix="/api/apartments", tags=["apartments"])


def get_apartment_service(
    db: AsyncSession = Depends(get_db),
    translator: TranslationClient = Depends(get_translation_client),
    settings: Settings = Depends(get_settings),
) -> ApartmentService:
    return ApartmentService(db, translator, settings)


@router.post("", status_code=201)
async def create_apartment(
    data: ApartmentCreate,
    lang: str = Depends(get_lang),
    principal: Principal = Depends(require_role(Role.LEADER)),
    service: ApartmentService = Depends(get_apartment_service),
):
    message, apartment = await service.create(data, principal)
    return localized({"message": message, "apartment": serialize_apartment(apartment)}, lang)


@router.get("")
async def list_apartments(
    lang: str = Depends(get_lang),
    principal: Principal = Depends(get_current_principal_dep),
    service: ApartmentService = Depends(get_apartment_service),
):
    apartments = await service.find_all()
    return localized([serialize_apartment(a) for a in apartments], lang)


@router.get("/my-apartments")
async def my_apartments(
    lang: str = Depends(get_lang),
    principal: Principal = Depends(require_role(Role.LEADER)),
    service: ApartmentService = Depends(get_apartment_service),
):
    apartments = await service.find_by_leader(principal)
    return localized([serialize_apartment(a) for a in apartments], lang)


@router.get("/{apartment_id}")
async def get_apartment(
    apartment_id: str,
    lang: str = Depends(get_lang),
    principal: Principal = Depends(get_current_principal_dep),
    service: ApartmentService = Depends(get_apartment_service),
):
    return localized(serialize_apartment(await service.find_one(apartment_id)), lang)


@router.patch("/{apartment_id}")
async def update_apartment(
    apartment_id: str,
    data: ApartmentUpdate,
    lang: str = Depends(get_lang),
    principal: Principal = Depends(require_role(Role.LEADER)),
    service: ApartmentService = Depends(get_apartment_service),
):
    apartment = await service.update(apartment_id, data, principal)
    return localized(
        {"message": "Apartment updated successfully", "apartment": serialize_apartment(apartment)},
        lang,
    )


@router.delete("/{apartment_id}")
async def remove_apartment(
    apartment_id: str,
    principal: Principal = Depends(require_role(Role.LEADER)),
    service: ApartmentService = Depends(get_apartment_service),
):
    await service.remove(apartment_id, principal)
    return {"message": "Apartment deleted successfully"}


@router.post("/{apartment_id}/houses", status_code=201)
async def add_house(
    apartment_id: str,
    data: HouseCreate,
    lang: str = Depends(get_lang),
    principal: Principal = Depends(require_role(Role.LEADER)),
    service: ApartmentService = Depends(get_apartment_service),
):
    house = await service.add_house(apartment_id, data, principal)
    return localized(
        {"message": "House added successfully", "house": serialize_house(house)}, lang
    )


@router.delete("/houses/{house_id}")
async def remove_house(
    house_id: str,
    principal: Principal = Depends(require_role(Role.LEADER)),
    service: ApartmentService = Depends(get_apartment_service),
):
    await service.remove_house(house_id, principal)
    return {"message": "House removed successfully"}
