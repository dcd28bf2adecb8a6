"""Authentication routes and the principal dependencies every router uses."""

import logging

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile, status
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from hoa_platform.app.config import Settings, get_settings
from hoa_platform.app.routes.params import get_lang, localized, read_upload
from hoa_platform.domain.enums import Role
from hoa_platform.domain.models import ServiceProvider, User
from hoa_platform.domain.principal import (
    Principal,
    ServiceProviderPrincipal,
    principal_from_claims,
)
from hoa_platform.domain.schemas import (
    ChangePasswordRequest,
    LoginRequest,
    SignupRequest,
    TokenResponse,
)
from hoa_platform.infra.database import get_db
from hoa_platform.infra.object_store import ObjectStore, get_object_store
from hoa_platform.infra.translation_client import TranslationClient, get_translation_client
from hoa_platform.services.auth_service import AuthService, decode_token

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


async def get_current_principal_dep(
    request: Request, db: AsyncSession = Depends(get_db)
) -> Principal:
    """Dependency: resolve the caller's principal from the Bearer token."""
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing or invalid token",
        )
    token = auth_header.removeprefix("Bearer ")
    payload = decode_token(token)
    principal = principal_from_claims(payload) if payload else None
    if principal is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )

    if isinstance(principal, ServiceProviderPrincipal):
        account = await db.get(ServiceProvider, principal.id)
    else:
        account = await db.get(User, principal.id)
        if account is not None and account.role != principal.role.value:
            account = None
    if account is None or not account.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Account not found or inactive",
        )
    return principal


def require_role(*roles: Role):
    """Factory: dependency that checks the principal has one of the required roles."""

    async def checker(principal: Principal = Depends(get_current_principal_dep)):
        if principal.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return principal

    return checker


@router.post("/signup", response_model=TokenResponse)
async def signup(
    national_id: str = Form(...),
    hoa_number: str = Form(...),
    role: str = Form(...),
    password: str = Form(...),
    apartment_name: str | None = Form(None),
    apartment_address: str | None = Form(None),
    apartment_city: str | None = Form(None),
    apartment_state: str | None = Form(None),
    apartment_country: str | None = Form(None),
    document: UploadFile = File(...),
    lang: str = Depends(get_lang),
    db: AsyncSession = Depends(get_db),
    translator: TranslationClient = Depends(get_translation_client),
    object_store: ObjectStore = Depends(get_object_store),
    settings: Settings = Depends(get_settings),
):
    """Leader / home owner signup (multipart: fields plus identity document)."""
    if role == Role.ADMIN.value:
        raise HTTPException(status_code=403, detail="Admin signup is not allowed")
    try:
        data = SignupRequest(
            national_id=national_id,
            hoa_number=hoa_number,
            role=role,
            password=password,
            apartment_name=apartment_name,
            apartment_address=apartment_address,
            apartment_city=apartment_city,
            apartment_state=apartment_state,
            apartment_country=apartment_country,
        )
    except ValidationError as exc:
        raise HTTPException(
            status_code=422, detail=exc.errors(include_url=False, include_context=False)
        )
    content = await read_upload(document, settings)

    service = AuthService(db, translator, object_store, settings)
    result = await service.signup(data, content, document.filename, document.content_type)
    return localized(result, lang)


@router.post("/login", response_model=TokenResponse)
async def login(
    data: LoginRequest,
    lang: str = Depends(get_lang),
    db: AsyncSession = Depends(get_db),
):
    return localized(await AuthService(db).login(data), lang)


@router.patch("/change-password")
async def change_password(
    data: ChangePasswordRequest,
    principal: Principal = Depends(require_role(Role.LEADER, Role.HOME_OWNER, Role.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    return await AuthService(db).change_password(principal.id, data)


@router.get("/me")
async def me(
    lang: str = Depends(get_lang),
    principal: Principal = Depends(require_role(Role.LEADER, Role.HOME_OWNER, Role.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    return localized(await AuthService(db).me(principal.id), lang)
