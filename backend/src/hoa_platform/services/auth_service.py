"""Authentication service: password hashing, JWT tokens and user accounts."""

import asyncio
import logging
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from hoa_platform.app.config import Settings, get_settings
from hoa_platform.domain.enums import PrincipalType, Role
from hoa_platform.domain.models import Apartment, User, UserDocument
from hoa_platform.domain.schemas import ChangePasswordRequest, LoginRequest, SignupRequest
from hoa_platform.infra.database import atomic
from hoa_platform.infra.object_store import ObjectStore, generate_key
from hoa_platform.infra.translation_client import TranslationClient
from hoa_platform.services.apartment_service import ApartmentService
from hoa_platform.services.errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    UnauthorizedError,
)
from hoa_platform.services.serializers import serialize_user

logger = logging.getLogger(__name__)

settings = get_settings()
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


def create_access_token(subject_id: str, role: str, principal_type: str) -> str:
    expire = datetime.now(timezone.utc) + timedelta(minutes=settings.jwt_expiration_minutes)
    payload = {"sub": subject_id, "role": role, "type": principal_type, "exp": expire}
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> dict | None:
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None


async def get_user_by_national_id(db: AsyncSession, national_id: str) -> User | None:
    result = await db.execute(select(User).where(User.national_id == national_id))
    return result.scalar_one_or_none()


class AuthService:
    """Leader / home owner accounts."""

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

    async def signup(
        self,
        data: SignupRequest,
        document: bytes,
        filename: str | None = None,
        content_type: str | None = None,
    ) -> dict:
        """Create a leader or home owner and link them to the apartment for their HOA number.

        The apartment is created leader-less when the HOA number is new. The
        identity document is stored before anything is written.
        """
        if data.role not in (Role.LEADER, Role.HOME_OWNER):
            raise ForbiddenError("Admin signup is not allowed")

        if await get_user_by_national_id(self.db, data.national_id) is not None:
            raise ConflictError("User with this national ID already exists")

        result = await self.db.execute(
            select(Apartment).where(Apartment.hoa_number == data.hoa_number)
        )
        apartment = result.scalar_one_or_none()
        if data.role == Role.LEADER and apartment is not None and apartment.leader_id:
            raise ConflictError("This HOA number already has a leader assigned")

        details = {}
        if data.role == Role.LEADER:
            details = await self._translate_apartment_details(data)

        document_url = await self.object_store.put(
            document,
            generate_key("user-documents", data.national_id, filename),
            content_type,
        )

        directory = ApartmentService(self.db, self.translator, self.settings)
        try:
            async with atomic(self.db):
                if apartment is None:
                    apartment = await directory.create_without_leader(data.hoa_number)

                user = User(
                    national_id=data.national_id,
                    password_hash=hash_password(data.password),
                    role=data.role.value,
                )
                if data.role == Role.HOME_OWNER:
                    user.apartment_id = apartment.id
                self.db.add(user)
                await self.db.flush()

                if data.role == Role.LEADER:
                    apartment.leader_id = user.id
                    for key, record in details.items():
                        setattr(apartment, key, record)

                self.db.add(UserDocument(user_id=user.id, image_urls=[document_url]))
        except IntegrityError as exc:
            # Lost a race on the national id or HOA number
            raise ConflictError("User or apartment already exists") from exc

        logger.info(
            "User %s signed up as %s for HOA %s", user.id, data.role.value, data.hoa_number
        )
        return await self._token_response(user.id)

    async def login(self, data: LoginRequest) -> dict:
        user = await get_user_by_national_id(self.db, data.national_id)
        if user is None or not verify_password(data.password, user.password_hash):
            raise UnauthorizedError("Invalid credentials")
        if not user.is_active:
            raise UnauthorizedError("Account is not active")
        async with atomic(self.db):
            user.last_login_at = datetime.now(timezone.utc)
        return await self._token_response(user.id)

    async def change_password(self, user_id: str, data: ChangePasswordRequest) -> dict:
        user = await self.db.get(User, user_id)
        if user is None:
            raise NotFoundError("User not found")
        if not verify_password(data.old_password, user.password_hash):
            raise UnauthorizedError("Old password is incorrect")
        async with atomic(self.db):
            user.password_hash = hash_password(data.new_password)
        logger.info("User %s changed password", user_id)
        return {"message": "Password changed successfully"}

    async def me(self, user_id: str) -> dict:
        return serialize_user(await self._load_user(user_id))

    async def _load_user(self, user_id: str) -> User:
        result = await self.db.execute(
            select(User)
            .where(User.id == user_id)
            .options(selectinload(User.apartment), selectinload(User.managed_apartments))
            .execution_options(populate_existing=True)
        )
        user = result.scalar_one_or_none()
        if user is None:
            raise NotFoundError("User not found")
        return user

    async def _token_response(self, user_id: str) -> dict:
        user = await self._load_user(user_id)
        token = create_access_token(user.id, user.role, PrincipalType.USER.value)
        return {"access_token": token, "token_type": "bearer", "user": serialize_user(user)}

    async def _translate_apartment_details(self, data: SignupRequest) -> dict:
        fields = {
            "name": data.apartment_name,
            "address": data.apartment_address,
            "city": data.apartment_city,
            "state": data.apartment_state,
            "country": data.apartment_country,
        }
        supplied = {key: value for key, value in fields.items() if value}
        records = await asyncio.gather(
            *(self.translator.to_multi_language(value) for value in supplied.values())
        )
        return dict(zip(supplied, records))
