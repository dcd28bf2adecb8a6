"""Request helpers shared by the routers: ?lang= handling and upload checks."""

from pathlib import PurePath
from typing import Any

from fastapi import Query, UploadFile

from hoa_platform.app.config import Settings
from hoa_platform.services.errors import InvalidInputError
from hoa_platform.services.language_service import get_language_service


def get_lang(lang: str | None = Query(None, description="Response language (en, ar)")) -> str:
    """Dependency: normalized response language."""
    return get_language_service().validate_language(lang)


def localized(payload: Any, lang: str) -> Any:
    """Reduce every multi-language record in *payload* to *lang*."""
    return get_language_service().localize(payload, lang)


async def read_upload(upload: UploadFile, settings: Settings) -> bytes:
    """Read an uploaded document, enforcing the size and extension limits."""
    extension = PurePath(upload.filename or "").suffix.lower().lstrip(".")
    if extension not in settings.allowed_document_extensions_set:
        allowed = ", ".join(sorted(settings.allowed_document_extensions_set))
        raise InvalidInputError(f"Unsupported file type. Allowed types: {allowed}")

    content = await upload.read(settings.max_document_bytes + 1)
    if len(content) > settings.max_document_bytes:
        raise InvalidInputError(
            f"File is too large. Maximum size is {settings.max_document_bytes // (1024 * 1024)} MB"
        )
    if not content:
        raise InvalidInputError("Uploaded file is empty")
    return content


async def read_optional_upload(upload: UploadFile | None, settings: Settings) -> bytes | None:
    if upload is None or not upload.filename:
        return None
    return await read_upload(upload, settings)
