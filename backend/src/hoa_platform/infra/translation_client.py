"""Translation client wrapping the Google Cloud Translation v2 REST API.

Turns a single input string into a multi-language record
({"en": ..., "ar": ...}) used for every localized column.
"""

from __future__ import annotations

import asyncio
import logging
from functools import lru_cache

import httpx

from hoa_platform.app.config import get_settings

logger = logging.getLogger(__name__)

GOOGLE_TRANSLATE_URL = "https://translation.googleapis.com/language/translate/v2"

_TIMEOUT_SECONDS = 10.0


class TranslationClient:
    """Async translation client with detect-then-translate semantics.

    Failures never raise: detection falls back to the default language
    and translation falls back to the source text.
    """

    def __init__(
        self,
        api_key: str,
        languages: list[str],
        default_language: str,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_key = api_key
        self.languages = list(languages)
        self.default_language = default_language
        self._http_client = http_client

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def empty_record(self) -> dict[str, str]:
        return {lang: "" for lang in self.languages}

    async def detect_language(self, text: str) -> str:
        """Return the detected language if supported, else the default."""
        if not self._api_key:
            return self.default_language
        try:
            data = await self._post(f"{GOOGLE_TRANSLATE_URL}/detect", {"q": text})
            lang = data["data"]["detections"][0][0]["language"]
        except (httpx.HTTPError, KeyError, IndexError, ValueError) as exc:
            logger.warning("Language detection failed for %r: %s", text[:50], exc)
            return self.default_language
        return lang if lang in self.languages else self.default_language

    async def translate_text(self, text: str, target: str, source: str | None = None) -> str:
        """Translate *text* into *target*; returns *text* unchanged on failure."""
        if source is None:
            source = await self.detect_language(text)
        if source == target or not self._api_key:
            return text
        try:
            data = await self._post(
                GOOGLE_TRANSLATE_URL,
                {"q": text, "source": source, "target": target, "format": "text"},
            )
            translated = data["data"]["translations"][0]["translatedText"]
        except (httpx.HTTPError, KeyError, IndexError, ValueError) as exc:
            logger.warning("Translation %s->%s failed for %r: %s", source, target, text[:50], exc)
            return text
        return translated or text

    async def to_multi_language(self, text: str, source: str | None = None) -> dict[str, str]:
        """Build a record holding *text* in every supported language."""
        if not text or not text.strip():
            return {lang: text or "" for lang in self.languages}
        if source is None:
            source = await self.detect_language(text)
        translations = await asyncio.gather(
            *(self.translate_text(text, lang, source) for lang in self.languages)
        )
        return dict(zip(self.languages, translations))

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    async def _post(self, url: str, payload: dict) -> dict:
        params = {"key": self._api_key}
        if self._http_client is not None:
            resp = await self._http_client.post(url, params=params, json=payload)
        else:
            async with httpx.AsyncClient(timeout=_TIMEOUT_SECONDS) as client:
                resp = await client.post(url, params=params, json=payload)
        resp.raise_for_status()
        return resp.json()


@lru_cache
def get_translation_client() -> TranslationClient:
    """FastAPI dependency: process-wide translation client built from settings."""
    settings = get_settings()
    return TranslationClient(
        api_key=settings.google_translate_api_key,
        languages=settings.supported_languages_list,
        default_language=settings.default_language,
    )
