"""Reduce multi-language records in API payloads to a single language."""

from functools import lru_cache
from typing import Any

from hoa_platform.app.config import get_settings


class LanguageService:
    """Picks one language out of every {"en": ..., "ar": ...} record in a payload."""

    def __init__(self, languages: list[str], default_language: str):
        self.languages = set(languages)
        self.default_language = default_language

    def validate_language(self, lang: str | None) -> str:
        """Normalize a ?lang= value; unknown values fall back to the default."""
        if not lang:
            return self.default_language
        normalized = lang.strip().lower()
        if normalized == "arabic":
            normalized = "ar"
        elif normalized == "english":
            normalized = "en"
        return normalized if normalized in self.languages else self.default_language

    def is_translation_record(self, value: Any) -> bool:
        return (
            isinstance(value, dict)
            and bool(value)
            and set(value) <= self.languages
            and all(v is None or isinstance(v, str) for v in value.values())
        )

    def extract_translation(self, record: dict | None, lang: str) -> str:
        if not record or not isinstance(record, dict):
            return ""
        return record.get(lang) or record.get(self.default_language) or ""

    def localize(self, payload: Any, lang: str) -> Any:
        """Return a copy of *payload* with every translation record reduced to *lang*."""
        if self.is_translation_record(payload):
            return self.extract_translation(payload, lang)
        if isinstance(payload, dict):
            return {key: self.localize(value, lang) for key, value in payload.items()}
        if isinstance(payload, list):
            return [self.localize(item, lang) for item in payload]
        return payload


@lru_cache
def get_language_service() -> LanguageService:
    settings = get_settings()
    return LanguageService(settings.supported_languages_list, settings.default_language)
