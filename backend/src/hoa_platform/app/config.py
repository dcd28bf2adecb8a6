"""Application configuration via Pydantic Settings."""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings

# Resolve .env from backend/ regardless of CWD
_ENV_FILE = Path(__file__).resolve().parents[3] / ".env"


class Settings(BaseSettings):
    """Central configuration loaded from environment variables / .env file."""

    # Database
    database_url: str = "sqlite+aiosqlite:///./hoa_platform.db"

    # Auth / JWT
    jwt_secret_key: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"
    jwt_expiration_minutes: int = 1440

    # Localization
    google_translate_api_key: str = ""
    default_language: str = "en"
    supported_languages: str = "en,ar"
    default_country: str = "Saudi Arabia"

    # Object storage
    object_store_backend: str = "local"  # local, s3
    uploads_dir: str = str(Path(__file__).resolve().parents[3] / "uploads")
    uploads_url_prefix: str = "/uploads"
    s3_bucket: str = ""
    s3_region: str = "me-south-1"
    max_document_bytes: int = 5 * 1024 * 1024
    allowed_document_extensions: str = "pdf,doc,docx,jpg,jpeg,png"

    # Marketplace rules
    enforce_single_winning_bid: bool = False

    # CORS / Frontend
    cors_origins: str = "http://localhost:3000"

    # General
    debug: bool = True

    model_config = {"env_file": str(_ENV_FILE), "env_file_encoding": "utf-8", "extra": "ignore"}

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse comma-separated CORS origins into a list.

        In debug mode, returns ["*"] to allow any origin (LAN IPs, etc.).
        """
        if self.debug:
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def supported_languages_list(self) -> list[str]:
        return [lang.strip() for lang in self.supported_languages.split(",") if lang.strip()]

    @property
    def allowed_document_extensions_set(self) -> set[str]:
        return {
            ext.strip().lower().lstrip(".")
            for ext in self.allowed_document_extensions.split(",")
            if ext.strip()
        }


@lru_cache
def get_settings() -> Settings:
    """Return cached Settings instance."""
    return Settings()
