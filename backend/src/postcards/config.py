"""Application configuration via environment variables.

Provides type-safe settings loading using pydantic-settings.
Environment variables can be loaded from a .env file.
"""

from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

from .domain.entries.validation import UploadLimits


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings have sensible defaults for development. The admin
    credentials have none: without them every admin request is refused.

    Environment Variables:
        UPLOAD_DIR: Root directory of the entry store
        ADMIN_USER / ADMIN_PASS: Credentials for the review endpoints
        MAX_IMAGES, MAX_IMAGE_SIZE, MAX_POSTCARD_SIZE, MAX_TOTAL_SIZE: Upload limits
        ENTRY_INDEX_ENABLED: Cache scan results in memory between writes
        RECENT_ENTRIES_LIMIT: Size of the public "recent postcards" feed
        LOG_LEVEL / LOG_JSON: Logging setup
        CORS_ORIGINS: Comma-separated list of allowed origins
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Storage
    UPLOAD_DIR: str = "./uploads"
    ENTRY_INDEX_ENABLED: bool = False

    # Admin access
    ADMIN_USER: Optional[str] = None
    ADMIN_PASS: Optional[str] = None

    # Upload limits
    MAX_IMAGES: int = 5
    MAX_IMAGE_SIZE: int = 8 * 1024 * 1024
    MAX_POSTCARD_SIZE: int = 10 * 1024 * 1024
    MAX_TOTAL_SIZE: int = 30 * 1024 * 1024
    ALLOWED_POSTCARD_MIME: str = "application/pdf"

    # Public feed
    RECENT_ENTRIES_LIMIT: int = 6

    # Application
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:3001"

    @property
    def upload_limits(self) -> UploadLimits:
        return UploadLimits(
            max_images=self.MAX_IMAGES,
            max_image_size=self.MAX_IMAGE_SIZE,
            max_postcard_size=self.MAX_POSTCARD_SIZE,
            max_total_size=self.MAX_TOTAL_SIZE,
            postcard_mime_type=self.ALLOWED_POSTCARD_MIME,
        )

    @property
    def cors_origins(self) -> List[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance.

    Call get_settings.cache_clear() to reload settings.
    """
    return Settings()
