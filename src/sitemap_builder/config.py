"""Application settings loaded from environment variables."""

from functools import lru_cache
from pathlib import Path
from typing import Annotated, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

ContentProviderName = Literal["posts", "images", "taxonomies", "authors", "pages"]


class Settings(BaseSettings):
    """Runtime configuration sourced from environment variables and .env."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    DATABASE_URL: str
    HOST: str = "0.0.0.0"
    PORT: int = Field(default=8000, ge=1, le=65535)
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    LOG_FORMAT: Literal["json", "text"] = "text"
    LOG_FILE: Path | None = None
    LOG_FILE_MAX_BYTES: int = Field(default=10_485_760, ge=1)
    LOG_FILE_BACKUP_COUNT: int = Field(default=5, ge=1)
    SITE_URL: str = "http://localhost:8000"
    SITE_PUBLIC: bool = True
    SITE_TIMEZONE: str = "UTC"
    SCHEDULER_ENABLED: bool = True
    SCHEDULER_JOBSTORE_URL: str = "sqlite:///./scheduler-jobs.sqlite"
    SITEMAP_GENERATION_INTERVAL_SECONDS: int = Field(default=5, ge=1)
    SITEMAP_AUTOMATIC_UPDATE_ENABLED: bool = True
    SITEMAP_AUTOMATIC_UPDATE_INTERVAL_SECONDS: int = Field(default=900, ge=60)
    SITEMAP_POSTS_PER_PAGE: int = Field(default=500, ge=1, le=50_000)
    SITEMAP_PAGINATED_PER_PAGE: int = Field(default=2000, ge=1, le=50_000)
    SITEMAP_GENERATE_NOW_MAX_DATES: int = Field(default=31, ge=1)
    SITEMAP_CONTENT_PROVIDERS: Annotated[list[ContentProviderName], NoDecode] = [
        "posts",
        "images",
        "taxonomies",
        "authors",
        "pages",
    ]
    SITEMAP_POST_TYPES: Annotated[list[str], NoDecode] = ["post"]
    SITEMAP_TAXONOMIES: Annotated[list[str], NoDecode] = ["category", "post_tag"]
    SITEMAP_INCLUDE_FEATURED_IMAGES: bool = True
    SITEMAP_INCLUDE_CONTENT_IMAGES: bool = True
    SHUTDOWN_GRACE_PERIOD_SECONDS: int = Field(default=30, ge=1)

    @field_validator("LOG_FILE", mode="before")
    @classmethod
    def parse_log_file(cls, value: object) -> object:
        if value in (None, ""):
            return None
        return value

    @field_validator(
        "SITEMAP_CONTENT_PROVIDERS",
        "SITEMAP_POST_TYPES",
        "SITEMAP_TAXONOMIES",
        mode="before",
    )
    @classmethod
    def parse_comma_separated(cls, value: object) -> object:
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return value

    @field_validator("SITE_URL")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()  # type: ignore[call-arg]
