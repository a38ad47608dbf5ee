"""
Application configuration using Pydantic Settings.
All environment variables are loaded here with sensible defaults.

Settings are built once at startup and handed to create_app();
request handlers never read the environment themselves.
"""
import json
from functools import lru_cache
from typing import Annotated, List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


DEFAULT_ALLOWED_CONTENT_TYPES = ["image/jpeg", "image/png", "image/gif"]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Environment
    environment: str = "dev"
    service_name: str = "r2-gallery"
    log_level: str = "INFO"

    # Cloudflare R2 / S3-compatible storage
    account_id: Optional[str] = None  # Used to derive the R2 endpoint
    r2_endpoint: Optional[str] = None  # Explicit override, e.g. a MinIO URL
    r2_access_key_id: Optional[str] = None
    r2_secret_access_key: Optional[str] = None
    r2_bucket_name: str = "uploads"
    r2_public_url: Optional[str] = None  # e.g. pub-xxxx.r2.dev
    r2_region: str = "auto"  # R2 uses "auto" for region

    # Upload constraints
    max_upload_bytes: int = 5 * 1024 * 1024
    allowed_content_types: Annotated[List[str], NoDecode] = DEFAULT_ALLOWED_CONTENT_TYPES

    # Listing
    list_max_keys: int = 100  # Over-fetch, store ordering is unspecified
    list_limit: int = Field(3, le=3)  # The gallery shows at most three entries

    # Server
    host: str = "0.0.0.0"
    port: int = Field(3000, ge=1, le=65535)
    port_auto_increment: bool = False
    port_search_limit: int = 10

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    @field_validator("allowed_content_types", mode="before")
    @classmethod
    def _split_content_types(cls, value):
        # Accept a JSON list or a comma-separated string
        if isinstance(value, str):
            value = value.strip()
            if value.startswith("["):
                value = json.loads(value)
            else:
                value = value.split(",")
        return [item.strip().lower() for item in value if item and item.strip()]

    @field_validator("max_upload_bytes", "list_max_keys", "list_limit", "port_search_limit")
    @classmethod
    def _positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("must be a positive integer")
        return value

    @property
    def storage_endpoint(self) -> Optional[str]:
        """Endpoint URL for the S3 client, derived from ACCOUNT_ID unless overridden."""
        if self.r2_endpoint:
            return self.r2_endpoint.rstrip("/")
        if self.account_id:
            return f"https://{self.account_id}.r2.cloudflarestorage.com"
        return None

    @property
    def public_base_url(self) -> str:
        """Public base URL without trailing slash; https is assumed when no scheme is given."""
        base = (self.r2_public_url or "").strip().rstrip("/")
        if base and "://" not in base:
            base = f"https://{base}"
        return base


@lru_cache
def get_settings() -> Settings:
    """Load settings from the environment once per process."""
    return Settings()
