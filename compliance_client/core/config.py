"""
Client configuration models and helpers.

Centralizes settings management so the library, the command-line surface and
the tests share a consistent configuration surface.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_API_URL = "http://127.0.0.1:8000"


class ClientSettings(BaseSettings):
    """Root settings object for the compliance client."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    api_url: str = Field(
        DEFAULT_API_URL,
        validation_alias="COMPLIANCE_API_URL",
        description="Base URL of the remote compliance service.",
    )
    request_timeout_seconds: float = Field(
        120.0,
        validation_alias="COMPLIANCE_REQUEST_TIMEOUT",
        description="Per-request timeout; analysis calls can take a while.",
    )
    log_level: str = Field("INFO", validation_alias="COMPLIANCE_LOG_LEVEL")
    credential_store_path: str = Field(
        "~/.compliance_client/session.db",
        validation_alias="COMPLIANCE_CREDENTIAL_STORE",
        description="SQLite file holding the persisted access and refresh tokens.",
    )
    token_encryption_secret: Optional[str] = Field(
        None,
        validation_alias="COMPLIANCE_TOKEN_SECRET",
        description="When set, persisted tokens are encrypted at rest.",
    )
    max_upload_bytes: int = Field(
        10 * 1024 * 1024,
        validation_alias="COMPLIANCE_MAX_UPLOAD_BYTES",
    )

    @field_validator("api_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        cleaned = value.strip().rstrip("/")
        return cleaned or DEFAULT_API_URL


@lru_cache()
def get_settings() -> ClientSettings:
    """Return a cached settings object."""
    return ClientSettings()


__all__ = ["ClientSettings", "DEFAULT_API_URL", "get_settings"]
