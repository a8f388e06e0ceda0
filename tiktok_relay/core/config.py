"""
Application configuration models and helpers.

Centralizes settings management so the FastAPI app, the server entrypoint and
the operator scripts share a consistent configuration surface.
"""

from functools import lru_cache
from pathlib import Path
from typing import Annotated, Optional

import os

from pydantic import AnyHttpUrl, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


def _load_env_file(path: str = ".env") -> None:
    """Best-effort load key=value pairs from a .env file without extra deps."""
    env_path = Path(path)
    if not env_path.exists():
        return
    for raw_line in env_path.read_text().splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        if not sep:
            continue
        key = key.strip()
        if not key or key in os.environ:
            continue
        cleaned = value.strip().strip('"').strip("'")
        os.environ[key] = cleaned


_load_env_file()


_SETTINGS_CONFIG = SettingsConfigDict(
    env_file=".env",
    env_file_encoding="utf-8",
    extra="ignore",
    populate_by_name=True,
)


class TikTokSettings(BaseSettings):
    """Credentials and endpoints for the TikTok Open API."""

    model_config = _SETTINGS_CONFIG

    client_key: str = Field(..., validation_alias="TIKTOK_CLIENT_KEY")
    client_secret: str = Field(..., validation_alias="TIKTOK_CLIENT_SECRET")
    redirect_uri: AnyHttpUrl = Field(..., validation_alias="TIKTOK_REDIRECT_URI")
    scopes: Annotated[tuple[str, ...], NoDecode] = Field(
        (
            "user.info.basic",
            "user.info.profile",
            "user.info.stats",
            "video.publish",
            "video.upload",
        ),
        validation_alias="TIKTOK_SCOPES",
    )
    http_timeout_seconds: float = Field(
        30.0,
        validation_alias="TIKTOK_HTTP_TIMEOUT",
        description="Timeout applied to every outbound API call except byte uploads.",
    )

    @field_validator("scopes", mode="before")
    @classmethod
    def _split_scopes(
        cls, value: str | tuple[str, ...] | list[str]
    ) -> tuple[str, ...]:
        """Support providing scopes as a comma-separated string."""
        if isinstance(value, tuple):
            return value
        if isinstance(value, list):
            return tuple(value)
        return tuple(scope.strip() for scope in value.split(",") if scope.strip())


class SecuritySettings(BaseSettings):
    """Security-related configuration."""

    model_config = _SETTINGS_CONFIG

    encryption_key: str = Field(
        ...,
        validation_alias="ENCRYPTION_KEY",
        min_length=1,
        description="Secret used to derive the symmetric key for the token file.",
    )
    token_store_path: str = Field(
        "./data/tokens.encrypted",
        validation_alias="TOKEN_STORE_PATH",
    )


class OAuthSettings(BaseSettings):
    """OAuth flow configuration."""

    model_config = _SETTINGS_CONFIG

    state_ttl_seconds: int = Field(600, validation_alias="OAUTH_STATE_TTL")


class ServerSettings(BaseSettings):
    """Listener and process lifecycle settings."""

    model_config = _SETTINGS_CONFIG

    host: str = Field("0.0.0.0", validation_alias="HOST")
    port: int = Field(7777, validation_alias="PORT")
    public_base_url: Optional[str] = Field(
        None,
        validation_alias="PUBLIC_BASE_URL",
        description="Externally reachable base URL used in operator instructions.",
    )
    shutdown_delay_seconds: float = Field(
        1.0, validation_alias="SHUTDOWN_DELAY_SECONDS"
    )

    @property
    def base_url(self) -> str:
        if self.public_base_url:
            return self.public_base_url.rstrip("/")
        return f"http://localhost:{self.port}"


class AppSettings(BaseSettings):
    """Root settings object for the FastAPI application."""

    model_config = _SETTINGS_CONFIG

    environment: str = Field("development", validation_alias="APP_ENV")
    log_level: str = Field("INFO", validation_alias="APP_LOG_LEVEL")
    tiktok: TikTokSettings = Field(default_factory=TikTokSettings)
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    oauth: OAuthSettings = Field(default_factory=OAuthSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return AppSettings()  # type: ignore[call-arg]


__all__ = [
    "AppSettings",
    "OAuthSettings",
    "SecuritySettings",
    "ServerSettings",
    "TikTokSettings",
    "get_settings",
]
