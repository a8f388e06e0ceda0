"""
Settings dependency for routes that render operator-facing URLs.
"""

from typing import Annotated

from fastapi import Depends

from tiktok_relay.core.config import AppSettings, get_settings


def get_app_settings() -> AppSettings:
    """FastAPI dependency returning the process-wide settings."""
    return get_settings()


SettingsDependency = Annotated[AppSettings, Depends(get_app_settings)]

__all__ = ["SettingsDependency", "get_app_settings"]
