"""Expose dependency helpers for FastAPI routers."""

from .clients import (
    get_pending_authorization_store,
    get_shutdown_controller,
    get_tiktok_content_client,
    get_tiktok_oauth_client,
    get_tiktok_token_service,
    get_token_cipher_service,
    get_token_store,
    get_video_publisher,
)
from .config import SettingsDependency, get_app_settings

__all__ = [
    "SettingsDependency",
    "get_app_settings",
    "get_pending_authorization_store",
    "get_shutdown_controller",
    "get_tiktok_content_client",
    "get_tiktok_oauth_client",
    "get_tiktok_token_service",
    "get_token_cipher_service",
    "get_token_store",
    "get_video_publisher",
]
