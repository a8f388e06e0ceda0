"""
Factory functions to provide shared clients and services as FastAPI dependencies.
"""

from functools import lru_cache

from tiktok_relay.clients import (
    EncryptedFileTokenStore,
    TikTokContentClient,
    TikTokOAuthClient,
)
from tiktok_relay.core.config import get_settings
from tiktok_relay.services import (
    PendingAuthorizationStore,
    ShutdownController,
    TikTokTokenService,
    TokenCipherService,
    VideoPublisher,
)


@lru_cache()
def _settings():
    """Internal helper to cache settings for client factories."""
    return get_settings()


@lru_cache()
def get_token_cipher_service() -> TokenCipherService:
    """Provide symmetric encryption helper for token storage."""
    return TokenCipherService(secret=_settings().security.encryption_key)


@lru_cache()
def get_token_store() -> EncryptedFileTokenStore:
    """Provide the encrypted token file."""
    settings = _settings()
    return EncryptedFileTokenStore(
        settings.security.token_store_path, get_token_cipher_service()
    )


@lru_cache()
def get_tiktok_oauth_client() -> TikTokOAuthClient:
    """Create a singleton TikTok OAuth client."""
    return TikTokOAuthClient(_settings().tiktok)


@lru_cache()
def get_tiktok_content_client() -> TikTokContentClient:
    """Create a singleton client for the Display and Content Posting APIs."""
    return TikTokContentClient(_settings().tiktok)


@lru_cache()
def get_tiktok_token_service() -> TikTokTokenService:
    """Provide helper for handing out valid TikTok access tokens."""
    settings = _settings()
    return TikTokTokenService(
        store=get_token_store(),
        oauth_client=get_tiktok_oauth_client(),
        login_url=f"{settings.server.base_url}/auth/login",
    )


@lru_cache()
def get_pending_authorization_store() -> PendingAuthorizationStore:
    """Provide the process-local store of in-flight PKCE flows."""
    return PendingAuthorizationStore(ttl_seconds=_settings().oauth.state_ttl_seconds)


@lru_cache()
def get_video_publisher() -> VideoPublisher:
    return VideoPublisher(get_tiktok_content_client())


@lru_cache()
def get_shutdown_controller() -> ShutdownController:
    """Provide the process-wide shutdown hook."""
    return ShutdownController(delay_seconds=_settings().server.shutdown_delay_seconds)


__all__ = [
    "get_pending_authorization_store",
    "get_shutdown_controller",
    "get_tiktok_content_client",
    "get_tiktok_oauth_client",
    "get_tiktok_token_service",
    "get_token_cipher_service",
    "get_token_store",
    "get_video_publisher",
]
