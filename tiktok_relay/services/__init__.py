"""Service layer exports."""

from .token_cipher import TokenCipherService, TokenDecryptionError
from .pkce_sessions import PendingAuthorization, PendingAuthorizationStore
from .shutdown import ShutdownController
from .tiktok_tokens import (
    AuthenticationStateError,
    TikTokTokenService,
    TokenNotFoundError,
    TokenRefreshError,
)
from .video_publisher import UploadResult, VideoPublisher, VideoSourceError

__all__ = [
    "AuthenticationStateError",
    "PendingAuthorization",
    "PendingAuthorizationStore",
    "ShutdownController",
    "TikTokTokenService",
    "TokenCipherService",
    "TokenDecryptionError",
    "TokenNotFoundError",
    "TokenRefreshError",
    "UploadResult",
    "VideoPublisher",
    "VideoSourceError",
]
