"""Expose constructed client wrappers."""

from .tiktok_auth import OAuthTokenExchangeError, TikTokOAuthClient
from .tiktok_content import TikTokAPIError, TikTokContentClient
from .token_store import (
    DEFAULT_ACCOUNT,
    EncryptedFileTokenStore,
    TokenStore,
    TokenStoreCorruptedError,
)

__all__ = [
    "DEFAULT_ACCOUNT",
    "EncryptedFileTokenStore",
    "OAuthTokenExchangeError",
    "TikTokAPIError",
    "TikTokContentClient",
    "TikTokOAuthClient",
    "TokenStore",
    "TokenStoreCorruptedError",
]
