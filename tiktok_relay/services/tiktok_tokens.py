"""
Helpers for retrieving and refreshing TikTok OAuth tokens.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

import httpx

from tiktok_relay.clients.tiktok_auth import OAuthTokenExchangeError, TikTokOAuthClient
from tiktok_relay.clients.token_store import DEFAULT_ACCOUNT, TokenStore
from tiktok_relay.models.oauth import TokenRecord, now_ms

logger = logging.getLogger(__name__)


class AuthenticationStateError(Exception):
    """Local token state prevents calling TikTok; the operator must log in."""


class TokenNotFoundError(AuthenticationStateError):
    """Raised when no token record has been stored yet."""


class TokenRefreshError(AuthenticationStateError):
    """Raised when the refresh-token grant fails."""


class TikTokTokenService:
    """Hands out valid access tokens, refreshing them shortly before expiry."""

    REFRESH_MARGIN_MS = 60 * 1000

    def __init__(
        self,
        store: TokenStore,
        oauth_client: TikTokOAuthClient,
        *,
        login_url: str,
        account: str = DEFAULT_ACCOUNT,
    ) -> None:
        self._store = store
        self._oauth = oauth_client
        self._login_url = login_url
        self._account = account

    def store_exchange(self, token_payload: Mapping[str, Any]) -> TokenRecord:
        """Persist the record produced by a successful code exchange."""
        record = TokenRecord.from_token_response(token_payload)
        self._store.save(record, self._account)
        return record

    async def get_access_token(self) -> str:
        """Return a usable access token, refreshing through TikTok if needed."""
        record = self._store.load(self._account)
        if record is None:
            raise TokenNotFoundError(
                "No tokens available. Please complete OAuth flow first. "
                f"Visit {self._login_url}"
            )

        if record.is_access_token_valid(at_ms=now_ms(), margin_ms=self.REFRESH_MARGIN_MS):
            logger.debug("Using existing access token")
            return record.access_token

        logger.info("Refreshing TikTok access token")
        try:
            token_payload = await self._oauth.refresh_token(record.refresh_token)
            refreshed = TokenRecord.from_token_response(
                token_payload, fallback_refresh_token=record.refresh_token
            )
        except (OAuthTokenExchangeError, httpx.HTTPError, ValueError, TypeError) as exc:
            # ValueError/TypeError: the payload carried values of the wrong shape.
            logger.error("Token refresh failed: %s", exc)
            raise TokenRefreshError(
                f"Token refresh failed. Please re-authenticate at {self._login_url}"
            ) from exc

        self._store.save(refreshed, self._account)
        logger.info("Token refreshed successfully")
        return refreshed.access_token


__all__ = [
    "AuthenticationStateError",
    "TikTokTokenService",
    "TokenNotFoundError",
    "TokenRefreshError",
]
