"""
TikTok OAuth utilities.

These helpers manage the PKCE authorization flow and the token refresh
lifecycle against TikTok's v2 OAuth endpoints.
"""

from __future__ import annotations

import hashlib
import secrets
import string
from typing import Any, Dict
from urllib.parse import urlencode

import httpx

from tiktok_relay.core.config import TikTokSettings

# RFC 7636 unreserved characters.
_VERIFIER_ALPHABET = string.ascii_letters + string.digits + "-._~"


def generate_code_verifier(length: int = 64) -> str:
    """Return a random PKCE code verifier of ``length`` characters (43-128)."""
    if not 43 <= length <= 128:
        raise ValueError("PKCE code verifier length must be between 43 and 128.")
    return "".join(secrets.choice(_VERIFIER_ALPHABET) for _ in range(length))


def code_challenge(verifier: str) -> str:
    """Derive the S256 challenge the way TikTok expects it: hex, not base64url."""
    return hashlib.sha256(verifier.encode("utf-8")).hexdigest()


def generate_state() -> str:
    return secrets.token_urlsafe(24)


class OAuthTokenExchangeError(Exception):
    """Raised when the token endpoint returns an error."""

    def __init__(self, message: str, *, payload: Any = None) -> None:
        super().__init__(message)
        self.payload = payload


class TikTokOAuthClient:
    """Build TikTok authorization URLs and call the token endpoint."""

    AUTH_BASE_URL = "https://www.tiktok.com/v2/auth/authorize/"
    TOKEN_URL = "https://open.tiktokapis.com/v2/oauth/token/"

    def __init__(
        self,
        settings: TikTokSettings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings
        self._transport = transport

    def build_authorization_url(self, *, state: str, code_challenge: str) -> str:
        """Construct the TikTok consent URL for a PKCE flow."""
        params = {
            "client_key": self._settings.client_key,
            "redirect_uri": str(self._settings.redirect_uri),
            "response_type": "code",
            "scope": ",".join(self._settings.scopes),
            "state": state,
            "code_challenge": code_challenge,
            "code_challenge_method": "S256",
        }
        return f"{self.AUTH_BASE_URL}?{urlencode(params)}"

    async def exchange_authorization_code(
        self, code: str, *, code_verifier: str
    ) -> Dict[str, Any]:
        """
        Exchange an authorization code for tokens.

        Returns the raw token payload (``access_token``, ``refresh_token``,
        ``expires_in`` and friends).
        """
        payload = {
            "client_key": self._settings.client_key,
            "client_secret": self._settings.client_secret,
            "code": code,
            "grant_type": "authorization_code",
            "redirect_uri": str(self._settings.redirect_uri),
            "code_verifier": code_verifier,
        }
        token_payload = await self._post_token(payload)
        if not token_payload.get("access_token"):
            raise OAuthTokenExchangeError(
                "Access token not received.", payload=token_payload
            )
        if not token_payload.get("refresh_token") or not token_payload.get("expires_in"):
            raise OAuthTokenExchangeError(
                "Incomplete token payload returned from TikTok.", payload=token_payload
            )
        return token_payload

    async def refresh_token(self, refresh_token: str) -> Dict[str, Any]:
        """Refresh the access token using a stored refresh token."""
        payload = {
            "client_key": self._settings.client_key,
            "client_secret": self._settings.client_secret,
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
        }
        token_payload = await self._post_token(payload)
        if not token_payload.get("access_token") or not token_payload.get("expires_in"):
            raise OAuthTokenExchangeError(
                "Incomplete refresh payload returned from TikTok.", payload=token_payload
            )
        return token_payload

    async def _post_token(self, form: Dict[str, str]) -> Dict[str, Any]:
        async with httpx.AsyncClient(
            timeout=self._settings.http_timeout_seconds, transport=self._transport
        ) as client:
            response = await client.post(
                self.TOKEN_URL,
                data=form,
                headers={"Content-Type": "application/x-www-form-urlencoded"},
            )

        try:
            token_payload = response.json()
        except ValueError:
            token_payload = {"raw": response.text}

        # TikTok reports token errors in the body, sometimes with a 200 status.
        if isinstance(token_payload, dict) and token_payload.get("error"):
            raise OAuthTokenExchangeError(
                f"Error: {token_payload.get('error')}, "
                f"Description: {token_payload.get('error_description')}",
                payload=token_payload,
            )
        if response.status_code != httpx.codes.OK or not isinstance(token_payload, dict):
            raise OAuthTokenExchangeError(
                f"Token endpoint returned HTTP {response.status_code}.",
                payload=token_payload,
            )
        return token_payload


__all__ = [
    "OAuthTokenExchangeError",
    "TikTokOAuthClient",
    "code_challenge",
    "generate_code_verifier",
    "generate_state",
]
