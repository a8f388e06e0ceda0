from __future__ import annotations

import httpx
import pytest

from tiktok_relay.clients.tiktok_auth import TikTokOAuthClient
from tiktok_relay.models.oauth import TokenRecord, now_ms
from tiktok_relay.services.tiktok_tokens import (
    TikTokTokenService,
    TokenNotFoundError,
    TokenRefreshError,
)


def _store_record(token_store, *, expires_in_ms: int, access_token: str = "old-access") -> None:
    token_store.save(
        TokenRecord(
            access_token=access_token,
            refresh_token="old-refresh",
            expires_at=now_ms() + expires_in_ms,
        )
    )


@pytest.mark.asyncio
async def test_missing_record_points_to_login(token_service) -> None:
    with pytest.raises(TokenNotFoundError) as excinfo:
        await token_service.get_access_token()

    assert "http://relay.test/auth/login" in str(excinfo.value)


@pytest.mark.asyncio
async def test_token_outside_margin_is_used_as_is(token_service, token_store, fake_tiktok) -> None:
    _store_record(token_store, expires_in_ms=61_000)

    assert await token_service.get_access_token() == "old-access"
    assert fake_tiktok.token_forms == []


@pytest.mark.asyncio
async def test_token_inside_margin_is_refreshed(token_service, token_store, fake_tiktok) -> None:
    _store_record(token_store, expires_in_ms=59_000)
    fake_tiktok.queue_token(
        access_token="new-access",
        refresh_token="new-refresh",
        expires_in=86400,
        open_id="open-1",
        scope="user.info.basic",
    )

    before = now_ms()
    assert await token_service.get_access_token() == "new-access"

    assert fake_tiktok.token_forms == [
        {
            "client_key": "client-key",
            "client_secret": "client-secret",
            "grant_type": "refresh_token",
            "refresh_token": "old-refresh",
        }
    ]
    stored = token_store.load()
    assert stored.access_token == "new-access"
    assert stored.refresh_token == "new-refresh"
    assert stored.open_id == "open-1"
    assert stored.expires_at >= before + 86_400_000


@pytest.mark.asyncio
async def test_refresh_keeps_refresh_token_when_not_rotated(
    token_service, token_store, fake_tiktok
) -> None:
    _store_record(token_store, expires_in_ms=-1)
    fake_tiktok.queue_token(access_token="new-access", expires_in=3600)

    await token_service.get_access_token()

    assert token_store.load().refresh_token == "old-refresh"


@pytest.mark.asyncio
async def test_refresh_error_body_requires_login(token_service, token_store, fake_tiktok) -> None:
    _store_record(token_store, expires_in_ms=0)
    fake_tiktok.queue_token(
        400, error="invalid_grant", error_description="Refresh token is invalid or expired."
    )

    with pytest.raises(TokenRefreshError) as excinfo:
        await token_service.get_access_token()

    assert "re-authenticate" in str(excinfo.value)
    assert token_store.load().access_token == "old-access"


@pytest.mark.asyncio
async def test_refresh_with_non_numeric_expiry_requires_login(
    token_service, token_store, fake_tiktok
) -> None:
    _store_record(token_store, expires_in_ms=0)
    fake_tiktok.queue_token(access_token="new-access", expires_in="soon")

    with pytest.raises(TokenRefreshError) as excinfo:
        await token_service.get_access_token()

    assert "/auth/login" in str(excinfo.value)
    assert token_store.load().access_token == "old-access"


@pytest.mark.asyncio
async def test_refresh_transport_failure_requires_login(token_store, tiktok_settings) -> None:
    def unreachable(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    oauth_client = TikTokOAuthClient(
        tiktok_settings, transport=httpx.MockTransport(unreachable)
    )
    service = TikTokTokenService(token_store, oauth_client, login_url="http://x/auth/login")
    _store_record(token_store, expires_in_ms=0)

    with pytest.raises(TokenRefreshError):
        await service.get_access_token()


def test_store_exchange_computes_expiry(token_service, token_store) -> None:
    before = now_ms()

    record = token_service.store_exchange(
        {"access_token": "A", "refresh_token": "R", "expires_in": 3600}
    )

    assert token_store.load() == record
    assert before + 3_600_000 <= record.expires_at <= now_ms() + 3_600_000
