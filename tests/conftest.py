"""Pytest configuration shared across the suite."""

try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

from pathlib import Path

import pytest

from tiktok_relay.clients.tiktok_auth import TikTokOAuthClient
from tiktok_relay.clients.tiktok_content import TikTokContentClient
from tiktok_relay.clients.token_store import EncryptedFileTokenStore
from tiktok_relay.core.config import TikTokSettings
from tiktok_relay.services.tiktok_tokens import TikTokTokenService
from tiktok_relay.services.token_cipher import TokenCipherService

try:
    from ._stubs import FakeTikTok
except ImportError:  # pragma: no cover - fallback for direct execution
    from _stubs import FakeTikTok  # type: ignore

LOGIN_URL = "http://relay.test/auth/login"


@pytest.fixture
def anyio_backend() -> str:
    """Force AnyIO-powered tests to run against asyncio backend only."""
    return "asyncio"


@pytest.fixture()
def tiktok_settings() -> TikTokSettings:
    return TikTokSettings(
        TIKTOK_CLIENT_KEY="client-key",
        TIKTOK_CLIENT_SECRET="client-secret",
        TIKTOK_REDIRECT_URI="https://relay.test/auth/callback",
    )


@pytest.fixture()
def fake_tiktok() -> FakeTikTok:
    return FakeTikTok()


@pytest.fixture()
def token_store(tmp_path: Path) -> EncryptedFileTokenStore:
    return EncryptedFileTokenStore(
        tmp_path / "tokens.encrypted", TokenCipherService(secret="test-secret")
    )


@pytest.fixture()
def oauth_client(tiktok_settings, fake_tiktok) -> TikTokOAuthClient:
    return TikTokOAuthClient(tiktok_settings, transport=fake_tiktok.transport)


@pytest.fixture()
def content_client(tiktok_settings, fake_tiktok) -> TikTokContentClient:
    return TikTokContentClient(tiktok_settings, transport=fake_tiktok.transport)


@pytest.fixture()
def token_service(token_store, oauth_client) -> TikTokTokenService:
    return TikTokTokenService(token_store, oauth_client, login_url=LOGIN_URL)
