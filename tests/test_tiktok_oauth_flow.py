try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover
    import _bootstrap  # type: ignore # noqa: F401

from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from tiktok_relay.clients.tiktok_auth import code_challenge
from tiktok_relay.main import app
from tiktok_relay.services.pkce_sessions import PendingAuthorizationStore

pytestmark = pytest.mark.anyio("asyncio")


@pytest.fixture()
def oauth_overrides(oauth_client, content_client, token_service, fake_tiktok, token_store):
    from tiktok_relay import dependencies

    sessions = PendingAuthorizationStore(ttl_seconds=600)
    app.dependency_overrides.clear()
    app.dependency_overrides.update(
        {
            dependencies.get_tiktok_oauth_client: lambda: oauth_client,
            dependencies.get_tiktok_content_client: lambda: content_client,
            dependencies.get_tiktok_token_service: lambda: token_service,
            dependencies.get_pending_authorization_store: lambda: sessions,
        }
    )

    yield fake_tiktok, sessions, token_store

    app.dependency_overrides.clear()


def _client() -> httpx.AsyncClient:
    return httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app), base_url="http://testserver"
    )


async def _login(client: httpx.AsyncClient) -> dict[str, str]:
    response = await client.get("/auth/login")
    assert response.status_code == 307
    location = response.headers["location"]
    assert location.startswith("https://www.tiktok.com/v2/auth/authorize/?")
    return {key: values[0] for key, values in parse_qs(urlparse(location).query).items()}


async def test_login_redirects_with_pkce_challenge(oauth_overrides):
    _, sessions, _ = oauth_overrides

    async with _client() as client:
        params = await _login(client)

    assert params["client_key"] == "client-key"
    assert params["redirect_uri"] == "https://relay.test/auth/callback"
    assert params["response_type"] == "code"
    assert params["code_challenge_method"] == "S256"
    assert "video.upload" in params["scope"].split(",")

    flow = sessions.consume(params["state"])
    assert flow is not None
    assert params["code_challenge"] == code_challenge(flow.code_verifier)


async def test_login_then_callback_then_creator_info(oauth_overrides):
    fake_tiktok, sessions, token_store = oauth_overrides
    fake_tiktok.queue_token(access_token="A", refresh_token="R", expires_in=3600)

    async with _client() as client:
        params = await _login(client)
        callback = await client.get(
            "/auth/callback", params={"code": "auth-code", "state": params["state"]}
        )
        creator = await client.get("/creator-info")

    assert callback.status_code == 200
    assert "text/html" in callback.headers["content-type"]
    assert "Login Successful" in callback.text

    exchange = fake_tiktok.token_forms[0]
    assert exchange["grant_type"] == "authorization_code"
    assert exchange["code"] == "auth-code"
    assert code_challenge(exchange["code_verifier"]) == params["code_challenge"]
    assert len(sessions) == 0

    stored = token_store.load()
    assert (stored.access_token, stored.refresh_token) == ("A", "R")

    assert creator.status_code == 200
    assert creator.json() == fake_tiktok.creator_info
    (creator_request,) = fake_tiktok.requests_to("/v2/post/publish/creator_info/query/")
    assert creator_request.headers["authorization"] == "Bearer A"
    assert len(fake_tiktok.token_forms) == 1


async def test_callback_requires_code(oauth_overrides):
    async with _client() as client:
        response = await client.get("/auth/callback", params={"state": "s"})

    assert response.status_code == 400
    assert response.json()["detail"] == "Missing code"


async def test_callback_rejects_unknown_state(oauth_overrides):
    fake_tiktok, _, _ = oauth_overrides

    async with _client() as client:
        response = await client.get(
            "/auth/callback", params={"code": "c", "state": "never-issued"}
        )

    assert response.status_code == 400
    assert fake_tiktok.token_forms == []


async def test_callback_relays_oauth_error(oauth_overrides):
    async with _client() as client:
        response = await client.get(
            "/auth/callback",
            params={"error": "access_denied", "error_description": "User cancelled"},
        )

    assert response.status_code == 400
    assert response.json()["detail"] == {
        "oauth_error": "access_denied",
        "description": "User cancelled",
    }


async def test_callback_reports_token_endpoint_error(oauth_overrides):
    fake_tiktok, _, token_store = oauth_overrides
    fake_tiktok.queue_token(
        400, error="invalid_request", error_description="Code verifier mismatch"
    )

    async with _client() as client:
        params = await _login(client)
        response = await client.get(
            "/auth/callback", params={"code": "c", "state": params["state"]}
        )

    assert response.status_code == 400
    assert "invalid_request" in response.json()["detail"]
    assert token_store.load() is None
