"""
FastAPI routes for the TikTok OAuth relay.
"""

from __future__ import annotations

import logging
import tempfile
import time
from datetime import datetime, timezone
from http import HTTPStatus
from pathlib import Path
from textwrap import dedent
from typing import Annotated, Any, Awaitable, Callable

import httpx
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Request
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from pydantic import ValidationError
from starlette.datastructures import UploadFile

from tiktok_relay.clients import (
    OAuthTokenExchangeError,
    TikTokAPIError,
    TokenStoreCorruptedError,
)
from tiktok_relay.dependencies import (
    SettingsDependency,
    get_pending_authorization_store,
    get_shutdown_controller,
    get_tiktok_content_client,
    get_tiktok_oauth_client,
    get_tiktok_token_service,
    get_video_publisher,
)
from tiktok_relay.schemas import DirectPostRequest, PostInfo, VideoUploadRequest
from tiktok_relay.services import (
    AuthenticationStateError,
    UploadResult,
    VideoSourceError,
)
from tiktok_relay.utils.http import error_details

router = APIRouter()
logger = logging.getLogger(__name__)

SERVICE_NAME = "TikTok OAuth2 Relay"
SERVICE_VERSION = "2.0.0"

_STARTED_AT = time.monotonic()
_SPOOL_BLOCK_BYTES = 1024 * 1024

# Failures that mean the request never produced a usable TikTok answer.
_UPSTREAM_ERRORS = (TikTokAPIError, httpx.HTTPError)
_AUTH_STATE_ERRORS = (AuthenticationStateError, TokenStoreCorruptedError)


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _error(status: HTTPStatus, error: str, details: Any = None, **extra: Any) -> JSONResponse:
    content: dict[str, Any] = {"error": error}
    if details is not None:
        content["details"] = details
    content.update(extra)
    return JSONResponse(status_code=status, content=content)


async def _forward(
    summary: str,
    token_service: Any,
    call: Callable[[str], Awaitable[Any]],
) -> Any:
    """Run ``call`` with a valid access token and map failures to envelopes."""
    try:
        access_token = await token_service.get_access_token()
        return await call(access_token)
    except _AUTH_STATE_ERRORS as exc:
        logger.error("%s: %s", summary, exc)
        return _error(HTTPStatus.INTERNAL_SERVER_ERROR, summary, str(exc))
    except _UPSTREAM_ERRORS as exc:
        logger.error("%s: %s", summary, error_details(exc))
        return _error(HTTPStatus.INTERNAL_SERVER_ERROR, summary, error_details(exc))


@router.get("/health", status_code=HTTPStatus.OK)
async def healthcheck() -> dict:
    """Liveness endpoint for monitoring."""
    return {
        "status": "healthy",
        "timestamp": _utc_now_iso(),
        "uptime": round(time.monotonic() - _STARTED_AT, 3),
    }


@router.get("/", status_code=HTTPStatus.OK)
async def describe_service(settings: SettingsDependency) -> dict:
    return {
        "name": SERVICE_NAME,
        "version": SERVICE_VERSION,
        "status": "running",
        "login_url": f"{settings.server.base_url}/auth/login",
        "endpoints": {
            "auth": "/auth/login",
            "callback": "/auth/callback",
            "creator_info": "/creator-info",
            "user_info": "/user/info?fields=open_id,union_id,avatar_url",
            "video_upload": "POST /video/upload (JSON video_url or multipart file)",
            "video_direct_post": "POST /video/direct-post (server-side file_path)",
            "video_status": "/video/status?publish_id=YOUR_PUBLISH_ID",
            "health": "/health",
            "shutdown": "POST /shutdown",
        },
        "note": "Uploads go to the TikTok inbox unless post_info is supplied.",
    }


@router.get("/auth/login", status_code=HTTPStatus.TEMPORARY_REDIRECT)
async def start_tiktok_oauth_flow(
    oauth_client: Annotated[Any, Depends(get_tiktok_oauth_client)],
    sessions: Annotated[Any, Depends(get_pending_authorization_store)],
) -> RedirectResponse:
    """Redirect to the TikTok consent screen with a fresh PKCE challenge."""
    flow = sessions.create()
    authorization_url = oauth_client.build_authorization_url(
        state=flow.state, code_challenge=flow.code_challenge
    )
    logger.info("Starting TikTok OAuth flow (%d pending)", len(sessions))
    return RedirectResponse(url=authorization_url, status_code=HTTPStatus.TEMPORARY_REDIRECT)


@router.get("/auth/callback", response_class=HTMLResponse, status_code=HTTPStatus.OK)
async def handle_tiktok_oauth_callback(
    oauth_client: Annotated[Any, Depends(get_tiktok_oauth_client)],
    sessions: Annotated[Any, Depends(get_pending_authorization_store)],
    token_service: Annotated[Any, Depends(get_tiktok_token_service)],
    code: str | None = Query(default=None, description="Authorization code from TikTok."),
    state: str | None = Query(default=None, description="State issued by /auth/login."),
    error: str | None = Query(default=None),
    error_description: str | None = Query(default=None),
) -> HTMLResponse:
    """Complete the OAuth exchange and persist the issued tokens."""
    if error:
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST,
            detail={"oauth_error": error, "description": error_description},
        )
    if not code:
        raise HTTPException(status_code=HTTPStatus.BAD_REQUEST, detail="Missing code")
    if not state:
        raise HTTPException(status_code=HTTPStatus.BAD_REQUEST, detail="Missing state")

    flow = sessions.consume(state)
    if flow is None:
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST,
            detail="No code verifier found for this state; start again at /auth/login.",
        )

    try:
        token_payload = await oauth_client.exchange_authorization_code(
            code, code_verifier=flow.code_verifier
        )
    except OAuthTokenExchangeError as exc:
        logger.warning("Token exchange rejected: %s", exc)
        raise HTTPException(status_code=HTTPStatus.BAD_REQUEST, detail=str(exc)) from exc
    except httpx.HTTPError as exc:
        logger.error("Token exchange error: %s", exc)
        raise HTTPException(
            status_code=HTTPStatus.INTERNAL_SERVER_ERROR, detail="Token exchange failed"
        ) from exc

    token_service.store_exchange(token_payload)

    logger.info("TikTok account connected")
    return HTMLResponse(content=_render_login_success())


@router.get("/creator-info", status_code=HTTPStatus.OK)
async def get_creator_info(
    token_service: Annotated[Any, Depends(get_tiktok_token_service)],
    content_client: Annotated[Any, Depends(get_tiktok_content_client)],
) -> Any:
    """Relay TikTok's creator_info query for the connected account."""
    return await _forward(
        "API call failed", token_service, content_client.query_creator_info
    )


@router.get("/user/info", status_code=HTTPStatus.OK)
async def get_user_info(
    token_service: Annotated[Any, Depends(get_tiktok_token_service)],
    content_client: Annotated[Any, Depends(get_tiktok_content_client)],
    fields: str | None = Query(default=None, description="Comma-separated user fields."),
) -> Any:
    if not fields:
        return _error(
            HTTPStatus.BAD_REQUEST,
            "fields query parameter is required",
            example="GET /user/info?fields=open_id,union_id,avatar_url",
        )

    async def call(access_token: str) -> Any:
        return await content_client.get_user_info(access_token, fields=fields)

    return await _forward("User info request failed", token_service, call)


@router.post("/video/upload", status_code=HTTPStatus.OK)
async def upload_video(
    request: Request,
    token_service: Annotated[Any, Depends(get_tiktok_token_service)],
    publisher: Annotated[Any, Depends(get_video_publisher)],
) -> Any:
    """Upload a video pulled from ``video_url`` or sent as multipart ``file``."""
    content_type = request.headers.get("content-type", "").lower()
    if content_type.startswith("multipart/form-data"):
        return await _upload_multipart(request, token_service, publisher)

    try:
        payload = VideoUploadRequest.model_validate(await request.json())
    except ValueError as exc:
        return _error(HTTPStatus.BAD_REQUEST, "Invalid request body", error_details(exc))
    if not payload.video_url:
        return _error(HTTPStatus.BAD_REQUEST, "video_url is required")

    post_info = payload.post_info.to_api() if payload.post_info else None

    async def call(access_token: str) -> Any:
        result = await publisher.upload_from_url(
            access_token, payload.video_url, post_info=post_info
        )
        return _upload_response(result)

    return await _upload("Video upload failed", token_service, call)


async def _upload_multipart(request: Request, token_service: Any, publisher: Any) -> Any:
    form = await request.form()
    upload = form.get("file")
    if not isinstance(upload, UploadFile):
        return _error(HTTPStatus.BAD_REQUEST, "file is required")

    post_info = None
    raw_post_info = form.get("post_info")
    if isinstance(raw_post_info, str) and raw_post_info.strip():
        try:
            post_info = PostInfo.model_validate_json(raw_post_info).to_api()
        except ValidationError as exc:
            return _error(HTTPStatus.BAD_REQUEST, "Invalid post_info", error_details(exc))

    suffix = Path(upload.filename or "").suffix or ".mp4"
    with tempfile.NamedTemporaryFile(suffix=suffix, delete=False) as spool:
        spool_path = Path(spool.name)
    try:
        with spool_path.open("wb") as handle:
            while block := await upload.read(_SPOOL_BLOCK_BYTES):
                handle.write(block)
        await upload.close()

        async def call(access_token: str) -> Any:
            result = await publisher.upload_file(
                access_token, spool_path, post_info=post_info
            )
            return _upload_response(result)

        return await _upload("Video upload failed", token_service, call)
    finally:
        spool_path.unlink(missing_ok=True)


@router.post("/video/direct-post", status_code=HTTPStatus.OK)
async def direct_post_video(
    request: Request,
    token_service: Annotated[Any, Depends(get_tiktok_token_service)],
    publisher: Annotated[Any, Depends(get_video_publisher)],
) -> Any:
    """Publish a video file that already lives on this server."""
    try:
        payload = DirectPostRequest.model_validate(await request.json())
    except ValueError as exc:
        return _error(HTTPStatus.BAD_REQUEST, "Invalid request body", error_details(exc))
    if not payload.file_path:
        return _error(HTTPStatus.BAD_REQUEST, "file_path is required")
    if not payload.title:
        return _error(HTTPStatus.BAD_REQUEST, "title is required")
    if not Path(payload.file_path).is_file():
        return _error(
            HTTPStatus.BAD_REQUEST, "file_path does not point to a file", payload.file_path
        )

    async def call(access_token: str) -> Any:
        result = await publisher.upload_file(
            access_token, payload.file_path, post_info=payload.post_info().to_api()
        )
        return _upload_response(result)

    return await _upload("Direct post failed", token_service, call)


async def _upload(
    summary: str, token_service: Any, call: Callable[[str], Awaitable[Any]]
) -> Any:
    try:
        return await _forward(summary, token_service, call)
    except VideoSourceError as exc:
        logger.error("%s: %s", summary, exc)
        return _error(HTTPStatus.INTERNAL_SERVER_ERROR, summary, str(exc))


def _upload_response(result: UploadResult) -> dict:
    if result.direct_post:
        message = "Video uploaded and submitted for direct posting"
        note = "Poll /video/status with the publish_id to follow publishing."
    else:
        message = "Video uploaded to TikTok inbox successfully"
        note = "Video is in your TikTok inbox. Open TikTok app to complete posting."
    return {
        "success": True,
        "message": message,
        "data": {
            "publish_id": result.publish_id,
            "video_size_mb": result.video_size_mb,
            "note": note,
        },
    }


@router.get("/video/status", status_code=HTTPStatus.OK)
async def get_video_status(
    token_service: Annotated[Any, Depends(get_tiktok_token_service)],
    content_client: Annotated[Any, Depends(get_tiktok_content_client)],
    publish_id: str | None = Query(default=None),
) -> Any:
    if not publish_id:
        return _error(HTTPStatus.BAD_REQUEST, "publish_id query parameter is required")

    async def call(access_token: str) -> Any:
        return await content_client.fetch_publish_status(
            access_token, publish_id=publish_id
        )

    return await _forward("Status check failed", token_service, call)


@router.post("/shutdown", status_code=HTTPStatus.OK)
async def shutdown(
    background_tasks: BackgroundTasks,
    controller: Annotated[Any, Depends(get_shutdown_controller)],
) -> dict:
    """Acknowledge, then stop the server once the response has been sent."""
    logger.info("Shutdown request received")
    background_tasks.add_task(controller.request_shutdown)
    return {
        "success": True,
        "message": "Server shutdown initiated",
        "timestamp": _utc_now_iso(),
    }


def _render_login_success() -> str:
    return dedent(
        """\
        <!DOCTYPE html>
        <html>
        <head><meta charset="utf-8"><title>TikTok connected</title></head>
        <body>
          <h1>Login Successful!</h1>
          <p>Tokens acquired and stored securely.</p>
          <h2>Available Endpoints:</h2>
          <ul>
            <li><a href="/creator-info">Creator Info</a> - Get your TikTok profile info</li>
            <li><a href="/user/info?fields=open_id,union_id,avatar_url,display_name,bio_description">User Info</a> - Get your TikTok user info</li>
            <li><a href="/health">Health Check</a> - Server status</li>
          </ul>
          <h3>API Usage:</h3>
          <pre>
        POST /video/upload
        Content-Type: application/json

        {
          "video_url": "https://example.com/bucket/video.mp4",
          "post_info": {
            "title": "Your video title with #hashtags",
            "privacy_level": "PUBLIC_TO_EVERYONE",
            "disable_comment": false,
            "disable_duet": false,
            "disable_stitch": false,
            "video_cover_timestamp_ms": 1000
          }
        }

        GET /video/status?publish_id=YOUR_PUBLISH_ID
          </pre>
        </body>
        </html>
        """
    )


__all__ = ["router"]
