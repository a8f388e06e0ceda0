"""
Thin async wrapper around the TikTok Display and Content Posting APIs.

Every call takes an already-valid access token; token lifecycle lives in
``TikTokTokenService``.
"""

from __future__ import annotations

import logging
from typing import Any, BinaryIO, Dict, Optional

import httpx

from tiktok_relay.core.config import TikTokSettings
from tiktok_relay.utils.http import bearer_headers, response_body

logger = logging.getLogger(__name__)

# Remote video pulls are refused beyond this size.
MAX_DOWNLOAD_BYTES = 500 * 1024 * 1024

_UPLOAD_TIMEOUT_SECONDS = 300.0


class TikTokAPIError(Exception):
    """Raised when TikTok answers with a non-success status or error body."""

    def __init__(
        self, message: str, *, status_code: int | None = None, payload: Any = None
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload


class TikTokContentClient:
    """Forward Open API calls on behalf of the authenticated creator."""

    API_BASE_URL = "https://open.tiktokapis.com"
    CREATOR_INFO_PATH = "/v2/post/publish/creator_info/query/"
    USER_INFO_PATH = "/v2/user/info/"
    INBOX_INIT_PATH = "/v2/post/publish/inbox/video/init/"
    DIRECT_POST_INIT_PATH = "/v2/post/publish/video/init/"
    STATUS_FETCH_PATH = "/v2/post/publish/status/fetch/"

    def __init__(
        self,
        settings: TikTokSettings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings
        self._transport = transport

    def _client(self, *, timeout: float | None = None) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.API_BASE_URL,
            timeout=timeout or self._settings.http_timeout_seconds,
            transport=self._transport,
        )

    async def query_creator_info(self, access_token: str) -> Dict[str, Any]:
        async with self._client() as client:
            response = await client.post(
                self.CREATOR_INFO_PATH, json={}, headers=bearer_headers(access_token)
            )
        return self._relay(response, "Creator info query failed")

    async def get_user_info(self, access_token: str, *, fields: str) -> Dict[str, Any]:
        async with self._client() as client:
            response = await client.get(
                self.USER_INFO_PATH,
                params={"fields": fields},
                headers=bearer_headers(access_token, json_body=False),
            )
        return self._relay(response, "User info request failed")

    async def fetch_publish_status(
        self, access_token: str, *, publish_id: str
    ) -> Dict[str, Any]:
        async with self._client() as client:
            response = await client.post(
                self.STATUS_FETCH_PATH,
                json={"publish_id": publish_id},
                headers=bearer_headers(access_token),
            )
        return self._relay(response, "Status check failed")

    async def init_inbox_upload(
        self, access_token: str, *, source_info: Dict[str, Any]
    ) -> Dict[str, Any]:
        """Open an inbox (draft) upload session; returns ``publish_id`` and ``upload_url``."""
        return await self._init_upload(
            self.INBOX_INIT_PATH, access_token, {"source_info": source_info}
        )

    async def init_direct_post(
        self,
        access_token: str,
        *,
        post_info: Dict[str, Any],
        source_info: Dict[str, Any],
    ) -> Dict[str, Any]:
        """Open a direct-post session that publishes once the bytes arrive."""
        return await self._init_upload(
            self.DIRECT_POST_INIT_PATH,
            access_token,
            {"post_info": post_info, "source_info": source_info},
        )

    async def _init_upload(
        self, path: str, access_token: str, body: Dict[str, Any]
    ) -> Dict[str, Any]:
        async with self._client() as client:
            response = await client.post(path, json=body, headers=bearer_headers(access_token))
        payload = self._relay(response, "Upload initialization failed")

        error = payload.get("error")
        if error and not isinstance(error, dict):
            raise TikTokAPIError(
                f"TikTok API Error: {error}",
                status_code=response.status_code,
                payload=payload,
            )
        if error and error.get("code") not in (None, "ok"):
            raise TikTokAPIError(
                f"TikTok API Error: {error.get('message') or error.get('code')}",
                status_code=response.status_code,
                payload=payload,
            )
        data = payload.get("data")
        if (
            not isinstance(data, dict)
            or not data.get("publish_id")
            or not data.get("upload_url")
        ):
            raise TikTokAPIError(
                "Upload initialization returned no publish_id/upload_url.",
                status_code=response.status_code,
                payload=payload,
            )
        return data

    async def upload_chunk(
        self, upload_url: str, chunk: bytes, *, first_byte: int, total_size: int
    ) -> None:
        last_byte = first_byte + len(chunk) - 1
        headers = {
            "Content-Range": f"bytes {first_byte}-{last_byte}/{total_size}",
            "Content-Type": "video/mp4",
            "Content-Length": str(len(chunk)),
        }
        async with httpx.AsyncClient(
            timeout=_UPLOAD_TIMEOUT_SECONDS, transport=self._transport
        ) as client:
            response = await client.put(upload_url, content=chunk, headers=headers)
        if response.status_code not in (httpx.codes.OK, httpx.codes.CREATED, 206):
            raise TikTokAPIError(
                f"Chunk upload for bytes {first_byte}-{last_byte} failed.",
                status_code=response.status_code,
                payload=response_body(response),
            )

    async def download_video(
        self,
        url: str,
        destination: BinaryIO,
        *,
        max_bytes: int = MAX_DOWNLOAD_BYTES,
    ) -> int:
        """Stream ``url`` into ``destination``; returns the number of bytes written."""
        written = 0
        async with httpx.AsyncClient(
            timeout=_UPLOAD_TIMEOUT_SECONDS,
            transport=self._transport,
            follow_redirects=True,
        ) as client:
            async with client.stream("GET", url) as response:
                if response.status_code != httpx.codes.OK:
                    await response.aread()
                    raise TikTokAPIError(
                        f"Video download returned HTTP {response.status_code}.",
                        status_code=response.status_code,
                        payload=response_body(response),
                    )
                declared = _content_length(response)
                if declared is not None and declared > max_bytes:
                    raise TikTokAPIError(
                        f"Video is {declared} bytes; the limit is {max_bytes} bytes."
                    )
                async for block in response.aiter_bytes():
                    written += len(block)
                    if written > max_bytes:
                        raise TikTokAPIError(
                            f"Video exceeds the {max_bytes} byte download limit."
                        )
                    destination.write(block)
        destination.flush()
        return written

    @staticmethod
    def _relay(response: httpx.Response, summary: str) -> Dict[str, Any]:
        payload = response_body(response)
        if not response.is_success or not isinstance(payload, dict):
            logger.warning("%s: HTTP %s", summary, response.status_code)
            raise TikTokAPIError(
                summary, status_code=response.status_code, payload=payload
            )
        return payload


def _content_length(response: httpx.Response) -> Optional[int]:
    raw = response.headers.get("content-length")
    if raw is None or not raw.isdigit():
        return None
    return int(raw)


__all__ = ["MAX_DOWNLOAD_BYTES", "TikTokAPIError", "TikTokContentClient"]
