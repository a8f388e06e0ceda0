"""Video upload orchestration on top of the Content Posting API."""

from __future__ import annotations

import logging
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, BinaryIO, Dict, Optional

from tiktok_relay.clients.tiktok_content import TikTokContentClient

logger = logging.getLogger(__name__)

MiB = 1024 * 1024
# Videos at or below this size go up as one chunk.
MAX_SINGLE_CHUNK_BYTES = 64 * MiB
DEFAULT_CHUNK_BYTES = 10 * MiB


class VideoSourceError(Exception):
    """Raised when the video to publish cannot be read."""


@dataclass(frozen=True, slots=True)
class UploadResult:
    publish_id: str
    video_size: int
    direct_post: bool

    @property
    def video_size_mb(self) -> str:
        return f"{self.video_size / MiB:.2f}"


def plan_chunks(video_size: int) -> tuple[int, int]:
    """Return ``(chunk_size, total_chunk_count)`` for a video of ``video_size`` bytes.

    The final chunk absorbs the remainder, so it may be up to twice
    ``chunk_size`` long.
    """
    if video_size <= 0:
        raise VideoSourceError("Video is empty.")
    if video_size <= MAX_SINGLE_CHUNK_BYTES:
        return video_size, 1
    return DEFAULT_CHUNK_BYTES, video_size // DEFAULT_CHUNK_BYTES


class VideoPublisher:
    """Initialise an upload session and push the video bytes to TikTok."""

    def __init__(self, content_client: TikTokContentClient) -> None:
        self._content = content_client

    async def upload_from_url(
        self,
        access_token: str,
        video_url: str,
        *,
        post_info: Optional[Dict[str, Any]] = None,
    ) -> UploadResult:
        """Download ``video_url`` to a scratch file and upload it."""
        with tempfile.TemporaryFile() as scratch:
            logger.info("Downloading video from %s", video_url)
            size = await self._content.download_video(video_url, scratch)
            logger.info("Downloaded %.2f MB", size / MiB)
            return await self._publish(access_token, scratch, size, post_info)

    async def upload_file(
        self,
        access_token: str,
        path: Path | str,
        *,
        post_info: Optional[Dict[str, Any]] = None,
    ) -> UploadResult:
        """Upload a local file; the file itself is left in place."""
        video_path = Path(path)
        if not video_path.is_file():
            raise VideoSourceError(f"Video file not found: {video_path}")
        with video_path.open("rb") as handle:
            size = video_path.stat().st_size
            return await self._publish(access_token, handle, size, post_info)

    async def _publish(
        self,
        access_token: str,
        handle: BinaryIO,
        size: int,
        post_info: Optional[Dict[str, Any]],
    ) -> UploadResult:
        chunk_size, chunk_count = plan_chunks(size)
        source_info = {
            "source": "FILE_UPLOAD",
            "video_size": size,
            "chunk_size": chunk_size,
            "total_chunk_count": chunk_count,
        }
        if post_info is not None:
            session = await self._content.init_direct_post(
                access_token, post_info=post_info, source_info=source_info
            )
        else:
            session = await self._content.init_inbox_upload(
                access_token, source_info=source_info
            )

        logger.info(
            "Uploading %d bytes in %d chunk(s) for publish %s",
            size,
            chunk_count,
            session["publish_id"],
        )
        handle.seek(0)
        offset = 0
        for index in range(chunk_count):
            is_last = index == chunk_count - 1
            chunk = handle.read(size - offset if is_last else chunk_size)
            if not chunk:
                raise VideoSourceError("Video ended before all chunks were read.")
            await self._content.upload_chunk(
                session["upload_url"], chunk, first_byte=offset, total_size=size
            )
            offset += len(chunk)

        logger.info("Upload complete for publish %s", session["publish_id"])
        return UploadResult(
            publish_id=session["publish_id"],
            video_size=size,
            direct_post=post_info is not None,
        )


__all__ = [
    "DEFAULT_CHUNK_BYTES",
    "MAX_SINGLE_CHUNK_BYTES",
    "UploadResult",
    "VideoPublisher",
    "VideoSourceError",
    "plan_chunks",
]
