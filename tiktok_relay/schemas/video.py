"""Request schemas for the video endpoints."""

from __future__ import annotations

from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, Field

PrivacyLevel = Literal[
    "PUBLIC_TO_EVERYONE",
    "MUTUAL_FOLLOW_FRIENDS",
    "FOLLOWER_OF_CREATOR",
    "SELF_ONLY",
]


class PostInfo(BaseModel):
    """Publishing options forwarded verbatim to TikTok's direct-post init."""

    title: str = Field("", max_length=2200)
    privacy_level: PrivacyLevel = "SELF_ONLY"
    disable_comment: bool = False
    disable_duet: bool = False
    disable_stitch: bool = False
    video_cover_timestamp_ms: int = Field(1000, ge=0)

    def to_api(self) -> Dict[str, Any]:
        return self.model_dump()


class VideoUploadRequest(BaseModel):
    """Pull a remote video and upload it to TikTok."""

    video_url: Optional[str] = Field(
        None, description="HTTP(S) location the server downloads the video from."
    )
    post_info: Optional[PostInfo] = Field(
        None,
        description="When present the video is published directly instead of landing in the inbox.",
    )


class DirectPostRequest(PostInfo):
    """Publish a video file that already sits on the server's filesystem."""

    file_path: Optional[str] = Field(None, description="Absolute path of the video file.")

    def post_info(self) -> PostInfo:
        return PostInfo(**self.model_dump(exclude={"file_path"}))


__all__ = ["DirectPostRequest", "PostInfo", "PrivacyLevel", "VideoUploadRequest"]
