"""Public schema exports."""

from .video import DirectPostRequest, PostInfo, PrivacyLevel, VideoUploadRequest

__all__ = [
    "DirectPostRequest",
    "PostInfo",
    "PrivacyLevel",
    "VideoUploadRequest",
]
