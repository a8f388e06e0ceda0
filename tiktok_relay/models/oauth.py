"""
Domain models for OAuth token persistence.
"""

from __future__ import annotations

import time
from typing import Any, Mapping, Optional

from pydantic import BaseModel, Field


def now_ms() -> int:
    """Current wall-clock time as epoch milliseconds."""
    return int(time.time() * 1000)


class TokenRecord(BaseModel):
    """The persisted TikTok credential set for one account."""

    access_token: str = Field(..., min_length=1)
    refresh_token: str = Field(..., min_length=1)
    expires_at: int = Field(
        ..., description="Epoch milliseconds after which access_token is invalid."
    )
    open_id: Optional[str] = None
    scope: Optional[str] = None
    refresh_expires_at: Optional[int] = Field(
        None, description="Epoch milliseconds after which refresh_token is invalid."
    )

    @classmethod
    def from_token_response(
        cls,
        payload: Mapping[str, Any],
        *,
        issued_at_ms: int | None = None,
        fallback_refresh_token: str | None = None,
    ) -> "TokenRecord":
        """Build a record from a TikTok ``/v2/oauth/token/`` response body."""
        issued = issued_at_ms if issued_at_ms is not None else now_ms()
        refresh_expires_in = payload.get("refresh_expires_in")
        return cls(
            access_token=payload["access_token"],
            refresh_token=payload.get("refresh_token") or fallback_refresh_token,
            expires_at=issued + int(payload["expires_in"]) * 1000,
            open_id=payload.get("open_id"),
            scope=payload.get("scope"),
            refresh_expires_at=(
                issued + int(refresh_expires_in) * 1000
                if refresh_expires_in is not None
                else None
            ),
        )

    def is_access_token_valid(self, *, at_ms: int, margin_ms: int = 0) -> bool:
        return at_ms < self.expires_at - margin_ms


__all__ = ["TokenRecord", "now_ms"]
