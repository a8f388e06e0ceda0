"""Process-local storage for in-flight PKCE authorization flows."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional

from tiktok_relay.clients.tiktok_auth import (
    code_challenge,
    generate_code_verifier,
    generate_state,
)


@dataclass(slots=True)
class PendingAuthorization:
    """A login that has been redirected to TikTok but not yet called back."""

    state: str
    code_verifier: str
    created_at: float = field(default_factory=time.monotonic)

    @property
    def code_challenge(self) -> str:
        return code_challenge(self.code_verifier)


class PendingAuthorizationStore:
    """Keeps one code verifier per OAuth ``state`` with TTL pruning."""

    def __init__(
        self,
        ttl_seconds: int = 600,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl_seconds
        self._clock = clock
        self._pending: Dict[str, PendingAuthorization] = {}

    def __len__(self) -> int:
        return len(self._pending)

    def _prune(self) -> None:
        threshold = self._clock() - self._ttl
        expired = [
            state
            for state, flow in self._pending.items()
            if flow.created_at < threshold
        ]
        for state in expired:
            del self._pending[state]

    def create(self) -> PendingAuthorization:
        """Start a new flow with a fresh state and code verifier."""
        self._prune()
        flow = PendingAuthorization(
            state=generate_state(),
            code_verifier=generate_code_verifier(),
            created_at=self._clock(),
        )
        self._pending[flow.state] = flow
        return flow

    def consume(self, state: str) -> Optional[PendingAuthorization]:
        """Remove and return the flow for ``state``; ``None`` if unknown or expired."""
        self._prune()
        return self._pending.pop(state, None)


__all__ = ["PendingAuthorization", "PendingAuthorizationStore"]
