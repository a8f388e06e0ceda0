"""Graceful shutdown hook for the relay process."""

from __future__ import annotations

import asyncio
import logging
import os
import signal
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    import uvicorn

logger = logging.getLogger(__name__)


class ShutdownController:
    """Ask the serving uvicorn instance to stop after a short delay.

    uvicorn reacts to ``should_exit`` by closing its listeners, waiting for
    in-flight requests and running the lifespan shutdown. When the app is
    served by an external ``uvicorn`` command there is no server handle, so
    the process signals itself with SIGTERM, which uvicorn handles the same way.
    """

    def __init__(self, *, delay_seconds: float = 1.0) -> None:
        self._delay = delay_seconds
        self._server: Optional["uvicorn.Server"] = None
        self._requested = False

    @property
    def requested(self) -> bool:
        return self._requested

    def attach(self, server: "uvicorn.Server") -> None:
        self._server = server

    async def request_shutdown(self) -> None:
        if self._requested:
            logger.info("Shutdown already in progress")
            return
        self._requested = True
        logger.info("Shutdown requested; stopping in %.1fs", self._delay)
        asyncio.get_running_loop().call_later(self._delay, self._trigger)

    def _trigger(self) -> None:
        if self._server is not None:
            logger.info("Stopping server")
            self._server.should_exit = True
            return
        logger.info("No server handle attached; sending SIGTERM to pid %s", os.getpid())
        os.kill(os.getpid(), signal.SIGTERM)


__all__ = ["ShutdownController"]
