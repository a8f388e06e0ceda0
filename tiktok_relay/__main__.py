"""Run the relay with uvicorn: ``python -m tiktok_relay``."""

from __future__ import annotations

import logging

import uvicorn

from tiktok_relay.core.config import get_settings
from tiktok_relay.dependencies import get_shutdown_controller
from tiktok_relay.main import app

logger = logging.getLogger(__name__)


def main() -> None:
    settings = get_settings()
    config = uvicorn.Config(
        app,
        host=settings.server.host,
        port=settings.server.port,
        log_level=settings.log_level.lower(),
        log_config=None,
    )
    server = uvicorn.Server(config)
    get_shutdown_controller().attach(server)

    base_url = settings.server.base_url
    logger.info("TikTok OAuth2 relay running at %s", base_url)
    logger.info("Health check: %s/health", base_url)
    logger.info("Perform OAuth flow: %s/auth/login", base_url)
    logger.info("Shutdown: POST %s/shutdown", base_url)
    server.run()


if __name__ == "__main__":
    main()
