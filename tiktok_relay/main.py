"""
FastAPI application entrypoint for the TikTok OAuth relay.
"""

from __future__ import annotations

from fastapi import FastAPI

from tiktok_relay.api.routes import SERVICE_NAME, SERVICE_VERSION
from tiktok_relay.api.routes import router as api_router
from tiktok_relay.core.config import get_settings
from tiktok_relay.core.logging import configure_logging


def create_app() -> FastAPI:
    """Factory for the FastAPI application."""
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title=SERVICE_NAME,
        version=SERVICE_VERSION,
        description=(
            "OAuth2/PKCE login against TikTok plus a proxy for profile lookup, "
            "video upload and publish-status polling."
        ),
    )
    app.include_router(api_router)
    return app


app = create_app()

__all__ = ["app", "create_app"]
