"""
FastAPI application entry point for the Kinship API.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI
from starlette.middleware.sessions import SessionMiddleware

from kinship.config import DEFAULT_SESSION_SECRET, get_settings
from kinship.routes import router

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    settings = get_settings()
    if settings.session_secret == DEFAULT_SESSION_SECRET:
        logger.warning(
            "KINSHIP_SESSION_SECRET is not set; session cookies are signed with "
            "the development secret"
        )
    app = FastAPI(title="Kinship API", version="0.1.0")
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.session_secret,
        session_cookie=settings.session_cookie,
        max_age=settings.session_max_age_seconds,
        same_site="lax",
    )
    app.include_router(router, prefix=settings.api_prefix)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    logging.basicConfig(level=settings.log_level.upper())
    uvicorn.run(app, host=settings.host, port=settings.port)
