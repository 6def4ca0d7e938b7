"""
FastAPI application entry point for the club management backend.
"""

from __future__ import annotations

from fastapi import FastAPI

from clubhub.config import get_settings
from clubhub.routes import router


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(title="Club Hub Backend", version="0.1.0")
    app.include_router(router, prefix=settings.api_prefix)
    return app


app = create_app()
