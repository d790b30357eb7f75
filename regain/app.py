"""
FastAPI application entry point for the ReGain API.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from regain import __version__
from regain.config import get_settings
from regain.routes import router


def create_app() -> FastAPI:
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    app = FastAPI(title="ReGain API", version=__version__)

    # The web client sends the session cookie, so origins must be explicit.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/")
    def root():
        return {"name": "ReGain API", "version": __version__, "status": "running"}

    app.include_router(router, prefix=settings.api_prefix)
    return app


app = create_app()
