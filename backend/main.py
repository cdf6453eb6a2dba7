"""FastAPI application factory for the subscription service."""
from __future__ import annotations

import logging
import os
from typing import Any, Callable

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import app_context
from .app.feature_gates import FeatureGateError
from .app.routes.subscriptions import router as subscriptions_router

logger = logging.getLogger("subscriptions.api")


def _allowed_origins() -> list:
    raw = os.getenv("CORS_ALLOW_ORIGINS", "http://localhost:8081")
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


def create_app(
    *,
    get_current_user: Callable[..., Any],
    get_services: Callable[[], Any],
) -> FastAPI:
    """Build the API with the given authentication dependency and service bundle."""

    app_context.configure(get_current_user=get_current_user, get_services=get_services)

    app = FastAPI(title="Card Show Subscriptions API")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=_allowed_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(FeatureGateError)
    async def handle_feature_gate_error(request: Request, exc: FeatureGateError) -> JSONResponse:
        logger.info("Feature gate denied %s %s: %s", request.method, request.url.path, exc.code)
        return JSONResponse(status_code=exc.status_code, content={"detail": dict(exc.payload)})

    app.include_router(subscriptions_router)
    return app


__all__ = ["create_app"]
