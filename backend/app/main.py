"""FastAPI application for the trend engine.

Operational goals:
- Deterministic, low-noise responses
- Request-id propagation and structured access logs
- Engine errors mapped to stable HTTP codes (422 validation, 404 unknown id)
- Safe failure modes (no fabricated data)
"""

from __future__ import annotations

import json
import logging
import time
import uuid
from typing import Callable, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.v1.router import router as api_router
from app.core.errors import NotFoundError, ValidationError
from app.core.logging import configure_logging
from app.core.settings import get_settings
from app.services.trend_service import TrendService, build_service_from_settings


logger = logging.getLogger("trendwatch.api")
# Ensure access logs are emitted by default.
logger.setLevel(logging.INFO)


def create_app(service: Optional[TrendService] = None) -> FastAPI:
    """Build the API. Without an injected service, one is built from TW_* settings."""
    if service is None:
        settings = get_settings()
        configure_logging(settings.log_level)
        service = build_service_from_settings(settings)

    app = FastAPI(
        title="trendwatch Brand Trend API",
        version="1.0.0",
        openapi_url="/openapi.json",
        docs_url=None,
        redoc_url=None,
        description="Brand trend scoring with a feedback-tuned source model.",
    )
    app.state.service = service

    # Allow CORS for Frontend dev
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router)

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "healthy"}

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(status_code=422, content={"detail": str(exc)})

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.middleware("http")
    async def request_id_and_access_log(request: Request, call_next: Callable):
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        start = time.time()
        try:
            response = await call_next(request)
        except Exception:  # noqa: BLE001
            logger.exception("Unhandled error", extra={"request_id": request_id})
            return JSONResponse(
                status_code=500,
                content={"detail": "Internal error."},
                headers={"x-request-id": request_id},
            )

        duration_ms = int((time.time() - start) * 1000)
        response.headers["x-request-id"] = request_id

        # Structured access log (no request bodies).
        logger.info(
            json.dumps(
                {
                    "event": "access",
                    "request_id": request_id,
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": getattr(response, "status_code", None),
                    "duration_ms": duration_ms,
                }
            )
        )
        return response

    return app
