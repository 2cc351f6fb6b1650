"""API dependencies.

The engine state lives on `app.state.service`; handlers receive it explicitly
instead of importing module-level singletons.
"""

from __future__ import annotations

from fastapi import HTTPException, Request, status

from app.services.trend_service import TrendService


def get_service(request: Request) -> TrendService:
    service = getattr(request.app.state, "service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Trend engine not initialised.",
        )
    return service
