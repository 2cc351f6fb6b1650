"""API v1 root router."""

from __future__ import annotations

from fastapi import APIRouter

from app.api.v1.feedback import router as feedback_router
from app.api.v1.sources import router as sources_router
from app.api.v1.trends import router as trends_router


router = APIRouter(prefix="/v1")
router.include_router(trends_router, tags=["trends"])
router.include_router(feedback_router, tags=["feedback"])
router.include_router(sources_router, tags=["sources"])
