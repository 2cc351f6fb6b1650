"""Mention and feedback submission endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from app.api.deps import get_service
from app.schemas.feedback import FeedbackCreate, FeedbackOutcomeResponse, SystemMetricsResponse
from app.schemas.mention import MentionCreate, MentionResponse
from app.services.trend_service import TrendService
from derive.core.feedback import BrandFeedback


router = APIRouter()


@router.post("/mentions", response_model=MentionResponse, status_code=status.HTTP_201_CREATED)
async def create_mention(
    payload: MentionCreate,
    service: TrendService = Depends(get_service),
) -> MentionResponse:
    stored = service.context.mentions.add_mention(payload.to_mention())
    return MentionResponse.from_mention(stored)


@router.post("/feedback", response_model=FeedbackOutcomeResponse, status_code=status.HTTP_201_CREATED)
async def submit_feedback(
    payload: FeedbackCreate,
    service: TrendService = Depends(get_service),
) -> FeedbackOutcomeResponse:
    fb = BrandFeedback(
        brand_name=payload.brand_name,
        user_rating=payload.user_rating,
        timestamp=payload.timestamp or service.context.clock(),
        comment=payload.comment,
    )
    return FeedbackOutcomeResponse.from_outcome(service.feedback.record_feedback(fb))


@router.get("/feedback/metrics", response_model=SystemMetricsResponse)
async def feedback_metrics(service: TrendService = Depends(get_service)) -> SystemMetricsResponse:
    return SystemMetricsResponse.from_metrics(service.feedback.system_metrics())
