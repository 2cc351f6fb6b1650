"""Trend ranking endpoints."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.api.deps import get_service
from app.schemas.mention import MentionResponse
from app.schemas.trend import (
    BrandDetailResponse,
    BrandSourceMentions,
    BrandTrendScoreResponse,
    TimePointResponse,
)
from app.services.trend_service import TrendService
from derive.core.temporal import brand_timeline


router = APIRouter()


@router.get("/trends", response_model=list[BrandTrendScoreResponse])
async def list_trends(
    limit: Optional[int] = Query(None, ge=1, le=200),
    category: Optional[str] = Query(
        None, min_length=1, max_length=32, description="luxury, streetwear, sustainable, emerging or all"
    ),
    product_category: Optional[str] = Query(None, min_length=1, max_length=255),
    service: TrendService = Depends(get_service),
) -> list[BrandTrendScoreResponse]:
    """Top-N brands by trend score, optionally restricted to a brand and/or product category."""
    scores = service.engine.rank(limit or service.top_n, category=category, product_category=product_category)
    return [BrandTrendScoreResponse.from_score(s) for s in scores]


@router.get("/trends/{brand_name}", response_model=BrandDetailResponse)
async def get_trend_detail(
    brand_name: str,
    service: TrendService = Depends(get_service),
) -> BrandDetailResponse:
    detail = service.brand_detail(brand_name)
    if not detail["mentions"]:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Brand not found.")

    return BrandDetailResponse(
        score=BrandTrendScoreResponse.from_score(detail["score"]),
        sources=[
            BrandSourceMentions(
                source_id=g["source_id"],
                source_name=g["source_name"],
                source_url=g["source_url"],
                mentions=[MentionResponse.from_mention(m) for m in g["mentions"]],
            )
            for g in detail["sources"]
        ],
        timeline=[TimePointResponse.from_point(p) for p in brand_timeline(detail["mentions"])],
    )
