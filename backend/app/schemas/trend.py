"""Schemas for trend ranking endpoints.

Scores are computed by the backend; clients must not recompute them.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

from app.schemas.mention import MentionResponse
from derive.core.scoring import BrandTrendScore
from derive.core.temporal import TimePoint


class ScoreComponentsResponse(BaseModel):
    source_authority: float = Field(ge=0, le=100)
    recency: float = Field(ge=0, le=100)
    frequency: float = Field(ge=0, le=100)
    sentiment: float = Field(ge=0, le=100)
    context: float = Field(ge=0, le=100)


class BrandTrendScoreResponse(BaseModel):
    brand_name: str
    total_score: float = Field(ge=0, le=100)
    components: ScoreComponentsResponse
    confidence: float = Field(ge=0, le=100)
    mention_count: int = Field(ge=0)
    last_mention_date: Optional[datetime] = None
    category: Literal["luxury", "streetwear", "sustainable", "emerging"]

    @classmethod
    def from_score(cls, s: BrandTrendScore) -> "BrandTrendScoreResponse":
        c = s.components
        return cls(
            brand_name=s.brand_name,
            total_score=round(s.total_score, 4),
            components=ScoreComponentsResponse(
                source_authority=round(c.source_authority, 4),
                recency=round(c.recency, 4),
                frequency=round(c.frequency, 4),
                sentiment=round(c.sentiment, 4),
                context=round(c.context, 4),
            ),
            confidence=round(s.confidence, 4),
            mention_count=s.mention_count,
            last_mention_date=s.last_mention_date,
            category=s.category.value,
        )


class TimePointResponse(BaseModel):
    day: date
    count: int = Field(ge=0)

    @classmethod
    def from_point(cls, p: TimePoint) -> "TimePointResponse":
        return cls(day=p.day, count=p.count)


class BrandSourceMentions(BaseModel):
    source_id: str
    source_name: str
    source_url: str
    mentions: list[MentionResponse] = Field(default_factory=list)


class BrandDetailResponse(BaseModel):
    score: BrandTrendScoreResponse
    sources: list[BrandSourceMentions] = Field(default_factory=list)
    timeline: list[TimePointResponse] = Field(default_factory=list)
