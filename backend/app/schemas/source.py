"""Schemas for sources, the source graph and recommendations."""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

from derive.core.feedback import SourcePerformance, WeightRecommendation
from derive.core.source_graph import DiscoveredSource, SourceConnection
from ingestion.core.mention_store import SourceStats
from ingestion.core.source_registry import Source


SourceCategoryEnum = Literal["editorial", "social", "ecommerce", "magazine", "blog"]
ConnectionTypeEnum = Literal["backlink", "mention", "social", "related"]


class SourceStatsResponse(BaseModel):
    last_fetched: Optional[datetime] = None
    total_articles: int = 0
    total_brand_mentions: int = 0
    error_rate: int = 0


class SourceResponse(BaseModel):
    id: str
    name: str
    url: str
    category: SourceCategoryEnum
    weight: float = Field(ge=0, le=100)
    stats: SourceStatsResponse

    @classmethod
    def from_source(cls, s: Source, st: Optional[SourceStats]) -> "SourceResponse":
        stats = SourceStatsResponse()
        if st is not None:
            stats = SourceStatsResponse(
                last_fetched=st.last_fetched,
                total_articles=st.total_articles,
                total_brand_mentions=st.total_brand_mentions,
                error_rate=st.error_rate,
            )
        return cls(id=s.id, name=s.name, url=s.url, category=s.category.value, weight=s.weight, stats=stats)


class SourcePerformanceResponse(BaseModel):
    source_id: str
    predictive_accuracy: float
    trend_lead_time: float
    user_feedback_score: float
    false_positive_rate: float
    overall_score: float

    @classmethod
    def from_performance(cls, p: SourcePerformance) -> "SourcePerformanceResponse":
        return cls(**p.model_dump())


class ConnectionCreate(BaseModel):
    source_id: str = Field(..., min_length=1)
    target_id: str = Field(..., min_length=1)
    connection_type: ConnectionTypeEnum
    strength: float
    discovered_at: Optional[datetime] = None


class ConnectionResponse(BaseModel):
    source_id: str
    target_id: str
    connection_type: ConnectionTypeEnum
    strength: float
    discovered_at: datetime

    @classmethod
    def from_connection(cls, c: SourceConnection) -> "ConnectionResponse":
        return cls(
            source_id=c.source_id,
            target_id=c.target_id,
            connection_type=c.connection_type.value,
            strength=c.strength,
            discovered_at=c.discovered_at,
        )


class SeedConnectionModel(BaseModel):
    source_id: str
    strength: float


class CandidateCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    url: str = Field(..., min_length=1, max_length=2048)
    discovery_method: ConnectionTypeEnum
    seed_connections: list[SeedConnectionModel] = Field(default_factory=list)
    estimated_authority: float
    discovered_at: Optional[datetime] = None
    category: Optional[SourceCategoryEnum] = None


class CandidateResponse(BaseModel):
    name: str
    url: str
    discovery_method: ConnectionTypeEnum
    seed_connections: list[SeedConnectionModel]
    estimated_authority: float
    discovered_at: datetime
    category: Optional[SourceCategoryEnum] = None
    rank_score: float

    @classmethod
    def from_candidate(cls, d: DiscoveredSource) -> "CandidateResponse":
        return cls(
            name=d.name,
            url=d.url,
            discovery_method=d.discovery_method.value,
            seed_connections=[SeedConnectionModel(source_id=c.source_id, strength=c.strength) for c in d.seed_connections],
            estimated_authority=d.estimated_authority,
            discovered_at=d.discovered_at,
            category=d.category.value if d.category else None,
            rank_score=round(d.rank_score, 4),
        )


class WeightRecommendationResponse(BaseModel):
    source_id: str
    current_weight: float
    recommended_weight: int

    @classmethod
    def from_recommendation(cls, r: WeightRecommendation) -> "WeightRecommendationResponse":
        return cls(source_id=r.source_id, current_weight=r.current_weight, recommended_weight=r.recommended_weight)


class RecommendationsResponse(BaseModel):
    weights: list[WeightRecommendationResponse] = Field(default_factory=list)
    removals: list[str] = Field(default_factory=list)
    additions: list[CandidateResponse] = Field(default_factory=list)
