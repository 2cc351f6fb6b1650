"""Source registry, source graph and recommendation endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status

from app.api.deps import get_service
from app.schemas.source import (
    CandidateCreate,
    CandidateResponse,
    ConnectionCreate,
    ConnectionResponse,
    RecommendationsResponse,
    SourcePerformanceResponse,
    SourceResponse,
    WeightRecommendationResponse,
)
from app.services.trend_service import TrendService
from derive.core.source_graph import ConnectionType, DiscoveredSource, SeedConnection
from ingestion.core.source_registry import SourceCategory


router = APIRouter()


@router.get("/sources", response_model=list[SourceResponse])
async def list_sources(service: TrendService = Depends(get_service)) -> list[SourceResponse]:
    stats = service.context.mentions.source_stats()
    return [SourceResponse.from_source(s, stats.get(s.id)) for s in service.context.registry.all()]


@router.get("/sources/performance", response_model=list[SourcePerformanceResponse])
async def list_source_performance(service: TrendService = Depends(get_service)) -> list[SourcePerformanceResponse]:
    return [SourcePerformanceResponse.from_performance(p) for p in service.feedback.source_performance()]


@router.get("/sources/centrality", response_model=dict[str, float])
async def get_centrality(service: TrendService = Depends(get_service)) -> dict[str, float]:
    return {k: round(v, 4) for k, v in service.engine.centrality().items()}


@router.post("/sources/connections", response_model=ConnectionResponse, status_code=status.HTTP_201_CREATED)
async def create_connection(
    payload: ConnectionCreate,
    service: TrendService = Depends(get_service),
) -> ConnectionResponse:
    conn = service.context.graph.record_connection(
        payload.source_id,
        payload.target_id,
        payload.connection_type,
        payload.strength,
        discovered_at=payload.discovered_at,
    )
    return ConnectionResponse.from_connection(conn)


@router.post("/sources/candidates", response_model=list[CandidateResponse])
async def submit_candidates(
    payload: list[CandidateCreate],
    service: TrendService = Depends(get_service),
) -> list[CandidateResponse]:
    """Accepts candidates from an expansion run; returns those not rejected or duplicated."""
    now = service.context.clock()
    candidates = [
        DiscoveredSource(
            name=c.name,
            url=c.url,
            discovery_method=ConnectionType(c.discovery_method),
            seed_connections=tuple(SeedConnection(source_id=s.source_id, strength=s.strength) for s in c.seed_connections),
            estimated_authority=c.estimated_authority,
            discovered_at=c.discovered_at or now,
            category=SourceCategory(c.category) if c.category else None,
        )
        for c in payload
    ]
    accepted = service.context.graph.propose_discovered_sources(candidates)
    return [CandidateResponse.from_candidate(d) for d in accepted]


@router.get("/recommendations", response_model=RecommendationsResponse)
async def get_recommendations(
    limit: int = Query(3, ge=1, le=50),
    service: TrendService = Depends(get_service),
) -> RecommendationsResponse:
    fb = service.feedback
    return RecommendationsResponse(
        weights=[WeightRecommendationResponse.from_recommendation(r) for r in fb.recommend_source_weights()],
        removals=fb.recommend_removals(),
        additions=[CandidateResponse.from_candidate(d) for d in fb.recommend_additions(limit)],
    )


@router.get("/parameters", response_model=dict[str, float])
async def get_parameters(service: TrendService = Depends(get_service)) -> dict[str, float]:
    return service.engine.parameters().as_dict()
