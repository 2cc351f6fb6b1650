"""Service wiring: settings -> registry/stores/graph -> engine + feedback controller."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from app.core.logging import log_event
from app.core.settings import Settings
from derive.core.context import ScoringContext
from derive.core.feedback import FeedbackController
from derive.core.parameters import ParameterStore, load_scoring_yaml
from derive.core.scoring import ScoringEngine
from ingestion.core.mention_store import Mention, utc_now
from ingestion.core.source_registry import SourceRegistry, load_sources_yaml
from ingestion.jobs.load_mentions import load_mentions_jsonl

logger = logging.getLogger("trendwatch.service")


@dataclass(frozen=True)
class TrendService:
    context: ScoringContext
    engine: ScoringEngine
    feedback: FeedbackController
    top_n: int = 10

    def brand_detail(self, brand_name: str, *, now: Optional[datetime] = None) -> dict:
        """Score plus mentions grouped by source."""
        mentions = self.context.mentions.mentions_for_brand(brand_name)
        grouped: dict[str, list[Mention]] = {}
        for m in mentions:
            grouped.setdefault(m.source_id, []).append(m)
        sources = []
        for source_id, ms in grouped.items():
            source = self.context.registry.get(source_id)
            sources.append({"source_id": source_id, "source_name": source.name, "source_url": source.url, "mentions": ms})
        return {"score": self.engine.score(brand_name, now=now), "sources": sources, "mentions": mentions}


def build_service(
    registry: SourceRegistry,
    *,
    parameters: Optional[ParameterStore] = None,
    clock: Callable[[], datetime] = utc_now,
    top_n: int = 10,
) -> TrendService:
    ctx = ScoringContext.create(registry, parameters=parameters, clock=clock)
    engine = ScoringEngine(ctx)
    return TrendService(context=ctx, engine=engine, feedback=FeedbackController(ctx, engine), top_n=top_n)


def build_service_from_settings(settings: Settings) -> TrendService:
    registry = load_sources_yaml(settings.sources_yaml)
    params = ParameterStore(load_scoring_yaml(settings.sources_yaml))
    service = build_service(registry, parameters=params, top_n=settings.top_n)
    if settings.mentions_jsonl is not None:
        load_mentions_jsonl(service.context.mentions, settings.mentions_jsonl)
    log_event(
        logger,
        "service_ready",
        sources=len(registry),
        mentions=len(service.context.mentions),
        sources_yaml=str(settings.sources_yaml),
    )
    return service
