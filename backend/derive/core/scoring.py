"""Multi-factor brand trend scoring.

Computes a 0-100 trend score for a brand from its mentions, the current source
centrality and the current scoring parameters.

Components (each 0-100):
- source_authority: mean effective source weight of the mentions (capped at 100)
      eff_weight = source.weight * source_weight_factor + centrality * centrality_factor
- recency: half-life decay of the newest mention
      100 * 0.5 ** (age_days / recency_decay_days)
- frequency: same-day bursts score count * 20, longer spans score mentions/day * 50
- sentiment: eff_weight * recency weighted mean sentiment, mapped [-1, 1] -> [0, 100]
- context: base 50, boosted for named products and detailed context (> 50 chars)

Total is the weighted mean of the components with weights
(source_weight_factor, recency_factor, frequency_factor, sentiment_factor,
1 - sentiment_factor), divided by the sum of those weights.

Properties:
- Pure function of (mentions, centrality, parameters, now).
- Zero mentions yields a defined zero score with neutral sentiment.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Mapping, Optional, Sequence

from app.core.errors import ValidationError
from app.core.logging import log_event
from derive.core.brand_category import BrandCategory, categorize_brand, parse_brand_category
from derive.core.context import ScoringContext
from derive.core.parameters import ScoringParameters
from ingestion.core.mention_store import Mention, brand_key, ensure_utc
from ingestion.core.source_registry import SourceRegistry


logger = logging.getLogger("trendwatch.scoring")

SECONDS_PER_DAY = 86400.0
NEUTRAL_SENTIMENT = 50.0
DETAILED_CONTEXT_CHARS = 50


@dataclass(frozen=True, slots=True)
class ScoreComponents:
    source_authority: float
    recency: float
    frequency: float
    sentiment: float
    context: float


@dataclass(frozen=True, slots=True)
class BrandTrendScore:
    brand_name: str
    total_score: float
    components: ScoreComponents
    confidence: float
    mention_count: int
    last_mention_date: Optional[datetime]
    category: BrandCategory


def days_between(earlier: datetime, later: datetime) -> float:
    return (ensure_utc(later) - ensure_utc(earlier)).total_seconds() / SECONDS_PER_DAY


def effective_weight(
    source_id: str,
    registry: SourceRegistry,
    centrality: Mapping[str, float],
    params: ScoringParameters,
) -> float:
    if source_id not in registry:
        return 0.0
    source = registry.get(source_id)
    return source.weight * params.source_weight_factor + centrality.get(source_id, 0.0) * params.centrality_factor


def recency_score(ts: datetime, now: datetime, params: ScoringParameters) -> float:
    # Clock skew between producer and scorer must not push the score above 100.
    age_days = max(0.0, days_between(ts, now))
    return 100.0 * 0.5 ** (age_days / params.recency_decay_days)


def frequency_score(mentions: Sequence[Mention]) -> float:
    if not mentions:
        return 0.0
    newest = max(m.timestamp for m in mentions)
    oldest = min(m.timestamp for m in mentions)
    span_days = days_between(oldest, newest)
    if span_days < 1:
        return min(len(mentions) * 20.0, 100.0)
    return min(len(mentions) / span_days * 50.0, 100.0)


def sentiment_score(
    mentions: Sequence[Mention],
    registry: SourceRegistry,
    centrality: Mapping[str, float],
    params: ScoringParameters,
    now: datetime,
) -> float:
    total_weight = 0.0
    weighted = 0.0
    for m in mentions:
        if m.sentiment is None:
            continue
        weight = effective_weight(m.source_id, registry, centrality, params) * recency_score(m.timestamp, now, params) / 100.0
        weighted += m.sentiment * weight
        total_weight += weight
    if total_weight <= 0:
        return NEUTRAL_SENTIMENT
    return (weighted / total_weight + 1.0) * 50.0


def context_score(mentions: Sequence[Mention], params: ScoringParameters) -> float:
    if not mentions:
        return 0.0
    total = 0.0
    for m in mentions:
        s = 50.0
        if m.product_name:
            s *= params.product_mention_boost
        if m.context and len(m.context) > DETAILED_CONTEXT_CHARS:
            s *= params.context_detail_boost
        total += s
    return min(total / len(mentions), 100.0)


def confidence_score(mentions: Sequence[Mention]) -> float:
    if not mentions:
        return 0.0
    unique_sources = len({m.source_id for m in mentions})
    return min(len(mentions) / 10.0, 1.0) * 50.0 + min(unique_sources / 3.0, 1.0) * 50.0


def total_score(components: ScoreComponents, params: ScoringParameters) -> float:
    # Context weight floors at 0 so sentiment_factor > 1 cannot push the total out of range.
    context_weight = max(0.0, 1.0 - params.sentiment_factor)
    weights = (
        (components.source_authority, params.source_weight_factor),
        (components.recency, params.recency_factor),
        (components.frequency, params.frequency_factor),
        (components.sentiment, params.sentiment_factor),
        (components.context, context_weight),
    )
    denom = sum(w for _, w in weights)
    if denom <= 0:
        return 0.0
    value = sum(c * w for c, w in weights) / denom
    return max(0.0, min(100.0, value))


def empty_score(brand_name: str) -> BrandTrendScore:
    return BrandTrendScore(
        brand_name=brand_name,
        total_score=0.0,
        components=ScoreComponents(
            source_authority=0.0,
            recency=0.0,
            frequency=0.0,
            sentiment=NEUTRAL_SENTIMENT,
            context=0.0,
        ),
        confidence=0.0,
        mention_count=0,
        last_mention_date=None,
        category=categorize_brand(brand_name),
    )


def score_mentions(
    brand_name: str,
    mentions: Sequence[Mention],
    *,
    registry: SourceRegistry,
    centrality: Mapping[str, float],
    params: ScoringParameters,
    now: datetime,
) -> BrandTrendScore:
    if not mentions:
        return empty_score(brand_name)

    newest = max(m.timestamp for m in mentions)
    authority = sum(effective_weight(m.source_id, registry, centrality, params) for m in mentions)

    components = ScoreComponents(
        source_authority=min(authority / len(mentions), 100.0),
        recency=recency_score(newest, now, params),
        frequency=frequency_score(mentions),
        sentiment=sentiment_score(mentions, registry, centrality, params, now),
        context=context_score(mentions, params),
    )
    return BrandTrendScore(
        brand_name=brand_name,
        total_score=total_score(components, params),
        components=components,
        confidence=confidence_score(mentions),
        mention_count=len(mentions),
        last_mention_date=newest,
        category=categorize_brand(brand_name),
    )


class ScoringEngine:
    """Scores brands against the context's current state.

    Each call reads one parameter snapshot and one centrality snapshot, so a
    concurrent parameter swap never mixes values within a single score.
    """

    def __init__(self, context: ScoringContext) -> None:
        self._ctx = context

    @property
    def context(self) -> ScoringContext:
        return self._ctx

    def parameters(self) -> ScoringParameters:
        return self._ctx.parameters.current()

    def update_parameters(self, changes: Mapping[str, float], *, reason: str = "manual") -> ScoringParameters:
        return self._ctx.parameters.update(changes, reason=reason)

    def centrality(self) -> dict[str, float]:
        return self._ctx.graph.centrality()

    def score(self, brand_name: str, *, now: Optional[datetime] = None) -> BrandTrendScore:
        mentions = self._ctx.mentions.mentions_for_brand(brand_name)
        return score_mentions(
            self._ctx.mentions.display_name(brand_name),
            mentions,
            registry=self._ctx.registry,
            centrality=self.centrality(),
            params=self.parameters(),
            now=now or self._ctx.clock(),
        )

    def rank(
        self,
        limit: int = 10,
        *,
        category: Optional[str] = None,
        product_category: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> list[BrandTrendScore]:
        """Top-N brands by total score.

        `category` keeps brands of that brand category ("all" or None for every brand).
        `product_category` keeps brands with at least one mention in that product category.
        """
        try:
            wanted_category = parse_brand_category(category)
        except ValueError as e:
            raise ValidationError(f"Unknown brand category {category!r}.") from e
        if limit <= 0:
            return []
        params = self.parameters()
        centrality = self.centrality()
        now = now or self._ctx.clock()
        wanted = brand_key(product_category) if product_category else None

        scores: list[BrandTrendScore] = []
        for brand in self._ctx.mentions.brands():
            if wanted_category is not None and categorize_brand(brand) != wanted_category:
                continue
            mentions = self._ctx.mentions.mentions_for_brand(brand)
            if wanted is not None and not any(
                m.product_category and brand_key(m.product_category) == wanted for m in mentions
            ):
                continue
            scores.append(
                score_mentions(
                    brand,
                    mentions,
                    registry=self._ctx.registry,
                    centrality=centrality,
                    params=params,
                    now=now,
                )
            )

        scores.sort(key=lambda s: (-s.total_score, s.brand_name.casefold()))
        log_event(logger, "brands_ranked", level=logging.DEBUG, candidates=len(scores), limit=limit,
                  category=category, product_category=product_category)
        return scores[:limit]
