"""Feedback loop: human trend ratings -> source performance -> scoring parameters.

Algorithm:
- Each rating (1-5) is attributed to every source with >= 2 mentions of the brand.
- Per-source metrics drift by EMA (alpha 0.1) from a neutral start:
    rating >= 4 (confirm):  accuracy -> 100, false-positive rate decays
    rating <= 2 (refute):   accuracy -> 0,   false-positive rate -> 1
    rating == 3:            neither moves
    user feedback score always moves toward (rating - 1) * 25
- After each rating, once >= 5 ratings exist, the control law nudges
  source_weight_factor and recency_factor by 0.05 within fixed bounds,
  unless the overall confirm rate is already above 0.8.

Constraints:
- Deterministic; one feedback pipeline at a time.
- Scoring reads are never blocked beyond the parameter swap.
"""

from __future__ import annotations

import logging
import math
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Mapping, Optional

from pydantic import BaseModel, Field

from app.core.errors import InsufficientDataError, ValidationError
from app.core.logging import log_event
from derive.core.context import ScoringContext
from derive.core.scoring import ScoringEngine
from derive.core.source_graph import DiscoveredSource
from ingestion.core.mention_store import brand_key, ensure_utc, parse_timestamp


logger = logging.getLogger("trendwatch.feedback")

# Configuration (Locked)
EMA_ALPHA = 0.1
MIN_MENTIONS_FOR_ATTRIBUTION = 2
MIN_FEEDBACK_FOR_ADJUSTMENT = 5
WELL_TUNED_ACCURACY = 0.8
PARAMETER_STEP = 0.05
SOURCE_WEIGHT_FACTOR_BOUNDS = (0.3, 0.7)
RECENCY_FACTOR_BOUNDS = (0.3, 0.8)
TRAILING_WINDOW_DAYS = 7
PERFORMANCE_SPREAD_THRESHOLD = 20.0
HIGH_PERFORMER_THRESHOLD = 70.0

MIN_SOURCES_FOR_RECOMMENDATION = 3
MIN_FEEDBACK_FOR_RECOMMENDATION = 5
WEIGHT_UP_THRESHOLD = 75.0
WEIGHT_DOWN_THRESHOLD = 40.0
MIN_WEIGHT_CHANGE = 2.0
MIN_RECOMMENDED_WEIGHT = 5.0
REMOVAL_OVERALL_THRESHOLD = 30.0
REMOVAL_ACCURACY_THRESHOLD = 40.0


@dataclass(frozen=True, slots=True)
class BrandFeedback:
    brand_name: str
    user_rating: int
    timestamp: datetime
    comment: Optional[str] = None

    @property
    def is_confirmation(self) -> bool:
        return self.user_rating >= 4

    @property
    def is_refutation(self) -> bool:
        return self.user_rating <= 2


class SourcePerformance(BaseModel):
    """Running performance record for one source, starting at neutral midpoints."""

    source_id: str
    predictive_accuracy: float = Field(default=50.0, ge=0.0, le=100.0)
    trend_lead_time: float = 0.0  # Average days ahead of trend peak
    user_feedback_score: float = Field(default=50.0, ge=0.0, le=100.0)
    false_positive_rate: float = Field(default=0.0, ge=0.0, le=1.0)
    overall_score: float = Field(default=50.0, ge=0.0, le=100.0)

    def apply_rating(self, rating: int) -> None:
        keep = 1.0 - EMA_ALPHA
        if rating >= 4:
            self.predictive_accuracy = keep * self.predictive_accuracy + EMA_ALPHA * 100.0
            self.false_positive_rate = keep * self.false_positive_rate
        elif rating <= 2:
            self.predictive_accuracy = keep * self.predictive_accuracy + EMA_ALPHA * 0.0
            self.false_positive_rate = keep * self.false_positive_rate + EMA_ALPHA * 1.0

        self.user_feedback_score = keep * self.user_feedback_score + EMA_ALPHA * ((rating - 1) * 25.0)
        self.overall_score = (
            self.predictive_accuracy * 0.5
            + self.user_feedback_score * 0.3
            + (1.0 - self.false_positive_rate) * 100.0 * 0.2
        )


@dataclass(frozen=True, slots=True)
class FeedbackOutcome:
    feedback: BrandFeedback
    updated_sources: tuple[str, ...]
    parameters_adjusted: bool


@dataclass(frozen=True, slots=True)
class WeightRecommendation:
    source_id: str
    current_weight: float
    recommended_weight: int


@dataclass(frozen=True, slots=True)
class SystemMetrics:
    feedback_count: int
    trend_accuracy: float
    average_source_performance: float
    top_performing_source_id: Optional[str]
    scoring_parameters: dict[str, float]


def feedback_from_mapping(raw: Mapping[str, Any], *, default_timestamp: datetime) -> BrandFeedback:
    """Build a BrandFeedback from a JSON-style mapping (camelCase or snake_case keys)."""
    if not isinstance(raw, Mapping):
        raise ValidationError("Feedback must be a JSON object.")
    brand = raw.get("brand_name", raw.get("brandName"))
    if not isinstance(brand, str) or not brand.strip():
        raise ValidationError("brand_name is required.")
    rating = raw.get("user_rating", raw.get("userRating"))
    if isinstance(rating, str) and rating.strip().isdigit():
        rating = int(rating)
    ts = raw.get("timestamp")
    comment = raw.get("comment")
    return BrandFeedback(
        brand_name=brand,
        user_rating=rating,
        timestamp=parse_timestamp(ts) if ts is not None else default_timestamp,
        comment=str(comment) if comment is not None else None,
    )


def confirm_rate(feedback: list[BrandFeedback]) -> Optional[float]:
    """Confirmed / (confirmed + refuted); neutral ratings count for neither. None if both are zero."""
    confirmed = sum(1 for f in feedback if f.is_confirmation)
    refuted = sum(1 for f in feedback if f.is_refutation)
    if confirmed + refuted == 0:
        return None
    return confirmed / (confirmed + refuted)


def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


class FeedbackController:
    def __init__(self, context: ScoringContext, engine: Optional[ScoringEngine] = None) -> None:
        self._ctx = context
        self._engine = engine or ScoringEngine(context)
        self._lock = threading.Lock()
        self._feedback: list[BrandFeedback] = []
        self._by_brand: dict[str, list[BrandFeedback]] = {}
        self._performance: dict[str, SourcePerformance] = {
            sid: SourcePerformance(source_id=sid) for sid in context.registry.ids()
        }

    @property
    def feedback_count(self) -> int:
        return len(self._feedback)

    def feedback(self) -> list[BrandFeedback]:
        with self._lock:
            return list(self._feedback)

    def feedback_for_brand(self, brand_name: str) -> list[BrandFeedback]:
        with self._lock:
            return list(self._by_brand.get(brand_key(brand_name), ()))

    def source_performance(self) -> list[SourcePerformance]:
        with self._lock:
            return [p.model_copy() for p in self._performance.values()]

    def performance_for(self, source_id: str) -> SourcePerformance:
        self._ctx.registry.get(source_id)
        with self._lock:
            return self._performance[source_id].model_copy()

    # --- Feedback ingestion ---

    def _validate(self, fb: BrandFeedback) -> BrandFeedback:
        if not fb.brand_name or not fb.brand_name.strip():
            raise ValidationError("Feedback brand_name must be non-empty.")
        if isinstance(fb.user_rating, bool) or not isinstance(fb.user_rating, int) or not 1 <= fb.user_rating <= 5:
            raise ValidationError(f"user_rating must be an integer 1..5 (got {fb.user_rating!r}).")
        ts = ensure_utc(fb.timestamp)
        if ts is fb.timestamp:
            return fb
        return BrandFeedback(brand_name=fb.brand_name, user_rating=fb.user_rating, timestamp=ts, comment=fb.comment)

    def record_feedback(self, fb: BrandFeedback) -> FeedbackOutcome:
        fb = self._validate(fb)
        counts = self._ctx.mentions.mention_counts_by_source(fb.brand_name)

        with self._lock:
            self._feedback.append(fb)
            self._by_brand.setdefault(brand_key(fb.brand_name), []).append(fb)

            updated: list[str] = []
            for source_id, n in sorted(counts.items()):
                perf = self._performance.get(source_id)
                # Too few mentions make the attribution unreliable.
                if perf is None or n < MIN_MENTIONS_FOR_ATTRIBUTION:
                    continue
                perf.apply_rating(fb.user_rating)
                updated.append(source_id)

            adjusted = self._adjust_parameters_locked()

        log_event(
            logger,
            "feedback_recorded",
            brand=fb.brand_name,
            rating=fb.user_rating,
            updated_sources=updated,
            parameters_adjusted=adjusted,
        )
        return FeedbackOutcome(feedback=fb, updated_sources=tuple(updated), parameters_adjusted=adjusted)

    # --- Control law ---

    def adjust_parameters(self) -> bool:
        with self._lock:
            return self._adjust_parameters_locked()

    def _adjust_parameters_locked(self) -> bool:
        """Apply the control law once. Returns True when parameters changed."""
        if len(self._feedback) < MIN_FEEDBACK_FOR_ADJUSTMENT:
            return False

        accuracy = confirm_rate(self._feedback)
        if accuracy is None or accuracy > WELL_TUNED_ACCURACY:
            return False

        current = self._engine.parameters()
        changes: dict[str, float] = {}

        # 1. Source weight factor: reward a clear, strong leader among sources.
        scores = [p.overall_score for p in self._performance.values()]
        lo, hi = SOURCE_WEIGHT_FACTOR_BOUNDS
        if scores and max(scores) > HIGH_PERFORMER_THRESHOLD and max(scores) - min(scores) > PERFORMANCE_SPREAD_THRESHOLD:
            changes["source_weight_factor"] = min(current.source_weight_factor + PARAMETER_STEP, hi)
        else:
            changes["source_weight_factor"] = max(current.source_weight_factor - PARAMETER_STEP, lo)

        # 2. Recency factor: are recent trends confirmed more often than all-time?
        cutoff = self._ctx.clock() - timedelta(days=TRAILING_WINDOW_DAYS)
        trailing = confirm_rate([f for f in self._feedback if f.timestamp >= cutoff])
        if trailing is not None:
            lo, hi = RECENCY_FACTOR_BOUNDS
            if trailing > accuracy:
                changes["recency_factor"] = min(current.recency_factor + PARAMETER_STEP, hi)
            else:
                changes["recency_factor"] = max(current.recency_factor - PARAMETER_STEP, lo)

        updated = self._engine.update_parameters(changes, reason="feedback")
        return updated != current

    # --- Recommendations ---

    def _require_recommendation_data(self) -> None:
        if len(self._performance) < MIN_SOURCES_FOR_RECOMMENDATION:
            raise InsufficientDataError(
                f"Need performance data for >= {MIN_SOURCES_FOR_RECOMMENDATION} sources."
            )
        if len(self._feedback) < MIN_FEEDBACK_FOR_RECOMMENDATION:
            raise InsufficientDataError(f"Need >= {MIN_FEEDBACK_FOR_RECOMMENDATION} feedback entries.")

    def recommend_source_weights(self) -> list[WeightRecommendation]:
        with self._lock:
            try:
                self._require_recommendation_data()
            except InsufficientDataError as e:
                log_event(logger, "weight_recommendations_skipped", level=logging.DEBUG, reason=str(e))
                return []
            performances = sorted(self._performance.values(), key=lambda p: p.overall_score, reverse=True)
            ranked = [(p.source_id, p.overall_score) for p in performances]

        out: list[WeightRecommendation] = []
        for source_id, overall in ranked:
            weight = self._ctx.registry.get(source_id).weight
            recommended = weight
            if overall > WEIGHT_UP_THRESHOLD:
                recommended = min(weight * 1.2, weight + 10.0)
            elif overall < WEIGHT_DOWN_THRESHOLD:
                recommended = max(weight * 0.8, MIN_RECOMMENDED_WEIGHT)
            if abs(recommended - weight) >= MIN_WEIGHT_CHANGE:
                out.append(
                    WeightRecommendation(
                        source_id=source_id,
                        current_weight=weight,
                        recommended_weight=_round_half_up(recommended),
                    )
                )
        return out

    def recommend_removals(self) -> list[str]:
        with self._lock:
            return [
                p.source_id
                for p in self._performance.values()
                if p.overall_score < REMOVAL_OVERALL_THRESHOLD and p.predictive_accuracy < REMOVAL_ACCURACY_THRESHOLD
            ]

    def recommend_additions(self, limit: int = 3) -> list[DiscoveredSource]:
        return self._ctx.graph.top_recommended(limit)

    # --- Reporting ---

    def system_metrics(self) -> SystemMetrics:
        with self._lock:
            rate = confirm_rate(self._feedback)
            performances = list(self._performance.values())
            count = len(self._feedback)

        avg = sum(p.overall_score for p in performances) / len(performances) if performances else 0.0
        top_id: Optional[str] = None
        top_score = 0.0
        for p in performances:
            if p.overall_score > top_score:
                top_score = p.overall_score
                top_id = p.source_id

        return SystemMetrics(
            feedback_count=count,
            trend_accuracy=(rate or 0.0) * 100.0,
            average_source_performance=avg,
            top_performing_source_id=top_id,
            scoring_parameters=self._engine.parameters().as_dict(),
        )
