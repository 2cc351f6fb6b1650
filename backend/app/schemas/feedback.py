"""Schemas for feedback submission and feedback-loop reporting."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from derive.core.feedback import FeedbackOutcome, SystemMetrics


class FeedbackCreate(BaseModel):
    brand_name: str = Field(..., min_length=1, max_length=255)
    user_rating: int = Field(..., description="1 (not a trend) .. 5 (real trend)")
    comment: Optional[str] = Field(None, max_length=2000)
    timestamp: Optional[datetime] = Field(None, description="Defaults to server time")


class FeedbackOutcomeResponse(BaseModel):
    brand_name: str
    user_rating: int
    timestamp: datetime
    updated_sources: list[str] = Field(default_factory=list)
    parameters_adjusted: bool

    @classmethod
    def from_outcome(cls, o: FeedbackOutcome) -> "FeedbackOutcomeResponse":
        return cls(
            brand_name=o.feedback.brand_name,
            user_rating=o.feedback.user_rating,
            timestamp=o.feedback.timestamp,
            updated_sources=list(o.updated_sources),
            parameters_adjusted=o.parameters_adjusted,
        )


class SystemMetricsResponse(BaseModel):
    feedback_count: int = Field(ge=0)
    trend_accuracy: float = Field(ge=0, le=100, description="% of confirm/refute feedback that confirmed")
    average_source_performance: float = Field(ge=0, le=100)
    top_performing_source_id: Optional[str] = None
    scoring_parameters: dict[str, float]

    @classmethod
    def from_metrics(cls, m: SystemMetrics) -> "SystemMetricsResponse":
        return cls(
            feedback_count=m.feedback_count,
            trend_accuracy=round(m.trend_accuracy, 4),
            average_source_performance=round(m.average_source_performance, 4),
            top_performing_source_id=m.top_performing_source_id,
            scoring_parameters=m.scoring_parameters,
        )
