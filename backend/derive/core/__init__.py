"""Derive core primitives: source graph, scoring and feedback."""

from derive.core.context import ScoringContext
from derive.core.feedback import (
    BrandFeedback,
    FeedbackController,
    FeedbackOutcome,
    SourcePerformance,
    SystemMetrics,
    WeightRecommendation,
)
from derive.core.parameters import ParameterStore, ScoringParameters
from derive.core.scoring import BrandTrendScore, ScoreComponents, ScoringEngine
from derive.core.source_graph import (
    ConnectionType,
    DiscoveredSource,
    SeedConnection,
    SourceConnection,
    SourceGraph,
)

__all__ = [
    "BrandFeedback",
    "BrandTrendScore",
    "ConnectionType",
    "DiscoveredSource",
    "FeedbackController",
    "FeedbackOutcome",
    "ParameterStore",
    "ScoreComponents",
    "ScoringContext",
    "ScoringEngine",
    "ScoringParameters",
    "SeedConnection",
    "SourceConnection",
    "SourceGraph",
    "SourcePerformance",
    "SystemMetrics",
    "WeightRecommendation",
]
