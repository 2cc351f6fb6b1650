from __future__ import annotations

"""Explicit engine state passed to scoring and feedback (no module-level singletons)."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable

from derive.core.parameters import ParameterStore
from derive.core.source_graph import SourceGraph
from ingestion.core.mention_store import MentionStore, utc_now
from ingestion.core.source_registry import SourceRegistry


@dataclass(frozen=True)
class ScoringContext:
    registry: SourceRegistry
    mentions: MentionStore
    graph: SourceGraph
    parameters: ParameterStore = field(default_factory=ParameterStore)
    clock: Callable[[], datetime] = utc_now

    @classmethod
    def create(
        cls,
        registry: SourceRegistry,
        *,
        parameters: ParameterStore | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> "ScoringContext":
        return cls(
            registry=registry,
            mentions=MentionStore(registry, clock=clock),
            graph=SourceGraph(registry, clock=clock),
            parameters=parameters or ParameterStore(),
            clock=clock,
        )
