from __future__ import annotations

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

import pytest


ROOT = Path(__file__).resolve().parents[2]

# Ensure `backend/app` is importable as top-level `app` for tests.
BACKEND_DIR = ROOT / "backend"
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from app.services.trend_service import TrendService, build_service  # noqa: E402
from derive.core.context import ScoringContext  # noqa: E402
from derive.core.parameters import ParameterStore, ScoringParameters  # noqa: E402
from ingestion.core.mention_store import Mention  # noqa: E402
from ingestion.core.source_registry import Source, SourceCategory, SourceRegistry  # noqa: E402


UTC = timezone.utc
NOW = datetime(2025, 3, 1, 12, 0, tzinfo=UTC)


def fixed_clock() -> datetime:
    return NOW


def make_source(source_id: str, weight: float, category: SourceCategory = SourceCategory.EDITORIAL) -> Source:
    return Source(
        id=source_id,
        name=source_id.title(),
        url=f"https://{source_id}.example.com",
        category=category,
        weight=weight,
    )


def make_mention(
    brand: str,
    source_id: str,
    *,
    age: timedelta = timedelta(0),
    sentiment: Optional[float] = None,
    context: str = "short note",
    product_name: Optional[str] = None,
    product_category: Optional[str] = None,
) -> Mention:
    return Mention(
        brand_name=brand,
        source_id=source_id,
        url=f"https://{source_id}.example.com/{brand.lower()}",
        context=context,
        timestamp=NOW - age,
        sentiment=sentiment,
        product_name=product_name,
        product_category=product_category,
    )


@pytest.fixture()
def two_sources() -> SourceRegistry:
    """Source A weight 30, Source B weight 10 (sum != 100 on purpose)."""
    return SourceRegistry([make_source("a", 30), make_source("b", 10)])


@pytest.fixture()
def three_sources() -> SourceRegistry:
    return SourceRegistry([make_source("a", 30), make_source("b", 10), make_source("c", 60)])


@pytest.fixture()
def context(two_sources: SourceRegistry) -> ScoringContext:
    return ScoringContext.create(two_sources, clock=fixed_clock)


def service_for(registry: SourceRegistry, params: Optional[ScoringParameters] = None) -> TrendService:
    return build_service(registry, parameters=ParameterStore(params), clock=fixed_clock)


@pytest.fixture()
def service(three_sources: SourceRegistry) -> TrendService:
    return service_for(three_sources)
