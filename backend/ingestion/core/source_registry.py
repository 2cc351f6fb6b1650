from __future__ import annotations

"""Source registry and YAML loader.

Intent:
- The Source set is fixed at configuration load; only `weight` may change later,
  and only when an operator applies a recommendation.
- Weights are expected to sum to 100. A different total is logged, never fatal.
"""

import logging
import threading
from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path
from typing import Any, Iterable

import yaml

from app.core.errors import NotFoundError, ValidationError
from app.core.logging import log_event


logger = logging.getLogger("trendwatch.ingestion.registry")

EXPECTED_TOTAL_WEIGHT = 100.0


class SourceCategory(str, Enum):
    EDITORIAL = "editorial"
    SOCIAL = "social"
    ECOMMERCE = "ecommerce"
    MAGAZINE = "magazine"
    BLOG = "blog"


@dataclass(frozen=True, slots=True)
class Source:
    id: str
    name: str
    url: str
    category: SourceCategory
    weight: float


def _check_weight(weight: float, *, source_id: str) -> float:
    try:
        w = float(weight)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Source {source_id!r}: weight must be a number.") from e
    if not 0.0 <= w <= 100.0:
        raise ValidationError(f"Source {source_id!r}: weight {w} outside [0, 100].")
    return w


class SourceRegistry:
    """Static catalog of configured sources, keyed by id."""

    def __init__(self, sources: Iterable[Source]) -> None:
        self._lock = threading.Lock()
        self._sources: dict[str, Source] = {}
        for s in sources:
            if s.id in self._sources:
                raise ValidationError(f"Duplicate source id {s.id!r}.")
            _check_weight(s.weight, source_id=s.id)
            self._sources[s.id] = s
        self.validate_weights()

    def __len__(self) -> int:
        return len(self._sources)

    def __contains__(self, source_id: object) -> bool:
        return source_id in self._sources

    def ids(self) -> list[str]:
        return list(self._sources)

    def all(self) -> list[Source]:
        return list(self._sources.values())

    def get(self, source_id: str) -> Source:
        try:
            return self._sources[source_id]
        except KeyError:
            raise NotFoundError(f"Unknown source id {source_id!r}.") from None

    def by_category(self, category: SourceCategory | str) -> list[Source]:
        cat = SourceCategory(category)
        return [s for s in self._sources.values() if s.category == cat]

    def urls(self) -> set[str]:
        return {normalize_url(s.url) for s in self._sources.values()}

    def total_weight(self) -> float:
        return sum(s.weight for s in self._sources.values())

    def validate_weights(self) -> bool:
        """Soft invariant: True when weights sum to 100, otherwise log and return False."""
        total = self.total_weight()
        if abs(total - EXPECTED_TOTAL_WEIGHT) > 1e-9:
            log_event(
                logger,
                "source_weight_sum_mismatch",
                level=logging.WARNING,
                total_weight=round(total, 4),
                expected=EXPECTED_TOTAL_WEIGHT,
            )
            return False
        return True

    def apply_weight(self, source_id: str, weight: float) -> Source:
        """Operator action: persist a recommended weight for one source."""
        current = self.get(source_id)
        w = _check_weight(weight, source_id=source_id)
        with self._lock:
            updated = replace(current, weight=w)
            self._sources[source_id] = updated
        log_event(logger, "source_weight_applied", source_id=source_id, previous=current.weight, weight=w)
        self.validate_weights()
        return updated


def normalize_url(url: str) -> str:
    return url.strip().lower().rstrip("/")


def source_from_mapping(key: str, cfg: dict[str, Any]) -> Source:
    try:
        category = SourceCategory(str(cfg.get("category", "")).lower())
    except ValueError as e:
        raise ValidationError(f"Source {key!r}: unknown category {cfg.get('category')!r}.") from e
    url = str(cfg.get("url", "")).strip()
    if not url:
        raise ValidationError(f"Source {key!r}: url is required.")
    return Source(
        id=str(key),
        name=str(cfg.get("name") or key),
        url=url,
        category=category,
        weight=_check_weight(cfg.get("weight", 0), source_id=str(key)),
    )


def load_sources_yaml(path: Path) -> SourceRegistry:
    raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    if not isinstance(raw, dict) or "sources" not in raw or not isinstance(raw["sources"], dict):
        raise ValueError("Invalid sources.yaml: expected top-level mapping with 'sources'.")

    sources: list[Source] = []
    for key, cfg in raw["sources"].items():
        if not isinstance(cfg, dict):
            continue
        sources.append(source_from_mapping(str(key), cfg))

    return SourceRegistry(sources)
