from __future__ import annotations

"""Scoring parameters and their copy-on-write holder.

Factors are relative weights (unbounded positive reals), not probabilities;
the total score divides by their sum, so a factor's meaning depends on the others.
"""

import logging
import math
import threading
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

from app.core.errors import ValidationError
from app.core.logging import log_event


logger = logging.getLogger("trendwatch.scoring")


@dataclass(frozen=True, slots=True)
class ScoringParameters:
    source_weight_factor: float = 0.5
    centrality_factor: float = 0.3
    sentiment_factor: float = 0.4
    recency_decay_days: float = 14.0
    recency_factor: float = 0.6
    frequency_factor: float = 0.5
    product_mention_boost: float = 1.3
    context_detail_boost: float = 1.2

    def __post_init__(self) -> None:
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValidationError(f"{f.name} must be a number.")
            if not (value > 0 and math.isfinite(value)):
                raise ValidationError(f"{f.name} must be a finite number > 0 (got {value}).")

    def as_dict(self) -> dict[str, float]:
        return {k: float(v) for k, v in asdict(self).items()}


PARAMETER_NAMES: frozenset[str] = frozenset(f.name for f in fields(ScoringParameters))


def _coerce(changes: Mapping[str, Any]) -> dict[str, float]:
    unknown = set(changes) - PARAMETER_NAMES
    if unknown:
        raise ValidationError(f"Unknown scoring parameter(s): {', '.join(sorted(unknown))}.")
    out: dict[str, float] = {}
    for k, v in changes.items():
        try:
            out[k] = float(v)
        except (TypeError, ValueError) as e:
            raise ValidationError(f"{k} must be a number.") from e
    return out


def parameters_from_mapping(raw: Optional[Mapping[str, Any]]) -> ScoringParameters:
    if not raw:
        return ScoringParameters()
    return ScoringParameters(**_coerce(raw))


def load_scoring_yaml(path: Path) -> ScoringParameters:
    """Read the optional `scoring:` block of sources.yaml."""
    raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    if not isinstance(raw, dict):
        raise ValueError("Invalid sources.yaml: expected a top-level mapping.")
    block = raw.get("scoring")
    if block is not None and not isinstance(block, dict):
        raise ValueError("Invalid sources.yaml: 'scoring' must be a mapping.")
    return parameters_from_mapping(block)


class ParameterStore:
    """Holds the current immutable parameter snapshot.

    Writers build a new snapshot under a lock and swap the reference; readers
    take the reference once and never see a half-updated set.
    """

    def __init__(self, initial: Optional[ScoringParameters] = None) -> None:
        self._lock = threading.Lock()
        self._current = initial or ScoringParameters()
        self._version = 0

    @property
    def version(self) -> int:
        return self._version

    def current(self) -> ScoringParameters:
        return self._current

    def update(self, changes: Mapping[str, Any], *, reason: str = "manual") -> ScoringParameters:
        """Replace the provided fields; all other fields keep their values."""
        values = _coerce(changes)
        with self._lock:
            previous = self._current
            updated = replace(previous, **values)
            if updated == previous:
                return previous
            self._current = updated
            self._version += 1
        log_event(
            logger,
            "scoring_parameters_updated",
            reason=reason,
            version=self._version,
            changed={k: {"from": getattr(previous, k), "to": getattr(updated, k)} for k in changes
                     if getattr(previous, k) != getattr(updated, k)},
        )
        return updated
