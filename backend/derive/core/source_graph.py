"""Source authority graph.

Maintains a directed, weighted graph of connections between configured sources
and derives a centrality value (0-100) per source from its incoming edges:

    connection_ratio = incoming / (|sources| - 1)
    avg_strength     = mean(strength of incoming connections), 0 if none
    centrality       = connection_ratio * 50 + avg_strength * 0.5

Also holds externally discovered candidate sources and ranks them for promotion:

    rank_score = estimated_authority * 0.7 + mean(seed strength) * 0.3

Properties:
- Deterministic given the connection set (no sampling, no randomness).
- Connections and candidates are append-only.
- Centrality is fully recomputed after any change; the set of sources is small.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, Iterable, Optional

from app.core.errors import NotFoundError, ValidationError
from app.core.logging import log_event
from ingestion.core.mention_store import ensure_utc, utc_now
from ingestion.core.source_registry import SourceCategory, SourceRegistry, normalize_url


logger = logging.getLogger("trendwatch.graph")


class ConnectionType(str, Enum):
    BACKLINK = "backlink"
    MENTION = "mention"
    SOCIAL = "social"
    RELATED = "related"


@dataclass(frozen=True, slots=True)
class SourceConnection:
    source_id: str
    target_id: str
    connection_type: ConnectionType
    strength: float
    discovered_at: datetime


@dataclass(frozen=True, slots=True)
class SeedConnection:
    source_id: str
    strength: float


@dataclass(frozen=True, slots=True)
class DiscoveredSource:
    name: str
    url: str
    discovery_method: ConnectionType
    seed_connections: tuple[SeedConnection, ...]
    estimated_authority: float
    discovered_at: datetime
    category: Optional[SourceCategory] = None

    @property
    def avg_seed_strength(self) -> float:
        if not self.seed_connections:
            return 0.0
        return sum(c.strength for c in self.seed_connections) / len(self.seed_connections)

    @property
    def rank_score(self) -> float:
        return self.estimated_authority * 0.7 + self.avg_seed_strength * 0.3


@dataclass(frozen=True)
class CentralitySnapshot:
    version: int
    values: dict[str, float] = field(default_factory=dict)


def _check_strength(value: float, what: str) -> float:
    try:
        v = float(value)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"{what} must be a number.") from e
    if not 0.0 <= v <= 100.0:
        raise ValidationError(f"{what} {v} outside [0, 100].")
    return v


def guess_category(url: str) -> SourceCategory:
    """Best-effort category from URL keywords."""
    u = url.lower()
    if any(k in u for k in ("shop", "store", "grailed", "ssense")):
        return SourceCategory.ECOMMERCE
    if any(k in u for k in ("magazine", "vogue", "elle", "gq")):
        return SourceCategory.MAGAZINE
    if "substack" in u or "blog" in u:
        return SourceCategory.BLOG
    return SourceCategory.EDITORIAL


class SourceGraph:
    def __init__(self, registry: SourceRegistry, *, clock: Callable[[], datetime] = utc_now) -> None:
        self._registry = registry
        self._clock = clock
        self._lock = threading.Lock()
        self._connections: list[SourceConnection] = []
        self._discovered: dict[str, DiscoveredSource] = {}
        self._version = 0
        self._centrality = CentralitySnapshot(version=-1)

    @property
    def version(self) -> int:
        return self._version

    def connections(self) -> list[SourceConnection]:
        with self._lock:
            return list(self._connections)

    def record_connection(
        self,
        source_id: str,
        target_id: str,
        connection_type: ConnectionType | str,
        strength: float,
        *,
        discovered_at: Optional[datetime] = None,
    ) -> SourceConnection:
        try:
            if source_id == target_id:
                raise ValidationError(f"Connection from {source_id!r} to itself is not allowed.")
            s = _check_strength(strength, "Connection strength")
            try:
                ctype = ConnectionType(connection_type)
            except ValueError as e:
                raise ValidationError(f"Unknown connection type {connection_type!r}.") from e
            for sid in (source_id, target_id):
                if sid not in self._registry:
                    raise NotFoundError(f"Unknown source id {sid!r}.")
        except (ValidationError, NotFoundError) as e:
            log_event(logger, "connection_rejected", source_id=source_id, target_id=target_id, reason=str(e))
            raise

        conn = SourceConnection(
            source_id=source_id,
            target_id=target_id,
            connection_type=ctype,
            strength=s,
            discovered_at=ensure_utc(discovered_at) if discovered_at else self._clock(),
        )
        with self._lock:
            self._connections.append(conn)
            self._version += 1
        return conn

    def compute_centrality(self) -> dict[str, float]:
        """Full recompute from the connection log."""
        with self._lock:
            connections = list(self._connections)
            version = self._version

        ids = self._registry.ids()
        incoming: dict[str, int] = {sid: 0 for sid in ids}
        strengths: dict[str, list[float]] = {sid: [] for sid in ids}
        for c in connections:
            if c.target_id not in incoming:
                continue
            incoming[c.target_id] += 1
            strengths[c.target_id].append(c.strength)

        max_possible = len(ids) - 1
        values: dict[str, float] = {}
        for sid in ids:
            # A single-source registry has no possible peers.
            ratio = incoming[sid] / max_possible if max_possible > 0 else 0.0
            avg = sum(strengths[sid]) / len(strengths[sid]) if strengths[sid] else 0.0
            values[sid] = ratio * 50 + avg * 0.5

        self._centrality = CentralitySnapshot(version=version, values=values)
        log_event(logger, "centrality_recomputed", level=logging.DEBUG, version=version, sources=len(values))
        return dict(values)

    def centrality(self) -> dict[str, float]:
        """Cached centrality; recomputed only when the connection log changed."""
        snap = self._centrality
        if snap.version != self._version:
            return self.compute_centrality()
        return dict(snap.values)

    def propose_discovered_sources(self, candidates: Iterable[DiscoveredSource]) -> list[DiscoveredSource]:
        """Accept externally produced candidates.

        A candidate is accepted when it has at least one seed connection to a
        known source, all strengths and the authority lie in [0, 100], and its
        url matches neither a configured source nor an earlier candidate.
        Returns the accepted candidates in input order.
        """
        accepted: list[DiscoveredSource] = []
        known_urls = self._registry.urls()
        for cand in candidates:
            try:
                accepted_cand = self._validate_candidate(cand, known_urls)
            except ValidationError as e:
                log_event(logger, "candidate_rejected", url=cand.url, reason=str(e))
                continue
            key = normalize_url(accepted_cand.url)
            with self._lock:
                if key in self._discovered:
                    continue
                self._discovered[key] = accepted_cand
            accepted.append(accepted_cand)
        if accepted:
            log_event(logger, "candidates_accepted", count=len(accepted))
        return accepted

    def _validate_candidate(self, cand: DiscoveredSource, known_urls: set[str]) -> DiscoveredSource:
        if not cand.url or not cand.url.strip():
            raise ValidationError("Candidate url is required.")
        if normalize_url(cand.url) in known_urls:
            raise ValidationError("Candidate url matches a configured source.")
        if not cand.seed_connections:
            raise ValidationError("Candidate needs at least one seed connection.")
        for sc in cand.seed_connections:
            if sc.source_id not in self._registry:
                raise ValidationError(f"Seed connection to unknown source {sc.source_id!r}.")
            _check_strength(sc.strength, "Seed connection strength")
        _check_strength(cand.estimated_authority, "Estimated authority")
        if cand.category is None:
            return DiscoveredSource(
                name=cand.name,
                url=cand.url,
                discovery_method=cand.discovery_method,
                seed_connections=cand.seed_connections,
                estimated_authority=cand.estimated_authority,
                discovered_at=cand.discovered_at,
                category=guess_category(cand.url),
            )
        return cand

    def discovered_sources(self) -> list[DiscoveredSource]:
        with self._lock:
            return list(self._discovered.values())

    def top_recommended(self, limit: int = 5) -> list[DiscoveredSource]:
        if limit <= 0:
            return []
        ranked = sorted(self.discovered_sources(), key=lambda d: d.rank_score, reverse=True)
        return ranked[:limit]
