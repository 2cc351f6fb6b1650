from __future__ import annotations

"""Mention store (append-only).

Intent:
- Mentions are supplied already normalized by the ingestion collaborator; this
  layer only validates references and ranges, never inspects page content.
- Logs are append-only and indexed by brand and by source.
- Per-source counters are owned by a per-source lock so concurrent producers
  cannot lose increments.
"""

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Mapping, Optional

from app.core.errors import NotFoundError, ValidationError
from app.core.logging import log_event
from ingestion.core.source_registry import SourceRegistry


UTC = timezone.utc
logger = logging.getLogger("trendwatch.ingestion.mentions")


def utc_now() -> datetime:
    return datetime.now(tz=UTC)


def ensure_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None or dt.utcoffset() is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


@dataclass(frozen=True, slots=True)
class Mention:
    brand_name: str
    source_id: str
    url: str
    context: str
    timestamp: datetime
    sentiment: Optional[float] = None
    product_name: Optional[str] = None
    product_category: Optional[str] = None


@dataclass(slots=True)
class SourceStats:
    source_id: str
    last_fetched: Optional[datetime] = None
    total_articles: int = 0
    total_brand_mentions: int = 0
    error_rate: int = 0

    def snapshot(self) -> "SourceStats":
        return SourceStats(
            source_id=self.source_id,
            last_fetched=self.last_fetched,
            total_articles=self.total_articles,
            total_brand_mentions=self.total_brand_mentions,
            error_rate=self.error_rate,
        )


def brand_key(name: str) -> str:
    return name.strip().casefold()


class MentionStore:
    """Accumulates mentions and raw per-source statistics."""

    def __init__(self, registry: SourceRegistry, *, clock: Callable[[], datetime] = utc_now) -> None:
        self._registry = registry
        self._clock = clock
        self._log_lock = threading.Lock()
        self._mentions: list[Mention] = []
        self._by_brand: dict[str, list[Mention]] = {}
        self._by_source: dict[str, list[Mention]] = {sid: [] for sid in registry.ids()}
        self._brand_names: dict[str, str] = {}
        self._stats: dict[str, SourceStats] = {sid: SourceStats(source_id=sid) for sid in registry.ids()}
        self._source_locks: dict[str, threading.Lock] = {sid: threading.Lock() for sid in registry.ids()}

    def __len__(self) -> int:
        return len(self._mentions)

    def _require_source(self, source_id: str) -> None:
        if source_id not in self._stats:
            raise NotFoundError(f"Unknown source id {source_id!r}.")

    def validate(self, m: Mention) -> Mention:
        if not m.brand_name or not m.brand_name.strip():
            raise ValidationError("Mention brand_name must be non-empty.")
        self._require_source(m.source_id)
        ts = ensure_utc(m.timestamp)
        if ts > self._clock():
            raise ValidationError(f"Mention timestamp {ts.isoformat()} is in the future.")
        if m.sentiment is not None and not -1.0 <= m.sentiment <= 1.0:
            raise ValidationError(f"Mention sentiment {m.sentiment} outside [-1, 1].")
        if ts is not m.timestamp:
            m = Mention(
                brand_name=m.brand_name,
                source_id=m.source_id,
                url=m.url,
                context=m.context,
                timestamp=ts,
                sentiment=m.sentiment,
                product_name=m.product_name,
                product_category=m.product_category,
            )
        return m

    def add_mention(self, m: Mention) -> Mention:
        try:
            m = self.validate(m)
        except (ValidationError, NotFoundError) as e:
            log_event(logger, "mention_rejected", source_id=m.source_id, reason=str(e))
            raise

        key = brand_key(m.brand_name)
        with self._log_lock:
            self._mentions.append(m)
            self._by_brand.setdefault(key, []).append(m)
            self._by_source[m.source_id].append(m)
            self._brand_names.setdefault(key, m.brand_name.strip())

        with self._source_locks[m.source_id]:
            self._stats[m.source_id].total_brand_mentions += 1
        return m

    def add_mentions(self, mentions: list[Mention]) -> int:
        """Add each mention; invalid ones are logged and skipped. Returns the count added."""
        added = 0
        for m in mentions:
            try:
                self.add_mention(m)
            except (ValidationError, NotFoundError):
                continue
            added += 1
        return added

    def mentions_for_brand(self, name: str) -> list[Mention]:
        """Case-insensitive exact brand match, oldest first."""
        with self._log_lock:
            found = list(self._by_brand.get(brand_key(name), ()))
        return sorted(found, key=lambda m: m.timestamp)

    def mentions_for_source(self, source_id: str) -> list[Mention]:
        self._require_source(source_id)
        with self._log_lock:
            return list(self._by_source[source_id])

    def all_mentions(self) -> list[Mention]:
        with self._log_lock:
            return list(self._mentions)

    def brands(self) -> list[str]:
        """Display name of every brand seen (first spelling wins)."""
        with self._log_lock:
            return sorted(self._brand_names.values(), key=str.casefold)

    def display_name(self, name: str) -> str:
        """Spelling used in results for `name`: the first one stored, else `name` stripped."""
        with self._log_lock:
            return self._brand_names.get(brand_key(name), name.strip())

    def mention_counts_by_source(self, name: str) -> dict[str, int]:
        counts: dict[str, int] = {}
        for m in self.mentions_for_brand(name):
            counts[m.source_id] = counts.get(m.source_id, 0) + 1
        return counts

    def record_fetch(self, source_id: str, *, articles: int, at: Optional[datetime] = None) -> None:
        """Called by the ingestion collaborator after a successful fetch."""
        self._require_source(source_id)
        if articles < 0:
            raise ValidationError("articles must be >= 0.")
        with self._source_locks[source_id]:
            st = self._stats[source_id]
            st.last_fetched = ensure_utc(at) if at is not None else self._clock()
            st.total_articles += articles

    def record_error(self, source_id: str) -> None:
        """Called by the ingestion collaborator when a fetch fails."""
        self._require_source(source_id)
        with self._source_locks[source_id]:
            self._stats[source_id].error_rate += 1
        log_event(logger, "source_fetch_error", level=logging.WARNING, source_id=source_id)

    def source_stats(self) -> dict[str, SourceStats]:
        out: dict[str, SourceStats] = {}
        for sid, lock in self._source_locks.items():
            with lock:
                out[sid] = self._stats[sid].snapshot()
        return out


def parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, str):
        try:
            return ensure_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))
        except ValueError as e:
            raise ValidationError(f"Invalid timestamp {value!r}.") from e
    raise ValidationError("timestamp is required.")


def mention_from_mapping(raw: Mapping[str, Any]) -> Mention:
    """Build a Mention from a JSON-style mapping (camelCase or snake_case keys)."""
    if not isinstance(raw, Mapping):
        raise ValidationError("Mention must be a JSON object.")

    def pick(*keys: str) -> Any:
        for k in keys:
            if raw.get(k) is not None:
                return raw[k]
        return None

    brand = pick("brand_name", "brandName")
    source_id = pick("source_id", "sourceId")
    if not brand or not source_id:
        raise ValidationError("brand_name and source_id are required.")
    sentiment = pick("sentiment")
    try:
        sentiment = float(sentiment) if sentiment is not None else None
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Invalid sentiment {sentiment!r}.") from e
    return Mention(
        brand_name=str(brand),
        source_id=str(source_id),
        url=str(pick("url") or ""),
        context=str(pick("context") or ""),
        timestamp=parse_timestamp(pick("timestamp")),
        sentiment=sentiment,
        product_name=pick("product_name", "productName"),
        product_category=pick("product_category", "productCategory"),
    )
