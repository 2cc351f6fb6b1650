from __future__ import annotations

"""Daily mention timeline per brand (UTC calendar days)."""

from collections import Counter
from dataclasses import dataclass
from datetime import date
from typing import Iterable

from ingestion.core.mention_store import Mention, ensure_utc


@dataclass(frozen=True, slots=True)
class TimePoint:
    day: date
    count: int


def brand_timeline(mentions: Iterable[Mention]) -> list[TimePoint]:
    per_day = Counter(ensure_utc(m.timestamp).date() for m in mentions)
    return [TimePoint(day=d, count=n) for d, n in sorted(per_day.items())]


def timelines_by_brand(mentions: Iterable[Mention]) -> dict[str, list[TimePoint]]:
    grouped: dict[str, list[Mention]] = {}
    for m in mentions:
        grouped.setdefault(m.brand_name.strip(), []).append(m)
    return {brand: brand_timeline(ms) for brand, ms in grouped.items()}
