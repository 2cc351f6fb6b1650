from __future__ import annotations

import math
import threading
from pathlib import Path

import pytest

from app.core.errors import ValidationError
from derive.core.parameters import ParameterStore, ScoringParameters, load_scoring_yaml, parameters_from_mapping


def test_defaults():
    p = ScoringParameters()
    assert p.as_dict() == {
        "source_weight_factor": 0.5,
        "centrality_factor": 0.3,
        "sentiment_factor": 0.4,
        "recency_decay_days": 14.0,
        "recency_factor": 0.6,
        "frequency_factor": 0.5,
        "product_mention_boost": 1.3,
        "context_detail_boost": 1.2,
    }


@pytest.mark.parametrize("field", ["recency_decay_days", "sentiment_factor", "context_detail_boost"])
def test_non_positive_values_are_rejected(field: str):
    with pytest.raises(ValidationError):
        ScoringParameters(**{field: 0})
    with pytest.raises(ValidationError):
        ScoringParameters(**{field: -1.0})


@pytest.mark.parametrize("value", [math.inf, -math.inf, math.nan])
def test_non_finite_values_are_rejected(value: float):
    with pytest.raises(ValidationError):
        ScoringParameters(source_weight_factor=value)
    with pytest.raises(ValidationError):
        ParameterStore().update({"recency_factor": value})


def test_factors_are_unbounded_positive_reals():
    p = ScoringParameters(source_weight_factor=12.0, sentiment_factor=3.5)
    assert p.source_weight_factor == 12.0


def test_update_swaps_snapshot_and_keeps_previous_intact():
    store = ParameterStore()
    before = store.current()

    after = store.update({"recency_factor": 0.65}, reason="test")

    assert store.current() is after
    assert after.recency_factor == 0.65
    assert after.source_weight_factor == before.source_weight_factor
    assert before.recency_factor == 0.6
    assert store.version == 1


def test_noop_update_does_not_bump_version():
    store = ParameterStore()
    assert store.update({"recency_factor": 0.6}) is store.current()
    assert store.version == 0


def test_update_rejects_unknown_and_invalid_values():
    store = ParameterStore()
    with pytest.raises(ValidationError):
        store.update({"magic_factor": 1.0})
    with pytest.raises(ValidationError):
        store.update({"recency_factor": "fast"})
    with pytest.raises(ValidationError):
        store.update({"recency_factor": 0.0})
    assert store.current() == ScoringParameters()


def test_concurrent_updates_never_produce_mixed_snapshots():
    store = ParameterStore()
    pairs = [(0.3 + i * 0.01, 0.3 + i * 0.01) for i in range(40)]
    seen: list[ScoringParameters] = []

    def write(a: float, b: float) -> None:
        store.update({"source_weight_factor": a, "recency_factor": b})

    def read() -> None:
        for _ in range(200):
            seen.append(store.current())

    workers = [threading.Thread(target=write, args=p) for p in pairs] + [threading.Thread(target=read)]
    for t in workers:
        t.start()
    for t in workers:
        t.join()

    for snap in seen:
        if snap != ScoringParameters():
            assert snap.source_weight_factor == snap.recency_factor


def test_mapping_and_yaml_loading(tmp_path: Path):
    assert parameters_from_mapping(None) == ScoringParameters()
    assert parameters_from_mapping({"sentiment_factor": "0.25"}).sentiment_factor == 0.25

    p = tmp_path / "sources.yaml"
    p.write_text("sources: {}\nscoring:\n  recency_decay_days: 7\n", encoding="utf-8")
    assert load_scoring_yaml(p).recency_decay_days == 7.0

    p.write_text("sources: {}\n", encoding="utf-8")
    assert load_scoring_yaml(p) == ScoringParameters()

    p.write_text("scoring:\n  nope: 1\n", encoding="utf-8")
    with pytest.raises(ValidationError):
        load_scoring_yaml(p)

    p.write_text("scoring:\n  recency_decay_days: .inf\n", encoding="utf-8")
    with pytest.raises(ValidationError):
        load_scoring_yaml(p)
