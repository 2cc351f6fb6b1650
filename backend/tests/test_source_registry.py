from __future__ import annotations

import logging
from pathlib import Path

import pytest

from app.core.errors import NotFoundError, ValidationError
from app.core.settings import DEFAULT_SOURCES_YAML
from ingestion.core.source_registry import SourceCategory, SourceRegistry, load_sources_yaml

from conftest import make_source


def test_weight_sum_mismatch_warns_but_does_not_raise(caplog):
    caplog.set_level(logging.WARNING, logger="trendwatch")
    reg = SourceRegistry([make_source("a", 30), make_source("b", 10)])

    assert len(reg) == 2
    assert reg.validate_weights() is False
    assert any("source_weight_sum_mismatch" in r.getMessage() for r in caplog.records)


def test_weights_summing_to_100_are_valid(caplog):
    caplog.set_level(logging.WARNING, logger="trendwatch")
    reg = SourceRegistry([make_source("a", 60), make_source("b", 40)])

    assert reg.validate_weights() is True
    assert not [r for r in caplog.records if "source_weight_sum_mismatch" in r.getMessage()]


def test_duplicate_ids_and_out_of_range_weights_are_rejected():
    with pytest.raises(ValidationError):
        SourceRegistry([make_source("a", 50), make_source("a", 50)])
    with pytest.raises(ValidationError):
        SourceRegistry([make_source("a", 101)])
    with pytest.raises(ValidationError):
        SourceRegistry([make_source("a", -1)])


def test_lookup_and_category_filter():
    reg = SourceRegistry(
        [
            make_source("a", 50),
            make_source("m", 50, SourceCategory.MAGAZINE),
        ]
    )
    assert reg.get("a").weight == 50
    assert [s.id for s in reg.by_category("magazine")] == ["m"]
    assert "https://a.example.com" in reg.urls()
    with pytest.raises(NotFoundError):
        reg.get("missing")


def test_apply_weight_replaces_only_weight():
    reg = SourceRegistry([make_source("a", 60), make_source("b", 40)])
    before = reg.get("a")

    updated = reg.apply_weight("a", 72)

    assert updated.weight == 72
    assert updated.url == before.url
    assert before.weight == 60  # previous snapshot is untouched
    assert reg.total_weight() == 112
    with pytest.raises(ValidationError):
        reg.apply_weight("a", 150)


def test_seed_sources_yaml_loads_and_sums_to_100():
    reg = load_sources_yaml(DEFAULT_SOURCES_YAML)

    assert len(reg) == 6
    assert reg.total_weight() == 100
    assert reg.get("highsnobiety").category == SourceCategory.EDITORIAL
    assert reg.get("dazed").category == SourceCategory.MAGAZINE


def test_malformed_yaml_raises_value_error(tmp_path: Path):
    p = tmp_path / "sources.yaml"
    p.write_text("- just\n- a list\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_sources_yaml(p)

    p.write_text("sources:\n  x:\n    url: https://x.test\n    category: radio\n    weight: 10\n", encoding="utf-8")
    with pytest.raises(ValidationError):
        load_sources_yaml(p)
