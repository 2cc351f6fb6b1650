from __future__ import annotations

from datetime import timedelta

import pytest

from app.core.errors import NotFoundError, ValidationError
from app.services.trend_service import TrendService
from derive.core.feedback import BrandFeedback, SourcePerformance, confirm_rate
from derive.core.parameters import ScoringParameters
from derive.core.source_graph import ConnectionType, DiscoveredSource, SeedConnection
from ingestion.core.source_registry import SourceRegistry

from conftest import NOW, make_mention, make_source, service_for


def _fb(brand: str, rating: int, *, age: timedelta = timedelta(0)) -> BrandFeedback:
    return BrandFeedback(brand_name=brand, user_rating=rating, timestamp=NOW - age)


def _seed(service: TrendService, brand: str, source_id: str, n: int = 2) -> None:
    for i in range(n):
        service.context.mentions.add_mention(make_mention(brand, source_id, age=timedelta(hours=i + 1)))


def test_single_rating_moves_metrics_by_ema():
    p = SourcePerformance(source_id="a")
    p.apply_rating(5)
    assert p.predictive_accuracy == pytest.approx(55.0)
    assert p.user_feedback_score == pytest.approx(55.0)
    assert p.false_positive_rate == pytest.approx(0.0)
    assert p.overall_score == pytest.approx(55 * 0.5 + 55 * 0.3 + 100 * 0.2)

    q = SourcePerformance(source_id="b")
    q.apply_rating(1)
    assert q.predictive_accuracy == pytest.approx(45.0)
    assert q.false_positive_rate == pytest.approx(0.1)
    assert q.user_feedback_score == pytest.approx(45.0)


def test_neutral_rating_leaves_accuracy_and_false_positives():
    p = SourcePerformance(source_id="a")
    p.apply_rating(3)
    assert p.predictive_accuracy == 50.0
    assert p.false_positive_rate == 0.0
    assert p.user_feedback_score == pytest.approx(50.0)


def test_repeated_confirmation_converges_monotonically_below_100(service: TrendService):
    _seed(service, "Acme", "a")
    previous = service.feedback.performance_for("a").predictive_accuracy
    for _ in range(60):
        service.feedback.record_feedback(_fb("Acme", 5))
        current = service.feedback.performance_for("a").predictive_accuracy
        assert previous <= current < 100.0
        previous = current
    assert previous > 99.0


def test_attribution_requires_two_mentions(service: TrendService):
    _seed(service, "Acme", "a", n=2)
    _seed(service, "Acme", "b", n=1)

    outcome = service.feedback.record_feedback(_fb("Acme", 4))

    assert outcome.updated_sources == ("a",)
    assert service.feedback.performance_for("a").predictive_accuracy == pytest.approx(55.0)
    assert service.feedback.performance_for("b").predictive_accuracy == 50.0
    assert service.feedback.feedback_count == 1
    assert len(service.feedback.feedback_for_brand("acme")) == 1


@pytest.mark.parametrize("rating", [0, 6, 2.5, True])
def test_invalid_ratings_are_rejected(service: TrendService, rating):
    with pytest.raises(ValidationError):
        service.feedback.record_feedback(BrandFeedback(brand_name="Acme", user_rating=rating, timestamp=NOW))
    assert service.feedback.feedback_count == 0


def test_performance_for_unknown_source(service: TrendService):
    with pytest.raises(NotFoundError):
        service.feedback.performance_for("nope")


def test_confirm_rate_excludes_neutral():
    assert confirm_rate([]) is None
    assert confirm_rate([_fb("x", 3), _fb("x", 3)]) is None
    assert confirm_rate([_fb("x", 5), _fb("x", 1), _fb("x", 3), _fb("x", 4)]) == pytest.approx(2 / 3)


# --- Control law ---


def test_no_adjustment_below_five_feedback(service: TrendService):
    for _ in range(4):
        outcome = service.feedback.record_feedback(_fb("Ghost", 1))
        assert outcome.parameters_adjusted is False
    assert service.engine.parameters() == ScoringParameters()


def test_well_tuned_system_is_left_alone(service: TrendService):
    for _ in range(8):
        service.feedback.record_feedback(_fb("Ghost", 5))
    assert service.engine.parameters() == ScoringParameters()


def test_weak_sources_and_stale_accuracy_step_factors_down(service: TrendService):
    outcomes = [service.feedback.record_feedback(_fb("Ghost", 1)) for _ in range(5)]

    assert [o.parameters_adjusted for o in outcomes] == [False, False, False, False, True]
    p = service.engine.parameters()
    assert p.source_weight_factor == pytest.approx(0.45)
    # Trailing rate (0) is not above all-time (0): recency steps down.
    assert p.recency_factor == pytest.approx(0.55)
    # Only the two controlled factors move.
    assert p.sentiment_factor == ScoringParameters().sentiment_factor
    assert p.centrality_factor == ScoringParameters().centrality_factor


def test_strong_leader_and_recent_confirmations_step_factors_up(service: TrendService):
    _seed(service, "Acme", "a")
    for _ in range(10):
        service.feedback.record_feedback(_fb("Acme", 5))
    # Old refutations on a brand no source is attributed to.
    outcomes = [service.feedback.record_feedback(_fb("Ghost", 1, age=timedelta(days=10))) for _ in range(3)]

    # 10/11 and 10/12 are above 0.8; 10/13 is not.
    assert [o.parameters_adjusted for o in outcomes] == [False, False, True]
    p = service.engine.parameters()
    assert service.feedback.performance_for("a").overall_score > 70
    assert p.source_weight_factor == pytest.approx(0.55)
    assert p.recency_factor == pytest.approx(0.65)


def test_factors_respect_bounds(three_sources: SourceRegistry):
    svc = service_for(three_sources, ScoringParameters(source_weight_factor=0.3, recency_factor=0.3))
    outcomes = [svc.feedback.record_feedback(_fb("Ghost", 1)) for _ in range(7)]

    assert not any(o.parameters_adjusted for o in outcomes)
    p = svc.engine.parameters()
    assert p.source_weight_factor == pytest.approx(0.3)
    assert p.recency_factor == pytest.approx(0.3)


def test_recency_untouched_without_recent_confirm_or_refute(service: TrendService):
    for _ in range(5):
        service.feedback.record_feedback(_fb("Ghost", 1, age=timedelta(days=30)))
    service.feedback.record_feedback(_fb("Ghost", 3))

    p = service.engine.parameters()
    assert p.recency_factor == pytest.approx(0.6)
    assert p.source_weight_factor == pytest.approx(0.4)


# --- Recommendations ---


def _build_spread(service: TrendService) -> None:
    """Source a becomes a strong performer, b a weak one, c stays neutral."""
    _seed(service, "Acme", "a")
    _seed(service, "Bolt", "b")
    for _ in range(10):
        service.feedback.record_feedback(_fb("Acme", 5))
    for _ in range(7):
        service.feedback.record_feedback(_fb("Bolt", 1))


def test_weight_recommendations(service: TrendService):
    _build_spread(service)

    recs = {r.source_id: r for r in service.feedback.recommend_source_weights()}

    assert set(recs) == {"a", "b"}
    # a: 30 -> min(36, 40)
    assert recs["a"].current_weight == 30
    assert recs["a"].recommended_weight == 36
    # b: 10 -> max(8, 5), a change of exactly 2 is emitted.
    assert recs["b"].recommended_weight == 8


def test_small_changes_are_not_recommended():
    reg = SourceRegistry([make_source("a", 30), make_source("b", 5), make_source("c", 65)])
    svc = service_for(reg)
    _build_spread(svc)

    recs = {r.source_id: r for r in svc.feedback.recommend_source_weights()}
    # b: max(4, 5) = 5 is no change.
    assert "b" not in recs
    assert "a" in recs


def test_recommendations_gated_on_feedback_count(service: TrendService):
    _seed(service, "Acme", "a")
    for _ in range(4):
        service.feedback.record_feedback(_fb("Acme", 5))
    assert service.feedback.recommend_source_weights() == []


def test_recommendations_gated_on_source_count(two_sources: SourceRegistry):
    svc = service_for(two_sources)
    _seed(svc, "Acme", "a")
    for _ in range(20):
        svc.feedback.record_feedback(_fb("Acme", 5))
    assert svc.feedback.recommend_source_weights() == []


def test_removals(service: TrendService):
    assert service.feedback.recommend_removals() == []
    _build_spread(service)
    assert service.feedback.recommend_removals() == ["b"]


def test_additions_come_from_the_graph(service: TrendService):
    service.context.graph.propose_discovered_sources(
        [
            DiscoveredSource(
                name=f"cand{i}",
                url=f"https://cand{i}.example.org",
                discovery_method=ConnectionType.MENTION,
                seed_connections=(SeedConnection(source_id="a", strength=50.0),),
                estimated_authority=float(i * 10),
                discovered_at=NOW,
            )
            for i in range(1, 6)
        ]
    )
    additions = service.feedback.recommend_additions()
    assert [d.name for d in additions] == ["cand5", "cand4", "cand3"]


def test_system_metrics(service: TrendService):
    m = service.feedback.system_metrics()
    assert m.feedback_count == 0
    assert m.trend_accuracy == 0.0
    assert m.average_source_performance == pytest.approx(50.0)
    assert m.scoring_parameters == ScoringParameters().as_dict()

    _build_spread(service)
    m = service.feedback.system_metrics()
    assert m.feedback_count == 17
    assert m.trend_accuracy == pytest.approx(10 / 17 * 100)
    assert m.top_performing_source_id == "a"
