"""
Tests for the guard rules.
"""

import pytest
from datetime import datetime, timedelta, timezone

from metric_guard.catalog import InMemoryMetricCatalog
from metric_guard.errors import ValidationError
from metric_guard.rules import RULES, RULES_BY_ID, RuleContext, run_all
from metric_guard.rules.evaluator import (
    check_comparison_validity,
    check_concentration,
    check_data_freshness,
    check_metric_decision_match,
    check_min_sample,
    check_partial_data,
    check_segment_drift,
    check_vanity_metric,
)
from metric_guard.types import (
    DecisionRequest,
    DecisionType,
    ExternalSignals,
    GuardConfig,
    RuleStatus,
    TimeRange,
)

NOW = datetime(2025, 6, 1, 12, 0, 0)
CATALOG = InMemoryMetricCatalog()


def make_request(
    metric_id: str = "retention",
    decision_type: DecisionType = DecisionType.GROWTH,
    sample_size: int = 250,
    hours_old: float = 10,
    comparison: bool = False,
) -> DecisionRequest:
    """Helper to create a request evaluated at NOW."""
    time_range = TimeRange(NOW - timedelta(days=30), NOW)
    return DecisionRequest(
        metric_id=metric_id,
        decision_type=decision_type,
        time_range=time_range,
        sample_size=sample_size,
        data_last_updated=NOW - timedelta(hours=hours_old),
        comparison_range=(
            TimeRange(NOW - timedelta(days=60), NOW - timedelta(days=30)) if comparison else None
        ),
    )


def make_context(
    request: DecisionRequest = None,
    signals: ExternalSignals = None,
    config: GuardConfig = None,
) -> RuleContext:
    """Helper to create a rule context with catalog lookup."""
    request = request or make_request()
    return RuleContext(
        request=request,
        metric=CATALOG.get(request.metric_id),
        signals=signals or ExternalSignals(),
        now=NOW,
        config=config or GuardConfig(),
    )


class TestRuleSet:
    """Tests for the declared rule set."""

    def test_rule_order_and_ids(self):
        """Rules are declared in display order."""
        assert [r.rule_id for r in RULES] == ["A1", "A2", "B1", "B2", "C1", "C2", "D1", "D2"]

    def test_weights(self):
        """Rule weights match their category importance."""
        weights = {r.rule_id: r.weight for r in RULES}
        assert weights["A1"] == weights["A2"] == 0.30
        assert weights["B1"] == weights["B2"] == weights["C1"] == weights["C2"] == 0.25
        assert weights["D1"] == weights["D2"] == 0.20

    def test_lookup_by_id(self):
        assert RULES_BY_ID["D2"].name == "Metric-Decision Match"

    def test_run_all_returns_one_outcome_per_rule(self):
        """Every rule is evaluated, even after a failure."""
        outcomes = run_all(make_request(metric_id="revenue", decision_type=DecisionType.PRODUCT),
                           CATALOG, now=NOW)
        assert len(outcomes) == len(RULES)
        assert [o.rule_id for o in outcomes] == [r.rule_id for r in RULES]

    def test_clean_request_all_pass(self):
        """A fresh, well-sampled, certified request passes every rule."""
        outcomes = run_all(make_request(), CATALOG, now=NOW)
        assert all(o.passed for o in outcomes)
        assert all(o.reason is None for o in outcomes)


class TestDataFreshness:
    """Tests for rule A1."""

    def test_within_refresh_window_passes(self):
        """Retention refreshes weekly; 10h old data is fresh."""
        verdict = check_data_freshness(make_context())
        assert verdict.status == RuleStatus.PASS

    def test_stale_data_fails(self):
        """Data older than 1.5x the refresh interval fails."""
        context = make_context(make_request(hours_old=300))
        verdict = check_data_freshness(context)

        assert verdict.status == RuleStatus.FAIL
        assert verdict.reason == "Data is 300h old, exceeds 252h threshold"

    def test_boundary_passes(self):
        """Exactly at the threshold is still fresh."""
        context = make_context(make_request(hours_old=252))
        assert check_data_freshness(context).status == RuleStatus.PASS

    def test_unknown_metric_uses_default_refresh(self):
        """Unknown metrics assume a 24h refresh, so 36h is the limit."""
        ok = make_context(make_request(metric_id="mystery", hours_old=30))
        stale = make_context(make_request(metric_id="mystery", hours_old=40))

        assert check_data_freshness(ok).status == RuleStatus.PASS
        assert check_data_freshness(stale).status == RuleStatus.FAIL


class TestPartialData:
    """Tests for rule A2."""

    def test_no_baseline_passes(self):
        """Without a historical average there is nothing to compare against."""
        assert check_partial_data(make_context()).status == RuleStatus.PASS

    def test_below_ratio_fails(self):
        signals = ExternalSignals(historical_average_sample_size=1000)
        context = make_context(make_request(sample_size=600), signals=signals)
        verdict = check_partial_data(context)

        assert verdict.status == RuleStatus.FAIL
        assert verdict.reason == "Record count 600 is below 70% of historical average (1000)"

    def test_at_ratio_passes(self):
        signals = ExternalSignals(historical_average_sample_size=1000)
        context = make_context(make_request(sample_size=700), signals=signals)
        assert check_partial_data(context).status == RuleStatus.PASS

    def test_configured_default_baseline(self):
        """A configured default baseline applies when signals carry none."""
        config = GuardConfig(default_historical_sample_size=1000)
        context = make_context(make_request(sample_size=250), config=config)
        assert check_partial_data(context).status == RuleStatus.FAIL

    def test_signal_beats_configured_default(self):
        config = GuardConfig(default_historical_sample_size=1000)
        signals = ExternalSignals(historical_average_sample_size=300)
        context = make_context(make_request(sample_size=250), signals=signals, config=config)
        assert check_partial_data(context).status == RuleStatus.PASS


class TestMinimumSample:
    """Tests for rule B1."""

    def test_below_metric_minimum_fails(self):
        context = make_context(make_request(
            metric_id="nps", decision_type=DecisionType.PRODUCT, sample_size=40,
        ))
        verdict = check_min_sample(context)

        assert verdict.status == RuleStatus.FAIL
        assert verdict.reason == "Sample size 40 is below minimum threshold of 100"

    def test_metric_specific_minimum(self):
        """Retention needs 200 samples."""
        context = make_context(make_request(sample_size=150))
        assert check_min_sample(context).status == RuleStatus.FAIL

    def test_zero_sample_fails_unknown_metric(self):
        context = make_context(make_request(metric_id="mystery", sample_size=0))
        assert check_min_sample(context).status == RuleStatus.FAIL


class TestComparisonValidity:
    """Tests for rule B2."""

    def test_no_comparison_passes(self):
        signals = ExternalSignals(comparison_sample_size=10)
        assert check_comparison_validity(make_context(signals=signals)).status == RuleStatus.PASS

    def test_small_comparison_warns(self):
        signals = ExternalSignals(comparison_sample_size=80)
        context = make_context(make_request(comparison=True), signals=signals)
        verdict = check_comparison_validity(context)

        assert verdict.status == RuleStatus.WARN
        assert "(80)" in verdict.reason

    def test_default_comparison_sample_passes(self):
        context = make_context(make_request(comparison=True))
        assert check_comparison_validity(context).status == RuleStatus.PASS


class TestBiasRules:
    """Tests for rules C1 and C2."""

    def test_concentration_warns_above_threshold(self):
        context = make_context(signals=ExternalSignals(top_contributor_share=0.75))
        verdict = check_concentration(context)

        assert verdict.status == RuleStatus.WARN
        assert verdict.reason == "Top 5 contributors account for 75% of metric value"

    def test_concentration_at_threshold_passes(self):
        context = make_context(signals=ExternalSignals(top_contributor_share=0.60))
        assert check_concentration(context).status == RuleStatus.PASS

    def test_segment_drift_uses_largest_change(self):
        context = make_context(signals=ExternalSignals(segment_changes=[0.05, 0.30, 0.10]))
        verdict = check_segment_drift(context)

        assert verdict.status == RuleStatus.WARN
        assert verdict.reason == "Segment composition changed by 30% vs baseline"

    @pytest.mark.parametrize("changes", [(), (0.25,), (0.0, 0.1)])
    def test_segment_drift_passes(self, changes):
        context = make_context(signals=ExternalSignals(segment_changes=changes))
        assert check_segment_drift(context).status == RuleStatus.PASS


class TestMetricMisuse:
    """Tests for rules D1 and D2."""

    def test_vanity_metric_warns(self):
        """Metric up while the business outcome is down."""
        context = make_context(signals=ExternalSignals(metric_trend=0.2, outcome_trend=-0.1))
        assert check_vanity_metric(context).status == RuleStatus.WARN

    def test_aligned_trends_pass(self):
        context = make_context(signals=ExternalSignals(metric_trend=-0.2, outcome_trend=-0.1))
        assert check_vanity_metric(context).status == RuleStatus.PASS

    def test_uncertified_metric_fails(self):
        context = make_context(make_request(metric_id="revenue", decision_type=DecisionType.PRODUCT))
        verdict = check_metric_decision_match(context)

        assert verdict.status == RuleStatus.FAIL
        assert verdict.reason == (
            "revenue is NOT certified for product decisions. Allowed: pricing, growth"
        )

    def test_unknown_metric_only_warns(self):
        """Missing certification data is not known non-certification."""
        context = make_context(make_request(metric_id="mystery"))
        verdict = check_metric_decision_match(context)

        assert verdict.status == RuleStatus.WARN
        assert '"mystery"' in verdict.reason

    def test_lookup_is_normalized(self):
        """Case and whitespace do not affect catalog lookup."""
        context = make_context(make_request(metric_id="  Retention "))
        assert check_metric_decision_match(context).status == RuleStatus.PASS


class TestTimezones:
    """Tests for naive and timezone-aware timestamps."""

    def test_aware_request_with_naive_clock(self):
        """A UTC-dated request is compared against a naive local clock."""
        now_utc = datetime.now(timezone.utc)
        request = DecisionRequest(
            metric_id="retention",
            decision_type=DecisionType.GROWTH,
            time_range=TimeRange(now_utc - timedelta(days=30), now_utc),
            sample_size=250,
            data_last_updated=now_utc - timedelta(hours=10),
        )

        outcomes = run_all(request, CATALOG, now=datetime.now())

        assert outcomes[0].rule_id == "A1"
        assert outcomes[0].passed

    def test_aware_stale_data_fails(self):
        now_utc = datetime.now(timezone.utc)
        request = DecisionRequest(
            metric_id="revenue",
            decision_type=DecisionType.PRICING,
            time_range=TimeRange(now_utc - timedelta(days=30), now_utc),
            sample_size=250,
            data_last_updated=now_utc - timedelta(hours=100),
        )

        outcomes = run_all(request, CATALOG, now=datetime.now())

        assert outcomes[0].status == RuleStatus.FAIL

    def test_mixed_time_range_rejected(self):
        with pytest.raises(ValidationError):
            TimeRange(NOW - timedelta(days=1), datetime.now(timezone.utc))

    def test_mixed_request_rejected(self):
        """All request timestamps must agree on naive versus aware."""
        with pytest.raises(ValidationError):
            DecisionRequest(
                metric_id="retention",
                decision_type=DecisionType.GROWTH,
                time_range=TimeRange(NOW - timedelta(days=30), NOW),
                sample_size=250,
                data_last_updated=datetime.now(timezone.utc),
            )
