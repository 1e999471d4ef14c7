"""
Tests for the explanation generator.
"""

import pytest
from datetime import datetime, timedelta

from metric_guard.decision.explain import (
    ALLOW_ACTION,
    ALLOW_EXPLANATION,
    BLOCK_FALLBACK_ACTION,
    WARN_ACTION,
    explain,
    render_decision,
    risk_summary,
    suggest,
)
from metric_guard.decision.engine import DecisionEngine
from metric_guard.catalog import InMemoryMetricCatalog, certify
from metric_guard.types import (
    DecisionRequest,
    DecisionStatus,
    DecisionType,
    RiskLevel,
    RuleCategory,
    RuleOutcome,
    RuleStatus,
    TimeRange,
)

NOW = datetime(2025, 6, 1, 12, 0, 0)


def make_outcome(
    rule_id: str,
    status: RuleStatus = RuleStatus.PASS,
    category: RuleCategory = RuleCategory.DATA_INTEGRITY,
    reason: str = None,
) -> RuleOutcome:
    """Helper to create a rule outcome."""
    if status != RuleStatus.PASS and reason is None:
        reason = f"{rule_id} problem"
    return RuleOutcome(rule_id, f"Rule {rule_id}", category, status, 0.25, reason)


def make_request(sample_size: int = 250) -> DecisionRequest:
    return DecisionRequest(
        metric_id="retention",
        decision_type=DecisionType.GROWTH,
        time_range=TimeRange(NOW - timedelta(days=30), NOW),
        sample_size=sample_size,
        data_last_updated=NOW,
    )


class TestExplain:
    """Tests for explanation text."""

    def test_block_lists_failures_only(self):
        outcomes = [
            make_outcome("A1", RuleStatus.FAIL, reason="stale"),
            make_outcome("C1", RuleStatus.WARN, reason="concentrated"),
            make_outcome("B1", RuleStatus.FAIL, reason="too few"),
        ]
        assert explain(DecisionStatus.BLOCK, outcomes) == "Decision blocked: stale; too few"

    def test_warn_lists_warnings(self):
        outcomes = [make_outcome("C1", RuleStatus.WARN, reason="concentrated")]
        assert explain(DecisionStatus.WARN, outcomes) == "Proceed with caution: concentrated"

    def test_warn_without_warnings_mentions_threshold(self):
        """Low confidence alone still gets a non-empty explanation."""
        text = explain(DecisionStatus.WARN, [make_outcome("A1")])
        assert "threshold" in text

    def test_allow(self):
        assert explain(DecisionStatus.ALLOW, [make_outcome("A1")]) == ALLOW_EXPLANATION


class TestSuggest:
    """Tests for remediation hints."""

    def test_metric_misuse_has_priority(self):
        outcomes = [
            make_outcome("A1", RuleStatus.FAIL, RuleCategory.DATA_INTEGRITY),
            make_outcome("D2", RuleStatus.FAIL, RuleCategory.METRIC_MISUSE),
        ]
        assert suggest(DecisionStatus.BLOCK, outcomes) == (
            "Select a metric certified for this decision type."
        )

    def test_data_integrity_before_sample_size(self):
        outcomes = [
            make_outcome("B1", RuleStatus.FAIL, RuleCategory.SAMPLE_SIZE),
            make_outcome("A1", RuleStatus.FAIL, RuleCategory.DATA_INTEGRITY),
        ]
        assert suggest(DecisionStatus.BLOCK, outcomes) == "Wait for fresh data ingestion."

    def test_sample_size(self):
        outcomes = [make_outcome("B1", RuleStatus.FAIL, RuleCategory.SAMPLE_SIZE)]
        assert suggest(DecisionStatus.BLOCK, outcomes) == (
            "Collect more data or extend the time range."
        )

    def test_block_fallback(self):
        outcomes = [make_outcome("X1", RuleStatus.FAIL, RuleCategory.BIAS)]
        assert suggest(DecisionStatus.BLOCK, outcomes) == BLOCK_FALLBACK_ACTION

    def test_warn_and_allow(self):
        assert suggest(DecisionStatus.WARN, []) == WARN_ACTION
        assert suggest(DecisionStatus.ALLOW, []) == ALLOW_ACTION


class TestRiskSummary:
    """Tests for the structured risk view."""

    def test_clean_high_confidence_is_low_risk(self):
        summary = risk_summary(make_request(), [make_outcome("A1")], 1.0)

        assert summary.risk_level == RiskLevel.LOW
        assert summary.confidence_band == pytest.approx((0.85, 1.0))
        assert summary.potential_consequences == ("Low risk - data quality verified",)
        assert summary.historical_context is None

    def test_levels_from_counts(self):
        one_warn = [make_outcome("C1", RuleStatus.WARN)]
        two_warn = one_warn + [make_outcome("C2", RuleStatus.WARN)]
        one_fail = [make_outcome("A1", RuleStatus.FAIL)]

        assert risk_summary(make_request(), one_warn, 0.9).risk_level == RiskLevel.MEDIUM
        assert risk_summary(make_request(), two_warn, 0.9).risk_level == RiskLevel.HIGH
        assert risk_summary(make_request(), one_fail, 0.9).risk_level == RiskLevel.CRITICAL

    def test_band_is_clamped(self):
        summary = risk_summary(make_request(), [make_outcome("A1")], 0.05)
        assert summary.confidence_band[0] == 0.0

    def test_consequences_from_rules(self):
        outcomes = [
            make_outcome("A1", RuleStatus.FAIL),
            make_outcome("C1", RuleStatus.WARN, RuleCategory.BIAS),
            make_outcome("D2", RuleStatus.FAIL, RuleCategory.METRIC_MISUSE),
        ]
        consequences = risk_summary(make_request(sample_size=80), outcomes, 0.4).potential_consequences

        assert "Trend may reverse with more data" in consequences
        assert "High probability of incorrect decision" in consequences
        assert "Result driven by few large contributors" in consequences
        assert "Metric does not measure what this decision requires" in consequences
        assert "Reality may have already changed" in consequences

    def test_sparse_data_context(self):
        summary = risk_summary(make_request(sample_size=40), [make_outcome("A1")], 0.9)
        assert summary.historical_context.startswith("Based on only 40 records.")


class TestRenderDecision:
    """Tests for the text report."""

    def test_report_is_readable(self):
        outcomes = [
            make_outcome("A1"),
            make_outcome("D2", RuleStatus.FAIL, RuleCategory.METRIC_MISUSE, reason="not certified"),
        ]
        result = DecisionEngine().decide(
            make_request(), outcomes, certify(InMemoryMetricCatalog(), "retention"), now=NOW
        )

        report = render_decision(result, metric_id="retention")

        assert "Metric:      retention" in report
        assert "Status:      BLOCK" in report
        assert "[x] D2 Rule D2 - not certified" in report
        assert "[+] A1 Rule A1" in report
        assert "WHY YOU SHOULD CARE:" in report
