"""
Explanation Generator - Human-readable rationale for decisions.

Derives the explanation text, a remediation hint and a structured risk
summary from rule outcomes and aggregate confidence.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Final

from ..types import (
    DecisionRequest,
    DecisionResult,
    DecisionStatus,
    RiskLevel,
    RiskSummary,
    RuleCategory,
    RuleOutcome,
    RuleStatus,
)

# Rule ids referenced by consequence checks
FRESHNESS_RULE_ID: Final[str] = "A1"
CONCENTRATION_RULE_ID: Final[str] = "C1"
METRIC_MATCH_RULE_ID: Final[str] = "D2"

ALLOW_EXPLANATION: Final[str] = (
    "All guard checks passed. Data quality and statistical validity confirmed."
)

# Remediation hints for BLOCK, highest priority first
BLOCK_REMEDIATIONS: Final[tuple[tuple[RuleCategory, str], ...]] = (
    (RuleCategory.METRIC_MISUSE, "Select a metric certified for this decision type."),
    (RuleCategory.DATA_INTEGRITY, "Wait for fresh data ingestion."),
    (RuleCategory.SAMPLE_SIZE, "Collect more data or extend the time range."),
)
BLOCK_FALLBACK_ACTION: Final[str] = "Resolve the failing guard checks before proceeding."
WARN_ACTION: Final[str] = "Override requires written justification."
ALLOW_ACTION: Final[str] = "Proceed with confidence."

# Risk summary thresholds
SMALL_SAMPLE: Final[int] = 100
SPARSE_SAMPLE: Final[int] = 50
LOW_CONFIDENCE: Final[float] = 0.50
HIGH_CONFIDENCE: Final[float] = 0.80
BAND_BELOW: Final[float] = 0.15
BAND_ABOVE: Final[float] = 0.10


def _reasons(outcomes: Sequence[RuleOutcome], status: RuleStatus) -> str:
    return "; ".join(o.reason or "" for o in outcomes if o.status == status)


def explain(status: DecisionStatus, outcomes: Sequence[RuleOutcome]) -> str:
    """
    Explain a decision status.

    BLOCK lists the failing reasons, WARN lists the warning reasons and
    ALLOW returns a fixed affirmation.
    """
    if status == DecisionStatus.BLOCK:
        return f"Decision blocked: {_reasons(outcomes, RuleStatus.FAIL)}"
    if status == DecisionStatus.WARN:
        warnings = _reasons(outcomes, RuleStatus.WARN)
        if not warnings:
            return "Proceed with caution: aggregate confidence is below the allow threshold"
        return f"Proceed with caution: {warnings}"
    return ALLOW_EXPLANATION


def suggest(status: DecisionStatus, outcomes: Sequence[RuleOutcome]) -> str:
    """
    Suggest a remediation for a decision status.

    For BLOCK, failing categories are checked in priority order
    metric_misuse > data_integrity > sample_size.
    """
    if status == DecisionStatus.BLOCK:
        failed = {o.category for o in outcomes if o.status == RuleStatus.FAIL}
        for category, action in BLOCK_REMEDIATIONS:
            if category in failed:
                return action
        return BLOCK_FALLBACK_ACTION

    if status == DecisionStatus.WARN:
        return WARN_ACTION

    return ALLOW_ACTION


def _not_passed(outcomes: Sequence[RuleOutcome], rule_id: str) -> bool:
    return any(o.rule_id == rule_id and not o.passed for o in outcomes)


def risk_summary(
    request: DecisionRequest,
    outcomes: Sequence[RuleOutcome],
    confidence: float,
) -> RiskSummary:
    """
    Build the structured risk view for a decision.

    Args:
        request: The evaluated request
        outcomes: Rule outcomes
        confidence: Aggregate confidence

    Returns:
        RiskSummary with level, asymmetric confidence band,
        consequences and an optional sparse-data note.
    """
    failed = sum(1 for o in outcomes if o.status == RuleStatus.FAIL)
    warned = sum(1 for o in outcomes if o.status == RuleStatus.WARN)

    if failed > 0:
        level = RiskLevel.CRITICAL
    elif warned >= 2:
        level = RiskLevel.HIGH
    elif warned == 1:
        level = RiskLevel.MEDIUM
    else:
        level = RiskLevel.LOW

    # Overconfidence is penalized more than underconfidence
    band = (max(0.0, confidence - BAND_BELOW), min(1.0, confidence + BAND_ABOVE))

    consequences: list[str] = []
    if request.sample_size < SMALL_SAMPLE:
        consequences.append("Trend may reverse with more data")
    if confidence < LOW_CONFIDENCE:
        consequences.append("High probability of incorrect decision")
    if _not_passed(outcomes, CONCENTRATION_RULE_ID):
        consequences.append("Result driven by few large contributors")
    if _not_passed(outcomes, METRIC_MATCH_RULE_ID):
        consequences.append("Metric does not measure what this decision requires")
    if _not_passed(outcomes, FRESHNESS_RULE_ID):
        consequences.append("Reality may have already changed")

    if not consequences and confidence > HIGH_CONFIDENCE:
        consequences.append("Low risk - data quality verified")

    historical_context = None
    if request.sample_size < SPARSE_SAMPLE:
        historical_context = (
            f"Based on only {request.sample_size} records. "
            "Similar sparse-data decisions historically volatile."
        )

    return RiskSummary(
        risk_level=level,
        confidence_band=band,
        potential_consequences=tuple(consequences),
        historical_context=historical_context,
    )


def render_decision(result: DecisionResult, metric_id: str | None = None) -> str:
    """
    Render a decision as a multi-line report.

    Useful for logging, the CLI and debugging.

    Args:
        result: The decision result to render
        metric_id: Optional metric label for the header

    Returns:
        Multi-line string report
    """
    risk = result.risk_summary
    lines = [
        "=" * 48,
        "METRIC GUARD DECISION",
        "=" * 48,
    ]
    if metric_id:
        lines.append(f"Metric:      {metric_id}")
    lines.extend([
        f"Status:      {result.status.value}",
        f"Confidence:  {result.confidence:.0%} "
        f"(band {risk.confidence_band[0]:.0%} - {risk.confidence_band[1]:.0%})",
        f"Risk level:  {risk.risk_level.value}",
        "",
        result.explanation,
        f"Next step:   {result.suggested_action}",
        "",
        "RULES:",
    ])

    for outcome in result.outcomes:
        marker = {"pass": "+", "warn": "!", "fail": "x"}[outcome.status.value]
        line = f"  [{marker}] {outcome.rule_id} {outcome.name}"
        if outcome.reason:
            line += f" - {outcome.reason}"
        lines.append(line)

    if risk.potential_consequences:
        lines.append("")
        lines.append("WHY YOU SHOULD CARE:")
        for consequence in risk.potential_consequences:
            lines.append(f"  • {consequence}")

    if risk.historical_context:
        lines.append(f"  • {risk.historical_context}")

    lines.append("=" * 48)

    return "\n".join(lines)
