"""
Rule Evaluator - Independent guard rules for metric usage requests.

Each rule is a pure function of the request, the catalog entry for the
metric, and externally supplied statistical signals. Rules are declared
once as descriptors and iterated uniformly; adding a rule means adding
a descriptor to RULES.

Rule set (evaluated in this order):
    | ID | Rule                      | Category       | Weight | Worst |
    |----|---------------------------|----------------|--------|-------|
    | A1 | Data Freshness            | data_integrity | 0.30   | fail  |
    | A2 | Partial Data Detection    | data_integrity | 0.30   | fail  |
    | B1 | Minimum Sample Threshold  | sample_size    | 0.25   | fail  |
    | B2 | Comparison Validity       | sample_size    | 0.25   | warn  |
    | C1 | Contributor Concentration | bias           | 0.25   | warn  |
    | C2 | Segment Drift             | bias           | 0.25   | warn  |
    | D1 | Vanity Metric Detection   | metric_misuse  | 0.20   | warn  |
    | D2 | Metric-Decision Match     | metric_misuse  | 0.20   | fail  |

Author: Metric Guard Team
"""

from __future__ import annotations

import logging

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Final, NamedTuple

import numpy as np

from ..catalog import MetricCatalog
from ..types import (
    DecisionRequest,
    ExternalSignals,
    GuardConfig,
    MetricDefinition,
    RuleCategory,
    RuleOutcome,
    RuleStatus,
    is_aware,
)

logger = logging.getLogger(__name__)


SECONDS_PER_HOUR: Final[float] = 3600.0


# =============================================================================
# DATA CLASSES
# =============================================================================

class Verdict(NamedTuple):
    """Status and optional reason returned by a rule check."""

    status: RuleStatus
    reason: str | None = None


PASS: Final[Verdict] = Verdict(RuleStatus.PASS)


@dataclass(frozen=True, slots=True)
class RuleContext:
    """
    Everything a rule may look at.

    Attributes:
        request: The decision request under evaluation
        metric: Catalog entry for the requested metric (None if unknown)
        signals: Collaborator-supplied statistical signals
        now: Evaluation time, used for freshness
        config: Thresholds
    """

    request: DecisionRequest
    metric: MetricDefinition | None
    signals: ExternalSignals
    now: datetime
    config: GuardConfig = field(default_factory=GuardConfig)


@dataclass(frozen=True, slots=True)
class RuleDescriptor:
    """
    Declaration of one guard rule.

    Attributes:
        rule_id: Stable short code
        name: Human-readable name
        category: Rule family
        weight: Relative importance in (0, 1]
        check: Pure function producing the rule's verdict
    """

    rule_id: str
    name: str
    category: RuleCategory
    weight: float
    check: Callable[[RuleContext], Verdict]

    def evaluate(self, context: RuleContext) -> RuleOutcome:
        """Run the check and wrap its verdict in a RuleOutcome."""
        verdict = self.check(context)
        return RuleOutcome(
            rule_id=self.rule_id,
            name=self.name,
            category=self.category,
            status=verdict.status,
            weight=self.weight,
            reason=verdict.reason if verdict.status != RuleStatus.PASS else None,
        )


# =============================================================================
# RULE CHECKS
# =============================================================================

def _age_hours(now: datetime, updated: datetime) -> float:
    """Hours between two datetimes; naive values are read as local time."""
    if is_aware(now) != is_aware(updated):
        now = now.astimezone()
        updated = updated.astimezone()
    return (now - updated).total_seconds() / SECONDS_PER_HOUR


def check_data_freshness(context: RuleContext) -> Verdict:
    """Fail when data is older than the freshness multiple of its refresh interval."""
    config = context.config
    age_hours = _age_hours(context.now, context.request.data_last_updated)

    expected_hours = (
        context.metric.refresh_rate_hours if context.metric else config.default_refresh_hours
    )
    threshold = expected_hours * config.freshness_multiplier

    if age_hours <= threshold:
        return PASS
    return Verdict(
        RuleStatus.FAIL,
        f"Data is {age_hours:.0f}h old, exceeds {threshold:g}h threshold",
    )


def check_partial_data(context: RuleContext) -> Verdict:
    """
    Fail when the sample is well below its historical average.

    Without a supplied historical average and without a configured
    default baseline there is nothing to compare against, so the rule
    passes.
    """
    config = context.config
    baseline = context.signals.historical_average_sample_size
    if baseline is None:
        baseline = config.default_historical_sample_size
    if baseline is None:
        return PASS

    threshold = baseline * config.partial_data_ratio
    sample_size = context.request.sample_size
    if sample_size >= threshold:
        return PASS
    return Verdict(
        RuleStatus.FAIL,
        f"Record count {sample_size} is below {config.partial_data_ratio:.0%} "
        f"of historical average ({baseline:g})",
    )


def check_min_sample(context: RuleContext) -> Verdict:
    """Fail when the sample is below the metric's certified minimum."""
    min_sample = (
        context.metric.min_sample_size
        if context.metric
        else context.config.default_min_sample_size
    )
    sample_size = context.request.sample_size
    if sample_size >= min_sample:
        return PASS
    return Verdict(
        RuleStatus.FAIL,
        f"Sample size {sample_size} is below minimum threshold of {min_sample}",
    )


def check_comparison_validity(context: RuleContext) -> Verdict:
    """Warn when a requested comparison period has too few samples."""
    if not context.request.has_comparison:
        return PASS

    comparison_size = context.signals.comparison_sample_size
    if comparison_size >= context.config.default_min_sample_size:
        return PASS
    return Verdict(
        RuleStatus.WARN,
        f"Comparison period sample size ({comparison_size}) may be insufficient",
    )


def check_concentration(context: RuleContext) -> Verdict:
    """Warn when a handful of contributors dominate the metric."""
    share = context.signals.top_contributor_share
    if share <= context.config.concentration_threshold:
        return PASS
    return Verdict(
        RuleStatus.WARN,
        f"Top 5 contributors account for {share:.0%} of metric value",
    )


def check_segment_drift(context: RuleContext) -> Verdict:
    """Warn when segment composition has shifted against the baseline."""
    changes = np.asarray(context.signals.segment_changes, dtype=float)
    if changes.size == 0:
        return PASS

    max_change = float(np.max(changes))
    if max_change <= context.config.segment_drift_threshold:
        return PASS
    return Verdict(
        RuleStatus.WARN,
        f"Segment composition changed by {max_change:.0%} vs baseline",
    )


def check_vanity_metric(context: RuleContext) -> Verdict:
    """Warn when the metric improves while the outcome it proxies declines."""
    signals = context.signals
    if signals.metric_trend > 0 and signals.outcome_trend < 0:
        return Verdict(
            RuleStatus.WARN,
            "Metric improved while business outcome declined",
        )
    return PASS


def check_metric_decision_match(context: RuleContext) -> Verdict:
    """
    Hard block when a known metric is not certified for the decision.

    An unknown metric only warns: missing certification data is not the
    same as known non-certification.
    """
    request = context.request
    metric = context.metric
    decision = request.decision_type.value

    if metric is None:
        return Verdict(
            RuleStatus.WARN,
            f'Unknown metric "{request.metric_id}" - cannot verify suitability '
            f"for {decision} decisions",
        )

    if not metric.allows(request.decision_type):
        allowed = ", ".join(d.value for d in metric.allowed_decisions)
        return Verdict(
            RuleStatus.FAIL,
            f"{request.metric_id} is NOT certified for {decision} decisions. "
            f"Allowed: {allowed}",
        )

    return PASS


# =============================================================================
# RULE SET
# =============================================================================

DATA_FRESHNESS = RuleDescriptor(
    "A1", "Data Freshness", RuleCategory.DATA_INTEGRITY, 0.30, check_data_freshness
)
PARTIAL_DATA = RuleDescriptor(
    "A2", "Partial Data Detection", RuleCategory.DATA_INTEGRITY, 0.30, check_partial_data
)
MIN_SAMPLE = RuleDescriptor(
    "B1", "Minimum Sample Threshold", RuleCategory.SAMPLE_SIZE, 0.25, check_min_sample
)
COMPARISON_VALIDITY = RuleDescriptor(
    "B2", "Comparison Validity", RuleCategory.SAMPLE_SIZE, 0.25, check_comparison_validity
)
CONCENTRATION = RuleDescriptor(
    "C1", "Contributor Concentration", RuleCategory.BIAS, 0.25, check_concentration
)
SEGMENT_DRIFT = RuleDescriptor(
    "C2", "Segment Drift", RuleCategory.BIAS, 0.25, check_segment_drift
)
VANITY_METRIC = RuleDescriptor(
    "D1", "Vanity Metric Detection", RuleCategory.METRIC_MISUSE, 0.20, check_vanity_metric
)
METRIC_DECISION_MATCH = RuleDescriptor(
    "D2", "Metric-Decision Match", RuleCategory.METRIC_MISUSE, 0.20, check_metric_decision_match
)

RULES: Final[tuple[RuleDescriptor, ...]] = (
    DATA_FRESHNESS,
    PARTIAL_DATA,
    MIN_SAMPLE,
    COMPARISON_VALIDITY,
    CONCENTRATION,
    SEGMENT_DRIFT,
    VANITY_METRIC,
    METRIC_DECISION_MATCH,
)

RULES_BY_ID: Final[dict[str, RuleDescriptor]] = {r.rule_id: r for r in RULES}


def run_all(
    request: DecisionRequest,
    catalog: MetricCatalog,
    signals: ExternalSignals | None = None,
    now: datetime | None = None,
    config: GuardConfig | None = None,
    rules: tuple[RuleDescriptor, ...] = RULES,
) -> tuple[RuleOutcome, ...]:
    """
    Evaluate every guard rule against a request.

    Args:
        request: Decision request to evaluate
        catalog: Metric catalog to look the metric up in
        signals: Optional external signals (neutral defaults if omitted)
        now: Evaluation time (defaults to datetime.now())
        config: Thresholds (defaults to GuardConfig())
        rules: Rule set to evaluate, in display order

    Returns:
        Rule outcomes in declared order.
    """
    context = RuleContext(
        request=request,
        metric=catalog.get(request.metric_id),
        signals=signals or ExternalSignals(),
        now=now or datetime.now(),
        config=config or GuardConfig(),
    )

    outcomes = tuple(rule.evaluate(context) for rule in rules)

    for outcome in outcomes:
        if not outcome.passed:
            logger.debug(
                f"Rule {outcome.rule_id} ({outcome.name}) -> {outcome.status.value}: "
                f"{outcome.reason}"
            )

    return outcomes
