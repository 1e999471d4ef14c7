"""
Metric Catalog - Read-only certification metadata for business metrics.

The guard consumes the catalog through the MetricCatalog protocol. The
in-memory catalog below ships the default registry; a real deployment
can substitute any object with the same two lookup methods.
"""

from __future__ import annotations

import logging

from collections.abc import Iterable
from typing import Final, Protocol

from ..types import (
    DecisionType,
    MetricCategory,
    MetricCertification,
    MetricDefinition,
    normalize_metric_id,
)

logger = logging.getLogger(__name__)


ALL_DECISION_TYPES: Final[tuple[DecisionType, ...]] = tuple(DecisionType)

# Certification caveat thresholds
CERTIFICATION_SAMPLE_WARNING: Final[int] = 100
CERTIFICATION_REFRESH_WARNING_HOURS: Final[float] = 24.0


class MetricCatalog(Protocol):
    """Lookup interface the rule evaluator depends on."""

    def get(self, metric_id: str) -> MetricDefinition | None:
        ...

    def allowed_decisions(self, metric_id: str) -> frozenset[DecisionType]:
        ...


def _metric(
    metric_id: str,
    name: str,
    allowed: tuple[DecisionType, ...],
    min_sample_size: int,
    refresh_rate_hours: float,
    counter_metrics: tuple[str, ...],
    category: MetricCategory,
) -> MetricDefinition:
    return MetricDefinition(
        metric_id=metric_id,
        name=name,
        allowed_decisions=allowed,
        min_sample_size=min_sample_size,
        refresh_rate_hours=refresh_rate_hours,
        counter_metrics=counter_metrics,
        category=category,
    )


G = DecisionType.GROWTH
P = DecisionType.PRICING
M = DecisionType.MARKETING
O = DecisionType.OPERATIONS  # noqa: E741
PR = DecisionType.PRODUCT

DEFAULT_METRICS: Final[tuple[MetricDefinition, ...]] = (
    # Revenue / pricing
    _metric("revenue", "Revenue", (P, G), 100, 24, ("churn", "cac"), MetricCategory.REVENUE),
    _metric("margin", "Margin", (P, O), 100, 24, ("revenue", "volume"), MetricCategory.REVENUE),
    _metric("arpu", "ARPU", (P, G), 50, 24, ("retention", "churn"), MetricCategory.REVENUE),
    _metric("elasticity", "Price Elasticity", (P,), 200, 48, ("margin", "volume"), MetricCategory.REVENUE),
    # Growth
    _metric("acquisition", "User Acquisition", (G, M), 100, 24, ("cac", "retention"), MetricCategory.ENGAGEMENT),
    _metric("retention", "Retention Rate", (G, PR), 200, 168, ("churn", "ltv"), MetricCategory.RETENTION),
    _metric("ltv", "Lifetime Value", (G, P), 100, 168, ("cac", "churn"), MetricCategory.REVENUE),
    _metric("churn", "Churn Rate", (G, PR), 100, 168, ("retention", "nps"), MetricCategory.RETENTION),
    # Marketing
    _metric("cac", "Customer Acquisition Cost", (M, G), 50, 24, ("ltv", "conversion"), MetricCategory.COST),
    _metric("roas", "Return on Ad Spend", (M,), 100, 24, ("cac", "conversion"), MetricCategory.EFFICIENCY),
    _metric("conversion", "Conversion Rate", (M, PR), 200, 24, ("revenue", "engagement"), MetricCategory.CONVERSION),
    # Product
    _metric("engagement", "Engagement", (PR, M), 500, 24, ("retention", "conversion"), MetricCategory.ENGAGEMENT),
    _metric("nps", "Net Promoter Score", (PR,), 100, 168, ("churn", "retention"), MetricCategory.ENGAGEMENT),
    _metric("adoption", "Feature Adoption", (PR,), 100, 24, ("engagement", "retention"), MetricCategory.ENGAGEMENT),
    # Operations
    _metric("efficiency", "Operational Efficiency", (O,), 50, 24, ("cost", "quality"), MetricCategory.EFFICIENCY),
    _metric("cost", "Cost per Unit", (O, P), 100, 24, ("margin", "efficiency"), MetricCategory.COST),
    _metric("throughput", "Throughput", (O,), 100, 12, ("quality", "cost"), MetricCategory.EFFICIENCY),
    _metric("quality", "Quality Score", (O, PR), 50, 24, ("throughput", "cost"), MetricCategory.EFFICIENCY),
)


class InMemoryMetricCatalog:
    """
    Immutable, dictionary-backed metric catalog.

    Lookups normalize identifiers (lowercase, no whitespace), so both
    "Retention Rate"-style keys and raw ids resolve consistently.

    Usage:
        >>> catalog = InMemoryMetricCatalog()
        >>> catalog.get("revenue").allowed_decisions
        (<DecisionType.PRICING: 'pricing'>, <DecisionType.GROWTH: 'growth'>)
    """

    def __init__(self, metrics: Iterable[MetricDefinition] = DEFAULT_METRICS) -> None:
        self._metrics: dict[str, MetricDefinition] = {}
        for metric in metrics:
            key = normalize_metric_id(metric.metric_id)
            if key in self._metrics:
                raise ValueError(f"duplicate metric id in catalog: {key}")
            self._metrics[key] = metric
        logger.debug(f"Metric catalog loaded with {len(self._metrics)} metrics")

    def __len__(self) -> int:
        return len(self._metrics)

    def __contains__(self, metric_id: object) -> bool:
        return isinstance(metric_id, str) and normalize_metric_id(metric_id) in self._metrics

    def get(self, metric_id: str) -> MetricDefinition | None:
        """Return the metric definition, or None if the metric is unknown."""
        return self._metrics.get(normalize_metric_id(metric_id))

    def allowed_decisions(self, metric_id: str) -> frozenset[DecisionType]:
        """Decision classes the metric is certified for (empty if unknown)."""
        metric = self.get(metric_id)
        if metric is None:
            return frozenset()
        return frozenset(metric.allowed_decisions)

    def is_valid_for(self, metric_id: str, decision_type: DecisionType) -> bool:
        """True if the metric is known and certified for the decision class."""
        return decision_type in self.allowed_decisions(metric_id)

    def metrics_for_decision(self, decision_type: DecisionType) -> list[MetricDefinition]:
        """All metrics certified for a decision class, in catalog order."""
        return [m for m in self._metrics.values() if m.allows(decision_type)]

    def all(self) -> list[MetricDefinition]:
        """All metrics in catalog order."""
        return list(self._metrics.values())


def certify(catalog: MetricCatalog, metric_id: str) -> MetricCertification:
    """
    Summarize which decision classes a metric is safe for.

    Args:
        catalog: Metric catalog to query
        metric_id: Metric identifier (normalized on lookup)

    Returns:
        MetricCertification with certified and unsafe classes, a score
        of |certified| / |all classes| and caveat warnings.
    """
    metric = catalog.get(metric_id)
    if metric is None:
        return MetricCertification(
            certified_for=(),
            unsafe_for=ALL_DECISION_TYPES,
            certification_score=0.0,
            warnings=("Unknown metric - cannot certify",),
        )

    certified_for = tuple(metric.allowed_decisions)
    unsafe_for = tuple(d for d in ALL_DECISION_TYPES if d not in certified_for)

    warnings: list[str] = []
    if metric.min_sample_size > CERTIFICATION_SAMPLE_WARNING:
        warnings.append(f"Requires {metric.min_sample_size}+ samples for validity")
    if metric.refresh_rate_hours > CERTIFICATION_REFRESH_WARNING_HOURS:
        warnings.append(
            f"Slow refresh rate ({metric.refresh_rate_hours:g}h) - may lag reality"
        )

    return MetricCertification(
        certified_for=certified_for,
        unsafe_for=unsafe_for,
        certification_score=len(certified_for) / len(ALL_DECISION_TYPES),
        warnings=tuple(warnings),
    )
