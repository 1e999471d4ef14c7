"""
Metric catalog for Metric Guard.

Read-only certification metadata consumed by the rule evaluator.
"""

from .registry import (
    ALL_DECISION_TYPES,
    DEFAULT_METRICS,
    InMemoryMetricCatalog,
    MetricCatalog,
    certify,
)

__all__ = [
    "ALL_DECISION_TYPES",
    "DEFAULT_METRICS",
    "InMemoryMetricCatalog",
    "MetricCatalog",
    "certify",
]
