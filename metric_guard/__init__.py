"""
Metric Guard - Decision-integrity guard for business metrics.

Sits between dashboards and decisions. Before a metric is used to justify
a pricing, growth, marketing, operations or product call, Metric Guard
checks whether the metric is trustworthy enough for that call. This is a
decision system, not an analytics dashboard.

Quick Start:
    >>> from metric_guard import MetricGuard, DecisionRequest
    >>> guard = MetricGuard()
    >>> result, record = guard.evaluate(request)
    >>> print(result.status)

Overriding a warning:
    >>> result, record = guard.override(result, justification, record)

Key Components:
    - MetricGuard: Main orchestrator (evaluate, override, label outcomes)
    - InMemoryMetricCatalog: Registry of certified metrics
    - AuditLog: Bounded, append-only decision history
    - GuardConfig: Configuration with all thresholds

Design Principles:
    - Decision-first: Every request ends in BLOCK, WARN or ALLOW
    - Explainable: Every decision names the rules that fired
    - Accountable: Overrides need written justification and cost confidence
    - Auditable: Every decision is recorded with its full rule lineage

Author: Metric Guard Team
Version: 0.1.0
License: MIT
"""

from __future__ import annotations

__version__ = "0.1.0"
__author__ = "Metric Guard Team"
__license__ = "MIT"

# Audit
from metric_guard.audit import AuditExporter, AuditLog, AuditReader

# Catalog
from metric_guard.catalog import InMemoryMetricCatalog, MetricCatalog, certify

# Configuration
from metric_guard.config import load_config, save_config

# Errors
from metric_guard.errors import (
    MetricGuardError,
    OverrideNotAllowedError,
    RecordNotFoundError,
    ValidationError,
)

# Main orchestrator
from metric_guard.guard import MetricGuard
from metric_guard.types import (
    AuditRecord,
    DecisionRequest,
    DecisionResult,
    DecisionStatus,
    DecisionType,
    ExternalSignals,
    GuardConfig,
    MetricCertification,
    MetricDefinition,
    OutcomeStatus,
    RuleOutcome,
    RuleStatus,
    TimeRange,
)

__all__ = [
    "AuditExporter",
    "AuditLog",
    "AuditReader",
    # Types - Data classes
    "AuditRecord",
    "DecisionRequest",
    "DecisionResult",
    # Types - Enums
    "DecisionStatus",
    "DecisionType",
    "ExternalSignals",
    # Configuration
    "GuardConfig",
    "InMemoryMetricCatalog",
    "MetricCatalog",
    "MetricCertification",
    "MetricDefinition",
    # Main class
    "MetricGuard",
    # Errors
    "MetricGuardError",
    "OutcomeStatus",
    "OverrideNotAllowedError",
    "RecordNotFoundError",
    "RuleOutcome",
    "RuleStatus",
    "TimeRange",
    "ValidationError",
    "__author__",
    "__license__",
    # Version info
    "__version__",
    "certify",
    "load_config",
    "save_config",
]
