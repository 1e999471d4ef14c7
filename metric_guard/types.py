"""
Core type definitions for Metric Guard.

This module defines all data structures used throughout the system.
Design principles:
- Immutable where possible (frozen dataclasses)
- Explicit validation at construction time
- Serialization/deserialization with explicit methods
- No magic strings - all states are enums

Author: Metric Guard Team
"""

from __future__ import annotations

import logging

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, ClassVar, Final

from .errors import ValidationError

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

MIN_CONFIDENCE: Final[float] = 0.0
MAX_CONFIDENCE: Final[float] = 1.0


def is_aware(value: datetime) -> bool:
    """True if the datetime carries a UTC offset."""
    return value.tzinfo is not None and value.utcoffset() is not None


def _dt(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _parse_dt(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value is not None else None


# =============================================================================
# ENUMS - Explicit states with no ambiguity
# =============================================================================

class DecisionType(str, Enum):
    """
    Classes of business decision a metric can be certified for.
    """

    GROWTH = "growth"
    """User acquisition, retention, expansion strategies."""

    PRICING = "pricing"
    """Price changes, packaging, monetization."""

    MARKETING = "marketing"
    """Campaign spend, channel allocation, targeting."""

    OPERATIONS = "operations"
    """Process efficiency, cost optimization, scaling."""

    PRODUCT = "product"
    """Feature launches, UX changes, roadmap priorities."""

    def __str__(self) -> str:
        return self.value


class RuleCategory(str, Enum):
    """Families of guard rules."""

    DATA_INTEGRITY = "data_integrity"
    SAMPLE_SIZE = "sample_size"
    BIAS = "bias"
    METRIC_MISUSE = "metric_misuse"

    def __str__(self) -> str:
        return self.value


class RuleStatus(str, Enum):
    """Outcome of a single guard rule."""

    PASS = "pass"
    WARN = "warn"
    FAIL = "fail"

    def __str__(self) -> str:
        return self.value

    @property
    def score(self) -> float:
        """Numeric score used by the confidence aggregator."""
        if self == RuleStatus.PASS:
            return 1.0
        if self == RuleStatus.WARN:
            return 0.5
        return 0.0


class DecisionStatus(str, Enum):
    """
    Classification of whether a metric may drive a decision.

    BLOCK, WARN and ALLOW are produced by aggregation. OVERRIDDEN is
    only reachable from WARN through an explicit, justified override.
    """

    BLOCK = "BLOCK"
    """At least one rule failed. The metric must not drive this decision."""

    WARN = "WARN"
    """No failures, but warnings or low confidence. May be overridden."""

    ALLOW = "ALLOW"
    """All checks passed with sufficient confidence."""

    OVERRIDDEN = "OVERRIDDEN"
    """A WARN decision that a human accepted the risk for."""

    def __str__(self) -> str:
        return self.value

    @property
    def is_terminal(self) -> bool:
        """True if no further transition is possible from this state."""
        return self != DecisionStatus.WARN


class OutcomeStatus(str, Enum):
    """Real-world outcome of a decision, labelled after the fact."""

    POSITIVE = "Positive"
    NEUTRAL = "Neutral"
    NEGATIVE = "Negative"
    UNKNOWN = "Unknown"

    def __str__(self) -> str:
        return self.value


class RiskLevel(str, Enum):
    """Financial risk level attached to a decision."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    def __str__(self) -> str:
        return self.value


class MetricCategory(str, Enum):
    """Business area a catalog metric belongs to."""

    REVENUE = "revenue"
    ENGAGEMENT = "engagement"
    CONVERSION = "conversion"
    RETENTION = "retention"
    COST = "cost"
    EFFICIENCY = "efficiency"

    def __str__(self) -> str:
        return self.value


# =============================================================================
# CATALOG TYPES
# =============================================================================

@dataclass(frozen=True, slots=True)
class MetricDefinition:
    """
    Certification metadata for one catalog metric.

    Attributes:
        metric_id: Normalized identifier (lowercase, no whitespace)
        name: Display name
        allowed_decisions: Decision classes this metric is certified for
        min_sample_size: Minimum sample size for a valid reading
        refresh_rate_hours: Expected interval between data refreshes
        counter_metrics: Metrics that should be checked alongside this one
        category: Business area of the metric
    """

    metric_id: str
    name: str
    allowed_decisions: tuple[DecisionType, ...]
    min_sample_size: int
    refresh_rate_hours: float
    counter_metrics: tuple[str, ...]
    category: MetricCategory

    def __post_init__(self) -> None:
        if self.min_sample_size < 0:
            raise ValueError(
                f"min_sample_size must be non-negative, got {self.min_sample_size}"
            )
        if self.refresh_rate_hours <= 0:
            raise ValueError(
                f"refresh_rate_hours must be positive, got {self.refresh_rate_hours}"
            )

    def allows(self, decision_type: DecisionType) -> bool:
        """True if the metric is certified for the decision class."""
        return decision_type in self.allowed_decisions

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "metric_id": self.metric_id,
            "name": self.name,
            "allowed_decisions": [d.value for d in self.allowed_decisions],
            "min_sample_size": self.min_sample_size,
            "refresh_rate_hours": self.refresh_rate_hours,
            "counter_metrics": list(self.counter_metrics),
            "category": self.category.value,
        }


@dataclass(frozen=True, slots=True)
class MetricCertification:
    """
    Certification summary for a metric across all decision classes.

    Attributes:
        certified_for: Decision classes the metric may drive
        unsafe_for: Decision classes the metric must not drive
        certification_score: |certified_for| / |all decision classes|
        warnings: Caveats about sample size or refresh lag
    """

    certified_for: tuple[DecisionType, ...]
    unsafe_for: tuple[DecisionType, ...]
    certification_score: float
    warnings: tuple[str, ...]

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "certified_for": [d.value for d in self.certified_for],
            "unsafe_for": [d.value for d in self.unsafe_for],
            "certification_score": self.certification_score,
            "warnings": list(self.warnings),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MetricCertification:
        """Deserialize from dictionary."""
        return cls(
            certified_for=tuple(DecisionType(d) for d in data["certified_for"]),
            unsafe_for=tuple(DecisionType(d) for d in data["unsafe_for"]),
            certification_score=float(data["certification_score"]),
            warnings=tuple(data["warnings"]),
        )


# =============================================================================
# REQUEST TYPES
# =============================================================================

@dataclass(frozen=True, slots=True)
class TimeRange:
    """A closed time interval. End may not precede start."""

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if is_aware(self.start) != is_aware(self.end):
            raise ValidationError("time range mixes naive and timezone-aware datetimes")
        if self.end < self.start:
            raise ValidationError(
                f"time range end {self.end.isoformat()} precedes start "
                f"{self.start.isoformat()}"
            )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {"start": self.start.isoformat(), "end": self.end.isoformat()}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TimeRange:
        """Deserialize from dictionary."""
        return cls(
            start=datetime.fromisoformat(data["start"]),
            end=datetime.fromisoformat(data["end"]),
        )


@dataclass(frozen=True, slots=True)
class DecisionRequest:
    """
    A request to use a metric for a class of decision.

    Created by the caller and never mutated. The audit trail stores a
    full copy, so later catalog changes cannot rewrite history.

    Attributes:
        metric_id: Metric identifier or display name (normalized on lookup)
        decision_type: Requested decision class
        time_range: Primary analysis period
        sample_size: Number of records behind the metric reading
        data_last_updated: When the underlying data was last refreshed
        comparison_range: Optional comparison period
        segment: Optional segment label

    Example:
        >>> request = DecisionRequest(
        ...     metric_id="retention",
        ...     decision_type=DecisionType.GROWTH,
        ...     time_range=TimeRange(start, end),
        ...     sample_size=250,
        ...     data_last_updated=datetime.now(),
        ... )
    """

    metric_id: str
    decision_type: DecisionType
    time_range: TimeRange
    sample_size: int
    data_last_updated: datetime
    comparison_range: TimeRange | None = None
    segment: str | None = None

    def __post_init__(self) -> None:
        """Validate fields after initialization."""
        if not self.metric_id or not self.metric_id.strip():
            raise ValidationError("metric_id cannot be empty")

        if isinstance(self.sample_size, bool) or not isinstance(self.sample_size, int):
            raise ValidationError(
                f"sample_size must be an integer, got {self.sample_size!r}"
            )

        if self.sample_size < 0:
            raise ValidationError(
                f"sample_size must be non-negative, got {self.sample_size}"
            )

        if not isinstance(self.decision_type, DecisionType):
            try:
                object.__setattr__(self, "decision_type", DecisionType(self.decision_type))
            except ValueError as e:
                raise ValidationError(f"unknown decision type {self.decision_type!r}") from e

        aware = is_aware(self.data_last_updated)
        ranges = [self.time_range]
        if self.comparison_range is not None:
            ranges.append(self.comparison_range)
        if any(is_aware(r.start) != aware for r in ranges):
            raise ValidationError(
                "data_last_updated and time ranges must all be naive or all timezone-aware"
            )

    @property
    def normalized_metric_id(self) -> str:
        """Catalog key: lowercase with all whitespace removed."""
        return normalize_metric_id(self.metric_id)

    @property
    def has_comparison(self) -> bool:
        """True if a comparison period was requested."""
        return self.comparison_range is not None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "metric_id": self.metric_id,
            "decision_type": self.decision_type.value,
            "time_range": self.time_range.to_dict(),
            "sample_size": self.sample_size,
            "data_last_updated": self.data_last_updated.isoformat(),
            "comparison_range": (
                self.comparison_range.to_dict() if self.comparison_range else None
            ),
            "segment": self.segment,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DecisionRequest:
        """
        Deserialize from dictionary.

        Raises:
            KeyError: If required field is missing.
            ValidationError: If field value is invalid.
        """
        comparison = data.get("comparison_range")
        return cls(
            metric_id=data["metric_id"],
            decision_type=DecisionType(data["decision_type"]),
            time_range=TimeRange.from_dict(data["time_range"]),
            sample_size=int(data["sample_size"]),
            data_last_updated=datetime.fromisoformat(data["data_last_updated"]),
            comparison_range=TimeRange.from_dict(comparison) if comparison else None,
            segment=data.get("segment"),
        )


def normalize_metric_id(metric_id: str) -> str:
    """Lowercase a metric identifier and strip all whitespace from it."""
    return "".join(metric_id.lower().split())


@dataclass(frozen=True, slots=True)
class ExternalSignals:
    """
    Statistical signals supplied by an analytics collaborator.

    None of these are computed here. Defaults are neutral values that
    let the corresponding rules pass when no backend is wired in.

    Attributes:
        historical_average_sample_size: Typical sample size for the metric
            (None when unknown)
        comparison_sample_size: Sample size of the comparison period
        top_contributor_share: Share of the metric owned by top contributors
        segment_changes: Relative composition change per segment vs baseline
        metric_trend: Direction of the metric (positive = improving)
        outcome_trend: Direction of the business outcome it proxies
    """

    historical_average_sample_size: float | None = None
    comparison_sample_size: int = 150
    top_contributor_share: float = 0.40
    segment_changes: tuple[float, ...] = (0.10, 0.15)
    metric_trend: float = 1.0
    outcome_trend: float = 1.0

    def __post_init__(self) -> None:
        if not (0.0 <= self.top_contributor_share <= 1.0):
            raise ValidationError(
                f"top_contributor_share must be between 0 and 1, "
                f"got {self.top_contributor_share}"
            )
        if self.comparison_sample_size < 0:
            raise ValidationError(
                f"comparison_sample_size must be non-negative, "
                f"got {self.comparison_sample_size}"
            )
        if (
            self.historical_average_sample_size is not None
            and self.historical_average_sample_size < 0
        ):
            raise ValidationError(
                f"historical_average_sample_size must be non-negative, "
                f"got {self.historical_average_sample_size}"
            )
        # Accept any sequence, store as tuple
        object.__setattr__(self, "segment_changes", tuple(self.segment_changes))


# =============================================================================
# EVALUATION TYPES
# =============================================================================

@dataclass(frozen=True, slots=True)
class RuleOutcome:
    """
    Result of a single guard rule.

    Attributes:
        rule_id: Stable short code (A1, B2, ...)
        name: Human-readable rule name
        category: Rule family
        status: pass, warn or fail
        reason: Explanation, required whenever status is not pass
        weight: Relative importance in (0, 1]
    """

    rule_id: str
    name: str
    category: RuleCategory
    status: RuleStatus
    weight: float
    reason: str | None = None

    def __post_init__(self) -> None:
        if not (0.0 < self.weight <= 1.0):
            raise ValueError(f"weight must be in (0, 1], got {self.weight}")
        if self.status != RuleStatus.PASS and not self.reason:
            raise ValueError(
                f"rule {self.rule_id} with status {self.status.value} requires a reason"
            )

    @property
    def passed(self) -> bool:
        return self.status == RuleStatus.PASS

    @property
    def score(self) -> float:
        return self.status.score

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "rule_id": self.rule_id,
            "name": self.name,
            "category": self.category.value,
            "status": self.status.value,
            "reason": self.reason,
            "weight": self.weight,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RuleOutcome:
        """Deserialize from dictionary."""
        return cls(
            rule_id=data["rule_id"],
            name=data["name"],
            category=RuleCategory(data["category"]),
            status=RuleStatus(data["status"]),
            weight=float(data["weight"]),
            reason=data.get("reason"),
        )


@dataclass(frozen=True, slots=True)
class RiskSummary:
    """
    Structured risk view of a decision.

    Attributes:
        risk_level: Financial risk level
        confidence_band: (low, high) uncertainty envelope around confidence
        potential_consequences: What could go wrong if the metric misleads
        historical_context: Note on sparse data, if applicable
    """

    risk_level: RiskLevel
    confidence_band: tuple[float, float]
    potential_consequences: tuple[str, ...]
    historical_context: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "risk_level": self.risk_level.value,
            "confidence_band": list(self.confidence_band),
            "potential_consequences": list(self.potential_consequences),
            "historical_context": self.historical_context,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RiskSummary:
        """Deserialize from dictionary."""
        low, high = data["confidence_band"]
        return cls(
            risk_level=RiskLevel(data["risk_level"]),
            confidence_band=(float(low), float(high)),
            potential_consequences=tuple(data["potential_consequences"]),
            historical_context=data.get("historical_context"),
        )


@dataclass(frozen=True, slots=True)
class DecisionResult:
    """
    Aggregate of all rule outcomes for one request.

    Treated as a value. Overriding produces a new DecisionResult rather
    than editing this one.

    Attributes:
        status: BLOCK, WARN or ALLOW (OVERRIDDEN only after override)
        confidence: Weighted rule health in [0, 1]
        outcomes: Ordered rule outcomes
        explanation: Human-readable rationale
        suggested_action: Remediation hint
        risk_summary: Structured risk view
        certification: Snapshot of the metric's certification
        evaluated_at: When the evaluation ran
    """

    status: DecisionStatus
    confidence: float
    outcomes: tuple[RuleOutcome, ...]
    explanation: str
    suggested_action: str
    risk_summary: RiskSummary
    certification: MetricCertification
    evaluated_at: datetime

    def __post_init__(self) -> None:
        """Validate decision fields."""
        if not (MIN_CONFIDENCE <= self.confidence <= MAX_CONFIDENCE):
            raise ValueError(
                f"confidence must be between {MIN_CONFIDENCE} and {MAX_CONFIDENCE}, "
                f"got {self.confidence}"
            )

    @property
    def failed_rules(self) -> tuple[RuleOutcome, ...]:
        return tuple(o for o in self.outcomes if o.status == RuleStatus.FAIL)

    @property
    def warned_rules(self) -> tuple[RuleOutcome, ...]:
        return tuple(o for o in self.outcomes if o.status == RuleStatus.WARN)

    @property
    def can_override(self) -> bool:
        """True if this result may transition to OVERRIDDEN."""
        return self.status == DecisionStatus.WARN

    def to_dict(self) -> dict[str, Any]:
        """
        Serialize for logging and API responses.

        Returns:
            Dictionary with all result fields.
        """
        return {
            "status": self.status.value,
            "confidence": self.confidence,
            "outcomes": [o.to_dict() for o in self.outcomes],
            "explanation": self.explanation,
            "suggested_action": self.suggested_action,
            "risk_summary": self.risk_summary.to_dict(),
            "certification": self.certification.to_dict(),
            "evaluated_at": self.evaluated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DecisionResult:
        """Deserialize from dictionary."""
        return cls(
            status=DecisionStatus(data["status"]),
            confidence=float(data["confidence"]),
            outcomes=tuple(RuleOutcome.from_dict(o) for o in data["outcomes"]),
            explanation=data["explanation"],
            suggested_action=data["suggested_action"],
            risk_summary=RiskSummary.from_dict(data["risk_summary"]),
            certification=MetricCertification.from_dict(data["certification"]),
            evaluated_at=datetime.fromisoformat(data["evaluated_at"]),
        )


# =============================================================================
# AUDIT TYPES - Write-once except for outcome tracking
# =============================================================================

@dataclass(frozen=True, slots=True)
class RuleContribution:
    """
    A rule outcome as captured in the audit trail.

    Carries the rule's actual weighted contribution (weight x score) to
    the confidence numerator.
    """

    rule_id: str
    name: str
    category: RuleCategory
    status: RuleStatus
    weight: float
    weight_contribution: float
    reason: str | None = None

    @classmethod
    def from_outcome(cls, outcome: RuleOutcome, contribution: float) -> RuleContribution:
        return cls(
            rule_id=outcome.rule_id,
            name=outcome.name,
            category=outcome.category,
            status=outcome.status,
            weight=outcome.weight,
            weight_contribution=contribution,
            reason=outcome.reason,
        )

    def to_outcome(self) -> RuleOutcome:
        """Reconstruct the original rule outcome."""
        return RuleOutcome(
            rule_id=self.rule_id,
            name=self.name,
            category=self.category,
            status=self.status,
            weight=self.weight,
            reason=self.reason,
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "rule_id": self.rule_id,
            "name": self.name,
            "category": self.category.value,
            "status": self.status.value,
            "reason": self.reason,
            "weight": self.weight,
            "weight_contribution": self.weight_contribution,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RuleContribution:
        """Deserialize from dictionary."""
        return cls(
            rule_id=data["rule_id"],
            name=data["name"],
            category=RuleCategory(data["category"]),
            status=RuleStatus(data["status"]),
            weight=float(data["weight"]),
            weight_contribution=float(data["weight_contribution"]),
            reason=data.get("reason"),
        )


@dataclass(frozen=True, slots=True)
class DecisionState:
    """
    Original and final (status, confidence) pairs for a decision.

    Overriding can only reduce confidence: final_confidence never
    exceeds original_confidence.
    """

    original_status: DecisionStatus
    original_confidence: float
    final_status: DecisionStatus
    final_confidence: float

    def __post_init__(self) -> None:
        for name, value in (
            ("original_confidence", self.original_confidence),
            ("final_confidence", self.final_confidence),
        ):
            if not (MIN_CONFIDENCE <= value <= MAX_CONFIDENCE):
                raise ValueError(
                    f"{name} must be between {MIN_CONFIDENCE} and {MAX_CONFIDENCE}, "
                    f"got {value}"
                )
        if self.final_confidence > self.original_confidence:
            raise ValueError(
                f"final_confidence {self.final_confidence} cannot exceed "
                f"original_confidence {self.original_confidence}"
            )

    @property
    def was_overridden(self) -> bool:
        return self.final_status == DecisionStatus.OVERRIDDEN

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "original_status": self.original_status.value,
            "original_confidence": self.original_confidence,
            "final_status": self.final_status.value,
            "final_confidence": self.final_confidence,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DecisionState:
        """Deserialize from dictionary."""
        return cls(
            original_status=DecisionStatus(data["original_status"]),
            original_confidence=float(data["original_confidence"]),
            final_status=DecisionStatus(data["final_status"]),
            final_confidence=float(data["final_confidence"]),
        )


@dataclass(frozen=True, slots=True)
class OverrideInfo:
    """Override sub-record of an audit record."""

    used: bool = False
    reason: str | None = None
    timestamp: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "used": self.used,
            "reason": self.reason,
            "timestamp": _dt(self.timestamp),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> OverrideInfo:
        """Deserialize from dictionary."""
        return cls(
            used=bool(data["used"]),
            reason=data.get("reason"),
            timestamp=_parse_dt(data.get("timestamp")),
        )


@dataclass(frozen=True, slots=True)
class OutcomeTracking:
    """
    Outcome sub-record: the only part of an audit record that may change.

    Replaced wholesale by AuditLog.update_outcome.
    """

    outcome: OutcomeStatus = OutcomeStatus.UNKNOWN
    notes: str | None = None
    updated_at: datetime | None = None

    @property
    def is_labelled(self) -> bool:
        return self.outcome != OutcomeStatus.UNKNOWN

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "outcome": self.outcome.value,
            "notes": self.notes,
            "updated_at": _dt(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> OutcomeTracking:
        """Deserialize from dictionary."""
        return cls(
            outcome=OutcomeStatus(data["outcome"]),
            notes=data.get("notes"),
            updated_at=_parse_dt(data.get("updated_at")),
        )


@dataclass(frozen=True, slots=True)
class AuditRecord:
    """
    Permanent record of one evaluation or override.

    Every field is write-once at creation except outcome_tracking, which
    the audit log replaces when a reviewer labels the real-world outcome.
    The request is copied in full rather than referenced so the trail
    survives later catalog changes.

    Attributes:
        decision_id: Globally unique identifier (UUID4)
        created_at: When the record was minted
        request: Full copy of the decision request
        rule_results: Ordered rule outcomes with weighted contributions
        triggered_rules: Identifiers of rules that did not pass
        decision_state: Original and final (status, confidence)
        override: Override usage, justification and timestamp
        outcome_tracking: Later-updatable real-world outcome
    """

    decision_id: str
    created_at: datetime
    request: DecisionRequest
    rule_results: tuple[RuleContribution, ...]
    triggered_rules: tuple[str, ...]
    decision_state: DecisionState
    override: OverrideInfo = field(default_factory=OverrideInfo)
    outcome_tracking: OutcomeTracking = field(default_factory=OutcomeTracking)

    @property
    def total_rules_evaluated(self) -> int:
        return len(self.rule_results)

    @property
    def final_status(self) -> DecisionStatus:
        return self.decision_state.final_status

    @property
    def final_confidence(self) -> float:
        return self.decision_state.final_confidence

    def to_dict(self) -> dict[str, Any]:
        """
        Serialize every field losslessly for export.

        Timestamps keep microsecond precision so creation order survives
        a round trip.
        """
        return {
            "decision_id": self.decision_id,
            "created_at": self.created_at.isoformat(),
            "request": self.request.to_dict(),
            "rule_results": [r.to_dict() for r in self.rule_results],
            "triggered_rules": list(self.triggered_rules),
            "total_rules_evaluated": self.total_rules_evaluated,
            "decision_state": self.decision_state.to_dict(),
            "override": self.override.to_dict(),
            "outcome_tracking": self.outcome_tracking.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AuditRecord:
        """
        Deserialize from dictionary.

        Raises:
            KeyError: If required field is missing.
            ValueError: If field value is invalid.
        """
        return cls(
            decision_id=data["decision_id"],
            created_at=datetime.fromisoformat(data["created_at"]),
            request=DecisionRequest.from_dict(data["request"]),
            rule_results=tuple(RuleContribution.from_dict(r) for r in data["rule_results"]),
            triggered_rules=tuple(data["triggered_rules"]),
            decision_state=DecisionState.from_dict(data["decision_state"]),
            override=OverrideInfo.from_dict(data["override"]),
            outcome_tracking=OutcomeTracking.from_dict(data["outcome_tracking"]),
        )


# =============================================================================
# CONFIGURATION
# =============================================================================

@dataclass
class GuardConfig:
    """
    Configuration for Metric Guard.

    All thresholds are explicit and tunable. Defaults reproduce the
    certified guard behaviour.

    Configuration can be loaded from:
    - Python code (direct instantiation)
    - JSON file (via config.load_config)
    - Environment variable pointing to JSON file

    Attributes:
        allow_confidence_threshold: Confidence below this forces WARN
        override_confidence_cap: Maximum confidence after an override
        min_justification_length: Minimum override justification length
        audit_log_capacity: Maximum records held by the audit log
        default_refresh_hours: Refresh interval for unknown metrics
        freshness_multiplier: Allowed staleness as a multiple of refresh
        partial_data_ratio: Fraction of historical sample size required
        default_historical_sample_size: Baseline used when no historical
            average is supplied (None: the partial-data rule passes)
        default_min_sample_size: Minimum sample for unknown metrics and
            for comparison periods
        concentration_threshold: Top-contributor share that triggers WARN
        segment_drift_threshold: Segment change that triggers WARN
        audit_export_path: Optional JSONL file mirroring appended records
    """

    # Class constants for validation
    MIN_THRESHOLD: ClassVar[float] = 0.0
    MAX_THRESHOLD: ClassVar[float] = 1.0
    MIN_CAPACITY: ClassVar[int] = 1

    # Aggregation
    allow_confidence_threshold: float = 0.70

    # Override policy
    override_confidence_cap: float = 0.45
    min_justification_length: int = 50

    # Audit log
    audit_log_capacity: int = 100
    audit_export_path: str | None = None

    # Rule thresholds
    default_refresh_hours: float = 24.0
    freshness_multiplier: float = 1.5
    partial_data_ratio: float = 0.7
    default_historical_sample_size: float | None = None
    default_min_sample_size: int = 100
    concentration_threshold: float = 0.60
    segment_drift_threshold: float = 0.25

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        self._validate_thresholds()
        self._validate_limits()

    def _validate_thresholds(self) -> None:
        """Validate ratio values are in [0, 1]."""
        thresholds = [
            ("allow_confidence_threshold", self.allow_confidence_threshold),
            ("override_confidence_cap", self.override_confidence_cap),
            ("partial_data_ratio", self.partial_data_ratio),
            ("concentration_threshold", self.concentration_threshold),
            ("segment_drift_threshold", self.segment_drift_threshold),
        ]

        for name, value in thresholds:
            if not (self.MIN_THRESHOLD <= value <= self.MAX_THRESHOLD):
                raise ValueError(
                    f"{name} must be between {self.MIN_THRESHOLD} and "
                    f"{self.MAX_THRESHOLD}, got {value}"
                )

        if self.override_confidence_cap >= self.allow_confidence_threshold:
            logger.warning(
                "override_confidence_cap is not below allow_confidence_threshold. "
                "Overridden decisions will look as trustworthy as allowed ones."
            )

    def _validate_limits(self) -> None:
        """Validate counts, intervals and multipliers."""
        if self.audit_log_capacity < self.MIN_CAPACITY:
            raise ValueError(
                f"audit_log_capacity must be at least {self.MIN_CAPACITY}, "
                f"got {self.audit_log_capacity}"
            )

        if self.min_justification_length < 1:
            raise ValueError(
                f"min_justification_length must be at least 1, "
                f"got {self.min_justification_length}"
            )

        if self.default_refresh_hours <= 0:
            raise ValueError(
                f"default_refresh_hours must be positive, got {self.default_refresh_hours}"
            )

        if self.freshness_multiplier < 1.0:
            raise ValueError(
                f"freshness_multiplier must be at least 1.0, got {self.freshness_multiplier}"
            )

        if self.default_min_sample_size < 0:
            raise ValueError(
                f"default_min_sample_size must be non-negative, "
                f"got {self.default_min_sample_size}"
            )

        if (
            self.default_historical_sample_size is not None
            and self.default_historical_sample_size <= 0
        ):
            raise ValueError(
                f"default_historical_sample_size must be positive, "
                f"got {self.default_historical_sample_size}"
            )

    def to_dict(self) -> dict[str, Any]:
        """Serialize configuration to dictionary."""
        return {
            "allow_confidence_threshold": self.allow_confidence_threshold,
            "override_confidence_cap": self.override_confidence_cap,
            "min_justification_length": self.min_justification_length,
            "audit_log_capacity": self.audit_log_capacity,
            "audit_export_path": self.audit_export_path,
            "default_refresh_hours": self.default_refresh_hours,
            "freshness_multiplier": self.freshness_multiplier,
            "partial_data_ratio": self.partial_data_ratio,
            "default_historical_sample_size": self.default_historical_sample_size,
            "default_min_sample_size": self.default_min_sample_size,
            "concentration_threshold": self.concentration_threshold,
            "segment_drift_threshold": self.segment_drift_threshold,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GuardConfig:
        """
        Create configuration from dictionary.

        Unknown keys raise TypeError, same as direct construction.
        """
        return cls(**data)
