"""
Decision Engine - Confidence aggregation for Metric Guard.

This module combines rule outcomes into a single confidence score and a
decision status. The status is a strict priority chain:

Decision Matrix:
    | Any fail | Any warn | Confidence | Status |
    |----------|----------|------------|--------|
    | yes      | -        | -          | BLOCK  |
    | no       | yes      | -          | WARN   |
    | no       | no       | < 0.70     | WARN   |
    | no       | no       | >= 0.70    | ALLOW  |

Confidence alone cannot overrule a failure, and a single warning forces
WARN even at high confidence.

Author: Metric Guard Team
"""

from __future__ import annotations

import logging

from collections.abc import Sequence
from datetime import datetime
from typing import Final

import numpy as np

from ..types import (
    DecisionRequest,
    DecisionResult,
    DecisionStatus,
    GuardConfig,
    MetricCertification,
    RuleOutcome,
    RuleStatus,
)
from .explain import explain, risk_summary, suggest

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

DEFAULT_ALLOW_THRESHOLD: Final[float] = 0.70


# =============================================================================
# AGGREGATION
# =============================================================================

def score_outcome(status: RuleStatus) -> float:
    """Numeric score for a rule status: pass 1.0, warn 0.5, fail 0.0."""
    return status.score


def weight_contributions(outcomes: Sequence[RuleOutcome]) -> list[float]:
    """Per-rule weight x score, in outcome order."""
    return [o.weight * score_outcome(o.status) for o in outcomes]


def calculate_confidence(outcomes: Sequence[RuleOutcome]) -> float:
    """
    Weight-normalized average of rule scores.

    Weights need not sum to 1. Returns 0.0 when no rules were evaluated.

    Args:
        outcomes: Rule outcomes to aggregate

    Returns:
        Confidence in [0, 1]
    """
    if not outcomes:
        return 0.0

    weights = np.array([o.weight for o in outcomes], dtype=float)
    scores = np.array([score_outcome(o.status) for o in outcomes], dtype=float)

    if weights.sum() <= 0:
        return 0.0

    confidence = float(np.average(scores, weights=weights))
    return float(np.clip(confidence, 0.0, 1.0))


def determine_status(
    outcomes: Sequence[RuleOutcome],
    confidence: float,
    threshold: float = DEFAULT_ALLOW_THRESHOLD,
) -> DecisionStatus:
    """
    Map outcomes and confidence to BLOCK, WARN or ALLOW.

    Never returns OVERRIDDEN; that state is reachable only through the
    override lifecycle.
    """
    if any(o.status == RuleStatus.FAIL for o in outcomes):
        return DecisionStatus.BLOCK

    if any(o.status == RuleStatus.WARN for o in outcomes) or confidence < threshold:
        return DecisionStatus.WARN

    return DecisionStatus.ALLOW


# =============================================================================
# DECISION ENGINE
# =============================================================================

class DecisionEngine:
    """
    Turns rule outcomes into a DecisionResult.

    Usage:
        >>> engine = DecisionEngine(config)
        >>> result = engine.decide(request, outcomes, certification)
        >>> print(result.status)
        ALLOW
    """

    def __init__(self, config: GuardConfig | None = None) -> None:
        """
        Initialize the decision engine.

        Args:
            config: Guard configuration with thresholds
        """
        self._config = config or GuardConfig()
        logger.debug(
            f"DecisionEngine initialized with allow threshold "
            f"{self._config.allow_confidence_threshold}"
        )

    @property
    def config(self) -> GuardConfig:
        """Read-only access to configuration."""
        return self._config

    def decide(
        self,
        request: DecisionRequest,
        outcomes: Sequence[RuleOutcome],
        certification: MetricCertification,
        now: datetime | None = None,
    ) -> DecisionResult:
        """
        Aggregate rule outcomes into a decision.

        Args:
            request: The request the outcomes were produced for
            outcomes: Rule outcomes in display order
            certification: Certification snapshot for the metric
            now: Evaluation timestamp (defaults to datetime.now())

        Returns:
            DecisionResult with status, confidence, explanation and risk
        """
        confidence = calculate_confidence(outcomes)
        status = determine_status(
            outcomes, confidence, self._config.allow_confidence_threshold
        )

        result = DecisionResult(
            status=status,
            confidence=confidence,
            outcomes=tuple(outcomes),
            explanation=explain(status, outcomes),
            suggested_action=suggest(status, outcomes),
            risk_summary=risk_summary(request, outcomes, confidence),
            certification=certification,
            evaluated_at=now or datetime.now(),
        )

        if status == DecisionStatus.BLOCK:
            logger.warning(
                f"Decision blocked: metric={request.metric_id}, "
                f"decision={request.decision_type.value}, "
                f"failed={[o.rule_id for o in result.failed_rules]}"
            )
        else:
            logger.info(
                f"Decision: metric={request.metric_id}, "
                f"decision={request.decision_type.value}, status={status.value}, "
                f"confidence={confidence:.2f}"
            )

        return result
