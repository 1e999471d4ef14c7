"""
Decision Engine for Metric Guard.

Aggregates rule outcomes into a confidence score and status, and
explains the result.
"""

from .engine import (
    DecisionEngine,
    calculate_confidence,
    determine_status,
    score_outcome,
    weight_contributions,
)
from .explain import explain, render_decision, risk_summary, suggest

__all__ = [
    "DecisionEngine",
    "calculate_confidence",
    "determine_status",
    "explain",
    "render_decision",
    "risk_summary",
    "score_outcome",
    "suggest",
    "weight_contributions",
]
