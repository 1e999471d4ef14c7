"""
Guard rules for Metric Guard.

Independent, pure checks that each score one aspect of a metric usage
request.
"""

from .evaluator import (
    RULES,
    RULES_BY_ID,
    RuleContext,
    RuleDescriptor,
    Verdict,
    run_all,
)

__all__ = ["RULES", "RULES_BY_ID", "RuleContext", "RuleDescriptor", "Verdict", "run_all"]
