"""
Example: Guarding business decisions with Metric Guard.

This example demonstrates:
1. Evaluating metric usage requests
2. Reading explanations and risk summaries
3. Overriding a warning with written justification
4. Labelling real-world outcomes
5. Exporting the audit trail
"""

from datetime import datetime, timedelta

# Add parent to path for running without install
import sys
sys.path.insert(0, "..")

from metric_guard.decision import render_decision
from metric_guard.guard import MetricGuard
from metric_guard.types import (
    DecisionRequest,
    DecisionType,
    ExternalSignals,
    GuardConfig,
    OutcomeStatus,
    TimeRange,
)


def make_request(metric_id: str, decision_type: DecisionType, sample_size: int, hours_old: float):
    now = datetime.now()
    return DecisionRequest(
        metric_id=metric_id,
        decision_type=decision_type,
        time_range=TimeRange(now - timedelta(days=30), now),
        sample_size=sample_size,
        data_last_updated=now - timedelta(hours=hours_old),
    )


def main():
    # Create configuration
    config = GuardConfig(audit_export_path="./demo_audit/decisions.jsonl")
    guard = MetricGuard(config)

    print("=== Wrong Metric for the Decision ===")
    result, _ = guard.evaluate(make_request("revenue", DecisionType.PRODUCT, 500, 2))
    print(render_decision(result, metric_id="revenue"))

    print("\n=== Healthy Request ===")
    result, record = guard.evaluate(make_request("retention", DecisionType.GROWTH, 250, 10))
    print(render_decision(result, metric_id="retention"))

    print("\n=== Too Few Responses ===")
    result, _ = guard.evaluate(make_request("nps", DecisionType.PRODUCT, 40, 4))
    print(render_decision(result, metric_id="nps"))

    print("\n=== Warning, then Override ===")
    signals = ExternalSignals(top_contributor_share=0.72, segment_changes=(0.05, 0.31))
    result, prior = guard.evaluate(
        make_request("conversion", DecisionType.MARKETING, 900, 6),
        signals,
    )
    print(render_decision(result, metric_id="conversion"))

    if result.can_override:
        result, override_record = guard.override(
            result,
            "Campaign budget is committed; enterprise concentration reviewed with sales.",
            prior,
        )
        print(f"\n{result.explanation}")
        print(f"Override recorded as {override_record.decision_id}")

    print("\n=== Labelling Outcomes ===")
    guard.update_outcome(record.decision_id, OutcomeStatus.POSITIVE, "Retention held after launch")
    print(f"Audit summary: {guard.get_status()['audit_log']}")

    guard.close()
    print(f"\nAudit trail written to {config.audit_export_path}")


if __name__ == "__main__":
    main()
