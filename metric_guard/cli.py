"""
Command-line interface for Metric Guard.

Evaluate metric usage, inspect certifications, and read the audit trail.
"""

import argparse
import json
import logging
import sys

from datetime import datetime, timedelta

from .audit import AuditReader
from .config import create_default_config_file, load_config
from .decision import render_decision
from .errors import MetricGuardError
from .guard import MetricGuard
from .types import DecisionRequest, DecisionStatus, DecisionType, ExternalSignals, TimeRange

ANALYSIS_WINDOW = timedelta(days=30)

DECISION_CHOICES = [d.value for d in DecisionType]
STATUS_CHOICES = [s.value for s in DecisionStatus]


def _build_request(args: argparse.Namespace, now: datetime) -> DecisionRequest:
    """Build a request covering the last 30 days, optionally vs the 30 before."""
    time_range = TimeRange(start=now - ANALYSIS_WINDOW, end=now)
    comparison = None
    if args.comparison:
        comparison = TimeRange(start=time_range.start - ANALYSIS_WINDOW, end=time_range.start)

    return DecisionRequest(
        metric_id=args.metric,
        decision_type=DecisionType(args.decision),
        time_range=time_range,
        sample_size=args.sample_size,
        data_last_updated=now - timedelta(hours=args.hours_old),
        comparison_range=comparison,
        segment=args.segment,
    )


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Metric Guard - Decision Integrity for Business Metrics"
    )
    parser.add_argument("--config", "-c", help="Path to configuration file")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # init command
    subparsers.add_parser("init", help="Create default configuration file")

    # evaluate command
    evaluate_parser = subparsers.add_parser("evaluate", help="Evaluate a metric for a decision")
    evaluate_parser.add_argument("--metric", "-m", required=True, help="Metric identifier")
    evaluate_parser.add_argument(
        "--decision", "-d", required=True, choices=DECISION_CHOICES, help="Decision type"
    )
    evaluate_parser.add_argument(
        "--sample-size", "-n", type=int, required=True, help="Records behind the reading"
    )
    evaluate_parser.add_argument(
        "--hours-old", type=float, default=0.0, help="Hours since the data was refreshed"
    )
    evaluate_parser.add_argument(
        "--comparison", action="store_true", help="Compare against the previous period"
    )
    evaluate_parser.add_argument("--segment", help="Segment label")
    evaluate_parser.add_argument(
        "--historical-average", type=float, help="Historical average sample size"
    )
    evaluate_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # certify command
    certify_parser = subparsers.add_parser("certify", help="Show metric certification")
    certify_parser.add_argument("metric", help="Metric identifier")
    certify_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # metrics command
    metrics_parser = subparsers.add_parser("metrics", help="List catalog metrics")
    metrics_parser.add_argument(
        "--decision", "-d", choices=DECISION_CHOICES, help="Only metrics certified for this"
    )

    # history command
    history_parser = subparsers.add_parser("history", help="Show exported audit records")
    history_parser.add_argument("--limit", type=int, default=10, help="Max records")
    history_parser.add_argument("--status", choices=STATUS_CHOICES, help="Filter by final status")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if not args.command:
        parser.print_help()
        return 1

    if args.command == "init":
        if args.config:
            create_default_config_file(args.config)
        else:
            create_default_config_file()
        return 0

    # Load guard
    try:
        guard = MetricGuard(config=load_config(args.config))
    except (OSError, ValueError, TypeError) as e:
        print(f"Error loading configuration: {e}", file=sys.stderr)
        return 1

    try:
        if args.command == "evaluate":
            try:
                request = _build_request(args, datetime.now())
                signals = ExternalSignals(historical_average_sample_size=args.historical_average)
            except (MetricGuardError, ValueError) as e:
                print(f"Invalid request: {e}", file=sys.stderr)
                return 1

            result, record = guard.evaluate(request, signals)

            if args.json:
                print(json.dumps({
                    "decision_id": record.decision_id,
                    "result": result.to_dict(),
                }, indent=2))
            else:
                print(render_decision(result, metric_id=request.metric_id))
                print(f"Decision ID: {record.decision_id}")

        elif args.command == "certify":
            certification = guard.certify(args.metric)

            if args.json:
                print(json.dumps(certification.to_dict(), indent=2))
            else:
                print(f"Certification for {args.metric}")
                print(f"  Score:         {certification.certification_score:.0%}")
                print(f"  Certified for: {', '.join(d.value for d in certification.certified_for) or '-'}")
                print(f"  Unsafe for:    {', '.join(d.value for d in certification.unsafe_for) or '-'}")
                for warning in certification.warnings:
                    print(f"  ! {warning}")

        elif args.command == "metrics":
            if args.decision:
                metrics = guard.catalog.metrics_for_decision(DecisionType(args.decision))
            else:
                metrics = guard.catalog.all()

            for metric in metrics:
                allowed = ", ".join(d.value for d in metric.allowed_decisions)
                print(
                    f"  {metric.metric_id:<24} | min {metric.min_sample_size:>4} | "
                    f"refresh {metric.refresh_rate_hours:g}h | {allowed}"
                )

        elif args.command == "history":
            if not guard.config.audit_export_path:
                print("audit_export_path is not configured", file=sys.stderr)
                return 1

            reader = AuditReader(guard.config.audit_export_path)
            records = reader.read_all(
                status=DecisionStatus(args.status) if args.status else None,
                limit=args.limit,
            )
            for rec in records:
                print(
                    f"  {rec.decision_id[:8]}... | {rec.created_at.isoformat()[:19]} | "
                    f"{rec.request.metric_id} -> {rec.request.decision_type.value} | "
                    f"{rec.final_status.value} {rec.final_confidence:.0%}"
                )
    finally:
        guard.close()

    return 0


if __name__ == "__main__":
    sys.exit(main())
