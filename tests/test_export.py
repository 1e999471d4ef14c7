"""
Tests for the JSONL audit export and replay.
"""

from datetime import datetime, timedelta

from metric_guard import MetricGuard
from metric_guard.audit import AuditExporter, AuditReader
from metric_guard.types import (
    DecisionRequest,
    DecisionStatus,
    DecisionType,
    ExternalSignals,
    GuardConfig,
    OutcomeStatus,
    TimeRange,
)

NOW = datetime(2025, 6, 1, 12, 0, 0, 123456)

JUSTIFICATION = (
    "Pricing committee signed off on the concentration risk for this quarter."
)


def make_request(metric_id: str = "retention", sample_size: int = 250) -> DecisionRequest:
    return DecisionRequest(
        metric_id=metric_id,
        decision_type=DecisionType.GROWTH,
        time_range=TimeRange(NOW - timedelta(days=30), NOW),
        sample_size=sample_size,
        data_last_updated=NOW - timedelta(hours=3),
        segment="EMEA",
    )


class TestAuditExport:
    """Tests for the exporter wired into the guard."""

    def test_records_replay_losslessly(self, tmp_path):
        path = tmp_path / "audit" / "decisions.jsonl"
        guard = MetricGuard(config=GuardConfig(audit_export_path=str(path)), clock=lambda: NOW)

        _, record = guard.evaluate(make_request())
        guard.close()

        records = AuditReader(path).read_all()

        assert records == [record]
        assert records[0].created_at.microsecond == 123456

    def test_outcome_update_latest_wins(self, tmp_path):
        path = tmp_path / "decisions.jsonl"
        guard = MetricGuard(config=GuardConfig(audit_export_path=str(path)), clock=lambda: NOW)

        _, record = guard.evaluate(make_request())
        guard.update_outcome(record.decision_id, OutcomeStatus.POSITIVE, "Held for 90 days")
        guard.close()

        assert len(path.read_text().splitlines()) == 2

        records = AuditReader(path).read_all()
        assert len(records) == 1
        assert records[0].outcome_tracking.outcome == OutcomeStatus.POSITIVE
        assert records[0] == guard.audit_log.get(record.decision_id)

    def test_override_exported(self, tmp_path):
        path = tmp_path / "decisions.jsonl"
        guard = MetricGuard(config=GuardConfig(audit_export_path=str(path)), clock=lambda: NOW)

        result, prior = guard.evaluate(
            make_request(), ExternalSignals(top_contributor_share=0.9)
        )
        guard.override(result, JUSTIFICATION, prior)
        guard.close()

        reader = AuditReader(path)
        overridden = reader.read_all(status=DecisionStatus.OVERRIDDEN)

        assert len(overridden) == 1
        assert overridden[0].override.reason == JUSTIFICATION
        assert len(reader.read_all()) == 2
        assert len(reader.read_all(limit=1)) == 1


class TestAuditReader:
    """Tests for reading exports directly."""

    def test_missing_file_is_empty(self, tmp_path):
        assert AuditReader(tmp_path / "nope.jsonl").read_all() == []

    def test_corrupt_lines_skipped(self, tmp_path):
        path = tmp_path / "decisions.jsonl"
        guard = MetricGuard(config=GuardConfig(), clock=lambda: NOW)
        _, record = guard.evaluate(make_request())

        with AuditExporter(path) as exporter:
            exporter.write(record)
        with open(path, "a") as f:
            f.write("{not json\n")
            f.write('{"decision_id": "missing-fields"}\n')
            f.write("\n")

        records = list(AuditReader(path).stream())

        assert records == [record]

    def test_newest_first(self, tmp_path):
        path = tmp_path / "decisions.jsonl"
        times = iter([NOW, NOW + timedelta(seconds=1)])
        guard = MetricGuard(config=GuardConfig(), clock=lambda: next(times))
        _, first = guard.evaluate(make_request())
        _, second = guard.evaluate(make_request(metric_id="churn"))

        with AuditExporter(path) as exporter:
            exporter(first)
            exporter(second)

        ids = [r.decision_id for r in AuditReader(path).read_all()]
        assert ids == [second.decision_id, first.decision_id]
