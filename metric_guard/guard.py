"""
Metric Guard - Main orchestration module.

This is the primary entry point for using Metric Guard. It runs the
rule evaluator, aggregator and explainer for each request, mints audit
records and owns the override state machine:

    PENDING -> BLOCK | WARN | ALLOW
    WARN    -> OVERRIDDEN   (once, with written justification)

BLOCK, ALLOW and OVERRIDDEN are terminal.
"""

from __future__ import annotations

import dataclasses
import logging
import threading
import uuid

from collections.abc import Callable
from datetime import datetime
from typing import Any

from .audit import AuditExporter, AuditLog
from .catalog import InMemoryMetricCatalog, MetricCatalog, certify
from .config import load_config
from .decision import DecisionEngine, weight_contributions
from .errors import OverrideNotAllowedError, RecordNotFoundError, ValidationError
from .rules import run_all
from .types import (
    AuditRecord,
    DecisionRequest,
    DecisionResult,
    DecisionState,
    DecisionStatus,
    DecisionType,
    ExternalSignals,
    GuardConfig,
    MetricCertification,
    OutcomeStatus,
    OutcomeTracking,
    OverrideInfo,
    RuleContribution,
)

logger = logging.getLogger(__name__)

OVERRIDE_ACTION = "Decision logged for permanent audit. Risk accepted by user."


def validate_justification(justification: str, min_length: int = 50) -> str:
    """
    Check an override justification.

    Args:
        justification: Free-text reason for accepting the risk
        min_length: Minimum length after trimming whitespace

    Returns:
        The trimmed justification

    Raises:
        ValidationError: If the trimmed text is empty or too short.
    """
    text = (justification or "").strip()
    if not text:
        raise ValidationError("override justification cannot be empty")
    if len(text) < min_length:
        raise ValidationError(
            f"override justification must be at least {min_length} characters, "
            f"got {len(text)}"
        )
    return text


def mint_record(
    request: DecisionRequest,
    result: DecisionResult,
    decision_id: str,
    created_at: datetime,
) -> AuditRecord:
    """
    Build the audit record for a fresh evaluation.

    Original and final decision state are identical, the override is
    unused and the outcome is Unknown.
    """
    contributions = weight_contributions(result.outcomes)
    return AuditRecord(
        decision_id=decision_id,
        created_at=created_at,
        request=request,
        rule_results=tuple(
            RuleContribution.from_outcome(outcome, contribution)
            for outcome, contribution in zip(result.outcomes, contributions)
        ),
        triggered_rules=tuple(o.rule_id for o in result.outcomes if not o.passed),
        decision_state=DecisionState(
            original_status=result.status,
            original_confidence=result.confidence,
            final_status=result.status,
            final_confidence=result.confidence,
        ),
    )


class MetricGuard:
    """
    Main orchestration class for Metric Guard.

    Usage:
        guard = MetricGuard()

        result, record = guard.evaluate(request)

        if result.status == DecisionStatus.WARN:
            result, record = guard.override(result, justification, record)

        guard.update_outcome(record.decision_id, OutcomeStatus.POSITIVE)
    """

    def __init__(
        self,
        config: GuardConfig | None = None,
        catalog: MetricCatalog | None = None,
        audit_log: AuditLog | None = None,
        clock: Callable[[], datetime] = datetime.now,
        id_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
    ):
        """
        Initialize Metric Guard.

        Args:
            config: Configuration (loads from file if not provided)
            catalog: Metric catalog (default registry if not provided)
            audit_log: Audit log store (new bounded log if not provided)
            clock: Source of "now" for evaluations and audit timestamps
            id_factory: Source of unique decision identifiers
        """
        self.config = config or load_config()
        self.catalog = catalog or InMemoryMetricCatalog()
        self.decision_engine = DecisionEngine(self.config)

        self.exporter: AuditExporter | None = None
        if audit_log is None:
            if self.config.audit_export_path:
                self.exporter = AuditExporter(self.config.audit_export_path)
            audit_log = AuditLog(
                capacity=self.config.audit_log_capacity,
                on_write=self.exporter,
            )
        self.audit_log = audit_log

        self._clock = clock
        self._new_id = id_factory
        self._override_lock = threading.Lock()
        self._overridden: set[str] = set()

        logger.debug(
            f"MetricGuard initialized: threshold={self.config.allow_confidence_threshold}, "
            f"capacity={self.audit_log.capacity}, export={self.config.audit_export_path}"
        )

    def evaluate(
        self,
        request: DecisionRequest,
        signals: ExternalSignals | None = None,
    ) -> tuple[DecisionResult, AuditRecord]:
        """
        Evaluate a request and record the decision.

        Args:
            request: The metric usage request
            signals: Optional externally supplied statistical signals

        Returns:
            Tuple of (DecisionResult, appended AuditRecord)
        """
        now = self._clock()

        outcomes = run_all(
            request,
            self.catalog,
            signals=signals,
            now=now,
            config=self.config,
        )
        result = self.decision_engine.decide(
            request,
            outcomes,
            certify(self.catalog, request.metric_id),
            now=now,
        )

        record = mint_record(request, result, self._new_id(), now)
        self._forget(self.audit_log.append(record))

        return result, record

    def override(
        self,
        result: DecisionResult,
        justification: str,
        prior_record: AuditRecord,
    ) -> tuple[DecisionResult, AuditRecord]:
        """
        Accept the risk of a WARN decision under written justification.

        Produces a new OVERRIDDEN record with capped confidence. The prior
        record is left untouched; the override is additive.

        Args:
            result: The WARN decision result being overridden
            justification: Written reason (trimmed, minimum length enforced)
            prior_record: The audit record minted for the WARN decision

        Returns:
            Tuple of (overridden DecisionResult, new AuditRecord)

        Raises:
            ValidationError: If the justification is empty or too short, or
                the result was not produced by the evaluation behind
                prior_record.
            OverrideNotAllowedError: If the decision is not WARN or the
                prior record was already overridden.
            RecordNotFoundError: If prior_record is no longer in the log.
        """
        reason = validate_justification(justification, self.config.min_justification_length)

        if result.status != DecisionStatus.WARN:
            logger.warning(f"Override rejected: decision status is {result.status.value}")
            raise OverrideNotAllowedError(result.status.value)

        prior_state = prior_record.decision_state
        if prior_state.final_status != DecisionStatus.WARN:
            logger.warning(
                f"Override rejected: record {prior_record.decision_id} is "
                f"{prior_state.final_status.value}"
            )
            raise OverrideNotAllowedError(prior_state.final_status.value)

        if not self._belongs_to(result, prior_record):
            logger.warning(
                f"Override rejected: result does not match record {prior_record.decision_id}"
            )
            raise ValidationError(
                f"decision result was not produced by the evaluation recorded as "
                f"{prior_record.decision_id}"
            )

        adjusted = min(self.config.override_confidence_cap, result.confidence)
        safe_confidence = min(adjusted, prior_state.original_confidence)

        with self._override_lock:
            if prior_record.decision_id not in self.audit_log:
                raise RecordNotFoundError(prior_record.decision_id)
            if prior_record.decision_id in self._overridden:
                raise OverrideNotAllowedError(
                    DecisionStatus.OVERRIDDEN.value,
                    f"Decision {prior_record.decision_id} has already been overridden",
                )

            now = self._clock()
            record = dataclasses.replace(
                prior_record,
                decision_id=self._new_id(),
                created_at=now,
                decision_state=DecisionState(
                    original_status=prior_state.original_status,
                    original_confidence=prior_state.original_confidence,
                    final_status=DecisionStatus.OVERRIDDEN,
                    final_confidence=safe_confidence,
                ),
                override=OverrideInfo(used=True, reason=reason, timestamp=now),
                outcome_tracking=OutcomeTracking(),
            )
            evicted = self.audit_log.append(record)
            self._overridden.add(prior_record.decision_id)
            if evicted is not None:
                self._overridden.discard(evicted.decision_id)

        logger.warning(
            f"Decision overridden: prior={prior_record.decision_id}, "
            f"new={record.decision_id}, confidence {result.confidence:.2f} -> "
            f"{safe_confidence:.2f}"
        )

        overridden = dataclasses.replace(
            result,
            status=DecisionStatus.OVERRIDDEN,
            confidence=safe_confidence,
            explanation=(
                f"Warning overridden. Confidence reduced from {result.confidence:.0%} "
                f"to {safe_confidence:.0%} (capped at "
                f"{self.config.override_confidence_cap:.0%})."
            ),
            suggested_action=OVERRIDE_ACTION,
        )
        return overridden, record

    def _belongs_to(self, result: DecisionResult, record: AuditRecord) -> bool:
        """True if the result came from the evaluation that minted the record."""
        return (
            result.evaluated_at == record.created_at
            and result.outcomes == tuple(r.to_outcome() for r in record.rule_results)
            and result.certification == certify(self.catalog, record.request.metric_id)
        )

    def _forget(self, evicted: AuditRecord | None) -> None:
        """Drop an evicted record from the overridden set."""
        if evicted is None:
            return
        with self._override_lock:
            self._overridden.discard(evicted.decision_id)

    def update_outcome(
        self,
        record_id: str,
        outcome: OutcomeStatus,
        notes: str | None = None,
    ) -> bool:
        """
        Label the real-world outcome of a recorded decision.

        Returns:
            True if the record was updated, False if it is not in the log.
        """
        return self.audit_log.update_outcome(record_id, outcome, notes, now=self._clock())

    def certify(self, metric_id: str) -> MetricCertification:
        """Certification summary for a metric."""
        return certify(self.catalog, metric_id)

    def history(
        self,
        offset: int = 0,
        limit: int | None = None,
        status: DecisionStatus | None = None,
        decision_type: DecisionType | None = None,
        metric_id: str | None = None,
    ) -> list[AuditRecord]:
        """Paged, filtered view of the audit log, newest first."""
        return self.audit_log.query(
            offset=offset,
            limit=limit,
            status=status,
            decision_type=decision_type,
            metric_id=metric_id,
        )

    def get_status(self) -> dict[str, Any]:
        """
        Get current system status.

        Returns information about configuration, the catalog and the
        audit log.
        """
        return {
            "allow_confidence_threshold": self.config.allow_confidence_threshold,
            "override_confidence_cap": self.config.override_confidence_cap,
            "catalog_size": len(self.catalog) if hasattr(self.catalog, "__len__") else None,
            "audit_export_path": self.config.audit_export_path,
            "audit_log": self.audit_log.summary(),
        }

    def close(self) -> None:
        """Close the audit exporter, if one is open."""
        if self.exporter is not None:
            self.exporter.close()
