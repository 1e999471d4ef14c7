"""
Audit Log - Bounded, append-only, most-recent-first record store.

Design principles:
- Append-only: records enter at the front, never edited
- Bounded: appending past capacity evicts the oldest-inserted record
- Single writer lock: append, eviction and outcome updates are serialized
- Consistent reads: listings are snapshots taken under the lock
"""

from __future__ import annotations

import dataclasses
import logging
import threading

from collections import deque
from collections.abc import Callable
from datetime import datetime
from typing import Any

from ..errors import RecordNotFoundError
from ..types import (
    AuditRecord,
    DecisionStatus,
    DecisionType,
    OutcomeStatus,
    OutcomeTracking,
    normalize_metric_id,
)

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 100


class AuditLog:
    """
    Thread-safe store of AuditRecords.

    Records live in an arena keyed by decision id; a deque of ids keeps
    insertion order (newest first) for eviction and listing.

    Usage:
        log = AuditLog(capacity=100)
        log.append(record)
        log.update_outcome(record.decision_id, OutcomeStatus.POSITIVE)
    """

    def __init__(
        self,
        capacity: int = DEFAULT_CAPACITY,
        on_write: Callable[[AuditRecord], None] | None = None,
    ):
        """
        Initialize an empty audit log.

        Args:
            capacity: Maximum number of records retained
            on_write: Optional hook called with each appended or updated
                record while the writer lock is held (e.g. an exporter)
        """
        if capacity < 1:
            raise ValueError(f"capacity must be at least 1, got {capacity}")

        self.capacity = capacity
        self._records: dict[str, AuditRecord] = {}
        self._order: deque[str] = deque()
        self._lock = threading.Lock()
        self._on_write = on_write

    def append(self, record: AuditRecord) -> AuditRecord | None:
        """
        Insert a record at the front of the log.

        Returns:
            The evicted record if capacity was exceeded, else None.

        Raises:
            ValueError: If a record with the same id is already present.
        """
        with self._lock:
            if record.decision_id in self._records:
                raise ValueError(f"duplicate decision id: {record.decision_id}")

            if self._on_write is not None:
                self._on_write(record)

            self._records[record.decision_id] = record
            self._order.appendleft(record.decision_id)

            evicted = None
            if len(self._order) > self.capacity:
                evicted_id = self._order.pop()
                evicted = self._records.pop(evicted_id)

        logger.info(
            f"Audit record appended: id={record.decision_id}, "
            f"status={record.final_status.value}"
        )
        if evicted is not None:
            logger.warning(
                f"Audit log at capacity {self.capacity}; evicted {evicted.decision_id}"
            )
        return evicted

    def get(self, record_id: str) -> AuditRecord | None:
        """Get a record by id, or None if absent."""
        with self._lock:
            return self._records.get(record_id)

    def require(self, record_id: str) -> AuditRecord:
        """
        Get a record by id.

        Raises:
            RecordNotFoundError: If the id is not in the log.
        """
        record = self.get(record_id)
        if record is None:
            raise RecordNotFoundError(record_id)
        return record

    def update_outcome(
        self,
        record_id: str,
        outcome: OutcomeStatus,
        notes: str | None = None,
        now: datetime | None = None,
    ) -> bool:
        """
        Replace a record's outcome tracking.

        This is the only mutation permitted on a stored record. Every
        other field is carried over unchanged. Re-labelling an already
        labelled outcome is allowed.

        Returns:
            True if updated, False if the id is not in the log.
        """
        tracking = OutcomeTracking(
            outcome=OutcomeStatus(outcome),
            notes=notes,
            updated_at=now or datetime.now(),
        )

        with self._lock:
            record = self._records.get(record_id)
            if record is None:
                logger.warning(f"Outcome update for unknown audit record {record_id}")
                return False
            updated = dataclasses.replace(record, outcome_tracking=tracking)
            if self._on_write is not None:
                self._on_write(updated)
            self._records[record_id] = updated

        logger.info(f"Outcome updated: id={record_id}, outcome={tracking.outcome.value}")
        return True

    def snapshot(self) -> tuple[AuditRecord, ...]:
        """All records, newest first."""
        with self._lock:
            return tuple(self._records[rid] for rid in self._order)

    def query(
        self,
        offset: int = 0,
        limit: int | None = None,
        status: DecisionStatus | None = None,
        decision_type: DecisionType | None = None,
        metric_id: str | None = None,
    ) -> list[AuditRecord]:
        """
        Paged, filtered view of the log, newest first.

        Args:
            offset: Number of matching records to skip
            limit: Maximum number of records to return
            status: Filter by final status
            decision_type: Filter by requested decision class
            metric_id: Filter by metric (normalized comparison)

        Returns:
            List of matching records
        """
        if offset < 0:
            raise ValueError(f"offset must be non-negative, got {offset}")
        if limit is not None and limit < 0:
            raise ValueError(f"limit must be non-negative, got {limit}")

        wanted_metric = normalize_metric_id(metric_id) if metric_id else None
        matches: list[AuditRecord] = []
        for record in self.snapshot():
            if status is not None and record.final_status != status:
                continue
            if decision_type is not None and record.request.decision_type != decision_type:
                continue
            if wanted_metric and record.request.normalized_metric_id != wanted_metric:
                continue
            matches.append(record)

        end = None if limit is None else offset + limit
        return matches[offset:end]

    def summary(self) -> dict[str, Any]:
        """
        Aggregate counts for display.

        Returns:
            Totals by final status, override count and mean final confidence.
        """
        records = self.snapshot()
        by_status = {s.value: 0 for s in DecisionStatus}
        for record in records:
            by_status[record.final_status.value] += 1

        return {
            "total": len(records),
            "capacity": self.capacity,
            "by_status": by_status,
            "overrides": sum(1 for r in records if r.override.used),
            "labelled_outcomes": sum(1 for r in records if r.outcome_tracking.is_labelled),
            "average_confidence": (
                sum(r.final_confidence for r in records) / len(records) if records else 0.0
            ),
        }

    def __len__(self) -> int:
        with self._lock:
            return len(self._order)

    def __contains__(self, record_id: object) -> bool:
        with self._lock:
            return record_id in self._records
