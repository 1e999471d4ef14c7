"""
Audit subsystem for Metric Guard.

Bounded, append-only decision history with an optional JSONL export
that is replayable and auditable.
"""

from .export import AuditExporter, AuditReader
from .log import DEFAULT_CAPACITY, AuditLog

__all__ = ["DEFAULT_CAPACITY", "AuditExporter", "AuditLog", "AuditReader"]
