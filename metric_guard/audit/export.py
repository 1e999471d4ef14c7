"""
Audit Export - Append-only JSONL mirror of the audit log.

Design principles:
- Never rewrite history (append-only, fsync on write)
- Lossless (every AuditRecord field, microsecond timestamps)
- Always replayable (one structured record per line)

Outcome updates are written as new lines carrying the full updated
record; on replay the latest line for a decision id wins.
"""

from __future__ import annotations

import json
import logging
import os
import threading

from collections.abc import Generator
from pathlib import Path
from typing import Any, TextIO

from ..types import AuditRecord, DecisionStatus

logger = logging.getLogger(__name__)


class AuditExporter:
    """
    Thread-safe, append-only JSONL writer for audit records.

    Usage:
        exporter = AuditExporter("./audit/decisions.jsonl")
        exporter.write(record)
    """

    def __init__(self, path: str | Path):
        """
        Initialize the exporter.

        Args:
            path: JSONL file to append to (parent directories are created)
        """
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)

        self._lock = threading.Lock()
        self._file_handle: TextIO | None = None

    def write(self, record: AuditRecord) -> None:
        """
        Append one record and flush it to disk.

        Thread-safe.
        """
        line = json.dumps(record.to_dict(), separators=(",", ":"))
        with self._lock:
            handle = self._get_file_handle()
            handle.write(line + "\n")

            # Ensure durability
            handle.flush()
            os.fsync(handle.fileno())

    __call__ = write

    def _get_file_handle(self) -> TextIO:
        """Get the open file handle - must hold lock."""
        if self._file_handle is None:
            self._file_handle = open(self.path, "a", encoding="utf-8")
        return self._file_handle

    def close(self) -> None:
        """Close the underlying file."""
        with self._lock:
            if self._file_handle:
                self._file_handle.close()
                self._file_handle = None

    def __enter__(self) -> AuditExporter:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        self.close()


class AuditReader:
    """
    Reads audit records back from a JSONL export.

    Usage:
        reader = AuditReader("./audit/decisions.jsonl")
        records = reader.read_all(limit=20)
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def stream(self) -> Generator[AuditRecord, None, None]:
        """
        Stream every line of the export in file order (memory efficient).

        Corrupt lines are skipped with a warning.
        """
        if not self.path.exists():
            return

        with open(self.path, encoding="utf-8") as f:
            for line_no, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue

                try:
                    record = AuditRecord.from_dict(json.loads(line))
                except (json.JSONDecodeError, KeyError, ValueError) as e:
                    logger.warning(f"Skipping corrupt audit line {line_no} in {self.path}: {e}")
                    continue

                yield record

    def read_all(
        self,
        status: DecisionStatus | None = None,
        limit: int | None = None,
    ) -> list[AuditRecord]:
        """
        Latest version of each record, newest first.

        Args:
            status: Filter by final status
            limit: Maximum records to return

        Returns:
            List of AuditRecord objects
        """
        latest: dict[str, AuditRecord] = {}
        for record in self.stream():
            latest[record.decision_id] = record

        records = sorted(latest.values(), key=lambda r: r.created_at, reverse=True)
        if status is not None:
            records = [r for r in records if r.final_status == status]
        if limit is not None:
            records = records[:limit]
        return records
