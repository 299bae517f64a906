"""
Tool: CSV Audit Logger
Purpose: Buffered, crash-tolerant CSV audit trail, one file per action per day

Files live in the system temp directory and are named
``_graphtool_<action>_<YYYY-MM-DD>.csv``. They are opened in append mode and
never rotated or deleted here.

Buffering:
- A new (empty) file gets its header written and flushed immediately
- Rows are forced to disk after every 10 rows or when more than 5 seconds
  have passed since the last flush, checked when a row is written
- close() always flushes, so a clean shutdown never loses rows

The time condition is only evaluated on write. If writes stop, the buffered
tail waits for the next write or for close().

Usage:
    from graphtool.audit.csv_logger import open_audit_log

    audit = open_audit_log("getinbox")
    try:
        audit.write("getinbox", "Success", mailbox, subject, sender, to, received)
    finally:
        audit.close()
"""

from __future__ import annotations

import csv
import os
import tempfile
import threading
import time
from collections.abc import Callable
from datetime import date
from pathlib import Path

from graphtool import TOOL_NAME
from graphtool.audit.sink import AuditSink, NullAuditLog, format_timestamp, header_for
from graphtool.logging_config import get_logger


logger = get_logger(__name__)

FLUSH_EVERY_ROWS = 10
FLUSH_INTERVAL_SECONDS = 5.0
FILE_MODE = 0o600


def audit_file_path(
    action: str, directory: Path | str | None = None, day: date | None = None
) -> Path:
    """Deterministic audit file location for an action on a given day."""
    base = Path(directory) if directory is not None else Path(tempfile.gettempdir())
    day = day or date.today()
    return base / f"_{TOOL_NAME}_{action}_{day.isoformat()}.csv"


class CsvAuditLog(AuditSink):
    """
    Append-only CSV audit file with periodic flushing.

    Writes are serialised with a lock so the row counter and the last-flush
    time stay consistent if the sink is shared between threads.

    Args:
        path: File to append to (created if absent)
        action: Action name; selects the header columns
        flush_every: Rows buffered before a forced flush
        flush_interval: Seconds after which the next write forces a flush
        clock: Monotonic time source (injectable for tests)
    """

    def __init__(
        self,
        path: Path | str,
        action: str,
        *,
        flush_every: int = FLUSH_EVERY_ROWS,
        flush_interval: float = FLUSH_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        super().__init__(action)
        self.path = Path(path)
        self.flush_every = flush_every
        self.flush_interval = flush_interval
        self._clock = clock
        self._lock = threading.Lock()

        self._file = open(self.path, "a", newline="", encoding="utf-8")
        try:
            self._restrict_permissions()
            self._writer = csv.writer(self._file)
            self._pending = 0
            self._last_flush = self._clock()

            if os.fstat(self._file.fileno()).st_size == 0:
                self._writer.writerow(header_for(action))
                self._sync()
        except BaseException:
            self._file.close()
            raise

    @classmethod
    def open(
        cls,
        action: str,
        directory: Path | str | None = None,
        day: date | None = None,
        **kwargs,
    ) -> CsvAuditLog:
        return cls(audit_file_path(action, directory, day), action, **kwargs)

    @property
    def pending_rows(self) -> int:
        """Rows written since the last flush."""
        return self._pending

    def _restrict_permissions(self) -> None:
        try:
            os.chmod(self.path, FILE_MODE)
        except OSError as e:
            logger.warning(f"Failed to set restrictive permissions on {self.path}: {e}")

    def _sync(self) -> None:
        self._file.flush()
        os.fsync(self._file.fileno())
        self._pending = 0
        self._last_flush = self._clock()

    def write(self, *fields: str) -> None:
        with self._lock:
            self._check_open()
            self._writer.writerow([format_timestamp(), *(str(f) for f in fields)])
            self._pending += 1

            elapsed = self._clock() - self._last_flush
            if self._pending >= self.flush_every or elapsed > self.flush_interval:
                self._sync()

    def flush(self) -> None:
        with self._lock:
            self._check_open()
            self._sync()

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            try:
                self._sync()
            finally:
                self._file.close()


def open_audit_log(action: str, directory: Path | str | None = None) -> AuditSink:
    """
    Open the audit file for ``action``, falling back to a NullAuditLog.

    A failure to open the file (permissions, missing directory) is reported
    once as a warning; the caller carries on without auditing.
    """
    try:
        return CsvAuditLog.open(action, directory)
    except OSError as e:
        logger.warning(f"Could not open audit log for '{action}', continuing without it: {e}")
        return NullAuditLog(action)


__all__ = [
    "FLUSH_EVERY_ROWS",
    "FLUSH_INTERVAL_SECONDS",
    "CsvAuditLog",
    "audit_file_path",
    "open_audit_log",
]
