"""
Audit sink interface and the non-file implementations.

Business operations receive a sink object rather than opening files
themselves, so tests can pass a MemoryAuditLog and a failed file open can
degrade to a NullAuditLog without any caller changes.

Usage:
    from graphtool.audit.sink import MemoryAuditLog

    audit = MemoryAuditLog("getevents")
    audit.write("getevents", "Success", "user@example.com", "Standup", "AAMk...")
    assert audit.rows[0][1:] == ["getevents", "Success", ...]
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from graphtool.actions import (
    ACTION_EXPORT_INBOX,
    ACTION_GET_EVENTS,
    ACTION_GET_INBOX,
    ACTION_GET_SCHEDULE,
    ACTION_SEARCH_AND_EXPORT,
    ACTION_SEND_INVITE,
    ACTION_SEND_MAIL,
)
from graphtool.errors import AuditLogClosedError


TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

# Column sets per action; Timestamp always comes first
AUDIT_HEADERS: dict[str, list[str]] = {
    ACTION_GET_EVENTS: ["Timestamp", "Action", "Status", "Mailbox", "Event Subject", "Event ID"],
    ACTION_SEND_MAIL: [
        "Timestamp", "Action", "Status", "Mailbox", "To", "CC", "BCC",
        "Subject", "Body Type", "Attachments",
    ],
    ACTION_SEND_INVITE: [
        "Timestamp", "Action", "Status", "Mailbox", "Subject",
        "Start Time", "End Time", "Event ID",
    ],
    ACTION_GET_INBOX: [
        "Timestamp", "Action", "Status", "Mailbox", "Subject", "From", "To",
        "Received DateTime",
    ],
    ACTION_GET_SCHEDULE: [
        "Timestamp", "Action", "Status", "Mailbox", "Recipient", "Check DateTime",
        "Availability View",
    ],
    ACTION_EXPORT_INBOX: [
        "Timestamp", "Action", "Status", "Mailbox", "Details", "Export Directory",
    ],
    ACTION_SEARCH_AND_EXPORT: [
        "Timestamp", "Action", "Status", "Mailbox", "Details", "Message ID",
    ],
}
DEFAULT_HEADER = ["Timestamp", "Action", "Status", "Details"]


def header_for(action: str) -> list[str]:
    """Return the CSV header for an action (generic header if unknown)."""
    return list(AUDIT_HEADERS.get(action, DEFAULT_HEADER))


def format_timestamp(moment: datetime | None = None) -> str:
    return (moment or datetime.now()).strftime(TIMESTAMP_FORMAT)


class AuditSink(ABC):
    """
    Append-only record of what an action did.

    ``write`` prepends a wall-clock timestamp to the given fields. After
    ``close`` no further rows are accepted.
    """

    def __init__(self, action: str):
        self.action = action
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _check_open(self) -> None:
        if self._closed:
            raise AuditLogClosedError(f"audit log for '{self.action}' is closed")

    @abstractmethod
    def write(self, *fields: str) -> None:
        """Append one row."""
        pass

    def flush(self) -> None:
        """Force buffered rows out (no-op unless the sink buffers)."""

    def close(self) -> None:
        self._closed = True

    def __enter__(self) -> AuditSink:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class MemoryAuditLog(AuditSink):
    """Keeps rows in a list. Used by tests and by callers that export later."""

    def __init__(self, action: str):
        super().__init__(action)
        self.header = header_for(action)
        self.rows: list[list[str]] = []

    def write(self, *fields: str) -> None:
        self._check_open()
        self.rows.append([format_timestamp(), *(str(f) for f in fields)])


class NullAuditLog(AuditSink):
    """Discards every row. Stands in when the audit file cannot be opened."""

    def write(self, *fields: str) -> None:
        self._check_open()


__all__ = [
    "AUDIT_HEADERS",
    "DEFAULT_HEADER",
    "TIMESTAMP_FORMAT",
    "AuditSink",
    "MemoryAuditLog",
    "NullAuditLog",
    "format_timestamp",
    "header_for",
]
