"""
Audit trail for mailbox operations.

Components:
    sink.py: AuditSink interface, per-action headers, memory and null sinks
    csv_logger.py: CsvAuditLog (buffered CSV file) and open_audit_log
"""

from graphtool.audit.csv_logger import CsvAuditLog, audit_file_path, open_audit_log
from graphtool.audit.sink import AuditSink, MemoryAuditLog, NullAuditLog, header_for


__all__ = [
    "AuditSink",
    "CsvAuditLog",
    "MemoryAuditLog",
    "NullAuditLog",
    "audit_file_path",
    "header_for",
    "open_audit_log",
]
