"""Tests for graphtool/audit/csv_logger.py and sink.py"""

import csv
import os
import stat
from datetime import date
from pathlib import Path

import pytest

from graphtool.audit.csv_logger import (
    FLUSH_EVERY_ROWS,
    CsvAuditLog,
    audit_file_path,
    open_audit_log,
)
from graphtool.audit.sink import MemoryAuditLog, NullAuditLog, header_for
from graphtool.errors import AuditLogClosedError


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def _read_rows(path: Path) -> list[list[str]]:
    with open(path, newline="", encoding="utf-8") as f:
        return list(csv.reader(f))


def _row(i: int) -> tuple[str, ...]:
    return ("getevents", "Success", "user@example.com", f"Event {i}", f"id-{i}")


class TestAuditFilePath:
    def test_name_format(self, audit_dir):
        path = audit_file_path("getinbox", audit_dir, date(2026, 1, 15))
        assert path == audit_dir / "_graphtool_getinbox_2026-01-15.csv"

    def test_defaults_to_temp_dir(self):
        import tempfile

        path = audit_file_path("sendmail")
        assert path.parent == Path(tempfile.gettempdir())
        assert path.name.startswith("_graphtool_sendmail_")


class TestHeader:
    def test_new_file_gets_header(self, audit_dir):
        log = CsvAuditLog(audit_dir / "a.csv", "getevents")
        log.close()

        rows = _read_rows(audit_dir / "a.csv")
        assert rows == [header_for("getevents")]

    def test_header_written_once_across_opens(self, audit_dir):
        path = audit_dir / "a.csv"
        for i in range(2):
            log = CsvAuditLog(path, "getevents")
            log.write(*_row(i))
            log.close()

        rows = _read_rows(path)
        assert rows[0] == header_for("getevents")
        assert [r[0] for r in rows].count("Timestamp") == 1
        assert len(rows) == 3

    def test_unknown_action_gets_generic_header(self, audit_dir):
        log = CsvAuditLog(audit_dir / "x.csv", "custom")
        log.close()
        assert _read_rows(audit_dir / "x.csv") == [["Timestamp", "Action", "Status", "Details"]]

    def test_file_mode_is_owner_only(self, audit_dir):
        log = CsvAuditLog(audit_dir / "a.csv", "getevents")
        log.close()
        mode = stat.S_IMODE(os.stat(audit_dir / "a.csv").st_mode)
        assert mode == 0o600


class TestFlushing:
    def test_tenth_row_forces_flush(self, audit_dir):
        clock = FakeClock()
        log = CsvAuditLog(audit_dir / "a.csv", "getevents", clock=clock)

        for i in range(FLUSH_EVERY_ROWS - 1):
            log.write(*_row(i))
        assert log.pending_rows == FLUSH_EVERY_ROWS - 1

        log.write(*_row(9))
        assert log.pending_rows == 0

        # Durable without close: visible through an independent reader
        rows = _read_rows(audit_dir / "a.csv")
        assert len(rows) == 1 + FLUSH_EVERY_ROWS
        assert rows[-1][1:] == list(_row(9))
        log.close()

    def test_elapsed_time_forces_flush_on_next_write(self, audit_dir):
        clock = FakeClock()
        log = CsvAuditLog(audit_dir / "a.csv", "getevents", clock=clock)

        log.write(*_row(0))
        assert log.pending_rows == 1

        clock.advance(6.0)
        log.write(*_row(1))
        assert log.pending_rows == 0
        assert len(_read_rows(audit_dir / "a.csv")) == 3
        log.close()

    def test_single_row_after_interval_is_durable(self, audit_dir):
        clock = FakeClock()
        log = CsvAuditLog(audit_dir / "a.csv", "getevents", clock=clock)

        clock.advance(5.5)
        log.write(*_row(0))

        assert log.pending_rows == 0
        assert _read_rows(audit_dir / "a.csv")[1][1:] == list(_row(0))
        log.close()

    def test_exactly_interval_does_not_flush(self, audit_dir):
        clock = FakeClock()
        log = CsvAuditLog(audit_dir / "a.csv", "getevents", clock=clock)

        log.write(*_row(0))
        clock.advance(5.0)
        log.write(*_row(1))
        assert log.pending_rows == 2
        log.close()

    def test_idle_time_alone_does_not_flush(self, audit_dir):
        clock = FakeClock()
        log = CsvAuditLog(audit_dir / "a.csv", "getevents", clock=clock)

        log.write(*_row(0))
        clock.advance(60.0)
        assert log.pending_rows == 1
        log.close()

    def test_close_flushes_pending_rows(self, audit_dir):
        log = CsvAuditLog(audit_dir / "a.csv", "getevents", clock=FakeClock())
        for i in range(3):
            log.write(*_row(i))
        log.close()

        rows = _read_rows(audit_dir / "a.csv")
        assert len(rows) == 4
        assert rows[1][1:] == list(_row(0))

    def test_timestamp_column(self, audit_dir):
        log = CsvAuditLog(audit_dir / "a.csv", "getevents")
        log.write(*_row(0))
        log.close()

        timestamp = _read_rows(audit_dir / "a.csv")[1][0]
        assert len(timestamp) == len("2026-01-15 14:00:00")
        assert timestamp[4] == "-" and timestamp[10] == " "


class TestClose:
    def test_write_after_close_raises(self, audit_dir):
        log = CsvAuditLog(audit_dir / "a.csv", "getevents")
        log.close()
        with pytest.raises(AuditLogClosedError):
            log.write(*_row(0))

    def test_close_is_idempotent(self, audit_dir):
        log = CsvAuditLog(audit_dir / "a.csv", "getevents")
        log.close()
        log.close()
        assert log.closed is True

    def test_context_manager_closes(self, audit_dir):
        with CsvAuditLog(audit_dir / "a.csv", "getevents") as log:
            log.write(*_row(0))
        assert log.closed is True
        assert len(_read_rows(audit_dir / "a.csv")) == 2


class TestOpenAuditLog:
    def test_opens_csv_log(self, audit_dir):
        log = open_audit_log("getinbox", audit_dir)
        try:
            assert isinstance(log, CsvAuditLog)
            assert log.path.name.startswith("_graphtool_getinbox_")
        finally:
            log.close()

    def test_unwritable_location_falls_back(self, tmp_path):
        log = open_audit_log("getinbox", tmp_path / "does" / "not" / "exist")
        assert isinstance(log, NullAuditLog)
        log.write("getinbox", "Success")
        log.close()


class TestMemoryAuditLog:
    def test_rows_have_timestamp_prefix(self):
        log = MemoryAuditLog("getevents")
        log.write(*_row(0))
        assert log.header == header_for("getevents")
        assert log.rows[0][1:] == list(_row(0))

    def test_write_after_close_raises(self):
        log = MemoryAuditLog("getevents")
        log.close()
        with pytest.raises(AuditLogClosedError):
            log.write(*_row(0))
