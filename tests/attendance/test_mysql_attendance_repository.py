from __future__ import annotations

from datetime import datetime

import pytest
from mysql.connector import errorcode
from mysql.connector.errors import IntegrityError

from src.classroom_attendance.classroom_attendance.attendance.model import InsertOutcome
from src.classroom_attendance.classroom_attendance.attendance.mysql_attendance_repository import (
    MySQLAttendanceRepository,
)
from tests.fakes import STUDENT_ID, TOKEN

JOINED = datetime(2026, 3, 2, 9, 10)


class FakeCursor:
    def __init__(self, *, rowcount=1, lastrowid=None, error=None):
        self.rowcount = rowcount
        self.lastrowid = lastrowid
        self._error = error
        self.executed = []
        self.closed = False

    def execute(self, sql, params=None):
        self.executed.append((sql, params))
        if self._error is not None:
            raise self._error

    def close(self):
        self.closed = True


class FakeConnection:
    def __init__(self, cursor: FakeCursor):
        self._cursor = cursor
        self.committed = False
        self.rolled_back = False
        self.closed = False

    def cursor(self, dictionary=False):
        return self._cursor

    def commit(self):
        self.committed = True

    def rollback(self):
        self.rolled_back = True

    def close(self):
        self.closed = True


class FakeConnectionFactory:
    def __init__(self, cursor: FakeCursor):
        self.conn = FakeConnection(cursor)

    def connect(self):
        return self.conn


def _create(cursor: FakeCursor):
    factory = FakeConnectionFactory(cursor)
    repo = MySQLAttendanceRepository(factory)
    result = repo.create_if_live(session_id=1, student_id=STUDENT_ID, token=TOKEN, time_joined=JOINED)
    return result, factory.conn


def test_insert_of_one_row_is_created_with_new_id():
    cursor = FakeCursor(rowcount=1, lastrowid=42)

    result, conn = _create(cursor)

    assert result.outcome == InsertOutcome.CREATED
    assert result.attendance_id == 42
    assert conn.committed is True
    assert cursor.closed is True and conn.closed is True
    _, params = cursor.executed[0]
    assert params == (STUDENT_ID, JOINED, "present", 1, TOKEN, JOINED)


def test_insert_of_no_rows_means_session_not_live():
    cursor = FakeCursor(rowcount=0)

    result, conn = _create(cursor)

    assert result.outcome == InsertOutcome.NOT_LIVE
    assert result.attendance_id is None
    assert conn.closed is True


def test_duplicate_key_means_record_exists():
    cursor = FakeCursor(error=IntegrityError(msg="Duplicate entry", errno=errorcode.ER_DUP_ENTRY))

    result, conn = _create(cursor)

    assert result.outcome == InsertOutcome.EXISTS
    assert conn.rolled_back is True
    assert conn.committed is False
    assert conn.closed is True


def test_other_integrity_errors_propagate():
    cursor = FakeCursor(error=IntegrityError(msg="Foreign key", errno=errorcode.ER_NO_REFERENCED_ROW_2))

    with pytest.raises(IntegrityError):
        _create(cursor)
