from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional, Sequence

from mysql.connector.errors import IntegrityError

from ..core.enums import AttendanceStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, is_duplicate_key, to_decimal
from .model import AttendanceRecord, InsertOutcome, InsertResult, RosterRow
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)

_COLUMNS = "attendance_id, session_id, student_id, time_joined, time_left, hours_attended, status"


def _to_record(row: Dict[str, Any]) -> AttendanceRecord:
    return AttendanceRecord(
        attendance_id=int(row["attendance_id"]),
        session_id=int(row["session_id"]),
        student_id=int(row["student_id"]),
        time_joined=row["time_joined"],
        time_left=row.get("time_left"),
        hours_attended=to_decimal(row.get("hours_attended")),
        status=AttendanceStatus(row["status"]),
    )


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM attendance_records WHERE attendance_id=%s", (int(attendance_id),))
            row = fetchone(cur)
            return _to_record(row) if row else None

    def get_for_session_and_student(self, session_id: int, student_id: int) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM attendance_records WHERE session_id=%s AND student_id=%s",
                (int(session_id), int(student_id)),
            )
            row = fetchone(cur)
            return _to_record(row) if row else None

    def create_if_live(
        self,
        *,
        session_id: int,
        student_id: int,
        token: str,
        time_joined: datetime,
    ) -> InsertResult:
        # Liveness check and insert are one statement; the unique key on
        # (session_id, student_id) rejects concurrent duplicates.
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO attendance_records(session_id, student_id, time_joined, hours_attended, status)
                    SELECT s.session_id, %s, %s, 0, %s
                    FROM class_sessions s
                    WHERE s.session_id=%s
                      AND s.token=%s
                      AND s.ended_at IS NULL
                      AND (s.token_expiry IS NULL OR s.token_expiry > %s)
                    """,
                    (
                        int(student_id),
                        time_joined,
                        AttendanceStatus.PRESENT.value,
                        int(session_id),
                        token,
                        time_joined,
                    ),
                )
                if cur.rowcount != 1:
                    return InsertResult(InsertOutcome.NOT_LIVE)
                return InsertResult(InsertOutcome.CREATED, int(cur.lastrowid))
        except IntegrityError as e:
            if not is_duplicate_key(e):
                raise
            logger.debug("Attendance for session %s student %s already exists", session_id, student_id)
            return InsertResult(InsertOutcome.EXISTS)

    def list_open_for_session(self, session_id: int) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_records
                WHERE session_id=%s AND time_left IS NULL AND status=%s
                ORDER BY time_joined ASC
                """,
                (int(session_id), AttendanceStatus.PRESENT.value),
            )
            return [_to_record(r) for r in fetchall(cur)]

    def close(
        self,
        *,
        attendance_id: int,
        time_left: datetime,
        hours_attended: Decimal,
        status: AttendanceStatus,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance_records
                SET time_left=%s, hours_attended=%s, status=%s
                WHERE attendance_id=%s AND time_left IS NULL AND status=%s
                """,
                (time_left, hours_attended, status.value, int(attendance_id), AttendanceStatus.PRESENT.value),
            )
            return cur.rowcount == 1

    def mark_removed(self, attendance_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE attendance_records SET status=%s WHERE attendance_id=%s AND status=%s",
                (AttendanceStatus.REMOVED.value, int(attendance_id), AttendanceStatus.PRESENT.value),
            )
            return cur.rowcount == 1

    def list_roster(self, session_id: int) -> Sequence[RosterRow]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT ar.attendance_id, ar.student_id, a.full_name,
                       ar.time_joined, ar.time_left, ar.hours_attended, ar.status
                FROM attendance_records ar
                JOIN accounts a ON a.account_id = ar.student_id
                WHERE ar.session_id=%s
                ORDER BY ar.time_joined ASC
                """,
                (int(session_id),),
            )
            return [
                RosterRow(
                    attendance_id=int(r["attendance_id"]),
                    student_id=int(r["student_id"]),
                    full_name=r["full_name"],
                    time_joined=r["time_joined"],
                    time_left=r.get("time_left"),
                    hours_attended=to_decimal(r.get("hours_attended")),
                    status=AttendanceStatus(r["status"]),
                )
                for r in fetchall(cur)
            ]
