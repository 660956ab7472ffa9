from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, Optional

from ..core.enums import SessionStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone
from .model import ClassSession
from .repository import SessionRepository

_COLUMNS = (
    "session_id, class_id, lecture_id, teacher_id, session_date, status, "
    "started_at, ended_at, token, token_expiry"
)


def _to_session(row: Dict[str, Any]) -> ClassSession:
    return ClassSession(
        session_id=int(row["session_id"]),
        class_id=int(row["class_id"]),
        lecture_id=row.get("lecture_id"),
        teacher_id=row.get("teacher_id"),
        session_date=row["session_date"],
        status=SessionStatus(row["status"]),
        started_at=row.get("started_at"),
        ended_at=row.get("ended_at"),
        token=row.get("token"),
        token_expiry=row.get("token_expiry"),
    )


class MySQLSessionRepository(SessionRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, session_id: int) -> Optional[ClassSession]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM class_sessions WHERE session_id=%s", (int(session_id),))
            row = fetchone(cur)
            return _to_session(row) if row else None

    def get_by_token(self, token: str) -> Optional[ClassSession]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM class_sessions WHERE token=%s", (token,))
            row = fetchone(cur)
            return _to_session(row) if row else None

    def create(self, *, class_id: int, session_date: date, lecture_id: Optional[int], teacher_id: Optional[int]) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO class_sessions(class_id, lecture_id, teacher_id, session_date, status)
                VALUES(%s,%s,%s,%s,%s)
                """,
                (int(class_id), lecture_id, teacher_id, session_date, SessionStatus.PENDING.value),
            )
            return int(cur.lastrowid)

    def mark_started(self, session_id: int, *, started_at: datetime, token: str, token_expiry: Optional[datetime]) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE class_sessions
                SET status=%s, started_at=%s, token=%s, token_expiry=%s
                WHERE session_id=%s AND status=%s
                """,
                (
                    SessionStatus.ACTIVE.value,
                    started_at,
                    token,
                    token_expiry,
                    int(session_id),
                    SessionStatus.PENDING.value,
                ),
            )
            return cur.rowcount == 1

    def replace_token(self, session_id: int, *, token: Optional[str], token_expiry: Optional[datetime]) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE class_sessions
                SET token=%s, token_expiry=%s
                WHERE session_id=%s AND status=%s AND ended_at IS NULL
                """,
                (token, token_expiry, int(session_id), SessionStatus.ACTIVE.value),
            )
            return cur.rowcount == 1

    def mark_ended(self, session_id: int, *, ended_at: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE class_sessions
                SET status=%s, ended_at=%s, token=NULL, token_expiry=NULL
                WHERE session_id=%s AND status=%s AND ended_at IS NULL
                """,
                (SessionStatus.COMPLETED.value, ended_at, int(session_id), SessionStatus.ACTIVE.value),
            )
            return cur.rowcount == 1
