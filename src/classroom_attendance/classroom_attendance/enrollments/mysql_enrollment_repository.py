from __future__ import annotations

from typing import Iterable, Mapping

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, placeholders
from .repository import EnrollmentRepository


class MySQLEnrollmentRepository(EnrollmentRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def is_enrolled(self, student_id: int, class_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT 1 AS ok FROM enrollments WHERE student_id=%s AND class_id=%s",
                (int(student_id), int(class_id)),
            )
            return fetchone(cur) is not None

    def count_by_class(self, class_ids: Iterable[int]) -> Mapping[int, int]:
        ids = sorted({int(c) for c in class_ids})
        if not ids:
            return {}

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT class_id, COUNT(*) AS enrolled
                FROM enrollments
                WHERE class_id IN ({placeholders(len(ids))})
                GROUP BY class_id
                """,
                tuple(ids),
            )
            return {int(r["class_id"]): int(r["enrolled"]) for r in fetchall(cur)}
