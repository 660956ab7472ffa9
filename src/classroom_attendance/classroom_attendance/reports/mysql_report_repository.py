from __future__ import annotations

from collections import defaultdict
from typing import Sequence

from ..core.constants import DEFAULT_REPORT_LIMIT
from ..core.enums import AttendanceStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, placeholders, to_decimal
from .model import ReportFilter, ReportRecord, ReportSession
from .repository import ReportRepository


class MySQLReportRepository(ReportRepository):
    def __init__(self, conn_factory: DatabaseConnection, *, limit: int = DEFAULT_REPORT_LIMIT):
        self._conn_factory = conn_factory
        self._limit = int(limit)

    def list_sessions(self, report_filter: ReportFilter) -> Sequence[ReportSession]:
        clauses = ["1=1"]
        params: list[object] = []

        if report_filter.class_id is not None:
            clauses.append("s.class_id=%s")
            params.append(int(report_filter.class_id))
        if report_filter.lecture_id is not None:
            clauses.append("s.lecture_id=%s")
            params.append(int(report_filter.lecture_id))
        if report_filter.date_from is not None:
            clauses.append("s.session_date >= %s")
            params.append(report_filter.date_from)
        if report_filter.date_to is not None:
            clauses.append("s.session_date <= %s")
            params.append(report_filter.date_to)
        if report_filter.student_id is not None:
            clauses.append(
                """
                (EXISTS (SELECT 1 FROM enrollments e WHERE e.class_id = s.class_id AND e.student_id = %s)
                 OR EXISTS (SELECT 1 FROM attendance_records x WHERE x.session_id = s.session_id AND x.student_id = %s))
                """
            )
            params.extend([int(report_filter.student_id), int(report_filter.student_id)])

        where = " AND ".join(clauses)
        params.append(self._limit)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT s.session_id, s.class_id, c.class_name, s.lecture_id, l.title AS lecture_title,
                       s.session_date, s.started_at, s.ended_at
                FROM class_sessions s
                JOIN classes c ON c.class_id = s.class_id
                LEFT JOIN lectures l ON l.lecture_id = s.lecture_id
                WHERE {where}
                ORDER BY s.session_date DESC, s.session_id DESC
                LIMIT %s
                """,
                tuple(params),
            )
            session_rows = fetchall(cur)
            if not session_rows:
                return []

            ids = [int(r["session_id"]) for r in session_rows]
            cur.execute(
                f"""
                SELECT ar.attendance_id, ar.session_id, ar.student_id, a.full_name,
                       ar.time_joined, ar.time_left, ar.hours_attended, ar.status
                FROM attendance_records ar
                JOIN accounts a ON a.account_id = ar.student_id
                WHERE ar.session_id IN ({placeholders(len(ids))})
                ORDER BY ar.time_joined ASC
                """,
                tuple(ids),
            )
            records_by_session: dict[int, list[ReportRecord]] = defaultdict(list)
            for r in fetchall(cur):
                records_by_session[int(r["session_id"])].append(
                    ReportRecord(
                        attendance_id=int(r["attendance_id"]),
                        student_id=int(r["student_id"]),
                        full_name=r["full_name"],
                        time_joined=r["time_joined"],
                        time_left=r.get("time_left"),
                        hours_attended=to_decimal(r.get("hours_attended")),
                        status=AttendanceStatus(r["status"]),
                    )
                )

        return [
            ReportSession(
                session_id=int(r["session_id"]),
                class_id=int(r["class_id"]),
                class_name=r["class_name"],
                lecture_id=r.get("lecture_id"),
                lecture_title=r.get("lecture_title"),
                session_date=r["session_date"],
                started_at=r.get("started_at"),
                ended_at=r.get("ended_at"),
                records=tuple(records_by_session.get(int(r["session_id"]), [])),
            )
            for r in session_rows
        ]
