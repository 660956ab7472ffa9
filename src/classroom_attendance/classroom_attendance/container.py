from __future__ import annotations

from dataclasses import dataclass

from .accounts.mysql_account_repository import MySQLAccountRepository
from .accounts.service import DeviceLockGuard
from .attendance.hours import HoursAccumulator
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.service import AttendanceJoinCoordinator
from .core.constants import DEFAULT_JOIN_TOKEN_TTL_SECONDS
from .database.connection import DBConfig, DatabaseConnection
from .enrollments.mysql_enrollment_repository import MySQLEnrollmentRepository
from .reports.mysql_report_repository import MySQLReportRepository
from .reports.service import ReportAggregator
from .sessions.mysql_session_repository import MySQLSessionRepository
from .sessions.service import SessionService


@dataclass(frozen=True)
class Container:
    conn: DatabaseConnection

    accounts_repo: MySQLAccountRepository
    sessions_repo: MySQLSessionRepository
    enrollments_repo: MySQLEnrollmentRepository
    attendance_repo: MySQLAttendanceRepository
    reports_repo: MySQLReportRepository

    device_lock_guard: DeviceLockGuard
    hours_accumulator: HoursAccumulator
    join_coordinator: AttendanceJoinCoordinator
    session_service: SessionService
    report_aggregator: ReportAggregator


def build_container(
    *,
    db_config: dict,
    token_ttl_seconds: int = DEFAULT_JOIN_TOKEN_TTL_SECONDS,
    public_base_url: str = "",
) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_mapping(db_config))

    accounts_repo = MySQLAccountRepository(conn)
    sessions_repo = MySQLSessionRepository(conn)
    enrollments_repo = MySQLEnrollmentRepository(conn)
    attendance_repo = MySQLAttendanceRepository(conn)
    reports_repo = MySQLReportRepository(conn)

    device_lock_guard = DeviceLockGuard(accounts_repo)
    hours_accumulator = HoursAccumulator(attendance_repo, sessions_repo)
    join_coordinator = AttendanceJoinCoordinator(attendance_repo, sessions_repo, enrollments_repo)
    session_service = SessionService(
        sessions_repo,
        hours_accumulator,
        token_ttl_seconds=token_ttl_seconds,
        public_base_url=public_base_url,
    )
    report_aggregator = ReportAggregator(reports_repo, enrollments_repo)

    return Container(
        conn=conn,
        accounts_repo=accounts_repo,
        sessions_repo=sessions_repo,
        enrollments_repo=enrollments_repo,
        attendance_repo=attendance_repo,
        reports_repo=reports_repo,
        device_lock_guard=device_lock_guard,
        hours_accumulator=hours_accumulator,
        join_coordinator=join_coordinator,
        session_service=session_service,
        report_aggregator=report_aggregator,
    )
