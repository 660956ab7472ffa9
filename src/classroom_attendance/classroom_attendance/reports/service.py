from __future__ import annotations

from decimal import Decimal
from typing import Mapping, Optional, Sequence

from ..common.datetime_utils import format_hours
from ..core.enums import Role
from ..core.exceptions import AuthorizationError, ValidationError
from ..enrollments.repository import EnrollmentRepository
from .calculator.base import DurationCalculator
from .calculator.standard_calculator import StandardDurationCalculator
from .model import ReportData, ReportFilter, ReportSession, ReportSummary
from .repository import ReportRepository

_ZERO = Decimal("0")


class ReportAggregator:
    """Use case: roll attendance up into present/absent/total hours."""

    def __init__(
        self,
        reports: ReportRepository,
        enrollments: EnrollmentRepository,
        *,
        calculator: Optional[DurationCalculator] = None,
    ):
        self._reports = reports
        self._enrollments = enrollments
        self._calculator = calculator or StandardDurationCalculator()

    def get_report_sessions(self, report_filter: ReportFilter) -> list[ReportSession]:
        if (
            report_filter.date_from is not None
            and report_filter.date_to is not None
            and report_filter.date_from > report_filter.date_to
        ):
            raise ValidationError("Start date must not be after end date")
        return list(self._reports.list_sessions(report_filter))

    def enrolled_counts(self, sessions: Sequence[ReportSession]) -> Mapping[int, int]:
        return self._enrollments.count_by_class({s.class_id for s in sessions})

    def compute_summary(
        self,
        sessions: Sequence[ReportSession],
        student_id: Optional[int] = None,
        enrolled_counts: Optional[Mapping[int, int]] = None,
    ) -> ReportSummary:
        enrolled_counts = enrolled_counts or {}
        total = _ZERO
        present = _ZERO

        for s in sessions:
            duration = self._calculator.session_hours(s)
            present_records = s.present_records()

            if student_id is not None:
                total += duration
                for r in present_records:
                    if r.student_id == student_id:
                        present += r.hours_attended
                        break
            else:
                # Missing counts fall back to who showed up; absent time of
                # students who never joined is then not visible.
                enrolled = enrolled_counts.get(s.class_id) or len(present_records) or 1
                total += duration * enrolled
                present += sum((r.hours_attended for r in present_records), _ZERO)

        return ReportSummary(
            total_hours=total,
            present_hours=present,
            absent_hours=max(_ZERO, total - present),
        )

    def build_report(self, report_filter: ReportFilter, *, current_role: Role) -> ReportData:
        if current_role not in (Role.TEACHER, Role.ADMIN):
            raise AuthorizationError("Only teachers can view attendance reports")

        sessions = self.get_report_sessions(report_filter)
        counts = self.enrolled_counts(sessions) if report_filter.student_id is None else {}
        summary = self.compute_summary(sessions, report_filter.student_id, counts)

        rows: list[dict] = []
        for s in sessions:
            for r in s.records:
                if report_filter.student_id is not None and r.student_id != report_filter.student_id:
                    continue
                rows.append(
                    {
                        "session_date": s.session_date.strftime("%Y-%m-%d"),
                        "class_name": s.class_name,
                        "lecture_title": s.lecture_title or "-",
                        "student_id": r.student_id,
                        "full_name": r.full_name,
                        "time_joined": r.time_joined.strftime("%H:%M"),
                        "time_left": r.time_left.strftime("%H:%M") if r.time_left else "-",
                        "hours_attended": format_hours(r.hours_attended),
                        "status": r.status.value,
                    }
                )

        return ReportData(sessions=sessions, summary=summary, rows=rows)
