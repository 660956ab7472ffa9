from __future__ import annotations

from typing import Protocol, Sequence

from .model import ReportFilter, ReportSession


class ReportRepository(Protocol):
    def list_sessions(self, report_filter: ReportFilter) -> Sequence[ReportSession]:
        """Sessions matching the filter, newest first, each with all its records.

        With ``student_id`` set, a session is in scope when the student is
        enrolled in its class or has a record in it.
        """

        raise NotImplementedError
