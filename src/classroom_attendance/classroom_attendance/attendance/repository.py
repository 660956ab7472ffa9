from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional, Protocol, Sequence

from ..core.enums import AttendanceStatus
from .model import AttendanceRecord, InsertResult, RosterRow


class AttendanceRepository(Protocol):
    def get_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def get_for_session_and_student(self, session_id: int, student_id: int) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def create_if_live(
        self,
        *,
        session_id: int,
        student_id: int,
        token: str,
        time_joined: datetime,
    ) -> InsertResult:
        """Create a PRESENT record in one conditional insert.

        The insert only happens while the session still carries ``token``,
        has not ended and the token has not expired at ``time_joined``.
        A second record for the same (session, student) is never created.
        """

        raise NotImplementedError

    def list_open_for_session(self, session_id: int) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def close(
        self,
        *,
        attendance_id: int,
        time_left: datetime,
        hours_attended: Decimal,
        status: AttendanceStatus,
    ) -> bool:
        """Close an open PRESENT record. Returns False if it was already closed or removed."""

        raise NotImplementedError

    def mark_removed(self, attendance_id: int) -> bool:
        """Flip a PRESENT record to REMOVED without touching its hours."""

        raise NotImplementedError

    def list_roster(self, session_id: int) -> Sequence[RosterRow]:
        raise NotImplementedError
