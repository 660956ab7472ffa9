from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from decimal import Decimal
from typing import Callable, Optional, Sequence

from ..common.datetime_utils import hours_between, now_local
from ..core.enums import AttendanceStatus, Role
from ..core.exceptions import AuthorizationError, InvalidTransition, ValidationError
from ..sessions.model import ClassSession
from ..sessions.repository import SessionRepository
from .model import AttendanceRecord, RosterRow
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)

_ZERO = Decimal("0")


def clamp_hours(record: AttendanceRecord, session: Optional[ClassSession], close_time: datetime) -> Decimal:
    """Attended hours for ``record`` closed at ``close_time``.

    Bounded below by 0 and above by the session duration; a session that has
    not ended counts as lasting until ``close_time``.
    """

    attended = max(hours_between(record.time_joined, close_time), _ZERO)
    if session is None or session.started_at is None:
        return attended

    session_end = session.ended_at or close_time
    session_hours = max(hours_between(session.started_at, session_end), _ZERO)
    return min(attended, session_hours)


class HoursAccumulator:
    """Use case: finalize open attendance windows.

    Only this class writes ``time_left``, ``hours_attended`` and ``status``
    of an existing record.
    """

    def __init__(
        self,
        attendance: AttendanceRepository,
        sessions: SessionRepository,
        *,
        clock: Callable[[], datetime] = now_local,
    ):
        self._attendance = attendance
        self._sessions = sessions
        self._clock = clock

    def _try_close(
        self,
        record: AttendanceRecord,
        close_time: datetime,
        session: Optional[ClassSession],
        status: AttendanceStatus,
    ) -> Optional[AttendanceRecord]:
        # Nothing is attended after the session ended.
        if session is not None and session.ended_at is not None and close_time > session.ended_at:
            close_time = session.ended_at
        hours = clamp_hours(record, session, close_time)
        if not self._attendance.close(
            attendance_id=record.attendance_id,
            time_left=close_time,
            hours_attended=hours,
            status=status,
        ):
            return None
        return replace(record, time_left=close_time, hours_attended=hours, status=status)

    def close_record(
        self,
        record: AttendanceRecord,
        close_time: datetime,
        *,
        session: Optional[ClassSession] = None,
        status: AttendanceStatus = AttendanceStatus.PRESENT,
    ) -> AttendanceRecord:
        """Close ``record`` at ``close_time``, or at the session end if that is earlier.

        A closed record is returned unchanged.
        """
        if record.is_closed:
            return record

        session = session or self._sessions.get_by_id(record.session_id)
        closed = self._try_close(record, close_time, session, status)
        if closed is None:
            # Someone else closed or removed it first; their values stand.
            return self._attendance.get_by_id(record.attendance_id) or record
        return closed

    def leave(self, session_id: int, student_id: int, *, now: Optional[datetime] = None) -> AttendanceRecord:
        now = now or self._clock()

        record = self._attendance.get_for_session_and_student(int(session_id), int(student_id))
        if not record:
            raise ValidationError("You have not joined this session")
        if record.status != AttendanceStatus.PRESENT:
            raise ValidationError("You were removed from this session")
        if record.is_closed:
            raise ValidationError("You have already left this session")

        return self.close_record(record, now)

    def on_session_end(self, session: ClassSession) -> int:
        """Close every open record of an ended session at its end time."""
        if session.ended_at is None:
            raise ValidationError("Session has not ended")

        closed = 0
        for record in self._attendance.list_open_for_session(session.session_id):
            if self._try_close(record, session.ended_at, session, AttendanceStatus.PRESENT) is not None:
                closed += 1

        logger.info("Finalized %d open records for session %s", closed, session.session_id)
        return closed

    def remove_record(
        self,
        attendance_id: int,
        *,
        current_role: Role,
        now: Optional[datetime] = None,
    ) -> AttendanceRecord:
        if current_role not in (Role.TEACHER, Role.ADMIN):
            raise AuthorizationError("Only teachers can remove students")

        now = now or self._clock()
        record = self._attendance.get_by_id(int(attendance_id))
        if not record:
            raise ValidationError("Attendance record not found")
        if not AttendanceStatus.can_transition(record.status, AttendanceStatus.REMOVED):
            raise InvalidTransition(f"Cannot remove a record that is {record.status.value}")

        removed = None
        if not record.is_closed:
            session = self._sessions.get_by_id(record.session_id)
            removed = self._try_close(record, now, session, AttendanceStatus.REMOVED)

        if removed is None:
            # Already closed (left, session end): hours stay as they were.
            if not self._attendance.mark_removed(record.attendance_id):
                raise InvalidTransition("Record was already removed")
            current = self._attendance.get_by_id(record.attendance_id) or record
            removed = replace(current, status=AttendanceStatus.REMOVED)

        logger.info("Removed attendance record %s", record.attendance_id)
        return removed

    def get_session_records(self, session_id: int, *, now: Optional[datetime] = None) -> Sequence[RosterRow]:
        """Roster of a session; open present rows carry their running hours."""
        now = now or self._clock()
        session = self._sessions.get_by_id(int(session_id))
        if not session:
            raise ValidationError("Session not found")

        rows: list[RosterRow] = []
        for r in self._attendance.list_roster(session.session_id):
            if r.time_left is None and r.status == AttendanceStatus.PRESENT:
                running = AttendanceRecord(
                    attendance_id=r.attendance_id,
                    session_id=session.session_id,
                    student_id=r.student_id,
                    time_joined=r.time_joined,
                )
                r = replace(r, hours_attended=clamp_hours(running, session, now))
            rows.append(r)
        return rows
