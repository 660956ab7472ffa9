from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional

from ..common.datetime_utils import now_local
from ..core.enums import AttendanceStatus, JoinError
from ..enrollments.repository import EnrollmentRepository
from ..sessions.repository import SessionRepository
from .model import InsertOutcome, JoinResult
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)

MESSAGES = {
    "joined": "Attendance recorded successfully!",
    "already_joined": "You are already checked in to this session.",
    JoinError.TOKEN_INVALID: "This code is invalid or has expired.",
    JoinError.NOT_ENROLLED: "You are not enrolled in this class.",
    JoinError.ALREADY_REMOVED: "You were removed from this session by the teacher.",
}


class AttendanceJoinCoordinator:
    """Use case: admit a student into a live session exactly once.

    Every rejection is returned as a JoinResult; nothing here raises for an
    expected "could not join" outcome.
    """

    def __init__(
        self,
        attendance: AttendanceRepository,
        sessions: SessionRepository,
        enrollments: EnrollmentRepository,
        *,
        clock: Callable[[], datetime] = now_local,
    ):
        self._attendance = attendance
        self._sessions = sessions
        self._enrollments = enrollments
        self._clock = clock

    def _reject(self, error: JoinError, student_id: int) -> JoinResult:
        logger.warning("Join rejected (%s) for student %s", error.value, student_id)
        return JoinResult.rejected(error, MESSAGES[error])

    def verify_and_join(self, token: str, student_id: int, *, now: Optional[datetime] = None) -> JoinResult:
        now = now or self._clock()
        token = (token or "").strip()
        student_id = int(student_id)

        session = self._sessions.get_by_token(token) if token else None
        if session is None or not session.is_live(now):
            return self._reject(JoinError.TOKEN_INVALID, student_id)

        if not self._enrollments.is_enrolled(student_id, session.class_id):
            return self._reject(JoinError.NOT_ENROLLED, student_id)

        inserted = self._attendance.create_if_live(
            session_id=session.session_id,
            student_id=student_id,
            token=token,
            time_joined=now,
        )

        if inserted.outcome == InsertOutcome.CREATED:
            logger.info(
                "Student %s joined session %s (record %s)", student_id, session.session_id, inserted.attendance_id
            )
            return JoinResult.joined(MESSAGES["joined"], attendance_id=inserted.attendance_id, created=True)

        if inserted.outcome == InsertOutcome.NOT_LIVE:
            # Ended, expired or rotated between lookup and insert.
            return self._reject(JoinError.TOKEN_INVALID, student_id)

        existing = self._attendance.get_for_session_and_student(session.session_id, student_id)
        if existing is None:
            # The conflicting row vanished (session data deleted); treat the code as stale.
            return self._reject(JoinError.TOKEN_INVALID, student_id)
        if existing.status == AttendanceStatus.REMOVED:
            return self._reject(JoinError.ALREADY_REMOVED, student_id)

        return JoinResult.joined(MESSAGES["already_joined"], attendance_id=existing.attendance_id, created=False)
