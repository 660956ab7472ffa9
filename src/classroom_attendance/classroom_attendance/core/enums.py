from __future__ import annotations

from enum import Enum
from typing import Optional


class Role(str, Enum):
    """Account role used for authorization."""

    STUDENT = "student"
    TEACHER = "teacher"
    ADMIN = "admin"


class SessionStatus(str, Enum):
    """Lifecycle of a class session: pending -> active -> completed."""

    PENDING = "pending"
    ACTIVE = "active"
    COMPLETED = "completed"


class AttendanceStatus(str, Enum):
    """Status of an attendance record.

    Records are created as PRESENT and may only move to REMOVED.
    """

    PRESENT = "present"
    REMOVED = "removed"

    @classmethod
    def can_transition(cls, current: Optional["AttendanceStatus"], target: "AttendanceStatus") -> bool:
        return target in _ATTENDANCE_TRANSITIONS.get(current, frozenset())


_ATTENDANCE_TRANSITIONS: dict[Optional[AttendanceStatus], frozenset[AttendanceStatus]] = {
    None: frozenset({AttendanceStatus.PRESENT}),
    AttendanceStatus.PRESENT: frozenset({AttendanceStatus.REMOVED}),
    AttendanceStatus.REMOVED: frozenset(),
}

_SESSION_TRANSITIONS: dict[SessionStatus, frozenset[SessionStatus]] = {
    SessionStatus.PENDING: frozenset({SessionStatus.ACTIVE}),
    SessionStatus.ACTIVE: frozenset({SessionStatus.COMPLETED}),
    SessionStatus.COMPLETED: frozenset(),
}


def session_can_transition(current: SessionStatus, target: SessionStatus) -> bool:
    return target in _SESSION_TRANSITIONS[current]


class JoinError(str, Enum):
    """Why a join attempt was rejected."""

    TOKEN_INVALID = "TokenInvalid"
    NOT_ENROLLED = "NotEnrolled"
    ALREADY_REMOVED = "AlreadyRemoved"
