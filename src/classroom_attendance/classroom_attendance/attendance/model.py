from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from ..core.enums import AttendanceStatus, JoinError


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: one student's attendance in one session.

    At most one exists per (session_id, student_id). Once ``time_left`` is
    set the record is closed and ``hours_attended`` is final.
    """

    attendance_id: int
    session_id: int
    student_id: int
    time_joined: datetime
    time_left: Optional[datetime] = None
    hours_attended: Decimal = Decimal("0")
    status: AttendanceStatus = AttendanceStatus.PRESENT

    @property
    def is_closed(self) -> bool:
        return self.time_left is not None


@dataclass(frozen=True)
class RosterRow:
    """Read-model for the live session roster."""

    attendance_id: int
    student_id: int
    full_name: str
    time_joined: datetime
    time_left: Optional[datetime]
    hours_attended: Decimal
    status: AttendanceStatus


class InsertOutcome(str, Enum):
    CREATED = "created"
    EXISTS = "exists"
    NOT_LIVE = "not_live"


@dataclass(frozen=True)
class InsertResult:
    outcome: InsertOutcome
    attendance_id: Optional[int] = None


@dataclass(frozen=True)
class JoinResult:
    success: bool
    message: str
    error: Optional[JoinError] = None
    attendance_id: Optional[int] = None
    created: bool = False

    @classmethod
    def joined(cls, message: str, *, attendance_id: Optional[int], created: bool) -> "JoinResult":
        return cls(success=True, message=message, attendance_id=attendance_id, created=created)

    @classmethod
    def rejected(cls, error: JoinError, message: str) -> "JoinResult":
        return cls(success=False, message=message, error=error)

    def to_dict(self) -> dict:
        if self.success:
            return {"success": True, "message": self.message}
        return {"success": False, "error": self.error.value, "message": self.message}
