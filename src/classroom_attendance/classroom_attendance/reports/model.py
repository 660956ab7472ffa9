from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from ..core.enums import AttendanceStatus


@dataclass(frozen=True)
class ReportFilter:
    """All provided fields are ANDed; None means "any"."""

    student_id: Optional[int] = None
    class_id: Optional[int] = None
    lecture_id: Optional[int] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None


@dataclass(frozen=True)
class ReportRecord:
    attendance_id: int
    student_id: int
    full_name: str
    time_joined: datetime
    time_left: Optional[datetime]
    hours_attended: Decimal
    status: AttendanceStatus


@dataclass(frozen=True)
class ReportSession:
    """Read-model: a session with its attendance records embedded."""

    session_id: int
    class_id: int
    class_name: str
    session_date: date
    lecture_id: Optional[int] = None
    lecture_title: Optional[str] = None
    started_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None
    records: tuple[ReportRecord, ...] = field(default_factory=tuple)

    def present_records(self) -> list[ReportRecord]:
        return [r for r in self.records if r.status == AttendanceStatus.PRESENT]


@dataclass(frozen=True)
class ReportSummary:
    total_hours: Decimal
    present_hours: Decimal
    absent_hours: Decimal


@dataclass(frozen=True)
class ReportData:
    sessions: list[ReportSession]
    summary: ReportSummary
    rows: list[dict]
