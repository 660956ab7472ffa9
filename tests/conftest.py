from __future__ import annotations

from datetime import date, datetime

import pytest

from src.classroom_attendance.classroom_attendance.attendance.hours import HoursAccumulator
from src.classroom_attendance.classroom_attendance.attendance.service import AttendanceJoinCoordinator
from src.classroom_attendance.classroom_attendance.core.enums import SessionStatus
from src.classroom_attendance.classroom_attendance.sessions.model import ClassSession
from tests.fakes import (
    CLASS_ID,
    OTHER_STUDENT_ID,
    STUDENT_ID,
    TOKEN,
    InMemoryAttendance,
    InMemoryEnrollments,
    InMemorySessions,
    InMemoryStore,
)


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2026, 3, 2, 9, 10)


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def sessions(store) -> InMemorySessions:
    return InMemorySessions(store)


@pytest.fixture
def attendance(store) -> InMemoryAttendance:
    return InMemoryAttendance(store)


@pytest.fixture
def enrollments() -> InMemoryEnrollments:
    return InMemoryEnrollments({(STUDENT_ID, CLASS_ID), (OTHER_STUDENT_ID, CLASS_ID)})


@pytest.fixture
def live_session(store) -> ClassSession:
    """Session started at 09:00 with a token valid until 09:30."""
    return store.add_session(
        ClassSession(
            session_id=1,
            class_id=CLASS_ID,
            session_date=date(2026, 3, 2),
            status=SessionStatus.ACTIVE,
            started_at=datetime(2026, 3, 2, 9, 0),
            token=TOKEN,
            token_expiry=datetime(2026, 3, 2, 9, 30),
        )
    )


@pytest.fixture
def coordinator(attendance, sessions, enrollments, fixed_now) -> AttendanceJoinCoordinator:
    return AttendanceJoinCoordinator(attendance, sessions, enrollments, clock=lambda: fixed_now)


@pytest.fixture
def hours(attendance, sessions, fixed_now) -> HoursAccumulator:
    return HoursAccumulator(attendance, sessions, clock=lambda: fixed_now)
