from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime
from decimal import Decimal

import pytest

from src.classroom_attendance.classroom_attendance.attendance.hours import clamp_hours
from src.classroom_attendance.classroom_attendance.attendance.model import AttendanceRecord
from src.classroom_attendance.classroom_attendance.core.enums import AttendanceStatus, Role, SessionStatus
from src.classroom_attendance.classroom_attendance.core.exceptions import (
    AuthorizationError,
    InvalidTransition,
    ValidationError,
)
from src.classroom_attendance.classroom_attendance.sessions.model import ClassSession
from tests.fakes import CLASS_ID, OTHER_STUDENT_ID, STUDENT_ID

START = datetime(2026, 3, 2, 9, 0)
END = datetime(2026, 3, 2, 10, 30)


def _open_record(store, attendance_id=1, student_id=STUDENT_ID, joined=datetime(2026, 3, 2, 9, 10)):
    return store.add_record(
        AttendanceRecord(attendance_id=attendance_id, session_id=1, student_id=student_id, time_joined=joined)
    )


def _end(store, session):
    ended = replace(session, status=SessionStatus.COMPLETED, ended_at=END, token=None, token_expiry=None)
    store.sessions[session.session_id] = ended
    return ended


def test_leave_closes_record_with_elapsed_hours(hours, store, live_session):
    _open_record(store)

    record = hours.leave(1, STUDENT_ID, now=datetime(2026, 3, 2, 10, 0))

    assert record.time_left == datetime(2026, 3, 2, 10, 0)
    assert record.hours_attended == Decimal("0.8333")
    assert store.records[1].hours_attended == Decimal("0.8333")


def test_session_end_closes_open_records_at_end_time(hours, store, live_session):
    _open_record(store)
    _open_record(store, attendance_id=2, student_id=OTHER_STUDENT_ID, joined=START)

    closed = hours.on_session_end(_end(store, live_session))

    assert closed == 2
    assert store.records[1].time_left == END
    assert store.records[1].hours_attended == Decimal("1.3333")
    assert store.records[2].hours_attended == Decimal("1.5000")


def test_session_end_skips_records_already_closed(hours, store, live_session):
    _open_record(store)
    hours.leave(1, STUDENT_ID, now=datetime(2026, 3, 2, 10, 0))

    closed = hours.on_session_end(_end(store, live_session))

    assert closed == 0
    assert store.records[1].time_left == datetime(2026, 3, 2, 10, 0)
    assert store.records[1].hours_attended == Decimal("0.8333")


def test_leave_after_session_end_closes_at_end_time(hours, store, live_session):
    _open_record(store)
    _end(store, live_session)

    record = hours.leave(1, STUDENT_ID, now=datetime(2026, 3, 2, 11, 45))

    assert record.time_left == END
    assert record.hours_attended == Decimal("1.3333")


def test_removal_after_session_end_freezes_at_end_time(hours, store, live_session):
    _open_record(store)
    _end(store, live_session)

    removed = hours.remove_record(1, current_role=Role.TEACHER, now=datetime(2026, 3, 2, 12, 0))

    assert removed.time_left == END
    assert removed.status == AttendanceStatus.REMOVED


def test_session_end_requires_ended_session(hours, live_session):
    with pytest.raises(ValidationError):
        hours.on_session_end(live_session)


def test_close_record_is_applied_once(hours, store, live_session):
    record = _open_record(store)

    first = hours.close_record(record, datetime(2026, 3, 2, 10, 0))
    second = hours.close_record(record, datetime(2026, 3, 2, 10, 20))

    assert first.hours_attended == Decimal("0.8333")
    assert second == store.records[1]
    assert store.records[1].time_left == datetime(2026, 3, 2, 10, 0)


def test_leave_twice_is_rejected(hours, store, live_session):
    _open_record(store)
    hours.leave(1, STUDENT_ID, now=datetime(2026, 3, 2, 10, 0))

    with pytest.raises(ValidationError, match="already left"):
        hours.leave(1, STUDENT_ID, now=datetime(2026, 3, 2, 10, 5))


def test_leave_without_joining_is_rejected(hours, live_session):
    with pytest.raises(ValidationError, match="not joined"):
        hours.leave(1, STUDENT_ID)


def test_removed_student_cannot_leave(hours, store, live_session):
    record = _open_record(store)
    store.records[1] = replace(record, status=AttendanceStatus.REMOVED)

    with pytest.raises(ValidationError, match="removed"):
        hours.leave(1, STUDENT_ID)


def test_clamp_never_goes_negative():
    session = ClassSession(session_id=1, class_id=CLASS_ID, session_date=date(2026, 3, 2), started_at=START, ended_at=END)
    record = AttendanceRecord(attendance_id=1, session_id=1, student_id=STUDENT_ID, time_joined=datetime(2026, 3, 2, 10, 40))

    assert clamp_hours(record, session, END) == Decimal("0")


def test_clamp_is_bounded_by_session_duration():
    session = ClassSession(session_id=1, class_id=CLASS_ID, session_date=date(2026, 3, 2), started_at=START, ended_at=END)
    early = AttendanceRecord(attendance_id=1, session_id=1, student_id=STUDENT_ID, time_joined=datetime(2026, 3, 2, 8, 0))

    assert clamp_hours(early, session, datetime(2026, 3, 2, 11, 0)) == Decimal("1.5000")


def test_clamp_without_session_uses_elapsed_time():
    record = AttendanceRecord(attendance_id=1, session_id=1, student_id=STUDENT_ID, time_joined=START)

    assert clamp_hours(record, None, datetime(2026, 3, 2, 9, 45)) == Decimal("0.7500")


def test_remove_open_record_freezes_hours_at_removal(hours, store, live_session):
    _open_record(store)

    removed = hours.remove_record(1, current_role=Role.TEACHER, now=datetime(2026, 3, 2, 9, 40))

    assert removed.status == AttendanceStatus.REMOVED
    assert removed.time_left == datetime(2026, 3, 2, 9, 40)
    assert removed.hours_attended == Decimal("0.5000")

    hours.on_session_end(_end(store, live_session))

    assert store.records[1].time_left == datetime(2026, 3, 2, 9, 40)
    assert store.records[1].hours_attended == Decimal("0.5000")


def test_remove_closed_record_keeps_its_hours(hours, store, live_session):
    _open_record(store)
    hours.leave(1, STUDENT_ID, now=datetime(2026, 3, 2, 10, 0))

    removed = hours.remove_record(1, current_role=Role.ADMIN, now=datetime(2026, 3, 2, 10, 15))

    assert removed.status == AttendanceStatus.REMOVED
    assert removed.time_left == datetime(2026, 3, 2, 10, 0)
    assert store.records[1].hours_attended == Decimal("0.8333")


def test_remove_twice_is_an_invalid_transition(hours, store, live_session):
    _open_record(store)
    hours.remove_record(1, current_role=Role.TEACHER)

    with pytest.raises(InvalidTransition):
        hours.remove_record(1, current_role=Role.TEACHER)


def test_remove_requires_staff(hours, store, live_session):
    _open_record(store)

    with pytest.raises(AuthorizationError):
        hours.remove_record(1, current_role=Role.STUDENT)
    assert store.records[1].status == AttendanceStatus.PRESENT


def test_remove_unknown_record(hours):
    with pytest.raises(ValidationError, match="not found"):
        hours.remove_record(42, current_role=Role.TEACHER)


def test_roster_shows_running_hours_for_open_rows(hours, store, live_session):
    store.names[STUDENT_ID] = "Ada Lovelace"
    _open_record(store)
    _open_record(store, attendance_id=2, student_id=OTHER_STUDENT_ID, joined=START)
    hours.leave(1, OTHER_STUDENT_ID, now=datetime(2026, 3, 2, 9, 15))

    rows = hours.get_session_records(1, now=datetime(2026, 3, 2, 9, 40))

    by_student = {r.student_id: r for r in rows}
    assert by_student[STUDENT_ID].full_name == "Ada Lovelace"
    assert by_student[STUDENT_ID].hours_attended == Decimal("0.5000")
    assert by_student[OTHER_STUDENT_ID].hours_attended == Decimal("0.2500")
    assert store.records[1].hours_attended == Decimal("0")


def test_roster_of_unknown_session(hours):
    with pytest.raises(ValidationError):
        hours.get_session_records(99)
