from __future__ import annotations

from datetime import date, datetime, timedelta
from decimal import Decimal
from itertools import count

import pytest

from src.classroom_attendance.classroom_attendance.attendance.hours import HoursAccumulator
from src.classroom_attendance.classroom_attendance.core.enums import JoinError, Role, SessionStatus
from src.classroom_attendance.classroom_attendance.core.exceptions import (
    AuthorizationError,
    InvalidTransition,
    ValidationError,
)
from src.classroom_attendance.classroom_attendance.sessions.service import SessionService, new_join_token
from tests.fakes import CLASS_ID, STUDENT_ID

START = datetime(2026, 3, 2, 9, 0)


@pytest.fixture
def service(sessions, hours):
    tokens = count(1)
    return SessionService(
        sessions,
        hours,
        token_ttl_seconds=30,
        public_base_url="https://school.example.edu/",
        token_factory=lambda: f"tok-{next(tokens)}",
        clock=lambda: START,
    )


def _create(service):
    return service.create_session(
        current_role=Role.TEACHER, class_id=CLASS_ID, teacher_id=7, session_date=date(2026, 3, 2)
    )


def test_create_session_is_pending(service):
    session = _create(service)

    assert session.status == SessionStatus.PENDING
    assert session.token is None
    assert session.teacher_id == 7


def test_start_issues_expiring_token(service):
    session = service.start_session(_create(service).session_id, current_role=Role.TEACHER)

    assert session.status == SessionStatus.ACTIVE
    assert session.started_at == START
    assert session.token == "tok-1"
    assert session.token_expiry == START + timedelta(seconds=30)


def test_zero_ttl_means_token_never_expires(sessions, hours):
    service = SessionService(sessions, hours, token_ttl_seconds=0, token_factory=lambda: "fixed", clock=lambda: START)
    session = service.start_session(_create(service).session_id, current_role=Role.ADMIN)

    assert session.token_expiry is None


def test_rotate_token_invalidates_previous(service, coordinator, sessions):
    session = service.start_session(_create(service).session_id, current_role=Role.TEACHER)

    rotated = service.rotate_token(session.session_id, current_role=Role.TEACHER, now=START + timedelta(seconds=20))

    assert rotated.token == "tok-2"
    assert rotated.token_expiry == START + timedelta(seconds=50)
    assert sessions.get_by_token("tok-1") is None
    stale = coordinator.verify_and_join("tok-1", STUDENT_ID, now=START + timedelta(seconds=25))
    assert stale.error == JoinError.TOKEN_INVALID
    assert coordinator.verify_and_join("tok-2", STUDENT_ID, now=START + timedelta(seconds=25)).success is True


def test_hide_token_keeps_session_active(service, coordinator):
    session = service.start_session(_create(service).session_id, current_role=Role.TEACHER)

    hidden = service.hide_token(session.session_id, current_role=Role.TEACHER)

    assert hidden.status == SessionStatus.ACTIVE
    assert hidden.token is None
    assert coordinator.verify_and_join("tok-1", STUDENT_ID, now=START).error == JoinError.TOKEN_INVALID


def test_end_session_finalizes_open_records(service, coordinator, store):
    session = service.start_session(_create(service).session_id, current_role=Role.TEACHER)
    joined = coordinator.verify_and_join(session.token, STUDENT_ID, now=START + timedelta(seconds=10))

    ended = service.end_session(session.session_id, current_role=Role.TEACHER, now=START + timedelta(minutes=45))

    assert ended.status == SessionStatus.COMPLETED
    assert ended.token is None
    record = store.records[joined.attendance_id]
    assert record.time_left == START + timedelta(minutes=45)
    assert record.hours_attended == Decimal("0.7472")


def test_join_after_end_is_rejected(service, coordinator, store):
    session = service.start_session(_create(service).session_id, current_role=Role.TEACHER)
    service.end_session(session.session_id, current_role=Role.TEACHER, now=START + timedelta(seconds=5))

    result = coordinator.verify_and_join(session.token, STUDENT_ID, now=START + timedelta(seconds=6))

    assert result.error == JoinError.TOKEN_INVALID
    assert store.records == {}


class _CloseFailsOnce:
    """Attendance repository whose first close() hits a database error."""

    def __init__(self, inner):
        self._inner = inner
        self.failures = 0

    def __getattr__(self, name):
        return getattr(self._inner, name)

    def close(self, **kwargs):
        if self.failures == 0:
            self.failures += 1
            raise RuntimeError("connection lost")
        return self._inner.close(**kwargs)


def test_end_session_retry_finalizes_records_left_open(sessions, attendance, coordinator, store):
    flaky = _CloseFailsOnce(attendance)
    service = SessionService(
        sessions,
        HoursAccumulator(flaky, sessions, clock=lambda: START),
        token_factory=lambda: "tok-1",
        clock=lambda: START,
    )
    session = service.start_session(_create(service).session_id, current_role=Role.TEACHER)
    joined = coordinator.verify_and_join(session.token, STUDENT_ID, now=START + timedelta(seconds=10))
    end_time = START + timedelta(minutes=30)

    with pytest.raises(RuntimeError):
        service.end_session(session.session_id, current_role=Role.TEACHER, now=end_time)
    assert store.records[joined.attendance_id].time_left is None

    retried = service.end_session(
        session.session_id, current_role=Role.TEACHER, now=START + timedelta(minutes=50)
    )

    assert retried.ended_at == end_time
    record = store.records[joined.attendance_id]
    assert record.time_left == end_time
    assert record.hours_attended == Decimal("0.4972")


def test_ending_an_ended_session_keeps_its_end_time(service, coordinator, store):
    session = service.start_session(_create(service).session_id, current_role=Role.TEACHER)
    first = service.end_session(session.session_id, current_role=Role.TEACHER, now=START + timedelta(minutes=10))

    again = service.end_session(session.session_id, current_role=Role.TEACHER, now=START + timedelta(minutes=20))

    assert again.ended_at == first.ended_at
    assert again.status == SessionStatus.COMPLETED


def test_lifecycle_cannot_go_backwards(service):
    session = _create(service)

    with pytest.raises(InvalidTransition):
        service.end_session(session.session_id, current_role=Role.TEACHER)

    service.start_session(session.session_id, current_role=Role.TEACHER)
    with pytest.raises(InvalidTransition):
        service.start_session(session.session_id, current_role=Role.TEACHER)

    service.end_session(session.session_id, current_role=Role.TEACHER)
    with pytest.raises(InvalidTransition):
        service.start_session(session.session_id, current_role=Role.TEACHER)
    with pytest.raises(InvalidTransition):
        service.rotate_token(session.session_id, current_role=Role.TEACHER)


def test_students_cannot_manage_sessions(service):
    with pytest.raises(AuthorizationError):
        service.create_session(current_role=Role.STUDENT, class_id=CLASS_ID, teacher_id=None, session_date=date(2026, 3, 2))


@pytest.mark.parametrize("class_id", [0, -1, "abc", None])
def test_create_rejects_bad_class_id(service, class_id):
    with pytest.raises(ValidationError):
        service.create_session(current_role=Role.TEACHER, class_id=class_id, teacher_id=7, session_date=date(2026, 3, 2))


def test_unknown_session(service):
    with pytest.raises(ValidationError, match="not found"):
        service.get(404)


def test_join_url_and_qr(service):
    session = service.start_session(_create(service).session_id, current_role=Role.TEACHER)

    assert service.join_url(session) == "https://school.example.edu/#/attend/tok-1"
    assert service.join_qr_png(session).startswith(b"\x89PNG")


def test_join_url_requires_token(service):
    with pytest.raises(ValidationError):
        service.join_url(_create(service))


def test_default_tokens_are_unique_and_url_safe():
    tokens = {new_join_token() for _ in range(50)}

    assert len(tokens) == 50
    assert all(t.replace("-", "").replace("_", "").isalnum() for t in tokens)
