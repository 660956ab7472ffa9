from __future__ import annotations

import io
import logging
import secrets
from datetime import date, datetime, timedelta
from typing import Callable, Optional

import qrcode

from ..attendance.hours import HoursAccumulator
from ..common.datetime_utils import now_local
from ..common.validators import require_positive_id
from ..core.constants import DEFAULT_JOIN_TOKEN_TTL_SECONDS, JOIN_PATH_SEGMENT, JOIN_TOKEN_BYTES
from ..core.enums import Role, SessionStatus, session_can_transition
from ..core.exceptions import AuthorizationError, InvalidTransition, ValidationError
from .model import ClassSession
from .repository import SessionRepository

logger = logging.getLogger(__name__)


def new_join_token() -> str:
    return secrets.token_urlsafe(JOIN_TOKEN_BYTES)


class SessionService:
    """Use case: teacher-side session lifecycle and join tokens.

    Ending a session hands its open records to the HoursAccumulator right
    after the session stops being live, so no join can slip in between.
    """

    def __init__(
        self,
        sessions: SessionRepository,
        hours: HoursAccumulator,
        *,
        token_ttl_seconds: int = DEFAULT_JOIN_TOKEN_TTL_SECONDS,
        public_base_url: str = "",
        token_factory: Callable[[], str] = new_join_token,
        clock: Callable[[], datetime] = now_local,
    ):
        self._sessions = sessions
        self._hours = hours
        self._token_ttl_seconds = int(token_ttl_seconds)
        self._public_base_url = public_base_url or ""
        self._token_factory = token_factory
        self._clock = clock

    @staticmethod
    def _require_staff(current_role: Role) -> None:
        if current_role not in (Role.TEACHER, Role.ADMIN):
            raise AuthorizationError("Only teachers can manage sessions")

    def _token_expiry(self, now: datetime) -> Optional[datetime]:
        if self._token_ttl_seconds <= 0:
            return None
        return now + timedelta(seconds=self._token_ttl_seconds)

    def get(self, session_id: int) -> ClassSession:
        session = self._sessions.get_by_id(int(session_id))
        if not session:
            raise ValidationError("Session not found")
        return session

    def _require_transition(self, session: ClassSession, target: SessionStatus) -> None:
        if not session_can_transition(session.status, target):
            raise InvalidTransition(f"Cannot move a {session.status.value} session to {target.value}")

    def create_session(
        self,
        *,
        current_role: Role,
        class_id: int,
        teacher_id: Optional[int],
        session_date: date,
        lecture_id: Optional[int] = None,
    ) -> ClassSession:
        self._require_staff(current_role)
        class_id = require_positive_id(class_id, "Class")
        if lecture_id is not None:
            lecture_id = require_positive_id(lecture_id, "Lecture")

        session_id = self._sessions.create(
            class_id=class_id,
            session_date=session_date,
            lecture_id=lecture_id,
            teacher_id=teacher_id,
        )
        logger.info("Session %s created for class %s on %s", session_id, class_id, session_date)
        return self.get(session_id)

    def start_session(self, session_id: int, *, current_role: Role, now: Optional[datetime] = None) -> ClassSession:
        self._require_staff(current_role)
        now = now or self._clock()
        session = self.get(session_id)
        self._require_transition(session, SessionStatus.ACTIVE)

        if not self._sessions.mark_started(
            session.session_id,
            started_at=now,
            token=self._token_factory(),
            token_expiry=self._token_expiry(now),
        ):
            raise InvalidTransition("Session was already started")

        logger.info("Session %s started", session.session_id)
        return self.get(session.session_id)

    def rotate_token(self, session_id: int, *, current_role: Role, now: Optional[datetime] = None) -> ClassSession:
        """Issue a fresh token; the previous one stops resolving immediately."""
        self._require_staff(current_role)
        now = now or self._clock()
        session = self.get(session_id)
        if session.status != SessionStatus.ACTIVE:
            raise InvalidTransition("Only an active session has a join code")

        if not self._sessions.replace_token(
            session.session_id,
            token=self._token_factory(),
            token_expiry=self._token_expiry(now),
        ):
            raise InvalidTransition("Session is no longer active")

        logger.debug("Token rotated for session %s", session.session_id)
        return self.get(session.session_id)

    def hide_token(self, session_id: int, *, current_role: Role) -> ClassSession:
        """Withdraw the join code without ending the session."""
        self._require_staff(current_role)
        session = self.get(session_id)
        if session.status != SessionStatus.ACTIVE:
            raise InvalidTransition("Only an active session has a join code")

        if session.token is not None:
            self._sessions.replace_token(session.session_id, token=None, token_expiry=None)
        return self.get(session.session_id)

    def end_session(self, session_id: int, *, current_role: Role, now: Optional[datetime] = None) -> ClassSession:
        """End a session and close its open records at the end time.

        Calling it again on an ended session only finalizes records that are
        still open, so a failed finalization can be retried.
        """
        self._require_staff(current_role)
        now = now or self._clock()
        session = self.get(session_id)

        if session.ended_at is None:
            self._require_transition(session, SessionStatus.COMPLETED)
            if self._sessions.mark_ended(session.session_id, ended_at=now):
                logger.info("Session %s ended", session.session_id)

        ended = self.get(session.session_id)
        if ended.ended_at is None:
            raise InvalidTransition("Session could not be ended")

        self._hours.on_session_end(ended)
        return ended

    def join_url(self, session: ClassSession) -> str:
        if not session.token:
            raise ValidationError("Session has no active join code")
        return f"{self._public_base_url}#/{JOIN_PATH_SEGMENT}/{session.token}"

    def join_qr_png(self, session: ClassSession) -> bytes:
        qr = qrcode.QRCode(
            version=1,
            error_correction=qrcode.constants.ERROR_CORRECT_L,
            box_size=10,
            border=2,
        )
        qr.add_data(self.join_url(session))
        qr.make(fit=True)

        img = qr.make_image(fill_color="black", back_color="white")
        buf = io.BytesIO()
        img.save(buf, format="PNG")
        return buf.getvalue()
