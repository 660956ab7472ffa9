from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol

from .model import ClassSession


class SessionRepository(Protocol):
    def get_by_id(self, session_id: int) -> Optional[ClassSession]:
        raise NotImplementedError

    def get_by_token(self, token: str) -> Optional[ClassSession]:
        raise NotImplementedError

    def create(self, *, class_id: int, session_date: date, lecture_id: Optional[int], teacher_id: Optional[int]) -> int:
        raise NotImplementedError

    def mark_started(self, session_id: int, *, started_at: datetime, token: str, token_expiry: Optional[datetime]) -> bool:
        """Move a pending session to active. Returns False if it was not pending."""

        raise NotImplementedError

    def replace_token(self, session_id: int, *, token: Optional[str], token_expiry: Optional[datetime]) -> bool:
        """Swap the join token of a running session; the old token stops resolving."""

        raise NotImplementedError

    def mark_ended(self, session_id: int, *, ended_at: datetime) -> bool:
        """Set ended_at once and clear the token. Returns False if already ended."""

        raise NotImplementedError
