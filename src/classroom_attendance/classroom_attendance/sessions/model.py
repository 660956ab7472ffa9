from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..core.enums import SessionStatus


@dataclass(frozen=True)
class ClassSession:
    """Domain entity: one class meeting with its current join token."""

    session_id: int
    class_id: int
    session_date: date
    status: SessionStatus = SessionStatus.PENDING
    lecture_id: Optional[int] = None
    teacher_id: Optional[int] = None
    started_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None
    token: Optional[str] = None
    token_expiry: Optional[datetime] = None

    def is_live(self, now: datetime) -> bool:
        """Live means not ended and, when the token expires, not yet expired."""
        if self.ended_at is not None:
            return False
        return self.token_expiry is None or now < self.token_expiry
