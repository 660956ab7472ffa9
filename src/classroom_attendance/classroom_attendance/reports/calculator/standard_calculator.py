from __future__ import annotations

from decimal import Decimal

from ...common.datetime_utils import hours_between
from ..model import ReportSession
from .base import DurationCalculator


class StandardDurationCalculator(DurationCalculator):
    """Standard rule: ended_at - started_at, not below 0; unfinished sessions count 0."""

    def session_hours(self, session: ReportSession) -> Decimal:
        if not session.started_at or not session.ended_at:
            return Decimal("0")
        return max(hours_between(session.started_at, session.ended_at), Decimal("0"))
