from __future__ import annotations

from abc import ABC, abstractmethod
from decimal import Decimal

from ..model import ReportSession


class DurationCalculator(ABC):
    """Calculator interface for how long a session counts in a report."""

    @abstractmethod
    def session_hours(self, session: ReportSession) -> Decimal:
        raise NotImplementedError
