from __future__ import annotations

from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from ..core.constants import HOURS_QUANTUM

_SECONDS_PER_HOUR = Decimal(3600)


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def parse_optional_date(value: Optional[str]) -> Optional[date]:
    value = (value or "").strip()
    return parse_iso_date(value) if value else None


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now()


def quantize_hours(value: Decimal) -> Decimal:
    return value.quantize(Decimal(HOURS_QUANTUM), rounding=ROUND_HALF_UP)


def hours_between(start: datetime, end: datetime) -> Decimal:
    """Signed number of hours from ``start`` to ``end``."""
    seconds = Decimal(str((end - start).total_seconds()))
    return quantize_hours(seconds / _SECONDS_PER_HOUR)


def format_hours(hours: Decimal) -> str:
    """Human readable duration, e.g. ``1h 20m``."""
    if not hours or hours <= 0:
        return "0m"
    total_minutes = int((hours * 60).quantize(Decimal(1), rounding=ROUND_HALF_UP))
    h, m = divmod(total_minutes, 60)
    if h == 0:
        return f"{m}m"
    if m == 0:
        return f"{h}h"
    return f"{h}h {m}m"
