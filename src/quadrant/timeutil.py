"""Timestamp helpers.

All persisted timestamps are ISO-8601 UTC strings with millisecond precision
and a ``Z`` suffix, so string order matches chronological order.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import datetime, time, timezone


def utc_now() -> datetime:
    """Current time in UTC."""
    return datetime.now(timezone.utc)


def to_iso(value: datetime) -> str:
    """Format a datetime as a canonical ISO string."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def now_iso() -> str:
    """Current time as a canonical ISO string."""
    return to_iso(utc_now())


def parse_iso(value: str | None) -> datetime | None:
    """Parse an ISO date or datetime string into an aware UTC datetime."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def start_of_day(value: datetime) -> datetime:
    """Midnight UTC of the given moment's day."""
    return datetime.combine(value.astimezone(timezone.utc).date(), time.min, tzinfo=timezone.utc)


def day_key(value: datetime) -> str:
    """YYYY-MM-DD key of a moment in UTC."""
    return value.astimezone(timezone.utc).date().isoformat()


def days_between(earlier: datetime, later: datetime) -> float:
    """Fractional days from ``earlier`` to ``later``."""
    return (later - earlier).total_seconds() / 86400


@dataclass(frozen=True)
class QuarterlyPeriod:
    year: int
    quarter: int

    @property
    def label(self) -> str:
        return f"Q{self.quarter} {self.year}"


def derive_quarter(value: datetime | None = None) -> QuarterlyPeriod:
    """Calendar quarter containing ``value`` (UTC)."""
    moment = (value or utc_now()).astimezone(timezone.utc)
    return QuarterlyPeriod(year=moment.year, quarter=(moment.month - 1) // 3 + 1)


def quarter_date_range(year: int, quarter: int) -> tuple[datetime, datetime]:
    """First instant and last millisecond of a quarter in UTC."""
    if quarter not in (1, 2, 3, 4):
        raise ValueError(f"quarter must be 1-4, got {quarter}")
    start_month = (quarter - 1) * 3 + 1
    end_month = start_month + 2
    start = datetime(year, start_month, 1, tzinfo=timezone.utc)
    last_day = calendar.monthrange(year, end_month)[1]
    end = datetime(year, end_month, last_day, 23, 59, 59, 999000, tzinfo=timezone.utc)
    return start, end

