"""Calendar windows for monthly reports.

Every report is computed for one calendar month. A window is inclusive on both
ends and its end is the last microsecond of the final day, so a record created
at 23:59:59 on the last day still belongs to the month.
"""

from __future__ import annotations

from calendar import monthrange
from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo

from pydantic import BaseModel, ConfigDict

from fieldsales.core.config import get_settings


class Window(BaseModel):
    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime

    def contains(self, value: datetime) -> bool:
        return self.start <= value <= self.end

    def extended(self, days: int) -> Window:
        return Window(start=self.start, end=self.end + timedelta(days=days))

    def as_aware(self, tz_name: str) -> tuple[datetime, datetime]:
        tz = ZoneInfo(tz_name)
        return self.start.replace(tzinfo=tz), self.end.replace(tzinfo=tz)


class ReportPeriod(BaseModel):
    model_config = ConfigDict(frozen=True)

    year: int
    month: int
    commercial_id: int | None = None
    current: Window
    previous: Window


def normalize_year_month(year: int, month: int) -> tuple[int, int]:
    """Roll an out-of-range month over the year boundary (0 -> previous December)."""
    total = year * 12 + (month - 1)
    normalized_year, month_index = divmod(total, 12)
    return normalized_year, month_index + 1


def month_window(year: int, month: int) -> Window:
    year, month = normalize_year_month(year, month)
    last_day = monthrange(year, month)[1]
    return Window(
        start=datetime(year, month, 1),
        end=datetime.combine(date(year, month, last_day), time.max),
    )


def month_start(year: int, month: int, offset: int = 0) -> datetime:
    year, month = normalize_year_month(year, month + offset)
    return datetime(year, month, 1)


def resolve_period(year: int, month: int, commercial_id: int | None = None) -> ReportPeriod:
    year, month = normalize_year_month(year, month)
    return ReportPeriod(
        year=year,
        month=month,
        commercial_id=commercial_id,
        current=month_window(year, month),
        previous=month_window(year, month - 1),
    )


def trailing_months(year: int, month: int, count: int = 6) -> list[tuple[int, int]]:
    return [normalize_year_month(year, month - offset) for offset in range(count - 1, -1, -1)]


def to_local_naive(value: datetime, tz_name: str | None = None) -> datetime:
    if value.tzinfo is None:
        return value
    tz = ZoneInfo(tz_name or get_settings().report_timezone)
    return value.astimezone(tz).replace(tzinfo=None)


def days_between(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / 86400
