"""
Settlement windows.

Payroll settles on a fixed 28th-to-27th cycle rather than calendar months:
the run for month M covers the 28th of M-1 through the 27th of M. January's
window therefore starts in December of the previous year.
"""
import calendar
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from typing import Tuple
from zoneinfo import ZoneInfo

from app.core.config import settings
from app.core.exceptions import InvalidPeriodError

DAY_START = time(0, 0, 0, 0)
DAY_END = time(23, 59, 59, 999000)


@dataclass(frozen=True)
class SettlementWindow:
    """Inclusive [start, end] in the employer's local wall-clock time."""
    start: datetime
    end: datetime

    @property
    def start_date(self) -> date:
        return self.start.date()

    @property
    def end_date(self) -> date:
        return self.end.date()

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment <= self.end

    def contains_date(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date

    def utc_bounds(self, tz_name: str = None) -> Tuple[datetime, datetime]:
        """Window edges as aware UTC datetimes, for comparing stored timestamps."""
        tz = ZoneInfo(tz_name or settings.payroll.timezone)
        return (
            self.start.replace(tzinfo=tz).astimezone(timezone.utc),
            self.end.replace(tzinfo=tz).astimezone(timezone.utc),
        )


def validate_period(month, year) -> Tuple[int, int]:
    try:
        m = int(month)
        y = int(year)
    except (TypeError, ValueError):
        raise InvalidPeriodError("Invalid month or year format", details={"month": month, "year": year})
    if isinstance(month, float) and not float(month).is_integer():
        raise InvalidPeriodError("Month must be a whole number", details={"month": month})
    if not 1 <= m <= 12:
        raise InvalidPeriodError(f"Month must be between 1 and 12, got {m}", details={"month": m})
    if not 1900 <= y <= 9999:
        raise InvalidPeriodError(f"Year out of range: {y}", details={"year": y})
    return m, y


def previous_month(month: int, year: int) -> Tuple[int, int]:
    if month == 1:
        return 12, year - 1
    return month - 1, year


def resolve_cutoff_window(month, year) -> SettlementWindow:
    m, y = validate_period(month, year)
    start_month, start_year = previous_month(m, y)
    start = datetime.combine(date(start_year, start_month, settings.payroll.cutoff_start_day), DAY_START)
    end = datetime.combine(date(y, m, settings.payroll.cutoff_end_day), DAY_END)
    return SettlementWindow(start=start, end=end)


def resolve_calendar_window(month, year) -> SettlementWindow:
    """Plain calendar month, used by activity-date reporting views."""
    m, y = validate_period(month, year)
    last_day = calendar.monthrange(y, m)[1]
    return SettlementWindow(
        start=datetime.combine(date(y, m, 1), DAY_START),
        end=datetime.combine(date(y, m, last_day), DAY_END),
    )
