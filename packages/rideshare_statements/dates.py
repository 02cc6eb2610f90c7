"""Date helpers shared by the parser, the shift matcher and the synthesizer.

Statements print dates without a year ("Sat, Aug 9", "Aug 9 12:10 AM"), so the
year is inferred from the statement period. Earnings settle daily at 04:00
local time; :func:`settlement_window` and :func:`settlement_day` implement that
boundary for both shift matching and missing-shift grouping.
"""

from __future__ import annotations

import re
from datetime import datetime, time, timedelta

from .models import StatementPeriod

SETTLEMENT_CUTOFF = time(hour=4)

_MONTHS: dict[str, int] = {
    "Jan": 1,
    "Feb": 2,
    "Mar": 3,
    "Apr": 4,
    "May": 5,
    "Jun": 6,
    "Jul": 7,
    "Aug": 8,
    "Sep": 9,
    "Oct": 10,
    "Nov": 11,
    "Dec": 12,
}

# "Weekly Statement\nAug 4, 2025 4 AM - Aug 11, 2025 4 AM"
_PERIOD_RE = re.compile(
    r"([A-Za-z]+)\s+(\d{1,2}),\s+(\d{4})\s+4\s+AM\s+-\s+"
    r"([A-Za-z]+)\s+(\d{1,2}),\s+(\d{4})\s+4\s+AM",
    re.DOTALL,
)


def month_number(name: str) -> int | None:
    """Return 1-12 for an English month name or abbreviation, else ``None``."""

    return _MONTHS.get(name.strip()[:3].title())


def to_24_hour(hour: int, meridiem: str) -> int:
    m = meridiem.strip().upper()
    if m == "AM":
        return 0 if hour == 12 else hour
    return hour if hour == 12 else hour + 12


def infer_year(month: int, period: StatementPeriod | None, *, fallback_year: int) -> int:
    """Pick the calendar year for a transaction printed without one.

    A transaction month numerically greater than the statement's end month
    belongs to the previous year (a statement ending Jan 5, 2026 prints
    "Dec 30" for Dec 30, 2025). Without a period, ``fallback_year`` is used.
    """

    if period is None:
        return fallback_year
    end = period.end_date
    return end.year - 1 if month > end.month else end.year


def build_datetime(
    month_name: str,
    day: int,
    hour12: int,
    minute: int,
    meridiem: str,
    *,
    period: StatementPeriod | None,
    fallback_year: int,
) -> datetime | None:
    """Assemble a wall-clock datetime, or ``None`` when the parts are invalid."""

    month = month_number(month_name)
    if month is None or not 1 <= hour12 <= 12 or not 0 <= minute <= 59:
        return None
    year = infer_year(month, period, fallback_year=fallback_year)
    try:
        return datetime(year, month, day, to_24_hour(hour12, meridiem), minute)
    except ValueError:
        # e.g. "Feb 30" from a garbled fragment
        return None


def parse_statement_period(text: str) -> StatementPeriod | None:
    """Find the statement period on page one.

    Expects ``"<Mon> <D>, <YYYY> 4 AM - <Mon> <D>, <YYYY> 4 AM"``; whitespace
    (including newlines) may separate the tokens. Returns ``None`` when the
    pattern is absent or names an impossible date.
    """

    m = _PERIOD_RE.search(text)
    if m is None:
        return None
    start_month_s, start_day_s, start_year_s, end_month_s, end_day_s, end_year_s = m.groups()
    start_month = month_number(start_month_s)
    end_month = month_number(end_month_s)
    if start_month is None or end_month is None:
        return None
    try:
        start = datetime(int(start_year_s), start_month, int(start_day_s), 4, 0)
        end = datetime(int(end_year_s), end_month, int(end_day_s), 4, 0)
    except ValueError:
        return None
    display = (
        f"{start_month_s} {int(start_day_s)}, {start_year_s} - "
        f"{end_month_s} {int(end_day_s)}, {end_year_s}"
    )
    return StatementPeriod(start_date=start, end_date=end, display=display)


def settlement_window(moment: datetime) -> tuple[datetime, datetime]:
    """Return ``[04:00 on moment's calendar day, 04:00 the next day)``."""

    start = datetime.combine(moment.date(), SETTLEMENT_CUTOFF)
    return start, start + timedelta(days=1)


def settlement_day(moment: datetime) -> datetime:
    """Return the 04:00 start of the settlement day ``moment`` belongs to.

    Anything before 04:00 belongs to the previous calendar day.
    """

    day = moment.date()
    if moment.time() < SETTLEMENT_CUTOFF:
        day -= timedelta(days=1)
    return datetime.combine(day, SETTLEMENT_CUTOFF)


__all__ = [
    "SETTLEMENT_CUTOFF",
    "month_number",
    "to_24_hour",
    "infer_year",
    "build_datetime",
    "parse_statement_period",
    "settlement_window",
    "settlement_day",
]
