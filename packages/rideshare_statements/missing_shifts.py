"""Synthesize shift rows for statement transactions no recorded shift covers.

Orphans are grouped by settlement day (04:00 boundary, activity time first,
processing time as fallback). Each group becomes one CSV row in the shift
import format: start/end come from the group's earliest and latest
timestamps, the earnings columns are prefilled, and everything the statement
cannot know (mileage, tank readings, refuels, ...) is left blank for the
driver to complete.
"""

from __future__ import annotations

import csv
from collections.abc import Iterable, Sequence
from datetime import datetime
from io import StringIO

from .categories import categorize
from .dates import settlement_day
from .logging_setup import get_logger
from .models import TransactionCategory, TransactionRecord

_logger = get_logger("rideshare_statements.missing_shifts")

CSV_COLUMNS: tuple[str, ...] = (
    "StartDate",
    "StartTime",
    "EndDate",
    "EndTime",
    "StartMileage",
    "EndMileage",
    "StartTankReading",
    "EndTankReading",
    "RefuelGallons",
    "RefuelCost",
    "GasPrice",
    "StandardMileageRate",
    "Trips",
    "NetFare",
    "Tips",
    "CashTips",
    "Promotions",
    "Tolls",
    "TollsReimbursed",
    "ParkingFees",
    "MiscFees",
)


def group_by_settlement_day(
    transactions: Iterable[TransactionRecord],
) -> dict[datetime, list[TransactionRecord]]:
    """Group by the 04:00 start of each transaction's settlement day."""

    grouped: dict[datetime, list[TransactionRecord]] = {}
    for tx in transactions:
        grouped.setdefault(settlement_day(tx.effective_date), []).append(tx)
    return grouped


def calculate_shift_times(transactions: Sequence[TransactionRecord]) -> tuple[datetime, datetime]:
    """Earliest and latest effective timestamps of a non-empty group."""

    if not transactions:
        raise ValueError("calculate_shift_times needs at least one transaction")
    moments = [tx.effective_date for tx in transactions]
    return min(moments), max(moments)


def format_amount(value: float) -> str:
    """Two decimals, or blank for zero so the importer leaves the field unset."""

    return "" if round(value, 2) == 0 else f"{value:.2f}"


def _format_date(moment: datetime) -> str:
    return moment.strftime("%m/%d/%Y")


def _format_time(moment: datetime) -> str:
    # "4:01:00 PM": no leading zero on the hour.
    hour = moment.hour % 12 or 12
    meridiem = "AM" if moment.hour < 12 else "PM"
    return f"{hour}:{moment.minute:02d}:{moment.second:02d} {meridiem}"


def _build_row(transactions: Sequence[TransactionRecord]) -> list[str]:
    start, end = calculate_shift_times(transactions)
    net_fare = tips = promotions = tolls_reimbursed = 0.0
    for tx in transactions:
        match categorize(tx):
            case TransactionCategory.IGNORE:
                continue
            case TransactionCategory.NET_FARE:
                net_fare += tx.amount
            case TransactionCategory.TIP:
                tips += tx.amount
            case TransactionCategory.PROMOTION:
                promotions += tx.amount
        if tx.tolls_reimbursed is not None:
            tolls_reimbursed += tx.tolls_reimbursed

    values = dict.fromkeys(CSV_COLUMNS, "")
    values.update(
        StartDate=_format_date(start),
        StartTime=_format_time(start),
        EndDate=_format_date(end),
        EndTime=_format_time(end),
        NetFare=format_amount(net_fare),
        Tips=format_amount(tips),
        Promotions=format_amount(promotions),
        TollsReimbursed=format_amount(tolls_reimbursed),
    )
    return [values[c] for c in CSV_COLUMNS]


def generate_missing_shifts_csv(
    unmatched: Iterable[TransactionRecord],
    statement_period: str = "",
) -> str:
    """Render one CSV row per settlement day, ordered by day.

    With no transactions the result is the header line alone.
    """

    grouped = group_by_settlement_day(unmatched)
    out = StringIO()
    writer = csv.writer(out, lineterminator="\n")
    writer.writerow(CSV_COLUMNS)
    for day in sorted(grouped):
        writer.writerow(_build_row(grouped[day]))
    _logger.info(
        "Synthesized %d missing shift(s) for %r",
        len(grouped),
        statement_period or "unknown period",
    )
    return out.getvalue()


__all__ = [
    "CSV_COLUMNS",
    "group_by_settlement_day",
    "calculate_shift_times",
    "format_amount",
    "generate_missing_shifts_csv",
]
