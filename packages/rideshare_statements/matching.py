"""Assign statement transactions to recorded shifts.

Earnings settle daily at 04:00 local time, so a shift owns the settlement
window that opens at 04:00 on the calendar day it started. A transaction
belongs to a shift when its timestamp lies inside that window and inside the
shift's own ``[start, end]`` interval; the second check separates several
shifts driven on the same settlement day.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from .categories import categorize
from .dates import settlement_window
from .logging_setup import get_logger
from .models import MatchResult, Shift, ShiftMatch, TransactionCategory, TransactionRecord

_logger = get_logger("rideshare_statements.matching")


def find_matching_shift(tx: TransactionRecord, shifts: Iterable[Shift]) -> Shift | None:
    """Return the first shift that owns ``tx``, or ``None``.

    Open shifts (no end date) never match. Matching uses the processing time;
    the activity time only decides the settlement day of orphans.
    """

    moment = tx.transaction_date
    for shift in shifts:
        if shift.end_date is None:
            continue
        window_start, window_end = settlement_window(shift.start_date)
        if not window_start <= moment < window_end:
            continue
        if shift.start_date <= moment <= shift.end_date:
            return shift
    return None


def match_transactions_to_shifts(
    transactions: Iterable[TransactionRecord],
    shifts: Sequence[Shift],
) -> MatchResult:
    """Split ``transactions`` into shift matches and orphans.

    Bank transfers are left out of both lists.
    """

    matched: list[ShiftMatch] = []
    unmatched: list[TransactionRecord] = []
    for tx in transactions:
        if categorize(tx) is TransactionCategory.IGNORE:
            continue
        shift = find_matching_shift(tx, shifts)
        if shift is None:
            unmatched.append(tx)
        else:
            matched.append(ShiftMatch(shift=shift, transaction=tx))
    _logger.debug("Matched %d transaction(s); %d unmatched", len(matched), len(unmatched))
    return MatchResult(matched=matched, unmatched=unmatched)


__all__ = ["find_matching_shift", "match_transactions_to_shifts"]
