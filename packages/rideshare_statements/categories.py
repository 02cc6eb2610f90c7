"""Transaction categories and per-category totals."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

from .models import TransactionCategory, TransactionRecord, TransactionTotals

_PROMOTION_EVENTS = frozenset({"Quest", "Incentive"})


def categorize(tx: TransactionRecord) -> TransactionCategory:
    """Map an event type onto the category used for shift totals.

    Ride and delivery types (UberX, UberX Priority, Share, Delivery, ...) all
    count as net fare.
    """

    event = tx.event_type.strip()
    if event == "Tip":
        return TransactionCategory.TIP
    if event in _PROMOTION_EVENTS:
        return TransactionCategory.PROMOTION
    if "transferred to bank" in event.lower():
        return TransactionCategory.IGNORE
    return TransactionCategory.NET_FARE


def compute_totals(transactions: Iterable[TransactionRecord]) -> TransactionTotals:
    """Sum amounts per category; ignored transactions are counted, not summed."""

    tips = tolls = promotions = net_fare = 0.0
    count = 0
    for tx in transactions:
        count += 1
        match categorize(tx):
            case TransactionCategory.IGNORE:
                continue
            case TransactionCategory.TIP:
                tips += tx.amount
            case TransactionCategory.PROMOTION:
                promotions += tx.amount
            case TransactionCategory.NET_FARE:
                net_fare += tx.amount
        if tx.tolls_reimbursed is not None:
            tolls += tx.tolls_reimbursed
    return TransactionTotals(
        tips=round(tips, 2),
        tolls_reimbursed=round(tolls, 2),
        promotions=round(promotions, 2),
        net_fare=round(net_fare, 2),
        count=count,
    )


def compute_totals_between(
    transactions: Iterable[TransactionRecord],
    start: datetime,
    end: datetime,
) -> TransactionTotals:
    """Totals over transactions processed within ``[start, end]``."""

    return compute_totals(tx for tx in transactions if start <= tx.transaction_date <= end)


__all__ = ["categorize", "compute_totals", "compute_totals_between"]
