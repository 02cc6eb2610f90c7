"""Reunite descriptions and amounts that extraction split into separate segments.

Occasionally a transaction's description lands in one cluster (amount 0) and
its amounts in the next (an event type made only of leftovers). The pass keeps
a FIFO queue of zero-amount records; the next nonzero record donates its
amount and toll to the oldest pending one and is consumed.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable
from typing import NamedTuple

from .logging_setup import get_logger
from .models import TransactionRecord

_logger = get_logger("rideshare_statements.repair")


class RepairResult(NamedTuple):
    records: list[TransactionRecord]
    # Zero-amount records that never found a donor.
    dropped: list[TransactionRecord]


def repair_orphan_amounts(records: Iterable[TransactionRecord]) -> RepairResult:
    """Pair zero-amount records with the amounts that follow them, in order.

    Repaired records are flagged ``needs_manual_verification``. The total of
    all amounts is conserved except for the donors, which are consumed, and
    the dropped leftovers.
    """

    pending: deque[TransactionRecord] = deque()
    out: list[TransactionRecord] = []

    for tx in records:
        if tx.amount == 0:
            pending.append(tx)
            continue
        if pending:
            target = pending.popleft()
            _logger.debug(
                "Repairing %r with amount %.2f from %r", target.event_type, tx.amount, tx.event_type
            )
            out.append(
                target.with_updates(
                    amount=tx.amount,
                    tolls_reimbursed=tx.tolls_reimbursed,
                    needs_manual_verification=True,
                )
            )
        else:
            out.append(tx)

    dropped = list(pending)
    if dropped:
        _logger.info("Dropped %d transaction(s) without amounts", len(dropped))
    return RepairResult(records=out, dropped=dropped)


__all__ = ["RepairResult", "repair_orphan_amounts"]
