"""Workflow orchestrator for importing one weekly statement end to end.

The flow composes parsing, shift matching, storage and missing-shift
synthesis behind a single call:

statement -> records -> (period check) -> match -> replace period in store
-> per-shift totals -> missing-shifts CSV

Shift records themselves belong to the host application. The flow reads them
as :class:`~rideshare_statements.models.Shift` values and reports recomputed
totals through the optional :class:`ShiftRepository` hook.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Protocol

from ..categories import compute_totals
from ..errors import StatementAlreadyImportedError, StatementPeriodNotFoundError
from ..ingest.pages import PageSource
from ..logging_setup import get_logger
from ..matching import match_transactions_to_shifts
from ..missing_shifts import generate_missing_shifts_csv
from ..models import ParseWarning, Shift, TransactionTotals
from ..statement import StatementParser
from ..store import TransactionStore

_logger = get_logger("rideshare_statements.workflows.import_flow")


class ShiftRepository(Protocol):
    def apply_statement_totals(self, shift_id: str, totals: TransactionTotals | None) -> None:
        """Store ``totals`` on the shift; ``None`` clears previously imported data."""
        ...


@dataclass(frozen=True, slots=True)
class ShiftUpdate:
    shift_id: str
    # None when the shift no longer holds any statement transaction.
    totals: TransactionTotals | None


@dataclass(slots=True)
class ImportResult:
    statement_period: str
    total_transactions: int
    matched_count: int
    unmatched_count: int
    replaced: bool = False
    updated_shifts: list[ShiftUpdate] = field(default_factory=list)
    # None when every transaction found its shift.
    missing_shifts_csv: str | None = None
    warnings: list[ParseWarning] = field(default_factory=list)


def import_statement(
    source: PageSource | str | Path,
    store: TransactionStore,
    shifts: Sequence[Shift],
    *,
    shift_repository: ShiftRepository | None = None,
    replace: bool = False,
    parser: StatementParser | None = None,
    import_date: datetime | None = None,
    on_progress: Callable[[str], None] | None = None,
) -> ImportResult:
    """Parse ``source`` and merge its transactions into ``store``.

    Parameters
    ----------
    source:
        A page source or a path to a statement PDF.
    store:
        Destination store. The statement's period is replaced atomically.
    shifts:
        Recorded shifts to match against.
    shift_repository:
        Optional hook receiving recomputed totals for every affected shift,
        including shifts that lost all their transactions to a replacement.
    replace:
        Confirms overwriting a period that is already stored.

    Raises
    ------
    StatementPeriodNotFoundError
        Page one carries no statement period.
    StatementAlreadyImportedError
        The period is already stored and ``replace`` is false.
    """

    import_date = import_date or datetime.now()
    parser = parser or StatementParser()

    report = parser.parse(source, import_date=import_date)
    if report.period is None:
        raise StatementPeriodNotFoundError(
            "could not find the statement period on page one; is this a weekly statement?"
        )
    period = report.period.display
    transactions = [
        tx.with_updates(statement_period=period, import_date=import_date, shift_id=None)
        for tx in report.transactions
    ]
    if on_progress:
        on_progress(f"Parsed {len(transactions)} transaction(s) for {period}.")

    previous_shift_ids: set[str] = set()
    replaced = store.has_statement_period(period)
    if replaced:
        if not replace:
            existing = len(store.get_transactions_for_statement_period(period))
            raise StatementAlreadyImportedError(period, existing)
        previous_shift_ids = store.get_affected_shift_ids(period)

    match = match_transactions_to_shifts(transactions, shifts)
    assigned = [m.transaction.with_updates(shift_id=m.shift.id) for m in match.matched]
    # Bank transfers are neither matched nor orphaned and are not stored.
    store.replace_statement_period(period, assigned + match.unmatched)

    affected = {m.shift.id for m in match.matched}
    updates: list[ShiftUpdate] = []
    for shift_id in sorted(affected | previous_shift_ids):
        shift_transactions = store.get_transactions_for_shift(shift_id)
        totals = compute_totals(shift_transactions) if shift_transactions else None
        updates.append(ShiftUpdate(shift_id=shift_id, totals=totals))
        if shift_repository is not None:
            shift_repository.apply_statement_totals(shift_id, totals)

    csv_text = generate_missing_shifts_csv(match.unmatched, period) if match.unmatched else None

    result = ImportResult(
        statement_period=period,
        total_transactions=len(transactions),
        matched_count=len(match.matched),
        unmatched_count=len(match.unmatched),
        replaced=replaced,
        updated_shifts=updates,
        missing_shifts_csv=csv_text,
        warnings=list(report.warnings),
    )
    _logger.info(
        "Imported %s: %d matched, %d unmatched, %d shift(s) updated%s",
        period,
        result.matched_count,
        result.unmatched_count,
        len(updates),
        " (replaced)" if replaced else "",
    )
    if on_progress:
        on_progress(
            f"Matched {result.matched_count}, unmatched {result.unmatched_count}; "
            f"updated {len(updates)} shift(s)."
        )
    return result


__all__ = ["ShiftRepository", "ShiftUpdate", "ImportResult", "import_statement"]
