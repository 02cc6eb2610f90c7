# ruff: noqa: I001
"""Durable, deduplicated storage of statement transactions.

The store wraps the ``rs_transactions`` table owned by ``libs/db``. It is
constructed explicitly with a session factory (or a database URL) and never
cached at module level.

Concurrency
-----------
- Single-record operations and reads run synchronously on the caller's
  thread.
- Batch mutations (``assign_transactions``, ``delete_transactions``,
  ``delete_transactions_where``) run on a private single-thread executor and
  return a :class:`~concurrent.futures.Future`; wait on it before relying on
  the result.
- One lock serializes every write, so synchronous writes and queued batches
  never interleave.

Every write failure surfaces as :class:`StoreWriteError`; nothing is retried.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterable
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime
from typing import TypeVar

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from db import Base
from db.client import make_engine, make_session_maker, session_scope
from db.models.statements import RsTransaction

from .errors import StoreWriteError
from .logging_setup import get_logger
from .models import TransactionRecord

_logger = get_logger("rideshare_statements.store")

T = TypeVar("T")

# Content duplicates: same processing time and event type, amounts within a cent.
AMOUNT_EPSILON = 0.01


# ---------------------------------------------------------------------------
# Row <-> record mapping
# ---------------------------------------------------------------------------


def _to_record(row: RsTransaction) -> TransactionRecord:
    return TransactionRecord(
        id=row.id,
        transaction_date=row.transaction_date,
        event_date=row.event_date,
        event_type=row.event_type,
        amount=float(row.amount),
        tolls_reimbursed=float(row.tolls_reimbursed) if row.tolls_reimbursed is not None else None,
        statement_period=row.statement_period,
        shift_id=row.shift_id,
        import_date=row.import_date,
        needs_manual_verification=bool(row.needs_manual_verification),
        source_row=row.source_row,
    )


def _apply_record(row: RsTransaction, tx: TransactionRecord) -> None:
    row.transaction_date = tx.transaction_date
    row.event_date = tx.event_date
    row.event_type = tx.event_type
    row.amount = tx.amount
    row.tolls_reimbursed = tx.tolls_reimbursed
    row.statement_period = tx.statement_period
    row.shift_id = tx.shift_id
    row.import_date = tx.import_date
    row.needs_manual_verification = tx.needs_manual_verification
    row.source_row = tx.source_row


def _next_seq(session: Session) -> int:
    current = session.execute(select(func.max(RsTransaction.seq))).scalar_one_or_none()
    return (current or 0) + 1


def _upsert(session: Session, tx: TransactionRecord, seq: int) -> bool:
    """Insert ``tx`` with ``seq`` or update the existing row in place.

    Returns ``True`` when a new row was inserted (``seq`` consumed).
    """

    row = session.get(RsTransaction, tx.id)
    if row is not None:
        _apply_record(row, tx)
        row.updated_at = func.now()
        return False
    row = RsTransaction(id=tx.id, seq=seq)
    _apply_record(row, tx)
    session.add(row)
    return True


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


class TransactionStore:
    """Flat collection of :class:`TransactionRecord` kept in insertion order."""

    def __init__(self, session_maker: sessionmaker[Session]) -> None:
        self._session_maker = session_maker
        self._lock = threading.RLock()
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="rs-store")

    @classmethod
    def from_url(cls, url: str | None = None, *, create_schema: bool = False) -> TransactionStore:
        """Build a store on a fresh engine (``url`` falls back to ``DATABASE_URL``).

        ``create_schema`` creates missing tables directly from the ORM metadata,
        which is convenient for local SQLite files; managed databases should be
        migrated with Alembic instead.
        """

        engine = make_engine(url)
        if create_schema:
            Base.metadata.create_all(engine)
        return cls(make_session_maker(engine))

    def close(self) -> None:
        """Finish queued batch work and release the worker thread."""

        self._executor.shutdown(wait=True)

    def __enter__(self) -> TransactionStore:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ---- internals ----------------------------------------------------------

    def _write(self, op: Callable[[Session], T], what: str) -> T:
        with self._lock:
            try:
                with session_scope(self._session_maker) as session:
                    return op(session)
            except SQLAlchemyError as e:
                _logger.error("Store write failed (%s): %s", what, e)
                raise StoreWriteError(f"failed to {what}: {e}") from e

    def _read(self, op: Callable[[Session], T]) -> T:
        with self._session_maker() as session:
            return op(session)

    def _query(self, *criteria) -> list[TransactionRecord]:
        stmt = select(RsTransaction)
        if criteria:
            stmt = stmt.where(*criteria)
        stmt = stmt.order_by(RsTransaction.seq)
        return self._read(lambda s: [_to_record(r) for r in s.scalars(stmt)])

    def _submit(self, op: Callable[[Session], T], what: str) -> Future[T]:
        return self._executor.submit(self._write, op, what)

    # ---- core CRUD ----------------------------------------------------------

    def save_transaction(self, tx: TransactionRecord) -> None:
        """Insert ``tx`` or replace the stored record with the same id."""

        self._write(lambda s: _upsert(s, tx, _next_seq(s)), "save transaction")

    def save_transactions(self, transactions: Iterable[TransactionRecord]) -> None:
        """Insert-or-update each record, appending new ones in the given order."""

        items = list(transactions)

        def op(session: Session) -> None:
            seq = _next_seq(session)
            for tx in items:
                if _upsert(session, tx, seq):
                    seq += 1
                # New rows must be visible to session.get() for repeated ids.
                session.flush()

        self._write(op, "save transactions")

    def get_all_transactions(self) -> list[TransactionRecord]:
        return self._query()

    def get_transaction(self, transaction_id: str) -> TransactionRecord | None:
        def op(session: Session) -> TransactionRecord | None:
            row = session.get(RsTransaction, transaction_id)
            return _to_record(row) if row is not None else None

        return self._read(op)

    def transaction_exists(self, transaction_id: str) -> bool:
        return self.get_transaction(transaction_id) is not None

    # ---- queries ------------------------------------------------------------

    def get_transactions_for_shift(self, shift_id: str) -> list[TransactionRecord]:
        return self._query(RsTransaction.shift_id == shift_id)

    def get_orphaned_transactions(
        self,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[TransactionRecord]:
        """Transactions without a shift.

        With ``start``/``end`` only orphans whose activity date lies in
        ``[start, end)`` are returned; orphans without an activity date are
        then excluded.
        """

        criteria = [RsTransaction.shift_id.is_(None)]
        if start is not None or end is not None:
            criteria.append(RsTransaction.event_date.is_not(None))
        if start is not None:
            criteria.append(RsTransaction.event_date >= start)
        if end is not None:
            criteria.append(RsTransaction.event_date < end)
        return self._query(*criteria)

    def get_transactions_for_statement_period(self, period: str) -> list[TransactionRecord]:
        return self._query(RsTransaction.statement_period == period)

    def get_all_statement_periods(self) -> list[str]:
        """Distinct statement periods, in the order they were first stored."""

        stmt = (
            select(RsTransaction.statement_period)
            .group_by(RsTransaction.statement_period)
            .order_by(func.min(RsTransaction.seq))
        )
        return self._read(lambda s: list(s.scalars(stmt)))

    def has_statement_period(self, period: str) -> bool:
        stmt = select(RsTransaction.id).where(RsTransaction.statement_period == period).limit(1)
        return self._read(lambda s: s.execute(stmt).first() is not None)

    def get_affected_shift_ids(self, period: str) -> set[str]:
        """Shift ids holding at least one transaction of ``period``."""

        stmt = (
            select(RsTransaction.shift_id)
            .where(RsTransaction.statement_period == period, RsTransaction.shift_id.is_not(None))
            .distinct()
        )
        return self._read(lambda s: set(s.scalars(stmt)))

    # ---- duplicates ---------------------------------------------------------

    def find_duplicate(self, tx: TransactionRecord) -> TransactionRecord | None:
        """First stored record with the same content as ``tx`` (ids may differ)."""

        stmt = (
            select(RsTransaction)
            .where(
                RsTransaction.transaction_date == tx.transaction_date,
                RsTransaction.event_type == tx.event_type,
                func.abs(RsTransaction.amount - tx.amount) < AMOUNT_EPSILON,
            )
            .order_by(RsTransaction.seq)
            .limit(1)
        )

        def op(session: Session) -> TransactionRecord | None:
            row = session.scalars(stmt).first()
            return _to_record(row) if row is not None else None

        return self._read(op)

    def save_transaction_if_not_duplicate(self, tx: TransactionRecord) -> bool:
        """Save ``tx`` unless a content duplicate exists.

        A duplicate picks up ``tx.shift_id`` when that is set and differs.
        Returns ``True`` when something was written.
        """

        with self._lock:
            existing = self.find_duplicate(tx)
            if existing is None:
                self.save_transaction(tx)
                return True
            if tx.shift_id is not None and existing.shift_id != tx.shift_id:
                self.save_transaction(existing.with_updates(shift_id=tx.shift_id))
                return True
            return False

    # ---- statement periods --------------------------------------------------

    def replace_statement_period(
        self,
        period: str,
        transactions: Iterable[TransactionRecord],
    ) -> None:
        """Atomically drop every record of ``period`` and store ``transactions``."""

        items = list(transactions)

        def op(session: Session) -> None:
            removed = session.execute(
                delete(RsTransaction).where(RsTransaction.statement_period == period)
            ).rowcount
            seq = _next_seq(session)
            for tx in items:
                if _upsert(session, tx, seq):
                    seq += 1
                session.flush()
            _logger.info(
                "Replaced statement period %r: removed %d, stored %d", period, removed, len(items)
            )

        self._write(op, f"replace statement period {period!r}")

    # ---- orphaning ----------------------------------------------------------

    def orphan_transactions_for_shift(self, shift_id: str) -> int:
        return self.orphan_transactions_for_shifts({shift_id})

    def orphan_transactions_for_shifts(self, shift_ids: Iterable[str]) -> int:
        """Clear the shift link of every transaction assigned to ``shift_ids``."""

        ids = list(set(shift_ids))
        if not ids:
            return 0
        stmt = (
            update(RsTransaction)
            .where(RsTransaction.shift_id.in_(ids))
            .values(shift_id=None, updated_at=func.now())
        )
        return self._write(lambda s: s.execute(stmt).rowcount, "orphan transactions")

    # ---- batch operations (worker thread) -----------------------------------

    def assign_transactions(self, transaction_ids: Iterable[str], shift_id: str) -> Future[int]:
        ids = list(transaction_ids)

        def op(session: Session) -> int:
            if not ids:
                return 0
            stmt = (
                update(RsTransaction)
                .where(RsTransaction.id.in_(ids))
                .values(shift_id=shift_id, updated_at=func.now())
            )
            return session.execute(stmt).rowcount

        return self._submit(op, f"assign transactions to shift {shift_id}")

    def delete_transactions(self, transaction_ids: Iterable[str]) -> Future[int]:
        ids = list(transaction_ids)

        def op(session: Session) -> int:
            if not ids:
                return 0
            return session.execute(delete(RsTransaction).where(RsTransaction.id.in_(ids))).rowcount

        return self._submit(op, "delete transactions")

    def delete_transactions_where(
        self,
        predicate: Callable[[TransactionRecord], bool],
    ) -> Future[int]:
        """Delete every record for which ``predicate`` returns true."""

        def op(session: Session) -> int:
            rows = session.scalars(select(RsTransaction))
            doomed = [row.id for row in rows if predicate(_to_record(row))]
            if not doomed:
                return 0
            return session.execute(
                delete(RsTransaction).where(RsTransaction.id.in_(doomed))
            ).rowcount

        return self._submit(op, "delete matching transactions")

    def clear_all_transactions(self) -> int:
        removed = self._write(
            lambda s: s.execute(delete(RsTransaction)).rowcount, "clear transactions"
        )
        _logger.info("Cleared %d stored transaction(s)", removed)
        return removed


__all__ = ["AMOUNT_EPSILON", "TransactionStore"]
