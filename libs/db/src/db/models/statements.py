from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    false,
    func,
    text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


# ---------------------------
# Core: rs_transactions
# ---------------------------


class RsTransaction(Base):
    __tablename__ = "rs_transactions"

    # UUID rendered as a 36-char string so SQLite and Postgres behave the same.
    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    # Insertion order of the flat collection. Updates keep the original value;
    # a statement-period replacement appends the new rows at the end.
    seq: Mapped[int] = mapped_column(Integer, nullable=False)
    # When the platform processed the transaction.
    transaction_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    # When the underlying trip/delivery happened, when the statement says so.
    event_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    event_type: Mapped[str] = mapped_column(Text, nullable=False, server_default=text("''"))
    amount: Mapped[float] = mapped_column(
        Numeric(18, 2, asdecimal=False), nullable=False, server_default=text("0")
    )
    tolls_reimbursed: Mapped[float | None] = mapped_column(
        Numeric(18, 2, asdecimal=False), nullable=True
    )
    # Display string of the statement period; partition key for replacement.
    statement_period: Mapped[str] = mapped_column(String, nullable=False)
    # NULL means orphaned (no shift assigned yet).
    shift_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    import_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    needs_manual_verification: Mapped[bool] = mapped_column(
        Boolean, nullable=False, server_default=false()
    )
    source_row: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (
        CheckConstraint(
            "tolls_reimbursed IS NULL OR tolls_reimbursed >= 0",
            name="ck_rs_tx_tolls_non_negative",
        ),
        Index("ix_rs_tx_statement_period", "statement_period"),
        Index("ix_rs_tx_shift_id", "shift_id"),
        # Content-based duplicate lookup (date + event type, amount compared in SQL).
        Index("ix_rs_tx_date_event_type", "transaction_date", "event_type"),
        Index("uq_rs_tx_seq", "seq", unique=True),
    )


__all__ = [
    "Base",
    "RsTransaction",
]
