"""Data models for ``rideshare_statements``.

Domain values are frozen dataclasses; pipeline stages produce updated copies
(``dataclasses.replace``) instead of mutating records in place. The pydantic
models at the bottom are I/O DTOs for JSON files read and written by the CLI.

All timestamps are naive local wall-clock datetimes: the settlement rules
(04:00 cutoffs) are defined in the driver's local time.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum, StrEnum
from typing import Any, NamedTuple

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

# ---------------------------------------------------------------------------
# Page geometry
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class PositionedTextElement:
    """One text fragment on a page.

    Coordinates are page-relative with the origin at the bottom-left corner,
    so a larger ``y`` is higher on the page.
    """

    text: str
    x: float
    y: float


@dataclass(frozen=True, slots=True)
class Row:
    """Elements sharing one Y band, ordered left to right.

    ``y`` is the band's anchor: the Y of the element that opened the row.
    """

    y: float
    elements: tuple[PositionedTextElement, ...]

    @property
    def text(self) -> str:
        return " ".join(e.text for e in self.elements)

    @property
    def leftmost(self) -> PositionedTextElement | None:
        return self.elements[0] if self.elements else None


class ColumnLayout(Enum):
    """Shape of the weekly earnings table."""

    FIVE_COLUMN = "five_column"  # Processed | Event | Your earnings | Payouts | Balance
    SIX_COLUMN = "six_column"  # adds "Refunds & Expenses" before Payouts


@dataclass(frozen=True, slots=True)
class StatementPeriod:
    """Statement period printed on page one; both bounds sit at 04:00."""

    start_date: datetime
    end_date: datetime
    display: str


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class TransactionRecord:
    """A single parsed statement transaction.

    ``transaction_date`` is when the platform processed the row;
    ``event_date`` is when the underlying trip or delivery happened, when the
    statement prints it. ``shift_id`` of ``None`` means the transaction is an
    orphan. ``amount`` stays ``0.0`` until the amount columns are resolved.
    """

    id: str
    transaction_date: datetime
    event_type: str
    amount: float = 0.0
    event_date: datetime | None = None
    tolls_reimbursed: float | None = None
    statement_period: str = ""
    shift_id: str | None = None
    import_date: datetime = field(default_factory=datetime.now)
    needs_manual_verification: bool = False
    # Index of the anchor row on its page, kept for debugging extraction issues.
    source_row: int = 0

    @property
    def effective_date(self) -> datetime:
        """Activity time when known, else processing time."""

        return self.event_date if self.event_date is not None else self.transaction_date

    def with_updates(self, **changes: Any) -> TransactionRecord:
        return replace(self, **changes)


class TransactionCategory(Enum):
    TIP = "tip"
    PROMOTION = "promotion"  # Quest, Incentive
    NET_FARE = "net_fare"  # ride and delivery earnings
    IGNORE = "ignore"  # bank transfers


@dataclass(frozen=True, slots=True)
class TransactionTotals:
    tips: float = 0.0
    tolls_reimbursed: float = 0.0
    promotions: float = 0.0
    net_fare: float = 0.0
    count: int = 0


# ---------------------------------------------------------------------------
# Shifts (owned by an external repository; read-only here)
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Shift:
    id: str
    start_date: datetime
    # Open shifts have no end and can never be matched.
    end_date: datetime | None = None


class ShiftMatch(NamedTuple):
    shift: Shift
    transaction: TransactionRecord


class MatchResult(NamedTuple):
    matched: list[ShiftMatch]
    unmatched: list[TransactionRecord]


# ---------------------------------------------------------------------------
# Advisory parse diagnostics
# ---------------------------------------------------------------------------


class WarningKind(StrEnum):
    PERIOD_MISSING = "period_missing"
    PAGE_UNEXTRACTABLE = "page_unextractable"
    ROW_UNPARSEABLE = "row_unparseable"
    AMOUNT_FALLBACK = "amount_fallback"
    EQUAL_TOLL_COLLAPSED = "equal_toll_collapsed"
    ORPHAN_DROPPED = "orphan_dropped"


@dataclass(frozen=True, slots=True)
class ParseWarning:
    """A non-fatal problem met while parsing; consumed by validation tooling."""

    kind: WarningKind
    message: str
    page: int | None = None
    row: int | None = None

    def __str__(self) -> str:
        where = []
        if self.page is not None:
            where.append(f"page {self.page}")
        if self.row is not None:
            where.append(f"row {self.row}")
        prefix = f"[{', '.join(where)}] " if where else ""
        return f"{prefix}{self.kind}: {self.message}"


# ---------------------------------------------------------------------------
# DTOs for JSON I/O
# ---------------------------------------------------------------------------


class ShiftIn(BaseModel):
    """One shift as exported by the shift-tracking app."""

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    id: str
    start_date: datetime
    end_date: datetime | None = None

    @field_validator("id")
    @classmethod
    def _id_non_empty(cls, v: str) -> str:
        if not v:
            raise ValueError("shift id must be non-empty")
        return v

    @model_validator(mode="after")
    def _end_after_start(self) -> ShiftIn:
        if self.end_date is not None and self.end_date < self.start_date:
            raise ValueError("shift end_date precedes start_date")
        return self

    def to_shift(self) -> Shift:
        # Drop any tzinfo; matching works on local wall-clock time.
        end = self.end_date.replace(tzinfo=None) if self.end_date is not None else None
        return Shift(id=self.id, start_date=self.start_date.replace(tzinfo=None), end_date=end)


class ShiftFile(BaseModel):
    model_config = ConfigDict(extra="forbid")

    shifts: list[ShiftIn]


class TransactionOut(BaseModel):
    """JSON rendering of a :class:`TransactionRecord`."""

    model_config = ConfigDict(extra="forbid")

    id: str
    transaction_date: datetime
    event_date: datetime | None
    event_type: str
    amount: float
    tolls_reimbursed: float | None
    statement_period: str
    shift_id: str | None
    import_date: datetime
    needs_manual_verification: bool
    source_row: int

    @classmethod
    def from_record(cls, tx: TransactionRecord) -> TransactionOut:
        return cls(
            id=tx.id,
            transaction_date=tx.transaction_date,
            event_date=tx.event_date,
            event_type=tx.event_type,
            amount=tx.amount,
            tolls_reimbursed=tx.tolls_reimbursed,
            statement_period=tx.statement_period,
            shift_id=tx.shift_id,
            import_date=tx.import_date,
            needs_manual_verification=tx.needs_manual_verification,
            source_row=tx.source_row,
        )


__all__ = [
    "PositionedTextElement",
    "Row",
    "ColumnLayout",
    "StatementPeriod",
    "TransactionRecord",
    "TransactionCategory",
    "TransactionTotals",
    "Shift",
    "ShiftMatch",
    "MatchResult",
    "WarningKind",
    "ParseWarning",
    "ShiftIn",
    "ShiftFile",
    "TransactionOut",
]
