"""Transaction segmentation over reconstructed page rows.

Scanning is an explicit finite-state machine. :func:`transition` looks at one
row and the current :class:`SegmenterState` and returns the next state plus a
:class:`SegmentAction`; :func:`segment_transactions` applies the actions to
build one row cluster per transaction.

States
------
- ``BEFORE``: above the transaction table; rows are skipped.
- ``IN_HEADER``: the header row ("Processed", "Event", ...) has been seen but
  no transaction has started yet.
- ``IN_TRANSACTION``: collecting rows for the current transaction.
- ``DONE``: a footer (page number or signature) closed the table.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum

from .logging_setup import get_logger
from .models import ColumnLayout, Row
from .settings import LEFT_MARGIN, MAX_TRANSACTION_ROWS

_logger = get_logger("rideshare_statements.segmenter")

# "Sat, Aug 9"; kerning sometimes splits "Tue" into "T ue".
ANCHOR_DATE_RE = re.compile(
    r"^(?:Mon|Tue|Wed|Thu|Fri|Sat|Sun|T\s+ue),\s+([A-Za-z]+)\s+(\d{1,2})$"
)
PAGE_NUMBER_RE = re.compile(r"(?:\bPage\s+\d+\s+of\s+\d+\b|^\d+\s+of\s+\d+$)", re.IGNORECASE)

_REFUNDS_MARKERS = ("Refunds & Expenses", "Refunds &amp; Expenses")


class SegmenterState(Enum):
    BEFORE = "before"
    IN_HEADER = "in_header"
    IN_TRANSACTION = "in_transaction"
    DONE = "done"


class SegmentAction(Enum):
    SKIP = "skip"  # ignore the row
    START = "start"  # flush any pending cluster, open a new one with this row
    APPEND = "append"  # add the row to the pending cluster
    FLUSH = "flush"  # flush the pending cluster; the row itself is dropped


@dataclass(frozen=True, slots=True)
class SegmentRules:
    left_margin: float = LEFT_MARGIN
    max_rows: int = MAX_TRANSACTION_ROWS
    footer_signature: str | None = None


# ---------------------------------------------------------------------------
# Row predicates
# ---------------------------------------------------------------------------


def is_header_row(row: Row) -> bool:
    text = row.text
    return "Processed" in text and "Event" in text


def is_footer_row(row: Row, rules: SegmentRules) -> bool:
    text = row.text
    if rules.footer_signature and rules.footer_signature in text:
        return True
    return any(PAGE_NUMBER_RE.search(e.text) for e in row.elements)


def is_anchor_row(row: Row, rules: SegmentRules) -> bool:
    """A row opens a transaction when its leftmost fragment is a weekday date
    sitting left of the date column's edge."""

    first = row.leftmost
    if first is None or first.x >= rules.left_margin:
        return False
    return ANCHOR_DATE_RE.match(first.text) is not None


def detect_column_layout(header_text: str) -> ColumnLayout:
    if any(marker in header_text for marker in _REFUNDS_MARKERS):
        return ColumnLayout.SIX_COLUMN
    return ColumnLayout.FIVE_COLUMN


def detect_layout_from_rows(rows: Sequence[Row]) -> ColumnLayout:
    """Detect the layout from the first header row; five columns when absent."""

    for row in rows:
        if is_header_row(row):
            return detect_column_layout(row.text)
    return ColumnLayout.FIVE_COLUMN


# ---------------------------------------------------------------------------
# State machine
# ---------------------------------------------------------------------------


def transition(
    state: SegmenterState,
    row: Row,
    rules: SegmentRules,
    *,
    pending_rows: int = 0,
) -> tuple[SegmenterState, SegmentAction]:
    """Return ``(next_state, action)`` for ``row`` seen in ``state``.

    ``pending_rows`` is the size of the cluster being collected; once it
    reaches ``rules.max_rows`` further non-anchor rows are skipped.
    """

    if state is SegmenterState.DONE or not row.elements:
        return state, SegmentAction.SKIP

    if is_header_row(row):
        # A repeated header mid-table closes the pending transaction.
        if state is SegmenterState.IN_TRANSACTION:
            return SegmenterState.IN_HEADER, SegmentAction.FLUSH
        return SegmenterState.IN_HEADER, SegmentAction.SKIP

    if state is SegmenterState.BEFORE:
        return state, SegmentAction.SKIP

    if is_footer_row(row, rules):
        return SegmenterState.DONE, SegmentAction.FLUSH

    if is_anchor_row(row, rules):
        return SegmenterState.IN_TRANSACTION, SegmentAction.START

    if state is SegmenterState.IN_TRANSACTION and pending_rows < rules.max_rows:
        return state, SegmentAction.APPEND

    return state, SegmentAction.SKIP


def segment_transactions(
    rows: Sequence[Row],
    rules: SegmentRules | None = None,
) -> list[list[Row]]:
    """Split a page's ordered rows into one row cluster per transaction.

    Continuation pages sometimes omit the table header; a page without any
    header row is scanned as if the header preceded its first row.
    """

    rules = rules or SegmentRules()
    clusters: list[list[Row]] = []
    pending: list[Row] = []
    has_header = any(is_header_row(r) for r in rows)
    state = SegmenterState.BEFORE if has_header else SegmenterState.IN_HEADER

    def _flush() -> None:
        if pending:
            clusters.append(list(pending))
            pending.clear()

    for row in rows:
        state, action = transition(state, row, rules, pending_rows=len(pending))
        if action is SegmentAction.START:
            _flush()
            pending.append(row)
        elif action is SegmentAction.APPEND:
            pending.append(row)
        elif action is SegmentAction.FLUSH:
            _flush()
        elif state is SegmenterState.IN_TRANSACTION and len(pending) >= rules.max_rows:
            _logger.debug("Row cap reached; skipping row %r", row.text)

    _flush()
    return clusters


__all__ = [
    "ANCHOR_DATE_RE",
    "PAGE_NUMBER_RE",
    "SegmenterState",
    "SegmentAction",
    "SegmentRules",
    "is_header_row",
    "is_footer_row",
    "is_anchor_row",
    "detect_column_layout",
    "detect_layout_from_rows",
    "transition",
    "segment_transactions",
]
