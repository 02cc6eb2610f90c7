"""Field classification and amount disambiguation for one transaction cluster.

Every text fragment is classified exactly once by :func:`classify_text` into a
:class:`TextKind`, in a fixed precedence order, so two patterns can never both
claim a fragment. :func:`parse_transaction_cluster` then walks the fragments
in reading order and assembles a :class:`TransactionRecord`.

Statement columns
-----------------
- five columns:  Processed | Event | Your earnings | Payouts | Balance
- six columns:   Processed | Event | Your earnings | Refunds & Expenses |
  Payouts | Balance

The last amount printed on a transaction's first line is always the running
balance; which of the remaining amounts is the earnings depends on the layout
and, for a few special rows, on the event type (see :func:`resolve_amounts`).
"""

from __future__ import annotations

import hashlib
import json
import re
import uuid
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import NamedTuple

from .dates import build_datetime
from .logging_setup import get_logger
from .models import (
    ColumnLayout,
    ParseWarning,
    PositionedTextElement,
    Row,
    StatementPeriod,
    TransactionRecord,
    WarningKind,
)
from .rows import group_into_rows
from .segmenter import ANCHOR_DATE_RE, PAGE_NUMBER_RE
from .settings import ROW_Y_TOLERANCE, AmountPolicy

_logger = get_logger("rideshare_statements.classifier")

_AMOUNT = r"[-+]?\$\d[\d,]*\.\d+"
_AMOUNT_RE = re.compile(_AMOUNT)
_STANDALONE_AMOUNTS_RE = re.compile(rf"^(?:{_AMOUNT}\s*)+$")
_TRAILING_AMOUNTS_RE = re.compile(rf"(?:\s*{_AMOUNT})+$")
_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})\s*(AM|PM)$")
# "Aug 24 4:45 PM": when the trip or delivery actually happened.
_ACTIVITY_RE = re.compile(r"^([A-Za-z]+)\s+(\d{1,2})\s+(\d{1,2}):(\d{2})\s*(AM|PM)$")


class TextKind(Enum):
    PROCESSING_DATE = "processing_date"
    PROCESSING_TIME = "processing_time"
    ACTIVITY_DATETIME = "activity_datetime"
    STANDALONE_AMOUNTS = "standalone_amounts"
    TRAILING_AMOUNTS = "trailing_amounts"
    FREE_TEXT = "free_text"


@dataclass(frozen=True, slots=True)
class ClassifiedText:
    kind: TextKind
    text: str
    # Regex groups for the date/time kinds.
    parts: tuple[str, ...] = ()
    # Currency values for the amount kinds, in printed order.
    amounts: tuple[float, ...] = ()
    # Text left after stripping trailing amounts.
    remainder: str = ""


def _parse_amounts(text: str) -> tuple[float, ...]:
    return tuple(float(tok.replace("$", "").replace(",", "")) for tok in _AMOUNT_RE.findall(text))


def classify_text(text: str) -> ClassifiedText:
    """Classify one fragment. Precedence: date, time, activity, amounts, text."""

    s = text.strip()
    if m := ANCHOR_DATE_RE.match(s):
        return ClassifiedText(TextKind.PROCESSING_DATE, s, parts=m.groups())
    if m := _TIME_RE.match(s):
        return ClassifiedText(TextKind.PROCESSING_TIME, s, parts=m.groups())
    if m := _ACTIVITY_RE.match(s):
        return ClassifiedText(TextKind.ACTIVITY_DATETIME, s, parts=m.groups())
    if _STANDALONE_AMOUNTS_RE.match(s):
        return ClassifiedText(TextKind.STANDALONE_AMOUNTS, s, amounts=_parse_amounts(s))
    if m := _TRAILING_AMOUNTS_RE.search(s):
        return ClassifiedText(
            TextKind.TRAILING_AMOUNTS,
            s,
            amounts=_parse_amounts(m.group(0)),
            remainder=s[: m.start()].strip(),
        )
    return ClassifiedText(TextKind.FREE_TEXT, s)


# ---------------------------------------------------------------------------
# Amount disambiguation
# ---------------------------------------------------------------------------


class AmountRule(Enum):
    EMPTY = "empty"
    BANK_TRANSFER = "bank_transfer"
    ACCOUNT_VALIDATION = "account_validation"
    SIX_COLUMN_TOLL = "six_column_toll"
    SIX_COLUMN_EQUAL_COLLAPSED = "six_column_equal_collapsed"
    SIX_COLUMN_PAIR = "six_column_pair"
    FIVE_COLUMN = "five_column"
    FALLBACK = "fallback"


class AmountResolution(NamedTuple):
    amount: float
    tolls_reimbursed: float | None
    rule: AmountRule


def resolve_amounts(
    amounts: Sequence[float],
    event_type: str,
    layout: ColumnLayout,
    policy: AmountPolicy | None = None,
) -> AmountResolution:
    """Decide which captured amount is the earnings and which (if any) the toll."""

    policy = policy or AmountPolicy()
    if not amounts:
        return AmountResolution(0.0, None, AmountRule.EMPTY)

    lowered = event_type.lower()
    # Payout rows: the amount sits right before the balance.
    if "transferred to bank" in lowered:
        value = amounts[-2] if len(amounts) >= 2 else amounts[-1]
        return AmountResolution(value, None, AmountRule.BANK_TRANSFER)
    # Validation deposits live in the Refunds & Expenses column, before the balance.
    if "account validation" in lowered:
        value = amounts[-2] if len(amounts) >= 2 else amounts[-1]
        return AmountResolution(value, None, AmountRule.ACCOUNT_VALIDATION)

    if layout is ColumnLayout.SIX_COLUMN:
        if len(amounts) >= 3:
            earnings, toll = amounts[-3], amounts[-2]
            if policy.collapse_equal_toll and earnings == toll:
                return AmountResolution(earnings, None, AmountRule.SIX_COLUMN_EQUAL_COLLAPSED)
            toll_value = toll if toll > 0 else None
            return AmountResolution(earnings, toll_value, AmountRule.SIX_COLUMN_TOLL)
        if len(amounts) == 2:
            return AmountResolution(amounts[0], None, AmountRule.SIX_COLUMN_PAIR)
    elif len(amounts) >= 2:
        return AmountResolution(amounts[-2], None, AmountRule.FIVE_COLUMN)

    return AmountResolution(amounts[0], None, AmountRule.FALLBACK)


def disambiguate_amounts(
    amounts: Sequence[float],
    event_type: str,
    layout: ColumnLayout,
    policy: AmountPolicy | None = None,
) -> tuple[float, float | None]:
    """Return ``(earnings, tolls_reimbursed)``; see :func:`resolve_amounts`."""

    amount, toll, _rule = resolve_amounts(amounts, event_type, layout, policy)
    return amount, toll


# ---------------------------------------------------------------------------
# Record identity
# ---------------------------------------------------------------------------


def compute_record_id(
    *,
    page: int,
    source_row: int,
    transaction_date: datetime,
    event_type: str,
) -> str:
    """Derive a stable UUID from a SHA-256 fingerprint of the row's identity.

    Parsing the same statement twice yields the same ids, which keeps output
    byte-identical across runs.
    """

    payload = {
        "page": page,
        "row": source_row,
        "processed": transaction_date.isoformat(),
        "event_type": event_type,
    }
    data = json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    digest = hashlib.sha256(data.encode("utf-8")).hexdigest()
    return str(uuid.UUID(digest[:32]))


# ---------------------------------------------------------------------------
# Cluster parsing
# ---------------------------------------------------------------------------


class ClusterResult(NamedTuple):
    record: TransactionRecord | None
    warnings: list[ParseWarning]


def _reading_order(cluster: Sequence[Row], tolerance: float) -> list[Row]:
    elements: list[PositionedTextElement] = [e for row in cluster for e in row.elements]
    bands = group_into_rows(elements, tolerance=tolerance)
    # Drop page-footer lines ("Page 1 of 3") that slipped into the cluster.
    return [b for b in bands if not any(PAGE_NUMBER_RE.search(e.text) for e in b.elements)]


def parse_transaction_cluster(
    cluster: Sequence[Row],
    layout: ColumnLayout,
    *,
    period: StatementPeriod | None = None,
    policy: AmountPolicy | None = None,
    import_date: datetime | None = None,
    statement_period: str | None = None,
    page: int = 1,
    source_row: int = 0,
    tolerance: float = ROW_Y_TOLERANCE,
) -> ClusterResult:
    """Turn one transaction's rows into a record.

    Returns ``ClusterResult(None, [warning])`` when no processing date and
    time can be assembled; the transaction is dropped, never fabricated.
    """

    import_date = import_date or datetime.now()
    fallback_year = import_date.year
    warnings: list[ParseWarning] = []

    date_part: ClassifiedText | None = None
    time_part: ClassifiedText | None = None
    event_date: datetime | None = None
    found_event = False
    event_type_parts: list[str] = []
    amounts: list[float] = []
    # Pure-amount fragments below line two of a transaction whose first line
    # held no description ("Sat, Aug 9" / time / "UberX" / amounts). Used only
    # when line one had no amounts either.
    late_amounts: list[float] = []
    line_one_described = False

    def add_text(text: str, line_no: int) -> None:
        nonlocal line_one_described
        event_type_parts.append(text)
        if line_no == 0:
            line_one_described = True

    for line_no, band in enumerate(_reading_order(cluster, tolerance)):
        for el in band.elements:
            c = classify_text(el.text)
            match c.kind:
                case TextKind.PROCESSING_DATE:
                    if date_part is None:
                        date_part = c
                case TextKind.PROCESSING_TIME:
                    if time_part is None:
                        time_part = c
                case TextKind.ACTIVITY_DATETIME:
                    month, day, hour, minute, meridiem = c.parts
                    event_date = build_datetime(
                        month,
                        int(day),
                        int(hour),
                        int(minute),
                        meridiem,
                        period=period,
                        fallback_year=fallback_year,
                    )
                    found_event = True
                case TextKind.STANDALONE_AMOUNTS:
                    if line_no == 1:
                        # running balance
                        continue
                    if line_no == 0 and not found_event:
                        amounts.extend(c.amounts)
                    elif line_no >= 2 and not found_event and not line_one_described:
                        late_amounts.extend(c.amounts)
                    else:
                        add_text(c.text, line_no)
                case TextKind.TRAILING_AMOUNTS:
                    if line_no == 0 and not found_event:
                        amounts.extend(c.amounts)
                        if c.remainder:
                            add_text(c.remainder, line_no)
                    elif line_no == 1:
                        if c.remainder:
                            add_text(c.remainder, line_no)
                    else:
                        add_text(c.text, line_no)
                case TextKind.FREE_TEXT:
                    add_text(c.text, line_no)

    transaction_date: datetime | None = None
    if date_part is not None and time_part is not None:
        _month, _day = date_part.parts
        hour, minute, meridiem = time_part.parts
        transaction_date = build_datetime(
            _month,
            int(_day),
            int(hour),
            int(minute),
            meridiem,
            period=period,
            fallback_year=fallback_year,
        )

    if transaction_date is None:
        first_text = cluster[0].text if cluster else ""
        warnings.append(
            ParseWarning(
                WarningKind.ROW_UNPARSEABLE,
                f"no valid processing date/time in transaction starting {first_text!r}",
                page=page,
                row=source_row,
            )
        )
        return ClusterResult(None, warnings)

    if not amounts and late_amounts:
        amounts = late_amounts

    event_type = " ".join(event_type_parts).strip()
    amount, toll, rule = resolve_amounts(amounts, event_type, layout, policy)
    if rule is AmountRule.SIX_COLUMN_EQUAL_COLLAPSED:
        warnings.append(
            ParseWarning(
                WarningKind.EQUAL_TOLL_COLLAPSED,
                f"{event_type!r}: earnings equal toll ({amount:.2f}); reporting no toll",
                page=page,
                row=source_row,
            )
        )
    elif rule is AmountRule.FALLBACK:
        warnings.append(
            ParseWarning(
                WarningKind.AMOUNT_FALLBACK,
                f"{event_type!r}: only {len(amounts)} amount(s) for {layout.value}; "
                f"using {amount:.2f}",
                page=page,
                row=source_row,
            )
        )

    record = TransactionRecord(
        id=compute_record_id(
            page=page,
            source_row=source_row,
            transaction_date=transaction_date,
            event_type=event_type,
        ),
        transaction_date=transaction_date,
        event_date=event_date,
        event_type=event_type,
        amount=amount,
        tolls_reimbursed=toll,
        statement_period=statement_period if statement_period is not None else "",
        import_date=import_date,
        # Without the activity time, shift matching falls back to the processing
        # time, which can lag by hours (tips especially).
        needs_manual_verification=event_date is None,
        source_row=source_row,
    )
    for w in warnings:
        _logger.warning("%s", w)
    return ClusterResult(record, warnings)


__all__ = [
    "TextKind",
    "ClassifiedText",
    "classify_text",
    "AmountRule",
    "AmountResolution",
    "resolve_amounts",
    "disambiguate_amounts",
    "compute_record_id",
    "ClusterResult",
    "parse_transaction_cluster",
]
