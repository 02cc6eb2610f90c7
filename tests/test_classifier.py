from __future__ import annotations

from datetime import datetime

import pytest

from rideshare_statements.classifier import (
    AmountRule,
    TextKind,
    classify_text,
    disambiguate_amounts,
    parse_transaction_cluster,
    resolve_amounts,
)
from rideshare_statements.dates import parse_statement_period
from rideshare_statements.models import ColumnLayout, WarningKind
from rideshare_statements.rows import group_into_rows
from rideshare_statements.settings import AmountPolicy
from tests.helpers.pages import PERIOD_TEXT, el, transaction

PERIOD = parse_statement_period(PERIOD_TEXT)
IMPORTED = datetime(2025, 8, 12, 9, 30)


def _parse(elements, layout=ColumnLayout.FIVE_COLUMN, **kwargs):
    kwargs.setdefault("period", PERIOD)
    kwargs.setdefault("import_date", IMPORTED)
    return parse_transaction_cluster(group_into_rows(elements), layout, **kwargs)


def _tip(date: str, time: str, amount: str, balance: str):
    return transaction(680.0, date=date, time=time, event="Tip", amounts=[amount, balance])


# ---- classify_text ----------------------------------------------------------


@pytest.mark.parametrize(
    ("text", "kind"),
    [
        ("Sat, Aug 9", TextKind.PROCESSING_DATE),
        ("T ue, Aug 5", TextKind.PROCESSING_DATE),
        ("12:24 AM", TextKind.PROCESSING_TIME),
        ("Aug 9 12:10 AM", TextKind.ACTIVITY_DATETIME),
        ("$21.55 $448.32", TextKind.STANDALONE_AMOUNTS),
        ("UberX $21.55", TextKind.TRAILING_AMOUNTS),
        ("UberX Priority", TextKind.FREE_TEXT),
    ],
)
def test_classify_text_kinds(text, kind):
    assert classify_text(text).kind is kind


def test_classify_text_payloads():
    standalone = classify_text("$1,234.50 -$5.00")
    assert standalone.amounts == (1234.5, -5.0)

    trailing = classify_text("Transferred to bank account -$448.32 $0.00")
    assert trailing.remainder == "Transferred to bank account"
    assert trailing.amounts == (-448.32, 0.0)

    activity = classify_text("Aug 24 4:45 PM")
    assert activity.parts == ("Aug", "24", "4", "45", "PM")


# ---- amount disambiguation ---------------------------------------------------


def test_five_column_takes_second_to_last():
    assert disambiguate_amounts([21.55, 448.32], "UberX", ColumnLayout.FIVE_COLUMN) == (21.55, None)
    assert disambiguate_amounts([4.0, 0.0, 9.0], "UberX", ColumnLayout.FIVE_COLUMN) == (0.0, None)


def test_six_column_earnings_and_toll():
    assert disambiguate_amounts([15.25, 6.75, 430.10], "UberX", ColumnLayout.SIX_COLUMN) == (
        15.25,
        6.75,
    )


def test_six_column_zero_toll_is_none():
    assert disambiguate_amounts([15.25, 0.0, 430.10], "UberX", ColumnLayout.SIX_COLUMN) == (
        15.25,
        None,
    )


def test_six_column_equal_values_collapse_unless_disabled():
    collapsed = resolve_amounts([6.75, 6.75, 430.10], "UberX", ColumnLayout.SIX_COLUMN)
    assert collapsed == (6.75, None, AmountRule.SIX_COLUMN_EQUAL_COLLAPSED)

    kept = disambiguate_amounts(
        [6.75, 6.75, 430.10],
        "UberX",
        ColumnLayout.SIX_COLUMN,
        AmountPolicy(collapse_equal_toll=False),
    )
    assert kept == (6.75, 6.75)


def test_six_column_pair_takes_first():
    assert disambiguate_amounts([3.0, 433.10], "Tip", ColumnLayout.SIX_COLUMN) == (3.0, None)


@pytest.mark.parametrize("layout", list(ColumnLayout))
def test_special_event_types_take_second_to_last(layout):
    bank = disambiguate_amounts([-448.32, 0.0], "Transferred To Bank Account", layout)
    assert bank == (-448.32, None)
    validation = disambiguate_amounts([0.01, 0.01, 100.0], "Account validation", layout)
    assert validation == (0.01, None)


def test_fallbacks():
    assert resolve_amounts([], "UberX", ColumnLayout.FIVE_COLUMN) == (0.0, None, AmountRule.EMPTY)
    assert resolve_amounts([7.5], "UberX", ColumnLayout.FIVE_COLUMN) == (
        7.5,
        None,
        AmountRule.FALLBACK,
    )


# ---- cluster parsing ---------------------------------------------------------


def test_parses_two_line_transaction_with_activity_time():
    result = _parse(
        transaction(
            680.0,
            date="Sat, Aug 9",
            time="12:24 AM",
            event="UberX",
            amounts=["$21.55", "$448.32"],
            activity="Aug 9 12:10 AM",
        ),
        statement_period=PERIOD.display,
        page=2,
        source_row=7,
    )

    tx = result.record
    assert result.warnings == []
    assert tx is not None
    assert tx.transaction_date == datetime(2025, 8, 9, 0, 24)
    assert tx.event_date == datetime(2025, 8, 9, 0, 10)
    assert tx.event_type == "UberX"
    assert tx.amount == 21.55
    assert tx.tolls_reimbursed is None
    assert tx.statement_period == "Aug 4, 2025 - Aug 11, 2025"
    assert tx.import_date == IMPORTED
    assert tx.source_row == 7
    assert tx.needs_manual_verification is False


def test_amounts_on_separate_rows_below_the_event_type():
    elements = [
        el("Sat, Aug 9", 20.0, 700.0),
        el("12:24 AM", 20.0, 680.0),
        el("UberX", 120.0, 660.0),
        el("$21.55 $448.32", 330.0, 640.0),
    ]

    tx = _parse(elements).record

    assert tx is not None
    assert tx.transaction_date == datetime(2025, 8, 9, 0, 24)
    assert tx.event_type == "UberX"
    assert tx.amount == 21.55
    # No activity time printed
    assert tx.needs_manual_verification is True


def test_trailing_amounts_in_one_fragment_and_multiline_event_type():
    elements = [
        el("Sat, Aug 9", 20.0, 700.0),
        el("UberX $21.55 $448.32", 120.0, 700.0),
        el("12:24 AM", 20.0, 688.0),
        el("Aug 9 12:10 AM", 120.0, 688.0),
        el("Priority", 120.0, 676.0),
    ]

    tx = _parse(elements).record

    assert tx is not None
    assert tx.event_type == "UberX Priority"
    assert tx.amount == 21.55


def test_line_two_amounts_are_discarded():
    elements = [
        el("Sat, Aug 9", 20.0, 700.0),
        el("Quest", 120.0, 700.0),
        el("$25.00", 470.0, 700.0),
        el("$473.32", 540.0, 700.0),
        el("12:24 AM", 20.0, 688.0),
        el("Weekly bonus $473.32", 120.0, 688.0),
    ]

    tx = _parse(elements).record

    assert tx is not None
    assert tx.event_type == "Quest Weekly bonus"
    assert tx.amount == 25.0


def test_late_amounts_after_a_described_first_line_stay_in_the_event_type():
    elements = [
        el("Sat, Aug 9", 20.0, 700.0),
        el("UberX", 120.0, 700.0),
        el("5:10 PM", 20.0, 688.0),
        el("$9.99", 330.0, 676.0),
    ]

    result = _parse(elements)

    assert result.record is not None
    assert result.record.event_type == "UberX $9.99"
    # Left for the orphan-amount repair pass
    assert result.record.amount == 0.0
    assert result.warnings == []


def test_amount_text_after_the_activity_time_joins_the_event_type():
    elements = [
        el("Sat, Aug 9", 20.0, 700.0),
        el("Aug 9 12:10 AM", 120.0, 700.0),
        el("Boost $5.00", 250.0, 700.0),
        el("$5.00 $10.00", 400.0, 700.0),
        el("12:24 AM", 20.0, 688.0),
        el("$1.00", 330.0, 676.0),
    ]

    tx = _parse(elements).record

    assert tx is not None
    assert tx.event_date == datetime(2025, 8, 9, 0, 10)
    assert tx.event_type == "Boost $5.00 $5.00 $10.00 $1.00"
    assert tx.amount == 0.0


def test_year_comes_from_statement_end_across_new_year():
    period = parse_statement_period("Dec 29, 2025 4 AM - Jan 5, 2026 4 AM")
    elements = transaction(
        680.0,
        date="T ue, Dec 30",
        time="11:15 PM",
        event="Tip",
        amounts=["$4.00", "$50.00"],
    )

    tx = _parse(elements, period=period).record

    assert tx is not None
    assert tx.transaction_date == datetime(2025, 12, 30, 23, 15)


def test_without_period_the_import_year_is_used():
    elements = _tip("Sat, Aug 9", "9:05 PM", "$2.00", "$2.00")

    tx = _parse(elements, period=None).record

    assert tx is not None
    assert tx.transaction_date == datetime(IMPORTED.year, 8, 9, 21, 5)
    assert tx.statement_period == ""


def test_missing_processing_time_drops_the_cluster():
    result = _parse([el("Sat, Aug 9", 20.0, 700.0), el("UberX", 120.0, 700.0)], page=3)

    assert result.record is None
    assert [w.kind for w in result.warnings] == [WarningKind.ROW_UNPARSEABLE]
    assert result.warnings[0].page == 3


def test_equal_toll_collapse_is_reported():
    elements = transaction(
        680.0,
        date="Sat, Aug 9",
        time="12:24 AM",
        event="UberX",
        amounts=["$6.75", "$6.75", "$430.10"],
        activity="Aug 9 12:10 AM",
    )

    result = _parse(elements, layout=ColumnLayout.SIX_COLUMN)

    assert result.record is not None
    assert result.record.tolls_reimbursed is None
    assert [w.kind for w in result.warnings] == [WarningKind.EQUAL_TOLL_COLLAPSED]


def test_footer_lines_inside_a_cluster_are_ignored():
    elements = _tip("Sat, Aug 9", "1:02 AM", "$3.00", "$3.00")
    elements.append(el("Page 1 of 2", 280.0, 650.0))

    tx = _parse(elements).record

    assert tx is not None
    assert tx.event_type == "Tip"


def test_record_ids_are_deterministic():
    elements = _tip("Sat, Aug 9", "1:02 AM", "$3.00", "$3.00")

    first = _parse(elements, page=1, source_row=4).record
    second = _parse(elements, page=1, source_row=4).record
    other_row = _parse(elements, page=1, source_row=5).record

    assert first is not None and second is not None and other_row is not None
    assert first == second
    assert first.id != other_row.id
