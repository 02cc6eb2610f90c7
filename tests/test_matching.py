from __future__ import annotations

from datetime import datetime

from rideshare_statements.matching import find_matching_shift, match_transactions_to_shifts
from rideshare_statements.models import Shift, TransactionRecord


def _tx(
    when: datetime,
    event: str = "UberX",
    *,
    activity: datetime | None = None,
    tx_id: str | None = None,
) -> TransactionRecord:
    return TransactionRecord(
        id=tx_id or f"{event}-{when.isoformat()}",
        transaction_date=when,
        event_date=activity,
        event_type=event,
        amount=10.0,
        import_date=datetime(2025, 8, 12),
    )


EVENING = Shift("evening", datetime(2025, 8, 9, 18, 0), datetime(2025, 8, 10, 2, 0))


def test_transaction_inside_shift_and_window_matches():
    assert find_matching_shift(_tx(datetime(2025, 8, 9, 20, 0)), [EVENING]) is EVENING
    # After midnight but before the 04:00 cutoff
    assert find_matching_shift(_tx(datetime(2025, 8, 10, 1, 30)), [EVENING]) is EVENING


def test_before_four_am_on_the_start_day_is_outside_the_window():
    early = Shift("early", datetime(2025, 8, 9, 2, 0), datetime(2025, 8, 9, 9, 0))

    assert find_matching_shift(_tx(datetime(2025, 8, 9, 3, 59)), [early]) is None
    assert find_matching_shift(_tx(datetime(2025, 8, 9, 4, 0)), [early]) is early


def test_window_end_is_exclusive():
    long_shift = Shift("long", datetime(2025, 8, 9, 20, 0), datetime(2025, 8, 10, 6, 0))

    assert find_matching_shift(_tx(datetime(2025, 8, 10, 4, 0)), [long_shift]) is None


def test_open_shifts_never_match():
    open_shift = Shift("open", datetime(2025, 8, 9, 18, 0), None)

    assert find_matching_shift(_tx(datetime(2025, 8, 9, 20, 0)), [open_shift]) is None


def test_same_day_shifts_are_separated_by_their_intervals():
    morning = Shift("morning", datetime(2025, 8, 9, 6, 0), datetime(2025, 8, 9, 11, 0))

    assert find_matching_shift(_tx(datetime(2025, 8, 9, 8, 0)), [EVENING, morning]) is morning
    assert find_matching_shift(_tx(datetime(2025, 8, 9, 13, 0)), [EVENING, morning]) is None


def test_first_matching_shift_wins():
    overlap = Shift("overlap", datetime(2025, 8, 9, 19, 0), datetime(2025, 8, 9, 23, 0))

    assert find_matching_shift(_tx(datetime(2025, 8, 9, 20, 0)), [overlap, EVENING]) is overlap


def test_matching_uses_processing_time_not_activity_time():
    # Tip processed the next afternoon for a ride during the shift
    late_tip = _tx(datetime(2025, 8, 10, 15, 0), "Tip", activity=datetime(2025, 8, 9, 22, 0))
    # Processed during the shift for activity before it started
    early_ride = _tx(datetime(2025, 8, 9, 19, 0), activity=datetime(2025, 8, 9, 16, 30))

    assert find_matching_shift(late_tip, [EVENING]) is None
    assert find_matching_shift(early_ride, [EVENING]) is EVENING


def test_match_splits_and_skips_bank_transfers():
    txs = [
        _tx(datetime(2025, 8, 9, 20, 0), tx_id="a"),
        _tx(datetime(2025, 8, 9, 12, 0), tx_id="b"),
        _tx(datetime(2025, 8, 9, 21, 0), "Transferred to bank account", tx_id="c"),
    ]

    result = match_transactions_to_shifts(txs, [EVENING])

    assert [(m.shift.id, m.transaction.id) for m in result.matched] == [("evening", "a")]
    assert [t.id for t in result.unmatched] == ["b"]
