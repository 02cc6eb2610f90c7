from __future__ import annotations

from collections.abc import Iterator
from datetime import datetime
from pathlib import Path

import pytest

from rideshare_statements.errors import StoreWriteError
from rideshare_statements.models import TransactionRecord
from rideshare_statements.store import TransactionStore
from tests.helpers.db import bootstrap_sqlite_db, open_store

WEEK_ONE = "Aug 4, 2025 - Aug 11, 2025"
WEEK_TWO = "Aug 11, 2025 - Aug 18, 2025"


@pytest.fixture()
def store(tmp_path: Path) -> Iterator[TransactionStore]:
    url = bootstrap_sqlite_db(tmp_path / "store.sqlite3")
    s = open_store(url)
    try:
        yield s
    finally:
        s.close()


def _tx(
    tx_id: str,
    *,
    hour: int = 20,
    day: int = 9,
    event: str = "UberX",
    amount: float = 10.0,
    period: str = WEEK_ONE,
    shift_id: str | None = None,
    activity: datetime | None = None,
    toll: float | None = None,
) -> TransactionRecord:
    return TransactionRecord(
        id=tx_id,
        transaction_date=datetime(2025, 8, day, hour, 0),
        event_date=activity,
        event_type=event,
        amount=amount,
        tolls_reimbursed=toll,
        statement_period=period,
        shift_id=shift_id,
        import_date=datetime(2025, 8, 12, 9, 30),
    )


def test_save_and_read_back(store: TransactionStore):
    tx = _tx("a", toll=6.75, activity=datetime(2025, 8, 9, 19, 45))

    store.save_transaction(tx)

    assert store.get_transaction("a") == tx
    assert store.transaction_exists("a")
    assert not store.transaction_exists("missing")
    assert store.get_transaction("missing") is None


def test_upsert_replaces_in_place_and_keeps_order(store: TransactionStore):
    store.save_transactions([_tx("a"), _tx("b"), _tx("c")])

    store.save_transaction(_tx("b", amount=99.0))
    store.save_transactions([_tx("d"), _tx("a", amount=1.0)])

    assert [(t.id, t.amount) for t in store.get_all_transactions()] == [
        ("a", 1.0),
        ("b", 99.0),
        ("c", 10.0),
        ("d", 10.0),
    ]


def test_batch_with_repeated_id_keeps_the_last_version(store: TransactionStore):
    store.save_transactions([_tx("a", amount=1.0), _tx("a", amount=2.0)])

    assert [(t.id, t.amount) for t in store.get_all_transactions()] == [("a", 2.0)]


def test_queries_by_shift_and_period(store: TransactionStore):
    store.save_transactions(
        [
            _tx("a", shift_id="s1"),
            _tx("b", shift_id="s2"),
            _tx("c", shift_id="s1", period=WEEK_TWO),
            _tx("d", period=WEEK_TWO),
        ]
    )

    assert [t.id for t in store.get_transactions_for_shift("s1")] == ["a", "c"]
    assert [t.id for t in store.get_transactions_for_statement_period(WEEK_TWO)] == ["c", "d"]
    assert store.get_all_statement_periods() == [WEEK_ONE, WEEK_TWO]
    assert store.has_statement_period(WEEK_ONE)
    assert not store.has_statement_period("Sep 1, 2025 - Sep 8, 2025")
    assert store.get_affected_shift_ids(WEEK_ONE) == {"s1", "s2"}
    assert store.get_affected_shift_ids(WEEK_TWO) == {"s1"}


def test_orphans_with_and_without_range(store: TransactionStore):
    store.save_transactions(
        [
            _tx("in-range", activity=datetime(2025, 8, 9, 19, 0)),
            _tx("at-end", activity=datetime(2025, 8, 10, 4, 0)),
            _tx("no-activity"),
            _tx("assigned", shift_id="s1", activity=datetime(2025, 8, 9, 19, 0)),
        ]
    )

    assert [t.id for t in store.get_orphaned_transactions()] == [
        "in-range",
        "at-end",
        "no-activity",
    ]
    ranged = store.get_orphaned_transactions(
        datetime(2025, 8, 9, 4, 0), datetime(2025, 8, 10, 4, 0)
    )
    assert [t.id for t in ranged] == ["in-range"]


def test_replace_statement_period_is_idempotent(store: TransactionStore):
    store.save_transactions([_tx("old-1"), _tx("old-2"), _tx("other", period=WEEK_TWO)])
    fresh = [_tx("new-1", amount=5.0), _tx("new-2", amount=6.0)]

    store.replace_statement_period(WEEK_ONE, fresh)
    first = store.get_all_transactions()
    store.replace_statement_period(WEEK_ONE, fresh)

    assert [t.id for t in first] == ["other", "new-1", "new-2"]
    assert store.get_all_transactions() == first
    # Replacement appends, so week one now sorts after week two
    assert store.get_all_statement_periods() == [WEEK_TWO, WEEK_ONE]


def test_replace_with_nothing_removes_the_period(store: TransactionStore):
    store.save_transactions([_tx("a"), _tx("b", period=WEEK_TWO)])

    store.replace_statement_period(WEEK_ONE, [])

    assert [t.id for t in store.get_all_transactions()] == ["b"]
    assert not store.has_statement_period(WEEK_ONE)


def test_find_duplicate_matches_on_content(store: TransactionStore):
    store.save_transaction(_tx("a", amount=12.34))

    assert store.find_duplicate(_tx("z", amount=12.345)).id == "a"
    assert store.find_duplicate(_tx("z", amount=12.40)) is None
    assert store.find_duplicate(_tx("z", event="Tip", amount=12.34)) is None
    assert store.find_duplicate(_tx("z", hour=21, amount=12.34)) is None


def test_save_if_not_duplicate_merges_shift_assignment(store: TransactionStore):
    assert store.save_transaction_if_not_duplicate(_tx("a")) is True
    # Same content under a new id: nothing new to record
    assert store.save_transaction_if_not_duplicate(_tx("b")) is False
    # Same content, now with a shift: the stored record picks it up
    assert store.save_transaction_if_not_duplicate(_tx("c", shift_id="s9")) is True

    [stored] = store.get_all_transactions()
    assert stored.id == "a"
    assert stored.shift_id == "s9"


def test_orphaning_clears_shift_links(store: TransactionStore):
    store.save_transactions(
        [_tx("a", shift_id="s1"), _tx("b", shift_id="s2"), _tx("c", shift_id="s3")]
    )

    assert store.orphan_transactions_for_shift("s1") == 1
    assert store.orphan_transactions_for_shifts(["s2", "s3", "s4"]) == 2
    assert store.orphan_transactions_for_shifts([]) == 0
    assert [t.shift_id for t in store.get_all_transactions()] == [None, None, None]


def test_batch_operations_return_futures(store: TransactionStore):
    store.save_transactions([_tx("a"), _tx("b"), _tx("c", event="Tip"), _tx("d")])

    assert store.assign_transactions(["a", "b", "missing"], "s1").result() == 2
    assert [t.id for t in store.get_transactions_for_shift("s1")] == ["a", "b"]

    assert store.delete_transactions(["b"]).result() == 1
    assert store.delete_transactions_where(lambda t: t.event_type == "Tip").result() == 1
    assert store.delete_transactions([]).result() == 0
    assert [t.id for t in store.get_all_transactions()] == ["a", "d"]


def test_clear_all_transactions(store: TransactionStore):
    store.save_transactions([_tx("a"), _tx("b")])

    assert store.clear_all_transactions() == 2
    assert store.get_all_transactions() == []
    assert store.get_all_statement_periods() == []


def test_failed_write_raises_and_changes_nothing(store: TransactionStore):
    store.save_transaction(_tx("a"))

    with pytest.raises(StoreWriteError):
        # Negative reimbursed tolls violate a table constraint
        store.replace_statement_period(WEEK_ONE, [_tx("b"), _tx("c", toll=-1.0)])

    assert [t.id for t in store.get_all_transactions()] == ["a"]


def test_failed_batch_surfaces_through_the_future(store: TransactionStore):
    def boom(_tx: TransactionRecord) -> bool:
        raise RuntimeError("predicate failed")

    store.save_transaction(_tx("a"))
    future = store.delete_transactions_where(boom)

    with pytest.raises(RuntimeError, match="predicate failed"):
        future.result()
    assert store.transaction_exists("a")


def test_from_url_can_create_the_schema(tmp_path: Path):
    url = f"sqlite+pysqlite:///{tmp_path / 'fresh.sqlite3'}"

    with TransactionStore.from_url(url, create_schema=True) as s:
        s.save_transaction(_tx("a"))
        assert s.transaction_exists("a")


def test_from_url_without_database_url_fails():
    with pytest.raises(RuntimeError, match="DATABASE_URL"):
        TransactionStore.from_url()
