"""Tests for the SQLite store."""

import pytest

from garage_engine.core.race import RaceMode
from garage_engine.core.rarity import KeyTier
from garage_engine.core.track import TrackType
from garage_engine.economy.store import (
    ActivityLogEntry,
    LedgerKind,
    LedgerMutation,
    RaceStatus,
    SqliteStore,
)
from garage_engine.errors import AlreadySettledError, InsufficientBalanceError, RaceStateError


def test_balances_persist_across_connections(tmp_path) -> None:
    path = tmp_path / "garage.sqlite3"
    store = SqliteStore(path)
    assert store.get_account_balance("alice") == 0
    assert store.adjust_account_balance("alice", 700) == 700
    store.close()

    reopened = SqliteStore(path)
    assert reopened.get_account_balance("alice") == 700
    reopened.close()


def test_overdraw_is_rejected_and_rolled_back() -> None:
    store = SqliteStore()
    store.adjust_account_balance("alice", 100)
    with pytest.raises(InsufficientBalanceError):
        store.adjust_account_balance("alice", -101)
    assert store.get_account_balance("alice") == 100


def test_transactions_and_activity_round_trip() -> None:
    store = SqliteStore()
    mutation = LedgerMutation("alice", -300, LedgerKind.RACE_BET, 1, "bet", "bob", TrackType.DRAG)
    store.record_transaction(mutation)
    store.record_activity_log(ActivityLogEntry("alice", "race_bet", "bob", {"raceId": 1}))

    assert store.list_transactions("alice") == [mutation]
    assert store.list_transactions("bob") == []
    (log,) = store.list_activity_logs()
    assert log.details == {"raceId": 1}
    assert log.target == "bob"


def test_key_inventory() -> None:
    store = SqliteStore()
    entry = store.get_or_create_key_entry("alice", KeyTier.PREMIUM)
    assert entry.quantity == 0
    assert store.get_or_create_key_entry("alice", KeyTier.PREMIUM).entry_id == entry.entry_id
    assert store.increment_key_entry(entry.entry_id, 2).quantity == 2
    assert store.consume_key("alice", KeyTier.PREMIUM)
    assert store.consume_key("alice", KeyTier.PREMIUM)
    assert not store.consume_key("alice", KeyTier.PREMIUM)
    assert not store.consume_key("alice", KeyTier.MYTHIC)
    assert store.list_keys("alice")[0].quantity == 0


def test_race_lifecycle() -> None:
    store = SqliteStore()
    record = store.create_race(RaceMode.SOLO, "alice", None, 500, TrackType.OFFROAD)
    assert record.status is RaceStatus.PENDING

    store.update_race(record.race_id, status=RaceStatus.BETS_PLACED)
    with pytest.raises(RaceStateError):
        store.update_race(record.race_id, status=RaceStatus.SETTLED)

    resolved = store.update_race(
        record.race_id, status=RaceStatus.RESOLVED, winner="alice", race_data={"winner": "challenger"}
    )
    assert resolved.race_data == {"winner": "challenger"}
    assert resolved.completed_at is not None

    store.update_race(record.race_id, status=RaceStatus.SETTLED)
    with pytest.raises(AlreadySettledError):
        store.update_race(record.race_id, status=RaceStatus.SETTLED)
    assert store.get_race(record.race_id).status is RaceStatus.SETTLED


def test_missing_race() -> None:
    store = SqliteStore()
    assert store.get_race(42) is None
    with pytest.raises(RaceStateError):
        store.update_race(42, status=RaceStatus.RESOLVED)


def test_apply_mutations_is_all_or_nothing() -> None:
    """An overdraw late in a batch rolls back the earlier rows too."""
    store = SqliteStore()
    store.adjust_account_balance("alice", 1000)
    mutations = [
        LedgerMutation("alice", -500, LedgerKind.RACE_BET, 1, "bet", "bob", TrackType.DRAG),
        LedgerMutation("bob", -500, LedgerKind.RACE_BET, 1, "bet", "alice", TrackType.DRAG),
    ]
    activity = [ActivityLogEntry(m.account, m.kind.value, m.counterparty) for m in mutations]
    with pytest.raises(InsufficientBalanceError):
        store.apply_mutations(mutations, activity)
    assert store.get_account_balance("alice") == 1000
    assert store.list_transactions() == []
    assert store.list_activity_logs() == []

    store.adjust_account_balance("bob", 500)
    store.apply_mutations(mutations, activity)
    assert store.get_account_balance("alice") == 500
    assert len(store.list_transactions()) == 2
    assert [a.account for a in store.list_activity_logs()] == ["alice", "bob"]
