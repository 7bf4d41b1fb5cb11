"""Tests for bet debits, payouts and settle-once."""

import pytest

from garage_engine.core.race import RaceMode
from garage_engine.core.track import TrackType
from garage_engine.economy.settlement import SettlementService, plan_bets, plan_payout
from garage_engine.economy.store import InMemoryStore, LedgerKind, RaceStatus
from garage_engine.errors import (
    AlreadySettledError,
    InsufficientBalanceError,
    InvalidBetError,
    RaceRejectedError,
    RaceStateError,
    SelfRaceError,
    UnknownTrackTypeError,
)

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


def _sample_store() -> InMemoryStore:
    return InMemoryStore(balances={"alice": 5000, "bob": 5000, "broke": 50})


def _resolved_race(store: InMemoryStore, mode: RaceMode, bet: int) -> int:
    """Create a race, place its bets and mark it resolved."""
    opponent = "bob" if mode is RaceMode.PVP else None
    record = store.create_race(mode, "alice", opponent, bet, TrackType.STREET)
    SettlementService(store).place_bets(record.race_id)
    store.update_race(record.race_id, status=RaceStatus.RESOLVED)
    return record.race_id


# ---------------------------------------------------------------------------
# Planning
# ---------------------------------------------------------------------------


def test_plan_bets_pvp_debits_both() -> None:
    debits = plan_bets(RaceMode.PVP, 1, ["alice", "bob"], 300, TrackType.DRAG)
    assert [(m.account, m.amount, m.kind) for m in debits] == [
        ("alice", -300, LedgerKind.RACE_BET),
        ("bob", -300, LedgerKind.RACE_BET),
    ]
    assert debits[0].counterparty == "bob"


def test_plan_bets_solo_and_showdown() -> None:
    solo = plan_bets(RaceMode.SOLO, 1, ["alice"], 300, TrackType.DRAG)
    assert [(m.amount, m.kind) for m in solo] == [(-300, LedgerKind.SOLO_RACE_BET)]
    assert plan_bets(RaceMode.SHOWDOWN, 1, ["alice", "bob"], 0, TrackType.DRAG) == []


def test_pvp_payout_goes_to_winner() -> None:
    win = plan_payout(RaceMode.PVP, 1, 250, "alice", "bob", False, TrackType.STREET)
    assert [(m.account, m.amount, m.kind) for m in win] == [("bob", 500, LedgerKind.RACE_WIN)]


@pytest.mark.parametrize("bet", range(100, 3000, 37))
def test_solo_net_is_exact(bet: int) -> None:
    """Solo win nets floor(1.8B) - B; solo loss nets floor(0.2B) - B."""
    win = plan_payout(RaceMode.SOLO, 1, bet, "alice", None, True, TrackType.STREET)
    loss = plan_payout(RaceMode.SOLO, 1, bet, "alice", None, False, TrackType.STREET)
    assert win[0].amount == (9 * bet) // 5
    assert win[0].kind is LedgerKind.SOLO_RACE_WIN
    assert sum(m.amount for m in loss) == bet // 5
    assert win[0].amount - bet == (4 * bet) // 5
    assert sum(m.amount for m in loss) - bet == bet // 5 - bet


def test_zero_refund_is_omitted() -> None:
    """A refund that floors to 0 produces no mutation."""
    assert plan_payout(RaceMode.SOLO, 1, 4, "alice", None, False, TrackType.STREET) == []


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def test_validate_rejections() -> None:
    service = SettlementService(_sample_store())
    with pytest.raises(UnknownTrackTypeError):
        service.validate(RaceMode.PVP, "alice", "bob", 500, "moon")
    with pytest.raises(InvalidBetError):
        service.validate(RaceMode.PVP, "alice", "bob", 99, "street")
    with pytest.raises(InvalidBetError):
        service.validate(RaceMode.SOLO, "alice", None, -5, "street")
    with pytest.raises(InvalidBetError):
        service.validate(RaceMode.SOLO, "alice", None, 150.5, "street")
    with pytest.raises(SelfRaceError):
        service.validate(RaceMode.PVP, "alice", "alice", 500, "street")
    with pytest.raises(InsufficientBalanceError):
        service.validate(RaceMode.PVP, "alice", "broke", 500, "street")


def test_rejection_reasons_are_presentable() -> None:
    service = SettlementService(_sample_store())
    with pytest.raises(RaceRejectedError) as exc_info:
        service.validate(RaceMode.SOLO, "broke", None, 100, "street")
    assert exc_info.value.reason == "insufficient balance"


def test_rejection_leaves_store_untouched() -> None:
    store = _sample_store()
    with pytest.raises(RaceRejectedError):
        SettlementService(store).validate(RaceMode.PVP, "alice", "broke", 500, "street")
    assert store.get_account_balance("alice") == 5000
    assert store.list_transactions() == []
    assert store.list_activity_logs() == []


# ---------------------------------------------------------------------------
# Settlement
# ---------------------------------------------------------------------------


def test_pvp_settlement_conserves_money() -> None:
    """Ledger deltas across both accounts sum to zero; winner +B, loser -B."""
    store = _sample_store()
    race_id = _resolved_race(store, RaceMode.PVP, 1000)
    SettlementService(store).settle(race_id, challenger_won=True)

    deltas = {"alice": 0, "bob": 0}
    for m in store.list_transactions():
        deltas[m.account] += m.amount
    assert deltas == {"alice": 1000, "bob": -1000}
    assert sum(deltas.values()) == 0
    assert store.get_account_balance("alice") == 6000
    assert store.get_account_balance("bob") == 4000


def test_solo_win_example() -> None:
    """bet=1000 solo win: payout 1800, net +800, one bet and one win entry."""
    store = _sample_store()
    race_id = _resolved_race(store, RaceMode.SOLO, 1000)
    SettlementService(store).settle(race_id, challenger_won=True)

    ledger = [(m.kind, m.amount) for m in store.list_transactions("alice")]
    assert ledger == [(LedgerKind.SOLO_RACE_BET, -1000), (LedgerKind.SOLO_RACE_WIN, 1800)]
    assert store.get_account_balance("alice") == 5800


def test_solo_loss_refund() -> None:
    store = _sample_store()
    race_id = _resolved_race(store, RaceMode.SOLO, 1000)
    SettlementService(store).settle(race_id, challenger_won=False)
    assert store.get_account_balance("alice") == 5000 - 800
    assert store.list_transactions("alice")[-1].kind is LedgerKind.SOLO_RACE_REFUND


def test_settle_twice_raises_without_new_entries() -> None:
    store = _sample_store()
    service = SettlementService(store)
    race_id = _resolved_race(store, RaceMode.PVP, 500)
    service.settle(race_id, challenger_won=False)
    before = (len(store.list_transactions()), len(store.list_activity_logs()))

    with pytest.raises(AlreadySettledError):
        service.settle(race_id, challenger_won=False)
    after = (len(store.list_transactions()), len(store.list_activity_logs()))
    assert before == after
    assert store.get_account_balance("bob") == 5500


def test_settle_requires_resolved_race() -> None:
    store = _sample_store()
    record = store.create_race(RaceMode.PVP, "alice", "bob", 500, TrackType.STREET)
    with pytest.raises(RaceStateError):
        SettlementService(store).settle(record.race_id, challenger_won=True)


def test_every_mutation_has_transaction_and_activity_log() -> None:
    store = _sample_store()
    race_id = _resolved_race(store, RaceMode.PVP, 500)
    SettlementService(store).settle(race_id, challenger_won=True)
    assert len(store.list_transactions()) == 3
    assert [a.kind for a in store.list_activity_logs()] == ["race_bet", "race_bet", "race_win"]


def test_failed_debit_is_rolled_back() -> None:
    """If the second debit overdraws, the first is reverted."""
    store = _sample_store()
    record = store.create_race(RaceMode.PVP, "alice", "broke", 500, TrackType.STREET)
    with pytest.raises(InsufficientBalanceError):
        SettlementService(store).place_bets(record.race_id)
    assert store.get_account_balance("alice") == 5000
    assert store.list_transactions() == []
    assert store.get_race(record.race_id).status is RaceStatus.CANCELLED


class _FailingLedgerStore(InMemoryStore):
    """Accepts balance changes but cannot write transactions."""

    def record_transaction(self, mutation):
        raise RuntimeError("ledger unavailable")


def test_failed_ledger_write_leaves_balances_untouched() -> None:
    """A balance never moves without its transaction row."""
    store = _FailingLedgerStore(balances={"alice": 5000, "bob": 5000})
    record = store.create_race(RaceMode.PVP, "alice", "bob", 1000, TrackType.STREET)
    with pytest.raises(RuntimeError):
        SettlementService(store).place_bets(record.race_id)
    assert store.get_account_balance("alice") == 5000
    assert store.get_account_balance("bob") == 5000
    assert store.list_activity_logs() == []
    assert store.get_race(record.race_id).status is RaceStatus.CANCELLED


def test_cancelled_race_cannot_resume() -> None:
    store = _sample_store()
    record = store.create_race(RaceMode.SOLO, "broke", None, 500, TrackType.STREET)
    with pytest.raises(InsufficientBalanceError):
        SettlementService(store).place_bets(record.race_id)
    with pytest.raises(RaceStateError):
        SettlementService(store).place_bets(record.race_id)
    with pytest.raises(RaceStateError):
        store.update_race(record.race_id, status=RaceStatus.RESOLVED)
