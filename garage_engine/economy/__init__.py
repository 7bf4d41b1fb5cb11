"""Ledger-touching code: stores, settlement, drops, keys and race flows."""

from garage_engine.economy.challenges import Challenge, ChallengeBoard
from garage_engine.economy.drops import DropOutcome, DropResolver, roll_drop
from garage_engine.economy.keys import grant_key, open_key
from garage_engine.economy.pipeline import (
    RaceOutcome,
    run_challenge,
    run_pvp_race,
    run_showdown,
    run_solo_race,
)
from garage_engine.economy.settlement import SettlementService, plan_bets, plan_payout
from garage_engine.economy.store import (
    ActivityLogEntry,
    InMemoryStore,
    KeyInventoryEntry,
    LedgerKind,
    LedgerMutation,
    RaceRecord,
    RaceStatus,
    SqliteStore,
    Store,
)

__all__ = [
    "ActivityLogEntry",
    "Challenge",
    "ChallengeBoard",
    "DropOutcome",
    "DropResolver",
    "InMemoryStore",
    "KeyInventoryEntry",
    "LedgerKind",
    "LedgerMutation",
    "RaceOutcome",
    "RaceRecord",
    "RaceStatus",
    "SettlementService",
    "SqliteStore",
    "Store",
    "grant_key",
    "open_key",
    "plan_bets",
    "plan_payout",
    "roll_drop",
    "run_challenge",
    "run_pvp_race",
    "run_showdown",
    "run_solo_race",
]
