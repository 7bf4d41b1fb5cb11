"""CLI entrypoint for the garage race engine demo."""

from __future__ import annotations

import logging
import sys

import numpy as np

from garage_engine import __version__
from garage_engine.config import load_economy_config
from garage_engine.core.car import CarStats
from garage_engine.core.scoring import rate_all_tracks
from garage_engine.economy.challenges import ChallengeBoard
from garage_engine.economy.keys import grant_key, open_key
from garage_engine.economy.pipeline import run_challenge, run_showdown, run_solo_race
from garage_engine.economy.store import InMemoryStore
from garage_engine.reporting.ledger_report import account_summary


def main() -> None:
    """Run a short session of races against an in-memory store."""
    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")
    print(f"Garage Race Engine v{__version__}")
    print("=" * 56)

    config = load_economy_config()
    rng = np.random.default_rng(2024)
    store = InMemoryStore(balances={"alice": 10_000, "bob": 10_000})

    alice_car = CarStats(speed=80, acceleration=75, handling=70, boost=60)
    bob_car = CarStats(speed=60, acceleration=60, handling=90, boost=50)

    # -- Track ratings --------------------------------------------------------
    print(f"\n{'Track':<10} {'Alice':>14} {'Bob':>14}")
    alice_ratings = rate_all_tracks(alice_car)
    bob_ratings = rate_all_tracks(bob_car)
    for track, rating in alice_ratings.items():
        print(f"{track.display_name:<10} {rating.label:>14} {bob_ratings[track].label:>14}")

    # -- Races ----------------------------------------------------------------
    print("\nRaces")
    print("-" * 56)
    board = ChallengeBoard.from_config(config)
    challenge = board.issue("alice", "bob", 500, "circuit")
    pvp = run_challenge(store, board, challenge.challenge_id, "bob", alice_car, bob_car, rng, config)
    print(
        f"PvP on circuit: {pvp.result.winner} wins {pvp.result.margin.value} "
        f"({pvp.result.time_difference:.2f}s)"
    )
    for event in pvp.result.events:
        print(f"  {event.timestamp:2d}s  {event.description}")

    solo = run_solo_race(store, "alice", alice_car, 1000, "drag", rng, config)
    print(
        f"Solo on drag vs {solo.opponent_car.name}: "
        f"{'win' if solo.result.challenger_won else 'loss'}, net {solo.net['alice']:+d}"
    )
    if solo.drop.tier is not None:
        print(f"  Dropped: {solo.drop.tier.display_name}")

    showdown = run_showdown(store, "bob", bob_car, "alice", alice_car, "drift", rng, config)
    print(
        f"Showdown on drift: {showdown.result.winner} wins "
        f"{showdown.result.margin.value} ({showdown.result.margin_percent:.1f}%)"
    )

    # -- Keys -----------------------------------------------------------------
    grant_key(store, "bob", "premium")
    rarity = open_key(store, "bob", "premium", rng)
    print(f"\nBob opens a Premium Key: {rarity.display_name}")

    # -- Ledger ---------------------------------------------------------------
    print("\nLedger summary")
    print("-" * 56)
    print(account_summary(store).to_string())
    for account in ("alice", "bob"):
        print(f"{account:<6} balance: {store.get_account_balance(account)}")


if __name__ == "__main__":
    sys.exit(main() or 0)
