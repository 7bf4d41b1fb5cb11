"""End-to-end race flows.

Every flow follows the same order:

    validate -> create race -> place bets -> resolve -> record result
             -> settle -> roll drop

Validation raises before anything is written.  Once bets are placed the
flow runs to settlement; only the key drop is best-effort.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from numpy.random import Generator

from garage_engine.config import DEFAULT_CONFIG, EconomyConfig
from garage_engine.core.car import CarProfile, CarStats
from garage_engine.core.opponent import AI_IDENTITY, generate_ai_opponent
from garage_engine.core.race import RaceMode, RaceParticipant, RaceResult, resolve_race
from garage_engine.core.track import TrackType
from garage_engine.economy.challenges import ChallengeBoard
from garage_engine.economy.drops import NO_DROP, DropOutcome, DropResolver
from garage_engine.economy.settlement import SettlementService
from garage_engine.economy.store import LedgerMutation, RaceStatus, Store

logger = logging.getLogger("garage_engine.pipeline")


@dataclass(frozen=True)
class RaceOutcome:
    """Everything a caller needs to present a finished race.

    Attributes:
        race_id: Stored race identifier.
        result: Resolution from the race engine.
        mutations: Debits followed by credits, in the order applied.
        drop: Key drop outcome for the winner (or solo loser).
        opponent_car: The generated AI car for solo races.
    """

    race_id: int
    result: RaceResult
    mutations: tuple[LedgerMutation, ...]
    drop: DropOutcome = NO_DROP
    opponent_car: CarProfile | None = None

    @property
    def net(self) -> dict[str, int]:
        totals: dict[str, int] = {}
        for m in self.mutations:
            totals[m.account] = totals.get(m.account, 0) + m.amount
        return totals


def _run(
    store: Store,
    config: EconomyConfig,
    mode: RaceMode,
    challenger: RaceParticipant,
    opponent: RaceParticipant,
    opponent_account: str | None,
    bet: int,
    track: TrackType,
    rng: Generator,
) -> tuple[int, RaceResult, list[LedgerMutation], DropOutcome]:
    service = SettlementService(store, config)
    record = store.create_race(mode, challenger.identity, opponent_account, bet, track)
    debits = service.place_bets(record.race_id) if mode is not RaceMode.SHOWDOWN else []

    result = resolve_race(challenger, opponent, track, mode, rng=rng)
    winner_account = challenger.identity if result.challenger_won else opponent_account
    store.update_race(
        record.race_id,
        status=RaceStatus.RESOLVED,
        winner=winner_account,
        race_data=result.to_dict(),
    )
    credits = service.settle(record.race_id, result.challenger_won)

    drop = NO_DROP
    if mode is RaceMode.SOLO:
        drop = DropResolver(store, config).resolve(
            challenger.identity, mode, result.challenger_won, track, rng
        )
    elif mode is RaceMode.PVP:
        drop = DropResolver(store, config).resolve(winner_account, mode, True, track, rng)

    logger.info(
        "%s race %d on %s won by %s",
        mode.value,
        record.race_id,
        track.value,
        result.winner,
    )
    return record.race_id, result, debits + credits, drop


def run_solo_race(
    store: Store,
    account: str,
    car: CarStats,
    bet: int,
    track: TrackType | str,
    rng: Generator,
    config: EconomyConfig = DEFAULT_CONFIG,
) -> RaceOutcome:
    """Race *account*'s car against a generated AI car for a bet.

    Raises:
        RaceRejectedError: Before any write, for an unknown track, bad bet
            or insufficient balance.
    """
    track_type = SettlementService(store, config).validate(RaceMode.SOLO, account, None, bet, track)
    ai_car = generate_ai_opponent(car, rng)
    race_id, result, mutations, drop = _run(
        store,
        config,
        RaceMode.SOLO,
        RaceParticipant(car, account),
        RaceParticipant(ai_car.stats, AI_IDENTITY),
        None,
        bet,
        track_type,
        rng,
    )
    return RaceOutcome(race_id, result, tuple(mutations), drop, opponent_car=ai_car)


def run_pvp_race(
    store: Store,
    challenger: str,
    challenger_car: CarStats,
    opponent: str,
    opponent_car: CarStats,
    bet: int,
    track: TrackType | str,
    rng: Generator,
    config: EconomyConfig = DEFAULT_CONFIG,
) -> RaceOutcome:
    """Race two players for equal bets; the winner takes the pot."""
    track_type = SettlementService(store, config).validate(
        RaceMode.PVP, challenger, opponent, bet, track
    )
    race_id, result, mutations, drop = _run(
        store,
        config,
        RaceMode.PVP,
        RaceParticipant(challenger_car, challenger),
        RaceParticipant(opponent_car, opponent),
        opponent,
        bet,
        track_type,
        rng,
    )
    return RaceOutcome(race_id, result, tuple(mutations), drop)


def run_challenge(
    store: Store,
    board: ChallengeBoard,
    challenge_id: str,
    account: str,
    challenger_car: CarStats,
    opponent_car: CarStats,
    rng: Generator,
    config: EconomyConfig = DEFAULT_CONFIG,
) -> RaceOutcome:
    """Accept an open challenge on *board* as *account* and race it."""
    challenge = board.accept(challenge_id, account)
    return run_pvp_race(
        store,
        challenge.challenger,
        challenger_car,
        challenge.opponent,
        opponent_car,
        challenge.bet,
        challenge.track,
        rng,
        config,
    )


def run_showdown(
    store: Store,
    challenger: str,
    challenger_car: CarStats,
    opponent: str,
    opponent_car: CarStats,
    track: TrackType | str,
    rng: Generator,
    config: EconomyConfig = DEFAULT_CONFIG,
) -> RaceOutcome:
    """Bet-free score comparison between two players' cars."""
    track_type = SettlementService(store, config).validate(
        RaceMode.SHOWDOWN, challenger, opponent, 0, track
    )
    race_id, result, mutations, drop = _run(
        store,
        config,
        RaceMode.SHOWDOWN,
        RaceParticipant(challenger_car, challenger),
        RaceParticipant(opponent_car, opponent),
        opponent,
        0,
        track_type,
        rng,
    )
    return RaceOutcome(race_id, result, tuple(mutations), drop)
