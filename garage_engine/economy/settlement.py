"""Bet debits and payouts for races.

Planning is pure: :func:`plan_bets` and :func:`plan_payout` turn a race
into a list of :class:`LedgerMutation` values without touching a store.
:class:`SettlementService` validates requests, applies the planned
mutations, and enforces that a race is paid out at most once.

Payout arithmetic uses :class:`fractions.Fraction` so ``floor(1.8 * bet)``
is exact for every integer bet.
"""

from __future__ import annotations

import logging
import math
from fractions import Fraction
from typing import Sequence

from garage_engine.config import DEFAULT_CONFIG, EconomyConfig
from garage_engine.core.race import RaceMode
from garage_engine.core.track import TrackType, parse_track_type
from garage_engine.economy.store import (
    ActivityLogEntry,
    LedgerKind,
    LedgerMutation,
    RaceStatus,
    Store,
)
from garage_engine.errors import (
    AlreadySettledError,
    InsufficientBalanceError,
    InvalidBetError,
    RaceStateError,
    SelfRaceError,
)

logger = logging.getLogger("garage_engine.settlement")


def _floor(bet: int, factor: Fraction) -> int:
    return math.floor(bet * factor)


# ---------------------------------------------------------------------------
# Planning
# ---------------------------------------------------------------------------


def plan_bets(
    mode: RaceMode,
    race_id: int,
    accounts: Sequence[str],
    bet: int,
    track: TrackType,
) -> list[LedgerMutation]:
    """Debit mutations taken when a race starts.

    PvP debits every participant with ``race_bet``; solo debits the single
    player with ``solo_race_bet``; showdowns carry no bet.
    """
    mode = RaceMode(mode)
    if mode is RaceMode.SHOWDOWN:
        return []
    if mode is RaceMode.SOLO:
        return [
            LedgerMutation(
                account=accounts[0],
                amount=-bet,
                kind=LedgerKind.SOLO_RACE_BET,
                race_id=race_id,
                description=f"Solo race bet on {track.value} track",
                track=track,
            )
        ]
    mutations = []
    for account in accounts:
        others = [a for a in accounts if a != account]
        mutations.append(
            LedgerMutation(
                account=account,
                amount=-bet,
                kind=LedgerKind.RACE_BET,
                race_id=race_id,
                description=f"Race bet on {track.value} track",
                counterparty=others[0] if others else None,
                track=track,
            )
        )
    return mutations


def plan_payout(
    mode: RaceMode,
    race_id: int,
    bet: int,
    challenger: str,
    opponent: str | None,
    challenger_won: bool,
    track: TrackType,
    config: EconomyConfig = DEFAULT_CONFIG,
) -> list[LedgerMutation]:
    """Credit mutations owed once a race is resolved.

    Args:
        mode: Race mode.
        race_id: Race identifier.
        bet: Per-participant bet.
        challenger: Challenger account.
        opponent: Opponent account (``None`` for solo races).
        challenger_won: Race outcome.
        track: Track raced on.
        config: Economy parameters.

    Returns:
        Zero or one credit.  PvP pays the winner ``2 x bet``; a solo win
        pays ``floor(1.8 x bet)``; a solo loss refunds ``floor(0.2 x bet)``
        unless that rounds to 0.
    """
    mode = RaceMode(mode)
    if mode is RaceMode.SHOWDOWN:
        return []

    if mode is RaceMode.PVP:
        winner, loser = (challenger, opponent) if challenger_won else (opponent, challenger)
        return [
            LedgerMutation(
                account=winner,
                amount=_floor(bet, config.pvp_win_multiplier),
                kind=LedgerKind.RACE_WIN,
                race_id=race_id,
                description=f"Race winnings on {track.value} track",
                counterparty=loser,
                track=track,
            )
        ]

    if challenger_won:
        return [
            LedgerMutation(
                account=challenger,
                amount=_floor(bet, config.solo_win_multiplier),
                kind=LedgerKind.SOLO_RACE_WIN,
                race_id=race_id,
                description=f"Solo race winnings on {track.value} track",
                track=track,
            )
        ]

    refund = _floor(bet, config.solo_refund_fraction)
    if refund <= 0:
        return []
    return [
        LedgerMutation(
            account=challenger,
            amount=refund,
            kind=LedgerKind.SOLO_RACE_REFUND,
            race_id=race_id,
            description=f"Solo race consolation on {track.value} track",
            track=track,
        )
    ]


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class SettlementService:
    """Applies race economics to a :class:`Store`."""

    def __init__(self, store: Store, config: EconomyConfig = DEFAULT_CONFIG) -> None:
        self.store = store
        self.config = config

    def validate(
        self,
        mode: RaceMode,
        challenger: str,
        opponent: str | None,
        bet: int,
        track: TrackType | str,
    ) -> TrackType:
        """Reject a race request before anything is written.

        Returns:
            The parsed track type.

        Raises:
            UnknownTrackTypeError: If *track* names no track type.
            InvalidBetError: If *bet* is not an int or is under the minimum.
            SelfRaceError: If both sides are the same account.
            InsufficientBalanceError: If a bettor cannot cover *bet*.
        """
        mode = RaceMode(mode)
        track_type = parse_track_type(track)

        if opponent is not None and opponent == challenger:
            raise SelfRaceError("You cannot race against yourself.")

        if mode is RaceMode.SHOWDOWN:
            return track_type

        if not isinstance(bet, int) or isinstance(bet, bool) or bet <= 0:
            raise InvalidBetError(f"Bet must be a positive whole number, got {bet!r}.")
        if bet < self.config.min_bet:
            raise InvalidBetError(
                f"Minimum bet is {self.config.min_bet}, got {bet}.",
                reason=f"minimum bet is {self.config.min_bet}",
            )

        bettors = [challenger] if mode is RaceMode.SOLO else [challenger, opponent]
        for account in bettors:
            balance = self.store.get_account_balance(account)
            if balance < bet:
                raise InsufficientBalanceError(account, balance, bet)
        return track_type

    def place_bets(self, race_id: int) -> list[LedgerMutation]:
        """Debit every bettor of a pending race and mark it ``bets_placed``.

        The debits are written as one batch.  If the batch fails, nothing
        is debited, the race is marked ``cancelled`` and the error is
        re-raised.

        Raises:
            RaceStateError: If the race is unknown or not pending.
            InsufficientBalanceError: If a debit would overdraw.
        """
        record = self.store.get_race(race_id)
        if record is None:
            raise RaceStateError(f"No race {race_id}")
        if record.status is not RaceStatus.PENDING:
            raise RaceStateError(f"Race {race_id} is {record.status.value}, not pending.")

        accounts = [record.challenger]
        if record.mode is RaceMode.PVP:
            accounts.append(record.opponent)
        debits = plan_bets(record.mode, race_id, accounts, record.bet, record.track)
        try:
            self._commit(debits)
        except Exception:
            self.store.update_race(race_id, status=RaceStatus.CANCELLED)
            logger.warning("Race %d cancelled: bets could not be placed", race_id)
            raise
        self.store.update_race(race_id, status=RaceStatus.BETS_PLACED)
        return debits

    def settle(self, race_id: int, challenger_won: bool) -> list[LedgerMutation]:
        """Pay out a resolved race exactly once.

        Raises:
            AlreadySettledError: If the race was settled before.  Nothing
                is written.
            RaceStateError: If the race is unknown or not yet resolved.
        """
        record = self.store.get_race(race_id)
        if record is None:
            raise RaceStateError(f"No race {race_id}")
        if record.status is RaceStatus.SETTLED:
            raise AlreadySettledError(race_id)
        if record.status is not RaceStatus.RESOLVED:
            raise RaceStateError(f"Race {race_id} is {record.status.value}, not resolved.")

        credits = plan_payout(
            record.mode,
            race_id,
            record.bet,
            record.challenger,
            record.opponent,
            challenger_won,
            record.track,
            self.config,
        )
        # Claiming the status first makes a concurrent second settle fail
        # before it can credit anything.
        self.store.update_race(race_id, status=RaceStatus.SETTLED)
        try:
            self._commit(credits)
        except Exception:
            logger.error("Race %d is settled but its payout was not written", race_id)
            raise
        for credit in credits:
            logger.info(
                "Race %d settled: %s %+d (%s)",
                race_id,
                credit.account,
                credit.amount,
                credit.kind.value,
            )
        return credits

    def apply(self, mutation: LedgerMutation) -> None:
        """Adjust the balance, then record the transaction and activity log."""
        self._commit([mutation])

    def _commit(self, mutations: Sequence[LedgerMutation]) -> None:
        if not mutations:
            return
        self.store.apply_mutations(mutations, [_activity_entry(m) for m in mutations])


def _activity_entry(mutation: LedgerMutation) -> ActivityLogEntry:
    return ActivityLogEntry(
        account=mutation.account,
        kind=mutation.kind.value,
        target=mutation.counterparty,
        details={
            "raceId": mutation.race_id,
            "amount": mutation.amount,
            "trackType": mutation.track.value if mutation.track else None,
            "description": mutation.description,
        },
    )
