"""Pending PvP challenges.

A :class:`ChallengeBoard` is an explicit container owned by whoever hosts
the chat commands.  Challenges are inserted when issued and removed when
accepted, declined, or swept after their TTL.  Nothing here touches
balances; accepting a challenge only hands it back to the caller, who then
runs the race pipeline.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable

from garage_engine.config import CHALLENGE_TTL_SECONDS, MIN_BET, EconomyConfig
from garage_engine.core.track import TrackType, parse_track_type
from garage_engine.errors import (
    ChallengeExpiredError,
    ChallengeNotFoundError,
    InvalidBetError,
    SelfRaceError,
)

logger = logging.getLogger("garage_engine.challenges")

Clock = Callable[[], float]


@dataclass(frozen=True)
class Challenge:
    challenge_id: str
    challenger: str
    opponent: str
    bet: int
    track: TrackType
    expires_at: float
    channel: str | None = None

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class ChallengeBoard:
    """Thread-safe map of open challenges.

    Args:
        ttl: Seconds a challenge stays open.
        min_bet: Smallest bet a challenge may carry.
        clock: Returns the current time in seconds; defaults to
            :func:`time.monotonic`.
        on_expire: Called once for every challenge removed by
            :meth:`sweep`.
    """

    def __init__(
        self,
        ttl: float = CHALLENGE_TTL_SECONDS,
        min_bet: int = MIN_BET,
        clock: Clock = time.monotonic,
        on_expire: Callable[[Challenge], None] | None = None,
    ) -> None:
        if ttl <= 0:
            raise ValueError("ttl must be > 0.")
        self.ttl = ttl
        self.min_bet = min_bet
        self._clock = clock
        self._on_expire = on_expire
        self._lock = threading.Lock()
        self._open: dict[str, Challenge] = {}

    @classmethod
    def from_config(
        cls,
        config: EconomyConfig,
        clock: Clock = time.monotonic,
        on_expire: Callable[[Challenge], None] | None = None,
    ) -> ChallengeBoard:
        """Board using the configured challenge TTL and minimum bet."""
        return cls(
            ttl=config.challenge_ttl_seconds,
            min_bet=config.min_bet,
            clock=clock,
            on_expire=on_expire,
        )

    def __len__(self) -> int:
        with self._lock:
            return len(self._open)

    def __contains__(self, challenge_id: str) -> bool:
        with self._lock:
            return challenge_id in self._open

    def issue(
        self,
        challenger: str,
        opponent: str,
        bet: int,
        track: TrackType | str,
        channel: str | None = None,
    ) -> Challenge:
        """Open a challenge.  Re-issuing within the same tick replaces it.

        Raises:
            SelfRaceError: If both sides are the same account.
            InvalidBetError: If *bet* is not a whole number of at least
                :attr:`min_bet`.
            UnknownTrackTypeError: If *track* names no track type.
        """
        if challenger == opponent:
            raise SelfRaceError("You cannot challenge yourself.")
        if not isinstance(bet, int) or isinstance(bet, bool) or bet <= 0:
            raise InvalidBetError(f"Bet must be a positive whole number, got {bet!r}.")
        if bet < self.min_bet:
            raise InvalidBetError(
                f"Minimum bet is {self.min_bet}, got {bet}.",
                reason=f"minimum bet is {self.min_bet}",
            )
        track_type = parse_track_type(track)
        now = self._clock()
        challenge = Challenge(
            challenge_id=f"{challenger}-{opponent}-{int(now * 1000)}",
            challenger=challenger,
            opponent=opponent,
            bet=bet,
            track=track_type,
            expires_at=now + self.ttl,
            channel=channel,
        )
        with self._lock:
            self._open[challenge.challenge_id] = challenge
        logger.debug("Challenge %s issued", challenge.challenge_id)
        return challenge

    def get(self, challenge_id: str) -> Challenge | None:
        with self._lock:
            return self._open.get(challenge_id)

    def accept(self, challenge_id: str, account: str) -> Challenge:
        """Remove and return a challenge addressed to *account*.

        Raises:
            ChallengeNotFoundError: Unknown id, or *account* is not the
                challenged player.
            ChallengeExpiredError: The TTL has passed; the challenge is
                removed.
        """
        now = self._clock()
        with self._lock:
            challenge = self._open.get(challenge_id)
            if challenge is None or challenge.opponent != account:
                raise ChallengeNotFoundError(f"No open challenge {challenge_id!r} for {account}.")
            del self._open[challenge_id]
        if challenge.is_expired(now):
            raise ChallengeExpiredError(f"Challenge {challenge_id!r} has expired.")
        return challenge

    def decline(self, challenge_id: str, account: str) -> Challenge:
        """Remove a challenge; either side may decline or withdraw."""
        with self._lock:
            challenge = self._open.get(challenge_id)
            if challenge is None or account not in (challenge.challenger, challenge.opponent):
                raise ChallengeNotFoundError(f"No open challenge {challenge_id!r} for {account}.")
            del self._open[challenge_id]
        return challenge

    def sweep(self, now: float | None = None) -> list[Challenge]:
        """Drop every expired challenge and report each one exactly once."""
        now = self._clock() if now is None else now
        with self._lock:
            expired = [c for c in self._open.values() if c.is_expired(now)]
            for challenge in expired:
                del self._open[challenge.challenge_id]
        for challenge in expired:
            logger.debug("Challenge %s expired", challenge.challenge_id)
            if self._on_expire is not None:
                self._on_expire(challenge)
        return expired
