"""Exception hierarchy for the garage race engine.

Three families are distinguished:

- :class:`RaceRejectedError` -- validation failures raised *before* any
  ledger mutation.  Each carries a short ``reason`` suitable for showing to
  the player ("insufficient balance", "unknown track type", ...).
- :class:`InvariantViolationError` -- programming errors such as settling a
  race twice or feeding the selector an all-zero weight table.  These are
  never retried or swallowed.
- :class:`ConfigError` -- malformed economy configuration files.

Best-effort failures (a key drop that cannot be written after the payout
committed) are *not* exceptions at the API surface; see
:class:`garage_engine.economy.drops.DropOutcome`.
"""

from __future__ import annotations


class GarageEngineError(Exception):
    """Base class for every error raised by the engine."""


# ---------------------------------------------------------------------------
# Validation errors (rejected before any side effect)
# ---------------------------------------------------------------------------


class RaceRejectedError(GarageEngineError, ValueError):
    """A race request was rejected; balances were not touched.

    Attributes:
        reason: Short, user-presentable explanation.
    """

    reason: str = "race rejected"

    def __init__(self, message: str | None = None, *, reason: str | None = None) -> None:
        if reason is not None:
            self.reason = reason
        super().__init__(message or self.reason)


class UnknownTrackTypeError(RaceRejectedError):
    reason = "unknown track type"

    def __init__(self, track: object) -> None:
        self.track = track
        super().__init__(f"Unknown track type: {track!r}")


class InvalidBetError(RaceRejectedError):
    reason = "invalid bet amount"


class InsufficientBalanceError(RaceRejectedError):
    reason = "insufficient balance"

    def __init__(self, account: object, balance: int, required: int) -> None:
        self.account = account
        self.balance = balance
        self.required = required
        super().__init__(
            f"Account {account!r} has {balance} but the bet requires {required}."
        )


class SelfRaceError(RaceRejectedError):
    reason = "cannot race against yourself"


class ChallengeNotFoundError(RaceRejectedError):
    reason = "challenge not found"


class ChallengeExpiredError(RaceRejectedError):
    reason = "challenge expired"


# ---------------------------------------------------------------------------
# Invariant violations (programming errors)
# ---------------------------------------------------------------------------


class InvariantViolationError(GarageEngineError):
    """An internal contract was broken by the caller."""


class InvalidWeightsError(InvariantViolationError, ValueError):
    """Weighted selection was asked to draw from an unusable weight table."""


class AlreadySettledError(InvariantViolationError):
    """Settlement was invoked a second time for the same race."""

    def __init__(self, race_id: int) -> None:
        self.race_id = race_id
        super().__init__(f"Race {race_id} has already been settled.")


class RaceStateError(InvariantViolationError):
    """A race record was driven through an illegal lifecycle transition."""


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class ConfigError(GarageEngineError, ValueError):
    """The economy configuration file is missing fields or out of range."""
