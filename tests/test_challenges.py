"""Tests for the pending-challenge board."""

import pytest

from garage_engine.config import EconomyConfig
from garage_engine.core.track import TrackType
from garage_engine.economy.challenges import ChallengeBoard
from garage_engine.errors import (
    ChallengeExpiredError,
    ChallengeNotFoundError,
    InvalidBetError,
    SelfRaceError,
    UnknownTrackTypeError,
)

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


class _Clock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def _sample_board(clock: _Clock, expired: list | None = None) -> ChallengeBoard:
    on_expire = expired.append if expired is not None else None
    return ChallengeBoard(ttl=120.0, clock=clock, on_expire=on_expire)


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------


def test_issue_and_accept() -> None:
    clock = _Clock()
    board = _sample_board(clock)
    challenge = board.issue("alice", "bob", 500, "Drag")
    assert challenge.track is TrackType.DRAG
    assert challenge.expires_at == 1120.0
    assert challenge.challenge_id.startswith("alice-bob-")
    assert challenge.challenge_id in board

    accepted = board.accept(challenge.challenge_id, "bob")
    assert accepted == challenge
    assert len(board) == 0


def test_only_the_challenged_player_can_accept() -> None:
    board = _sample_board(_Clock())
    challenge = board.issue("alice", "bob", 500, "street")
    with pytest.raises(ChallengeNotFoundError):
        board.accept(challenge.challenge_id, "alice")
    assert challenge.challenge_id in board


def test_accept_after_ttl_raises_expired() -> None:
    clock = _Clock()
    board = _sample_board(clock)
    challenge = board.issue("alice", "bob", 500, "street")
    clock.now += 121
    with pytest.raises(ChallengeExpiredError):
        board.accept(challenge.challenge_id, "bob")
    assert len(board) == 0


def test_decline_by_either_side() -> None:
    board = _sample_board(_Clock())
    c1 = board.issue("alice", "bob", 500, "street")
    board.decline(c1.challenge_id, "alice")
    with pytest.raises(ChallengeNotFoundError):
        board.accept(c1.challenge_id, "bob")


def test_sweep_is_idempotent() -> None:
    """An expired challenge is reported once; a second sweep is a no-op."""
    clock = _Clock()
    expired: list = []
    board = _sample_board(clock, expired)
    old = board.issue("alice", "bob", 500, "street")
    clock.now += 60
    fresh = board.issue("carol", "dave", 500, "drift")

    clock.now += 70
    assert board.sweep() == [old]
    assert board.sweep() == []
    assert expired == [old]
    assert fresh.challenge_id in board


def test_sweep_accepts_explicit_time() -> None:
    board = _sample_board(_Clock())
    c = board.issue("alice", "bob", 500, "street")
    assert board.sweep(now=c.expires_at) == [c]


def test_issue_validation() -> None:
    board = _sample_board(_Clock())
    with pytest.raises(SelfRaceError):
        board.issue("alice", "alice", 500, "street")
    with pytest.raises(UnknownTrackTypeError):
        board.issue("alice", "bob", 500, "moon")


@pytest.mark.parametrize("bet", [0, -500, 99, 250.0, True, "500"])
def test_issue_rejects_bad_bets(bet) -> None:
    board = _sample_board(_Clock())
    with pytest.raises(InvalidBetError):
        board.issue("alice", "bob", bet, "street")
    assert len(board) == 0


def test_board_from_config_uses_configured_ttl_and_min_bet() -> None:
    """The configured TTL decides when a challenge expires."""
    clock = _Clock()
    board = ChallengeBoard.from_config(
        EconomyConfig(challenge_ttl_seconds=5.0, min_bet=1000), clock=clock
    )
    assert board.ttl == 5.0
    with pytest.raises(InvalidBetError):
        board.issue("alice", "bob", 500, "street")

    challenge = board.issue("alice", "bob", 1000, "street")
    assert challenge.expires_at == 1005.0
    clock.now += 5
    assert board.sweep() == [challenge]
