"""Tests for head-to-head race resolution."""

import json

import numpy as np
import pytest

from garage_engine.core.car import CarStats
from garage_engine.core.race import (
    MARGIN_COMFORTABLE_PCT,
    MARGIN_HAIR_PCT,
    MARGIN_SMALL_PCT,
    MODE_PROFILES,
    MarginTier,
    RaceMode,
    RaceParticipant,
    margin_percent,
    margin_tier,
    resolve_race,
)
from garage_engine.core.scoring import NO_PERTURBATION, finish_time, score
from garage_engine.core.track import TrackType
from garage_engine.errors import UnknownTrackTypeError

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


def _sample_challenger() -> RaceParticipant:
    return RaceParticipant(CarStats(speed=80, acceleration=75, handling=70, boost=60), "alice")


def _sample_opponent() -> RaceParticipant:
    return RaceParticipant(CarStats(speed=60, acceleration=60, handling=90, boost=50), "bob")


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------


def test_handling_car_wins_circuit_without_perturbation() -> None:
    """On circuit the handling-heavy opponent wins despite lower speed."""
    result = resolve_race(
        _sample_challenger(),
        _sample_opponent(),
        "circuit",
        RaceMode.PVP,
        rng=np.random.default_rng(0),
        perturbation=NO_PERTURBATION,
    )
    assert result.winner == "bob"
    assert not result.challenger_won
    assert result.challenger_score == pytest.approx(71.75)
    assert result.opponent_score == pytest.approx(72.0)
    assert result.opponent_time < result.challenger_time
    assert result.margin is MarginTier.HAIR


@pytest.mark.parametrize("mode", list(RaceMode))
def test_mirror_match_goes_to_challenger(mode: RaceMode) -> None:
    """Identical stats with no perturbation tie, and ties go to the challenger."""
    stats = CarStats(70, 70, 70, 70)
    for track in TrackType:
        result = resolve_race(
            RaceParticipant(stats, "c"),
            RaceParticipant(stats, "o"),
            track,
            mode,
            rng=np.random.default_rng(1),
            perturbation=NO_PERTURBATION,
        )
        assert result.challenger_score == result.opponent_score
        assert result.winner == "c", f"tie on {track} in {mode} must go to the challenger"
        assert result.margin_percent == 0.0


def test_timed_modes_report_times() -> None:
    result = resolve_race(_sample_challenger(), _sample_opponent(), "drag", RaceMode.SOLO, rng=np.random.default_rng(2))
    assert result.challenger_time is not None
    assert result.time_difference == round(abs(result.challenger_time - result.opponent_time), 2)


def test_showdown_is_score_based() -> None:
    """Showdowns have no finish times."""
    result = resolve_race(_sample_challenger(), _sample_opponent(), "drift", RaceMode.SHOWDOWN, rng=np.random.default_rng(3))
    assert result.challenger_time is None
    assert result.opponent_time is None
    assert result.time_difference is None
    assert result.challenger_won == (result.challenger_score >= result.opponent_score)


@pytest.mark.parametrize(
    "mode, low, high",
    [(RaceMode.PVP, 3, 5), (RaceMode.SOLO, 3, 5), (RaceMode.SHOWDOWN, 2, 3)],
)
def test_event_count_and_order(mode: RaceMode, low: int, high: int) -> None:
    """Event count follows the mode; events are sorted and in the race window."""
    rng = np.random.default_rng(4)
    for _ in range(50):
        result = resolve_race(_sample_challenger(), _sample_opponent(), "street", mode, rng=rng)
        assert low <= len(result.events) <= high
        stamps = [e.timestamp for e in result.events]
        assert stamps == sorted(stamps)
        assert all(5 <= t <= 55 for t in stamps)
        assert all(e.driver in ("alice", "bob") for e in result.events)


def test_same_seed_same_result() -> None:
    r1 = resolve_race(_sample_challenger(), _sample_opponent(), "offroad", rng=np.random.default_rng(99))
    r2 = resolve_race(_sample_challenger(), _sample_opponent(), "offroad", rng=np.random.default_rng(99))
    assert r1 == r2


def test_events_do_not_change_winner() -> None:
    """The outcome equals a scoring-only replay on the same seed."""
    for seed in range(30):
        result = resolve_race(_sample_challenger(), _sample_opponent(), "circuit", rng=np.random.default_rng(seed))
        rng = np.random.default_rng(seed)
        shape = MODE_PROFILES[RaceMode.PVP].perturbation
        c = score(_sample_challenger().stats, "circuit", shape, rng)
        o = score(_sample_opponent().stats, "circuit", shape, rng)
        assert result.challenger_won == (finish_time(c) <= finish_time(o))


def test_unknown_track_rejected() -> None:
    with pytest.raises(UnknownTrackTypeError):
        resolve_race(_sample_challenger(), _sample_opponent(), "moon", rng=np.random.default_rng(0))


def test_margin_thresholds() -> None:
    assert margin_tier(0.0) is MarginTier.HAIR
    assert margin_tier(MARGIN_HAIR_PCT) is MarginTier.SMALL
    assert margin_tier(MARGIN_SMALL_PCT) is MarginTier.COMFORTABLE
    assert margin_tier(MARGIN_COMFORTABLE_PCT) is MarginTier.LANDSLIDE
    assert margin_percent(0.0, 0.0) == 0.0
    assert margin_percent(110.0, 90.0) == pytest.approx(20.0)


def test_result_serialises_to_json() -> None:
    result = resolve_race(_sample_challenger(), _sample_opponent(), "street", rng=np.random.default_rng(5))
    data = json.loads(result.to_json())
    assert data["winner"] in ("challenger", "opponent")
    assert data["trackType"] == "street"
    assert data["mode"] == "pvp"
    assert len(data["events"]) == len(result.events)
