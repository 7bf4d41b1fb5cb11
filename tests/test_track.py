"""Tests for track types and the weight table."""

import pytest

from garage_engine.core.track import TRACK_WEIGHTS, TrackType, TrackWeights, parse_track_type
from garage_engine.errors import RaceRejectedError, UnknownTrackTypeError


def test_every_track_has_weights() -> None:
    assert set(TRACK_WEIGHTS) == set(TrackType)


def test_weights_sum_to_one() -> None:
    for track, weights in TRACK_WEIGHTS.items():
        assert abs(sum(weights.as_tuple()) - 1.0) < 1e-9, f"{track} weights must sum to 1"


def test_circuit_weights_handling_most() -> None:
    """Circuit weights handling above every other stat."""
    w = TRACK_WEIGHTS[TrackType.CIRCUIT]
    assert w.handling == max(w.as_tuple())
    assert w.as_tuple() == (0.25, 0.15, 0.45, 0.15)


def test_weights_validation() -> None:
    with pytest.raises(ValueError):
        TrackWeights(0.5, 0.5, 0.5, 0.5)
    with pytest.raises(ValueError):
        TrackWeights(-0.1, 0.5, 0.3, 0.3)


@pytest.mark.parametrize("value", ["circuit", "CIRCUIT", " Circuit ", TrackType.CIRCUIT])
def test_parse_track_type_accepts_variants(value) -> None:
    assert parse_track_type(value) is TrackType.CIRCUIT


def test_parse_track_type_rejects_unknown() -> None:
    """Unknown tracks are rejected, not defaulted."""
    with pytest.raises(UnknownTrackTypeError) as exc_info:
        parse_track_type("moon")
    assert isinstance(exc_info.value, RaceRejectedError)
    assert exc_info.value.reason == "unknown track type"


def test_display_names() -> None:
    assert TrackType.OFFROAD.display_name == "Off-road"
    assert TrackType.DRAG.display_name == "Drag"
