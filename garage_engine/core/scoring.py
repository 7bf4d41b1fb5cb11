"""Stat scoring for the garage race engine.

A car's race score is the dot product of its (clamped) stats with the
track's weight tuple, followed by a bounded random perturbation:

    base  = speed*w_s + acceleration*w_a + handling*w_h + boost*w_b
    score = base * U(1 - variance/2, 1 + variance/2)      (multiplicative)
    score = base + U(low, high)                           (additive)

Timed races additionally convert a score into a finish time:

    time = BASE_TIME - score / 10

so that a higher score gives a lower (better) time.

The 1-10 advisory rating produced by :func:`track_rating` is a separate,
purely cosmetic scale used for car inspection; it never decides a race.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum

from numpy.random import Generator

from garage_engine.core.car import CarStats
from garage_engine.core.track import TRACK_WEIGHTS, TrackType, parse_track_type

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

BASE_TIME: float = 60.0  # seconds; finish time of a zero-score car
TIME_SCALE: float = 10.0  # score points per second saved
MULTIPLICATIVE_VARIANCE: float = 0.2  # 20% total swing, +/-10%
ADDITIVE_JITTER: tuple[float, float] = (-5.0, 20.0)

# ---------------------------------------------------------------------------
# Perturbation
# ---------------------------------------------------------------------------


class PerturbationKind(str, Enum):
    MULTIPLICATIVE = "multiplicative"
    ADDITIVE = "additive"
    NONE = "none"


@dataclass(frozen=True)
class Perturbation:
    """Random perturbation applied on top of a base score.

    Attributes:
        kind: Shape of the perturbation.
        low: Lower bound (factor for multiplicative, offset for additive).
        high: Upper bound (exclusive).
    """

    kind: PerturbationKind
    low: float = 0.0
    high: float = 0.0

    def __post_init__(self) -> None:
        if self.high < self.low:
            raise ValueError("high must be >= low.")
        if self.kind is PerturbationKind.MULTIPLICATIVE and self.low < 0.0:
            raise ValueError("multiplicative factor bounds must be >= 0.")

    @classmethod
    def multiplicative(cls, variance: float = MULTIPLICATIVE_VARIANCE) -> Perturbation:
        """Factor drawn from ``[1 - variance/2, 1 + variance/2)``."""
        if not 0.0 <= variance <= 2.0:
            raise ValueError("variance must be between 0.0 and 2.0.")
        return cls(PerturbationKind.MULTIPLICATIVE, 1.0 - variance / 2.0, 1.0 + variance / 2.0)

    @classmethod
    def additive(cls, low: float = ADDITIVE_JITTER[0], high: float = ADDITIVE_JITTER[1]) -> Perturbation:
        """Offset drawn from ``[low, high)``."""
        return cls(PerturbationKind.ADDITIVE, low, high)

    @classmethod
    def none(cls) -> Perturbation:
        return cls(PerturbationKind.NONE)

    def apply(self, base: float, rng: Generator | None) -> float:
        """Perturb *base*; ``NONE`` returns it unchanged without drawing."""
        if self.kind is PerturbationKind.NONE:
            return base
        if rng is None:
            raise ValueError("a random generator is required for a random perturbation.")
        draw = float(rng.uniform(self.low, self.high)) if self.high > self.low else self.low
        if self.kind is PerturbationKind.MULTIPLICATIVE:
            return base * draw
        return base + draw


NO_PERTURBATION: Perturbation = Perturbation.none()

# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------


def base_score(stats: CarStats, track: TrackType | str) -> float:
    """Deterministic weighted score of *stats* on *track*.

    Negative stats are clamped to 0 first.

    Raises:
        UnknownTrackTypeError: If *track* is not a known track type.
    """
    weights = TRACK_WEIGHTS[parse_track_type(track)]
    clamped = stats.clamped()
    return sum(s * w for s, w in zip(clamped.as_tuple(), weights.as_tuple()))


def score(
    stats: CarStats,
    track: TrackType | str,
    perturbation: Perturbation = NO_PERTURBATION,
    rng: Generator | None = None,
) -> float:
    """Perturbed race score of *stats* on *track*.

    Args:
        stats: Car stats (negatives are clamped to 0).
        track: Track type.
        perturbation: Random perturbation to apply.  Defaults to none.
        rng: Generator used for the perturbation draw.

    Returns:
        Score as a float.  Higher is better.
    """
    return perturbation.apply(base_score(stats, track), rng)


def finish_time(race_score: float) -> float:
    """Convert a race score into a finish time in seconds (lower is better)."""
    return BASE_TIME - race_score / TIME_SCALE


# ---------------------------------------------------------------------------
# Advisory rating (cosmetic)
# ---------------------------------------------------------------------------

RATING_LABELS: tuple[str, ...] = (
    "Terrible",
    "Very Poor",
    "Poor",
    "Below Average",
    "Average",
    "Above Average",
    "Good",
    "Very Good",
    "Excellent",
    "Perfect",
)


@dataclass(frozen=True)
class TrackRating:
    """Cosmetic 1-10 suitability rating of a car for a track type."""

    track: TrackType
    bucket: int
    label: str


def track_rating(stats: CarStats, track: TrackType | str) -> TrackRating:
    """Bucket the unperturbed score into a 1-10 rating.

    ``bucket = clamp(floor(score / 100 * 10), 1, 10)``.
    """
    track_type = parse_track_type(track)
    raw = base_score(stats, track_type)
    bucket = min(10, max(1, math.floor(raw / 100.0 * 10.0)))
    return TrackRating(track=track_type, bucket=bucket, label=RATING_LABELS[bucket - 1])


def rate_all_tracks(stats: CarStats) -> dict[TrackType, TrackRating]:
    """Advisory rating for every track type, in :class:`TrackType` order."""
    return {track: track_rating(stats, track) for track in TrackType}
