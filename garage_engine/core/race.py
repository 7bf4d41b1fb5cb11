"""Head-to-head race resolution for the garage race engine.

A race takes two participants and a track type and returns an immutable
:class:`RaceResult`.  The pipeline per race is:

    Created -> Scored -> Resolved

1. Both participants are scored with the same track weights and
   independent draws from one ``numpy.random.Generator`` (challenger
   first, then opponent).
2. The winner is the higher score, or the lower finish time in timed
   modes.  Exact ties go to the challenger in every mode.
3. The relative score margin is bucketed into a :class:`MarginTier`.
4. Flavor events are drawn *after* the winner is fixed.

Three modes exist.  ``PVP`` and ``SOLO`` are timed races with a
multiplicative perturbation; ``SHOWDOWN`` is a bet-free score comparison
with an additive jitter.  Each mode's shape is held in a
:class:`ModeProfile` and the perturbation can be overridden per call.

The engine holds no state between calls and is safe to call concurrently
as long as each caller brings its own generator.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Hashable

import numpy as np
from numpy.random import Generator

from garage_engine.core.car import CarStats
from garage_engine.core.events import RaceEvent, generate_events
from garage_engine.core.scoring import Perturbation, finish_time, score
from garage_engine.core.track import TrackType, parse_track_type

logger = logging.getLogger("garage_engine.race")

# ---------------------------------------------------------------------------
# Modes
# ---------------------------------------------------------------------------


class RaceMode(str, Enum):
    PVP = "pvp"
    SOLO = "solo"
    SHOWDOWN = "showdown"


@dataclass(frozen=True)
class ModeProfile:
    """How a race mode scores and annotates a race.

    Attributes:
        perturbation: Random perturbation applied to each base score.
        time_based: Compare finish times (lower wins) instead of scores.
        event_count: Inclusive ``(min, max)`` number of flavor events.
    """

    perturbation: Perturbation
    time_based: bool
    event_count: tuple[int, int]


MODE_PROFILES: dict[RaceMode, ModeProfile] = {
    RaceMode.PVP: ModeProfile(Perturbation.multiplicative(), time_based=True, event_count=(3, 5)),
    RaceMode.SOLO: ModeProfile(Perturbation.multiplicative(), time_based=True, event_count=(3, 5)),
    RaceMode.SHOWDOWN: ModeProfile(Perturbation.additive(), time_based=False, event_count=(2, 3)),
}

# ---------------------------------------------------------------------------
# Margin
# ---------------------------------------------------------------------------

MARGIN_HAIR_PCT: float = 5.0
MARGIN_SMALL_PCT: float = 15.0
MARGIN_COMFORTABLE_PCT: float = 30.0


class MarginTier(str, Enum):
    HAIR = "by a hair"
    SMALL = "by a small margin"
    COMFORTABLE = "comfortably"
    LANDSLIDE = "by a landslide"


def margin_percent(a: float, b: float) -> float:
    """Relative difference of two scores as a percentage of their mean.

    Returns 0.0 when both scores are 0.
    """
    mean = (a + b) / 2.0
    if mean == 0.0:
        return 0.0
    return abs((a - b) / mean * 100.0)


def margin_tier(percent: float) -> MarginTier:
    if percent < MARGIN_HAIR_PCT:
        return MarginTier.HAIR
    if percent < MARGIN_SMALL_PCT:
        return MarginTier.SMALL
    if percent < MARGIN_COMFORTABLE_PCT:
        return MarginTier.COMFORTABLE
    return MarginTier.LANDSLIDE


# ---------------------------------------------------------------------------
# Participants and results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RaceParticipant:
    """A car entering a race.

    Attributes:
        stats: The car's race-day stats.
        identity: Opaque label (account id, ``"challenger"``, ``"AI"``...).
            The engine only echoes it back.
    """

    stats: CarStats
    identity: Hashable


@dataclass(frozen=True)
class RaceResult:
    """Outcome of a single race.

    Attributes:
        winner: Identity of the winning participant.
        challenger_score: Perturbed challenger score.
        opponent_score: Perturbed opponent score.
        challenger_time: Challenger finish time, ``None`` in score modes.
        opponent_time: Opponent finish time, ``None`` in score modes.
        margin: Qualitative margin tier.
        margin_percent: Relative score difference in percent.
        events: Flavor events sorted by timestamp.
        track: Track raced on.
        mode: Race mode.
        challenger_won: Whether the challenger won.
    """

    winner: Hashable
    challenger_score: float
    opponent_score: float
    challenger_time: float | None
    opponent_time: float | None
    margin: MarginTier
    margin_percent: float
    events: tuple[RaceEvent, ...]
    track: TrackType
    mode: RaceMode
    challenger_won: bool

    @property
    def time_difference(self) -> float | None:
        if self.challenger_time is None or self.opponent_time is None:
            return None
        return round(abs(self.challenger_time - self.opponent_time), 2)

    def to_dict(self) -> dict[str, object]:
        """JSON-friendly view stored as the race record's ``race_data``."""
        return {
            "winner": "challenger" if self.challenger_won else "opponent",
            "challengerScore": self.challenger_score,
            "opponentScore": self.opponent_score,
            "challengerTime": self.challenger_time,
            "opponentTime": self.opponent_time,
            "timeDifference": self.time_difference,
            "margin": self.margin.value,
            "marginPercent": self.margin_percent,
            "events": [e.to_dict() for e in self.events],
            "trackType": self.track.value,
            "mode": self.mode.value,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def resolve_race(
    challenger: RaceParticipant,
    opponent: RaceParticipant,
    track: TrackType | str,
    mode: RaceMode = RaceMode.PVP,
    rng: Generator | None = None,
    perturbation: Perturbation | None = None,
) -> RaceResult:
    """Score two participants on a track and decide the winner.

    Args:
        challenger: The participant who started the race.  Wins exact ties.
        opponent: The other participant (player or AI).
        track: Track type; validated before anything is drawn.
        mode: Race mode; selects the perturbation, comparison and event
            count from :data:`MODE_PROFILES`.
        rng: Source of randomness.  ``None`` uses fresh OS entropy.
        perturbation: Optional override of the mode's perturbation, e.g.
            :data:`~garage_engine.core.scoring.NO_PERTURBATION` for a fully
            deterministic comparison.

    Returns:
        An immutable :class:`RaceResult`.

    Raises:
        UnknownTrackTypeError: If *track* names no track type.
    """
    track_type = parse_track_type(track)
    mode = RaceMode(mode)
    profile = MODE_PROFILES[mode]
    shape = perturbation if perturbation is not None else profile.perturbation
    generator: Generator = rng if rng is not None else np.random.default_rng()

    # -- Scored ---------------------------------------------------------------
    challenger_score = score(challenger.stats, track_type, shape, generator)
    opponent_score = score(opponent.stats, track_type, shape, generator)

    challenger_time: float | None = None
    opponent_time: float | None = None
    if profile.time_based:
        challenger_time = finish_time(challenger_score)
        opponent_time = finish_time(opponent_score)
        challenger_won = challenger_time <= opponent_time
    else:
        challenger_won = challenger_score >= opponent_score

    # -- Resolved -------------------------------------------------------------
    pct = margin_percent(challenger_score, opponent_score)
    events = generate_events(
        challenger.identity, opponent.identity, profile.event_count, generator
    )
    winner = challenger.identity if challenger_won else opponent.identity

    logger.debug(
        "%s race on %s: %.2f vs %.2f -> %s",
        mode.value,
        track_type.value,
        challenger_score,
        opponent_score,
        winner,
    )

    return RaceResult(
        winner=winner,
        challenger_score=challenger_score,
        opponent_score=opponent_score,
        challenger_time=challenger_time,
        opponent_time=opponent_time,
        margin=margin_tier(pct),
        margin_percent=pct,
        events=events,
        track=track_type,
        mode=mode,
        challenger_won=challenger_won,
    )
