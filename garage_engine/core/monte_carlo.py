"""Monte Carlo matchup analytics for the garage race engine.

Runs many seeded replications of :func:`resolve_race` for one matchup and
aggregates the outcomes into win probabilities and margin statistics.
Used by the matchup dashboard and the batch script; it never touches the
ledger.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Any

import numpy as np

from garage_engine.core.car import CarStats
from garage_engine.core.race import MarginTier, RaceMode, RaceParticipant, resolve_race
from garage_engine.core.track import TrackType, parse_track_type


def simulate_matchup_monte_carlo(
    challenger: CarStats,
    opponent: CarStats,
    track: TrackType | str,
    simulations: int,
    mode: RaceMode = RaceMode.PVP,
    base_seed: int = 42,
) -> dict[str, Any]:
    """Run a Monte Carlo ensemble of one matchup on one track.

    Each replication uses ``seed = base_seed + i`` so that results are
    reproducible given the same ``base_seed`` and no global random state
    is modified.

    Args:
        challenger: Challenger stats.
        opponent: Opponent stats.
        track: Track type.
        simulations: Number of replications (>= 1).
        mode: Race mode to simulate.
        base_seed: Starting seed value.

    Returns:
        Dictionary with keys:
            challenger_win_probability -- ``float``
            opponent_win_probability   -- ``float``
            mean_margin_percent        -- ``float``
            margin_distribution        -- ``{MarginTier.value: float}``

    Raises:
        ValueError: If simulations < 1.
        UnknownTrackTypeError: If *track* is not a track type.
    """
    if simulations < 1:
        raise ValueError("simulations must be >= 1.")
    track_type = parse_track_type(track)

    c = RaceParticipant(stats=challenger, identity="challenger")
    o = RaceParticipant(stats=opponent, identity="opponent")

    wins: int = 0
    margin_sum: float = 0.0
    margin_counts: dict[str, int] = defaultdict(int)

    for i in range(simulations):
        rng = np.random.default_rng(base_seed + i)
        result = resolve_race(c, o, track_type, mode, rng=rng)
        if result.challenger_won:
            wins += 1
        margin_sum += result.margin_percent
        margin_counts[result.margin.value] += 1

    inv: float = 1.0 / simulations
    return {
        "challenger_win_probability": wins * inv,
        "opponent_win_probability": (simulations - wins) * inv,
        "mean_margin_percent": margin_sum * inv,
        "margin_distribution": {
            tier.value: margin_counts[tier.value] * inv for tier in MarginTier
        },
    }


def simulate_all_tracks(
    challenger: CarStats,
    opponent: CarStats,
    simulations: int,
    mode: RaceMode = RaceMode.PVP,
    base_seed: int = 42,
) -> dict[TrackType, dict[str, Any]]:
    """Run :func:`simulate_matchup_monte_carlo` once per track type.

    Track *k* (in :class:`TrackType` order) uses
    ``base_seed + k * simulations`` so no two tracks share a seed.
    """
    return {
        track: simulate_matchup_monte_carlo(
            challenger,
            opponent,
            track,
            simulations,
            mode=mode,
            base_seed=base_seed + k * simulations,
        )
        for k, track in enumerate(TrackType)
    }
