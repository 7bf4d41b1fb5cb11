"""Core race simulation modules for the garage race engine."""

from garage_engine.core.car import (
    CarProfile,
    CarStats,
    DriverSkills,
    PartBonus,
    Weather,
    effective_stats,
)
from garage_engine.core.events import EventKind, RaceEvent, generate_events
from garage_engine.core.monte_carlo import (
    simulate_all_tracks,
    simulate_matchup_monte_carlo,
)
from garage_engine.core.opponent import generate_ai_opponent
from garage_engine.core.race import (
    MODE_PROFILES,
    MarginTier,
    ModeProfile,
    RaceMode,
    RaceParticipant,
    RaceResult,
    resolve_race,
)
from garage_engine.core.rarity import KeyTier, Rarity
from garage_engine.core.scoring import (
    BASE_TIME,
    NO_PERTURBATION,
    Perturbation,
    PerturbationKind,
    TrackRating,
    base_score,
    finish_time,
    rate_all_tracks,
    score,
    track_rating,
)
from garage_engine.core.selector import (
    key_adjusted_chances,
    roll_gate,
    roll_rarity,
    roll_rarity_with_key,
    select,
)
from garage_engine.core.track import TRACK_WEIGHTS, TrackType, TrackWeights, parse_track_type

__all__ = [
    "BASE_TIME",
    "CarProfile",
    "CarStats",
    "DriverSkills",
    "EventKind",
    "KeyTier",
    "MODE_PROFILES",
    "MarginTier",
    "ModeProfile",
    "NO_PERTURBATION",
    "PartBonus",
    "Perturbation",
    "PerturbationKind",
    "RaceEvent",
    "RaceMode",
    "RaceParticipant",
    "RaceResult",
    "Rarity",
    "TRACK_WEIGHTS",
    "TrackRating",
    "TrackType",
    "TrackWeights",
    "Weather",
    "base_score",
    "effective_stats",
    "finish_time",
    "generate_ai_opponent",
    "generate_events",
    "key_adjusted_chances",
    "parse_track_type",
    "rate_all_tracks",
    "resolve_race",
    "roll_gate",
    "roll_rarity",
    "roll_rarity_with_key",
    "score",
    "select",
    "simulate_all_tracks",
    "simulate_matchup_monte_carlo",
    "track_rating",
]
