"""Track model for the garage race engine.

A track type reweights which car stats matter.  The weight table below is
the single canonical table used by race scoring, showdowns and the
car-inspection ratings alike.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from garage_engine.errors import UnknownTrackTypeError


class TrackType(str, Enum):
    STREET = "street"
    CIRCUIT = "circuit"
    DRAG = "drag"
    OFFROAD = "offroad"
    DRIFT = "drift"

    @property
    def display_name(self) -> str:
        return "Off-road" if self is TrackType.OFFROAD else self.value.capitalize()


@dataclass(frozen=True)
class TrackWeights:
    """Linear weights over (speed, acceleration, handling, boost).

    Attributes:
        speed: Weight on the speed stat (0.0-1.0).
        acceleration: Weight on the acceleration stat (0.0-1.0).
        handling: Weight on the handling stat (0.0-1.0).
        boost: Weight on the boost stat (0.0-1.0).
    """

    speed: float
    acceleration: float
    handling: float
    boost: float

    def __post_init__(self) -> None:
        """Validate weight parameters."""
        for name, value in zip(("speed", "acceleration", "handling", "boost"), self.as_tuple()):
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} weight must be between 0.0 and 1.0.")
        if abs(sum(self.as_tuple()) - 1.0) > 1e-9:
            raise ValueError("track weights must sum to 1.0.")

    def as_tuple(self) -> tuple[float, float, float, float]:
        return (self.speed, self.acceleration, self.handling, self.boost)


TRACK_WEIGHTS: dict[TrackType, TrackWeights] = {
    TrackType.STREET: TrackWeights(speed=0.30, acceleration=0.30, handling=0.25, boost=0.15),
    TrackType.CIRCUIT: TrackWeights(speed=0.25, acceleration=0.15, handling=0.45, boost=0.15),
    TrackType.DRAG: TrackWeights(speed=0.45, acceleration=0.40, handling=0.05, boost=0.10),
    TrackType.OFFROAD: TrackWeights(speed=0.15, acceleration=0.20, handling=0.30, boost=0.35),
    TrackType.DRIFT: TrackWeights(speed=0.20, acceleration=0.15, handling=0.50, boost=0.15),
}

TRACK_DESCRIPTIONS: dict[TrackType, str] = {
    TrackType.STREET: "Balanced city course; speed and acceleration matter most.",
    TrackType.CIRCUIT: "Technical circuit that rewards handling and consistent speed.",
    TrackType.DRAG: "Straight-line sprint; all about speed and acceleration.",
    TrackType.OFFROAD: "Rough terrain favouring handling and boost.",
    TrackType.DRIFT: "Tight corners where handling dominates.",
}


def parse_track_type(value: str | TrackType) -> TrackType:
    """Resolve a track type from user or store input.

    Matching is case-insensitive and ignores surrounding whitespace.
    Unknown values are rejected rather than silently defaulted.

    Raises:
        UnknownTrackTypeError: If *value* names no track type.
    """
    if isinstance(value, TrackType):
        return value
    try:
        return TrackType(str(value).strip().lower())
    except ValueError:
        raise UnknownTrackTypeError(value) from None
