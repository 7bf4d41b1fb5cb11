"""Car stat model for the garage race engine.

A :class:`CarStats` bundle is the only thing the race engine needs from a
car.  The owning car entity lives in the store; the engine works on the
value alone.

Effective stats fold installed performance parts, driver skill levels and
the current weather into the base stats before a race is scored.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable

from garage_engine.core.rarity import Rarity

STAT_NAMES: tuple[str, ...] = ("speed", "acceleration", "handling", "boost")


@dataclass(frozen=True)
class CarStats:
    """Racing capability of one car at the moment of a race.

    Stats are conceptually in ``[0, 100]`` but neither bound is enforced:
    upgrades may push a stat past 100, and malformed rows may carry
    negatives.  Scoring always goes through :meth:`clamped`.

    Attributes:
        speed: Top-speed rating.
        acceleration: Launch and pickup rating.
        handling: Cornering rating.
        boost: Nitrous / burst rating.
    """

    speed: int
    acceleration: int
    handling: int
    boost: int

    def clamped(self) -> CarStats:
        """Return a copy with every negative stat raised to 0."""
        if min(self.as_tuple()) >= 0:
            return self
        return CarStats(*(max(0, v) for v in self.as_tuple()))

    def as_tuple(self) -> tuple[int, int, int, int]:
        return (self.speed, self.acceleration, self.handling, self.boost)

    def total(self) -> int:
        return sum(self.clamped().as_tuple())

    @classmethod
    def from_mapping(cls, data: dict) -> CarStats:
        """Build stats from a store row or JSON payload; missing stats are 0."""
        return cls(*(int(data.get(name, 0) or 0) for name in STAT_NAMES))


# ---------------------------------------------------------------------------
# Effective stats: parts, driver skills, weather
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PartBonus:
    """Flat stat bonus granted by one installed performance part."""

    name: str
    speed: int = 0
    acceleration: int = 0
    handling: int = 0
    boost: int = 0


@dataclass(frozen=True)
class DriverSkills:
    """Driver skill levels (1 = untrained) for the three race disciplines.

    Each level above 1 grants:
        circuit: +2 handling
        drag: +2 acceleration
        drift: +1 handling and +1 boost
    """

    circuit: int = 1
    drag: int = 1
    drift: int = 1

    def __post_init__(self) -> None:
        for name in ("circuit", "drag", "drift"):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} skill level must be >= 1.")


class Weather(str, Enum):
    CLEAR = "clear"
    RAIN = "rain"
    SNOW = "snow"
    FOG = "fog"
    NIGHT = "night"
    HEAT = "heat"


@dataclass(frozen=True)
class WeatherEffect:
    """Multipliers applied to speed, acceleration and handling.  Boost is unaffected."""

    speed: float = 1.0
    acceleration: float = 1.0
    handling: float = 1.0


WEATHER_EFFECTS: dict[Weather, WeatherEffect] = {
    Weather.CLEAR: WeatherEffect(1.0, 1.0, 1.0),
    Weather.RAIN: WeatherEffect(0.9, 0.85, 0.7),
    Weather.SNOW: WeatherEffect(0.7, 0.6, 0.5),
    Weather.FOG: WeatherEffect(0.8, 0.9, 0.85),
    Weather.NIGHT: WeatherEffect(0.9, 0.95, 0.85),
    Weather.HEAT: WeatherEffect(0.85, 0.8, 0.95),
}


def effective_stats(
    base: CarStats,
    parts: Iterable[PartBonus] = (),
    skills: DriverSkills | None = None,
    weather: Weather = Weather.CLEAR,
) -> CarStats:
    """Combine base stats with parts, skills and weather.

    Order of application: part bonuses are summed onto the base, driver
    skill bonuses are added, then weather multipliers scale speed,
    acceleration and handling.  Each stat is rounded to the nearest int
    (half away from zero).

    Args:
        base: The car's own stats.
        parts: Installed performance parts.
        skills: Driver skill levels, if any.
        weather: Current race weather.

    Returns:
        New :class:`CarStats` reflecting the race-day car.
    """
    speed, accel, handling, boost = (float(v) for v in base.as_tuple())

    for part in parts:
        speed += part.speed
        accel += part.acceleration
        handling += part.handling
        boost += part.boost

    if skills is not None:
        handling += (skills.circuit - 1) * 2
        accel += (skills.drag - 1) * 2
        handling += skills.drift - 1
        boost += skills.drift - 1

    effect = WEATHER_EFFECTS[weather]
    speed *= effect.speed
    accel *= effect.acceleration
    handling *= effect.handling

    return CarStats(
        speed=_round_half_up(speed),
        acceleration=_round_half_up(accel),
        handling=_round_half_up(handling),
        boost=_round_half_up(boost),
    )


def _round_half_up(value: float) -> int:
    # Python's round() is banker's rounding; stats round .5 upward.
    return int(value + 0.5) if value >= 0 else -int(-value + 0.5)


@dataclass(frozen=True)
class CarProfile:
    """A named car as the presentation layer hands it to the engine."""

    name: str
    stats: CarStats
    rarity: Rarity = Rarity.COMMON
    parts: tuple[PartBonus, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Car name must not be empty.")

    def race_stats(
        self,
        skills: DriverSkills | None = None,
        weather: Weather = Weather.CLEAR,
    ) -> CarStats:
        """Stats to race with once parts, skills and weather are applied."""
        return effective_stats(self.stats, self.parts, skills, weather)
