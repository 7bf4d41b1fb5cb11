"""AI opponent generation for solo races.

The AI car mirrors the player's car: each stat is the player's stat scaled
by an independent uniform factor, floored, and capped at
:data:`AI_STAT_CAP`.  Its rarity label comes from a flat rarity roll and is
cosmetic only.
"""

from __future__ import annotations

import math

from numpy.random import Generator

from garage_engine.core.car import CarProfile, CarStats
from garage_engine.core.selector import roll_rarity

AI_STAT_SPREAD: tuple[float, float] = (0.85, 1.15)
AI_STAT_CAP: int = 100
AI_IDENTITY: str = "AI"


def generate_ai_opponent(
    player: CarStats,
    rng: Generator,
    spread: tuple[float, float] = AI_STAT_SPREAD,
    cap: int = AI_STAT_CAP,
) -> CarProfile:
    """Build an AI car around the player's stats.

    Args:
        player: The player's race-day stats.
        rng: Source of randomness.
        spread: ``(low, high)`` scaling factor range applied per stat.
        cap: Maximum value of any AI stat.

    Returns:
        A :class:`CarProfile` named ``"AI <Rarity> Challenger"``.

    Raises:
        ValueError: If *spread* is empty or negative.
    """
    low, high = spread
    if low < 0.0 or high < low:
        raise ValueError("spread must satisfy 0 <= low <= high.")

    rarity = roll_rarity(rng)
    scaled = [
        min(math.floor(value * float(rng.uniform(low, high))), cap)
        for value in player.clamped().as_tuple()
    ]
    return CarProfile(
        name=f"{AI_IDENTITY} {rarity.display_name} Challenger",
        stats=CarStats(*scaled),
        rarity=rarity,
    )
