"""Weighted random selection for the garage race engine.

Every probabilistic choice in the engine -- rarity rolls, key-adjusted
rarity rolls, reward-drop gates and drop tiers -- goes through
:func:`select`.  Randomness is supplied by an explicit
``numpy.random.Generator`` so callers control seeding and no global random
state is touched.
"""

from __future__ import annotations

import logging
import math
from typing import Hashable, Sequence, TypeVar

from numpy.random import Generator

from garage_engine.core.rarity import (
    KEY_RARITY_BOOSTS,
    RARITY_CHANCES,
    KeyTier,
    Rarity,
)
from garage_engine.errors import InvalidWeightsError

logger = logging.getLogger("garage_engine.selector")

T = TypeVar("T", bound=Hashable)


def select(outcomes: Sequence[tuple[T, float]], rng: Generator) -> T:
    """Pick one label from an ordered ``(label, weight)`` sequence.

    Weights are relative and need not sum to 1.  A single uniform value is
    drawn in ``[0, total)`` and the first positive-weight label whose
    cumulative boundary is ``>=`` the draw is returned.  Caller order is
    preserved, so the earlier label wins a boundary-equal draw.  Labels with
    weight 0 can never be returned.

    Args:
        outcomes: Ordered ``(label, weight)`` pairs.
        rng: Source of randomness.

    Returns:
        The selected label.

    Raises:
        InvalidWeightsError: If *outcomes* is empty, any weight is negative
            or non-finite, or all weights are zero.
    """
    if not outcomes:
        raise InvalidWeightsError("outcomes must not be empty.")

    total: float = 0.0
    for label, weight in outcomes:
        w = float(weight)
        if not math.isfinite(w) or w < 0.0:
            raise InvalidWeightsError(f"weight for {label!r} must be finite and >= 0, got {weight}")
        total += w
    if total <= 0.0:
        raise InvalidWeightsError("at least one weight must be > 0.")

    draw: float = float(rng.random()) * total
    cumulative: float = 0.0
    last_positive: T | None = None
    for label, weight in outcomes:
        w = float(weight)
        if w == 0.0:
            continue
        cumulative += w
        last_positive = label
        if draw <= cumulative:
            return label

    # Floating-point accumulation can leave the final boundary a hair
    # below the draw; the last positive-weight label owns that sliver.
    return last_positive  # type: ignore[return-value]


def normalize(weights: Sequence[tuple[T, float]]) -> list[tuple[T, float]]:
    """Return *weights* rescaled so they sum to 1.0, order preserved.

    Raises:
        InvalidWeightsError: Under the same conditions as :func:`select`.
    """
    if not weights:
        raise InvalidWeightsError("weights must not be empty.")
    for label, weight in weights:
        if not math.isfinite(float(weight)) or weight < 0.0:
            raise InvalidWeightsError(f"weight for {label!r} must be finite and >= 0, got {weight}")
    total = sum(float(w) for _, w in weights)
    if total <= 0.0:
        raise InvalidWeightsError("at least one weight must be > 0.")
    return [(label, float(w) / total) for label, w in weights]


def roll_gate(probability: float, rng: Generator) -> bool:
    """Binary gate: ``True`` with the given probability.

    Implemented as a two-outcome :func:`select` so gates share the exact
    draw semantics of every other roll.

    Raises:
        ValueError: If *probability* is outside ``[0, 1]``.
    """
    if not 0.0 <= probability <= 1.0:
        raise ValueError("probability must be between 0.0 and 1.0.")
    return select([(True, probability), (False, 1.0 - probability)], rng)


# ---------------------------------------------------------------------------
# Rarity rolls
# ---------------------------------------------------------------------------


def roll_rarity(rng: Generator) -> Rarity:
    """Flat rarity roll over :data:`RARITY_CHANCES`."""
    rarity = select(list(RARITY_CHANCES.items()), rng)
    logger.debug("flat rarity roll -> %s", rarity.value)
    return rarity


def key_adjusted_chances(tier: KeyTier) -> dict[Rarity, float]:
    """Rarity distribution after applying a key's boosts.

    Each base chance is multiplied by the tier's boost factor and the
    result is renormalised by the sum of adjusted weights.  Rarity order
    follows :class:`Rarity`.
    """
    boosts = KEY_RARITY_BOOSTS[tier]
    adjusted = [(rarity, RARITY_CHANCES[rarity] * boosts[rarity]) for rarity in Rarity]
    return dict(normalize(adjusted))


def roll_rarity_with_key(tier: KeyTier, rng: Generator) -> Rarity:
    """Rarity roll using the key-adjusted distribution for *tier*."""
    rarity = select(list(key_adjusted_chances(tier).items()), rng)
    logger.debug("%s key rarity roll -> %s", tier.value, rarity.value)
    return rarity
