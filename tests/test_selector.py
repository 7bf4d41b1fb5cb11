"""Tests for weighted selection, gates and rarity rolls."""

from collections import Counter

import numpy as np
import pytest

from garage_engine.core.rarity import KeyTier, Rarity
from garage_engine.core.selector import (
    key_adjusted_chances,
    normalize,
    roll_gate,
    roll_rarity,
    roll_rarity_with_key,
    select,
)
from garage_engine.errors import InvalidWeightsError

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


def _sample_weights() -> list[tuple[str, float]]:
    return [("a", 1.0), ("b", 3.0), ("c", 6.0)]


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------


def test_frequencies_converge_to_relative_weights() -> None:
    """Over 20,000 draws each label's frequency is within 2% of weight/W."""
    rng = np.random.default_rng(7)
    weights = _sample_weights()
    total = sum(w for _, w in weights)
    n = 20_000
    counts = Counter(select(weights, rng) for _ in range(n))
    for label, w in weights:
        freq = counts[label] / n
        assert abs(freq - w / total) < 0.02, f"{label}: {freq:.4f} vs {w / total:.4f}"


def test_zero_weight_never_selected() -> None:
    """A label with weight 0 is never returned."""
    rng = np.random.default_rng(1)
    weights = [("never", 0.0), ("x", 1.0), ("also_never", 0.0), ("y", 1.0)]
    seen = {select(weights, rng) for _ in range(2000)}
    assert seen == {"x", "y"}


def test_single_positive_weight_always_selected() -> None:
    rng = np.random.default_rng(3)
    assert all(select([("a", 0.0), ("b", 5.0)], rng) == "b" for _ in range(100))


@pytest.mark.parametrize(
    "weights",
    [
        [],
        [("a", 0.0), ("b", 0.0)],
        [("a", -1.0), ("b", 2.0)],
        [("a", float("nan"))],
        [("a", float("inf"))],
    ],
)
def test_invalid_weights_raise(weights) -> None:
    """Empty, all-zero, negative and non-finite weights are invariant violations."""
    with pytest.raises(InvalidWeightsError):
        select(weights, np.random.default_rng(0))


def test_invalid_weights_is_value_error() -> None:
    """InvalidWeightsError can be caught as ValueError."""
    with pytest.raises(ValueError):
        select([], np.random.default_rng(0))


def test_normalize_sums_to_one() -> None:
    norm = normalize(_sample_weights())
    assert abs(sum(w for _, w in norm) - 1.0) < 1e-12
    assert [label for label, _ in norm] == ["a", "b", "c"], "order must be preserved"


def test_gate_extremes() -> None:
    """Probability 1 always passes; probability 0 never does."""
    rng = np.random.default_rng(11)
    assert all(roll_gate(1.0, rng) for _ in range(200))
    assert not any(roll_gate(0.0, rng) for _ in range(200))


def test_gate_rejects_out_of_range() -> None:
    with pytest.raises(ValueError):
        roll_gate(1.5, np.random.default_rng(0))


def test_gate_frequency() -> None:
    """A 5% gate fires about 5% of the time."""
    rng = np.random.default_rng(5)
    n = 20_000
    hits = sum(roll_gate(0.05, rng) for _ in range(n))
    assert abs(hits / n - 0.05) < 0.01


def test_flat_rarity_roll_covers_all_rarities() -> None:
    rng = np.random.default_rng(2)
    seen = {roll_rarity(rng) for _ in range(5000)}
    assert seen == set(Rarity)


def test_key_adjusted_chances_normalised() -> None:
    """Adjusted chances for every tier sum to 1."""
    for tier in KeyTier:
        chances = key_adjusted_chances(tier)
        assert abs(sum(chances.values()) - 1.0) < 1e-12, f"{tier} chances must sum to 1"


def test_mythic_key_values() -> None:
    """Mythic key: base chance times boost, renormalised."""
    chances = key_adjusted_chances(KeyTier.MYTHIC)
    total = 0.25 * 0.5 + 0.15 * 1.0 + 0.07 * 3.0 + 0.03 * 5.0
    assert chances[Rarity.COMMON] == 0.0
    assert chances[Rarity.UNCOMMON] == 0.0
    assert chances[Rarity.MYTHIC] == pytest.approx(0.15 / total)
    assert chances[Rarity.LEGENDARY] == pytest.approx(0.21 / total)


def test_zero_boost_rarity_never_rolled() -> None:
    """A mythic key can never produce a common or uncommon car."""
    rng = np.random.default_rng(9)
    rolls = {roll_rarity_with_key(KeyTier.MYTHIC, rng) for _ in range(5000)}
    assert Rarity.COMMON not in rolls
    assert Rarity.UNCOMMON not in rolls


def test_same_seed_same_rolls() -> None:
    r1 = [roll_rarity(np.random.default_rng(42)) for _ in range(5)]
    r2 = [roll_rarity(np.random.default_rng(42)) for _ in range(5)]
    assert r1 == r2
