"""Rarity and key-tier catalogue for the garage race engine.

Both rarities and key tiers are closed enumerations.  Every table keyed by
them is complete, so a lookup can never miss at runtime.  The module-level
check at the bottom enforces that when the module is imported.
"""

from __future__ import annotations

from enum import Enum


class Rarity(str, Enum):
    """Rarity tier attached to cars (and indirectly to keys)."""

    COMMON = "common"
    UNCOMMON = "uncommon"
    RARE = "rare"
    EPIC = "epic"
    LEGENDARY = "legendary"
    MYTHIC = "mythic"

    @property
    def display_name(self) -> str:
        return self.value.capitalize()


class KeyTier(str, Enum):
    """Consumable gacha key tier."""

    STANDARD = "standard"
    PREMIUM = "premium"
    LEGENDARY = "legendary"
    MYTHIC = "mythic"

    @property
    def display_name(self) -> str:
        return f"{self.value.capitalize()} Key"


# ---------------------------------------------------------------------------
# Base rarity chances (flat roll).  Sums to 1.0.
# ---------------------------------------------------------------------------

RARITY_CHANCES: dict[Rarity, float] = {
    Rarity.COMMON: 0.25,
    Rarity.UNCOMMON: 0.25,
    Rarity.RARE: 0.25,
    Rarity.EPIC: 0.15,
    Rarity.LEGENDARY: 0.07,
    Rarity.MYTHIC: 0.03,
}

# ---------------------------------------------------------------------------
# Per-key rarity boosts.  A boost of 0.0 excludes the rarity entirely.
# ---------------------------------------------------------------------------

KEY_RARITY_BOOSTS: dict[KeyTier, dict[Rarity, float]] = {
    KeyTier.STANDARD: {
        Rarity.COMMON: 2.0,
        Rarity.UNCOMMON: 1.5,
        Rarity.RARE: 1.0,
        Rarity.EPIC: 0.3,
        Rarity.LEGENDARY: 0.1,
        Rarity.MYTHIC: 0.05,
    },
    KeyTier.PREMIUM: {
        Rarity.COMMON: 3.5,
        Rarity.UNCOMMON: 2.0,
        Rarity.RARE: 1.5,
        Rarity.EPIC: 1.0,
        Rarity.LEGENDARY: 0.5,
        Rarity.MYTHIC: 0.1,
    },
    KeyTier.LEGENDARY: {
        Rarity.COMMON: 0.1,
        Rarity.UNCOMMON: 0.2,
        Rarity.RARE: 1.0,
        Rarity.EPIC: 3.0,
        Rarity.LEGENDARY: 2.5,
        Rarity.MYTHIC: 1.0,
    },
    KeyTier.MYTHIC: {
        Rarity.COMMON: 0.0,
        Rarity.UNCOMMON: 0.0,
        Rarity.RARE: 0.5,
        Rarity.EPIC: 1.0,
        Rarity.LEGENDARY: 3.0,
        Rarity.MYTHIC: 5.0,
    },
}


def parse_key_tier(value: str | KeyTier) -> KeyTier:
    """Resolve a key tier from a case-insensitive name.

    Raises:
        ValueError: If *value* does not name a key tier.
    """
    if isinstance(value, KeyTier):
        return value
    try:
        return KeyTier(str(value).strip().lower())
    except ValueError:
        raise ValueError(f"Unknown key tier: {value!r}") from None


def _check_tables() -> None:
    for tier in KeyTier:
        missing = set(Rarity) - set(KEY_RARITY_BOOSTS[tier])
        if missing:
            raise RuntimeError(f"{tier} boost table is missing {sorted(missing)}")
    if set(RARITY_CHANCES) != set(Rarity):
        raise RuntimeError("RARITY_CHANCES does not cover every Rarity")


_check_tables()
