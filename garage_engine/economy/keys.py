"""Key inventory helpers and key opening."""

from __future__ import annotations

import logging

from numpy.random import Generator

from garage_engine.core.rarity import KeyTier, Rarity, parse_key_tier
from garage_engine.core.selector import roll_rarity_with_key
from garage_engine.economy.store import KeyInventoryEntry, Store

logger = logging.getLogger("garage_engine.keys")


def grant_key(store: Store, account: str, tier: KeyTier, amount: int = 1) -> KeyInventoryEntry:
    """Add *amount* keys of *tier* to *account*, creating the entry if absent."""
    entry = store.get_or_create_key_entry(account, parse_key_tier(tier))
    return store.increment_key_entry(entry.entry_id, amount)


def key_count(store: Store, account: str, tier: KeyTier) -> int:
    tier = parse_key_tier(tier)
    return sum(e.quantity for e in store.list_keys(account) if e.tier is tier)


def open_key(store: Store, account: str, tier: KeyTier | str, rng: Generator) -> Rarity | None:
    """Consume one key and roll a car rarity with the key's boosts.

    Returns:
        The rolled rarity, or ``None`` when the account holds no key of
        that tier.  Nothing is drawn from *rng* in that case.
    """
    tier = parse_key_tier(tier)
    if not store.consume_key(account, tier):
        return None
    rarity = roll_rarity_with_key(tier, rng)
    logger.debug("%s opened a %s: %s", account, tier.display_name, rarity.value)
    return rarity
