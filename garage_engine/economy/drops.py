"""Probabilistic key drops after a settled race.

A drop is two sequential selector calls: a gate roll against
``DropTable.chance``, then (when the gate hits and the table lists more
than one tier) a tier roll.  Granting the key is best-effort: the payout
has already been committed, so a failing grant is logged and reported on
the :class:`DropOutcome` instead of raised.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from numpy.random import Generator

from garage_engine.config import DEFAULT_CONFIG, DropTable, EconomyConfig
from garage_engine.core.race import RaceMode
from garage_engine.core.rarity import KeyTier
from garage_engine.core.selector import roll_gate, select
from garage_engine.core.track import TrackType
from garage_engine.economy.keys import grant_key
from garage_engine.economy.store import ActivityLogEntry, Store

logger = logging.getLogger("garage_engine.drops")

KEY_EARNED: str = "KEY_EARNED"


@dataclass(frozen=True)
class DropOutcome:
    """Result of a drop attempt.

    Attributes:
        tier: Key tier rolled, or ``None`` when nothing dropped.
        source: Drop source tag (``RACE_WIN`` / ``RACE_CONSOLATION``).
        granted: Whether the key reached the inventory.
        warning: Set when the grant or its activity log failed after a
            successful roll.
    """

    tier: KeyTier | None = None
    source: str | None = None
    granted: bool = False
    warning: str | None = None


NO_DROP = DropOutcome()


def roll_drop(table: DropTable, rng: Generator) -> KeyTier | None:
    """Roll the gate, then the tier.  Pure apart from the generator draws."""
    if not roll_gate(table.chance, rng):
        return None
    if len(table.tiers) == 1:
        return table.tiers[0][0]
    return select(table.tiers, rng)


def drop_table_for(
    mode: RaceMode, won: bool, config: EconomyConfig = DEFAULT_CONFIG
) -> DropTable | None:
    """Pick the drop table for a race outcome; ``None`` means no drop."""
    mode = RaceMode(mode)
    if mode is RaceMode.PVP:
        return config.pvp_win_drops if won else None
    if mode is RaceMode.SOLO:
        return config.solo_win_drops if won else config.solo_loss_drops
    return None


class DropResolver:
    """Rolls and grants race-reward keys."""

    def __init__(self, store: Store, config: EconomyConfig = DEFAULT_CONFIG) -> None:
        self.store = store
        self.config = config

    def resolve(
        self,
        account: str,
        mode: RaceMode,
        won: bool,
        track: TrackType,
        rng: Generator,
    ) -> DropOutcome:
        table = drop_table_for(mode, won, self.config)
        if table is None:
            return NO_DROP

        tier = roll_drop(table, rng)
        if tier is None:
            logger.debug("No key drop for %s (%s)", account, table.source)
            return NO_DROP

        try:
            grant_key(self.store, account, tier)
        except Exception as exc:
            logger.warning("Failed to grant %s key to %s: %s", tier.value, account, exc)
            return DropOutcome(
                tier=tier,
                source=table.source,
                granted=False,
                warning=f"{tier.display_name} could not be added to the garage: {exc}",
            )
        logger.info("%s earned a %s (%s)", account, tier.display_name, table.source)

        try:
            self.store.record_activity_log(
                ActivityLogEntry(
                    account=account,
                    kind=KEY_EARNED,
                    details={
                        "keyType": tier.value,
                        "source": table.source,
                        "track": track.value,
                    },
                )
            )
        except Exception as exc:
            logger.warning("Key drop for %s was granted but not logged: %s", account, exc)
            return DropOutcome(
                tier=tier,
                source=table.source,
                granted=True,
                warning=f"{tier.display_name} was added but its activity entry was not saved: {exc}",
            )
        return DropOutcome(tier=tier, source=table.source, granted=True)
