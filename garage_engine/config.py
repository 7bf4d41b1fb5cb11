"""Economy configuration loader for the garage race engine.

Bet limits, payout multipliers, reward-drop tables and the challenge TTL
can be tuned from a YAML file without touching code.  The code constants
below are the defaults; ``garage_engine/data/economy.yaml`` restates them
and is the file loaded when no other path is given.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from fractions import Fraction
from pathlib import Path

import yaml

from garage_engine.core.rarity import KeyTier, parse_key_tier
from garage_engine.errors import ConfigError

logger = logging.getLogger("garage_engine.config")

DATA_DIR: Path = Path(__file__).resolve().parent / "data"
ECONOMY_PATH: Path = DATA_DIR / "economy.yaml"
CONFIG_ENV_VAR: str = "GARAGE_ENGINE_CONFIG"

# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

MIN_BET: int = 100
PVP_WIN_MULTIPLIER: Fraction = Fraction(2)
SOLO_WIN_MULTIPLIER: Fraction = Fraction("1.8")
SOLO_REFUND_FRACTION: Fraction = Fraction("0.2")
CHALLENGE_TTL_SECONDS: float = 120.0

DROP_SOURCE_WIN: str = "RACE_WIN"
DROP_SOURCE_CONSOLATION: str = "RACE_CONSOLATION"


@dataclass(frozen=True)
class DropTable:
    """Gate probability plus an ordered tier distribution.

    Attributes:
        chance: Probability (0.0-1.0) that any drop happens.
        tiers: Ordered ``(KeyTier, weight)`` pairs rolled when the gate
            hits.  A single entry means no tier roll is needed.
        source: Activity-log source tag for the drop.
    """

    chance: float
    tiers: tuple[tuple[KeyTier, float], ...]
    source: str

    def __post_init__(self) -> None:
        if not 0.0 <= self.chance <= 1.0:
            raise ValueError("drop chance must be between 0.0 and 1.0.")
        if not self.tiers:
            raise ValueError("drop table must list at least one tier.")
        if any(w < 0.0 for _, w in self.tiers) or sum(w for _, w in self.tiers) <= 0.0:
            raise ValueError("drop tier weights must be >= 0 with a positive total.")


PVP_WIN_DROPS = DropTable(
    chance=0.05,
    tiers=(
        (KeyTier.STANDARD, 65.0),
        (KeyTier.PREMIUM, 25.0),
        (KeyTier.LEGENDARY, 8.0),
        (KeyTier.MYTHIC, 2.0),
    ),
    source=DROP_SOURCE_WIN,
)
SOLO_WIN_DROPS = DropTable(
    chance=0.08,
    tiers=(
        (KeyTier.STANDARD, 70.0),
        (KeyTier.PREMIUM, 20.0),
        (KeyTier.LEGENDARY, 9.0),
        (KeyTier.MYTHIC, 1.0),
    ),
    source=DROP_SOURCE_WIN,
)
SOLO_LOSS_DROPS = DropTable(
    chance=0.03,
    tiers=((KeyTier.STANDARD, 1.0),),
    source=DROP_SOURCE_CONSOLATION,
)


@dataclass(frozen=True)
class EconomyConfig:
    """Tunable economy parameters.

    Attributes:
        min_bet: Smallest accepted bet.
        pvp_win_multiplier: PvP payout as a multiple of the bet.
        solo_win_multiplier: Solo-win payout as a multiple of the bet.
        solo_refund_fraction: Solo-loss consolation refund fraction.
        challenge_ttl_seconds: Lifetime of a pending PvP challenge.
        pvp_win_drops: Drop table for a PvP win.
        solo_win_drops: Drop table for a solo win.
        solo_loss_drops: Consolation drop table for a solo loss.
    """

    min_bet: int = MIN_BET
    pvp_win_multiplier: Fraction = PVP_WIN_MULTIPLIER
    solo_win_multiplier: Fraction = SOLO_WIN_MULTIPLIER
    solo_refund_fraction: Fraction = SOLO_REFUND_FRACTION
    challenge_ttl_seconds: float = CHALLENGE_TTL_SECONDS
    pvp_win_drops: DropTable = field(default=PVP_WIN_DROPS)
    solo_win_drops: DropTable = field(default=SOLO_WIN_DROPS)
    solo_loss_drops: DropTable = field(default=SOLO_LOSS_DROPS)


DEFAULT_CONFIG = EconomyConfig()

# ---------------------------------------------------------------------------
# YAML loading
# ---------------------------------------------------------------------------

_REQUIRED_FIELDS: tuple[str, ...] = (
    "min_bet",
    "pvp_win_multiplier",
    "solo_win_multiplier",
    "solo_refund_fraction",
    "challenge_ttl_seconds",
    "drops",
)

_DROP_TABLES: tuple[str, ...] = ("pvp_win", "solo_win", "solo_loss")


def load_economy_config(path: Path | None = None) -> EconomyConfig:
    """Load the economy configuration from a YAML file.

    Resolution order: *path*, then the ``GARAGE_ENGINE_CONFIG``
    environment variable, then the bundled ``economy.yaml``.

    Args:
        path: Optional override for the configuration file path.

    Returns:
        A validated :class:`EconomyConfig`.

    Raises:
        FileNotFoundError: If the configuration file does not exist.
        ConfigError: If a field is missing, of the wrong type, or out of
            range.
    """
    env_path = os.getenv(CONFIG_ENV_VAR, "").strip()
    config_path = path or (Path(env_path).expanduser() if env_path else ECONOMY_PATH)
    if not config_path.exists():
        raise FileNotFoundError(f"Economy config not found: {config_path}")

    with open(config_path, encoding="utf-8") as fh:
        data = yaml.safe_load(fh)

    if not isinstance(data, dict):
        raise ConfigError(f"{config_path} must contain a mapping at the top level.")

    # --- Validate required fields ---
    for name in _REQUIRED_FIELDS:
        if name not in data:
            raise ConfigError(f"{config_path} is missing required field '{name}'")

    min_bet = data["min_bet"]
    if not isinstance(min_bet, int) or isinstance(min_bet, bool) or min_bet < 1:
        raise ConfigError(f"'min_bet' must be an integer >= 1, got {min_bet!r}")

    pvp_mult = _fraction(data, "pvp_win_multiplier", minimum=Fraction(1))
    solo_mult = _fraction(data, "solo_win_multiplier", minimum=Fraction(1))
    refund = _fraction(data, "solo_refund_fraction", minimum=Fraction(0))
    if refund >= 1:
        raise ConfigError(f"'solo_refund_fraction' must be < 1, got {data['solo_refund_fraction']!r}")

    ttl = data["challenge_ttl_seconds"]
    if not isinstance(ttl, (int, float)) or isinstance(ttl, bool) or ttl <= 0:
        raise ConfigError(f"'challenge_ttl_seconds' must be > 0, got {ttl!r}")

    drops = data["drops"]
    if not isinstance(drops, dict):
        raise ConfigError("'drops' must be a mapping.")
    tables: dict[str, DropTable] = {}
    for name in _DROP_TABLES:
        if name not in drops:
            raise ConfigError(f"'drops' is missing table '{name}'")
        tables[name] = _drop_table(name, drops[name])

    config = EconomyConfig(
        min_bet=min_bet,
        pvp_win_multiplier=pvp_mult,
        solo_win_multiplier=solo_mult,
        solo_refund_fraction=refund,
        challenge_ttl_seconds=float(ttl),
        pvp_win_drops=tables["pvp_win"],
        solo_win_drops=tables["solo_win"],
        solo_loss_drops=tables["solo_loss"],
    )
    logger.info("Loaded economy config from %s", config_path)
    return config


def _fraction(data: dict, name: str, minimum: Fraction) -> Fraction:
    raw = data[name]
    if isinstance(raw, bool) or not isinstance(raw, (int, float, str)):
        raise ConfigError(f"'{name}' must be numeric, got {type(raw).__name__}")
    try:
        # str() keeps decimal literals exact: 1.8 -> Fraction(9, 5).
        value = Fraction(str(raw))
    except ValueError:
        raise ConfigError(f"'{name}' must be numeric, got {raw!r}") from None
    if value < minimum:
        raise ConfigError(f"'{name}' must be >= {minimum}, got {raw!r}")
    return value


def _drop_table(name: str, entry: object) -> DropTable:
    if not isinstance(entry, dict):
        raise ConfigError(f"drop table '{name}' must be a mapping.")
    for key in ("chance", "tiers", "source"):
        if key not in entry:
            raise ConfigError(f"drop table '{name}' is missing '{key}'")

    raw_tiers = entry["tiers"]
    if not isinstance(raw_tiers, dict) or not raw_tiers:
        raise ConfigError(f"drop table '{name}': 'tiers' must be a non-empty mapping.")

    tiers: list[tuple[KeyTier, float]] = []
    for tier_name, weight in raw_tiers.items():
        try:
            tier = parse_key_tier(tier_name)
        except ValueError as exc:
            raise ConfigError(f"drop table '{name}': {exc}") from None
        if isinstance(weight, bool) or not isinstance(weight, (int, float)):
            raise ConfigError(f"drop table '{name}': weight for '{tier_name}' must be numeric")
        tiers.append((tier, float(weight)))

    try:
        return DropTable(
            chance=float(entry["chance"]),
            tiers=tuple(tiers),
            source=str(entry["source"]),
        )
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"drop table '{name}': {exc}") from None
