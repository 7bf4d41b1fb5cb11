#!/usr/bin/env python
"""Batch Monte Carlo comparison of car matchups on every track.

This script:

1. Reads matchups from a YAML file (or uses the built-in sample pairs).
2. Runs :func:`simulate_all_tracks` for each pair.
3. Saves win probabilities to ``results/matchups.json`` and
   ``results/matchups.csv``.
4. Prints a summary table.

Usage
-----
::

    python scripts/simulate_matchups.py [matchups.yaml] [--simulations N]

Matchup file format::

    - name: speed vs handling
      challenger: {speed: 80, acceleration: 75, handling: 70, boost: 60}
      opponent:   {speed: 60, acceleration: 60, handling: 90, boost: 50}
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys

import pandas as pd
import yaml

# Ensure the project root is on the import path.
_project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from garage_engine.core.car import CarStats  # noqa: E402
from garage_engine.core.monte_carlo import simulate_all_tracks  # noqa: E402
from garage_engine.core.race import RaceMode  # noqa: E402

logger = logging.getLogger("garage_engine.scripts.simulate_matchups")

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

SIMULATIONS: int = 2000
BASE_SEED: int = 2024
RESULTS_DIR: str = os.path.join(_project_root, "results")

SAMPLE_MATCHUPS: list[dict[str, object]] = [
    {
        "name": "speed vs handling",
        "challenger": {"speed": 80, "acceleration": 75, "handling": 70, "boost": 60},
        "opponent": {"speed": 60, "acceleration": 60, "handling": 90, "boost": 50},
    },
    {
        "name": "dragster vs drifter",
        "challenger": {"speed": 95, "acceleration": 90, "handling": 40, "boost": 55},
        "opponent": {"speed": 55, "acceleration": 50, "handling": 95, "boost": 70},
    },
    {
        "name": "mirror match",
        "challenger": {"speed": 70, "acceleration": 70, "handling": 70, "boost": 70},
        "opponent": {"speed": 70, "acceleration": 70, "handling": 70, "boost": 70},
    },
]


def _load_matchups(path: str | None) -> list[dict[str, object]]:
    if path is None:
        return SAMPLE_MATCHUPS
    with open(path, encoding="utf-8") as fh:
        data = yaml.safe_load(fh)
    if not isinstance(data, list):
        raise ValueError(f"{path} must contain a list of matchups.")
    return data


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("matchups", nargs="?", help="YAML file listing matchups")
    parser.add_argument("--simulations", type=int, default=SIMULATIONS)
    parser.add_argument("--seed", type=int, default=BASE_SEED)
    parser.add_argument(
        "--mode",
        choices=[m.value for m in RaceMode],
        default=RaceMode.PVP.value,
    )
    return parser.parse_args(argv)


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> None:
    args = _parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")

    matchups = _load_matchups(args.matchups)
    mode = RaceMode(args.mode)
    rows: list[dict[str, object]] = []

    for k, matchup in enumerate(matchups):
        name = str(matchup.get("name", f"matchup {k + 1}"))
        challenger = CarStats.from_mapping(matchup["challenger"])
        opponent = CarStats.from_mapping(matchup["opponent"])
        logger.info("Simulating %s (%d runs per track)", name, args.simulations)

        per_track = simulate_all_tracks(
            challenger,
            opponent,
            args.simulations,
            mode=mode,
            base_seed=args.seed + k * 100_000,
        )
        for track, stats in per_track.items():
            rows.append(
                {
                    "matchup": name,
                    "track": track.value,
                    "challenger_win_probability": stats["challenger_win_probability"],
                    "mean_margin_percent": stats["mean_margin_percent"],
                    **{f"margin_{tier.replace(' ', '_')}": p for tier, p in stats["margin_distribution"].items()},
                }
            )

    df = pd.DataFrame(rows)

    os.makedirs(RESULTS_DIR, exist_ok=True)
    json_path = os.path.join(RESULTS_DIR, "matchups.json")
    csv_path = os.path.join(RESULTS_DIR, "matchups.csv")
    with open(json_path, "w", encoding="utf-8") as fh:
        json.dump(
            {
                "metadata": {
                    "simulations": args.simulations,
                    "base_seed": args.seed,
                    "mode": mode.value,
                },
                "results": rows,
            },
            fh,
            indent=2,
        )
    df.to_csv(csv_path, index=False)
    logger.info("Results saved to %s and %s", json_path, csv_path)

    # -- Summary --------------------------------------------------------------
    print("=" * 60)
    print("CHALLENGER WIN PROBABILITY BY TRACK")
    print("=" * 60)
    table = df.pivot(index="matchup", columns="track", values="challenger_win_probability")
    print(table.round(3).to_string())


if __name__ == "__main__":
    main()
