"""Garage Race Matchup Explorer.

Interactive dashboard built with Streamlit and Plotly.  Compare two cars
on every track type: deterministic base scores, cosmetic track ratings,
Monte Carlo win probabilities and margin distributions, plus a preview
of the effective stats after weather and driver skills.

Launch with::

    streamlit run dashboard/app.py
"""

from __future__ import annotations

import pandas as pd
import plotly.graph_objects as go
import streamlit as st

from garage_engine.core.car import CarStats, DriverSkills, Weather, effective_stats
from garage_engine.core.monte_carlo import simulate_all_tracks
from garage_engine.core.race import MarginTier, RaceMode
from garage_engine.core.scoring import base_score, rate_all_tracks
from garage_engine.core.track import TRACK_DESCRIPTIONS, TrackType

# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

_DEFAULT_CHALLENGER: dict[str, int] = {"speed": 80, "acceleration": 75, "handling": 70, "boost": 60}
_DEFAULT_OPPONENT: dict[str, int] = {"speed": 60, "acceleration": 60, "handling": 90, "boost": 50}

_CHALLENGER_COLOR = "#e10600"
_OPPONENT_COLOR = "#1e1e1e"


def _stat_inputs(label: str, defaults: dict[str, int]) -> CarStats:
    """Sidebar sliders for one car's four stats."""
    st.sidebar.subheader(label)
    values = {
        name: st.sidebar.slider(
            f"{label} {name}",
            min_value=0,
            max_value=120,
            value=value,
            key=f"{label}-{name}",
        )
        for name, value in defaults.items()
    }
    return CarStats.from_mapping(values)


def _skill_inputs(label: str) -> DriverSkills:
    with st.sidebar.expander(f"{label} driver skills"):
        return DriverSkills(
            circuit=st.number_input("Circuit", 1, 10, 1, key=f"{label}-circuit"),
            drag=st.number_input("Drag", 1, 10, 1, key=f"{label}-drag"),
            drift=st.number_input("Drift", 1, 10, 1, key=f"{label}-drift"),
        )


# ---------------------------------------------------------------------------
# Streamlit app
# ---------------------------------------------------------------------------


def main() -> None:
    """Entry point for the Streamlit dashboard."""
    st.set_page_config(page_title="Garage Race Matchups", layout="wide")
    st.title("Garage Race Matchup Explorer")

    # ── Sidebar ──────────────────────────────────────────────────────────
    st.sidebar.header("Cars")
    challenger_base = _stat_inputs("Challenger", _DEFAULT_CHALLENGER)
    opponent_base = _stat_inputs("Opponent", _DEFAULT_OPPONENT)
    challenger_skills = _skill_inputs("Challenger")
    opponent_skills = _skill_inputs("Opponent")

    st.sidebar.header("Conditions")
    weather = Weather(
        st.sidebar.selectbox("Weather", options=[w.value for w in Weather], index=0)
    )
    mode = RaceMode(
        st.sidebar.selectbox("Race mode", options=[m.value for m in RaceMode], index=0)
    )
    simulations: int = st.sidebar.slider(
        "Monte Carlo races per track",
        min_value=100,
        max_value=10_000,
        value=1000,
        step=100,
    )

    challenger = effective_stats(challenger_base, skills=challenger_skills, weather=weather)
    opponent = effective_stats(opponent_base, skills=opponent_skills, weather=weather)

    # ── Section 1: Effective stats ───────────────────────────────────────
    st.header("1 -- Race-day Stats")
    st.dataframe(
        pd.DataFrame(
            {
                "Challenger": challenger.as_tuple(),
                "Opponent": opponent.as_tuple(),
            },
            index=["Speed", "Acceleration", "Handling", "Boost"],
        )
    )

    # ── Section 2: Base scores and ratings ───────────────────────────────
    st.header("2 -- Track Suitability")

    tracks = list(TrackType)
    names = [t.display_name for t in tracks]
    c_ratings = rate_all_tracks(challenger)
    o_ratings = rate_all_tracks(opponent)

    fig_scores = go.Figure(
        [
            go.Bar(
                name="Challenger",
                x=names,
                y=[base_score(challenger, t) for t in tracks],
                text=[c_ratings[t].label for t in tracks],
                marker_color=_CHALLENGER_COLOR,
            ),
            go.Bar(
                name="Opponent",
                x=names,
                y=[base_score(opponent, t) for t in tracks],
                text=[o_ratings[t].label for t in tracks],
                marker_color=_OPPONENT_COLOR,
            ),
        ]
    )
    fig_scores.update_layout(
        title="Unperturbed Score by Track",
        yaxis_title="Score",
        barmode="group",
        height=400,
    )
    st.plotly_chart(fig_scores, use_container_width=True)

    with st.expander("Track descriptions"):
        for t in tracks:
            st.write(f"**{t.display_name}**: {TRACK_DESCRIPTIONS[t]}")

    # ── Section 3: Monte Carlo ───────────────────────────────────────────
    st.header("3 -- Win Probabilities")

    if st.button("Run Matchup Simulation"):
        with st.spinner("Running Monte Carlo races..."):
            st.session_state["matchup"] = simulate_all_tracks(
                challenger, opponent, simulations, mode=mode, base_seed=42
            )

    if "matchup" not in st.session_state:
        st.info('Adjust the cars in the sidebar, then press "Run Matchup Simulation".')
        return

    results = st.session_state["matchup"]

    col_win, col_margin = st.columns(2)

    with col_win:
        fig_win = go.Figure(
            go.Bar(
                x=[results[t]["challenger_win_probability"] for t in tracks],
                y=names,
                orientation="h",
                marker_color=_CHALLENGER_COLOR,
            )
        )
        fig_win.update_layout(
            title="Challenger Win Probability",
            xaxis=dict(range=[0, 1], title="Probability"),
            yaxis=dict(autorange="reversed"),
            height=400,
        )
        st.plotly_chart(fig_win, use_container_width=True)

    with col_margin:
        fig_margin = go.Figure(
            [
                go.Bar(
                    name=tier.value,
                    x=names,
                    y=[results[t]["margin_distribution"][tier.value] for t in tracks],
                )
                for tier in MarginTier
            ]
        )
        fig_margin.update_layout(
            title="Margin Distribution",
            yaxis_title="Share of races",
            barmode="stack",
            height=400,
        )
        st.plotly_chart(fig_margin, use_container_width=True)

    # ── Footer ───────────────────────────────────────────────────────────
    st.markdown("---")
    st.caption("Simulated races never touch balances or key inventories.")


if __name__ == "__main__":
    main()
