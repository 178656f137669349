"""Monte Carlo simulation of a seeded bracket."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

import numpy as np
import polars as pl

from power_ratings.bracket.models import Side
from power_ratings.bracket.projector import championship_matchup
from power_ratings.core.constants import (
    DEFAULT_HCA,
    DEFAULT_SIMULATIONS,
    SPREAD_DECIMAL_PLACES,
    WIN_PROB_EPSILON,
    WIN_PROB_K,
)
from power_ratings.core.logging import log_timing

if TYPE_CHECKING:
    from power_ratings.bracket.models import BracketMatchup, BracketTeam

logger = logging.getLogger(__name__)


@dataclass
class SimulationResult:
    """Per-team advancement probabilities.

    ``reach_probabilities[i, j]`` is the share of simulations in which team
    ``i`` played in round ``rounds[j]`` or a later round. A team entering on
    a bye therefore counts as having reached the rounds it skipped, so its
    early-round columns are 1.0 (reached or bypassed).
    """

    teams: list[BracketTeam]
    rounds: list[int]
    reach_probabilities: np.ndarray  # (n_teams, n_rounds)
    champion_probabilities: np.ndarray  # (n_teams,)
    n_simulations: int

    def probability_of(self, team_name: str) -> float:
        for index, team in enumerate(self.teams):
            if team.team_name == team_name:
                return float(self.champion_probabilities[index])
        raise KeyError(team_name)

    def to_dataframe(self) -> pl.DataFrame:
        """Convert results to a Polars DataFrame.

        Returns:
            One row per team with ``reach_round_{n}`` columns and
            ``champion``, sorted by championship probability.
        """
        dataframe = pl.DataFrame(
            {
                "team_name": [t.team_name for t in self.teams],
                "seed": [t.seed for t in self.teams],
                "rating": [t.rating for t in self.teams],
            }
        )
        for column, round_number in enumerate(self.rounds):
            dataframe = dataframe.with_columns(
                pl.Series(
                    f"reach_round_{round_number}",
                    self.reach_probabilities[:, column].tolist(),
                )
            )
        dataframe = dataframe.with_columns(
            pl.Series("champion", self.champion_probabilities.tolist())
        )
        return dataframe.sort(["champion", "seed"], descending=[True, False])


def _round_half_away(values: np.ndarray, places: int) -> np.ndarray:
    multiplier = 10.0**places
    return np.sign(values) * np.floor(np.abs(values) * multiplier + 0.5) / multiplier


class BracketSimulator:
    """Simulate a bracket many times at once.

    Every matchup is played for all simulations in one vectorised step,
    using the same neutral-site spread and logistic win probability as the
    projector.

    Args:
        hca: Home advantage. Unused for the neutral-site games but kept so
            callers can pass the projector's configuration through.
        seed: Random seed for reproducible runs.
        honor_overrides: Force a hand-picked winner whenever the simulated
            pairing equals the overridden pairing.
    """

    def __init__(
        self,
        hca: float = DEFAULT_HCA,
        seed: Optional[int] = None,
        honor_overrides: bool = True,
        k: float = WIN_PROB_K,
    ):
        self.hca = hca
        self.seed = seed
        self.honor_overrides = honor_overrides
        self.k = k

    def win_probability(
        self, top_ratings: np.ndarray, bottom_ratings: np.ndarray
    ) -> np.ndarray:
        """Top-side win probability for arrays of rating pairs."""
        spread = _round_half_away(
            -(top_ratings - bottom_ratings), SPREAD_DECIMAL_PLACES
        )
        probability = 1.0 / (1.0 + np.exp(np.clip(self.k * spread, -700, 700)))
        return np.clip(probability, WIN_PROB_EPSILON, 1.0 - WIN_PROB_EPSILON)

    def simulate(
        self,
        matchups: list[BracketMatchup],
        n_simulations: int = DEFAULT_SIMULATIONS,
    ) -> SimulationResult:
        """Run the simulations.

        Args:
            matchups: Bracket matchups; every seed-filled slot needs a team.
            n_simulations: Number of simulated tournaments.

        Returns:
            Advancement and championship probabilities per team.

        Raises:
            ValueError: If a seed slot has no team or n_simulations < 1.
        """
        if n_simulations < 1:
            raise ValueError("n_simulations must be at least 1")
        ordered = sorted(matchups, key=lambda m: (m.round, m.position))
        teams = self._seeded_teams(ordered)
        index_of = {team.team_name: i for i, team in enumerate(teams)}
        ratings = np.array([team.rating for team in teams], dtype=float)
        rounds = sorted({m.round for m in ordered})
        round_column = {r: i for i, r in enumerate(rounds)}

        rng = np.random.default_rng(self.seed)
        sims = np.arange(n_simulations)
        deepest = np.full((n_simulations, len(teams)), -1, dtype=np.int16)
        winners: dict[str, np.ndarray] = {}

        with log_timing(
            logger, f"{n_simulations} bracket simulations", level=logging.DEBUG
        ):
            for matchup in ordered:
                sides = []
                for side, source_id in zip(Side, matchup.source_matchup_ids):
                    if source_id is not None:
                        sides.append(winners[source_id])
                    else:
                        team = matchup.team_for(side)
                        sides.append(
                            np.full(n_simulations, index_of[team.team_name])
                        )
                top_idx, bottom_idx = sides

                column = round_column[matchup.round]
                for idx in (top_idx, bottom_idx):
                    deepest[sims, idx] = np.maximum(deepest[sims, idx], column)

                p_top = self.win_probability(ratings[top_idx], ratings[bottom_idx])
                if (
                    self.honor_overrides
                    and matchup.is_manual_override
                    and matchup.winner is not None
                    and matchup.has_both_teams
                ):
                    pinned = (
                        top_idx == index_of[matchup.top_team.team_name]
                    ) & (bottom_idx == index_of[matchup.bottom_team.team_name])
                    p_top = np.where(
                        pinned, 1.0 if matchup.winner is Side.TOP else 0.0, p_top
                    )

                top_wins = rng.random(n_simulations) < p_top
                winners[matchup.id] = np.where(top_wins, top_idx, bottom_idx)

        final = championship_matchup(ordered)
        champions = np.bincount(winners[final.id], minlength=len(teams))
        reach = np.stack(
            [(deepest >= column).mean(axis=0) for column in range(len(rounds))],
            axis=1,
        )
        logger.info(
            "Simulated %d tournaments for %d teams", n_simulations, len(teams)
        )
        return SimulationResult(
            teams=teams,
            rounds=rounds,
            reach_probabilities=reach,
            champion_probabilities=champions / n_simulations,
            n_simulations=n_simulations,
        )

    @staticmethod
    def _seeded_teams(ordered: list[BracketMatchup]) -> list[BracketTeam]:
        teams = []
        for matchup in ordered:
            for side, source_id in zip(Side, matchup.source_matchup_ids):
                if source_id is not None:
                    continue
                team = matchup.team_for(side)
                if team is None:
                    raise ValueError(
                        f"{matchup.id} has no {side.value} team; seed every "
                        f"slot before simulating"
                    )
                teams.append(team)
        return sorted(teams, key=lambda t: t.seed)
