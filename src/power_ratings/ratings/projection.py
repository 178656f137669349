"""Spread projection and spread-to-win-probability conversion.

All functions here are pure. Spreads use the home-perspective convention:
a negative spread means the home (or top) side is favored by ``|spread|``.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from power_ratings.core.constants import (
    RATING_DECIMAL_PLACES,
    SPREAD_DECIMAL_PLACES,
    WIN_PROB_EPSILON,
    WIN_PROB_K,
)


def round_to(value: float, places: int) -> float:
    """Round half away from zero to a fixed number of decimal places.

    Symmetric in sign, so negating the input negates the output. ``-0.0`` is
    normalized to ``0.0`` so exports stay stable.
    """
    multiplier = 10.0**places
    magnitude = math.floor(abs(value) * multiplier + 0.5) / multiplier
    return math.copysign(magnitude, value) + 0.0


def round_rating(value: float) -> float:
    return round_to(value, RATING_DECIMAL_PLACES)


def project_spread(
    home_rating: float,
    away_rating: float,
    hca: float,
    neutral: bool = False,
) -> float:
    """Project the spread for a matchup.

    Implements: spread = -((R_home - R_away) + HCA), with no HCA at a
    neutral site.

    Args:
        home_rating: Home team's rating (neutral floor)
        away_rating: Away team's rating (neutral floor)
        hca: Home advantage to apply
        neutral: If True, no home advantage is applied

    Returns:
        Projected spread from the home perspective (negative = home favored)
    """
    hca_applied = 0.0 if neutral else hca
    raw_spread = -((home_rating - away_rating) + hca_applied)
    return round_to(raw_spread, SPREAD_DECIMAL_PLACES)


def win_prob_from_spread(spread: float, k: float = WIN_PROB_K) -> float:
    """Probability that the side the spread is quoted for wins.

    Implements: P = 1 / (1 + exp(k * spread)). A spread of -7 (favored by
    seven) gives roughly 0.77. The result is clamped into (0, 1) so that
    extreme spreads never produce a certain outcome.

    Args:
        spread: Spread from the side's perspective (negative = favored)
        k: Logistic calibration constant

    Returns:
        Win probability in (0, 1)
    """
    x = k * spread
    # Evaluate on the side that cannot overflow
    if x >= 0:
        z = math.exp(-x)
        probability = z / (1.0 + z)
    else:
        probability = 1.0 / (1.0 + math.exp(x))
    return min(max(probability, WIN_PROB_EPSILON), 1.0 - WIN_PROB_EPSILON)


def format_spread(spread: float) -> str:
    """Format a spread for display (e.g. "-7.5", "+3", "PK")."""
    if spread == 0:
        return "PK"
    text = f"{spread:g}"
    return text if spread < 0 else f"+{text}"


def format_rating(rating: float) -> str:
    sign = "+" if rating >= 0 else ""
    return f"{sign}{rating:.{RATING_DECIMAL_PLACES}f}"


@dataclass(frozen=True)
class ProjectionResult:
    """Projection for a single (possibly hypothetical) matchup."""

    home_team: str
    away_team: str
    home_rating: float
    away_rating: float
    projected_spread: float
    is_neutral_site: bool
    hca_applied: float
    home_win_probability: float

    @property
    def favorite(self) -> str:
        """Team favored by the projection (home on a pick'em)."""
        return self.home_team if self.projected_spread <= 0 else self.away_team

    def to_dict(self) -> dict:
        return {
            "home_team": self.home_team,
            "away_team": self.away_team,
            "home_rating": self.home_rating,
            "away_rating": self.away_rating,
            "projected_spread": self.projected_spread,
            "is_neutral_site": self.is_neutral_site,
            "hca_applied": self.hca_applied,
            "home_win_probability": self.home_win_probability,
        }


def project_matchup(
    home_team: str,
    away_team: str,
    home_rating: float,
    away_rating: float,
    hca: float,
    neutral: bool = False,
) -> ProjectionResult:
    """Build a full projection with spread and home win probability."""
    spread = project_spread(home_rating, away_rating, hca, neutral)
    return ProjectionResult(
        home_team=home_team,
        away_team=away_team,
        home_rating=home_rating,
        away_rating=away_rating,
        projected_spread=spread,
        is_neutral_site=neutral,
        hca_applied=0.0 if neutral else hca,
        home_win_probability=win_prob_from_spread(spread),
    )
