"""Bracket projection with manual-override cascade.

A bracket is a list of matchups keyed by stable id. Winners flow forward
through ``source_matchup_ids``; every operation here mutates the list in
place and returns it. Tournament games are projected as neutral-site games
with the top side in the "home" position.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import TYPE_CHECKING

from power_ratings.bracket.models import Side
from power_ratings.core.constants import DEFAULT_HCA
from power_ratings.core.errors import ConfigurationError
from power_ratings.ratings.projection import (
    format_spread,
    project_spread,
    win_prob_from_spread,
)

if TYPE_CHECKING:
    from power_ratings.bracket.models import BracketMatchup, BracketTeam

logger = logging.getLogger(__name__)


def _index(matchups: list[BracketMatchup]) -> dict[str, BracketMatchup]:
    by_id = {}
    for matchup in matchups:
        if matchup.id in by_id:
            raise ConfigurationError(f"Duplicate matchup id {matchup.id}")
        by_id[matchup.id] = matchup
    return by_id


def _evaluation_order(matchups: list[BracketMatchup]) -> list[BracketMatchup]:
    return sorted(matchups, key=lambda m: (m.round, m.position))


def project_all(
    matchups: list[BracketMatchup], hca: float = DEFAULT_HCA
) -> list[BracketMatchup]:
    """Evaluate every matchup in round order.

    Source-fed slots take the source's current winner (or become empty).
    With both teams known the spread and top win probability are computed
    and, unless the winner was set by hand, the favored side is picked
    (a pick'em goes to the top side). With a side unknown the projection
    and winner are cleared.

    Raises:
        ConfigurationError: If a source id is unknown or not in an earlier
            round.
    """
    by_id = _index(matchups)
    for matchup in _evaluation_order(matchups):
        for side, source_id in zip(Side, matchup.source_matchup_ids):
            if source_id is None:
                continue
            source = by_id.get(source_id)
            if source is None:
                raise ConfigurationError(
                    f"{matchup.id} references unknown matchup {source_id}"
                )
            if source.round >= matchup.round:
                raise ConfigurationError(
                    f"{matchup.id} is fed by {source_id}, which is not in an "
                    f"earlier round"
                )
            _set_team(matchup, side, source.winning_team)

        if not matchup.has_both_teams:
            matchup.clear_projection()
            continue

        spread = project_spread(
            matchup.top_team.rating,
            matchup.bottom_team.rating,
            hca,
            neutral=True,
        )
        matchup.projected_spread = spread
        matchup.win_prob_top = win_prob_from_spread(spread)
        if not (matchup.is_manual_override and matchup.winner is not None):
            matchup.is_manual_override = False
            matchup.winner = Side.TOP if spread <= 0 else Side.BOTTOM
    return matchups


def _set_team(
    matchup: BracketMatchup, side: Side, team: BracketTeam | None
) -> None:
    if side is Side.TOP:
        matchup.top_team = team
    else:
        matchup.bottom_team = team


def downstream_matchup_ids(
    matchups: list[BracketMatchup], matchup_id: str
) -> set[str]:
    """Ids of every matchup reachable forward from ``matchup_id``."""
    children: dict[str, list[str]] = {}
    for matchup in matchups:
        for source_id in matchup.source_matchup_ids:
            if source_id is not None:
                children.setdefault(source_id, []).append(matchup.id)

    reached: set[str] = set()
    queue = deque([matchup_id])
    while queue:
        current = queue.popleft()
        for child in children.get(current, ()):
            if child not in reached:
                reached.add(child)
                queue.append(child)
    return reached


def invalidate_downstream(
    matchups: list[BracketMatchup], matchup_id: str
) -> set[str]:
    """Return every downstream matchup to the pending state.

    Clears winner, override flag and projection, and empties each slot that
    is fed by a source matchup. Seed-filled slots keep their teams.

    Returns:
        Ids of the invalidated matchups.
    """
    affected = downstream_matchup_ids(matchups, matchup_id)
    for matchup in matchups:
        if matchup.id not in affected:
            continue
        matchup.clear_projection()
        for side, source_id in zip(Side, matchup.source_matchup_ids):
            if source_id is not None:
                _set_team(matchup, side, None)
    if affected:
        logger.debug(
            "Invalidated %d matchup(s) downstream of %s",
            len(affected),
            matchup_id,
        )
    return affected


def toggle_winner(
    matchups: list[BracketMatchup],
    matchup_id: str,
    side: Side | str,
    hca: float = DEFAULT_HCA,
) -> list[BracketMatchup]:
    """Set a winner by hand, invalidate everything downstream, re-project.

    Raises:
        ValueError: If the matchup id is unknown, the side is not "top" or
            "bottom", or that side has no team yet.
    """
    side = Side(side)
    target = next((m for m in matchups if m.id == matchup_id), None)
    if target is None:
        raise ValueError(f"Unknown matchup id: {matchup_id}")
    if target.team_for(side) is None:
        raise ValueError(f"{matchup_id} has no {side.value} team to pick")

    target.winner = side
    target.is_manual_override = True
    invalidate_downstream(matchups, matchup_id)
    logger.debug("%s winner set to %s", matchup_id, side.value)
    return project_all(matchups, hca)


def reset_projections(
    matchups: list[BracketMatchup], hca: float = DEFAULT_HCA
) -> list[BracketMatchup]:
    """Drop every manual override and project from scratch."""
    for matchup in matchups:
        matchup.clear_projection()
    return project_all(matchups, hca)


def championship_matchup(
    matchups: list[BracketMatchup],
) -> BracketMatchup | None:
    """The one matchup that feeds no other."""
    feeding = {s for m in matchups for s in m.source_matchup_ids if s}
    terminal = [m for m in matchups if m.id not in feeding]
    if not terminal:
        return None
    return max(terminal, key=lambda m: (m.round, -m.position))


def champion(matchups: list[BracketMatchup]) -> BracketTeam | None:
    final = championship_matchup(matchups)
    return final.winning_team if final else None


def format_matchup_spread(matchup: BracketMatchup) -> str | None:
    """Favorite and line, e.g. "Duke -4.5". None until both teams are known."""
    if (
        matchup.projected_spread is None
        or matchup.top_team is None
        or matchup.bottom_team is None
    ):
        return None
    spread = matchup.projected_spread
    if spread <= 0:
        return f"{matchup.top_team.team_name} {format_spread(spread)}"
    return f"{matchup.bottom_team.team_name} {format_spread(-spread)}"
