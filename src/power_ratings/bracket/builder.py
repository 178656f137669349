"""Seed teams into a template and create bracket configs."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterable, Mapping, Union

from power_ratings.bracket.models import (
    BracketConfig,
    BracketMatchup,
    BracketTeam,
)
from power_ratings.bracket.projector import project_all
from power_ratings.bracket.templates import default_bracket_name
from power_ratings.core.constants import DEFAULT_HCA
from power_ratings.core.errors import ConfigurationError

if TYPE_CHECKING:
    from power_ratings.bracket.models import BracketTemplate
    from power_ratings.ratings.models import TeamRating

logger = logging.getLogger(__name__)

TeamsBySeed = Union[Mapping[int, BracketTeam], Iterable[BracketTeam]]


def teams_by_seed(
    teams: TeamsBySeed, team_count: int | None = None
) -> dict[int, BracketTeam]:
    """Index teams by seed, rejecting duplicate or out-of-range seeds."""
    if isinstance(teams, Mapping):
        indexed = dict(teams)
        for seed, team in indexed.items():
            if team.seed != seed:
                raise ConfigurationError(
                    f"{team.team_name} is keyed by seed {seed} but has seed "
                    f"{team.seed}"
                )
    else:
        indexed = {}
        for team in teams:
            if team.seed in indexed:
                raise ConfigurationError(
                    f"Seed {team.seed} assigned to both "
                    f"{indexed[team.seed].team_name} and {team.team_name}"
                )
            indexed[team.seed] = team
    if team_count is not None:
        bad = sorted(s for s in indexed if not 1 <= s <= team_count)
        if bad:
            raise ConfigurationError(
                f"Seeds {bad} are outside 1..{team_count}"
            )
    return indexed


def build_matchups(
    template: BracketTemplate, teams: TeamsBySeed
) -> list[BracketMatchup]:
    """Create the initial matchup list for a template.

    Seed slots are filled from ``teams``; slots fed by earlier matchups stay
    empty until projection. A seed with no team leaves its slot empty.

    Args:
        template: Validated template.
        teams: Teams keyed by seed, or an iterable of seeded teams.

    Returns:
        Matchups in template order, positions numbered within each round.
    """
    seeded = teams_by_seed(teams, template.team_count)
    matchups = []
    for rnd in template.rounds:
        for position, slot in enumerate(rnd.matchups):
            matchups.append(
                BracketMatchup(
                    id=slot.id,
                    round=rnd.round,
                    position=position,
                    top_team=(
                        seeded.get(slot.top_seed)
                        if slot.top_seed is not None
                        else None
                    ),
                    bottom_team=(
                        seeded.get(slot.bottom_seed)
                        if slot.bottom_seed is not None
                        else None
                    ),
                    source_matchup_ids=slot.sources,
                )
            )
    return matchups


def seed_teams(
    ratings: Iterable[TeamRating],
    team_count: int,
    conference: str | None = None,
) -> list[BracketTeam]:
    """Seed the best ``team_count`` teams by current rating.

    Args:
        ratings: Current team ratings.
        team_count: Number of teams to seed.
        conference: Restrict to one conference. Defaults to all teams.

    Returns:
        Teams seeded 1..n, best rating first (ties broken by name).
    """
    pool = [
        r for r in ratings if conference is None or r.conference == conference
    ]
    pool.sort(key=lambda r: (-r.rating, r.team_name))
    if len(pool) < team_count:
        logger.warning(
            "Only %d team(s) available for a %d-team bracket%s",
            len(pool),
            team_count,
            f" in {conference}" if conference else "",
        )
    return [
        BracketTeam(
            team_name=r.team_name,
            seed=seed,
            rating=r.rating,
            conference=r.conference,
        )
        for seed, r in enumerate(pool[:team_count], start=1)
    ]


def create_bracket(
    template: BracketTemplate,
    teams: Iterable[BracketTeam],
    name: str | None = None,
    conference: str | None = None,
    hca: float = DEFAULT_HCA,
    bracket_id: str | None = None,
) -> BracketConfig:
    """Seed a template and project it."""
    team_list = sorted(teams, key=lambda t: t.seed)
    matchups = build_matchups(template, team_list)
    project_all(matchups, hca)
    if name is None:
        name = (
            default_bracket_name(conference) if conference else template.name
        )
    return BracketConfig(
        id=bracket_id or f"{(conference or 'custom').lower()}-{template.id}",
        name=name,
        conference=conference,
        template_id=template.id,
        teams=team_list,
        matchups=matchups,
    )
