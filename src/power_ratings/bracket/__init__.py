"""Tournament brackets: templates, seeding, projection and simulation."""

from power_ratings.bracket.builder import (
    build_matchups,
    create_bracket,
    seed_teams,
)
from power_ratings.bracket.models import (
    BracketConfig,
    BracketMatchup,
    BracketTeam,
    BracketTemplate,
    MatchupState,
    Side,
    TemplateRound,
    TemplateSlot,
)
from power_ratings.bracket.projector import (
    champion,
    downstream_matchup_ids,
    format_matchup_spread,
    invalidate_downstream,
    project_all,
    reset_projections,
    toggle_winner,
)
from power_ratings.bracket.simulation import BracketSimulator, SimulationResult
from power_ratings.bracket.templates import (
    CONFERENCE_DEFAULTS,
    DEFAULT_REGISTRY,
    TemplateRegistry,
    default_bracket_name,
    default_template_for,
    get_template,
    validate_template,
)

__all__ = [
    # Models
    "BracketConfig",
    "BracketMatchup",
    "BracketTeam",
    "BracketTemplate",
    "MatchupState",
    "Side",
    "TemplateRound",
    "TemplateSlot",
    # Templates
    "CONFERENCE_DEFAULTS",
    "DEFAULT_REGISTRY",
    "TemplateRegistry",
    "default_bracket_name",
    "default_template_for",
    "get_template",
    "validate_template",
    # Building
    "build_matchups",
    "create_bracket",
    "seed_teams",
    # Projection
    "champion",
    "downstream_matchup_ids",
    "format_matchup_spread",
    "invalidate_downstream",
    "project_all",
    "reset_projections",
    "toggle_winner",
    # Simulation
    "BracketSimulator",
    "SimulationResult",
]
