"""Market-driven team ratings: projection, storage and replay."""

from power_ratings.ratings.closing_lines import (
    ClosingLine,
    extract_closing_spread,
    find_matching_event,
)
from power_ratings.ratings.engine import RatingEngine
from power_ratings.ratings.models import (
    Game,
    GameAdjustment,
    InitialRating,
    RatingsSnapshot,
    TeamRating,
)
from power_ratings.ratings.projection import (
    ProjectionResult,
    format_spread,
    project_matchup,
    project_spread,
    win_prob_from_spread,
)
from power_ratings.ratings.results import (
    GameOutcome,
    MatchStatus,
    RecalculationResult,
)
from power_ratings.ratings.store import RatingStore
from power_ratings.ratings.team_matching import (
    TeamMatch,
    TeamNameResolver,
    find_team_by_name,
    normalize_team_name,
)

__all__ = [
    # Models
    "Game",
    "GameAdjustment",
    "InitialRating",
    "RatingsSnapshot",
    "TeamRating",
    # Projection
    "ProjectionResult",
    "format_spread",
    "project_matchup",
    "project_spread",
    "win_prob_from_spread",
    # Engine
    "GameOutcome",
    "MatchStatus",
    "RatingEngine",
    "RatingStore",
    "RecalculationResult",
    # Markets and names
    "ClosingLine",
    "TeamMatch",
    "TeamNameResolver",
    "extract_closing_spread",
    "find_matching_event",
    "find_team_by_name",
    "normalize_team_name",
]
