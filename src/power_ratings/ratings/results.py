"""Per-game outcomes and batch results for the rating engine."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

import polars as pl

if TYPE_CHECKING:
    from datetime import datetime

    from power_ratings.ratings.models import GameAdjustment


class MatchStatus(Enum):
    """Outcome of feeding one game to the engine."""

    SUCCESS = "success"
    NO_ODDS = "no_odds"  # No market event for the game
    NO_SPREAD = "no_spread"  # Event found but no usable closing spread
    HOME_NOT_FOUND = "home_not_found"
    AWAY_NOT_FOUND = "away_not_found"
    BOTH_NOT_FOUND = "both_not_found"
    SAME_TEAM = "same_team"  # Home and away resolve to one team
    ALREADY_PROCESSED = "already_processed"  # Idempotent no-op, never logged

    @property
    def is_skip(self) -> bool:
        return self not in (MatchStatus.SUCCESS, MatchStatus.ALREADY_PROCESSED)

    @classmethod
    def for_missing_teams(
        cls, home_found: bool, away_found: bool
    ) -> MatchStatus:
        if not home_found and not away_found:
            return cls.BOTH_NOT_FOUND
        if not home_found:
            return cls.HOME_NOT_FOUND
        return cls.AWAY_NOT_FOUND


@dataclass(frozen=True)
class GameOutcome:
    """One matching/skip log entry."""

    game_id: str
    date: datetime
    status: MatchStatus
    source_home_team: str
    source_away_team: str
    matched_home_team: str | None = None
    matched_away_team: str | None = None
    closing_spread: float | None = None
    reason: str | None = None
    adjustment: GameAdjustment | None = None

    @property
    def home_found(self) -> bool:
        return self.matched_home_team is not None

    @property
    def away_found(self) -> bool:
        return self.matched_away_team is not None

    @property
    def applied(self) -> bool:
        return self.status is MatchStatus.SUCCESS

    def to_dict(self) -> dict:
        return {
            "game_id": self.game_id,
            "date": self.date.isoformat(),
            "status": self.status.value,
            "source_home_team": self.source_home_team,
            "source_away_team": self.source_away_team,
            "matched_home_team": self.matched_home_team,
            "matched_away_team": self.matched_away_team,
            "home_found": self.home_found,
            "away_found": self.away_found,
            "closing_spread": self.closing_spread,
            "reason": self.reason,
        }


_OUTCOME_SCHEMA = {
    "game_id": pl.Utf8,
    "date": pl.Utf8,
    "status": pl.Utf8,
    "source_home_team": pl.Utf8,
    "source_away_team": pl.Utf8,
    "matched_home_team": pl.Utf8,
    "matched_away_team": pl.Utf8,
    "home_found": pl.Boolean,
    "away_found": pl.Boolean,
    "closing_spread": pl.Float64,
    "reason": pl.Utf8,
}


@dataclass
class RecalculationResult:
    """Aggregate of a batch replay (``process_games`` or ``recalculate``)."""

    outcomes: list[GameOutcome] = field(default_factory=list)
    already_processed: int = 0
    aborted: bool = False
    last_game_id: str | None = None
    computation_time: float | None = None

    @property
    def processed(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.applied)

    @property
    def skipped(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status.is_skip)

    @property
    def skip_counts(self) -> dict[str, int]:
        """Skipped games grouped by status value."""
        counts = Counter(
            outcome.status.value
            for outcome in self.outcomes
            if outcome.status.is_skip
        )
        return dict(sorted(counts.items()))

    def record(self, outcome: GameOutcome) -> None:
        if outcome.status is MatchStatus.ALREADY_PROCESSED:
            self.already_processed += 1
            return
        self.outcomes.append(outcome)
        if outcome.applied:
            self.last_game_id = outcome.game_id

    def summary(self) -> dict:
        return {
            "processed": self.processed,
            "skipped": self.skipped,
            "already_processed": self.already_processed,
            "skip_counts": self.skip_counts,
            "aborted": self.aborted,
            "last_game_id": self.last_game_id,
        }

    def to_dataframe(self, skips_only: bool = False) -> pl.DataFrame:
        """Matching log as a DataFrame.

        Args:
            skips_only: Only include skipped games. Defaults to False.

        Returns:
            DataFrame with one row per logged game.
        """
        rows = [
            outcome.to_dict()
            for outcome in self.outcomes
            if not skips_only or outcome.status.is_skip
        ]
        return pl.DataFrame(rows, schema=_OUTCOME_SCHEMA)
