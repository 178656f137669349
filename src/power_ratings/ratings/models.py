"""Records for the rating table, the game feed and the adjustment ledger."""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, fields
from datetime import date, datetime, time, timezone
from typing import TYPE_CHECKING, Any, Mapping

import polars as pl

if TYPE_CHECKING:
    from typing import Iterable


def as_utc_datetime(value: datetime | date | str) -> datetime:
    """Normalize a feed date to an aware UTC datetime.

    Accepts ISO strings (a trailing ``Z`` is allowed), plain dates (midnight
    UTC) and naive datetimes (assumed UTC).
    """
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        value = datetime.fromisoformat(text)
    if not isinstance(value, datetime):
        value = datetime.combine(value, time.min)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _optional_float(value: Any) -> float | None:
    """None for missing or non-finite market values."""
    if value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


@dataclass(frozen=True)
class InitialRating:
    """Preseason rating row for one team."""

    team_name: str
    initial_rating: float
    conference: str = ""


@dataclass(frozen=True)
class TeamRating:
    """Current rating of one team."""

    team_name: str
    conference: str
    rating: float
    initial_rating: float
    games_processed: int = 0

    @classmethod
    def from_initial(cls, row: InitialRating) -> TeamRating:
        return cls(
            team_name=row.team_name,
            conference=row.conference,
            rating=row.initial_rating,
            initial_rating=row.initial_rating,
            games_processed=0,
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> TeamRating:
        return cls(
            team_name=data["team_name"],
            conference=data.get("conference") or "",
            rating=float(data["rating"]),
            initial_rating=float(data["initial_rating"]),
            games_processed=int(data.get("games_processed", 0)),
        )


@dataclass(frozen=True)
class Game:
    """One game from the ordered feed.

    Spreads are from the home perspective (negative = home favored).
    """

    game_id: str
    date: datetime
    home_team: str
    away_team: str
    is_neutral_site: bool = False
    opening_spread: float | None = None
    closing_spread: float | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "game_id", str(self.game_id))
        object.__setattr__(self, "date", as_utc_datetime(self.date))
        object.__setattr__(
            self, "opening_spread", _optional_float(self.opening_spread)
        )
        object.__setattr__(
            self, "closing_spread", _optional_float(self.closing_spread)
        )

    @property
    def line_movement(self) -> float | None:
        """Closing minus opening spread when both are known."""
        if self.opening_spread is None or self.closing_spread is None:
            return None
        return round(self.closing_spread - self.opening_spread, 2)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Game:
        return cls(
            game_id=data["game_id"],
            date=data["date"],
            home_team=data["home_team"],
            away_team=data["away_team"],
            is_neutral_site=bool(data.get("is_neutral_site", False)),
            opening_spread=data.get("opening_spread"),
            closing_spread=data.get("closing_spread"),
        )


@dataclass(frozen=True)
class GameAdjustment:
    """Ledger entry for one applied game. Immutable once appended."""

    game_id: str
    date: datetime
    home_team: str
    away_team: str
    is_neutral_site: bool
    home_rating_before: float
    away_rating_before: float
    projected_spread: float
    closing_spread: float | None
    closing_source: str
    difference: float
    adjustment: float
    home_rating_after: float
    away_rating_after: float

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["date"] = self.date.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> GameAdjustment:
        values = {f.name: data[f.name] for f in fields(cls)}
        values["date"] = as_utc_datetime(values["date"])
        values["game_id"] = str(values["game_id"])
        return cls(**values)


@dataclass(frozen=True)
class RatingsSnapshot:
    """Read-only view of ratings plus the full ledger.

    Produced on demand by the store; never a live reference.
    """

    ratings: tuple[TeamRating, ...]
    adjustments: tuple[GameAdjustment, ...]
    as_of: datetime
    hca: float
    closing_source: str
    season: int

    @property
    def games_processed(self) -> int:
        return len(self.adjustments)

    def rating_for(self, team_name: str) -> TeamRating | None:
        for rating in self.ratings:
            if rating.team_name == team_name:
                return rating
        return None

    def top(self, count: int = 10) -> tuple[TeamRating, ...]:
        return self.ratings[:count]

    def to_dict(self) -> dict[str, Any]:
        """JSON-friendly structure."""
        return {
            "as_of": self.as_of.isoformat(),
            "season": self.season,
            "hca": self.hca,
            "closing_source": self.closing_source,
            "games_processed": self.games_processed,
            "ratings": [rating.to_dict() for rating in self.ratings],
            "adjustments": [adj.to_dict() for adj in self.adjustments],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> RatingsSnapshot:
        return cls(
            ratings=tuple(TeamRating.from_dict(r) for r in data["ratings"]),
            adjustments=tuple(
                GameAdjustment.from_dict(a) for a in data.get("adjustments", [])
            ),
            as_of=as_utc_datetime(data["as_of"]),
            hca=float(data["hca"]),
            closing_source=data["closing_source"],
            season=int(data["season"]),
        )

    def ratings_frame(self) -> pl.DataFrame:
        """Ratings table, ranked by current rating.

        Returns:
            DataFrame with rank, team_name, conference, rating,
            initial_rating, change and games_processed.
        """
        schema = {
            "team_name": pl.Utf8,
            "conference": pl.Utf8,
            "rating": pl.Float64,
            "initial_rating": pl.Float64,
            "games_processed": pl.Int64,
        }
        dataframe = pl.DataFrame(
            [rating.to_dict() for rating in self.ratings], schema=schema
        )
        return dataframe.with_columns(
            (pl.col("rating") - pl.col("initial_rating"))
            .round(2)
            .alias("change"),
            pl.int_range(1, pl.len() + 1).alias("rank"),
        ).select(
            [
                "rank",
                "team_name",
                "conference",
                "rating",
                "initial_rating",
                "change",
                "games_processed",
            ]
        )

    def adjustments_frame(self) -> pl.DataFrame:
        """Ledger as a table in application order."""
        schema = {
            "game_id": pl.Utf8,
            "date": pl.Datetime(time_zone="UTC"),
            "home_team": pl.Utf8,
            "away_team": pl.Utf8,
            "is_neutral_site": pl.Boolean,
            "home_rating_before": pl.Float64,
            "away_rating_before": pl.Float64,
            "projected_spread": pl.Float64,
            "closing_spread": pl.Float64,
            "closing_source": pl.Utf8,
            "difference": pl.Float64,
            "adjustment": pl.Float64,
            "home_rating_after": pl.Float64,
            "away_rating_after": pl.Float64,
        }
        return pl.DataFrame(
            [asdict(adj) for adj in self.adjustments], schema=schema
        )


def ratings_by_name(ratings: Iterable[TeamRating]) -> dict[str, TeamRating]:
    return {rating.team_name: rating for rating in ratings}
