"""Polars frames to and from core rating records."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

import polars as pl

from power_ratings.core.errors import ConfigurationError
from power_ratings.ratings.models import Game, InitialRating

if TYPE_CHECKING:
    from typing import Mapping

logger = logging.getLogger(__name__)

# Accepted spellings from common exports, mapped to canonical column names
GAME_COLUMN_ALIASES: dict[str, str] = {
    "id": "game_id",
    "gameid": "game_id",
    "game_date": "date",
    "start_time": "date",
    "commence_time": "date",
    "home": "home_team",
    "hometeam": "home_team",
    "away": "away_team",
    "awayteam": "away_team",
    "neutral": "is_neutral_site",
    "neutral_site": "is_neutral_site",
    "isneutralsite": "is_neutral_site",
    "opening": "opening_spread",
    "openingspread": "opening_spread",
    "closing": "closing_spread",
    "closingspread": "closing_spread",
    "spread": "closing_spread",
}

RATING_COLUMN_ALIASES: dict[str, str] = {
    "team": "team_name",
    "teamname": "team_name",
    "name": "team_name",
    "conf": "conference",
    "rating": "initial_rating",
    "adj_em": "initial_rating",
    "adjem": "initial_rating",
    "initialrating": "initial_rating",
}

GAME_REQUIRED = ("game_id", "date", "home_team", "away_team")
RATING_REQUIRED = ("team_name", "initial_rating")


def _canonicalize_columns(
    dataframe: pl.DataFrame,
    aliases: Mapping[str, str],
    required: tuple[str, ...],
) -> pl.DataFrame:
    mapping: dict[str, str] = {}
    keep: list[str] = []
    taken: set[str] = set()
    for column in dataframe.columns:
        key = column.strip().lower().replace(" ", "_")
        target = aliases.get(key, aliases.get(key.replace("_", ""), key))
        # First column wins when two spellings map to the same name
        if target in taken:
            logger.debug("Ignoring duplicate column %r (%s)", column, target)
            continue
        taken.add(target)
        keep.append(column)
        if target != column:
            mapping[column] = target
    renamed = dataframe.select(keep).rename(mapping)
    missing = [c for c in required if c not in renamed.columns]
    if missing:
        raise ConfigurationError(
            f"Missing required column(s) {missing}; got {dataframe.columns}"
        )
    return renamed


def games_from_frame(dataframe: pl.DataFrame) -> list[Game]:
    """Build game records from a feed frame.

    Args:
        dataframe: One row per game. Column names are matched
            case-insensitively and common aliases are accepted.

    Returns:
        Games in frame order.
    """
    frame = _canonicalize_columns(dataframe, GAME_COLUMN_ALIASES, GAME_REQUIRED)
    games = []
    for row in frame.iter_rows(named=True):
        games.append(
            Game(
                game_id=row["game_id"],
                date=row["date"],
                home_team=str(row["home_team"]).strip(),
                away_team=str(row["away_team"]).strip(),
                is_neutral_site=_as_bool(row.get("is_neutral_site")),
                opening_spread=row.get("opening_spread"),
                closing_spread=row.get("closing_spread"),
            )
        )
    return games


def initial_ratings_from_frame(dataframe: pl.DataFrame) -> list[InitialRating]:
    """Build the preseason ratings table from a frame."""
    frame = _canonicalize_columns(
        dataframe, RATING_COLUMN_ALIASES, RATING_REQUIRED
    )
    rows = []
    for row in frame.iter_rows(named=True):
        rows.append(
            InitialRating(
                team_name=str(row["team_name"]).strip(),
                initial_rating=float(row["initial_rating"]),
                conference=str(row.get("conference") or "").strip(),
            )
        )
    return rows


def _as_bool(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "y", "t"}
    return bool(value) if value is not None else False


def read_table(path: str | Path) -> pl.DataFrame:
    """Load a csv, parquet, json or ndjson file into a DataFrame."""
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix == ".parquet":
        return pl.read_parquet(path)
    if suffix == ".json":
        return pl.read_json(path)
    if suffix in {".ndjson", ".jsonl"}:
        return pl.read_ndjson(path)
    if suffix in {".csv", ".txt", ""}:
        return pl.read_csv(path, try_parse_dates=False, infer_schema_length=10_000)
    raise ConfigurationError(f"Unsupported table format: {path.suffix!r}")
