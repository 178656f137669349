import logging
from datetime import datetime, timedelta, timezone

import pytest

from power_ratings.bracket.models import BracketTeam
from power_ratings.core.config import RatingsConfig
from power_ratings.core.logging import PACKAGE_LOGGER
from power_ratings.ratings.engine import RatingEngine
from power_ratings.ratings.models import Game, InitialRating
from power_ratings.ratings.store import RatingStore

SEASON_START = datetime(2025, 11, 3, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def _reset_package_logger():
    """Undo setup_logging so caplog sees package records."""
    yield
    logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture(autouse=True)
def _no_sentry(monkeypatch: pytest.MonkeyPatch):
    for name in ("SENTRY_DSN", "POWER_RATINGS_SENTRY_DSN"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def initial_ratings() -> list[InitialRating]:
    return [
        InitialRating("Duke", 10.0, "ACC"),
        InitialRating("North Carolina", 2.0, "ACC"),
        InitialRating("Virginia", 5.0, "ACC"),
        InitialRating("Kansas", 8.0, "B12"),
        InitialRating("Michigan St.", 6.0, "B10"),
    ]


@pytest.fixture
def store(initial_ratings) -> RatingStore:
    s = RatingStore()
    s.bootstrap(initial_ratings)
    return s


@pytest.fixture
def engine(store) -> RatingEngine:
    return RatingEngine(store, RatingsConfig(hca=2.5))


def make_game(
    game_id,
    home,
    away,
    closing=None,
    day=0,
    neutral=False,
    opening=None,
) -> Game:
    return Game(
        game_id=str(game_id),
        date=SEASON_START + timedelta(days=day),
        home_team=home,
        away_team=away,
        is_neutral_site=neutral,
        opening_spread=opening,
        closing_spread=closing,
    )


@pytest.fixture
def season_games() -> list[Game]:
    return [
        make_game("g1", "Duke", "North Carolina", closing=-9.5, day=0),
        make_game("g2", "Virginia", "Kansas", closing=1.5, day=1),
        make_game("g3", "Michigan St.", "Duke", closing=3.0, day=2),
        make_game("g4", "Kansas", "North Carolina", closing=-7.0, day=2),
        make_game("g5", "Virginia", "Duke", closing=2.5, day=5, neutral=True),
        make_game("g6", "North Carolina", "Michigan St.", closing=-1.0, day=7),
    ]


def make_event(home, away, books):
    """Odds-API shaped event; ``books`` maps bookmaker key to home spread."""
    return {
        "home_team": home,
        "away_team": away,
        "bookmakers": [
            {
                "key": key,
                "title": key.title(),
                "markets": [
                    {
                        "key": "spreads",
                        "outcomes": [
                            {"name": home, "point": point},
                            {"name": away, "point": -point},
                        ],
                    }
                ],
            }
            for key, point in books.items()
        ],
    }


@pytest.fixture
def eight_teams() -> list[BracketTeam]:
    ratings = [20.0, 17.5, 15.0, 12.0, 11.0, 9.0, 6.5, 3.0]
    return [
        BracketTeam(f"Team {seed}", seed, rating, "TST")
        for seed, rating in enumerate(ratings, start=1)
    ]
