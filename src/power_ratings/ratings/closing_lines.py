"""Closing-spread extraction from odds-API shaped market events.

Events look like::

    {"home_team": "Duke Blue Devils", "away_team": "...",
     "bookmakers": [{"key": "pinnacle", "title": "Pinnacle",
                     "markets": [{"key": "spreads",
                                  "outcomes": [{"name": "Duke Blue Devils",
                                                "point": -7.5}, ...]}]}]}
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Mapping

from power_ratings.core.constants import (
    CLOSING_SOURCE_PINNACLE,
    CLOSING_SOURCE_US_AVERAGE,
    CLOSING_SOURCES,
    PINNACLE_BOOKMAKER_KEY,
    SPREAD_DECIMAL_PLACES,
    SPREADS_MARKET_KEY,
    US_AVERAGE_BOOKMAKER_KEYS,
    US_AVERAGE_BOOKMAKERS,
)
from power_ratings.core.errors import ConfigurationError
from power_ratings.ratings.projection import round_to
from power_ratings.ratings.team_matching import names_match

if TYPE_CHECKING:
    from typing import Iterable, Sequence

    from power_ratings.ratings.models import Game


@dataclass(frozen=True)
class ClosingLine:
    """Closing spread (home perspective) and the books it came from."""

    spread: float | None
    source: str
    bookmakers: tuple[str, ...] = ()

    @property
    def is_available(self) -> bool:
        return self.spread is not None


def _find_by_key(items: Any, key: str) -> Mapping[str, Any] | None:
    for item in items or ():
        if isinstance(item, Mapping) and item.get("key") == key:
            return item
    return None


def home_spread_for_bookmaker(
    event: Mapping[str, Any], bookmaker_key: str
) -> float | None:
    """Home team's spread point from one book's spreads market."""
    bookmaker = _find_by_key(event.get("bookmakers"), bookmaker_key)
    if bookmaker is None:
        return None
    market = _find_by_key(bookmaker.get("markets"), SPREADS_MARKET_KEY)
    if market is None:
        return None
    home_team = event.get("home_team")
    for outcome in market.get("outcomes") or ():
        if outcome.get("name") != home_team:
            continue
        point = outcome.get("point")
        if point is None:
            return None
        try:
            value = float(point)
        except (TypeError, ValueError):
            return None
        return value if math.isfinite(value) else None
    return None


def _bookmaker_title(event: Mapping[str, Any], key: str) -> str:
    bookmaker = _find_by_key(event.get("bookmakers"), key) or {}
    return bookmaker.get("title") or US_AVERAGE_BOOKMAKERS.get(key, key)


def extract_closing_spread(
    event: Mapping[str, Any],
    source: str = CLOSING_SOURCE_PINNACLE,
    us_bookmaker_keys: Sequence[str] = US_AVERAGE_BOOKMAKER_KEYS,
) -> ClosingLine:
    """Pull the closing spread for the configured source.

    Args:
        event: Market event with ``home_team`` and ``bookmakers``.
        source: "pinnacle" for Pinnacle's line, "us_average" for the mean of
            the US books.
        us_bookmaker_keys: Books averaged for "us_average".

    Returns:
        ClosingLine with ``spread=None`` when no usable line exists.
    """
    if source not in CLOSING_SOURCES:
        raise ConfigurationError(f"Unknown closing source: {source!r}")

    if source == CLOSING_SOURCE_PINNACLE:
        spread = home_spread_for_bookmaker(event, PINNACLE_BOOKMAKER_KEY)
        if spread is None:
            return ClosingLine(None, source)
        return ClosingLine(spread, source, (PINNACLE_BOOKMAKER_KEY,))

    spreads: list[float] = []
    used: list[str] = []
    for key in us_bookmaker_keys:
        spread = home_spread_for_bookmaker(event, key)
        if spread is not None:
            spreads.append(spread)
            used.append(_bookmaker_title(event, key))
    if not spreads:
        return ClosingLine(None, CLOSING_SOURCE_US_AVERAGE)
    average = sum(spreads) / len(spreads)
    return ClosingLine(
        round_to(average, SPREAD_DECIMAL_PLACES),
        CLOSING_SOURCE_US_AVERAGE,
        tuple(used),
    )


def find_matching_event(
    game: Game, events: Iterable[Mapping[str, Any]]
) -> Mapping[str, Any] | None:
    """First market event whose home and away names pair with the game's."""
    for event in events:
        if names_match(game.home_team, event.get("home_team", "")) and names_match(
            game.away_team, event.get("away_team", "")
        ):
            return event
    return None
