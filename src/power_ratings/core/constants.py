"""
Configuration constants for rating adjustment and bracket projection.

This module centralizes the default parameters shared by the rating engine,
the spread projector and the bracket projector so that replays and exports
stay reproducible.
"""

# =============================================================================
# Spread Projection
# =============================================================================

# Home-court advantage in points (college basketball)
DEFAULT_HCA: float = 2.5

# Logistic calibration constant: P(favorite) = 1 / (1 + exp(k * spread))
WIN_PROB_K: float = 0.17

# Win probabilities are clamped into [eps, 1 - eps] so they stay in (0, 1)
WIN_PROB_EPSILON: float = 1e-12

# Fixed precision keeps repeated calls and exports bit-stable
SPREAD_DECIMAL_PLACES: int = 1
RATING_DECIMAL_PLACES: int = 2

# =============================================================================
# Rating Adjustment
# =============================================================================

# Fraction of the market/projection discrepancy resolved per game. The
# resolved amount is split evenly between home and away.
DEFAULT_LEARNING_RATE: float = 1.0

DEFAULT_SEASON: int = 2026

# Number of applied games between checkpoint callbacks during a replay
DEFAULT_CHECKPOINT_EVERY: int = 50

# =============================================================================
# Market Sources
# =============================================================================

CLOSING_SOURCE_PINNACLE = "pinnacle"
CLOSING_SOURCE_US_AVERAGE = "us_average"
CLOSING_SOURCES = (CLOSING_SOURCE_PINNACLE, CLOSING_SOURCE_US_AVERAGE)

DEFAULT_CLOSING_SOURCE = CLOSING_SOURCE_PINNACLE

PINNACLE_BOOKMAKER_KEY = "pinnacle"

US_AVERAGE_BOOKMAKERS = {
    "draftkings": "DraftKings",
    "fanduel": "FanDuel",
    "betmgm": "BetMGM",
    "betrivers": "BetRivers",
    "williamhill_us": "Caesars",
}
US_AVERAGE_BOOKMAKER_KEYS: tuple[str, ...] = tuple(US_AVERAGE_BOOKMAKERS)

SPREADS_MARKET_KEY = "spreads"

# =============================================================================
# Sport Presets
# =============================================================================

# Home advantage per sport, in that sport's scoring unit
SPORT_HCA: dict[str, float] = {
    "ncaab": 2.5,
    "lacrosse": 1.0,
}

# =============================================================================
# Brackets
# =============================================================================

DEFAULT_TEMPLATE_ID = "8-team"
DEFAULT_SIMULATIONS: int = 10_000
