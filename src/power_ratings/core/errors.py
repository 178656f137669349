"""Error types for rating and bracket operations."""

from __future__ import annotations


class PowerRatingsError(RuntimeError):
    """Base error for power-ratings operations."""


class ConfigurationError(PowerRatingsError):
    """Malformed template, seed table, or configuration value.

    Raised at load/validation time, never while projecting.
    """


class DataError(PowerRatingsError):
    """A single game's data cannot be used.

    The rating engine turns these into skip outcomes; they never abort a batch.
    """


class TeamNotFound(DataError):
    """A team name could not be resolved to a canonical rated team."""

    def __init__(self, team_name: str):
        super().__init__(f"Team not found in ratings: {team_name!r}")
        self.team_name = team_name


class MissingMarketLine(DataError):
    """No usable market closing line for a game."""

    def __init__(self, game_id: str, reason: str):
        super().__init__(f"No usable market line for game {game_id}: {reason}")
        self.game_id = game_id
        self.reason = reason


class ConsistencyError(PowerRatingsError):
    """Replaying the same ledger produced different ratings."""


class StoreStateError(PowerRatingsError):
    """Operation not allowed in the rating store's current state."""
