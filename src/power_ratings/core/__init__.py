"""Core configuration, errors and logging shared by ratings and brackets."""

from power_ratings.core.config import RatingsConfig
from power_ratings.core.errors import (
    ConfigurationError,
    ConsistencyError,
    DataError,
    MissingMarketLine,
    PowerRatingsError,
    StoreStateError,
    TeamNotFound,
)
from power_ratings.core.logging import (
    ProgressLogger,
    get_logger,
    log_timing,
    setup_logging,
)

__all__ = [
    # Config
    "RatingsConfig",
    # Errors
    "ConfigurationError",
    "ConsistencyError",
    "DataError",
    "MissingMarketLine",
    "PowerRatingsError",
    "StoreStateError",
    "TeamNotFound",
    # Logging
    "ProgressLogger",
    "get_logger",
    "log_timing",
    "setup_logging",
]
