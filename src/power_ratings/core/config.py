"""Configuration dataclasses for the rating engine."""

from __future__ import annotations

import logging
import math
import os
from dataclasses import dataclass, field, replace

from power_ratings.core.constants import (
    CLOSING_SOURCES,
    DEFAULT_CLOSING_SOURCE,
    DEFAULT_HCA,
    DEFAULT_LEARNING_RATE,
    DEFAULT_SEASON,
    SPORT_HCA,
    US_AVERAGE_BOOKMAKER_KEYS,
)
from power_ratings.core.errors import ConfigurationError

_LOG = logging.getLogger(__name__)


def _env_float(name: str, default: float) -> float:
    """Parse a float environment variable, falling back to `default`."""
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        _LOG.debug("Invalid float for %s: %r; using default=%s", name, raw, default)
        return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        _LOG.debug("Invalid int for %s: %r; using default=%s", name, raw, default)
        return default


@dataclass(frozen=True)
class RatingsConfig:
    """Configuration for market-driven rating adjustment."""

    # Home advantage in the sport's scoring unit
    hca: float = DEFAULT_HCA

    # Which market closing line counts as ground truth
    closing_source: str = DEFAULT_CLOSING_SOURCE

    # Fraction of the closing/projected discrepancy resolved per game,
    # split evenly between the two teams
    learning_rate: float = DEFAULT_LEARNING_RATE

    season: int = DEFAULT_SEASON

    # Books averaged for the "us_average" closing source
    us_bookmaker_keys: tuple[str, ...] = field(
        default_factory=lambda: US_AVERAGE_BOOKMAKER_KEYS
    )

    def __post_init__(self) -> None:
        if not math.isfinite(self.hca):
            raise ConfigurationError(f"hca must be finite, got {self.hca!r}")
        if self.closing_source not in CLOSING_SOURCES:
            raise ConfigurationError(
                f"closing_source must be one of {CLOSING_SOURCES}, "
                f"got {self.closing_source!r}"
            )
        if not (0.0 < self.learning_rate <= 1.0):
            raise ConfigurationError(
                f"learning_rate must be in (0, 1], got {self.learning_rate!r}"
            )
        if not self.us_bookmaker_keys:
            raise ConfigurationError("us_bookmaker_keys must not be empty")

    @classmethod
    def for_sport(cls, sport: str, **overrides) -> RatingsConfig:
        """Build a config with the sport's home-advantage preset.

        Args:
            sport: Sport key (see ``SPORT_HCA``).
            **overrides: Any other field to override.

        Returns:
            Configuration for the sport.
        """
        try:
            hca = SPORT_HCA[sport]
        except KeyError:
            raise ConfigurationError(
                f"Unknown sport {sport!r}; expected one of {sorted(SPORT_HCA)}"
            ) from None
        overrides.setdefault("hca", hca)
        return cls(**overrides)

    @classmethod
    def from_env(cls, prefix: str = "POWER_RATINGS_") -> RatingsConfig:
        """Build a config from environment variables.

        Reads ``{prefix}HCA``, ``{prefix}CLOSING_SOURCE``,
        ``{prefix}LEARNING_RATE`` and ``{prefix}SEASON``. Unset or unparsable
        numeric values fall back to the defaults.
        """
        return cls(
            hca=_env_float(f"{prefix}HCA", DEFAULT_HCA),
            closing_source=os.getenv(
                f"{prefix}CLOSING_SOURCE", DEFAULT_CLOSING_SOURCE
            ).strip()
            or DEFAULT_CLOSING_SOURCE,
            learning_rate=_env_float(
                f"{prefix}LEARNING_RATE", DEFAULT_LEARNING_RATE
            ),
            season=_env_int(f"{prefix}SEASON", DEFAULT_SEASON),
        )

    def with_overrides(self, **changes) -> RatingsConfig:
        """Return a copy with ``None``-valued overrides ignored."""
        return replace(
            self, **{k: v for k, v in changes.items() if v is not None}
        )
