"""Rating table plus append-only adjustment ledger."""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from power_ratings.core.constants import (
    DEFAULT_CLOSING_SOURCE,
    DEFAULT_HCA,
    DEFAULT_SEASON,
)
from power_ratings.core.errors import (
    ConfigurationError,
    ConsistencyError,
    DataError,
    StoreStateError,
    TeamNotFound,
)
from power_ratings.ratings.models import (
    GameAdjustment,
    InitialRating,
    RatingsSnapshot,
    TeamRating,
    as_utc_datetime,
)

if TYPE_CHECKING:
    from datetime import date
    from typing import Iterable, Iterator

logger = logging.getLogger(__name__)


class RatingStore:
    """Holds team ratings and the ledger of applied games.

    A pure data holder: it validates structure but contains no rating logic.
    All writes go through :meth:`writer`, a re-entrant lock that the engine
    holds for the full length of a replay. Snapshots are copied under the same
    lock and never share mutable state with the store.
    """

    def __init__(self) -> None:
        self._initial: dict[str, InitialRating] = {}
        self._ratings: dict[str, TeamRating] = {}
        self._ledger: list[GameAdjustment] = []
        self._game_ids: set[str] = set()
        self._lock = threading.RLock()

    @property
    def is_initialized(self) -> bool:
        return bool(self._initial)

    @property
    def ledger(self) -> tuple[GameAdjustment, ...]:
        with self._lock:
            return tuple(self._ledger)

    @contextmanager
    def writer(self) -> Iterator[RatingStore]:
        """Hold exclusive write access to the store."""
        with self._lock:
            yield self

    def bootstrap(self, initial_ratings: Iterable[InitialRating]) -> None:
        """Load the preseason ratings table. Allowed once.

        Raises:
            StoreStateError: If the store is already initialized.
            ConfigurationError: On an empty table or a duplicate team name.
        """
        with self._lock:
            if self.is_initialized:
                raise StoreStateError("Rating store is already initialized")
            self._load_initial(initial_ratings)
            logger.info("Bootstrapped %d team ratings", len(self._initial))

    def _load_initial(self, initial_ratings: Iterable[InitialRating]) -> None:
        initial: dict[str, InitialRating] = {}
        for row in initial_ratings:
            if row.team_name in initial:
                raise ConfigurationError(
                    f"Duplicate team in initial ratings: {row.team_name!r}"
                )
            initial[row.team_name] = row
        if not initial:
            raise ConfigurationError("Initial ratings table is empty")
        self._initial = initial
        self._ratings = {
            name: TeamRating.from_initial(row) for name, row in initial.items()
        }
        self._ledger = []
        self._game_ids = set()

    def _require_initialized(self) -> None:
        if not self.is_initialized:
            raise StoreStateError("Rating store has not been bootstrapped")

    def get(self, team_name: str) -> TeamRating | None:
        return self._ratings.get(team_name)

    def teams(self) -> tuple[str, ...]:
        return tuple(self._ratings)

    def initial_ratings(self) -> tuple[InitialRating, ...]:
        return tuple(self._initial.values())

    def contains(self, game_id: str) -> bool:
        return str(game_id) in self._game_ids

    def __contains__(self, team_name: object) -> bool:
        return team_name in self._ratings

    def __len__(self) -> int:
        return len(self._ratings)

    def append_adjustment(self, record: GameAdjustment) -> None:
        """Append a ledger entry and move both teams to its after-ratings.

        Raises:
            StoreStateError: If uninitialized or the game is already ledgered.
            TeamNotFound: If either team is not rated.
            DataError: If both sides name the same team.
        """
        with self._lock:
            self._require_initialized()
            if record.game_id in self._game_ids:
                raise StoreStateError(
                    f"Game {record.game_id} is already in the ledger"
                )
            for name in (record.home_team, record.away_team):
                if name not in self._ratings:
                    raise TeamNotFound(name)
            if record.home_team == record.away_team:
                raise DataError(
                    f"Game {record.game_id} has {record.home_team} on both sides"
                )
            self._apply_record(record)

    def _apply_record(self, record: GameAdjustment) -> None:
        home = self._ratings[record.home_team]
        away = self._ratings[record.away_team]
        self._ratings[record.home_team] = replace(
            home,
            rating=record.home_rating_after,
            games_processed=home.games_processed + 1,
        )
        self._ratings[record.away_team] = replace(
            away,
            rating=record.away_rating_after,
            games_processed=away.games_processed + 1,
        )
        self._ledger.append(record)
        self._game_ids.add(record.game_id)

    def reset_to(
        self,
        initial_ratings: Iterable[InitialRating] | None = None,
        from_date: datetime | date | str | None = None,
    ) -> int:
        """Reset ratings fully or from a date forward.

        Args:
            initial_ratings: Replacement preseason table. Only valid for a full
                reset. Defaults to the table loaded at bootstrap.
            from_date: If given, drop only ledger entries dated on or after
                this date and rebuild ratings from the surviving history.

        Returns:
            Number of ledger entries removed.
        """
        with self._lock:
            if from_date is None:
                removed = len(self._ledger)
                if initial_ratings is not None:
                    self._load_initial(initial_ratings)
                else:
                    self._require_initialized()
                    self._load_initial(list(self._initial.values()))
                logger.debug("Full reset cleared %d ledger entries", removed)
                return removed

            if initial_ratings is not None:
                raise StoreStateError(
                    "A partial reset keeps the bootstrapped initial ratings"
                )
            self._require_initialized()
            cutoff = as_utc_datetime(from_date)
            kept = [adj for adj in self._ledger if adj.date < cutoff]
            removed = len(self._ledger) - len(kept)
            self._load_initial(list(self._initial.values()))
            for record in kept:
                self._apply_record(record)
            logger.debug(
                "Partial reset from %s removed %d ledger entries",
                cutoff.isoformat(),
                removed,
            )
            return removed

    def snapshot(
        self,
        as_of: datetime | None = None,
        hca: float = DEFAULT_HCA,
        closing_source: str = DEFAULT_CLOSING_SOURCE,
        season: int = DEFAULT_SEASON,
    ) -> RatingsSnapshot:
        """Immutable copy of ratings (best first) plus the full ledger."""
        with self._lock:
            ratings = sorted(
                self._ratings.values(),
                key=lambda r: (-r.rating, r.team_name),
            )
            return RatingsSnapshot(
                ratings=tuple(ratings),
                adjustments=tuple(self._ledger),
                as_of=as_of or datetime.now(timezone.utc),
                hca=hca,
                closing_source=closing_source,
                season=season,
            )

    @classmethod
    def from_snapshot(cls, snapshot: RatingsSnapshot) -> RatingStore:
        """Rebuild a store from a snapshot's initial ratings and ledger.

        Raises:
            ConsistencyError: If the rebuilt ratings disagree with the
                snapshot's ratings.
        """
        store = cls()
        store.bootstrap(
            InitialRating(
                team_name=r.team_name,
                initial_rating=r.initial_rating,
                conference=r.conference,
            )
            for r in snapshot.ratings
        )
        for record in snapshot.adjustments:
            store.append_adjustment(record)

        mismatched = [
            r.team_name
            for r in snapshot.ratings
            if store.get(r.team_name) != r
        ]
        if mismatched:
            raise ConsistencyError(
                f"Snapshot ratings disagree with its ledger for "
                f"{len(mismatched)} team(s): {mismatched[:5]}"
            )
        return store
