"""Market-driven rating engine.

The engine is a left fold over an ordered game list: for each game it
projects a spread from the current ratings, compares it with the market
closing spread and moves both teams toward the market. Starting from the
same initial ratings, the same ordered games always produce the same ratings
and ledger.

Damping rule (fixed; changing it changes every historical rating):

    difference = closing_spread - projected_spread
    adjustment = round(learning_rate * difference / 2, 2)
    away.rating += adjustment
    home.rating -= adjustment
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Any, Callable, Mapping

from tqdm import tqdm

from power_ratings.core.config import RatingsConfig
from power_ratings.core.constants import DEFAULT_CHECKPOINT_EVERY
from power_ratings.core.errors import (
    ConsistencyError,
    MissingMarketLine,
    TeamNotFound,
)
from power_ratings.core.logging import ProgressLogger, log_timing
from power_ratings.ratings.closing_lines import (
    ClosingLine,
    extract_closing_spread,
    find_matching_event,
)
from power_ratings.ratings.models import GameAdjustment, as_utc_datetime
from power_ratings.ratings.projection import (
    ProjectionResult,
    project_matchup,
    project_spread,
    round_rating,
    round_to,
)
from power_ratings.ratings.results import (
    GameOutcome,
    MatchStatus,
    RecalculationResult,
)
from power_ratings.ratings.store import RatingStore
from power_ratings.ratings.team_matching import TeamNameResolver

if TYPE_CHECKING:
    from datetime import date, datetime
    from typing import Iterable, Sequence

    from power_ratings.ratings.models import Game, RatingsSnapshot

logger = logging.getLogger(__name__)

_NO_EVENT = "no market event for game"
_NO_SPREAD = "no usable closing spread"

OddsEvent = Mapping[str, Any]


class RatingEngine:
    """Applies games to a :class:`RatingStore`.

    Per-game data problems (unknown teams, missing lines) never raise; they
    become entries in :attr:`matching_log` and the game is skipped.

    Args:
        store: Bootstrapped rating store. Passed in, never created here.
        config: Rating configuration. Defaults to ``RatingsConfig()``.
        overrides: Source name to canonical name map for team resolution.
        allow_fuzzy: Also resolve names with the fuzzy matching strategies.
        resolver: Pre-built resolver; takes precedence over ``overrides``.
    """

    def __init__(
        self,
        store: RatingStore,
        config: RatingsConfig | None = None,
        overrides: Mapping[str, str] | None = None,
        allow_fuzzy: bool = False,
        resolver: TeamNameResolver | None = None,
    ) -> None:
        self.store = store
        self.config = config or RatingsConfig()
        self.overrides = dict(overrides or {})
        self.allow_fuzzy = allow_fuzzy
        self._supplied_resolver = resolver
        self._resolver = resolver
        self._resolver_teams: tuple[str, ...] | None = None
        self._matching_log: list[GameOutcome] = []

    @property
    def resolver(self) -> TeamNameResolver:
        teams = self.store.teams()
        if self._resolver is None or (
            self._resolver_teams is not None and self._resolver_teams != teams
        ):
            self._resolver = TeamNameResolver(
                teams, self.overrides, allow_fuzzy=self.allow_fuzzy
            )
            self._resolver_teams = teams
        return self._resolver

    @property
    def matching_log(self) -> tuple[GameOutcome, ...]:
        return tuple(self._matching_log)

    def clear_matching_log(self) -> None:
        self._matching_log.clear()

    # ------------------------------------------------------------------
    # Single games
    # ------------------------------------------------------------------

    def apply_game(self, game: Game) -> GameOutcome:
        """Apply one game using its own ``closing_spread``."""
        with self.store.writer():
            return self._apply_locked(game, self._line_from_game)

    def apply_game_with_odds(
        self, game: Game, odds_event: OddsEvent | None
    ) -> GameOutcome:
        """Apply one game, reading the closing spread from a market event.

        The configured closing source picks the line. A missing event is
        reported as ``no_odds``; an event without a usable line as
        ``no_spread``.
        """
        with self.store.writer():
            return self._apply_locked(
                game, lambda g: self._line_from_event(g, odds_event)
            )

    def _line_from_game(self, game: Game) -> ClosingLine:
        if game.closing_spread is None:
            raise MissingMarketLine(game.game_id, _NO_SPREAD)
        return ClosingLine(game.closing_spread, self.config.closing_source)

    def _line_from_event(
        self, game: Game, odds_event: OddsEvent | None
    ) -> ClosingLine:
        if odds_event is None:
            raise MissingMarketLine(game.game_id, _NO_EVENT)
        line = extract_closing_spread(
            odds_event,
            self.config.closing_source,
            self.config.us_bookmaker_keys,
        )
        if line.spread is None:
            raise MissingMarketLine(game.game_id, _NO_SPREAD)
        return line

    def _apply_locked(
        self, game: Game, line_for: Callable[[Game], ClosingLine]
    ) -> GameOutcome:
        if self.store.contains(game.game_id):
            return GameOutcome(
                game_id=game.game_id,
                date=game.date,
                status=MatchStatus.ALREADY_PROCESSED,
                source_home_team=game.home_team,
                source_away_team=game.away_team,
            )

        home = self.resolver.resolve(game.home_team)
        away = self.resolver.resolve(game.away_team)
        if home is None or away is None:
            missing = [
                TeamNotFound(name)
                for name, found in (
                    (game.home_team, home),
                    (game.away_team, away),
                )
                if found is None
            ]
            for error in missing:
                logger.warning("Game %s: %s", game.game_id, error)
            return self._log(
                GameOutcome(
                    game_id=game.game_id,
                    date=game.date,
                    status=MatchStatus.for_missing_teams(
                        home is not None, away is not None
                    ),
                    source_home_team=game.home_team,
                    source_away_team=game.away_team,
                    matched_home_team=home,
                    matched_away_team=away,
                    closing_spread=game.closing_spread,
                    reason="; ".join(str(e) for e in missing),
                )
            )

        if home == away:
            logger.warning(
                "Game %s: %s resolves to the same team on both sides",
                game.game_id,
                home,
            )
            return self._log(
                GameOutcome(
                    game_id=game.game_id,
                    date=game.date,
                    status=MatchStatus.SAME_TEAM,
                    source_home_team=game.home_team,
                    source_away_team=game.away_team,
                    matched_home_team=home,
                    matched_away_team=away,
                    closing_spread=game.closing_spread,
                    reason="same team on both sides",
                )
            )

        try:
            line = line_for(game)
        except MissingMarketLine as exc:
            status = (
                MatchStatus.NO_ODDS
                if exc.reason == _NO_EVENT
                else MatchStatus.NO_SPREAD
            )
            logger.debug("Skipping game %s: %s", game.game_id, exc.reason)
            return self._log(
                GameOutcome(
                    game_id=game.game_id,
                    date=game.date,
                    status=status,
                    source_home_team=game.home_team,
                    source_away_team=game.away_team,
                    matched_home_team=home,
                    matched_away_team=away,
                    reason=exc.reason,
                )
            )

        record = self._build_adjustment(game, home, away, line)
        self.store.append_adjustment(record)
        logger.debug(
            "Game %s: %s vs %s projected=%s closing=%s adjustment=%s",
            game.game_id,
            home,
            away,
            record.projected_spread,
            record.closing_spread,
            record.adjustment,
        )
        return self._log(
            GameOutcome(
                game_id=game.game_id,
                date=game.date,
                status=MatchStatus.SUCCESS,
                source_home_team=game.home_team,
                source_away_team=game.away_team,
                matched_home_team=home,
                matched_away_team=away,
                closing_spread=line.spread,
                adjustment=record,
            )
        )

    def _build_adjustment(
        self, game: Game, home: str, away: str, line: ClosingLine
    ) -> GameAdjustment:
        home_before = self.store.get(home).rating
        away_before = self.store.get(away).rating
        projected = project_spread(
            home_before, away_before, self.config.hca, game.is_neutral_site
        )
        difference = round_to(line.spread - projected, 2)
        adjustment = round_rating(self.config.learning_rate * difference / 2)
        return GameAdjustment(
            game_id=game.game_id,
            date=game.date,
            home_team=home,
            away_team=away,
            is_neutral_site=game.is_neutral_site,
            home_rating_before=home_before,
            away_rating_before=away_before,
            projected_spread=projected,
            closing_spread=line.spread,
            closing_source=line.source,
            difference=difference,
            adjustment=adjustment,
            home_rating_after=round_rating(home_before - adjustment),
            away_rating_after=round_rating(away_before + adjustment),
        )

    def _log(self, outcome: GameOutcome) -> GameOutcome:
        self._matching_log.append(outcome)
        return outcome

    # ------------------------------------------------------------------
    # Batches
    # ------------------------------------------------------------------

    def process_games(
        self,
        games: Iterable[Game],
        events: Sequence[OddsEvent] | None = None,
        should_stop: Callable[[], bool] | None = None,
        on_checkpoint: Callable[[RecalculationResult], None] | None = None,
        checkpoint_every: int = DEFAULT_CHECKPOINT_EVERY,
        progress: bool = False,
    ) -> RecalculationResult:
        """Apply games in date order, skipping those already ledgered.

        Args:
            games: Game feed, in any order. Equal dates keep feed order.
            events: Market events. If given, each game's closing spread is
                read from its matching event instead of the game record.
            should_stop: Polled between games; returning True aborts the
                batch with ``aborted=True``.
            on_checkpoint: Called every ``checkpoint_every`` applied games.
            checkpoint_every: Applied games between checkpoints.
            progress: Show a tqdm progress bar.

        Returns:
            Counts and per-game outcomes for this batch.
        """
        with self.store.writer():
            return self._replay(
                games,
                events,
                should_stop,
                on_checkpoint,
                checkpoint_every,
                progress,
            )

    def recalculate(
        self,
        games: Iterable[Game],
        from_date: datetime | date | str | None = None,
        events: Sequence[OddsEvent] | None = None,
        should_stop: Callable[[], bool] | None = None,
        on_checkpoint: Callable[[RecalculationResult], None] | None = None,
        checkpoint_every: int = DEFAULT_CHECKPOINT_EVERY,
        progress: bool = False,
    ) -> RecalculationResult:
        """Reset ratings and replay the game history.

        Without ``from_date`` ratings go back to their initial values and
        every game is replayed. With ``from_date`` only ledger entries on or
        after that date are dropped and only games on or after it replayed.
        The matching log is cleared first. An aborted run can be resumed with
        :meth:`process_games`.
        """
        with self.store.writer():
            self.clear_matching_log()
            cutoff = as_utc_datetime(from_date) if from_date is not None else None
            label = (
                "full recalculation"
                if cutoff is None
                else f"recalculation from {cutoff.date().isoformat()}"
            )
            with log_timing(logger, label):
                removed = self.store.reset_to(from_date=cutoff)
                logger.info("Reset cleared %d ledger entries", removed)
                if cutoff is not None:
                    games = [g for g in games if g.date >= cutoff]
                result = self._replay(
                    games,
                    events,
                    should_stop,
                    on_checkpoint,
                    checkpoint_every,
                    progress,
                )
            return result

    def _replay(
        self,
        games: Iterable[Game],
        events: Sequence[OddsEvent] | None,
        should_stop: Callable[[], bool] | None,
        on_checkpoint: Callable[[RecalculationResult], None] | None,
        checkpoint_every: int,
        progress: bool,
    ) -> RecalculationResult:
        if checkpoint_every < 1:
            raise ValueError("checkpoint_every must be at least 1")
        start_time = time.perf_counter()
        ordered = sorted(games, key=lambda g: g.date)
        result = RecalculationResult()
        applied = 0

        iterator = ordered
        if progress:
            iterator = tqdm(ordered, desc="Replaying games", unit="game")

        with ProgressLogger(
            logger, "replaying games", total=len(ordered), update_interval=500
        ) as tracker:
            for index, game in enumerate(iterator, start=1):
                if should_stop is not None and should_stop():
                    result.aborted = True
                    logger.info(
                        "Replay aborted after %d of %d games",
                        index - 1,
                        len(ordered),
                    )
                    break
                if events is None:
                    outcome = self._apply_locked(game, self._line_from_game)
                else:
                    event = find_matching_event(game, events)
                    outcome = self._apply_locked(
                        game, lambda g, e=event: self._line_from_event(g, e)
                    )
                result.record(outcome)
                if outcome.applied:
                    applied += 1
                    if on_checkpoint is not None and applied % checkpoint_every == 0:
                        on_checkpoint(result)
                tracker.update(index)

        result.computation_time = time.perf_counter() - start_time
        logger.info(
            "Processed %d games, skipped %d, already processed %d %s",
            result.processed,
            result.skipped,
            result.already_processed,
            result.skip_counts,
        )
        return result

    # ------------------------------------------------------------------
    # Checks and read-side helpers
    # ------------------------------------------------------------------

    def verify_replay(
        self,
        games: Iterable[Game],
        events: Sequence[OddsEvent] | None = None,
    ) -> RecalculationResult:
        """Replay into a fresh store and compare against this one.

        The replica uses this engine's config and name resolution.

        Args:
            games: The game history this store was built from.
            events: Market events, if the store took its lines from them.

        Raises:
            ConsistencyError: If ratings or ledger differ.
        """
        games = list(games)
        with self.store.writer():
            fresh = RatingStore()
            fresh.bootstrap(self.store.initial_ratings())
            replica = RatingEngine(
                fresh,
                self.config,
                overrides=self.overrides,
                allow_fuzzy=self.allow_fuzzy,
                resolver=self._supplied_resolver,
            )
            result = replica.recalculate(games, events=events)
            expected = self.store.snapshot()
            actual = fresh.snapshot(as_of=expected.as_of)
        if actual.ratings != expected.ratings:
            raise ConsistencyError("Replay produced different ratings")
        if actual.adjustments != expected.adjustments:
            raise ConsistencyError("Replay produced a different ledger")
        return result

    def project(
        self, home_team: str, away_team: str, neutral: bool = False
    ) -> ProjectionResult:
        """Project a hypothetical matchup from current ratings.

        Raises:
            TeamNotFound: If either name cannot be resolved.
        """
        names = []
        for source_name in (home_team, away_team):
            name = self.resolver.resolve(source_name)
            if name is None:
                raise TeamNotFound(source_name)
            names.append(name)
        home, away = names
        return project_matchup(
            home,
            away,
            self.store.get(home).rating,
            self.store.get(away).rating,
            self.config.hca,
            neutral=neutral,
        )

    def snapshot(self, as_of: datetime | None = None) -> RatingsSnapshot:
        return self.store.snapshot(
            as_of=as_of,
            hca=self.config.hca,
            closing_source=self.config.closing_source,
            season=self.config.season,
        )
