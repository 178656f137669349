from dataclasses import FrozenInstanceError, replace
from datetime import timedelta

import pytest

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
)
from power_ratings.ratings.store import RatingStore

from conftest import SEASON_START


def _adjustment(game_id, home, away, home_before, away_before, delta, day=0):
    return GameAdjustment(
        game_id=game_id,
        date=SEASON_START + timedelta(days=day),
        home_team=home,
        away_team=away,
        is_neutral_site=False,
        home_rating_before=home_before,
        away_rating_before=away_before,
        projected_spread=-5.0,
        closing_spread=-7.0,
        closing_source="pinnacle",
        difference=-2.0,
        adjustment=-delta,
        home_rating_after=round(home_before + delta, 2),
        away_rating_after=round(away_before - delta, 2),
    )


class TestBootstrap:
    def test_loads_initial_ratings(self, store):
        duke = store.get("Duke")
        assert duke.rating == 10.0
        assert duke.initial_rating == 10.0
        assert duke.games_processed == 0
        assert store.is_initialized
        assert len(store) == 5

    def test_second_bootstrap_raises(self, store, initial_ratings):
        with pytest.raises(StoreStateError):
            store.bootstrap(initial_ratings)

    def test_duplicate_team_rejected(self):
        s = RatingStore()
        with pytest.raises(ConfigurationError):
            s.bootstrap([InitialRating("Duke", 1.0), InitialRating("Duke", 2.0)])

    def test_empty_table_rejected(self):
        with pytest.raises(ConfigurationError):
            RatingStore().bootstrap([])

    def test_write_before_bootstrap_raises(self):
        s = RatingStore()
        with pytest.raises(StoreStateError):
            s.append_adjustment(_adjustment("g1", "A", "B", 1.0, 0.0, 1.0))


class TestAppendAdjustment:
    def test_moves_ratings_and_counts(self, store):
        store.append_adjustment(
            _adjustment("g1", "Duke", "North Carolina", 10.0, 2.0, 1.0)
        )
        assert store.get("Duke").rating == 11.0
        assert store.get("North Carolina").rating == 1.0
        assert store.get("Duke").games_processed == 1
        assert store.get("Duke").initial_rating == 10.0
        assert store.contains("g1")
        assert len(store.ledger) == 1

    def test_duplicate_game_rejected(self, store):
        record = _adjustment("g1", "Duke", "North Carolina", 10.0, 2.0, 1.0)
        store.append_adjustment(record)
        with pytest.raises(StoreStateError):
            store.append_adjustment(record)

    def test_unknown_team_rejected(self, store):
        with pytest.raises(TeamNotFound) as excinfo:
            store.append_adjustment(
                _adjustment("g1", "Gonzaga", "Duke", 0.0, 10.0, 1.0)
            )
        assert excinfo.value.team_name == "Gonzaga"
        assert store.ledger == ()

    def test_same_team_on_both_sides_rejected(self, store):
        with pytest.raises(DataError, match="both sides"):
            store.append_adjustment(
                _adjustment("g1", "Duke", "Duke", 10.0, 10.0, 1.0)
            )
        assert store.get("Duke").rating == 10.0
        assert store.get("Duke").games_processed == 0
        assert not store.contains("g1")


class TestReset:
    def _fill(self, store):
        store.append_adjustment(
            _adjustment("g1", "Duke", "North Carolina", 10.0, 2.0, 1.0, day=0)
        )
        store.append_adjustment(
            _adjustment("g2", "Virginia", "Duke", 5.0, 11.0, 0.5, day=3)
        )
        store.append_adjustment(
            _adjustment("g3", "Kansas", "Virginia", 8.0, 5.5, -1.0, day=6)
        )

    def test_full_reset(self, store):
        self._fill(store)
        removed = store.reset_to()
        assert removed == 3
        assert store.ledger == ()
        assert store.get("Duke").rating == 10.0
        assert store.get("Duke").games_processed == 0

    def test_full_reset_with_new_table(self, store):
        self._fill(store)
        store.reset_to([InitialRating("Gonzaga", 12.0, "WCC")])
        assert store.teams() == ("Gonzaga",)

    def test_partial_reset_keeps_earlier_history(self, store):
        self._fill(store)
        removed = store.reset_to(from_date=SEASON_START + timedelta(days=3))
        assert removed == 2
        assert [a.game_id for a in store.ledger] == ["g1"]
        assert store.get("Duke").rating == 11.0
        assert store.get("Duke").games_processed == 1
        assert store.get("Virginia").rating == 5.0
        assert store.get("Virginia").games_processed == 0
        assert store.get("Kansas").rating == 8.0
        assert not store.contains("g2")

    def test_partial_reset_rejects_new_table(self, store):
        with pytest.raises(StoreStateError):
            store.reset_to([InitialRating("X", 0.0)], from_date="2025-12-01")


class TestSnapshot:
    def test_is_sorted_and_immutable(self, store):
        snap = store.snapshot()
        ratings = [r.rating for r in snap.ratings]
        assert ratings == sorted(ratings, reverse=True)
        assert isinstance(snap.ratings, tuple)
        with pytest.raises(FrozenInstanceError):
            snap.ratings[0].rating = 99.0  # type: ignore[misc]

    def test_not_a_live_reference(self, store):
        snap = store.snapshot()
        store.append_adjustment(
            _adjustment("g1", "Duke", "North Carolina", 10.0, 2.0, 1.0)
        )
        assert snap.games_processed == 0
        assert snap.rating_for("Duke").rating == 10.0

    def test_dict_round_trip(self, store):
        store.append_adjustment(
            _adjustment("g1", "Duke", "North Carolina", 10.0, 2.0, 1.0)
        )
        snap = store.snapshot(hca=2.5, season=2026)
        restored = RatingsSnapshot.from_dict(snap.to_dict())
        assert restored == snap

    def test_frames(self, store):
        store.append_adjustment(
            _adjustment("g1", "Duke", "North Carolina", 10.0, 2.0, 1.0)
        )
        snap = store.snapshot()
        ratings = snap.ratings_frame()
        assert ratings["rank"].to_list() == [1, 2, 3, 4, 5]
        assert ratings["team_name"][0] == "Duke"
        assert ratings["change"][0] == 1.0
        ledger = snap.adjustments_frame()
        assert ledger.height == 1
        assert ledger["game_id"].to_list() == ["g1"]


class TestFromSnapshot:
    def test_rebuilds_store(self, store):
        store.append_adjustment(
            _adjustment("g1", "Duke", "North Carolina", 10.0, 2.0, 1.0)
        )
        rebuilt = RatingStore.from_snapshot(store.snapshot())
        assert rebuilt.get("Duke") == store.get("Duke")
        assert rebuilt.ledger == store.ledger

    def test_detects_inconsistent_snapshot(self, store):
        store.append_adjustment(
            _adjustment("g1", "Duke", "North Carolina", 10.0, 2.0, 1.0)
        )
        snap = store.snapshot()
        tampered = replace(
            snap,
            ratings=tuple(
                replace(r, rating=r.rating + 1.0) if r.team_name == "Duke" else r
                for r in snap.ratings
            ),
        )
        with pytest.raises(ConsistencyError):
            RatingStore.from_snapshot(tampered)
