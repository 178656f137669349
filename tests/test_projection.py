import math

import pytest

from power_ratings.ratings.projection import (
    format_rating,
    format_spread,
    project_matchup,
    project_spread,
    round_to,
    win_prob_from_spread,
)


class TestProjectSpread:
    def test_home_game_applies_hca(self):
        assert project_spread(10.0, 2.0, 2.5) == -10.5

    def test_neutral_site_skips_hca(self):
        assert project_spread(10.0, 2.0, 2.5, neutral=True) == -8.0

    def test_underdog_home_team_gets_positive_spread(self):
        assert project_spread(1.0, 9.0, 2.5) == 5.5

    @pytest.mark.parametrize(
        "home,away,hca",
        [
            (10.0, 2.0, 2.5),
            (3.33, 7.77, 1.0),
            (0.05, 0.0, 0.0),
            (-4.25, 1.1, 3.35),
            (12.345, -6.789, 2.5),
        ],
    )
    def test_antisymmetric(self, home, away, hca):
        assert project_spread(home, away, hca) == -project_spread(away, home, -hca)

    def test_is_rounded_to_one_place(self):
        assert project_spread(10.04, 2.0, 0.0) == -8.0
        assert project_spread(10.06, 2.0, 0.0) == -8.1


class TestRounding:
    def test_half_away_from_zero(self):
        assert round_to(0.25, 1) == 0.3
        assert round_to(-0.25, 1) == -0.3
        assert round_to(-1.125, 2) == -round_to(1.125, 2)

    def test_negative_zero_normalized(self):
        value = round_to(-0.001, 1)
        assert value == 0.0
        assert math.copysign(1.0, value) == 1.0


class TestWinProbability:
    def test_pick_em_is_even(self):
        assert win_prob_from_spread(0) == 0.5

    def test_seven_point_favorite(self):
        assert win_prob_from_spread(-7.0) == pytest.approx(0.7667, abs=1e-3)

    @pytest.mark.parametrize("spread", [-1e6, -500.0, -50.0, 50.0, 500.0, 1e6])
    def test_stays_inside_open_interval(self, spread):
        p = win_prob_from_spread(spread)
        assert 0.0 < p < 1.0

    def test_monotonic_decreasing(self):
        spreads = [-30.0, -10.0, -3.5, 0.0, 1.5, 8.0, 25.0]
        probs = [win_prob_from_spread(s) for s in spreads]
        assert probs == sorted(probs, reverse=True)

    def test_complementary(self):
        assert win_prob_from_spread(-4.5) + win_prob_from_spread(4.5) == pytest.approx(1.0)


def test_format_helpers():
    assert format_spread(0) == "PK"
    assert format_spread(-7.5) == "-7.5"
    assert format_spread(3.0) == "+3"
    assert format_rating(4.0) == "+4.00"
    assert format_rating(-1.5) == "-1.50"


def test_project_matchup_result():
    result = project_matchup("Duke", "North Carolina", 10.0, 2.0, 2.5)
    assert result.projected_spread == -10.5
    assert result.hca_applied == 2.5
    assert result.favorite == "Duke"
    assert result.home_win_probability > 0.5
    neutral = project_matchup("Duke", "North Carolina", 10.0, 2.0, 2.5, neutral=True)
    assert neutral.hca_applied == 0.0
    assert neutral.to_dict()["projected_spread"] == -8.0
