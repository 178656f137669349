import numpy as np
import pytest

from power_ratings.bracket.builder import build_matchups, create_bracket
from power_ratings.bracket.models import Side
from power_ratings.bracket.projector import toggle_winner
from power_ratings.bracket.simulation import BracketSimulator
from power_ratings.bracket.templates import get_template


@pytest.fixture
def bracket(eight_teams):
    return create_bracket(get_template("8-team"), eight_teams)


def test_seeded_runs_are_reproducible(bracket):
    first = BracketSimulator(seed=7).simulate(bracket.matchups, 2_000)
    second = BracketSimulator(seed=7).simulate(bracket.matchups, 2_000)
    np.testing.assert_array_equal(
        first.champion_probabilities, second.champion_probabilities
    )


def test_probabilities_are_consistent(bracket):
    result = BracketSimulator(seed=1).simulate(bracket.matchups, 5_000)
    assert result.rounds == [1, 2, 3]
    assert result.champion_probabilities.sum() == pytest.approx(1.0)
    np.testing.assert_allclose(result.reach_probabilities[:, 0], 1.0)
    # Reaching a later round is never more likely than an earlier one
    assert np.all(np.diff(result.reach_probabilities, axis=1) <= 0)
    assert result.reach_probabilities[:, 1].sum() == pytest.approx(4.0)
    assert result.probability_of("Team 1") > result.probability_of("Team 8")


def test_win_probability_matches_projection():
    simulator = BracketSimulator()
    p = simulator.win_probability(np.array([20.0, 3.0]), np.array([3.0, 3.0]))
    assert p[0] == pytest.approx(1.0 / (1.0 + np.exp(0.17 * -17.0)))
    assert p[1] == pytest.approx(0.5)


def test_overrides_are_honored(bracket):
    toggle_winner(bracket.matchups, "R1-G1", Side.BOTTOM)
    result = BracketSimulator(seed=3).simulate(bracket.matchups, 1_000)
    assert result.probability_of("Team 1") == 0.0
    ignored = BracketSimulator(seed=3, honor_overrides=False).simulate(
        bracket.matchups, 1_000
    )
    assert ignored.probability_of("Team 1") > 0.0


def test_missing_seed_raises(eight_teams):
    matchups = build_matchups(get_template("8-team"), eight_teams[:7])
    with pytest.raises(ValueError, match="no bottom team"):
        BracketSimulator().simulate(matchups, 10)


def test_to_dataframe(bracket):
    frame = BracketSimulator(seed=2).simulate(bracket.matchups, 500).to_dataframe()
    assert frame.columns == [
        "team_name", "seed", "rating",
        "reach_round_1", "reach_round_2", "reach_round_3", "champion",
    ]  # fmt: skip
    assert frame.height == 8
    assert frame["champion"].to_list() == sorted(frame["champion"].to_list(), reverse=True)


def test_bye_counts_as_reaching_skipped_rounds(eight_teams):
    matchups = build_matchups(get_template("7-team"), eight_teams[:7])
    result = BracketSimulator(seed=4).simulate(matchups, 1_000)
    assert result.rounds == [0, 1, 2, 3]
    top_seed = [t.team_name for t in result.teams].index("Team 1")
    np.testing.assert_allclose(result.reach_probabilities[top_seed, :3], 1.0)
    assert result.reach_probabilities[:, 0].sum() == pytest.approx(7.0)
