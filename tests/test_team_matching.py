import pytest

from power_ratings.ratings.team_matching import (
    STRATEGY_EXACT,
    STRATEGY_MASCOT,
    STRATEGY_NORMALIZED,
    STRATEGY_OVERRIDE,
    STRATEGY_PREFIX,
    TeamNameResolver,
    find_team_by_name,
    names_match,
    normalize_team_name,
    strip_mascot,
)

CANONICAL = [
    "Duke",
    "North Carolina",
    "North Dakota",
    "North Dakota St.",
    "Michigan St.",
    "Florida Atlantic",
    "St. John's",
    "Kansas",
    "Arkansas",
    "Saint Mary's",
]


class TestNormalize:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("Duke Blue Devils", "duke"),
            ("Michigan State Spartans", "michigan st"),
            ("Michigan St.", "michigan st"),
            ("St. John's Red Storm", "st johns"),
            ("Saint Mary's Gaels", "st marys"),
            ("  North   Carolina  ", "north carolina"),
        ],
    )
    def test_normalize(self, raw, expected):
        assert normalize_team_name(raw) == expected

    def test_longest_mascot_wins(self):
        assert strip_mascot("Marquette Golden Eagles") == "marquette"


class TestFindTeamByName:
    def test_exact_first(self):
        assert find_team_by_name("Duke", CANONICAL).strategy == STRATEGY_EXACT

    def test_normalized(self):
        match = find_team_by_name("Michigan State Spartans", CANONICAL)
        assert match.name == "Michigan St."
        assert match.strategy == STRATEGY_NORMALIZED

    def test_case_insensitive_is_normalized(self):
        match = find_team_by_name("north carolina", CANONICAL)
        assert match.name == "North Carolina"

    def test_prefix_abbreviation(self):
        match = find_team_by_name("Florida Atl", CANONICAL)
        assert match.name == "Florida Atlantic"
        assert match.strategy == STRATEGY_PREFIX

    def test_state_parity_respected(self):
        match = find_team_by_name("North Dakota Fighting Hawks", CANONICAL)
        assert match.name == "North Dakota"
        match = find_team_by_name("North Dakota State Bison", CANONICAL)
        assert match.name == "North Dakota St."

    def test_mascot_stripped_containment(self):
        match = find_team_by_name("The Duke", CANONICAL)
        assert match.name == "Duke"
        assert match.strategy == STRATEGY_MASCOT

    def test_no_partial_word_containment(self):
        assert find_team_by_name("Kansas Jayhawks", ["Arkansas"]) is None

    def test_unknown_returns_none(self):
        assert find_team_by_name("Gonzaga Bulldogs", CANONICAL) is None


class TestResolver:
    def test_override_first(self):
        resolver = TeamNameResolver(CANONICAL, {"UConn": "Duke"})
        match = resolver.match("uconn")
        assert match.name == "Duke"
        assert match.strategy == STRATEGY_OVERRIDE

    def test_strict_by_default(self):
        resolver = TeamNameResolver(CANONICAL)
        assert resolver.resolve("Duke") == "Duke"
        assert resolver.resolve("Duke Blue Devils") is None

    def test_fuzzy_opt_in(self):
        resolver = TeamNameResolver(CANONICAL, allow_fuzzy=True)
        assert resolver.resolve("Duke Blue Devils") == "Duke"

    def test_override_to_unknown_team_is_ignored(self, caplog):
        resolver = TeamNameResolver(CANONICAL, {"Zags": "Gonzaga"})
        assert resolver.resolve("Zags") is None
        assert any("not rated teams" in m for m in caplog.messages)


@pytest.mark.parametrize(
    "left,right,expected",
    [
        ("Duke", "Duke Blue Devils", True),
        ("Michigan St.", "Michigan State Spartans", True),
        ("Kentucky Wildcats", "Kentucky", True),
        ("Duke", "Virginia Cavaliers", False),
        ("", "Duke", False),
    ],
)
def test_names_match(left, right, expected):
    assert names_match(left, right) is expected
