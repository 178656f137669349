import pytest

from power_ratings.bracket.models import (
    BracketTemplate,
    TemplateRound,
    TemplateSlot,
)
from power_ratings.bracket.templates import (
    BUILTIN_TEMPLATES,
    CONFERENCE_DEFAULTS,
    DEFAULT_REGISTRY,
    TemplateRegistry,
    default_bracket_name,
    default_template_for,
    get_template,
    validate_template,
)
from power_ratings.core.errors import ConfigurationError


def _make(team_count, *rounds):
    return BracketTemplate(
        id="custom",
        name="Custom",
        team_count=team_count,
        rounds=tuple(
            TemplateRound(number, f"Round {number}", tuple(TemplateSlot.of(*s) for s in slots))
            for number, slots in rounds
        ),
    )


class TestBuiltins:
    def test_catalog(self):
        assert len(BUILTIN_TEMPLATES) == 18
        assert len(DEFAULT_REGISTRY) == 18
        assert "12-team-stepladder" in DEFAULT_REGISTRY

    @pytest.mark.parametrize("template", BUILTIN_TEMPLATES, ids=lambda t: t.id)
    def test_every_builtin_is_valid(self, template):
        validate_template(template)
        seeds = sorted(s for slot in template.slots for s in slot.seeds)
        assert seeds == list(range(1, template.team_count + 1))

    @pytest.mark.parametrize("template", BUILTIN_TEMPLATES, ids=lambda t: t.id)
    def test_games_played_is_teams_minus_one(self, template):
        assert len(template.slots) == template.team_count - 1

    def test_get_unknown_template(self):
        with pytest.raises(ConfigurationError, match="Unknown bracket template"):
            get_template("64-team")

    def test_for_team_count(self):
        ids = {t.id for t in DEFAULT_REGISTRY.for_team_count(12)}
        assert ids == {"12-team-top4-bye", "12-team-stepladder", "12-team-top6-bye"}

    def test_round_names(self):
        template = get_template("7-team")
        assert template.round_of("R0-G1") == 0
        assert template.round_name(3) == "Championship"
        assert template.round_name(9) == "Round 9"


class TestValidation:
    def test_duplicate_seed(self):
        template = _make(4, (1, [("R1-G1", 1, 4), ("R1-G2", 1, 3)]), (2, [("R2-G1", "R1-G1", "R1-G2")]))
        with pytest.raises(ConfigurationError, match="seeds used twice"):
            validate_template(template)

    def test_missing_seed(self):
        template = _make(5, (1, [("R1-G1", 1, 4), ("R1-G2", 2, 3)]), (2, [("R2-G1", "R1-G1", "R1-G2")]))
        with pytest.raises(ConfigurationError, match="missing=\\[5\\]"):
            validate_template(template)

    def test_unknown_source(self):
        template = _make(4, (1, [("R1-G1", 1, 4), ("R1-G2", 2, 3)]), (2, [("R2-G1", "R1-G1", "R1-G9")]))
        with pytest.raises(ConfigurationError, match="unknown matchup"):
            validate_template(template)

    def test_cycle(self):
        template = _make(
            3,
            (1, [("R1-G1", 1, 2), ("R1-G2", 3, "R2-G1")]),
            (2, [("R2-G1", "R1-G1", "R1-G2")]),
        )
        with pytest.raises(ConfigurationError, match="cyclic"):
            validate_template(template)

    def test_source_in_same_round(self):
        template = _make(
            5,
            (1, [("R1-G1", 1, 2), ("R1-G2", 3, "R1-G3"), ("R1-G3", 4, 5)]),
            (2, [("R2-G1", "R1-G1", "R1-G2")]),
        )
        with pytest.raises(ConfigurationError, match="earlier round"):
            validate_template(template)

    def test_two_championships(self):
        template = _make(4, (1, [("R1-G1", 1, 2), ("R1-G2", 3, 4)]))
        with pytest.raises(ConfigurationError, match="one championship"):
            validate_template(template)

    def test_rounds_must_increase(self):
        template = _make(4, (2, [("R1-G1", 1, 4), ("R1-G2", 2, 3)]), (1, [("R2-G1", "R1-G1", "R1-G2")]))
        with pytest.raises(ConfigurationError, match="strictly increase"):
            validate_template(template)

    def test_slot_needs_seed_or_source(self):
        with pytest.raises(ConfigurationError):
            TemplateSlot(id="R1-G1", top_seed=1, top_from="R0-G1", bottom_seed=2)

    def test_registry_rejects_duplicates(self):
        registry = TemplateRegistry([get_template("4-team")])
        with pytest.raises(ConfigurationError, match="already registered"):
            registry.register(get_template("4-team"))


class TestConferenceDefaults:
    def test_known_conference(self):
        assert default_template_for("B10") == "18-team"
        assert default_bracket_name("Ivy") == "Ivy League Tournament"

    def test_unknown_conference_falls_back(self):
        assert default_template_for("XYZ") == "8-team"
        assert default_bracket_name("XYZ") == "XYZ Tournament"

    def test_defaults_reference_registered_templates(self):
        for template_id, _ in CONFERENCE_DEFAULTS.values():
            assert template_id in DEFAULT_REGISTRY
