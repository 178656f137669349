"""Built-in tournament shapes and per-conference defaults.

Slots are written as ``(id, top, bottom)`` where an ``int`` is a seed and a
``str`` is the id of the earlier matchup whose winner fills the slot.
Every template is validated when the module is imported.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import TYPE_CHECKING

from power_ratings.bracket.models import (
    BracketTemplate,
    TemplateRound,
    TemplateSlot,
)
from power_ratings.core.constants import DEFAULT_TEMPLATE_ID
from power_ratings.core.errors import ConfigurationError

if TYPE_CHECKING:
    from typing import Iterator, Sequence

    from power_ratings.bracket.models import SlotSource

logger = logging.getLogger(__name__)


def validate_template(template: BracketTemplate) -> None:
    """Check that a template is a well-formed single-elimination graph.

    Raises:
        ConfigurationError: On duplicate slot ids, non-increasing rounds,
            missing or duplicate seeds, unknown or cyclic source references,
            sources not in a strictly earlier round, a matchup feeding more
            than one slot, or anything other than one championship matchup.
    """
    prefix = f"Template {template.id!r}"
    if template.team_count < 2:
        raise ConfigurationError(f"{prefix}: needs at least two teams")
    if not template.rounds:
        raise ConfigurationError(f"{prefix}: has no rounds")

    numbers = [rnd.round for rnd in template.rounds]
    if any(b <= a for a, b in zip(numbers, numbers[1:])):
        raise ConfigurationError(
            f"{prefix}: round numbers must strictly increase, got {numbers}"
        )

    round_of: dict[str, int] = {}
    for rnd in template.rounds:
        if not rnd.matchups:
            raise ConfigurationError(f"{prefix}: round {rnd.round} is empty")
        for slot in rnd.matchups:
            if slot.id in round_of:
                raise ConfigurationError(f"{prefix}: duplicate slot id {slot.id}")
            round_of[slot.id] = rnd.round

    seed_counts = Counter(seed for slot in template.slots for seed in slot.seeds)
    duplicates = sorted(s for s, n in seed_counts.items() if n > 1)
    if duplicates:
        raise ConfigurationError(f"{prefix}: seeds used twice: {duplicates}")
    expected = set(range(1, template.team_count + 1))
    if set(seed_counts) != expected:
        missing = sorted(expected - set(seed_counts))
        extra = sorted(set(seed_counts) - expected)
        raise ConfigurationError(
            f"{prefix}: seeds must be 1..{template.team_count} "
            f"(missing={missing}, unexpected={extra})"
        )

    feeds: Counter[str] = Counter()
    for slot in template.slots:
        for source in slot.sources:
            if source is None:
                continue
            if source not in round_of:
                raise ConfigurationError(
                    f"{prefix}: {slot.id} references unknown matchup {source}"
                )
            feeds[source] += 1

    _check_acyclic(template, prefix)

    for slot in template.slots:
        for source in slot.sources:
            if source is not None and round_of[source] >= round_of[slot.id]:
                raise ConfigurationError(
                    f"{prefix}: {slot.id} is fed by {source}, which is not "
                    f"in an earlier round"
                )

    overfed = sorted(s for s, n in feeds.items() if n > 1)
    if overfed:
        raise ConfigurationError(
            f"{prefix}: matchups feed more than one slot: {overfed}"
        )
    terminal = [s.id for s in template.slots if feeds[s.id] == 0]
    if len(terminal) != 1:
        raise ConfigurationError(
            f"{prefix}: expected one championship matchup, found {terminal}"
        )


def _check_acyclic(template: BracketTemplate, prefix: str) -> None:
    parents = {slot.id: [s for s in slot.sources if s] for slot in template.slots}
    done: set[str] = set()
    for start in parents:
        if start in done:
            continue
        # Iterative DFS; the path set catches back edges
        path: set[str] = set()
        stack: list[tuple[str, Iterator[str]]] = [(start, iter(parents[start]))]
        path.add(start)
        while stack:
            node, children = stack[-1]
            child = next(children, None)
            if child is None:
                stack.pop()
                path.discard(node)
                done.add(node)
                continue
            if child in path:
                raise ConfigurationError(
                    f"{prefix}: cyclic source reference through {child}"
                )
            if child not in done:
                path.add(child)
                stack.append((child, iter(parents[child])))


class TemplateRegistry:
    """Catalog of validated bracket templates keyed by id."""

    def __init__(self, templates: Sequence[BracketTemplate] = ()) -> None:
        self._templates: dict[str, BracketTemplate] = {}
        for template in templates:
            self.register(template)

    def register(self, template: BracketTemplate) -> None:
        if template.id in self._templates:
            raise ConfigurationError(f"Template {template.id!r} already registered")
        validate_template(template)
        self._templates[template.id] = template

    def get(self, template_id: str) -> BracketTemplate:
        try:
            return self._templates[template_id]
        except KeyError:
            raise ConfigurationError(
                f"Unknown bracket template {template_id!r}; "
                f"available: {', '.join(self._templates)}"
            ) from None

    def ids(self) -> list[str]:
        return list(self._templates)

    def for_team_count(self, team_count: int) -> list[BracketTemplate]:
        return [t for t in self._templates.values() if t.team_count == team_count]

    def __contains__(self, template_id: object) -> bool:
        return template_id in self._templates

    def __iter__(self) -> Iterator[BracketTemplate]:
        return iter(self._templates.values())

    def __len__(self) -> int:
        return len(self._templates)


def _template(
    template_id: str,
    name: str,
    team_count: int,
    *rounds: tuple[int, str, Sequence[tuple[str, SlotSource, SlotSource]]],
) -> BracketTemplate:
    return BracketTemplate(
        id=template_id,
        name=name,
        team_count=team_count,
        rounds=tuple(
            TemplateRound(
                round=number,
                name=round_name,
                matchups=tuple(TemplateSlot.of(*slot) for slot in slots),
            )
            for number, round_name, slots in rounds
        ),
    )


# Shared tails
_QF8_SEMIS = [("R2-G1", "R1-G1", "R1-G2"), ("R2-G2", "R1-G3", "R1-G4")]
_R3_FINAL = [("R3-G1", "R2-G1", "R2-G2")]
_R3_SEMIS = [("R3-G1", "R2-G1", "R2-G2"), ("R3-G2", "R2-G3", "R2-G4")]
_R4_FINAL = [("R4-G1", "R3-G1", "R3-G2")]
_R4_SEMIS = [("R4-G1", "R3-G1", "R3-G2"), ("R4-G2", "R3-G3", "R3-G4")]
_R5_FINAL = [("R5-G1", "R4-G1", "R4-G2")]

BUILTIN_TEMPLATES: tuple[BracketTemplate, ...] = (
    _template(
        "4-team", "4-Team", 4,
        (1, "Semifinals", [("R1-G1", 1, 4), ("R1-G2", 2, 3)]),
        (2, "Championship", [("R2-G1", "R1-G1", "R1-G2")]),
    ),
    _template(
        "7-team", "7-Team (Top 2 Bye to Semis)", 7,
        (0, "Play-In", [("R0-G1", 6, 7)]),
        (1, "Quarterfinals", [("R1-G1", 3, "R0-G1"), ("R1-G2", 4, 5)]),
        (2, "Semifinals", [("R2-G1", 1, "R1-G2"), ("R2-G2", 2, "R1-G1")]),
        (3, "Championship", _R3_FINAL),
    ),
    _template(
        "8-team", "8-Team", 8,
        (1, "Quarterfinals", [
            ("R1-G1", 1, 8), ("R1-G2", 4, 5), ("R1-G3", 3, 6), ("R1-G4", 2, 7),
        ]),
        (2, "Semifinals", _QF8_SEMIS),
        (3, "Championship", _R3_FINAL),
    ),
    _template(
        "8-team-top2-bye", "8-Team (Top 2 Bye to Semis)", 8,
        (1, "First Round", [("R1-G1", 5, 8), ("R1-G2", 6, 7)]),
        (2, "Quarterfinals", [("R2-G1", 4, "R1-G1"), ("R2-G2", 3, "R1-G2")]),
        (3, "Semifinals", [("R3-G1", 1, "R2-G1"), ("R3-G2", 2, "R2-G2")]),
        (4, "Championship", _R4_FINAL),
    ),
    _template(
        "9-team", "9-Team (8v9 Play-In)", 9,
        (0, "Play-In", [("R0-G1", 8, 9)]),
        (1, "Quarterfinals", [
            ("R1-G1", 1, "R0-G1"), ("R1-G2", 4, 5),
            ("R1-G3", 3, 6), ("R1-G4", 2, 7),
        ]),
        (2, "Semifinals", _QF8_SEMIS),
        (3, "Championship", _R3_FINAL),
    ),
    _template(
        "10-team", "10-Team (7v10, 8v9 play-in)", 10,
        (0, "Play-In", [("R0-G1", 7, 10), ("R0-G2", 8, 9)]),
        (1, "Quarterfinals", [
            ("R1-G1", 1, "R0-G2"), ("R1-G2", 4, 5),
            ("R1-G3", 3, 6), ("R1-G4", 2, "R0-G1"),
        ]),
        (2, "Semifinals", _QF8_SEMIS),
        (3, "Championship", _R3_FINAL),
    ),
    _template(
        "10-team-stepladder", "10-Team Stepladder", 10,
        (1, "First Round", [("R1-G1", 7, 10), ("R1-G2", 8, 9)]),
        (2, "Second Round", [("R2-G1", 6, "R1-G1"), ("R2-G2", 5, "R1-G2")]),
        (3, "Quarterfinals", [("R3-G1", 4, "R2-G1"), ("R3-G2", 3, "R2-G2")]),
        (4, "Semifinals", [("R4-G1", 2, "R3-G1"), ("R4-G2", 1, "R3-G2")]),
        (5, "Championship", [("R5-G1", "R4-G2", "R4-G1")]),
    ),
    _template(
        "11-team", "11-Team (Top 5 Bye)", 11,
        (1, "First Round", [("R1-G1", 8, 9), ("R1-G2", 6, 11), ("R1-G3", 7, 10)]),
        (2, "Quarterfinals", [
            ("R2-G1", 1, "R1-G1"), ("R2-G2", 4, 5),
            ("R2-G3", 3, "R1-G2"), ("R2-G4", 2, "R1-G3"),
        ]),
        (3, "Semifinals", _R3_SEMIS),
        (4, "Championship", _R4_FINAL),
    ),
    _template(
        "11-team-top2-bye", "11-Team (Top 2 Bye to Semis)", 11,
        (0, "Play-In", [("R0-G1", 10, 11)]),
        (1, "First Round", [
            ("R1-G1", 9, "R0-G1"), ("R1-G2", 3, 8),
            ("R1-G3", 4, 7), ("R1-G4", 5, 6),
        ]),
        (2, "Quarterfinals", [
            ("R2-G1", "R1-G1", "R1-G2"), ("R2-G2", "R1-G3", "R1-G4"),
        ]),
        (3, "Semifinals", [("R3-G1", 1, "R2-G1"), ("R3-G2", 2, "R2-G2")]),
        (4, "Championship", _R4_FINAL),
    ),
    _template(
        "12-team-top4-bye", "12-Team (Top 4 Bye)", 12,
        (1, "First Round", [
            ("R1-G1", 5, 12), ("R1-G2", 8, 9), ("R1-G3", 7, 10), ("R1-G4", 6, 11),
        ]),
        (2, "Quarterfinals", [
            ("R2-G1", 1, "R1-G2"), ("R2-G2", 4, "R1-G1"),
            ("R2-G3", 3, "R1-G4"), ("R2-G4", 2, "R1-G3"),
        ]),
        (3, "Semifinals", _R3_SEMIS),
        (4, "Championship", _R4_FINAL),
    ),
    _template(
        "12-team-stepladder", "12-Team Stepladder", 12,
        (1, "First Round", [("R1-G1", 9, 12), ("R1-G2", 10, 11)]),
        (2, "Second Round", [("R2-G1", 8, "R1-G1"), ("R2-G2", 7, "R1-G2")]),
        (3, "Third Round", [("R3-G1", 6, "R2-G1"), ("R3-G2", 5, "R2-G2")]),
        (4, "Quarterfinals", [("R4-G1", 4, "R3-G1"), ("R4-G2", 3, "R3-G2")]),
        (5, "Semifinals", [("R5-G1", 2, "R4-G1"), ("R5-G2", 1, "R4-G2")]),
        (6, "Championship", [("R6-G1", "R5-G2", "R5-G1")]),
    ),
    _template(
        "12-team-top6-bye", "12-Team (Top 6 Bye to QF)", 12,
        (1, "First Round", [("R1-G1", 9, 12), ("R1-G2", 10, 11)]),
        (2, "Second Round", [("R2-G1", 8, "R1-G1"), ("R2-G2", 7, "R1-G2")]),
        (3, "Quarterfinals", [
            ("R3-G1", 1, "R2-G1"), ("R3-G2", 4, 5),
            ("R3-G3", 3, 6), ("R3-G4", 2, "R2-G2"),
        ]),
        (4, "Semifinals", _R4_SEMIS),
        (5, "Championship", _R5_FINAL),
    ),
    _template(
        "13-team", "13-Team (Top 4 Double Bye)", 13,
        (0, "Opening Round", [("R0-G1", 12, 13)]),
        (1, "First Round", [
            ("R1-G1", 8, 9), ("R1-G2", 5, "R0-G1"),
            ("R1-G3", 6, 11), ("R1-G4", 7, 10),
        ]),
        (2, "Quarterfinals", [
            ("R2-G1", 1, "R1-G1"), ("R2-G2", 4, "R1-G2"),
            ("R2-G3", 3, "R1-G3"), ("R2-G4", 2, "R1-G4"),
        ]),
        (3, "Semifinals", _R3_SEMIS),
        (4, "Championship", _R4_FINAL),
    ),
    _template(
        "14-team-top4-dbl", "14-Team (Top 4 Double Bye)", 14,
        (1, "First Round", [("R1-G1", 11, 14), ("R1-G2", 12, 13)]),
        (2, "Second Round", [
            ("R2-G1", 8, 9), ("R2-G2", 5, "R1-G2"),
            ("R2-G3", 6, "R1-G1"), ("R2-G4", 7, 10),
        ]),
        (3, "Quarterfinals", [
            ("R3-G1", 1, "R2-G1"), ("R3-G2", 4, "R2-G2"),
            ("R3-G3", 3, "R2-G3"), ("R3-G4", 2, "R2-G4"),
        ]),
        (4, "Semifinals", _R4_SEMIS),
        (5, "Championship", _R5_FINAL),
    ),
    _template(
        "14-team-top2-semis", "14-Team (Top 2 Bye to Semis)", 14,
        (1, "First Round", [("R1-G1", 11, 14), ("R1-G2", 12, 13)]),
        (2, "Second Round", [
            ("R2-G1", 6, "R1-G1"), ("R2-G2", 7, 10),
            ("R2-G3", 5, "R1-G2"), ("R2-G4", 8, 9),
        ]),
        (3, "Third Round", [
            ("R3-G1", "R2-G1", "R2-G2"), ("R3-G2", "R2-G3", "R2-G4"),
        ]),
        (4, "Quarterfinals", [("R4-G1", 3, "R3-G1"), ("R4-G2", 4, "R3-G2")]),
        (5, "Semifinals", [("R5-G1", 1, "R4-G1"), ("R5-G2", 2, "R4-G2")]),
        (6, "Championship", [("R6-G1", "R5-G1", "R5-G2")]),
    ),
    _template(
        "15-team", "15-Team (Top 4 Double Bye)", 15,
        (1, "First Round", [
            ("R1-G1", 10, 15), ("R1-G2", 11, 14), ("R1-G3", 12, 13),
        ]),
        (2, "Second Round", [
            ("R2-G1", 8, 9), ("R2-G2", 5, "R1-G3"),
            ("R2-G3", 6, "R1-G2"), ("R2-G4", 7, "R1-G1"),
        ]),
        (3, "Quarterfinals", [
            ("R3-G1", 1, "R2-G1"), ("R3-G2", 4, "R2-G2"),
            ("R3-G3", 3, "R2-G3"), ("R3-G4", 2, "R2-G4"),
        ]),
        (4, "Semifinals", _R4_SEMIS),
        (5, "Championship", _R5_FINAL),
    ),
    _template(
        "16-team", "16-Team", 16,
        (1, "First Round", [
            ("R1-G1", 1, 16), ("R1-G2", 8, 9), ("R1-G3", 5, 12), ("R1-G4", 4, 13),
            ("R1-G5", 3, 14), ("R1-G6", 6, 11), ("R1-G7", 7, 10), ("R1-G8", 2, 15),
        ]),
        (2, "Quarterfinals", [
            ("R2-G1", "R1-G1", "R1-G2"), ("R2-G2", "R1-G3", "R1-G4"),
            ("R2-G3", "R1-G5", "R1-G6"), ("R2-G4", "R1-G7", "R1-G8"),
        ]),
        (3, "Semifinals", _R3_SEMIS),
        (4, "Championship", _R4_FINAL),
    ),
    _template(
        "18-team", "18-Team (Staggered Byes)", 18,
        (1, "First Round", [("R1-G1", 16, 17), ("R1-G2", 15, 18)]),
        (2, "Second Round", [
            ("R2-G1", 9, "R1-G1"), ("R2-G2", 12, "R1-G2"),
            ("R2-G3", 10, 13), ("R2-G4", 11, 14),
        ]),
        (3, "Third Round", [
            ("R3-G1", 8, "R2-G1"), ("R3-G2", 5, "R2-G2"),
            ("R3-G3", 6, "R2-G3"), ("R3-G4", 7, "R2-G4"),
        ]),
        (4, "Quarterfinals", [
            ("R4-G1", 1, "R3-G1"), ("R4-G2", 4, "R3-G2"),
            ("R4-G3", 3, "R3-G3"), ("R4-G4", 2, "R3-G4"),
        ]),
        (5, "Semifinals", [
            ("R5-G1", "R4-G1", "R4-G2"), ("R5-G2", "R4-G3", "R4-G4"),
        ]),
        (6, "Championship", [("R6-G1", "R5-G1", "R5-G2")]),
    ),
)  # fmt: skip

DEFAULT_REGISTRY = TemplateRegistry(BUILTIN_TEMPLATES)


def get_template(template_id: str) -> BracketTemplate:
    return DEFAULT_REGISTRY.get(template_id)


# Conference abbreviation -> (template id, tournament name)
CONFERENCE_DEFAULTS: dict[str, tuple[str, str]] = {
    # Power conferences
    "B12": ("16-team", "Big 12 Tournament"),
    "SEC": ("16-team", "SEC Tournament"),
    "ACC": ("15-team", "ACC Tournament"),
    "B10": ("18-team", "Big Ten Tournament"),
    # Major conferences
    "BE": ("11-team", "Big East Tournament"),
    "AAC": ("10-team-stepladder", "AAC Tournament"),
    "A10": ("14-team-top4-dbl", "Atlantic 10 Tournament"),
    "MWC": ("12-team-top4-bye", "Mountain West Tournament"),
    "CUSA": ("12-team-top4-bye", "Conference USA Tournament"),
    "WCC": ("12-team-stepladder", "WCC Tournament"),
    "MVC": ("11-team", "MVC Tournament"),
    "CAA": ("13-team", "CAA Tournament"),
    "SB": ("14-team-top2-semis", "Sun Belt Tournament"),
    # Mid-majors
    "MAC": ("8-team", "MAC Tournament"),
    "BSky": ("10-team", "Big Sky Tournament"),
    "SC": ("10-team", "SoCon Tournament"),
    "OVC": ("8-team-top2-bye", "OVC Tournament"),
    "Horz": ("11-team-top2-bye", "Horizon League Tournament"),
    "ASun": ("12-team-top4-bye", "ASUN Tournament"),
    "BW": ("8-team-top2-bye", "Big West Tournament"),
    "WAC": ("7-team", "WAC Tournament"),
    "AE": ("8-team", "America East Tournament"),
    "Sum": ("9-team", "Summit League Tournament"),
    "Pat": ("10-team", "Patriot League Tournament"),
    "MAAC": ("10-team", "MAAC Tournament"),
    # Small conferences
    "NEC": ("8-team", "NEC Tournament"),
    "MEAC": ("7-team", "MEAC Tournament"),
    "SWAC": ("12-team-top6-bye", "SWAC Tournament"),
    "Slnd": ("8-team-top2-bye", "Southland Tournament"),
    "Ivy": ("4-team", "Ivy League Tournament"),
}


def default_template_for(conference: str) -> str:
    """Template id a conference's tournament uses (8-team if unknown)."""
    entry = CONFERENCE_DEFAULTS.get(conference)
    if entry is None:
        logger.debug(
            "No bracket default for conference %r; using %s",
            conference,
            DEFAULT_TEMPLATE_ID,
        )
        return DEFAULT_TEMPLATE_ID
    return entry[0]


def default_bracket_name(conference: str) -> str:
    entry = CONFERENCE_DEFAULTS.get(conference)
    return entry[1] if entry else f"{conference} Tournament"
