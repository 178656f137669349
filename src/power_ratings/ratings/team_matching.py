"""Team-name normalization and matching across data sources.

Market feeds, schedules and the ratings table spell team names differently
("Michigan State Spartans", "Michigan St.", "Mich St"). Everything here is
pure; the engine only uses the fuzzy strategies when asked to.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Iterable, Mapping

logger = logging.getLogger(__name__)

MASCOTS = (
    "wildcats", "bulldogs", "tigers", "bears", "eagles", "cardinals",
    "hokies", "hurricanes", "panthers", "yellow jackets", "fighting irish",
    "demon deacons", "seminoles", "blue devils", "cavaliers", "spartans",
    "buckeyes", "nittany lions", "wolverines", "hoosiers", "boilermakers",
    "fighting illini", "hawkeyes", "badgers", "golden gophers", "cornhuskers",
    "scarlet knights", "terrapins", "bruins", "trojans", "ducks", "huskies",
    "jayhawks", "cyclones", "red raiders", "mountaineers", "horned frogs",
    "longhorns", "sooners", "cougars", "knights", "bearcats", "sun devils",
    "buffaloes", "utes", "volunteers", "crimson tide", "razorbacks", "gators",
    "rebels", "gamecocks", "aggies", "commodores", "musketeers", "friars",
    "pirates", "red storm", "golden eagles", "blue demons", "hoyas", "gaels",
    "rams", "flyers", "wolf pack", "broncos", "lobos", "aztecs", "shockers",
    "tar heels", "orange", "wolfpack", "thundering herd", "leathernecks",
    "jaguars", "monarchs", "owls", "49ers", "chanticleers", "red wolves",
    "highlanders", "terriers", "bison", "explorers", "billikens", "bonnies",
    "colonials", "dukes", "spiders", "royals", "ambassadors", "patriots",
    "lumberjacks", "screaming eagles", "hornets", "hawks", "fighting hawks",
    "jackrabbits", "coyotes", "flames", "racers", "mean green", "roadrunners",
    "anteaters", "matadors", "gauchos", "tritons", "miners", "mocs",
    "paladins", "catamounts", "keydets", "retrievers", "jaspers",
    "purple eagles", "peacocks", "dolphins", "ospreys", "hatters",
    "buccaneers", "governors", "skyhawks", "redhawks", "penguins", "zips",
    "rockets", "chippewas", "bulls", "redbirds", "sycamores", "salukis",
    "mastodons", "roos", "ichabods", "gorillas", "beacons", "yellowjackets",
    "seawolves", "great danes", "phoenix", "griffins", "ramblers",
    "crusaders", "dons", "toreros", "waves", "pilots", "lakers",
)  # fmt: skip

# Longest first so "golden eagles" wins over "eagles"
_MASCOT_RE = re.compile(
    r"\s+(?:"
    + "|".join(re.escape(m) for m in sorted(MASCOTS, key=len, reverse=True))
    + r")$",
    re.IGNORECASE,
)
_STATE_RE = re.compile(r"\b(?:state|saint|st)\b\.?", re.IGNORECASE)
_PUNCT_RE = re.compile(r"[.'’]")
_SPACE_RE = re.compile(r"\s+")

STRATEGY_EXACT = "exact"
STRATEGY_NORMALIZED = "normalized"
STRATEGY_PREFIX = "prefix"
STRATEGY_MASCOT = "mascot_stripped"
STRATEGY_OVERRIDE = "override"


def strip_mascot(name: str) -> str:
    """Drop a trailing mascot ("Duke Blue Devils" -> "duke")."""
    lowered = _SPACE_RE.sub(" ", name.lower()).strip()
    return _MASCOT_RE.sub("", lowered).strip()


def normalize_team_name(name: str) -> str:
    """Canonical comparison key for a team name.

    Lower-cases, strips a trailing mascot, maps State/Saint/St. to "st" and
    collapses punctuation and whitespace.

    >>> normalize_team_name("Michigan State Spartans")
    'michigan st'
    >>> normalize_team_name("Saint Mary's")
    'st marys'
    """
    cleaned = strip_mascot(name)
    cleaned = _STATE_RE.sub("st", cleaned)
    cleaned = _PUNCT_RE.sub("", cleaned)
    return _SPACE_RE.sub(" ", cleaned).strip()


def significant_words(name: str) -> list[str]:
    return normalize_team_name(name).split()


def _word_pair_matches(left: str, right: str) -> bool:
    if left == right:
        return True
    # Abbreviation prefix such as "atl" for "atlantic"
    if len(left) >= 3 and len(right) >= 3:
        return left.startswith(right) or right.startswith(left)
    return False


def words_match(left: list[str], right: list[str]) -> bool:
    """Word-wise abbreviation match.

    Both names need the same word count and must agree on whether they
    contain "st", so "North Dakota" never pairs with "North Dakota St.".
    """
    if not left or not right or len(left) != len(right):
        return False
    if ("st" in left) != ("st" in right):
        return False
    return all(any(_word_pair_matches(w, o) for o in right) for w in left)


def _contains_words(needle: str, haystack: str) -> bool:
    """Whole-word containment ("kansas" is not inside "arkansas")."""
    return f" {needle} " in f" {haystack} "


def names_match(left: str, right: str) -> bool:
    """Loose pairing used to find a market event for a scheduled game."""
    a = left.lower().strip()
    b = right.lower().strip()
    if not a or not b:
        return False
    if a == b or a in b or b in a:
        return True
    first_a = a.split()[0]
    first_b = b.split()[0]
    if len(first_a) > 3 and first_a == first_b:
        return True
    stripped_a = normalize_team_name(a)
    stripped_b = normalize_team_name(b)
    if not stripped_a or not stripped_b:
        return False
    return stripped_a in stripped_b or stripped_b in stripped_a


@dataclass(frozen=True)
class TeamMatch:
    """A resolved canonical name and the strategy that found it."""

    name: str
    strategy: str


def find_team_by_name(
    name: str, candidates: Iterable[str]
) -> TeamMatch | None:
    """Match a source name against canonical names.

    Strategies are tried in a fixed order (exact, normalized-exact, prefix,
    mascot-stripped) and the first hit wins. Within a strategy the first
    candidate in iteration order wins.

    Args:
        name: Name as spelled by the source.
        candidates: Canonical team names.

    Returns:
        The match, or None if no strategy finds one.
    """
    names = list(candidates)
    if name in names:
        return TeamMatch(name, STRATEGY_EXACT)

    key = normalize_team_name(name)
    if not key:
        return None
    normalized = [(candidate, normalize_team_name(candidate)) for candidate in names]
    for candidate, candidate_key in normalized:
        if candidate_key == key:
            return TeamMatch(candidate, STRATEGY_NORMALIZED)

    words = key.split()
    for candidate, candidate_key in normalized:
        if words_match(words, candidate_key.split()):
            return TeamMatch(candidate, STRATEGY_PREFIX)

    for candidate, candidate_key in normalized:
        if not candidate_key:
            continue
        if _contains_words(key, candidate_key) or _contains_words(
            candidate_key, key
        ):
            # Containment must not cross the "st" boundary either
            if ("st" in words) == ("st" in candidate_key.split()):
                return TeamMatch(candidate, STRATEGY_MASCOT)
    return None


class TeamNameResolver:
    """Resolve source team names to canonical rated names.

    Looks up the externally maintained override map first (keys compared
    case-insensitively), then the exact canonical name. Fuzzy strategies are
    only used with ``allow_fuzzy``; otherwise unresolved names come back as
    None for manual resolution.
    """

    def __init__(
        self,
        canonical_names: Iterable[str],
        overrides: Mapping[str, str] | None = None,
        allow_fuzzy: bool = False,
    ) -> None:
        self.canonical_names = tuple(canonical_names)
        self._canonical = set(self.canonical_names)
        self.overrides = {
            source.strip().lower(): target
            for source, target in (overrides or {}).items()
        }
        self.allow_fuzzy = allow_fuzzy
        unknown = sorted(
            t for t in set(self.overrides.values()) if t not in self._canonical
        )
        if unknown:
            logger.warning(
                "%d override target(s) are not rated teams: %s",
                len(unknown),
                unknown[:5],
            )

    def match(self, source_name: str) -> TeamMatch | None:
        target = self.overrides.get(source_name.strip().lower())
        if target is not None and target in self._canonical:
            return TeamMatch(target, STRATEGY_OVERRIDE)
        if source_name in self._canonical:
            return TeamMatch(source_name, STRATEGY_EXACT)
        if not self.allow_fuzzy:
            return None
        return find_team_by_name(source_name, self.canonical_names)

    def resolve(self, source_name: str) -> str | None:
        found = self.match(source_name)
        return found.name if found else None
