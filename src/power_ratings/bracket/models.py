"""Bracket teams, matchups, templates and tournament configs."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping, Optional, Union

from power_ratings.core.errors import ConfigurationError


class Side(str, Enum):
    """Side of a matchup. The top side is treated as "home" when projecting."""

    TOP = "top"
    BOTTOM = "bottom"


class MatchupState(Enum):
    """Matchup lifecycle states."""

    PENDING = "pending"  # One or both teams unresolved
    PROVISIONAL = "provisional"  # Both teams known, winner auto-picked
    OVERRIDDEN = "overridden"  # Winner set by hand


@dataclass(frozen=True)
class BracketTeam:
    """A seeded team in one bracket."""

    team_name: str
    seed: int
    rating: float
    conference: str = ""
    logo_url: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "team_name": self.team_name,
            "seed": self.seed,
            "rating": self.rating,
            "conference": self.conference,
            "logo_url": self.logo_url,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> BracketTeam:
        return cls(
            team_name=data["team_name"],
            seed=int(data["seed"]),
            rating=float(data["rating"]),
            conference=data.get("conference") or "",
            logo_url=data.get("logo_url"),
        )


@dataclass
class BracketMatchup:
    """One game slot in a bracket.

    Mutated in place by the projector. ``source_matchup_ids`` names the
    matchups whose winners fill the top and bottom slots.
    """

    id: str
    round: int
    position: int
    top_team: Optional[BracketTeam] = None
    bottom_team: Optional[BracketTeam] = None
    projected_spread: Optional[float] = None
    win_prob_top: Optional[float] = None
    winner: Optional[Side] = None
    is_manual_override: bool = False
    source_matchup_ids: tuple[Optional[str], Optional[str]] = (None, None)

    @property
    def has_both_teams(self) -> bool:
        return self.top_team is not None and self.bottom_team is not None

    @property
    def state(self) -> MatchupState:
        if not self.has_both_teams:
            return MatchupState.PENDING
        if self.is_manual_override and self.winner is not None:
            return MatchupState.OVERRIDDEN
        return MatchupState.PROVISIONAL

    def team_for(self, side: Side) -> Optional[BracketTeam]:
        return self.top_team if side is Side.TOP else self.bottom_team

    @property
    def winning_team(self) -> Optional[BracketTeam]:
        if self.winner is None:
            return None
        return self.team_for(self.winner)

    @property
    def losing_team(self) -> Optional[BracketTeam]:
        if self.winner is None:
            return None
        other = Side.BOTTOM if self.winner is Side.TOP else Side.TOP
        return self.team_for(other)

    def clear_projection(self) -> None:
        self.projected_spread = None
        self.win_prob_top = None
        self.winner = None
        self.is_manual_override = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "round": self.round,
            "position": self.position,
            "top_team": self.top_team.to_dict() if self.top_team else None,
            "bottom_team": (
                self.bottom_team.to_dict() if self.bottom_team else None
            ),
            "projected_spread": self.projected_spread,
            "win_prob_top": self.win_prob_top,
            "winner": self.winner.value if self.winner else None,
            "is_manual_override": self.is_manual_override,
            "source_matchup_ids": list(self.source_matchup_ids),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> BracketMatchup:
        top = data.get("top_team")
        bottom = data.get("bottom_team")
        sources = tuple(data.get("source_matchup_ids") or (None, None))
        return cls(
            id=data["id"],
            round=int(data["round"]),
            position=int(data["position"]),
            top_team=BracketTeam.from_dict(top) if top else None,
            bottom_team=BracketTeam.from_dict(bottom) if bottom else None,
            projected_spread=data.get("projected_spread"),
            win_prob_top=data.get("win_prob_top"),
            winner=Side(data["winner"]) if data.get("winner") else None,
            is_manual_override=bool(data.get("is_manual_override", False)),
            source_matchup_ids=(sources[0], sources[1]),
        )


SlotSource = Union[int, str]


@dataclass(frozen=True)
class TemplateSlot:
    """A matchup slot definition.

    Each side is filled either by a fixed seed or by the winner of an
    earlier matchup, never both.
    """

    id: str
    top_seed: Optional[int] = None
    bottom_seed: Optional[int] = None
    top_from: Optional[str] = None
    bottom_from: Optional[str] = None

    def __post_init__(self) -> None:
        for label, seed, source in (
            ("top", self.top_seed, self.top_from),
            ("bottom", self.bottom_seed, self.bottom_from),
        ):
            if (seed is None) == (source is None):
                raise ConfigurationError(
                    f"Slot {self.id}: {label} side needs exactly one of a "
                    f"seed or a source matchup"
                )

    @classmethod
    def of(cls, slot_id: str, top: SlotSource, bottom: SlotSource) -> TemplateSlot:
        """Build a slot from seeds (ints) and source matchup ids (strs)."""
        return cls(
            id=slot_id,
            top_seed=top if isinstance(top, int) else None,
            bottom_seed=bottom if isinstance(bottom, int) else None,
            top_from=top if isinstance(top, str) else None,
            bottom_from=bottom if isinstance(bottom, str) else None,
        )

    @property
    def seeds(self) -> tuple[int, ...]:
        return tuple(s for s in (self.top_seed, self.bottom_seed) if s is not None)

    @property
    def sources(self) -> tuple[Optional[str], Optional[str]]:
        return (self.top_from, self.bottom_from)


@dataclass(frozen=True)
class TemplateRound:
    round: int
    name: str
    matchups: tuple[TemplateSlot, ...]


@dataclass(frozen=True)
class BracketTemplate:
    """A tournament shape as an ordered list of rounds of slots."""

    id: str
    name: str
    team_count: int
    rounds: tuple[TemplateRound, ...]

    @property
    def slots(self) -> tuple[TemplateSlot, ...]:
        return tuple(slot for rnd in self.rounds for slot in rnd.matchups)

    def round_of(self, slot_id: str) -> Optional[int]:
        for rnd in self.rounds:
            if any(slot.id == slot_id for slot in rnd.matchups):
                return rnd.round
        return None

    def round_name(self, round_number: int) -> str:
        for rnd in self.rounds:
            if rnd.round == round_number:
                return rnd.name
        return f"Round {round_number}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "team_count": self.team_count,
            "rounds": [
                {
                    "round": rnd.round,
                    "name": rnd.name,
                    "matchups": [
                        {
                            "id": slot.id,
                            "top_seed": slot.top_seed,
                            "bottom_seed": slot.bottom_seed,
                            "top_from": slot.top_from,
                            "bottom_from": slot.bottom_from,
                        }
                        for slot in rnd.matchups
                    ],
                }
                for rnd in self.rounds
            ],
        }


@dataclass
class BracketConfig:
    """One tournament instance: seeded teams plus its matchups."""

    id: str
    name: str
    conference: Optional[str]
    template_id: str
    teams: list[BracketTeam]
    matchups: list[BracketMatchup]
    updated_at: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    def matchup(self, matchup_id: str) -> Optional[BracketMatchup]:
        for matchup in self.matchups:
            if matchup.id == matchup_id:
                return matchup
        return None

    def touch(self) -> None:
        self.updated_at = datetime.now(timezone.utc)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "name": self.name,
            "conference": self.conference,
            "template_id": self.template_id,
            "teams": [team.to_dict() for team in self.teams],
            "matchups": [matchup.to_dict() for matchup in self.matchups],
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> BracketConfig:
        """Create from dictionary."""
        return cls(
            id=data["id"],
            name=data["name"],
            conference=data.get("conference"),
            template_id=data["template_id"],
            teams=[BracketTeam.from_dict(t) for t in data.get("teams", [])],
            matchups=[
                BracketMatchup.from_dict(m) for m in data.get("matchups", [])
            ],
            updated_at=datetime.fromisoformat(data["updated_at"]),
        )
