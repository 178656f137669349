"""
Command-line interface for power ratings.

Usage:
    power-ratings recalculate --initial ratings.csv --games games.csv \\
        --snapshot-out snapshot.json
    power-ratings project --snapshot snapshot.json "Duke" "North Carolina"
    power-ratings bracket --snapshot snapshot.json --conference ACC \\
        --override R1-G1=bottom --simulate 10000
    power-ratings templates

Environment:
    POWER_RATINGS_LOG_LEVEL / POWER_RATINGS_LOG_FORMAT control logging;
    POWER_RATINGS_HCA, POWER_RATINGS_CLOSING_SOURCE,
    POWER_RATINGS_LEARNING_RATE and POWER_RATINGS_SEASON seed the rating
    configuration; SENTRY_DSN enables error reporting.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from power_ratings import __version__
from power_ratings.bracket import (
    DEFAULT_REGISTRY,
    BracketSimulator,
    champion,
    create_bracket,
    default_bracket_name,
    default_template_for,
    format_matchup_spread,
    seed_teams,
    toggle_winner,
)
from power_ratings.core.config import RatingsConfig
from power_ratings.core.constants import CLOSING_SOURCES, SPORT_HCA
from power_ratings.core.errors import PowerRatingsError
from power_ratings.core.logging import LOG_FORMAT_ENV, setup_logging
from power_ratings.core.sentry import init_sentry
from power_ratings.ratings.convert import (
    games_from_frame,
    initial_ratings_from_frame,
    read_table,
)
from power_ratings.ratings.engine import RatingEngine
from power_ratings.ratings.models import RatingsSnapshot
from power_ratings.ratings.projection import format_rating, format_spread
from power_ratings.ratings.store import RatingStore

log = logging.getLogger("power_ratings.cli")


def _load_json(path: str) -> Any:
    with Path(path).open("r", encoding="utf-8") as f:
        return json.load(f)


def _write_json(path: str, data: Any) -> None:
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    with out.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)


def _load_snapshot(path: str) -> RatingsSnapshot:
    return RatingsSnapshot.from_dict(_load_json(path))


def _build_config(args: argparse.Namespace) -> RatingsConfig:
    config = RatingsConfig.from_env()
    if getattr(args, "sport", None):
        config = config.with_overrides(hca=SPORT_HCA.get(args.sport))
    return config.with_overrides(
        hca=getattr(args, "hca", None),
        closing_source=getattr(args, "closing_source", None),
    )


def _cmd_recalculate(args: argparse.Namespace) -> int:
    config = _build_config(args)
    overrides: Dict[str, str] = _load_json(args.overrides) if args.overrides else {}

    store = RatingStore()
    store.bootstrap(initial_ratings_from_frame(read_table(args.initial)))
    engine = RatingEngine(
        store, config, overrides=overrides, allow_fuzzy=args.fuzzy
    )
    games = games_from_frame(read_table(args.games))
    result = engine.recalculate(
        games, from_date=args.from_date, progress=args.progress
    )
    snapshot = engine.snapshot()

    if args.snapshot_out:
        _write_json(args.snapshot_out, snapshot.to_dict())
        log.info("Wrote snapshot to %s", args.snapshot_out)
    if args.skip_log_out:
        Path(args.skip_log_out).parent.mkdir(parents=True, exist_ok=True)
        result.to_dataframe(skips_only=True).write_csv(args.skip_log_out)
        log.info("Wrote skip log to %s", args.skip_log_out)

    summary = result.summary()
    print(
        f"Processed {summary['processed']} games, skipped {summary['skipped']}"
    )
    for status, count in summary["skip_counts"].items():
        print(f"  {status}: {count}")
    print("\nTop teams:")
    for row in snapshot.ratings_frame().head(args.top).iter_rows(named=True):
        print(
            f"  {row['rank']:>3}. {row['team_name']:<28} "
            f"{format_rating(row['rating']):>7} ({row['change']:+.2f})"
        )
    return 0


def _cmd_project(args: argparse.Namespace) -> int:
    snapshot = _load_snapshot(args.snapshot)
    config = RatingsConfig(
        hca=args.hca if args.hca is not None else snapshot.hca,
        closing_source=snapshot.closing_source,
        season=snapshot.season,
    )
    engine = RatingEngine(
        RatingStore.from_snapshot(snapshot), config, allow_fuzzy=args.fuzzy
    )
    projection = engine.project(args.home, args.away, neutral=args.neutral)
    site = "neutral site" if projection.is_neutral_site else "home"
    print(
        f"{projection.home_team} ({format_rating(projection.home_rating)}) vs "
        f"{projection.away_team} ({format_rating(projection.away_rating)}), {site}"
    )
    print(f"Spread: {projection.home_team} {format_spread(projection.projected_spread)}")
    print(
        f"Win probability: {projection.home_team} "
        f"{projection.home_win_probability:.1%}"
    )
    return 0


def _parse_override(text: str) -> tuple[str, str]:
    matchup_id, sep, side = text.partition("=")
    if not sep or not matchup_id or side not in ("top", "bottom"):
        raise argparse.ArgumentTypeError(
            f"expected MATCHUP_ID=top|bottom, got {text!r}"
        )
    return matchup_id, side


def _cmd_bracket(args: argparse.Namespace) -> int:
    snapshot = _load_snapshot(args.snapshot)
    hca = args.hca if args.hca is not None else snapshot.hca
    template_id = args.template or default_template_for(args.conference)
    template = DEFAULT_REGISTRY.get(template_id)
    teams = seed_teams(snapshot.ratings, template.team_count, args.conference)
    name = default_bracket_name(args.conference) if args.conference else template.name
    bracket = create_bracket(
        template, teams, name=name, conference=args.conference, hca=hca
    )
    for matchup_id, side in args.override or []:
        toggle_winner(bracket.matchups, matchup_id, side, hca)
    bracket.touch()

    print(f"{bracket.name} ({template.name})")
    current_round = None
    for matchup in sorted(bracket.matchups, key=lambda m: (m.round, m.position)):
        if matchup.round != current_round:
            current_round = matchup.round
            print(f"\n{template.round_name(current_round)}")
        top = matchup.top_team
        bottom = matchup.bottom_team
        line = format_matchup_spread(matchup) or "TBD"
        flag = " *" if matchup.is_manual_override else ""
        print(
            f"  {matchup.id:<6} "
            f"{f'({top.seed}) {top.team_name}' if top else 'TBD':<28} vs "
            f"{f'({bottom.seed}) {bottom.team_name}' if bottom else 'TBD':<28} "
            f"{line}{flag}"
        )
    winner = champion(bracket.matchups)
    if winner is not None:
        print(f"\nProjected champion: ({winner.seed}) {winner.team_name}")

    if args.simulate:
        result = BracketSimulator(hca=hca, seed=args.seed).simulate(
            bracket.matchups, n_simulations=args.simulate
        )
        print(f"\nChampionship odds ({args.simulate} simulations):")
        for row in result.to_dataframe().iter_rows(named=True):
            print(f"  ({row['seed']:>2}) {row['team_name']:<28} {row['champion']:.1%}")

    if args.json_out:
        _write_json(args.json_out, bracket.to_dict())
        log.info("Wrote bracket to %s", args.json_out)
    return 0


def _cmd_templates(args: argparse.Namespace) -> int:
    for template in DEFAULT_REGISTRY:
        rounds = " / ".join(rnd.name for rnd in template.rounds)
        print(f"{template.id:<20} {template.team_count:>2} teams  {rounds}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="power-ratings",
        description="Market-driven team power ratings and bracket projections",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--version", action="version", version=__version__)
    parser.add_argument(
        "--verbose", action="store_true", help="Enable debug logging"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    recalc = sub.add_parser(
        "recalculate", help="Replay the game feed from initial ratings"
    )
    recalc.add_argument("--initial", required=True, help="Initial ratings table")
    recalc.add_argument("--games", required=True, help="Game feed table")
    recalc.add_argument("--overrides", help="JSON map of source name to team")
    recalc.add_argument(
        "--fuzzy", action="store_true", help="Resolve names with fuzzy matching"
    )
    recalc.add_argument("--hca", type=float, default=None)
    recalc.add_argument("--sport", choices=sorted(SPORT_HCA), default=None)
    recalc.add_argument("--closing-source", choices=CLOSING_SOURCES, default=None)
    recalc.add_argument(
        "--from-date", default=None, help="Only replay games on/after this date"
    )
    recalc.add_argument("--snapshot-out", default=None)
    recalc.add_argument("--skip-log-out", default=None)
    recalc.add_argument("--top", type=int, default=25)
    recalc.add_argument("--progress", action="store_true")
    recalc.set_defaults(func=_cmd_recalculate)

    project = sub.add_parser("project", help="Project a single matchup")
    project.add_argument("--snapshot", required=True)
    project.add_argument("home")
    project.add_argument("away")
    project.add_argument("--neutral", action="store_true")
    project.add_argument("--hca", type=float, default=None)
    project.add_argument("--fuzzy", action="store_true")
    project.set_defaults(func=_cmd_project)

    bracket = sub.add_parser("bracket", help="Seed and project a bracket")
    bracket.add_argument("--snapshot", required=True)
    which = bracket.add_mutually_exclusive_group(required=True)
    which.add_argument("--conference")
    which.add_argument("--template", choices=DEFAULT_REGISTRY.ids())
    bracket.add_argument(
        "--override",
        action="append",
        type=_parse_override,
        metavar="ID=top|bottom",
        help="Pick a winner by hand (repeatable, applied in order)",
    )
    bracket.add_argument("--simulate", type=int, default=0, metavar="N")
    bracket.add_argument("--seed", type=int, default=None)
    bracket.add_argument("--hca", type=float, default=None)
    bracket.add_argument("--json-out", default=None)
    bracket.set_defaults(func=_cmd_bracket)

    templates = sub.add_parser("templates", help="List bracket templates")
    templates.set_defaults(func=_cmd_templates)
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(
        level="DEBUG" if args.verbose else None,
        format_style=os.getenv(LOG_FORMAT_ENV, "simple"),
    )
    init_sentry(context="power_ratings_cli", release=__version__)

    try:
        return args.func(args)
    except (PowerRatingsError, ValueError) as exc:
        log.error("%s failed: %s", args.command, exc)
        return 1
    except FileNotFoundError as exc:
        log.error("File not found: %s", exc.filename)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
