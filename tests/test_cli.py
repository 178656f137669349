import json

import pytest

from power_ratings.cli import build_parser, main


@pytest.fixture
def feed(tmp_path):
    initial = tmp_path / "initial.csv"
    initial.write_text(
        "team,rating,conference\n"
        "Duke,10,ACC\n"
        "North Carolina,2,ACC\n"
        "Virginia,5,ACC\n"
        "Kansas,8,B12\n"
        "Michigan St.,6,B10\n"
    )
    games = tmp_path / "games.csv"
    games.write_text(
        "game_id,date,home_team,away_team,neutral,closing_spread\n"
        "g1,2025-11-03,Duke,North Carolina,false,-9.5\n"
        "g2,2025-11-04,Gonzaga,Duke,false,-3.0\n"
        "g3,2025-11-05,Kansas,Virginia,false,\n"
    )
    return initial, games


@pytest.fixture
def snapshot_path(feed, tmp_path):
    initial, games = feed
    path = tmp_path / "out" / "snapshot.json"
    assert main(
        [
            "recalculate",
            "--initial", str(initial),
            "--games", str(games),
            "--snapshot-out", str(path),
        ]
    ) == 0  # fmt: skip
    return path


def test_recalculate_writes_outputs(feed, tmp_path, capsys):
    initial, games = feed
    snapshot = tmp_path / "snapshot.json"
    skips = tmp_path / "skips.csv"
    code = main(
        [
            "recalculate",
            "--initial", str(initial),
            "--games", str(games),
            "--snapshot-out", str(snapshot),
            "--skip-log-out", str(skips),
            "--top", "3",
        ]
    )  # fmt: skip
    assert code == 0
    out = capsys.readouterr().out
    assert "Processed 1 games, skipped 2" in out
    assert "home_not_found: 1" in out
    assert "no_spread: 1" in out

    data = json.loads(snapshot.read_text())
    ratings = {r["team_name"]: r["rating"] for r in data["ratings"]}
    assert ratings["Duke"] == 9.5
    assert ratings["North Carolina"] == 2.5
    assert len(data["adjustments"]) == 1

    skip_log = skips.read_text().splitlines()
    assert skip_log[0].startswith("game_id,date,status")
    assert len(skip_log) == 3


def test_project(snapshot_path, capsys):
    capsys.readouterr()
    assert main(["project", "--snapshot", str(snapshot_path), "Duke", "North Carolina"]) == 0
    out = capsys.readouterr().out
    assert "Spread: Duke -9.5" in out

    assert main(
        ["project", "--snapshot", str(snapshot_path), "Duke", "North Carolina", "--neutral"]
    ) == 0
    assert "Spread: Duke -7" in capsys.readouterr().out


def test_project_unknown_team(snapshot_path):
    assert main(["project", "--snapshot", str(snapshot_path), "Duke", "Gonzaga"]) == 1


def test_missing_snapshot(tmp_path):
    assert main(["project", "--snapshot", str(tmp_path / "nope.json"), "A", "B"]) == 2


def test_bracket_with_override(snapshot_path, tmp_path, capsys):
    out_path = tmp_path / "bracket.json"
    code = main(
        [
            "bracket",
            "--snapshot", str(snapshot_path),
            "--template", "4-team",
            "--override", "R1-G1=bottom",
            "--simulate", "200",
            "--seed", "1",
            "--json-out", str(out_path),
        ]
    )  # fmt: skip
    assert code == 0
    out = capsys.readouterr().out
    assert "Semifinals" in out
    assert "Championship odds (200 simulations)" in out

    bracket = json.loads(out_path.read_text())
    first = next(m for m in bracket["matchups"] if m["id"] == "R1-G1")
    assert first["top_team"]["team_name"] == "Duke"
    assert first["bottom_team"]["team_name"] == "Virginia"
    assert first["winner"] == "bottom"
    assert first["is_manual_override"] is True
    final = next(m for m in bracket["matchups"] if m["id"] == "R2-G1")
    assert final["top_team"]["team_name"] == "Virginia"


def test_templates(capsys):
    assert main(["templates"]) == 0
    out = capsys.readouterr().out
    assert "18-team" in out
    assert len(out.strip().splitlines()) == 18


def test_bad_override_syntax():
    parser = build_parser()
    with pytest.raises(SystemExit):
        parser.parse_args(
            ["bracket", "--snapshot", "s.json", "--template", "4-team", "--override", "R1-G1"]
        )
