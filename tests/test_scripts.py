"""Tests for the catalog validation and schedule preview scripts."""

import json
from pathlib import Path
from unittest.mock import patch

import pytest

from daily import select_daily_index
from daily_schedule import build_schedule
from daily_schedule import main as schedule_main
from errors import InvalidInput
from puzzles import PuzzleCatalog
from validate_puzzles import main as validate_main
from validate_puzzles import validate_catalog

SHIPPED_CATALOG = Path(__file__).parent.parent / "data" / "puzzles.json"


def _raw(puzzle_id, title, clues=10):
    return {"id": puzzle_id, "title": title, "year": 2000, "emoji_clues": ["🎬"] * clues}


def test_shipped_catalog_is_valid():
    data = json.loads(SHIPPED_CATALOG.read_text(encoding="utf-8"))
    report = validate_catalog(data)
    assert report == {"errors": [], "warnings": []}


def test_validate_catalog_collects_every_problem():
    report = validate_catalog([
        _raw(1, "Jaws"),
        _raw(1, "Alien"),
        _raw(2, "Up", clues=9),
        {"title": "No id"},
    ])
    assert len(report["errors"]) == 3
    assert any("Duplicate puzzle id: 1" in e for e in report["errors"])
    assert any("exactly 10" in e for e in report["errors"])


def test_validate_catalog_warns_on_title_collisions():
    report = validate_catalog([_raw(1, "The Matrix"), _raw(2, "Matrix")])
    assert report["errors"] == []
    assert report["warnings"] == ["Titles of puzzles [1, 2] all normalize to 'matrix'"]


def test_validate_catalog_rejects_non_list():
    assert validate_catalog({"puzzles": []})["errors"]
    assert validate_catalog([])["errors"] == ["Catalog is empty"]


def test_validate_main_exit_codes(tmp_path, capsys):
    good = tmp_path / "good.json"
    good.write_text(json.dumps([_raw(1, "Jaws")]), encoding="utf-8")
    bad = tmp_path / "bad.json"
    bad.write_text(json.dumps([_raw(1, "Jaws", clues=3)]), encoding="utf-8")

    with patch("sys.argv", ["validate_puzzles.py", str(good)]):
        assert validate_main() == 0
    assert "1 puzzles OK" in capsys.readouterr().out

    with patch("sys.argv", ["validate_puzzles.py", str(bad), "--json"]):
        assert validate_main() == 1
    report = json.loads(capsys.readouterr().out)
    assert len(report["errors"]) == 1


def test_build_schedule_matches_selector():
    puzzles = PuzzleCatalog(SHIPPED_CATALOG).require()
    schedule = build_schedule("s", "2024-02-27", 4, puzzles)

    assert [e["day"] for e in schedule] == ["2024-02-27", "2024-02-28", "2024-02-29", "2024-03-01"]
    for entry in schedule:
        expected = puzzles[select_daily_index("s", entry["day"], puzzles)]
        assert entry["id"] == expected.id
        assert entry["title"] == expected.title


def test_build_schedule_bad_start():
    with pytest.raises(InvalidInput):
        build_schedule("s", "tomorrow", 3, PuzzleCatalog(SHIPPED_CATALOG).require())


def test_schedule_main_json(capsys):
    argv = ["daily_schedule.py", "--catalog", str(SHIPPED_CATALOG), "--start", "2024-01-01",
            "--days", "3", "--secret", "s", "--json"]
    with patch("sys.argv", argv):
        assert schedule_main() == 0
    schedule = json.loads(capsys.readouterr().out)
    assert len(schedule) == 3
    assert schedule[0]["day"] == "2024-01-01"


def test_schedule_main_missing_catalog(tmp_path, capsys):
    argv = ["daily_schedule.py", "--catalog", str(tmp_path / "missing.json"), "--secret", "s"]
    with patch("sys.argv", argv):
        assert schedule_main() == 1
    assert "not found" in capsys.readouterr().err
