#!/usr/bin/env python3
"""
Check a puzzle catalog before deploying it.

  * every entry has an integer id, a title and exactly 10 emoji clues
  * ids are unique
  * no two titles normalize to the same guess key (warning only)

Usage:
    python validate_puzzles.py data/puzzles.json
    python validate_puzzles.py data/puzzles.json --json
"""

import argparse
import json
import sys
from collections import defaultdict
from pathlib import Path
from typing import Any, Dict, List

from errors import CatalogError
from normalize import normalize_title
from puzzles import parse_puzzle


def validate_catalog(data: Any) -> Dict[str, List[str]]:
    """Return {"errors": [...], "warnings": [...]} for raw catalog JSON."""
    errors: List[str] = []
    warnings: List[str] = []

    if not isinstance(data, list):
        return {"errors": ["Catalog must be a JSON array of puzzles"], "warnings": []}
    if not data:
        errors.append("Catalog is empty")

    puzzles = []
    for i, raw in enumerate(data):
        try:
            puzzles.append(parse_puzzle(raw, i))
        except CatalogError as e:
            errors.append(e.message)

    ids = defaultdict(int)
    titles = defaultdict(list)
    for p in puzzles:
        ids[p.id] += 1
        titles[normalize_title(p.title)].append(p.id)

    for puzzle_id, count in sorted(ids.items()):
        if count > 1:
            errors.append(f"Duplicate puzzle id: {puzzle_id} ({count} entries)")

    for key, puzzle_ids in sorted(titles.items()):
        if len(puzzle_ids) > 1:
            warnings.append(f"Titles of puzzles {puzzle_ids} all normalize to '{key}'")

    return {"errors": errors, "warnings": warnings}


def main():
    parser = argparse.ArgumentParser(description="Validate a Framemoji puzzle catalog")
    parser.add_argument('catalog', type=Path, nargs='?', default=Path("data/puzzles.json"))
    parser.add_argument('--json', action='store_true', help='Print the report as JSON')
    args = parser.parse_args()

    try:
        with args.catalog.open("r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        print(f"✗ Cannot read {args.catalog}: {e}", file=sys.stderr)
        return 1

    report = validate_catalog(data)

    if args.json:
        print(json.dumps(report, indent=2, ensure_ascii=False))
    else:
        for w in report["warnings"]:
            print(f"⚠ {w}")
        for e in report["errors"]:
            print(f"✗ {e}")
        if not report["errors"]:
            print(f"✓ {len(data)} puzzles OK")

    return 1 if report["errors"] else 0


if __name__ == "__main__":
    sys.exit(main())
