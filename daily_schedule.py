#!/usr/bin/env python3
"""
Preview which puzzle the daily selector picks for a run of days.

Pins are not consulted: this shows what a fresh day would get.

Usage:
    python daily_schedule.py --start 2024-06-01 --days 7
    FRAMEMOJI_DAILY_SECRET=... python daily_schedule.py --json
"""

import argparse
import json
import sys
from datetime import timedelta
from pathlib import Path

from daily import parse_date_key, select_daily_index, utc_date_key
from errors import FramemojiError
from puzzles import PuzzleCatalog
from settings import Settings


def build_schedule(secret, start_day, days, puzzles):
    """List of {"day", "id", "title"} for `days` consecutive days from start_day."""
    start = parse_date_key(start_day)
    schedule = []
    for offset in range(days):
        day = (start + timedelta(days=offset)).strftime("%Y-%m-%d")
        puzzle = puzzles[select_daily_index(secret, day, puzzles)]
        schedule.append({"day": day, "id": puzzle.id, "title": puzzle.title})
    return schedule


def main():
    settings = Settings.from_env()

    parser = argparse.ArgumentParser(description="Preview the daily puzzle schedule")
    parser.add_argument('--catalog', type=Path, default=settings.puzzles_path)
    parser.add_argument('--start', type=str, default=None, help='First day YYYY-MM-DD (default: today, UTC)')
    parser.add_argument('--days', type=int, default=7)
    parser.add_argument('--secret', type=str, default=None, help='Daily secret (default: from environment)')
    parser.add_argument('--json', action='store_true')
    args = parser.parse_args()

    secret = args.secret or settings.secret
    if args.secret is None and settings.dev_mode:
        print("⚠ No daily secret set - showing the dev-mode schedule", file=sys.stderr)

    try:
        puzzles = PuzzleCatalog(args.catalog).require()
        schedule = build_schedule(secret, args.start or utc_date_key(), args.days, puzzles)
    except FramemojiError as e:
        print(f"✗ {e.message}", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps(schedule, indent=2, ensure_ascii=False))
    else:
        for entry in schedule:
            print(f"{entry['day']}  #{entry['id']:<6} {entry['title']}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
