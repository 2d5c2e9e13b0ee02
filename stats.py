"""
Aggregate daily play statistics.

Per UTC day we keep a histogram of how many emoji each solver needed
(reveal 1..10) plus a failure count, and, per reveal level, how often each
normalized wrong guess was made.

Statistics never get in the way of playing: storage errors are logged and
reads come back empty, writes are dropped.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from typing import Dict, List

from backends import HISTOGRAM_SLOTS, clamp_reveal
from errors import BackendUnavailable

MAX_GUESS_LIMIT = 50


@dataclass
class Histogram:
    solves: List[int] = field(default_factory=lambda: [0] * HISTOGRAM_SLOTS)
    fail: int = 0

    @classmethod
    def from_dict(cls, data: Dict) -> "Histogram":
        return cls(solves=list(data["solves"]), fail=int(data["fail"]))

    @property
    def total(self) -> int:
        return sum(self.solves) + self.fail

    def to_dict(self) -> Dict:
        return {"solves": list(self.solves), "fail": self.fail}


def percentile_for_reveal(hist: Histogram, revealed: int, correct: bool) -> Dict[str, int]:
    """
    Share of today's players that did strictly worse than this outcome.

    A solve at reveal r beats everyone who needed more than r reveals and
    everyone who failed. A failure beats nobody, so it is always 0.
    The histogram should already include this outcome.
    """
    idx = clamp_reveal(revealed) - 1
    total = hist.total
    worse_strict = sum(hist.solves[idx + 1:]) + hist.fail if correct else 0
    percentile = (100 * worse_strict) // total if total > 0 else 0
    return {"percentile": min(max(percentile, 0), 100), "total": total}


def top_guesses(counts: Dict[str, int], limit: int = 10) -> List[Dict]:
    """Most frequent guesses first; ties in alphabetical order."""
    if limit <= 0:
        return []
    ranked = sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))
    return [{"key": key, "count": count} for key, count in ranked[:limit]]


class StatsStore:
    def __init__(self, backend):
        self.backend = backend

    def load_histogram(self, day) -> Histogram:
        try:
            return Histogram.from_dict(self.backend.load_histogram(day))
        except BackendUnavailable as e:
            print(f"⚠ Stats unavailable for {day}: {e}", file=sys.stderr)
            return Histogram()

    def bump_histogram(self, day, revealed, correct) -> Histogram:
        """Count one finished game and return the updated histogram."""
        try:
            return Histogram.from_dict(self.backend.bump_histogram(day, clamp_reveal(revealed), bool(correct)))
        except BackendUnavailable as e:
            print(f"⚠ Dropped result for {day} (r{revealed}, correct={correct}): {e}", file=sys.stderr)
            return self.load_histogram(day)

    def record_guess(self, day, revealed, normalized_guess) -> None:
        if not normalized_guess:
            return
        try:
            self.backend.record_guess(day, clamp_reveal(revealed), normalized_guess)
        except BackendUnavailable as e:
            print(f"⚠ Dropped guess for {day}: {e}", file=sys.stderr)

    def top_guesses(self, day, revealed, limit=10) -> List[Dict]:
        try:
            counts = self.backend.guess_counts(day, clamp_reveal(revealed))
        except BackendUnavailable as e:
            print(f"⚠ Guess stats unavailable for {day}: {e}", file=sys.stderr)
            return []
        return top_guesses(counts, limit)
