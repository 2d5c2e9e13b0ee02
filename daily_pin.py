"""
Write-once record of which puzzle is "today's".

The first request of a UTC day computes the puzzle with the daily selector
and pins its id. Later requests read the pin, so editing the catalog in the
middle of a day cannot change the answer people are already playing.
"""

import sys

from daily import select_daily_index
from errors import BackendUnavailable


class DailyPin:
    def __init__(self, backend):
        self.backend = backend

    def get(self, day):
        """Pinned puzzle id for the day, or None (also when storage is down)."""
        try:
            return self.backend.get_pin(day)
        except BackendUnavailable as e:
            print(f"⚠ Daily pin unavailable for {day}: {e}", file=sys.stderr)
            return None

    def pin_if_absent(self, day, puzzle_id):
        """
        Pin `puzzle_id` unless the day already has a pin.

        Returns the id that ends up pinned. Concurrent callers all compute the
        same id, so losing the race (or a storage outage) is harmless.
        """
        try:
            return self.backend.set_pin_if_absent(day, puzzle_id)
        except BackendUnavailable as e:
            print(f"⚠ Could not pin {puzzle_id} for {day}: {e}", file=sys.stderr)
            return puzzle_id

    def force_set(self, day, puzzle_id):
        """
        Overwrite the day's pin. Local file storage only.

        Raises Forbidden on the KV backend; storage errors propagate.
        """
        pinned = self.backend.force_pin(day, puzzle_id)
        print(f"✓ Pinned puzzle {pinned} for {day}")
        return pinned

    def resolve(self, day, catalog, secret):
        """Return the day's puzzle, pinning the selector's pick on first use."""
        puzzles = catalog.require()

        pinned_id = self.get(day)
        if pinned_id is not None:
            puzzle = catalog.get(pinned_id)
            if puzzle is not None:
                return puzzle
            print(f"⚠ Pinned id {pinned_id} for {day} is not in the catalog", file=sys.stderr)

        computed = puzzles[select_daily_index(secret, day, puzzles)]
        if pinned_id is not None:
            return computed

        pinned_id = self.pin_if_absent(day, computed.id)
        return catalog.get(pinned_id) or computed
