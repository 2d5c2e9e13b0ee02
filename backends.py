"""
Storage backends for the daily pin and play statistics.

Two implementations of one interface:

- RedisRestBackend talks to an Upstash / Vercel KV Redis over its REST API.
  Every write is a single server-side atomic command (SETNX, HINCRBY), so
  any number of processes can share it.
- FileBackend keeps JSON files under a local directory. Writes are
  read-modify-write serialized by an in-process lock, which is only safe
  for a single server process (local development).

Backends raise BackendUnavailable when storage cannot be reached. Callers
(DailyPin, StatsStore) decide how to degrade.

Key layout (one representation per concern):

    framemoji:{day}:puzzle         string, pinned puzzle id
    emovi:{day}:solves             hash, fields r1..r10 and fail
    emovi:{day}:guesses:r{n}       hash, normalized guess -> count

    var/daily/{day}.json           {"id": 123}
    var/stats/{day}.json           {"solves": [..10], "fail": 0, "guesses": [{..} x10]}
"""

import json
import os
import sys
import tempfile
import threading
from pathlib import Path

import requests

from errors import BackendUnavailable, Forbidden

HISTOGRAM_SLOTS = 10


def clamp_reveal(revealed):
    """Clamp a reveal count into 1..10."""
    return min(max(int(revealed), 1), HISTOGRAM_SLOTS)


def empty_histogram():
    return {"solves": [0] * HISTOGRAM_SLOTS, "fail": 0}


def pin_key(day):
    return f"framemoji:{day}:puzzle"


def solves_key(day):
    return f"emovi:{day}:solves"


def guesses_key(day, revealed):
    return f"emovi:{day}:guesses:r{clamp_reveal(revealed)}"


class Backend:
    """Interface shared by the storage backends."""

    kind = "abstract"

    def get_pin(self, day):
        """Pinned puzzle id for the day, or None."""
        raise NotImplementedError

    def set_pin_if_absent(self, day, puzzle_id):
        """Pin the id unless something is pinned already; return the pinned id."""
        raise NotImplementedError

    def force_pin(self, day, puzzle_id):
        """Overwrite the pin (local development only)."""
        raise NotImplementedError

    def load_histogram(self, day):
        raise NotImplementedError

    def bump_histogram(self, day, revealed, correct):
        """Increment one histogram cell and return the updated histogram."""
        raise NotImplementedError

    def record_guess(self, day, revealed, key):
        raise NotImplementedError

    def guess_counts(self, day, revealed):
        """Mapping of normalized guess -> count for one reveal level."""
        raise NotImplementedError


# ---------------------------------------------------------------------------
# Local file storage
# ---------------------------------------------------------------------------

class FileBackend(Backend):
    kind = "file"

    def __init__(self, root):
        self.root = Path(root)
        self.daily_dir = self.root / "daily"
        self.stats_dir = self.root / "stats"
        self._lock = threading.Lock()

    def _pin_path(self, day):
        return self.daily_dir / f"{day}.json"

    def _stats_path(self, day):
        return self.stats_dir / f"{day}.json"

    def _read_json(self, path):
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except FileNotFoundError:
            return None
        except ValueError:
            # Not JSON, or not UTF-8 at all
            print(f"⚠ Ignoring malformed file {path}", file=sys.stderr)
            return None
        except OSError as e:
            raise BackendUnavailable(f"Cannot read {path}: {e}")

    def _write_json(self, path, data):
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            # Write then rename so readers never see a half-written file
            fd, tmp = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(data, f)
                os.replace(tmp, path)
            except OSError:
                if os.path.exists(tmp):
                    os.remove(tmp)
                raise
        except OSError as e:
            raise BackendUnavailable(f"Cannot write {path}: {e}")

    # --- pin ---

    def get_pin(self, day):
        data = self._read_json(self._pin_path(day))
        if not isinstance(data, dict):
            return None
        value = data.get("id")
        if isinstance(value, bool) or not isinstance(value, int):
            return None
        return value

    def set_pin_if_absent(self, day, puzzle_id):
        with self._lock:
            existing = self.get_pin(day)
            if existing is not None:
                return existing
            self._write_json(self._pin_path(day), {"id": puzzle_id})
            return puzzle_id

    def force_pin(self, day, puzzle_id):
        with self._lock:
            self._write_json(self._pin_path(day), {"id": puzzle_id})
            return puzzle_id

    # --- stats ---

    def _load_stats(self, day):
        data = self._read_json(self._stats_path(day))
        stats = empty_histogram()
        stats["guesses"] = [{} for _ in range(HISTOGRAM_SLOTS)]
        if not isinstance(data, dict):
            return stats

        solves = data.get("solves")
        if not isinstance(solves, list) or len(solves) != HISTOGRAM_SLOTS:
            return stats
        try:
            parsed_solves = [int(n) for n in solves]
            parsed_fail = int(data.get("fail") or 0)
        except (TypeError, ValueError):
            print(f"⚠ Ignoring malformed stats for {day}", file=sys.stderr)
            return stats
        stats["solves"] = parsed_solves
        stats["fail"] = parsed_fail

        guesses = data.get("guesses")
        if isinstance(guesses, list) and len(guesses) == HISTOGRAM_SLOTS:
            stats["guesses"] = [
                {str(k): v for k, v in b.items() if isinstance(v, int)} if isinstance(b, dict) else {}
                for b in guesses
            ]
        return stats

    def load_histogram(self, day):
        stats = self._load_stats(day)
        return {"solves": stats["solves"], "fail": stats["fail"]}

    def bump_histogram(self, day, revealed, correct):
        with self._lock:
            stats = self._load_stats(day)
            if correct:
                stats["solves"][clamp_reveal(revealed) - 1] += 1
            else:
                stats["fail"] += 1
            self._write_json(self._stats_path(day), stats)
        return {"solves": stats["solves"], "fail": stats["fail"]}

    def record_guess(self, day, revealed, key):
        with self._lock:
            stats = self._load_stats(day)
            bucket = stats["guesses"][clamp_reveal(revealed) - 1]
            bucket[key] = bucket.get(key, 0) + 1
            self._write_json(self._stats_path(day), stats)

    def guess_counts(self, day, revealed):
        stats = self._load_stats(day)
        return dict(stats["guesses"][clamp_reveal(revealed) - 1])


# ---------------------------------------------------------------------------
# Upstash / Vercel KV (Redis over REST)
# ---------------------------------------------------------------------------

class RedisRestClient:
    """
    Minimal client for the Upstash Redis REST API.

    A command is POSTed to the base URL as a JSON array, e.g.
    ["HINCRBY", "emovi:2024-06-01:solves", "r3", "1"], and the reply is
    {"result": ...} or {"error": "..."}.
    """

    def __init__(self, url, token, timeout=5.0):
        self.url = url.rstrip("/")
        self.token = token
        self.timeout = timeout

    def command(self, *args):
        try:
            response = requests.post(
                self.url,
                json=[str(a) for a in args],
                headers={"Authorization": f"Bearer {self.token}"},
                timeout=self.timeout
            )
        except requests.RequestException as e:
            raise BackendUnavailable(f"KV request failed: {e}")

        try:
            payload = response.json()
        except ValueError:
            payload = None

        error = payload.get("error") if isinstance(payload, dict) else None
        if response.status_code != 200:
            raise BackendUnavailable(f"KV error {response.status_code}: {error or 'no details'}")
        if not isinstance(payload, dict):
            raise BackendUnavailable("KV returned an unexpected reply")
        if error:
            raise BackendUnavailable(f"KV error: {error}")
        return payload.get("result")


def _pairs_to_dict(result):
    """HGETALL replies arrive as a flat [field, value, ...] list."""
    if isinstance(result, dict):
        return {str(k): v for k, v in result.items()}
    if not result:
        return {}
    return {str(result[i]): result[i + 1] for i in range(0, len(result) - 1, 2)}


def _to_int(value):
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


class RedisRestBackend(Backend):
    kind = "kv"

    def __init__(self, client):
        self.client = client

    # --- pin ---

    def get_pin(self, day):
        raw = self.client.command("GET", pin_key(day))
        if raw is None:
            return None
        try:
            return int(raw)
        except (TypeError, ValueError):
            return None

    def set_pin_if_absent(self, day, puzzle_id):
        self.client.command("SETNX", pin_key(day), puzzle_id)
        pinned = self.get_pin(day)
        return pinned if pinned is not None else puzzle_id

    def force_pin(self, day, puzzle_id):
        raise Forbidden("Cannot override the daily pin when KV storage is configured")

    # --- stats ---

    def load_histogram(self, day):
        fields = _pairs_to_dict(self.client.command("HGETALL", solves_key(day)))
        return {
            "solves": [_to_int(fields.get(f"r{i + 1}")) for i in range(HISTOGRAM_SLOTS)],
            "fail": _to_int(fields.get("fail")),
        }

    def bump_histogram(self, day, revealed, correct):
        field = f"r{clamp_reveal(revealed)}" if correct else "fail"
        self.client.command("HINCRBY", solves_key(day), field, 1)
        return self.load_histogram(day)

    def record_guess(self, day, revealed, key):
        self.client.command("HINCRBY", guesses_key(day, revealed), key, 1)

    def guess_counts(self, day, revealed):
        fields = _pairs_to_dict(self.client.command("HGETALL", guesses_key(day, revealed)))
        return {k: _to_int(v) for k, v in fields.items()}


def create_backend(settings):
    """Pick the backend once, from configuration."""
    if settings.use_kv:
        client = RedisRestClient(settings.kv_url, settings.kv_token, timeout=settings.kv_timeout)
        return RedisRestBackend(client)
    return FileBackend(settings.var_dir)
