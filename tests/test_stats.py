"""Tests for the statistics store, percentiles and popular guesses."""

import random
import threading

from backends import FileBackend
from errors import BackendUnavailable
from stats import Histogram, StatsStore, percentile_for_reveal, top_guesses


class BrokenBackend:
    kind = "broken"

    def _fail(self, *args, **kwargs):
        raise BackendUnavailable("storage is down")

    load_histogram = bump_histogram = record_guess = guess_counts = _fail


def _store(tmp_path):
    return StatsStore(FileBackend(tmp_path / "var"))


def test_empty_day_is_zero_histogram(tmp_path):
    hist = _store(tmp_path).load_histogram("2024-06-01")
    assert hist.solves == [0] * 10
    assert hist.fail == 0
    assert hist.total == 0


def test_bump_scenario(tmp_path):
    store = _store(tmp_path)
    store.bump_histogram("2024-06-01", 3, True)
    store.bump_histogram("2024-06-01", 3, True)
    hist = store.bump_histogram("2024-06-01", 1, False)

    assert hist.solves == [0, 0, 2, 0, 0, 0, 0, 0, 0, 0]
    assert hist.fail == 1
    assert hist.total == 3
    assert store.load_histogram("2024-06-01") == hist


def test_percentile_scenario():
    hist = Histogram(solves=[0, 0, 2, 0, 0, 0, 0, 0, 0, 0], fail=1)
    assert percentile_for_reveal(hist, 3, True) == {"percentile": 33, "total": 3}


def test_failure_percentile_is_zero():
    hist = Histogram(solves=[1, 0, 0, 0, 0, 0, 0, 0, 0, 0], fail=5)
    assert percentile_for_reveal(hist, 4, False)["percentile"] == 0


def test_fewest_reveals_gets_highest_percentile():
    hist = Histogram(solves=[0, 1, 0, 0, 2, 0, 0, 0, 0, 0], fail=1)
    best = percentile_for_reveal(hist, 2, True)
    worse = percentile_for_reveal(hist, 5, True)
    assert best == {"percentile": 75, "total": 4}
    assert worse["percentile"] == 25
    assert best["percentile"] > worse["percentile"]


def test_percentile_empty_histogram():
    assert percentile_for_reveal(Histogram(), 1, True) == {"percentile": 0, "total": 0}


def test_percentile_bounds():
    rng = random.Random(7)
    for _ in range(200):
        hist = Histogram(solves=[rng.randint(0, 5) for _ in range(10)], fail=rng.randint(0, 5))
        revealed = rng.randint(-3, 14)
        correct = rng.random() < 0.5
        result = percentile_for_reveal(hist, revealed, correct)
        assert 0 <= result["percentile"] <= 100
        assert result["total"] == hist.total


def test_reveal_is_clamped(tmp_path):
    store = _store(tmp_path)
    store.bump_histogram("2024-06-01", 0, True)
    hist = store.bump_histogram("2024-06-01", 15, True)
    assert hist.solves[0] == 1
    assert hist.solves[9] == 1


def test_histogram_is_monotonic(tmp_path):
    store = _store(tmp_path)
    rng = random.Random(3)
    previous = store.load_histogram("2024-06-01")
    for n in range(1, 41):
        hist = store.bump_histogram("2024-06-01", rng.randint(1, 10), rng.random() < 0.7)
        assert hist.total == n
        assert all(a >= b for a, b in zip(hist.solves, previous.solves))
        assert hist.fail >= previous.fail
        previous = hist


def test_concurrent_bumps_are_not_lost(tmp_path):
    store = _store(tmp_path)

    def worker(revealed):
        for _ in range(25):
            store.bump_histogram("2024-06-01", revealed, revealed != 10)

    threads = [threading.Thread(target=worker, args=(r,)) for r in range(1, 11)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    hist = store.load_histogram("2024-06-01")
    assert hist.total == 250
    assert hist.solves[:9] == [25] * 9
    assert hist.fail == 25


def test_days_are_separate(tmp_path):
    store = _store(tmp_path)
    store.bump_histogram("2024-06-01", 2, True)
    assert store.load_histogram("2024-06-02").total == 0


def test_malformed_stats_file_reads_as_empty(tmp_path):
    store = _store(tmp_path)
    path = tmp_path / "var" / "stats" / "2024-06-01.json"
    path.parent.mkdir(parents=True)
    path.write_text('{"solves": [1, 2], "fail": 3}', encoding="utf-8")
    assert store.load_histogram("2024-06-01").total == 0


def test_top_guesses_ordering():
    counts = {"alien": 3, "jaws": 5, "aliens": 3, "up": 1}
    assert top_guesses(counts, 3) == [
        {"key": "jaws", "count": 5},
        {"key": "alien", "count": 3},
        {"key": "aliens", "count": 3},
    ]
    assert top_guesses(counts, 0) == []


def test_record_and_top_guesses_per_bucket(tmp_path):
    store = _store(tmp_path)
    for _ in range(3):
        store.record_guess("2024-06-01", 2, "alien")
    store.record_guess("2024-06-01", 2, "jaws")
    store.record_guess("2024-06-01", 3, "titanic")

    items = store.top_guesses("2024-06-01", 2, 10)
    assert items == [{"key": "alien", "count": 3}, {"key": "jaws", "count": 1}]
    assert store.top_guesses("2024-06-01", 3, 10) == [{"key": "titanic", "count": 1}]
    assert store.top_guesses("2024-06-01", 4, 10) == []
    assert len(store.top_guesses("2024-06-01", 2, 1)) == 1


def test_guesses_and_histogram_share_a_file(tmp_path):
    store = _store(tmp_path)
    store.record_guess("2024-06-01", 1, "alien")
    store.bump_histogram("2024-06-01", 1, False)
    store.record_guess("2024-06-01", 1, "alien")

    assert store.load_histogram("2024-06-01").fail == 1
    assert store.top_guesses("2024-06-01", 1, 5) == [{"key": "alien", "count": 2}]


def test_empty_guess_is_ignored(tmp_path):
    store = _store(tmp_path)
    store.record_guess("2024-06-01", 1, "")
    assert store.top_guesses("2024-06-01", 1, 5) == []


def test_backend_outage_degrades_quietly():
    store = StatsStore(BrokenBackend())
    assert store.load_histogram("2024-06-01").total == 0
    assert store.bump_histogram("2024-06-01", 3, True).total == 0
    store.record_guess("2024-06-01", 3, "alien")
    assert store.top_guesses("2024-06-01", 3, 5) == []
