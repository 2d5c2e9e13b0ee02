"""
Puzzle catalog loading.

The catalog is a JSON array of movies, each with exactly ten emoji clues:

    [{"id": 1, "title": "Jaws", "year": 1975, "emoji_clues": ["🦈", ...]}, ...]

A PuzzleCatalog reads its file once and keeps the parsed puzzles for the
life of the object. The server owns one catalog and hands it to handlers.
"""

from __future__ import annotations

import json
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from errors import CatalogError, EmptyCatalog
from normalize import normalize_title

CLUE_COUNT = 10


@dataclass(frozen=True)
class Puzzle:
    id: int
    title: str
    year: Optional[int]
    emoji_clues: Tuple[str, ...]
    imdb_id: Optional[str] = None
    imdb_rank: Optional[int] = None

    def public_dict(self) -> Dict[str, Any]:
        """Fields that are safe to show before the game is over."""
        return {"id": self.id, "year": self.year, "emoji_clues": list(self.emoji_clues)}

    def to_dict(self) -> Dict[str, Any]:
        data = self.public_dict()
        data["title"] = self.title
        return data


def parse_puzzle(raw: Dict[str, Any], position: int) -> Puzzle:
    """Validate one catalog entry and build a Puzzle from it."""
    if not isinstance(raw, dict):
        raise CatalogError(f"Entry {position} is not an object")

    puzzle_id = raw.get("id")
    if isinstance(puzzle_id, bool) or not isinstance(puzzle_id, int):
        raise CatalogError(f"Entry {position} has a missing or non-integer id")

    title = raw.get("title")
    if not isinstance(title, str) or not title.strip():
        raise CatalogError(f"Puzzle {puzzle_id} has no title")

    year = raw.get("year")
    if year is not None and (isinstance(year, bool) or not isinstance(year, int)):
        raise CatalogError(f"Puzzle {puzzle_id} has a non-integer year")

    clues = raw.get("emoji_clues")
    if not isinstance(clues, list) or len(clues) != CLUE_COUNT:
        raise CatalogError(f"Puzzle {puzzle_id} must have exactly {CLUE_COUNT} emoji clues")
    if not all(isinstance(c, str) and c.strip() for c in clues):
        raise CatalogError(f"Puzzle {puzzle_id} has an empty emoji clue")

    return Puzzle(
        id=puzzle_id,
        title=title.strip(),
        year=year,
        emoji_clues=tuple(clues),
        imdb_id=raw.get("imdb_id"),
        imdb_rank=raw.get("imdb_rank"),
    )


def parse_catalog(data: Any) -> List[Puzzle]:
    if not isinstance(data, list):
        raise CatalogError("Catalog must be a JSON array of puzzles")
    puzzles = [parse_puzzle(raw, i) for i, raw in enumerate(data)]

    seen = set()
    for p in puzzles:
        if p.id in seen:
            raise CatalogError(f"Duplicate puzzle id: {p.id}")
        seen.add(p.id)
    return puzzles


class PuzzleCatalog:
    """Load-once, read-only view of the puzzle catalog."""

    def __init__(self, path: Path, puzzles: Optional[List[Puzzle]] = None):
        self.path = Path(path)
        self._puzzles = puzzles
        self._by_id: Optional[Dict[int, Puzzle]] = None
        self._lock = threading.Lock()

    @classmethod
    def from_puzzles(cls, puzzles: List[Puzzle]) -> "PuzzleCatalog":
        return cls(Path("<memory>"), list(puzzles))

    def load(self) -> List[Puzzle]:
        """Return the puzzles, reading the catalog file on first use."""
        with self._lock:
            if self._puzzles is None:
                try:
                    with open(self.path, "r", encoding="utf-8") as f:
                        data = json.load(f)
                except FileNotFoundError:
                    raise CatalogError(f"Catalog file not found: {self.path}")
                except json.JSONDecodeError as e:
                    raise CatalogError(f"Catalog file is not valid JSON: {e}")
                self._puzzles = parse_catalog(data)
            if self._by_id is None:
                self._by_id = {p.id: p for p in self._puzzles}
            return self._puzzles

    def require(self) -> List[Puzzle]:
        """Like load(), but an empty catalog is an error."""
        puzzles = self.load()
        if not puzzles:
            raise EmptyCatalog(f"No puzzles in {self.path}")
        return puzzles

    def get(self, puzzle_id: int) -> Optional[Puzzle]:
        self.load()
        return self._by_id.get(puzzle_id)

    def __len__(self) -> int:
        return len(self.load())


def load_movie_list(path: Path) -> List[Dict[str, Any]]:
    """
    Load the optional autocomplete movie list.

    A missing or unreadable file yields an empty list.
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        return []
    except (OSError, json.JSONDecodeError) as e:
        print(f"⚠ Could not read movie list {path}: {e}")
        return []

    if not isinstance(data, list):
        return []

    movies = []
    for m in data:
        if not isinstance(m, dict) or not m.get("title"):
            continue
        movie = dict(m)
        if movie.get("popularity") is not None:
            try:
                movie["popularity"] = float(movie["popularity"])
            except (TypeError, ValueError):
                movie["popularity"] = None
        movies.append(movie)
    return movies


def merge_movie_list(movies: List[Dict[str, Any]], puzzles: List[Puzzle]) -> List[Dict[str, Any]]:
    """
    Merge the autocomplete list with catalog titles.

    Entries are deduplicated on (normalized title, year), first one wins,
    and sorted by popularity (desc), then title, then year.
    """
    by_key: Dict[str, Dict[str, Any]] = {}

    def add(movie):
        key = f"{normalize_title(movie['title'])}|{movie.get('year') or ''}"
        if key not in by_key:
            by_key[key] = movie

    for m in movies:
        add(m)
    for p in puzzles:
        add({"id": f"p-{p.id}", "title": p.title, "year": p.year})

    merged = list(by_key.values())
    merged.sort(key=lambda m: (-(m.get("popularity") or 0), str(m["title"]), str(m.get("year") or "")))
    return merged
