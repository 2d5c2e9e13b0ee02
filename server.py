#!/usr/bin/env python3
"""
Flask server for the Framemoji daily emoji movie game.
"""

import math
import random
import sys

from flask import Blueprint, Flask, current_app, jsonify, request
from flask_cors import CORS

from backends import create_backend
from daily import ms_until_next_utc_midnight, parse_date_key, utc_date_key
from daily_pin import DailyPin
from errors import CatalogError, EmptyCatalog, FramemojiError, Forbidden, InvalidInput, UnknownPuzzleId
from normalize import normalize_title
from puzzles import PuzzleCatalog, load_movie_list, merge_movie_list
from settings import Settings
from stats import MAX_GUESS_LIMIT, StatsStore, percentile_for_reveal

MAX_REVEAL = 10

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "X-Frame-Options": "DENY",
    "Permissions-Policy": "camera=(), microphone=(), geolocation=(), interest-cohort=()",
}

daily_api = Blueprint("daily_api", __name__)


def _settings():
    return current_app.config["SETTINGS"]


def _catalog():
    return current_app.config["CATALOG"]


def _daily_pin():
    return current_app.config["DAILY_PIN"]


def _stats():
    return current_app.config["STATS"]


def _todays_puzzle(day):
    return _daily_pin().resolve(day, _catalog(), _settings().secret)


def _json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise InvalidInput("Request body must be a JSON object")
    return data


def _optional_int(data, name, default):
    value = data.get(name)
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidInput(f"{name} must be a number")
    if not math.isfinite(value):
        raise InvalidInput(f"{name} must be a finite number")
    return int(value)


def _query_int(name, default):
    raw = request.args.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise InvalidInput(f"{name} must be an integer")


@daily_api.after_request
def _no_store(response):
    response.headers["Cache-Control"] = "no-store"
    return response


@daily_api.route('/daily', methods=['GET'])
def daily():
    """
    Today's puzzle, without its title.

    Returns: {
        "day": "2024-06-01",
        "puzzle": {"id": 12, "year": 1975, "emoji_clues": ["🦈", ...]},
        "answer": "Jaws",        (dev mode only)
        "dev": true,
        "resets_in_ms": 3600000
    }
    """
    day = utc_date_key()
    puzzle = _todays_puzzle(day)
    settings = _settings()

    body = {
        "day": day,
        "puzzle": puzzle.public_dict(),
        "dev": settings.dev_mode,
        "resets_in_ms": ms_until_next_utc_midnight(),
    }
    # Dev mode (no daily secret) shows the answer to make local testing easy
    if settings.dev_mode:
        body["answer"] = puzzle.title
    return jsonify(body)


@daily_api.route('/daily/guess', methods=['POST'])
def guess():
    """
    Check a guess against today's title.

    Expected JSON: {"guess": "the matrix", "revealed": 3}
    Returns: {"correct": false, "revealed": 4, "score": 0}
    """
    data = _json_body()
    text = data.get('guess')
    if not isinstance(text, str) or not text.strip():
        raise InvalidInput("Missing guess")

    revealed = min(max(_optional_int(data, 'revealed', 1), 1), MAX_REVEAL)
    day = utc_date_key()
    puzzle = _todays_puzzle(day)

    key = normalize_title(text)
    correct = key == normalize_title(puzzle.title)
    score = max(1, MAX_REVEAL + 1 - revealed) if correct else 0

    if not correct:
        # Keyed by the reveal level the guess was made at
        _stats().record_guess(day, revealed, key)

    return jsonify({
        "correct": correct,
        "revealed": revealed if correct else min(revealed + 1, MAX_REVEAL),
        "score": score
    })


@daily_api.route('/daily/finish', methods=['POST'])
def finish():
    """
    Record a finished game and reveal the answer.

    Expected JSON: {"revealed": 3, "correct": true}
    Returns: {
        "percentile": 33,
        "total": 3,
        "histogram": {"solves": [0, 0, 2, 0, 0, 0, 0, 0, 0, 0], "fail": 1},
        "answer": "Jaws",        (only when not correct)
        "id": 12
    }
    """
    data = _json_body()
    revealed = _optional_int(data, 'revealed', MAX_REVEAL)
    if revealed < 1:
        revealed = MAX_REVEAL
    revealed = min(revealed, MAX_REVEAL)

    correct = data.get('correct', False)
    if not isinstance(correct, bool):
        raise InvalidInput("correct must be true or false")

    day = utc_date_key()
    puzzle = _todays_puzzle(day)

    # Bump first so the percentile counts this player
    hist = _stats().bump_histogram(day, revealed, correct)
    result = percentile_for_reveal(hist, revealed, correct)

    body = {
        "percentile": result["percentile"],
        "total": result["total"],
        "histogram": hist.to_dict(),
        "id": puzzle.id,
    }
    if not correct:
        body["answer"] = puzzle.title
    return jsonify(body)


@daily_api.route('/daily/finish', methods=['GET'])
def finish_snapshot():
    """Current histogram for today, no answer."""
    hist = _stats().load_histogram(utc_date_key())
    return jsonify({"total": hist.total, "histogram": hist.to_dict()})


@daily_api.route('/daily/guesses', methods=['GET'])
def popular_guesses():
    """
    Most common wrong guesses at one reveal level.

    Query: ?reveal=3&limit=10
    Returns: {"reveal": 3, "items": [{"key": "jurassic park", "count": 4}, ...]}
    """
    reveal = min(max(_query_int('reveal', 1), 1), MAX_REVEAL)
    limit = min(max(_query_int('limit', 10), 1), MAX_GUESS_LIMIT)
    items = _stats().top_guesses(utc_date_key(), reveal, limit)
    return jsonify({"reveal": reveal, "items": items})


@daily_api.route('/daily/pin', methods=['POST'])
def pin():
    """
    Force the puzzle for a day (local development only).

    Expected JSON: {"id": 12, "day": "2024-06-01"}   (day defaults to today)
    Returns: {"day": "2024-06-01", "id": 12}
    """
    settings = _settings()
    if not settings.dev_mode and not settings.use_file_stats:
        raise Forbidden()

    data = _json_body()
    raw_id = data.get('id')
    if isinstance(raw_id, str) and raw_id.strip().isdigit():
        raw_id = int(raw_id.strip())
    if isinstance(raw_id, bool) or not isinstance(raw_id, int):
        raise InvalidInput("Missing or invalid id")

    day = data.get('day') or utc_date_key()
    parse_date_key(day)

    if _catalog().get(raw_id) is None:
        raise UnknownPuzzleId(f"Unknown puzzle id: {raw_id}")

    pinned = _daily_pin().force_set(day, raw_id)
    return jsonify({"day": day, "id": pinned})


@daily_api.route('/movies', methods=['GET'])
def movies():
    """Titles for guess autocomplete: the movie list merged with the catalog."""
    movie_list = load_movie_list(_settings().movies_path)
    return jsonify(merge_movie_list(movie_list, _catalog().load()))


@daily_api.route('/puzzles', methods=['GET'])
def practice_puzzle():
    """A random puzzle for practice play (title included)."""
    puzzles = _catalog().require()
    return jsonify({"count": len(puzzles), "random": random.choice(puzzles).to_dict()})


def handle_framemoji_error(error):
    if isinstance(error, (EmptyCatalog, CatalogError)):
        print(f"✗ Catalog error: {error.message}", file=sys.stderr)
    return jsonify({"error": error.message}), error.status_code


def add_security_headers(response):
    for name, value in SECURITY_HEADERS.items():
        response.headers.setdefault(name, value)
    if current_app.config["SETTINGS"].production:
        response.headers.setdefault(
            "Strict-Transport-Security", "max-age=31536000; includeSubDomains; preload"
        )
    return response


def create_app(settings=None, catalog=None, backend=None):
    """
    Build the Flask app.

    The catalog and storage backend are created once here and shared by
    every request; pass them in to override (tests do).
    """
    if settings is None:
        settings = Settings.from_env()
    if catalog is None:
        catalog = PuzzleCatalog(settings.puzzles_path)
    if backend is None:
        backend = create_backend(settings)

    app = Flask(__name__)
    CORS(app)

    app.config["SETTINGS"] = settings
    app.config["CATALOG"] = catalog
    app.config["DAILY_PIN"] = DailyPin(backend)
    app.config["STATS"] = StatsStore(backend)

    app.register_blueprint(daily_api, url_prefix='/api')
    app.register_error_handler(FramemojiError, handle_framemoji_error)
    app.after_request(add_security_headers)
    return app


if __name__ == '__main__':
    print("Initializing Framemoji server...")
    settings = Settings.from_env()
    app = create_app(settings)

    # Fail now rather than on the first request if the catalog is broken
    catalog = app.config["CATALOG"]
    print(f"Loading puzzles from {catalog.path}...")
    try:
        puzzles = catalog.require()
    except FramemojiError as e:
        print(f"✗ {e.message}", file=sys.stderr)
        sys.exit(1)
    print(f"Loaded {len(puzzles)} puzzles")

    backend = app.config["STATS"].backend
    print(f"Storage backend: {backend.kind}")
    if settings.dev_mode:
        print("⚠ No daily secret set - running in dev mode, answers are exposed")
    print("Server ready!")
    app.run(debug=not settings.production, host='0.0.0.0', port=settings.port, threaded=True)
