"""
UTC day keys and deterministic daily puzzle selection.

The puzzle for a day is picked from a keyed permutation of the catalog:
positions are ordered by HMAC-SHA256(secret, str(id)) and the day's pick
is the entry at (UTC day number mod N). Same secret, day and catalog give
the same index on every machine, forever.
"""

import hashlib
import hmac
import re
from datetime import datetime, timedelta, timezone

from errors import EmptyCatalog, InvalidInput

MS_PER_DAY = 86_400_000

DATE_KEY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def _as_utc(now=None):
    if now is None:
        return datetime.now(timezone.utc)
    if now.tzinfo is None:
        # Naive datetimes are treated as UTC
        return now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone.utc)


def utc_date_key(now=None):
    """Return the YYYY-MM-DD key of the UTC calendar day containing `now`."""
    return _as_utc(now).strftime("%Y-%m-%d")


def utc_yesterday_key(now=None):
    return utc_date_key(_as_utc(now) - timedelta(days=1))


def next_utc_midnight(now=None):
    current = _as_utc(now)
    midnight = current.replace(hour=0, minute=0, second=0, microsecond=0)
    return midnight + timedelta(days=1)


def ms_until_next_utc_midnight(now=None):
    """Milliseconds left until the next UTC day starts (for the countdown)."""
    current = _as_utc(now)
    delta = next_utc_midnight(current) - current
    return max(0, int(delta.total_seconds() * 1000))


def parse_date_key(value):
    """
    Parse a strict YYYY-MM-DD key into a date.

    Raises InvalidInput for anything that is not a real calendar day.
    """
    if not isinstance(value, str) or not DATE_KEY_RE.match(value):
        raise InvalidInput(f"Day must be YYYY-MM-DD, got: {value!r}")
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        raise InvalidInput(f"Not a calendar day: {value}")


def day_number(date_key):
    """Days since the Unix epoch for the UTC midnight starting `date_key`."""
    midnight = datetime.combine(parse_date_key(date_key), datetime.min.time(), tzinfo=timezone.utc)
    epoch_ms = int(midnight.timestamp()) * 1000
    return epoch_ms // MS_PER_DAY


def _item_id(item):
    return int(item) if isinstance(item, int) else int(item.id)


def daily_permutation(secret, items):
    """
    Order catalog positions by HMAC(secret, str(id)).

    Ties on the digest are broken by numeric id, then original position.
    """
    key = secret.encode("utf-8")
    entries = []
    for idx, item in enumerate(items):
        item_id = _item_id(item)
        digest = hmac.new(key, str(item_id).encode("utf-8"), hashlib.sha256).hexdigest()
        entries.append((digest, item_id, idx))
    entries.sort()
    return [idx for _, _, idx in entries]


def select_daily_index(secret, date_key, items):
    """
    Deterministically pick the catalog position for a day.

    Args:
        secret: key for the permutation (the deployment's daily secret)
        date_key: YYYY-MM-DD (UTC)
        items: puzzles (anything with an `id`) or bare integer ids

    Returns:
        index in [0, len(items))
    """
    if not items:
        raise EmptyCatalog("Cannot select a daily puzzle from an empty catalog")
    order = daily_permutation(secret, items)
    return order[day_number(date_key) % len(order)]
