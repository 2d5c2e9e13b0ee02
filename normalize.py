"""
Title normalization used to compare guesses and to key guess statistics.

"The Matrix", "matrix" and "Matrix!" all normalize to "matrix";
"Rocky IV" and "rocky 4" both become "rocky 4". Only Roman numerals are
mapped to digits, never digits to words ("se7en" stays "se7en").
"""

import re
import unicodedata

ROMAN_VALUES = {"I": 1, "V": 5, "X": 10, "L": 50, "C": 100, "D": 500, "M": 1000}

CANONICAL_ROMAN_RE = re.compile(
    r"^M{0,3}(CM|CD|D?C{0,3})(XC|XL|L?X{0,3})(IX|IV|V?I{0,3})$", re.IGNORECASE
)

_ROMAN_WORD_RE = re.compile(r"\b([ivxlcdm]+)\b")
_NON_ALNUM_RE = re.compile(r"[^a-z0-9\s]")
_ARTICLE_RE = re.compile(r"\b(the|a|an)\b")
_SPACE_RE = re.compile(r"\s+")


def strip_diacritics(text):
    """Decompose to NFD and drop combining marks ("Amélie" -> "Amelie")."""
    decomposed = unicodedata.normalize("NFD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def roman_to_int(roman):
    """Value of a canonical Roman numeral, or None if it is not one."""
    if not roman or not CANONICAL_ROMAN_RE.match(roman):
        return None
    total = 0
    prev = 0
    for ch in reversed(roman.upper()):
        value = ROMAN_VALUES[ch]
        if value < prev:
            total -= value
        else:
            total += value
            prev = value
    return total


def _numeral_to_digits(match):
    word = match.group(1)
    # A lone "i" stays so "monsters i" still prefixes "monsters inc"
    if word == "i":
        return word
    value = roman_to_int(word)
    return str(value) if value else word


def normalize_numerals(text):
    return _ROMAN_WORD_RE.sub(_numeral_to_digits, text)


def normalize_title(title):
    """Canonical comparison key for a movie title or a player's guess."""
    text = strip_diacritics(title or "").lower()
    text = text.replace("&", "and")
    text = _NON_ALNUM_RE.sub(" ", text)
    text = _ARTICLE_RE.sub(" ", text)
    text = _SPACE_RE.sub(" ", text).strip()
    return normalize_numerals(text)
