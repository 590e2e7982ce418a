"""Text normalization helpers shared by the normalizer and the matcher."""

from __future__ import annotations

import re
import unicodedata

from rapidfuzz.distance import Levenshtein

_SEPARATORS = re.compile(r"[|/\\\-_\s]+")


def normalize_name(text: str | None) -> str:
    """Lowercase, strip diacritics, collapse separators to single spaces.

    >>> normalize_name("  Magnésium | Marin ")
    'magnesium marin'
    """
    if not text:
        return ""
    decomposed = unicodedata.normalize("NFD", text.lower())
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return _SEPARATORS.sub(" ", stripped).strip()


def max_prefix_distance(prefix: str) -> int:
    """OCR tolerance: 1 edit for short prefixes, 2 for longer ones."""
    return 1 if len(prefix) <= 5 else 2


def is_similar_to_prefix(word: str, prefix: str) -> bool:
    """True when ``word`` is within the OCR edit tolerance of ``prefix``."""
    word = word.lower()
    prefix = prefix.lower()
    limit = max_prefix_distance(prefix)
    return Levenshtein.distance(word, prefix, score_cutoff=limit) <= limit
