"""Catalog matching strategies.

Each strategy is an independent function with the same signature::

    strategy(item: ItemContext, catalog: Sequence[CatalogEntry], tables) -> StrategyHit | None

The matcher tries them in order and stops at the first hit. Ordering
matters: earlier strategies are stricter, so an exact name match always wins
over abbreviation or fuzzy matches whatever the catalog order.
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass
from typing import Any, Callable, Sequence

from app.matching.tables import MatcherTables
from app.matching.text import is_similar_to_prefix, normalize_name

# Shortest string allowed on the "contained" side of a substring test.
MIN_CONTAINED_LENGTH = 3


@dataclass(frozen=True)
class CatalogEntry:
    """A catalog product with its comparison forms precomputed."""

    product: Any
    name: str
    aliases: tuple[str, ...]
    keywords: tuple[str, ...]
    significant_keywords: tuple[str, ...]


@dataclass(frozen=True)
class ItemContext:
    """A line item name with its comparison forms precomputed."""

    original: str
    normalized: str
    cleaned: str
    expansions: tuple[str, ...]
    significant_keywords: tuple[str, ...]


@dataclass(frozen=True)
class StrategyHit:
    entry: CatalogEntry
    strategy: str
    score: float


Strategy = Callable[[ItemContext, Sequence[CatalogEntry], MatcherTables], "StrategyHit | None"]


# ---------------------------------------------------------------------------
# Token helpers
# ---------------------------------------------------------------------------


def extract_keywords(text: str, tables: MatcherTables) -> list[str]:
    """Words of at least 3 letters, filler words and dosage forms removed."""
    return [
        word
        for word in normalize_name(text).split(" ")
        if len(word) >= tables.min_keyword_length and word not in tables.keyword_stopwords
    ]


def extract_significant_keywords(text: str, tables: MatcherTables) -> list[str]:
    """Keywords that identify the product: no qualifiers, forms or numbers."""
    return [
        word
        for word in normalize_name(text).split(" ")
        if len(word) >= tables.min_keyword_length
        and word not in tables.significant_stopwords
        and not word.isdigit()
    ]


def remove_brand_prefix(text: str, tables: MatcherTables) -> str:
    """Strip a leading brand token, tolerating OCR typos on it."""
    normalized = normalize_name(text)
    words = normalized.split(" ")
    first_word = words[0] if words else ""

    if first_word in tables.brand_prefixes:
        return " ".join(words[1:]).strip()

    if len(first_word) >= 5 and any(
        is_similar_to_prefix(first_word, prefix) for prefix in tables.brand_prefixes
    ):
        return " ".join(words[1:]).strip()

    # Brand glued to the product name ("phytalessencerhodiola").
    for prefix in sorted(tables.brand_prefixes, key=len, reverse=True):
        if normalized.startswith(prefix) and len(normalized) > len(prefix):
            return normalized[len(prefix):].strip()

    return normalized


def expand_abbreviations(text: str, tables: MatcherTables) -> list[str]:
    """Every combination of abbreviation expansions of the keywords in ``text``."""
    keywords = extract_keywords(text, tables)
    if not keywords:
        return []

    choices = [tables.abbreviations.get(keyword, (keyword,)) for keyword in keywords]
    combinations = itertools.islice(itertools.product(*choices), tables.max_expansions)
    return [" ".join(combo) for combo in combinations]


def long_prefix_match(a: str, b: str, tables: MatcherTables) -> bool:
    """Both words long enough and one starts with the other."""
    size = tables.long_prefix_length
    return len(a) >= size and len(b) >= size and (a.startswith(b) or b.startswith(a))


def contains_either_way(a: str, b: str) -> bool:
    if not a or not b:
        return False
    if len(a) >= MIN_CONTAINED_LENGTH and a in b:
        return True
    return len(b) >= MIN_CONTAINED_LENGTH and b in a


def keyword_similarity(first: str, second: str, tables: MatcherTables) -> float:
    """Symmetric keyword-overlap ratio in [0, 1].

    Shared keywords count 1, keywords contained in one another count
    ``tables.partial_credit``. The score is the mean of the shared ratio
    relative to each side.
    """
    keywords1 = set(extract_keywords(first, tables))
    keywords2 = set(extract_keywords(second, tables))
    if not keywords1 or not keywords2:
        return 0.0

    shared = 0.0
    for keyword in keywords1:
        if keyword in keywords2:
            shared += 1
            continue
        if any(keyword in other or other in keyword for other in keywords2):
            shared += tables.partial_credit

    return (shared / len(keywords1) + shared / len(keywords2)) / 2


def build_item_context(name: str, tables: MatcherTables) -> ItemContext:
    cleaned = remove_brand_prefix(name, tables)
    return ItemContext(
        original=name,
        normalized=normalize_name(name),
        cleaned=cleaned,
        expansions=tuple(expand_abbreviations(cleaned, tables)),
        significant_keywords=tuple(extract_significant_keywords(cleaned, tables)),
    )


def build_catalog_entry(product: Any, tables: MatcherTables) -> CatalogEntry:
    aliases = getattr(product, "aliases", None) or []
    if not isinstance(aliases, (list, tuple)):
        aliases = []
    normalized_aliases = tuple(
        alias for alias in (normalize_name(str(a)) for a in aliases) if alias
    )
    return CatalogEntry(
        product=product,
        name=normalize_name(product.name),
        aliases=normalized_aliases,
        keywords=tuple(extract_keywords(product.name, tables)),
        significant_keywords=tuple(extract_significant_keywords(product.name, tables)),
    )


# ---------------------------------------------------------------------------
# Strategies, highest priority first
# ---------------------------------------------------------------------------


def match_alias(item: ItemContext, catalog: Sequence[CatalogEntry], tables: MatcherTables) -> StrategyHit | None:
    """Registered alias equal to, or contained in, the line name (or vice versa)."""
    for entry in catalog:
        for alias in entry.aliases:
            if alias == item.normalized or alias == item.cleaned:
                return StrategyHit(entry, "alias", 1.0)
            if contains_either_way(alias, item.cleaned) or contains_either_way(alias, item.normalized):
                return StrategyHit(entry, "alias", 0.95)
    return None


def match_exact(item: ItemContext, catalog: Sequence[CatalogEntry], tables: MatcherTables) -> StrategyHit | None:
    for entry in catalog:
        if item.normalized and entry.name == item.normalized:
            return StrategyHit(entry, "exact", 1.0)
    return None


def match_exact_cleaned(item: ItemContext, catalog: Sequence[CatalogEntry], tables: MatcherTables) -> StrategyHit | None:
    for entry in catalog:
        if item.cleaned and entry.name == item.cleaned:
            return StrategyHit(entry, "exact_cleaned", 1.0)
    return None


def match_contains(item: ItemContext, catalog: Sequence[CatalogEntry], tables: MatcherTables) -> StrategyHit | None:
    for entry in catalog:
        if contains_either_way(entry.name, item.cleaned):
            return StrategyHit(entry, "contains", 0.9)
    return None


def match_abbreviation(item: ItemContext, catalog: Sequence[CatalogEntry], tables: MatcherTables) -> StrategyHit | None:
    """Every expanded keyword equals or long-prefix-matches a catalog keyword."""
    for expansion in item.expansions:
        expanded_keywords = extract_keywords(expansion, tables)
        if not expanded_keywords:
            continue
        for entry in catalog:
            if all(
                any(ck == ek or long_prefix_match(ck, ek, tables) for ck in entry.keywords)
                for ek in expanded_keywords
            ):
                return StrategyHit(entry, "abbreviation", 0.85)
    return None


def match_significant_keyword(item: ItemContext, catalog: Sequence[CatalogEntry], tables: MatcherTables) -> StrategyHit | None:
    """One significant keyword shared exactly, or by a long common prefix."""
    for entry in catalog:
        for ticket_keyword in item.significant_keywords:
            for catalog_keyword in entry.significant_keywords:
                if ticket_keyword == catalog_keyword:
                    return StrategyHit(entry, "keyword", 0.85)
                if long_prefix_match(ticket_keyword, catalog_keyword, tables):
                    return StrategyHit(entry, "keyword", 0.8)
    return None


def match_fuzzy(item: ItemContext, catalog: Sequence[CatalogEntry], tables: MatcherTables) -> StrategyHit | None:
    """Best keyword-overlap score over the catalog, accepted above threshold."""
    best: StrategyHit | None = None
    candidates = (item.cleaned, *item.expansions)

    for entry in catalog:
        for candidate in candidates:
            score = keyword_similarity(candidate, entry.name, tables)
            if score >= tables.fuzzy_threshold and (best is None or score > best.score):
                best = StrategyHit(entry, "fuzzy", score)

    return best


DEFAULT_STRATEGIES: tuple[Strategy, ...] = (
    match_alias,
    match_exact,
    match_exact_cleaned,
    match_contains,
    match_abbreviation,
    match_significant_keyword,
    match_fuzzy,
)
