"""Fuzzy matching of OCR'd line items against the product catalog."""

from app.matching.matcher import CatalogMatcher, load_matcher
from app.matching.tables import DEFAULT_TABLES, MatcherTables
from app.matching.text import normalize_name

__all__ = [
    "CatalogMatcher",
    "load_matcher",
    "MatcherTables",
    "DEFAULT_TABLES",
    "normalize_name",
]
