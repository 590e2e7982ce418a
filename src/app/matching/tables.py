"""Static lookup tables for catalog matching.

Tables are immutable and handed to the matcher explicitly, so a test or a
different merchant can supply its own vocabulary.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

# Canonical brand spellings found at the start of OCR'd product lines.
BRAND_PREFIXES: tuple[str, ...] = ("phytaless", "phytalessence", "phyta")

# Abbreviated token -> candidate full words. Keys have at least 3 letters.
ABBREVIATIONS: Mapping[str, tuple[str, ...]] = MappingProxyType(
    {
        "gluc": ("glucosamine",),
        "calc": ("calcium",),
        "magn": ("magnesium",),
        "sil": ("silice", "silicium"),
        "msm": ("msm",),
        "circ": ("circulation",),
        "circu": ("circulation",),
        "art": ("articulaire", "articulation", "arthro"),
        "arthro": ("arthro", "articulaire"),
        "vit": ("vitamine", "vitamin"),
        "vita": ("vitamine", "vitamin"),
        "vitam": ("vitamine", "vitamin"),
        "som": ("sommeil",),
        "somm": ("sommeil",),
        "stress": ("stress",),
        "relax": ("relaxation", "relax"),
        "immun": ("immunite", "immunitaire", "immune"),
        "immu": ("immunite", "immunitaire", "immune"),
        "diges": ("digestion", "digestif"),
        "dig": ("digestion", "digestif"),
        "minceur": ("minceur",),
        "minc": ("minceur",),
        "detox": ("detox", "detoxification"),
        "energie": ("energie", "energy"),
        "energ": ("energie", "energy"),
        "ener": ("energie", "energy"),
        "chev": ("cheveux",),
        "chevx": ("cheveux",),
        "ongl": ("ongles",),
        "peau": ("peau",),
        "beaut": ("beaute", "beauty"),
        "omega": ("omega",),
        "omeg": ("omega",),
        "collag": ("collagene", "collagen"),
        "colla": ("collagene", "collagen"),
        "prob": ("probiotique", "probiotic"),
        "probio": ("probiotique", "probiotic"),
        "fer": ("fer", "iron"),
        "zinc": ("zinc",),
        "curc": ("curcuma", "curcumin"),
        "curcum": ("curcuma", "curcumin"),
        "hyal": ("hyaluronique", "hyaluronic"),
        "hyalu": ("hyaluronique", "hyaluronic"),
        "multi": ("multivitamine", "multivitamines"),
        "antio": ("antioxydant", "antioxidant"),
        "antiox": ("antioxydant", "antioxidant"),
        "card": ("cardiaque", "cardiovasculaire"),
        "cardio": ("cardiaque", "cardiovasculaire"),
        "mem": ("memoire", "memory"),
        "memo": ("memoire", "memory"),
        "conc": ("concentration",),
        "concen": ("concentration",),
        "vis": ("vision", "visuel"),
        "vision": ("vision",),
        "oeil": ("oeil", "yeux"),
        "yeux": ("yeux", "oeil"),
        "osseux": ("osseux", "os"),
        "musc": ("muscle", "musculaire"),
        "muscl": ("muscle", "musculaire"),
        "ginseng": ("ginseng",),
        "gins": ("ginseng",),
        "spirul": ("spiruline", "spirulina"),
        "spiru": ("spiruline", "spirulina"),
        "mela": ("melatonine", "melatonin"),
        "melat": ("melatonine", "melatonin"),
        # Plants
        "valer": ("valeriane",),
        "valeri": ("valeriane",),
        "valeria": ("valeriane",),
        "valeriane": ("valeriane",),
        "rhodi": ("rhodiola",),
        "rhodio": ("rhodiola",),
        "rhodiola": ("rhodiola",),
        "echina": ("echinacea", "echinacee"),
        "ginkgo": ("ginkgo",),
        "mille": ("millepertuis",),
        "millep": ("millepertuis",),
        "harpago": ("harpagophytum",),
        "passi": ("passiflore",),
        "passif": ("passiflore",),
    }
)

# Filler words and dosage forms ignored when extracting keywords.
KEYWORD_STOPWORDS: frozenset[str] = frozenset(
    {
        "les", "des", "avec", "pour", "bio",
        "gelules", "gelule", "comprimes", "comprime", "capsules", "capsule",
    }
)

# Broader list for "significant" keywords: words that identify the product
# itself rather than its form or marketing qualifiers.
SIGNIFICANT_STOPWORDS: frozenset[str] = KEYWORD_STOPWORDS | frozenset(
    {
        "mono", "plante", "plantes", "extrait", "extraits", "complexe",
        "plus", "fort", "forte",
    }
)


@dataclass(frozen=True)
class MatcherTables:
    """Vocabulary used by the matching strategies."""

    brand_prefixes: tuple[str, ...] = BRAND_PREFIXES
    abbreviations: Mapping[str, tuple[str, ...]] = field(default_factory=lambda: ABBREVIATIONS)
    keyword_stopwords: frozenset[str] = KEYWORD_STOPWORDS
    significant_stopwords: frozenset[str] = SIGNIFICANT_STOPWORDS
    min_keyword_length: int = 3
    long_prefix_length: int = 5
    partial_credit: float = 0.7
    fuzzy_threshold: float = 0.6
    # Cap on abbreviation combinations per line (each keyword can fan out).
    max_expansions: int = 64


DEFAULT_TABLES = MatcherTables()
