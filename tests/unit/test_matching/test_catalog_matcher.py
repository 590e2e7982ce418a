"""Unit tests for catalog matching."""

from decimal import Decimal
from types import SimpleNamespace
from uuid import uuid4

import pytest

from app.matching import DEFAULT_TABLES, CatalogMatcher, normalize_name
from app.matching.strategies import (
    build_catalog_entry,
    build_item_context,
    contains_either_way,
    expand_abbreviations,
    keyword_similarity,
    match_fuzzy,
    remove_brand_prefix,
)
from app.schemas.internal import NormalizedLineItem


def product(name, aliases=None, active=True):
    return SimpleNamespace(id=uuid4(), name=name, aliases=aliases or [], active=active)


def item(name, price="10.00", quantity="1"):
    price = Decimal(price)
    quantity = Decimal(quantity)
    return NormalizedLineItem(
        name=name,
        raw_text=name,
        quantity=quantity,
        unit_price=price,
        total_price=price * quantity,
    )


@pytest.fixture
def catalog():
    return [
        product("Omega 3"),
        product("Vitamine D3"),
        product("Rhodiola 60 gelules", aliases=["rhodio"]),
        product("Magnesium Marin"),
        product("Ancien Produit", active=False),
    ]


@pytest.fixture
def matcher(catalog):
    return CatalogMatcher(catalog)


class TestTextHelpers:
    def test_normalize_name(self):
        assert normalize_name("  Magnésium | Marin ") == "magnesium marin"
        assert normalize_name("OMEGA-3/EPA") == "omega 3 epa"
        assert normalize_name(None) == ""

    def test_remove_brand_prefix_exact(self):
        assert remove_brand_prefix("PHYTALESSENCE Vitamine D3", DEFAULT_TABLES) == "vitamine d3"

    def test_remove_brand_prefix_with_typo(self):
        assert remove_brand_prefix("PHYTALESENCE Omega", DEFAULT_TABLES) == "omega"

    def test_remove_glued_brand_prefix(self):
        assert remove_brand_prefix("phytalessencerhodiola", DEFAULT_TABLES) == "rhodiola"

    def test_name_without_brand_is_only_normalized(self):
        assert remove_brand_prefix("Omega 3", DEFAULT_TABLES) == "omega 3"

    def test_expand_abbreviations(self):
        assert expand_abbreviations("vit d3", DEFAULT_TABLES) == ["vitamine", "vitamin"]

    def test_containment_needs_three_characters(self):
        assert not contains_either_way("d", "vitamine d3")
        assert contains_either_way("omega 3", "omega 3 forte")

    def test_keyword_similarity_is_symmetric(self):
        first = keyword_similarity("huile krill", "Huile de Krill Arctique", DEFAULT_TABLES)
        second = keyword_similarity("Huile de Krill Arctique", "huile krill", DEFAULT_TABLES)

        assert first == pytest.approx(second)
        assert first == pytest.approx((1 + 2 / 3) / 2)


class TestStrategies:
    """Each strategy resolves the expected catalog entry."""

    def test_exact(self, matcher):
        record = matcher.match_item(item("OMEGA 3"))

        assert record.product_name == "Omega 3"
        assert record.strategy == "exact"
        assert record.score == 1.0

    def test_exact_after_brand_removal(self, matcher):
        record = matcher.match_item(item("PHYTALESSENCE Vitamine D3"))

        assert record.product_name == "Vitamine D3"
        assert record.strategy == "exact_cleaned"

    def test_alias(self, matcher):
        record = matcher.match_item(item("RHODIO 30"))

        assert record.product_name == "Rhodiola 60 gelules"
        assert record.strategy == "alias"

    def test_abbreviation(self, matcher):
        record = matcher.match_item(item("MAGN MARIN"))

        assert record.product_name == "Magnesium Marin"
        assert record.strategy == "abbreviation"

    def test_significant_keyword(self):
        record = CatalogMatcher([product("Curcuma Poivre Noir")]).match_item(item("CURCUMA FORT 90"))

        assert record.product_name == "Curcuma Poivre Noir"
        assert record.strategy == "keyword"

    def test_fuzzy(self):
        context = build_item_context("huile krill", DEFAULT_TABLES)
        entry = build_catalog_entry(product("Huile de Krill Arctique"), DEFAULT_TABLES)

        hit = match_fuzzy(context, [entry], DEFAULT_TABLES)

        assert hit is not None
        assert hit.strategy == "fuzzy"
        assert hit.score == pytest.approx(0.8333, abs=1e-3)

    def test_fuzzy_below_threshold(self):
        context = build_item_context("sac plastique", DEFAULT_TABLES)
        entry = build_catalog_entry(product("Huile de Krill Arctique"), DEFAULT_TABLES)

        assert match_fuzzy(context, [entry], DEFAULT_TABLES) is None


class TestMatcher:
    def test_exact_wins_regardless_of_catalog_order(self):
        forte = product("Omega 3 Forte")
        plain = product("Omega 3")

        for products in ([forte, plain], [plain, forte]):
            record = CatalogMatcher(products).match_item(item("Omega 3"))
            assert record.product_id == plain.id
            assert record.strategy == "exact"

    def test_inactive_products_are_ignored(self, matcher):
        record = matcher.match_item(item("Ancien Produit"))

        assert not record.is_matched
        assert record.eligible_amount == Decimal("0")

    def test_unmatched_line(self, matcher):
        record = matcher.match_item(item("SAC PLASTIQUE", "0.10"))

        assert record.product_id is None
        assert record.strategy is None

    def test_eligible_amount_is_sum_of_matched_lines(self, matcher):
        result = matcher.match(
            [
                item("Omega 3", "15.99", "2"),
                item("Vitamine D3", "12.50"),
                item("SAC PLASTIQUE", "0.10"),
            ]
        )

        assert result.total_matched == 2
        assert result.total_unmatched == 1
        assert result.eligible_amount == Decimal("44.48")
        assert result.eligible_amount == sum(
            (r.eligible_amount for r in result.records if r.is_matched), Decimal("0")
        )
        assert result.match_rate == pytest.approx(66.67, abs=0.01)

    def test_empty_catalog_matches_nothing(self):
        result = CatalogMatcher([]).match([item("Omega 3")])

        assert result.total_matched == 0
        assert result.eligible_amount == Decimal("0")

    def test_storage_round_trip_keeps_match(self, matcher):
        record = matcher.match_item(item("OMEGA 3"))

        stored = record.to_storage()
        assert stored["matched"] is True

        restored = type(record).from_storage(stored)
        assert restored.product_id == record.product_id
        assert restored.item.unit_price == record.item.unit_price
