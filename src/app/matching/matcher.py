"""Catalog matcher.

Resolves normalized line items to catalog products by running the
strategy cascade from ``app.matching.strategies`` and aggregates the
outcome into a ``MatchResult``.
"""

import logging
from typing import Any, Iterable, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from app.matching.strategies import (
    DEFAULT_STRATEGIES,
    CatalogEntry,
    Strategy,
    build_catalog_entry,
    build_item_context,
)
from app.matching.tables import DEFAULT_TABLES, MatcherTables
from app.repositories.product import ProductRepository
from app.schemas.internal import MatchRecord, MatchResult, NormalizedLineItem

logger = logging.getLogger(__name__)


class CatalogMatcher:
    """Matches line items against a fixed snapshot of the catalog.

    Inactive products are ignored. The snapshot is taken at construction,
    so a single matcher gives consistent answers for one ticket.
    """

    def __init__(
        self,
        products: Iterable[Any],
        tables: MatcherTables = DEFAULT_TABLES,
        strategies: Sequence[Strategy] = DEFAULT_STRATEGIES,
    ):
        self.tables = tables
        self.strategies = tuple(strategies)
        self.catalog: list[CatalogEntry] = [
            build_catalog_entry(product, tables)
            for product in products
            if getattr(product, "active", True) and getattr(product, "name", None)
        ]

    def match_item(self, item: NormalizedLineItem) -> MatchRecord:
        """Match one line item. Unmatched items get an eligible amount of 0."""
        context = build_item_context(item.name, self.tables)

        for strategy in self.strategies:
            hit = strategy(context, self.catalog, self.tables)
            if hit is None:
                continue

            product = hit.entry.product
            logger.debug(
                "Line item matched",
                extra={"strategy": hit.strategy, "score": round(hit.score, 3)},
            )
            return MatchRecord(
                item=item,
                product_id=product.id,
                product_name=product.name,
                strategy=hit.strategy,
                score=hit.score,
                eligible_amount=item.unit_price * item.quantity,
            )

        return MatchRecord(item=item)

    def match(self, items: Sequence[NormalizedLineItem]) -> MatchResult:
        """Match every item and aggregate counts and eligible amount."""
        result = MatchResult.from_records([self.match_item(item) for item in items])

        logger.info(
            "Catalog matching complete",
            extra={
                "items": len(items),
                "matched": result.total_matched,
                "unmatched": result.total_unmatched,
                "match_rate": round(result.match_rate, 1),
            },
        )
        return result


async def load_matcher(db: AsyncSession, tables: MatcherTables = DEFAULT_TABLES) -> CatalogMatcher:
    """Build a matcher over the active catalog products."""
    products = await ProductRepository(db).get_active()
    return CatalogMatcher(products, tables=tables)
