"""V2 ticket parser.

V2 tickets arrive with the upstream OCR's own product suggestions. Lines
tagged ``matched`` carry a confidence score (0-10) and are dropped below
the minimum; ``other`` and ``potential`` lines are always kept and left to
the catalog matcher.
"""

import logging
from decimal import Decimal
from typing import Sequence

from app.schemas.internal import NormalizedLineItem, TicketFormat
from app.schemas.webhook import MatchedProductV2

logger = logging.getLogger(__name__)

DEFAULT_MIN_CONFIDENCE = 7


def _dec(value: float | int) -> Decimal:
    return Decimal(str(value))


class V2TicketParser:
    def __init__(self, min_confidence: float = DEFAULT_MIN_CONFIDENCE):
        self.min_confidence = min_confidence

    def parse(self, matched_products: Sequence[MatchedProductV2]) -> list[NormalizedLineItem]:
        items: list[NormalizedLineItem] = []
        skipped = 0

        for product in matched_products:
            name = product.matched_name or product.raw_text or "Unknown"
            raw_text = product.raw_text or product.matched_name or "Unknown"
            quantity = _dec(product.quantity)
            unit_price = _dec(product.unit_price)

            if product.source == "matched":
                if product.confidence < self.min_confidence:
                    skipped += 1
                    logger.info(
                        "Skipping low confidence product",
                        extra={
                            "confidence": product.confidence,
                            "min_required": self.min_confidence,
                        },
                    )
                    continue
                discount = _dec(product.discount)
                if product.total_price is not None:
                    total_price = _dec(product.total_price)
                else:
                    total_price = unit_price * quantity - discount
            else:
                # No discount data for unconfirmed lines.
                discount = Decimal("0")
                total_price = unit_price * quantity

            items.append(
                NormalizedLineItem(
                    name=name,
                    raw_text=raw_text,
                    quantity=quantity,
                    unit_price=unit_price,
                    total_price=total_price,
                    discount=discount,
                    confidence=product.confidence,
                    format_version=TicketFormat.V2,
                )
            )

        logger.info(
            "V2 ticket products parsed",
            extra={
                "input_count": len(matched_products),
                "output_count": len(items),
                "filtered_by_confidence": skipped,
            },
        )
        return items
