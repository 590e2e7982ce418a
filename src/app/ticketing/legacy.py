"""Legacy ticket parser.

Legacy tickets are a flat list of printed lines. Two OCR artefacts are
corrected here:

- Multi-line product names. A line holding only the brand name starts a
  product whose name continues on the following lines; those lines repeat
  the same price::

      PHYTALESSENCE   12.90
      RHODIOLA 60     12.90
      GELULES         12.90
      -> "PHYTALESSENCE RHODIOLA 60 GELULES" at 12.90

- Fully discounted products. A product followed by a line cancelling its
  price (negated price, or a "remise" line of the same magnitude) was not
  paid for and is dropped together with the discount line.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Sequence

from app.matching.text import is_similar_to_prefix
from app.schemas.internal import NormalizedLineItem, TicketFormat
from app.schemas.webhook import TicketProduct

logger = logging.getLogger(__name__)

BRAND_LINE_PREFIXES: tuple[str, ...] = ("PHYTALESSENCE", "PHYTALESS", "PHYTALES")
DISCOUNT_MARKERS: tuple[str, ...] = ("remise", "reduction", "discount")

LEGACY_CONFIDENCE = 10


@dataclass(frozen=True)
class _Line:
    name: str
    quantity: Decimal
    price: Decimal


def _to_decimal(value: float | int | str | Decimal) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value))


class LegacyTicketParser:
    """Merges multi-line names and drops fully discounted products.

    Args:
        brand_prefixes: Brand lines that start a multi-line product name
        discount_markers: Words identifying a discount line
        total_tolerance: Allowed gap between parsed and declared totals
            before a warning is logged
    """

    def __init__(
        self,
        brand_prefixes: Sequence[str] = BRAND_LINE_PREFIXES,
        discount_markers: Sequence[str] = DISCOUNT_MARKERS,
        total_tolerance: Decimal | float = Decimal("0.10"),
    ):
        self.brand_prefixes = tuple(p.upper() for p in brand_prefixes)
        self.discount_markers = tuple(m.lower() for m in discount_markers)
        self.total_tolerance = _to_decimal(total_tolerance)

    def is_brand_line(self, name: str) -> bool:
        """Whole line is a brand name, allowing OCR typos on names >= 5 chars."""
        upper_name = name.upper().strip()
        if upper_name in self.brand_prefixes:
            return True
        if len(upper_name) < 5:
            return False
        return any(is_similar_to_prefix(upper_name, prefix) for prefix in self.brand_prefixes)

    def has_discount_marker(self, name: str) -> bool:
        lowered = name.lower()
        return any(marker in lowered for marker in self.discount_markers)

    def cancels(self, line: _Line, price: Decimal) -> bool:
        """True when ``line`` is a discount wiping out a product at ``price``."""
        if price <= 0:
            return False
        if line.price == -price:
            return True
        return self.has_discount_marker(line.name) and abs(line.price) == price

    def parse(
        self,
        products: Sequence[TicketProduct],
        expected_total: Decimal | float | None = None,
    ) -> list[NormalizedLineItem]:
        """Normalize legacy product lines, preserving their order."""
        if not products:
            return []

        lines = [
            _Line(p.name, _to_decimal(p.quantity), _to_decimal(p.price)) for p in products
        ]
        parsed: list[_Line] = []
        i = 0

        while i < len(lines):
            current = lines[i]

            if self.is_brand_line(current.name):
                merged_name = current.name.strip()
                j = i + 1
                while j < len(lines) and lines[j].price == current.price:
                    merged_name = f"{merged_name} {lines[j].name.strip()}".strip()
                    j += 1

                if j < len(lines) and self.cancels(lines[j], current.price):
                    logger.info(
                        "Skipping discounted merged product",
                        extra={"product": merged_name, "discount_line": lines[j].name},
                    )
                    j += 1
                    # A second identical product + discount pair often follows.
                    if (
                        j + 1 < len(lines)
                        and lines[j].price == current.price
                        and self.cancels(lines[j + 1], current.price)
                    ):
                        j += 2
                else:
                    parsed.append(_Line(merged_name, current.quantity, current.price))

                i = j
                continue

            if i + 1 < len(lines) and self.cancels(lines[i + 1], current.price):
                logger.info("Skipping fully discounted product", extra={"product": current.name})
                i += 2
                continue

            parsed.append(current)
            i += 1

        self._check_totals(lines, parsed, expected_total)

        return [
            NormalizedLineItem(
                name=line.name,
                raw_text=line.name,
                quantity=line.quantity,
                unit_price=line.price,
                total_price=line.price * line.quantity,
                discount=Decimal("0"),
                confidence=LEGACY_CONFIDENCE,
                format_version=TicketFormat.LEGACY,
            )
            for line in parsed
        ]

    def _check_totals(
        self,
        original: list[_Line],
        parsed: list[_Line],
        expected_total: Decimal | float | None,
    ) -> None:
        parsed_total = sum((line.price * line.quantity for line in parsed), Decimal("0"))

        if len(parsed) != len(original):
            original_total = sum((line.price * line.quantity for line in original), Decimal("0"))
            logger.info(
                "Legacy ticket lines corrected",
                extra={
                    "original_count": len(original),
                    "parsed_count": len(parsed),
                    "original_total": str(original_total),
                    "parsed_total": str(parsed_total),
                },
            )

        if expected_total is None:
            return

        expected = _to_decimal(expected_total)
        if abs(parsed_total - expected) > self.total_tolerance:
            logger.warning(
                "Parsed ticket total deviates from declared total",
                extra={
                    "parsed_total": str(parsed_total),
                    "expected_total": str(expected),
                    "tolerance": str(self.total_tolerance),
                },
            )
