"""Ticket normalizer facade.

Resolves the ticket format once and returns the canonical line items.
Nothing downstream of this module needs to know which format a ticket
arrived in.
"""

import logging
from decimal import Decimal
from typing import Any, Sequence

from app.config import settings
from app.schemas.internal import NormalizedLineItem, TicketFormat
from app.schemas.webhook import MatchedProductV2, TicketData, TicketProduct
from app.ticketing.detector import detect_format
from app.ticketing.legacy import LegacyTicketParser
from app.ticketing.v2 import V2TicketParser

logger = logging.getLogger(__name__)


class TicketNormalizer:
    """Converts either ticket format into ``NormalizedLineItem`` objects.

    Example:
        >>> normalizer = TicketNormalizer()
        >>> items = normalizer.normalize(ticket_data)
    """

    def __init__(
        self,
        legacy_parser: LegacyTicketParser | None = None,
        v2_parser: V2TicketParser | None = None,
    ):
        self.legacy_parser = legacy_parser or LegacyTicketParser(
            total_tolerance=Decimal(str(settings.total_tolerance))
        )
        self.v2_parser = v2_parser or V2TicketParser(min_confidence=settings.v2_min_confidence)

    def normalize(self, ticket_data: TicketData) -> list[NormalizedLineItem]:
        ticket_format = detect_format(ticket_data)
        if ticket_format is TicketFormat.V2:
            return self.v2_parser.parse(ticket_data.matched_products or [])
        return self.legacy_parser.parse(ticket_data.products, ticket_data.total_amount)

    def normalize_stored(
        self,
        products: Sequence[dict[str, Any]] | None,
        matched_products: Sequence[dict[str, Any]] | None,
        declared_total: Decimal | None = None,
    ) -> list[NormalizedLineItem]:
        """Normalize raw line items as persisted on a transaction row."""
        if matched_products is not None:
            return self.v2_parser.parse(
                [MatchedProductV2.model_validate(p) for p in matched_products]
            )
        return self.legacy_parser.parse(
            [TicketProduct.model_validate(p) for p in products or []],
            declared_total,
        )
