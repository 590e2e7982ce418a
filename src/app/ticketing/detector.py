"""Ticket format detection.

The upstream OCR source sends two payload shapes. A ticket is v2 when its
``ticket_data`` carries a ``matched_products`` list (even an empty one);
anything else is handled as the legacy flat product list.
"""

from typing import Any

from app.schemas.internal import TicketFormat
from app.schemas.webhook import TicketData


def detect_format(ticket_data: TicketData | dict[str, Any]) -> TicketFormat:
    """Detect the ticket format from the ticket data block.

    Example:
        >>> detect_format({"products": [{"name": "X", "price": 1}]})
        <TicketFormat.LEGACY: 'legacy'>
    """
    if isinstance(ticket_data, TicketData):
        matched_products = ticket_data.matched_products
    else:
        matched_products = ticket_data.get("matched_products")

    if isinstance(matched_products, list):
        return TicketFormat.V2
    return TicketFormat.LEGACY
