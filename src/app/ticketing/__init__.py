"""Ticket normalization for the two OCR payload formats."""

from app.ticketing.detector import detect_format
from app.ticketing.legacy import LegacyTicketParser
from app.ticketing.normalizer import TicketNormalizer
from app.ticketing.v2 import V2TicketParser

__all__ = [
    "detect_format",
    "LegacyTicketParser",
    "V2TicketParser",
    "TicketNormalizer",
]
