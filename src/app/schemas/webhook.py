"""Inbound ticket webhook payload.

Two ticket schemas are accepted:
- legacy: ``ticket_data.products`` is a flat list of (name, quantity, price)
- v2: ``ticket_data.matched_products`` carries OCR suggestions with a
  source tag and a confidence score

Unknown top-level fields are kept (the upstream source adds fields freely).
"""

from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator

from app.schemas.common import CamelModel


class TicketProduct(BaseModel):
    """Legacy line: discount lines carry a negative price."""

    name: str = Field(..., min_length=1, description="Line text as printed")
    quantity: float = Field(1, gt=0, description="Quantity (must be positive)")
    price: float = Field(..., description="Unit price; negative for discount lines")


class MatchedProductV2(BaseModel):
    """V2 line suggested by the upstream OCR matcher."""

    raw_text: str | None = None
    matched_name: str | None = None
    quantity: float = Field(1, gt=0)
    unit_price: float = 0
    total_price: float | None = None
    discount: float = 0
    confidence: float = Field(0, ge=0)
    source: Literal["matched", "other", "potential"] = "matched"

    @model_validator(mode="after")
    def has_some_text(self) -> "MatchedProductV2":
        if not (self.raw_text or self.matched_name):
            raise ValueError("raw_text or matched_name is required")
        return self


class WalletObject(BaseModel):
    email: EmailStr
    first_name: str | None = None
    last_name: str | None = None
    phone: str | None = None


class TicketData(BaseModel):
    ticket_id: str = Field(..., min_length=1, max_length=100)
    total_amount: float = Field(..., ge=0)
    currency: str = "EUR"
    authenticity_score: float | None = None
    total_discount: float | None = None
    products: list[TicketProduct] = Field(default_factory=list)
    matched_products: list[MatchedProductV2] | None = None

    @model_validator(mode="after")
    def has_line_items(self) -> "TicketData":
        if not self.products and not self.matched_products:
            raise ValueError("at least one product is required")
        return self


class NftObject(BaseModel):
    id: int | str | None = None


class TicketImage(BaseModel):
    base64: str | None = None
    mime_type: str | None = None
    filename: str | None = None
    size: int | None = None


class WebhookPayload(BaseModel):
    """Complete ticket webhook payload."""

    model_config = ConfigDict(extra="allow")

    wallet_object: WalletObject
    ticket_data: TicketData
    nft_object: NftObject | None = None
    ticket_image: TicketImage | None = None


class WebhookAck(CamelModel):
    """Immediate webhook answer; processing continues out-of-band."""

    received: bool = True
    transaction_id: UUID
    duplicate: bool | None = None
    message: str | None = None


class WebhookRejection(CamelModel):
    received: bool = False
    error: str = "Invalid payload"
    details: list[str] = Field(default_factory=list)
