"""Transaction request/response schemas."""

from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import Field, field_validator

from app.schemas.common import CamelModel


class TransactionDetail(CamelModel):
    """Full transaction view for operators."""

    id: UUID
    ticket_id: str
    customer_email: str
    customer_name: str | None = None
    customer_phone: str | None = None
    total_amount: Decimal
    currency: str
    ticket_products: list[dict[str, Any]] = Field(default_factory=list)
    ticket_products_v2: list[dict[str, Any]] | None = None
    matched_products: list[dict[str, Any]] | None = None
    eligible_amount: Decimal
    points_calculated: int
    points_awarded: bool
    notification_sent: bool
    ledger_response: dict[str, Any] | None = None
    status: str
    error_message: str | None = None
    processed_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class ReprocessRequest(CamelModel):
    force: bool = Field(False, description="Reprocess even SUCCESS/PARTIAL transactions")


class ProcessingResultResponse(CamelModel):
    success: bool
    transaction_id: UUID
    status: str | None = None
    matched_products: int = 0
    unmatched_products: int = 0
    eligible_amount: Decimal = Decimal("0")
    points_calculated: int = 0
    points_awarded: bool = False
    notification_sent: bool = False
    error: str | None = None
    error_code: str | None = None
    duration_ms: int = 0


class ForceMatchRequest(CamelModel):
    """Bind one ticket line to a catalog product."""

    product_index: int = Field(..., ge=0, description="Index in the transaction's match records")
    catalog_product_id: UUID
    note: str = Field(..., min_length=3, max_length=500, description="Justification")

    @field_validator("note")
    @classmethod
    def note_not_blank(cls, value: str) -> str:
        value = value.strip()
        if len(value) < 3:
            raise ValueError("note must contain at least 3 non-blank characters")
        return value


class ForceMatchResponse(CamelModel):
    transaction_id: UUID
    product_index: int
    product_name: str | None
    eligible_amount: Decimal
    previous_points: int
    new_points: int
    points_delta: int
    ledger_updated: bool
    new_balance: int | None = None
    status: str
