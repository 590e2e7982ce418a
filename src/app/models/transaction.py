"""Transaction model: one ingested ticket and its processing outcome."""
import enum
from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import BaseModel


class TransactionStatus(str, enum.Enum):
    """Processing status. PENDING is the only non-terminal state."""

    PENDING = "PENDING"
    SUCCESS = "SUCCESS"
    PARTIAL = "PARTIAL"
    FAILED = "FAILED"


class Transaction(BaseModel):
    """Transaction model representing a scanned receipt submitted by a customer.

    ``ticket_id`` is the idempotency key: a unique constraint guarantees a
    ticket is never ingested twice.
    """

    __tablename__ = "transactions"

    ticket_id: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    customer_email: Mapped[str] = mapped_column(String(191), nullable=False, index=True)
    customer_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    customer_phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="EUR", nullable=False)

    # Raw line items exactly as received; v2 tickets also carry matched_products.
    ticket_products: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    ticket_products_v2: Mapped[list[dict[str, Any]] | None] = mapped_column(JSON, nullable=True)
    ticket_image_base64: Mapped[str | None] = mapped_column(Text, nullable=True)

    matched_products: Mapped[list[dict[str, Any]] | None] = mapped_column(JSON, nullable=True)
    eligible_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"), nullable=False)
    points_calculated: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    points_awarded: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    notification_sent: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    ledger_response: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    status: Mapped[str] = mapped_column(
        String(20), default=TransactionStatus.PENDING.value, nullable=False
    )
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    processed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("ix_transactions_status", "status"),
        Index("ix_transactions_created_at", "created_at"),
    )

    @property
    def is_v2(self) -> bool:
        return self.ticket_products_v2 is not None

    def __repr__(self) -> str:
        return f"<Transaction(id={self.id}, ticket_id={self.ticket_id}, status={self.status})>"
