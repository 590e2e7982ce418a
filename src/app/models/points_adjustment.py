"""Append-only audit trail of manual points adjustments."""
from uuid import UUID

from sqlalchemy import ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import BaseModel


class PointsAdjustment(BaseModel):
    """One operator adjustment of a customer's ledger balance. Never updated."""

    __tablename__ = "points_adjustments"

    customer_id: Mapped[UUID] = mapped_column(
        ForeignKey("customers.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    points_before: Mapped[int] = mapped_column(Integer, nullable=False)
    points_after: Mapped[int] = mapped_column(Integer, nullable=False)
    delta: Mapped[int] = mapped_column(Integer, nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    actor: Mapped[str] = mapped_column(String(191), nullable=False, index=True)

    def __repr__(self) -> str:
        return (
            f"<PointsAdjustment(id={self.id}, customer_id={self.customer_id}, "
            f"delta={self.delta}, actor={self.actor})>"
        )
