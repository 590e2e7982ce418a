"""Customer model: the owner of tickets and of a ledger balance."""
from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import BaseModel


class Customer(BaseModel):
    """Customer known from ingested tickets.

    ``current_points`` is a local mirror of the external ledger; the ledger
    stays authoritative and is always read before a balance is written.
    """

    __tablename__ = "customers"

    email: Mapped[str] = mapped_column(String(191), unique=True, nullable=False, index=True)
    token_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    nft_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    first_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    current_points: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    @property
    def ledger_identity(self) -> str | None:
        """Identifier used by the ledger; falls back to the card id from the webhook."""
        return self.token_id or self.nft_id

    def __repr__(self) -> str:
        return f"<Customer(id={self.id}, email={self.email}, points={self.current_points})>"
