"""Transaction repository with idempotency and status queries."""
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.transaction import Transaction
from app.repositories.base import BaseRepository


class TransactionRepository(BaseRepository[Transaction]):
    """Repository for Transaction model."""

    def __init__(self, db: AsyncSession):
        super().__init__(db, Transaction)

    async def get_by_ticket_id(self, ticket_id: str) -> Transaction | None:
        """Find the transaction created for a ticket id (idempotency lookup)."""
        result = await self.db.execute(
            select(Transaction).where(Transaction.ticket_id == ticket_id)
        )
        return result.scalar_one_or_none()

    async def refresh_for_update(self, transaction_id: UUID) -> Transaction | None:
        """Reload a transaction, bypassing the identity map cache."""
        result = await self.db.execute(
            select(Transaction)
            .where(Transaction.id == transaction_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()
