"""Fetch-then-overwrite synchronization with the points ledger.

The ledger only supports overwriting a balance, so crediting points is:
read the current balance, add the delta, write the new total. There is no
lock across the read and the write: two concurrent credits for the same
customer can race and one of them can be lost.
"""

import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from app.ledger.client import LedgerClient, LedgerResult
from app.models.customer import Customer
from app.repositories.customer import CustomerRepository

logger = logging.getLogger(__name__)


@dataclass
class LedgerCredit:
    previous_balance: int
    new_total: int
    write: LedgerResult

    @property
    def success(self) -> bool:
        return self.write.success

    def to_storage(self) -> dict:
        return {
            "previous_balance": self.previous_balance,
            "new_total": self.new_total,
            "write": self.write.to_storage(),
        }


class LedgerSyncService:
    def __init__(self, db: AsyncSession, ledger: LedgerClient):
        self.db = db
        self.ledger = ledger
        self.customer_repo = CustomerRepository(db)

    async def get_customer(self, email: str) -> Customer | None:
        return await self.customer_repo.get_by_email(email)

    async def fetch_balance(self, customer: Customer) -> int:
        return await self.ledger.fetch_balance(customer.ledger_identity)

    async def push_total(self, customer: Customer, previous: int, new_total: int) -> LedgerCredit:
        """Overwrite the ledger balance with ``new_total``.

        On success the local ``current_points`` mirror is updated (not
        committed). The caller must have checked ``customer.ledger_identity``.
        """
        logger.info(
            "Pushing new ledger total",
            extra={"previous_balance": previous, "new_total": new_total},
        )
        write = await self.ledger.set_balance_with_retry(customer.ledger_identity, new_total)

        if write.success:
            customer.current_points = new_total
        else:
            logger.error("Ledger write failed after retries", extra={"error": write.error})

        return LedgerCredit(previous_balance=previous, new_total=new_total, write=write)

    async def credit(self, customer: Customer, delta: int) -> LedgerCredit:
        """Add ``delta`` to the customer's ledger balance (read, then overwrite)."""
        current = await self.fetch_balance(customer)
        return await self.push_total(customer, current, current + delta)
