"""Customer repository."""
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.customer import Customer
from app.repositories.base import BaseRepository


class CustomerRepository(BaseRepository[Customer]):
    """Repository for Customer model."""

    def __init__(self, db: AsyncSession):
        super().__init__(db, Customer)

    async def get_by_email(self, email: str) -> Customer | None:
        """Find a customer by (case-insensitive) email address."""
        result = await self.db.execute(
            select(Customer).where(Customer.email == email.strip().lower())
        )
        return result.scalar_one_or_none()

    async def upsert_from_ticket(
        self,
        email: str,
        first_name: str | None = None,
        last_name: str | None = None,
        phone: str | None = None,
        nft_id: str | None = None,
    ) -> Customer:
        """Create the customer or refresh the fields the ticket provides.

        Existing values are only overwritten by non-empty ones. Does not commit.
        """
        email = email.strip().lower()
        customer = await self.get_by_email(email)
        if customer is None:
            customer = Customer(
                email=email,
                first_name=first_name or None,
                last_name=last_name or None,
                phone=phone or None,
                nft_id=nft_id or None,
                current_points=0,
            )
            return await self.add(customer)

        if nft_id:
            customer.nft_id = nft_id
        if first_name:
            customer.first_name = first_name
        if last_name:
            customer.last_name = last_name
        if phone:
            customer.phone = phone
        await self.db.flush()
        return customer
