"""Catalog product repository (read side only)."""
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.product import Product
from app.repositories.base import BaseRepository


class ProductRepository(BaseRepository[Product]):
    """Repository for Product model."""

    def __init__(self, db: AsyncSession):
        super().__init__(db, Product)

    async def get_active(self) -> list[Product]:
        """Get every active catalog product, in a stable order."""
        result = await self.db.execute(
            select(Product).where(Product.active == True).order_by(Product.name.asc())
        )
        return list(result.scalars().all())
