"""Points adjustment audit repository (append-only)."""
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.points_adjustment import PointsAdjustment
from app.repositories.base import BaseRepository


class PointsAdjustmentRepository(BaseRepository[PointsAdjustment]):
    """Repository for PointsAdjustment. Exposes no update or delete helpers."""

    def __init__(self, db: AsyncSession):
        super().__init__(db, PointsAdjustment)

    async def get_by_customer(
        self, customer_id: UUID, skip: int = 0, limit: int = 20
    ) -> list[PointsAdjustment]:
        """Get a customer's adjustments, newest first."""
        result = await self.db.execute(
            select(PointsAdjustment)
            .where(PointsAdjustment.customer_id == customer_id)
            .order_by(PointsAdjustment.created_at.desc())
            .offset(skip)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def count_by_customer(self, customer_id: UUID) -> int:
        result = await self.db.execute(
            select(func.count()).where(PointsAdjustment.customer_id == customer_id)
        )
        return int(result.scalar() or 0)
