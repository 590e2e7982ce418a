"""Business rule settings service.

Points rules and the notification template live in the ``settings`` table
so operators can change them without a deploy. Missing or unparseable rows
fall back to the documented defaults.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from sqlalchemy.ext.asyncio import AsyncSession

from app.points.calculator import RoundingMode
from app.repositories.setting import SettingRepository

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS: dict[str, str] = {
    "POINTS_RATIO": "1",
    "POINTS_ROUNDING": "floor",
    "MIN_ELIGIBLE_AMOUNT": "0",
    "NOTIFICATION_MESSAGE_TEMPLATE": (
        "Felicitations ! Vous avez gagne {points} point(s) fidelite Phytalessence."
    ),
}


@dataclass(frozen=True)
class PointsRules:
    ratio: Decimal
    rounding: RoundingMode
    min_eligible_amount: Decimal


class SettingsService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.setting_repo = SettingRepository(db)

    async def get(self, key: str) -> str:
        value = await self.setting_repo.get_value(key)
        if value is None:
            # Older databases store keys in lowercase.
            value = await self.setting_repo.get_value(key.lower())
        if value is None or not value.strip():
            return DEFAULT_SETTINGS[key]
        return value

    async def get_decimal(self, key: str) -> Decimal:
        value = await self.get(key)
        try:
            return Decimal(value.strip())
        except InvalidOperation:
            logger.warning("Invalid numeric setting, using default", extra={"key": key})
            return Decimal(DEFAULT_SETTINGS[key])

    async def get_points_rules(self) -> PointsRules:
        return PointsRules(
            ratio=await self.get_decimal("POINTS_RATIO"),
            rounding=RoundingMode.parse(await self.get("POINTS_ROUNDING")),
            min_eligible_amount=await self.get_decimal("MIN_ELIGIBLE_AMOUNT"),
        )

    async def get_notification_message(self, points: int) -> str:
        """Render the notification template for ``points``."""
        template = await self.get("NOTIFICATION_MESSAGE_TEMPLATE")
        return template.replace("{points}", str(points))
