"""Customer points schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import Field, field_validator

from app.schemas.common import CamelModel, PaginationMeta


class PointsAdjustRequest(CamelModel):
    delta: int = Field(..., description="Points to add (positive) or remove (negative)")
    reason: str = Field(..., min_length=3, max_length=500)
    send_notification: bool = False

    @field_validator("delta")
    @classmethod
    def delta_not_zero(cls, value: int) -> int:
        if value == 0:
            raise ValueError("delta cannot be 0")
        return value

    @field_validator("reason")
    @classmethod
    def reason_not_blank(cls, value: str) -> str:
        value = value.strip()
        if len(value) < 3:
            raise ValueError("reason must contain at least 3 non-blank characters")
        return value


class PointsAdjustmentItem(CamelModel):
    id: UUID
    points_before: int
    points_after: int
    delta: int
    reason: str
    actor: str
    created_at: datetime


class PointsAdjustResponse(CamelModel):
    success: bool = True
    message: str
    new_total: int
    notification_sent: bool = False
    adjustment: PointsAdjustmentItem


class AdjustmentHistory(CamelModel):
    data: list[PointsAdjustmentItem]
    pagination: PaginationMeta


class LedgerPointsResponse(CamelModel):
    email: str
    points: int
    previous_local_points: int
    synced: bool
