"""Points preview schemas."""

from decimal import Decimal

from pydantic import Field

from app.schemas.common import CamelModel


class PointsPreviewRequest(CamelModel):
    eligible_amount: Decimal = Field(..., ge=0, description="Amount to convert")


class PointsPreviewResponse(CamelModel):
    eligible_amount: Decimal
    ratio: Decimal
    min_eligible_amount: Decimal
    rounding: str
    raw_points: Decimal
    points: int
    below_threshold: bool
