"""Points preview endpoint."""

from fastapi import APIRouter, Depends

from app.api.deps import get_settings_service
from app.points.calculator import calculate_points
from app.schemas.points import PointsPreviewRequest, PointsPreviewResponse
from app.services.settings import SettingsService

router = APIRouter(prefix="/points", tags=["points"])


@router.post(
    "/preview",
    response_model=PointsPreviewResponse,
    summary="Preview points for an amount with the current rules",
)
async def preview_points(
    body: PointsPreviewRequest,
    settings_service: SettingsService = Depends(get_settings_service),
) -> PointsPreviewResponse:
    rules = await settings_service.get_points_rules()
    calculation = calculate_points(
        body.eligible_amount,
        rules.ratio,
        rules.min_eligible_amount,
        rules.rounding,
    )
    return PointsPreviewResponse(
        eligible_amount=calculation.eligible_amount,
        ratio=calculation.ratio,
        min_eligible_amount=rules.min_eligible_amount,
        rounding=calculation.rounding.value,
        raw_points=calculation.raw_points,
        points=calculation.points,
        below_threshold=calculation.below_threshold,
    )
