"""Customer points endpoints (operator only)."""

import math
from typing import Annotated

from fastapi import APIRouter, Depends, Query

from app.api.deps import get_operator, get_points_adjustment_service
from app.schemas.common import PaginationMeta
from app.schemas.customer import (
    AdjustmentHistory,
    LedgerPointsResponse,
    PointsAdjustmentItem,
    PointsAdjustResponse,
    PointsAdjustRequest,
)
from app.services.points_adjustment import PointsAdjustmentService

router = APIRouter(prefix="/customers", tags=["customers"])


@router.post(
    "/{email}/points",
    response_model=PointsAdjustResponse,
    summary="Adjust a customer's points",
    description="""
    Adds (positive delta) or removes (negative delta) points.

    The current balance is read from the ledger first; an adjustment that
    would make it negative is rejected and nothing is written.
    """,
)
async def adjust_points(
    email: str,
    body: PointsAdjustRequest,
    operator: str = Depends(get_operator),
    service: PointsAdjustmentService = Depends(get_points_adjustment_service),
) -> PointsAdjustResponse:
    result = await service.adjust(
        email,
        delta=body.delta,
        reason=body.reason,
        actor=operator,
        send_notification=body.send_notification,
    )
    sign = "+" if body.delta > 0 else ""
    return PointsAdjustResponse(
        message=f"Points updated: {sign}{body.delta} (new total: {result.new_total})",
        new_total=result.new_total,
        notification_sent=result.notification_sent,
        adjustment=PointsAdjustmentItem.model_validate(result.adjustment),
    )


@router.get(
    "/{email}/adjustments",
    response_model=AdjustmentHistory,
    summary="Points adjustment history",
)
async def list_adjustments(
    email: str,
    page: Annotated[int, Query(ge=1, description="Page number (1-indexed)")] = 1,
    limit: Annotated[int, Query(ge=1, le=100, description="Items per page (1-100)")] = 20,
    operator: str = Depends(get_operator),
    service: PointsAdjustmentService = Depends(get_points_adjustment_service),
) -> AdjustmentHistory:
    items, total = await service.get_history(email, page=page, limit=limit)
    return AdjustmentHistory(
        data=[PointsAdjustmentItem.model_validate(item) for item in items],
        pagination=PaginationMeta(
            page=page,
            limit=limit,
            total=total,
            total_pages=math.ceil(total / limit) if total else 0,
        ),
    )


@router.get(
    "/{email}/ledger-points",
    response_model=LedgerPointsResponse,
    summary="Read the ledger balance and sync the local copy",
)
async def get_ledger_points(
    email: str,
    operator: str = Depends(get_operator),
    service: PointsAdjustmentService = Depends(get_points_adjustment_service),
) -> LedgerPointsResponse:
    points, previous = await service.sync_ledger_points(email)
    return LedgerPointsResponse(
        email=email.strip().lower(),
        points=points,
        previous_local_points=previous,
        synced=points != previous,
    )
