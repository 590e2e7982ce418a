"""Transaction operator endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import (
    get_db,
    get_force_match_service,
    get_operator,
    get_transaction_processor,
)
from app.core.exceptions import NotFoundError
from app.repositories.transaction import TransactionRepository
from app.schemas.transaction import (
    ForceMatchRequest,
    ForceMatchResponse,
    ProcessingResultResponse,
    ReprocessRequest,
    TransactionDetail,
)
from app.services.force_match import ForceMatchService
from app.services.processing import TransactionProcessor

router = APIRouter(prefix="/transactions", tags=["transactions"])


@router.get(
    "/{transaction_id}",
    response_model=TransactionDetail,
    summary="Get transaction details",
)
async def get_transaction(
    transaction_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> TransactionDetail:
    transaction = await TransactionRepository(db).get_by_id(transaction_id)
    if transaction is None:
        raise NotFoundError("NF_001", {"transaction_id": str(transaction_id)})
    return TransactionDetail.model_validate(transaction)


@router.post(
    "/{transaction_id}/reprocess",
    response_model=ProcessingResultResponse,
    summary="Reprocess a transaction",
    description="""
    Runs the processing pipeline again.

    Only PENDING or FAILED transactions can be reprocessed unless
    `force` is true, in which case any transaction is reset to PENDING first.
    Runs synchronously and returns the processing summary.
    """,
)
async def reprocess_transaction(
    transaction_id: UUID,
    body: ReprocessRequest | None = None,
    operator: str = Depends(get_operator),
    processor: TransactionProcessor = Depends(get_transaction_processor),
) -> ProcessingResultResponse:
    force = body.force if body else False
    result = await processor.reprocess(transaction_id, force=force)
    return ProcessingResultResponse.model_validate(result)


@router.post(
    "/{transaction_id}/force-match",
    response_model=ForceMatchResponse,
    summary="Force-match a ticket line to a catalog product",
)
async def force_match_line(
    transaction_id: UUID,
    body: ForceMatchRequest,
    operator: str = Depends(get_operator),
    service: ForceMatchService = Depends(get_force_match_service),
) -> ForceMatchResponse:
    result = await service.force_match(
        transaction_id,
        product_index=body.product_index,
        catalog_product_id=body.catalog_product_id,
        note=body.note,
        actor=operator,
    )
    return ForceMatchResponse(
        transaction_id=result.transaction.id,
        product_index=body.product_index,
        product_name=result.record.product_name,
        eligible_amount=result.transaction.eligible_amount,
        previous_points=result.previous_points,
        new_points=result.new_points,
        points_delta=result.points_delta,
        ledger_updated=result.ledger_updated,
        new_balance=result.new_balance,
        status=result.transaction.status,
    )
