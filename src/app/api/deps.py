"""FastAPI dependency injection for the database, shared clients and operators."""

from typing import Annotated

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_db
from app.ledger.client import LedgerClient
from app.services.force_match import ForceMatchService
from app.services.ingestion import IngestionService
from app.services.points_adjustment import PointsAdjustmentService
from app.services.processing import TransactionProcessor
from app.services.settings import SettingsService
from app.workers.queue import ProcessingQueue

__all__ = [
    "get_db",
    "get_ledger_client",
    "get_processing_queue",
    "get_operator",
    "get_ingestion_service",
    "get_transaction_processor",
    "get_force_match_service",
    "get_points_adjustment_service",
    "get_settings_service",
]


def get_ledger_client(request: Request) -> LedgerClient:
    """Ledger client created in the app lifespan."""
    return request.app.state.ledger_client


def get_processing_queue(request: Request) -> ProcessingQueue:
    """Processing queue started in the app lifespan."""
    return request.app.state.processing_queue


async def get_operator(
    x_operator_email: Annotated[str | None, Header()] = None,
) -> str:
    """
    Identity of the operator calling an admin endpoint.

    Authentication happens upstream; the gateway forwards the authenticated
    operator in the ``X-Operator-Email`` header.

    Raises:
        HTTPException: If the header is missing or blank
    """
    if not x_operator_email or not x_operator_email.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Operator identity required",
        )
    return x_operator_email.strip().lower()


async def get_ingestion_service(db: AsyncSession = Depends(get_db)) -> IngestionService:
    return IngestionService(db)


async def get_transaction_processor(
    db: AsyncSession = Depends(get_db),
    ledger: LedgerClient = Depends(get_ledger_client),
) -> TransactionProcessor:
    return TransactionProcessor(db, ledger)


async def get_force_match_service(
    db: AsyncSession = Depends(get_db),
    ledger: LedgerClient = Depends(get_ledger_client),
) -> ForceMatchService:
    return ForceMatchService(db, ledger)


async def get_points_adjustment_service(
    db: AsyncSession = Depends(get_db),
    ledger: LedgerClient = Depends(get_ledger_client),
) -> PointsAdjustmentService:
    return PointsAdjustmentService(db, ledger)


async def get_settings_service(db: AsyncSession = Depends(get_db)) -> SettingsService:
    return SettingsService(db)
