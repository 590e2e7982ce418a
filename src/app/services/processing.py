"""Transaction processing pipeline.

Drives one PENDING transaction through:
1. Normalize the stored line items
2. Match them against the active catalog
3. Compute points from the eligible amount
4. Persist intermediate results
5. Credit the ledger and notify the customer (when points > 0)
6. Finalize status: SUCCESS (>= 1 match) or PARTIAL (no match)

Any exception before finalization marks the transaction FAILED. ``process``
never raises, so a queue worker can call it blindly.
"""

import logging
import time
from dataclasses import dataclass, field
from decimal import Decimal
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import AlreadyProcessedError, InternalError, LoyaltyError, NotFoundError
from app.ledger.client import LedgerClient
from app.matching.matcher import load_matcher
from app.matching.tables import DEFAULT_TABLES, MatcherTables
from app.models.base import utcnow
from app.models.transaction import Transaction, TransactionStatus
from app.points.calculator import calculate_points
from app.repositories.transaction import TransactionRepository
from app.services.ledger_sync import LedgerSyncService
from app.services.settings import SettingsService
from app.ticketing.normalizer import TicketNormalizer

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


@dataclass
class ProcessingResult:
    """Summary of one processing run."""

    success: bool
    transaction_id: UUID
    status: str | None = None
    matched_products: int = 0
    unmatched_products: int = 0
    eligible_amount: Decimal = field(default_factory=lambda: Decimal("0"))
    points_calculated: int = 0
    points_awarded: bool = False
    notification_sent: bool = False
    error: str | None = None
    error_code: str | None = None
    duration_ms: int = 0


class TransactionProcessor:
    """Runs the processing pipeline for one transaction at a time.

    Args:
        db: Session owned by the caller (one per job)
        ledger: Shared ledger client
        normalizer: Ticket normalizer (defaults from settings)
        tables: Matcher vocabulary
    """

    def __init__(
        self,
        db: AsyncSession,
        ledger: LedgerClient,
        normalizer: TicketNormalizer | None = None,
        tables: MatcherTables = DEFAULT_TABLES,
    ):
        self.db = db
        self.ledger = ledger
        self.normalizer = normalizer or TicketNormalizer()
        self.tables = tables
        self.transaction_repo = TransactionRepository(db)
        self.settings_service = SettingsService(db)
        self.ledger_sync = LedgerSyncService(db, ledger)

    async def process(self, transaction_id: UUID) -> ProcessingResult:
        """Process a PENDING transaction. Never raises."""
        start_time = time.monotonic()
        logger.info("Starting transaction processing", extra={"transaction_id": str(transaction_id)})

        try:
            transaction = await self.transaction_repo.refresh_for_update(transaction_id)
        except Exception as e:
            logger.exception("Could not load transaction", extra={"transaction_id": str(transaction_id)})
            return ProcessingResult(success=False, transaction_id=transaction_id, error=str(e))

        if transaction is None:
            return ProcessingResult(
                success=False, transaction_id=transaction_id, error="Transaction not found"
            )

        if transaction.status != TransactionStatus.PENDING.value:
            logger.warning(
                "Transaction already processed",
                extra={"transaction_id": str(transaction_id), "status": transaction.status},
            )
            return ProcessingResult(
                success=False,
                transaction_id=transaction_id,
                status=transaction.status,
                error=f"Transaction already processed with status: {transaction.status}",
            )

        try:
            result = await self._run(transaction)
        except Exception as e:
            if isinstance(e, LoyaltyError):
                failure = e
            else:
                failure = InternalError("SYS_001", {"error": str(e) or type(e).__name__})
            result = await self._mark_failed(transaction_id, failure)

        result.duration_ms = int((time.monotonic() - start_time) * 1000)
        logger.info(
            "Transaction processing finished",
            extra={
                "transaction_id": str(transaction_id),
                "status": result.status,
                "matched": result.matched_products,
                "points": result.points_calculated,
                "points_awarded": result.points_awarded,
                "duration_ms": result.duration_ms,
            },
        )
        return result

    async def reprocess(self, transaction_id: UUID, force: bool = False) -> ProcessingResult:
        """Move a transaction back to PENDING and run it again.

        Raises:
            NotFoundError: If the transaction does not exist
            AlreadyProcessedError: If it is SUCCESS/PARTIAL and not forced
        """
        transaction = await self.transaction_repo.refresh_for_update(transaction_id)
        if transaction is None:
            raise NotFoundError("NF_001", {"transaction_id": str(transaction_id)})

        reprocessable = (TransactionStatus.PENDING.value, TransactionStatus.FAILED.value)
        if not force and transaction.status not in reprocessable:
            raise AlreadyProcessedError(
                "TXN_001",
                {"transaction_id": str(transaction_id), "status": transaction.status},
            )

        if transaction.status != TransactionStatus.PENDING.value:
            logger.info(
                "Resetting transaction to PENDING",
                extra={
                    "transaction_id": str(transaction_id),
                    "previous_status": transaction.status,
                    "force": force,
                },
            )
            transaction.status = TransactionStatus.PENDING.value
            transaction.error_message = None
            transaction.processed_at = None
            await self.db.commit()

        return await self.process(transaction_id)

    async def _run(self, transaction: Transaction) -> ProcessingResult:
        items = self.normalizer.normalize_stored(
            transaction.ticket_products,
            transaction.ticket_products_v2,
            transaction.total_amount,
        )

        matcher = await load_matcher(self.db, self.tables)
        match_result = matcher.match(items)

        rules = await self.settings_service.get_points_rules()
        calculation = calculate_points(
            match_result.eligible_amount,
            rules.ratio,
            rules.min_eligible_amount,
            rules.rounding,
        )

        transaction.matched_products = [record.to_storage() for record in match_result.records]
        transaction.eligible_amount = match_result.eligible_amount.quantize(CENT)
        transaction.points_calculated = calculation.points
        transaction.points_awarded = False
        transaction.notification_sent = False
        transaction.ledger_response = None
        transaction.error_message = None
        await self.db.commit()

        if calculation.points > 0:
            await self._award_points(transaction, calculation.points)
        else:
            logger.info(
                "No points to award",
                extra={"transaction_id": str(transaction.id)},
            )

        status = (
            TransactionStatus.SUCCESS if match_result.total_matched > 0 else TransactionStatus.PARTIAL
        )
        transaction.status = status.value
        transaction.processed_at = utcnow()
        await self.db.commit()

        return ProcessingResult(
            success=True,
            transaction_id=transaction.id,
            status=transaction.status,
            matched_products=match_result.total_matched,
            unmatched_products=match_result.total_unmatched,
            eligible_amount=transaction.eligible_amount,
            points_calculated=calculation.points,
            points_awarded=transaction.points_awarded,
            notification_sent=transaction.notification_sent,
            error=transaction.error_message,
        )

    async def _award_points(self, transaction: Transaction, points: int) -> None:
        """Credit the ledger, then notify. Failures are recorded, not raised."""
        customer = await self.ledger_sync.get_customer(transaction.customer_email)
        if customer is None or not customer.ledger_identity:
            logger.error(
                "Customer has no ledger identity, cannot award points",
                extra={"transaction_id": str(transaction.id)},
            )
            transaction.error_message = "Customer has no ledger identity"
            transaction.ledger_response = {"error": transaction.error_message}
            return

        credit = await self.ledger_sync.credit(customer, points)
        response = credit.to_storage()

        if not credit.success:
            transaction.error_message = f"Ledger update failed: {credit.write.error}"
            transaction.ledger_response = response
            return

        transaction.points_awarded = True
        message = await self.settings_service.get_notification_message(points)
        notification = await self.ledger.notify_with_retry(transaction.customer_email, message)
        transaction.notification_sent = notification.success
        response["notification"] = notification.to_storage()
        transaction.ledger_response = response

        if not notification.success:
            logger.warning(
                "Notification failed after retries",
                extra={"transaction_id": str(transaction.id), "error": notification.error},
            )

    async def _mark_failed(self, transaction_id: UUID, error: LoyaltyError) -> ProcessingResult:
        logger.error(
            "Transaction processing failed",
            extra={"transaction_id": str(transaction_id), "error_code": error.error_code},
            exc_info=True,
        )
        message = str(error.details.get("error") or error.error_code)
        status = None
        try:
            await self.db.rollback()
            transaction = await self.transaction_repo.refresh_for_update(transaction_id)
            if transaction is not None:
                transaction.status = TransactionStatus.FAILED.value
                transaction.error_message = message[:2000]
                transaction.processed_at = utcnow()
                await self.db.commit()
                status = transaction.status
        except Exception:
            logger.exception(
                "Failed to record FAILED status",
                extra={"transaction_id": str(transaction_id)},
            )

        return ProcessingResult(
            success=False,
            transaction_id=transaction_id,
            status=status,
            error=message,
            error_code=error.error_code,
        )
