"""Manual points adjustments and ledger balance queries."""

import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ExternalServiceError, LoyaltyError, NotFoundError, ValidationError
from app.ledger.client import LedgerClient
from app.models.customer import Customer
from app.models.points_adjustment import PointsAdjustment
from app.repositories.points_adjustment import PointsAdjustmentRepository
from app.services.ledger_sync import LedgerSyncService

logger = logging.getLogger(__name__)

MIN_REASON_LENGTH = 3
MAX_REASON_LENGTH = 500


@dataclass
class AdjustmentResult:
    adjustment: PointsAdjustment
    previous_balance: int
    new_total: int
    notification_sent: bool = False


class PointsAdjustmentService:
    """Operator adjustments of a customer's ledger balance.

    Every successful adjustment is recorded in ``points_adjustments``
    together with the local balance mirror, in one commit.
    """

    def __init__(self, db: AsyncSession, ledger: LedgerClient):
        self.db = db
        self.ledger = ledger
        self.adjustment_repo = PointsAdjustmentRepository(db)
        self.ledger_sync = LedgerSyncService(db, ledger)

    async def _get_linked_customer(self, email: str) -> Customer:
        customer = await self.ledger_sync.get_customer(email)
        if customer is None:
            raise NotFoundError("NF_003")
        if not customer.ledger_identity:
            raise LoyaltyError("LEDGER_002", {"customer_id": str(customer.id)}, http_status=409)
        return customer

    async def adjust(
        self,
        email: str,
        delta: int,
        reason: str,
        actor: str,
        send_notification: bool = False,
    ) -> AdjustmentResult:
        """Add ``delta`` (may be negative) to the customer's ledger balance.

        Raises:
            ValidationError: Zero delta, bad reason (VAL_003) or a resulting
                negative balance (VAL_004); nothing is written in that case
            NotFoundError: Unknown customer (NF_003)
            LoyaltyError: Customer not linked to a ledger card (LEDGER_002)
            ExternalServiceError: Ledger write failed after retries (LEDGER_001)
        """
        reason = (reason or "").strip()
        if delta == 0 or not MIN_REASON_LENGTH <= len(reason) <= MAX_REASON_LENGTH:
            raise ValidationError("VAL_003", {"delta": delta, "reason_length": len(reason)})

        customer = await self._get_linked_customer(email)

        current = await self.ledger_sync.fetch_balance(customer)
        new_total = current + delta
        if new_total < 0:
            logger.warning(
                "Adjustment rejected: negative balance",
                extra={"current": current, "delta": delta},
            )
            raise ValidationError("VAL_004", {"current": current, "delta": delta})

        credit = await self.ledger_sync.push_total(customer, current, new_total)
        if not credit.success:
            await self.db.rollback()
            raise ExternalServiceError("LEDGER_001", {"error": credit.write.error})

        adjustment = PointsAdjustment(
            customer_id=customer.id,
            points_before=current,
            points_after=new_total,
            delta=delta,
            reason=reason,
            actor=actor,
        )
        self.db.add(adjustment)
        await self.db.commit()
        await self.db.refresh(adjustment)

        logger.info(
            "Points adjusted",
            extra={
                "customer_id": str(customer.id),
                "points_before": current,
                "points_after": new_total,
                "delta": delta,
            },
        )

        notification_sent = False
        if send_notification:
            suffix = "s" if new_total > 1 else ""
            message = (
                f"Votre solde de points a ete mis a jour: {new_total} point{suffix}. "
                f"Raison: {reason}"
            )
            notification = await self.ledger.notify_with_retry(customer.email, message)
            notification_sent = notification.success

        return AdjustmentResult(
            adjustment=adjustment,
            previous_balance=current,
            new_total=new_total,
            notification_sent=notification_sent,
        )

    async def get_history(
        self, email: str, page: int = 1, limit: int = 20
    ) -> tuple[list[PointsAdjustment], int]:
        """Adjustments for a customer, newest first, with the total count."""
        customer = await self.ledger_sync.get_customer(email)
        if customer is None:
            raise NotFoundError("NF_003")

        skip = (page - 1) * limit
        items = await self.adjustment_repo.get_by_customer(customer.id, skip=skip, limit=limit)
        total = await self.adjustment_repo.count_by_customer(customer.id)
        return items, total

    async def sync_ledger_points(self, email: str) -> tuple[int, int]:
        """Read the ledger balance and refresh the local mirror.

        Returns:
            (ledger balance, previous local value)
        """
        customer = await self._get_linked_customer(email)
        previous = customer.current_points
        points = await self.ledger_sync.fetch_balance(customer)

        if points != previous:
            customer.current_points = points
            await self.db.commit()
            logger.info(
                "Synced customer points from ledger",
                extra={"customer_id": str(customer.id), "old_points": previous, "new_points": points},
            )
        return points, previous
