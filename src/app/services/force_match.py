"""Operator force-match of an unmatched ticket line.

An operator binds one line item to a catalog product with a justification
note. Eligible amount and points are recomputed; when the points go up,
the difference is credited to the ledger. When that credit fails, the
stored points keep their credited value so forcing again retries it.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    AlreadyProcessedError,
    LoyaltyError,
    NotFoundError,
    ValidationError,
)
from app.ledger.client import LedgerClient
from app.models.base import utcnow
from app.models.transaction import Transaction, TransactionStatus
from app.points.calculator import calculate_points
from app.repositories.product import ProductRepository
from app.repositories.transaction import TransactionRepository
from app.schemas.internal import MatchRecord, MatchResult
from app.services.ledger_sync import LedgerSyncService
from app.services.settings import SettingsService

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
MIN_NOTE_LENGTH = 3
MAX_NOTE_LENGTH = 500


@dataclass
class ForceMatchResult:
    transaction: Transaction
    record: MatchRecord
    previous_points: int
    new_points: int
    points_delta: int
    ledger_updated: bool
    new_balance: int | None = None


class ForceMatchService:
    def __init__(self, db: AsyncSession, ledger: LedgerClient):
        self.db = db
        self.ledger = ledger
        self.transaction_repo = TransactionRepository(db)
        self.product_repo = ProductRepository(db)
        self.settings_service = SettingsService(db)
        self.ledger_sync = LedgerSyncService(db, ledger)

    async def force_match(
        self,
        transaction_id: UUID,
        product_index: int,
        catalog_product_id: UUID,
        note: str,
        actor: str,
    ) -> ForceMatchResult:
        """Bind line ``product_index`` to a catalog product.

        Raises:
            ValidationError: Note too short or too long (VAL_002)
            NotFoundError: Unknown transaction, line index or product
            AlreadyProcessedError: Line already validated by matching (TXN_002)
            LoyaltyError: Transaction not matched yet (TXN_003)
        """
        note = (note or "").strip()
        if not MIN_NOTE_LENGTH <= len(note) <= MAX_NOTE_LENGTH:
            raise ValidationError("VAL_002", {"note_length": len(note)})

        transaction = await self.transaction_repo.refresh_for_update(transaction_id)
        if transaction is None:
            raise NotFoundError("NF_001", {"transaction_id": str(transaction_id)})

        if transaction.matched_products is None:
            raise LoyaltyError("TXN_003", {"transaction_id": str(transaction_id)}, http_status=409)

        records = [MatchRecord.from_storage(r) for r in transaction.matched_products]
        if not 0 <= product_index < len(records):
            raise NotFoundError(
                "NF_004", {"product_index": product_index, "line_count": len(records)}
            )

        current = records[product_index]
        if current.is_matched and not current.forced:
            raise AlreadyProcessedError(
                "TXN_002",
                {"product_index": product_index, "product_name": current.product_name},
            )

        product = await self.product_repo.get_by_id(catalog_product_id)
        if product is None or not product.active:
            raise NotFoundError("NF_002", {"catalog_product_id": str(catalog_product_id)})

        forced = current.model_copy(
            update={
                "product_id": product.id,
                "product_name": product.name,
                "strategy": "forced",
                "score": 1.0,
                "eligible_amount": current.item.unit_price * current.item.quantity,
                "forced": True,
                "forced_by": actor,
                "forced_note": note,
                "forced_at": utcnow().isoformat(),
            }
        )
        records[product_index] = forced
        match_result = MatchResult.from_records(records)

        rules = await self.settings_service.get_points_rules()
        calculation = calculate_points(
            match_result.eligible_amount,
            rules.ratio,
            rules.min_eligible_amount,
            rules.rounding,
        )
        previous_points = transaction.points_calculated or 0
        delta = calculation.points - previous_points

        transaction.matched_products = [r.to_storage() for r in records]
        transaction.eligible_amount = match_result.eligible_amount.quantize(CENT)
        transaction.points_calculated = calculation.points
        if transaction.status == TransactionStatus.PARTIAL.value and match_result.total_matched:
            transaction.status = TransactionStatus.SUCCESS.value

        logger.info(
            "Line item force-matched",
            extra={
                "transaction_id": str(transaction.id),
                "product_index": product_index,
                "catalog_product_id": str(product.id),
                "points_delta": delta,
            },
        )

        ledger_updated = False
        new_balance = None
        if delta > 0:
            ledger_updated, new_balance = await self._credit_delta(transaction, delta)
            if not ledger_updated:
                # Points stay at the credited value so the delta is still owed
                transaction.points_calculated = previous_points
                transaction.points_awarded = False

        await self.db.commit()

        return ForceMatchResult(
            transaction=transaction,
            record=forced,
            previous_points=previous_points,
            new_points=calculation.points,
            points_delta=delta,
            ledger_updated=ledger_updated,
            new_balance=new_balance,
        )

    async def _credit_delta(self, transaction: Transaction, delta: int) -> tuple[bool, int | None]:
        customer = await self.ledger_sync.get_customer(transaction.customer_email)
        if customer is None or not customer.ledger_identity:
            logger.error(
                "Customer has no ledger identity, force-match points not credited",
                extra={"transaction_id": str(transaction.id)},
            )
            transaction.error_message = "Customer has no ledger identity"
            return False, None

        credit = await self.ledger_sync.credit(customer, delta)
        history = dict(transaction.ledger_response or {})
        history["force_match"] = [*history.get("force_match", []), credit.to_storage()]
        transaction.ledger_response = history

        if not credit.success:
            transaction.error_message = f"Ledger update failed: {credit.write.error}"
            return False, None

        transaction.points_awarded = True
        transaction.error_message = None
        return True, credit.new_total
