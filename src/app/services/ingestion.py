"""Ticket ingestion service.

Creates the transaction for an incoming ticket, synchronously and exactly
once per ticket id. Processing happens later, out of band.
"""

import logging
from decimal import Decimal

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import DuplicateTicketError
from app.models.transaction import Transaction, TransactionStatus
from app.repositories.customer import CustomerRepository
from app.repositories.transaction import TransactionRepository
from app.schemas.webhook import WebhookPayload

logger = logging.getLogger(__name__)


class IngestionService:
    """Deduplicates tickets and records new transactions."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.transaction_repo = TransactionRepository(db)
        self.customer_repo = CustomerRepository(db)

    async def ingest(self, payload: WebhookPayload) -> Transaction:
        """Record a new ticket as a PENDING transaction.

        The customer row is created or refreshed from the wallet data in
        the same unit of work.

        Args:
            payload: Validated webhook payload

        Returns:
            The newly created transaction

        Raises:
            DuplicateTicketError: If the ticket id was already ingested
        """
        wallet = payload.wallet_object
        ticket = payload.ticket_data
        ticket_id = ticket.ticket_id

        existing = await self.transaction_repo.get_by_ticket_id(ticket_id)
        if existing is not None:
            logger.warning(
                "Duplicate ticket received",
                extra={"ticket_id": ticket_id, "transaction_id": str(existing.id)},
            )
            raise DuplicateTicketError(existing.id, ticket_id)

        email = str(wallet.email).strip().lower()
        customer_name = " ".join(n for n in (wallet.first_name, wallet.last_name) if n) or None
        nft_id = None
        if payload.nft_object is not None and payload.nft_object.id not in (None, ""):
            nft_id = str(payload.nft_object.id)

        transaction = Transaction(
            ticket_id=ticket_id,
            customer_email=email,
            customer_name=customer_name,
            customer_phone=wallet.phone or None,
            total_amount=Decimal(str(ticket.total_amount)),
            currency=ticket.currency or "EUR",
            ticket_products=[p.model_dump(mode="json") for p in ticket.products],
            ticket_products_v2=(
                [p.model_dump(mode="json") for p in ticket.matched_products]
                if ticket.matched_products is not None
                else None
            ),
            ticket_image_base64=payload.ticket_image.base64 if payload.ticket_image else None,
            status=TransactionStatus.PENDING.value,
        )

        try:
            await self.customer_repo.upsert_from_ticket(
                email=email,
                first_name=wallet.first_name,
                last_name=wallet.last_name,
                phone=wallet.phone,
                nft_id=nft_id,
            )
            await self.transaction_repo.add(transaction)
            await self.db.commit()
        except IntegrityError:
            # Lost a race against a concurrent delivery of the same ticket.
            await self.db.rollback()
            existing = await self.transaction_repo.get_by_ticket_id(ticket_id)
            if existing is None:
                raise
            logger.warning(
                "Duplicate ticket detected on insert",
                extra={"ticket_id": ticket_id, "transaction_id": str(existing.id)},
            )
            raise DuplicateTicketError(existing.id, ticket_id)

        await self.db.refresh(transaction)

        logger.info(
            "Transaction created",
            extra={
                "transaction_id": str(transaction.id),
                "ticket_id": ticket_id,
                "format": "v2" if transaction.is_v2 else "legacy",
                "line_count": len(ticket.matched_products or ticket.products),
                "has_image": transaction.ticket_image_base64 is not None,
            },
        )
        return transaction
