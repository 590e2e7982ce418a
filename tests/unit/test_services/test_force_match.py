"""Tests for operator force-match of unmatched ticket lines."""

from uuid import uuid4

import pytest

from app.core.exceptions import AlreadyProcessedError, LoyaltyError, NotFoundError, ValidationError
from app.models import TransactionStatus
from app.schemas.webhook import WebhookPayload
from app.services.force_match import ForceMatchService
from app.services.ingestion import IngestionService
from app.services.processing import TransactionProcessor

OPERATOR = "operator@example.com"
NOTE = "Product verified on the paper receipt"


@pytest.fixture
async def processed_transaction(db_session, catalog, linked_customer, ledger_client, ticket_payload):
    """Omega 3 x2 matched (31 points), one unknown line at 9.90."""
    payload = ticket_payload(
        "T-400",
        products=[
            {"name": "Omega 3", "quantity": 2, "price": 15.99},
            {"name": "SAC MYSTERE", "quantity": 1, "price": 9.90},
        ],
        total_amount=41.88,
    )
    transaction = await IngestionService(db_session).ingest(WebhookPayload.model_validate(payload))
    await TransactionProcessor(db_session, ledger_client).process(transaction.id)
    await db_session.refresh(transaction)
    return transaction


class TestForceMatch:
    @pytest.mark.asyncio
    async def test_force_match_credits_point_difference(
        self, db_session, processed_transaction, catalog, ledger_client, fake_ledger
    ):
        assert processed_transaction.points_calculated == 31
        assert fake_ledger.balances["card-42"] == 31

        result = await ForceMatchService(db_session, ledger_client).force_match(
            processed_transaction.id, 1, catalog["Magnesium Marin"].id, NOTE, OPERATOR
        )

        assert result.previous_points == 31
        assert result.new_points == 41
        assert result.points_delta == 10
        assert result.ledger_updated is True
        assert result.new_balance == 41
        assert fake_ledger.balances["card-42"] == 41

        record = result.record
        assert record.forced is True
        assert record.strategy == "forced"
        assert record.forced_by == OPERATOR
        assert record.forced_note == NOTE
        assert record.product_name == "Magnesium Marin"

        await db_session.refresh(processed_transaction)
        stored = processed_transaction.matched_products[1]
        assert stored["forced"] is True
        assert stored["matched"] is True
        assert str(processed_transaction.eligible_amount) == "41.88"
        assert len(processed_transaction.ledger_response["force_match"]) == 1

    @pytest.mark.asyncio
    async def test_forced_line_can_be_forced_again(
        self, db_session, processed_transaction, catalog, ledger_client, fake_ledger
    ):
        service = ForceMatchService(db_session, ledger_client)
        await service.force_match(
            processed_transaction.id, 1, catalog["Magnesium Marin"].id, NOTE, OPERATOR
        )

        result = await service.force_match(
            processed_transaction.id, 1, catalog["Vitamine D3"].id, NOTE, OPERATOR
        )

        assert result.record.product_name == "Vitamine D3"
        assert result.points_delta == 0
        assert result.ledger_updated is False
        assert fake_ledger.balances["card-42"] == 41

    @pytest.mark.asyncio
    async def test_failed_credit_stays_owed(
        self, db_session, processed_transaction, catalog, ledger_client, fake_ledger
    ):
        """When the ledger write fails, forcing again after recovery credits the delta."""
        transaction_id = processed_transaction.id
        service = ForceMatchService(db_session, ledger_client)
        fake_ledger.write_failures = 10

        failed = await service.force_match(
            transaction_id, 1, catalog["Magnesium Marin"].id, NOTE, OPERATOR
        )

        assert failed.points_delta == 10
        assert failed.ledger_updated is False
        assert fake_ledger.balances["card-42"] == 31
        await db_session.refresh(processed_transaction)
        assert processed_transaction.points_calculated == 31
        assert processed_transaction.points_awarded is False
        assert processed_transaction.error_message.startswith("Ledger update failed")

        fake_ledger.write_failures = 0
        retried = await service.force_match(
            transaction_id, 1, catalog["Magnesium Marin"].id, NOTE, OPERATOR
        )

        assert retried.points_delta == 10
        assert retried.ledger_updated is True
        assert retried.new_balance == 41
        assert fake_ledger.balances["card-42"] == 41
        await db_session.refresh(processed_transaction)
        assert processed_transaction.points_calculated == 41
        assert processed_transaction.points_awarded is True

    @pytest.mark.asyncio
    async def test_partial_becomes_success(
        self, db_session, catalog, linked_customer, ledger_client, fake_ledger, ticket_payload
    ):
        payload = ticket_payload(
            "T-401",
            products=[{"name": "SAC MYSTERE", "quantity": 1, "price": 9.90}],
            total_amount=9.90,
        )
        transaction = await IngestionService(db_session).ingest(
            WebhookPayload.model_validate(payload)
        )
        await TransactionProcessor(db_session, ledger_client).process(transaction.id)
        await db_session.refresh(transaction)
        assert transaction.status == TransactionStatus.PARTIAL.value

        result = await ForceMatchService(db_session, ledger_client).force_match(
            transaction.id, 0, catalog["Magnesium Marin"].id, NOTE, OPERATOR
        )

        assert result.transaction.status == TransactionStatus.SUCCESS.value
        assert result.new_points == 9
        assert fake_ledger.balances["card-42"] == 9


class TestForceMatchGuards:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("note", ["", "  ok ", "x" * 501])
    async def test_note_length(self, db_session, processed_transaction, catalog, ledger_client, note):
        with pytest.raises(ValidationError) as exc_info:
            await ForceMatchService(db_session, ledger_client).force_match(
                processed_transaction.id, 1, catalog["Magnesium Marin"].id, note, OPERATOR
            )

        assert exc_info.value.error_code == "VAL_002"

    @pytest.mark.asyncio
    async def test_unknown_transaction(self, db_session, ledger_client):
        with pytest.raises(NotFoundError) as exc_info:
            await ForceMatchService(db_session, ledger_client).force_match(
                uuid4(), 0, uuid4(), NOTE, OPERATOR
            )

        assert exc_info.value.error_code == "NF_001"

    @pytest.mark.asyncio
    async def test_unprocessed_transaction(
        self, db_session, catalog, ledger_client, ticket_payload
    ):
        transaction = await IngestionService(db_session).ingest(
            WebhookPayload.model_validate(ticket_payload("T-402"))
        )

        with pytest.raises(LoyaltyError) as exc_info:
            await ForceMatchService(db_session, ledger_client).force_match(
                transaction.id, 0, catalog["Omega 3"].id, NOTE, OPERATOR
            )

        assert exc_info.value.error_code == "TXN_003"
        assert exc_info.value.http_status == 409

    @pytest.mark.asyncio
    async def test_index_out_of_range(self, db_session, processed_transaction, catalog, ledger_client):
        with pytest.raises(NotFoundError) as exc_info:
            await ForceMatchService(db_session, ledger_client).force_match(
                processed_transaction.id, 5, catalog["Omega 3"].id, NOTE, OPERATOR
            )

        assert exc_info.value.error_code == "NF_004"

    @pytest.mark.asyncio
    async def test_already_matched_line(self, db_session, processed_transaction, catalog, ledger_client):
        with pytest.raises(AlreadyProcessedError) as exc_info:
            await ForceMatchService(db_session, ledger_client).force_match(
                processed_transaction.id, 0, catalog["Vitamine D3"].id, NOTE, OPERATOR
            )

        assert exc_info.value.error_code == "TXN_002"

    @pytest.mark.asyncio
    async def test_inactive_product(self, db_session, processed_transaction, catalog, ledger_client):
        with pytest.raises(NotFoundError) as exc_info:
            await ForceMatchService(db_session, ledger_client).force_match(
                processed_transaction.id, 1, catalog["Ancien Produit"].id, NOTE, OPERATOR
            )

        assert exc_info.value.error_code == "NF_002"
