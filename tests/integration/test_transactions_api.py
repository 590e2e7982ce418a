"""Integration tests for transaction API endpoints."""

from uuid import uuid4

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.transaction import Transaction
from app.repositories.transaction import TransactionRepository


@pytest.fixture
async def pending_transaction(
    client: AsyncClient, db_session: AsyncSession, catalog, linked_customer, ticket_payload
) -> Transaction:
    """Ticket received through the webhook, not processed yet."""
    payload = ticket_payload(
        "API-1",
        products=[
            {"name": "Omega 3", "quantity": 2, "price": 15.99},
            {"name": "SAC MYSTERE", "quantity": 1, "price": 9.90},
        ],
        total_amount=41.88,
    )
    response = await client.post("/api/v1/webhook/tickets", json=payload)
    assert response.status_code == 200
    return await TransactionRepository(db_session).get_by_ticket_id("API-1")


class TestGetTransaction:
    """Test GET /api/v1/transactions/{id}."""

    @pytest.mark.asyncio
    async def test_get_transaction(self, client: AsyncClient, pending_transaction):
        response = await client.get(f"/api/v1/transactions/{pending_transaction.id}")

        assert response.status_code == 200
        data = response.json()
        assert data["id"] == str(pending_transaction.id)
        assert data["ticketId"] == "API-1"
        assert data["status"] == "PENDING"
        assert data["matchedProducts"] is None
        assert len(data["ticketProducts"]) == 2

    @pytest.mark.asyncio
    async def test_get_unknown_transaction(self, client: AsyncClient):
        response = await client.get(f"/api/v1/transactions/{uuid4()}")

        assert response.status_code == 404
        assert response.json()["error_code"] == "NF_001"

    @pytest.mark.asyncio
    async def test_get_invalid_id(self, client: AsyncClient):
        response = await client.get("/api/v1/transactions/not-a-uuid")

        assert response.status_code == 400
        assert response.json()["error_code"] == "VAL_001"


class TestReprocess:
    """Test POST /api/v1/transactions/{id}/reprocess."""

    @pytest.mark.asyncio
    async def test_requires_operator(self, client: AsyncClient, pending_transaction):
        response = await client.post(f"/api/v1/transactions/{pending_transaction.id}/reprocess")

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_processes_pending_transaction(
        self, client: AsyncClient, pending_transaction, operator_headers, fake_ledger
    ):
        response = await client.post(
            f"/api/v1/transactions/{pending_transaction.id}/reprocess", headers=operator_headers
        )

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["status"] == "SUCCESS"
        assert data["matchedProducts"] == 1
        assert data["unmatchedProducts"] == 1
        assert data["pointsCalculated"] == 31
        assert data["pointsAwarded"] is True
        assert fake_ledger.balances["card-42"] == 31

    @pytest.mark.asyncio
    async def test_completed_transaction_needs_force(
        self, client: AsyncClient, pending_transaction, operator_headers
    ):
        url = f"/api/v1/transactions/{pending_transaction.id}/reprocess"
        await client.post(url, headers=operator_headers)

        rejected = await client.post(url, headers=operator_headers)
        forced = await client.post(url, headers=operator_headers, json={"force": True})

        assert rejected.status_code == 409
        assert rejected.json()["error_code"] == "TXN_001"
        assert forced.status_code == 200
        assert forced.json()["status"] == "SUCCESS"

    @pytest.mark.asyncio
    async def test_unknown_transaction(self, client: AsyncClient, operator_headers):
        response = await client.post(
            f"/api/v1/transactions/{uuid4()}/reprocess", headers=operator_headers
        )

        assert response.status_code == 404


class TestForceMatch:
    """Test POST /api/v1/transactions/{id}/force-match."""

    @pytest.mark.asyncio
    async def test_force_match_unmatched_line(
        self, client: AsyncClient, pending_transaction, catalog, operator_headers, fake_ledger
    ):
        await client.post(
            f"/api/v1/transactions/{pending_transaction.id}/reprocess", headers=operator_headers
        )

        response = await client.post(
            f"/api/v1/transactions/{pending_transaction.id}/force-match",
            headers=operator_headers,
            json={
                "productIndex": 1,
                "catalogProductId": str(catalog["Magnesium Marin"].id),
                "note": "Checked against the paper receipt",
            },
        )

        assert response.status_code == 200
        data = response.json()
        assert data["productName"] == "Magnesium Marin"
        assert data["previousPoints"] == 31
        assert data["newPoints"] == 41
        assert data["pointsDelta"] == 10
        assert data["ledgerUpdated"] is True
        assert data["newBalance"] == 41
        assert data["eligibleAmount"] == "41.88"
        assert fake_ledger.balances["card-42"] == 41

    @pytest.mark.asyncio
    async def test_force_match_before_processing(
        self, client: AsyncClient, pending_transaction, catalog, operator_headers
    ):
        response = await client.post(
            f"/api/v1/transactions/{pending_transaction.id}/force-match",
            headers=operator_headers,
            json={
                "productIndex": 0,
                "catalogProductId": str(catalog["Omega 3"].id),
                "note": "Checked against the paper receipt",
            },
        )

        assert response.status_code == 409
        assert response.json()["error_code"] == "TXN_003"

    @pytest.mark.asyncio
    async def test_blank_note_is_rejected(
        self, client: AsyncClient, pending_transaction, catalog, operator_headers
    ):
        response = await client.post(
            f"/api/v1/transactions/{pending_transaction.id}/force-match",
            headers=operator_headers,
            json={
                "productIndex": 1,
                "catalogProductId": str(catalog["Omega 3"].id),
                "note": "     ",
            },
        )

        assert response.status_code == 400
        assert response.json()["error_code"] == "VAL_001"
