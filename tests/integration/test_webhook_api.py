"""Integration tests for the ticket webhook."""

import json

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import Transaction


async def transaction_count(db_session: AsyncSession) -> int:
    return await db_session.scalar(select(func.count()).select_from(Transaction))


class TestReceiveTicket:
    @pytest.mark.asyncio
    async def test_post_ticket_is_recorded_and_enqueued(
        self, client: AsyncClient, db_session, recording_queue, ticket_payload
    ):
        response = await client.post("/api/v1/webhook/tickets", json=ticket_payload("W-1"))

        assert response.status_code == 200
        data = response.json()
        assert data["received"] is True
        assert "duplicate" not in data
        assert [str(i) for i in recording_queue.enqueued] == [data["transactionId"]]
        assert await transaction_count(db_session) == 1

    @pytest.mark.asyncio
    async def test_duplicate_ticket_is_acknowledged_once(
        self, client: AsyncClient, db_session, recording_queue, ticket_payload
    ):
        first = await client.post("/api/v1/webhook/tickets", json=ticket_payload("W-2"))
        second = await client.post("/api/v1/webhook/tickets", json=ticket_payload("W-2"))

        assert second.status_code == 200
        data = second.json()
        assert data["received"] is True
        assert data["duplicate"] is True
        assert data["message"] == "Ticket already processed"
        assert data["transactionId"] == first.json()["transactionId"]
        assert len(recording_queue.enqueued) == 1
        assert await transaction_count(db_session) == 1

    @pytest.mark.asyncio
    async def test_get_with_data_query_param(
        self, client: AsyncClient, recording_queue, ticket_payload
    ):
        response = await client.get(
            "/api/v1/webhook/tickets", params={"data": json.dumps(ticket_payload("W-3"))}
        )

        assert response.status_code == 200
        assert response.json()["received"] is True
        assert len(recording_queue.enqueued) == 1

    @pytest.mark.asyncio
    async def test_v2_ticket(self, client: AsyncClient, db_session, ticket_payload):
        payload = ticket_payload(
            "W-4",
            products=[],
            matched_products=[
                {"raw_text": "OMEGA3", "matched_name": "Omega 3", "unit_price": 15.99, "confidence": 9}
            ],
        )

        response = await client.post("/api/v1/webhook/tickets", json=payload)

        assert response.status_code == 200
        transaction = await db_session.scalar(
            select(Transaction).where(Transaction.ticket_id == "W-4")
        )
        assert transaction.is_v2 is True


class TestRejectedTickets:
    @pytest.mark.asyncio
    async def test_invalid_email(self, client: AsyncClient, recording_queue, ticket_payload):
        payload = ticket_payload("W-10")
        payload["wallet_object"]["email"] = "not-an-email"

        response = await client.post("/api/v1/webhook/tickets", json=payload)

        assert response.status_code == 400
        data = response.json()
        assert data["received"] is False
        assert data["error"] == "Invalid payload"
        assert any(d.startswith("wallet_object.email") for d in data["details"])
        assert recording_queue.enqueued == []

    @pytest.mark.asyncio
    async def test_ticket_without_lines(self, client: AsyncClient, ticket_payload):
        response = await client.post(
            "/api/v1/webhook/tickets", json=ticket_payload("W-11", products=[])
        )

        assert response.status_code == 400
        assert any("at least one product" in d for d in response.json()["details"])

    @pytest.mark.asyncio
    async def test_empty_request(self, client: AsyncClient, db_session):
        response = await client.post("/api/v1/webhook/tickets")

        assert response.status_code == 400
        assert len(response.json()["details"]) >= 2
        assert await transaction_count(db_session) == 0

    @pytest.mark.asyncio
    async def test_malformed_data_param(self, client: AsyncClient):
        response = await client.get("/api/v1/webhook/tickets", params={"data": "{not json"})

        assert response.status_code == 400


@pytest.mark.asyncio
async def test_webhook_info(client: AsyncClient):
    response = await client.get("/api/v1/webhook/tickets/info")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["formats"] == ["legacy", "v2"]
