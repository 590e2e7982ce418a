import json
import os
from pathlib import Path
from uuid import UUID

import httpx
import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.api.deps import get_ledger_client, get_processing_queue
from app.core.retry import RetryPolicy
from app.db.session import get_db
from app.ledger.client import LedgerClient, NotificationConfig
from app.main import app

ENV_TEST_PATH = Path(__file__).parents[1] / ".env.test"


def _load_env_file(path: Path) -> None:
    if not path.exists():
        return
    for line in path.read_text().splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        os.environ.setdefault(key, value)


_load_env_file(ENV_TEST_PATH)

TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL", "sqlite+aiosqlite:///:memory:")

if TEST_DATABASE_URL.startswith("sqlite"):
    # One shared connection so every session sees the same in-memory database
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
else:
    test_engine = create_async_engine(TEST_DATABASE_URL, echo=False)

TestSessionLocal = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)

OPERATOR_HEADERS = {"X-Operator-Email": "operator@example.com"}


@pytest.fixture(scope="function")
async def setup_database():
    """Create tables for tests that need the database, and drop them after.

    Not autouse so pure unit tests (normalizer, matcher, calculator) run
    without touching a database.
    """
    from app.models.base import BaseModel

    async with test_engine.begin() as conn:
        await conn.run_sync(BaseModel.metadata.create_all)

    yield

    async with test_engine.begin() as conn:
        await conn.run_sync(BaseModel.metadata.drop_all)


@pytest.fixture
async def db_session(setup_database):
    """Provide test database session with fresh connection per test."""
    async with TestSessionLocal() as session:
        yield session
        await session.rollback()


class FakeLedger:
    """In-memory stand-in for the ledger and notification HTTP APIs."""

    def __init__(self):
        self.balances: dict[str, int] = {}
        self.write_failures = 0
        self.read_failures = 0
        self.reads = 0
        self.notify_failures = 0
        self.writes: list[tuple[str, int]] = []
        self.refreshes: list[str] = []
        self.notifications: list[tuple[str, str]] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path

        if request.method == "GET" and path == "/nft":
            nft_id = request.url.params.get("nft_id")
            if request.url.params.get("refresh") == "1":
                self.refreshes.append(nft_id)
                return httpx.Response(200, json={"status": True})
            self.reads += 1
            if self.read_failures:
                self.read_failures -= 1
                return httpx.Response(503, json={"error": "unavailable"})
            points = self.balances.get(nft_id)
            attributes = [] if points is None else [{"trait_type": "points", "value": str(points)}]
            return httpx.Response(
                200,
                json={"status": True, "data": {"ipfs_object": {"attributes": attributes}}},
            )

        if request.method == "POST" and path == "/nft/attribute":
            if self.write_failures:
                self.write_failures -= 1
                return httpx.Response(500, json={"error": "ledger down"})
            body = json.loads(request.content)
            total = int(body["attribute_value"])
            self.balances[body["nft_id"]] = total
            self.writes.append((body["nft_id"], total))
            return httpx.Response(200, json={"status": True})

        if request.method == "POST" and path == "/webhook-snapss":
            if self.notify_failures:
                self.notify_failures -= 1
                return httpx.Response(502, text="bad gateway")
            body = json.loads(request.content)
            self.notifications.append((body["email"], request.url.params.get("notification")))
            return httpx.Response(200, json={"sent": True})

        return httpx.Response(404)


async def _no_sleep(seconds: float) -> None:
    return None


@pytest.fixture
def fake_ledger() -> FakeLedger:
    return FakeLedger()


@pytest.fixture
async def ledger_client(fake_ledger: FakeLedger):
    client = LedgerClient(
        api_url="https://ledger.test",
        read_url="https://read.test",
        api_key="key",
        api_pass="pass",
        collection_address="0xcollection",
        chain_id="137",
        notification=NotificationConfig(
            host="https://notify.test",
            api_key="k",
            api_pass="p",
            api_key_dn="kdn",
            api_pass_dn="pdn",
            template_id="tpl",
            collection_index="1",
        ),
        policy=RetryPolicy(max_attempts=4, base_delay=0, max_delay=0),
        transport=httpx.MockTransport(fake_ledger.handler),
        sleep=_no_sleep,
    )
    yield client
    await client.aclose()


class RecordingQueue:
    """Processing queue double that only records enqueued ids."""

    def __init__(self):
        self.enqueued: list[UUID] = []
        self.is_running = True

    async def enqueue(self, transaction_id: UUID) -> None:
        self.enqueued.append(transaction_id)


@pytest.fixture
def recording_queue() -> RecordingQueue:
    return RecordingQueue()


@pytest.fixture
async def client(db_session: AsyncSession, ledger_client: LedgerClient, recording_queue):
    """Provide test client with database, ledger and queue overrides."""
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_ledger_client] = lambda: ledger_client
    app.dependency_overrides[get_processing_queue] = lambda: recording_queue

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
async def catalog(db_session: AsyncSession):
    """Active catalog used by the pipeline tests, plus one inactive product."""
    from app.models.product import Product

    products = [
        Product(name="Omega 3", sku="OM3"),
        Product(name="Vitamine D3", sku="VD3"),
        Product(name="Rhodiola 60 gelules", sku="RHO60", aliases=["rhodio"]),
        Product(name="Magnesium Marin", sku="MGM"),
        Product(name="Ancien Produit", sku="OLD", active=False),
    ]
    db_session.add_all(products)
    await db_session.commit()
    return {p.name: p for p in products}


@pytest.fixture
async def linked_customer(db_session: AsyncSession):
    """Customer with a ledger card."""
    from app.models.customer import Customer

    customer = Customer(email="jane@example.com", token_id="card-42", current_points=0)
    db_session.add(customer)
    await db_session.commit()
    return customer


def make_payload(ticket_id: str = "T-1", products=None, matched_products=None, **ticket_fields):
    """Webhook payload in the legacy format (v2 when matched_products is given)."""
    ticket_data = {
        "ticket_id": ticket_id,
        "total_amount": ticket_fields.pop("total_amount", 44.48),
        "currency": "EUR",
        "products": products
        if products is not None
        else [
            {"name": "Omega 3", "quantity": 2, "price": 15.99},
            {"name": "Vitamine D3", "quantity": 1, "price": 12.50},
        ],
        **ticket_fields,
    }
    if matched_products is not None:
        ticket_data["matched_products"] = matched_products
    return {
        "wallet_object": {
            "email": "Jane@Example.com",
            "first_name": "Jane",
            "last_name": "Doe",
            "phone": "+33 6 12 34 56 78",
        },
        "ticket_data": ticket_data,
        "nft_object": {"id": 42},
    }


@pytest.fixture
def ticket_payload():
    """Factory for webhook payloads, see ``make_payload``."""
    return make_payload


@pytest.fixture
def operator_headers() -> dict[str, str]:
    return dict(OPERATOR_HEADERS)
