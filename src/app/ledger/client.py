"""Points ledger HTTP client.

The ledger is the authoritative store of every customer's points balance.
Three calls are used:

- read: ``GET {read_url}/nft`` returns the card metadata; the balance is the
  ``points`` attribute. A read that still fails after the retries reads as
  0 so the pipeline never blocks.
- write: ``POST {api_url}/nft/attribute`` overwrites the balance. Callers
  always send the full new total, never an increment.
- notify: ``POST {notification_host}/webhook-snapss`` pushes a message to
  the customer's wallet.

Reads, writes and notifications go through ``retry_with_backoff``.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable

import httpx

from app.config import settings
from app.core.exceptions import ExternalServiceError
from app.core.retry import RetryError, RetryPolicy, retry_with_backoff
from app.models.base import utcnow

logger = logging.getLogger(__name__)

POINTS_ATTRIBUTE = "points"


@dataclass
class LedgerResult:
    """Outcome of a retried ledger write or notification."""

    success: bool
    response: Any = None
    error: str | None = None
    attempts: int = 0
    sent_at: datetime = field(default_factory=utcnow)

    def to_storage(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "response": self.response,
            "error": self.error,
            "attempts": self.attempts,
            "sent_at": self.sent_at.isoformat(),
        }


@dataclass(frozen=True)
class NotificationConfig:
    host: str = ""
    api_key: str = ""
    api_pass: str = ""
    api_key_dn: str = ""
    api_pass_dn: str = ""
    template_id: str = ""
    collection_index: str = ""

    @property
    def is_configured(self) -> bool:
        return all(
            (
                self.host,
                self.api_key,
                self.api_pass,
                self.api_key_dn,
                self.api_pass_dn,
                self.template_id,
                self.collection_index,
            )
        )


def _response_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


class LedgerClient:
    """Async client for the points ledger and wallet notifications.

    Args:
        api_url: Base URL for balance writes
        read_url: Base URL for card metadata reads
        api_key: Write credential
        api_pass: Write credential
        collection_address: Card collection on the chain
        chain_id: Chain identifier
        notification: Wallet notification credentials
        timeout: Per-call timeout in seconds
        refresh_delay: Pause between a write and the card refresh
        policy: Retry policy for reads, writes and notifications
        transport: Optional httpx transport (tests use ``httpx.MockTransport``)
        sleep: Awaitable sleep, injectable for tests
    """

    def __init__(
        self,
        *,
        api_url: str,
        read_url: str,
        api_key: str = "",
        api_pass: str = "",
        collection_address: str = "",
        chain_id: str = "137",
        notification: NotificationConfig | None = None,
        timeout: float = 10.0,
        refresh_delay: float = 0.5,
        policy: RetryPolicy | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.api_url = api_url.rstrip("/")
        self.read_url = read_url.rstrip("/")
        self.api_key = api_key
        self.api_pass = api_pass
        self.collection_address = collection_address
        self.chain_id = chain_id
        self.notification = notification or NotificationConfig()
        self.refresh_delay = refresh_delay
        self.policy = policy or RetryPolicy()
        self._sleep = sleep
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    @classmethod
    def from_settings(cls, transport: httpx.AsyncBaseTransport | None = None) -> "LedgerClient":
        return cls(
            api_url=settings.ledger_api_url,
            read_url=settings.ledger_read_url,
            api_key=settings.ledger_api_key,
            api_pass=settings.ledger_api_pass,
            collection_address=settings.ledger_collection_address,
            chain_id=settings.ledger_chain_id,
            notification=NotificationConfig(
                host=settings.notification_host,
                api_key=settings.notification_api_key,
                api_pass=settings.notification_api_pass,
                api_key_dn=settings.notification_api_key_dn,
                api_pass_dn=settings.notification_api_pass_dn,
                template_id=settings.notification_template_id,
                collection_index=settings.notification_collection_index,
            ),
            timeout=settings.ledger_timeout_seconds,
            refresh_delay=settings.ledger_refresh_delay_seconds,
            policy=RetryPolicy.from_settings(),
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    @property
    def is_write_configured(self) -> bool:
        return bool(self.api_url and self.api_key and self.api_pass)

    @property
    def is_read_configured(self) -> bool:
        return bool(self.read_url and self.collection_address and self.chain_id)

    def _card_params(self, identity: str) -> dict[str, str]:
        return {
            "nft_id": identity,
            "chain_id": self.chain_id,
            "collection_address": self.collection_address,
        }

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    async def fetch_balance(self, identity: str) -> int:
        """Current balance for a card.

        The read is retried like writes are. Returns 0 only once every
        attempt failed, or when the ledger has no points attribute.
        """
        if not self.is_read_configured:
            logger.warning("Ledger read not configured, assuming zero balance")
            return 0

        async def read() -> httpx.Response:
            response = await self._client.get(
                f"{self.read_url}/nft", params=self._card_params(identity)
            )
            response.raise_for_status()
            return response

        try:
            response = await retry_with_backoff(
                read,
                self.policy,
                description="Ledger balance read",
                retry_on=(httpx.HTTPError,),
                sleep=self._sleep,
            )
        except RetryError as e:
            logger.error(
                "Failed to fetch ledger balance",
                extra={
                    "identity": identity,
                    "attempts": e.attempts,
                    "error_type": type(e.last_error).__name__,
                },
            )
            return 0

        try:
            payload = response.json()
        except ValueError:
            logger.error("Unreadable ledger balance response", extra={"identity": identity})
            return 0

        attributes = None
        if isinstance(payload, dict):
            data = payload.get("data") or {}
            ipfs_object = data.get("ipfs_object") or {} if isinstance(data, dict) else {}
            attributes = ipfs_object.get("attributes") if isinstance(ipfs_object, dict) else None
        if not isinstance(attributes, list):
            logger.info("No attributes in ledger response", extra={"identity": identity})
            return 0

        for attribute in attributes:
            if isinstance(attribute, dict) and attribute.get("trait_type") == POINTS_ATTRIBUTE:
                try:
                    return int(str(attribute.get("value", "0")).strip() or 0)
                except ValueError:
                    return 0
        return 0

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    async def set_balance(self, identity: str, total: int) -> Any:
        """Overwrite the card balance with ``total``.

        Raises:
            ExternalServiceError: LEDGER_003 when not configured, LEDGER_001
                when the call fails
        """
        if not self.is_write_configured:
            raise ExternalServiceError("LEDGER_003", {"operation": "set_balance"})

        try:
            response = await self._client.post(
                f"{self.api_url}/nft/attribute",
                json={
                    "nft_id": identity,
                    "attribute_name": POINTS_ATTRIBUTE,
                    "attribute_value": str(total),
                },
                headers={"api_key": self.api_key, "api_pass": self.api_pass},
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise ExternalServiceError(
                "LEDGER_001",
                {
                    "status_code": e.response.status_code,
                    "error": str(_response_body(e.response))[:500],
                },
            ) from e
        except httpx.HTTPError as e:
            raise ExternalServiceError(
                "LEDGER_001", {"error": f"{type(e).__name__}: {e}"}
            ) from e

        logger.info("Ledger balance updated", extra={"identity": identity, "total": total})
        return _response_body(response)

    async def refresh_card(self, identity: str) -> None:
        """Ask the ledger to refresh the card metadata. Best effort."""
        if not self.is_read_configured:
            return
        params = {**self._card_params(identity), "refresh": "1"}
        try:
            response = await self._client.get(f"{self.read_url}/nft", params=params)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning(
                "Card refresh failed (non-blocking)",
                extra={"identity": identity, "error_type": type(e).__name__},
            )

    async def set_balance_with_retry(self, identity: str, total: int) -> LedgerResult:
        """Overwrite the balance with retries, then refresh the card.

        Never raises: failures are reported in the returned ``LedgerResult``.
        """
        if not self.is_write_configured:
            logger.warning("Ledger write not configured, skipping balance update")
            return LedgerResult(success=False, error="Ledger API not configured")

        attempts = 0

        async def attempt() -> Any:
            nonlocal attempts
            attempts += 1
            return await self.set_balance(identity, total)

        try:
            response = await retry_with_backoff(
                attempt,
                self.policy,
                description="Ledger balance update",
                retry_on=(ExternalServiceError,),
                sleep=self._sleep,
            )
        except RetryError as e:
            return LedgerResult(success=False, error=str(e), attempts=attempts)

        await self._sleep(self.refresh_delay)
        await self.refresh_card(identity)
        return LedgerResult(success=True, response=response, attempts=attempts)

    # ------------------------------------------------------------------
    # Notification
    # ------------------------------------------------------------------

    async def notify(self, email: str, message: str) -> Any:
        """Push ``message`` to the customer's wallet.

        Raises:
            ExternalServiceError: When not configured or the call fails
        """
        config = self.notification
        if not config.is_configured:
            raise ExternalServiceError("LEDGER_003", {"operation": "notify"})

        params = {
            "api_key": config.api_key,
            "api_pass": config.api_pass,
            "api_key_dn": config.api_key_dn,
            "api_pass_dn": config.api_pass_dn,
            "template_id": config.template_id,
            "collection_index": config.collection_index,
            "crm": "custom",
            "action": "send_notification",
            "notification": message,
        }
        try:
            response = await self._client.post(
                f"{config.host.rstrip('/')}/webhook-snapss",
                params=params,
                json={"email": email},
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise ExternalServiceError(
                "LEDGER_001", {"operation": "notify", "error": type(e).__name__}
            ) from e

        return _response_body(response)

    async def notify_with_retry(self, email: str, message: str) -> LedgerResult:
        """Send a notification with retries. Never raises."""
        if not self.notification.is_configured:
            logger.warning("Notification not configured, skipping")
            return LedgerResult(success=False, error="Notification not configured")

        attempts = 0

        async def attempt() -> Any:
            nonlocal attempts
            attempts += 1
            return await self.notify(email, message)

        try:
            response = await retry_with_backoff(
                attempt,
                self.policy,
                description="Wallet notification",
                retry_on=(ExternalServiceError,),
                sleep=self._sleep,
            )
        except RetryError as e:
            return LedgerResult(success=False, error=str(e), attempts=attempts)

        return LedgerResult(success=True, response=response, attempts=attempts)
