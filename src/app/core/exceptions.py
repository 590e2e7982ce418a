"""Custom exception classes for ticket processing.

This module defines the exception hierarchy used by ingestion, the
processing pipeline and the operator endpoints. Each exception maps to a
specific error code defined in errors.py.
"""

from typing import Any


class LoyaltyError(Exception):
    """Base exception for all loyalty service errors.

    Attributes:
        error_code: Code from the error catalog (e.g., "NF_001")
        details: Additional context about the error (for logging)
        http_status: HTTP status code to return (default: 500)
    """

    http_status_default = 500

    def __init__(
        self,
        error_code: str,
        details: dict[str, Any] | None = None,
        http_status: int | None = None,
    ):
        self.error_code = error_code
        self.details = details or {}
        self.http_status = http_status or self.http_status_default
        super().__init__(error_code)


class ValidationError(LoyaltyError):
    """Raised when user-correctable input is malformed.

    This includes:
    - Webhook payloads failing structural validation (VAL_001)
    - Missing or short justification notes (VAL_002)
    - Invalid adjustment deltas/reasons (VAL_003)
    - Adjustments that would make a balance negative (VAL_004)
    """

    http_status_default = 400


class DuplicateTicketError(LoyaltyError):
    """Raised when a ticket id was already ingested.

    Not a failure: the webhook answers it as an idempotent no-op that
    references the original transaction.
    """

    http_status_default = 200

    def __init__(self, transaction_id: Any, ticket_id: str):
        super().__init__(
            "TKT_001",
            {"transaction_id": str(transaction_id), "ticket_id": ticket_id},
        )
        self.transaction_id = transaction_id
        self.ticket_id = ticket_id


class NotFoundError(LoyaltyError):
    """Raised when a transaction, product, customer or line item is missing."""

    http_status_default = 404


class AlreadyProcessedError(LoyaltyError):
    """Raised by state guards; overridable with an explicit force flag."""

    http_status_default = 409


class ExternalServiceError(LoyaltyError):
    """Raised when the ledger or notification service fails.

    Callers retry locally with bounded backoff, then degrade: a failed read
    assumes a zero balance, a failed write is recorded on the transaction.
    """

    http_status_default = 502


class InternalError(LoyaltyError):
    """Unexpected failure caught at the orchestrator boundary."""

    http_status_default = 500
