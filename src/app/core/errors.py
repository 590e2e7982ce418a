"""Error codes and user-friendly messages.

This module defines the error catalog for ticket processing and points
operations. Each error has:
- code: Unique identifier
- message: Technical description (for logs)
- user_message: Operator-facing explanation
- suggestion: Actionable guidance
- retry_allowed: Whether the operation can be retried as-is
"""


ERROR_CATALOG: dict[str, dict] = {
    "VAL_001": {
        "code": "VAL_001",
        "message": "Ticket payload failed structural validation",
        "user_message": "The ticket payload is invalid.",
        "suggestion": "Check the field-level messages and resend the ticket.",
        "retry_allowed": False,
    },
    "VAL_002": {
        "code": "VAL_002",
        "message": "Justification note missing or too short",
        "user_message": "A justification note of at least 3 characters is required.",
        "suggestion": "Explain why this product is being matched manually.",
        "retry_allowed": True,
    },
    "VAL_003": {
        "code": "VAL_003",
        "message": "Invalid points adjustment request",
        "user_message": "The points adjustment is invalid.",
        "suggestion": "Use a non-zero delta and a reason of at least 3 characters.",
        "retry_allowed": True,
    },
    "VAL_004": {
        "code": "VAL_004",
        "message": "Adjustment would drive ledger balance below zero",
        "user_message": "Points cannot be reduced below 0.",
        "suggestion": "Use a smaller negative adjustment.",
        "retry_allowed": False,
    },
    "TKT_001": {
        "code": "TKT_001",
        "message": "Duplicate ticket id received",
        "user_message": "This ticket was already received.",
        "suggestion": "No action needed; the original transaction is referenced.",
        "retry_allowed": False,
    },
    "NF_001": {
        "code": "NF_001",
        "message": "Transaction not found",
        "user_message": "We couldn't find this transaction.",
        "suggestion": "Please check the transaction ID and try again.",
        "retry_allowed": False,
    },
    "NF_002": {
        "code": "NF_002",
        "message": "Catalog product not found",
        "user_message": "We couldn't find this catalog product.",
        "suggestion": "Pick an existing, active product from the catalog.",
        "retry_allowed": False,
    },
    "NF_003": {
        "code": "NF_003",
        "message": "Customer not found",
        "user_message": "We couldn't find this customer.",
        "suggestion": "Check the customer email address.",
        "retry_allowed": False,
    },
    "NF_004": {
        "code": "NF_004",
        "message": "Line item index out of range",
        "user_message": "This ticket line does not exist.",
        "suggestion": "Refresh the transaction and pick a listed line item.",
        "retry_allowed": False,
    },
    "TXN_001": {
        "code": "TXN_001",
        "message": "Transaction already processed",
        "user_message": "This transaction has already been processed.",
        "suggestion": "Use force=true to reprocess it anyway.",
        "retry_allowed": False,
    },
    "TXN_002": {
        "code": "TXN_002",
        "message": "Line item already validated by catalog matching",
        "user_message": "This line item is already matched.",
        "suggestion": "Only unmatched or previously forced lines can be forced.",
        "retry_allowed": False,
    },
    "TXN_003": {
        "code": "TXN_003",
        "message": "Transaction has no match results yet",
        "user_message": "This transaction has not been matched yet.",
        "suggestion": "Wait for processing to finish or reprocess the transaction.",
        "retry_allowed": True,
    },
    "LEDGER_001": {
        "code": "LEDGER_001",
        "message": "Ledger balance update failed after retries",
        "user_message": "We couldn't update the points balance.",
        "suggestion": "Please try again in a few moments.",
        "retry_allowed": True,
    },
    "LEDGER_002": {
        "code": "LEDGER_002",
        "message": "Customer has no ledger identity",
        "user_message": "This customer is not linked to a loyalty card.",
        "suggestion": "Link the customer's card before adjusting points.",
        "retry_allowed": False,
    },
    "LEDGER_003": {
        "code": "LEDGER_003",
        "message": "Ledger or notification service not configured",
        "user_message": "The points service is not configured.",
        "suggestion": "Contact the administrator.",
        "retry_allowed": False,
    },
    "SYS_001": {
        "code": "SYS_001",
        "message": "Internal error",
        "user_message": "An unexpected error occurred.",
        "suggestion": "Please try again later or contact support.",
        "retry_allowed": True,
    },
}


def get_error(error_code: str) -> dict:
    """Get error definition by code.

    Unknown codes resolve to a generic definition instead of raising.
    """
    if error_code not in ERROR_CATALOG:
        return {
            "code": "UNKNOWN",
            "message": f"Unknown error code: {error_code}",
            "user_message": "An unexpected error occurred.",
            "suggestion": "Please try again. Contact support if the problem persists.",
            "retry_allowed": True,
        }
    return ERROR_CATALOG[error_code]

