"""Ticket webhook endpoints.

The OCR provider delivers tickets either as a POST JSON body or as a GET
with the payload JSON-encoded in a ``data`` query parameter. The handler
only validates, deduplicates and records the ticket; processing runs on
the processing queue.
"""

import json
import logging
import time
from typing import Any

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError

from app.api.deps import get_ingestion_service, get_processing_queue
from app.core.exceptions import DuplicateTicketError
from app.schemas.webhook import WebhookAck, WebhookPayload, WebhookRejection
from app.services.ingestion import IngestionService
from app.workers.queue import ProcessingQueue

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhook", tags=["webhook"])


async def _extract_payload(request: Request) -> Any:
    """Body for POST; otherwise the ``data`` query param or the raw query params."""
    payload: Any = None
    body = await request.body()
    if body:
        try:
            payload = json.loads(body)
        except ValueError:
            logger.warning("Webhook body is not valid JSON")

    if payload:
        return payload

    data = request.query_params.get("data")
    if data is not None:
        try:
            return json.loads(data)
        except ValueError:
            logger.warning("Failed to parse data query param")
            return {}

    return dict(request.query_params)


def _format_errors(exc: PydanticValidationError) -> list[str]:
    return [
        f"{'.'.join(str(part) for part in error.get('loc', ()))}: {error.get('msg', 'Invalid value')}"
        for error in exc.errors()
    ]


async def receive_ticket(
    request: Request,
    ingestion: IngestionService = Depends(get_ingestion_service),
    queue: ProcessingQueue = Depends(get_processing_queue),
) -> JSONResponse:
    start_time = time.time()
    raw_payload = await _extract_payload(request)

    try:
        payload = WebhookPayload.model_validate(raw_payload)
    except PydanticValidationError as e:
        details = _format_errors(e)
        logger.warning(
            "Webhook validation failed",
            extra={"method": request.method, "error_count": len(details)},
        )
        rejection = WebhookRejection(details=details)
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=rejection.model_dump(by_alias=True),
        )

    try:
        transaction = await ingestion.ingest(payload)
    except DuplicateTicketError as e:
        ack = WebhookAck(
            transaction_id=e.transaction_id,
            duplicate=True,
            message="Ticket already processed",
        )
        return JSONResponse(
            status_code=status.HTTP_200_OK,
            content=ack.model_dump(mode="json", by_alias=True, exclude_none=True),
        )

    await queue.enqueue(transaction.id)

    logger.info(
        "Webhook processed",
        extra={
            "transaction_id": str(transaction.id),
            "ticket_id": transaction.ticket_id,
            "duration_ms": int((time.time() - start_time) * 1000),
        },
    )

    ack = WebhookAck(transaction_id=transaction.id)
    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content=ack.model_dump(mode="json", by_alias=True, exclude_none=True),
    )


router.add_api_route(
    "/tickets",
    receive_ticket,
    methods=["GET", "POST"],
    summary="Receive a scanned ticket",
    description="""
    Accepts a ticket in either the legacy or the v2 format.

    - POST: JSON body
    - GET: JSON-encoded payload in the `data` query parameter

    Answers `{received, transactionId}` immediately; duplicates answer
    `{received: true, duplicate: true, transactionId}` with the original id.
    """,
    response_model=WebhookAck,
    responses={400: {"model": WebhookRejection}},
)


@router.get("/tickets/info")
async def webhook_info():
    """Endpoint descriptor for the OCR provider's setup screen."""
    return {
        "status": "ok",
        "endpoint": "Ticket loyalty webhook",
        "methods": ["GET", "POST"],
        "formats": ["legacy", "v2"],
        "message": "Send scanned tickets to this URL",
    }
