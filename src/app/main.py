from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import IntegrityError

from app.api.middleware.error_handler import (
    handle_generic_error,
    handle_integrity_error,
    handle_loyalty_error,
    handle_validation_error,
)
from app.api.middleware.logging import RequestLoggingMiddleware
from app.api.v1 import router as v1_router
from app.api.v1.health import router as health_router
from app.config import settings
from app.core.exceptions import LoyaltyError
from app.core.logging import setup_logging
from app.db.session import AsyncSessionLocal
from app.ledger.client import LedgerClient
from app.workers.queue import ProcessingQueue


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    ledger_client = LedgerClient.from_settings()
    processing_queue = ProcessingQueue(
        AsyncSessionLocal, ledger_client, workers=settings.processing_workers
    )
    processing_queue.start()
    app.state.ledger_client = ledger_client
    app.state.processing_queue = processing_queue
    yield
    # Shutdown: let in-flight tickets finish before closing the client
    await processing_queue.stop()
    await ledger_client.aclose()


def create_app() -> FastAPI:
    setup_logging(settings.log_level, json_logs=settings.json_logs)

    app = FastAPI(
        title="Ticket Loyalty API",
        description="Receipt ingestion, catalog matching and loyalty points synchronization",
        version="0.1.0",
        debug=settings.debug,
        lifespan=lifespan,
    )

    # Add request logging middleware
    app.add_middleware(RequestLoggingMiddleware)

    # Register exception handlers (order matters - most specific first)
    app.add_exception_handler(LoyaltyError, handle_loyalty_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(IntegrityError, handle_integrity_error)
    app.add_exception_handler(Exception, handle_generic_error)

    # Register routers
    app.include_router(health_router)
    app.include_router(v1_router)

    return app


app = create_app()
