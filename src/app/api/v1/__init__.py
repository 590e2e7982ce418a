"""API version 1 routes."""

from fastapi import APIRouter

from app.api.v1 import customers, points, transactions, webhook

router = APIRouter(prefix="/api/v1")

# Include routers
router.include_router(webhook.router)
router.include_router(transactions.router)
router.include_router(customers.router)
router.include_router(points.router)
