"""Database models."""
from app.models.customer import Customer
from app.models.product import Product
from app.models.transaction import Transaction, TransactionStatus
from app.models.points_adjustment import PointsAdjustment
from app.models.setting import Setting

__all__ = [
    "Customer",
    "Product",
    "Transaction",
    "TransactionStatus",
    "PointsAdjustment",
    "Setting",
]
