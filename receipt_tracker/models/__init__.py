"""SQLAlchemy models."""

from receipt_tracker.models.enums import Category, Connectivity
from receipt_tracker.models.receipt import ReceiptRecord

__all__ = [
    "Category",
    "Connectivity",
    "ReceiptRecord",
]
