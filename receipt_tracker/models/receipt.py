"""Receipt model for the remote receipt store."""

from sqlalchemy import JSON, Column, Float, String, Text

from receipt_tracker.database import Base
from receipt_tracker.models.mixins import IsoTimestampMixin


class ReceiptRecord(Base, IsoTimestampMixin):
    """One row per receipt, scoped to its owner."""

    __tablename__ = "receipts"

    id = Column(String(36), primary_key=True)
    user_id = Column(String(255), nullable=False, index=True)
    store_name = Column(String(500), nullable=False, default="Unknown Store")
    # ISO-8601 text, sorts chronologically because every value is written in UTC
    date = Column(String(40), nullable=False, index=True)
    total_amount = Column(Float, nullable=False, default=0.0)
    subtotal = Column(Float, nullable=False, default=0.0)
    tax_amount = Column(Float, nullable=False, default=0.0)
    discount_amount = Column(Float, nullable=False, default=0.0)
    # [{"name": "Milk", "price": 3.5, "quantity": 2, "category": "Food"}, ...]
    items = Column(JSON, nullable=True)
    image_url = Column(Text, nullable=True)
