"""Pydantic schemas for API requests and responses."""

from receipt_tracker.schemas.extraction import ExtractionItem, ExtractionPayload
from receipt_tracker.schemas.insights import (
    BudgetRecommendation,
    CategorySpend,
    InsightsSummary,
    StoreSpend,
    SubscriptionSummary,
)
from receipt_tracker.schemas.receipt import (
    ExtractRequest,
    Receipt,
    ReceiptCreate,
    ReceiptCreateRequest,
    ReceiptDraft,
    ReceiptItem,
    ReceiptUpdate,
)
from receipt_tracker.schemas.sync import (
    CategorizedName,
    CategorizeRequest,
    ConnectivityResponse,
    ConnectivityUpdate,
    SyncReportResponse,
)

__all__ = [
    "ExtractionItem",
    "ExtractionPayload",
    "ExtractRequest",
    "Receipt",
    "ReceiptCreate",
    "ReceiptCreateRequest",
    "ReceiptDraft",
    "ReceiptItem",
    "ReceiptUpdate",
    "CategorySpend",
    "StoreSpend",
    "SubscriptionSummary",
    "InsightsSummary",
    "BudgetRecommendation",
    "ConnectivityUpdate",
    "ConnectivityResponse",
    "SyncReportResponse",
    "CategorizeRequest",
    "CategorizedName",
]
