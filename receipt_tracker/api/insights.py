"""Insights API endpoints."""

from datetime import date
from typing import Annotated

from fastapi import APIRouter, Depends

from receipt_tracker.api.dependencies import (
    get_categorization_engine,
    get_current_user_id,
    get_receipt_service,
)
from receipt_tracker.models.enums import Category
from receipt_tracker.schemas.insights import BudgetRecommendation, InsightsSummary
from receipt_tracker.services.categorization import CategorizationEngine
from receipt_tracker.services.insights import compute_insights, recommend_budget
from receipt_tracker.services.receipt_service import ReceiptService

router = APIRouter(prefix="/api/v1", tags=["insights"])


@router.get("/insights", response_model=InsightsSummary)
async def get_insights(
    user_id: Annotated[str, Depends(get_current_user_id)],
    service: Annotated[ReceiptService, Depends(get_receipt_service)],
    engine: Annotated[CategorizationEngine, Depends(get_categorization_engine)],
    today: date | None = None,
):
    """Summary statistics over the current user's receipts."""
    receipts = await service.list_receipts(user_id)
    return compute_insights(receipts, today=today, engine=engine)


@router.get("/insights/recommendations/{category}", response_model=BudgetRecommendation)
async def get_budget_recommendation(
    category: Category,
    user_id: Annotated[str, Depends(get_current_user_id)],
    service: Annotated[ReceiptService, Depends(get_receipt_service)],
    engine: Annotated[CategorizationEngine, Depends(get_categorization_engine)],
):
    """Budget advice for one category of the current user's spending."""
    receipts = await service.list_receipts(user_id)
    return recommend_budget(receipts, category, engine=engine)
