"""Category API endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends

from receipt_tracker.api.dependencies import get_categorization_engine, get_current_user_id
from receipt_tracker.models.enums import Category
from receipt_tracker.schemas.sync import CategorizedName, CategorizeRequest
from receipt_tracker.services.categorization import CategorizationEngine

router = APIRouter(prefix="/api/v1/categories", tags=["categories"])


@router.get("", response_model=list[Category])
def get_categories(
    user_id: Annotated[str, Depends(get_current_user_id)],
):
    """All spending categories, in declaration order."""
    return list(Category)


@router.post("/categorize", response_model=list[CategorizedName])
def categorize_names(
    request: CategorizeRequest,
    user_id: Annotated[str, Depends(get_current_user_id)],
    engine: Annotated[CategorizationEngine, Depends(get_categorization_engine)],
):
    """Categorize item names with the keyword table."""
    return [CategorizedName(name=name, category=engine.categorize(name)) for name in request.names]
