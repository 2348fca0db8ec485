"""Insight schemas."""

from pydantic import BaseModel

from receipt_tracker.models.enums import Category


class CategorySpend(BaseModel):
    """Spend attributed to one category."""

    category: Category
    amount: float
    percentage: float = 0.0


class StoreSpend(BaseModel):
    """Spend at one store."""

    name: str
    amount: float
    count: int


class SubscriptionSummary(BaseModel):
    """Receipts recognised as recurring subscriptions."""

    count: int = 0
    total: float = 0.0


class InsightsSummary(BaseModel):
    """Dashboard summary over a user's receipts."""

    total_spend: float
    total_discount: float
    top_category: CategorySpend | None = None
    top_store: StoreSpend | None = None
    spending_trend: float
    weekly_spending_trend: float
    average_daily_spend: float
    subscription_costs: SubscriptionSummary
    by_category: list[CategorySpend]
    by_store: list[StoreSpend]


class BudgetRecommendation(BaseModel):
    """Rule-based budget advice for one spending category."""

    category: Category
    amount: float
    percentage: float
    transaction_count: int
    suggested_budget: float
    potential_savings: float
    confidence: str = "medium"
    analysis: str
    recommendations: list[str]
    category_insights: list[str] = []
