"""Summary statistics over a user's receipts.

All functions are pure. ``today`` defaults to the current UTC date and can be
passed explicitly to make period boundaries deterministic.
"""

from collections import defaultdict
from collections.abc import Sequence
from datetime import UTC, date, datetime, timedelta

from receipt_tracker.models.enums import Category
from receipt_tracker.schemas.insights import (
    BudgetRecommendation,
    CategorySpend,
    InsightsSummary,
    StoreSpend,
    SubscriptionSummary,
)
from receipt_tracker.schemas.receipt import Receipt
from receipt_tracker.services.categorization import CategorizationEngine

SUBSCRIPTION_KEYWORDS = (
    "netflix",
    "spotify",
    "hulu",
    "disney",
    "apple music",
    "youtube premium",
    "amazon prime",
    "hbo",
    "dstv",
    "showmax",
)

# Share of current spend a suggested budget trims off
BUDGET_REDUCTION = 0.15

_default_engine = CategorizationEngine()


def _today(today: date | None) -> date:
    return today or datetime.now(UTC).date()


def _receipt_day(receipt: Receipt) -> date:
    return receipt.date.astimezone(UTC).date()


def _percent_change(current: float, baseline: float) -> float:
    if baseline == 0:
        return 0.0
    return round((current - baseline) / baseline * 100, 2)


def _spend_between(receipts: Sequence[Receipt], start: date, end: date) -> float:
    """Total spend of receipts dated within [start, end]."""
    return sum(r.total_amount for r in receipts if start <= _receipt_day(r) <= end)


def total_spend(receipts: Sequence[Receipt]) -> float:
    return round(sum(r.total_amount for r in receipts), 2)


def total_discount(receipts: Sequence[Receipt]) -> float:
    return round(sum(r.discount_amount for r in receipts), 2)


def spend_by_category(
    receipts: Sequence[Receipt], engine: CategorizationEngine | None = None
) -> list[CategorySpend]:
    """Item spend per category, largest first, with each share of the total."""
    engine = engine or _default_engine
    items = [item for receipt in receipts for item in receipt.items]
    spending = engine.category_spending(items)
    grand_total = sum(amount for _, amount in spending)
    return [
        CategorySpend(
            category=category,
            amount=round(amount, 2),
            percentage=round(amount / grand_total * 100, 2) if grand_total else 0.0,
        )
        for category, amount in spending
    ]


def top_category(
    receipts: Sequence[Receipt], engine: CategorizationEngine | None = None
) -> CategorySpend | None:
    by_category = spend_by_category(receipts, engine)
    return by_category[0] if by_category else None


def spend_by_store(receipts: Sequence[Receipt]) -> list[StoreSpend]:
    """Receipt totals and counts per store, largest spend first."""
    amounts: dict[str, float] = defaultdict(float)
    counts: dict[str, int] = defaultdict(int)
    for receipt in receipts:
        amounts[receipt.store_name] += receipt.total_amount
        counts[receipt.store_name] += 1
    stores = [
        StoreSpend(name=name, amount=round(amount, 2), count=counts[name])
        for name, amount in amounts.items()
    ]
    return sorted(stores, key=lambda s: (s.amount, s.count), reverse=True)


def top_store(receipts: Sequence[Receipt]) -> StoreSpend | None:
    by_store = spend_by_store(receipts)
    return by_store[0] if by_store else None


def monthly_trend(receipts: Sequence[Receipt], today: date | None = None) -> float:
    """Percentage change of this calendar month's spend over last month's."""
    today = _today(today)
    month_start = today.replace(day=1)
    previous_end = month_start - timedelta(days=1)
    previous_start = previous_end.replace(day=1)

    current = _spend_between(receipts, month_start, today)
    previous = _spend_between(receipts, previous_start, previous_end)
    return _percent_change(current, previous)


def weekly_trend(receipts: Sequence[Receipt], today: date | None = None) -> float:
    """Percentage change of the last 7 days' spend over the 7 days before."""
    today = _today(today)
    week_start = today - timedelta(days=6)
    previous_end = week_start - timedelta(days=1)
    previous_start = previous_end - timedelta(days=6)

    current = _spend_between(receipts, week_start, today)
    previous = _spend_between(receipts, previous_start, previous_end)
    return _percent_change(current, previous)


def is_subscription(receipt: Receipt) -> bool:
    store = receipt.store_name.lower()
    if any(keyword in store for keyword in SUBSCRIPTION_KEYWORDS):
        return True
    return any("subscription" in item.name.lower() for item in receipt.items)


def detect_subscriptions(receipts: Sequence[Receipt]) -> SubscriptionSummary:
    subscriptions = [r for r in receipts if is_subscription(r)]
    return SubscriptionSummary(
        count=len(subscriptions),
        total=round(sum(r.total_amount for r in subscriptions), 2),
    )


def average_daily_spend(receipts: Sequence[Receipt], today: date | None = None) -> float:
    """This month's spend divided by the days elapsed so far (at least 1)."""
    today = _today(today)
    current = _spend_between(receipts, today.replace(day=1), today)
    return round(current / max(1, today.day), 2)


def compute_insights(
    receipts: Sequence[Receipt],
    today: date | None = None,
    engine: CategorizationEngine | None = None,
) -> InsightsSummary:
    """Assemble the dashboard summary for a collection of receipts."""
    today = _today(today)
    by_category = spend_by_category(receipts, engine)
    by_store = spend_by_store(receipts)

    return InsightsSummary(
        total_spend=total_spend(receipts),
        total_discount=total_discount(receipts),
        top_category=by_category[0] if by_category else None,
        top_store=by_store[0] if by_store else None,
        spending_trend=monthly_trend(receipts, today),
        weekly_spending_trend=weekly_trend(receipts, today),
        average_daily_spend=average_daily_spend(receipts, today),
        subscription_costs=detect_subscriptions(receipts),
        by_category=by_category,
        by_store=by_store,
    )



def recommend_budget(
    receipts: Sequence[Receipt],
    category: Category,
    engine: CategorizationEngine | None = None,
) -> BudgetRecommendation:
    """Suggest a budget for one category from the items spent on it.

    The suggested budget is current spend less ``BUDGET_REDUCTION``; the
    difference is reported as potential savings. Every item line in the
    category counts as one transaction.
    """
    engine = engine or _default_engine
    items = [
        item
        for receipt in receipts
        for item in receipt.items
        if (item.category or engine.categorize(item.name)) == category
    ]
    name = category.value

    if not items:
        return BudgetRecommendation(
            category=category,
            amount=0.0,
            percentage=0.0,
            transaction_count=0,
            suggested_budget=0.0,
            potential_savings=0.0,
            confidence="low",
            analysis=f"No {name} spending recorded yet.",
            recommendations=[
                "Add receipts with item details to get personalized recommendations",
            ],
        )

    amount = round(sum(item.line_total for item in items), 2)
    percentage = next(
        (c.percentage for c in spend_by_category(receipts, engine) if c.category == category),
        0.0,
    )
    return BudgetRecommendation(
        category=category,
        amount=amount,
        percentage=percentage,
        transaction_count=len(items),
        suggested_budget=round(amount * (1 - BUDGET_REDUCTION), 2),
        potential_savings=round(amount * BUDGET_REDUCTION, 2),
        analysis=(
            f"You've spent {amount:.2f} on {name} "
            f"({percentage:.1f}% of your total expenses)."
        ),
        recommendations=[
            f"Consider setting a monthly budget for {name}",
            f"Look for discounts or coupons when shopping for {name}",
            f"Review if all {name} expenses are necessary",
        ],
        category_insights=[
            f"This is {percentage:.1f}% of your total spending",
            f"You've made {len(items)} transactions in this category",
        ],
    )
