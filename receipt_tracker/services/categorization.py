"""Deterministic keyword categorization for receipt items.

The table is scanned in declaration order and the first keyword contained in
the lower-cased item name wins, so reordering entries changes results.
"""

import logging
from collections import defaultdict
from collections.abc import Iterable, Sequence

from receipt_tracker.models.enums import Category
from receipt_tracker.schemas.receipt import ReceiptItem

logger = logging.getLogger(__name__)

# Groups follow the order of the former 14-category scheme, folded into the
# current categories: Groceries and Dining into Food, Bills into Utilities,
# Health and Personal Care into Healthcare, Home into Shopping, Travel into
# Transportation, Education and Gifts into Others. Education and Gifts keep
# their place so their keywords still shadow later groups. "subscription"
# belongs to Entertainment only.
_KEYWORDS_BY_CATEGORY: tuple[tuple[Category, tuple[str, ...]], ...] = (
    (
        Category.FOOD,
        (
            "food", "meal", "snack", "lunch", "dinner", "breakfast", "brunch",
            "supper", "refreshment", "cuisine", "dish", "plate", "entree",
            "main course", "side dish", "dessert", "appetizer", "beverage",
            "drink", "juice", "soda", "water", "coffee", "tea",
        ),
    ),
    # Groceries
    (
        Category.FOOD,
        (
            "grocery", "supermarket", "market", "food mart", "convenience store",
            "deli", "butcher", "bakery", "produce", "banana", "apple", "milk",
            "bread", "eggs", "meat", "chicken", "fish", "rice", "pasta",
            "vegetables", "fruits", "snacks", "beverages",
        ),
    ),
    # Dining
    (
        Category.FOOD,
        (
            "restaurant", "cafe", "bistro", "eatery", "grill", "pizzeria", "sushi",
            "bar & grill", "diner", "steakhouse", "tavern", "pub", "bar",
            "coffee shop", "food court", "fast food", "takeout", "delivery",
            "spicy chicken wings", "burger", "fries", "pizza", "chapman",
            "catfish", "pepper soup", "jollof", "plantain", "egg sauce",
            "bolognese", "nkwobi",
        ),
    ),
    (
        Category.TRANSPORTATION,
        (
            "gasoline", "fuel", "public transport", "taxi", "uber", "lyft",
            "parking", "maintenance", "car wash", "bus", "train", "subway",
            "metro", "toll", "charging", "petrol", "diesel",
        ),
    ),
    (
        Category.SHOPPING,
        (
            "clothing", "shoes", "electronics", "appliances", "furniture", "home",
            "decor", "beauty", "cosmetics", "accessories", "store", "shop",
            "boutique", "outlet", "mall", "department", "apparel", "footwear",
            "gadget", "home goods", "hardware", "diy",
        ),
    ),
    # Bills
    (
        Category.UTILITIES,
        (
            "electricity", "water", "gas", "internet", "phone", "mobile", "cable",
            "tv", "streaming", "bill", "payment", "utility", "gas bill",
            "membership", "insurance", "mortgage", "rent", "loan",
        ),
    ),
    (
        Category.HEALTHCARE,
        (
            "pharmacy", "medicine", "doctor", "hospital", "dental", "vision",
            "drugstore", "medical", "clinic", "healthcare", "wellness",
            "fitness", "gym", "vitamin", "supplement", "optical", "hearing",
            "prescription",
        ),
    ),
    (
        Category.ENTERTAINMENT,
        (
            "movie", "cinema", "game", "concert", "event", "hobby", "sports",
            "subscription", "theater", "ticket", "music", "book", "magazine",
            "newspaper", "gaming", "arcade", "amusement", "park", "museum",
        ),
    ),
    # Travel
    (
        Category.TRANSPORTATION,
        (
            "flight", "hotel", "car rental", "travel", "trip", "airbnb", "booking",
            "lodge", "resort",
        ),
    ),
    # Education
    (
        Category.OTHERS,
        (
            "school", "university", "college", "course", "class", "training",
            "workshop", "seminar", "bookstore", "stationery", "supplies",
            "tuition", "textbook", "education",
        ),
    ),
    # Home
    (
        Category.SHOPPING,
        (
            "garden", "appliance", "renovation", "repair", "cleaning", "lawn",
            "landscaping", "pest control", "security", "houseware", "kitchen",
            "bath", "bedding",
        ),
    ),
    # Personal Care
    (
        Category.HEALTHCARE,
        (
            "salon", "barber", "spa", "massage", "hair", "nails", "skincare",
            "cosmetic", "grooming", "tattoo", "piercing", "toiletries", "hygiene",
        ),
    ),
    # Gifts
    (
        Category.OTHERS,
        (
            "gift", "present", "donation", "charity", "fundraiser", "nonprofit",
            "ngo", "church", "temple", "mosque", "synagogue", "place of worship",
        ),
    ),
)


DEFAULT_KEYWORD_TABLE: tuple[tuple[str, Category], ...] = tuple(
    (keyword, category) for category, keywords in _KEYWORDS_BY_CATEGORY for keyword in keywords
)


class CategorizationEngine:
    """Maps free-text item names to a spending category."""

    def __init__(
        self, keyword_table: Sequence[tuple[str, Category]] = DEFAULT_KEYWORD_TABLE
    ) -> None:
        self.keyword_table = tuple((keyword.lower(), category) for keyword, category in keyword_table)

    def categorize(self, item_name: str | None) -> Category:
        """Return the category of the first keyword contained in the name."""
        lower_name = (item_name or "").lower()
        for keyword, category in self.keyword_table:
            if keyword in lower_name:
                return category
        return Category.OTHERS

    def categorize_all(
        self, items: Iterable[ReceiptItem], *, overwrite: bool = False
    ) -> list[ReceiptItem]:
        """Return copies of the items with a category, preserving order.

        Items that already carry a category keep it unless ``overwrite`` is set.
        """
        categorized = []
        for item in items:
            if item.category is not None and not overwrite:
                categorized.append(item)
                continue
            categorized.append(item.model_copy(update={"category": self.categorize(item.name)}))
        return categorized

    def category_spending(self, items: Iterable[ReceiptItem]) -> list[tuple[Category, float]]:
        """Sum line totals per category, largest first."""
        totals: dict[Category, float] = defaultdict(float)
        for item in items:
            category = item.category or self.categorize(item.name)
            totals[category] += item.line_total
        return sorted(totals.items(), key=lambda entry: entry[1], reverse=True)


_default_engine = CategorizationEngine()


def categorize_item(item_name: str | None) -> Category:
    """Categorize a single name with the default keyword table."""
    return _default_engine.categorize(item_name)


def categorize_items(items: Iterable[ReceiptItem]) -> list[ReceiptItem]:
    """Fill in missing categories with the default keyword table."""
    return _default_engine.categorize_all(items)
