"""Enums for model fields."""

from enum import Enum


class Category(str, Enum):
    """Spending categories, in declaration order."""

    FOOD = "Food"
    UTILITIES = "Utilities"
    SHOPPING = "Shopping"
    TRANSPORTATION = "Transportation"
    ENTERTAINMENT = "Entertainment"
    HEALTHCARE = "Healthcare"
    OTHERS = "Others"

    @classmethod
    def resolve(cls, value: str | None) -> "Category | None":
        """Match free text against the enumeration.

        Exact case-insensitive match first, then a case-insensitive prefix
        match ("health" -> Healthcare). Returns None when nothing matches.
        """
        if value is None:
            return None
        needle = str(value).strip().casefold()
        if not needle:
            return None
        for category in cls:
            if category.value.casefold() == needle:
                return category
        for category in cls:
            if category.value.casefold().startswith(needle):
                return category
        return None


class Connectivity(str, Enum):
    """Connectivity state of the reconciling service."""

    ONLINE = "online"
    OFFLINE = "offline"
