"""Schemas for the raw payload returned by the extraction model.

Every field may be absent, null or of the wrong type. The ``before``
validators coerce loose values so that validation itself never fails on a
well-formed JSON object; structural problems are reported by the normalizer.
"""

import math
import re
from datetime import UTC, date, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

_NUMBER_NOISE = re.compile(r"[^0-9.,\-]")
# "1.234,56" or "12,5": one comma followed by one or two digits is the decimal mark
_DECIMAL_COMMA = re.compile(r"^-?[\d.]*\d,\d{1,2}$")
# "1,234.56": commas followed by exactly three digits group thousands
_THOUSANDS_COMMA = re.compile(r",(?=\d{3}(?!\d))")


def _parse_number_text(value: str) -> float | None:
    cleaned = _NUMBER_NOISE.sub("", value)
    if _DECIMAL_COMMA.match(cleaned):
        cleaned = cleaned.replace(".", "").replace(",", ".")
    else:
        cleaned = _THOUSANDS_COMMA.sub("", cleaned)
    if not cleaned or "," in cleaned:
        return None
    try:
        return float(cleaned)
    except ValueError:
        return None


def coerce_amount(value: Any) -> float | None:
    """Coerce a loosely typed monetary value, or None when it is not a number."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        number = float(value)
    elif isinstance(value, str):
        number = _parse_number_text(value)
        if number is None:
            return None
    else:
        return None
    if not math.isfinite(number):
        return None
    return abs(number)


def coerce_quantity(value: Any) -> int:
    """Coerce a quantity to a positive integer, defaulting to 1."""
    number = coerce_amount(value)
    if not number:
        return 1
    return max(1, round(number))


def coerce_date(value: Any) -> datetime | None:
    """Parse ``YYYY-MM-DD`` or a full ISO datetime; None when unparseable."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str) and value.strip():
        try:
            parsed = datetime.fromisoformat(value.strip())
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _clean_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


class ExtractionItem(BaseModel):
    """One line item as reported by the extraction model."""

    model_config = ConfigDict(extra="ignore")

    name: str | None = None
    price: float | None = None
    quantity: int = 1
    category: str | None = None

    @field_validator("name", "category", mode="before")
    @classmethod
    def _text(cls, value: Any) -> str | None:
        return _clean_text(value)

    @field_validator("price", mode="before")
    @classmethod
    def _price(cls, value: Any) -> float | None:
        return coerce_amount(value)

    @field_validator("quantity", mode="before")
    @classmethod
    def _quantity(cls, value: Any) -> int:
        return coerce_quantity(value)


class ExtractionPayload(BaseModel):
    """The whole extraction result."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    store_name: str | None = Field(None, alias="storeName")
    total_amount: float | None = Field(None, alias="totalAmount")
    subtotal: float | None = None
    tax_amount: float | None = Field(None, alias="taxAmount")
    discount_amount: float | None = Field(None, alias="discountAmount")
    date: datetime | None = None
    items: list[Any] = Field(default_factory=list)
    image_url: str | None = Field(None, alias="imageUrl")
    error: str | None = None

    @field_validator("store_name", "image_url", mode="before")
    @classmethod
    def _text(cls, value: Any) -> str | None:
        return _clean_text(value)

    @field_validator("total_amount", "subtotal", "tax_amount", "discount_amount", mode="before")
    @classmethod
    def _amount(cls, value: Any) -> float | None:
        return coerce_amount(value)

    @field_validator("date", mode="before")
    @classmethod
    def _date(cls, value: Any) -> datetime | None:
        return coerce_date(value)

    @field_validator("items", mode="before")
    @classmethod
    def _items(cls, value: Any) -> list:
        # Entries are validated one by one by the normalizer so that a bad
        # line does not reject the whole receipt.
        return value if isinstance(value, list) else []

    @field_validator("error", mode="before")
    @classmethod
    def _error(cls, value: Any) -> str | None:
        if not value:
            return None
        return _clean_text(value)
