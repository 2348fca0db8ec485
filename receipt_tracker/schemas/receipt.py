"""Receipt schemas."""

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from receipt_tracker.models.enums import Category


def ensure_aware(value: datetime) -> datetime:
    """Interpret naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


class ReceiptItem(BaseModel):
    """A single line on a receipt."""

    name: str = "Unknown Item"
    price: float = Field(default=0.0, ge=0)
    quantity: int = Field(default=1, ge=1)
    category: Category | None = None

    @property
    def line_total(self) -> float:
        """Amount spent on this line (unit price times quantity)."""
        return self.price * self.quantity


class ReceiptFields(BaseModel):
    """Fields shared by every receipt shape."""

    store_name: str = "Unknown Store"
    date: datetime
    total_amount: float = Field(default=0.0, ge=0)
    subtotal: float = Field(default=0.0, ge=0)
    tax_amount: float = Field(default=0.0, ge=0)
    discount_amount: float = Field(default=0.0, ge=0)
    items: list[ReceiptItem] = Field(default_factory=list)
    image_url: str | None = None

    @field_validator("date")
    @classmethod
    def _date_is_aware(cls, value: datetime) -> datetime:
        return ensure_aware(value)


class ReceiptDraft(ReceiptFields):
    """A normalized extraction result, not yet owned or persisted."""


class ReceiptCreate(ReceiptFields):
    """Create a new receipt. A client-minted id is preserved when given."""

    id: str | None = Field(None, max_length=36)
    user_id: str = Field(..., min_length=1, max_length=255)


class ReceiptCreateRequest(ReceiptFields):
    """Create a receipt through the API; the owner comes from the token."""

    id: str | None = Field(None, max_length=36)


class ReceiptUpdate(BaseModel):
    """Partial update of a receipt. Only explicitly set fields are merged."""

    store_name: str | None = None
    date: datetime | None = None
    total_amount: float | None = Field(None, ge=0)
    subtotal: float | None = Field(None, ge=0)
    tax_amount: float | None = Field(None, ge=0)
    discount_amount: float | None = Field(None, ge=0)
    items: list[ReceiptItem] | None = None
    image_url: str | None = None

    @field_validator("date")
    @classmethod
    def _date_is_aware(cls, value: datetime | None) -> datetime | None:
        return ensure_aware(value) if value is not None else None

    def changes(self) -> dict:
        """Fields the caller set, as python values (items stay models)."""
        return {name: getattr(self, name) for name in self.model_fields_set}


class Receipt(ReceiptFields):
    """Canonical receipt."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    created_at: datetime
    updated_at: datetime

    @field_validator("created_at", "updated_at")
    @classmethod
    def _timestamps_are_aware(cls, value: datetime) -> datetime:
        return ensure_aware(value)

    def merged(self, update: ReceiptUpdate, *, updated_at: datetime) -> "Receipt":
        """Return a copy with the update applied and updated_at refreshed.

        An explicit null only clears ``image_url``; other nulls are ignored.
        """
        changes = {
            name: value
            for name, value in update.changes().items()
            if value is not None or name == "image_url"
        }
        return self.model_copy(update={**changes, "updated_at": updated_at})


class ExtractRequest(BaseModel):
    """Raw extraction payload submitted for normalization."""

    payload: str | dict
    image_url: str | None = None
