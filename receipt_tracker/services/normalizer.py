"""Normalization of raw extraction payloads into canonical receipt drafts."""

import json
import logging
import re
from datetime import UTC, datetime
from typing import Any

from pydantic import ValidationError

from receipt_tracker.exceptions import InvalidExtractionError
from receipt_tracker.models.enums import Category
from receipt_tracker.schemas.extraction import ExtractionItem, ExtractionPayload
from receipt_tracker.schemas.receipt import ReceiptDraft, ReceiptFields, ReceiptItem
from receipt_tracker.services.categorization import CategorizationEngine

logger = logging.getLogger(__name__)

_FENCED_BLOCK = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```", re.IGNORECASE)


def strip_code_fences(text: str) -> str:
    """Unwrap a fenced code block, if the text contains one."""
    text = text.strip()
    match = _FENCED_BLOCK.search(text)
    if match:
        return match.group(1).strip()
    return text


def _today() -> datetime:
    now = datetime.now(UTC)
    return datetime(now.year, now.month, now.day, tzinfo=UTC)


class ReceiptNormalizer:
    """Turns loosely typed extraction output into a ``ReceiptDraft``."""

    def __init__(
        self,
        engine: CategorizationEngine | None = None,
        *,
        fill_missing_individually: bool = True,
    ) -> None:
        """
        Args:
            engine: Categorization engine used for items without a category
            fill_missing_individually: Categorize every item lacking a category.
                When False, the engine only runs if no item has a category.
        """
        self.engine = engine or CategorizationEngine()
        self.fill_missing_individually = fill_missing_individually

    def normalize(self, raw: str | bytes | dict) -> ReceiptDraft:
        """Validate and coerce an extraction payload.

        Raises:
            InvalidExtractionError: the payload reports an error, is not valid
                JSON after fence stripping, or is not a JSON object.
        """
        data = self._decode(raw)

        try:
            payload = ExtractionPayload.model_validate(data)
        except ValidationError as e:
            raise InvalidExtractionError(f"Malformed extraction payload: {e}") from e

        if payload.error:
            raise InvalidExtractionError(payload.error)

        items = [self._map_item(entry, index) for index, entry in enumerate(payload.items)]
        items = self._fill_categories([item for item in items if item is not None])

        tax_amount = payload.tax_amount or 0.0
        discount_amount = payload.discount_amount or 0.0
        total_amount = payload.total_amount or 0.0
        subtotal = payload.subtotal
        if subtotal is None:
            subtotal = max(0.0, round(total_amount - tax_amount + discount_amount, 2))

        return ReceiptDraft(
            store_name=payload.store_name or "Unknown Store",
            date=payload.date or _today(),
            total_amount=total_amount,
            subtotal=subtotal,
            tax_amount=tax_amount,
            discount_amount=discount_amount,
            items=items,
            image_url=payload.image_url,
        )

    def _decode(self, raw: str | bytes | dict) -> dict:
        if isinstance(raw, dict):
            return raw

        if isinstance(raw, bytes):
            raw = raw.decode("utf-8", errors="replace")

        text = strip_code_fences(str(raw))
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            logger.error(f"Failed to parse extraction payload as JSON: {e}")
            raise InvalidExtractionError(f"Failed to parse receipt: {e}") from e

        if not isinstance(data, dict):
            raise InvalidExtractionError(
                f"Expected a JSON object, got {type(data).__name__}"
            )
        return data

    def _map_item(self, entry: Any, index: int) -> ReceiptItem | None:
        if not isinstance(entry, dict):
            logger.warning(f"Skipping item {index}: expected an object, got {type(entry).__name__}")
            return None

        parsed = ExtractionItem.model_validate(entry)
        return ReceiptItem(
            name=parsed.name or "Unknown Item",
            price=parsed.price or 0.0,
            quantity=parsed.quantity,
            category=Category.resolve(parsed.category),
        )

    def _fill_categories(self, items: list[ReceiptItem]) -> list[ReceiptItem]:
        if self.fill_missing_individually:
            return self.engine.categorize_all(items)

        if items and all(item.category is None for item in items):
            return self.engine.categorize_all(items)
        return items


def to_extraction_payload(receipt: ReceiptFields) -> dict:
    """Serialize a receipt into the extraction payload shape."""
    return {
        "storeName": receipt.store_name,
        "totalAmount": receipt.total_amount,
        "subtotal": receipt.subtotal,
        "taxAmount": receipt.tax_amount,
        "discountAmount": receipt.discount_amount,
        "date": receipt.date.isoformat(),
        "items": [
            {
                "name": item.name,
                "price": item.price,
                "quantity": item.quantity,
                "category": item.category.value if item.category else None,
            }
            for item in receipt.items
        ],
        "imageUrl": receipt.image_url,
    }
