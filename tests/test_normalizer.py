"""Tests for extraction payload normalization."""

import json
from datetime import UTC, datetime

import pytest

from receipt_tracker.exceptions import InvalidExtractionError
from receipt_tracker.models.enums import Category
from receipt_tracker.schemas.extraction import coerce_amount
from receipt_tracker.schemas.receipt import ReceiptItem
from receipt_tracker.services.normalizer import (
    ReceiptNormalizer,
    strip_code_fences,
    to_extraction_payload,
)


@pytest.fixture
def normalizer():
    return ReceiptNormalizer()


def test_normalize_full_payload(normalizer):
    """A complete payload derives the subtotal and categorizes items."""
    raw = json.dumps(
        {
            "storeName": "Walmart",
            "totalAmount": 54.5,
            "taxAmount": 4.5,
            "discountAmount": 0,
            "date": "2024-03-02",
            "items": [{"name": "Milk", "price": 3.5, "quantity": 2}],
        }
    )

    draft = normalizer.normalize(raw)

    assert draft.store_name == "Walmart"
    assert draft.total_amount == 54.5
    assert draft.subtotal == 50.0
    assert draft.tax_amount == 4.5
    assert draft.discount_amount == 0.0
    assert draft.date == datetime(2024, 3, 2, tzinfo=UTC)
    assert draft.items == [ReceiptItem(name="Milk", price=3.5, quantity=2, category=Category.FOOD)]


def test_normalize_strips_code_fences(normalizer):
    raw = '```json\n{"storeName": "Target", "totalAmount": 10}\n```'
    draft = normalizer.normalize(raw)
    assert draft.store_name == "Target"
    assert draft.subtotal == 10.0


def test_normalize_accepts_dict_and_bytes(normalizer):
    payload = {"storeName": "Costco", "totalAmount": "$1,234.50"}
    assert normalizer.normalize(payload).total_amount == 1234.5
    assert normalizer.normalize(json.dumps(payload).encode()).store_name == "Costco"


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("12,50", 12.5),
        ("1.234,56", 1234.56),
        ("1,234", 1234.0),
        ("12,345,678.90", 12345678.9),
        ("EUR 7,5", 7.5),
        ("1,2,3", None),
    ],
)
def test_coerce_amount_comma_separators(text, expected):
    """A trailing comma with one or two digits is a decimal mark, not a grouping."""
    assert coerce_amount(text) == expected


def test_normalize_decimal_comma_total(normalizer):
    assert normalizer.normalize({"totalAmount": "12,50"}).total_amount == 12.5
    assert normalizer.normalize({"totalAmount": "1,2,3"}).total_amount == 0.0


def test_normalize_applies_defaults(normalizer):
    """Missing fields fall back to defaults and today's date."""
    draft = normalizer.normalize("{}")

    assert draft.store_name == "Unknown Store"
    assert draft.total_amount == 0.0
    assert draft.subtotal == 0.0
    assert draft.items == []
    today = datetime.now(UTC).date()
    assert draft.date.date() == today
    assert draft.date.tzinfo is not None


def test_normalize_keeps_explicit_subtotal(normalizer):
    draft = normalizer.normalize({"totalAmount": 20, "subtotal": 18.25, "taxAmount": 1})
    assert draft.subtotal == 18.25


def test_normalize_subtotal_never_negative(normalizer):
    draft = normalizer.normalize({"totalAmount": 1, "taxAmount": 5})
    assert draft.subtotal == 0.0


def test_normalize_coerces_loose_values(normalizer):
    """Negative, textual and malformed values are coerced, not rejected."""
    draft = normalizer.normalize(
        {
            "storeName": "  ",
            "totalAmount": -12.5,
            "date": "not a date",
            "items": [
                {"name": "Bread", "price": "2.99", "quantity": "3"},
                {"name": None, "price": "abc", "quantity": 0},
                "garbage",
                42,
            ],
        }
    )

    assert draft.store_name == "Unknown Store"
    assert draft.total_amount == 12.5
    assert draft.date.date() == datetime.now(UTC).date()
    assert len(draft.items) == 2
    assert draft.items[0] == ReceiptItem(
        name="Bread", price=2.99, quantity=3, category=Category.FOOD
    )
    assert draft.items[1].name == "Unknown Item"
    assert draft.items[1].price == 0.0
    assert draft.items[1].quantity == 1


def test_normalize_non_list_items(normalizer):
    draft = normalizer.normalize({"items": {"name": "Milk"}})
    assert draft.items == []


def test_normalize_resolves_provided_categories(normalizer):
    """Provided categories are matched leniently and kept."""
    draft = normalizer.normalize(
        {
            "items": [
                {"name": "Coffee", "category": "shopping"},
                {"name": "Aspirin", "category": "Health"},
                {"name": "Milk", "category": "Dairy"},
            ]
        }
    )

    assert [item.category for item in draft.items] == [
        Category.SHOPPING,
        Category.HEALTHCARE,
        Category.FOOD,
    ]


def test_normalize_fill_missing_all_or_nothing():
    """With per-item filling disabled, a partly categorized receipt is left alone."""
    normalizer = ReceiptNormalizer(fill_missing_individually=False)

    partial = normalizer.normalize(
        {"items": [{"name": "Milk", "category": "Food"}, {"name": "Uber ride"}]}
    )
    assert [item.category for item in partial.items] == [Category.FOOD, None]

    uncategorized = normalizer.normalize({"items": [{"name": "Milk"}, {"name": "Uber ride"}]})
    assert [item.category for item in uncategorized.items] == [
        Category.FOOD,
        Category.TRANSPORTATION,
    ]


@pytest.mark.parametrize(
    "raw",
    [
        "this is not json",
        "```json\n{broken\n```",
        "[1, 2, 3]",
        '"just a string"',
    ],
)
def test_normalize_rejects_unparseable_payloads(normalizer, raw):
    with pytest.raises(InvalidExtractionError):
        normalizer.normalize(raw)


def test_normalize_rejects_error_payload(normalizer):
    with pytest.raises(InvalidExtractionError, match="not a receipt"):
        normalizer.normalize({"error": "Image is not a receipt"})


def test_normalize_ignores_falsy_error(normalizer):
    draft = normalizer.normalize({"error": False, "storeName": "Aldi"})
    assert draft.store_name == "Aldi"


def test_strip_code_fences():
    assert strip_code_fences('```\n{"a": 1}\n```') == '{"a": 1}'
    assert strip_code_fences('Here you go:\n```JSON\n{"a": 1}\n```\nThanks') == '{"a": 1}'
    assert strip_code_fences('  {"a": 1}  ') == '{"a": 1}'


def test_extraction_payload_round_trip(normalizer):
    """A normalized receipt survives serialization back to the payload shape."""
    draft = normalizer.normalize(
        {
            "storeName": "Walmart",
            "totalAmount": 54.5,
            "taxAmount": 4.5,
            "date": "2024-03-02",
            "items": [{"name": "Milk", "price": 3.5, "quantity": 2}],
            "imageUrl": "https://example.com/r.jpg",
        }
    )

    payload = to_extraction_payload(draft)

    assert payload["storeName"] == "Walmart"
    assert payload["subtotal"] == 50.0
    assert payload["items"][0]["category"] == "Food"
    assert normalizer.normalize(payload) == draft
