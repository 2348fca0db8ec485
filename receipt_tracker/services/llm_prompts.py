"""LLM prompt templates for receipt extraction."""

from receipt_tracker.models.enums import Category

_CATEGORY_NAMES = ", ".join(f'"{category.value}"' for category in Category)

RECEIPT_EXTRACTION_PROMPT = f"""Analyze this receipt image and extract the purchase.

Return a single JSON object with these fields:
- storeName: the merchant name as printed on the receipt
- totalAmount: the final amount paid
- subtotal: the amount before tax and discounts, or null if not printed
- taxAmount: total tax, 0 if none
- discountAmount: total of discounts and coupons, 0 if none
- date: the purchase date as YYYY-MM-DD
- items: an array of {{"name", "price", "quantity", "category"}}

For each item:
1. Clean up the name (e.g., "ORGANIC MILK 1GAL" -> "Organic Milk")
2. price is the unit price as a number
3. quantity is a whole number, 1 if not printed
4. category is one of {_CATEGORY_NAMES}, or null if unsure

Do not include tax, total, payment or change lines as items.
Use plain numbers for amounts, without currency symbols.

If the image is not a receipt or cannot be read, return:
{{"error": "short description of the problem"}}

Example output:
{{
  "storeName": "Walmart",
  "totalAmount": 54.5,
  "subtotal": 50.0,
  "taxAmount": 4.5,
  "discountAmount": 0,
  "date": "2024-03-02",
  "items": [
    {{"name": "Milk", "price": 3.5, "quantity": 2, "category": "Food"}},
    {{"name": "Phone Charger", "price": 43.0, "quantity": 1, "category": "Shopping"}}
  ]
}}

Return ONLY the JSON object, no other text."""
