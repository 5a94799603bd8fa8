"""
Receipt Scanner using Gemini

DESIGN DECISION: A multimodal model reads the receipt photo and returns
store, date, items and total as JSON. The result is a PROPOSAL:

- CAN: read items, amounts and suggest a category per item
- CANNOT: create transactions; the user reviews every item first
- MUST: fail loudly when the reply isn't the JSON we asked for

The model is asked for raw JSON but sometimes wraps it in markdown
fences, so those are stripped before parsing.
"""

import json
import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

import google.generativeai as genai
from pydantic import ValidationError
from tenacity import (
    retry,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from budgetbook.config import get_settings
from budgetbook.models.budget import ScannedReceipt, ScannedReceiptItem


RECEIPT_PROMPT = """
Analyze this receipt image and extract the following information in JSON format:
1. "store": The name of the store or merchant.
2. "date": The date of the transaction (ISO 8601 format YYYY-MM-DD if possible, otherwise as appears).
3. "items": A list of items purchased. Each item should have:
    - "name": The name of the product.
    - "amount": The price of the item (as a number).
    - "category": A suggested category for this item (e.g., Food, Transport, Utilities, Shopping, Entertainment).
4. "total": The total amount of the receipt (as a number).

Return ONLY the raw JSON object, no markdown formatting or backticks.
"""

_FENCE_PATTERN = re.compile(r"```(?:json)?", re.IGNORECASE)


class ReceiptScanError(Exception):
    """The receipt could not be scanned."""
    pass


class ReceiptParseError(ReceiptScanError):
    """The model replied, but not with usable receipt JSON."""
    pass


def strip_markdown_fences(text: str) -> str:
    """Remove ```json / ``` fences the model sometimes adds."""
    return _FENCE_PATTERN.sub("", text).strip()


def _to_decimal(value: Any) -> Optional[Decimal]:
    if value is None or value == "":
        return None
    try:
        amount = Decimal(str(value).replace(",", "").strip())
    except InvalidOperation:
        return None
    if not amount.is_finite():
        return None
    return amount if amount >= 0 else None


def _to_date(value: Any) -> Optional[date]:
    if not value or not isinstance(value, str):
        return None
    for fmt in ["%Y-%m-%d", "%d/%m/%Y", "%d-%m-%Y", "%Y/%m/%d", "%d %b %Y"]:
        try:
            return datetime.strptime(value.strip(), fmt).date()
        except ValueError:
            continue
    return None


def parse_receipt_response(text: str, receipt_url: Optional[str] = None) -> ScannedReceipt:
    """
    Convert the model's reply into a ScannedReceipt.

    Unreadable amounts become 0 and unreadable dates become None so the
    user can fix them in review; a reply that isn't a JSON object raises.

    Raises:
        ReceiptParseError: If the reply isn't a JSON object
    """
    clean = strip_markdown_fences(text)
    try:
        data = json.loads(clean)
    except json.JSONDecodeError as e:
        raise ReceiptParseError(f"Receipt reply is not valid JSON: {e}")

    if not isinstance(data, dict):
        raise ReceiptParseError("Receipt reply is not a JSON object")

    raw_items = data.get("items") or []
    if not isinstance(raw_items, list):
        raise ReceiptParseError("Receipt items are not a list")

    try:
        items = [
            ScannedReceiptItem(
                name=str(raw_item.get("name") or ""),
                amount=_to_decimal(raw_item.get("amount")) or Decimal("0"),
                category=str(raw_item.get("category") or ""),
            )
            for raw_item in raw_items
            if isinstance(raw_item, dict)
        ]
        return ScannedReceipt(
            store=str(data.get("store") or ""),
            purchase_date=_to_date(data.get("date")),
            items=items,
            total=_to_decimal(data.get("total")),
            receipt_url=receipt_url,
            raw_text=text,
        )
    except ValidationError as e:
        raise ReceiptParseError(f"Receipt reply has invalid fields: {e}")


class GeminiReceiptScanner:
    """Reads receipt images with a Gemini multimodal model."""

    def __init__(self):
        self._settings = get_settings().gemini
        self._configure_genai()

    def _configure_genai(self):
        """Configure Google Generative AI."""
        genai.configure(api_key=self._settings.api_key)
        self._model = genai.GenerativeModel(
            model_name=self._settings.model_name,
            generation_config={
                "temperature": self._settings.temperature,
                "max_output_tokens": self._settings.max_tokens,
            }
        )

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_not_exception_type(ReceiptParseError),
        reraise=True,
    )
    async def scan(
        self,
        image_bytes: bytes,
        mime_type: str,
        receipt_url: Optional[str] = None,
    ) -> ScannedReceipt:
        """
        Extract store, date, items and total from a receipt image.

        Raises:
            ReceiptParseError: The reply couldn't be parsed
            ReceiptScanError: The model call failed
        """
        try:
            response = await self._model.generate_content_async([
                RECEIPT_PROMPT,
                {"mime_type": mime_type, "data": image_bytes},
            ])
            text = response.text
        except Exception as e:
            raise ReceiptScanError(f"Scan failed: {e}")

        return parse_receipt_response(text, receipt_url=receipt_url)
