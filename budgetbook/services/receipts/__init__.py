"""Receipt scanning package."""

from budgetbook.services.receipts.gemini_scanner import (
    GeminiReceiptScanner,
    ReceiptParseError,
    ReceiptScanError,
    parse_receipt_response,
    strip_markdown_fences,
)

__all__ = [
    "GeminiReceiptScanner",
    "ReceiptParseError",
    "ReceiptScanError",
    "parse_receipt_response",
    "strip_markdown_fences",
]
