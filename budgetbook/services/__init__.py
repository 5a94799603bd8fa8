"""Services package."""

from budgetbook.services.image import (
    CloudinaryImageService,
    ImageUploadError,
    InvalidImageError,
    ReceiptImageError,
)
from budgetbook.services.receipts import (
    GeminiReceiptScanner,
    ReceiptParseError,
    ReceiptScanError,
)
from budgetbook.services.storage import (
    AuditStorageInterface,
    BudgetStorageInterface,
    CategoryStorageInterface,
    ConnectionError,
    DuplicateError,
    GoogleSheetsAuditStorage,
    GoogleSheetsBudgetStorage,
    GoogleSheetsCategoryStorage,
    GoogleSheetsClient,
    GoogleSheetsTransactionStorage,
    InMemoryAuditStorage,
    InMemoryBudgetStorage,
    InMemoryCategoryStorage,
    InMemoryTransactionStorage,
    NotFoundError,
    StorageError,
    TransactionStorageInterface,
)

__all__ = [
    # Image services
    "CloudinaryImageService",
    "ImageUploadError",
    "InvalidImageError",
    "ReceiptImageError",
    # Receipt scanning
    "GeminiReceiptScanner",
    "ReceiptParseError",
    "ReceiptScanError",
    # Storage services
    "AuditStorageInterface",
    "BudgetStorageInterface",
    "CategoryStorageInterface",
    "ConnectionError",
    "DuplicateError",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsBudgetStorage",
    "GoogleSheetsCategoryStorage",
    "GoogleSheetsClient",
    "GoogleSheetsTransactionStorage",
    "InMemoryAuditStorage",
    "InMemoryBudgetStorage",
    "InMemoryCategoryStorage",
    "InMemoryTransactionStorage",
    "NotFoundError",
    "StorageError",
    "TransactionStorageInterface",
]
