"""Receipt image storage package."""

from budgetbook.services.image.cloudinary_service import (
    CloudinaryImageService,
    ImageUploadError,
    InvalidImageError,
    ReceiptImageError,
)

__all__ = [
    "CloudinaryImageService",
    "ImageUploadError",
    "InvalidImageError",
    "ReceiptImageError",
]
