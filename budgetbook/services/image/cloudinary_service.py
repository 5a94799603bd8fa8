"""
Receipt Image Storage using Cloudinary

Receipt photos are kept so a saved transaction can link back to the
receipt it came from. This service handles:
1. Checking the upload is a real, decodable image of an accepted size
2. Uploading it to Cloudinary under the receipts folder
3. Returning the secure URL

CRITICAL: We never store files that don't decode as images.
"""

import hashlib
from io import BytesIO
from typing import Optional
from uuid import UUID

import cloudinary
import cloudinary.exceptions
import cloudinary.uploader
from PIL import Image, UnidentifiedImageError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from budgetbook.config import get_settings
from budgetbook.models.budget import ReceiptUpload


class ReceiptImageError(Exception):
    """Base exception for receipt image errors."""
    pass


class InvalidImageError(ReceiptImageError):
    """The uploaded bytes are not a usable image."""
    pass


class ImageUploadError(ReceiptImageError):
    """Failed to upload image to Cloudinary."""
    pass


class CloudinaryImageService:
    """Stores receipt images on Cloudinary."""

    def __init__(self):
        self._settings = get_settings().cloudinary
        self._app_settings = get_settings().app
        self._configured = False

    def _configure(self):
        """Configure Cloudinary SDK."""
        if not self._configured:
            cloudinary.config(
                cloud_name=self._settings.cloud_name,
                api_key=self._settings.api_key,
                api_secret=self._settings.api_secret,
                secure=True,
            )
            self._configured = True

    def _generate_public_id(self, upload_id: UUID, filename: str) -> str:
        """
        Generate a unique public ID for Cloudinary.

        Format: {upload_id}_{filename_hash}, stored under the receipts folder.
        """
        filename_hash = hashlib.md5(filename.encode()).hexdigest()[:8]
        return f"{upload_id}_{filename_hash}"

    def check_image(self, image_bytes: bytes, upload: ReceiptUpload) -> None:
        """
        Reject oversized files and anything Pillow can't decode.

        Raises:
            InvalidImageError: with a message fit for the user
        """
        max_bytes = self._app_settings.max_upload_size_bytes
        if len(image_bytes) > max_bytes:
            raise InvalidImageError(
                f"{upload.original_filename} is larger than "
                f"{self._app_settings.max_upload_size_mb} MB"
            )

        try:
            with Image.open(BytesIO(image_bytes)) as img:
                img.verify()
                image_format = (img.format or "").lower()
        except (UnidentifiedImageError, OSError) as e:
            raise InvalidImageError(f"{upload.original_filename} is not a readable image: {e}")

        supported = self._app_settings.supported_formats_list
        if image_format and image_format not in supported:
            raise InvalidImageError(
                f"Unsupported image format {image_format}. "
                f"Allowed: {', '.join(supported)}"
            )

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type(ImageUploadError),
        reraise=True,
    )
    async def upload_receipt(
        self,
        image_bytes: bytes,
        upload: ReceiptUpload,
    ) -> str:
        """
        Upload a receipt image.

        Uploading the same upload_id twice overwrites the same public ID,
        so retries are safe.

        Returns:
            The secure URL of the stored image

        Raises:
            InvalidImageError: If the bytes aren't an acceptable image
            ImageUploadError: If upload fails
        """
        self.check_image(image_bytes, upload)
        self._configure()

        try:
            result = cloudinary.uploader.upload(
                image_bytes,
                public_id=self._generate_public_id(
                    upload.upload_id,
                    upload.original_filename,
                ),
                folder=self._settings.receipts_folder,
                resource_type="image",
                overwrite=True,
            )
        except cloudinary.exceptions.Error as e:
            raise ImageUploadError(f"Cloudinary error: {e}")
        except Exception as e:
            raise ImageUploadError(f"Failed to upload receipt image: {e}")

        url: Optional[str] = result.get("secure_url") or result.get("url")
        if not url:
            raise ImageUploadError("No URL returned from Cloudinary")
        return url
