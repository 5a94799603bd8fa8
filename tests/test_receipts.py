"""Tests for receipt reply parsing and image checks (no network)."""

import pytest
from datetime import date
from decimal import Decimal
from io import BytesIO

from PIL import Image

from budgetbook.config import AppSettings, get_settings
from budgetbook.models.budget import ReceiptUpload
from budgetbook.services.image import CloudinaryImageService, InvalidImageError
from budgetbook.services.receipts import (
    ReceiptParseError,
    parse_receipt_response,
    strip_markdown_fences,
)


REPLY = """```json
{
  "store": "Shoprite Lekki",
  "date": "2024-03-09",
  "items": [
    {"name": "Peak Milk", "amount": "1,500", "category": "Food"},
    {"name": "Soap", "amount": 800, "category": "Toiletries"}
  ],
  "total": 2300
}
```"""


class TestStripMarkdownFences:

    def test_removes_json_fence(self):
        assert strip_markdown_fences('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_plain_text_untouched(self):
        assert strip_markdown_fences('  {"a": 1} ') == '{"a": 1}'


class TestParseReceiptResponse:

    def test_full_reply(self):
        receipt = parse_receipt_response(REPLY, receipt_url="https://img/1.jpg")

        assert receipt.store == "Shoprite Lekki"
        assert receipt.purchase_date == date(2024, 3, 9)
        assert [i.name for i in receipt.items] == ["Peak Milk", "Soap"]
        assert receipt.items[0].amount == Decimal("1500")
        assert receipt.total == Decimal("2300")
        assert receipt.items_total == receipt.total
        assert receipt.receipt_url == "https://img/1.jpg"
        assert receipt.raw_text == REPLY

    def test_day_first_date(self):
        receipt = parse_receipt_response('{"store": "X", "date": "09/03/2024"}')
        assert receipt.purchase_date == date(2024, 3, 9)

    def test_unreadable_values_degrade(self):
        receipt = parse_receipt_response(
            '{"date": "last tuesday", "items": [{"name": "Bread", "amount": "??"}, "junk"], "total": -5}'
        )
        assert receipt.purchase_date is None
        assert len(receipt.items) == 1
        assert receipt.items[0].amount == Decimal("0")
        assert receipt.total is None
        assert receipt.store == ""

    @pytest.mark.parametrize("amount", ['"nan"', '"Infinity"', '"-inf"', "NaN", "Infinity"])
    def test_non_finite_amounts_become_zero(self, amount):
        receipt = parse_receipt_response(
            '{"items": [{"name": "x", "amount": %s}], "total": %s}' % (amount, amount)
        )
        assert receipt.items[0].amount == Decimal("0")
        assert receipt.total is None

    def test_overlong_item_name_raises_parse_error(self):
        with pytest.raises(ReceiptParseError, match="invalid fields"):
            parse_receipt_response('{"items": [{"name": "%s", "amount": 5}]}' % ("A" * 250))

    def test_items_not_a_list(self):
        with pytest.raises(ReceiptParseError, match="not a list"):
            parse_receipt_response('{"items": {"name": "x"}}')

    def test_invalid_json(self):
        with pytest.raises(ReceiptParseError):
            parse_receipt_response("Sorry, I can't read this receipt.")

    def test_non_object_json(self):
        with pytest.raises(ReceiptParseError):
            parse_receipt_response("[1, 2, 3]")


def image_bytes(fmt="PNG"):
    buffer = BytesIO()
    Image.new("RGB", (10, 10), "white").save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def image_service(monkeypatch):
    monkeypatch.setenv("CLOUDINARY_CLOUD_NAME", "demo")
    monkeypatch.setenv("CLOUDINARY_API_KEY", "key")
    monkeypatch.setenv("CLOUDINARY_API_SECRET", "secret")
    get_settings.cache_clear()
    yield CloudinaryImageService()
    get_settings.cache_clear()


def make_upload(name="receipt.png", mime_type="image/png", size=0):
    return ReceiptUpload(original_filename=name, file_size_bytes=size, mime_type=mime_type)


class TestCheckImage:

    def test_accepts_png(self, image_service):
        image_service.check_image(image_bytes(), make_upload())

    def test_rejects_non_image_bytes(self, image_service):
        with pytest.raises(InvalidImageError):
            image_service.check_image(b"not an image", make_upload())

    def test_rejects_unsupported_format(self, image_service):
        with pytest.raises(InvalidImageError, match="Unsupported"):
            image_service.check_image(image_bytes("GIF"), make_upload())

    def test_rejects_oversized_upload(self, image_service):
        image_service._app_settings = AppSettings(max_upload_size_mb=1)
        with pytest.raises(InvalidImageError, match="larger than"):
            image_service.check_image(b"x" * (1024 * 1024 + 1), make_upload())

    def test_public_id_is_stable(self, image_service):
        upload = make_upload()
        assert (
            image_service._generate_public_id(upload.upload_id, "a.png")
            == image_service._generate_public_id(upload.upload_id, "a.png")
        )
