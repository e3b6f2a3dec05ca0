"""Tests for PDF upload validation."""

from conftest import make_pdf_bytes
from print_dispatch.validation import validate_pdf


class TestDocumentValidation:
    def test_valid_pdf(self):
        result = validate_pdf(make_pdf_bytes(pages=3))
        assert result.valid
        assert result.page_count == 3
        assert not result.encrypted

    def test_empty_data(self):
        result = validate_pdf(b"")
        assert not result.valid
        assert result.error_code == "EMPTY_DATA"

    def test_not_a_pdf(self):
        result = validate_pdf(b"PK\x03\x04 this is a docx")
        assert not result.valid
        assert result.error_code == "INVALID_FORMAT"

    def test_truncated_pdf(self):
        result = validate_pdf(b"%PDF-1.4\n1 0 obj<</Type/Catalog")
        assert not result.valid
        assert result.error_code == "CORRUPT_PDF"
