"""
PDF validation for uploaded documents.

Uploads are checked before they reach the spooler so a truncated or
mislabelled file fails with a clear 400 instead of a printer-side error.
"""

from dataclasses import dataclass
from io import BytesIO
from typing import Optional

from pypdf import PdfReader


@dataclass
class DocumentValidationResult:
    valid: bool
    page_count: Optional[int] = None
    encrypted: bool = False
    error: Optional[str] = None
    error_code: Optional[str] = None


def validate_pdf(data: bytes) -> DocumentValidationResult:
    """
    Validate a PDF document.

    Checks the magic bytes, then parses the document with pypdf to count
    pages. Encrypted documents are accepted without a page count.

    Args:
        data: Raw PDF bytes

    Returns:
        DocumentValidationResult with validation details
    """
    if not data:
        return DocumentValidationResult(
            valid=False,
            error="No data provided",
            error_code="EMPTY_DATA"
        )

    if not data.startswith(b"%PDF"):
        return DocumentValidationResult(
            valid=False,
            error="File does not appear to be a PDF",
            error_code="INVALID_FORMAT"
        )

    try:
        reader = PdfReader(BytesIO(data))
        encrypted = reader.is_encrypted
        page_count = None if encrypted else len(reader.pages)
    except Exception as e:
        return DocumentValidationResult(
            valid=False,
            error=f"Invalid PDF: {e}",
            error_code="CORRUPT_PDF"
        )

    if page_count == 0:
        return DocumentValidationResult(
            valid=False,
            page_count=0,
            error="PDF has no pages",
            error_code="NO_PAGES"
        )

    return DocumentValidationResult(
        valid=True,
        page_count=page_count,
        encrypted=encrypted
    )
