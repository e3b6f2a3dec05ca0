#!/usr/bin/env python3
"""
Generate test PDF documents for print dispatch testing.

Creates blank-page PDFs that pass upload validation.

Usage:
    python scripts/generate_test_pdf.py                      # One A4 page
    python scripts/generate_test_pdf.py --pages 3            # Three pages
    python scripts/generate_test_pdf.py --paper letter       # US Letter
    python scripts/generate_test_pdf.py --output my.pdf      # Custom filename
"""

import argparse
from pathlib import Path

from pypdf import PdfWriter

# Page sizes in PDF points (1/72 inch)
PAPER_SIZES = {
    "a4": (595.28, 841.89),
    "a5": (419.53, 595.28),
    "letter": (612, 792),
    "legal": (612, 1008),
}


def create_test_pdf(
    pages: int = 1,
    paper: str = "a4",
    output: str = "test_document.pdf"
) -> Path:
    """Create a PDF with blank pages of the given paper size."""
    width, height = PAPER_SIZES[paper]

    writer = PdfWriter()
    for _ in range(pages):
        writer.add_blank_page(width=width, height=height)
    writer.add_metadata({"/Title": "Print dispatch test document"})

    output_path = Path(output)
    with open(output_path, "wb") as f:
        writer.write(f)

    return output_path


def main():
    parser = argparse.ArgumentParser(description="Generate test PDF documents")
    parser.add_argument("--pages", type=int, default=1, help="Number of pages")
    parser.add_argument("--paper", choices=sorted(PAPER_SIZES), default="a4", help="Paper size")
    parser.add_argument("--output", "-o", default="test_document.pdf", help="Output filename")
    args = parser.parse_args()

    if args.pages < 1:
        parser.error("--pages must be at least 1")

    path = create_test_pdf(pages=args.pages, paper=args.paper, output=args.output)
    print(f"Created: {path} ({args.pages} page(s), {args.paper})")
    print(f"Print it with: curl -X POST http://127.0.0.1:8000/print/pdf-stream -F 'file=@{path}'")


if __name__ == "__main__":
    main()
