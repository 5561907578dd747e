# src/table_ingestion/extractors/text_extractor.py
"""
Digital text extraction from PDF bytes.

Extraction cascade:
1. pypdfium2: Fast, good Unicode support
2. pdfplumber: Fallback when pdfium cannot open the document

Each page is prefixed with a "--- Page N ---" marker line. Extraction never
raises: an unreadable document produces an empty string.
"""

from io import BytesIO
from typing import List, Optional
import logging

import pdfplumber
import pypdfium2

from ..config import detection_settings


def page_marker(page_number: int) -> str:
    return f"\n\n--- Page {page_number} ---\n"


class TextExtractor:
    """
    Page-separated plain text from a PDF's text layer.

    Scanned PDFs without a text layer yield "" so callers can fall back to OCR.
    """

    def __init__(self, max_pages: Optional[int] = None):
        self.max_pages = max_pages or detection_settings.TEXT_MAX_PAGES
        self.logger = logging.getLogger(__name__)

    def extract_text(self, pdf_bytes: bytes, max_pages: Optional[int] = None) -> str:
        """
        Extract text from the first pages of a PDF.

        Args:
            pdf_bytes: Raw PDF content
            max_pages: Page cap (defaults to TEXT_MAX_PAGES)

        Returns:
            Concatenated page texts with page markers, or "" on failure
        """
        limit = max_pages or self.max_pages

        try:
            pages = self._extract_with_pypdfium2(pdf_bytes, limit)
        except Exception as e:
            self.logger.warning(f"pypdfium2 failed, trying pdfplumber: {e}")
            try:
                pages = self._extract_with_pdfplumber(pdf_bytes, limit)
            except Exception as e2:
                self.logger.warning(f"PDF text extraction failed: {e2}")
                return ""

        if not any(text.strip() for text in pages):
            self.logger.debug("No text layer found")
            return ""

        self.logger.debug(f"Extracted text from {len(pages)} pages")
        return "".join(
            page_marker(page_number) + text
            for page_number, text in enumerate(pages, start=1)
        )

    def _extract_with_pypdfium2(self, pdf_bytes: bytes, limit: int) -> List[str]:
        pdf = pypdfium2.PdfDocument(pdf_bytes)
        try:
            texts = []
            for page_index in range(min(len(pdf), limit)):
                page = pdf[page_index]
                try:
                    text = page.get_textpage().get_text_range() or ""
                except Exception as e:
                    self.logger.warning(f"Could not read text of page {page_index + 1}: {e}")
                    text = ""
                texts.append(text.replace("\r\n", "\n").replace("\r", "\n"))
            return texts
        finally:
            pdf.close()

    def _extract_with_pdfplumber(self, pdf_bytes: bytes, limit: int) -> List[str]:
        with pdfplumber.open(BytesIO(pdf_bytes)) as pdf:
            return [page.extract_text() or "" for page in pdf.pages[:limit]]
