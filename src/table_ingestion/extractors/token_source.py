# src/table_ingestion/extractors/token_source.py
"""
Positioned token source backed by pdfplumber.

pdfplumber measures `top`/`bottom` from the top edge of the page; tokens use
PDF user space where y grows upward, so y = page height - bottom.
"""

from io import BytesIO
from typing import List, Optional
import logging

import pdfplumber

from ..config import detection_settings
from ..core.models import Token


class PositionedTokenSource:
    """
    Extracts word-level tokens with their baseline position.

    Blank characters inside a word run are kept so multi-word cells such as
    "North America" arrive as a single token.
    """

    def __init__(
        self,
        max_pages: Optional[int] = None,
        x_tolerance: float = 3,
        y_tolerance: float = 3,
    ):
        self.max_pages = max_pages or detection_settings.LAYOUT_MAX_PAGES
        self.x_tolerance = x_tolerance
        self.y_tolerance = y_tolerance
        self.logger = logging.getLogger(__name__)

    def extract_positioned_tokens(
        self,
        pdf_bytes: bytes,
        max_pages: Optional[int] = None,
    ) -> List[List[Token]]:
        """
        Tokens per page for the first `max_pages` pages.

        A page that cannot be read contributes an empty list; a document that
        cannot be opened yields [].
        """
        limit = max_pages or self.max_pages
        pages: List[List[Token]] = []

        try:
            with pdfplumber.open(BytesIO(pdf_bytes)) as pdf:
                for page_number, page in enumerate(pdf.pages[:limit], start=1):
                    try:
                        pages.append(self._page_tokens(page))
                    except Exception as e:
                        self.logger.warning(f"Token extraction failed on page {page_number}: {e}")
                        pages.append([])
        except Exception as e:
            self.logger.warning(f"Could not open PDF for token extraction: {e}")
            return []

        return pages

    def _page_tokens(self, page) -> List[Token]:
        height = float(page.height)
        words = page.extract_words(
            keep_blank_chars=True,
            x_tolerance=self.x_tolerance,
            y_tolerance=self.y_tolerance,
        ) or []
        return [
            Token(
                text=word["text"],
                x=round(float(word["x0"]), 2),
                y=round(height - float(word["bottom"]), 2),
            )
            for word in words
            if word.get("text", "").strip()
        ]
