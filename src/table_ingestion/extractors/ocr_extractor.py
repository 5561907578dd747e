# src/table_ingestion/extractors/ocr_extractor.py
"""
OCR Extraction for Scanned PDFs

Renders pages with pypdfium2, cleans them up with Pillow (greyscale,
contrast normalisation, sharpening) and reads them with Tesseract.
Inter-word spacing is preserved so column gaps survive into the text, where
the text-pattern detector can split on them.
"""

from typing import List, Optional, Tuple
import logging
import shutil

import pypdfium2
import pytesseract
from PIL import Image, ImageFilter, ImageOps

from ..config import detection_settings
from .text_extractor import page_marker

# Fully automatic page segmentation, keep runs of spaces between words
TESSERACT_CONFIG = "--psm 3 -c preserve_interword_spaces=1"


class OCRExtractor:
    """
    Tesseract OCR over the first pages of a PDF.

    Never raises: a missing Tesseract binary, an unreadable document or a
    failed page all degrade to less (or no) text.
    """

    def __init__(self, dpi: Optional[int] = None, max_pages: Optional[int] = None):
        self.dpi = dpi or detection_settings.OCR_DPI
        self.max_pages = max_pages or detection_settings.OCR_MAX_PAGES
        self.logger = logging.getLogger(__name__)
        self._tesseract_available: Optional[bool] = None

    @property
    def tesseract_available(self) -> bool:
        """Check if Tesseract is installed."""
        if self._tesseract_available is None:
            self._tesseract_available = shutil.which('tesseract') is not None
            if not self._tesseract_available:
                self.logger.warning("Tesseract OCR not found, OCR disabled")
        return self._tesseract_available

    def perform_ocr(
        self,
        pdf_bytes: bytes,
        language: str = "eng",
        max_pages: Optional[int] = None,
    ) -> str:
        """
        OCR the first pages of a PDF.

        Args:
            pdf_bytes: Raw PDF content
            language: Tesseract language code (e.g. "eng", "deu")
            max_pages: Page cap (defaults to OCR_MAX_PAGES)

        Returns:
            Page-separated recognised text, or "" when OCR is unavailable
        """
        if not self.tesseract_available:
            return ""

        limit = max_pages or self.max_pages
        try:
            images = self._pdf_to_images(pdf_bytes, limit)
        except Exception as e:
            self.logger.warning(f"Could not render PDF for OCR: {e}")
            return ""

        texts = []
        for page_number, image in images:
            try:
                text = self._ocr_image(self.enhance_image(image), language)
            except Exception as e:
                self.logger.warning(f"OCR failed for page {page_number}: {e}")
                continue
            texts.append(page_marker(page_number) + text)

        self.logger.debug(f"OCR read {len(texts)} of {len(images)} pages")
        return "".join(texts)

    @staticmethod
    def enhance_image(image: Image.Image) -> Image.Image:
        """Greyscale, stretch contrast and sharpen a rendered page."""
        image = ImageOps.grayscale(image)
        image = ImageOps.autocontrast(image)
        return image.filter(ImageFilter.SHARPEN)

    def _ocr_image(self, image: Image.Image, language: str) -> str:
        return pytesseract.image_to_string(image, lang=language, config=TESSERACT_CONFIG)

    def _pdf_to_images(self, pdf_bytes: bytes, limit: int) -> List[Tuple[int, Image.Image]]:
        """
        Convert PDF pages to PIL Images.

        Returns:
            List of (page_number, PIL.Image) tuples, page numbers 1-based
        """
        images = []
        scale = self.dpi / 72.0  # PDF points to pixels

        pdf = pypdfium2.PdfDocument(pdf_bytes)
        try:
            for page_index in range(min(len(pdf), limit)):
                bitmap = pdf[page_index].render(scale=scale)
                images.append((page_index + 1, bitmap.to_pil()))
        finally:
            pdf.close()

        return images
