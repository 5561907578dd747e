"""
Document readers feeding the detectors.

- Positioned tokens (pdfplumber)
- Digital text (pypdfium2, pdfplumber)
- OCR text (pypdfium2 rendering + Tesseract)
"""

from .token_source import PositionedTokenSource
from .text_extractor import TextExtractor
from .ocr_extractor import OCRExtractor

__all__ = [
    'PositionedTokenSource',
    'TextExtractor',
    'OCRExtractor',
]
