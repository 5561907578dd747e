# ============================================================================
# src/table_ingestion/detection/assembly.py
# ============================================================================
"""
Table Assembly

Chooses which strategy's tables a document gets:

    1. Layout analysis over positioned tokens (first pages only)
    2. Text-pattern detection over the combined digital + OCR text
    3. A single "Text" column holding every non-blank line

The first strategy that yields at least one table wins; later strategies
are not consulted.
"""

import logging
from typing import Callable, Optional, Sequence

from ..config import detection_settings
from ..core.models import (
    BoundingBox,
    DetectionResult,
    ExtractedTable,
    ExtractionMethod,
    ProcessingOptions,
    Token,
)
from .layout import LayoutTableDetector
from .text_pattern import TextPatternTableDetector

ProgressCallback = Callable[[int, str], None]

FALLBACK_HEADER = "Text"
FALLBACK_ROW_HEIGHT = 20


def combine_text_sources(pdf_text: str, ocr_text: str) -> str:
    """
    Join digital and OCR text with a blank line, skipping blank sources.

    When both are blank the OCR text is returned as-is.
    """
    parts = [text for text in (pdf_text, ocr_text) if text and text.strip()]
    return "\n\n".join(parts) or ocr_text


class TableAssembler:
    """
    Runs the detection strategies in order of preference.

    Sources are optional; they are only needed by extract_from_pdf().
    """

    def __init__(
        self,
        layout_detector: Optional[LayoutTableDetector] = None,
        text_detector: Optional[TextPatternTableDetector] = None,
        token_source=None,
        text_extractor=None,
        ocr_extractor=None,
        fallback_confidence: Optional[int] = None,
    ):
        self.layout_detector = layout_detector or LayoutTableDetector()
        self.text_detector = text_detector or TextPatternTableDetector()
        self.token_source = token_source
        self.text_extractor = text_extractor
        self.ocr_extractor = ocr_extractor
        self.fallback_confidence = (
            detection_settings.FALLBACK_CONFIDENCE if fallback_confidence is None else fallback_confidence
        )
        self.logger = logging.getLogger(__name__)

    def assemble(
        self,
        token_pages: Optional[Sequence[Sequence[Token]]],
        text: str,
        options: Optional[ProcessingOptions] = None,
    ) -> DetectionResult:
        """
        Pick the tables for one document.

        Args:
            token_pages: Positioned tokens per page (may be empty)
            text: Combined plain text of the document
            options: Threshold and sensitivity for the text-pattern path

        Returns:
            DetectionResult from the first strategy that produced tables
        """
        options = options or ProcessingOptions()

        layout = self.layout_detector.detect(token_pages or [])
        if layout.found:
            self.logger.info(f"Layout analysis found {len(layout.tables)} tables")
            return layout

        patterns = self.text_detector.detect(
            text,
            options.confidence_threshold,
            options.table_detection_sensitivity,
        )
        if patterns.found:
            self.logger.info(f"Text-pattern detection found {len(patterns.tables)} tables")
            return patterns

        self.logger.info("No tables detected, falling back to single-column text")
        return self.build_fallback(text)

    def build_fallback(self, text: str) -> DetectionResult:
        lines = [line.strip() for line in (text or "").splitlines()]
        lines = [line for line in lines if line]

        table = ExtractedTable(
            table_index=0,
            headers=[FALLBACK_HEADER],
            data=[[line] for line in lines],
            confidence=self.fallback_confidence,
            bounding_box=BoundingBox(
                x=0,
                y=0,
                width=100,
                height=max(FALLBACK_ROW_HEIGHT, len(lines) * FALLBACK_ROW_HEIGHT),
            ),
            method=ExtractionMethod.FALLBACK,
        )
        return DetectionResult(tables=[table], method=ExtractionMethod.FALLBACK)

    def extract_from_pdf(
        self,
        pdf_bytes: bytes,
        options: Optional[ProcessingOptions] = None,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> DetectionResult:
        """
        Read a PDF through the configured sources and assemble its tables.

        Progress is reported at 10 (text extraction), 40 (OCR, only when an
        OCR language is set), 60 (combining text) and 80 (table detection).
        """
        options = options or ProcessingOptions()

        def report(progress: int, message: str):
            self.logger.debug(f"[{progress}%] {message}")
            if progress_callback:
                progress_callback(progress, message)

        report(10, "Extracting text from PDF...")
        pdf_text = self.text_extractor.extract_text(pdf_bytes) if self.text_extractor else ""

        ocr_text = ""
        if options.ocr_language and self.ocr_extractor:
            report(40, "Performing OCR on PDF images...")
            ocr_text = self.ocr_extractor.perform_ocr(pdf_bytes, options.ocr_language)

        report(60, "Combining text sources...")
        combined = combine_text_sources(pdf_text, ocr_text)

        report(80, "Detecting and extracting tables...")
        token_pages = (
            self.token_source.extract_positioned_tokens(pdf_bytes, self.layout_detector.max_pages)
            if self.token_source else []
        )
        return self.assemble(token_pages, combined, options)
