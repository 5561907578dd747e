# ============================================================================
# FILE: tests/unit/test_extractors.py
# ============================================================================
"""
Unit tests for PDF extractors
"""

from unittest.mock import patch

from PIL import Image

from table_ingestion.detection.layout import LayoutTableDetector
from table_ingestion.extractors import OCRExtractor, PositionedTokenSource, TextExtractor
from table_ingestion.extractors.text_extractor import page_marker


# ============================================================================
# TEXT EXTRACTOR
# ============================================================================

def test_text_extraction_has_page_markers(table_pdf_bytes):
    text = TextExtractor().extract_text(table_pdf_bytes)

    assert text.startswith("\n\n--- Page 1 ---\n")
    assert "Region" in text
    assert "Pending" in text


def test_text_extraction_multi_page(two_page_table_pdf_bytes):
    text = TextExtractor().extract_text(two_page_table_pdf_bytes)

    assert page_marker(1) in text
    assert page_marker(2) in text


def test_text_extraction_page_cap(two_page_table_pdf_bytes):
    text = TextExtractor().extract_text(two_page_table_pdf_bytes, max_pages=1)

    assert page_marker(2) not in text


def test_text_extraction_invalid_pdf():
    assert TextExtractor().extract_text(b"not a pdf") == ""


def test_text_extraction_falls_back_to_pdfplumber(table_pdf_bytes):
    extractor = TextExtractor()
    with patch.object(extractor, "_extract_with_pypdfium2", side_effect=RuntimeError("pdfium")):
        text = extractor.extract_text(table_pdf_bytes)

    assert "Region" in text


# ============================================================================
# POSITIONED TOKENS
# ============================================================================

def test_tokens_per_page(two_page_table_pdf_bytes):
    pages = PositionedTokenSource().extract_positioned_tokens(two_page_table_pdf_bytes)

    assert len(pages) == 2
    assert len(pages[0]) == 6


def test_token_coordinates_grow_upward(table_pdf_bytes):
    tokens = PositionedTokenSource().extract_positioned_tokens(table_pdf_bytes)[0]
    by_text = {t.text: t for t in tokens}

    assert by_text["Region"].y > by_text["North"].y > by_text["South"].y
    assert by_text["Region"].x == 72
    assert by_text["Sales"].x == 200


def test_token_page_cap(two_page_table_pdf_bytes):
    pages = PositionedTokenSource().extract_positioned_tokens(two_page_table_pdf_bytes, max_pages=1)
    assert len(pages) == 1


def test_tokens_invalid_pdf():
    assert PositionedTokenSource().extract_positioned_tokens(b"garbage") == []


def test_layout_detection_on_rendered_pdf(table_pdf_bytes):
    pages = PositionedTokenSource().extract_positioned_tokens(table_pdf_bytes)
    result = LayoutTableDetector().detect(pages)

    assert len(result.tables) == 1
    table = result.tables[0]
    assert table.headers == ["Region", "Sales", "Status"]
    assert table.data == [["North", "1200", "Active"], ["South", "950", "Pending"]]
    assert table.page_number == 1


def test_prose_pdf_has_no_layout_table(prose_pdf_bytes):
    pages = PositionedTokenSource().extract_positioned_tokens(prose_pdf_bytes)
    assert LayoutTableDetector().detect(pages).tables == []


# ============================================================================
# OCR
# ============================================================================

def test_ocr_skipped_without_tesseract(table_pdf_bytes):
    extractor = OCRExtractor()
    extractor._tesseract_available = False

    assert extractor.perform_ocr(table_pdf_bytes) == ""


def test_ocr_reads_rendered_pages(two_page_table_pdf_bytes):
    extractor = OCRExtractor(dpi=72)
    extractor._tesseract_available = True

    with patch("table_ingestion.extractors.ocr_extractor.pytesseract.image_to_string",
               return_value="Region   Sales") as mock_ocr:
        text = extractor.perform_ocr(two_page_table_pdf_bytes, language="deu")

    assert mock_ocr.call_count == 2
    assert mock_ocr.call_args.kwargs["lang"] == "deu"
    assert text == page_marker(1) + "Region   Sales" + page_marker(2) + "Region   Sales"


def test_ocr_skips_failed_pages(two_page_table_pdf_bytes):
    extractor = OCRExtractor(dpi=72)
    extractor._tesseract_available = True

    with patch("table_ingestion.extractors.ocr_extractor.pytesseract.image_to_string",
               side_effect=[RuntimeError("bad page"), "second"]):
        text = extractor.perform_ocr(two_page_table_pdf_bytes)

    assert text == page_marker(2) + "second"


def test_ocr_invalid_pdf():
    extractor = OCRExtractor()
    extractor._tesseract_available = True

    assert extractor.perform_ocr(b"garbage") == ""


def test_enhance_image_greyscale():
    image = Image.new("RGB", (20, 20), color=(200, 30, 30))
    assert OCRExtractor.enhance_image(image).mode == "L"
