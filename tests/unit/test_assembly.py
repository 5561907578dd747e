# ============================================================================
# FILE: tests/unit/test_assembly.py
# ============================================================================
"""
Unit tests for the table assembly policy
"""

from unittest.mock import Mock

from table_ingestion.core.models import ExtractionMethod, ProcessingOptions, Sensitivity
from table_ingestion.detection.assembly import TableAssembler, combine_text_sources


# ============================================================================
# TEXT COMBINATION
# ============================================================================

def test_combine_both_sources():
    assert combine_text_sources("digital", "ocr") == "digital\n\nocr"


def test_combine_skips_blank_sources():
    assert combine_text_sources("   ", "ocr") == "ocr"
    assert combine_text_sources("digital", "") == "digital"


def test_combine_nothing_returns_ocr_text():
    assert combine_text_sources("", "  ") == "  "


# ============================================================================
# STRATEGY ORDER
# ============================================================================

def test_layout_wins_when_it_finds_tables(layout_page_tokens, sample_pipe_text):
    assembler = TableAssembler()
    result = assembler.assemble([layout_page_tokens], sample_pipe_text)

    assert result.method == ExtractionMethod.LAYOUT
    assert result.tables[0].headers == ["Region", "Sales", "Status"]


def test_text_patterns_used_when_layout_finds_nothing(sample_pipe_text):
    assembler = TableAssembler()
    result = assembler.assemble([], sample_pipe_text, ProcessingOptions())

    assert result.method == ExtractionMethod.TEXT_PATTERN
    assert len(result.tables) == 1


def test_text_detector_receives_options(sample_pipe_text):
    text_detector = Mock()
    text_detector.detect.return_value = Mock(found=False)
    assembler = TableAssembler(text_detector=text_detector)

    options = ProcessingOptions(confidence_threshold=55, table_detection_sensitivity=Sensitivity.HIGH)
    assembler.assemble([], sample_pipe_text, options)

    text_detector.detect.assert_called_once_with(sample_pipe_text, 55, Sensitivity.HIGH)


def test_fallback_single_text_column(sample_prose_text):
    result = TableAssembler().assemble([], sample_prose_text)

    assert result.method == ExtractionMethod.FALLBACK
    table = result.tables[0]
    assert table.headers == ["Text"]
    assert table.data == [["Hello world"], ["This is a note"]]
    assert table.confidence == 80
    assert table.bounding_box.height == 40


def test_fallback_for_empty_text_still_returns_one_table():
    result = TableAssembler().assemble([], "")

    assert len(result.tables) == 1
    assert result.tables[0].data == []
    assert result.tables[0].bounding_box.height == 20


def test_fallback_confidence_configurable(sample_prose_text):
    result = TableAssembler(fallback_confidence=50).assemble([], sample_prose_text)
    assert result.tables[0].confidence == 50


# ============================================================================
# SOURCE ORCHESTRATION
# ============================================================================

def test_extract_from_pdf_reports_progress(stub_assembler_factory, sample_pipe_text):
    assembler = stub_assembler_factory(text=sample_pipe_text)
    progress = []

    result = assembler.extract_from_pdf(b"%PDF", ProcessingOptions(), lambda p, m: progress.append(p))

    assert progress == [10, 60, 80]
    assert result.method == ExtractionMethod.TEXT_PATTERN
    assembler.ocr_extractor.perform_ocr.assert_not_called()


def test_extract_from_pdf_runs_ocr_when_language_set(stub_assembler_factory):
    assembler = stub_assembler_factory(text="", ocr_text="Name | Qty | Unit\nBolt | 4 | ea\nNut | 9 | ea")
    progress = []

    result = assembler.extract_from_pdf(
        b"%PDF",
        ProcessingOptions(ocr_language="eng"),
        lambda p, m: progress.append(p),
    )

    assert progress == [10, 40, 60, 80]
    assembler.ocr_extractor.perform_ocr.assert_called_once_with(b"%PDF", "eng")
    assert result.tables[0].headers == ["Name", "Qty", "Unit"]


def test_extract_from_pdf_prefers_layout_tokens(stub_assembler_factory, layout_page_tokens, sample_pipe_text):
    assembler = stub_assembler_factory(text=sample_pipe_text, token_pages=[layout_page_tokens])

    result = assembler.extract_from_pdf(b"%PDF")

    assert result.method == ExtractionMethod.LAYOUT
    assembler.token_source.extract_positioned_tokens.assert_called_once_with(b"%PDF", 10)
