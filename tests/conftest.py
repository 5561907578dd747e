# ============================================================================
# FILE: tests/conftest.py
# ============================================================================
"""
Pytest configuration and shared fixtures for testing.
"""

import io
from unittest.mock import Mock

import pytest

from table_ingestion.core import JobStore, OriginalFile, Token
from table_ingestion.detection.assembly import TableAssembler
from table_ingestion.extractors import OCRExtractor, PositionedTokenSource, TextExtractor


@pytest.fixture
def sample_pipe_text():
    """Pipe-delimited sales table surrounded by prose"""
    return """
    Quarterly Sales Report

    Region | Sales Target | Actual Sales | Status
    North | $1,200 | $1,350 | Exceeded
    South | $900 | $850 | Missed

    Prepared by the finance team.
    """


@pytest.fixture
def sample_tab_text():
    """Tab-separated table with an empty cell"""
    return "Name\tDept\tRole\nAlice\tEng\tLead\nBob\t\tAnalyst\n"


@pytest.fixture
def sample_prose_text():
    """Text with no tabular structure"""
    return "Hello world\nThis is a note\n"


@pytest.fixture
def layout_page_tokens():
    """Positioned tokens for a 3-column table (y grows upward)"""
    return [
        Token("Region", 72, 720), Token("Sales", 200, 720), Token("Status", 330, 720),
        Token("North", 72, 700), Token("1200", 200, 700), Token("Active", 330, 700),
        Token("South", 72, 680), Token("950", 200, 680), Token("Pending", 330, 680),
    ]


def _draw_table_pdf(rows, columns=(72, 200, 330), top=720, pages=1) -> bytes:
    from reportlab.pdfgen import canvas
    from reportlab.lib.pagesizes import letter

    buffer = io.BytesIO()
    c = canvas.Canvas(buffer, pagesize=letter)
    for _ in range(pages):
        for row_index, row in enumerate(rows):
            y = top - row_index * 20
            for x, cell in zip(columns, row):
                c.drawString(x, y, cell)
        c.showPage()
    c.save()
    return buffer.getvalue()


@pytest.fixture
def table_pdf_bytes():
    """Single-page PDF with a 3-column table drawn at fixed x positions"""
    return _draw_table_pdf([
        ("Region", "Sales", "Status"),
        ("North", "1200", "Active"),
        ("South", "950", "Pending"),
    ])


@pytest.fixture
def two_page_table_pdf_bytes():
    """Two identical table pages"""
    return _draw_table_pdf([
        ("Region", "Sales", "Status"),
        ("North", "1200", "Active"),
    ], pages=2)


@pytest.fixture
def prose_pdf_bytes():
    """PDF with single-column prose only"""
    from reportlab.pdfgen import canvas
    from reportlab.lib.pagesizes import letter

    buffer = io.BytesIO()
    c = canvas.Canvas(buffer, pagesize=letter)
    c.drawString(72, 720, "Meeting notes")
    c.drawString(72, 700, "Nothing tabular here")
    c.save()
    return buffer.getvalue()


@pytest.fixture
def job_store(tmp_path):
    """Job store on a throwaway database"""
    return JobStore(tmp_path / "jobs.db")


@pytest.fixture
def uploaded_job(job_store):
    """Pending job with a stored (dummy) PDF"""
    job = job_store.create_job("report.pdf")
    job_store.save_original_file(job.id, OriginalFile(filename="report.pdf", content=b"%PDF-1.4 dummy"))
    return job


def make_assembler(text="", ocr_text="", token_pages=None) -> TableAssembler:
    """Assembler whose sources return canned output"""
    token_source = Mock(spec=PositionedTokenSource)
    token_source.extract_positioned_tokens.return_value = token_pages or []
    text_extractor = Mock(spec=TextExtractor)
    text_extractor.extract_text.return_value = text
    ocr_extractor = Mock(spec=OCRExtractor)
    ocr_extractor.perform_ocr.return_value = ocr_text
    return TableAssembler(
        token_source=token_source,
        text_extractor=text_extractor,
        ocr_extractor=ocr_extractor,
    )


@pytest.fixture
def stub_assembler_factory():
    """Factory for assemblers backed by canned sources"""
    return make_assembler
