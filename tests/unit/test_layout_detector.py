# ============================================================================
# FILE: tests/unit/test_layout_detector.py
# ============================================================================
"""
Unit tests for layout-based table detection
"""

import pytest

from table_ingestion.core.models import ColumnBand, ExtractionMethod, Token
from table_ingestion.detection.layout import LayoutTableDetector


@pytest.fixture
def detector():
    return LayoutTableDetector()


# ============================================================================
# ROW CLUSTERING
# ============================================================================

def test_rows_cluster_within_tolerance(detector):
    """Tokens within 3 units share a row, keeping the first token's y"""
    tokens = [Token("a", 10, 100), Token("b", 50, 102.5), Token("c", 90, 97.5)]
    rows = detector.cluster_rows(tokens)

    assert len(rows) == 1
    assert rows[0].y == 100
    assert [t.text for t in rows[0].tokens] == ["a", "b", "c"]


def test_rows_sorted_top_first_tokens_left_to_right(detector):
    """Rows descend by y, tokens ascend by x"""
    tokens = [Token("low-right", 80, 50), Token("high", 10, 200), Token("low-left", 5, 51)]
    rows = detector.cluster_rows(tokens)

    assert [r.y for r in rows] == [200, 50]
    assert [t.text for t in rows[1].tokens] == ["low-left", "low-right"]


def test_token_joins_first_matching_row(detector):
    """A token within tolerance of two rows joins the one created first"""
    tokens = [Token("a", 0, 100), Token("b", 0, 105), Token("c", 40, 102.5)]
    rows = detector.cluster_rows(tokens)

    by_y = {r.y: [t.text for t in r.tokens] for r in rows}
    assert by_y[100] == ["a", "c"]
    assert by_y[105] == ["b"]


# ============================================================================
# COLUMN BANDS
# ============================================================================

def test_bands_cut_on_large_gaps(detector):
    """Gaps over 20 units start a new band; last band is widened by 1"""
    tokens = [Token("a", 72, 0), Token("b", 80, 0), Token("c", 200, 0), Token("d", 330, 0)]
    bands = detector.derive_bands(tokens)

    assert bands == [
        ColumnBand(72, 200),
        ColumnBand(200, 330),
        ColumnBand(330, 331),
    ]


def test_gap_of_exactly_threshold_does_not_cut(detector):
    tokens = [Token("a", 0, 0), Token("b", 20, 0)]
    assert len(detector.derive_bands(tokens)) == 1


def test_token_on_cut_belongs_to_band_starting_there(detector):
    bands = [ColumnBand(0, 50), ColumnBand(50, 100)]
    assert detector.locate_band(bands, 50) == 1
    assert detector.locate_band(bands, 49.99) == 0


def test_token_outside_all_bands_goes_to_first(detector):
    bands = [ColumnBand(10, 50), ColumnBand(50, 100)]
    assert detector.locate_band(bands, 500) == 0


# ============================================================================
# PAGE DETECTION
# ============================================================================

def test_detect_page_with_header_row(detector, layout_page_tokens):
    """3-column page with a textual first row"""
    table = detector.detect_page(layout_page_tokens, table_index=0, page_number=1)

    assert table is not None
    assert table.headers == ["Region", "Sales", "Status"]
    assert table.data == [["North", "1200", "Active"], ["South", "950", "Pending"]]
    assert table.confidence == 90
    assert table.method == ExtractionMethod.LAYOUT
    assert table.page_number == 1


def test_detect_page_bounding_box(detector, layout_page_tokens):
    table = detector.detect_page(layout_page_tokens, table_index=0)

    assert table.bounding_box.x == 72
    assert table.bounding_box.y == 720
    assert table.bounding_box.width == pytest.approx(331 - 72)
    assert table.bounding_box.height == 3 * 12


def test_numeric_first_row_gets_synthesized_headers(detector):
    """First row without header-like cells becomes data"""
    tokens = [
        Token("2021", 10, 100), Token("$5", 100, 100),
        Token("2022", 10, 80), Token("$7", 100, 80),
    ]
    table = detector.detect_page(tokens, table_index=0)

    assert table.headers == ["Column 1", "Column 2"]
    assert table.data == [["2021", "$5"], ["2022", "$7"]]


def test_single_column_page_rejected(detector):
    tokens = [Token("Line one", 72, 700), Token("Line two", 72, 680)]
    assert detector.detect_page(tokens, table_index=0) is None


def test_too_many_columns_rejected(detector):
    tokens = [Token(f"c{i}", i * 30, 100) for i in range(13)]
    assert detector.detect_page(tokens, table_index=0) is None


def test_twelve_columns_accepted(detector):
    names = "ABCDEFGHIJKL"
    tokens = [Token(name, i * 30, 100) for i, name in enumerate(names)]
    tokens += [Token(str(i), i * 30, 80) for i in range(12)]

    table = detector.detect_page(tokens, table_index=0)

    assert table is not None
    assert table.headers == list(names)
    assert table.data == [[str(i) for i in range(12)]]


def test_blank_tokens_ignored(detector):
    assert detector.detect_page([Token("  ", 10, 10), Token("", 90, 10)], table_index=0) is None


def test_cells_in_same_band_joined_with_space(detector):
    tokens = [
        Token("Name", 10, 100), Token("Amount", 100, 100),
        Token("Jane", 10, 80), Token("Doe", 15, 80), Token("12", 100, 80),
    ]
    table = detector.detect_page(tokens, table_index=0)

    assert table.data == [["Jane Doe", "12"]]


def test_empty_header_cell_named_column(detector):
    """Header row with a gap still counts as header; blank cell is renamed"""
    tokens = [
        Token("Item", 10, 100), Token("Qty", 200, 100),
        Token("Bolt", 10, 80), Token("Each", 100, 80), Token("4", 200, 80),
    ]
    table = detector.detect_page(tokens, table_index=0)

    assert table.headers == ["Item", "Column", "Qty"]
    assert table.data == [["Bolt", "Each", "4"]]


# ============================================================================
# DOCUMENT DETECTION
# ============================================================================

def test_detect_numbers_tables_across_pages(detector, layout_page_tokens):
    """Rejected pages do not consume a table index"""
    pages = [layout_page_tokens, [Token("prose", 72, 700)], layout_page_tokens]
    result = detector.detect(pages)

    assert [t.table_index for t in result.tables] == [0, 1]
    assert [t.page_number for t in result.tables] == [1, 3]
    assert result.pages_examined == 3
    assert result.pages_rejected == 1


def test_detect_respects_page_cap(layout_page_tokens):
    detector = LayoutTableDetector(max_pages=2)
    result = detector.detect([layout_page_tokens] * 5)

    assert len(result.tables) == 2
    assert result.pages_examined == 2


def test_document_failure_yields_empty_result(detector, layout_page_tokens):
    def broken_pages():
        yield layout_page_tokens
        raise RuntimeError("stream closed")

    result = detector.detect(broken_pages())

    assert not result.found
    assert result.method == ExtractionMethod.LAYOUT


def test_no_pages(detector):
    result = detector.detect([])
    assert result.tables == []


def test_page_failure_does_not_affect_other_pages(detector, layout_page_tokens, monkeypatch):
    detect_page = detector.detect_page

    def fail_on_second_page(tokens, table_index, page_number=None):
        if page_number == 2:
            raise ValueError("corrupt page")
        return detect_page(tokens, table_index, page_number)

    monkeypatch.setattr(detector, "detect_page", fail_on_second_page)
    result = detector.detect([layout_page_tokens] * 3)

    assert [t.page_number for t in result.tables] == [1, 3]
    assert [t.table_index for t in result.tables] == [0, 1]
    assert result.pages_rejected == 1
