# ============================================================================
# src/table_ingestion/detection/scoring.py
# ============================================================================
"""
Header inference and confidence scoring shared by the detectors.

The two detection paths use different notions of a "header-like" cell:
- layout:       no digit, no '$', no '%'
- text pattern: no digit, no currency symbol, no '%', shorter than 20
                characters and starting with an uppercase letter
Both treat the first row as headers when at least HEADER_RATIO of its cells
qualify.
"""

import math
import re
from typing import Callable, List, Sequence

from ..core.models import clamp, fit_row

NUMERIC_MARK_RE = re.compile(r"[\d$%]")
DIGIT_RE = re.compile(r"\d")
CURRENCY_RE = re.compile(r"[$£€¥]")
UPPERCASE_START_RE = re.compile(r"^[A-Z]")
PURE_NUMBER_RE = re.compile(r"^\d+$")

# Float tolerance for ratio comparisons (5 * 0.6 must count as 3)
_RATIO_EPSILON = 1e-9


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positive values (Python's round() is banker's)."""
    return int(math.floor(value + 0.5))


def is_layout_header_cell(cell: str) -> bool:
    return not NUMERIC_MARK_RE.search(cell)


def is_text_header_cell(cell: str) -> bool:
    return (
        not DIGIT_RE.search(cell)
        and not CURRENCY_RE.search(cell)
        and "%" not in cell
        and len(cell) < 20
        and bool(UPPERCASE_START_RE.match(cell))
    )


def looks_like_header(
    cells: Sequence[str],
    predicate: Callable[[str], bool],
    ratio: float = 0.6,
) -> bool:
    """True when at least `ratio` of the cells satisfy `predicate`."""
    if not cells:
        return False
    hits = sum(1 for cell in cells if predicate(cell))
    return hits >= len(cells) * ratio - _RATIO_EPSILON


def synthesize_headers(count: int) -> List[str]:
    return [f"Column {i}" for i in range(1, count + 1)]


def normalize_row(cells: Sequence[str], width: int) -> List[str]:
    return fit_row(list(cells), width)


def clamp_confidence(value: float, floor: int = 0, ceiling: int = 100) -> int:
    return int(clamp(value, floor, ceiling))


def layout_confidence(headers: Sequence[str], data: Sequence[Sequence[str]]) -> int:
    """
    Score a layout-derived table.

    60 base, +20 when every data row is as wide as the header row,
    +10 when non-empty cells outnumber data rows.
    """
    score = 60
    if all(len(row) == len(headers) for row in data):
        score += 20
    non_empty = sum(1 for row in data for cell in row if cell.strip())
    if non_empty > len(data):
        score += 10
    return score


def text_confidence(
    headers: Sequence[str],
    data: Sequence[Sequence[str]],
    floor: int = 30,
) -> int:
    """
    Score a text-pattern table after row normalisation.

    Args:
        headers: Final header row
        data: Normalised data rows
        floor: Lowest score reported

    Returns:
        Confidence clamped to [floor, 100]
    """
    score = 50

    if len(headers) >= 2:
        score += 10
    if len(data) >= 2:
        score += 10

    if all(len(row) == len(headers) for row in data):
        score += 15

    if headers:
        meaningful = sum(
            1 for h in headers
            if 2 < len(h) < 30 and not PURE_NUMBER_RE.match(h)
        )
        score += round_half_up(meaningful / len(headers) * 10)

    if any(NUMERIC_MARK_RE.search(cell) for row in data for cell in row):
        score += 10

    total_cells = sum(len(row) for row in data)
    if total_cells:
        empty_cells = sum(1 for row in data for cell in row if not cell.strip())
        score -= round_half_up(empty_cells / total_cells * 30)

    return clamp_confidence(score, floor)
