# ============================================================================
# src/table_ingestion/detection/layout.py
# ============================================================================
"""
Layout Table Detector

Reconstructs one table per page from positioned text tokens:

1. Drop tokens whose text is blank
2. Cluster tokens into rows (|dy| <= ROW_Y_TOLERANCE joins the first
   matching row, which keeps the y of its first token)
3. Derive column bands from the sorted x positions, cutting wherever two
   consecutive positions are more than COLUMN_GAP_THRESHOLD apart
4. Reject the page unless MIN_COLUMN_BANDS <= bands <= MAX_COLUMN_BANDS
5. Place every token in the first band containing its x
6. Prune empty rows and columns
7. Infer headers and score the table

No confidence threshold is applied to layout tables.
"""

import logging
from typing import Iterable, List, Optional, Sequence

from ..config import detection_settings
from ..core.models import (
    BoundingBox,
    ColumnBand,
    DetectionResult,
    ExtractedTable,
    ExtractionMethod,
    Row,
    Token,
)
from .scoring import (
    clamp_confidence,
    is_layout_header_cell,
    layout_confidence,
    looks_like_header,
    synthesize_headers,
)

# Nominal height of one layout row in the advisory bounding box
ROW_HEIGHT = 12


class LayoutTableDetector:
    """
    Detects tables from positioned tokens, one candidate per page.
    """

    def __init__(
        self,
        row_tolerance: Optional[float] = None,
        gap_threshold: Optional[float] = None,
        min_bands: Optional[int] = None,
        max_bands: Optional[int] = None,
        header_ratio: Optional[float] = None,
        confidence_floor: Optional[int] = None,
        max_pages: Optional[int] = None,
    ):
        self.row_tolerance = detection_settings.ROW_Y_TOLERANCE if row_tolerance is None else row_tolerance
        self.gap_threshold = detection_settings.COLUMN_GAP_THRESHOLD if gap_threshold is None else gap_threshold
        self.min_bands = detection_settings.MIN_COLUMN_BANDS if min_bands is None else min_bands
        self.max_bands = detection_settings.MAX_COLUMN_BANDS if max_bands is None else max_bands
        self.header_ratio = detection_settings.HEADER_RATIO if header_ratio is None else header_ratio
        self.confidence_floor = (
            detection_settings.LAYOUT_CONFIDENCE_FLOOR if confidence_floor is None else confidence_floor
        )
        self.max_pages = max_pages or detection_settings.LAYOUT_MAX_PAGES
        self.logger = logging.getLogger(__name__)

    def detect(self, pages: Iterable[Sequence[Token]]) -> DetectionResult:
        """
        Run page-level detection over a document.

        Args:
            pages: Token lists, one per page, in page order

        Returns:
            DetectionResult whose tables carry a document-wide running
            table_index. A failure while iterating the document yields an
            empty result.
        """
        result = DetectionResult(method=ExtractionMethod.LAYOUT)

        try:
            for page_number, tokens in enumerate(pages, start=1):
                if page_number > self.max_pages:
                    break
                result.pages_examined += 1

                try:
                    table = self.detect_page(tokens, len(result.tables), page_number)
                except Exception as e:
                    self.logger.warning(f"Layout analysis failed on page {page_number}: {e}")
                    table = None

                if table is None:
                    result.pages_rejected += 1
                    continue
                result.tables.append(table)
        except Exception as e:
            self.logger.warning(f"Layout analysis failed for document: {e}")
            return DetectionResult(method=ExtractionMethod.LAYOUT)

        self.logger.debug(
            f"Layout detection: {len(result.tables)} tables from "
            f"{result.pages_examined} pages ({result.pages_rejected} rejected)"
        )
        return result

    def detect_page(
        self,
        tokens: Sequence[Token],
        table_index: int,
        page_number: Optional[int] = None,
    ) -> Optional[ExtractedTable]:
        """
        Build at most one table from a page's tokens.

        Returns None when the page has no usable tokens, the wrong number of
        column bands, or nothing left after pruning.
        """
        tokens = [t for t in tokens if t.text and t.text.strip()]
        if not tokens:
            return None

        rows = self.cluster_rows(tokens)
        bands = self.derive_bands(tokens)

        if not self.min_bands <= len(bands) <= self.max_bands:
            self.logger.debug(f"Page {page_number}: {len(bands)} column bands, skipping")
            return None

        grid = self.prune_grid(self.build_grid(rows, bands))
        if not grid:
            return None

        first_row = grid[0]
        has_headers = looks_like_header(first_row, is_layout_header_cell, self.header_ratio)
        if has_headers:
            headers = [cell or "Column" for cell in first_row]
            data = grid[1:]
        else:
            headers = synthesize_headers(len(first_row))
            data = grid

        data = [[cell.strip() for cell in row] for row in data]
        confidence = clamp_confidence(layout_confidence(headers, data), self.confidence_floor)

        bounding_box = BoundingBox(
            x=bands[0].min_x,
            y=rows[0].y,
            width=bands[-1].max_x - bands[0].min_x,
            height=len(rows) * ROW_HEIGHT,
        )

        return ExtractedTable(
            table_index=table_index,
            headers=headers,
            data=data,
            confidence=confidence,
            bounding_box=bounding_box,
            method=ExtractionMethod.LAYOUT,
            page_number=page_number,
        )

    def cluster_rows(self, tokens: Sequence[Token]) -> List[Row]:
        """Group tokens into rows, top of the page first."""
        rows: List[Row] = []
        for token in tokens:
            y = round(token.y, 2)
            row = next((r for r in rows if abs(r.y - y) <= self.row_tolerance), None)
            if row is None:
                row = Row(y=y)
                rows.append(row)
            row.tokens.append(token)

        rows.sort(key=lambda r: r.y, reverse=True)
        for row in rows:
            row.tokens.sort(key=lambda t: t.x)
        return rows

    def derive_bands(self, tokens: Sequence[Token]) -> List[ColumnBand]:
        xs = sorted({round(t.x, 2) for t in tokens})
        if not xs:
            return []

        cuts = [
            xs[i] for i in range(1, len(xs))
            if xs[i] - xs[i - 1] > self.gap_threshold
        ]
        # The last band is widened by one unit so the rightmost token falls inside it
        boundaries = [xs[0], *cuts, xs[-1] + 1]
        return [
            ColumnBand(min_x=boundaries[i], max_x=boundaries[i + 1])
            for i in range(len(boundaries) - 1)
        ]

    @staticmethod
    def locate_band(bands: Sequence[ColumnBand], x: float) -> int:
        """Index of the first band containing x; band 0 when none does."""
        for index, band in enumerate(bands):
            if band.contains(x):
                return index
        return 0

    def build_grid(self, rows: Sequence[Row], bands: Sequence[ColumnBand]) -> List[List[str]]:
        grid = [["" for _ in bands] for _ in rows]
        for row_index, row in enumerate(rows):
            for token in row.tokens:
                column = self.locate_band(bands, round(token.x, 2))
                text = token.text.strip()
                current = grid[row_index][column]
                grid[row_index][column] = f"{current} {text}" if current else text
        return grid

    @staticmethod
    def prune_grid(grid: Sequence[Sequence[str]]) -> List[List[str]]:
        """Remove rows and columns whose cells are all blank."""
        rows = [list(row) for row in grid if any(cell.strip() for cell in row)]
        if not rows:
            return []

        width = max(len(row) for row in rows)
        keep = [
            c for c in range(width)
            if any(c < len(row) and row[c].strip() for row in rows)
        ]
        return [[row[c] if c < len(row) else "" for c in keep] for row in rows]
