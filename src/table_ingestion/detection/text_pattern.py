# ============================================================================
# src/table_ingestion/detection/text_pattern.py
# ============================================================================
"""
Text-Pattern Table Detector

Finds tables in plain text (digital extraction and/or OCR output) by
delimiter heuristics. Consecutive table-like lines form a block; every block
of two or more lines is split on its dominant separator, given headers,
normalised and scored. Blocks scoring below the confidence threshold are
discarded.

Line classification by sensitivity (each level accepts everything the
stricter levels accept):
- low:    3+ pipes (or tabs) with content between them, or 3+ non-empty
          pipe- or tab-separated fields
- medium: 2+ pipes or 2+ tabs, a run of 3+ spaces between content,
          or 2+ number/currency groups
- high:   any pipe or tab, a run of 2+ spaces between content, a
          percentage, a currency amount, or 3+ words
"""

import logging
import re
from typing import List, Optional, Sequence, Union

from ..config import detection_settings
from ..core.models import (
    BoundingBox,
    DetectionResult,
    ExtractedTable,
    ExtractionMethod,
    Sensitivity,
)
from .scoring import (
    is_text_header_cell,
    looks_like_header,
    normalize_row,
    synthesize_headers,
    text_confidence,
)

PIPE = "|"
TAB = "\t"
SPACE_RUN = "space_run"

# Election order; a later separator must strictly beat the current best
SEPARATORS = (PIPE, TAB, SPACE_RUN)

SPACE_RUN_RE = re.compile(r"\s{2,}")
WIDE_GAP_RE = re.compile(r"\S\s{3,}\S")
GAP_RE = re.compile(r"\S\s{2,}\S")
NUMBER_GROUP_RE = re.compile(r"[$£€¥]?\d[\d,]*(?:\.\d+)?")
PERCENT_RE = re.compile(r"\d\s*%")
CURRENCY_AMOUNT_RE = re.compile(r"[$£€¥]\s*\d")

# Advisory bounding box geometry for text tables
TABLE_SPACING = 100
TABLE_WIDTH = 100
ROW_HEIGHT = 20


def _field_count(line: str, separator: str) -> int:
    return sum(1 for part in line.split(separator) if part.strip())


def _is_delimited_row(line: str, separator: str) -> bool:
    """Three or more separators with content between each pair, e.g. "| Name | Age |"."""
    inner = line.split(separator)[1:-1]
    return len(inner) >= 2 and all(part.strip() for part in inner)


def _is_low(line: str) -> bool:
    return any(
        _field_count(line, separator) >= 3 or _is_delimited_row(line, separator)
        for separator in (PIPE, TAB)
    )


def _is_medium(line: str) -> bool:
    return (
        line.count(PIPE) >= 2
        or line.count(TAB) >= 2
        or bool(WIDE_GAP_RE.search(line))
        or len(NUMBER_GROUP_RE.findall(line)) >= 2
    )


def _is_high(line: str) -> bool:
    return (
        PIPE in line
        or TAB in line
        or bool(GAP_RE.search(line))
        or bool(PERCENT_RE.search(line))
        or bool(CURRENCY_AMOUNT_RE.search(line))
        or len(line.split()) >= 3
    )


class TextPatternTableDetector:
    """
    Delimiter-based table detection over plain text.

    The result depends only on the text and the options passed in.
    """

    def __init__(
        self,
        header_ratio: Optional[float] = None,
        confidence_floor: Optional[int] = None,
    ):
        self.header_ratio = detection_settings.HEADER_RATIO if header_ratio is None else header_ratio
        self.confidence_floor = (
            detection_settings.TEXT_CONFIDENCE_FLOOR if confidence_floor is None else confidence_floor
        )
        self.logger = logging.getLogger(__name__)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def detect(
        self,
        text: str,
        confidence_threshold: Optional[int] = None,
        sensitivity: Union[Sensitivity, str, None] = None,
    ) -> DetectionResult:
        """
        Detect tables in text.

        Args:
            text: Plain text, lines separated by newlines
            confidence_threshold: Candidates scoring below this are dropped
            sensitivity: Line classification level

        Returns:
            DetectionResult with tables numbered 0, 1, 2... in emission order
        """
        if confidence_threshold is None:
            confidence_threshold = detection_settings.DEFAULT_CONFIDENCE_THRESHOLD
        sensitivity = Sensitivity(sensitivity or detection_settings.DEFAULT_SENSITIVITY)

        result = DetectionResult(method=ExtractionMethod.TEXT_PATTERN)
        lines = [line.strip() for line in (text or "").splitlines()]
        lines = [line for line in lines if line]

        block: List[str] = []
        for line in lines:
            if self.is_table_line(line, sensitivity):
                block.append(line)
                continue
            self._close_block(block, confidence_threshold, result)
            block = []
        self._close_block(block, confidence_threshold, result)

        self.logger.debug(
            f"Text-pattern detection ({sensitivity.value}): {len(result.tables)} tables, "
            f"{result.candidates_discarded} candidates discarded"
        )
        return result

    def is_table_line(self, line: str, sensitivity: Union[Sensitivity, str]) -> bool:
        sensitivity = Sensitivity(sensitivity)
        if _is_low(line):
            return True
        if sensitivity == Sensitivity.LOW:
            return False
        if _is_medium(line):
            return True
        if sensitivity == Sensitivity.MEDIUM:
            return False
        return _is_high(line)

    def parse_block(
        self,
        lines: Sequence[str],
        table_index: int,
        confidence_threshold: int,
    ) -> Optional[ExtractedTable]:
        """
        Turn a block of table-like lines into a table.

        Returns None when fewer than two rows have two or more cells, or the
        score falls below the threshold.
        """
        separator = self.detect_separator(lines)
        rows = [self.split_line(line, separator) for line in lines]
        rows = [row for row in rows if len(row) >= 2]
        if len(rows) < 2:
            return None

        if looks_like_header(rows[0], is_text_header_cell, self.header_ratio):
            headers = rows[0]
            data = rows[1:]
        else:
            headers = synthesize_headers(max(len(row) for row in rows))
            data = rows

        data = [normalize_row(row, len(headers)) for row in data]
        confidence = text_confidence(headers, data, self.confidence_floor)

        if confidence < confidence_threshold:
            self.logger.debug(
                f"Discarding text block of {len(lines)} lines: confidence "
                f"{confidence} < {confidence_threshold}"
            )
            return None

        return ExtractedTable(
            table_index=table_index,
            headers=headers,
            data=data,
            confidence=confidence,
            bounding_box=BoundingBox(
                x=0,
                y=table_index * TABLE_SPACING,
                width=TABLE_WIDTH,
                height=len(data) * ROW_HEIGHT,
            ),
            method=ExtractionMethod.TEXT_PATTERN,
        )

    @staticmethod
    def detect_separator(lines: Sequence[str]) -> str:
        """
        Pick the highest-scoring separator; pipe wins ties and empty input.

        Pipes and tabs score per occurrence, space runs at most once per line.
        """
        scores = {
            PIPE: sum(line.count(PIPE) for line in lines),
            TAB: sum(line.count(TAB) for line in lines),
            SPACE_RUN: sum(1 for line in lines if SPACE_RUN_RE.search(line)),
        }
        best, best_score = PIPE, 0
        for separator in SEPARATORS:
            if scores[separator] > best_score:
                best, best_score = separator, scores[separator]
        return best

    @staticmethod
    def split_line(line: str, separator: str) -> List[str]:
        if separator == PIPE:
            return [cell.strip() for cell in line.split(PIPE) if cell.strip()]
        if separator == TAB:
            # Empty tab cells are kept so columns stay aligned
            return [cell.strip() for cell in line.split(TAB)]
        return [cell.strip() for cell in SPACE_RUN_RE.split(line) if cell.strip()]

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------
    def _close_block(
        self,
        block: List[str],
        confidence_threshold: int,
        result: DetectionResult,
    ) -> None:
        if len(block) < 2:
            return
        table = self.parse_block(block, len(result.tables), confidence_threshold)
        if table is None:
            result.candidates_discarded += 1
            return
        result.tables.append(table)
