# ============================================================================
# src/table_ingestion/core/models.py
# ============================================================================
"""
Data model shared by the detectors, the job runner and the exporters.

Coordinate System:
- Token positions are PDF user-space units
- y grows upward (a larger y is higher on the page)
- Positions are rounded to 2 decimals before any comparison
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from ..config import detection_settings


class Sensitivity(str, Enum):
    """How aggressively a text line is classified as table-like."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ExtractionMethod(str, Enum):
    """Which strategy produced a table."""
    LAYOUT = "layout"
    TEXT_PATTERN = "text_pattern"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class Token:
    """A positioned run of text on one page."""
    text: str
    x: float
    y: float


@dataclass
class Row:
    """Tokens sharing (approximately) one vertical position."""
    y: float
    tokens: List[Token] = field(default_factory=list)


@dataclass(frozen=True)
class ColumnBand:
    """Half-open horizontal interval [min_x, max_x)."""
    min_x: float
    max_x: float

    def contains(self, x: float) -> bool:
        return self.min_x <= x < self.max_x


@dataclass(frozen=True)
class BoundingBox:
    """Advisory position of a table; not guaranteed to be geometrically exact."""
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "BoundingBox":
        if not data:
            return cls()
        return cls(
            x=float(data.get("x", 0)),
            y=float(data.get("y", 0)),
            width=float(data.get("width", 0)),
            height=float(data.get("height", 0)),
        )


def clamp(value: float, lower: float = 0, upper: float = 100) -> float:
    return max(lower, min(upper, value))


def fit_row(cells: List[str], width: int) -> List[str]:
    """Pad with empty strings or truncate so the row has exactly `width` cells."""
    cells = list(cells[:width])
    if len(cells) < width:
        cells.extend([""] * (width - len(cells)))
    return cells


@dataclass(frozen=True)
class ExtractedTable:
    """
    One detected table.

    Every data row has exactly len(headers) cells and confidence lies in
    [0, 100]; both are enforced on construction. Instances are never mutated.
    """
    table_index: int
    headers: List[str]
    data: List[List[str]]
    confidence: int
    bounding_box: BoundingBox = field(default_factory=BoundingBox)
    method: ExtractionMethod = ExtractionMethod.FALLBACK
    page_number: Optional[int] = None

    def __post_init__(self):
        headers = [str(h) for h in self.headers]
        object.__setattr__(self, "headers", headers)
        object.__setattr__(self, "data", [fit_row([str(c) for c in row], len(headers)) for row in self.data])
        object.__setattr__(self, "confidence", int(clamp(round(self.confidence))))

    @property
    def row_count(self) -> int:
        return len(self.data)

    @property
    def column_count(self) -> int:
        return len(self.headers)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "table_index": self.table_index,
            "headers": list(self.headers),
            "data": [list(row) for row in self.data],
            "confidence": self.confidence,
            "bounding_box": self.bounding_box.to_dict(),
            "method": self.method.value,
            "page_number": self.page_number,
            "row_count": self.row_count,
            "col_count": self.column_count,
        }


class ProcessingOptions(BaseModel):
    """Per-document options supplied when a job is started."""
    ocr_language: Optional[str] = Field(
        default=None,
        description="Tesseract language code; OCR only runs when this is set"
    )
    confidence_threshold: int = Field(
        default_factory=lambda: detection_settings.DEFAULT_CONFIDENCE_THRESHOLD,
        ge=0, le=100,
        description="Text-pattern candidates scoring below this are discarded"
    )
    table_detection_sensitivity: Sensitivity = Field(
        default_factory=lambda: Sensitivity(detection_settings.DEFAULT_SENSITIVITY),
        description="Line classification aggressiveness"
    )


@dataclass
class DetectionResult:
    """Outcome of one detection strategy over a whole document."""
    tables: List[ExtractedTable] = field(default_factory=list)
    method: Optional[ExtractionMethod] = None
    pages_examined: int = 0
    pages_rejected: int = 0
    candidates_discarded: int = 0

    @property
    def found(self) -> bool:
        return bool(self.tables)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "method": self.method.value if self.method else None,
            "pages_examined": self.pages_examined,
            "pages_rejected": self.pages_rejected,
            "candidates_discarded": self.candidates_discarded,
            "tables": [t.to_dict() for t in self.tables],
        }
