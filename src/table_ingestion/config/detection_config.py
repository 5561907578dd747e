# ============================================================================
# src/table_ingestion/config/detection_config.py
# ============================================================================
"""
Table Detection Settings
- Layout geometry (row tolerance, column gap, band limits)
- Page caps per source
- Confidence floors and defaults
"""

from pydantic import Field
from pydantic_settings import BaseSettings

class DetectionSettings(BaseSettings):
    ROW_Y_TOLERANCE: float = Field(
        default=3.0,
        ge=0.0,
        description="Max vertical distance (PDF units) for two tokens to share a row"
    )
    COLUMN_GAP_THRESHOLD: float = Field(
        default=20.0,
        gt=0.0,
        description="Horizontal gap between consecutive x positions that starts a new column band"
    )
    MIN_COLUMN_BANDS: int = Field(
        default=2,
        ge=1,
        description="Pages with fewer bands are not tables"
    )
    MAX_COLUMN_BANDS: int = Field(
        default=12,
        ge=1,
        description="Pages with more bands are treated as noise"
    )
    HEADER_RATIO: float = Field(
        default=0.6,
        ge=0.0, le=1.0,
        description="Share of header-like cells needed to treat the first row as headers"
    )

    LAYOUT_MAX_PAGES: int = Field(
        default=10,
        ge=1,
        description="Pages analysed by the layout detector"
    )
    TEXT_MAX_PAGES: int = Field(
        default=50,
        ge=1,
        description="Pages read by digital text extraction"
    )
    OCR_MAX_PAGES: int = Field(
        default=10,
        ge=1,
        description="Pages rendered and OCR'd"
    )
    OCR_DPI: int = Field(
        default=200,
        ge=72,
        description="Render resolution for OCR"
    )

    TEXT_CONFIDENCE_FLOOR: int = Field(
        default=30,
        ge=0, le=100,
        description="Lowest confidence reported by the text-pattern detector"
    )
    LAYOUT_CONFIDENCE_FLOOR: int = Field(
        default=0,
        ge=0, le=100,
        description="Lowest confidence reported by the layout detector"
    )
    FALLBACK_CONFIDENCE: int = Field(
        default=80,
        ge=0, le=100,
        description="Confidence of the single-column fallback table"
    )
    DEFAULT_CONFIDENCE_THRESHOLD: int = Field(
        default=70,
        ge=0, le=100,
        description="Text-pattern candidates below this are discarded"
    )
    DEFAULT_SENSITIVITY: str = Field(
        default="medium",
        pattern="^(low|medium|high)$",
        description="Line classification aggressiveness for the text-pattern detector"
    )

detection_settings = DetectionSettings()
