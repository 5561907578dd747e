"""
Core data model and job persistence.

The job runner depends on the detectors and is imported from
table_ingestion.core.job_runner directly.
"""

from .models import (
    Token,
    Row,
    ColumnBand,
    BoundingBox,
    ExtractedTable,
    ExtractionMethod,
    Sensitivity,
    ProcessingOptions,
    DetectionResult,
)
from .job_store import JobStore, JobStatus, ProcessingJob, StoredTable, OriginalFile

__all__ = [
    'Token',
    'Row',
    'ColumnBand',
    'BoundingBox',
    'ExtractedTable',
    'ExtractionMethod',
    'Sensitivity',
    'ProcessingOptions',
    'DetectionResult',
    'JobStore',
    'JobStatus',
    'ProcessingJob',
    'StoredTable',
    'OriginalFile',
]
