# ============================================================================
# src/table_ingestion/utils/__init__.py
# ============================================================================
"""
Utility modules for the table ingestion engine.
"""

from .exceptions import (
    TableIngestionError,
    DocumentProcessingError,
    OriginalFileMissingError,
    StorageError,
    JobNotFoundError,
    TableNotFoundError,
    JobStateError,
    NoTablesError,
)

from .logging import (
    setup_logging,
    setup_logging_from_settings,
    log_performance,
    JobLogAdapter,
)

from .file_utils import (
    ensure_directory,
    sanitize_filename,
    is_pdf_bytes,
    FolderScanner,
    ScanResult,
)

__all__ = [
    # Exceptions
    'TableIngestionError',
    'DocumentProcessingError',
    'OriginalFileMissingError',
    'StorageError',
    'JobNotFoundError',
    'TableNotFoundError',
    'JobStateError',
    'NoTablesError',
    # Logging
    'setup_logging',
    'setup_logging_from_settings',
    'log_performance',
    'JobLogAdapter',
    # File Utils
    'ensure_directory',
    'sanitize_filename',
    'is_pdf_bytes',
    'FolderScanner',
    'ScanResult',
]
