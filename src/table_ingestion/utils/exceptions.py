# ============================================================================
# src/table_ingestion/utils/exceptions.py
# ============================================================================
"""
Custom exceptions for the table ingestion engine.

Detectors never raise for data-quality reasons; these are reserved for
infrastructure failures and illegal job operations.
"""


class TableIngestionError(Exception):
    """Base exception for all table ingestion errors."""
    pass


class DocumentProcessingError(TableIngestionError):
    """Error during document processing."""
    pass


class OriginalFileMissingError(DocumentProcessingError):
    """The uploaded PDF for a job is not in storage."""
    def __init__(self, job_id: str):
        super().__init__("Original PDF file not found")
        self.job_id = job_id


class StorageError(TableIngestionError):
    """Persistence layer failure."""
    pass


class JobNotFoundError(StorageError):
    """No job with the given id."""
    def __init__(self, job_id: str):
        super().__init__(f"Job not found: {job_id}")
        self.job_id = job_id


class TableNotFoundError(StorageError):
    """No extracted table with the given id."""
    def __init__(self, table_id: str):
        super().__init__(f"Table not found: {table_id}")
        self.table_id = table_id


class JobStateError(TableIngestionError):
    """Job is not in a state that allows the requested transition."""
    def __init__(self, message: str, job_id: str, status: str = ""):
        super().__init__(message)
        self.job_id = job_id
        self.status = status


class NoTablesError(TableIngestionError):
    """A workbook was requested for a job without extracted tables."""
    pass
