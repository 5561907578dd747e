# ============================================================================
# src/table_ingestion/core/job_store.py
# ============================================================================
"""
Job Store

Persists processing jobs, uploaded PDFs, extracted tables and generated
workbooks to SQLite so they survive API restarts. Raw sqlite3 with JSON for
the table cells; one connection per call, one transaction per call.

Job lifecycle:

    pending -> processing -> completed
                          -> failed
    completed | failed -> pending      (reset for reprocessing)
    failed -> processing               (retry)
"""

import json
import logging
import sqlite3
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

from ..config import base_settings
from ..utils.exceptions import (
    JobNotFoundError,
    JobStateError,
    StorageError,
    TableNotFoundError,
)
from .models import BoundingBox, ExtractedTable, ExtractionMethod, clamp

logger = logging.getLogger(__name__)


class JobStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


# States from which a job may be claimed for processing
RUNNABLE_STATES = (JobStatus.PENDING, JobStatus.FAILED)
# States from which a job may be reset to pending
RESETTABLE_STATES = (JobStatus.PENDING, JobStatus.COMPLETED, JobStatus.FAILED)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _parse_time(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass
class ProcessingJob:
    """One uploaded document and its processing state."""
    id: str
    filename: str
    status: JobStatus = JobStatus.PENDING
    progress: int = 0
    uploaded_at: datetime = field(default_factory=_now)
    completed_at: Optional[datetime] = None
    error_message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "filename": self.filename,
            "status": self.status.value,
            "progress": self.progress,
            "uploaded_at": _isoformat(self.uploaded_at),
            "completed_at": _isoformat(self.completed_at),
            "error_message": self.error_message,
        }


@dataclass
class StoredTable:
    """An extracted table as persisted for a job."""
    id: str
    job_id: str
    table_index: int
    headers: List[str]
    data: List[List[str]]
    confidence: int
    bounding_box: BoundingBox = field(default_factory=BoundingBox)
    method: Optional[ExtractionMethod] = None
    page_number: Optional[int] = None
    extracted_at: datetime = field(default_factory=_now)

    @property
    def row_count(self) -> int:
        return len(self.data)

    @property
    def column_count(self) -> int:
        return len(self.headers)

    def to_extracted_table(self) -> ExtractedTable:
        return ExtractedTable(
            table_index=self.table_index,
            headers=self.headers,
            data=self.data,
            confidence=self.confidence,
            bounding_box=self.bounding_box,
            method=self.method or ExtractionMethod.FALLBACK,
            page_number=self.page_number,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "job_id": self.job_id,
            "table_index": self.table_index,
            "headers": self.headers,
            "data": self.data,
            "confidence": self.confidence,
            "bounding_box": self.bounding_box.to_dict(),
            "method": self.method.value if self.method else None,
            "page_number": self.page_number,
            "extracted_at": _isoformat(self.extracted_at),
            "row_count": self.row_count,
            "col_count": self.column_count,
        }


@dataclass
class OriginalFile:
    """The uploaded PDF for a job."""
    filename: str
    content: bytes
    mime_type: str = "application/pdf"

    @property
    def size(self) -> int:
        return len(self.content)


class JobStore:
    """
    SQLite-backed store for jobs and everything derived from them.

    Rows never cross jobs: tables, original files and cached workbooks are
    all keyed by job id and removed with the job.
    """

    def __init__(self, db_path: Optional[Path] = None):
        self.db_path = Path(db_path or base_settings.JOBS_DB_PATH)
        self._init_database()

    # ------------------------------------------------------------------
    # Schema
    # ------------------------------------------------------------------
    def _init_database(self):
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with self._connect() as conn:
            conn.executescript("""
                CREATE TABLE IF NOT EXISTS jobs (
                    id              TEXT PRIMARY KEY,
                    filename        TEXT NOT NULL,
                    status          TEXT NOT NULL DEFAULT 'pending',
                    progress        INTEGER NOT NULL DEFAULT 0,
                    uploaded_at     TEXT NOT NULL,
                    completed_at    TEXT,
                    error_message   TEXT
                );

                CREATE INDEX IF NOT EXISTS idx_jobs_status
                ON jobs (status);

                CREATE INDEX IF NOT EXISTS idx_jobs_uploaded
                ON jobs (uploaded_at DESC);

                CREATE TABLE IF NOT EXISTS extracted_tables (
                    id              TEXT PRIMARY KEY,
                    job_id          TEXT NOT NULL,
                    table_index     INTEGER NOT NULL,
                    -- JSON arrays of strings
                    headers         TEXT NOT NULL,
                    data            TEXT NOT NULL,
                    confidence      INTEGER NOT NULL,
                    bounding_box    TEXT,
                    method          TEXT,
                    page_number     INTEGER,
                    extracted_at    TEXT NOT NULL,
                    UNIQUE (job_id, table_index)
                );

                CREATE INDEX IF NOT EXISTS idx_tables_job
                ON extracted_tables (job_id, table_index);

                CREATE TABLE IF NOT EXISTS original_files (
                    job_id          TEXT PRIMARY KEY,
                    filename        TEXT NOT NULL,
                    mime_type       TEXT NOT NULL,
                    size            INTEGER NOT NULL,
                    content         BLOB NOT NULL
                );

                -- table_id '' caches the whole-job workbook
                CREATE TABLE IF NOT EXISTS excel_files (
                    job_id          TEXT NOT NULL,
                    table_id        TEXT NOT NULL DEFAULT '',
                    content         BLOB NOT NULL,
                    created_at      TEXT NOT NULL,
                    PRIMARY KEY (job_id, table_id)
                );
            """)
        logger.info(f"Job store initialized: {self.db_path}")

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        """Connection with commit on success, rollback on any error."""
        conn = sqlite3.connect(str(self.db_path), timeout=30)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise StorageError(f"Database error: {e}") from e
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    # ------------------------------------------------------------------
    # Jobs
    # ------------------------------------------------------------------
    def create_job(self, filename: str) -> ProcessingJob:
        job = ProcessingJob(id=str(uuid.uuid4()), filename=filename)
        with self._connect() as conn:
            conn.execute("""
                INSERT INTO jobs (id, filename, status, progress, uploaded_at)
                VALUES (?, ?, ?, ?, ?)
            """, (job.id, job.filename, job.status.value, job.progress, _isoformat(job.uploaded_at)))
        logger.info(f"Created job {job.id} for {filename}")
        return job

    def get_job(self, job_id: str) -> Optional[ProcessingJob]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM jobs WHERE id = ?", (job_id,)).fetchone()
        return self._row_to_job(row) if row else None

    def require_job(self, job_id: str) -> ProcessingJob:
        job = self.get_job(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        return job

    def list_jobs(
        self,
        status: Optional[JobStatus] = None,
        limit: Optional[int] = None,
    ) -> List[ProcessingJob]:
        """List jobs, newest upload first."""
        query = "SELECT * FROM jobs WHERE 1=1"
        params: list = []

        if status:
            query += " AND status = ?"
            params.append(JobStatus(status).value)

        query += " ORDER BY uploaded_at DESC, rowid DESC"
        if limit is not None:
            query += " LIMIT ?"
            params.append(limit)

        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()
        return [self._row_to_job(r) for r in rows]

    def update_job(
        self,
        job_id: str,
        progress: Optional[int] = None,
        error_message: Optional[str] = None,
    ) -> ProcessingJob:
        """Update progress (clamped to 0-100) and/or the error message."""
        assignments = []
        params: list = []
        if progress is not None:
            assignments.append("progress = ?")
            params.append(int(clamp(progress)))
        if error_message is not None:
            assignments.append("error_message = ?")
            params.append(error_message)

        if assignments:
            with self._connect() as conn:
                cur = conn.execute(
                    f"UPDATE jobs SET {', '.join(assignments)} WHERE id = ?",
                    (*params, job_id),
                )
                if cur.rowcount == 0:
                    raise JobNotFoundError(job_id)
        return self.require_job(job_id)

    def start_processing(self, job_id: str) -> ProcessingJob:
        """
        Atomically claim a job for processing.

        Only pending or failed jobs can be claimed; the conditional UPDATE
        makes a second concurrent claim fail even across processes.

        Raises:
            JobNotFoundError: Unknown job
            JobStateError: Job is processing or completed
        """
        placeholders = ", ".join("?" for _ in RUNNABLE_STATES)
        with self._connect() as conn:
            cur = conn.execute(f"""
                UPDATE jobs
                SET status = ?, progress = 0, error_message = NULL, completed_at = NULL
                WHERE id = ? AND status IN ({placeholders})
            """, (JobStatus.PROCESSING.value, job_id, *[s.value for s in RUNNABLE_STATES]))

            if cur.rowcount == 0:
                row = conn.execute("SELECT status FROM jobs WHERE id = ?", (job_id,)).fetchone()
                if row is None:
                    raise JobNotFoundError(job_id)
                if row["status"] == JobStatus.PROCESSING.value:
                    raise JobStateError("Job is already being processed", job_id, row["status"])
                raise JobStateError("Job cannot be processed in current state", job_id, row["status"])

        logger.info(f"Job {job_id} claimed for processing")
        return self.require_job(job_id)

    def complete_job(self, job_id: str) -> ProcessingJob:
        with self._connect() as conn:
            cur = conn.execute("""
                UPDATE jobs
                SET status = ?, progress = 100, completed_at = ?, error_message = NULL
                WHERE id = ? AND status = ?
            """, (JobStatus.COMPLETED.value, _isoformat(_now()), job_id, JobStatus.PROCESSING.value))
            if cur.rowcount == 0:
                self._raise_for_state(conn, job_id, "Only a processing job can be completed")
        return self.require_job(job_id)

    def fail_job(self, job_id: str, error_message: str) -> ProcessingJob:
        with self._connect() as conn:
            cur = conn.execute("""
                UPDATE jobs
                SET status = ?, progress = 0, error_message = ?
                WHERE id = ?
            """, (JobStatus.FAILED.value, error_message, job_id))
            if cur.rowcount == 0:
                raise JobNotFoundError(job_id)
        logger.info(f"Job {job_id} marked failed: {error_message}")
        return self.require_job(job_id)

    def reset_job(self, job_id: str) -> ProcessingJob:
        """
        Return a finished job to pending, dropping its tables and cached workbooks.

        Raises:
            JobNotFoundError: Unknown job
            JobStateError: Job is currently processing
        """
        placeholders = ", ".join("?" for _ in RESETTABLE_STATES)
        with self._connect() as conn:
            cur = conn.execute(f"""
                UPDATE jobs
                SET status = ?, progress = 0, error_message = NULL, completed_at = NULL
                WHERE id = ? AND status IN ({placeholders})
            """, (JobStatus.PENDING.value, job_id, *[s.value for s in RESETTABLE_STATES]))
            if cur.rowcount == 0:
                self._raise_for_state(conn, job_id, "Job is currently being processed")

            conn.execute("DELETE FROM extracted_tables WHERE job_id = ?", (job_id,))
            conn.execute("DELETE FROM excel_files WHERE job_id = ?", (job_id,))

        logger.info(f"Job {job_id} reset for reprocessing")
        return self.require_job(job_id)

    def delete_job(self, job_id: str) -> bool:
        """Delete a job and everything stored for it. Returns True if the job existed."""
        with self._connect() as conn:
            conn.execute("DELETE FROM extracted_tables WHERE job_id = ?", (job_id,))
            conn.execute("DELETE FROM original_files WHERE job_id = ?", (job_id,))
            conn.execute("DELETE FROM excel_files WHERE job_id = ?", (job_id,))
            cur = conn.execute("DELETE FROM jobs WHERE id = ?", (job_id,))
            deleted = cur.rowcount > 0
        if deleted:
            logger.info(f"Deleted job {job_id}")
        return deleted

    def get_job_with_tables(self, job_id: str) -> Optional[Tuple[ProcessingJob, List[StoredTable]]]:
        job = self.get_job(job_id)
        if job is None:
            return None
        return job, self.get_extracted_tables_by_job_id(job_id)

    # ------------------------------------------------------------------
    # Extracted tables
    # ------------------------------------------------------------------
    def create_extracted_table(self, job_id: str, table: ExtractedTable) -> StoredTable:
        stored = self._to_stored(job_id, table)
        with self._connect() as conn:
            self._insert_table(conn, stored)
            conn.execute("DELETE FROM excel_files WHERE job_id = ?", (job_id,))
        return stored

    def replace_job_tables(self, job_id: str, tables: Sequence[ExtractedTable]) -> List[StoredTable]:
        """Swap a job's whole table set in one transaction."""
        stored = [self._to_stored(job_id, t) for t in tables]
        with self._connect() as conn:
            conn.execute("DELETE FROM extracted_tables WHERE job_id = ?", (job_id,))
            conn.execute("DELETE FROM excel_files WHERE job_id = ?", (job_id,))
            for table in stored:
                self._insert_table(conn, table)
        logger.info(f"Saved {len(stored)} tables for job {job_id}")
        return stored

    def get_extracted_tables_by_job_id(self, job_id: str) -> List[StoredTable]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM extracted_tables WHERE job_id = ? ORDER BY table_index",
                (job_id,),
            ).fetchall()
        return [self._row_to_table(r) for r in rows]

    def get_extracted_table(self, table_id: str) -> Optional[StoredTable]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM extracted_tables WHERE id = ?", (table_id,)).fetchone()
        return self._row_to_table(row) if row else None

    def replace_extracted_table(
        self,
        table_id: str,
        headers: Optional[List[str]] = None,
        data: Optional[List[List[str]]] = None,
        confidence: Optional[int] = None,
    ) -> StoredTable:
        """
        Apply a correction by writing a replacement row.

        The replacement gets a new id and keeps the original table_index;
        rows are refitted to the header width and confidence is clamped.
        """
        current = self.get_extracted_table(table_id)
        if current is None:
            raise TableNotFoundError(table_id)

        corrected = ExtractedTable(
            table_index=current.table_index,
            headers=headers if headers is not None else current.headers,
            data=data if data is not None else current.data,
            confidence=confidence if confidence is not None else current.confidence,
            bounding_box=current.bounding_box,
            method=current.method or ExtractionMethod.FALLBACK,
            page_number=current.page_number,
        )
        replacement = self._to_stored(current.job_id, corrected)

        with self._connect() as conn:
            conn.execute("DELETE FROM extracted_tables WHERE id = ?", (table_id,))
            self._insert_table(conn, replacement)
            conn.execute("DELETE FROM excel_files WHERE job_id = ?", (current.job_id,))
        return replacement

    def delete_extracted_table(self, table_id: str) -> bool:
        with self._connect() as conn:
            row = conn.execute("SELECT job_id FROM extracted_tables WHERE id = ?", (table_id,)).fetchone()
            if row is None:
                return False
            conn.execute("DELETE FROM extracted_tables WHERE id = ?", (table_id,))
            conn.execute("DELETE FROM excel_files WHERE job_id = ?", (row["job_id"],))
        return True

    def delete_tables_for_job(self, job_id: str) -> int:
        with self._connect() as conn:
            cur = conn.execute("DELETE FROM extracted_tables WHERE job_id = ?", (job_id,))
            conn.execute("DELETE FROM excel_files WHERE job_id = ?", (job_id,))
            return cur.rowcount

    # ------------------------------------------------------------------
    # Original files
    # ------------------------------------------------------------------
    def save_original_file(self, job_id: str, original: OriginalFile) -> None:
        with self._connect() as conn:
            conn.execute("""
                INSERT OR REPLACE INTO original_files (job_id, filename, mime_type, size, content)
                VALUES (?, ?, ?, ?, ?)
            """, (job_id, original.filename, original.mime_type, original.size, sqlite3.Binary(original.content)))

    def get_original_file(self, job_id: str) -> Optional[OriginalFile]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT filename, mime_type, content FROM original_files WHERE job_id = ?",
                (job_id,),
            ).fetchone()
        if row is None:
            return None
        return OriginalFile(filename=row["filename"], content=bytes(row["content"]), mime_type=row["mime_type"])

    def has_original_file(self, job_id: str) -> bool:
        with self._connect() as conn:
            row = conn.execute("SELECT 1 FROM original_files WHERE job_id = ?", (job_id,)).fetchone()
        return row is not None

    def delete_original_file(self, job_id: str) -> bool:
        with self._connect() as conn:
            cur = conn.execute("DELETE FROM original_files WHERE job_id = ?", (job_id,))
            return cur.rowcount > 0

    # ------------------------------------------------------------------
    # Workbook cache
    # ------------------------------------------------------------------
    def save_excel_file(self, job_id: str, table_id: Optional[str], content: bytes) -> None:
        with self._connect() as conn:
            conn.execute("""
                INSERT OR REPLACE INTO excel_files (job_id, table_id, content, created_at)
                VALUES (?, ?, ?, ?)
            """, (job_id, table_id or "", sqlite3.Binary(content), _isoformat(_now())))

    def get_excel_file(self, job_id: str, table_id: Optional[str] = None) -> Optional[bytes]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT content FROM excel_files WHERE job_id = ? AND table_id = ?",
                (job_id, table_id or ""),
            ).fetchone()
        return bytes(row["content"]) if row else None

    def delete_excel_files(self, job_id: str) -> int:
        with self._connect() as conn:
            cur = conn.execute("DELETE FROM excel_files WHERE job_id = ?", (job_id,))
            return cur.rowcount

    # ------------------------------------------------------------------
    # Row mapping
    # ------------------------------------------------------------------
    def _raise_for_state(self, conn: sqlite3.Connection, job_id: str, message: str):
        row = conn.execute("SELECT status FROM jobs WHERE id = ?", (job_id,)).fetchone()
        if row is None:
            raise JobNotFoundError(job_id)
        raise JobStateError(message, job_id, row["status"])

    @staticmethod
    def _to_stored(job_id: str, table: ExtractedTable) -> StoredTable:
        return StoredTable(
            id=str(uuid.uuid4()),
            job_id=job_id,
            table_index=table.table_index,
            headers=list(table.headers),
            data=[list(row) for row in table.data],
            confidence=table.confidence,
            bounding_box=table.bounding_box,
            method=table.method,
            page_number=table.page_number,
        )

    @staticmethod
    def _insert_table(conn: sqlite3.Connection, table: StoredTable):
        conn.execute("""
            INSERT INTO extracted_tables
                (id, job_id, table_index, headers, data, confidence,
                 bounding_box, method, page_number, extracted_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """, (
            table.id,
            table.job_id,
            table.table_index,
            json.dumps(table.headers),
            json.dumps(table.data),
            table.confidence,
            json.dumps(table.bounding_box.to_dict()),
            table.method.value if table.method else None,
            table.page_number,
            _isoformat(table.extracted_at),
        ))

    @staticmethod
    def _row_to_job(row: sqlite3.Row) -> ProcessingJob:
        return ProcessingJob(
            id=row["id"],
            filename=row["filename"],
            status=JobStatus(row["status"]),
            progress=row["progress"],
            uploaded_at=_parse_time(row["uploaded_at"]),
            completed_at=_parse_time(row["completed_at"]),
            error_message=row["error_message"],
        )

    @staticmethod
    def _row_to_table(row: sqlite3.Row) -> StoredTable:
        return StoredTable(
            id=row["id"],
            job_id=row["job_id"],
            table_index=row["table_index"],
            headers=json.loads(row["headers"]),
            data=json.loads(row["data"]),
            confidence=row["confidence"],
            bounding_box=BoundingBox.from_dict(json.loads(row["bounding_box"] or "{}")),
            method=ExtractionMethod(row["method"]) if row["method"] else None,
            page_number=row["page_number"],
            extracted_at=_parse_time(row["extracted_at"]),
        )
