# ============================================================================
# api/main.py
# ============================================================================
"""
FastAPI Backend for the PDF Table Ingestion Engine

Provides REST API for uploading PDFs, running table extraction jobs and
downloading the results as Excel workbooks.
"""

import logging
from datetime import datetime, timezone
from typing import Optional
from urllib.parse import quote

from fastapi import BackgroundTasks, FastAPI, File, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response

from table_ingestion import __version__
from table_ingestion.config import base_settings
from table_ingestion.core import JobStatus, JobStore, OriginalFile, ProcessingOptions
from table_ingestion.core.job_runner import JobRunner
from table_ingestion.exporters import XLSX_MIME_TYPE, WorkbookWriter, workbook_filename
from table_ingestion.utils import (
    JobNotFoundError,
    JobStateError,
    NoTablesError,
    TableNotFoundError,
    is_pdf_bytes,
    setup_logging_from_settings,
)

logger = logging.getLogger(__name__)

MAX_LIST_LIMIT = 100


def _job_summary(store: JobStore, job) -> dict:
    payload = job.to_dict()
    payload["tables"] = [t.to_dict() for t in store.get_extracted_tables_by_job_id(job.id)]
    return payload


def content_disposition(filename: str) -> str:
    """Attachment header with an ASCII fallback name and the RFC 5987 UTF-8 name."""
    fallback = "".join(
        "_" if ch == '"' else ch
        for ch in filename
        if ch.isascii() and ch.isprintable()
    ).strip() or "download.xlsx"
    encoded = quote(filename, safe="")
    return f'attachment; filename="{fallback}"; filename*=UTF-8\'\'{encoded}'


def _xlsx_response(content: bytes, filename: str) -> Response:
    return Response(
        content=content,
        media_type=XLSX_MIME_TYPE,
        headers={"Content-Disposition": content_disposition(filename)},
    )


def create_app(
    store: Optional[JobStore] = None,
    runner: Optional[JobRunner] = None,
    writer: Optional[WorkbookWriter] = None,
) -> FastAPI:
    """
    Build the API around a job store.

    Args:
        store: Job store (defaults to JOBS_DB_PATH)
        runner: Job runner (defaults to one with the real PDF sources)
        writer: Workbook writer (defaults to one over `store`)
    """
    store = store or JobStore()
    runner = runner or JobRunner(store)
    writer = writer or WorkbookWriter(store)

    app = FastAPI(
        title="PDF Table Ingestion API",
        description="Extract tables from PDF documents into Excel workbooks",
        version=__version__,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[
            "http://localhost:3000",
            "http://127.0.0.1:3000",
            "http://localhost:5173",
        ],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ========================================================================
    # Jobs
    # ========================================================================

    @app.post("/api/jobs/upload")
    async def upload_pdf(pdf: UploadFile = File(...)):
        """Store an uploaded PDF and create a pending job for it."""
        if pdf.content_type != "application/pdf":
            raise HTTPException(status_code=415, detail="Only PDF files are allowed")

        content = await pdf.read()
        if len(content) > base_settings.UPLOAD_MAX_BYTES:
            raise HTTPException(status_code=413, detail="File exceeds the upload size limit")
        if not is_pdf_bytes(content):
            raise HTTPException(status_code=415, detail="Only PDF files are allowed")

        filename = pdf.filename or "document.pdf"
        job = store.create_job(filename)
        store.save_original_file(job.id, OriginalFile(filename=filename, content=content))

        logger.info(f"Uploaded {filename} ({len(content)} bytes) as job {job.id}")
        return {"job": job.to_dict(), "message": "File uploaded successfully"}

    @app.post("/api/jobs/{job_id}/process")
    async def start_processing(
        job_id: str,
        background_tasks: BackgroundTasks,
        options: Optional[ProcessingOptions] = None,
    ):
        """Claim a job and run extraction in the background."""
        job = store.get_job(job_id)
        if job is None:
            raise HTTPException(status_code=404, detail="Job not found")
        if job.status not in (JobStatus.PENDING, JobStatus.FAILED):
            raise HTTPException(status_code=400, detail="Job cannot be processed in current state")
        if not store.has_original_file(job_id):
            raise HTTPException(status_code=409, detail="Original PDF file not found")

        try:
            store.start_processing(job_id)
        except JobStateError as e:
            raise HTTPException(status_code=409, detail=str(e))

        background_tasks.add_task(runner.execute, job_id, options or ProcessingOptions())
        return {"message": "Processing started", "job_id": job_id}

    @app.get("/api/jobs/{job_id}/status")
    async def get_job_status(job_id: str):
        job = store.get_job(job_id)
        if job is None:
            raise HTTPException(status_code=404, detail="Job not found")
        return job.to_dict()

    @app.get("/api/jobs")
    async def list_jobs(status: Optional[str] = None, limit: Optional[int] = None):
        """List jobs newest first, each with its tables."""
        status_filter = None
        if status:
            try:
                status_filter = JobStatus(status)
            except ValueError:
                raise HTTPException(status_code=400, detail="Invalid status filter")

        if limit is not None and not 0 < limit <= MAX_LIST_LIMIT:
            raise HTTPException(status_code=400, detail=f"Invalid limit (must be 1-{MAX_LIST_LIMIT})")

        jobs = store.list_jobs(status=status_filter, limit=limit)
        return [_job_summary(store, job) for job in jobs]

    @app.get("/api/jobs/{job_id}")
    async def get_job(job_id: str):
        found = store.get_job_with_tables(job_id)
        if found is None:
            raise HTTPException(status_code=404, detail="Job not found")
        job, tables = found
        return {"job": job.to_dict(), "tables": [t.to_dict() for t in tables]}

    @app.delete("/api/jobs/{job_id}")
    async def delete_job(job_id: str):
        if not store.delete_job(job_id):
            raise HTTPException(status_code=404, detail="Job not found")
        return {"message": "Job deleted successfully"}

    @app.post("/api/jobs/{job_id}/reprocess")
    async def reprocess_job(job_id: str):
        """Drop a job's results and return it to pending."""
        try:
            store.reset_job(job_id)
        except JobNotFoundError:
            raise HTTPException(status_code=404, detail="Job not found")
        except JobStateError as e:
            raise HTTPException(status_code=409, detail=str(e))
        return {"message": "Job reset for reprocessing"}

    # ========================================================================
    # Downloads
    # ========================================================================

    @app.get("/api/jobs/{job_id}/tables/{table_id}/download")
    async def download_table(job_id: str, table_id: str):
        table = store.get_extracted_table(table_id)
        if table is None or table.job_id != job_id:
            raise HTTPException(status_code=404, detail="Table not found")

        try:
            content = writer.generate_table_workbook(table_id)
        except TableNotFoundError:
            raise HTTPException(status_code=404, detail="Table not found")

        job = store.get_job(job_id)
        return _xlsx_response(content, workbook_filename(job.filename if job else "table", table))

    @app.get("/api/jobs/{job_id}/download")
    async def download_job(job_id: str):
        job = store.get_job(job_id)
        if job is None:
            raise HTTPException(status_code=404, detail="Job not found")
        if job.status != JobStatus.COMPLETED:
            raise HTTPException(status_code=400, detail="Job not completed")

        try:
            content = writer.generate_job_workbook(job_id)
        except NoTablesError as e:
            raise HTTPException(status_code=404, detail=str(e))

        return _xlsx_response(content, workbook_filename(job.filename))

    # ========================================================================
    # Health
    # ========================================================================

    @app.get("/api/health")
    async def health():
        return {
            "status": "ok",
            "version": __version__,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    return app


if __name__ == "__main__":
    import uvicorn
    setup_logging_from_settings()
    base_settings.create_directories()
    uvicorn.run(create_app(), host="0.0.0.0", port=8000)
