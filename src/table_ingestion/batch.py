# ============================================================================
# src/table_ingestion/batch.py
# ============================================================================
"""
Batch Processing

Runs every PDF found by a FolderScanner through the job pipeline and writes,
per input folder, outputs/<folder>/<name>.json (job + tables snapshot) and
outputs/<folder>/<name>.xlsx (all tables). A file that fails is logged and
skipped; the rest of the batch continues.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from .core.job_runner import JobRunner
from .core.job_store import JobStatus, JobStore, OriginalFile
from .core.models import ProcessingOptions
from .exporters.workbook import WorkbookWriter
from .utils.exceptions import NoTablesError
from .utils.file_utils import ScanResult, ensure_directory

logger = logging.getLogger(__name__)


@dataclass
class BatchFileResult:
    """Outcome for one PDF."""
    source: Path
    job_id: Optional[str] = None
    status: Optional[JobStatus] = None
    table_count: int = 0
    json_path: Optional[Path] = None
    xlsx_path: Optional[Path] = None
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status == JobStatus.COMPLETED


@dataclass
class BatchSummary:
    results: List[BatchFileResult] = field(default_factory=list)

    @property
    def processed(self) -> int:
        return sum(1 for r in self.results if r.succeeded)

    @property
    def failed(self) -> int:
        return len(self.results) - self.processed


class BatchProcessor:
    """
    Processes scanned folders into an output tree.

    Args:
        store: Job store used for the batch's jobs
        output_root: Root of the per-folder output directories
        options: Processing options applied to every file
        runner: Job runner (defaults to one over `store`)
        writer: Workbook writer (defaults to one over `store`)
    """

    def __init__(
        self,
        store: JobStore,
        output_root: Path,
        options: Optional[ProcessingOptions] = None,
        runner: Optional[JobRunner] = None,
        writer: Optional[WorkbookWriter] = None,
    ):
        self.store = store
        self.output_root = Path(output_root)
        self.options = options or ProcessingOptions()
        self.runner = runner or JobRunner(store)
        self.writer = writer or WorkbookWriter(store)

    def run(self, scan: ScanResult) -> BatchSummary:
        summary = BatchSummary()
        ensure_directory(self.output_root)

        for folder in scan.folders:
            output_dir = ensure_directory(self.output_root / folder.name)
            files = scan.files_in(folder)
            logger.info(f"Processing {len(files)} files from {folder.name}")

            for position, pdf_path in enumerate(files, start=1):
                logger.info(f"[{position}/{len(files)}] Processing: {pdf_path.name}")
                result = self.process_file(pdf_path, output_dir)
                summary.results.append(result)

            done = sum(1 for r in summary.results if r.succeeded and r.source.parent == folder)
            logger.info(f"Completed processing {done}/{len(files)} files from {folder.name}")

        return summary

    def process_file(self, pdf_path: Path, output_dir: Path) -> BatchFileResult:
        """Create a job for one PDF, process it and write its outputs."""
        result = BatchFileResult(source=pdf_path)

        try:
            content = pdf_path.read_bytes()
            job = self.store.create_job(pdf_path.name)
            self.store.save_original_file(job.id, OriginalFile(filename=pdf_path.name, content=content))
            result.job_id = job.id

            job = self.runner.process_job(job.id, self.options)
            if job is None:
                result.error = "Job was deleted during processing"
                logger.error(f"Failed to process {pdf_path}: {result.error}")
                return result
            result.status = job.status
            if job.status != JobStatus.COMPLETED:
                result.error = job.error_message
                logger.error(f"Failed to process {pdf_path}: {job.error_message}")

            tables = self.store.get_extracted_tables_by_job_id(job.id)
            result.table_count = len(tables)

            result.json_path = output_dir / f"{pdf_path.stem}.json"
            snapshot = {"job": job.to_dict(), "tables": [t.to_dict() for t in tables]}
            result.json_path.write_text(json.dumps(snapshot, indent=2, ensure_ascii=False), encoding="utf-8")
            logger.info(f"Saved JSON: {result.json_path}")

        except Exception as e:
            result.error = str(e)
            logger.error(f"Failed to process {pdf_path}: {e}")
            return result

        try:
            xlsx_path = output_dir / f"{pdf_path.stem}.xlsx"
            xlsx_path.write_bytes(self.writer.generate_job_workbook(result.job_id))
            result.xlsx_path = xlsx_path
            logger.info(f"Saved Excel: {xlsx_path}")
        except NoTablesError:
            logger.warning(f"No tables to export for {pdf_path.name}")
        except Exception as e:
            logger.error(f"Failed to generate Excel for {pdf_path}: {e}")

        return result
