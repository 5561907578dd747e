# ============================================================================
# src/table_ingestion/core/job_runner.py
# ============================================================================
"""
Job Runner

Drives one stored job from its uploaded PDF to persisted tables:

    claim (pending|failed -> processing)
    10%  extract digital text
    40%  OCR (only when an OCR language is requested)
    60%  combine text sources
    80%  detect tables
    95%  save tables
    100% complete

Any failure after the claim marks the job failed with a readable message.
"""

import logging
import time
from typing import Optional

from ..detection.assembly import TableAssembler
from ..extractors import OCRExtractor, PositionedTokenSource, TextExtractor
from ..utils.exceptions import JobNotFoundError, OriginalFileMissingError
from ..utils.logging import JobLogAdapter
from .job_store import JobStore, ProcessingJob
from .models import DetectionResult, ProcessingOptions


class JobRunner:
    """
    Synchronous job processor.

    Safe to call from a background task or worker thread; duplicate runs are
    rejected by the store's atomic claim, not by in-process locks.
    """

    def __init__(
        self,
        store: JobStore,
        token_source: Optional[PositionedTokenSource] = None,
        text_extractor: Optional[TextExtractor] = None,
        ocr_extractor: Optional[OCRExtractor] = None,
        assembler: Optional[TableAssembler] = None,
    ):
        self.store = store
        self.assembler = assembler or TableAssembler(
            token_source=token_source or PositionedTokenSource(),
            text_extractor=text_extractor or TextExtractor(),
            ocr_extractor=ocr_extractor or OCRExtractor(),
        )
        self.logger = logging.getLogger(__name__)

    def process_job(self, job_id: str, options: Optional[ProcessingOptions] = None) -> ProcessingJob:
        """
        Claim and process a job.

        Raises:
            JobNotFoundError: Unknown job
            JobStateError: Job is already processing or completed
        """
        self.store.start_processing(job_id)
        return self.execute(job_id, options)

    def execute(self, job_id: str, options: Optional[ProcessingOptions] = None) -> Optional[ProcessingJob]:
        """
        Process a job that has already been claimed.

        Returns:
            The job in its final state (completed or failed), or None if the
            job was deleted while it was being processed
        """
        options = options or ProcessingOptions()
        log = JobLogAdapter(self.logger, job_id)
        start = time.perf_counter()

        try:
            original = self.store.get_original_file(job_id)
            if original is None:
                raise OriginalFileMissingError(job_id)

            log = JobLogAdapter(self.logger, job_id, source=original.filename)
            log.info(f"Processing {original.filename} ({original.size} bytes)")
            result = self.assembler.extract_from_pdf(
                original.content,
                options,
                progress_callback=lambda progress, message: self._report(job_id, progress, message),
            )

            self._report(job_id, 95, "Saving extracted data...")
            self.store.replace_job_tables(job_id, result.tables)

            self._report(job_id, 100, "Processing completed successfully!")
            job = self.store.complete_job(job_id)
            log.info(self._summary(result, time.perf_counter() - start))
            return job

        except Exception as e:
            message = str(e) or "Unknown error occurred"
            log.error(f"Processing failed: {message}", exc_info=True)
            try:
                return self.store.fail_job(job_id, message)
            except JobNotFoundError:
                log.warning("Job was deleted during processing; result discarded")
                return None

    def _report(self, job_id: str, progress: int, message: str):
        self.logger.debug(f"Job {job_id}: [{progress}%] {message}")
        self.store.update_job(job_id, progress=progress)

    @staticmethod
    def _summary(result: DetectionResult, elapsed: float) -> str:
        method = result.method.value if result.method else "none"
        return f"Extracted {len(result.tables)} tables via {method} in {elapsed:.2f}s"
