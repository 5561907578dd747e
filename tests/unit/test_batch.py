# ============================================================================
# FILE: tests/unit/test_batch.py
# ============================================================================
"""
Unit tests for batch folder processing
"""

import json
from unittest.mock import Mock

import pytest

from table_ingestion.batch import BatchProcessor
from table_ingestion.core import JobStatus
from table_ingestion.core.job_runner import JobRunner
from table_ingestion.utils import FolderScanner


@pytest.fixture
def sample_folders(tmp_path):
    workspace = tmp_path / "workspace"
    (workspace / "samples").mkdir(parents=True)
    (workspace / "samples" / "q1.pdf").write_bytes(b"%PDF-1.4 q1")
    (workspace / "samples" / "q2.pdf").write_bytes(b"%PDF-1.4 q2")
    (workspace / "sample_b").mkdir()
    (workspace / "sample_b" / "memo.pdf").write_bytes(b"%PDF-1.4 memo")
    return workspace


@pytest.fixture
def processor(job_store, stub_assembler_factory, sample_pipe_text, tmp_path):
    runner = JobRunner(job_store, assembler=stub_assembler_factory(text=sample_pipe_text))
    return BatchProcessor(job_store, tmp_path / "outputs", runner=runner)


def test_batch_writes_outputs_per_folder(processor, sample_folders, tmp_path):
    scan = FolderScanner(sample_folders).scan_for_pdf_files("sampl*")

    summary = processor.run(scan)

    assert summary.processed == 3
    assert summary.failed == 0
    outputs = tmp_path / "outputs"
    assert (outputs / "samples" / "q1.json").exists()
    assert (outputs / "samples" / "q2.xlsx").exists()
    assert (outputs / "sample_b" / "memo.xlsx").exists()


def test_json_snapshot_contents(processor, sample_folders, tmp_path):
    result = processor.process_file(sample_folders / "samples" / "q1.pdf", tmp_path)

    snapshot = json.loads(result.json_path.read_text(encoding="utf-8"))
    assert snapshot["job"]["filename"] == "q1.pdf"
    assert snapshot["job"]["status"] == "completed"
    assert snapshot["tables"][0]["headers"][0] == "Region"
    assert result.table_count == 1
    assert result.succeeded


def test_failed_file_does_not_stop_batch(job_store, sample_folders, tmp_path, stub_assembler_factory):
    good = stub_assembler_factory(text="Name | Qty | Unit\nBolt | 4 | ea\nNut | 9 | ea")
    assembler = Mock(wraps=good)
    assembler.extract_from_pdf.side_effect = [
        RuntimeError("corrupt"),
        good.extract_from_pdf(b"%PDF"),
        good.extract_from_pdf(b"%PDF"),
    ]
    processor = BatchProcessor(
        job_store,
        tmp_path / "outputs",
        runner=JobRunner(job_store, assembler=assembler),
    )

    summary = processor.run(FolderScanner(sample_folders).scan_for_pdf_files("sampl*"))

    assert summary.processed == 2
    assert summary.failed == 1
    failed = [r for r in summary.results if not r.succeeded][0]
    assert failed.status == JobStatus.FAILED
    assert failed.error == "corrupt"
    assert failed.xlsx_path is None
    # the failed job still gets its JSON snapshot
    assert failed.json_path.exists()


def test_unreadable_file_recorded(processor, tmp_path):
    result = processor.process_file(tmp_path / "missing.pdf", tmp_path)

    assert result.job_id is None
    assert result.error
    assert not result.succeeded


def test_empty_scan(processor):
    from table_ingestion.utils import ScanResult

    summary = processor.run(ScanResult())
    assert summary.results == []
