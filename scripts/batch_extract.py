#!/usr/bin/env python3
"""
Batch Table Extraction Script

Finds folders matching a wildcard pattern, extracts tables from every PDF in
them and writes JSON snapshots and Excel workbooks under the output directory.

Usage:
    python scripts/batch_extract.py                      # folders matching "sampl*"
    python scripts/batch_extract.py --pattern "test*"
    python scripts/batch_extract.py --scan               # list what would be processed
    python scripts/batch_extract.py --ocr-language eng --sensitivity high
"""

import argparse
import sys
from pathlib import Path

from table_ingestion.batch import BatchProcessor
from table_ingestion.config import base_settings, detection_settings
from table_ingestion.core import JobStore, ProcessingOptions, Sensitivity
from table_ingestion.utils import FolderScanner, setup_logging


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Extract tables from PDFs in folders matching a pattern"
    )

    parser.add_argument(
        "--pattern", "-p",
        type=str,
        default="sampl*",
        help="Folder name pattern, * and ? wildcards, case-insensitive"
    )
    parser.add_argument(
        "--root",
        type=str,
        default=None,
        help="Directory to search for matching folders (default: current directory)"
    )
    parser.add_argument(
        "--scan", "-s",
        action="store_true",
        help="Only list matching folders and files"
    )
    parser.add_argument(
        "--output", "-o",
        type=str,
        default=str(base_settings.OUTPUT_DIR),
        help="Output directory"
    )
    parser.add_argument(
        "--ocr-language",
        type=str,
        default=None,
        help="Tesseract language code; enables OCR"
    )
    parser.add_argument(
        "--threshold",
        type=int,
        default=detection_settings.DEFAULT_CONFIDENCE_THRESHOLD,
        help="Minimum confidence for text-pattern tables (0-100)"
    )
    parser.add_argument(
        "--sensitivity",
        type=str,
        choices=[s.value for s in Sensitivity],
        default=detection_settings.DEFAULT_SENSITIVITY,
        help="Table line detection sensitivity"
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")

    args = parser.parse_args()
    setup_logging(level="DEBUG" if args.verbose else "INFO")

    if not 0 <= args.threshold <= 100:
        parser.error("--threshold must be between 0 and 100")

    print("=" * 60)
    print("PDF Batch Table Extraction")
    print("=" * 60)
    print(f"Pattern: \"{args.pattern}\"")
    print(f"Action:  {'Scan only' if args.scan else 'Process files'}")

    scanner = FolderScanner(Path(args.root) if args.root else None)
    scan = scanner.scan_for_pdf_files(args.pattern)

    if scan.total_files == 0:
        print(f"\nNo PDF files found in folders matching \"{args.pattern}\"")
        return 0

    print(f"\nFound {scan.total_files} PDF files in {len(scan.folders)} folders:")
    for folder in scan.folders:
        files = scan.files_in(folder)
        print(f"  {scanner.get_relative_path(folder)}/ ({len(files)} files)")
        for pdf in files:
            print(f"    - {pdf.name}")

    if args.scan:
        return 0

    output_root = Path(args.output)
    options = ProcessingOptions(
        ocr_language=args.ocr_language,
        confidence_threshold=args.threshold,
        table_detection_sensitivity=Sensitivity(args.sensitivity),
    )
    store = JobStore(output_root / "batch_jobs.db")
    summary = BatchProcessor(store, output_root, options).run(scan)

    print("\n" + "=" * 60)
    print(f"Processed {summary.processed}/{len(summary.results)} files ({summary.failed} failed)")
    print(f"Output: {output_root.resolve()}")
    print("=" * 60)

    return 0 if summary.failed == 0 else 1


if __name__ == "__main__":
    sys.exit(main())
