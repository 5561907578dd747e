# ============================================================================
# src/table_ingestion/utils/file_utils.py
# ============================================================================
"""
File utilities: folder scanning for batch runs, filename helpers.
"""

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

logger = logging.getLogger(__name__)


def ensure_directory(path: Path) -> Path:
    """
    Ensure directory exists, create if not.

    Args:
        path: Directory path

    Returns:
        Path to directory
    """
    path.mkdir(parents=True, exist_ok=True)
    return path


def sanitize_filename(filename: str) -> str:
    """
    Sanitize filename by removing invalid characters.

    Args:
        filename: Original filename

    Returns:
        Sanitized filename
    """
    invalid_chars = '<>:"/\\|?*'
    for char in invalid_chars:
        filename = filename.replace(char, '_')

    filename = filename.strip('. ')

    max_length = 255
    if len(filename) > max_length:
        name, ext = os.path.splitext(filename)
        filename = name[:max_length - len(ext)] + ext

    return filename


def is_pdf_bytes(content: bytes) -> bool:
    """Check the %PDF magic header."""
    return content[:5] == b'%PDF-'


@dataclass
class ScanResult:
    """Folders that contain PDFs and the PDFs found in them."""
    folders: List[Path] = field(default_factory=list)
    files: List[Path] = field(default_factory=list)

    @property
    def total_files(self) -> int:
        return len(self.files)

    def files_in(self, folder: Path) -> List[Path]:
        return [f for f in self.files if f.parent == folder]


class FolderScanner:
    """
    Finds top-level folders matching a wildcard pattern (e.g. "sampl*")
    under a workspace root and lists the PDF files inside them.
    """

    def __init__(self, workspace_root: Optional[Path] = None):
        self.workspace_root = Path(workspace_root or Path.cwd())

    def find_folders(self, pattern: str) -> List[Path]:
        """Directories directly under the root whose name matches pattern."""
        try:
            folders = sorted(
                entry for entry in self.workspace_root.iterdir()
                if entry.is_dir() and self.matches_pattern(entry.name, pattern)
            )
        except OSError as e:
            logger.error(f"Error scanning for folders matching \"{pattern}\": {e}")
            return []

        logger.info(
            f"Found {len(folders)} folders matching pattern \"{pattern}\": "
            f"{', '.join(f.name for f in folders)}"
        )
        return [f.resolve() for f in folders]

    def find_pdf_files(self, folders: List[Path]) -> ScanResult:
        """Collect *.pdf files (case-insensitive, non-recursive) per folder."""
        result = ScanResult()

        for folder in folders:
            if not folder.exists():
                logger.warning(f"Folder does not exist: {folder}")
                continue

            try:
                pdf_files = sorted(
                    p for p in folder.iterdir()
                    if p.is_file() and p.suffix.lower() == '.pdf'
                )
            except OSError as e:
                logger.error(f"Error scanning folder {folder}: {e}")
                continue

            if pdf_files:
                result.folders.append(folder)
                result.files.extend(pdf_files)
                logger.info(f"Found {len(pdf_files)} PDF files in folder \"{folder.name}\"")
            else:
                logger.warning(f"No PDF files found in folder \"{folder.name}\"")

        return result

    def scan_for_pdf_files(self, pattern: str) -> ScanResult:
        """Find matching folders, then the PDFs inside them."""
        folders = self.find_folders(pattern)
        if not folders:
            logger.warning(f"No folders found matching pattern \"{pattern}\"")
            return ScanResult()
        return self.find_pdf_files(folders)

    @staticmethod
    def matches_pattern(name: str, pattern: str) -> bool:
        """Case-insensitive glob match supporting * and ?."""
        regex = ''.join(
            '.*' if ch == '*' else '.' if ch == '?' else re.escape(ch)
            for ch in pattern
        )
        return re.fullmatch(regex, name, flags=re.IGNORECASE) is not None

    def get_relative_path(self, path: Path) -> Path:
        try:
            return Path(path).relative_to(self.workspace_root.resolve())
        except ValueError:
            return Path(path)
