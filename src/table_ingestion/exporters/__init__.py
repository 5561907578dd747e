"""
Spreadsheet export of extracted tables.
"""

from .workbook import WorkbookWriter, XLSX_MIME_TYPE, workbook_filename

__all__ = [
    'WorkbookWriter',
    'XLSX_MIME_TYPE',
    'workbook_filename',
]
