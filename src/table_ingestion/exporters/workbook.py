# ============================================================================
# src/table_ingestion/exporters/workbook.py
# ============================================================================
"""
Workbook Writer

Renders extracted tables as .xlsx with openpyxl:
- One sheet per table, named "Table N" (N = table_index + 1)
- Bold header row with grey fill and thin borders
- Column widths from content: at least 10, at most 50
- A leading "Summary" sheet when a job has more than one table

Generated workbooks are cached in the job store until the job's tables change.
"""

import io
import logging
from datetime import date
from typing import List, Optional, Sequence

from openpyxl import Workbook
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.styles import Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet

from ..core.job_store import JobStore
from ..utils.exceptions import JobNotFoundError, NoTablesError, TableNotFoundError
from ..utils.file_utils import sanitize_filename
from ..utils.logging import log_performance

logger = logging.getLogger(__name__)

XLSX_MIME_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

MIN_COLUMN_WIDTH = 10
MAX_COLUMN_WIDTH = 50

HEADER_FONT = Font(bold=True)
HEADER_FILL = PatternFill(start_color="F0F0F0", end_color="F0F0F0", fill_type="solid")
THIN_BORDER = Border(
    left=Side(style='thin'),
    right=Side(style='thin'),
    top=Side(style='thin'),
    bottom=Side(style='thin')
)

SUMMARY_COLUMN_WIDTHS = (15, 10, 12, 12, 15)


def sheet_name(table) -> str:
    return f"Table {table.table_index + 1}"


def workbook_filename(source_name: str, table=None) -> str:
    """Download name: <source stem>_extracted_tables.xlsx or <source stem>_table_N.xlsx."""
    stem = source_name.rsplit(".", 1)[0] if "." in source_name else source_name
    stem = sanitize_filename(stem) or "document"
    if table is not None:
        return f"{stem}_table_{table.table_index + 1}.xlsx"
    return f"{stem}_extracted_tables.xlsx"


def column_widths(rows: Sequence[Sequence[str]]) -> List[int]:
    column_count = max((len(row) for row in rows), default=0)
    widths = [MIN_COLUMN_WIDTH] * column_count
    for row in rows:
        for index, cell in enumerate(row):
            widths[index] = max(widths[index], min(len(str(cell)) + 2, MAX_COLUMN_WIDTH))
    return widths


def _clean(value: str) -> str:
    # Control characters (e.g. form feeds from OCR) are rejected by openpyxl
    return ILLEGAL_CHARACTERS_RE.sub("", str(value))


class WorkbookWriter:
    """
    Builds workbooks for stored tables and caches the bytes.

    The store is only required for the job/table-id based methods.
    """

    def __init__(self, store: Optional[JobStore] = None):
        self.store = store

    def generate_table_workbook(self, table_id: str) -> bytes:
        """
        Workbook with a single sheet for one stored table.

        Raises:
            TableNotFoundError: Unknown table
        """
        table = self.store.get_extracted_table(table_id)
        if table is None:
            raise TableNotFoundError(table_id)

        cached = self.store.get_excel_file(table.job_id, table.id)
        if cached is not None:
            return cached

        wb = Workbook()
        wb.remove(wb.active)
        self._add_table_sheet(wb, table)
        content = self._to_bytes(wb)

        self.store.save_excel_file(table.job_id, table.id, content)
        return content

    def generate_job_workbook(self, job_id: str) -> bytes:
        """
        Workbook with every table of a job.

        Raises:
            JobNotFoundError: Unknown job
            NoTablesError: Job has no extracted tables
        """
        job = self.store.get_job(job_id)
        if job is None:
            raise JobNotFoundError(job_id)

        cached = self.store.get_excel_file(job_id)
        if cached is not None:
            return cached

        tables = self.store.get_extracted_tables_by_job_id(job_id)
        content = self.write_tables_workbook(tables, job.filename)

        self.store.save_excel_file(job_id, None, content)
        return content

    @log_performance(logger, "Workbook generation")
    def write_tables_workbook(self, tables: Sequence, source_name: str) -> bytes:
        """
        Workbook for an arbitrary list of tables (stored or freshly extracted).

        Args:
            tables: Objects with table_index, headers, data and confidence
            source_name: Original PDF name, shown on the summary sheet

        Returns:
            .xlsx bytes
        """
        if not tables:
            raise NoTablesError("No tables found for this job")

        wb = Workbook()
        wb.remove(wb.active)
        for table in tables:
            self._add_table_sheet(wb, table)

        if len(tables) > 1:
            self._add_summary_sheet(wb, source_name, tables)

        return self._to_bytes(wb)

    # ------------------------------------------------------------------
    # Sheets
    # ------------------------------------------------------------------
    def _add_table_sheet(self, wb: Workbook, table) -> Worksheet:
        ws = wb.create_sheet(sheet_name(table))
        rows = [list(table.headers)] + [list(row) for row in table.data]

        for row in rows:
            ws.append([_clean(cell) for cell in row])

        for col_idx in range(1, len(table.headers) + 1):
            cell = ws.cell(row=1, column=col_idx)
            cell.font = HEADER_FONT
            cell.fill = HEADER_FILL
            cell.border = THIN_BORDER

        for col_idx, width in enumerate(column_widths(rows), start=1):
            ws.column_dimensions[get_column_letter(col_idx)].width = width

        return ws

    def _add_summary_sheet(self, wb: Workbook, source_name: str, tables: Sequence) -> Worksheet:
        ws = wb.create_sheet("Summary", 0)

        ws.append(["PDF to Excel Extraction Summary"])
        ws.append([])
        ws.append(["Source File:", _clean(source_name)])
        ws.append(["Extraction Date:", date.today().isoformat()])
        ws.append(["Tables Extracted:", len(tables)])
        ws.append([])
        ws.append(["Table Details:"])
        ws.append(["Table #", "Rows", "Columns", "Confidence", "Sheet Name"])
        details_header_row = ws.max_row

        for table in tables:
            ws.append([
                sheet_name(table),
                len(table.data),
                len(table.headers),
                f"{table.confidence}%",
                sheet_name(table),
            ])

        ws["A1"].font = Font(bold=True, size=14)
        for label_row in (3, 4, 5, 7):
            ws.cell(row=label_row, column=1).font = HEADER_FONT
        for col_idx in range(1, len(SUMMARY_COLUMN_WIDTHS) + 1):
            cell = ws.cell(row=details_header_row, column=col_idx)
            cell.font = HEADER_FONT
            cell.fill = HEADER_FILL
            cell.border = THIN_BORDER

        for col_idx, width in enumerate(SUMMARY_COLUMN_WIDTHS, start=1):
            ws.column_dimensions[get_column_letter(col_idx)].width = width

        return ws

    @staticmethod
    def _to_bytes(wb: Workbook) -> bytes:
        buffer = io.BytesIO()
        wb.save(buffer)
        return buffer.getvalue()
