# customs_app/exports/writer.py
"""Spreadsheet and CSV export of rule query results."""

import io
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence

import pandas as pd
from openpyxl.styles import Alignment, Font, PatternFill

from customs_app.core.config import EXPORT_BATCH_SIZE
from customs_app.customs.models import Header
from customs_app.exports.sections import (
    FLAT_SHEET_COLOR,
    FLAT_SHEET_TITLE,
    FlatLayout,
    Section,
    sheets_for,
)
from customs_app.query.engine import QueryExecutor

logger = logging.getLogger(__name__)

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
CSV_MEDIA_TYPE = "text/csv"


@dataclass
class ExportResult:
    """A finished export file plus counters for the execution log."""

    content: bytes
    media_type: str
    filename: str
    declarations: int = 0
    batches: int = 0
    rows_per_sheet: Dict[str, int] = field(default_factory=dict)

    @property
    def row_count(self) -> int:
        return sum(self.rows_per_sheet.values())


@dataclass
class _SheetTarget:
    title: str
    color: str
    headers: List[str]
    rows: Callable[[Header], List[List[Any]]]
    next_row: int = 1
    written: int = 0


def default_filename(extension: str = "xlsx") -> str:
    return f"customs_data_{datetime.now().strftime('%Y%m%d_%H%M%S')}.{extension}"


def _ensure_extension(filename: Optional[str], extension: str) -> str:
    name = (filename or "").strip() or default_filename(extension)
    if not name.lower().endswith(f".{extension}"):
        name += f".{extension}"
    return name


class CustomsExporter:
    """Writes every declaration matching a rule tree, one bounded batch at a time."""

    def __init__(self, executor: QueryExecutor, batch_size: int = EXPORT_BATCH_SIZE):
        self.executor = executor
        self.batch_size = batch_size

    def export_xlsx(
        self,
        rules: Any,
        sections: Sequence[Section],
        layout: str = "sheets",
        sort_by: Optional[str] = None,
        sort_direction: Optional[str] = None,
        filename: Optional[str] = None,
    ) -> ExportResult:
        """Build an xlsx workbook; one sheet per section, or a single flat sheet."""
        batches = self.executor.iter_header_batches(
            rules, sort_by, sort_direction, batch_size=self.batch_size, sections=sections
        )
        targets = self._targets(sections, layout)
        result = ExportResult(b"", XLSX_MEDIA_TYPE, _ensure_extension(filename, "xlsx"))

        excel_buffer = io.BytesIO()
        with pd.ExcelWriter(excel_buffer, engine="openpyxl") as writer:
            for target in targets:
                pd.DataFrame(columns=target.headers).to_excel(writer, sheet_name=target.title, index=False)

            for batch in batches:
                result.batches += 1
                result.declarations += len(batch)
                for target in targets:
                    rows = [row for header in batch for row in target.rows(header)]
                    if not rows:
                        continue
                    pd.DataFrame(rows, columns=target.headers).to_excel(
                        writer,
                        sheet_name=target.title,
                        index=False,
                        header=False,
                        startrow=target.next_row,
                    )
                    target.next_row += len(rows)
                    target.written += len(rows)

            for target in targets:
                worksheet = writer.sheets[target.title]
                _apply_excel_formatting(worksheet, len(target.headers), target.color)
                _auto_adjust_columns(worksheet)

        result.content = excel_buffer.getvalue()
        result.rows_per_sheet = {target.title: target.written for target in targets}
        logger.info(
            "Exported %s declarations in %s batches (%s)",
            result.declarations, result.batches, result.rows_per_sheet,
        )
        return result

    def iter_csv(
        self,
        rules: Any,
        sections: Sequence[Section],
        sort_by: Optional[str] = None,
        sort_direction: Optional[str] = None,
        result: Optional[ExportResult] = None,
    ) -> Iterator[str]:
        """CSV text chunks of the flat layout, one chunk per batch; only the first carries the header."""
        batches = self.executor.iter_header_batches(
            rules, sort_by, sort_direction, batch_size=self.batch_size, sections=sections
        )
        flat = FlatLayout(sections)

        def generate() -> Iterator[str]:
            header_written = False
            for batch in batches:
                rows = [row for header in batch for row in flat.rows(header)]
                if result is not None:
                    result.batches += 1
                    result.declarations += len(batch)
                    result.rows_per_sheet[FLAT_SHEET_TITLE] = result.rows_per_sheet.get(FLAT_SHEET_TITLE, 0) + len(rows)
                yield pd.DataFrame(rows, columns=flat.headers).to_csv(index=False, header=not header_written)
                header_written = True
            if not header_written:
                yield pd.DataFrame(columns=flat.headers).to_csv(index=False)

        return generate()

    def export_csv(
        self,
        rules: Any,
        sections: Sequence[Section],
        sort_by: Optional[str] = None,
        sort_direction: Optional[str] = None,
        filename: Optional[str] = None,
    ) -> ExportResult:
        """Flat layout as a CSV file, assembled in memory from the per-batch chunks."""
        result = ExportResult(b"", CSV_MEDIA_TYPE, _ensure_extension(filename, "csv"))
        result.rows_per_sheet[FLAT_SHEET_TITLE] = 0
        chunks = self.iter_csv(rules, sections, sort_by, sort_direction, result=result)
        result.content = "".join(chunks).encode("utf-8")
        return result

    @staticmethod
    def _targets(sections: Sequence[Section], layout: str) -> List[_SheetTarget]:
        if layout == "flat":
            flat = FlatLayout(sections)
            return [_SheetTarget(FLAT_SHEET_TITLE, FLAT_SHEET_COLOR, flat.headers, flat.rows)]
        return [
            _SheetTarget(sheet.title, sheet.color, sheet.headers, sheet.rows)
            for sheet in sheets_for(sections)
        ]


def _apply_excel_formatting(worksheet, column_count: int, color: str):
    """Bold white header on the sheet colour, frozen header row, coloured tab."""
    header_font = Font(bold=True, color="FFFFFF")
    header_fill = PatternFill(start_color=color, end_color=color, fill_type="solid")
    header_alignment = Alignment(horizontal="center", vertical="center")

    for col_num in range(1, column_count + 1):
        cell = worksheet.cell(row=1, column=col_num)
        cell.font = header_font
        cell.fill = header_fill
        cell.alignment = header_alignment

    worksheet.freeze_panes = "A2"
    worksheet.sheet_properties.tabColor = color


def _auto_adjust_columns(worksheet):
    """Auto-adjust column widths for better readability."""
    for column in worksheet.columns:
        max_length = 0
        column_letter = column[0].column_letter

        for cell in column:
            if cell.value is None:
                continue
            max_length = max(max_length, len(str(cell.value)))

        # Set column width with some padding, max 50 characters
        worksheet.column_dimensions[column_letter].width = min(max_length + 2, 50)
