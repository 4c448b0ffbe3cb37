"""Word documents, spreadsheets and CSV files.

Tabular sources are kept twice: as ``ExtractedTable`` objects in the
structured data, and as a flattened "Row N: header: value | ..." text block
so the text-based analysis downstream sees every cell.
"""

import csv
import datetime
import io
import warnings
from pathlib import Path
from typing import Any

from docx import Document

from case_parser.exceptions import ExtractionError
from case_parser.extractor import BaseExtractor
from case_parser.logger import get_logger
from case_parser.models import ExtractedTable, ExtractionMethod, ExtractionResult
from case_parser.structured import extract_structured_data

logger = get_logger(__name__)

MAX_DOCX_WARNINGS = 5


def _cell_to_str(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, datetime.datetime) and value.time() == datetime.time(0):
        return value.date().isoformat()
    return str(value).strip()


def _is_blank(row: list[str]) -> bool:
    return not any(cell for cell in row)


def render_rows(headers: list[str], rows: list[list[str]]) -> str:
    """Columns line, a rule, then one "Row N: header: value | ..." line per row."""
    parts = [f"Columns: {' | '.join(headers)}\n", "-" * 80 + "\n"]
    for row_index, row in enumerate(rows, start=1):
        cells = [
            f"{header}: {row[i] if i < len(row) and row[i] else 'N/A'}"
            for i, header in enumerate(headers)
        ]
        parts.append(f"Row {row_index}: {' | '.join(cells)}\n")
    return "".join(parts)


class DocxExtractor(BaseExtractor):
    """Typed reports, transcripts and formal documents (.docx)."""

    method = ExtractionMethod.DOCX
    failure_label = "Word document extraction failed"

    def _extract(self, file_bytes: bytes, file_name: str) -> ExtractionResult:
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            document = Document(io.BytesIO(file_bytes))
            paragraphs = [p.text.strip() for p in document.paragraphs if p.text.strip()]

            tables = []
            for table in document.tables:
                rows = []
                for i, row in enumerate(table.rows):
                    cells = [cell.text.strip() for cell in row.cells]
                    rows.append(" | ".join(cells))
                    if i == 0:
                        rows.append(" | ".join(["---"] * len(cells)))
                if rows:
                    tables.append("\n".join(rows))

        messages = [str(w.message) for w in caught]
        messages.extend(
            f"Embedded image {n} skipped; text inside images is not extracted"
            for n in range(1, len(document.inline_shapes) + 1)
        )

        text = "\n\n".join(paragraphs + tables).strip()
        if not text:
            return ExtractionResult(
                text="[No text content found in Word document]",
                method=self.method,
                confidence=0.1,
                error="Document appears to be empty or contains only images",
                needs_review=True,
                metadata={"warnings": messages},
            )

        if messages:
            logger.info(
                "Word extraction produced warnings",
                extra_data={"file_name": file_name, "warning_count": len(messages)},
            )

        return ExtractionResult(
            text=text,
            method=self.method,
            confidence=0.85 if messages else 0.95,
            needs_review=len(messages) > MAX_DOCX_WARNINGS,
            structured_data=extract_structured_data(text),
            metadata={
                "warnings": messages,
                "paragraph_count": len(paragraphs),
                "table_count": len(tables),
                "character_count": len(text),
                "word_count": len(text.split()),
            },
        )


class SpreadsheetExtractor(BaseExtractor):
    """Phone records, financial records and evidence logs (.xlsx, .xls)."""

    method = ExtractionMethod.SPREADSHEET
    failure_label = "Excel extraction failed"

    def _extract(self, file_bytes: bytes, file_name: str) -> ExtractionResult:
        if Path(file_name).suffix.lower() == ".xls":
            sheets = self._read_xls(file_bytes)
        else:
            sheets = self._read_xlsx(file_bytes)

        tables: list[ExtractedTable] = []
        text_parts: list[str] = []
        for index, (sheet_name, rows) in enumerate(sheets):
            rows = [row for row in rows if not _is_blank(row)]
            if not rows:
                continue

            headers, body = rows[0], rows[1:]
            tables.append(ExtractedTable(headers=headers, rows=body, name=sheet_name, sheet_index=index))
            text_parts.append(f"\n=== Sheet: {sheet_name} ===\n")
            text_parts.append(render_rows(headers, body))

        text = "".join(text_parts)
        structured_data = extract_structured_data(text)
        structured_data.tables = tables

        return ExtractionResult(
            text=text,
            method=self.method,
            confidence=0.98,
            structured_data=structured_data,
            metadata={
                "sheet_count": len(sheets),
                "sheet_names": [name for name, _ in sheets],
                "total_rows": sum(len(t.rows) for t in tables),
                "total_columns": max((len(t.headers) for t in tables), default=0),
            },
        )

    @staticmethod
    def _read_xlsx(file_bytes: bytes) -> list[tuple[str, list[list[str]]]]:
        try:
            from openpyxl import load_workbook
        except ImportError as exc:
            raise ExtractionError(
                "openpyxl is required for .xlsx extraction. Please install openpyxl."
            ) from exc

        workbook = load_workbook(io.BytesIO(file_bytes), read_only=True, data_only=True)
        try:
            return [
                (
                    sheet_name,
                    [[_cell_to_str(v) for v in row] for row in workbook[sheet_name].iter_rows(values_only=True)],
                )
                for sheet_name in workbook.sheetnames
            ]
        finally:
            workbook.close()

    @staticmethod
    def _read_xls(file_bytes: bytes) -> list[tuple[str, list[list[str]]]]:
        try:
            import xlrd
        except ImportError as exc:
            raise ExtractionError("xlrd is required for .xls extraction. Please install xlrd.") from exc

        workbook = xlrd.open_workbook(file_contents=file_bytes)
        return [
            (
                sheet.name,
                [[_cell_to_str(v) for v in sheet.row_values(r)] for r in range(sheet.nrows)],
            )
            for sheet in workbook.sheets()
        ]


class CsvExtractor(BaseExtractor):
    """Call logs, transaction records and witness lists (.csv)."""

    method = ExtractionMethod.CSV
    failure_label = "CSV extraction failed"

    def _extract(self, file_bytes: bytes, file_name: str) -> ExtractionResult:
        content = file_bytes.decode("utf-8-sig", errors="replace")
        rows = [[cell.strip() for cell in row] for row in csv.reader(io.StringIO(content))]
        rows = [row for row in rows if not _is_blank(row)]

        if not rows:
            return ExtractionResult(
                text="[Empty CSV file]",
                method=self.method,
                confidence=0.5,
                needs_review=True,
            )

        headers, body = rows[0], rows[1:]
        text = render_rows(headers, body)
        structured_data = extract_structured_data(text)
        structured_data.tables = [ExtractedTable(headers=headers, rows=body)]

        return ExtractionResult(
            text=text,
            method=self.method,
            confidence=0.95,
            structured_data=structured_data,
            metadata={
                "row_count": len(body),
                "column_count": len(headers),
                "headers": headers,
            },
        )
