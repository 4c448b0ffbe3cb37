"""
Tests for Word, spreadsheet and CSV extraction.
"""

import io
import sys
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import docx
import openpyxl
import pytest

from case_parser.models import ExtractionMethod
from case_parser.office import CsvExtractor, DocxExtractor, SpreadsheetExtractor, render_rows


def docx_bytes(paragraphs=(), table=None):
    document = docx.Document()
    for text in paragraphs:
        document.add_paragraph(text)
    if table:
        grid = document.add_table(rows=len(table), cols=len(table[0]))
        for r, row in enumerate(table):
            for c, value in enumerate(row):
                grid.cell(r, c).text = value
    buffer = io.BytesIO()
    document.save(buffer)
    return buffer.getvalue()


def xlsx_bytes(sheets):
    workbook = openpyxl.Workbook()
    workbook.remove(workbook.active)
    for name, rows in sheets.items():
        sheet = workbook.create_sheet(name)
        for row in rows:
            sheet.append(row)
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


# ─────────────────────────────────────
#  Row rendering
# ─────────────────────────────────────

class TestRenderRows:

    def test_layout(self):
        text = render_rows(["Name", "Phone"], [["John Doe", ""], ["Jane Roe", "555-123-4567"]])
        lines = text.splitlines()
        assert lines[0] == "Columns: Name | Phone"
        assert lines[1] == "-" * 80
        assert lines[2] == "Row 1: Name: John Doe | Phone: N/A"
        assert lines[3] == "Row 2: Name: Jane Roe | Phone: 555-123-4567"

    def test_short_row_padded(self):
        assert "Row 1: A: x | B: N/A" in render_rows(["A", "B"], [["x"]])


# ─────────────────────────────────────
#  Word documents
# ─────────────────────────────────────

class TestDocxExtractor:

    def test_paragraphs_and_tables(self):
        data = docx_bytes(
            paragraphs=["Incident report", "Witness Mary Jones saw the suspect."],
            table=[["Name", "Phone"], ["Mary Jones", "555-123-4567"]],
        )
        result = DocxExtractor().extract(data, "report.docx")

        assert result.method == ExtractionMethod.DOCX
        assert result.text.startswith("Incident report\n\nWitness Mary Jones saw the suspect.")
        assert "Name | Phone\n--- | ---\nMary Jones | 555-123-4567" in result.text
        assert result.confidence >= 0.85
        assert result.needs_review is False
        assert result.metadata["table_count"] == 1
        assert "555-123-4567" in result.structured_data.phone_numbers

    def test_empty_document(self):
        result = DocxExtractor().extract(docx_bytes(), "blank.docx")

        assert result.text == "[No text content found in Word document]"
        assert result.confidence == pytest.approx(0.1)
        assert result.error
        assert result.needs_review is True

    def test_many_warnings_need_review(self):
        fake = SimpleNamespace(
            paragraphs=[SimpleNamespace(text="Photo log")],
            tables=[],
            inline_shapes=[object()] * 6,
        )
        with patch("case_parser.office.Document", return_value=fake):
            result = DocxExtractor().extract(b"PK", "photos.docx")

        assert len(result.metadata["warnings"]) == 6
        assert result.confidence == pytest.approx(0.85)
        assert result.needs_review is True

    def test_corrupt_file(self):
        result = DocxExtractor().extract(b"not a zip archive", "broken.docx")
        assert result.error.startswith("Word document extraction failed")
        assert result.text == ""


# ─────────────────────────────────────
#  Spreadsheets
# ─────────────────────────────────────

class TestSpreadsheetExtractor:

    def test_xlsx(self):
        data = xlsx_bytes(
            {
                "Calls": [
                    ["Caller", "Number", "Minutes"],
                    ["John Doe", "555-123-4567", 3.0],
                    ["Jane Roe", None, 12],
                ],
                "Empty": [],
            }
        )
        result = SpreadsheetExtractor().extract(data, "phone_records.xlsx")

        assert result.method == ExtractionMethod.SPREADSHEET
        assert result.confidence == pytest.approx(0.98)
        assert "=== Sheet: Calls ===" in result.text
        assert "Row 1: Caller: John Doe | Number: 555-123-4567 | Minutes: 3" in result.text
        assert "Row 2: Caller: Jane Roe | Number: N/A | Minutes: 12" in result.text
        assert "Empty" not in result.text

        table = result.structured_data.tables[0]
        assert table.name == "Calls"
        assert table.headers == ["Caller", "Number", "Minutes"]
        assert len(table.rows) == 2
        assert result.structured_data.phone_numbers == ["555-123-4567"]
        assert result.metadata["sheet_count"] == 2
        assert result.metadata["total_rows"] == 2

    def test_xls_uses_xlrd(self):
        sheet = MagicMock(nrows=2)
        sheet.name = "Ledger"
        sheet.row_values.side_effect = [["Account", "Amount"], ["ACME", 150.0]]
        xlrd = MagicMock()
        xlrd.open_workbook.return_value.sheets.return_value = [sheet]

        with patch.dict(sys.modules, {"xlrd": xlrd}):
            result = SpreadsheetExtractor().extract(b"\xd0\xcf\x11\xe0", "ledger.xls")

        xlrd.open_workbook.assert_called_once_with(file_contents=b"\xd0\xcf\x11\xe0")
        assert "Row 1: Account: ACME | Amount: 150" in result.text

    def test_corrupt_workbook(self):
        result = SpreadsheetExtractor().extract(b"garbage", "broken.xlsx")
        assert result.error.startswith("Excel extraction failed")
        assert result.needs_review is True


# ─────────────────────────────────────
#  CSV
# ─────────────────────────────────────

class TestCsvExtractor:

    def test_csv_with_bom(self):
        data = "\ufeffname,phone\nJohn Doe,555-123-4567\n\nJane Roe,\n".encode("utf-8")
        result = CsvExtractor().extract(data, "witnesses.csv")

        assert result.method == ExtractionMethod.CSV
        assert result.confidence == pytest.approx(0.95)
        assert result.text.startswith("Columns: name | phone\n")
        assert "Row 1: name: John Doe | phone: 555-123-4567" in result.text
        assert "Row 2: name: Jane Roe | phone: N/A" in result.text
        assert result.metadata == {"row_count": 2, "column_count": 2, "headers": ["name", "phone"]}

    def test_empty_csv(self):
        result = CsvExtractor().extract(b"", "empty.csv")

        assert result.text == "[Empty CSV file]"
        assert result.confidence == pytest.approx(0.5)
        assert result.needs_review is True
        assert result.error is None
