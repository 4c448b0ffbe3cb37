"""
Tests for the high-level parse_document and extract_many API.
"""

import pytest

from case_parser import extract_many, parse_document
from case_parser.config import ParserConfig
from case_parser.models import ExtractionMethod


class TestParseDocument:

    def test_from_bytes(self):
        result = parse_document(file_bytes=b"Statement of Mary Jones", file_name="statement.txt")
        assert result.method == ExtractionMethod.PLAIN_TEXT
        assert result.text == "Statement of Mary Jones"

    def test_empty_bytes_are_valid_input(self):
        result = parse_document(file_bytes=b"", file_name="empty.txt")

        assert result.method == ExtractionMethod.PLAIN_TEXT
        assert result.text == ""
        assert result.error is None

    def test_from_path(self, tmp_path):
        path = tmp_path / "calls.csv"
        path.write_text("caller,number\nJohn Doe,555-123-4567\n")

        result = parse_document(file_path=str(path), config=ParserConfig())

        assert result.method == ExtractionMethod.CSV
        assert result.metadata["row_count"] == 1

    @pytest.mark.parametrize(
        "kwargs",
        [
            {},
            {"file_path": "a.txt", "file_bytes": b"x"},
            {"file_path": "a.txt", "file_bytes": b""},
            {"file_bytes": b"x"},
            {"file_path": "/nonexistent/a.txt"},
        ],
    )
    def test_invalid_arguments(self, kwargs):
        with pytest.raises(ValueError):
            parse_document(**kwargs)


class TestExtractMany:

    def test_with_cache(self, tmp_path):
        root = tmp_path / "storage"
        root.mkdir()
        (root / "a.txt").write_text("first note")
        (root / "b.md").write_text("second note")
        cache_db = tmp_path / "cache.db"

        first = extract_many(["a.txt", "b.md"], storage_root=root, cache_db=cache_db)
        second = extract_many(["a.txt", "b.md"], storage_root=root, cache_db=cache_db)

        assert first["a.txt"].method == ExtractionMethod.PLAIN_TEXT
        assert second["a.txt"].method == ExtractionMethod.CACHED
        assert second["b.md"].text == "second note"
