"""
Tests for format routing and result post-processing.
"""

import math
from unittest.mock import Mock

import pytest

from case_parser.detector import DocumentFormat, detect_format
from case_parser.extractor import BaseExtractor
from case_parser.models import ExtractionMethod, ExtractionResult
from case_parser.router import FormatRouter, is_placeholder


# ─────────────────────────────────────
#  Detection
# ─────────────────────────────────────

class TestDetectFormat:

    @pytest.mark.parametrize(
        "path, expected",
        [
            ("cases/1/report.pdf", DocumentFormat.PDF),
            ("scan.JPEG", DocumentFormat.IMAGE),
            ("photo.webp", DocumentFormat.IMAGE),
            ("call.FLAC", DocumentFormat.AUDIO),
            ("notes.md", DocumentFormat.PLAIN_TEXT),
            ("calls.csv", DocumentFormat.CSV),
            ("statement.docx", DocumentFormat.DOCX),
            ("statement.doc", DocumentFormat.LEGACY_DOC),
            ("ledger.xls", DocumentFormat.SPREADSHEET),
            ("archive.zip", DocumentFormat.UNSUPPORTED),
            ("README", DocumentFormat.UNSUPPORTED),
        ],
    )
    def test_extension_table(self, path, expected):
        assert detect_format(path) == expected


# ─────────────────────────────────────
#  Routing
# ─────────────────────────────────────

class TestFormatRouter:

    def test_plain_text_round_trip(self, router):
        data = "Witness Mary Jones: I saw a 2019 Honda Civic at 9 Elm Road.\nCall 555-123-4567".encode()
        result = router.extract("cases/3/NOTES.TXT", data)

        assert result.method == ExtractionMethod.PLAIN_TEXT
        assert result.text == data.decode()
        assert result.confidence == 1.0
        assert result.needs_review is False
        assert result.structured_data.phone_numbers == ["555-123-4567"]

    def test_image_routed_to_ocr(self, router, clear_ocr_engine):
        result = router.extract("evidence/IMG_0001.PNG", b"png")
        assert result.method == ExtractionMethod.OCR
        assert clear_ocr_engine.calls == 1

    def test_legacy_doc(self, router):
        result = router.extract("old_statement.doc", b"\xd0\xcf\x11\xe0")

        assert result.method == ExtractionMethod.DOCX
        assert result.text.startswith("[Legacy .doc format detected")
        assert result.error
        assert result.needs_review is True
        assert result.structured_data is None

    def test_unsupported(self, router):
        result = router.extract("bundle.zip", b"PK")

        assert result.method == ExtractionMethod.UNSUPPORTED
        assert result.error == "Unsupported file type"
        assert result.confidence == 0.0
        assert result.needs_review is True

    def test_placeholder_gets_no_structured_data(self, router):
        result = router.extract("interview.mp3", b"ID3")

        assert result.method == ExtractionMethod.TRANSCRIPTION
        assert result.structured_data is None
        assert result.needs_review is True

    def test_catch_all_around_strategy(self):
        strategy = Mock(spec=BaseExtractor)
        strategy.method = ExtractionMethod.PLAIN_TEXT
        strategy.extract.side_effect = RuntimeError("boom")
        router = FormatRouter(plain_text=strategy)

        result = router.extract("notes.txt", b"text")

        assert result.method == ExtractionMethod.PLAIN_TEXT
        assert result.error == "Extraction failed: boom"
        assert result.needs_review is True


# ─────────────────────────────────────
#  Post-processing
# ─────────────────────────────────────

class TestFinalize:

    @pytest.mark.parametrize(
        "confidence, error, flagged",
        [
            (0.49, None, True),
            (0.5, None, False),
            (0.9, "engine failed", True),
        ],
    )
    def test_review_classifier(self, confidence, error, flagged):
        result = FormatRouter.finalize(
            ExtractionResult(text="content", method=ExtractionMethod.DOCX, confidence=confidence, error=error)
        )
        assert result.needs_review is flagged

    def test_strategy_flag_is_never_cleared(self):
        result = FormatRouter.finalize(
            ExtractionResult(text="[Empty CSV file]", method="csv", confidence=0.5, needs_review=True)
        )
        assert result.needs_review is True

    def test_is_placeholder(self):
        assert is_placeholder(" [No extractable text found in this PDF] ")
        assert not is_placeholder("[1] Exhibit list")

    def test_bracketed_content_gets_structured_data(self, router):
        assert not is_placeholder("[Tip line: caller John Smith 555-123-4567]")

        result = router.extract("cases/1/tips.log", b"[Tip line: caller John Smith 555-123-4567]")

        assert result.structured_data is not None
        assert "555-123-4567" in result.structured_data.phone_numbers

    def test_docx_notice_gets_no_structured_data(self):
        result = FormatRouter.finalize(
            ExtractionResult(text="[No text content found in Word document]", method="docx", confidence=0.1)
        )
        assert result.structured_data is None


class TestExtractionResult:

    @pytest.mark.parametrize("raw, clamped", [(1.7, 1.0), (-0.2, 0.0), (math.nan, 0.0), (None, 0.0)])
    def test_confidence_clamped(self, raw, clamped):
        assert ExtractionResult(text="", method="ocr", confidence=raw).confidence == clamped

    def test_status(self):
        assert ExtractionResult.failure("storage", "missing").status.value == "failed"
        assert ExtractionResult(text="x", method="ocr", confidence=0.9, needs_review=True).status.value == "needs_review"
        assert ExtractionResult(text="x", method="ocr", confidence=0.9).status.value == "completed"
