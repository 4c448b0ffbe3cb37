"""
Tests for image OCR and the Tesseract engine wrapper.
"""

from unittest.mock import MagicMock

import pytest

from case_parser.config import OCRConfig
from case_parser.engines import EngineHandle
from case_parser.models import ExtractionMethod
from case_parser.ocr import ImageOcrExtractor, TesseractEngine


def tesseract_data(rows):
    """image_to_data(output_type=DICT) payload from (text, conf, block, par, line) rows"""
    data = {key: [] for key in ("text", "conf", "left", "top", "width", "height", "block_num", "par_num", "line_num")}
    for i, (text, conf, block, par, line) in enumerate(rows):
        data["text"].append(text)
        data["conf"].append(conf)
        data["left"].append(i * 10)
        data["top"].append(line * 20)
        data["width"].append(30)
        data["height"].append(12)
        data["block_num"].append(block)
        data["par_num"].append(par)
        data["line_num"].append(line)
    return data


# ─────────────────────────────────────
#  ImageOcrExtractor
# ─────────────────────────────────────

class TestImageOcrExtractor:

    def test_clear_image(self, clear_ocr_engine):
        result = ImageOcrExtractor(engine=clear_ocr_engine).extract(b"img", "photo.jpg")

        assert result.method == ExtractionMethod.OCR
        assert result.text == "Suspect vehicle observed"
        assert result.confidence == pytest.approx(0.9367, abs=1e-3)
        assert result.uncertain_segments == []
        assert result.needs_review is False

    def test_uncertain_segments(self, blurry_ocr_engine):
        result = ImageOcrExtractor(engine=blurry_ocr_engine).extract(b"img", "blurry.png")

        # "of" is a stop word and "x" is too short to flag
        assert [s.text for s in result.uncertain_segments] == ["Smlth"]
        segment = result.uncertain_segments[0]
        assert segment.confidence == pytest.approx(0.40)
        assert segment.word_index == 1
        assert segment.bounding_box.width == 40
        assert result.confidence == pytest.approx(0.4625)
        assert result.needs_review is True
        assert result.metadata["uncertain_count"] == 1

    def test_review_threshold_applies_without_segments(self, clear_ocr_engine):
        config = OCRConfig(review_threshold=0.95)
        result = ImageOcrExtractor(engine=clear_ocr_engine, config=config).extract(b"img", "photo.jpg")
        assert result.needs_review is True

    def test_engine_unavailable(self):
        engine = TesseractEngine(handle=EngineHandle.of("tesseract", None))
        result = ImageOcrExtractor(engine=engine).extract(b"img", "photo.jpg")

        assert result.method == ExtractionMethod.OCR
        assert result.error.startswith("OCR failed")
        assert result.confidence == 0.0
        assert result.needs_review is True


# ─────────────────────────────────────
#  TesseractEngine
# ─────────────────────────────────────

class TestTesseractEngine:

    def test_single_engine_call(self, png_bytes):
        pytesseract = MagicMock()
        pytesseract.image_to_data.return_value = tesseract_data(
            [
                ("", -1, 1, 0, 0),
                ("Case", 96, 1, 1, 1),
                ("42", 91, 1, 1, 1),
                ("Evidence", 88, 1, 1, 2),
            ]
        )
        engine = TesseractEngine(OCRConfig(psm_mode=6), handle=EngineHandle.of("tesseract", pytesseract))

        page = engine.recognize(png_bytes)

        pytesseract.image_to_data.assert_called_once()
        kwargs = pytesseract.image_to_data.call_args.kwargs
        assert kwargs["lang"] == "eng"
        assert kwargs["config"] == "--psm 6"
        assert page.text == "Case 42\nEvidence"
        assert page.lines == ["Case 42", "Evidence"]
        assert [w.index for w in page.words] == [0, 1, 2]
        assert page.confidence == pytest.approx(91.6667, abs=1e-3)
        assert page.image_format == "PNG"
        assert (page.width, page.height) == (120, 40)

    def test_layout_rows_ignored(self):
        page = TesseractEngine._normalise(
            tesseract_data([("", -1, 1, 0, 0), ("  ", 50, 1, 1, 1), ("word", "not-a-number", 1, 1, 1)]),
            "PNG",
            10,
            10,
        )
        assert page.words == []
        assert page.confidence == 0.0
        assert page.text == ""
