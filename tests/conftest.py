"""
Pytest configuration and shared fixtures
"""
import io

import fitz
import pytest

from case_parser.audio import AudioTranscriptionExtractor
from case_parser.engines import EngineHandle
from case_parser.ocr import ImageOcrExtractor, OcrPage, OcrWord
from case_parser.router import FormatRouter
from case_parser.storage import MemoryStorage


# ============================================================
# DOCUMENT BUILDERS
# ============================================================

@pytest.fixture
def make_pdf():
    """Build a PDF in memory, one page per string"""
    def _make(*pages):
        document = fitz.open()
        for page_text in pages:
            page = document.new_page()
            if page_text:
                page.insert_text((72, 72), page_text)
        data = document.tobytes()
        document.close()
        return data
    return _make


@pytest.fixture
def png_bytes():
    from PIL import Image

    buffer = io.BytesIO()
    Image.new("RGB", (120, 40), "white").save(buffer, format="PNG")
    return buffer.getvalue()


# ============================================================
# ENGINE DOUBLES
# ============================================================

class FakeOcrEngine:
    """OCR engine double that returns a fixed page and counts calls"""

    def __init__(self, words):
        self.words = words
        self.calls = 0

    def recognize(self, image_bytes):
        self.calls += 1
        words = [
            OcrWord(text=text, confidence=conf, left=10 * i, top=5, width=40, height=12, index=i)
            for i, (text, conf) in enumerate(self.words)
        ]
        confidence = sum(w.confidence for w in words) / len(words) if words else 0.0
        return OcrPage(
            text=" ".join(w.text for w in words),
            confidence=confidence,
            words=words,
            lines=[" ".join(w.text for w in words)],
            image_format="PNG",
            width=120,
            height=40,
        )


@pytest.fixture
def clear_ocr_engine():
    return FakeOcrEngine([("Suspect", 95), ("vehicle", 92), ("observed", 94)])


@pytest.fixture
def blurry_ocr_engine():
    return FakeOcrEngine([("Suspect", 95), ("Smlth", 40), ("of", 30), ("x", 20)])


@pytest.fixture
def router(clear_ocr_engine):
    """Router with OCR and transcription replaced by offline doubles"""
    return FormatRouter(
        image=ImageOcrExtractor(engine=clear_ocr_engine),
        audio=AudioTranscriptionExtractor(client=EngineHandle.of("openai-transcription", None)),
    )


@pytest.fixture
def storage():
    return MemoryStorage(
        {
            "cases/42/statement.txt": b"Witness John Smith called 555-123-4567 on 03/15/2024.",
            "cases/42/evidence.png": b"not really a png",
        }
    )
