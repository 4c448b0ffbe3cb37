"""Tesseract OCR for scanned documents and evidence photos."""

import io
from dataclasses import dataclass, field
from typing import Optional, Protocol

from PIL import Image, ImageEnhance, ImageOps

from case_parser.config import OCRConfig
from case_parser.engines import EngineHandle, make_tesseract_loader
from case_parser.exceptions import EngineUnavailableError
from case_parser.extractor import BaseExtractor
from case_parser.logger import Timer, get_logger
from case_parser.models import BoundingBox, ExtractionMethod, ExtractionResult, UncertainSegment

logger = get_logger(__name__)


@dataclass
class OcrWord:
    text: str
    confidence: float  # Tesseract scale, 0-100
    left: int
    top: int
    width: int
    height: int
    index: int


@dataclass
class OcrPage:
    """Normalised OCR output for one image."""

    text: str
    confidence: float  # Tesseract scale, 0-100
    words: list[OcrWord] = field(default_factory=list)
    lines: list[str] = field(default_factory=list)
    image_format: Optional[str] = None
    width: int = 0
    height: int = 0


class OcrEngine(Protocol):
    def recognize(self, image_bytes: bytes) -> OcrPage:
        ...


class TesseractEngine:
    """Runs Tesseract once per image and returns words with boxes and confidences."""

    def __init__(self, config: Optional[OCRConfig] = None, handle: Optional[EngineHandle] = None):
        self.config = config or OCRConfig()
        self.handle = handle or EngineHandle("tesseract", make_tesseract_loader(self.config))

    def recognize(self, image_bytes: bytes) -> OcrPage:
        pytesseract = self.handle.get()
        if pytesseract is None:
            raise EngineUnavailableError("Tesseract OCR engine is not available")

        image = Image.open(io.BytesIO(image_bytes))
        image_format = image.format
        width, height = image.size
        image = self._prepare(image)

        data = pytesseract.image_to_data(
            image,
            lang=self.config.languages,
            config=f"--psm {self.config.psm_mode}",
            output_type=pytesseract.Output.DICT,
        )
        return self._normalise(data, image_format, width, height)

    def _prepare(self, image: Image.Image) -> Image.Image:
        if image.mode not in ("RGB", "L"):
            image = image.convert("RGB")
        if self.config.enable_image_preprocessing:
            image = ImageOps.grayscale(image)
            if self.config.contrast_enhancement != 1.0:
                image = ImageEnhance.Contrast(image).enhance(self.config.contrast_enhancement)
        return image

    @staticmethod
    def _normalise(data: dict, image_format: Optional[str], width: int, height: int) -> OcrPage:
        words: list[OcrWord] = []
        lines: dict[tuple, list[str]] = {}

        for i, raw_text in enumerate(data.get("text", [])):
            text = (raw_text or "").strip()
            try:
                confidence = float(data["conf"][i])
            except (TypeError, ValueError):
                confidence = -1.0
            # conf -1 marks page/block/line rows rather than words
            if not text or confidence < 0:
                continue

            words.append(
                OcrWord(
                    text=text,
                    confidence=confidence,
                    left=int(data["left"][i]),
                    top=int(data["top"][i]),
                    width=int(data["width"][i]),
                    height=int(data["height"][i]),
                    index=len(words),
                )
            )
            key = (data["block_num"][i], data["par_num"][i], data["line_num"][i])
            lines.setdefault(key, []).append(text)

        line_texts = [" ".join(parts) for parts in lines.values()]
        confidence = sum(w.confidence for w in words) / len(words) if words else 0.0
        return OcrPage(
            text="\n".join(line_texts),
            confidence=confidence,
            words=words,
            lines=line_texts,
            image_format=image_format,
            width=width,
            height=height,
        )


class ImageOcrExtractor(BaseExtractor):
    """Image strategy: OCR text plus per-word uncertainty for human review."""

    method = ExtractionMethod.OCR
    failure_label = "OCR failed"

    def __init__(self, engine: Optional[OcrEngine] = None, config: Optional[OCRConfig] = None):
        self.config = config or OCRConfig()
        self.engine = engine or TesseractEngine(self.config)

    def _extract(self, file_bytes: bytes, file_name: str) -> ExtractionResult:
        with Timer("image_ocr") as timer:
            page = self.engine.recognize(file_bytes)

        segments = [
            UncertainSegment(
                text=word.text,
                confidence=word.confidence / 100,
                bounding_box=BoundingBox(x=word.left, y=word.top, width=word.width, height=word.height),
                word_index=word.index,
            )
            for word in page.words
            if self._is_uncertain(word)
        ]

        overall_confidence = page.confidence / 100
        needs_review = overall_confidence < self.config.review_threshold or bool(segments)

        logger.info(
            "Image OCR completed",
            extra_data={
                "file_name": file_name,
                "image_format": page.image_format,
                "image_dimensions": f"{page.width}x{page.height}",
                "characters_extracted": len(page.text),
                "ocr_confidence": round(page.confidence, 1),
                "uncertain_segments": len(segments),
                "ocr_time_ms": timer.get_elapsed_ms(),
            },
        )
        if needs_review:
            logger.warning("OCR result needs human review", extra_data={"file_name": file_name})

        return ExtractionResult(
            text=page.text,
            method=self.method,
            confidence=overall_confidence,
            needs_review=needs_review,
            uncertain_segments=segments,
            metadata={
                "language": self.config.languages,
                "words": len(page.words),
                "lines": len(page.lines),
                "uncertain_count": len(segments),
            },
        )

    def _is_uncertain(self, word: OcrWord) -> bool:
        if word.confidence >= self.config.word_confidence_threshold:
            return False
        return len(word.text) >= 2 and word.text.lower() not in self.config.stop_words
