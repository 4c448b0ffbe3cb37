"""Format routing: pick an extractor strategy from the path and normalise its result."""

from typing import Optional

from case_parser.audio import AudioTranscriptionExtractor
from case_parser.config import ParserConfig
from case_parser.detector import DocumentFormat, detect_format
from case_parser.engines import Engines
from case_parser.extractor import BaseExtractor, LegacyDocExtractor, PlainTextExtractor, unsupported_result
from case_parser.logger import Timer, get_logger
from case_parser.models import ExtractionResult
from case_parser.ocr import ImageOcrExtractor, TesseractEngine
from case_parser.office import CsvExtractor, DocxExtractor, SpreadsheetExtractor
from case_parser.pdf import PdfExtractor
from case_parser.review import requires_review
from case_parser.structured import extract_structured_data

logger = get_logger(__name__)


PLACEHOLDER_PREFIXES = (
    "[No extractable text",
    "[No text content",
    "[Empty CSV",
    "[Legacy .doc",
    "[Unsupported file type",
    "[Audio transcription requires",
)


def is_placeholder(text: str) -> bool:
    """Notices such as "[No extractable text found]" that strategies return instead of content."""
    return text.strip().startswith(PLACEHOLDER_PREFIXES)


class FormatRouter:
    """Dispatches bytes to the strategy for their format. ``extract`` never raises."""

    def __init__(
        self,
        pdf: Optional[PdfExtractor] = None,
        image: Optional[BaseExtractor] = None,
        audio: Optional[BaseExtractor] = None,
        docx: Optional[BaseExtractor] = None,
        spreadsheet: Optional[BaseExtractor] = None,
        csv: Optional[BaseExtractor] = None,
        plain_text: Optional[BaseExtractor] = None,
        config: Optional[ParserConfig] = None,
        engines: Optional[Engines] = None,
    ) -> None:
        """Initialize router.

        Args:
            pdf, image, audio, docx, spreadsheet, csv, plain_text: Strategy
                overrides. Missing strategies are built from config and engines.
            config: Parser configuration. If None, uses defaults.
            engines: Engine handles shared by the default strategies. If None,
                new handles are built from config.
        """
        self.config = config or ParserConfig()
        engines = engines or Engines.from_config(self.config.ocr_config, self.config.transcription_config)

        self.pdf = pdf or PdfExtractor(engine=engines.pdf, config=self.config.pdf_config)
        self.strategies: dict[DocumentFormat, BaseExtractor] = {
            DocumentFormat.PDF: self.pdf,
            DocumentFormat.IMAGE: image
            or ImageOcrExtractor(
                engine=TesseractEngine(self.config.ocr_config, handle=engines.tesseract),
                config=self.config.ocr_config,
            ),
            DocumentFormat.AUDIO: audio
            or AudioTranscriptionExtractor(client=engines.transcription, config=self.config.transcription_config),
            DocumentFormat.PLAIN_TEXT: plain_text or PlainTextExtractor(),
            DocumentFormat.CSV: csv or CsvExtractor(),
            DocumentFormat.DOCX: docx or DocxExtractor(),
            DocumentFormat.LEGACY_DOC: LegacyDocExtractor(),
            DocumentFormat.SPREADSHEET: spreadsheet or SpreadsheetExtractor(),
        }

    def extract(self, storage_path: str, file_bytes: bytes) -> ExtractionResult:
        """Extract one file.

        Args:
            storage_path: Storage path or filename; only its extension is used
            file_bytes: Raw file bytes

        Returns:
            ExtractionResult with structured data and the review flag applied
        """
        document_format = detect_format(storage_path)
        strategy = self.strategies.get(document_format)
        if strategy is None:
            logger.warning("Unsupported file type", extra_data={"storage_path": storage_path})
            return self.finalize(unsupported_result(storage_path))

        with Timer("route") as timer:
            try:
                result = strategy.extract(file_bytes, storage_path)
            except Exception as exc:
                logger.error(
                    "Extractor raised unexpectedly",
                    extra_data={
                        "storage_path": storage_path,
                        "extractor": type(strategy).__name__,
                        "error_type": type(exc).__name__,
                        "error": str(exc),
                    },
                    exc_info=True,
                )
                result = ExtractionResult.failure(strategy.method, f"Extraction failed: {exc}")

        result = self.finalize(result)
        logger.info(
            "Routed extraction finished",
            extra_data={
                "storage_path": storage_path,
                "format": document_format.value,
                "method": result.method.value,
                "confidence": round(result.confidence, 3),
                "needs_review": result.needs_review,
                "total_time_ms": timer.get_elapsed_ms(),
            },
        )
        return result

    @staticmethod
    def finalize(result: ExtractionResult) -> ExtractionResult:
        """Attach structured facts and apply the review classifier."""
        if (
            result.structured_data is None
            and not result.error
            and result.text.strip()
            and not is_placeholder(result.text)
        ):
            result.structured_data = extract_structured_data(result.text)

        result.needs_review = result.needs_review or requires_review(result)
        return result
