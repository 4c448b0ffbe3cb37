"""Extractor strategy base class and the simple text strategies."""

from abc import ABC, abstractmethod
from pathlib import Path

from case_parser.logger import Timer, get_logger
from case_parser.models import ExtractionMethod, ExtractionResult

logger = get_logger(__name__)


class BaseExtractor(ABC):
    """One extraction strategy for a family of file formats.

    ``extract`` is the strategy boundary: it always returns an
    ``ExtractionResult`` and converts anything raised by ``_extract`` into a
    zero-confidence failure flagged for review.
    """

    method: ExtractionMethod
    failure_label = "Extraction failed"

    def extract(self, file_bytes: bytes, file_name: str) -> ExtractionResult:
        """Extract text from raw file bytes.

        Args:
            file_bytes: Raw file bytes
            file_name: Storage path or original filename (used for logging)

        Returns:
            ExtractionResult, never raises
        """
        logger.debug(
            "Starting extraction",
            extra_data={
                "extractor": type(self).__name__,
                "file_name": file_name,
                "file_size_bytes": len(file_bytes),
            },
        )
        try:
            with Timer("extraction") as timer:
                result = self._extract(file_bytes, file_name)
        except Exception as exc:
            logger.error(
                f"{self.failure_label}",
                extra_data={
                    "extractor": type(self).__name__,
                    "file_name": file_name,
                    "error_type": type(exc).__name__,
                    "error": str(exc),
                },
                exc_info=True,
            )
            return ExtractionResult.failure(self.method, f"{self.failure_label}: {exc}")

        logger.info(
            "Extraction completed",
            extra_data={
                "extractor": type(self).__name__,
                "file_name": file_name,
                "method": result.method.value,
                "characters_extracted": len(result.text),
                "confidence": round(result.confidence, 3),
                "extraction_time_ms": timer.get_elapsed_ms(),
            },
        )
        return result

    @abstractmethod
    def _extract(self, file_bytes: bytes, file_name: str) -> ExtractionResult:
        ...


class PlainTextExtractor(BaseExtractor):
    """UTF-8 text files (.txt, .md, .log), returned verbatim."""

    method = ExtractionMethod.PLAIN_TEXT
    failure_label = "Text decoding failed"

    def _extract(self, file_bytes: bytes, file_name: str) -> ExtractionResult:
        metadata = {"encoding": "utf-8"}
        try:
            text = file_bytes.decode("utf-8")
        except UnicodeDecodeError as exc:
            logger.warning(
                "Text file is not valid UTF-8, replacing undecodable bytes",
                extra_data={"file_name": file_name, "position": exc.start},
            )
            text = file_bytes.decode("utf-8", errors="replace")
            metadata["decoding_errors"] = True

        metadata["character_count"] = len(text)
        return ExtractionResult(text=text, method=self.method, confidence=1.0, metadata=metadata)


class LegacyDocExtractor(BaseExtractor):
    """Legacy binary Word documents are reported, not parsed."""

    method = ExtractionMethod.DOCX

    def _extract(self, file_bytes: bytes, file_name: str) -> ExtractionResult:
        return ExtractionResult(
            text="[Legacy .doc format detected - please convert to .docx for better extraction]",
            method=self.method,
            confidence=0.0,
            error="Legacy .doc format not supported. Please convert to .docx format.",
            needs_review=True,
        )


def unsupported_result(file_name: str) -> ExtractionResult:
    suffix = Path(file_name).suffix.lower() or "(none)"
    return ExtractionResult(
        text=f"[Unsupported file type: {file_name}]",
        method=ExtractionMethod.UNSUPPORTED,
        confidence=0.0,
        error="Unsupported file type",
        needs_review=True,
        metadata={"extension": suffix},
    )
