"""PDF extraction chain: PyMuPDF per-page text with a pymupdf4llm fallback."""

import re
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, Optional

from case_parser.config import PDFConfig
from case_parser.engines import EngineHandle, load_pymupdf
from case_parser.exceptions import (
    ExtractionError,
    NonRecoverablePdfError,
    PdfError,
    RecoverablePdfError,
)
from case_parser.extractor import BaseExtractor
from case_parser.logger import Timer, get_logger
from case_parser.models import ExtractionMethod, ExtractionResult
from case_parser.structured import extract_structured_data

logger = get_logger(__name__)

NO_TEXT_PLACEHOLDER = "[No extractable text found in this PDF]"
NO_PAGE_TEXT_PLACEHOLDER = "[No extractable text found on this page]"

_WHITESPACE = re.compile(r"\s+")


class PdfExtractor(BaseExtractor):
    """Extract text from PDFs.

    The primary extractor reads the words of every page with PyMuPDF. Native
    errors are mapped to :class:`RecoverablePdfError` (retry the whole document
    with pymupdf4llm) or :class:`NonRecoverablePdfError` (corrupt, empty or
    encrypted input: stop and report).
    """

    method = ExtractionMethod.PRIMARY_PDF
    failure_label = "PDF extraction failed"

    def __init__(self, engine: Optional[EngineHandle] = None, config: Optional[PDFConfig] = None):
        self.engine = engine or EngineHandle("pymupdf", load_pymupdf)
        self.config = config or PDFConfig()

    # ------------------------------------------------------------------
    # Whole document
    # ------------------------------------------------------------------

    def _extract(self, file_bytes: bytes, file_name: str) -> ExtractionResult:
        fitz = self.engine.get()
        if fitz is None:
            logger.warning(
                "PyMuPDF unavailable, falling back to pymupdf4llm",
                extra_data={"file_name": file_name},
            )
            return self._extract_fallback(file_bytes, file_name)

        try:
            with Timer("pdf_primary_extraction") as timer:
                with self._open(fitz, file_bytes) as document:
                    page_count = document.page_count
                    page_texts = []
                    for page_index in range(page_count):
                        page_text = self._page_text(fitz, document, page_index)
                        if page_text:
                            page_texts.append(page_text)
        except NonRecoverablePdfError as exc:
            logger.error(
                "PDF cannot be read",
                extra_data={"file_name": file_name, "reason": exc.reason, "error": str(exc)},
            )
            return ExtractionResult.failure(
                self.method,
                str(exc) or "PDF extraction failed.",
                metadata={"failure": {"reason": exc.reason, "message": str(exc)}},
            )
        except RecoverablePdfError as exc:
            logger.warning(
                "Falling back to pymupdf4llm after recoverable error",
                extra_data={"file_name": file_name, "error": str(exc)},
            )
            result = self._extract_fallback(file_bytes, file_name)
            result.metadata.update({"fallback": True, "fallback_reason": str(exc)})
            return result

        text = "\n\n".join(page_texts)
        logger.debug(
            "PDF primary extraction completed",
            extra_data={
                "file_name": file_name,
                "page_count": page_count,
                "pages_with_text": len(page_texts),
                "characters_extracted": len(text),
                "extraction_time_ms": timer.get_elapsed_ms(),
            },
        )

        if not text.strip():
            return ExtractionResult(
                text=NO_TEXT_PLACEHOLDER,
                method=self.method,
                confidence=self.config.empty_confidence,
                page_count=page_count,
                needs_review=True,
                metadata={"page_count": page_count},
            )

        return ExtractionResult(
            text=text,
            method=self.method,
            confidence=self._confidence(len(text), page_count),
            page_count=page_count,
            uncertain_segments=[],
            metadata={"page_count": page_count},
        )

    # ------------------------------------------------------------------
    # Single page
    # ------------------------------------------------------------------

    def extract_page(
        self, file_bytes: bytes, page_number: int, file_name: str = "document.pdf"
    ) -> ExtractionResult:
        """Extract one 1-based page; degrades to the whole document when page access is unavailable."""
        fitz = self.engine.get()
        if fitz is None:
            logger.warning(
                "PyMuPDF unavailable, extracting full document for page request",
                extra_data={"file_name": file_name, "page_number": page_number},
            )
            result = self._extract_fallback(file_bytes, file_name)
            result.metadata.update(
                {
                    "requested_page": page_number,
                    "note": "Full document extracted - page-level not available",
                }
            )
            return result

        try:
            with self._open(fitz, file_bytes) as document:
                total_pages = document.page_count
                if page_number < 1 or page_number > total_pages:
                    return ExtractionResult.failure(
                        self.method,
                        f"Invalid page number {page_number}. Document has {total_pages} pages.",
                        page_count=1,
                    )
                page_text = self._page_text(fitz, document, page_number - 1)
        except NonRecoverablePdfError as exc:
            logger.error(
                "PDF page cannot be read",
                extra_data={"file_name": file_name, "page_number": page_number, "reason": exc.reason},
            )
            return ExtractionResult.failure(self.method, str(exc) or "PDF extraction failed.", page_count=1)
        except RecoverablePdfError as exc:
            logger.warning(
                "Page extraction failed, extracting full document instead",
                extra_data={"file_name": file_name, "page_number": page_number, "error": str(exc)},
            )
            result = self._extract_fallback(file_bytes, file_name)
            result.metadata.update({"requested_page": page_number, "fallback": True})
            return result

        has_text = bool(page_text)
        return ExtractionResult(
            text=page_text if has_text else NO_PAGE_TEXT_PLACEHOLDER,
            method=self.method,
            confidence=self._confidence(len(page_text), 1) if has_text else self.config.empty_confidence,
            page_count=1,
            needs_review=not has_text,
            structured_data=extract_structured_data(page_text),
            metadata={
                "page_number": page_number,
                "total_pages": total_pages,
                "character_count": len(page_text),
            },
        )

    def page_count(self, file_bytes: bytes) -> int:
        """Number of pages, or 1 when neither extractor can read the document."""
        fitz = self.engine.get()
        if fitz is not None:
            try:
                with self._open(fitz, file_bytes) as document:
                    return document.page_count
            except PdfError as exc:
                logger.debug("PyMuPDF page count failed", extra_data={"error": str(exc)})

        try:
            return len(self._run_fallback(file_bytes)) or 1
        except Exception as exc:
            logger.warning(
                "Unable to determine PDF page count",
                extra_data={"error_type": type(exc).__name__, "error": str(exc)},
            )
            return 1

    # ------------------------------------------------------------------
    # Native call sites
    # ------------------------------------------------------------------

    @contextmanager
    def _open(self, fitz: Any, file_bytes: bytes) -> Iterator[Any]:
        """Open a document; it is closed on every exit path."""
        try:
            document = fitz.open(stream=file_bytes, filetype="pdf")
        except Exception as exc:
            raise self._classify(fitz, exc) from exc

        try:
            if document.needs_pass and not document.authenticate(""):
                raise NonRecoverablePdfError(
                    "PDF is password protected", reason=NonRecoverablePdfError.PASSWORD_PROTECTED
                )
            if document.page_count < 1:
                raise NonRecoverablePdfError("Invalid PDF structure: no pages", reason=NonRecoverablePdfError.INVALID)
            yield document
        finally:
            try:
                document.close()
            except Exception as close_error:
                logger.warning("Failed to close PDF document", extra_data={"error": str(close_error)})

    def _page_text(self, fitz: Any, document: Any, page_index: int) -> str:
        try:
            page = document.load_page(page_index)
            words = page.get_text("words")
        except Exception as exc:
            raise self._classify(fitz, exc) from exc

        text = " ".join(word[4] for word in words if len(word) > 4 and isinstance(word[4], str))
        return _WHITESPACE.sub(" ", text).strip()

    @staticmethod
    def _classify(fitz: Any, exc: Exception) -> PdfError:
        if isinstance(exc, PdfError):
            return exc
        empty_file_error = getattr(fitz, "EmptyFileError", None)
        file_data_error = getattr(fitz, "FileDataError", None)
        if empty_file_error is not None and isinstance(exc, empty_file_error):
            return NonRecoverablePdfError(f"Missing PDF data: {exc}", reason=NonRecoverablePdfError.MISSING)
        if file_data_error is not None and isinstance(exc, file_data_error):
            return NonRecoverablePdfError(f"Invalid PDF structure: {exc}", reason=NonRecoverablePdfError.INVALID)
        return RecoverablePdfError(f"{type(exc).__name__}: {exc}")

    def _confidence(self, character_count: int, page_count: int) -> float:
        expected = max(page_count, 1) * self.config.chars_per_page
        return min(self.config.max_confidence, max(self.config.min_confidence, character_count / expected))

    # ------------------------------------------------------------------
    # Fallback
    # ------------------------------------------------------------------

    def _extract_fallback(self, file_bytes: bytes, file_name: str) -> ExtractionResult:
        try:
            with Timer("pdf_fallback_extraction") as timer:
                chunks = self._run_fallback(file_bytes)
        except Exception as exc:
            logger.error(
                "pymupdf4llm fallback failed",
                extra_data={"file_name": file_name, "error_type": type(exc).__name__, "error": str(exc)},
                exc_info=True,
            )
            return ExtractionResult.failure(ExtractionMethod.FALLBACK_PDF, f"PDF extraction failed: {exc}")

        text = "\n\n".join(
            chunk.get("text", "").strip() for chunk in chunks if chunk.get("text", "").strip()
        ).strip()
        page_count = len(chunks) or None

        logger.debug(
            "PDF fallback extraction completed",
            extra_data={
                "file_name": file_name,
                "page_count": page_count,
                "characters_extracted": len(text),
                "extraction_time_ms": timer.get_elapsed_ms(),
            },
        )

        return ExtractionResult(
            text=text or NO_TEXT_PLACEHOLDER,
            method=ExtractionMethod.FALLBACK_PDF,
            confidence=self.config.fallback_confidence if text else self.config.empty_confidence,
            page_count=page_count,
            needs_review=not text,
            metadata={"page_count": page_count},
        )

    def _run_fallback(self, file_bytes: bytes) -> list[dict[str, Any]]:
        """Whole-document markdown, one chunk per page."""
        try:
            import pymupdf4llm
        except ImportError as exc:
            raise ExtractionError(
                "pymupdf4llm is required for fallback PDF extraction. Please install pymupdf4llm."
            ) from exc

        # pymupdf4llm reads from a path
        with tempfile.NamedTemporaryFile(suffix=".pdf", delete=False) as tmp_file:
            tmp_file.write(file_bytes)
            tmp_path = Path(tmp_file.name)

        try:
            chunks = pymupdf4llm.to_markdown(
                str(tmp_path),
                page_chunks=True,
                table_strategy="lines_strict",
                force_text=True,
                write_images=False,
                ignore_images=True,
                fontsize_limit=3,
            )
        finally:
            try:
                tmp_path.unlink()
            except OSError as exc:
                logger.debug("Failed to remove temp file", extra_data={"path": str(tmp_path), "error": str(exc)})

        if isinstance(chunks, str):
            return [{"text": chunks}]
        return list(chunks)
