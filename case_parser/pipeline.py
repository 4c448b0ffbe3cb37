"""Document pipeline orchestration: cache, storage, routing and review."""

from typing import Optional

from case_parser.cache import ExtractionCache
from case_parser.config import ParserConfig
from case_parser.exceptions import StorageError
from case_parser.logger import Timer, get_logger, storage_path_var
from case_parser.models import ExtractionMethod, ExtractionResult
from case_parser.review import ReviewQueueDispatcher
from case_parser.router import FormatRouter
from case_parser.storage import Storage

logger = get_logger(__name__)


class DocumentPipeline:
    def __init__(
        self,
        storage: Storage,
        router: Optional[FormatRouter] = None,
        cache: Optional[ExtractionCache] = None,
        review_dispatcher: Optional[ReviewQueueDispatcher] = None,
        config: Optional[ParserConfig] = None,
    ) -> None:
        """Initialize document pipeline.

        Args:
            storage: Resolves storage paths to bytes.
            router: Format router. If None, creates default from config.
            cache: Extraction cache. If None, every call extracts.
            review_dispatcher: Review queue dispatcher used by extract_and_queue.
            config: Parser configuration. Only used for defaults.
        """
        self.config = config or ParserConfig()
        self.storage = storage
        self.router = router or FormatRouter(config=self.config)
        self.cache = cache
        self.review_dispatcher = review_dispatcher

    def extract(self, storage_path: str, use_cache: Optional[bool] = None) -> ExtractionResult:
        """Extract a stored file, consulting the cache first.

        Never raises: download failures become failure results.
        """
        use_cache = self.config.use_cache if use_cache is None else use_cache
        token = storage_path_var.set(storage_path)
        try:
            with Timer("document") as timer:
                if use_cache and self.cache is not None:
                    cached = self.cache.lookup(storage_path)
                    if cached is not None:
                        return cached

                file_bytes = self._download(storage_path)
                if isinstance(file_bytes, ExtractionResult):
                    return file_bytes

                result = self.router.extract(storage_path, file_bytes)

                if use_cache and self.cache is not None and result.text:
                    self.cache.store_result(storage_path, result)

            logger.info(
                "Document extraction finished",
                extra_data={
                    "method": result.method.value,
                    "status": result.status.value,
                    "characters": len(result.text),
                    "total_time_ms": timer.get_elapsed_ms(),
                },
            )
            return result
        finally:
            storage_path_var.reset(token)

    def extract_from_bytes(self, storage_path: str, file_bytes: bytes) -> ExtractionResult:
        """Extract bytes already in memory; bypasses storage and cache."""
        return self.router.extract(storage_path, file_bytes)

    def extract_pdf_page(self, storage_path: str, page_number: int) -> ExtractionResult:
        """Extract one page of a stored PDF, for page-parallel chunking."""
        logger.info("Extracting PDF page", extra_data={"storage_path": storage_path, "page_number": page_number})
        file_bytes = self._download(storage_path, method=ExtractionMethod.PRIMARY_PDF)
        if isinstance(file_bytes, ExtractionResult):
            file_bytes.page_count = 1
            return file_bytes

        try:
            result = self.router.pdf.extract_page(file_bytes, page_number, storage_path)
        except Exception as exc:
            logger.error(
                "PDF page extraction raised unexpectedly",
                extra_data={"storage_path": storage_path, "page_number": page_number, "error": str(exc)},
                exc_info=True,
            )
            result = ExtractionResult.failure(
                ExtractionMethod.PRIMARY_PDF, f"PDF page extraction failed: {exc}", page_count=1
            )
        return FormatRouter.finalize(result)

    def get_pdf_page_count(self, storage_path: str) -> int:
        """Page count of a stored PDF; 1 when it cannot be downloaded or read."""
        try:
            file_bytes = self.storage.download(storage_path)
        except Exception as exc:
            logger.error(
                "Failed to download for page count",
                extra_data={"storage_path": storage_path, "error": str(exc)},
            )
            return 1
        return self.router.pdf.page_count(file_bytes)

    def queue_for_review(self, document_id: str, case_id: str, result: ExtractionResult) -> bool:
        if self.review_dispatcher is None:
            logger.warning("No review queue configured", extra_data={"document_id": document_id})
            return False
        return self.review_dispatcher.dispatch(document_id, case_id, result)

    def extract_and_queue(self, storage_path: str, document_id: str, case_id: str) -> ExtractionResult:
        """Extract, then enqueue for human review when the result is flagged."""
        result = self.extract(storage_path)
        if result.needs_review:
            self.queue_for_review(document_id, case_id, result)
        return result

    def _download(self, storage_path: str, method: ExtractionMethod = ExtractionMethod.STORAGE):
        """Bytes for the path, or a failure result if the download fails."""
        try:
            with Timer("download") as timer:
                file_bytes = self.storage.download(storage_path)
        except Exception as exc:
            logger.error(
                "Error downloading file",
                extra_data={
                    "storage_path": storage_path,
                    "error_type": type(exc).__name__,
                    "error": str(exc),
                },
                exc_info=not isinstance(exc, StorageError),
            )
            message = str(exc) if isinstance(exc, StorageError) else f"Failed to download file: {exc}"
            return ExtractionResult.failure(method, message)

        logger.debug(
            "Downloaded file",
            extra_data={
                "storage_path": storage_path,
                "file_size_bytes": len(file_bytes),
                "download_time_ms": timer.get_elapsed_ms(),
            },
        )
        return file_bytes
