"""Extraction cache keyed by storage path."""

from datetime import datetime, timezone
from typing import Optional

from case_parser.logger import get_logger
from case_parser.models import (
    CacheRecord,
    ExtractedStructuredData,
    ExtractionMethod,
    ExtractionResult,
    ExtractionStatus,
)
from case_parser.store import CacheStore, CacheTable

logger = get_logger(__name__)

DEFAULT_CACHED_CONFIDENCE = 0.9


class ExtractionCache:
    """Two-tier read-before-write cache over a :class:`CacheStore`.

    Lookups try the documents table (completed extractions only), then the
    legacy files table (anything but failed extractions). Store errors are
    logged and never reach the caller.
    """

    def __init__(self, store: CacheStore):
        self.store = store

    def lookup(self, storage_path: str) -> Optional[ExtractionResult]:
        try:
            record = self.store.fetch(CacheTable.DOCUMENTS, storage_path)
            if record and record.extracted_text and record.status == ExtractionStatus.COMPLETED.value:
                logger.info(
                    "Using cached extraction",
                    extra_data={"storage_path": storage_path, "cache_source": CacheTable.DOCUMENTS.value},
                )
                return self._to_result(record, CacheTable.DOCUMENTS)

            record = self.store.fetch(CacheTable.LEGACY, storage_path)
            if record and record.extracted_text and record.status != ExtractionStatus.FAILED.value:
                logger.info(
                    "Using cached extraction",
                    extra_data={"storage_path": storage_path, "cache_source": CacheTable.LEGACY.value},
                )
                return self._to_result(record, CacheTable.LEGACY)
        except Exception as exc:
            logger.error(
                "Error checking cache",
                extra_data={"storage_path": storage_path, "error_type": type(exc).__name__, "error": str(exc)},
            )
        return None

    def store_result(self, storage_path: str, result: ExtractionResult) -> bool:
        """Persist a result with non-empty text. Returns True if any table accepted it.

        Results go to the documents table, falling back to the legacy table.
        Results flagged for review are mirrored to the legacy table, which is
        the only one that serves them. Failed results are never served, so
        the next request retries the extraction.
        """
        if not result.text:
            return False

        record = self.build_record(storage_path, result)
        stored = self._save(CacheTable.DOCUMENTS, record)
        if record.status == ExtractionStatus.FAILED.value:
            return stored
        if not stored or record.status == ExtractionStatus.NEEDS_REVIEW.value:
            stored = self._save(CacheTable.LEGACY, record) or stored
        return stored

    def _save(self, table: CacheTable, record: CacheRecord) -> bool:
        try:
            self.store.save(table, record)
        except Exception as exc:
            logger.warning(
                "Could not cache extraction",
                extra_data={"storage_path": record.storage_path, "table": table.value, "error": str(exc)},
            )
            return False

        logger.info(
            "Cached extraction",
            extra_data={
                "storage_path": record.storage_path,
                "table": table.value,
                "characters": len(record.extracted_text),
                "word_count": record.word_count,
                "method": record.extraction_method,
            },
        )
        return True

    @staticmethod
    def build_record(storage_path: str, result: ExtractionResult) -> CacheRecord:
        return CacheRecord(
            storage_path=storage_path,
            extracted_text=result.text,
            extraction_method=result.method.value,
            confidence=result.confidence,
            status=result.status.value,
            structured_data=result.structured_data.to_dict() if result.structured_data else {},
            page_count=result.page_count or 1,
            word_count=result.word_count,
            extracted_at=datetime.now(timezone.utc).isoformat(),
        )

    @staticmethod
    def _to_result(record: CacheRecord, table: CacheTable) -> ExtractionResult:
        return ExtractionResult(
            text=record.extracted_text,
            method=ExtractionMethod.CACHED,
            confidence=record.confidence if record.confidence is not None else DEFAULT_CACHED_CONFIDENCE,
            page_count=record.page_count,
            needs_review=record.status != ExtractionStatus.COMPLETED.value,
            structured_data=ExtractedStructuredData.from_dict(record.structured_data),
            metadata={
                "cached": True,
                "cache_source": table.value,
                "original_method": record.extraction_method,
                "extracted_at": record.extracted_at,
            },
        )
