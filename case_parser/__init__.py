"""Case file extraction pipeline with OCR, transcription and review queueing."""

from case_parser.batch import BatchExtractor, BatchSummary, summarize_results
from case_parser.cache import ExtractionCache
from case_parser.config import OCRConfig, ParserConfig, PDFConfig, TranscriptionConfig
from case_parser.detector import DocumentFormat, detect_format
from case_parser.engines import EngineHandle, Engines
from case_parser.logger import setup_logging
from case_parser.exceptions import (
    CacheStoreError,
    DocumentParserError,
    EngineUnavailableError,
    ExtractionError,
    NonRecoverablePdfError,
    RecoverablePdfError,
    ReviewQueueError,
    StorageError,
)
from case_parser.models import (
    ExtractedStructuredData,
    ExtractionMethod,
    ExtractionResult,
    ExtractionStatus,
    ReviewQueueItem,
    UncertainSegment,
)
from case_parser.outcome import derive_persistence_plan
from case_parser.parser import extract_many, parse_document
from case_parser.pipeline import DocumentPipeline
from case_parser.review import ReviewQueueDispatcher, calculate_review_priority, requires_review
from case_parser.router import FormatRouter
from case_parser.storage import LocalStorage, MemoryStorage
from case_parser.store import MemoryCacheStore, MemoryReviewQueue, SQLiteCacheStore, SQLiteReviewQueue
from case_parser.structured import extract_structured_data

__version__ = "0.1.0"

__all__ = [
    # High-level API
    "parse_document",
    "extract_many",
    # Core classes
    "DocumentPipeline",
    "FormatRouter",
    "BatchExtractor",
    "ExtractionCache",
    "ReviewQueueDispatcher",
    "EngineHandle",
    "Engines",
    # Functions
    "detect_format",
    "extract_structured_data",
    "requires_review",
    "calculate_review_priority",
    "summarize_results",
    "derive_persistence_plan",
    "setup_logging",
    # Collaborators
    "LocalStorage",
    "MemoryStorage",
    "MemoryCacheStore",
    "SQLiteCacheStore",
    "MemoryReviewQueue",
    "SQLiteReviewQueue",
    # Data models
    "DocumentFormat",
    "ExtractionResult",
    "ExtractionMethod",
    "ExtractionStatus",
    "ExtractedStructuredData",
    "UncertainSegment",
    "ReviewQueueItem",
    "BatchSummary",
    # Configuration
    "ParserConfig",
    "OCRConfig",
    "PDFConfig",
    "TranscriptionConfig",
    # Exceptions
    "DocumentParserError",
    "StorageError",
    "ExtractionError",
    "EngineUnavailableError",
    "CacheStoreError",
    "ReviewQueueError",
    "RecoverablePdfError",
    "NonRecoverablePdfError",
]
