"""Data models for case file parser."""

import math
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Optional


class ExtractionMethod(str, Enum):
    """Strategy that actually produced a result, after any fallback."""

    PRIMARY_PDF = "primary-pdf"
    FALLBACK_PDF = "fallback-pdf"
    OCR = "ocr"
    TRANSCRIPTION = "transcription"
    DOCX = "docx"
    SPREADSHEET = "spreadsheet"
    CSV = "csv"
    PLAIN_TEXT = "plain-text"
    CACHED = "cached"
    UNSUPPORTED = "unsupported"
    STORAGE = "storage"


class ExtractionStatus(str, Enum):
    COMPLETED = "completed"
    NEEDS_REVIEW = "needs_review"
    FAILED = "failed"


class ReviewStatus(str, Enum):
    PENDING = "pending"
    IN_REVIEW = "in_review"
    COMPLETED = "completed"
    REJECTED = "rejected"


@dataclass(frozen=True)
class BoundingBox:
    x: int
    y: int
    width: int
    height: int


@dataclass(frozen=True)
class UncertainSegment:
    """A low-confidence OCR word flagged for targeted human correction."""

    text: str
    confidence: float
    bounding_box: BoundingBox
    page: Optional[int] = None
    alternatives: tuple[str, ...] = ()
    word_index: Optional[int] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "text": self.text,
            "confidence": self.confidence,
            "position": {"page": self.page, "bounding_box": asdict(self.bounding_box)},
            "alternatives": list(self.alternatives),
            "word_index": self.word_index,
        }


@dataclass
class ExtractedTable:
    headers: list[str]
    rows: list[list[str]]
    name: Optional[str] = None
    sheet_index: Optional[int] = None


@dataclass
class ExtractedEntity:
    name: str
    type: str
    mentions: int
    contexts: list[str] = field(default_factory=list)


@dataclass
class ExtractedDate:
    original: str
    context: str
    normalized: Optional[str] = None
    line_number: Optional[int] = None


@dataclass
class ExtractedLocation:
    name: str
    context: str
    type: Optional[str] = None


@dataclass
class ExtractedStructuredData:
    """Regex-derived facts mined from extracted text. Never authoritative."""

    tables: list[ExtractedTable] = field(default_factory=list)
    entities: list[ExtractedEntity] = field(default_factory=list)
    dates: list[ExtractedDate] = field(default_factory=list)
    locations: list[ExtractedLocation] = field(default_factory=list)
    phone_numbers: list[str] = field(default_factory=list)
    emails: list[str] = field(default_factory=list)
    addresses: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Optional[dict[str, Any]]) -> Optional["ExtractedStructuredData"]:
        if not data:
            return None
        return cls(
            tables=[ExtractedTable(**t) for t in data.get("tables", [])],
            entities=[ExtractedEntity(**e) for e in data.get("entities", [])],
            dates=[ExtractedDate(**d) for d in data.get("dates", [])],
            locations=[ExtractedLocation(**loc) for loc in data.get("locations", [])],
            phone_numbers=list(data.get("phone_numbers", [])),
            emails=list(data.get("emails", [])),
            addresses=list(data.get("addresses", [])),
        )


@dataclass
class ExtractionResult:
    """Result of extracting one source file."""

    text: str
    method: ExtractionMethod
    confidence: float
    page_count: Optional[int] = None
    error: Optional[str] = None
    needs_review: bool = False
    uncertain_segments: Optional[list[UncertainSegment]] = None
    structured_data: Optional[ExtractedStructuredData] = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        self.method = ExtractionMethod(self.method)
        try:
            confidence = float(self.confidence)
        except (TypeError, ValueError):
            confidence = 0.0
        if math.isnan(confidence):
            confidence = 0.0
        self.confidence = min(1.0, max(0.0, confidence))

    @classmethod
    def failure(
        cls,
        method: ExtractionMethod,
        error: str,
        text: str = "",
        page_count: Optional[int] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> "ExtractionResult":
        """Zero-confidence result flagged for review."""
        return cls(
            text=text,
            method=method,
            confidence=0.0,
            page_count=page_count,
            error=error,
            needs_review=True,
            metadata=metadata or {},
        )

    @property
    def status(self) -> ExtractionStatus:
        if self.error:
            return ExtractionStatus.FAILED
        if self.needs_review:
            return ExtractionStatus.NEEDS_REVIEW
        return ExtractionStatus.COMPLETED

    @property
    def word_count(self) -> int:
        return len(self.text.split()) if self.text else 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "text": self.text,
            "method": self.method.value,
            "confidence": self.confidence,
            "page_count": self.page_count,
            "error": self.error,
            "needs_review": self.needs_review,
            "uncertain_segments": (
                [segment.to_dict() for segment in self.uncertain_segments]
                if self.uncertain_segments is not None
                else None
            ),
            "structured_data": self.structured_data.to_dict() if self.structured_data else None,
            "metadata": self.metadata,
        }


@dataclass
class CacheRecord:
    """Row persisted by the extraction cache, keyed by storage path."""

    storage_path: str
    extracted_text: str
    extraction_method: str
    confidence: float
    status: str
    structured_data: dict[str, Any] = field(default_factory=dict)
    page_count: int = 1
    word_count: int = 0
    extracted_at: Optional[str] = None


@dataclass
class ReviewQueueItem:
    """Entry in the human review work list."""

    case_id: str
    document_id: str
    extracted_text: str
    overall_confidence: float
    extraction_method: str
    priority: int
    uncertain_segments: list[dict[str, Any]] = field(default_factory=list)
    status: ReviewStatus = ReviewStatus.PENDING
    reason: Optional[str] = None
