"""Review classification and the human review queue dispatcher."""

from typing import Optional, Protocol

from case_parser.exceptions import ReviewQueueError
from case_parser.logger import get_logger
from case_parser.models import ExtractionResult, ReviewQueueItem, ReviewStatus

logger = get_logger(__name__)

REVIEW_CONFIDENCE_THRESHOLD = 0.5


def requires_review(result: ExtractionResult) -> bool:
    """Low confidence, uncertain OCR segments or an error always need a human."""
    return (
        result.confidence < REVIEW_CONFIDENCE_THRESHOLD
        or bool(result.uncertain_segments)
        or bool(result.error)
    )


def calculate_review_priority(result: ExtractionResult) -> int:
    """Priority 1-10 (10 = most urgent). Confidence checks win over segment counts."""
    confidence = result.confidence or 0.0
    uncertain_count = len(result.uncertain_segments or [])

    if confidence < 0.5:
        return 10
    if confidence < 0.6:
        return 8
    if uncertain_count > 10:
        return 9
    if uncertain_count > 5:
        return 7
    if uncertain_count > 2:
        return 6
    return 5


class ReviewQueue(Protocol):
    def insert(self, item: ReviewQueueItem) -> None:
        ...


class ReviewQueueDispatcher:
    """Enqueues results flagged for review; never raises into the caller."""

    def __init__(self, queue: ReviewQueue):
        self.queue = queue

    def build_item(self, document_id: str, case_id: str, result: ExtractionResult) -> ReviewQueueItem:
        return ReviewQueueItem(
            case_id=case_id,
            document_id=document_id,
            extracted_text=result.text,
            overall_confidence=result.confidence or 0.0,
            extraction_method=result.method.value,
            priority=calculate_review_priority(result),
            uncertain_segments=[segment.to_dict() for segment in result.uncertain_segments or []],
            status=ReviewStatus.PENDING,
            reason=review_reason(result),
        )

    def dispatch(self, document_id: str, case_id: str, result: ExtractionResult) -> bool:
        """Queue the document if it needs review. Returns True when an item was inserted."""
        if not result.needs_review:
            logger.debug("Document does not need review, skipping queue", extra_data={"document_id": document_id})
            return False

        item = self.build_item(document_id, case_id, result)
        try:
            self.queue.insert(item)
        except Exception as exc:
            logger.error(
                "Error queueing document for review",
                extra_data={
                    "document_id": document_id,
                    "case_id": case_id,
                    "error_type": type(exc).__name__,
                    "error": str(exc),
                },
                exc_info=not isinstance(exc, ReviewQueueError),
            )
            return False

        logger.info(
            "Queued document for review",
            extra_data={
                "document_id": document_id,
                "case_id": case_id,
                "priority": item.priority,
                "uncertain_segments": len(item.uncertain_segments),
            },
        )
        return True


def review_reason(result: ExtractionResult) -> Optional[str]:
    """Short explanation shown to reviewers, None when no review is needed."""
    if not result.needs_review:
        return None
    if result.error:
        return f"Extraction error: {result.error}"
    if result.confidence < REVIEW_CONFIDENCE_THRESHOLD:
        return f"Low confidence ({result.confidence:.2f})"
    if result.uncertain_segments:
        return f"{len(result.uncertain_segments)} uncertain segments"
    return f"Flagged by {result.method.value} extractor"
