"""
Tests for review priority and the review queue dispatcher.
"""

from unittest.mock import Mock

import pytest

from case_parser.exceptions import ReviewQueueError
from case_parser.models import BoundingBox, ExtractionResult, ReviewStatus, UncertainSegment
from case_parser.review import (
    ReviewQueueDispatcher,
    calculate_review_priority,
    requires_review,
    review_reason,
)
from case_parser.store import MemoryReviewQueue, SQLiteReviewQueue


def segments(count):
    return [
        UncertainSegment(text=f"w{i}", confidence=0.3, bounding_box=BoundingBox(0, 0, 10, 10), word_index=i)
        for i in range(count)
    ]


def ocr_result(confidence, uncertain=0, needs_review=True):
    return ExtractionResult(
        text="Suspect Smlth",
        method="ocr",
        confidence=confidence,
        needs_review=needs_review,
        uncertain_segments=segments(uncertain),
    )


# ─────────────────────────────────────
#  Priority
# ─────────────────────────────────────

class TestPriority:

    @pytest.mark.parametrize(
        "confidence, uncertain, priority",
        [
            (0.45, 0, 10),
            (0.45, 20, 10),
            (0.55, 0, 8),
            (0.55, 20, 8),
            (0.9, 11, 9),
            (0.9, 6, 7),
            (0.9, 3, 6),
            (0.9, 2, 5),
            (0.9, 0, 5),
        ],
    )
    def test_priority_order(self, confidence, uncertain, priority):
        assert calculate_review_priority(ocr_result(confidence, uncertain)) == priority

    def test_priority_bounds(self):
        for confidence in (0.0, 0.3, 0.5, 0.59, 0.75, 1.0):
            for uncertain in (0, 1, 3, 6, 11, 50):
                assert 1 <= calculate_review_priority(ocr_result(confidence, uncertain)) <= 10


class TestRequiresReview:

    def test_low_confidence(self):
        assert requires_review(ocr_result(0.3, needs_review=False))

    def test_uncertain_segments(self):
        assert requires_review(ocr_result(0.95, uncertain=1, needs_review=False))

    def test_error(self):
        assert requires_review(ExtractionResult.failure("ocr", "OCR failed: boom"))

    def test_clean_result(self):
        assert not requires_review(ocr_result(0.95, needs_review=False))

    def test_reason(self):
        assert review_reason(ocr_result(0.3)) == "Low confidence (0.30)"
        assert review_reason(ocr_result(0.9, uncertain=4)) == "4 uncertain segments"
        assert review_reason(ocr_result(0.9, needs_review=False)) is None


# ─────────────────────────────────────
#  Dispatcher
# ─────────────────────────────────────

class TestDispatcher:

    def test_skips_results_not_needing_review(self):
        queue = MemoryReviewQueue()
        assert ReviewQueueDispatcher(queue).dispatch("doc-1", "case-1", ocr_result(0.95, needs_review=False)) is False
        assert queue.items == []

    def test_enqueues_flagged_result(self):
        queue = MemoryReviewQueue()
        dispatched = ReviewQueueDispatcher(queue).dispatch("doc-1", "case-1", ocr_result(0.45, uncertain=3))

        assert dispatched is True
        item = queue.items[0]
        assert item.priority == 10
        assert item.status == ReviewStatus.PENDING
        assert item.extraction_method == "ocr"
        assert len(item.uncertain_segments) == 3
        assert item.uncertain_segments[0]["position"]["bounding_box"] == {"x": 0, "y": 0, "width": 10, "height": 10}

    def test_queue_failure_is_swallowed(self):
        queue = Mock()
        queue.insert.side_effect = ReviewQueueError("database is locked")

        assert ReviewQueueDispatcher(queue).dispatch("doc-1", "case-1", ocr_result(0.3)) is False
        queue.insert.assert_called_once()

    def test_pending_most_urgent_first(self):
        queue = MemoryReviewQueue()
        dispatcher = ReviewQueueDispatcher(queue)
        dispatcher.dispatch("doc-a", "case-1", ocr_result(0.9, uncertain=3))
        dispatcher.dispatch("doc-b", "case-1", ocr_result(0.2))

        assert [item.document_id for item in queue.pending()] == ["doc-b", "doc-a"]


class TestSQLiteReviewQueue:

    def test_insert_and_pending(self, tmp_path):
        queue = SQLiteReviewQueue(tmp_path / "review.db")
        dispatcher = ReviewQueueDispatcher(queue)
        dispatcher.dispatch("doc-a", "case-1", ocr_result(0.9, uncertain=6))
        dispatcher.dispatch("doc-b", "case-1", ocr_result(0.4))
        dispatcher.dispatch("doc-c", "case-2", ocr_result(0.55))

        pending = queue.pending("case-1")

        assert [(item.document_id, item.priority) for item in pending] == [("doc-b", 10), ("doc-a", 7)]
        assert len(pending[1].uncertain_segments) == 6
        assert len(queue.pending()) == 3

    def test_priority_constraint(self, tmp_path):
        from case_parser.models import ReviewQueueItem

        queue = SQLiteReviewQueue(tmp_path / "review.db")
        item = ReviewQueueItem(
            case_id="case-1",
            document_id="doc-1",
            extracted_text="",
            overall_confidence=0.1,
            extraction_method="ocr",
            priority=11,
        )
        with pytest.raises(ReviewQueueError):
            queue.insert(item)
