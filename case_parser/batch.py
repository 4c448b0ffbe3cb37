"""Batch extraction over many storage paths with a bounded concurrency window."""

from collections import Counter
from concurrent.futures import ThreadPoolExecutor, as_completed
from contextvars import copy_context
from dataclasses import dataclass, field
from typing import Optional

from case_parser.logger import Timer, get_logger
from case_parser.models import ExtractionMethod, ExtractionResult
from case_parser.pipeline import DocumentPipeline

logger = get_logger(__name__)


class BatchExtractor:
    """Runs pipeline extractions in sequential batches of ``concurrency`` paths.

    Every path in a batch is extracted concurrently; the next batch starts
    once the whole current batch has finished, so at most ``concurrency``
    extractions are ever in flight.
    """

    def __init__(self, pipeline: DocumentPipeline, default_concurrency: Optional[int] = None):
        self.pipeline = pipeline
        self.default_concurrency = default_concurrency or pipeline.config.max_concurrent

    def extract_many(
        self, storage_paths: list[str], concurrency: Optional[int] = None
    ) -> dict[str, ExtractionResult]:
        """Extract every path; the result map is keyed by storage path."""
        if concurrency is None:
            concurrency = self.default_concurrency
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")

        batches = [storage_paths[i:i + concurrency] for i in range(0, len(storage_paths), concurrency)]
        results: dict[str, ExtractionResult] = {}

        logger.info(
            "Batch extracting documents",
            extra_data={"documents": len(storage_paths), "batches": len(batches), "concurrency": concurrency},
        )

        with Timer("batch") as timer, ThreadPoolExecutor(max_workers=concurrency) as executor:
            for batch_number, batch in enumerate(batches, start=1):
                futures = {
                    executor.submit(copy_context().run, self._extract_one, path): path for path in batch
                }
                for future in as_completed(futures):
                    results[futures[future]] = future.result()

                logger.info(
                    f"Completed batch {batch_number} of {len(batches)}",
                    extra_data={"batch_size": len(batch), "elapsed_ms": timer.get_elapsed_ms()},
                )

        return results

    def _extract_one(self, storage_path: str) -> ExtractionResult:
        try:
            return self.pipeline.extract(storage_path)
        except Exception as exc:
            logger.error(
                "Batch worker failed",
                extra_data={"storage_path": storage_path, "error_type": type(exc).__name__, "error": str(exc)},
                exc_info=True,
            )
            return ExtractionResult.failure(ExtractionMethod.STORAGE, f"Extraction failed: {exc}")


@dataclass
class BatchSummary:
    total: int = 0
    needs_review: int = 0
    total_characters: int = 0
    by_status: dict[str, int] = field(default_factory=dict)
    by_method: dict[str, int] = field(default_factory=dict)


def summarize_results(results: dict[str, ExtractionResult]) -> BatchSummary:
    """Aggregate counts for a batch, e.g. for a case's extraction dashboard."""
    values = list(results.values())
    return BatchSummary(
        total=len(values),
        needs_review=sum(1 for r in values if r.needs_review),
        total_characters=sum(len(r.text) for r in values),
        by_status=dict(Counter(r.status.value for r in values)),
        by_method=dict(Counter(r.method.value for r in values)),
    )
