"""Turn an extraction result into what gets persisted for a document chunk.

A result is persisted as ``completed`` only when it carries real text. Errors,
placeholder text, raw PDF object syntax and text that is mostly PDF noise all
produce a ``failed`` plan with a structured error log instead.
"""

import json
import re
from copy import deepcopy
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from case_parser.models import ExtractionMethod, ExtractionResult

NO_TEXT_PREFIX = "[No extractable text"
MIN_CLEANED_LENGTH = 20
ARTIFACT_SAMPLE_SIZE = 2000

PDF_MARKERS = [
    re.compile(r"<<\s*/Type\s*/"),
    re.compile(r"/Filter\s*/FlateDecode"),
    re.compile(r"/BaseFont\s*/[A-Za-z]"),
    re.compile(r"/Encoding\s*/Identity"),
    re.compile(r"/Parent\s*\d+\s*\d+\s*R"),
    re.compile(r"/Resources\s*<<"),
    re.compile(r"\d+\s+\d+\s+obj\b"),
    re.compile(r"\bendobj\b"),
    re.compile(r"\bstream\b.*\bendstream\b", re.DOTALL),
    re.compile(r"/Length\s*\d+"),
]
PDF_NAME_TOKEN = re.compile(r"/[A-Z][a-z]+")
PDF_SYNTAX_LINE = re.compile(r"^(<<|>>|\d+\s+\d+\s+obj|endobj|stream|endstream|xref)")
UNUSUAL_CHAR = re.compile(r"[^\x20-\x7E\n\r\t]")
NON_ALPHANUMERIC = re.compile(r"[^a-zA-Z0-9]")

PDF_ARTIFACT_DETECTED = "PDF_ARTIFACT_DETECTED"
CONTENT_CLEANING_FAILED = "CONTENT_CLEANING_FAILED"

_ERROR_CODES = {
    ExtractionMethod.PRIMARY_PDF: "PDF_EXTRACTION_FAILED",
    ExtractionMethod.FALLBACK_PDF: "PDF_EXTRACTION_FAILED",
    ExtractionMethod.OCR: "OCR_EXTRACTION_FAILED",
    ExtractionMethod.TRANSCRIPTION: "AUDIO_TRANSCRIPTION_FAILED",
    ExtractionMethod.STORAGE: "STORAGE_DOWNLOAD_FAILED",
}


@dataclass
class ExtractionErrorLog:
    code: str
    message: str
    method: str
    timestamp: str
    detail: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class PersistencePlan:
    status: str
    updates: dict[str, Any] = field(default_factory=dict)
    content_for_embedding: Optional[str] = None
    error: Optional[ExtractionErrorLog] = None


def looks_like_pdf_artifact(text: str) -> bool:
    """True if text looks like raw PDF internals rather than document content."""
    if not text:
        return False

    sample = text[:ARTIFACT_SAMPLE_SIZE]

    marker_count = 0
    for pattern in PDF_MARKERS:
        if pattern.search(sample):
            marker_count += 1
        if marker_count >= 3:
            return True

    tokens = PDF_NAME_TOKEN.findall(sample)
    alphanumeric = len(NON_ALPHANUMERIC.sub("", sample))
    if len(tokens) >= 5 and alphanumeric > 0 and (len(tokens) * 5) / alphanumeric > 0.3:
        return True

    return len(UNUSUAL_CHAR.findall(sample)) / len(sample) > 0.15


def clean_pdf_artifacts(text: str) -> str:
    """Drop lines of PDF object syntax, keeping blank lines and real content."""
    kept = []
    for line in re.split(r"\r?\n", text):
        stripped = line.strip()
        if stripped:
            if PDF_SYNTAX_LINE.match(stripped):
                continue
            if len(PDF_NAME_TOKEN.findall(stripped)) >= 3 and "<<" in stripped:
                continue
        kept.append(line)
    return "\n".join(kept).strip()


def derive_error_code(method: ExtractionMethod) -> str:
    return _ERROR_CODES.get(ExtractionMethod(method), "DOCUMENT_EXTRACTION_FAILED")


def derive_persistence_plan(
    result: ExtractionResult, metadata: Optional[dict[str, Any]] = None
) -> PersistencePlan:
    """Decide how a chunk row is updated from an extraction result.

    Args:
        result: Extraction result for the chunk.
        metadata: Existing chunk metadata. Copied, never mutated.

    Returns:
        PersistencePlan whose ``updates`` map column names to new values.
    """
    now = datetime.now(timezone.utc).isoformat()
    method = result.method.value
    raw_text = (result.text or "").strip()
    is_placeholder = not raw_text or raw_text.startswith(NO_TEXT_PREFIX)
    is_artifact = looks_like_pdf_artifact(raw_text)

    shared_metadata = {
        **deepcopy(metadata or {}),
        "extraction_method": method,
        "page_count": result.page_count,
        "processing_timestamp": now,
    }

    if result.error or is_placeholder or is_artifact:
        if is_artifact:
            error = ExtractionErrorLog(
                code=PDF_ARTIFACT_DETECTED,
                message="Extraction returned raw PDF data instead of readable text. "
                "The PDF may be scanned or corrupted.",
                method=method,
                detail="Content contains PDF object syntax markers. OCR may be required.",
                timestamp=now,
            )
        else:
            error = ExtractionErrorLog(
                code=derive_error_code(result.method),
                message=result.error or "Document parser did not return extractable text.",
                method=method,
                detail=None if result.error else "Parser returned placeholder text.",
                timestamp=now,
            )
        return _failed_plan(
            error,
            confidence=result.confidence,
            metadata={**shared_metadata, "extraction_error": error.to_dict(), "pdf_artifact_detected": is_artifact},
        )

    cleaned = clean_pdf_artifacts(raw_text)
    if len(cleaned) < MIN_CLEANED_LENGTH:
        error = ExtractionErrorLog(
            code=CONTENT_CLEANING_FAILED,
            message="After removing PDF artifacts, no meaningful content remained.",
            method=method,
            detail=f"Original length: {len(raw_text)}, cleaned length: {len(cleaned)}",
            timestamp=now,
        )
        return _failed_plan(
            error, confidence=0.0, metadata={**shared_metadata, "extraction_error": error.to_dict()}
        )

    return PersistencePlan(
        status="completed",
        updates={
            "content": cleaned,
            "extraction_confidence": result.confidence,
            "extraction_method": method,
            "error_log": None,
            "processed_at": now,
            "metadata": shared_metadata,
        },
        content_for_embedding=cleaned,
    )


def _failed_plan(error: ExtractionErrorLog, confidence: float, metadata: dict[str, Any]) -> PersistencePlan:
    return PersistencePlan(
        status="failed",
        updates={
            "content": None,
            "extraction_confidence": confidence,
            "extraction_method": error.method,
            "error_log": json.dumps(error.to_dict()),
            "processed_at": error.timestamp,
            "metadata": metadata,
        },
        error=error,
    )
