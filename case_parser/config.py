"""Configuration classes for case file parser."""

import os
from dataclasses import dataclass, field
from typing import Optional


@dataclass
class OCRConfig:
    """Configuration for image OCR.

    Examples:
        >>> # Default configuration (English, automatic page segmentation)
        >>> config = OCRConfig()

        >>> # Stricter review for poor quality scans
        >>> config = OCRConfig(word_confidence_threshold=70, review_threshold=0.85)
    """

    tesseract_cmd: str = "tesseract"
    """Path to tesseract binary. Default: "tesseract" (assumes in PATH)."""

    tessdata_prefix: Optional[str] = None
    """Optional path to tessdata directory. If None, uses system default."""

    languages: str = "eng"
    """OCR languages in Tesseract format (e.g., "eng", "eng+spa")."""

    psm_mode: int = 3
    """Page segmentation mode (0-13). Default: 3 (fully automatic).

    Common modes:
    - 3: Fully automatic page segmentation (photos, mixed layouts)
    - 6: Uniform block of text (typed statements)
    - 11: Sparse text (evidence photos with a few labels)
    """

    word_confidence_threshold: float = 60.0
    """Words below this Tesseract confidence (0-100) are candidates for review."""

    review_threshold: float = 0.75
    """Overall confidence (0-1) below which the whole image needs review."""

    stop_words: frozenset = frozenset(
        {"the", "and", "or", "a", "an", "is", "was", "were", "be", "to", "of", "in", "on", "at"}
    )
    """Common words never flagged as uncertain segments."""

    enable_image_preprocessing: bool = True
    """Convert to grayscale and boost contrast before OCR.

    Disable if you need color information or want maximum speed.
    """

    contrast_enhancement: float = 1.2
    """Contrast enhancement factor for image preprocessing.

    - 1.0: No enhancement
    - 1.2: Default, 20% contrast boost (good for scanned documents)
    - 1.5: Strong enhancement (for poor quality scans)
    """


@dataclass
class PDFConfig:
    """Confidence heuristics for the PDF extraction chain."""

    chars_per_page: int = 1500
    """Characters a fully legible page is expected to yield."""

    min_confidence: float = 0.4
    max_confidence: float = 0.95
    empty_confidence: float = 0.1
    fallback_confidence: float = 0.75


@dataclass
class TranscriptionConfig:
    """Configuration for the speech-to-text service."""

    api_key: Optional[str] = field(default_factory=lambda: os.environ.get("OPENAI_API_KEY"))
    """API key. Transcription is reported as unconfigured when empty."""

    model: str = "whisper-1"
    language: str = "en"
    response_format: str = "verbose_json"
    confidence: float = 0.9
    """Fixed confidence assigned to successful transcriptions."""

    @property
    def configured(self) -> bool:
        return bool(self.api_key)


@dataclass
class ParserConfig:
    """Top-level configuration for the extraction pipeline."""

    ocr_config: OCRConfig = field(default_factory=OCRConfig)
    pdf_config: PDFConfig = field(default_factory=PDFConfig)
    transcription_config: TranscriptionConfig = field(default_factory=TranscriptionConfig)
    use_cache: bool = True
    max_concurrent: int = 3
    """Default concurrency window for batch extraction."""
