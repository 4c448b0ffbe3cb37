"""Custom exceptions for case file parser."""


class DocumentParserError(Exception):
    """Base exception for case file parser errors."""

    pass


class StorageError(DocumentParserError):
    """Raised when a file cannot be downloaded from storage."""

    pass


class ExtractionError(DocumentParserError):
    """Raised when text extraction fails."""

    pass


class EngineUnavailableError(DocumentParserError):
    """Raised when an external engine (OCR, PDF, transcription) cannot be loaded."""

    pass


class CacheStoreError(DocumentParserError):
    """Raised by cache store backends when a read or write fails."""

    pass


class ReviewQueueError(DocumentParserError):
    """Raised by review queue backends when an insert fails."""

    pass


class PdfError(ExtractionError):
    """Base for errors raised by native PDF call sites."""

    recoverable = True

    def __init__(self, message: str, reason: str = "recoverable"):
        super().__init__(message)
        self.reason = reason


class RecoverablePdfError(PdfError):
    """PDF error after which the fallback extractor should be tried."""

    recoverable = True


class NonRecoverablePdfError(PdfError):
    """PDF error for which retrying with another extractor is futile.

    ``reason`` is one of ``invalid``, ``missing``, ``password-protected`` or
    ``unexpected-response``.
    """

    recoverable = False

    INVALID = "invalid"
    MISSING = "missing"
    PASSWORD_PROTECTED = "password-protected"
    UNEXPECTED_RESPONSE = "unexpected-response"

    def __init__(self, message: str, reason: str = INVALID):
        super().__init__(message, reason=reason)
