"""File format detection from storage paths."""

from enum import Enum
from pathlib import PurePosixPath

from case_parser.logger import get_logger

logger = get_logger(__name__)


class DocumentFormat(str, Enum):
    PDF = "pdf"
    IMAGE = "image"
    AUDIO = "audio"
    PLAIN_TEXT = "plain_text"
    CSV = "csv"
    DOCX = "docx"
    LEGACY_DOC = "legacy_doc"
    SPREADSHEET = "spreadsheet"
    UNSUPPORTED = "unsupported"


EXTENSION_FORMATS = {
    ".pdf": DocumentFormat.PDF,
    ".jpg": DocumentFormat.IMAGE,
    ".jpeg": DocumentFormat.IMAGE,
    ".png": DocumentFormat.IMAGE,
    ".gif": DocumentFormat.IMAGE,
    ".bmp": DocumentFormat.IMAGE,
    ".tiff": DocumentFormat.IMAGE,
    ".webp": DocumentFormat.IMAGE,
    ".mp3": DocumentFormat.AUDIO,
    ".wav": DocumentFormat.AUDIO,
    ".m4a": DocumentFormat.AUDIO,
    ".ogg": DocumentFormat.AUDIO,
    ".flac": DocumentFormat.AUDIO,
    ".txt": DocumentFormat.PLAIN_TEXT,
    ".md": DocumentFormat.PLAIN_TEXT,
    ".log": DocumentFormat.PLAIN_TEXT,
    ".csv": DocumentFormat.CSV,
    ".docx": DocumentFormat.DOCX,
    ".doc": DocumentFormat.LEGACY_DOC,
    ".xlsx": DocumentFormat.SPREADSHEET,
    ".xls": DocumentFormat.SPREADSHEET,
}


def detect_format(storage_path: str) -> DocumentFormat:
    """Pick the format family from the path's extension, case-insensitively.

    Only the extension is consulted; file contents are never sniffed.
    """
    suffix = PurePosixPath(storage_path.lower()).suffix
    document_format = EXTENSION_FORMATS.get(suffix, DocumentFormat.UNSUPPORTED)
    logger.debug(
        "Detected document format",
        extra_data={"storage_path": storage_path, "extension": suffix or "(none)", "format": document_format.value},
    )
    return document_format
