"""High-level API for case file extraction."""

from pathlib import Path
from typing import Optional, Union

from case_parser.batch import BatchExtractor
from case_parser.cache import ExtractionCache
from case_parser.config import ParserConfig
from case_parser.engines import get_default_engines
from case_parser.models import ExtractionResult
from case_parser.pipeline import DocumentPipeline
from case_parser.router import FormatRouter
from case_parser.storage import LocalStorage
from case_parser.store import SQLiteCacheStore


def parse_document(
    file_path: Optional[str] = None,
    file_bytes: Optional[bytes] = None,
    file_name: Optional[str] = None,
    config: Optional[ParserConfig] = None,
) -> ExtractionResult:
    """Parse a document and extract text content.

    High-level convenience function that accepts either a file path or raw bytes.
    Extraction never raises for document problems; inspect ``result.error``
    and ``result.needs_review`` instead.

    Args:
        file_path: Path to document file (alternative to file_bytes)
        file_bytes: Raw document bytes (alternative to file_path)
        file_name: Original filename (required if using file_bytes); its
            extension selects the extraction strategy
        config: Parser configuration (optional, uses defaults if not provided)

    Returns:
        ExtractionResult with extracted text, confidence and structured facts

    Raises:
        ValueError: If neither file_path nor file_bytes provided, if both are,
            or if file_bytes provided without file_name

    Examples:
        >>> result = parse_document(file_path="statement.pdf")
        >>> print(result.text)

        >>> with open("witness.m4a", "rb") as f:
        ...     result = parse_document(file_bytes=f.read(), file_name="witness.m4a")
    """
    if file_path and file_bytes is not None:
        raise ValueError("Provide either file_path or file_bytes, not both")

    if not file_path and file_bytes is None:
        raise ValueError("Must provide either file_path or file_bytes")

    if file_path:
        path = Path(file_path)
        if not path.exists():
            raise ValueError(f"File not found: {file_path}")

        file_bytes = path.read_bytes()
        file_name = path.name

    if not file_name:
        raise ValueError("file_name is required when using file_bytes")

    engines = get_default_engines() if config is None else None
    router = FormatRouter(config=config, engines=engines)
    return router.extract(file_name, file_bytes)


def extract_many(
    storage_paths: list[str],
    storage_root: Union[str, Path],
    concurrency: Optional[int] = None,
    cache_db: Optional[Union[str, Path]] = None,
    config: Optional[ParserConfig] = None,
) -> dict[str, ExtractionResult]:
    """Extract many files below a local storage root.

    Args:
        storage_paths: Paths relative to ``storage_root``
        storage_root: Directory holding the case files
        concurrency: Extractions in flight at once (defaults to config.max_concurrent)
        cache_db: Optional SQLite file used as the extraction cache
        config: Parser configuration

    Returns:
        Mapping of storage path to ExtractionResult
    """
    config = config or ParserConfig()
    cache = ExtractionCache(SQLiteCacheStore(cache_db)) if cache_db else None
    pipeline = DocumentPipeline(
        storage=LocalStorage(storage_root),
        cache=cache,
        config=config,
    )
    return BatchExtractor(pipeline).extract_many(storage_paths, concurrency=concurrency)
