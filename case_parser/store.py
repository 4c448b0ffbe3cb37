"""Cache table and review queue backends.

Two backends are provided for each collaborator: an in-memory one (tests,
single-process batch jobs) and a SQLite one. Backend failures surface as
:class:`CacheStoreError` / :class:`ReviewQueueError`; deciding whether they
are fatal is left to the caller.
"""

import json
import sqlite3
import threading
from abc import ABC, abstractmethod
from contextlib import closing, contextmanager
from dataclasses import replace
from enum import Enum
from pathlib import Path
from typing import Iterator, Optional, Protocol, Union

from case_parser.exceptions import CacheStoreError, ReviewQueueError
from case_parser.logger import get_logger
from case_parser.models import CacheRecord, ReviewQueueItem, ReviewStatus

logger = get_logger(__name__)


class CacheTable(str, Enum):
    DOCUMENTS = "case_documents"
    LEGACY = "case_files"


class CacheStore(Protocol):
    def fetch(self, table: CacheTable, storage_path: str) -> Optional[CacheRecord]:
        ...

    def save(self, table: CacheTable, record: CacheRecord) -> None:
        ...


class MemoryCacheStore:
    def __init__(self):
        self._tables: dict[CacheTable, dict[str, CacheRecord]] = {table: {} for table in CacheTable}
        self._lock = threading.Lock()

    def fetch(self, table: CacheTable, storage_path: str) -> Optional[CacheRecord]:
        with self._lock:
            record = self._tables[CacheTable(table)].get(storage_path)
            return replace(record) if record else None

    def save(self, table: CacheTable, record: CacheRecord) -> None:
        with self._lock:
            self._tables[CacheTable(table)][record.storage_path] = replace(record)


class MemoryReviewQueue:
    def __init__(self):
        self.items: list[ReviewQueueItem] = []
        self._lock = threading.Lock()

    def insert(self, item: ReviewQueueItem) -> None:
        with self._lock:
            self.items.append(item)

    def pending(self) -> list[ReviewQueueItem]:
        """Pending items, most urgent first."""
        with self._lock:
            items = [item for item in self.items if item.status == ReviewStatus.PENDING]
        return sorted(items, key=lambda item: item.priority, reverse=True)


class _SQLiteBackend(ABC):
    """Connection-per-operation access to a SQLite file."""

    error_class: type = CacheStoreError

    def __init__(self, db_path: Union[str, Path]):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_tables()

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        try:
            with closing(sqlite3.connect(self.db_path)) as conn:
                with conn:
                    yield conn
        except sqlite3.Error as exc:
            raise self.error_class(f"SQLite error on {self.db_path}: {exc}") from exc

    @abstractmethod
    def _ensure_tables(self) -> None:
        """Create the backend's tables if they do not exist yet."""


class SQLiteCacheStore(_SQLiteBackend):
    """Both cache tables in one SQLite database, keyed by storage path."""

    error_class = CacheStoreError

    def _ensure_tables(self) -> None:
        with self._connect() as conn:
            for table in CacheTable:
                conn.execute(
                    f"""
                    CREATE TABLE IF NOT EXISTS {table.value} (
                        storage_path TEXT PRIMARY KEY,
                        extracted_text TEXT NOT NULL,
                        extraction_method TEXT NOT NULL,
                        extraction_confidence REAL NOT NULL,
                        extraction_status TEXT NOT NULL,
                        structured_data TEXT,
                        page_count INTEGER,
                        word_count INTEGER,
                        extracted_at TEXT
                    )
                    """
                )
        logger.info("Cache store initialized", extra_data={"db_path": str(self.db_path)})

    def fetch(self, table: CacheTable, storage_path: str) -> Optional[CacheRecord]:
        table = CacheTable(table)
        with self._connect() as conn:
            row = conn.execute(
                f"""
                SELECT storage_path, extracted_text, extraction_method, extraction_confidence,
                       extraction_status, structured_data, page_count, word_count, extracted_at
                FROM {table.value}
                WHERE storage_path = ?
                """,
                (storage_path,),
            ).fetchone()

        if row is None:
            return None

        try:
            structured_data = json.loads(row[5]) if row[5] else {}
        except json.JSONDecodeError:
            logger.warning("Corrupt structured data in cache", extra_data={"storage_path": storage_path})
            structured_data = {}

        return CacheRecord(
            storage_path=row[0],
            extracted_text=row[1],
            extraction_method=row[2],
            confidence=row[3],
            status=row[4],
            structured_data=structured_data,
            page_count=row[6] or 1,
            word_count=row[7] or 0,
            extracted_at=row[8],
        )

    def save(self, table: CacheTable, record: CacheRecord) -> None:
        table = CacheTable(table)
        with self._connect() as conn:
            conn.execute(
                f"""
                INSERT OR REPLACE INTO {table.value} (
                    storage_path, extracted_text, extraction_method, extraction_confidence,
                    extraction_status, structured_data, page_count, word_count, extracted_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    record.storage_path,
                    record.extracted_text,
                    record.extraction_method,
                    record.confidence,
                    record.status,
                    json.dumps(record.structured_data or {}),
                    record.page_count,
                    record.word_count,
                    record.extracted_at,
                ),
            )


class SQLiteReviewQueue(_SQLiteBackend):
    """The document review queue as a SQLite table."""

    error_class = ReviewQueueError

    def _ensure_tables(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS document_review_queue (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    case_id TEXT NOT NULL,
                    document_id TEXT NOT NULL,
                    extracted_text TEXT,
                    overall_confidence REAL NOT NULL,
                    extraction_method TEXT NOT NULL,
                    uncertain_segments TEXT NOT NULL DEFAULT '[]',
                    status TEXT NOT NULL DEFAULT 'pending',
                    priority INTEGER NOT NULL CHECK (priority BETWEEN 1 AND 10),
                    reason TEXT,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
                """
            )

    def insert(self, item: ReviewQueueItem) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO document_review_queue (
                    case_id, document_id, extracted_text, overall_confidence,
                    extraction_method, uncertain_segments, status, priority, reason
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    item.case_id,
                    item.document_id,
                    item.extracted_text,
                    item.overall_confidence,
                    item.extraction_method,
                    json.dumps(item.uncertain_segments),
                    ReviewStatus(item.status).value,
                    item.priority,
                    item.reason,
                ),
            )

    def pending(self, case_id: Optional[str] = None) -> list[ReviewQueueItem]:
        """Pending items, most urgent first."""
        query = (
            "SELECT case_id, document_id, extracted_text, overall_confidence, extraction_method, "
            "uncertain_segments, status, priority, reason FROM document_review_queue WHERE status = ?"
        )
        params: list = [ReviewStatus.PENDING.value]
        if case_id is not None:
            query += " AND case_id = ?"
            params.append(case_id)
        query += " ORDER BY priority DESC, id ASC"

        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()

        return [
            ReviewQueueItem(
                case_id=row[0],
                document_id=row[1],
                extracted_text=row[2] or "",
                overall_confidence=row[3],
                extraction_method=row[4],
                uncertain_segments=json.loads(row[5] or "[]"),
                status=ReviewStatus(row[6]),
                priority=row[7],
                reason=row[8],
            )
            for row in rows
        ]
