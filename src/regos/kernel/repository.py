"""
Repository - the persistence seam

Stores never touch a database directly. They speak to a narrow CRUD
capability (create, update, get, find, delete) plus an atomic unit that
either applies every write inside it or none of them. Records are plain
JSON-compatible dicts grouped into named collections.

Two backends ship here: an in-memory one for tests and embedding, and a
SQLite one for the CLI and single-host deployments.
"""

import copy
import json
import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterator, Protocol

from regos.kernel.errors import DuplicateRecord, RepositoryError
from regos.kernel.logging import get_logger
from regos.kernel.retry import retry_on_sqlite_lock

logger = get_logger(__name__)

Record = dict[str, Any]


class Repository(Protocol):
    """CRUD capability the stores depend on"""

    def create(self, collection: str, record_id: str, record: Record) -> None:
        """Insert a new record; DuplicateRecord if the id exists"""
        ...

    def update(self, collection: str, record_id: str, record: Record) -> None:
        """Replace an existing record; RepositoryError if missing"""
        ...

    def get(self, collection: str, record_id: str) -> Record | None:
        ...

    def find(self, collection: str, **equals: Any) -> list[Record]:
        """Records whose top-level fields equal the given values, insertion order"""
        ...

    def delete(self, collection: str, record_id: str) -> bool:
        ...

    def atomic(self) -> Any:
        """Context manager: all writes inside commit together or not at all"""
        ...


def _matches(record: Record, equals: dict[str, Any]) -> bool:
    return all(record.get(key) == value for key, value in equals.items())


class InMemoryRepository:
    """
    Dict-backed repository

    Records are deep-copied on the way in and out so callers can never
    mutate stored state behind the stores' backs.
    """

    def __init__(self) -> None:
        self._collections: dict[str, dict[str, Record]] = {}
        self._lock = threading.RLock()
        self._depth = 0
        self._snapshot: dict[str, dict[str, Record]] | None = None

    def _collection(self, name: str) -> dict[str, Record]:
        return self._collections.setdefault(name, {})

    def create(self, collection: str, record_id: str, record: Record) -> None:
        with self._lock:
            records = self._collection(collection)
            if record_id in records:
                raise DuplicateRecord(collection, record_id)
            records[record_id] = copy.deepcopy(record)

    def update(self, collection: str, record_id: str, record: Record) -> None:
        with self._lock:
            records = self._collection(collection)
            if record_id not in records:
                raise RepositoryError(f"{collection} record {record_id} does not exist")
            records[record_id] = copy.deepcopy(record)

    def get(self, collection: str, record_id: str) -> Record | None:
        with self._lock:
            record = self._collection(collection).get(record_id)
            return copy.deepcopy(record) if record is not None else None

    def find(self, collection: str, **equals: Any) -> list[Record]:
        with self._lock:
            return [
                copy.deepcopy(record)
                for record in self._collection(collection).values()
                if _matches(record, equals)
            ]

    def delete(self, collection: str, record_id: str) -> bool:
        with self._lock:
            return self._collection(collection).pop(record_id, None) is not None

    @contextmanager
    def atomic(self) -> Iterator[None]:
        with self._lock:
            if self._depth == 0:
                self._snapshot = copy.deepcopy(self._collections)
            self._depth += 1
            try:
                yield
            except BaseException:
                if self._depth == 1 and self._snapshot is not None:
                    self._collections = self._snapshot
                raise
            finally:
                self._depth -= 1
                if self._depth == 0:
                    self._snapshot = None


class SQLiteRepository:
    """
    SQLite-backed repository

    Schema:
    - records table: (collection, record_id) primary key, JSON body.
      The implicit rowid keeps insertion order across updates.
    """

    def __init__(self, db_path: str | Path) -> None:
        """
        Open (and create if needed) the database file

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path)
        self._lock = threading.RLock()
        self._depth = 0
        # Autocommit mode; atomic() issues explicit BEGIN/COMMIT
        self._conn = sqlite3.connect(
            str(self.db_path), check_same_thread=False, isolation_level=None
        )
        self._conn.row_factory = sqlite3.Row
        self._initialize_schema()

    def _initialize_schema(self) -> None:
        with self._lock:
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.execute("""
                CREATE TABLE IF NOT EXISTS records (
                    collection TEXT NOT NULL,
                    record_id TEXT NOT NULL,
                    record_json TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    PRIMARY KEY (collection, record_id)
                )
            """)
            self._conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_records_collection "
                "ON records(collection)"
            )

    @retry_on_sqlite_lock()
    def _execute(self, sql: str, params: tuple[Any, ...] = ()) -> sqlite3.Cursor:
        return self._conn.execute(sql, params)

    @staticmethod
    def _stamp() -> str:
        return datetime.now(timezone.utc).isoformat()

    def create(self, collection: str, record_id: str, record: Record) -> None:
        with self._lock:
            try:
                self._execute(
                    "INSERT INTO records (collection, record_id, record_json, updated_at) "
                    "VALUES (?, ?, ?, ?)",
                    (collection, record_id, json.dumps(record), self._stamp()),
                )
            except sqlite3.IntegrityError as e:
                raise DuplicateRecord(collection, record_id) from e

    def update(self, collection: str, record_id: str, record: Record) -> None:
        with self._lock:
            cursor = self._execute(
                "UPDATE records SET record_json = ?, updated_at = ? "
                "WHERE collection = ? AND record_id = ?",
                (json.dumps(record), self._stamp(), collection, record_id),
            )
            if cursor.rowcount == 0:
                raise RepositoryError(f"{collection} record {record_id} does not exist")

    def get(self, collection: str, record_id: str) -> Record | None:
        with self._lock:
            row = self._execute(
                "SELECT record_json FROM records WHERE collection = ? AND record_id = ?",
                (collection, record_id),
            ).fetchone()
            return json.loads(row["record_json"]) if row else None

    def find(self, collection: str, **equals: Any) -> list[Record]:
        with self._lock:
            rows = self._execute(
                "SELECT record_json FROM records WHERE collection = ? ORDER BY rowid",
                (collection,),
            ).fetchall()
        records = [json.loads(row["record_json"]) for row in rows]
        return [record for record in records if _matches(record, equals)]

    def delete(self, collection: str, record_id: str) -> bool:
        with self._lock:
            cursor = self._execute(
                "DELETE FROM records WHERE collection = ? AND record_id = ?",
                (collection, record_id),
            )
            return cursor.rowcount > 0

    @contextmanager
    def atomic(self) -> Iterator[None]:
        with self._lock:
            outermost = self._depth == 0
            if outermost:
                self._execute("BEGIN IMMEDIATE")
            self._depth += 1
            try:
                yield
            except BaseException:
                self._depth -= 1
                if outermost:
                    self._conn.execute("ROLLBACK")
                    logger.debug("Transaction rolled back", db_path=str(self.db_path))
                raise
            else:
                self._depth -= 1
                if outermost:
                    self._conn.execute("COMMIT")

    def ping(self) -> bool:
        """True when the database answers a trivial query"""
        with self._lock:
            return self._execute("SELECT 1").fetchone() is not None

    def close(self) -> None:
        with self._lock:
            self._conn.close()
