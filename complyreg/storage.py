"""
complyreg Storage

Namespaced key-value storage with all-or-nothing transactions.

Each registry owns disjoint namespaces; records are plain JSON-compatible
dicts. A transaction groups every write made by one registry call, including
writes made by nested calls, and either commits all of them or none.

Implementations must be:
- Atomic (a failing call leaves no partial writes)
- Serialised (one call observes no other call's uncommitted state)
- Re-entrant (nested transaction() joins the outermost one)
"""

import copy
import json
import logging
import sqlite3
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

logger = logging.getLogger(__name__)

Record = Dict[str, Any]


class KeyValueStore(ABC):
    """Abstract interface for registry storage."""

    @abstractmethod
    def get(self, namespace: str, key: str) -> Optional[Record]:
        """Return a copy of the stored record, or None if absent."""
        pass

    @abstractmethod
    def put(self, namespace: str, key: str, value: Record) -> None:
        """Insert or overwrite a record."""
        pass

    @abstractmethod
    def items(self, namespace: str) -> List[Tuple[str, Record]]:
        """All (key, record) pairs in a namespace, in insertion order."""
        pass

    @abstractmethod
    def transaction(self):
        """Context manager grouping writes into one atomic unit."""
        pass

    @abstractmethod
    def delete(self, namespace: str, key: str) -> None:
        """Remove a record. Absent keys are ignored."""
        pass

    def exists(self, namespace: str, key: str) -> bool:
        return self.get(namespace, key) is not None


class InMemoryStore(KeyValueStore):
    """
    In-memory store for development and testing.

    Rollback restores a deep copy of the state taken when the outermost
    transaction began.
    """

    def __init__(self):
        self._data: Dict[str, Dict[str, Record]] = {}
        self._lock = threading.RLock()
        self._depth = 0

    def get(self, namespace: str, key: str) -> Optional[Record]:
        with self._lock:
            value = self._data.get(namespace, {}).get(key)
            return copy.deepcopy(value) if value is not None else None

    def put(self, namespace: str, key: str, value: Record) -> None:
        with self._lock:
            self._data.setdefault(namespace, {})[key] = copy.deepcopy(value)

    def items(self, namespace: str) -> List[Tuple[str, Record]]:
        with self._lock:
            return [
                (k, copy.deepcopy(v))
                for k, v in self._data.get(namespace, {}).items()
            ]

    def delete(self, namespace: str, key: str) -> None:
        with self._lock:
            self._data.get(namespace, {}).pop(key, None)

    @contextmanager
    def transaction(self) -> Iterator["InMemoryStore"]:
        with self._lock:
            if self._depth > 0:
                self._depth += 1
                try:
                    yield self
                finally:
                    self._depth -= 1
                return

            snapshot = copy.deepcopy(self._data)
            self._depth = 1
            try:
                yield self
            except BaseException:
                self._data = snapshot
                logger.debug("In-memory transaction rolled back")
                raise
            finally:
                self._depth = 0


class SqliteStore(KeyValueStore):
    """
    SQLite-backed store.

    One table keyed by (namespace, key) holding JSON records. A single
    connection is shared behind a re-entrant lock so calls are serialised.
    """

    def __init__(self, db_path: Union[str, Path]):
        self._db_path = str(db_path)
        if self._db_path != ":memory:":
            Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.RLock()
        self._depth = 0
        # Transactions are managed explicitly below
        self._conn = sqlite3.connect(self._db_path, check_same_thread=False, isolation_level=None)
        self._conn.row_factory = sqlite3.Row
        if self._db_path != ":memory:":
            self._conn.execute("PRAGMA journal_mode=WAL;")
        self._conn.execute("PRAGMA synchronous=NORMAL;")
        self._init_schema()

    def _init_schema(self) -> None:
        self._conn.execute("""
        CREATE TABLE IF NOT EXISTS records (
            seq INTEGER PRIMARY KEY AUTOINCREMENT,
            namespace TEXT NOT NULL,
            key TEXT NOT NULL,
            value_json TEXT NOT NULL,
            UNIQUE(namespace, key)
        );""")
        self._conn.execute("""
        CREATE INDEX IF NOT EXISTS idx_records_namespace
        ON records(namespace);""")

    def get(self, namespace: str, key: str) -> Optional[Record]:
        with self._lock:
            cur = self._conn.execute(
                "SELECT value_json FROM records WHERE namespace=? AND key=?",
                (namespace, key)
            )
            row = cur.fetchone()
            return json.loads(row["value_json"]) if row else None

    def put(self, namespace: str, key: str, value: Record) -> None:
        payload = json.dumps(value, sort_keys=True)
        with self.transaction():
            self._conn.execute(
                "INSERT INTO records(namespace, key, value_json) VALUES(?,?,?) "
                "ON CONFLICT(namespace, key) DO UPDATE SET value_json=excluded.value_json",
                (namespace, key, payload)
            )

    def items(self, namespace: str) -> List[Tuple[str, Record]]:
        with self._lock:
            cur = self._conn.execute(
                "SELECT key, value_json FROM records WHERE namespace=? ORDER BY seq ASC",
                (namespace,)
            )
            return [(row["key"], json.loads(row["value_json"])) for row in cur.fetchall()]

    def delete(self, namespace: str, key: str) -> None:
        with self.transaction():
            self._conn.execute(
                "DELETE FROM records WHERE namespace=? AND key=?",
                (namespace, key)
            )

    @contextmanager
    def transaction(self) -> Iterator["SqliteStore"]:
        with self._lock:
            if self._depth > 0:
                self._depth += 1
                try:
                    yield self
                finally:
                    self._depth -= 1
                return

            self._conn.execute("BEGIN IMMEDIATE")
            self._depth = 1
            try:
                yield self
                self._conn.execute("COMMIT")
            except BaseException:
                self._conn.execute("ROLLBACK")
                logger.debug("SQLite transaction rolled back: %s", self._db_path)
                raise
            finally:
                self._depth = 0

    def close(self) -> None:
        with self._lock:
            self._conn.close()
