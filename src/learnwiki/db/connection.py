"""SQLite database connection management."""

import logging
import sqlite3
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from learnwiki.errors import StorageUnavailableError

logger = logging.getLogger(__name__)


class Database:
    """SQLite database wrapper with connection management.

    One connection per library file, shared by every caller. A re-entrant lock
    serializes statements so multi-statement transactions are never
    interleaved with other writers on the same connection.
    """

    def __init__(self, db_path: Path):
        """Initialize database connection."""
        self.db_path = db_path
        db_path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.RLock()
        self._in_transaction = False
        try:
            self._conn = sqlite3.connect(db_path, check_same_thread=False)
        except sqlite3.Error as e:
            raise StorageUnavailableError(f"Cannot open database {db_path}: {e}") from e
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA foreign_keys = ON")

    def execute(self, sql: str, params: tuple[Any, ...] = ()) -> sqlite3.Cursor:
        """Execute SQL statement."""
        with self._lock:
            try:
                return self._conn.execute(sql, params)
            except sqlite3.Error as e:
                logger.error(f"Storage error on {self.db_path.name}: {e}")
                raise StorageUnavailableError(f"Storage unavailable: {e}") from e

    def executemany(self, sql: str, params_list: list[tuple[Any, ...]]) -> sqlite3.Cursor:
        """Execute SQL statement for multiple parameter sets."""
        with self._lock:
            try:
                return self._conn.executemany(sql, params_list)
            except sqlite3.Error as e:
                logger.error(f"Storage error on {self.db_path.name}: {e}")
                raise StorageUnavailableError(f"Storage unavailable: {e}") from e

    def executescript(self, sql: str) -> sqlite3.Cursor:
        """Execute multiple SQL statements as a script."""
        with self._lock:
            try:
                return self._conn.executescript(sql)
            except sqlite3.Error as e:
                raise StorageUnavailableError(f"Storage unavailable: {e}") from e

    def commit(self) -> None:
        """Commit current transaction.

        Inside transaction() the commit is deferred to the end of the block.
        """
        with self._lock:
            if self._in_transaction:
                return
            try:
                self._conn.commit()
            except sqlite3.Error as e:
                raise StorageUnavailableError(f"Storage unavailable: {e}") from e

    def rollback(self) -> None:
        """Rollback current transaction."""
        with self._lock:
            self._conn.rollback()

    @contextmanager
    def transaction(self) -> Iterator["Database"]:
        """Run a block of statements as one atomic unit.

        Holds the connection lock for the whole block, so concurrent readers
        on this connection see either none or all of its writes. Nested
        calls join the outer transaction.
        """
        with self._lock:
            if self._in_transaction:
                yield self
                return
            self.execute("BEGIN IMMEDIATE")
            self._in_transaction = True
            try:
                yield self
            except BaseException:
                self._in_transaction = False
                self._conn.rollback()
                raise
            self._in_transaction = False
            try:
                self._conn.commit()
            except sqlite3.Error as e:
                self._conn.rollback()
                raise StorageUnavailableError(f"Storage unavailable: {e}") from e

    def close(self) -> None:
        """Close database connection."""
        with self._lock:
            self._conn.close()
