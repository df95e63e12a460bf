"""SQLite connection management for the MDM engine."""

import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Sequence


# Custom datetime adapter and converter for SQLite
def adapt_datetime(dt):
    """Convert datetime to ISO 8601 string."""
    return dt.isoformat()


def convert_datetime(val):
    """Convert ISO 8601 string to datetime."""
    return datetime.fromisoformat(val.decode())


# Register the adapter and converter
sqlite3.register_adapter(datetime, adapt_datetime)
sqlite3.register_converter("TIMESTAMP", convert_datetime)


class DatabaseConnection:
    """Manages a shared SQLite connection with WAL mode.

    The connection runs in autocommit mode; :meth:`transaction` issues
    ``BEGIN IMMEDIATE`` / ``COMMIT`` explicitly. Transactions nest: only the
    outermost block commits, and an exception anywhere rolls the whole
    transaction back. A re-entrant lock serializes statements from different
    threads, and is held for the duration of a transaction.
    """

    def __init__(self, path: Path, timeout: float = 30.0):
        """Initialize database connection.

        Args:
            path: Path to SQLite database file
            timeout: Seconds to wait on a locked database file
        """
        self.path = Path(path)
        self.timeout = timeout
        self._conn: Optional[sqlite3.Connection] = None
        self._lock = threading.RLock()
        self._depth = 0
        self._connect()

    def _connect(self) -> None:
        """Establish database connection and configure WAL mode."""
        self.path.parent.mkdir(parents=True, exist_ok=True)

        self._conn = sqlite3.connect(
            str(self.path),
            detect_types=sqlite3.PARSE_DECLTYPES,
            check_same_thread=False,  # Shared across request threads
            isolation_level=None,
            timeout=self.timeout,
        )

        try:
            self._conn.execute("PRAGMA journal_mode = WAL")
            self._conn.execute("PRAGMA synchronous = NORMAL")
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA foreign_keys = ON")
        except sqlite3.OperationalError:
            self._conn.close()
            self._conn = None
            raise

    def _require_open(self) -> sqlite3.Connection:
        if not self._conn:
            raise RuntimeError("Connection is closed")
        return self._conn

    def execute(self, sql: str, params: Sequence[Any] = ()) -> sqlite3.Cursor:
        """Execute a SQL statement.

        Args:
            sql: SQL statement to execute
            params: Parameters for parameterized queries

        Returns:
            Cursor with results
        """
        with self._lock:
            return self._require_open().execute(sql, tuple(params))

    def executemany(self, sql: str, params: List[Sequence[Any]]) -> sqlite3.Cursor:
        """Execute a SQL statement multiple times with different parameters."""
        with self._lock:
            return self._require_open().executemany(sql, params)

    def fetchone(self, sql: str, params: Sequence[Any] = ()) -> Optional[Dict[str, Any]]:
        """Run a query and return the first row as a dict, or None."""
        with self._lock:
            row = self._require_open().execute(sql, tuple(params)).fetchone()
        return dict(row) if row else None

    def fetchall(self, sql: str, params: Sequence[Any] = ()) -> List[Dict[str, Any]]:
        """Run a query and return all rows as dicts."""
        with self._lock:
            rows = self._require_open().execute(sql, tuple(params)).fetchall()
        return [dict(row) for row in rows]

    @property
    def in_transaction(self) -> bool:
        return self._depth > 0

    @contextmanager
    def transaction(self) -> Iterator["DatabaseConnection"]:
        """Context manager for database transactions.

        Automatically commits on success or rolls back on exception. Nested
        blocks join the enclosing transaction.
        """
        with self._lock:
            conn = self._require_open()
            if self._depth == 0:
                conn.execute("BEGIN IMMEDIATE")
            self._depth += 1
            try:
                yield self
            except Exception:
                self._depth -= 1
                if self._depth == 0:
                    conn.execute("ROLLBACK")
                raise
            else:
                self._depth -= 1
                if self._depth == 0:
                    conn.execute("COMMIT")

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            if self._conn:
                self._conn.close()
                self._conn = None
                self._depth = 0

    def __enter__(self):
        """Enter context manager."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Exit context manager."""
        self.close()
        return False
