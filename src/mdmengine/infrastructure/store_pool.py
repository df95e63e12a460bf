"""Connection pool for EngineStore to ensure connection reuse."""

import threading
from pathlib import Path
from typing import Dict, Optional

from mdmengine.infrastructure.store import EngineStore


class StorePool:
    """Thread-safe, lazy-initialized pool holding one EngineStore per database file.

    All managers and requests working on the same project share the store,
    so the store's lock serializes their writes.
    """

    _instances: Dict[str, "StorePool"] = {}
    _lock = threading.Lock()

    def __init__(self, db_path: Path):
        """Initialize the pool entry (but don't open the store yet)."""
        self.db_path = Path(db_path)
        self._store: Optional[EngineStore] = None
        self._store_lock = threading.Lock()

    @classmethod
    def get_instance(cls, db_path: Path) -> "StorePool":
        """Get or create the pool entry for the given database file."""
        path_str = str(Path(db_path).resolve())

        # Fast path - check if instance exists
        if path_str in cls._instances:
            return cls._instances[path_str]

        # Slow path - create new instance with lock
        with cls._lock:
            # Double-check pattern
            if path_str not in cls._instances:
                cls._instances[path_str] = cls(Path(path_str))
            return cls._instances[path_str]

    def get_store(self) -> EngineStore:
        """Get or open the shared EngineStore (lazy initialization)."""
        if self._store is not None:
            return self._store

        with self._store_lock:
            if self._store is None:
                self._store = EngineStore(self.db_path)
            return self._store

    def close(self) -> None:
        """Explicitly close the store (called on shutdown)."""
        with self._store_lock:
            if self._store is not None:
                self._store.close()
                self._store = None

    @classmethod
    def close_all(cls) -> None:
        """Close all pooled stores (useful for cleanup in tests)."""
        with cls._lock:
            for pool in cls._instances.values():
                pool.close()
            cls._instances.clear()


def get_store(db_path: Path) -> EngineStore:
    """Get the shared store for a database file.

    The store is shared and should NOT be closed by the caller.
    """
    return StorePool.get_instance(db_path).get_store()
