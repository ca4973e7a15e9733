"""
SQLite connection shared by the graph and hook stores.

One connection per database, serialized by a lock and driven from worker
threads so async callers never block the event loop.
"""

import asyncio
import logging
import sqlite3
import threading
from pathlib import Path
from typing import Any, Callable, TypeVar, Union

logger = logging.getLogger(__name__)

T = TypeVar('T')

MEMORY_DATABASE = ":memory:"


class Database:
    """Thread-safe wrapper around a single sqlite3 connection"""

    def __init__(self, path: Union[str, Path] = MEMORY_DATABASE):
        self.path = str(path)
        if self.path != MEMORY_DATABASE:
            Path(self.path).parent.mkdir(parents=True, exist_ok=True)

        self._conn = sqlite3.connect(self.path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA foreign_keys = ON")
        self._lock = threading.Lock()
        self._initialized_schemas: set = set()

        logger.debug(f"Opened graph database at {self.path}")

    def ensure_schema(self, name: str, script: str) -> None:
        """Run a CREATE ... IF NOT EXISTS script once per connection"""
        with self._lock:
            if name in self._initialized_schemas:
                return
            self._conn.executescript(script)
            self._conn.commit()
            self._initialized_schemas.add(name)

    def call(self, fn: Callable[[sqlite3.Connection], T]) -> T:
        """Run fn inside a transaction, committing on success"""
        with self._lock:
            try:
                result = fn(self._conn)
                self._conn.commit()
                return result
            except Exception:
                self._conn.rollback()
                raise

    async def run(self, fn: Callable[[sqlite3.Connection], T]) -> T:
        """Run fn in a worker thread"""
        return await asyncio.to_thread(self.call, fn)

    def close(self) -> None:
        with self._lock:
            self._conn.close()
        logger.debug(f"Closed graph database at {self.path}")

    def __enter__(self) -> 'Database':
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
