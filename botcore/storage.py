"""
Storage layer for component ID payloads.

Uses SQLite for persistence so that buttons and menus keep working after a
restart.
"""

import sqlite3
import logging
import threading
from pathlib import Path
from typing import Optional, Callable
from dataclasses import dataclass
from contextlib import contextmanager

from .clock import SystemClock
from .codec import new_key
from .errors import StorageUnavailableError
from .models import Lifespan

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).parent.parent / "data"
DB_PATH = DATA_DIR / "bot.db"

EvictionListener = Callable[[list[str]], None]


def get_db_path(data_dir: Optional[Path] = None) -> Path:
    """Get the database path, creating directory if needed."""
    directory = data_dir if data_dir is not None else DATA_DIR
    directory.mkdir(parents=True, exist_ok=True)
    return directory / DB_PATH.name


@contextmanager
def get_connection(db_path: Path):
    """Context manager for database connections."""
    conn = sqlite3.connect(db_path, timeout=10)
    conn.row_factory = sqlite3.Row
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def init_database(db_path: Path) -> None:
    """Initialize database with required tables."""
    with get_connection(db_path) as conn:
        cursor = conn.cursor()

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS component_ids (
                key TEXT PRIMARY KEY,
                handler_prefix TEXT NOT NULL,
                args_blob TEXT NOT NULL,
                lifespan TEXT NOT NULL,
                created_at REAL NOT NULL,
                last_used_at REAL NOT NULL
            )
        """)

        # Sweeps scan REGULAR rows by age
        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_component_ids_eviction
            ON component_ids(lifespan, last_used_at)
        """)

    logger.info(f"Database initialized at {db_path}")


@dataclass(frozen=True)
class StoredComponentId:
    """One row of the component ID store."""
    key: str
    handler_prefix: str
    args_blob: str
    lifespan: Lifespan
    created_at: float
    last_used_at: float

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "StoredComponentId":
        """Create from database row."""
        return cls(
            key=row["key"],
            handler_prefix=row["handler_prefix"],
            args_blob=row["args_blob"],
            lifespan=Lifespan(row["lifespan"]),
            created_at=row["created_at"],
            last_used_at=row["last_used_at"],
        )


class ComponentIdStore:
    """
    Durable key -> payload map backing component IDs.

    REGULAR entries not used for regular_ttl seconds are removed by sweep().
    PERMANENT entries only go away through purge().
    """

    def __init__(
        self,
        db_path: Path,
        regular_ttl: float,
        clock: Optional[SystemClock] = None
    ):
        self.db_path = Path(db_path)
        self.regular_ttl = regular_ttl
        self.clock = clock or SystemClock()
        self._lock = threading.Lock()
        self._eviction_listeners: list[EvictionListener] = []

        try:
            init_database(self.db_path)
        except sqlite3.Error as e:
            raise StorageUnavailableError(f"Cannot open store at {self.db_path}: {e}") from e

    def add_eviction_listener(self, listener: EvictionListener) -> None:
        """Register a callback that receives the keys of expired entries as they are removed."""
        self._eviction_listeners.append(listener)

    def put(self, handler_prefix: str, args_blob: str, lifespan: Lifespan) -> str:
        """
        Persist a payload under a fresh key.

        Returns:
            The new key

        Raises:
            StorageUnavailableError: If the row could not be written
        """
        key = new_key()
        now = self.clock.now()

        try:
            with self._lock, get_connection(self.db_path) as conn:
                conn.execute("""
                    INSERT INTO component_ids
                    (key, handler_prefix, args_blob, lifespan, created_at, last_used_at)
                    VALUES (?, ?, ?, ?, ?, ?)
                """, (key, handler_prefix, args_blob, lifespan.value, now, now))
        except sqlite3.Error as e:
            logger.error(f"Failed to store component ID for '{handler_prefix}': {e}")
            raise StorageUnavailableError(str(e)) from e

        return key

    def get(self, key: str) -> Optional[StoredComponentId]:
        """
        Look up a payload and mark it as used.

        Returns:
            The entry, or None if the key is unknown or was evicted

        Raises:
            StorageUnavailableError: If the store could not be read
        """
        now = self.clock.now()
        expired = False

        try:
            with self._lock, get_connection(self.db_path) as conn:
                cursor = conn.cursor()
                cursor.execute("SELECT * FROM component_ids WHERE key = ?", (key,))
                row = cursor.fetchone()
                if row is None:
                    return None

                # Stale REGULAR rows count as evicted even before a sweep ran
                if self._is_expired(row, now):
                    cursor.execute("DELETE FROM component_ids WHERE key = ?", (key,))
                    expired = True
                else:
                    cursor.execute(
                        "UPDATE component_ids SET last_used_at = ? WHERE key = ?",
                        (now, key)
                    )
        except sqlite3.Error as e:
            logger.error(f"Failed to read component ID: {e}")
            raise StorageUnavailableError(str(e)) from e

        if expired:
            logger.debug(f"Evicted expired component ID {key} on lookup")
            self._notify_evicted([key])
            return None

        entry = StoredComponentId.from_row(row)
        return StoredComponentId(
            key=entry.key,
            handler_prefix=entry.handler_prefix,
            args_blob=entry.args_blob,
            lifespan=entry.lifespan,
            created_at=entry.created_at,
            last_used_at=now,
        )

    def _is_expired(self, row: sqlite3.Row, now: float) -> bool:
        return (
            row["lifespan"] == Lifespan.REGULAR.value
            and now - row["last_used_at"] >= self.regular_ttl
        )

    def _notify_evicted(self, keys: list[str]) -> None:
        for listener in self._eviction_listeners:
            try:
                listener(keys)
            except Exception:
                logger.exception("Eviction listener failed")

    def sweep(self, now: Optional[float] = None) -> int:
        """
        Evict REGULAR entries that have not been used for regular_ttl.

        Returns:
            Number of evicted entries

        Raises:
            StorageUnavailableError: If the store could not be accessed
        """
        now = self.clock.now() if now is None else now
        cutoff = now - self.regular_ttl

        try:
            with self._lock, get_connection(self.db_path) as conn:
                cursor = conn.cursor()
                cursor.execute("""
                    SELECT key FROM component_ids
                    WHERE lifespan = ? AND last_used_at <= ?
                """, (Lifespan.REGULAR.value, cutoff))
                evicted = [row["key"] for row in cursor.fetchall()]

                if evicted:
                    cursor.executemany(
                        "DELETE FROM component_ids WHERE key = ?",
                        [(key,) for key in evicted]
                    )
        except sqlite3.Error as e:
            logger.error(f"Failed to sweep component IDs: {e}")
            raise StorageUnavailableError(str(e)) from e

        if evicted:
            logger.info(f"Evicted {len(evicted)} expired component IDs")
            self._notify_evicted(evicted)

        return len(evicted)

    def purge(self, key: str) -> bool:
        """Remove an entry regardless of its lifespan."""
        try:
            with self._lock, get_connection(self.db_path) as conn:
                cursor = conn.cursor()
                cursor.execute("DELETE FROM component_ids WHERE key = ?", (key,))
                removed = cursor.rowcount > 0
        except sqlite3.Error as e:
            logger.error(f"Failed to purge component ID: {e}")
            raise StorageUnavailableError(str(e)) from e

        if removed:
            logger.info(f"Purged component ID {key}")
        return removed

    def count(self, lifespan: Optional[Lifespan] = None) -> int:
        """Number of stored entries, optionally for one lifespan."""
        try:
            with get_connection(self.db_path) as conn:
                cursor = conn.cursor()
                if lifespan is None:
                    cursor.execute("SELECT COUNT(*) AS count FROM component_ids")
                else:
                    cursor.execute(
                        "SELECT COUNT(*) AS count FROM component_ids WHERE lifespan = ?",
                        (lifespan.value,)
                    )
                return cursor.fetchone()["count"]
        except sqlite3.Error as e:
            raise StorageUnavailableError(str(e)) from e
