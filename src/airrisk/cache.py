"""
Time-to-live caches with a stale-read path.

``get`` only returns live entries. ``get_stale`` ignores expiry so that callers
can fall back to the last known value when the provider is down. Expired
entries therefore survive a normal ``get``; they are purged lazily on writes
once they are older than ``stale_retention``.

Two back-ends share the contract:

- MemoryCache: in-process dict guarded by a lock
- SQLiteCache: sqlite3 file, values stored as JSON
"""

import json
import logging
import sqlite3
import threading
import time
from abc import ABC, abstractmethod
from contextlib import closing, contextmanager
from pathlib import Path
from typing import Any, Callable, Dict, Generic, Iterator, Optional, TypeVar, Union

from .models import CacheEntry

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_TTL = 300.0  # 5 minutes
DEFAULT_STALE_RETENTION = 24 * 60 * 60.0


def geo_cache_key(latitude: float, longitude: float) -> str:
    """Cache key for a coordinate, rounded to 4 decimals (~11 m)."""
    return f"geo_{latitude:.4f}_{longitude:.4f}"


class BaseCache(ABC, Generic[T]):
    """
    Key-value cache contract shared by all storage back-ends.

    Args:
        default_ttl: TTL in seconds used when ``put`` gets none
        stale_retention: How long past expiry an entry is kept for stale reads
        clock: Callable returning epoch seconds (injectable for tests)
    """

    def __init__(
        self,
        default_ttl: float = DEFAULT_TTL,
        stale_retention: float = DEFAULT_STALE_RETENTION,
        clock: Callable[[], float] = time.time,
    ):
        if default_ttl <= 0:
            raise ValueError(f"default_ttl must be positive, got {default_ttl}")
        self.default_ttl = default_ttl
        self.stale_retention = stale_retention
        self._clock = clock

    def _now(self) -> float:
        return self._clock()

    @abstractmethod
    def entry(self, key: str) -> Optional[CacheEntry[T]]:
        """Raw entry for ``key`` regardless of expiry, or None."""

    @abstractmethod
    def _store(self, key: str, entry: CacheEntry[T]) -> None:
        """Persist ``entry`` under ``key``, replacing any previous entry."""

    @abstractmethod
    def _purge(self, cutoff: float) -> int:
        """Drop entries that expired before ``cutoff``; return how many."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove ``key`` if present."""

    @abstractmethod
    def clear(self) -> None:
        """Remove every entry."""

    @abstractmethod
    def __len__(self) -> int:
        """Number of stored entries, expired ones included."""

    def put(self, key: str, value: T, ttl: Optional[float] = None) -> None:
        """Store ``value`` for ``ttl`` seconds (default TTL if None)."""
        ttl = self.default_ttl if ttl is None else ttl
        if ttl <= 0:
            raise ValueError(f"ttl must be positive, got {ttl}")

        now = self._now()
        removed = self._purge(now - self.stale_retention)
        if removed:
            logger.debug(f"Purged {removed} expired cache entries")

        self._store(key, CacheEntry(data=value, observed_at=now, expires_at=now + ttl))

    def get(self, key: str) -> Optional[T]:
        """Value for ``key`` if present and not expired, else None."""
        entry = self.entry(key)
        if entry is None or entry.is_expired(self._now()):
            return None
        return entry.data

    def get_stale(self, key: str) -> Optional[T]:
        """Value for ``key`` ignoring expiry, else None."""
        entry = self.entry(key)
        return entry.data if entry is not None else None

    def age(self, key: str) -> Optional[float]:
        """Seconds since ``key`` was written, or None if absent."""
        entry = self.entry(key)
        if entry is None:
            return None
        return entry.age(self._now())

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.entry(key) is not None


class MemoryCache(BaseCache[T]):
    """In-memory cache, safe for concurrent readers and writers (last writer wins)."""

    def __init__(
        self,
        default_ttl: float = DEFAULT_TTL,
        stale_retention: float = DEFAULT_STALE_RETENTION,
        clock: Callable[[], float] = time.time,
    ):
        super().__init__(default_ttl, stale_retention, clock)
        self._entries: Dict[str, CacheEntry[T]] = {}
        self._lock = threading.RLock()

    def entry(self, key: str) -> Optional[CacheEntry[T]]:
        with self._lock:
            return self._entries.get(key)

    def _store(self, key: str, entry: CacheEntry[T]) -> None:
        with self._lock:
            self._entries[key] = entry

    def _purge(self, cutoff: float) -> int:
        with self._lock:
            expired = [k for k, e in self._entries.items() if e.expires_at < cutoff]
            for key in expired:
                del self._entries[key]
            return len(expired)

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class SQLiteCache(BaseCache[T]):
    """
    Cache persisted to a sqlite3 database, so data survives restarts.

    Values go through ``encode``/``decode`` (JSON by default). To cache
    StationReading objects pass ``encode=lambda r: json.dumps(r.to_dict())``
    and ``decode=lambda s: StationReading.from_dict(json.loads(s))``.
    """

    def __init__(
        self,
        db_path: Union[str, Path] = "airrisk_cache.db",
        default_ttl: float = DEFAULT_TTL,
        stale_retention: float = DEFAULT_STALE_RETENTION,
        clock: Callable[[], float] = time.time,
        encode: Callable[[Any], str] = json.dumps,
        decode: Callable[[str], Any] = json.loads,
    ):
        super().__init__(default_ttl, stale_retention, clock)
        self.db_path = Path(db_path)
        self._encode = encode
        self._decode = decode
        self._lock = threading.Lock()
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self.db_path, timeout=10)

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """Commit on success, roll back on error, always close."""
        with closing(self._connect()) as conn:
            with conn:
                yield conn

    def _init_db(self) -> None:
        with self._transaction() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS cache_entries (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    observed_at REAL NOT NULL,
                    expires_at REAL NOT NULL
                )
                """
            )

    def entry(self, key: str) -> Optional[CacheEntry[T]]:
        with self._lock, self._transaction() as conn:
            row = conn.execute(
                "SELECT value, observed_at, expires_at FROM cache_entries WHERE key = ?",
                (key,),
            ).fetchone()
        if row is None:
            return None
        try:
            data = self._decode(row[0])
        except (ValueError, TypeError) as e:
            logger.warning(f"Dropping undecodable cache entry {key!r}: {e}")
            self.delete(key)
            return None
        return CacheEntry(data=data, observed_at=row[1], expires_at=row[2])

    def _store(self, key: str, entry: CacheEntry[T]) -> None:
        encoded = self._encode(entry.data)
        with self._lock, self._transaction() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO cache_entries (key, value, observed_at, expires_at) "
                "VALUES (?, ?, ?, ?)",
                (key, encoded, entry.observed_at, entry.expires_at),
            )

    def _purge(self, cutoff: float) -> int:
        with self._lock, self._transaction() as conn:
            cursor = conn.execute("DELETE FROM cache_entries WHERE expires_at < ?", (cutoff,))
            return cursor.rowcount

    def delete(self, key: str) -> None:
        with self._lock, self._transaction() as conn:
            conn.execute("DELETE FROM cache_entries WHERE key = ?", (key,))

    def clear(self) -> None:
        with self._lock, self._transaction() as conn:
            conn.execute("DELETE FROM cache_entries")

    def __len__(self) -> int:
        with self._lock, self._transaction() as conn:
            return conn.execute("SELECT COUNT(*) FROM cache_entries").fetchone()[0]
