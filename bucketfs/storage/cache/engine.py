"""
Metadata Cache Store: SQLite index of every known path

The index is the sole source of truth for "does this path exist, and is it
a file or a directory". One row per FileRecord, keyed by URI.

Performance Characteristics:
- get / upsert / delete: O(log n) via the primary-key B-tree
- list_children / count_descendants: O(n) prefix scan using substr
  comparisons (case-sensitive, no LIKE wildcard escaping)

Thread Safety:
- One connection opened with check_same_thread=False in autocommit mode
- Every statement is serialized by an RLock; same-URI writes are
  last-write-wins and no cross-key transactions are provided
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Optional, Union

from bucketfs.core.constants import CACHE_BUSY_TIMEOUT_MS, CACHE_TABLE, SCHEME_SEPARATOR
from bucketfs.core.errors import CacheReadError, CacheWriteError
from bucketfs.core.types import FileRecord
from bucketfs.storage.cache.schema import CacheSchema

logger = logging.getLogger(__name__)

MEMORY_DB = ":memory:"


def canonical_uri(uri: str) -> str:
    """
    Fold redundant separators after the scheme and drop trailing ones.

    `public:///a/b/` -> `public://a/b`; a scheme root stays `public://`.
    """
    scheme, sep, target = uri.partition(SCHEME_SEPARATOR)
    if not sep:
        return uri.rstrip("/") or uri
    return f"{scheme}{SCHEME_SEPARATOR}{target.strip('/')}"


def _child_prefix(uri: str) -> str:
    """Prefix shared by every path below `uri`."""
    uri = canonical_uri(uri)
    if uri.endswith(SCHEME_SEPARATOR):
        return uri
    return uri + "/"


@dataclass
class CacheStats:
    """Metadata index statistics."""

    reads: int = 0
    writes: int = 0
    deletes: int = 0
    hits: int = 0
    misses: int = 0


class MetadataCacheStore:
    """
    SQLite-backed metadata index.

    Usage:
        with MetadataCacheStore("./data/bucketfs.db") as cache:
            cache.upsert(FileRecord.directory("public://photos"))
            cache.get("public://photos")
            cache.list_children("public://")
    """

    __slots__ = ("_db_path", "_conn", "_lock", "_stats")

    PRAGMAS = [
        "PRAGMA journal_mode = WAL",
        "PRAGMA synchronous = NORMAL",
        f"PRAGMA busy_timeout = {CACHE_BUSY_TIMEOUT_MS}",
        "PRAGMA temp_store = MEMORY",
    ]

    UPSERT_SQL = f"""
    INSERT INTO {CACHE_TABLE} (uri, filesize, timestamp, dir, version)
    VALUES (:uri, :filesize, :timestamp, :dir, :version)
    ON CONFLICT(uri) DO UPDATE SET
        filesize = excluded.filesize,
        timestamp = excluded.timestamp,
        dir = excluded.dir,
        version = excluded.version
    """

    def __init__(self, db_path: Union[str, Path] = MEMORY_DB) -> None:
        self._db_path = str(db_path)
        self._conn: Optional[sqlite3.Connection] = None
        self._lock = threading.RLock()
        self._stats = CacheStats()

    # -------------------------------------------------------------------------
    # LIFECYCLE
    # -------------------------------------------------------------------------

    def initialize(self) -> None:
        """
        Open the connection, apply pragmas and create the schema.

        Raises:
            CacheWriteError: If the database cannot be opened or created.
        """
        with self._lock:
            if self._conn is not None:
                return
            try:
                if self._db_path != MEMORY_DB:
                    Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
                conn = sqlite3.connect(
                    self._db_path,
                    check_same_thread=False,
                    isolation_level=None,
                )
                conn.row_factory = sqlite3.Row
                for pragma in self.PRAGMAS:
                    conn.execute(pragma)
                CacheSchema(conn).create_all()
            except (sqlite3.Error, OSError) as e:
                logger.error(
                    "Metadata index initialization failed",
                    extra={"db_path": self._db_path, "error": str(e)},
                )
                raise CacheWriteError.write_failed("initialize", self._db_path, cause=e) from e
            self._conn = conn
            logger.info("Metadata index opened", extra={"db_path": self._db_path})

    def close(self) -> None:
        """Close the connection. Safe to call multiple times."""
        with self._lock:
            if self._conn is None:
                return
            self._conn.close()
            self._conn = None
            logger.info("Metadata index closed", extra={"db_path": self._db_path})

    def __enter__(self) -> MetadataCacheStore:
        self.initialize()
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            self.initialize()
        return self._conn

    @property
    def db_path(self) -> str:
        return self._db_path

    @property
    def stats(self) -> CacheStats:
        return self._stats

    # -------------------------------------------------------------------------
    # READS
    # -------------------------------------------------------------------------

    def get(self, uri: str) -> Optional[FileRecord]:
        """
        Exact-match lookup after folding `scheme:///x` to `scheme://x`.

        Returns:
            The record, or None when the path is unknown.
        """
        uri = canonical_uri(uri)
        try:
            with self._lock:
                row = self._connection().execute(
                    f"SELECT uri, filesize, timestamp, dir, version "
                    f"FROM {CACHE_TABLE} WHERE uri = ?",
                    (uri,),
                ).fetchone()
                self._stats.reads += 1
                if row is None:
                    self._stats.misses += 1
                else:
                    self._stats.hits += 1
        except sqlite3.Error as e:
            logger.error("Metadata index read failed", extra={"uri": uri, "error": str(e)})
            raise CacheReadError.read_failed("get", uri, cause=e) from e

        if row is None:
            logger.debug("Metadata index miss", extra={"uri": uri})
            return None
        return FileRecord.from_row(row)

    def list_children(self, uri: str) -> list[FileRecord]:
        """
        Direct children of `uri` (no deeper descendants), ordered by URI.

        A scheme root such as `public://` lists top-level entries.
        """
        prefix = _child_prefix(uri)
        try:
            with self._lock:
                rows = self._connection().execute(
                    f"""
                    SELECT uri, filesize, timestamp, dir, version
                    FROM {CACHE_TABLE}
                    WHERE substr(uri, 1, :n) = :prefix
                      AND length(uri) > :n
                      AND instr(substr(uri, :n + 1), '/') = 0
                    ORDER BY uri
                    """,
                    {"n": len(prefix), "prefix": prefix},
                ).fetchall()
                self._stats.reads += 1
        except sqlite3.Error as e:
            raise CacheReadError.read_failed("list_children", uri, cause=e) from e
        return [FileRecord.from_row(row) for row in rows]

    def count_descendants(self, uri: str) -> int:
        """Number of records below `uri` at any depth."""
        prefix = _child_prefix(uri)
        try:
            with self._lock:
                (count,) = self._connection().execute(
                    f"""
                    SELECT COUNT(*) FROM {CACHE_TABLE}
                    WHERE substr(uri, 1, :n) = :prefix AND length(uri) > :n
                    """,
                    {"n": len(prefix), "prefix": prefix},
                ).fetchone()
                self._stats.reads += 1
        except sqlite3.Error as e:
            raise CacheReadError.read_failed("count_descendants", uri, cause=e) from e
        return int(count)

    def count(self) -> int:
        """Total number of records."""
        try:
            with self._lock:
                (count,) = self._connection().execute(
                    f"SELECT COUNT(*) FROM {CACHE_TABLE}"
                ).fetchone()
        except sqlite3.Error as e:
            raise CacheReadError.read_failed("count", CACHE_TABLE, cause=e) from e
        return int(count)

    # -------------------------------------------------------------------------
    # WRITES
    # -------------------------------------------------------------------------

    def upsert(self, record: FileRecord) -> FileRecord:
        """
        Insert or replace the row keyed by `record.uri`.

        Returns:
            The record as stored (URI in canonical form).

        Raises:
            CacheWriteError: On any SQLite failure.
        """
        uri = canonical_uri(record.uri)
        if uri != record.uri:
            record = record.with_uri(uri)
        try:
            with self._lock:
                self._connection().execute(self.UPSERT_SQL, record.to_row())
                self._stats.writes += 1
        except sqlite3.Error as e:
            logger.error("Metadata index write failed", extra={"uri": uri, "error": str(e)})
            raise CacheWriteError.write_failed("upsert", uri, cause=e) from e
        return record

    def delete(self, uris: Union[str, Iterable[str]]) -> int:
        """
        Delete one URI or a collection of URIs. Missing URIs are ignored.

        Returns:
            Number of rows actually removed.
        """
        if isinstance(uris, str):
            uris = [uris]
        targets = [canonical_uri(u) for u in uris]
        removed = 0
        try:
            with self._lock:
                conn = self._connection()
                for uri in targets:
                    removed += conn.execute(
                        f"DELETE FROM {CACHE_TABLE} WHERE uri = ?", (uri,)
                    ).rowcount
                self._stats.deletes += removed
        except sqlite3.Error as e:
            logger.error("Metadata index delete failed", extra={"uris": targets, "error": str(e)})
            raise CacheWriteError.write_failed("delete", ",".join(targets), cause=e) from e
        return removed

    def clear(self) -> None:
        """Remove every record."""
        try:
            with self._lock:
                self._connection().execute(f"DELETE FROM {CACHE_TABLE}")
        except sqlite3.Error as e:
            raise CacheWriteError.write_failed("clear", CACHE_TABLE, cause=e) from e
