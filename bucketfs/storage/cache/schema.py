"""
Metadata Index Schema: DDL for the SQLite file table

Tables:
- bucketfs_file: one row per known path (uploaded file or synthesized
  directory). Column names are part of the persisted format.
"""

from __future__ import annotations

import logging
import sqlite3

from bucketfs.core.constants import CACHE_TABLE

logger = logging.getLogger(__name__)


class CacheSchema:
    """Schema manager for the metadata index."""

    FILE_TABLE_DDL = f"""
    CREATE TABLE IF NOT EXISTS {CACHE_TABLE} (
        uri TEXT PRIMARY KEY NOT NULL,
        filesize INTEGER NOT NULL DEFAULT 0 CHECK (filesize >= 0),
        timestamp INTEGER NOT NULL DEFAULT 0 CHECK (timestamp >= 0),
        dir INTEGER NOT NULL DEFAULT 0 CHECK (dir IN (0, 1)),
        version TEXT NOT NULL DEFAULT ''
    );
    """

    FILE_TABLE_INDEXES = [
        f"""CREATE INDEX IF NOT EXISTS idx_{CACHE_TABLE}_timestamp
           ON {CACHE_TABLE}(timestamp);""",
    ]

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def create_all(self) -> None:
        """Create the table and its indexes (idempotent)."""
        self._conn.execute(self.FILE_TABLE_DDL)
        for idx in self.FILE_TABLE_INDEXES:
            self._conn.execute(idx)
        logger.debug("Metadata index schema ready", extra={"table": CACHE_TABLE})

