"""
Metadata index: SQLite table of known files and directories.
"""

from bucketfs.storage.cache.engine import MetadataCacheStore, CacheStats, canonical_uri
from bucketfs.storage.cache.schema import CacheSchema

__all__ = ["MetadataCacheStore", "CacheStats", "CacheSchema", "canonical_uri"]
