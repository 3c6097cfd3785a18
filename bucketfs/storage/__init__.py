"""
Storage Module: object store backends and the metadata index
=============================================================

Provides:
- S3Config connection settings
- ObjectStoreProtocol, the narrow backend interface
- S3ObjectStore (boto3) and InMemoryObjectStore implementations
- MetadataCacheStore, the SQLite path index

Design Principles:
-----------------
1. **Backend Agnostic**: Same interface for in-memory and S3
2. **Result Monad**: No exceptions for control flow
"""

from bucketfs.storage.config import S3Config
from bucketfs.storage.protocols import ObjectMetadata, ObjectStoreProtocol
from bucketfs.storage.s3_store import S3ObjectStore, S3Metrics
from bucketfs.storage.memory import InMemoryObjectStore
from bucketfs.storage.cache import MetadataCacheStore, CacheStats

__all__ = [
    "S3Config",
    "ObjectMetadata",
    "ObjectStoreProtocol",
    "S3ObjectStore",
    "S3Metrics",
    "InMemoryObjectStore",
    "MetadataCacheStore",
    "CacheStats",
]
