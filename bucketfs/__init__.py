"""
bucketfs: hierarchical filesystem emulation over a flat object store

Components:
- Key Mapper: hierarchical URIs <-> flat object keys
- Metadata Cache Store: SQLite index, the source of directory truth
- Eventual-Consistency Waiter: bounded read-after-write polling
- Directory Emulation Engine: stat, mkdir, rmdir, rename, readdir
- URL Policy Engine: plain, CNAME, presigned, forced-download, torrent URLs
- Stream Flush Coordinator: upload attributes, visibility wait, indexing

License: MIT
"""

__version__ = "1.0.0"

# =============================================================================
# PUBLIC API EXPORTS
# =============================================================================
from bucketfs.core.types import (
    Result,
    Ok,
    Err,
    Timestamp,
    PathClass,
    FileRecord,
)
from bucketfs.core.errors import (
    BucketFSError,
    ConfigurationError,
    MalformedPathError,
    NotFoundError,
    BackendError,
    BackendTransientError,
    CacheWriteError,
    CacheReadError,
)
from bucketfs.core.config import FileSystemConfig, ConfigRegistry
from bucketfs.storage import (
    S3Config,
    ObjectMetadata,
    ObjectStoreProtocol,
    S3ObjectStore,
    InMemoryObjectStore,
    MetadataCacheStore,
)
from bucketfs.reliability import ConsistencyWaiter, WaitPolicy
from bucketfs.filesystem import (
    BucketFileSystem,
    DirectoryEngine,
    UrlPolicyEngine,
    StreamFlushCoordinator,
    FlushStatus,
    map_to_object_key,
)

__all__ = [
    "Result",
    "Ok",
    "Err",
    "Timestamp",
    "PathClass",
    "FileRecord",
    "BucketFSError",
    "ConfigurationError",
    "MalformedPathError",
    "NotFoundError",
    "BackendError",
    "BackendTransientError",
    "CacheWriteError",
    "CacheReadError",
    "FileSystemConfig",
    "ConfigRegistry",
    "S3Config",
    "ObjectMetadata",
    "ObjectStoreProtocol",
    "S3ObjectStore",
    "InMemoryObjectStore",
    "MetadataCacheStore",
    "ConsistencyWaiter",
    "WaitPolicy",
    "BucketFileSystem",
    "DirectoryEngine",
    "UrlPolicyEngine",
    "StreamFlushCoordinator",
    "FlushStatus",
    "map_to_object_key",
]
