"""
BucketFileSystem: composition root

Wires every component from one FileSystemConfig:

    ObjectStoreProtocol ──┬── DirectoryEngine ──┐
    MetadataCacheStore ───┤                     ├── StreamFlushCoordinator
    ConsistencyWaiter ────┘                     │
                          └── UrlPolicyEngine   │

The backend and the index are built from the config unless supplied, so
tests and the demo can pass an InMemoryObjectStore and a `:memory:` index.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Iterable, Iterator, Optional

from bucketfs.core.config import FileSystemConfig
from bucketfs.core.types import FileRecord
from bucketfs.filesystem.directory import DirectoryEngine
from bucketfs.filesystem.flush import FlushStatus, StreamFlushCoordinator, UploadParamsHook
from bucketfs.filesystem.keymapper import dirname, map_to_object_key
from bucketfs.filesystem.urls import UrlPolicyEngine, UrlSettingsHook
from bucketfs.reliability.waiter import ConsistencyWaiter, WaitPolicy
from bucketfs.storage.cache.engine import MetadataCacheStore
from bucketfs.storage.protocols import ObjectStoreProtocol
from bucketfs.storage.s3_store import S3ObjectStore

logger = logging.getLogger(__name__)


class BucketFileSystem:
    """
    Filesystem operations over an object store.

    Usage:
        with BucketFileSystem(config) as fs:
            fs.write("public://docs/a.txt", b"hello")
            fs.stat("public://docs")           # directory record
            fs.external_url("public://docs/a.txt")
    """

    __slots__ = ("_config", "_store", "_cache", "_waiter", "_directory", "_urls", "_flush")

    def __init__(
        self,
        config: FileSystemConfig,
        store: Optional[ObjectStoreProtocol] = None,
        cache: Optional[MetadataCacheStore] = None,
        waiter_policy: Optional[WaitPolicy] = None,
        url_hooks: Iterable[UrlSettingsHook] = (),
        upload_hooks: Iterable[UploadParamsHook] = (),
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._config = config
        self._store = store if store is not None else S3ObjectStore(config.s3)
        self._cache = cache if cache is not None else MetadataCacheStore(config.cache_db_path)
        self._cache.initialize()

        self._waiter = ConsistencyWaiter(self._store, waiter_policy, sleep)
        self._directory = DirectoryEngine(config, self._store, self._cache)
        self._urls = UrlPolicyEngine(config, self._store, self._cache, url_hooks)
        self._flush = StreamFlushCoordinator(
            config,
            self._store,
            self._directory,
            self._waiter,
            upload_hooks=upload_hooks,
        )
        logger.debug(
            "Filesystem ready",
            extra={"bucket": config.bucket, "cache_db_path": self._cache.db_path},
        )

    # -------------------------------------------------------------------------
    # COMPONENTS
    # -------------------------------------------------------------------------

    @property
    def config(self) -> FileSystemConfig:
        return self._config

    @property
    def store(self) -> ObjectStoreProtocol:
        return self._store

    @property
    def cache(self) -> MetadataCacheStore:
        return self._cache

    @property
    def waiter(self) -> ConsistencyWaiter:
        return self._waiter

    # -------------------------------------------------------------------------
    # FILE OPERATIONS
    # -------------------------------------------------------------------------

    def stat(self, uri: str) -> Optional[FileRecord]:
        return self._directory.stat(uri)

    def is_dir(self, uri: str) -> bool:
        return self._directory.is_dir(uri)

    def mkdir(self, uri: str, recursive: bool = False) -> bool:
        return self._directory.mkdir(uri, recursive)

    def rmdir(self, uri: str) -> bool:
        return self._directory.rmdir(uri)

    def rename(self, from_uri: str, to_uri: str) -> bool:
        return self._directory.rename(from_uri, to_uri)

    def unlink(self, uri: str) -> bool:
        return self._directory.unlink(uri)

    def readdir(self, uri: str) -> Optional[Iterator[str]]:
        return self._directory.readdir(uri)

    def dirname(self, uri: str) -> str:
        return dirname(uri)

    def write(self, uri: str, body: bytes) -> FlushStatus:
        """Upload `body` as the complete content of `uri`."""
        return self._flush.flush(uri, body)

    def write_uri_to_cache(self, uri: str) -> bool:
        """Index an object that was uploaded by other means."""
        return self._flush.write_uri_to_cache(uri)

    # -------------------------------------------------------------------------
    # URLS AND KEYS
    # -------------------------------------------------------------------------

    def external_url(self, uri: str) -> str:
        return self._urls.external_url(uri)

    def object_key(self, uri: str, include_bucket: bool = False) -> str:
        return map_to_object_key(uri, self._config, include_bucket)

    # -------------------------------------------------------------------------
    # LIFECYCLE
    # -------------------------------------------------------------------------

    def close(self) -> None:
        self._cache.close()
        close_store = getattr(self._store, "close", None)
        if close_store is not None:
            close_store()

    def __enter__(self) -> BucketFileSystem:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()
