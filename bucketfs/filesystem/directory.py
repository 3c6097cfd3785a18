"""
Directory Emulation Engine

The object store has no directories. Every directory here is a record in
the metadata index, and every ancestor of a written path gets one through
cascading creation on write. Existence and type questions are answered
from the index alone; the backend is consulted only when cache bypass is
configured (and never for directories).

Non-atomic sequences (documented limitations):
- rename: backend move, upsert of the new URI, delete of the old URI
- mkdir cascade: child first, then each ancestor; a failure partway
  leaves the levels already written in place
"""

from __future__ import annotations

import logging
from typing import Iterator, Optional

from bucketfs.core.config import FileSystemConfig
from bucketfs.core.constants import PUBLIC_READ_ACL
from bucketfs.core.errors import NotFoundError
from bucketfs.core.types import FileRecord, PathClass
from bucketfs.filesystem.keymapper import (
    basename,
    dirname,
    is_root,
    map_to_object_key,
    normalize_uri,
    path_class,
)
from bucketfs.storage.cache.engine import MetadataCacheStore
from bucketfs.storage.protocols import ObjectMetadata, ObjectStoreProtocol

logger = logging.getLogger(__name__)


def record_from_metadata(uri: str, metadata: ObjectMetadata) -> FileRecord:
    """FileRecord for a file from authoritative HEAD metadata."""
    return FileRecord(
        uri=uri,
        size_bytes=metadata.size_bytes,
        timestamp=metadata.unix_seconds,
        is_directory=False,
        version=metadata.version_id or "",
    )


class DirectoryEngine:
    """
    stat / mkdir / rmdir / rename / unlink / readdir over the index.

    Usage:
        engine = DirectoryEngine(config, store, cache)
        engine.mkdir("public://a/b/c", recursive=True)
        list(engine.readdir("public://a"))   # ['b']
    """

    __slots__ = ("_config", "_store", "_cache")

    def __init__(
        self,
        config: FileSystemConfig,
        store: ObjectStoreProtocol,
        cache: MetadataCacheStore,
    ) -> None:
        self._config = config
        self._store = store
        self._cache = cache

    @property
    def cache(self) -> MetadataCacheStore:
        return self._cache

    # -------------------------------------------------------------------------
    # BACKEND READ-THROUGH
    # -------------------------------------------------------------------------

    def fetch_from_backend(self, uri: str) -> Optional[FileRecord]:
        """
        Authoritative file record from a HEAD request.

        Returns:
            The record, or None when the backend has no such object.

        Raises:
            BackendError: If the HEAD request fails.
        """
        key = map_to_object_key(uri, self._config)
        result = self._store.head_object(key)
        if result.is_err():
            logger.error(
                "Backend metadata lookup failed",
                extra={"uri": uri, "key": key, "error": str(result.error)},
            )
            raise result.error
        metadata = result.unwrap()
        if metadata is None:
            return None
        return record_from_metadata(uri, metadata)

    # -------------------------------------------------------------------------
    # QUERIES
    # -------------------------------------------------------------------------

    def stat(self, uri: str) -> Optional[FileRecord]:
        """
        Record for `uri`, or None when it is unknown.

        A scheme root is always a directory. With ignore_cache set, any path
        not cached as a directory is re-read from the backend and the
        backend's answer wins.
        """
        if is_root(uri):
            return FileRecord.directory(normalize_uri(uri))

        uri = normalize_uri(uri)
        record = self._cache.get(uri)
        if self._config.ignore_cache and (record is None or not record.is_directory):
            record = self.fetch_from_backend(uri)
        return record

    def is_dir(self, uri: str) -> bool:
        record = self.stat(uri)
        return record is not None and record.is_directory

    def readdir(self, uri: str) -> Optional[Iterator[str]]:
        """
        Base names of the direct children of `uri`.

        The listing is a snapshot taken now; later writes do not appear in
        the returned iterator.

        Returns:
            An iterator of names, or None when `uri` is not a directory.
        """
        if not self.is_dir(uri):
            return None
        names = tuple(basename(child.uri) for child in self._cache.list_children(normalize_uri(uri)))
        return iter(names)

    # -------------------------------------------------------------------------
    # MUTATIONS
    # -------------------------------------------------------------------------

    def mkdir(self, uri: str, recursive: bool = False) -> bool:
        """
        Create a directory record.

        Returns:
            True if the path is (now) a directory; False if a file already
            occupies it, in which case nothing is changed.
        """
        if is_root(uri):
            return True
        uri = normalize_uri(uri)

        existing = self._cache.get(uri)
        if existing is not None:
            return existing.is_directory

        self._cache.upsert(FileRecord.directory(uri))
        logger.info("Directory created", extra={"uri": uri})

        parent = dirname(uri)
        if recursive and not is_root(parent):
            return self.mkdir(parent, recursive=True)
        return True

    def rmdir(self, uri: str) -> bool:
        """
        Remove an empty directory.

        Returns:
            False (no mutation) when the path is not a cached directory, is
            a scheme root, or still has descendants.

        Raises:
            BackendError: If deleting the directory marker object fails.
        """
        if is_root(uri) or not self.is_dir(uri):
            return False
        uri = normalize_uri(uri)

        descendants = self._cache.count_descendants(uri)
        if descendants:
            logger.debug(
                "Directory not empty",
                extra={"uri": uri, "descendants": descendants},
            )
            return False

        marker = map_to_object_key(uri, self._config) + "/"
        result = self._store.delete_object(marker)
        if result.is_err():
            logger.error(
                "Directory marker delete failed",
                extra={"uri": uri, "key": marker, "error": str(result.error)},
            )
            raise result.error

        self._cache.delete(uri)
        logger.info("Directory removed", extra={"uri": uri})
        return True

    def write_record(self, record: FileRecord) -> FileRecord:
        """
        Upsert `record` and create every missing ancestor directory below
        the scheme root.
        """
        stored = self._cache.upsert(record)
        parent = dirname(stored.uri)
        if not is_root(parent):
            self.mkdir(parent, recursive=True)
        return stored

    def rename(self, from_uri: str, to_uri: str) -> bool:
        """
        Move a file to a new path.

        Only the file's own record moves; directory descendants are not
        rewritten. The destination is made public-read unless the source is
        a private path. Renaming a path onto itself changes nothing.

        Returns:
            False when the backend has no source object.

        Raises:
            BackendError: On any other backend failure.
        """
        if is_root(from_uri) or is_root(to_uri):
            return False
        from_uri = normalize_uri(from_uri)
        to_uri = normalize_uri(to_uri)
        if from_uri == to_uri:
            # A server-side move onto itself would delete the object.
            return self.fetch_from_backend(from_uri) is not None

        params = {}
        if path_class(from_uri) is not PathClass.PRIVATE:
            params["ACL"] = PUBLIC_READ_ACL

        result = self._store.move_object(
            map_to_object_key(from_uri, self._config, include_bucket=True),
            map_to_object_key(to_uri, self._config),
            params,
        )
        if result.is_err():
            if isinstance(result.error, NotFoundError):
                logger.warning(
                    "Rename source missing in backend",
                    extra={"from_uri": from_uri, "to_uri": to_uri},
                )
                return False
            logger.error(
                "Rename failed in backend",
                extra={"from_uri": from_uri, "to_uri": to_uri, "error": str(result.error)},
            )
            raise result.error

        record = self._cache.get(from_uri)
        if record is not None:
            self.write_record(record.with_uri(to_uri))
        else:
            fetched = self.fetch_from_backend(to_uri)
            if fetched is not None:
                self.write_record(fetched)
        self._cache.delete(from_uri)

        logger.info("Renamed", extra={"from_uri": from_uri, "to_uri": to_uri})
        return True

    def unlink(self, uri: str) -> bool:
        """
        Delete a file from the backend, then from the index.

        Returns:
            False (no mutation) when the path is a directory or a scheme
            root.

        Raises:
            BackendError: If the backend delete fails; the index is left
                untouched.
        """
        if is_root(uri):
            return False
        uri = normalize_uri(uri)
        record = self._cache.get(uri)
        if record is not None and record.is_directory:
            return False

        key = map_to_object_key(uri, self._config)
        result = self._store.delete_object(key)
        if result.is_err():
            logger.error(
                "Backend delete failed",
                extra={"uri": uri, "key": key, "error": str(result.error)},
            )
            raise result.error

        self._cache.delete(uri)
        logger.info("File deleted", extra={"uri": uri})
        return True
