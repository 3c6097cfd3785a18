"""
Stream Flush Coordinator

Runs when a write stream completes:

1. Map the URI to its object key
2. Build upload attributes: content type from the MIME guesser,
   public-read ACL for non-private paths, configured Cache-Control and
   server-side encryption; upload hooks may adjust them
3. Submit the object to the backend
4. Wait until the object is visible (read-after-write)
5. Read authoritative size/timestamp/version and record it in the index,
   creating ancestor directory records

The index is only touched in step 5. A rejected write or a visibility
timeout leaves it unchanged.
"""

from __future__ import annotations

import mimetypes
from enum import Enum
from typing import Any, Callable, Dict, Iterable, Optional

from bucketfs.core.config import FileSystemConfig
from bucketfs.core.constants import DEFAULT_CONTENT_TYPE, PUBLIC_READ_ACL
from bucketfs.core.types import PathClass
from bucketfs.filesystem.directory import DirectoryEngine
from bucketfs.filesystem.keymapper import map_to_object_key, normalize_uri, path_class
from bucketfs.observability.logging import StructuredLogger, operation_scope
from bucketfs.reliability.waiter import ConsistencyWaiter
from bucketfs.storage.protocols import ObjectStoreProtocol

logger = StructuredLogger(__name__)

MimeGuesser = Callable[[str], str]
UploadParamsHook = Callable[[Dict[str, Any]], None]


class FlushStatus(Enum):
    """Outcome of a flush."""
    FAILED = "failed"            # Backend rejected the write
    UNCONFIRMED = "unconfirmed"  # Written, but never observed as visible
    COMPLETED = "completed"      # Written, visible and indexed

    @property
    def ok(self) -> bool:
        return self is FlushStatus.COMPLETED


def guess_mime_type(key: str) -> str:
    """MIME type from the key's extension, octet-stream when unknown."""
    mime, _ = mimetypes.guess_type(key)
    return mime or DEFAULT_CONTENT_TYPE


class StreamFlushCoordinator:
    """
    Usage:
        coordinator = StreamFlushCoordinator(config, store, directory, waiter)
        status = coordinator.flush("public://docs/a.pdf", data)
    """

    __slots__ = ("_config", "_store", "_directory", "_waiter", "_guess_mime", "_hooks")

    def __init__(
        self,
        config: FileSystemConfig,
        store: ObjectStoreProtocol,
        directory: DirectoryEngine,
        waiter: ConsistencyWaiter,
        mime_guesser: Optional[MimeGuesser] = None,
        upload_hooks: Iterable[UploadParamsHook] = (),
    ) -> None:
        self._config = config
        self._store = store
        self._directory = directory
        self._waiter = waiter
        self._guess_mime = mime_guesser or guess_mime_type
        self._hooks = tuple(upload_hooks)

    def upload_params(self, uri: str, key: str) -> Dict[str, Any]:
        """PutObject attributes for `uri`, after hooks have run."""
        params: Dict[str, Any] = {"ContentType": self._guess_mime(key)}
        if path_class(uri) is not PathClass.PRIVATE:
            params["ACL"] = PUBLIC_READ_ACL
        if self._config.cache_control_header:
            params["CacheControl"] = self._config.cache_control_header
        if self._config.encryption:
            params["ServerSideEncryption"] = self._config.encryption
        for hook in self._hooks:
            hook(params)
        return params

    def flush(self, uri: str, body: bytes) -> FlushStatus:
        """
        Upload `body` to `uri` and index it once visible.

        Raises:
            MalformedPathError: If the URI has no scheme.
            BackendError: If the metadata read after a confirmed write fails.
            CacheWriteError: If the index write fails.
        """
        uri = normalize_uri(uri)
        key = map_to_object_key(uri, self._config)

        with operation_scope(uri=uri):
            params = self.upload_params(uri, key)
            result = self._store.put_object(key, body, params)
            if result.is_err():
                logger.warning(
                    "Flush rejected by backend",
                    key=key,
                    error=str(result.error),
                    transient=result.error.is_transient,
                )
                return FlushStatus.FAILED

            if not self.write_uri_to_cache(uri):
                return FlushStatus.UNCONFIRMED

            logger.info("Flush completed", key=key, size_bytes=len(body))
            return FlushStatus.COMPLETED

    def write_uri_to_cache(self, uri: str) -> bool:
        """
        Wait for the object behind `uri`, then index its metadata.

        Also usable for objects uploaded outside this coordinator.

        Returns:
            False when the object never became visible.
        """
        uri = normalize_uri(uri)
        key = map_to_object_key(uri, self._config)

        if not self._waiter.wait_until_visible(key):
            logger.warning("Object not confirmed visible; index unchanged", key=key)
            return False

        record = self._directory.fetch_from_backend(uri)
        if record is None:
            logger.warning("Object vanished after confirmation; index unchanged", key=key)
            return False

        self._directory.write_record(record)
        return True
