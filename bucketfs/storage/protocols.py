"""
Object Store Protocol: Narrow Backend Interface

Structural subtyping protocol (PEP 544) for the flat key-based object store
underneath the filesystem emulation. The engine depends only on this
interface, so the backend is swappable (S3, MinIO, in-memory) and mockable.

Design Principles:
    - Zero-exception control flow via Result[T, BackendError] monad
    - "Not found" is Ok(None), never an error
    - Synchronous, blocking calls; no background work

License: MIT
"""

from __future__ import annotations

from abc import abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import (
    Any,
    Mapping,
    Optional,
    Protocol,
    Sequence,
    runtime_checkable,
)

from bucketfs.core.errors import BackendError, BucketFSError
from bucketfs.core.types import Result


# =============================================================================
# OBJECT METADATA
# =============================================================================
@dataclass(frozen=True, slots=True)
class ObjectMetadata:
    """
    Authoritative metadata returned by a HEAD request.

    Attributes:
        key: Object key within the bucket.
        size_bytes: Content length.
        last_modified: Timezone-aware modification instant.
        version_id: Backend version token, '' when versioning is off.
        content_type: Stored MIME type.
        etag: Entity tag (quotes stripped).
    """

    key: str
    size_bytes: int
    last_modified: datetime
    version_id: str = ""
    content_type: str = ""
    etag: str = ""

    @property
    def unix_seconds(self) -> int:
        return int(self.last_modified.timestamp())


# =============================================================================
# OBJECT STORE PROTOCOL
# =============================================================================
@runtime_checkable
class ObjectStoreProtocol(Protocol):
    """
    Primitives consumed by the filesystem engine.

    Calls that reach the backend return Result[T, BackendError]; plain URL
    building is local and returns the URL directly. Transient failures are
    reported as BackendTransientError so callers with a retry policy can
    distinguish them.
    """

    @property
    def bucket(self) -> str:
        ...

    @abstractmethod
    def head_object(self, key: str) -> Result[Optional[ObjectMetadata], BackendError]:
        """
        Fetch object metadata.

        Returns:
            Ok(metadata): Object exists
            Ok(None): Object does not exist (or is not yet visible)
            Err(error): Request failed
        """
        ...

    @abstractmethod
    def put_object(
        self,
        key: str,
        body: bytes,
        params: Mapping[str, Any],
    ) -> Result[None, BackendError]:
        """
        Write an object. `params` uses PutObject argument names
        (ContentType, ACL, CacheControl, ServerSideEncryption, ...).
        """
        ...

    @abstractmethod
    def delete_object(self, key: str) -> Result[None, BackendError]:
        """Delete one object. Deleting a missing key succeeds."""
        ...

    @abstractmethod
    def delete_objects(self, keys: Sequence[str]) -> Result[int, BackendError]:
        """Delete many objects; returns the number of keys submitted."""
        ...

    @abstractmethod
    def move_object(
        self,
        copy_source: str,
        dest_key: str,
        params: Mapping[str, Any],
    ) -> Result[None, BucketFSError]:
        """
        Server-side move: copy `copy_source` ("bucket/key") to `dest_key`
        with `params` applied, then delete the source.

        Returns:
            Err(NotFoundError): The source object does not exist
        """
        ...

    @abstractmethod
    def get_object_url(self, key: str, https: bool = True) -> str:
        """Plain (unsigned) object URL. No network call."""
        ...

    @abstractmethod
    def generate_presigned_url(
        self,
        key: str,
        expires_in: int,
        response_args: Optional[Mapping[str, str]] = None,
        https: bool = True,
    ) -> Result[str, BackendError]:
        """
        Signed GET URL valid for `expires_in` seconds, carrying optional
        Response* overrides (e.g. ResponseContentDisposition).
        """
        ...
