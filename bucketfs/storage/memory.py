"""
In-Memory Object Store

ObjectStoreProtocol implementation for development, the local demo and
tests. Behaves like a small S3 bucket:

- Thread-safe dict storage guarded by a lock
- Optional versioning (version tokens v1, v2, ... per key)
- Simulated read-after-write lag: a freshly written object stays invisible
  to head_object for `visibility_lag` polls
- Failure injection via fail_next(operation, error)
- Deterministic fake URLs; presigned URLs carry their (capped) expiry

Operation names accepted by fail_next: head, put, delete, move, presign.
"""

from __future__ import annotations

import hashlib
import threading
from collections import defaultdict, deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Deque, Dict, Mapping, Optional, Sequence
from urllib.parse import quote, urlencode

from bucketfs.core.constants import DEFAULT_CONTENT_TYPE, MAX_PRESIGN_EXPIRY_SECONDS
from bucketfs.core.errors import BackendError, BucketFSError, NotFoundError
from bucketfs.core.types import Err, Ok, Result
from bucketfs.storage.protocols import ObjectMetadata


@dataclass(slots=True)
class StoredObject:
    """One object version held in memory."""
    body: bytes
    metadata: ObjectMetadata
    params: Dict[str, Any] = field(default_factory=dict)


class InMemoryObjectStore:
    """
    In-memory S3-compatible bucket.

    Example:
        store = InMemoryObjectStore(versioning=True, visibility_lag=2)
        store.put_object("s3fs-public/a.txt", b"hi", {"ContentType": "text/plain"})
        store.head_object("s3fs-public/a.txt")   # Ok(None), still invisible
    """

    __slots__ = (
        "_bucket",
        "_objects",
        "_versions",
        "_invisible",
        "_failures",
        "_lock",
        "_versioning",
        "_visibility_lag",
        "_clock",
        "head_calls",
    )

    def __init__(
        self,
        bucket: str = "bucketfs-local",
        versioning: bool = False,
        visibility_lag: int = 0,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._bucket = bucket
        self._objects: Dict[str, StoredObject] = {}
        self._versions: Dict[str, int] = defaultdict(int)
        self._invisible: Dict[str, int] = {}
        self._failures: Dict[str, Deque[BackendError]] = defaultdict(deque)
        self._lock = threading.Lock()
        self._versioning = versioning
        self._visibility_lag = visibility_lag
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self.head_calls = 0

    @property
    def bucket(self) -> str:
        return self._bucket

    # -------------------------------------------------------------------------
    # TEST CONTROLS
    # -------------------------------------------------------------------------

    def fail_next(self, operation: str, error: BackendError) -> None:
        """Make the next call of `operation` return Err(error)."""
        with self._lock:
            self._failures[operation].append(error)

    def _injected(self, operation: str) -> Optional[BackendError]:
        queue = self._failures.get(operation)
        if queue:
            return queue.popleft()
        return None

    def keys(self) -> list[str]:
        with self._lock:
            return sorted(self._objects)

    def params(self, key: str) -> Dict[str, Any]:
        """Attributes the object was written with (ContentType, ACL, ...)."""
        with self._lock:
            return dict(self._objects[key].params)

    def get_object(self, key: str) -> Result[Optional[bytes], BackendError]:
        with self._lock:
            stored = self._objects.get(key)
            return Ok(stored.body if stored else None)

    # -------------------------------------------------------------------------
    # PROTOCOL OPERATIONS
    # -------------------------------------------------------------------------

    def _store(self, key: str, body: bytes, params: Mapping[str, Any]) -> None:
        self._versions[key] += 1
        version = f"v{self._versions[key]}" if self._versioning else ""
        self._objects[key] = StoredObject(
            body=body,
            metadata=ObjectMetadata(
                key=key,
                size_bytes=len(body),
                last_modified=self._clock(),
                version_id=version,
                content_type=params.get("ContentType", DEFAULT_CONTENT_TYPE),
                etag=hashlib.md5(body).hexdigest(),
            ),
            params=dict(params),
        )
        if self._visibility_lag > 0:
            self._invisible[key] = self._visibility_lag

    def head_object(self, key: str) -> Result[Optional[ObjectMetadata], BackendError]:
        with self._lock:
            self.head_calls += 1
            error = self._injected("head")
            if error is not None:
                return Err(error)
            remaining = self._invisible.get(key, 0)
            if remaining > 0:
                self._invisible[key] = remaining - 1
                return Ok(None)
            stored = self._objects.get(key)
            return Ok(stored.metadata if stored else None)

    def put_object(
        self,
        key: str,
        body: bytes,
        params: Mapping[str, Any],
    ) -> Result[None, BackendError]:
        with self._lock:
            error = self._injected("put")
            if error is not None:
                return Err(error)
            self._store(key, bytes(body), params)
            return Ok(None)

    def delete_object(self, key: str) -> Result[None, BackendError]:
        with self._lock:
            error = self._injected("delete")
            if error is not None:
                return Err(error)
            self._objects.pop(key, None)
            self._invisible.pop(key, None)
            return Ok(None)

    def delete_objects(self, keys: Sequence[str]) -> Result[int, BackendError]:
        with self._lock:
            error = self._injected("delete")
            if error is not None:
                return Err(error)
            for key in keys:
                self._objects.pop(key, None)
                self._invisible.pop(key, None)
            return Ok(len(keys))

    def move_object(
        self,
        copy_source: str,
        dest_key: str,
        params: Mapping[str, Any],
    ) -> Result[None, BucketFSError]:
        source_bucket, _, source_key = copy_source.partition("/")
        with self._lock:
            error = self._injected("move")
            if error is not None:
                return Err(error)
            stored = self._objects.get(source_key)
            if source_bucket != self._bucket or stored is None:
                return Err(NotFoundError.object(copy_source))
            merged = {**stored.params, **params}
            self._store(dest_key, stored.body, merged)
            del self._objects[source_key]
            self._invisible.pop(source_key, None)
            return Ok(None)

    # -------------------------------------------------------------------------
    # URLS
    # -------------------------------------------------------------------------

    def get_object_url(self, key: str, https: bool = True) -> str:
        scheme = "https" if https else "http"
        return f"{scheme}://{self._bucket}.s3.local/{quote(key, safe='/')}"

    def generate_presigned_url(
        self,
        key: str,
        expires_in: int,
        response_args: Optional[Mapping[str, str]] = None,
        https: bool = True,
    ) -> Result[str, BackendError]:
        with self._lock:
            error = self._injected("presign")
            if error is not None:
                return Err(error)
        query: Dict[str, Any] = dict(response_args or {})
        expires_in = min(expires_in, MAX_PRESIGN_EXPIRY_SECONDS)
        query["X-Amz-Expires"] = expires_in
        signature = hashlib.sha256(f"{key}:{expires_in}:{sorted(query.items())}".encode())
        query["X-Amz-Signature"] = signature.hexdigest()[:16]
        return Ok(f"{self.get_object_url(key, https)}?{urlencode(query)}")
