"""
S3-Compatible Object Store
==========================

boto3-backed implementation of ObjectStoreProtocol supporting AWS S3,
MinIO, Cloudflare R2, and other S3-compatible services.

Design Principles:
------------------
1. **Result Monad**: No exceptions for control flow; "not found" is Ok(None)
2. **Error Classification**: Throttling, 5xx and connectivity failures are
   BackendTransientError; everything else is BackendError
3. **Offline URLs**: Plain object URLs come from an unsigned client and
   presigned URLs are signed locally; neither makes a network call
4. **Lazy Client**: The boto3 client is created on first use

Algorithmic Complexity:
-----------------------
| Operation              | Time  | Notes                          |
|------------------------|-------|--------------------------------|
| head_object            | O(1)  | Metadata only                  |
| put_object             | O(n)  | n = body size                  |
| delete_objects         | O(k)  | k keys, 1000 per request       |
| move_object            | O(1)  | Server-side copy + delete      |
| generate_presigned_url | O(1)  | Local signing                  |

Thread Safety:
--------------
boto3 low-level clients are thread-safe once created; client creation is
guarded by a lock.

License: MIT
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Sequence

import boto3
from botocore import UNSIGNED
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectTimeoutError,
    EndpointConnectionError,
    ReadTimeoutError,
)

from bucketfs.core.constants import MAX_PRESIGN_EXPIRY_SECONDS
from bucketfs.core.errors import BackendError, BackendTransientError, BucketFSError, NotFoundError
from bucketfs.core.types import Err, Ok, Result
from bucketfs.storage.config import S3Config
from bucketfs.storage.protocols import ObjectMetadata

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

# S3 DeleteObjects accepts at most 1000 keys per request
DELETE_BATCH_SIZE: int = 1000

NOT_FOUND_CODES: frozenset[str] = frozenset({"404", "NoSuchKey", "NotFound"})

TRANSIENT_CODES: frozenset[str] = frozenset({
    "SlowDown",
    "Throttling",
    "ThrottlingException",
    "RequestTimeout",
    "RequestTimeTooSkewed",
    "InternalError",
    "ServiceUnavailable",
    "503",
    "500",
})


# =============================================================================
# METRICS COLLECTOR
# =============================================================================

@dataclass(slots=True)
class S3Metrics:
    """
    Operation counters for one store instance.
    """
    put_count: int = 0
    head_count: int = 0
    delete_count: int = 0
    copy_count: int = 0
    presign_count: int = 0

    bytes_uploaded: int = 0
    put_latency_sum_ns: int = 0

    transient_errors: int = 0
    errors: int = 0

    def record_upload(self, size_bytes: int, latency_ns: int) -> None:
        """Record upload operation."""
        self.put_count += 1
        self.bytes_uploaded += size_bytes
        self.put_latency_sum_ns += latency_ns


# =============================================================================
# ERROR CLASSIFICATION
# =============================================================================

def _error_code(error: ClientError) -> str:
    return str(error.response.get("Error", {}).get("Code", ""))


def _http_status(error: ClientError) -> int:
    return int(error.response.get("ResponseMetadata", {}).get("HTTPStatusCode", 0) or 0)


def is_not_found(error: ClientError) -> bool:
    return _error_code(error) in NOT_FOUND_CODES or _http_status(error) == 404


def classify_error(operation: str, key: str, error: Exception) -> BackendError:
    """
    Map a botocore exception onto the backend error taxonomy.

    Connectivity failures and timeouts, throttling codes and HTTP >= 500
    are transient; anything else is unexpected.
    """
    if isinstance(error, (EndpointConnectionError, ConnectTimeoutError, ReadTimeoutError)):
        return BackendTransientError.unreachable(operation, key, cause=error)
    if isinstance(error, ClientError):
        code = _error_code(error)
        if code in TRANSIENT_CODES or _http_status(error) >= 500:
            return BackendTransientError.throttled(operation, key, code, cause=error)
    return BackendError.unexpected(operation, key, cause=error)


# =============================================================================
# S3 OBJECT STORE
# =============================================================================

class S3ObjectStore:
    """
    S3-compatible object store behind the filesystem engine.

    Example:
        >>> store = S3ObjectStore(S3Config(bucket_name="my-bucket"))
        >>> store.head_object("s3fs-public/a.jpg")
        Ok(None)
    """

    __slots__ = (
        "_config",
        "_client",
        "_url_clients",
        "_lock",
        "_metrics",
    )

    def __init__(self, config: S3Config, client: Any = None) -> None:
        """
        Initialize S3 Object Store.

        Args:
            config: S3 connection configuration.
            client: Pre-built boto3 S3 client (created lazily when None).
        """
        self._config = config
        self._client = client
        self._url_clients: Dict[tuple[bool, bool], Any] = {}
        self._lock = threading.Lock()
        self._metrics = S3Metrics()

    # -------------------------------------------------------------------------
    # CLIENT MANAGEMENT
    # -------------------------------------------------------------------------

    @property
    def bucket(self) -> str:
        return self._config.bucket_name

    @property
    def metrics(self) -> S3Metrics:
        return self._metrics

    @property
    def client(self) -> Any:
        """The API client, created from S3Config on first use."""
        if self._client is None:
            with self._lock:
                if self._client is None:
                    self._client = boto3.client("s3", **self._config.get_boto_config())
        return self._client

    def _url_client(self, https: bool, signed: bool) -> Any:
        """
        Client dedicated to URL building.

        The URL scheme follows `https`, independent of the API connection.
        Unsigned clients produce plain object URLs.
        """
        cache_key = (https, signed)
        url_client = self._url_clients.get(cache_key)
        if url_client is not None:
            return url_client
        with self._lock:
            url_client = self._url_clients.get(cache_key)
            if url_client is None:
                kwargs = self._config.get_boto_config()
                kwargs["use_ssl"] = https
                if signed:
                    kwargs["config"] = self._config.get_botocore_config(signature_version="s3v4")
                else:
                    kwargs["config"] = self._config.get_botocore_config(signature_version=UNSIGNED)
                if kwargs.get("endpoint_url"):
                    scheme = "https" if https else "http"
                    host = kwargs["endpoint_url"].split("://", 1)[-1]
                    kwargs["endpoint_url"] = f"{scheme}://{host}"
                url_client = boto3.client("s3", **kwargs)
                self._url_clients[cache_key] = url_client
            return url_client

    def close(self) -> None:
        """Release HTTP connection pools. Safe to call multiple times."""
        with self._lock:
            clients = [self._client, *self._url_clients.values()]
            self._client = None
            self._url_clients.clear()
        for client in clients:
            if client is not None:
                client.close()

    def _fail(self, operation: str, key: str, error: Exception) -> Err[BackendError]:
        backend_error = classify_error(operation, key, error)
        if backend_error.is_transient:
            self._metrics.transient_errors += 1
        else:
            self._metrics.errors += 1
        logger.debug(
            "S3 %s failed",
            operation,
            extra={"key": key, "error_code": backend_error.code.name},
        )
        return Err(backend_error)

    # -------------------------------------------------------------------------
    # CORE OPERATIONS
    # -------------------------------------------------------------------------

    def head_object(self, key: str) -> Result[Optional[ObjectMetadata], BackendError]:
        """
        Get object metadata without downloading content.

        Returns:
            Ok(metadata) if the object exists, Ok(None) if it does not.
        """
        self._metrics.head_count += 1
        try:
            response = self.client.head_object(Bucket=self.bucket, Key=key)
        except ClientError as e:
            if is_not_found(e):
                return Ok(None)
            return self._fail("head", key, e)
        except BotoCoreError as e:
            return self._fail("head", key, e)

        return Ok(ObjectMetadata(
            key=key,
            size_bytes=int(response.get("ContentLength", 0)),
            last_modified=response["LastModified"],
            version_id=response.get("VersionId") or "",
            content_type=response.get("ContentType", ""),
            etag=response.get("ETag", "").strip('"'),
        ))

    def put_object(
        self,
        key: str,
        body: bytes,
        params: Mapping[str, Any],
    ) -> Result[None, BackendError]:
        """
        Upload object to S3.

        Args:
            key: Object key.
            body: Object content.
            params: Extra PutObject arguments (ContentType, ACL, ...).
        """
        start_ns = time.perf_counter_ns()
        try:
            self.client.put_object(Bucket=self.bucket, Key=key, Body=body, **params)
        except (ClientError, BotoCoreError) as e:
            return self._fail("put", key, e)
        self._metrics.record_upload(len(body), time.perf_counter_ns() - start_ns)
        return Ok(None)

    def delete_object(self, key: str) -> Result[None, BackendError]:
        """Delete object from S3. S3 reports success for missing keys."""
        try:
            self.client.delete_object(Bucket=self.bucket, Key=key)
        except ClientError as e:
            if is_not_found(e):
                return Ok(None)
            return self._fail("delete", key, e)
        except BotoCoreError as e:
            return self._fail("delete", key, e)
        self._metrics.delete_count += 1
        return Ok(None)

    def delete_objects(self, keys: Sequence[str]) -> Result[int, BackendError]:
        """
        Batch delete in chunks of DELETE_BATCH_SIZE.

        Returns:
            Ok(number of keys submitted); Err on the first failed batch or
            per-key error reported by S3.
        """
        keys = list(keys)
        for start in range(0, len(keys), DELETE_BATCH_SIZE):
            batch = keys[start:start + DELETE_BATCH_SIZE]
            try:
                response = self.client.delete_objects(
                    Bucket=self.bucket,
                    Delete={"Objects": [{"Key": k} for k in batch], "Quiet": True},
                )
            except (ClientError, BotoCoreError) as e:
                return self._fail("delete", batch[0], e)
            errors = response.get("Errors") or []
            if errors:
                first = errors[0]
                self._metrics.errors += 1
                return Err(BackendError.unexpected(
                    f"delete ({first.get('Code', 'unknown')})", first.get("Key", batch[0])
                ))
            self._metrics.delete_count += len(batch)
        return Ok(len(keys))

    def move_object(
        self,
        copy_source: str,
        dest_key: str,
        params: Mapping[str, Any],
    ) -> Result[None, BucketFSError]:
        """
        Server-side copy to `dest_key`, then delete the source.

        Args:
            copy_source: Bucket-qualified source, "bucket/key".
            dest_key: Destination key in this bucket.
            params: Extra CopyObject arguments (ACL, ...).
        """
        source_bucket, _, source_key = copy_source.partition("/")
        try:
            self.client.copy_object(
                Bucket=self.bucket,
                Key=dest_key,
                CopySource=copy_source,
                **params,
            )
        except ClientError as e:
            if is_not_found(e):
                return Err(NotFoundError.object(source_key))
            return self._fail("copy", source_key, e)
        except BotoCoreError as e:
            return self._fail("copy", source_key, e)
        self._metrics.copy_count += 1

        try:
            self.client.delete_object(Bucket=source_bucket, Key=source_key)
        except (ClientError, BotoCoreError) as e:
            return self._fail("delete", source_key, e)
        self._metrics.delete_count += 1
        return Ok(None)

    # -------------------------------------------------------------------------
    # URLS
    # -------------------------------------------------------------------------

    def get_object_url(self, key: str, https: bool = True) -> str:
        """Plain object URL built by an unsigned client."""
        return self._url_client(https, signed=False).generate_presigned_url(
            ClientMethod="get_object",
            Params={"Bucket": self.bucket, "Key": key},
        )

    def generate_presigned_url(
        self,
        key: str,
        expires_in: int,
        response_args: Optional[Mapping[str, str]] = None,
        https: bool = True,
    ) -> Result[str, BackendError]:
        """
        Generate presigned GET URL.

        Args:
            key: Object key.
            expires_in: URL validity in seconds, capped at
                MAX_PRESIGN_EXPIRY_SECONDS.
            response_args: Response* overrides, e.g. ResponseContentDisposition.
            https: URL scheme.
        """
        if expires_in > MAX_PRESIGN_EXPIRY_SECONDS:
            logger.warning(
                "Presign expiry capped",
                extra={"key": key, "requested": expires_in, "expires_in": MAX_PRESIGN_EXPIRY_SECONDS},
            )
            expires_in = MAX_PRESIGN_EXPIRY_SECONDS
        params: Dict[str, Any] = {"Bucket": self.bucket, "Key": key}
        if response_args:
            params.update(response_args)
        try:
            url = self._url_client(https, signed=True).generate_presigned_url(
                ClientMethod="get_object",
                Params=params,
                ExpiresIn=expires_in,
            )
        except (ClientError, BotoCoreError) as e:
            return self._fail("presign", key, e)
        self._metrics.presign_count += 1
        return Ok(url)
