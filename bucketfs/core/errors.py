"""
Error Hierarchy for bucketfs

Design Principles:
- "Not found" is never an exception: lookups return None / Ok(None)
- Backend primitives return Result[T, BackendError]; the engine raises
  the carried error where a failure must propagate to the caller
- Carry full error context for debugging and audit trails

Each error type includes:
- Unique error code for programmatic handling
- Human-readable message for logging
- Optional cause chain for root cause analysis
- Timestamp for correlation with log lines

Usage:
    result = store.head_object(key)
    match result:
        case Ok(None):
            return None
        case Ok(metadata):
            return record_from(metadata)
        case Err(BackendTransientError() as error):
            retry_later(error)
        case Err(error):
            raise error
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional
from uuid import uuid4

from bucketfs.core.types import Timestamp


# =============================================================================
# ERROR CODE ENUMERATION
# =============================================================================
class ErrorCode(Enum):
    """
    Unique error codes for programmatic error handling.

    Codes are grouped by subsystem:
    - 1xxx: Configuration errors
    - 2xxx: Path errors
    - 3xxx: Backend (object store) errors
    - 4xxx: Metadata cache errors
    """

    # Configuration errors (1xxx)
    CONFIG_MISSING_SETTING = 1001
    CONFIG_INVALID_SETTING = 1002

    # Path errors (2xxx)
    PATH_MALFORMED = 2001
    PATH_NOT_FOUND = 2002

    # Backend errors (3xxx)
    BACKEND_UNEXPECTED = 3001
    BACKEND_THROTTLED = 3002
    BACKEND_UNREACHABLE = 3003

    # Cache errors (4xxx)
    CACHE_WRITE_FAILED = 4001
    CACHE_READ_FAILED = 4002


# =============================================================================
# BASE ERROR CLASS
# =============================================================================
@dataclass
class BucketFSError(Exception):
    """
    Base class for all bucketfs errors.

    Provides common infrastructure for error handling:
    - Unique error ID for log correlation
    - Error code for programmatic handling
    - Timestamp
    - Cause chain for root cause analysis
    """

    code: ErrorCode
    message: str
    error_id: str = field(default_factory=lambda: str(uuid4()))
    timestamp: Timestamp = field(default_factory=Timestamp.now)
    cause: Optional[Exception] = None
    context: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        super().__init__(self.message)
        if self.cause is not None:
            self.__cause__ = self.cause

    def to_dict(self) -> dict[str, Any]:
        """
        Serialize error to dictionary for structured logging.

        The cause is reduced to its repr; stack traces stay out of the
        payload.
        """
        data = {
            "error_id": self.error_id,
            "code": self.code.name,
            "code_value": self.code.value,
            "message": self.message,
            "timestamp_nanos": self.timestamp.nanos,
            "context": self.context,
        }
        if self.cause is not None:
            data["cause"] = repr(self.cause)
        return data

    def __str__(self) -> str:
        return f"[{self.code.name}] {self.message} (id={self.error_id[:8]})"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"code={self.code.name}, "
            f"message={self.message!r}, "
            f"error_id={self.error_id!r})"
        )


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================
@dataclass
class ConfigurationError(BucketFSError):
    """
    Invalid or incomplete settings. Fatal at construction time.
    """

    @classmethod
    def missing_setting(cls, name: str) -> ConfigurationError:
        """A required setting was not provided."""
        return cls(
            code=ErrorCode.CONFIG_MISSING_SETTING,
            message=f"Required setting '{name}' is not configured",
            context={"setting": name},
        )

    @classmethod
    def invalid_setting(
        cls,
        name: str,
        value: Any,
        reason: str,
        cause: Optional[Exception] = None,
    ) -> ConfigurationError:
        """A setting was provided but cannot be used."""
        return cls(
            code=ErrorCode.CONFIG_INVALID_SETTING,
            message=f"Invalid value for setting '{name}': {reason}",
            cause=cause,
            context={"setting": name, "value": str(value)[:100], "reason": reason},
        )


# =============================================================================
# PATH ERRORS
# =============================================================================
@dataclass
class MalformedPathError(BucketFSError):
    """A URI that cannot be parsed into scheme and target."""

    @classmethod
    def missing_scheme(cls, uri: str) -> MalformedPathError:
        return cls(
            code=ErrorCode.PATH_MALFORMED,
            message=f"URI '{uri}' has no '<scheme>://' prefix",
            context={"uri": uri},
        )


@dataclass
class NotFoundError(BucketFSError):
    """
    A path absent from both cache and backend.

    Lookups never raise this; it only travels inside Err results from
    backend operations that need an existing source (e.g. a move).
    """

    @classmethod
    def object(cls, key: str) -> NotFoundError:
        return cls(
            code=ErrorCode.PATH_NOT_FOUND,
            message=f"Object '{key}' does not exist",
            context={"key": key},
        )


# =============================================================================
# BACKEND ERRORS
# =============================================================================
@dataclass
class BackendError(BucketFSError):
    """
    Unexpected object-store failure.

    Propagated to the caller of the engine operation that hit it.
    """

    @classmethod
    def unexpected(
        cls,
        operation: str,
        key: str,
        cause: Optional[Exception] = None,
    ) -> BackendError:
        return cls(
            code=ErrorCode.BACKEND_UNEXPECTED,
            message=f"Backend {operation} failed for '{key}'",
            cause=cause,
            context={"operation": operation, "key": key},
        )

    @property
    def is_transient(self) -> bool:
        return False


@dataclass
class BackendTransientError(BackendError):
    """
    Throttling, 5xx, or connectivity failure.

    Only the consistency waiter retries these; it reports exhaustion as a
    boolean failure and never raises.
    """

    @classmethod
    def throttled(
        cls,
        operation: str,
        key: str,
        error_code: str,
        cause: Optional[Exception] = None,
    ) -> BackendTransientError:
        return cls(
            code=ErrorCode.BACKEND_THROTTLED,
            message=f"Backend {operation} for '{key}' was rejected ({error_code})",
            cause=cause,
            context={"operation": operation, "key": key, "error_code": error_code},
        )

    @classmethod
    def unreachable(
        cls,
        operation: str,
        key: str,
        cause: Optional[Exception] = None,
    ) -> BackendTransientError:
        return cls(
            code=ErrorCode.BACKEND_UNREACHABLE,
            message=f"Backend unreachable during {operation} of '{key}'",
            cause=cause,
            context={"operation": operation, "key": key},
        )

    @property
    def is_transient(self) -> bool:
        return True


# =============================================================================
# METADATA CACHE ERRORS
# =============================================================================
@dataclass
class CacheWriteError(BucketFSError):
    """
    Persistence failure in the metadata index.

    Propagated; the caller decides whether to retry the whole logical
    operation.
    """

    @classmethod
    def write_failed(
        cls,
        operation: str,
        uri: str,
        cause: Optional[Exception] = None,
    ) -> CacheWriteError:
        return cls(
            code=ErrorCode.CACHE_WRITE_FAILED,
            message=f"Metadata index {operation} failed for '{uri}'",
            cause=cause,
            context={"operation": operation, "uri": uri},
        )


@dataclass
class CacheReadError(BucketFSError):
    """Query failure in the metadata index."""

    @classmethod
    def read_failed(
        cls,
        operation: str,
        uri: str,
        cause: Optional[Exception] = None,
    ) -> CacheReadError:
        return cls(
            code=ErrorCode.CACHE_READ_FAILED,
            message=f"Metadata index {operation} failed for '{uri}'",
            cause=cause,
            context={"operation": operation, "uri": uri},
        )
