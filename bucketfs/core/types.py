"""
Core Type Definitions for bucketfs

Implements Result/Either monads for zero-exception control flow at the
backend boundary, plus the value types shared by every component.

Design Principles:
- Never use exceptions for "not found" (use Optional or Result)
- Immutable records: mutation produces a new instance
- Unix-second timestamps everywhere the index persists time

Complexity: O(1) for all type operations
"""

from __future__ import annotations

import os
import stat as stat_module
import time
from dataclasses import dataclass, replace
from enum import Enum
from typing import (
    Any,
    Callable,
    Generic,
    Literal,
    Optional,
    TypeVar,
    Union,
)

# =============================================================================
# TYPE VARIABLES FOR GENERIC CONTAINERS
# =============================================================================
T = TypeVar("T")  # Success type
E = TypeVar("E")  # Error type
U = TypeVar("U")  # Transform result type


# =============================================================================
# RESULT MONAD: ZERO-EXCEPTION CONTROL FLOW
# =============================================================================
@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """
    Success variant of Result monad.

    Immutable, hashable container for successful computation results.
    """

    value: T

    def is_ok(self) -> Literal[True]:
        return True

    def is_err(self) -> Literal[False]:
        return False

    def unwrap(self) -> T:
        """
        Extract value. Safe to call after is_ok() check.

        Returns:
            T: The wrapped success value
        """
        return self.value

    def unwrap_or(self, default: T) -> T:
        """Return value, ignoring default."""
        return self.value

    def map(self, fn: Callable[[T], U]) -> Ok[U]:
        """Apply transformation to success value."""
        return Ok(fn(self.value))

    def __repr__(self) -> str:
        return f"Ok({self.value!r})"


@dataclass(frozen=True, slots=True)
class Err(Generic[E]):
    """
    Failure variant of Result monad.

    Carries the error instance so callers can inspect, log, or raise it.
    """

    error: E

    def is_ok(self) -> Literal[False]:
        return False

    def is_err(self) -> Literal[True]:
        return True

    def unwrap(self) -> Any:
        """
        Unwrapping an error re-raises it when it is an exception.

        Raises:
            The wrapped exception, or RuntimeError for non-exception payloads
        """
        if isinstance(self.error, BaseException):
            raise self.error
        raise RuntimeError(f"Called unwrap() on Err: {self.error}")

    def unwrap_or(self, default: T) -> T:
        """Return default value on error."""
        return default

    def map(self, fn: Callable[[Any], U]) -> Err[E]:
        """No-op on error variant - propagates error unchanged."""
        return self

    def __repr__(self) -> str:
        return f"Err({self.error!r})"


# Union type for pattern matching
Result = Union[Ok[T], Err[E]]


# =============================================================================
# TIMESTAMP
# =============================================================================
@dataclass(frozen=True, slots=True, order=True)
class Timestamp:
    """
    Nanosecond timestamp used for error correlation.

    The persisted index stores whole unix seconds; see `unix_seconds`.
    """

    nanos: int

    @classmethod
    def now(cls) -> Timestamp:
        return cls(nanos=time.time_ns())

    @property
    def unix_seconds(self) -> int:
        """Whole seconds since the epoch (truncating)."""
        return self.nanos // 1_000_000_000

    def __repr__(self) -> str:
        return f"Timestamp({self.nanos}ns)"


# =============================================================================
# PATH CLASSIFICATION
# =============================================================================
class PathClass(Enum):
    """
    Access class of a URI, derived from its scheme name.

    PUBLIC and PRIVATE paths live under their own key subfolders;
    any other scheme maps straight onto the bucket (plus root folder).
    """

    PUBLIC = "public"
    PRIVATE = "private"
    OTHER = "other"

    @classmethod
    def from_scheme(cls, scheme: str) -> PathClass:
        if scheme == cls.PUBLIC.value:
            return cls.PUBLIC
        if scheme == cls.PRIVATE.value:
            return cls.PRIVATE
        return cls.OTHER


# =============================================================================
# FILE RECORD (ONE ROW OF THE METADATA INDEX)
# =============================================================================
@dataclass(frozen=True, slots=True)
class FileRecord:
    """
    A known path: either an uploaded file or a synthesized directory.

    Attributes:
        uri: Full hierarchical path including scheme (primary key).
        size_bytes: Object size; always 0 for directories.
        timestamp: Creation/modification instant in unix seconds.
        is_directory: True for synthesized directory records.
        version: Backend object-version token, '' when unused.
    """

    uri: str
    size_bytes: int = 0
    timestamp: int = 0
    is_directory: bool = False
    version: str = ""

    def __post_init__(self) -> None:
        if self.size_bytes < 0:
            raise ValueError(f"size_bytes must be >= 0, got {self.size_bytes}")

    @classmethod
    def directory(cls, uri: str, timestamp: Optional[int] = None) -> FileRecord:
        """Synthesize a directory record stamped with the current time."""
        if timestamp is None:
            timestamp = Timestamp.now().unix_seconds
        return cls(uri=uri, timestamp=timestamp, is_directory=True)

    def with_uri(self, uri: str) -> FileRecord:
        """Copy of this record under another path (used by rename)."""
        return replace(self, uri=uri)

    def to_row(self) -> dict[str, Any]:
        """Column mapping for the persisted index."""
        return {
            "uri": self.uri,
            "filesize": self.size_bytes,
            "timestamp": self.timestamp,
            "dir": 1 if self.is_directory else 0,
            "version": self.version,
        }

    @classmethod
    def from_row(cls, row: Any) -> FileRecord:
        return cls(
            uri=row["uri"],
            size_bytes=int(row["filesize"]),
            timestamp=int(row["timestamp"]),
            is_directory=bool(row["dir"]),
            version=row["version"] or "",
        )

    def to_stat(self) -> os.stat_result:
        """
        POSIX-style stat result.

        Every path is reported as world-writable. Directories carry no
        size or times; files report their size and timestamp as
        atime/mtime/ctime.
        """
        if self.is_directory:
            mode = stat_module.S_IFDIR | 0o777
            return os.stat_result((mode, 0, 0, 0, 0, 0, 0, 0, 0, 0))
        mode = stat_module.S_IFREG | 0o777
        ts = self.timestamp
        return os.stat_result((mode, 0, 0, 0, 0, 0, self.size_bytes, ts, ts, ts))
