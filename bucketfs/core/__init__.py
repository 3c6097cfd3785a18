"""
Core module: Type definitions, error hierarchy, and configuration.

This module provides the foundational abstractions for bucketfs:
- Result/Either monads for zero-exception control flow
- Error hierarchy with error codes and classmethod factories
- Pattern rules and validated, immutable configuration
"""

from bucketfs.core.types import (
    Result,
    Ok,
    Err,
    Timestamp,
    PathClass,
    FileRecord,
)
from bucketfs.core.errors import (
    ErrorCode,
    BucketFSError,
    ConfigurationError,
    MalformedPathError,
    NotFoundError,
    BackendError,
    BackendTransientError,
    CacheWriteError,
    CacheReadError,
)
from bucketfs.core.patterns import (
    PatternRule,
    PatternRuleSet,
    parse_rule_lines,
    parse_presign_lines,
)
from bucketfs.core.config import FileSystemConfig, ConfigRegistry

__all__ = [
    "Result",
    "Ok",
    "Err",
    "Timestamp",
    "PathClass",
    "FileRecord",
    "ErrorCode",
    "BucketFSError",
    "ConfigurationError",
    "MalformedPathError",
    "NotFoundError",
    "BackendError",
    "BackendTransientError",
    "CacheWriteError",
    "CacheReadError",
    "PatternRule",
    "PatternRuleSet",
    "parse_rule_lines",
    "parse_presign_lines",
    "FileSystemConfig",
    "ConfigRegistry",
]
