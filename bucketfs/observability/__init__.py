"""
Observability module: structured JSON logging.
"""

from bucketfs.observability.logging import (
    LogLevel,
    JsonFormatter,
    StructuredLogger,
    operation_scope,
    setup_logging,
)

__all__ = ["LogLevel", "JsonFormatter", "StructuredLogger", "operation_scope", "setup_logging"]
