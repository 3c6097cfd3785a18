"""
Unit Tests: Core Types and Errors

Tests:
    - Result monad behaviour
    - FileRecord construction, rows and stat results
    - Error formatting and classification
"""

import stat

import pytest

from bucketfs.core.errors import (
    BackendError,
    BackendTransientError,
    BucketFSError,
    ConfigurationError,
    ErrorCode,
    NotFoundError,
)
from bucketfs.core.types import Err, FileRecord, Ok, PathClass, Timestamp


class TestResult:
    """Tests for Ok / Err."""

    def test_ok(self):
        result = Ok(3)
        assert result.is_ok()
        assert result.unwrap() == 3
        assert result.map(lambda v: v + 1).unwrap() == 4

    def test_err_unwrap_raises_wrapped_error(self):
        error = NotFoundError.object("k")
        result = Err(error)
        assert result.is_err()
        assert result.unwrap_or(None) is None
        with pytest.raises(NotFoundError):
            result.unwrap()


class TestFileRecord:
    """Tests for FileRecord."""

    def test_directory_factory(self):
        record = FileRecord.directory("public://docs", timestamp=10)
        assert record.is_directory
        assert record.size_bytes == 0
        assert record.timestamp == 10

    def test_directory_stamped_now(self):
        before = Timestamp.now().unix_seconds
        record = FileRecord.directory("public://docs")
        assert record.timestamp >= before

    def test_negative_size_rejected(self):
        with pytest.raises(ValueError):
            FileRecord(uri="public://a", size_bytes=-1)

    def test_row_round_trip(self):
        record = FileRecord(uri="public://a", size_bytes=3, timestamp=5, version="v1")
        assert record.to_row()["dir"] == 0
        assert FileRecord.from_row(record.to_row()) == record

    def test_with_uri(self):
        record = FileRecord(uri="public://a", size_bytes=3, timestamp=5)
        moved = record.with_uri("public://b")
        assert moved.uri == "public://b"
        assert moved.size_bytes == 3
        assert record.uri == "public://a"

    def test_file_stat(self):
        result = FileRecord(uri="public://a", size_bytes=3, timestamp=5).to_stat()
        assert stat.S_ISREG(result.st_mode)
        assert result.st_size == 3
        assert result.st_mtime == 5

    def test_path_class(self):
        assert PathClass.from_scheme("public") is PathClass.PUBLIC
        assert PathClass.from_scheme("temporary") is PathClass.OTHER


class TestErrors:
    """Tests for the error hierarchy."""

    def test_str_contains_code(self):
        error = ConfigurationError.missing_setting("bucket")
        assert "CONFIG_MISSING_SETTING" in str(error)
        assert isinstance(error, BucketFSError)

    def test_to_dict(self):
        data = BackendError.unexpected("put", "k").to_dict()
        assert data["code"] == ErrorCode.BACKEND_UNEXPECTED.name
        assert data["context"]["operation"] == "put"

    def test_transient_is_backend_error(self):
        error = BackendTransientError.throttled("head", "k", "SlowDown")
        assert isinstance(error, BackendError)
        assert error.is_transient
        assert not BackendError.unexpected("head", "k").is_transient
