"""
Unit Tests: S3 Object Store

Uses botocore's Stubber so no request leaves the process.

Tests:
    - head/put/delete/move against stubbed responses
    - Error classification (not found, transient, unexpected)
    - Offline URL generation (plain and presigned)
"""

from datetime import datetime, timezone
from urllib.parse import parse_qs, urlsplit

import boto3
import pytest
from botocore.exceptions import ClientError, EndpointConnectionError
from botocore.stub import Stubber

from bucketfs.core.constants import MAX_PRESIGN_EXPIRY_SECONDS, RESPONSE_OVERRIDE_EXPIRY_SECONDS
from bucketfs.core.errors import BackendError, BackendTransientError, ErrorCode, NotFoundError
from bucketfs.storage.config import S3Config
from bucketfs.storage.protocols import ObjectStoreProtocol
from bucketfs.storage.s3_store import S3ObjectStore, classify_error

BUCKET = "test-bucket"
LAST_MODIFIED = datetime(2024, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


def _s3_config():
    return S3Config(
        bucket_name=BUCKET,
        region="us-east-1",
        access_key_id="AKIAEXAMPLEKEY",
        secret_access_key="example-secret",
    )


@pytest.fixture
def s3_client():
    return boto3.client(
        "s3",
        region_name="us-east-1",
        aws_access_key_id="AKIAEXAMPLEKEY",
        aws_secret_access_key="example-secret",
    )


@pytest.fixture
def stubbed(s3_client):
    with Stubber(s3_client) as stubber:
        yield S3ObjectStore(_s3_config(), client=s3_client), stubber
        stubber.assert_no_pending_responses()


class TestHeadObject:
    """Tests for head_object."""

    def test_metadata(self, stubbed):
        store, stubber = stubbed
        stubber.add_response(
            "head_object",
            {
                "ContentLength": 12,
                "LastModified": LAST_MODIFIED,
                "VersionId": "v7",
                "ContentType": "text/plain",
                "ETag": '"abc123"',
            },
            {"Bucket": BUCKET, "Key": "s3fs-public/a.txt"},
        )
        metadata = store.head_object("s3fs-public/a.txt").unwrap()
        assert metadata.size_bytes == 12
        assert metadata.version_id == "v7"
        assert metadata.etag == "abc123"
        assert metadata.unix_seconds == int(LAST_MODIFIED.timestamp())

    def test_not_found_is_none(self, stubbed):
        store, stubber = stubbed
        stubber.add_client_error("head_object", service_error_code="404", http_status_code=404)
        result = store.head_object("s3fs-public/missing.txt")
        assert result.is_ok()
        assert result.unwrap() is None

    def test_throttled_is_transient(self, stubbed):
        store, stubber = stubbed
        stubber.add_client_error("head_object", service_error_code="SlowDown", http_status_code=503)
        result = store.head_object("s3fs-public/a.txt")
        assert result.is_err()
        assert isinstance(result.error, BackendTransientError)
        assert store.metrics.transient_errors == 1

    def test_access_denied_is_unexpected(self, stubbed):
        store, stubber = stubbed
        stubber.add_client_error("head_object", service_error_code="AccessDenied", http_status_code=403)
        result = store.head_object("s3fs-public/a.txt")
        assert result.is_err()
        assert not result.error.is_transient
        assert result.error.code is ErrorCode.BACKEND_UNEXPECTED


class TestWrites:
    """Tests for put/delete/move."""

    def test_put_object(self, stubbed):
        store, stubber = stubbed
        stubber.add_response(
            "put_object",
            {"ETag": '"abc"'},
            {
                "Bucket": BUCKET,
                "Key": "s3fs-public/a.txt",
                "Body": b"hello",
                "ContentType": "text/plain",
                "ACL": "public-read",
            },
        )
        result = store.put_object(
            "s3fs-public/a.txt", b"hello", {"ContentType": "text/plain", "ACL": "public-read"}
        )
        assert result.is_ok()
        assert store.metrics.put_count == 1
        assert store.metrics.bytes_uploaded == 5

    def test_delete_object(self, stubbed):
        store, stubber = stubbed
        stubber.add_response("delete_object", {}, {"Bucket": BUCKET, "Key": "s3fs-public/a.txt"})
        assert store.delete_object("s3fs-public/a.txt").is_ok()

    def test_delete_objects(self, stubbed):
        store, stubber = stubbed
        stubber.add_response(
            "delete_objects",
            {"Deleted": [{"Key": "a"}, {"Key": "b"}]},
            {
                "Bucket": BUCKET,
                "Delete": {"Objects": [{"Key": "a"}, {"Key": "b"}], "Quiet": True},
            },
        )
        assert store.delete_objects(["a", "b"]).unwrap() == 2

    def test_delete_objects_partial_failure(self, stubbed):
        store, stubber = stubbed
        stubber.add_response(
            "delete_objects",
            {"Errors": [{"Key": "b", "Code": "AccessDenied", "Message": "denied"}]},
        )
        result = store.delete_objects(["a", "b"])
        assert result.is_err()
        assert isinstance(result.error, BackendError)

    def test_move_object(self, stubbed):
        store, stubber = stubbed
        stubber.add_response(
            "copy_object",
            {},
            {
                "Bucket": BUCKET,
                "Key": "s3fs-public/new.txt",
                "CopySource": f"{BUCKET}/s3fs-public/old.txt",
                "ACL": "public-read",
            },
        )
        stubber.add_response("delete_object", {}, {"Bucket": BUCKET, "Key": "s3fs-public/old.txt"})
        result = store.move_object(
            f"{BUCKET}/s3fs-public/old.txt", "s3fs-public/new.txt", {"ACL": "public-read"}
        )
        assert result.is_ok()
        assert store.metrics.copy_count == 1

    def test_move_missing_source(self, stubbed):
        store, stubber = stubbed
        stubber.add_client_error("copy_object", service_error_code="NoSuchKey", http_status_code=404)
        result = store.move_object(f"{BUCKET}/s3fs-public/old.txt", "s3fs-public/new.txt", {})
        assert isinstance(result.error, NotFoundError)


class TestClassifyError:
    """Tests for botocore exception mapping."""

    def test_connection_failure(self):
        error = classify_error("head", "k", EndpointConnectionError(endpoint_url="http://s3.local"))
        assert error.is_transient
        assert error.code is ErrorCode.BACKEND_UNREACHABLE

    def test_server_error_status(self):
        client_error = ClientError(
            {"Error": {"Code": "Weird"}, "ResponseMetadata": {"HTTPStatusCode": 502}},
            "HeadObject",
        )
        assert classify_error("head", "k", client_error).is_transient

    def test_client_error(self):
        client_error = ClientError(
            {"Error": {"Code": "InvalidRequest"}, "ResponseMetadata": {"HTTPStatusCode": 400}},
            "PutObject",
        )
        error = classify_error("put", "k", client_error)
        assert not error.is_transient
        assert error.cause is client_error


class TestUrls:
    """Tests for offline URL generation."""

    def test_satisfies_protocol(self):
        assert isinstance(S3ObjectStore(_s3_config()), ObjectStoreProtocol)

    def test_plain_url_unsigned(self):
        store = S3ObjectStore(_s3_config())
        url = store.get_object_url("s3fs-public/a b.jpg", https=True)
        assert url.startswith("https://")
        assert BUCKET in url
        assert "s3fs-public/a%20b.jpg" in url
        assert "X-Amz-Signature" not in url
        store.close()

    def test_plain_url_http(self):
        store = S3ObjectStore(_s3_config())
        assert store.get_object_url("s3fs-public/a.jpg", https=False).startswith("http://")
        store.close()

    def test_presigned_url(self):
        store = S3ObjectStore(_s3_config())
        result = store.generate_presigned_url(
            "s3fs-public/secure/a.pdf",
            120,
            {"ResponseContentDisposition": 'attachment; filename="a.pdf"'},
        )
        url = result.unwrap()
        assert "X-Amz-Expires=120" in url
        assert "X-Amz-Signature=" in url
        assert "response-content-disposition=" in url
        assert store.metrics.presign_count == 1
        store.close()

    def test_forced_download_expiry_within_sigv4_limit(self):
        store = S3ObjectStore(_s3_config())
        url = store.generate_presigned_url(
            "s3fs-public/a.zip",
            RESPONSE_OVERRIDE_EXPIRY_SECONDS,
            {"ResponseContentDisposition": 'attachment; filename="a.zip"'},
        ).unwrap()
        query = parse_qs(urlsplit(url).query)
        assert query["X-Amz-Algorithm"] == ["AWS4-HMAC-SHA256"]
        assert int(query["X-Amz-Expires"][0]) <= MAX_PRESIGN_EXPIRY_SECONDS
        store.close()

    def test_long_expiry_capped(self):
        store = S3ObjectStore(_s3_config())
        url = store.generate_presigned_url("s3fs-public/a.pdf", 10 * MAX_PRESIGN_EXPIRY_SECONDS).unwrap()
        assert parse_qs(urlsplit(url).query)["X-Amz-Expires"] == [str(MAX_PRESIGN_EXPIRY_SECONDS)]
        store.close()

    def test_custom_endpoint_scheme_follows_https_flag(self):
        config = S3Config(
            bucket_name=BUCKET,
            endpoint_url="https://minio.local:9000",
            access_key_id="AKIAEXAMPLEKEY",
            secret_access_key="example-secret",
        )
        store = S3ObjectStore(config)
        assert store.get_object_url("k", https=False).startswith("http://")
        store.close()
