"""
Backend connection settings

Immutable settings for the S3-compatible bucket behind the filesystem:
where it is (bucket, region, endpoint), who we are (static keys, or the
default AWS credential chain when none are given) and how patient the
client is (timeouts, retries, pool size).

Works with AWS S3 and S3-compatible services such as MinIO or R2 via
`endpoint_url`.

License: MIT
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from botocore.config import Config as BotoCoreConfig

from bucketfs.core.errors import ConfigurationError

MIN_BUCKET_NAME_LENGTH = 3


@dataclass(frozen=True, slots=True)
class S3Config:
    """
    Where and how to reach the bucket.

    Attributes:
        bucket_name: Bucket holding every object of the filesystem.
        region: Signing region.
        endpoint_url: S3-compatible endpoint; None for AWS.
        access_key_id: Static key id; None to use the default credential chain.
        secret_access_key: Static secret paired with access_key_id.
        session_token: STS token accompanying temporary keys.
        connect_timeout_seconds: TCP connect timeout per request.
        read_timeout_seconds: Socket read timeout per request.
        max_retries: botocore retry attempts (standard mode).
        max_pool_connections: HTTP connection pool size.
        use_ssl: Talk to the API over https.
        verify_ssl: Verify server certificates.
    """

    bucket_name: str
    region: str = "us-east-1"
    endpoint_url: Optional[str] = None
    access_key_id: Optional[str] = None
    secret_access_key: Optional[str] = None
    session_token: Optional[str] = None
    connect_timeout_seconds: int = 5
    read_timeout_seconds: int = 60
    max_retries: int = 3
    max_pool_connections: int = 10
    use_ssl: bool = True
    verify_ssl: bool = True

    def __post_init__(self) -> None:
        """
        Raises:
            ConfigurationError: On an empty or too short bucket name, or a
                non-positive timeout/pool size, or negative retries.
        """
        if not self.bucket_name:
            raise ConfigurationError.missing_setting("bucket")
        if len(self.bucket_name) < MIN_BUCKET_NAME_LENGTH:
            raise ConfigurationError.invalid_setting(
                "bucket",
                self.bucket_name,
                f"must be at least {MIN_BUCKET_NAME_LENGTH} characters",
            )
        for name in ("connect_timeout_seconds", "read_timeout_seconds", "max_pool_connections"):
            if getattr(self, name) <= 0:
                raise ConfigurationError.invalid_setting(name, getattr(self, name), "must be > 0")
        if self.max_retries < 0:
            raise ConfigurationError.invalid_setting("max_retries", self.max_retries, "must be >= 0")

    @property
    def has_static_credentials(self) -> bool:
        return bool(self.access_key_id and self.secret_access_key)

    def get_boto_config(self) -> Dict[str, Any]:
        """Keyword arguments for `boto3.client("s3", **kwargs)`."""
        kwargs: Dict[str, Any] = {
            "region_name": self.region,
            "use_ssl": self.use_ssl,
            "config": self.get_botocore_config(),
        }
        if self.endpoint_url:
            kwargs["endpoint_url"] = self.endpoint_url
        if self.has_static_credentials:
            kwargs["aws_access_key_id"] = self.access_key_id
            kwargs["aws_secret_access_key"] = self.secret_access_key
            if self.session_token:
                kwargs["aws_session_token"] = self.session_token
        if not self.verify_ssl:
            kwargs["verify"] = False
        return kwargs

    def get_botocore_config(self, **overrides: Any) -> BotoCoreConfig:
        """botocore client config; `overrides` win (e.g. signature_version)."""
        options: Dict[str, Any] = {
            "connect_timeout": self.connect_timeout_seconds,
            "read_timeout": self.read_timeout_seconds,
            "retries": {"max_attempts": self.max_retries, "mode": "standard"},
            "max_pool_connections": self.max_pool_connections,
            **overrides,
        }
        return BotoCoreConfig(**options)
