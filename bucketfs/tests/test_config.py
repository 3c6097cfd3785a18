"""
Unit Tests: Configuration

Tests:
    - Construction from option mappings and the environment
    - Validation failures
    - CNAME base URL derivation
    - Registry deduplication
"""

import pytest

from bucketfs.core.config import ConfigRegistry, FileSystemConfig
from bucketfs.core.errors import ConfigurationError, ErrorCode
from bucketfs.storage.config import S3Config
from bucketfs.tests.conftest import make_config


class TestFileSystemConfig:
    """Tests for FileSystemConfig."""

    def test_defaults(self, config):
        assert config.bucket == "test-bucket"
        assert config.public_folder == "s3fs-public"
        assert config.private_folder == "s3fs-private"
        assert config.root_folder == ""
        assert not config.use_https
        assert config.url_scheme == "http"
        assert config.cname_base_url is None

    def test_missing_bucket(self):
        with pytest.raises(ConfigurationError) as exc_info:
            FileSystemConfig.from_settings({"use_https": "1"})
        assert exc_info.value.code is ErrorCode.CONFIG_MISSING_SETTING

    def test_unknown_option(self):
        with pytest.raises(ConfigurationError):
            make_config(bukket="typo")

    def test_boolean_parsing(self):
        assert make_config(use_https="yes").use_https
        assert not make_config(use_https="0").use_https
        assert make_config(ignore_cache=True).ignore_cache
        with pytest.raises(ConfigurationError):
            make_config(use_https="maybe")

    def test_cname_requires_domain(self):
        with pytest.raises(ConfigurationError) as exc_info:
            make_config(use_cname="1")
        assert exc_info.value.context["setting"] == "domain"

    def test_folders_must_differ(self):
        with pytest.raises(ConfigurationError):
            make_config(public_folder="same", private_folder="same")

    def test_folder_slashes_stripped(self):
        config = make_config(root_folder="/site/", public_folder="pub/")
        assert config.root_folder == "site"
        assert config.public_folder == "pub"

    def test_rules_parsed(self):
        config = make_config(presigned_urls="120|secure/", saveas="\\.zip$", torrents="^videos/")
        assert config.presign_rules.first_match("secure/a").value == 120
        assert config.saveas_rules.first_match("a.zip") is not None
        assert config.torrent_rules.first_match("videos/a.mp4") is not None

    def test_invalid_bucket(self):
        with pytest.raises(ConfigurationError):
            S3Config(bucket_name="ab")


class TestCnameBaseUrl:
    """Tests for CNAME URL derivation."""

    def test_plain_domain(self):
        config = make_config(use_cname="1", domain="cdn.example.com", use_https="1")
        assert config.cname_base_url == "https://cdn.example.com"

    def test_scheme_in_domain_replaced(self):
        config = make_config(use_cname="1", domain="https://cdn.example.com/")
        assert config.cname_base_url == "http://cdn.example.com"

    def test_root_relative_domain(self):
        config = make_config(use_cname="1", domain="/static", base_url="http://site.test/")
        assert config.cname_base_url == "http://site.test/static"


class TestFromEnv:
    """Tests for environment loading."""

    def test_prefixed_variables(self, monkeypatch):
        monkeypatch.setenv("BUCKETFS_BUCKET", "env-bucket")
        monkeypatch.setenv("BUCKETFS_USE_HTTPS", "true")
        monkeypatch.setenv("BUCKETFS_PRESIGNED_URLS", "300|secure/")
        config = FileSystemConfig.from_env()
        assert config.bucket == "env-bucket"
        assert config.use_https
        assert config.presign_rules.first_match("secure/x").value == 300

    def test_missing_bucket(self, monkeypatch):
        monkeypatch.delenv("BUCKETFS_BUCKET", raising=False)
        with pytest.raises(ConfigurationError):
            FileSystemConfig.from_env()


class TestConfigRegistry:
    """Tests for lazily built, shared configs."""

    def test_same_settings_same_instance(self):
        first = ConfigRegistry.get({"bucket": "media", "use_https": "1"})
        second = ConfigRegistry.get({"use_https": "1", "bucket": "media"})
        assert first is second
        assert ConfigRegistry.size() == 1

    def test_distinct_settings(self):
        first = ConfigRegistry.get({"bucket": "media"})
        second = ConfigRegistry.get({"bucket": "other"})
        assert first is not second
        assert ConfigRegistry.size() == 2

    def test_reset(self):
        first = ConfigRegistry.get({"bucket": "media"})
        ConfigRegistry.reset()
        assert ConfigRegistry.size() == 0
        assert ConfigRegistry.get({"bucket": "media"}) is not first
