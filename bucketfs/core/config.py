"""
Filesystem Configuration

Immutable, validated settings shared by every component, plus the
process-wide registry that builds them once per distinct settings set.

Design Principles:
- Frozen dataclasses: read-only after construction, safe to share
- Validation at construction (fail fast with ConfigurationError)
- Lazy, deduplicated construction keyed by settings identity

Usage:
    config = ConfigRegistry.get({"bucket": "media", "use_https": "1"})
    assert ConfigRegistry.get({"use_https": "1", "bucket": "media"}) is config
"""

from __future__ import annotations

import os
import threading
from dataclasses import dataclass, field
from typing import Any, ClassVar, Mapping, Optional
from urllib.parse import urlsplit

from bucketfs.core.constants import (
    DEFAULT_CACHE_DB_PATH,
    DEFAULT_PRIVATE_FOLDER,
    DEFAULT_PUBLIC_FOLDER,
)
from bucketfs.core.errors import ConfigurationError
from bucketfs.core.patterns import (
    PatternRuleSet,
    parse_presign_lines,
    parse_rule_lines,
)
from bucketfs.storage.config import S3Config

_TRUE_STRINGS = frozenset({"1", "true", "yes", "on"})
_FALSE_STRINGS = frozenset({"", "0", "false", "no", "off"})

# Option names recognized by from_settings / from_env.
SETTING_NAMES: tuple[str, ...] = (
    "bucket",
    "region",
    "access_key",
    "secret_key",
    "endpoint",
    "root_folder",
    "public_folder",
    "private_folder",
    "use_cname",
    "domain",
    "use_https",
    "cache_control_header",
    "encryption",
    "ignore_cache",
    "no_rewrite_cssjs",
    "base_url",
    "cache_db_path",
    "torrents",
    "presigned_urls",
    "saveas",
)


def _as_bool(name: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    if isinstance(value, int):
        return value != 0
    text = str(value).strip().lower()
    if text in _TRUE_STRINGS:
        return True
    if text in _FALSE_STRINGS:
        return False
    raise ConfigurationError.invalid_setting(name, value, "expected a boolean")


def _as_str(value: Any) -> str:
    return "" if value is None else str(value).strip()


# =============================================================================
# FILESYSTEM CONFIGURATION
# =============================================================================
@dataclass(frozen=True, slots=True)
class FileSystemConfig:
    """
    Settings for the filesystem emulation layer.

    Attributes:
        s3: Backend connection settings (bucket, region, credentials).
        root_folder: Optional key prefix under which every object lives.
        public_folder: Key subfolder for `public://` paths.
        private_folder: Key subfolder for `private://` paths.
        use_cname: Serve URLs from `domain` instead of the backend host.
        domain: CNAME domain, or a root-relative path joined onto base_url.
        use_https: Generate https URLs.
        ignore_cache: Re-probe the backend on stat for non-directories.
        cache_control_header: Cache-Control applied to uploads.
        encryption: Server-side encryption mode applied to uploads.
        no_rewrite_cssjs: Disable the CSS/JS proxy prefixes.
        base_url: Host application base URL for proxied and private URLs.
        cache_db_path: SQLite file holding the metadata index.
        presign_rules: Ordered (pattern, timeout seconds) rules.
        saveas_rules: Ordered forced-download patterns.
        torrent_rules: Ordered torrent-eligible patterns.
    """

    s3: S3Config
    root_folder: str = ""
    public_folder: str = DEFAULT_PUBLIC_FOLDER
    private_folder: str = DEFAULT_PRIVATE_FOLDER
    use_cname: bool = False
    domain: str = ""
    use_https: bool = False
    ignore_cache: bool = False
    cache_control_header: str = ""
    encryption: str = ""
    no_rewrite_cssjs: bool = False
    base_url: str = "http://localhost"
    cache_db_path: str = DEFAULT_CACHE_DB_PATH
    presign_rules: PatternRuleSet = field(default_factory=PatternRuleSet)
    saveas_rules: PatternRuleSet = field(default_factory=PatternRuleSet)
    torrent_rules: PatternRuleSet = field(default_factory=PatternRuleSet)

    def __post_init__(self) -> None:
        """
        Normalize folder prefixes and validate invariants.

        Raises:
            ConfigurationError: If use_cname is set without a domain, or the
                public and private folders collide.
        """
        for name in ("root_folder", "public_folder", "private_folder"):
            object.__setattr__(self, name, getattr(self, name).strip().strip("/"))
        object.__setattr__(self, "base_url", self.base_url.rstrip("/"))

        if self.use_cname and not self.domain:
            raise ConfigurationError.missing_setting("domain")
        if self.public_folder and self.public_folder == self.private_folder:
            raise ConfigurationError.invalid_setting(
                "private_folder",
                self.private_folder,
                "must differ from public_folder",
            )

    @property
    def bucket(self) -> str:
        return self.s3.bucket_name

    @property
    def url_scheme(self) -> str:
        return "https" if self.use_https else "http"

    @property
    def cname_base_url(self) -> Optional[str]:
        """
        `scheme://domain` for CNAME mode, or None when CNAME is off.

        A root-relative domain (`/cdn`) is served from the host of base_url.
        """
        if not self.use_cname:
            return None
        domain = self.domain
        if "://" in domain:
            domain = domain.split("://", 1)[1]
        if domain.startswith("/"):
            domain = urlsplit(self.base_url).netloc + domain
        return f"{self.url_scheme}://{domain.rstrip('/')}"

    # -------------------------------------------------------------------------
    # Construction from option mappings
    # -------------------------------------------------------------------------
    @classmethod
    def from_settings(cls, settings: Mapping[str, Any]) -> FileSystemConfig:
        """
        Build a config from the recognized option names.

        Raises:
            ConfigurationError: If `bucket` is missing or any value is invalid.
        """
        unknown = set(settings) - set(SETTING_NAMES)
        if unknown:
            raise ConfigurationError.invalid_setting(
                "settings", sorted(unknown), "unrecognized option names"
            )

        def _get(name: str, default: str = "") -> str:
            value = _as_str(settings.get(name))
            return value or default

        def _get_bool(name: str) -> bool:
            return _as_bool(name, settings.get(name))

        bucket = _get("bucket")
        if not bucket:
            raise ConfigurationError.missing_setting("bucket")

        s3 = S3Config(
            bucket_name=bucket,
            region=_get("region", "us-east-1"),
            endpoint_url=_get("endpoint") or None,
            access_key_id=_get("access_key") or None,
            secret_access_key=_get("secret_key") or None,
        )
        return cls(
            s3=s3,
            root_folder=_get("root_folder"),
            public_folder=_get("public_folder", DEFAULT_PUBLIC_FOLDER),
            private_folder=_get("private_folder", DEFAULT_PRIVATE_FOLDER),
            use_cname=_get_bool("use_cname"),
            domain=_get("domain"),
            use_https=_get_bool("use_https"),
            ignore_cache=_get_bool("ignore_cache"),
            cache_control_header=_get("cache_control_header"),
            encryption=_get("encryption"),
            no_rewrite_cssjs=_get_bool("no_rewrite_cssjs"),
            base_url=_get("base_url", "http://localhost"),
            cache_db_path=_get("cache_db_path", DEFAULT_CACHE_DB_PATH),
            presign_rules=parse_presign_lines(settings.get("presigned_urls")),
            saveas_rules=parse_rule_lines(settings.get("saveas")),
            torrent_rules=parse_rule_lines(settings.get("torrents")),
        )

    @classmethod
    def from_env(cls, prefix: str = "BUCKETFS") -> FileSystemConfig:
        """
        Load configuration from environment variables.

        Each option name is read upper-cased behind the prefix, e.g.
        BUCKETFS_BUCKET, BUCKETFS_USE_HTTPS, BUCKETFS_PRESIGNED_URLS.
        """
        settings = {}
        for name in SETTING_NAMES:
            value = os.environ.get(f"{prefix}_{name.upper()}")
            if value is not None:
                settings[name] = value
        return cls.from_settings(settings)


# =============================================================================
# PROCESS-WIDE REGISTRY
# =============================================================================
def settings_fingerprint(settings: Mapping[str, Any]) -> tuple[tuple[str, str], ...]:
    """Logical identity of a settings mapping (order-insensitive)."""
    return tuple(sorted((str(k), repr(v)) for k, v in settings.items()))


class ConfigRegistry:
    """
    Lazily constructs one FileSystemConfig per distinct settings identity.

    Rebuilding is explicit via reset(); nothing is rebuilt per call.
    """

    _lock: ClassVar[threading.Lock] = threading.Lock()
    _configs: ClassVar[dict[tuple[tuple[str, str], ...], FileSystemConfig]] = {}

    @classmethod
    def get(cls, settings: Mapping[str, Any]) -> FileSystemConfig:
        key = settings_fingerprint(settings)
        config = cls._configs.get(key)
        if config is not None:
            return config
        with cls._lock:
            config = cls._configs.get(key)
            if config is None:
                config = FileSystemConfig.from_settings(settings)
                cls._configs[key] = config
            return config

    @classmethod
    def reset(cls) -> None:
        with cls._lock:
            cls._configs.clear()

    @classmethod
    def size(cls) -> int:
        return len(cls._configs)
