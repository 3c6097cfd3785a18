"""
URL Policy Engine

Derives the externally servable URL for a path:

1. private:// paths go through the host's access-controlled delivery route
2. public:// CSS/JS assets go through the host's proxy prefixes
3. Everything else is served from the bucket: presign and forced-download
   ("save as") rules are evaluated, hooks may adjust the settings, and the
   URL is either signed, plain, or built on the CNAME domain
4. A cached version token is appended for cache busting
5. Torrent rules add a bare `torrent` marker, except on signed and
   forced-download URLs
6. Extra query arguments set by hooks are appended last

No network calls are made; signing is local.
"""

from __future__ import annotations

import logging
import posixpath
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, Optional
from urllib.parse import quote

from bucketfs.core.config import FileSystemConfig
from bucketfs.core.constants import (
    CSS_PROXY_PREFIX,
    DEFAULT_PRESIGN_TIMEOUT_SECONDS,
    JS_PROXY_PREFIX,
    PRIVATE_DELIVERY_PREFIX,
    RESPONSE_OVERRIDE_EXPIRY_SECONDS,
    TORRENT_QUERY_ARG,
)
from bucketfs.core.types import FileRecord, PathClass
from bucketfs.filesystem.keymapper import normalize_uri, path_class, uri_target
from bucketfs.storage.cache.engine import MetadataCacheStore
from bucketfs.storage.protocols import ObjectStoreProtocol

logger = logging.getLogger(__name__)


def encode_path(path: str) -> str:
    """Percent-encode a key or path, keeping `/` separators."""
    return quote(path, safe="/")


def append_get_arg(url: str, name: str, value: Optional[Any] = None) -> str:
    """
    Append `name` (or `name=value`) with `?` or `&` as appropriate.

    The value is percent-encoded; the name is appended as given.
    """
    separator = "&" if "?" in url else "?"
    url = f"{url}{separator}{name}"
    if value is not None:
        url = f"{url}={quote(str(value), safe='')}"
    return url


@dataclass
class UrlSettings:
    """
    Per-request URL settings, open to adjustment by hooks.

    Attributes:
        presign: Serve a time-limited signed URL.
        expiry_seconds: Signed URL lifetime when presign is set.
        forced_download: Serve with a content-disposition attachment override.
        response_disposition: The Content-Disposition override value.
        api_args: Response* overrides passed to the signer.
        extra_query_args: name -> value appended to the final URL.
    """

    presign: bool = False
    expiry_seconds: int = DEFAULT_PRESIGN_TIMEOUT_SECONDS
    forced_download: bool = False
    response_disposition: str = ""
    api_args: Dict[str, str] = field(default_factory=dict)
    extra_query_args: Dict[str, Any] = field(default_factory=dict)

    def has_response_overrides(self) -> bool:
        return any(name.startswith("Response") for name in self.api_args)


UrlSettingsHook = Callable[[UrlSettings, str], None]


class UrlPolicyEngine:
    """
    Usage:
        engine = UrlPolicyEngine(config, store, cache)
        engine.external_url("public://images/a.jpg")
    """

    __slots__ = ("_config", "_store", "_cache", "_hooks")

    def __init__(
        self,
        config: FileSystemConfig,
        store: ObjectStoreProtocol,
        cache: MetadataCacheStore,
        hooks: Iterable[UrlSettingsHook] = (),
    ) -> None:
        self._config = config
        self._store = store
        self._cache = cache
        self._hooks = tuple(hooks)

    def _host_url(self, prefix: str, path: str) -> str:
        return f"{self._config.base_url}/{prefix}/{encode_path(path)}"

    def _version_of(self, uri: str, record: Optional[FileRecord]) -> str:
        if record is None:
            record = self._cache.get(uri)
        return record.version if record is not None else ""

    def build_settings(self, path: str, key: str) -> UrlSettings:
        """Evaluate presign and save-as rules, then run the hooks."""
        settings = UrlSettings()

        rule = self._config.presign_rules.first_match(path)
        if rule is not None:
            settings.presign = True
            settings.expiry_seconds = int(rule.value)

        if self._config.saveas_rules.first_match(path) is not None:
            disposition = f'attachment; filename="{posixpath.basename(path)}"'
            settings.forced_download = True
            settings.response_disposition = disposition
            settings.api_args["ResponseContentDisposition"] = disposition

        for hook in self._hooks:
            hook(settings, key)
        return settings

    def external_url(self, uri: str, record: Optional[FileRecord] = None) -> str:
        """
        External URL for `uri`.

        Args:
            uri: Hierarchical path including the scheme.
            record: Cached record, when the caller already holds it (looked
                up in the index otherwise).

        Raises:
            MalformedPathError: If the URI has no scheme.
            BackendError: If signing fails.
        """
        uri = normalize_uri(uri)
        path = uri_target(uri)
        klass = path_class(uri)

        if klass is PathClass.PRIVATE:
            url = self._host_url(PRIVATE_DELIVERY_PREFIX, path)
            return self._with_version(url, uri, record)

        key = path
        if klass is PathClass.PUBLIC:
            if not self._config.no_rewrite_cssjs:
                if path.endswith(".css"):
                    return self._with_version(self._host_url(CSS_PROXY_PREFIX, path), uri, record)
                if path.endswith(".js"):
                    return self._with_version(self._host_url(JS_PROXY_PREFIX, path), uri, record)
            if self._config.public_folder:
                key = f"{self._config.public_folder}/{path}"

        settings = self.build_settings(path, key)

        if self._config.root_folder:
            key = f"{self._config.root_folder}/{key}"

        cname = self._config.cname_base_url
        if cname is None:
            url = self._bucket_url(key, settings)
        else:
            url = f"{cname}/{encode_path(key)}"

        url = self._with_version(url, uri, record)

        if not settings.forced_download and not settings.presign:
            if self._config.torrent_rules.first_match(path) is not None:
                url = append_get_arg(url, TORRENT_QUERY_ARG)

        for name, value in settings.extra_query_args.items():
            url = append_get_arg(url, name, value)
        return url

    def _bucket_url(self, key: str, settings: UrlSettings) -> str:
        expires: Optional[int] = None
        if settings.presign:
            expires = settings.expiry_seconds
        elif settings.has_response_overrides():
            expires = RESPONSE_OVERRIDE_EXPIRY_SECONDS

        https = self._config.use_https
        if expires is None:
            return self._store.get_object_url(key, https=https)

        response_args = {k: v for k, v in settings.api_args.items() if k.startswith("Response")}
        result = self._store.generate_presigned_url(key, expires, response_args, https=https)
        if result.is_err():
            logger.error(
                "URL signing failed",
                extra={"key": key, "error": str(result.error)},
            )
            raise result.error
        return result.unwrap()

    def _with_version(self, url: str, uri: str, record: Optional[FileRecord]) -> str:
        version = self._version_of(uri, record)
        if version:
            url = append_get_arg(url, version)
        return url
