"""
Key Mapper: hierarchical URIs <-> flat object keys

Pure functions, no state and no I/O. Key layout:

    [bucket/][root_folder/][public_folder/ | private_folder/]target

- public://a/b.jpg   -> s3fs-public/a/b.jpg
- private://x.pdf    -> s3fs-private/x.pdf
- s3://raw/key       -> raw/key
- root_folder "site" -> site/s3fs-public/a/b.jpg

Complexity: O(len(uri))
"""

from __future__ import annotations

import posixpath
from typing import Optional

from bucketfs.core.config import FileSystemConfig
from bucketfs.core.constants import SCHEME_SEPARATOR
from bucketfs.core.errors import MalformedPathError
from bucketfs.core.types import PathClass


def split_uri(uri: str) -> tuple[str, str]:
    """
    Split `scheme://target` into (scheme, target).

    Backslashes in the target are treated as separators.

    Raises:
        MalformedPathError: If the URI has no `://` or an empty scheme.
    """
    scheme, sep, target = uri.partition(SCHEME_SEPARATOR)
    if not sep or not scheme:
        raise MalformedPathError.missing_scheme(uri)
    return scheme, target.replace("\\", "/")


def uri_scheme(uri: str) -> str:
    return split_uri(uri)[0]


def uri_target(uri: str) -> str:
    """Path part of the URI, without the scheme or surrounding separators."""
    return split_uri(uri)[1].strip("/")


def path_class(uri: str) -> PathClass:
    return PathClass.from_scheme(uri_scheme(uri))


def is_root(uri: str) -> bool:
    """True for a scheme root such as `public://` (or `public:///`)."""
    return uri_target(uri) == ""


def normalize_uri(uri: str) -> str:
    """
    Canonical form: single `://`, no trailing separator, no empty segments.

    `public:///a//b/` -> `public://a/b`
    """
    scheme, target = split_uri(uri)
    parts = [part for part in target.split("/") if part]
    return f"{scheme}{SCHEME_SEPARATOR}{'/'.join(parts)}"


def dirname(uri: str) -> str:
    """
    Parent directory URI. Entries at the top level return the scheme root.

    `public://a/b.jpg` -> `public://a`; `public://a.jpg` -> `public://`
    """
    scheme, _ = split_uri(uri)
    parent = posixpath.dirname(uri_target(uri))
    return f"{scheme}{SCHEME_SEPARATOR}{parent}"


def basename(uri: str) -> str:
    return posixpath.basename(uri_target(uri))


def join_uri(parent: str, name: str) -> str:
    parent = normalize_uri(parent)
    if parent.endswith(SCHEME_SEPARATOR):
        return f"{parent}{name}"
    return f"{parent}/{name}"


def _prefixed(target: str, *prefixes: str) -> str:
    parts = [p for p in prefixes if p]
    parts.append(target)
    return "/".join(parts)


def map_to_object_key(
    uri: str,
    config: FileSystemConfig,
    include_bucket: bool = False,
) -> str:
    """
    Object key for `uri`.

    Args:
        uri: Hierarchical path including the scheme.
        config: Folder and bucket settings.
        include_bucket: Prefix the bucket name ("bucket/key"), the shape
            some client calls such as CopySource expect.

    Returns:
        The key; empty for a scheme root (or just the bucket name when
        include_bucket is set).

    Raises:
        MalformedPathError: If the URI has no scheme.
    """
    target = split_uri(uri)[1].lstrip("/")
    if target:
        klass = path_class(uri)
        if klass is PathClass.PUBLIC:
            target = _prefixed(target, config.public_folder)
        elif klass is PathClass.PRIVATE:
            target = _prefixed(target, config.private_folder)
        target = _prefixed(target, config.root_folder)
        if include_bucket:
            return _prefixed(target, config.bucket)
        return target
    return config.bucket if include_bucket else ""


def object_key_to_uri(
    key: str,
    config: FileSystemConfig,
    fallback_scheme: str = "s3",
) -> Optional[str]:
    """
    Inverse of map_to_object_key.

    Keys under the public or private folder map back to `public://` or
    `private://`; other keys map onto `fallback_scheme`.

    Returns:
        The URI, or None when the key lies outside the configured root folder.
    """
    rest = key
    if config.root_folder:
        root = config.root_folder + "/"
        if not rest.startswith(root):
            return None
        rest = rest[len(root):]
    for folder, scheme in (
        (config.public_folder, PathClass.PUBLIC.value),
        (config.private_folder, PathClass.PRIVATE.value),
    ):
        if folder and rest.startswith(folder + "/"):
            return f"{scheme}{SCHEME_SEPARATOR}{rest[len(folder) + 1:]}"
    return f"{fallback_scheme}{SCHEME_SEPARATOR}{rest}"
