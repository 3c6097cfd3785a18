"""
Filesystem module: directory emulation, URL policy and write flushing.
"""

from bucketfs.filesystem.keymapper import (
    split_uri,
    uri_target,
    path_class,
    normalize_uri,
    dirname,
    basename,
    map_to_object_key,
    object_key_to_uri,
)
from bucketfs.filesystem.directory import DirectoryEngine
from bucketfs.filesystem.urls import UrlPolicyEngine, UrlSettings
from bucketfs.filesystem.flush import FlushStatus, StreamFlushCoordinator
from bucketfs.filesystem.facade import BucketFileSystem

__all__ = [
    "split_uri",
    "uri_target",
    "path_class",
    "normalize_uri",
    "dirname",
    "basename",
    "map_to_object_key",
    "object_key_to_uri",
    "DirectoryEngine",
    "UrlPolicyEngine",
    "UrlSettings",
    "FlushStatus",
    "StreamFlushCoordinator",
    "BucketFileSystem",
]
