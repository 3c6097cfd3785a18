#!/usr/bin/env python3
"""
bucketfs local demo

Runs the filesystem emulation against an in-memory bucket and a temporary
SQLite index; no credentials or network needed.

Usage:
    python -m bucketfs

    # Override settings the same way a deployment would
    BUCKETFS_BUCKET=media BUCKETFS_PRESIGNED_URLS="300|secure/" python -m bucketfs
"""

from __future__ import annotations

import os
import sys
import tempfile
from pathlib import Path

from bucketfs.core.config import FileSystemConfig
from bucketfs.core.errors import BucketFSError
from bucketfs.filesystem.facade import BucketFileSystem
from bucketfs.observability.logging import LogLevel, setup_logging
from bucketfs.reliability.waiter import WaitPolicy
from bucketfs.storage.memory import InMemoryObjectStore

DEMO_SETTINGS = {
    "bucket": "bucketfs-demo",
    "use_https": "1",
    "presigned_urls": "120|secure/",
    "saveas": "\\.zip$",
    "torrents": "^videos/",
}


def load_config(db_path: Path) -> FileSystemConfig:
    """Environment settings when BUCKETFS_BUCKET is set, demo defaults otherwise."""
    if os.environ.get("BUCKETFS_BUCKET"):
        return FileSystemConfig.from_env()
    return FileSystemConfig.from_settings({**DEMO_SETTINGS, "cache_db_path": str(db_path)})


def demo_local_mode(workdir: Path) -> None:
    """
    Walk through writes, directory emulation, rename and URL policy.
    """
    print("\n" + "=" * 60)
    print("bucketfs - Local Demo")
    print("=" * 60 + "\n")

    config = load_config(workdir / "bucketfs.db")
    print("✓ Configuration loaded")
    print(f"  Bucket: {config.bucket}")
    print(f"  Index:  {config.cache_db_path}")

    setup_logging(LogLevel.WARNING, json_output=False)

    store = InMemoryObjectStore(bucket=config.bucket, versioning=True, visibility_lag=1)
    fs = BucketFileSystem(
        config,
        store=store,
        waiter_policy=WaitPolicy(max_attempts=5, delay_seconds=0.05),
    )

    try:
        # 1. Writes cascade ancestor directories
        print("\n1. Writing files:")
        for uri, body in (
            ("public://images/2024/cat.jpg", b"\xff\xd8 jpeg bytes"),
            ("public://secure/report.pdf", b"%PDF-1.7"),
            ("public://videos/intro.mp4", b"\x00\x00 mp4"),
            ("public://downloads/bundle.zip", b"PK zip"),
            ("private://invoices/0001.pdf", b"%PDF-1.7 private"),
        ):
            status = fs.write(uri, body)
            print(f"   {status.value:<11} {uri} -> {fs.object_key(uri)}")

        # 2. Directory emulation
        print("\n2. Directory listing of public://")
        for name in fs.readdir("public://") or ():
            kind = "dir " if fs.is_dir(f"public://{name}") else "file"
            print(f"   [{kind}] {name}")
        print(f"   rmdir public://images (non-empty): {fs.rmdir('public://images')}")

        # 3. Rename
        print("\n3. Rename:")
        fs.rename("public://images/2024/cat.jpg", "public://images/cat.jpg")
        moved = fs.stat("public://images/cat.jpg")
        print(f"   public://images/cat.jpg size={moved.size_bytes} version={moved.version}")
        print(f"   rmdir public://images/2024 (now empty): {fs.rmdir('public://images/2024')}")

        # 4. URL policy
        print("\n4. External URLs:")
        for uri in (
            "public://images/cat.jpg",
            "public://secure/report.pdf",
            "public://videos/intro.mp4",
            "public://downloads/bundle.zip",
            "public://css/site.css",
            "private://invoices/0001.pdf",
        ):
            print(f"   {uri}\n     {fs.external_url(uri)}")

        # 5. Stats
        stats = fs.cache.stats
        print("\n5. Index Stats:")
        print(f"   Records: {fs.cache.count()}")
        print(f"   Reads: {stats.reads} (hits {stats.hits}, misses {stats.misses})")
        print(f"   Writes: {stats.writes}  Deletes: {stats.deletes}")
        print(f"   Waiter polls: {fs.waiter.stats.polls}")
    finally:
        fs.close()

    print("\n✓ Demo complete")
    print("=" * 60 + "\n")


def main() -> None:
    """Main entry point."""
    try:
        with tempfile.TemporaryDirectory(prefix="bucketfs-") as workdir:
            demo_local_mode(Path(workdir))
    except KeyboardInterrupt:
        print("\nInterrupted")
    except BucketFSError as e:
        print(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
