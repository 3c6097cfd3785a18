"""
Unit Tests: Metadata Cache Store

Tests:
    - Upsert / get round trip and URI canonicalization
    - Direct-children listing and descendant counting
    - Deletes (single and batch)
    - File-backed persistence and initialization failures
    - Concurrent writers on one connection
"""

import threading

import pytest

from bucketfs.core.errors import CacheWriteError
from bucketfs.core.types import FileRecord
from bucketfs.storage.cache.engine import MetadataCacheStore, canonical_uri


def _file(uri, size=10, version=""):
    return FileRecord(uri=uri, size_bytes=size, timestamp=1_700_000_000, version=version)


class TestCanonicalUri:
    """Tests for URI folding."""

    def test_folds_extra_separators(self):
        assert canonical_uri("public:///a/b/") == "public://a/b"

    def test_root_preserved(self):
        assert canonical_uri("public://") == "public://"
        assert canonical_uri("public:///") == "public://"


class TestGetAndUpsert:
    """Tests for single-record operations."""

    def test_round_trip(self, cache):
        record = _file("public://a.txt", size=42, version="v3")
        cache.upsert(record)
        assert cache.get("public://a.txt") == record

    def test_missing(self, cache):
        assert cache.get("public://nope") is None
        assert cache.stats.misses == 1

    def test_upsert_replaces(self, cache):
        cache.upsert(_file("public://a.txt", size=1))
        cache.upsert(_file("public://a.txt", size=2))
        assert cache.get("public://a.txt").size_bytes == 2
        assert cache.count() == 1

    def test_canonicalized_on_write_and_read(self, cache):
        stored = cache.upsert(FileRecord.directory("public:///docs/"))
        assert stored.uri == "public://docs"
        assert cache.get("public:///docs").is_directory

    def test_directory_record(self, cache):
        cache.upsert(FileRecord.directory("public://docs", timestamp=123))
        record = cache.get("public://docs")
        assert record.is_directory
        assert record.size_bytes == 0
        assert record.timestamp == 123

    def test_stats(self, cache):
        cache.upsert(_file("public://a"))
        cache.get("public://a")
        cache.get("public://b")
        assert cache.stats.writes == 1
        assert cache.stats.hits == 1
        assert cache.stats.misses == 1


class TestListing:
    """Tests for prefix queries."""

    @pytest.fixture
    def populated(self, cache):
        for record in (
            FileRecord.directory("public://a"),
            _file("public://a/one.txt"),
            FileRecord.directory("public://a/sub"),
            _file("public://a/sub/deep.txt"),
            _file("public://ab.txt"),
            _file("private://secret.txt"),
        ):
            cache.upsert(record)
        return cache

    def test_direct_children_only(self, populated):
        uris = [r.uri for r in populated.list_children("public://a")]
        assert uris == ["public://a/one.txt", "public://a/sub"]

    def test_sibling_with_shared_prefix_excluded(self, populated):
        uris = [r.uri for r in populated.list_children("public://a/")]
        assert "public://ab.txt" not in uris

    def test_scheme_root(self, populated):
        uris = [r.uri for r in populated.list_children("public://")]
        assert uris == ["public://a", "public://ab.txt"]

    def test_count_descendants(self, populated):
        assert populated.count_descendants("public://a") == 3
        assert populated.count_descendants("public://a/sub") == 1
        assert populated.count_descendants("public://ab.txt") == 0

    def test_empty_directory(self, cache):
        cache.upsert(FileRecord.directory("public://empty"))
        assert cache.list_children("public://empty") == []


class TestDelete:
    """Tests for deletes."""

    def test_single(self, cache):
        cache.upsert(_file("public://a"))
        assert cache.delete("public://a") == 1
        assert cache.get("public://a") is None

    def test_batch_ignores_missing(self, cache):
        cache.upsert(_file("public://a"))
        cache.upsert(_file("public://b"))
        assert cache.delete(["public://a", "public://b", "public://c"]) == 2
        assert cache.count() == 0

    def test_clear(self, cache):
        cache.upsert(_file("public://a"))
        cache.clear()
        assert cache.count() == 0


class TestConcurrency:
    """Tests for writers sharing one index."""

    THREADS = 8
    PER_THREAD = 50

    def _run(self, target):
        threads = [threading.Thread(target=target, args=(n,)) for n in range(self.THREADS)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

    def test_independent_keys(self, cache):
        errors = []

        def worker(n):
            try:
                for i in range(self.PER_THREAD):
                    cache.upsert(_file(f"public://t{n}/f{i}", size=i))
                    if i % 2:
                        cache.delete(f"public://t{n}/f{i}")
            except Exception as e:
                errors.append(e)

        self._run(worker)

        assert errors == []
        assert cache.count() == self.THREADS * self.PER_THREAD // 2
        for n in range(self.THREADS):
            assert cache.count_descendants(f"public://t{n}") == self.PER_THREAD // 2
            assert cache.get(f"public://t{n}/f4").size_bytes == 4
            assert cache.get(f"public://t{n}/f5") is None

    def test_same_key_keeps_one_complete_write(self, cache):
        def worker(n):
            for _ in range(self.PER_THREAD):
                cache.upsert(_file("public://shared", size=n, version=f"v{n}"))

        self._run(worker)

        record = cache.get("public://shared")
        assert cache.count() == 1
        assert record.version == f"v{record.size_bytes}"

    def test_later_write_wins(self, cache):
        cache.upsert(_file("public://a", size=1, version="v1"))
        thread = threading.Thread(target=cache.upsert, args=(_file("public://a", size=2, version="v2"),))
        thread.start()
        thread.join()
        assert cache.get("public://a").version == "v2"


class TestLifecycle:
    """Tests for file-backed databases."""

    def test_creates_parent_directories(self, tmp_path):
        db_path = tmp_path / "nested" / "index.db"
        with MetadataCacheStore(db_path) as cache:
            cache.upsert(_file("public://a"))
        assert db_path.exists()

    def test_persists_across_reopen(self, tmp_path):
        db_path = tmp_path / "index.db"
        with MetadataCacheStore(db_path) as cache:
            cache.upsert(_file("public://a", size=7))
        with MetadataCacheStore(db_path) as cache:
            assert cache.get("public://a").size_bytes == 7

    def test_unopenable_path(self, tmp_path):
        cache = MetadataCacheStore(tmp_path)
        with pytest.raises(CacheWriteError):
            cache.initialize()

    def test_close_is_idempotent(self):
        cache = MetadataCacheStore()
        cache.initialize()
        cache.close()
        cache.close()
