"""Test the time-expiring file cache."""
import hashlib
import json
import os
import time
from datetime import timedelta

import pytest

from bsky_recommender.cache import FileCache, CACHE_VERSION


@pytest.fixture
def cache(tmp_path):
    return FileCache(tmp_path / "profile")


class TestFileCache:
    """Test cache hits and misses."""

    def test_put_then_get(self, cache):
        cache.put("did:plc:abc", {"did": "did:plc:abc", "handle": "abc.test"})

        assert cache.get("did:plc:abc") == {"did": "did:plc:abc", "handle": "abc.test"}

    def test_missing_key(self, cache):
        assert cache.get("did:plc:unknown") is None

    def test_file_named_by_key_hash(self, cache):
        cache.put("did:plc:abc", [])

        expected = hashlib.sha256("did:plc:abc".encode("utf-8")).hexdigest()
        path = cache.root / expected
        assert path.exists()
        assert json.loads(path.read_text()) == {"version": CACHE_VERSION, "payload": []}

    def test_root_created_private(self, tmp_path):
        cache = FileCache(tmp_path / "nested" / "follows")

        assert cache.root.is_dir()
        if os.name == "posix":
            assert cache.root.stat().st_mode & 0o077 == 0

    def test_expired_entry_is_a_miss(self, tmp_path):
        cache = FileCache(tmp_path, max_age=timedelta(hours=24))
        cache.put("key", {"v": 1})
        path = cache._path("key")
        old = time.time() - 25 * 60 * 60
        os.utime(path, (old, old))

        assert cache.get("key") is None

    def test_version_mismatch_is_a_miss(self, tmp_path):
        FileCache(tmp_path, version="0").put("key", {"v": 1})

        assert FileCache(tmp_path).get("key") is None

    def test_corrupt_entry_is_a_miss(self, cache):
        cache._path("key").write_text("{not json")

        assert cache.get("key") is None

    def test_put_overwrites(self, cache):
        cache.put("key", {"v": 1})
        cache.put("key", {"v": 2})

        assert cache.get("key") == {"v": 2}
