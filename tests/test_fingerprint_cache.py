# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Tests for FingerprintCache.

Test coverage:
- Hits and misses driven by file content hash
- Statistics and clear()
- Unreadable files
- Atomic get_or_parse under concurrency
- Persistence to and from disk
"""

import json
import os
import threading
import time
from concurrent.futures import ThreadPoolExecutor

import pytest

from codemap.fingerprint_cache import CACHE_FORMAT_VERSION, FingerprintCache
from codemap.models import MemberDeclaration, TypeDeclaration


@pytest.fixture
def source_file(tmp_path):
    path = tmp_path / "module.py"
    path.write_text("class Widget:\n    pass\n")
    return path


@pytest.fixture
def declarations():
    return [
        TypeDeclaration(
            name="Widget",
            package="pkg",
            members=[MemberDeclaration(name="render", owner="pkg.Widget")],
        )
    ]


class TestCacheHitsAndMisses:
    """Tests for content-validated lookups."""

    def test_empty_cache_is_miss(self, source_file):
        cache = FingerprintCache()
        assert cache.get(source_file) is None
        assert cache.stats()["misses"] == 1

    def test_put_then_get_is_hit(self, source_file, declarations):
        cache = FingerprintCache()
        cache.put(source_file, declarations)
        assert cache.get(source_file) == declarations
        stats = cache.stats()
        assert stats["hits"] == 1
        assert stats["misses"] == 0
        assert stats["entries"] == 1
        assert stats["hit_rate"] == 1.0

    def test_modified_content_is_miss(self, source_file, declarations):
        cache = FingerprintCache()
        cache.put(source_file, declarations)
        source_file.write_text("class Widget:\n    size = 3\n")
        assert cache.get(source_file) is None
        assert cache.stats()["misses"] == 1

    def test_rewritten_identical_content_is_hit(self, source_file, declarations):
        """Only content matters, not modification time."""
        cache = FingerprintCache()
        cache.put(source_file, declarations)
        content = source_file.read_text()
        time.sleep(0.01)
        source_file.write_text(content)
        assert cache.get(source_file) == declarations

    def test_relative_and_absolute_paths_share_entry(self, source_file, declarations, monkeypatch):
        monkeypatch.chdir(source_file.parent)
        cache = FingerprintCache()
        cache.put("module.py", declarations)
        assert cache.get(source_file) == declarations

    def test_hit_rate(self, source_file, declarations):
        cache = FingerprintCache()
        cache.get(source_file)
        cache.put(source_file, declarations)
        cache.get(source_file)
        cache.get(source_file)
        cache.get(source_file)
        assert cache.stats()["hit_rate"] == pytest.approx(0.75)

    def test_returned_list_is_a_copy(self, source_file, declarations):
        cache = FingerprintCache()
        cache.put(source_file, declarations)
        cache.get(source_file).clear()
        assert cache.get(source_file) == declarations


class TestUnreadableFiles:
    """Tests for files that cannot be hashed."""

    def test_missing_file_is_miss(self, tmp_path):
        cache = FingerprintCache()
        assert cache.get(tmp_path / "missing.py") is None

    def test_missing_file_not_stored(self, tmp_path, declarations):
        cache = FingerprintCache()
        cache.put(tmp_path / "missing.py", declarations)
        assert cache.stats()["entries"] == 0

    def test_deleted_file_is_miss(self, source_file, declarations):
        cache = FingerprintCache()
        cache.put(source_file, declarations)
        source_file.unlink()
        assert cache.get(source_file) is None


class TestClearAndInvalidate:
    """Tests for clear() and invalidate()."""

    def test_clear_resets_entries_and_counters(self, source_file, declarations):
        cache = FingerprintCache()
        cache.put(source_file, declarations)
        cache.get(source_file)
        cache.get(source_file.parent / "other.py")
        cache.clear()
        assert cache.stats() == {"entries": 0, "hits": 0, "misses": 0, "hit_rate": 0.0}
        assert cache.get(source_file) is None

    def test_invalidate(self, source_file, declarations):
        cache = FingerprintCache()
        cache.put(source_file, declarations)
        cache.invalidate(source_file)
        assert cache.cached_files() == []

    def test_invalidate_unknown_file(self, tmp_path):
        FingerprintCache().invalidate(tmp_path / "never.py")


class TestGetOrParse:
    """Tests for the atomic get-or-parse operation."""

    def test_parses_once(self, source_file, declarations):
        cache = FingerprintCache()
        calls = []

        def parse(path):
            calls.append(path)
            return declarations

        assert cache.get_or_parse(source_file, parse) == declarations
        assert cache.get_or_parse(source_file, parse) == declarations
        assert calls == [os.path.abspath(source_file)]
        stats = cache.stats()
        assert stats["hits"] == 1
        assert stats["misses"] == 1

    def test_reparses_after_change(self, source_file, declarations):
        cache = FingerprintCache()
        calls = []

        def parse(path):
            calls.append(path)
            return declarations

        cache.get_or_parse(source_file, parse)
        source_file.write_text("class Widget:\n    size = 4\n")
        cache.get_or_parse(source_file, parse)
        assert len(calls) == 2

    def test_parse_error_propagates_and_is_not_cached(self, source_file):
        cache = FingerprintCache()

        def parse(path):
            raise SyntaxError("bad source")

        with pytest.raises(SyntaxError):
            cache.get_or_parse(source_file, parse)
        assert cache.stats()["entries"] == 0

    def test_concurrent_callers_parse_once(self, source_file, declarations):
        """Concurrent requests for the same file share a single parse."""
        cache = FingerprintCache()
        parse_count = 0
        count_lock = threading.Lock()

        def parse(path):
            nonlocal parse_count
            with count_lock:
                parse_count += 1
            time.sleep(0.05)
            return declarations

        with ThreadPoolExecutor(max_workers=8) as executor:
            results = list(executor.map(lambda _: cache.get_or_parse(source_file, parse), range(8)))

        assert parse_count == 1
        assert all(result == declarations for result in results)
        stats = cache.stats()
        assert stats["hits"] + stats["misses"] == 8
        assert stats["misses"] == 1


class TestPersistence:
    """Tests for saving to and loading from disk."""

    def test_round_trip(self, tmp_path, source_file, declarations):
        cache_path = tmp_path / "cache" / "codemap.json"
        cache = FingerprintCache(persist_path=cache_path)
        cache.put(source_file, declarations)
        cache.persist()

        data = json.loads(cache_path.read_text())
        assert data["version"] == CACHE_FORMAT_VERSION
        assert os.path.abspath(source_file) in data["entries"]

        reloaded = FingerprintCache(persist_path=cache_path)
        assert reloaded.get(source_file) == declarations

    def test_stats_not_persisted(self, tmp_path, source_file, declarations):
        cache_path = tmp_path / "codemap.json"
        cache = FingerprintCache(persist_path=cache_path)
        cache.put(source_file, declarations)
        cache.get(source_file)
        cache.persist()

        stats = FingerprintCache(persist_path=cache_path).stats()
        assert stats["hits"] == 0
        assert stats["entries"] == 1

    def test_persist_without_path_is_noop(self, source_file, declarations):
        cache = FingerprintCache()
        cache.put(source_file, declarations)
        cache.persist()

    def test_corrupt_file_ignored(self, tmp_path, caplog):
        cache_path = tmp_path / "codemap.json"
        cache_path.write_text("{not json")
        cache = FingerprintCache(persist_path=cache_path)
        assert cache.stats()["entries"] == 0
        assert "Failed to load fingerprint cache" in caplog.text

    def test_version_mismatch_ignored(self, tmp_path, caplog):
        cache_path = tmp_path / "codemap.json"
        cache_path.write_text(json.dumps({"version": 99, "entries": {"x": {}}}))
        cache = FingerprintCache(persist_path=cache_path)
        assert cache.stats()["entries"] == 0
        assert "version mismatch" in caplog.text

    def test_stale_persisted_entry_is_miss(self, tmp_path, source_file, declarations):
        cache_path = tmp_path / "codemap.json"
        cache = FingerprintCache(persist_path=cache_path)
        cache.put(source_file, declarations)
        cache.persist()

        source_file.write_text("class Gadget:\n    pass\n")
        assert FingerprintCache(persist_path=cache_path).get(source_file) is None
