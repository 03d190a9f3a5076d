"""Unit tests for the in-memory analysis cache."""

import threading
from pathlib import Path

import pytest

from horizon.analyzers.cache import AnalysisCache
from horizon.models.analysis import AnalysisResult


def _result(name: str) -> AnalysisResult:
    return AnalysisResult(overview=f"{name} overview")


class TestAnalysisCache:
    """Tests for AnalysisCache."""

    def test_get_after_put(self, tmp_path: Path) -> None:
        """Test that get returns exactly what was put."""
        cache = AnalysisCache()
        result = _result("a")

        cache.put(tmp_path / "a.ts", result)

        assert cache.get(tmp_path / "a.ts") is result

    def test_miss_returns_none(self, tmp_path: Path) -> None:
        """Test that an unknown path is a miss."""
        cache = AnalysisCache()

        assert cache.get(tmp_path / "missing.ts") is None
        assert cache.misses == 1

    def test_put_replaces_entry(self, tmp_path: Path) -> None:
        """Test that a later put overwrites the earlier one."""
        cache = AnalysisCache()
        cache.put(tmp_path / "a.ts", _result("old"))
        newer = _result("new")

        cache.put(tmp_path / "a.ts", newer)

        assert cache.get(tmp_path / "a.ts") is newer
        assert len(cache) == 1

    def test_keys_are_normalized(self, tmp_path: Path) -> None:
        """Test that equivalent path spellings share one entry."""
        cache = AnalysisCache()
        result = _result("a")

        cache.put(str(tmp_path / "src" / ".." / "a.ts"), result)

        assert cache.get(tmp_path / "a.ts") is result
        assert (tmp_path / "a.ts") in cache

    def test_evicts_least_recently_used(self, tmp_path: Path) -> None:
        """Test LRU eviction once the bound is exceeded."""
        cache = AnalysisCache(max_entries=2)
        cache.put(tmp_path / "a.ts", _result("a"))
        cache.put(tmp_path / "b.ts", _result("b"))

        # Touch a so b becomes the oldest
        cache.get(tmp_path / "a.ts")
        cache.put(tmp_path / "c.ts", _result("c"))

        assert (tmp_path / "a.ts") in cache
        assert (tmp_path / "b.ts") not in cache
        assert (tmp_path / "c.ts") in cache

    def test_hit_counter(self, tmp_path: Path) -> None:
        """Test hit/miss accounting."""
        cache = AnalysisCache()
        cache.put(tmp_path / "a.ts", _result("a"))

        cache.get(tmp_path / "a.ts")
        cache.get(tmp_path / "a.ts")
        cache.get(tmp_path / "b.ts")

        assert cache.hits == 2
        assert cache.misses == 1

    def test_clear(self, tmp_path: Path) -> None:
        """Test that clear empties the cache."""
        cache = AnalysisCache()
        cache.put(tmp_path / "a.ts", _result("a"))

        cache.clear()

        assert len(cache) == 0

    def test_invalid_size(self) -> None:
        """Test that a non-positive bound is rejected."""
        with pytest.raises(ValueError, match="max_entries must be positive"):
            AnalysisCache(max_entries=0)

    def test_concurrent_puts(self, tmp_path: Path) -> None:
        """Test that concurrent writers never lose entries under the bound."""
        cache = AnalysisCache(max_entries=1000)

        def writer(offset: int) -> None:
            for i in range(100):
                cache.put(tmp_path / f"{offset}-{i}.ts", _result(str(i)))

        threads = [threading.Thread(target=writer, args=(n,)) for n in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(cache) == 800
