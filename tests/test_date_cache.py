"""
Tests for cache/date_cache.py.
"""

import sys
import threading
from datetime import datetime
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest

from mdtasks.cache.date_cache import DateParseCache
from mdtasks.utils.dates import to_epoch_ms


class _CountingParser:
    def __init__(self, result=1):
        self.calls = []
        self.result = result

    def __call__(self, date_string, custom_formats):
        self.calls.append((date_string, tuple(custom_formats)))
        return self.result


class TestDateParseCache:
    def test_real_parser(self):
        cache = DateParseCache()
        assert cache.resolve("2025-08-15") == to_epoch_ms(datetime(2025, 8, 15))

    def test_second_lookup_does_not_reparse(self):
        parser = _CountingParser(42)
        cache = DateParseCache(parser=parser)
        assert cache.resolve("2025-01-01") == 42
        assert cache.resolve("2025-01-01") == 42
        assert len(parser.calls) == 1
        assert cache.stats() == {"size": 1, "max_size": cache.max_size, "hits": 1, "misses": 1}

    def test_failures_are_cached(self):
        parser = _CountingParser(None)
        cache = DateParseCache(parser=parser)
        assert cache.resolve("nope") is None
        assert cache.resolve("nope") is None
        assert len(parser.calls) == 1

    def test_custom_formats_are_part_of_the_key(self):
        parser = _CountingParser()
        cache = DateParseCache(parser=parser)
        cache.resolve("01/02/2025")
        cache.resolve("01/02/2025", ("%d/%m/%Y",))
        assert len(parser.calls) == 2
        assert DateParseCache.make_key("01/02/2025", ("%d/%m/%Y",)) in cache

    def test_fifo_eviction(self):
        cache = DateParseCache(max_size=2, parser=_CountingParser())
        for value in ("a", "b", "a", "c"):
            cache.resolve(value)
        assert "a_" not in cache
        assert "b_" in cache
        assert "c_" in cache
        assert len(cache) == 2

    def test_blank_input(self):
        parser = _CountingParser()
        assert DateParseCache(parser=parser).resolve("") is None
        assert parser.calls == []

    def test_clear_resets_stats(self):
        cache = DateParseCache(parser=_CountingParser())
        cache.resolve("a")
        cache.resolve("a")
        cache.clear()
        assert cache.stats()["size"] == 0
        assert cache.stats()["hits"] == 0

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            DateParseCache(max_size=0)

    def test_concurrent_resolves_agree(self):
        cache = DateParseCache()
        results = []

        def worker():
            results.append(cache.resolve("2025-08-15"))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(set(results)) == 1
        assert len(cache) == 1
