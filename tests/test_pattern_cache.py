"""Tests for the shared compiled-regex cache."""

import re
from concurrent.futures import ThreadPoolExecutor

import pytest

from tidy_organizer.core.pattern_cache import RegexCache


class TestRegexCache:
    """Test caching and eviction."""

    def test_case_sensitivity_is_part_of_key(self):
        cache = RegexCache()
        insensitive = cache.compile("abc")
        sensitive = cache.compile("abc", case_sensitive=True)
        assert insensitive is not sensitive
        assert insensitive.match("ABC")
        assert not sensitive.match("ABC")
        assert ("abc", True) in cache
        assert cache.size == 2

    def test_least_recently_used_is_evicted(self):
        cache = RegexCache(max_size=2)
        cache.compile("a")
        cache.compile("b")
        cache.compile("a")
        cache.compile("c")
        assert ("a", False) in cache
        assert ("b", False) not in cache

    def test_invalid_source_raises_and_is_not_cached(self):
        cache = RegexCache()
        with pytest.raises(re.error):
            cache.compile("(")
        assert len(cache) == 0


class TestConcurrentAccess:
    """Test the cache from several threads at once."""

    def test_same_source_from_many_threads(self):
        cache = RegexCache(max_size=4)

        def compile_and_match(_):
            return cache.compile(r"IMG_\d{4}\.jpg").match("img_0042.JPG") is not None

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(compile_and_match, range(200)))

        assert all(results)
        assert len(cache) == 1

    def test_distinct_sources_stay_bounded(self):
        cache = RegexCache(max_size=16)
        sources = [(rf"file_{i}\.txt", f"file_{i}.txt") for i in range(64)]

        def compile_and_match(job):
            index, (source, name) = job
            pattern = cache.compile(source, case_sensitive=bool(index % 2))
            assert len(cache) <= cache.max_size
            return pattern.match(name) is not None and pattern.match("other.txt") is None

        jobs = list(enumerate(sources * 4))
        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(compile_and_match, jobs))

        assert all(results)
        assert len(cache) <= 16
        for key in list(cache._patterns):
            source, case_sensitive = key
            compiled = cache.compile(source, case_sensitive)
            assert compiled.pattern == source
