"""
Property-based tests for the Directory Cache resolution policy.
"""

import tempfile
import threading
from datetime import datetime, timedelta, timezone
from io import StringIO
from pathlib import Path
from typing import Optional

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from endpoint_directory.directory import Directory
from endpoint_directory.directory_cache import DirectoryCache
from endpoint_directory.directory_store import DirectoryStore
from endpoint_directory.endpoint import Endpoint
from endpoint_directory.enums import DirectorySource, LogLevel
from endpoint_directory.exceptions import StoreError
from endpoint_directory.logger import StructuredLogger


BASE_TIME = datetime(2021, 1, 1, tzinfo=timezone.utc)

BUILTIN_DIRECTORY = Directory.create(
    [Endpoint.parse("s1.example.net"), Endpoint.parse("s2.example.net")],
    timestamp=BASE_TIME,
)


class CountingStore(DirectoryStore):
    """Store that counts disk reads."""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.builtin_loads = 0
        self.cached_loads = 0

    def load_builtin(self) -> Directory:
        self.builtin_loads += 1
        return super().load_builtin()

    def load_cached(self) -> Directory:
        self.cached_loads += 1
        return super().load_cached()


def make_store(
    tmpdir: str,
    builtin: Optional[Directory] = BUILTIN_DIRECTORY,
    cached: Optional[Directory] = None,
    builtin_text: Optional[str] = None,
    cached_text: Optional[str] = None,
) -> CountingStore:
    """Write builtin and cache files into tmpdir and return a store over them."""
    root = Path(tmpdir)
    builtin_path = root / "builtin.properties"
    cache_path = root / "cache" / "serverlist.properties"

    if builtin_text is not None:
        builtin_path.write_text(builtin_text, encoding="utf-8")
    elif builtin is not None:
        builtin_path.write_bytes(builtin.serialize())

    if cached_text is not None or cached is not None:
        cache_path.parent.mkdir(parents=True, exist_ok=True)
        if cached_text is not None:
            cache_path.write_text(cached_text, encoding="utf-8")
        else:
            cache_path.write_bytes(cached.serialize())

    return CountingStore(cache_path, builtin_path=builtin_path)


class TestResolutionPolicyProperty:
    """
    Property-based tests for choosing between builtin and cached directory.
    """

    @given(offset=st.integers(min_value=-10**6, max_value=10**6))
    @settings(max_examples=50)
    def test_newest_wins_and_ties_favour_cache(self, offset: int) -> None:
        """
        *For any* builtin and cached directory that both load, the cached one
        SHALL be held iff its timestamp is not older than the builtin's.
        """
        cached = Directory.create(
            [Endpoint.parse("s3.example.net")],
            timestamp=BASE_TIME + timedelta(seconds=offset),
        )
        with tempfile.TemporaryDirectory() as tmpdir:
            cache = DirectoryCache(make_store(tmpdir, cached=cached))

            current = cache.current()

            if offset >= 0:
                assert current == cached
                assert cache.source is DirectorySource.CACHED
            else:
                assert current == BUILTIN_DIRECTORY
                assert cache.source is DirectorySource.BUILTIN

    def test_builtin_used_without_cache(self) -> None:
        output = StringIO()
        logger = StructuredLogger(output_stream=output, level=LogLevel.DEBUG)
        with tempfile.TemporaryDirectory() as tmpdir:
            cache = DirectoryCache(make_store(tmpdir), logger=logger)

            assert cache.current() == BUILTIN_DIRECTORY
            assert cache.source is DirectorySource.BUILTIN
            assert cache.builtin_error is None

        # A missing cache file is routine
        assert all(entry.level is not LogLevel.ERROR for entry in logger.entries)

    def test_corrupt_cache_falls_back_to_builtin(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            cache = DirectoryCache(make_store(tmpdir, cached_text="garbage\n"))

            assert cache.current() == BUILTIN_DIRECTORY

    def test_out_of_range_cache_timestamp_falls_back_to_builtin(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            cache = DirectoryCache(make_store(
                tmpdir,
                cached_text="timestamp=0001-01-01T00:00:00+01:00\nserver.1=s9.example.net\n",
            ))

            assert cache.current() == BUILTIN_DIRECTORY
            assert cache.source is DirectorySource.BUILTIN

    def test_cache_used_when_builtin_is_broken(self) -> None:
        cached = Directory.create([Endpoint.parse("s3.example.net")], timestamp=BASE_TIME)
        output = StringIO()
        logger = StructuredLogger(output_stream=output)
        with tempfile.TemporaryDirectory() as tmpdir:
            cache = DirectoryCache(
                make_store(tmpdir, builtin_text="not a directory\n", cached=cached),
                logger=logger,
            )

            assert cache.current() == cached
            assert cache.source is DirectorySource.CACHED
            assert cache.builtin_error is not None

        errors = [entry for entry in logger.entries if entry.level is LogLevel.ERROR]
        assert len(errors) == 1
        assert errors[0].data["error_code"] == "missing_timestamp"

    def test_nothing_when_both_fail(self) -> None:
        logger = StructuredLogger(output_stream=StringIO())
        with tempfile.TemporaryDirectory() as tmpdir:
            cache = DirectoryCache(make_store(tmpdir, builtin=None), logger=logger)

            assert cache.current() is None
            assert cache.source is None

        errors = [entry for entry in logger.entries if entry.level is LogLevel.ERROR]
        assert len(errors) == 2


class TestCacheLifecycleProperty:
    """
    Tests for lazy loading, replacement, invalidation and reset.
    """

    def test_disk_is_read_once(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            store = make_store(tmpdir)
            cache = DirectoryCache(store)

            assert cache.peek() is None
            first = cache.current()
            second = cache.current()

            assert first is second
            assert store.builtin_loads == 1
            assert store.cached_loads == 1

    def test_concurrent_first_access_loads_once(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            store = make_store(tmpdir)
            cache = DirectoryCache(store)
            results = []

            threads = [
                threading.Thread(target=lambda: results.append(cache.current()))
                for _ in range(8)
            ]
            for thread in threads:
                thread.start()
            for thread in threads:
                thread.join()

            assert store.builtin_loads == 1
            assert all(result is results[0] for result in results)

    def test_replace_then_invalidate_reads_disk(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            store = make_store(tmpdir)
            cache = DirectoryCache(store)
            cache.current()

            fresh = Directory.create([Endpoint.parse("s3.example.net")])
            store.save_cached(fresh)
            cache.replace(fresh)

            assert cache.current() is fresh
            assert cache.source is DirectorySource.DOWNLOADED

            cache.invalidate()
            assert cache.peek() is None
            assert cache.current() == fresh
            assert cache.source is DirectorySource.CACHED
            assert store.builtin_loads == 2

    def test_reset_deletes_cache_file(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            store = make_store(tmpdir)
            cache = DirectoryCache(store)
            fresh = Directory.create([Endpoint.parse("s3.example.net")])
            store.save_cached(fresh)
            assert cache.current() == fresh

            cache.reset()

            assert not store.cache_path.exists()
            assert cache.current() == BUILTIN_DIRECTORY

    def test_reset_reports_store_errors(self) -> None:
        class FailingStore(DirectoryStore):
            def delete_cached(self) -> None:
                raise StoreError(code="io_error", message="read-only")

        with tempfile.TemporaryDirectory() as tmpdir:
            cache = DirectoryCache(FailingStore(Path(tmpdir) / "cache.properties"))

            with pytest.raises(StoreError) as exc_info:
                cache.reset()
            assert exc_info.value.code == "io_error"
