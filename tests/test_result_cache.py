"""Tests for storage/result_cache.py"""
import threading
from ipaddress import IPv4Address

import pytest

from config.exceptions import ResultCacheError
from storage.result_cache import CacheRecord, ResultCache


class TestCacheRecord:
    """Tests for the results line format."""

    def test_reachable_line(self):
        record = CacheRecord(IPv4Address("1.0.0.1"), True, 12.3456)
        assert record.to_line() == "1.0.0.1: true, 12.346ms\n"

    def test_unreachable_line(self):
        record = CacheRecord(IPv4Address("1.0.0.2"), False)
        assert record.to_line() == "1.0.0.2: false, 0s\n"

    def test_from_line(self):
        record = CacheRecord.from_line("8.8.8.8: true, 9.742ms\n")
        assert record.address == IPv4Address("8.8.8.8")
        assert record.reachable is True
        assert record.latency_ms == pytest.approx(9.742)

    def test_from_line_zero_latency(self):
        record = CacheRecord.from_line("1.0.0.2: false, 0s")
        assert record.reachable is False
        assert record.latency_ms is None

    def test_from_line_seconds(self):
        record = CacheRecord.from_line("1.0.0.3: true, 1.5s")
        assert record.latency_ms == pytest.approx(1500.0)

    @pytest.mark.parametrize("line", [
        "garbage",
        "1.0.0.1 true 1ms",
        "1.0.0.1: maybe, 1ms",
        "999.0.0.1: true, 1ms",
        "1.0.0.1: true, fast",
    ])
    def test_from_line_malformed(self, line):
        with pytest.raises(ValueError):
            CacheRecord.from_line(line)


class TestResultCache:
    """Tests for the ResultCache class."""

    def test_record_creates_directory(self, cache, cache_path):
        assert not cache_path.parent.exists()
        assert cache.record(IPv4Address("1.0.0.1"), True, 2.0) is True
        assert cache_path.read_text(encoding="utf-8") == "1.0.0.1: true, 2.000ms\n"

    def test_records_are_appended_not_deduplicated(self, cache):
        address = IPv4Address("1.0.0.1")
        cache.record(address, False)
        cache.record(address, True, 1.0)
        records = list(cache.records())
        assert len(records) == 2
        assert [r.reachable for r in records] == [False, True]

    def test_write_failure_returns_false(self, temp_data_dir):
        """A failed write is reported, never raised."""
        target = temp_data_dir / "results"
        target.mkdir()
        cache = ResultCache(target)
        assert cache.record(IPv4Address("1.0.0.1"), True, 1.0) is False

    def test_records_missing_file(self, cache):
        assert list(cache.records()) == []

    def test_records_skip_malformed_lines(self, cache, cache_path):
        cache_path.parent.mkdir(parents=True)
        cache_path.write_text("1.0.0.1: true, 1.000ms\nbroken line\n\n1.0.0.2: false, 0s\n")
        records = list(cache.records())
        assert [str(r.address) for r in records] == ["1.0.0.1", "1.0.0.2"]

    def test_concurrent_records(self, cache):
        def writer(base: int):
            for i in range(25):
                cache.record(IPv4Address(base + i), i % 2 == 0, 1.0 if i % 2 == 0 else None)

        threads = [threading.Thread(target=writer, args=((n + 1) << 24,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        records = list(cache.records())
        assert len(records) == 200
        assert sum(1 for r in records if r.reachable) == 8 * 13

    def test_check_writable(self, cache, cache_path):
        cache.check_writable()
        assert cache_path.exists()

    def test_check_writable_failure(self, temp_data_dir):
        blocker = temp_data_dir / "cache"
        blocker.write_text("a file, not a directory")
        with pytest.raises(ResultCacheError):
            ResultCache(blocker / "ping_results.txt").check_writable()

    def test_records_skip_undecodable_lines(self, cache, cache_path):
        cache_path.parent.mkdir(parents=True)
        cache_path.write_bytes(b"1.0.0.1: true, 1.000ms\n\xff\xfe: true, 1ms\n1.0.0.2: false, 0s\n")
        records = list(cache.records())
        assert [str(r.address) for r in records] == ["1.0.0.1", "1.0.0.2"]

    def test_records_unreadable_path(self, cache_path):
        cache_path.mkdir(parents=True)
        with pytest.raises(ResultCacheError):
            list(ResultCache(cache_path).records())
